"""
Price lock state machine for the bill line being entered.

  LOCKED    price came from an active-price lookup; read-only until the
            user explicitly unlocks it
  UNLOCKED  price is user-editable

Transitions:
  UNLOCKED -> LOCKED    a fresh lookup found a price (apply_quote)
  LOCKED   -> UNLOCKED  user action only (unlock)

Once the user unlocks or types a price, the override is sticky: later
lookups no longer touch the price until reset() is called for a new
material/unit selection.
"""
import logging
from decimal import Decimal
from enum import Enum
from typing import Any

from .errors import ValidationError

logger = logging.getLogger(__name__)


class LockState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class PriceLock:

    def __init__(self) -> None:
        self.state = LockState.UNLOCKED
        self.price: Any = None
        self.manual_override = False
        self._auto_filled = False

    @property
    def locked(self) -> bool:
        return self.state is LockState.LOCKED

    def apply_quote(self, price: Decimal) -> bool:
        """Lock in a looked-up price. Returns False when a manual override wins."""
        if self.manual_override:
            logger.debug("Ignoring quote %s: price manually overridden", price)
            return False
        self.state = LockState.LOCKED
        self.price = price
        self._auto_filled = True
        return True

    def apply_miss(self) -> None:
        """No active price: drop any auto-filled value so it must be typed in."""
        if self.manual_override:
            return
        self.state = LockState.UNLOCKED
        if self._auto_filled:
            self.price = None
            self._auto_filled = False

    def unlock(self) -> None:
        """Explicit user unlock. The current value stays as a starting point."""
        self.state = LockState.UNLOCKED
        self.manual_override = True
        self._auto_filled = False

    def enter_manual_price(self, price: Any) -> None:
        """Set a user-typed price. Raw input is kept; the cart validates it on add."""
        if self.locked:
            raise ValidationError(["unit_price"], "Price is locked to the supplier's active price; unlock it to edit")
        self.price = price
        self.manual_override = True
        self._auto_filled = False

    def reset(self) -> None:
        self.state = LockState.UNLOCKED
        self.price = None
        self.manual_override = False
        self._auto_filled = False

    def __repr__(self) -> str:
        return f"PriceLock(state={self.state.value}, price={self.price}, manual={self.manual_override})"
