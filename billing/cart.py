"""
Line item cart for a bill being composed.

Holds the draft line currently being entered (material, unit, quantity and
the price lock) plus the ordered list of validated lines added so far.
Totals here are display-only; the server recomputes the bill total on
submission.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from models.draft import CartLine
from .errors import ValidationError
from .price_lock import PriceLock

logger = logging.getLogger(__name__)


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse user input into a finite Decimal, or None if it isn't one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    if isinstance(value, float):
        value = str(value)
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return number if number.is_finite() else None


def _to_id(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        ident = int(str(value).strip())
    except ValueError:
        return None
    return ident if ident > 0 else None


@dataclass
class DraftBillLine:
    """The line currently being edited, before it is added to the cart."""
    master_material_id: Optional[int] = None
    unit: str = ""
    quantity: Any = None                # raw input, validated on add
    price_lock: PriceLock = field(default_factory=PriceLock)

    @property
    def unit_price(self) -> Any:
        return self.price_lock.price

    @property
    def price_locked(self) -> bool:
        return self.price_lock.locked


class LineItemCart:
    """
    Ordered, client-held collection of validated bill lines.

    Usage:
        cart = LineItemCart()
        cart.select_material(9, default_unit="kg")
        cart.set_quantity("10")
        cart.enter_price("2.5")
        cart.add_line()
        cart.total   # Decimal("25.0")
    """

    def __init__(self) -> None:
        self._lines: list[CartLine] = []
        self.draft = DraftBillLine()

    # ------------------------------------------------------------------
    # Draft line editing
    # ------------------------------------------------------------------

    def select_material(self, material_id: int, default_unit: str = "") -> DraftBillLine:
        """Start a fresh draft line for material_id, seeded with its default unit."""
        self.draft = DraftBillLine(master_material_id=material_id,
                                   unit=(default_unit or "").strip())
        return self.draft

    def set_unit(self, unit: str) -> None:
        # The unit is part of the price key, so any previous price no longer applies.
        unit = (unit or "").strip()
        if unit != self.draft.unit:
            self.draft.unit = unit
            self.draft.price_lock.reset()

    def set_quantity(self, quantity: Any) -> None:
        self.draft.quantity = quantity

    def enter_price(self, price: Any) -> None:
        self.draft.price_lock.enter_manual_price(price)

    def unlock_price(self) -> None:
        self.draft.price_lock.unlock()

    # ------------------------------------------------------------------
    # Cart operations
    # ------------------------------------------------------------------

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    def add_line(self, draft: Optional[DraftBillLine] = None) -> CartLine:
        """
        Validate a draft and append an immutable snapshot of it.

        Raises ValidationError naming every bad field; the cart and the draft
        are left untouched in that case. On success the cart's own draft is
        reset; a draft passed in by the caller is left alone.
        """
        source = draft if draft is not None else self.draft
        line = self.validate(source)
        self._lines.append(line)
        if source is self.draft:
            self.draft = DraftBillLine()
        logger.debug("Added line %d: material=%s qty=%s %s @ %s",
                     len(self._lines), line.master_material_id, line.quantity,
                     line.unit, line.unit_price)
        return line

    @staticmethod
    def validate(draft: DraftBillLine) -> CartLine:
        bad: list[str] = []

        material_id = _to_id(draft.master_material_id)
        if material_id is None:
            bad.append("master_material_id")

        unit = (draft.unit or "").strip()
        if not unit:
            bad.append("unit")

        quantity = _to_decimal(draft.quantity)
        if quantity is None or quantity <= 0:
            bad.append("quantity")

        unit_price = _to_decimal(draft.unit_price)
        if unit_price is None or unit_price < 0:
            bad.append("unit_price")

        if bad:
            raise ValidationError(bad)

        return CartLine(
            master_material_id=material_id,
            unit=unit,
            quantity=quantity,
            unit_price=unit_price,
            price_locked=draft.price_locked,
        )

    def remove_line(self, index: int) -> CartLine:
        if not 0 <= index < len(self._lines):
            raise IndexError(f"No cart line at position {index}")
        return self._lines.pop(index)

    def clear(self) -> None:
        self._lines = []
        self.draft = DraftBillLine()

    def snapshot(self) -> dict:
        """Plain-data copy of the cart, for comparison and diagnostics."""
        return {
            "lines": [line.model_dump() for line in self._lines],
            "draft": {
                "master_material_id": self.draft.master_material_id,
                "unit": self.draft.unit,
                "quantity": self.draft.quantity,
                "unit_price": self.draft.unit_price,
                "price_locked": self.draft.price_locked,
            },
        }
