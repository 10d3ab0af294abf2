"""
Active-price lookup for the bill line being entered.

PriceLookupClient resolves one (supplier, material, unit, date) key against
the server. DebouncedPriceLookup sits in front of it: every input change
calls schedule(), which restarts a timer; only the key that is still current
when the timer fires is looked up, and a result is applied only if its key
still matches the current draft when it arrives. Late results for
superseded keys are dropped rather than cancelled on the wire.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional

from models.purchase_bill import PriceQuote
from .errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class PriceLookupKey(NamedTuple):
    supplier_id: int
    master_material_id: int
    unit: str
    as_of_date: str         # YYYY-MM-DD

    @classmethod
    def build(cls, supplier_id, master_material_id, unit, as_of_date) -> Optional["PriceLookupKey"]:
        """Return a key, or None when any component is missing."""
        unit = (unit or "").strip()
        as_of_date = (as_of_date or "").strip()
        if not (supplier_id and master_material_id and unit and as_of_date):
            return None
        return cls(int(supplier_id), int(master_material_id), unit, as_of_date)


@dataclass
class PriceLookupResult:
    """
    Outcome of one lookup. Exactly one of: a quote (found), nothing (miss),
    or an error message. Callers treat miss and error alike; the error text
    is kept so it can be told apart in logs.
    """
    key: PriceLookupKey
    quote: Optional[PriceQuote] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.quote is not None


class PriceLookupClient:

    def __init__(self, api) -> None:
        self.api = api

    async def resolve(self, key: PriceLookupKey) -> PriceLookupResult:
        try:
            quote = await self.api.get_active_price(
                key.supplier_id, key.master_material_id, key.unit, key.as_of_date
            )
        except TransportError as exc:
            logger.warning(
                "Active price lookup failed for supplier=%s material=%s unit=%s date=%s: %s",
                key.supplier_id, key.master_material_id, key.unit, key.as_of_date, exc.message,
            )
            return PriceLookupResult(key=key, error=exc.message)
        except Exception as exc:
            # resolve() never raises: it runs in an unawaited task
            logger.warning("Active price lookup for %s failed unexpectedly: %r", key, exc)
            return PriceLookupResult(key=key, error=f"Unexpected error: {exc}")

        if quote is None:
            logger.info(
                "No active price for supplier=%s material=%s unit=%s date=%s",
                key.supplier_id, key.master_material_id, key.unit, key.as_of_date,
            )
            return PriceLookupResult(key=key)

        logger.debug("Active price for %s: %s", key, quote.price)
        return PriceLookupResult(key=key, quote=quote)


class DebouncedPriceLookup:
    """
    Timer-based coalescing queue for price lookups.

    current_key returns the key for the draft as it stands right now (or
    None if the header or line is incomplete). on_result is only ever called
    with results whose key still equals current_key().

    Must be used from within a running asyncio event loop.
    """

    def __init__(
        self,
        client: PriceLookupClient,
        current_key: Callable[[], Optional[PriceLookupKey]],
        on_result: Callable[[PriceLookupResult], None],
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self.client = client
        self.current_key = current_key
        self.on_result = on_result
        self.delay = delay
        self.requests_sent = 0
        self.results_discarded = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: set[asyncio.Task] = set()

    def schedule(self) -> None:
        """Restart the debounce window for whatever the current key is."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.current_key() is None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def pending(self) -> bool:
        return self._timer is not None or bool(self._in_flight)

    def _fire(self) -> None:
        self._timer = None
        key = self.current_key()
        if key is None:
            return
        self.requests_sent += 1
        task = asyncio.ensure_future(self._lookup(key))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _lookup(self, key: PriceLookupKey) -> None:
        result = await self.client.resolve(key)
        if key != self.current_key():
            self.results_discarded += 1
            logger.debug("Discarding stale price result for %s (draft is now %s)",
                         key, self.current_key())
            return
        self.on_result(result)

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no lookup is in flight."""
        while self.pending:
            if self._in_flight:
                await asyncio.gather(*list(self._in_flight))
            else:
                await asyncio.sleep(max(self.delay / 4, 0.001))
