"""
Bill composer: one bill-entry session.

Ties the draft header, the line item cart, the debounced active-price
lookup and the submission workflow together, the way the bill entry form
drives them:

  1. set_header(...)          all four header fields are required first
  2. select_material(...)     fresh draft line, default unit, lookup scheduled
  3. set_unit / set_quantity  unit changes reset the price lock and re-look-up
  4. enter_price / unlock     manual pricing when there is no active price
  5. add_line()               validated snapshot appended to the cart
  6. submit()                 one atomic create request

While a submission is in flight every edit raises ChannelBusyError.
"""
import logging
from decimal import Decimal
from typing import Any, Optional

from models.draft import HEADER_FIELDS, CartLine, DraftBillHeader
from models.purchase_bill import PurchaseBill
from .cart import LineItemCart
from .errors import ChannelBusyError, ValidationError
from .price_lookup import (
    DEFAULT_DEBOUNCE_SECONDS,
    DebouncedPriceLookup,
    PriceLookupClient,
    PriceLookupKey,
    PriceLookupResult,
)
from .store import BillAggregateStore
from .submission import BillSubmissionWorkflow

logger = logging.getLogger(__name__)


class BillComposer:

    def __init__(
        self,
        api,
        store: BillAggregateStore,
        lookup_delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self.header = DraftBillHeader()
        self.cart = LineItemCart()
        self.submission = BillSubmissionWorkflow(api, store)
        self.lookup = DebouncedPriceLookup(
            PriceLookupClient(api),
            current_key=self.lookup_key,
            on_result=self._apply_price_result,
            delay=lookup_delay,
        )
        self.last_lookup: Optional[PriceLookupResult] = None

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------

    def _require_idle(self) -> None:
        # submit() clears the header and cart on success; edits made meanwhile would be lost
        if self.submission.submitting:
            raise ChannelBusyError("submission")

    def set_header(self, **fields: Any) -> None:
        self._require_idle()
        for name, value in fields.items():
            if name not in HEADER_FIELDS:
                raise TypeError(f"Unknown bill header field: {name}")
            setattr(self.header, name, value)
        # supplier and date feed the price key
        self.lookup.schedule()

    @property
    def header_complete(self) -> bool:
        return self.header.is_complete()

    def _require_header(self) -> None:
        missing = self.header.missing_fields()
        if missing:
            raise ValidationError(missing, "Fill in the bill details before adding lines: "
                                  + ", ".join(missing))

    # ------------------------------------------------------------------
    # Draft line
    # ------------------------------------------------------------------

    def lookup_key(self) -> Optional[PriceLookupKey]:
        if not self.header.is_complete():
            return None
        draft = self.cart.draft
        return PriceLookupKey.build(
            self.header.supplier_id, draft.master_material_id, draft.unit, self.header.bill_date
        )

    def select_material(self, material_id: int, default_unit: str = "") -> None:
        self._require_idle()
        self._require_header()
        self.cart.select_material(material_id, default_unit)
        self.last_lookup = None
        self.lookup.schedule()

    def set_unit(self, unit: str) -> None:
        self._require_idle()
        self.cart.set_unit(unit)
        self.lookup.schedule()

    def set_quantity(self, quantity: Any) -> None:
        self._require_idle()
        self.cart.set_quantity(quantity)

    def enter_price(self, price: Any) -> None:
        self._require_idle()
        self.cart.enter_price(price)

    def unlock_price(self) -> None:
        self._require_idle()
        self.cart.unlock_price()

    @property
    def price_locked(self) -> bool:
        return self.cart.draft.price_locked

    def _apply_price_result(self, result: PriceLookupResult) -> None:
        self.last_lookup = result
        lock = self.cart.draft.price_lock
        if result.found:
            lock.apply_quote(result.quote.price)
        else:
            lock.apply_miss()

    async def wait_for_price(self) -> Optional[PriceLookupResult]:
        """Let any pending lookup settle; returns the last applied result."""
        await self.lookup.wait_idle()
        return self.last_lookup

    # ------------------------------------------------------------------
    # Cart
    # ------------------------------------------------------------------

    def add_line(self) -> CartLine:
        self._require_idle()
        self._require_header()
        line = self.cart.add_line()
        self.last_lookup = None
        self.lookup.schedule()   # draft is empty now; drops any armed timer
        return line

    def remove_line(self, index: int) -> CartLine:
        self._require_idle()
        return self.cart.remove_line(index)

    @property
    def total(self) -> Decimal:
        return self.cart.total

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    @property
    def can_submit(self) -> bool:
        return self.submission.can_submit(self.header, self.cart)

    async def submit(self) -> PurchaseBill:
        bill = await self.submission.submit(self.header, self.cart)
        self.lookup.cancel()
        self.last_lookup = None
        return bill
