"""
Atomic submission of a composed bill (header + every cart line).

Preconditions are checked before any request is issued: no submission
already in flight, header complete, cart non-empty. The server either
creates the whole bill or nothing. On failure the entered header and lines
are left exactly as they were so the user can retry.
"""
import logging
from enum import Enum
from typing import Optional

from models.draft import DraftBillHeader
from models.purchase_bill import NewPurchaseBill, PurchaseBill
from .cart import LineItemCart
from .errors import ChannelBusyError, TransportError, ValidationError
from .store import BillAggregateStore

logger = logging.getLogger(__name__)


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    FAILED = "failed"


def build_create_request(header: DraftBillHeader, cart: LineItemCart) -> NewPurchaseBill:
    return NewPurchaseBill(
        bill_number=header.bill_number.strip(),
        bill_date=header.bill_date,
        supplier_id=int(header.supplier_id),
        site_id=int(header.site_id),
        items=[line.to_bill_item() for line in cart.lines],
    )


class BillSubmissionWorkflow:

    def __init__(self, api, store: BillAggregateStore) -> None:
        self.api = api
        self.store = store
        self.status = SubmissionStatus.IDLE
        self.error: Optional[str] = None
        self.validation_errors: list[str] = []
        self.last_created: Optional[PurchaseBill] = None

    @property
    def submitting(self) -> bool:
        return self.status is SubmissionStatus.SUBMITTING

    def can_submit(self, header: DraftBillHeader, cart: LineItemCart) -> bool:
        return not self.submitting and header.is_complete() and not cart.is_empty()

    def check_preconditions(self, header: DraftBillHeader, cart: LineItemCart) -> None:
        if self.submitting:
            raise ChannelBusyError("submission")
        missing = header.missing_fields()
        if missing:
            raise ValidationError(missing, "Bill details incomplete: " + ", ".join(missing))
        if cart.is_empty():
            raise ValidationError(["items"], "Add at least one line before saving the bill")

    async def submit(self, header: DraftBillHeader, cart: LineItemCart) -> PurchaseBill:
        self.check_preconditions(header, cart)
        request = build_create_request(header, cart)

        self.status = SubmissionStatus.SUBMITTING
        self.error = None
        self.validation_errors = []
        try:
            bill = await self.api.create_purchase_bill(request)
        except TransportError as exc:
            self._fail(request, exc.message, exc.validation_errors)
            raise
        except Exception as exc:
            # e.g. a malformed response body; still must not leave us SUBMITTING
            self._fail(request, f"Could not save purchase bill: {exc}", [])
            raise

        self.store.add_created(bill)
        header.clear()
        cart.clear()
        self.status = SubmissionStatus.IDLE
        self.last_created = bill
        logger.info("Created purchase bill %s (id=%s, %d lines, total %s)",
                    bill.bill_number, bill.id, len(bill.bill_items), bill.total_amount)
        return bill

    def _fail(self, request: NewPurchaseBill, message: Optional[str], validation_errors) -> None:
        self.status = SubmissionStatus.FAILED
        self.error = message or "Could not save purchase bill"
        self.validation_errors = list(validation_errors)
        logger.warning("Purchase bill %s was not created: %s", request.bill_number, self.error)

    def reset(self) -> None:
        """Acknowledge a failure and return to idle."""
        if self.submitting:
            return
        self.status = SubmissionStatus.IDLE
        self.error = None
        self.validation_errors = []
