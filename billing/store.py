"""
Bill aggregate store: the single owner of purchase bill state on the client.

Two views with independent lifecycles:
  bills     the list of all bills
  selected  the one bill currently being viewed

Writes only ever come from resolved server responses. Any response carrying
a full updated bill goes through apply_bill_update(), which writes the list
entry and the selected slot together so the two views never disagree.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from models.purchase_bill import PurchaseBill
from .errors import TransportError

logger = logging.getLogger(__name__)


def _timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        # servers send 0-9 fraction digits; fromisoformat wants 3 or 6 before 3.11
        value = re.sub(r"\.(\d+)", lambda m: "." + (m.group(1) + "000000")[:6], value)
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _is_older(incoming: PurchaseBill, held: PurchaseBill) -> bool:
    """True when both copies carry updated_at and incoming predates held."""
    new, old = _timestamp(incoming.updated_at), _timestamp(held.updated_at)
    return new is not None and old is not None and new < old


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class BillListView:
    bills: list[PurchaseBill] = field(default_factory=list)
    status: LoadStatus = LoadStatus.IDLE
    error: Optional[str] = None


@dataclass
class SelectedBillView:
    bill: Optional[PurchaseBill] = None
    status: LoadStatus = LoadStatus.IDLE
    error: Optional[str] = None
    requested_id: Optional[int] = None


class BillAggregateStore:

    def __init__(self, api) -> None:
        self.api = api
        self.list_view = BillListView()
        self.selected = SelectedBillView()
        # Bumped by every fetch_bill() / clear_selected(); a detail response
        # is only applied if no newer request has been made since.
        self._selected_generation = 0

    def reset(self) -> None:
        self.list_view = BillListView()
        self.selected = SelectedBillView()
        self._selected_generation += 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def bills(self) -> list[PurchaseBill]:
        return list(self.list_view.bills)

    @property
    def selected_bill(self) -> Optional[PurchaseBill]:
        return self.selected.bill

    def get_bill(self, bill_id: int) -> Optional[PurchaseBill]:
        if self.selected.bill is not None and self.selected.bill.id == bill_id:
            return self.selected.bill
        for bill in self.list_view.bills:
            if bill.id == bill_id:
                return bill
        return None

    # ------------------------------------------------------------------
    # Fetches (failures become view state, not exceptions)
    # ------------------------------------------------------------------

    async def fetch_bills(self) -> Optional[list[PurchaseBill]]:
        self.list_view.status = LoadStatus.LOADING
        self.list_view.error = None
        try:
            bills = await self.api.list_purchase_bills()
        except TransportError as exc:
            self.list_view.status = LoadStatus.FAILED
            self.list_view.error = exc.message
            logger.warning("Could not load purchase bills: %s", exc.message)
            return None
        self.list_view.bills = list(bills)
        self.list_view.status = LoadStatus.SUCCEEDED
        logger.info("Loaded %d purchase bills", len(bills))
        return self.bills

    async def fetch_bill(self, bill_id: int) -> Optional[PurchaseBill]:
        """Load one bill into the selected slot, replacing whatever was there."""
        self._selected_generation += 1
        generation = self._selected_generation
        self.selected.status = LoadStatus.LOADING
        self.selected.error = None
        self.selected.requested_id = bill_id
        try:
            bill = await self.api.get_purchase_bill(bill_id)
        except TransportError as exc:
            if generation != self._selected_generation:
                return None
            self.selected.status = LoadStatus.FAILED
            self.selected.error = exc.message
            logger.warning("Could not load purchase bill %s: %s", bill_id, exc.message)
            return None

        if generation != self._selected_generation:
            logger.debug("Discarding superseded response for bill %s", bill_id)
            return None
        self.selected.bill = bill
        self.selected.status = LoadStatus.SUCCEEDED
        return bill

    def clear_selected(self) -> None:
        """Leave the detail view: drop the selected bill and any pending load."""
        self._selected_generation += 1
        self.selected = SelectedBillView()

    # ------------------------------------------------------------------
    # Writes from mutation responses
    # ------------------------------------------------------------------

    def add_created(self, bill: PurchaseBill) -> None:
        self.list_view.bills.append(bill)

    def apply_bill_update(self, bill: PurchaseBill) -> bool:
        """
        Replace bill by id in the list and, if it is the one shown, in the
        selected slot.

        Concurrent updates to one bill can resolve out of order. A response
        whose updated_at is older than the copy already held is a superseded
        snapshot and is skipped; returns False in that case.
        """
        held = self.get_bill(bill.id)
        if held is not None and _is_older(bill, held):
            logger.debug("Skipping stale snapshot of bill %s (updated %s, holding %s)",
                         bill.id, bill.updated_at, held.updated_at)
            return False
        for index, existing in enumerate(self.list_view.bills):
            if existing.id == bill.id:
                self.list_view.bills[index] = bill
                break
        if self.selected.bill is not None and self.selected.bill.id == bill.id:
            self.selected.bill = bill
        logger.debug("Applied update for bill %s (GRN status %s)", bill.id, bill.overall_grn_status)
        return True
