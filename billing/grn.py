"""
Goods-receipt (GRN) updates for a purchase bill.

Two independent channels:
  line    grn_received_for_item on one bill line, keyed by line id
  header  the pair of hardcopy flags on a bill, keyed by bill id

A key already in flight on a channel cannot be sent again until its response
arrives (ChannelBusyError), so two quick toggles can't be answered out of
order. Different keys, and the two channels, run concurrently.

Updates are confirmed-only: nothing is written locally until the server
returns the full updated bill, which then replaces both store views. A
rejected update leaves the store as it was and records the error on the
channel.
"""
import logging
from enum import Enum
from typing import Awaitable, Callable, Hashable, Optional

from models.purchase_bill import PurchaseBill
from .errors import ChannelBusyError, TransportError, ValidationError
from .store import BillAggregateStore, LoadStatus

logger = logging.getLogger(__name__)


class HardcopyFlag(str, Enum):
    RECEIVED_BY_PURCHASER = "grn_hardcopy_received_by_purchaser"
    HANDED_TO_ACCOUNTANT = "grn_hardcopy_handed_to_accountant"


class UpdateChannel:
    """
    In-flight tracking plus the status/error a UI binds its controls to.

    Errors are kept per key: a retry or a success on one key clears only
    that key's error, never another's. status is LOADING while any key is
    in flight, otherwise FAILED while any key's last attempt failed, and
    SUCCEEDED once something has completed with no error outstanding.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._in_flight: set[Hashable] = set()
        self._errors: dict[Hashable, str] = {}
        self._completed = False

    @property
    def loading(self) -> bool:
        return bool(self._in_flight)

    @property
    def status(self) -> LoadStatus:
        if self._in_flight:
            return LoadStatus.LOADING
        if self._errors:
            return LoadStatus.FAILED
        return LoadStatus.SUCCEEDED if self._completed else LoadStatus.IDLE

    @property
    def error(self) -> Optional[str]:
        """The most recent outstanding error, if any."""
        if not self._errors:
            return None
        return list(self._errors.values())[-1]

    def error_for(self, key: Hashable) -> Optional[str]:
        return self._errors.get(key)

    def is_busy(self, key: Hashable = None) -> bool:
        if key is None:
            return self.loading
        return key in self._in_flight

    def begin(self, key: Hashable) -> None:
        if key in self._in_flight:
            raise ChannelBusyError(self.name, key)
        self._in_flight.add(key)
        self._errors.pop(key, None)

    def succeed(self, key: Hashable) -> None:
        self._in_flight.discard(key)
        self._errors.pop(key, None)
        self._completed = True

    def fail(self, key: Hashable, message: str) -> None:
        self._in_flight.discard(key)
        self._errors.pop(key, None)
        self._errors[key] = message
        self._completed = True

    def reset(self) -> None:
        if self._in_flight:
            return
        self._errors.clear()
        self._completed = False


class GrnUpdateWorkflow:

    def __init__(self, api, store: BillAggregateStore) -> None:
        self.api = api
        self.store = store
        self.line_channel = UpdateChannel("line GRN")
        self.header_channel = UpdateChannel("header GRN")

    async def _run(
        self,
        channel: UpdateChannel,
        key: Hashable,
        call: Callable[[], Awaitable[PurchaseBill]],
    ) -> PurchaseBill:
        channel.begin(key)
        try:
            bill = await call()
        except TransportError as exc:
            channel.fail(key, exc.message)
            logger.warning("%s update for %s rejected: %s", channel.name, key, exc.message)
            raise
        except Exception as exc:
            channel.fail(key, f"Unexpected error: {exc}")
            raise
        channel.succeed(key)
        self.store.apply_bill_update(bill)
        return bill

    # ------------------------------------------------------------------
    # Line channel
    # ------------------------------------------------------------------

    async def update_line_receipt(
        self, line_id: int, received: bool, remarks: Optional[str] = None
    ) -> PurchaseBill:
        bill = await self._run(
            self.line_channel, line_id,
            lambda: self.api.update_item_grn(line_id, received, remarks),
        )
        logger.info("Line %s marked %s on bill %s; bill GRN status now %s",
                    line_id, "received" if received else "not received",
                    bill.bill_number, bill.overall_grn_status)
        return bill

    async def toggle_line_receipt(self, line_id: int, remarks: Optional[str] = None) -> PurchaseBill:
        """Flip the confirmed receipt flag of a line on the selected bill."""
        bill = self.store.selected_bill
        line = bill.find_line(line_id) if bill is not None else None
        if line is None:
            raise ValidationError(["line_id"], f"Line {line_id} is not on the selected bill")
        return await self.update_line_receipt(line_id, not line.grn_received_for_item, remarks)

    # ------------------------------------------------------------------
    # Header channel
    # ------------------------------------------------------------------

    async def update_hardcopy_status(
        self, bill_id: int, received_by_purchaser: bool, handed_to_accountant: bool
    ) -> PurchaseBill:
        bill = await self._run(
            self.header_channel, bill_id,
            lambda: self.api.update_grn_hardcopy(bill_id, received_by_purchaser, handed_to_accountant),
        )
        logger.info("Hardcopy flags for bill %s: purchaser=%s accountant=%s",
                    bill.bill_number, bill.grn_hardcopy_received_by_purchaser,
                    bill.grn_hardcopy_handed_to_accountant)
        return bill

    async def toggle_hardcopy(self, flag: HardcopyFlag, bill_id: Optional[int] = None) -> PurchaseBill:
        """
        Flip one hardcopy flag. The other flag is resent with its confirmed
        value because the endpoint always takes both.
        """
        bill = self.store.get_bill(bill_id) if bill_id is not None else self.store.selected_bill
        if bill is None:
            raise ValidationError(["bill_id"], "No purchase bill loaded to update")
        flags = {
            HardcopyFlag.RECEIVED_BY_PURCHASER: bill.grn_hardcopy_received_by_purchaser,
            HardcopyFlag.HANDED_TO_ACCOUNTANT: bill.grn_hardcopy_handed_to_accountant,
        }
        flag = HardcopyFlag(flag)
        flags[flag] = not flags[flag]
        return await self.update_hardcopy_status(
            bill.id,
            flags[HardcopyFlag.RECEIVED_BY_PURCHASER],
            flags[HardcopyFlag.HANDED_TO_ACCOUNTANT],
        )

    def reset_line_channel(self) -> None:
        self.line_channel.reset()

    def reset_header_channel(self) -> None:
        self.header_channel.reset()
