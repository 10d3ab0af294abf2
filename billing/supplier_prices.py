"""
Supplier price book: the negotiated, date-bounded prices per supplier and
material that the active-price lookup resolves against.
"""
import logging
from typing import Optional

from models.master_data import SupplierPrice, SupplierPriceData
from .errors import TransportError
from .store import LoadStatus

logger = logging.getLogger(__name__)


class SupplierPriceBook:
    """
    Prices for one supplier at a time.

    Listing has its own status/error; create, update and deactivate share a
    separate operation status so a failed edit doesn't blank the list.
    Mutations don't patch the list; call for_supplier() again to refresh.
    """

    def __init__(self, api) -> None:
        self.api = api
        self.supplier_id: Optional[int] = None
        self.prices: list[SupplierPrice] = []
        self.status = LoadStatus.IDLE
        self.error: Optional[str] = None
        self.operation_status = LoadStatus.IDLE
        self.operation_error: Optional[str] = None

    async def for_supplier(self, supplier_id: int) -> Optional[list[SupplierPrice]]:
        """Load the price list for a supplier. Failures are kept in status/error."""
        self.supplier_id = supplier_id
        self.status = LoadStatus.LOADING
        self.error = None
        try:
            rows = await self.api.list_supplier_prices(supplier_id)
        except TransportError as exc:
            logger.warning("Could not load prices for supplier %s: %s", supplier_id, exc.message)
            if supplier_id == self.supplier_id:
                self.status = LoadStatus.FAILED
                self.error = exc.message
            return None
        if supplier_id != self.supplier_id:
            # another supplier was selected while this one loaded
            return [SupplierPrice.model_validate(r) for r in rows]
        self.prices = [SupplierPrice.model_validate(r) for r in rows]
        self.status = LoadStatus.SUCCEEDED
        return list(self.prices)

    async def _operation(self, coro, description: str):
        self.operation_status = LoadStatus.LOADING
        self.operation_error = None
        try:
            result = await coro
        except TransportError as exc:
            self.operation_status = LoadStatus.FAILED
            self.operation_error = exc.message or "An unknown error occurred."
            logger.warning("Failed to %s: %s", description, self.operation_error)
            raise
        self.operation_status = LoadStatus.SUCCEEDED
        return result

    async def add(self, data: SupplierPriceData) -> SupplierPrice:
        row = await self._operation(
            self.api.create_resource("supplier-prices", data.to_wire()), "add supplier price")
        return SupplierPrice.model_validate(row)

    async def update(self, price_id: int, data: SupplierPriceData) -> SupplierPrice:
        row = await self._operation(
            self.api.update_resource("supplier-prices", price_id, data.to_wire()),
            f"update supplier price {price_id}")
        return SupplierPrice.model_validate(row)

    async def deactivate(self, price_id: int) -> None:
        await self._operation(
            self.api.deactivate_supplier_price(price_id), f"deactivate supplier price {price_id}")

    def clear(self) -> None:
        self.supplier_id = None
        self.prices = []
        self.status = LoadStatus.IDLE
        self.error = None

    def reset_operation_status(self) -> None:
        self.operation_status = LoadStatus.IDLE
        self.operation_error = None
