from .errors import BillingError, ValidationError, TransportError, ChannelBusyError
from .api_client import PurchaseApiClient
from .price_lock import PriceLock, LockState
from .price_lookup import PriceLookupClient, PriceLookupKey, PriceLookupResult, DebouncedPriceLookup
from .cart import LineItemCart, DraftBillLine
from .store import BillAggregateStore, LoadStatus
from .submission import BillSubmissionWorkflow, SubmissionStatus
from .grn import GrnUpdateWorkflow, HardcopyFlag, UpdateChannel
from .master_data import MasterDataDirectory, ResourceCollection
from .supplier_prices import SupplierPriceBook
from .composer import BillComposer

__all__ = [
    "BillingError", "ValidationError", "TransportError", "ChannelBusyError",
    "PurchaseApiClient",
    "PriceLock", "LockState",
    "PriceLookupClient", "PriceLookupKey", "PriceLookupResult", "DebouncedPriceLookup",
    "LineItemCart", "DraftBillLine",
    "BillAggregateStore", "LoadStatus",
    "BillSubmissionWorkflow", "SubmissionStatus",
    "GrnUpdateWorkflow", "HardcopyFlag", "UpdateChannel",
    "MasterDataDirectory", "ResourceCollection",
    "SupplierPriceBook",
    "BillComposer",
]
