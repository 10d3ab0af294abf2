from .base import ApiModel, Money
from .master_data import (
    NamedRef, Site, Supplier, ItemCategory, Brand, MasterMaterial,
    MaterialRef, SupplierPrice, SupplierPriceData,
)
from .purchase_bill import BillLine, PurchaseBill, NewBillItem, NewPurchaseBill, PriceQuote
from .draft import DraftBillHeader, CartLine

__all__ = [
    "ApiModel", "Money",
    "NamedRef", "Site", "Supplier", "ItemCategory", "Brand", "MasterMaterial",
    "MaterialRef", "SupplierPrice", "SupplierPriceData",
    "BillLine", "PurchaseBill", "NewBillItem", "NewPurchaseBill", "PriceQuote",
    "DraftBillHeader", "CartLine",
]
