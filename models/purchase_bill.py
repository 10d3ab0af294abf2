from pydantic import Field
from typing import Optional, List

from .base import ApiModel, Money
from .master_data import NamedRef, Site


class BillLine(ApiModel):
    """
    One line of a persisted purchase bill. item_total_price is computed by the
    server and trusted as-is.
    """
    id: int
    master_material_id: int
    master_material_name: str
    master_material_code: Optional[str] = None
    item_category_name: Optional[str] = None
    quantity: Money
    unit: str
    unit_price: Money
    item_total_price: Money
    grn_received_for_item: bool = False
    remarks: Optional[str] = None


class PurchaseBill(ApiModel):
    """
    A purchase bill as owned by the server.

    total_amount and overall_grn_status are derived server-side from the
    lines; the client replaces its copy wholesale after every mutation and
    never recomputes either value.
    """
    id: int
    bill_number: str
    bill_date: str                              # YYYY-MM-DD
    supplier: NamedRef
    site: Site
    bill_image_path: Optional[str] = None
    total_amount: Money
    overall_grn_status: str                     # e.g. "NONE", "PARTIAL", "FULL"
    grn_hardcopy_received_by_purchaser: bool = False
    grn_hardcopy_handed_to_accountant: bool = False
    bill_items: List[BillLine] = Field(default_factory=list)
    created_at: Optional[str] = None            # ISO 8601 datetime
    updated_at: Optional[str] = None

    def find_line(self, line_id: int) -> Optional[BillLine]:
        for line in self.bill_items:
            if line.id == line_id:
                return line
        return None


class NewBillItem(ApiModel):
    master_material_id: int
    quantity: Money
    unit: str
    unit_price: Money


class NewPurchaseBill(ApiModel):
    """Create request: the header plus every line, submitted as one unit."""
    bill_number: str
    bill_date: str
    supplier_id: int
    site_id: int
    items: List[NewBillItem] = Field(min_length=1)


class PriceQuote(ApiModel):
    """
    The active price for a (supplier, material, unit, date) combination,
    as resolved by the server. Not persisted client-side.
    """
    price: Money = Field(ge=0)
    unit: Optional[str] = None
    id: Optional[int] = None
    effective_from_date: Optional[str] = None
    effective_to_date: Optional[str] = None
