from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict, Field

from .base import ApiModel, Money
from .purchase_bill import NewBillItem

HEADER_FIELDS = ("bill_number", "bill_date", "supplier_id", "site_id")


@dataclass
class DraftBillHeader:
    """
    Header of a bill being composed. All four fields must be set before a
    line can be entered: supplier and date are inputs to the price lookup.
    """
    bill_number: Optional[str] = None
    bill_date: Optional[str] = None     # YYYY-MM-DD
    supplier_id: Optional[int] = None
    site_id: Optional[int] = None

    def missing_fields(self) -> list[str]:
        missing = []
        for name in HEADER_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing

    def is_complete(self) -> bool:
        return not self.missing_fields()

    def clear(self) -> None:
        for name in HEADER_FIELDS:
            setattr(self, name, None)

    def snapshot(self) -> dict:
        return asdict(self)


class CartLine(ApiModel):
    """An immutable, validated line held in the cart until submission."""
    model_config = ConfigDict(frozen=True)

    master_material_id: int
    unit: str = Field(min_length=1)
    quantity: Money = Field(gt=0)
    unit_price: Money = Field(ge=0)
    price_locked: bool = False

    @property
    def line_total(self) -> Decimal:
        """Display-only; the server recomputes the authoritative total."""
        return self.quantity * self.unit_price

    def to_bill_item(self) -> NewBillItem:
        return NewBillItem(
            master_material_id=self.master_material_id,
            quantity=self.quantity,
            unit=self.unit,
            unit_price=self.unit_price,
        )
