from pydantic import Field
from typing import Optional

from .base import ApiModel, Money


class NamedRef(ApiModel):
    """A {id, name} reference embedded inside another record."""
    id: int
    name: str


class Site(ApiModel):
    """A construction / delivery site that purchases are billed against."""
    id: int
    name: str
    location: Optional[str] = None


class Supplier(ApiModel):
    id: int
    name: str
    contact_person: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class ItemCategory(ApiModel):
    id: int
    name: str


class Brand(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    brand_image_path: Optional[str] = None


class MasterMaterial(ApiModel):
    """
    A catalogue material. default_unit seeds the unit of a new draft bill
    line when the material is selected.
    """
    id: int
    name: str
    default_unit: str
    material_code: Optional[str] = None
    description: Optional[str] = None
    item_category: Optional[NamedRef] = None
    brand: Optional[NamedRef] = None


class MaterialRef(ApiModel):
    id: int
    name: str
    material_code: Optional[str] = None


class SupplierPrice(ApiModel):
    """
    A negotiated price for one supplier/material/unit, valid from
    effective_from_date until effective_to_date (open-ended when None).
    """
    id: int
    supplier: NamedRef
    master_material: MaterialRef
    price: Money = Field(ge=0)
    unit: str
    effective_from_date: str                 # YYYY-MM-DD
    effective_to_date: Optional[str] = None  # YYYY-MM-DD
    is_active: bool = True


class SupplierPriceData(ApiModel):
    """Create / update payload for a SupplierPrice."""
    supplier_id: int
    master_material_id: int
    price: Money = Field(ge=0)
    unit: str = Field(min_length=1)
    effective_from_date: str
    effective_to_date: Optional[str] = None
    is_active: Optional[bool] = None
