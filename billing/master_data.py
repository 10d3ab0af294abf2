"""
Master-data directory: sites, suppliers, item categories, master materials
and brands.

Each resource is plain CRUD against the API. Server-side validation
failures come back as TransportError with the server's message and any
validation_errors list.
"""
import logging
from typing import Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from models.master_data import Brand, ItemCategory, MasterMaterial, Site, Supplier

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def _payload(data) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_none=True)
    return dict(data)


class ResourceCollection(Generic[RecordT]):

    def __init__(self, api, resource: str, model: Type[RecordT]) -> None:
        self.api = api
        self.resource = resource
        self.model = model
        self.items: list[RecordT] = []

    async def list(self) -> list[RecordT]:
        rows = await self.api.list_resource(self.resource)
        self.items = [self.model.model_validate(row) for row in rows]
        logger.debug("Loaded %d %s", len(self.items), self.resource)
        return list(self.items)

    async def create(self, data) -> RecordT:
        record = self.model.model_validate(
            await self.api.create_resource(self.resource, _payload(data))
        )
        self.items.append(record)
        logger.info("Created %s %s", self.resource, record.id)
        return record

    async def update(self, record_id: int, data) -> RecordT:
        record = self.model.model_validate(
            await self.api.update_resource(self.resource, record_id, _payload(data))
        )
        self.items = [record if r.id == record_id else r for r in self.items]
        logger.info("Updated %s %s", self.resource, record_id)
        return record

    async def delete(self, record_id: int) -> None:
        await self.api.delete_resource(self.resource, record_id)
        self.items = [r for r in self.items if r.id != record_id]
        logger.info("Deleted %s %s", self.resource, record_id)

    def get(self, record_id: int) -> Optional[RecordT]:
        for record in self.items:
            if record.id == record_id:
                return record
        return None


class MasterDataDirectory:

    # attribute name -> API path
    RESOURCES = {
        "sites": "sites",
        "suppliers": "suppliers",
        "item_categories": "item-categories",
        "master_materials": "master-materials",
        "brands": "brands",
    }

    def __init__(self, api) -> None:
        self.sites: ResourceCollection[Site] = ResourceCollection(api, "sites", Site)
        self.suppliers: ResourceCollection[Supplier] = ResourceCollection(api, "suppliers", Supplier)
        self.item_categories: ResourceCollection[ItemCategory] = ResourceCollection(
            api, "item-categories", ItemCategory)
        self.master_materials: ResourceCollection[MasterMaterial] = ResourceCollection(
            api, "master-materials", MasterMaterial)
        self.brands: ResourceCollection[Brand] = ResourceCollection(api, "brands", Brand)

    def collection(self, name: str) -> ResourceCollection:
        """Look up a collection by attribute name or API path, e.g. "item-categories"."""
        key = name.replace("-", "_")
        if key not in self.RESOURCES:
            raise KeyError(f"Unknown master-data resource: {name}")
        return getattr(self, key)
