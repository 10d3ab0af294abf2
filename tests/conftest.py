"""
Pytest configuration and shared fixtures for the bill tracker test suite.
"""
import asyncio
import copy
import shutil
import tempfile
import os
from pathlib import Path
from typing import Generator

import pytest

from billing.errors import TransportError
from models.purchase_bill import PriceQuote, PurchaseBill

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="bill_tracker_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a configuration isolated from the developer's environment."""
    from config import Config

    for var in ("API_BASE_URL", "API_TOKEN", "API_TIMEOUT", "PRICE_LOOKUP_DEBOUNCE_MS"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    return Config()


# --------------------------------------------------------------------
# Sample payloads (camelCase, as the server sends them)
# --------------------------------------------------------------------

def make_bill_payload(
    bill_id: int = 1,
    bill_number: str = "B-100",
    lines=None,
    grn_status: str = "NONE",
    purchaser: bool = False,
    accountant: bool = False,
    updated_at: str = "2024-01-10T09:30:00",
) -> dict:
    if lines is None:
        lines = [
            {"id": 11, "received": False},
            {"id": 12, "received": False},
        ]
    items = []
    for line in lines:
        items.append({
            "id": line["id"],
            "masterMaterialId": line.get("material", 9),
            "masterMaterialName": line.get("name", "Portland Cement"),
            "masterMaterialCode": "MAT-009",
            "itemCategoryName": "Cement",
            "quantity": line.get("quantity", 10),
            "unit": line.get("unit", "kg"),
            "unitPrice": line.get("unit_price", 2.5),
            "itemTotalPrice": line.get("quantity", 10) * line.get("unit_price", 2.5),
            "grnReceivedForItem": line.get("received", False),
            "remarks": line.get("remarks"),
        })
    return {
        "id": bill_id,
        "billNumber": bill_number,
        "billDate": "2024-01-10",
        "supplier": {"id": 5, "name": "Acme Building Supplies"},
        "site": {"id": 2, "name": "Riverside Block C", "location": "Pune"},
        "totalAmount": sum(i["itemTotalPrice"] for i in items),
        "overallGrnStatus": grn_status,
        "grnHardcopyReceivedByPurchaser": purchaser,
        "grnHardcopyHandedToAccountant": accountant,
        "billItems": items,
        "createdAt": "2024-01-10T09:30:00",
        "updatedAt": updated_at,
    }


def make_bill(**kwargs) -> PurchaseBill:
    return PurchaseBill.model_validate(make_bill_payload(**kwargs))


@pytest.fixture
def sample_bill_payload() -> dict:
    return make_bill_payload()


@pytest.fixture
def sample_bill() -> PurchaseBill:
    return make_bill()


@pytest.fixture
def bill_factory():
    """Build PurchaseBill instances: bill_factory(bill_id=2, lines=[{"id": 21, "received": True}])."""
    return make_bill


@pytest.fixture
def bill_payload_factory():
    return make_bill_payload


# --------------------------------------------------------------------
# Scriptable in-memory API
# --------------------------------------------------------------------

class FakePurchaseApi:
    """
    Stands in for PurchaseApiClient in workflow tests.

    Every call is recorded in .calls as (method_name, args). Responses are
    scripted per method; an Exception instance is raised instead of
    returned. gate(method) makes the next calls to that method block until
    the returned asyncio.Event is set; gate(method, key) holds only calls
    whose first argument is key.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.prices: dict[tuple, object] = {}
        self.bills: dict[int, object] = {}
        self.bill_list: object = []
        self.created: object = None
        self.item_grn: object = None
        self.hardcopy: object = None
        self.resources: dict[str, list] = {}
        # resource -> row returned by create_resource instead of echoing the payload
        self.create_responses: dict[str, object] = {}
        self.update_responses: dict[str, object] = {}
        self.supplier_prices: dict[int, object] = {}
        self._gates: dict[object, asyncio.Event] = {}
        self._next_id = 100

    def gate(self, method: str, key=None) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[method if key is None else (method, key)] = event
        return event

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    async def _respond(self, method: str, args: tuple, value):
        self.calls.append((method, args))
        gate = self._gates.get(method)
        for gate_key, event in self._gates.items():
            if isinstance(gate_key, tuple) and gate_key[0] == method and args and gate_key[1] == args[0]:
                gate = event
        if gate is not None:
            await gate.wait()
        if callable(value) and not isinstance(value, type):
            value = value(*args)
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    # --- price lookup ---

    async def get_active_price(self, supplier_id, master_material_id, unit, as_of_date):
        key = (supplier_id, master_material_id, unit, as_of_date)
        value = self.prices.get(key)
        if value is not None and not isinstance(value, Exception):
            value = PriceQuote(price=value, unit=unit)
        return await self._respond("get_active_price", key, value)

    # --- purchase bills ---

    async def list_purchase_bills(self):
        return await self._respond("list_purchase_bills", (), self.bill_list)

    async def get_purchase_bill(self, bill_id):
        value = self.bills.get(bill_id, TransportError(f"Purchase bill {bill_id} not found", 404))
        return await self._respond("get_purchase_bill", (bill_id,), value)

    async def create_purchase_bill(self, bill):
        return await self._respond("create_purchase_bill", (bill,), self.created)

    async def update_item_grn(self, bill_item_id, received, remarks=None):
        return await self._respond("update_item_grn", (bill_item_id, received, remarks), self.item_grn)

    async def update_grn_hardcopy(self, bill_id, received_by_purchaser, handed_to_accountant):
        return await self._respond(
            "update_grn_hardcopy", (bill_id, received_by_purchaser, handed_to_accountant),
            self.hardcopy,
        )

    # --- generic resources ---

    async def list_resource(self, resource):
        return await self._respond("list_resource", (resource,), self.resources.get(resource, []))

    async def create_resource(self, resource, payload):
        self._next_id += 1
        row = self.create_responses.get(resource, dict(payload, id=self._next_id))
        self.resources.setdefault(resource, []).append(row)
        return await self._respond("create_resource", (resource, payload), row)

    async def update_resource(self, resource, resource_id, payload):
        row = self.update_responses.get(resource, dict(payload, id=resource_id))
        return await self._respond("update_resource", (resource, resource_id, payload), row)

    async def delete_resource(self, resource, resource_id):
        return await self._respond("delete_resource", (resource, resource_id), None)

    async def list_supplier_prices(self, supplier_id):
        return await self._respond(
            "list_supplier_prices", (supplier_id,), self.supplier_prices.get(supplier_id, [])
        )

    async def deactivate_supplier_price(self, price_id):
        return await self._respond("deactivate_supplier_price", (price_id,), None)


@pytest.fixture
def fake_api() -> FakePurchaseApi:
    return FakePurchaseApi()


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
