"""
Async HTTP client for the purchase bill API.

Every endpoint the workflows depend on is wrapped here, so the rest of the
package deals only in pydantic models and the errors from billing.errors:

  - non-2xx responses  -> TransportError carrying the server's "message"
                          (and "validationErrors" when present)
  - network failures   -> TransportError with status_code=None
  - active-price 404   -> None ("no active price" is a normal outcome)

No request is retried automatically.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as ModelValidationError

from config import Config
from models.purchase_bill import NewPurchaseBill, PriceQuote, PurchaseBill
from .errors import TransportError

logger = logging.getLogger(__name__)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _error_from_response(response: httpx.Response, context: str) -> TransportError:
    """Build a TransportError, preferring the server's own message text."""
    message = f"Failed to {context}: HTTP {response.status_code} {response.reason_phrase}".rstrip()
    validation_errors: list[str] = []
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        if body.get("message"):
            message = str(body["message"])
        raw = body.get("validationErrors") or []
        if isinstance(raw, list):
            validation_errors = [str(v) for v in raw]
    return TransportError(message, status_code=response.status_code,
                          validation_errors=validation_errors)


def _parse(model, data: Any, context: str):
    """Validate a response body; a malformed one is a TransportError like bad JSON."""
    try:
        return model.model_validate(data)
    except ModelValidationError as exc:
        logger.warning("Malformed response while trying to %s: %s", context, exc)
        raise TransportError(
            f"Malformed response while trying to {context}: {exc.error_count()} invalid field(s)"
        ) from exc


class PurchaseApiClient:
    """
    Thin async wrapper around httpx.AsyncClient.

    Usage:
        async with PurchaseApiClient.from_config(Config()) as api:
            bills = await api.list_purchase_bills()
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        user_agent: str = "Bill-Tracker-Client/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/json", "User-Agent": user_agent}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "PurchaseApiClient":
        return cls(
            base_url=config.api_base_url,
            token=config.api_token,
            timeout=config.request_timeout_seconds,
            user_agent=config.user_agent,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "PurchaseApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        context: str,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            return await self._client.request(method, path, params=params, json=json)
        except httpx.RequestError as exc:
            logger.warning("Network error (%s %s): %s", method, path, exc)
            raise TransportError(f"Network error while trying to {context}: {exc}") from exc

    async def _request(
        self,
        method: str,
        path: str,
        context: str,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        response = await self._send(method, path, context, params=params, json=json)
        if response.is_error:
            error = _error_from_response(response, context)
            logger.warning("%s %s -> HTTP %d: %s", method, path, response.status_code, error.message)
            raise error
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                f"Invalid JSON in response while trying to {context}",
                status_code=response.status_code,
            ) from exc

    # ------------------------------------------------------------------
    # Price lookup
    # ------------------------------------------------------------------

    async def get_active_price(
        self, supplier_id: int, master_material_id: int, unit: str, as_of_date: str
    ) -> Optional[PriceQuote]:
        """Return the price in effect on as_of_date, or None when there is none."""
        path = "/supplier-prices/active-price"
        params = {
            "supplierId": str(supplier_id),
            "masterMaterialId": str(master_material_id),
            "unit": unit,
            "date": as_of_date,
        }
        context = "fetch active price"
        response = await self._send("GET", path, context, params=params)
        if response.status_code in (404, 204):
            return None
        if response.is_error:
            error = _error_from_response(response, context)
            logger.warning("GET %s -> HTTP %d: %s", path, response.status_code, error.message)
            raise error
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError("Invalid JSON in active price response",
                                 status_code=response.status_code) from exc
        if not data:
            return None
        return _parse(PriceQuote, data, context)

    # ------------------------------------------------------------------
    # Purchase bills
    # ------------------------------------------------------------------

    async def list_purchase_bills(self) -> list[PurchaseBill]:
        data = await self._request("GET", "/purchase-bills", "fetch purchase bills")
        return [_parse(PurchaseBill, b, "fetch purchase bills") for b in data or []]

    async def get_purchase_bill(self, bill_id: int) -> PurchaseBill:
        data = await self._request("GET", f"/purchase-bills/{bill_id}",
                                   f"fetch purchase bill {bill_id}")
        return _parse(PurchaseBill, data, f"fetch purchase bill {bill_id}")

    async def create_purchase_bill(self, bill: NewPurchaseBill) -> PurchaseBill:
        data = await self._request("POST", "/purchase-bills", "create purchase bill",
                                   json=bill.to_wire())
        return _parse(PurchaseBill, data, "create purchase bill")

    async def update_item_grn(
        self, bill_item_id: int, received: bool, remarks: Optional[str] = None
    ) -> PurchaseBill:
        """Flip one line's receipt flag. The server answers with the whole bill."""
        params = {"received": _flag(received)}
        if remarks is not None:
            params["remarks"] = remarks
        data = await self._request(
            "PATCH", f"/purchase-bills/items/{bill_item_id}/grn",
            f"update GRN for item {bill_item_id}", params=params,
        )
        return _parse(PurchaseBill, data, f"update GRN for item {bill_item_id}")

    async def update_grn_hardcopy(
        self, bill_id: int, received_by_purchaser: bool, handed_to_accountant: bool
    ) -> PurchaseBill:
        """Set both hardcopy flags of a bill; the endpoint always takes the pair."""
        params = {
            "receivedByPurchaser": _flag(received_by_purchaser),
            "handedToAccountant": _flag(handed_to_accountant),
        }
        data = await self._request(
            "PATCH", f"/purchase-bills/{bill_id}/grn-hardcopy",
            f"update GRN hardcopy status for bill {bill_id}", params=params,
        )
        return _parse(PurchaseBill, data, f"update GRN hardcopy status for bill {bill_id}")

    # ------------------------------------------------------------------
    # Generic resources (master data, supplier prices)
    # ------------------------------------------------------------------

    async def list_resource(self, resource: str) -> list[dict]:
        data = await self._request("GET", f"/{resource}", f"fetch {resource}")
        return list(data or [])

    async def create_resource(self, resource: str, payload: dict) -> dict:
        return await self._request("POST", f"/{resource}", f"create {resource}", json=payload)

    async def update_resource(self, resource: str, resource_id: int, payload: dict) -> dict:
        return await self._request("PUT", f"/{resource}/{resource_id}",
                                   f"update {resource} {resource_id}", json=payload)

    async def delete_resource(self, resource: str, resource_id: int) -> None:
        await self._request("DELETE", f"/{resource}/{resource_id}",
                            f"delete {resource} {resource_id}")

    async def list_supplier_prices(self, supplier_id: int) -> list[dict]:
        data = await self._request("GET", f"/supplier-prices/by-supplier/{supplier_id}",
                                   f"fetch prices for supplier {supplier_id}")
        return list(data or [])

    async def deactivate_supplier_price(self, price_id: int) -> None:
        await self._request("PATCH", f"/supplier-prices/{price_id}/deactivate",
                            f"deactivate price {price_id}")
