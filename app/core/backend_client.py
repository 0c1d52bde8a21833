"""
Inventory Backend Client.
Async HTTP client for the point-of-sale backend that owns clients,
products, sales and stock reports.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from app.core.exceptions import BackendException
from app.core.logging_config import log_backend_call
from app.schemas.sales import SaleStatus

logger = logging.getLogger(__name__)

# Backend endpoint for each item status change it accepts
STATUS_CHANGE_PATHS = {
    SaleStatus.CANCELLED: "/api/ventes/cancel-item",
    SaleStatus.RETURNED: "/api/ventes/return-item",
    SaleStatus.RENDERED: "/api/ventes/mark-as-rendu",
}


class BackendClient:
    """HTTP client for the inventory backend."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self):
        """Open HTTP client."""
        if self._client:
            return
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            follow_redirects=True,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if not self._client:
            raise RuntimeError("Client not opened. Use async context manager.")

        start = time.time()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error(f"Backend {method} {path} failed: {exc}")
            raise BackendException(
                f"Inventory backend unreachable: {exc.__class__.__name__}",
                details={"path": path}
            ) from exc

        log_backend_call(logger, method, path, response.status_code, (time.time() - start) * 1000)

        if response.is_error:
            raise BackendException(
                self._error_message(response),
                upstream_status=response.status_code,
                details={"path": path}
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """The backend reports failures as {"error": "..."}; fall back to the status line."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"Inventory backend answered {response.status_code} {response.reason_phrase}"

    @staticmethod
    def _write_result(response: httpx.Response) -> Any:
        """Writes may answer with plain text (e.g. "OK"); keep it as a message."""
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}

    async def _get_json(self, path: str) -> Any:
        response = await self._request("GET", path)
        try:
            return response.json()
        except ValueError as exc:
            raise BackendException(
                "Inventory backend returned a non-JSON response",
                upstream_status=response.status_code,
                details={"path": path}
            ) from exc

    async def _get_list(self, path: str) -> List[Dict[str, Any]]:
        body = await self._get_json(path)
        if not isinstance(body, list):
            raise BackendException(
                "Inventory backend returned an unexpected payload (expected a list)",
                details={"path": path}
            )
        return body

    async def fetch_sales(self) -> List[Dict[str, Any]]:
        return await self._get_list("/api/ventes")

    async def fetch_stock_summary(self) -> List[Dict[str, Any]]:
        return await self._get_list("/api/reports/stock-summary")

    async def fetch_daily_stock_comparison(self) -> List[Dict[str, Any]]:
        return await self._get_list("/api/reports/daily-stock-comparison")

    async def fetch_special_orders(self) -> List[Dict[str, Any]]:
        return await self._get_list("/api/special-orders")

    async def fetch_products(self) -> List[Dict[str, Any]]:
        return await self._get_list("/api/products")

    async def update_payment(self, sale_id: Any, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._request(
            "PUT", f"/api/ventes/{quote(str(sale_id), safe='')}/update-payment", json=payload
        )
        return self._write_result(response)

    async def change_item_status(self, target: SaleStatus, payload: Dict[str, Any]) -> Dict[str, Any]:
        path = STATUS_CHANGE_PATHS.get(target)
        if path is None:
            raise ValueError(f"No backend endpoint for status '{target.value}'")
        response = await self._request("POST", path, json=payload)
        return self._write_result(response)

    async def fetch_consolidated_invoice_pdf(self, client_name: str) -> Tuple[bytes, str]:
        """Fetch the consolidated invoice PDF the backend renders for a client."""
        response = await self._request(
            "GET",
            f"/api/ventes/consolidated-invoice/{quote(client_name, safe='')}/pdf",
            headers={"Accept": "application/pdf"},
        )
        return response.content, response.headers.get("content-type", "application/pdf")
