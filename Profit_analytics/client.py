"""HTTP client for the business reporting API.

The reporting endpoint does not guarantee a column naming convention, so the
product sales report is requested with snake_case identifiers first and, when
that comes back empty, requested again with camelCase identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from Profit_analytics.config import ApiConfig


class ReportServiceError(RuntimeError):
    """Raised when a whole request to the reporting API fails."""


SALES_BY_PRODUCT_SNAKE = {
    "groupBy": ["product.id", "product.sku", "product.name"],
    "metrics": ["sum_qty", "sum_total"],
}
SALES_BY_PRODUCT_CAMEL = {
    "groupBy": ["productId", "productSku", "productName"],
    "metrics": ["sumQty", "sumTotal"],
}


@dataclass(slots=True)
class ReportResult:
    columns: List[str]
    rows: List[Any]
    request: Dict[str, Any] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.rows

    @property
    def sample(self) -> Any:
        return self.rows[0] if self.rows else None


class ReportClient:
    """Thin wrapper over ``requests`` for ``/reports/run`` and ``/products``."""

    def __init__(self, config: ApiConfig, session: Optional[Any] = None) -> None:
        self.config = config
        self.session = session if session is not None else requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.config.token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._url(path)
        try:
            resp = getattr(self.session, method)(
                url, headers=self._headers(), timeout=self.config.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise ReportServiceError(f"{method.upper()} {url} failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise ReportServiceError(f"{method.upper()} {url} returned {resp.status_code}: {resp.text[:300]}")
        try:
            return resp.json()
        except ValueError as exc:
            raise ReportServiceError(f"{method.upper()} {url} returned non-JSON body: {exc}") from exc

    def run_report(self, body: Dict[str, Any]) -> ReportResult:
        data = self._send("post", "/reports/run", json=body)
        if not isinstance(data, dict):
            data = {}
        columns = [str(col) for col in (data.get("columns") or [])]
        rows = data.get("rows") or data.get("items") or []
        return ReportResult(columns=columns, rows=list(rows), request=dict(body))

    def list_products(self, page: int = 1, page_size: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"page": page, "pageSize": page_size or self.config.catalog_page_size}
        data = self._send("get", "/products", params=params)
        if isinstance(data, dict):
            items = data.get("items") or []
        elif isinstance(data, list):
            items = data
        else:
            items = []
        return [item for item in items if isinstance(item, dict)]


def sales_report_body(
    naming: Dict[str, List[str]],
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    *,
    limit: int = 100000,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "source": "sales",
        "groupBy": list(naming["groupBy"]),
        "metrics": list(naming["metrics"]),
        "limit": limit,
    }
    if date_from:
        body["from"] = date_from
    if date_to:
        body["to"] = date_to
    return body


def fetch_sales_by_product(
    client: ReportClient,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    *,
    limit: Optional[int] = None,
) -> ReportResult:
    """Sales grouped by product; retries with camelCase names on an empty result.

    Only a fully empty row set triggers the retry. A populated response whose
    columns cannot be resolved is returned as-is.
    """

    row_limit = limit or client.config.report_limit
    result = client.run_report(sales_report_body(SALES_BY_PRODUCT_SNAKE, date_from, date_to, limit=row_limit))
    if not result.empty:
        return result
    return client.run_report(sales_report_body(SALES_BY_PRODUCT_CAMEL, date_from, date_to, limit=row_limit))
