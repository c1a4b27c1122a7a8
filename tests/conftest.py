from __future__ import annotations

import json
import threading
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from Profit_analytics.catalog import CatalogSnapshot


def _response(payload: Any, status_code: int = 200, lines: Optional[List[bytes]] = None) -> SimpleNamespace:
    def _json() -> Any:
        if isinstance(payload, Exception):
            raise payload
        return payload

    text = payload if isinstance(payload, str) else json.dumps(payload, default=str)
    response = SimpleNamespace(
        status_code=status_code,
        json=_json,
        text=text,
        iter_lines=lambda: iter(lines or []),
        closed=False,
    )
    response.close = lambda: setattr(response, "closed", True)
    return response


class FakeApiSession:
    """Stands in for ``requests.Session`` against ``/reports/run`` and ``/products``."""

    def __init__(
        self,
        *,
        products: Any = None,
        reports: Optional[Callable[[Dict[str, Any]], Any]] = None,
        status_code: int = 200,
    ) -> None:
        self.products = products if products is not None else {"items": []}
        self.reports = reports or (lambda body: {"columns": [], "rows": []})
        self.status_code = status_code
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def _record(self, method: str, url: str, kwargs: Dict[str, Any]) -> None:
        with self._lock:
            self.calls.append({"method": method, "url": url, **kwargs})

    def post(self, url: str, **kwargs: Any) -> SimpleNamespace:
        self._record("post", url, kwargs)
        return _response(self.reports(kwargs.get("json") or {}), self.status_code)

    def get(self, url: str, **kwargs: Any) -> SimpleNamespace:
        self._record("get", url, kwargs)
        return _response(self.products, self.status_code)

    @property
    def report_bodies(self) -> List[Dict[str, Any]]:
        return [call["json"] for call in self.calls if call["method"] == "post"]


class FakeChatSession:
    """Replays canned chat replies; an ``Exception`` entry is raised instead."""

    def __init__(self, replies: List[Any], *, status_code: int = 200) -> None:
        self.replies = list(replies)
        self.status_code = status_code
        self.calls: List[Dict[str, Any]] = []

    def post(self, url: str, **kwargs: Any) -> SimpleNamespace:
        self.calls.append({"url": url, **kwargs})
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return _response({"message": {"role": "assistant", "content": reply}, "done": True}, self.status_code)


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ["PROFIT_API_TOKEN", "OLLAMA_BASE", "OLLAMA_MODEL"]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def api_session():
    return FakeApiSession


@pytest.fixture()
def chat_session():
    return FakeChatSession


@pytest.fixture()
def make_response():
    return _response


@pytest.fixture()
def catalog_products() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "sku": "TEE-1", "name": "Camisa Básica", "stdCost": 120, "listPrice": 250},
        {"id": 2, "sku": "HD-1", "name": "Sudadera", "stdCost": "300.00", "listPrice": "520"},
        {"id": 3, "sku": None, "name": "Gorra", "stdCost": None, "listPrice": 180},
        {"id": 4, "sku": "MUG-9", "name": "Taza", "std_cost": 40, "list_price": 95},
    ]


@pytest.fixture()
def catalog(catalog_products) -> CatalogSnapshot:
    return CatalogSnapshot.from_products(catalog_products)
