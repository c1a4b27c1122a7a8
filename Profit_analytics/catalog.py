"""Product catalog snapshot used to reconcile sales reports."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from Profit_analytics.values import optional_num, to_int_id


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    name: str
    sku: Optional[str] = None
    std_cost: Optional[float] = None
    list_price: Optional[float] = None

    @property
    def dedup_key(self) -> str:
        return dedup_key(self.sku, self.name)


def dedup_key(sku: Optional[str], name: str) -> str:
    """``sku:<sku>`` when a sku exists, else ``name:<name>`` (lowercased)."""

    if sku:
        return f"sku:{sku.lower()}"
    return f"name:{(name or '').lower()}"


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def entry_from_product(payload: Mapping[str, Any]) -> CatalogEntry:
    """Build an entry from a ``/products`` item (camelCase or snake_case)."""

    product_id = to_int_id(payload.get("id"))
    if product_id is None:
        raise ValueError(f"Catalog product has no usable id: {payload.get('id')!r}")
    sku = payload.get("sku")
    return CatalogEntry(
        id=product_id,
        name=str(payload.get("name") or ""),
        sku=str(sku) if sku not in (None, "") else None,
        std_cost=optional_num(_first_present(payload, "stdCost", "std_cost")),
        list_price=optional_num(_first_present(payload, "listPrice", "list_price")),
    )


class CatalogSnapshot:
    """Immutable catalog index keyed by ``id:``, ``sku:`` and ``name:``.

    On key collisions the entry loaded last wins.
    """

    __slots__ = ("_entries", "_index")

    def __init__(self, entries: Iterable[CatalogEntry]) -> None:
        self._entries: Tuple[CatalogEntry, ...] = tuple(entries)
        index: Dict[str, CatalogEntry] = {}
        for entry in self._entries:
            sku = (entry.sku or "").strip().lower()
            name = (entry.name or "").strip().lower()
            if sku:
                index[f"sku:{sku}"] = entry
            if name:
                index[f"name:{name}"] = entry
            index[f"id:{entry.id}"] = entry
        self._index: Mapping[str, CatalogEntry] = MappingProxyType(index)

    @classmethod
    def from_products(cls, items: Iterable[Mapping[str, Any]]) -> "CatalogSnapshot":
        return cls(entry_from_product(item) for item in items if to_int_id(item.get("id")) is not None)

    @property
    def entries(self) -> Tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def index(self) -> Mapping[str, CatalogEntry]:
        return self._index

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[CatalogEntry]:
        return self._index.get(key)

    def lookup(
        self,
        product_id: Optional[int] = None,
        sku: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Optional[CatalogEntry]:
        """Find an entry by id, then sku, then name (case-insensitive)."""

        if product_id is not None:
            entry = self._index.get(f"id:{product_id}")
            if entry is not None:
                return entry
        if sku:
            entry = self._index.get(f"sku:{sku.lower()}")
            if entry is not None:
                return entry
        if name:
            return self._index.get(f"name:{name.lower()}")
        return None


def load_catalog(client) -> CatalogSnapshot:
    """Fetch ``/products`` through a :class:`~Profit_analytics.client.ReportClient`."""

    items: List[Mapping[str, Any]] = client.list_products()
    return CatalogSnapshot.from_products(items)
