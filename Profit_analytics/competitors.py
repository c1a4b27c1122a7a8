"""Competitor price acquisition: spreadsheet import and simulated estimates.

Both producers write ``sku:<sku>`` / ``name:<name>`` keys into a
:class:`CompetitorPrices` snapshot. Merging returns a new snapshot and the
last writer wins for a given key.
"""

from __future__ import annotations

import json
import math
import zipfile
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Sequence

import pandas as pd

from Profit_analytics.llm import LLMError, OllamaClient, extract_json_object
from Profit_analytics.profit import ProfitRow
from Profit_analytics.values import to_num

SKU_HEADERS = ("sku", "SKU", "Sku")
NAME_HEADERS = ("name", "product", "Product")
PRICE_HEADERS = ("price", "Price", "precio", "Precio")

FALLBACK_BASE_PRICE = 400.0
FALLBACK_MIN_PRICE = 50.0
WORKBOOK_SUFFIXES = {".xlsx", ".xlsm"}
TEXT_SUFFIXES = {".csv", ".txt"}


class CompetitorFileError(ValueError):
    """Raised when a competitor price file is missing, unsupported or unreadable."""


class CompetitorPrices(Mapping[str, float]):
    """Immutable competitor price map."""

    __slots__ = ("_prices",)

    def __init__(self, prices: Optional[Mapping[str, float]] = None) -> None:
        self._prices: Mapping[str, float] = MappingProxyType(dict(prices or {}))

    def __getitem__(self, key: str) -> float:
        return self._prices[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._prices)

    def __len__(self) -> int:
        return len(self._prices)

    def __repr__(self) -> str:
        return f"CompetitorPrices({len(self)} prices)"

    def merged(self, other: Mapping[str, float]) -> "CompetitorPrices":
        combined = dict(self._prices)
        combined.update(other)
        return CompetitorPrices(combined)

    def lookup(self, sku: Optional[str], name: str) -> Optional[float]:
        """Price by sku key first, then by name key."""
        if sku:
            price = self._prices.get(f"sku:{sku.lower()}")
            if price is not None:
                return price
        return self._prices.get(f"name:{(name or '').lower()}")

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [{"key": key, "price": price} for key, price in self._prices.items()],
            columns=["key", "price"],
        )


# ----------------------------
# Spreadsheet import
# ----------------------------


def _first_truthy(record: Mapping[str, Any], headers: Sequence[str]) -> str:
    for header in headers:
        value = record.get(header)
        if _missing(value):
            continue
        text = _cell_text(value)
        if text:
            return text
    return ""


def _cell_text(value: Any) -> str:
    # whole numbers read as floats (1001.0) keep their integer spelling
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _first_present(record: Mapping[str, Any], headers: Sequence[str]) -> Any:
    for header in headers:
        if header in record and not _missing(record[header]):
            return record[header]
    return None


def _read_first_sheet(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        return pd.read_csv(path, dtype=object)
    return pd.read_excel(path, sheet_name=0, dtype=object)


def prices_from_records(records: Iterable[Mapping[str, Any]]) -> CompetitorPrices:
    prices: Dict[str, float] = {}
    for record in records:
        raw_price = _first_present(record, PRICE_HEADERS)
        if raw_price is None:
            continue
        price = to_num(raw_price)
        if not math.isfinite(price):
            continue
        sku = _first_truthy(record, SKU_HEADERS)
        name = _first_truthy(record, NAME_HEADERS)
        if sku:
            prices[f"sku:{sku.lower()}"] = price
        if name:
            prices[f"name:{name.lower()}"] = price
    return CompetitorPrices(prices)


def load_competitor_file(path: str | Path) -> CompetitorPrices:
    """Import competitor prices from the first sheet of an ``.xlsx`` workbook (or a CSV)."""

    source = Path(path)
    if not source.exists():
        raise CompetitorFileError(f"Competitor price file not found: {source}")
    if source.suffix.lower() not in TEXT_SUFFIXES | WORKBOOK_SUFFIXES:
        expected = ", ".join(sorted(TEXT_SUFFIXES | WORKBOOK_SUFFIXES))
        raise CompetitorFileError(f"Unsupported competitor price file {source.name}; expected one of {expected}")
    try:
        frame = _read_first_sheet(source)
    except (ValueError, OSError, zipfile.BadZipFile) as exc:
        raise CompetitorFileError(f"Could not read competitor price file {source.name}: {exc}") from exc
    return prices_from_records(frame.to_dict(orient="records"))


# ----------------------------
# Simulated estimates
# ----------------------------


class PriceEstimator(Protocol):
    def estimate(self, batch: Sequence[Dict[str, Any]]) -> Dict[str, float]:
        ...


class DeterministicFallbackEstimator:
    """Index-derived synthetic prices, reproducible for a given batch.

    Item ``i`` moves ``(i % 14) + 5`` percent away from its own price
    (or 400 when unknown): down for even ``i``, up for odd ``i``; never
    below 50.
    """

    def estimate(self, batch: Sequence[Dict[str, Any]]) -> Dict[str, float]:
        prices: Dict[str, float] = {}
        for index, sample in enumerate(batch):
            my_price = sample.get("myPrice")
            base = float(my_price) if my_price is not None else FALLBACK_BASE_PRICE
            pct = ((index % 14) + 5) / 100
            sign = -1 if index % 2 == 0 else 1
            prices[sample["key"]] = max(FALLBACK_MIN_PRICE, base * (1 + sign * pct))
        return prices


class RemoteEstimator:
    """Ask the local chat model for plausible competitor prices."""

    def __init__(self, client: OllamaClient) -> None:
        self.client = client

    def estimate(self, batch: Sequence[Dict[str, Any]]) -> Dict[str, float]:
        config = self.client.config
        prompt = config.simulation_prompt_template.format(
            products=json.dumps(list(batch), ensure_ascii=False)
        )
        text = self.client.chat(config.simulation_system_prompt, prompt)
        payload = extract_json_object(text)
        items = payload.get("items")
        if not isinstance(items, list):
            raise LLMError("Response JSON has no 'items' list.")
        prices: Dict[str, float] = {}
        for item in items:
            if not isinstance(item, dict) or item.get("price") is None:
                continue
            key = str(item.get("key") or "").strip().lower()
            if key:
                prices[key] = to_num(item["price"])
        if not prices:
            raise LLMError("Response JSON contained no usable prices.")
        return prices


def competitor_samples(rows: Iterable[ProfitRow]) -> List[Dict[str, Any]]:
    return [
        {"key": row.dedup_key, "name": row.name, "myPrice": row.effective_price}
        for row in rows
    ]


def chunk(items: Sequence[Any], size: int) -> List[List[Any]]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def simulate_competitor_prices(
    rows: Iterable[ProfitRow],
    estimator: Optional[PriceEstimator] = None,
    *,
    batch_size: int = 80,
    fallback: Optional[PriceEstimator] = None,
) -> CompetitorPrices:
    """Estimate competitor prices batch by batch, sequentially.

    A failing batch (transport error, timeout, malformed or empty JSON) is
    replaced by the deterministic fallback; later batches still run.
    """

    backup = fallback or DeterministicFallbackEstimator()
    merged: Dict[str, float] = {}
    for index, batch in enumerate(chunk(competitor_samples(rows), batch_size)):
        if estimator is None:
            merged.update(backup.estimate(batch))
            continue
        try:
            merged.update(estimator.estimate(batch))
        except Exception as exc:
            print(f"[Competitors] Batch {index + 1} fell back to synthetic prices: {exc}")
            merged.update(backup.estimate(batch))
    return CompetitorPrices(merged)
