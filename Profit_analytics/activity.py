"""Day-bucketed activity: inventory movements, sales totals and invoice details.

Three independent report queries are merged into one bucket per ISO date.
Buckets are rebuilt from scratch on every query; rows without a date (or
without their group key: movement type, invoice) are dropped.
"""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from Profit_analytics.client import ReportClient, ReportResult
from Profit_analytics.values import to_num

INVENTORY_REQUEST = {
    "source": "inventory_movements",
    "groupBy": ["date:day", "movementType"],
    "metrics": ["sum_qty", "count"],
}
SALES_SUMMARY_REQUEST = {
    "source": "sales",
    "groupBy": ["date:day"],
    "metrics": ["sum_total", "count"],
}
SALES_DETAIL_REQUEST = {
    "source": "sales",
    "groupBy": ["date:day", "invoice", "customer", "product"],
    "metrics": ["sum_qty", "sum_total", "count"],
}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(slots=True)
class SaleItem:
    name: str
    qty: float


@dataclass(slots=True)
class SaleDetail:
    invoice: str
    customer: Optional[str]
    total: float
    items: List[SaleItem] = field(default_factory=list)


@dataclass(slots=True)
class DayBucket:
    date: str
    in_count: float = 0.0
    in_qty: float = 0.0
    out_count: float = 0.0
    out_qty: float = 0.0
    sales_count: float = 0.0
    sales_total: float = 0.0
    sales_details: List[SaleDetail] = field(default_factory=list)

    @property
    def movements(self) -> float:
        return self.in_count + self.out_count


# ----------------------------
# Column resolution
# ----------------------------

Matcher = Callable[[str], bool]


def _rx(pattern: str) -> Matcher:
    compiled = re.compile(pattern, re.IGNORECASE)
    return lambda column: bool(compiled.search(column))


def _find(columns: Sequence[str], matcher: Matcher) -> int:
    for index, column in enumerate(columns):
        if matcher(column):
            return index
    return -1


def _latest_index(columns: Sequence[str], *matchers: Matcher) -> int:
    """Largest first-match index across ``matchers`` (``-1`` when none match)."""
    return max(_find(columns, matcher) for matcher in matchers)


_DATE = _rx(r"date(.+day)?")
_DATE_EXACT = _rx(r"^date$")
_FECHA = _rx(r"fecha")


def _type_index(columns: Sequence[str]) -> int:
    index = _find(columns, _rx(r"movement_?type"))
    if index < 0:
        index = _find(columns, _rx(r"^type$"))
    return index


def _inventory_indices(columns: Sequence[str]) -> Dict[str, int]:
    return {
        "date": _latest_index(columns, _DATE, _FECHA),
        "type": _type_index(columns),
        "qty": _latest_index(columns, _rx(r"sum_qty"), _rx(r"qty")),
        "count": _latest_index(columns, _rx(r"count"), _rx(r"movimientos")),
    }


def _sales_indices(columns: Sequence[str]) -> Dict[str, int]:
    return {
        "date": _latest_index(columns, _DATE, _FECHA),
        "total": _latest_index(columns, _rx(r"sum_total"), _rx(r"total")),
        "count": _find(columns, _rx(r"count")),
    }


def _detail_indices(columns: Sequence[str]) -> Dict[str, int]:
    product = _find(columns, _rx(r"^product_name$"))
    if product < 0:
        product = _find(columns, _rx(r"^product$"))
    return {
        "date": _latest_index(columns, lambda c: _DATE_EXACT(c) or _DATE(c), _FECHA),
        "invoice": _find(columns, _rx(r"^invoice$")),
        "customer": _find(columns, _rx(r"^customer$")),
        "product": product,
        "qty": _latest_index(columns, _rx(r"sum_qty"), _rx(r"^qty$")),
        "total": _latest_index(columns, _rx(r"sum_total"), _rx(r"^total$")),
    }


def _positional(columns: Sequence[str], row: Any) -> Tuple[Sequence[str], Sequence[Any]]:
    if isinstance(row, Mapping):
        return [str(key) for key in row.keys()], list(row.values())
    if isinstance(row, (list, tuple)):
        return columns, row
    return columns, ()


def _at(values: Sequence[Any], index: int) -> Any:
    if index < 0 or index >= len(values):
        return None
    return values[index]


def normalize_date(raw: Any) -> Optional[str]:
    """Return ``YYYY-MM-DD`` for ``raw`` or ``None`` when it cannot be parsed."""

    if raw is None or raw == "":
        return None
    text = str(raw).strip()
    if _ISO_DATE.match(text):
        return text
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.strftime("%Y-%m-%d")


# ----------------------------
# Merge
# ----------------------------


def _bucket(buckets: Dict[str, DayBucket], day: str) -> DayBucket:
    bucket = buckets.get(day)
    if bucket is None:
        bucket = DayBucket(date=day)
        buckets[day] = bucket
    return bucket


def _merge_inventory(buckets: Dict[str, DayBucket], report: ReportResult) -> None:
    for row in report.rows:
        columns, values = _positional(report.columns, row)
        idx = _inventory_indices(columns)
        day = normalize_date(_at(values, idx["date"]))
        raw_type = _at(values, idx["type"])
        movement = str(raw_type if raw_type is not None else "").strip().lower()
        if not day or not movement:
            continue
        qty = to_num(_at(values, idx["qty"]))
        count = to_num(_at(values, idx["count"]))
        bucket = _bucket(buckets, day)
        if movement == "out":
            bucket.out_count += count
            bucket.out_qty += qty
        else:
            bucket.in_count += count
            bucket.in_qty += qty


def _merge_sales_summary(buckets: Dict[str, DayBucket], report: ReportResult) -> None:
    for row in report.rows:
        columns, values = _positional(report.columns, row)
        idx = _sales_indices(columns)
        day = normalize_date(_at(values, idx["date"]))
        if not day:
            continue
        bucket = _bucket(buckets, day)
        bucket.sales_count += to_num(_at(values, idx["count"]))
        bucket.sales_total += to_num(_at(values, idx["total"]))


def _merge_sales_details(buckets: Dict[str, DayBucket], report: ReportResult) -> None:
    day_invoices: Dict[str, Dict[str, SaleDetail]] = {}
    for row in report.rows:
        columns, values = _positional(report.columns, row)
        idx = _detail_indices(columns)
        day = normalize_date(_at(values, idx["date"]))
        raw_invoice = _at(values, idx["invoice"])
        invoice = str(raw_invoice if raw_invoice is not None else "").strip()
        if not day or not invoice:
            continue
        customer = _at(values, idx["customer"])
        raw_product = _at(values, idx["product"])
        product = str(raw_product if raw_product is not None else "").strip()
        qty = to_num(_at(values, idx["qty"]))

        invoices = day_invoices.setdefault(day, {})
        detail = invoices.get(invoice)
        if detail is None:
            detail = SaleDetail(invoice=invoice, customer=customer, total=0.0)
            invoices[invoice] = detail
        detail.total += to_num(_at(values, idx["total"]))
        if product:
            existing = next((item for item in detail.items if item.name == product), None)
            if existing is not None:
                existing.qty += qty
            else:
                detail.items.append(SaleItem(name=product, qty=qty))

    for day, invoices in day_invoices.items():
        details = list(invoices.values())
        for detail in details:
            detail.items.sort(key=lambda item: item.qty, reverse=True)
        details.sort(key=lambda detail: detail.total, reverse=True)
        _bucket(buckets, day).sales_details = details


def merge_day_buckets(
    inventory: ReportResult,
    sales: ReportResult,
    details: ReportResult,
) -> List[DayBucket]:
    """Merge the three activity reports, most recent day first."""

    buckets: Dict[str, DayBucket] = {}
    _merge_inventory(buckets, inventory)
    _merge_sales_summary(buckets, sales)
    _merge_sales_details(buckets, details)
    return sorted(buckets.values(), key=lambda bucket: bucket.date, reverse=True)


def _with_range(request: Dict[str, Any], date_from: Optional[str], date_to: Optional[str]) -> Dict[str, Any]:
    body = {key: list(value) if isinstance(value, list) else value for key, value in request.items()}
    if date_from:
        body["from"] = date_from
    if date_to:
        body["to"] = date_to
    return body


def fetch_recent_activity(
    client: ReportClient,
    date_from: Optional[str],
    date_to: Optional[str],
) -> List[DayBucket]:
    """Run the three activity reports concurrently and merge them.

    Any failing query propagates its error; no partial buckets are returned.
    """

    bodies = [
        _with_range(INVENTORY_REQUEST, date_from, date_to),
        _with_range(SALES_SUMMARY_REQUEST, date_from, date_to),
        _with_range(SALES_DETAIL_REQUEST, date_from, date_to),
    ]
    with ThreadPoolExecutor(max_workers=len(bodies)) as pool:
        futures = [pool.submit(client.run_report, body) for body in bodies]
        inventory, sales, details = (future.result() for future in futures)
    return merge_day_buckets(inventory, sales, details)


def buckets_to_records(buckets: Sequence[DayBucket]) -> List[Dict[str, Any]]:
    return [asdict(bucket) for bucket in buckets]


def buckets_to_frame(buckets: Sequence[DayBucket]) -> pd.DataFrame:
    columns = ["date", "in_count", "in_qty", "out_count", "out_qty", "sales_count", "sales_total", "invoices"]
    records = [
        {
            "date": bucket.date,
            "in_count": bucket.in_count,
            "in_qty": bucket.in_qty,
            "out_count": bucket.out_count,
            "out_qty": bucket.out_qty,
            "sales_count": bucket.sales_count,
            "sales_total": bucket.sales_total,
            "invoices": len(bucket.sales_details),
        }
        for bucket in buckets
    ]
    return pd.DataFrame(records, columns=columns)
