"""Per-product profit rows, competitor price gaps and portfolio KPIs."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

import pandas as pd

from Profit_analytics.catalog import CatalogEntry, CatalogSnapshot, dedup_key
from Profit_analytics.fields import get_field, get_number
from Profit_analytics.values import is_finite, round2, to_int_id, to_num

CostBasis = Literal["catalog", "fallback", "unknown"]

DEFAULT_FALLBACK_RATIO = 0.60


@dataclass(frozen=True, slots=True)
class ProfitRow:
    key: str
    name: str
    sku: Optional[str]
    qty: float
    revenue: float
    unit_cost: Optional[float]
    cost_basis: CostBasis
    cost_total: float
    margin: float
    margin_pct: float
    my_price: Optional[float] = None
    competitor_price: Optional[float] = None
    price_gap_pct: Optional[float] = None

    @property
    def dedup_key(self) -> str:
        return dedup_key(self.sku, self.name)

    @property
    def effective_price(self) -> Optional[float]:
        """Own price, falling back to the realised unit price."""
        if self.my_price is not None:
            return self.my_price
        return self.revenue / self.qty if self.qty > 0 else None


def fallback_ratio(value: object) -> float:
    """Parse a user supplied cost ratio (``"0,6"`` or ``0.6``) clamped to [0, 1].

    Zero or unparsable input falls back to the default ratio.
    """
    if isinstance(value, str):
        value = value.replace(",", ".", 1)
    ratio = to_num(value) or DEFAULT_FALLBACK_RATIO
    return max(0.0, min(1.0, ratio))


def _text(value: Any) -> Optional[str]:
    if value is None or value == "" or value is False:
        return None
    if isinstance(value, (int, float)) and value == 0:
        return None
    text = str(value).strip()
    return text or None


def _cost(unit_cost: Optional[float], qty: float, revenue: float, ratio: float) -> tuple[CostBasis, float]:
    if is_finite(unit_cost):
        return "catalog", unit_cost * qty  # type: ignore[operator]
    if revenue > 0:
        return "fallback", revenue * ratio
    return "unknown", 0.0


def _margin_pct(margin: float, revenue: float) -> float:
    return (margin / revenue) * 100 if revenue > 0 else 0.0


def profit_row_from_report(
    row: Any,
    columns: Sequence[str],
    catalog: CatalogSnapshot,
    ratio: float,
) -> Tuple[ProfitRow, Optional[CatalogEntry]]:
    """Reconcile one report row; also returns the catalog entry it matched, if any."""

    product_id = to_int_id(get_field(row, columns, "id"))
    report_sku = _text(get_field(row, columns, "sku"))
    report_name = _text(get_field(row, columns, "name"))
    qty = get_number(row, columns, "qty")
    revenue = get_number(row, columns, "total")

    entry = catalog.lookup(product_id, report_sku, report_name)
    unit_cost = entry.std_cost if entry is not None and is_finite(entry.std_cost) else None
    if entry is not None and is_finite(entry.list_price):
        my_price: Optional[float] = entry.list_price
    else:
        my_price = revenue / qty if qty > 0 else None

    cost_basis, cost_total = _cost(unit_cost, qty, revenue, ratio)
    margin = revenue - cost_total

    name = (
        (entry.name if entry is not None else None)
        or report_name
        or report_sku
        or (f"#{product_id}" if product_id is not None else "Producto")
    )
    sku = (entry.sku if entry is not None else None) or report_sku
    if product_id is not None:
        key = str(product_id)
    else:
        key = sku or name or uuid.uuid4().hex

    profit_row = ProfitRow(
        key=key,
        name=name,
        sku=sku,
        qty=qty,
        revenue=revenue,
        unit_cost=unit_cost,
        cost_basis=cost_basis,
        cost_total=cost_total,
        margin=margin,
        margin_pct=_margin_pct(margin, revenue),
        my_price=my_price,
    )
    return profit_row, entry


def zero_activity_rows(
    catalog: CatalogSnapshot,
    seen: Iterable[str],
    matched_ids: Iterable[int] = (),
) -> List[ProfitRow]:
    """Rows for catalog products that never appeared in the sales report.

    An entry is skipped when its dedup key was seen or when a sales row was
    reconciled against it (by id, sku or name).
    """

    seen_keys = set(seen)
    matched = set(matched_ids)
    rows: List[ProfitRow] = []
    for entry in catalog.entries:
        if entry.id in matched or entry.dedup_key in seen_keys:
            continue
        has_cost = is_finite(entry.std_cost)
        rows.append(
            ProfitRow(
                key=str(entry.id),
                name=entry.name,
                sku=entry.sku,
                qty=0.0,
                revenue=0.0,
                unit_cost=entry.std_cost if has_cost else None,
                cost_basis="catalog" if has_cost else "unknown",
                cost_total=0.0,
                margin=0.0,
                margin_pct=0.0,
                my_price=entry.list_price if is_finite(entry.list_price) else None,
            )
        )
    return rows


def build_profit_rows(
    columns: Sequence[str],
    rows: Iterable[Any],
    catalog: CatalogSnapshot,
    fallback_cost_pct: object = DEFAULT_FALLBACK_RATIO,
) -> List[ProfitRow]:
    """Reconcile report rows with the catalog and append unsold catalog products."""

    ratio = fallback_ratio(fallback_cost_pct)
    from_sales: List[ProfitRow] = []
    matched_ids = set()
    for row in rows:
        profit_row, entry = profit_row_from_report(row, columns, catalog, ratio)
        from_sales.append(profit_row)
        if entry is not None:
            matched_ids.add(entry.id)
    seen = {profit_row.dedup_key for profit_row in from_sales}
    return from_sales + zero_activity_rows(catalog, seen, matched_ids)


def apply_competitor_prices(rows: Iterable[ProfitRow], prices: Any) -> List[ProfitRow]:
    """Recompute competitor price and price gap for every row.

    ``prices`` is anything exposing ``lookup(sku, name)``, usually a
    :class:`~Profit_analytics.competitors.CompetitorPrices` snapshot.
    """

    updated: List[ProfitRow] = []
    for row in rows:
        competitor = prices.lookup(row.sku, row.name)
        own = row.effective_price
        gap = None
        if own is not None and competitor is not None and own > 0:
            gap = ((own - competitor) / own) * 100
        updated.append(replace(row, competitor_price=competitor, price_gap_pct=gap))
    return updated


def summary_kpis(rows: Sequence[ProfitRow]) -> Dict[str, float]:
    revenue = sum(row.revenue for row in rows)
    cost = sum(row.cost_total for row in rows)
    margin = revenue - cost
    total_units = sum(row.qty for row in rows)
    avg_unit_price = revenue / total_units if total_units > 0 else 0.0
    avg_unit_cost = cost / total_units if total_units > 0 else 0.0
    avg_unit_margin = avg_unit_price - avg_unit_cost
    return {
        "revenue": revenue,
        "cost": cost,
        "margin": margin,
        "margin_pct": _margin_pct(margin, revenue),
        "profitable": sum(1 for row in rows if row.margin > 0),
        "loss_leaders": sum(1 for row in rows if row.margin < 0),
        "products": len(rows),
        "avg_unit_price": avg_unit_price,
        "avg_unit_cost": avg_unit_cost,
        "avg_unit_margin": avg_unit_margin,
        "avg_unit_margin_pct": (avg_unit_margin / avg_unit_price) * 100 if avg_unit_price > 0 else 0.0,
    }


def display_margin(row: ProfitRow) -> float:
    """Price-gap margin when both prices are known, else bookkeeping margin."""
    if row.my_price is not None and row.competitor_price is not None:
        return row.my_price - row.competitor_price
    return row.margin


def display_margin_pct(row: ProfitRow) -> float:
    if row.price_gap_pct is not None:
        return row.price_gap_pct
    return row.margin_pct


def chart_label(row: ProfitRow) -> str:
    return f"{row.sku} · {row.name}" if row.sku else row.name


def top_rows(rows: Sequence[ProfitRow], which: str = "best", n: int = 6) -> List[ProfitRow]:
    if which not in {"best", "worst"}:
        raise ValueError(f"which must be 'best' or 'worst', got {which!r}")
    ranked = sorted(rows, key=display_margin, reverse=which == "best")
    return ranked[:n]


def chart_points(rows: Sequence[ProfitRow]) -> List[Dict[str, object]]:
    return [
        {
            "label": chart_label(row),
            "value": round2(abs(display_margin(row))),
            "negative": display_margin(row) < 0,
        }
        for row in rows
    ]


def all_zero(rows: Sequence[ProfitRow]) -> bool:
    """True when the report produced rows but every quantity and revenue is 0."""
    return bool(rows) and all(row.qty == 0 and row.revenue == 0 for row in rows)


def rows_to_frame(rows: Sequence[ProfitRow]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=list(ProfitRow.__dataclass_fields__.keys()))
    frame = pd.DataFrame([asdict(row) for row in rows])
    frame["display_margin"] = [display_margin(row) for row in rows]
    frame["display_margin_pct"] = [display_margin_pct(row) for row in rows]
    return frame
