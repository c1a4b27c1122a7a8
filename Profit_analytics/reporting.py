"""Reporting helpers for profit and activity runs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import json

import pandas as pd

from Profit_analytics.activity import DayBucket, buckets_to_frame, buckets_to_records
from Profit_analytics.client import ReportResult
from Profit_analytics.config import AnalysisSettings
from Profit_analytics.profit import (
    ProfitRow,
    chart_label,
    display_margin,
    display_margin_pct,
    rows_to_frame,
    top_rows,
)

REPORT_VERSION = "profit-analytics/1.0"


def _frame_to_json_records(df: pd.DataFrame) -> list[dict[str, object]]:
    if df.empty:
        return []
    return json.loads(df.to_json(orient="records", date_format="iso"))


def dataframe_to_csv(df: pd.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if df.empty:
        path.write_text("", encoding="utf-8")
    else:
        df.to_csv(path, index=False)


def dataframe_to_markdown(df: pd.DataFrame) -> str:
    if df.empty:
        return "_No data available._"
    try:
        return df.to_markdown(index=False)
    except ImportError:
        return df.to_string(index=False)


def format_money(value: float) -> str:
    return f"C$ {value:,.2f}"


def report_meta(report: Optional[ReportResult]) -> Optional[Dict[str, Any]]:
    if report is None:
        return None
    return {"columns": list(report.columns), "sample": report.sample, "request": report.request}


def build_summary_payload(
    *,
    settings: AnalysisSettings,
    rows: Sequence[ProfitRow],
    kpis: Dict[str, float],
    catalog_size: int,
    competitor_count: int,
    report: Optional[ReportResult],
    warnings: Sequence[str] = (),
    recommendations: Optional[str] = None,
) -> Dict[str, object]:
    frame = rows_to_frame(rows)
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "report_version": REPORT_VERSION,
        "range": {"from": settings.date_from, "to": settings.date_to},
        "fallback_cost_pct": settings.fallback_cost_pct,
        "catalog_size": catalog_size,
        "products": len(rows),
        "competitor_prices": competitor_count,
        "kpis": kpis,
        "warnings": list(warnings),
        "report_meta": report_meta(report),
        "rows": _frame_to_json_records(frame),
        "recommendations": recommendations,
    }


def _ranking_frame(rows: Sequence[ProfitRow]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "product": chart_label(row),
                "display_margin": round(display_margin(row), 2),
                "display_margin_pct": round(display_margin_pct(row), 1),
            }
            for row in rows
        ]
    )


def _products_frame(rows: Sequence[ProfitRow]) -> pd.DataFrame:
    records: List[Dict[str, object]] = []
    for row in rows:
        records.append(
            {
                "product": chart_label(row),
                "qty": row.qty,
                "revenue": round(row.revenue, 2),
                "cost": round(row.cost_total, 2),
                "cost_basis": row.cost_basis,
                "margin": round(row.margin, 2),
                "margin_pct": round(row.margin_pct, 1),
                "my_price": None if row.my_price is None else round(row.my_price, 2),
                "competitor": None if row.competitor_price is None else round(row.competitor_price, 2),
                "gap_pct": None if row.price_gap_pct is None else round(row.price_gap_pct, 1),
            }
        )
    return pd.DataFrame(records)


def build_markdown_report(
    *,
    settings: AnalysisSettings,
    rows: Sequence[ProfitRow],
    kpis: Dict[str, float],
    catalog_size: int,
    competitor_count: int,
    warnings: Sequence[str] = (),
    recommendations: Optional[str] = None,
) -> str:
    period = f"{settings.date_from or 'start'} → {settings.date_to or 'today'}"
    lines = [
        "# Profit & Competitiveness",
        "",
        f"**Period:** {period}",
        f"**Products shown:** {len(rows)} · **In catalog:** {catalog_size}",
        f"**Competitor prices loaded:** {competitor_count}",
        "",
        "## KPIs",
        f"- **Revenue:** {format_money(kpis['revenue'])}",
        f"- **Total cost:** {format_money(kpis['cost'])}",
        f"- **Gross margin:** {format_money(kpis['margin'])}",
        f"- **Margin %:** {kpis['margin_pct']:.1f}%",
        f"- **Avg unit cost:** {format_money(kpis['avg_unit_cost'])}",
        f"- **Avg unit margin:** {format_money(kpis['avg_unit_margin'])}",
        f"- **Profitable products:** {kpis['profitable']}/{len(rows)}",
        f"- **Loss leaders:** {kpis['loss_leaders']}",
        "",
        "_Rankings use the price gap (my price − competitor) when both are known, else gross margin._",
    ]
    for warning in warnings:
        lines.extend(["", f"> ⚠ {warning}"])

    lines.extend(["", "## Best margin", "", dataframe_to_markdown(_ranking_frame(top_rows(rows, "best")))])
    lines.extend(["", "## Worst margin", "", dataframe_to_markdown(_ranking_frame(top_rows(rows, "worst")))])
    lines.extend(["", "## All products", "", dataframe_to_markdown(_products_frame(rows))])

    if recommendations:
        lines.extend(["", "## AI recommendations", "", recommendations])
    return "\n".join(lines)


def build_activity_payload(buckets: Sequence[DayBucket], *, date_from: Optional[str], date_to: Optional[str]) -> Dict[str, object]:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "report_version": REPORT_VERSION,
        "range": {"from": date_from, "to": date_to},
        "days": buckets_to_records(buckets),
    }


def build_activity_markdown(buckets: Sequence[DayBucket], *, max_invoices: int = 6, max_items: int = 3) -> str:
    lines = ["# Activity: stock in / out and sales", ""]
    if not buckets:
        lines.append("_No activity in this range._")
        return "\n".join(lines)
    for bucket in buckets:
        moves = []
        if bucket.out_qty > 0:
            moves.append(f"- {bucket.out_qty:g}")
        if bucket.in_qty > 0:
            moves.append(f"+ {bucket.in_qty:g}")
        lines.append(f"## {bucket.date}")
        lines.append(f"{bucket.movements:g} movements {' / '.join(moves)}".rstrip())
        lines.append(f"- **Sales:** {format_money(bucket.sales_total)} ({bucket.sales_count:g})")
        for detail in bucket.sales_details[:max_invoices]:
            items = ", ".join(f"{item.qty:g}× {item.name}" for item in detail.items[:max_items])
            extra = len(detail.items) - max_items
            if extra > 0:
                items += f", +{extra} item(s)"
            customer = f" · {detail.customer}" if detail.customer else ""
            line = f"  - #{detail.invoice}{customer}: {format_money(detail.total)}"
            lines.append(f"{line} ({items})" if items else line)
        lines.append("")
    return "\n".join(lines)


def write_activity_artifacts(buckets: Sequence[DayBucket], output_dir: Path, *, date_from: Optional[str], date_to: Optional[str]) -> Dict[str, Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / "activity.json"
    json_path.write_text(
        json.dumps(build_activity_payload(buckets, date_from=date_from, date_to=date_to), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    csv_path = output_dir / "activity_days.csv"
    dataframe_to_csv(buckets_to_frame(buckets), csv_path)
    md_path = output_dir / "activity_report.md"
    md_path.write_text(build_activity_markdown(buckets), encoding="utf-8")
    return {"json": json_path, "csv": csv_path, "markdown": md_path}
