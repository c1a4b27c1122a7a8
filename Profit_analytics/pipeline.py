"""High-level orchestration of profit and activity runs."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

from Profit_analytics.activity import fetch_recent_activity
from Profit_analytics.catalog import CatalogSnapshot, load_catalog
from Profit_analytics.client import ReportClient, ReportResult, fetch_sales_by_product
from Profit_analytics.competitors import (
    CompetitorPrices,
    PriceEstimator,
    RemoteEstimator,
    load_competitor_file,
    simulate_competitor_prices,
)
from Profit_analytics.config import AnalysisSettings, settings_from_dict
from Profit_analytics.llm import OllamaClient, generate_recommendations
from Profit_analytics.profit import (
    all_zero,
    apply_competitor_prices,
    build_profit_rows,
    rows_to_frame,
    summary_kpis,
)
from Profit_analytics.reporting import (
    build_markdown_report,
    build_summary_payload,
    dataframe_to_csv,
    write_activity_artifacts,
)
from Profit_analytics.visualization import generate_visuals


def zero_report_warning(report: ReportResult) -> str:
    sample = report.sample
    sample_text = json.dumps(sample, ensure_ascii=False) if isinstance(sample, (dict, list)) else str(sample)
    return (
        "The report returned zero quantities and revenue for every product. "
        f"Columns: {json.dumps(report.columns)}. Sample row: {sample_text}."
    )


class ProfitAnalysisPipeline:
    """Run the profit & competitiveness analysis end to end."""

    def __init__(
        self,
        settings: AnalysisSettings,
        *,
        client: Optional[ReportClient] = None,
        ollama: Optional[OllamaClient] = None,
        estimator: Optional[PriceEstimator] = None,
    ) -> None:
        self.settings = settings
        self.settings.resolve_paths()
        self.settings.ensure_output_tree()
        self.client = client or ReportClient(settings.api)
        self.ollama = ollama or OllamaClient(settings.ollama)
        self.estimator = estimator or RemoteEstimator(self.ollama)

    @classmethod
    def from_config_file(cls, path: Path, **kwargs: Any) -> "ProfitAnalysisPipeline":
        payload = json.loads(path.read_text(encoding="utf-8"))
        settings = settings_from_dict(payload, base_path=path.parent)
        return cls(settings, **kwargs)

    def _competitor_prices(self, rows) -> CompetitorPrices:
        prices = CompetitorPrices()
        if self.settings.simulate_competitors and rows:
            simulated = simulate_competitor_prices(
                rows, self.estimator, batch_size=self.settings.ollama.batch_size
            )
            print(f"[Competitors] Simulated {len(simulated)} competitor prices.")
            prices = prices.merged(simulated)
        if self.settings.competitor_file is not None:
            imported = load_competitor_file(self.settings.competitor_file)
            print(f"[Competitors] Loaded {len(imported)} prices from {self.settings.competitor_file.name}.")
            prices = prices.merged(imported)
        return prices

    def run(self) -> Dict[str, object]:
        settings = self.settings
        output_dir = settings.output_dir

        catalog: CatalogSnapshot = load_catalog(self.client)
        print(f"[Catalog] {len(catalog)} products loaded.")

        report = fetch_sales_by_product(self.client, settings.date_from, settings.date_to)
        print(f"[Report] {len(report.rows)} sales rows (groupBy={report.request.get('groupBy')}).")

        rows = build_profit_rows(report.columns, report.rows, catalog, settings.fallback_cost_pct)
        prices = self._competitor_prices(rows)
        rows = apply_competitor_prices(rows, prices)
        kpis = summary_kpis(rows)

        warnings = [zero_report_warning(report)] if all_zero(rows) else []
        for warning in warnings:
            print(f"[Report] {warning}")

        recommendations = None
        if settings.ai_recommendations and rows:
            recommendations = generate_recommendations(rows, self.ollama)

        figures: Dict[str, str] = {}
        if settings.include_visuals and rows:
            figures = generate_visuals(rows, output_dir)

        summary_payload = build_summary_payload(
            settings=settings,
            rows=rows,
            kpis=kpis,
            catalog_size=len(catalog),
            competitor_count=len(prices),
            report=report,
            warnings=warnings,
            recommendations=recommendations,
        )
        summary_path = output_dir / "profit_summary.json"
        summary_path.write_text(json.dumps(summary_payload, indent=2, ensure_ascii=False), encoding="utf-8")

        report_path = output_dir / "profit_report.md"
        report_path.write_text(
            build_markdown_report(
                settings=settings,
                rows=rows,
                kpis=kpis,
                catalog_size=len(catalog),
                competitor_count=len(prices),
                warnings=warnings,
                recommendations=recommendations,
            ),
            encoding="utf-8",
        )

        rows_path = output_dir / "profit_rows.csv"
        dataframe_to_csv(rows_to_frame(rows), rows_path)
        prices_path = output_dir / "competitor_prices.csv"
        dataframe_to_csv(prices.to_frame(), prices_path)

        settings_snapshot = asdict(settings)
        settings_snapshot["output_dir"] = str(settings.output_dir)
        settings_snapshot["competitor_file"] = str(settings.competitor_file) if settings.competitor_file else None

        return {
            "settings": settings_snapshot,
            "catalog": catalog,
            "report": report,
            "rows": rows,
            "competitor_prices": prices,
            "kpis": kpis,
            "warnings": warnings,
            "recommendations": recommendations,
            "figures": figures,
            "summary_path": summary_path,
            "report_path": report_path,
            "rows_path": rows_path,
            "prices_path": prices_path,
        }


class ActivityPipeline:
    """Fetch and write the day-bucketed activity summary."""

    def __init__(
        self,
        output_dir: Path,
        *,
        client: ReportClient,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> None:
        self.output_dir = output_dir.expanduser().resolve()
        self.client = client
        self.date_from = date_from
        self.date_to = date_to

    def run(self) -> Dict[str, object]:
        buckets = fetch_recent_activity(self.client, self.date_from, self.date_to)
        print(f"[Activity] {len(buckets)} day(s) with activity between {self.date_from} and {self.date_to}.")
        paths = write_activity_artifacts(buckets, self.output_dir, date_from=self.date_from, date_to=self.date_to)
        return {"buckets": buckets, **{f"{key}_path": path for key, path in paths.items()}}
