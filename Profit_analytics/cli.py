"""Command line entry point for profit and activity runs."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from Profit_analytics.client import ReportClient, ReportServiceError
from Profit_analytics.competitors import CompetitorFileError
from Profit_analytics.config import AnalysisSettings, ApiConfig, OllamaConfig
from Profit_analytics.pipeline import ActivityPipeline, ProfitAnalysisPipeline
from Profit_analytics.ranges import ACTIVITY_RANGES, PROFIT_RANGES, activity_range, quick_range
from Profit_analytics.reporting import format_money


def _add_api_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--api-base", help="Base URL of the business API (default http://127.0.0.1:5000).")
    parser.add_argument("--api-token-env", help="Environment variable holding the bearer token.")
    parser.add_argument("--output", type=Path, default=Path("reports"), help="Directory for artifacts.")
    parser.add_argument("--from", dest="date_from", help="Start date (YYYY-MM-DD).")
    parser.add_argument("--to", dest="date_to", help="End date (YYYY-MM-DD).")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Profit, competitiveness and activity reports.")
    sub = parser.add_subparsers(dest="command", required=True)

    profit = sub.add_parser("profit", help="Margin, price gap and KPI analysis per product.")
    _add_api_args(profit)
    profit.add_argument("--config", type=Path, help="JSON configuration file (overrides other flags).")
    profit.add_argument("--range", choices=PROFIT_RANGES, help="Quick date range.")
    profit.add_argument("--fallback-cost", default="0.60", help="Cost as a fraction of revenue when unknown.")
    profit.add_argument("--competitors", type=Path, help="Spreadsheet (xlsx/csv) with competitor prices.")
    profit.add_argument("--no-simulate", action="store_true", help="Skip simulated competitor prices.")
    profit.add_argument("--no-ai", action="store_true", help="Skip AI recommendations.")
    profit.add_argument("--no-visuals", action="store_true", help="Skip chart generation.")
    profit.add_argument("--ollama-base", help="Base URL of the local Ollama server.")
    profit.add_argument("--ollama-model", help="Model used for estimates and recommendations.")

    activity = sub.add_parser("activity", help="Day-bucketed stock movements and sales.")
    _add_api_args(activity)
    activity.add_argument("--range", choices=ACTIVITY_RANGES, default="today", help="Quick date range.")

    return parser.parse_args(argv)


def _api_config(args: argparse.Namespace) -> ApiConfig:
    config = ApiConfig()
    if args.api_base:
        config.base_url = args.api_base
    if args.api_token_env:
        config.token_env = args.api_token_env
    return config


def _build_settings(args: argparse.Namespace) -> AnalysisSettings:
    date_from, date_to = args.date_from, args.date_to
    if args.range:
        date_from, date_to = quick_range(args.range)
    ollama = OllamaConfig.from_env()
    if args.ollama_base:
        ollama.base_url = args.ollama_base
    if args.ollama_model:
        ollama.model = args.ollama_model
    return AnalysisSettings(
        date_from=date_from,
        date_to=date_to,
        fallback_cost_pct=args.fallback_cost,
        output_dir=args.output,
        competitor_file=args.competitors,
        simulate_competitors=not args.no_simulate,
        ai_recommendations=not args.no_ai,
        include_visuals=not args.no_visuals,
        api=_api_config(args),
        ollama=ollama,
    )


def run_profit(args: argparse.Namespace) -> int:
    if args.config:
        pipeline = ProfitAnalysisPipeline.from_config_file(args.config)
    else:
        pipeline = ProfitAnalysisPipeline(_build_settings(args))
    results = pipeline.run()

    kpis = results["kpis"]
    rows = results["rows"]
    print(f"\nRun completed -> {pipeline.settings.output_dir}")
    for key in ("revenue", "cost", "margin"):
        print(f"  {key.title():25s} {format_money(kpis[key])}")
    print(f"  {'Margin %':25s} {kpis['margin_pct']:.1f}%")
    print(f"  {'Profitable':25s} {kpis['profitable']}/{len(rows)}")
    print(f"  {'Loss leaders':25s} {kpis['loss_leaders']}")
    print(f"  Summary JSON: {results['summary_path']}")
    return 0


def run_activity(args: argparse.Namespace) -> int:
    date_from, date_to = args.date_from, args.date_to
    if not (date_from or date_to):
        date_from, date_to = activity_range(args.range)
    pipeline = ActivityPipeline(
        args.output,
        client=ReportClient(_api_config(args)),
        date_from=date_from,
        date_to=date_to,
    )
    results = pipeline.run()
    print(f"  Activity report: {results['markdown_path']}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        if args.command == "profit":
            return run_profit(args)
        return run_activity(args)
    except ReportServiceError as exc:
        print(f"[Report] {exc}")
        return 1
    except CompetitorFileError as exc:
        print(f"[Competitors] {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
