"""Public API for the Profit_analytics package."""

from .activity import DayBucket, fetch_recent_activity, merge_day_buckets
from .catalog import CatalogEntry, CatalogSnapshot
from .client import ReportClient, ReportServiceError, fetch_sales_by_product
from .competitors import (
    CompetitorFileError,
    CompetitorPrices,
    DeterministicFallbackEstimator,
    RemoteEstimator,
    load_competitor_file,
    simulate_competitor_prices,
)
from .config import AnalysisSettings, ApiConfig, OllamaConfig
from .fields import get_field, get_number
from .pipeline import ActivityPipeline, ProfitAnalysisPipeline
from .profit import ProfitRow, apply_competitor_prices, build_profit_rows, summary_kpis
from .values import round2, to_num

__all__ = [
    "ActivityPipeline",
    "AnalysisSettings",
    "ApiConfig",
    "CatalogEntry",
    "CatalogSnapshot",
    "CompetitorFileError",
    "CompetitorPrices",
    "DayBucket",
    "DeterministicFallbackEstimator",
    "OllamaConfig",
    "ProfitAnalysisPipeline",
    "ProfitRow",
    "RemoteEstimator",
    "ReportClient",
    "ReportServiceError",
    "apply_competitor_prices",
    "build_profit_rows",
    "fetch_recent_activity",
    "fetch_sales_by_product",
    "get_field",
    "get_number",
    "load_competitor_file",
    "merge_day_buckets",
    "round2",
    "simulate_competitor_prices",
    "summary_kpis",
    "to_num",
]
