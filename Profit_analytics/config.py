"""Configuration models for the profit & competitiveness analytics."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import MutableMapping, Optional


DEFAULT_SIMULATION_SYSTEM_PROMPT = (
    "Eres analista de pricing en retail en Nicaragua. Genera precios plausibles de la competencia."
)

DEFAULT_SIMULATION_PROMPT_TEMPLATE = """Para cada producto, estima un precio típico de competidor en córdobas (NIO).
Reglas:
- Usa NIO (números), no strings con moneda.
- Varía entre -20% y +20% del precio propio (premium tiende a +10–20%).
- Si myPrice es null, devuelve 100–1500 NIO según nombre.
- Devuelve SOLO JSON válido:
{{"items":[{{"key":"sku:abc-123"|"name:camisa básica","price":123.45}},...]}}

Productos:
{products}"""

DEFAULT_ADVISOR_SYSTEM_PROMPT = (
    "Eres analista financiero y de pricing para pymes. Da recomendaciones claras y accionables."
)

DEFAULT_ADVISOR_PROMPT_TEMPLATE = (
    "Con estos datos JSON, escribe 4–6 acciones concretas (viñetas) y un breve resumen. "
    "Español, conciso.\n{payload}"
)


@dataclass(slots=True)
class ApiConfig:
    """Connection settings for the business reporting API."""

    base_url: str = "http://127.0.0.1:5000"
    token_env: str = "PROFIT_API_TOKEN"
    timeout: float = 15.0
    catalog_page_size: int = 10000
    report_limit: int = 100000

    def token(self) -> Optional[str]:
        value = os.getenv(self.token_env, "").strip()
        return value or None


@dataclass(slots=True)
class OllamaConfig:
    """Settings for the local chat model used for pricing estimates and advice."""

    base_url: str = "http://localhost:11434"
    model: str = "qwen2.5:3b-instruct"
    temperature: float = 0.2
    num_ctx: int = 2048
    advisor_num_ctx: int = 1024
    timeout: float = 60.0
    batch_size: int = 80
    stream: bool = False
    simulation_system_prompt: str = DEFAULT_SIMULATION_SYSTEM_PROMPT
    simulation_prompt_template: str = DEFAULT_SIMULATION_PROMPT_TEMPLATE
    advisor_system_prompt: str = DEFAULT_ADVISOR_SYSTEM_PROMPT
    advisor_prompt_template: str = DEFAULT_ADVISOR_PROMPT_TEMPLATE

    @classmethod
    def from_env(cls) -> "OllamaConfig":
        config = cls()
        base = os.getenv("OLLAMA_BASE", "").strip()
        if base:
            config.base_url = base
        model = os.getenv("OLLAMA_MODEL", "").strip()
        if model:
            config.model = model
        return config


@dataclass(slots=True)
class AnalysisSettings:
    """Execution parameters for a profit & competitiveness run."""

    date_from: Optional[str] = None
    date_to: Optional[str] = None
    fallback_cost_pct: str = "0.60"
    output_dir: Path = Path("reports")
    competitor_file: Optional[Path] = None
    simulate_competitors: bool = True
    ai_recommendations: bool = True
    include_visuals: bool = True
    api: ApiConfig = field(default_factory=ApiConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig.from_env)

    def resolve_paths(self) -> None:
        self.output_dir = self.output_dir.expanduser().resolve()
        if self.competitor_file is not None:
            self.competitor_file = self.competitor_file.expanduser().resolve()

    def ensure_output_tree(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        (self.output_dir / "figures").mkdir(exist_ok=True)


def _sub_config(payload: object, cls):
    config = cls.from_env() if hasattr(cls, "from_env") else cls()
    if isinstance(payload, MutableMapping):
        for key in cls.__dataclass_fields__.keys():
            if key in payload:
                setattr(config, key, payload[key])
    return config


def settings_from_dict(payload: MutableMapping[str, object], *, base_path: Path | None = None) -> AnalysisSettings:
    """Create :class:`AnalysisSettings` from a dictionary (e.g., parsed JSON)."""

    if not isinstance(payload, MutableMapping):
        raise ValueError("configuration payload must be a JSON object")
    base = base_path or Path.cwd()

    output_dir_value = payload.get("output_dir")
    competitor_value = payload.get("competitor_file")

    settings = AnalysisSettings(
        date_from=str(payload["from"]) if payload.get("from") else None,
        date_to=str(payload["to"]) if payload.get("to") else None,
        fallback_cost_pct=str(payload.get("fallback_cost_pct", "0.60")),
        output_dir=Path(output_dir_value) if output_dir_value else Path("reports"),
        competitor_file=Path(competitor_value) if competitor_value else None,
        simulate_competitors=bool(payload.get("simulate_competitors", True)),
        ai_recommendations=bool(payload.get("ai_recommendations", True)),
        include_visuals=bool(payload.get("include_visuals", True)),
        api=_sub_config(payload.get("api"), ApiConfig),
        ollama=_sub_config(payload.get("ollama"), OllamaConfig),
    )
    if not settings.output_dir.is_absolute():
        settings.output_dir = base / settings.output_dir
    if settings.competitor_file is not None and not settings.competitor_file.is_absolute():
        settings.competitor_file = base / settings.competitor_file
    settings.resolve_paths()
    return settings
