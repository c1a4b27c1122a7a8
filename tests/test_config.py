from __future__ import annotations

from pathlib import Path

import pytest

from Profit_analytics.config import AnalysisSettings, ApiConfig, OllamaConfig, settings_from_dict


def test_settings_from_dict_resolves_relative_paths(tmp_path):
    payload = {
        "from": "2024-01-01",
        "to": "2024-01-31",
        "fallback_cost_pct": "0,55",
        "output_dir": "out",
        "competitor_file": "data/competencia.xlsx",
        "simulate_competitors": False,
        "ai_recommendations": False,
        "api": {"base_url": "http://erp.local:8080", "timeout": 5},
        "ollama": {"model": "llama3.2:3b", "batch_size": 40},
    }
    settings = settings_from_dict(payload, base_path=tmp_path)

    assert settings.date_from == "2024-01-01"
    assert settings.date_to == "2024-01-31"
    assert settings.fallback_cost_pct == "0,55"
    assert settings.output_dir == (tmp_path / "out").resolve()
    assert settings.competitor_file == (tmp_path / "data" / "competencia.xlsx").resolve()
    assert settings.simulate_competitors is False
    assert settings.ai_recommendations is False
    assert settings.include_visuals is True
    assert settings.api.base_url == "http://erp.local:8080"
    assert settings.api.timeout == 5
    assert settings.api.token_env == "PROFIT_API_TOKEN"
    assert settings.ollama.model == "llama3.2:3b"
    assert settings.ollama.batch_size == 40
    assert settings.ollama.base_url == "http://localhost:11434"


def test_settings_defaults(tmp_path):
    settings = settings_from_dict({}, base_path=tmp_path)
    assert settings.date_from is None
    assert settings.fallback_cost_pct == "0.60"
    assert settings.output_dir == (tmp_path / "reports").resolve()
    assert settings.competitor_file is None


def test_settings_from_dict_rejects_non_mapping():
    with pytest.raises(ValueError):
        settings_from_dict(["not", "a", "mapping"])  # type: ignore[arg-type]


def test_ollama_config_reads_environment(monkeypatch):
    monkeypatch.setenv("OLLAMA_BASE", "http://gpu-box:11434")
    monkeypatch.setenv("OLLAMA_MODEL", "mistral")
    config = OllamaConfig.from_env()
    assert config.base_url == "http://gpu-box:11434"
    assert config.model == "mistral"
    assert AnalysisSettings().ollama.model == "mistral"


def test_api_token_is_optional(monkeypatch):
    config = ApiConfig(token_env="MY_TOKEN")
    monkeypatch.delenv("MY_TOKEN", raising=False)
    assert config.token() is None
    monkeypatch.setenv("MY_TOKEN", "  abc  ")
    assert config.token() == "abc"


def test_ensure_output_tree_creates_figures_dir(tmp_path):
    settings = AnalysisSettings(output_dir=tmp_path / "run")
    settings.resolve_paths()
    settings.ensure_output_tree()
    assert (tmp_path / "run" / "figures").is_dir()
    assert isinstance(settings.output_dir, Path)
