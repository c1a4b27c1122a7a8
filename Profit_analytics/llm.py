"""Local chat model client (Ollama ``/api/chat``) and pricing recommendations."""

from __future__ import annotations

import json
from contextlib import closing
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from Profit_analytics.config import OllamaConfig
from Profit_analytics.profit import ProfitRow, display_margin, display_margin_pct, summary_kpis


class LLMError(RuntimeError):
    """Raised when the chat endpoint fails or returns unusable content."""


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the substring between the first ``{`` and the last ``}``."""

    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end < start:
        raise LLMError("Response did not contain a JSON object.")
    try:
        payload = json.loads(text[start : end + 1])
    except ValueError as exc:
        raise LLMError(f"Malformed JSON in response: {exc}") from exc
    if not isinstance(payload, dict):
        raise LLMError("Response JSON is not an object.")
    return payload


def _content_from_payload(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    message = payload.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    response = payload.get("response")
    return response if isinstance(response, str) else ""


class OllamaClient:
    """Minimal ``requests`` client for a local Ollama server."""

    def __init__(self, config: OllamaConfig, session: Optional[Any] = None) -> None:
        self.config = config
        self.session = session if session is not None else requests.Session()

    @property
    def chat_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/api/chat"

    @staticmethod
    def _check_status(resp: Any) -> None:
        if not 200 <= resp.status_code < 300:
            raise LLMError(f"Chat endpoint returned {resp.status_code}: {resp.text[:300]}")

    def _read_stream(self, resp: Any) -> str:
        parts: List[str] = []
        for line in resp.iter_lines():
            if not line:
                continue
            if isinstance(line, bytes):
                line = line.decode("utf-8")
            try:
                chunk = json.loads(line)
            except ValueError:
                continue
            parts.append(_content_from_payload(chunk))
            if isinstance(chunk, dict) and chunk.get("done"):
                break
        return "".join(parts)

    def chat(self, system: str, user: str, *, num_ctx: Optional[int] = None) -> str:
        body = {
            "model": self.config.model,
            "stream": self.config.stream,
            "options": {
                "temperature": self.config.temperature,
                "num_ctx": num_ctx or self.config.num_ctx,
            },
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        try:
            resp = self.session.post(
                self.chat_url,
                json=body,
                timeout=self.config.timeout,
                stream=self.config.stream,
            )
        except requests.RequestException as exc:
            raise LLMError(f"Chat request to {self.chat_url} failed: {exc}") from exc
        if self.config.stream:
            # the connection stays checked out until a streamed body is closed
            with closing(resp):
                self._check_status(resp)
                return self._read_stream(resp)
        self._check_status(resp)
        try:
            return _content_from_payload(resp.json())
        except ValueError as exc:
            raise LLMError(f"Chat endpoint returned non-JSON body: {exc}") from exc


def build_advisor_payload(rows: Sequence[ProfitRow], *, top_n: int = 5, max_gaps: int = 80) -> Dict[str, Any]:
    winners = sorted((row for row in rows if display_margin(row) > 0), key=display_margin, reverse=True)
    losers = sorted((row for row in rows if display_margin(row) < 0), key=display_margin)
    gaps = [row for row in rows if row.price_gap_pct is not None][:max_gaps]
    return {
        "kpis": summary_kpis(rows),
        "winners": [
            {"name": row.name, "margin": display_margin(row), "marginPct": round(display_margin_pct(row), 1)}
            for row in winners[:top_n]
        ],
        "losers": [
            {"name": row.name, "loss": display_margin(row), "marginPct": round(display_margin_pct(row), 1)}
            for row in losers[:top_n]
        ],
        "priceGaps": [
            {
                "name": row.name,
                "myPrice": row.my_price,
                "comp": row.competitor_price,
                "gapPct": round(row.price_gap_pct, 1),  # type: ignore[arg-type]
            }
            for row in gaps
        ],
    }


def generate_recommendations(rows: Iterable[ProfitRow], client: OllamaClient) -> Optional[str]:
    """Ask the chat model for pricing actions; ``None`` when unavailable."""

    materialized = list(rows)
    if not materialized:
        return None
    config = client.config
    payload = build_advisor_payload(materialized)
    prompt = config.advisor_prompt_template.format(payload=json.dumps(payload, ensure_ascii=False))
    try:
        text = client.chat(config.advisor_system_prompt, prompt, num_ctx=config.advisor_num_ctx)
    except LLMError as exc:
        print(f"[AI] Recommendations unavailable: {exc}")
        return None
    text = text.strip()
    return text or None
