import json

import pytest
import requests

from Profit_analytics.config import OllamaConfig
from Profit_analytics.llm import (
    LLMError,
    OllamaClient,
    build_advisor_payload,
    extract_json_object,
    generate_recommendations,
)
from Profit_analytics.profit import ProfitRow


def _row(key: str, margin: float, **extra) -> ProfitRow:
    values = dict(
        key=key,
        name=f"Producto {key}",
        sku=None,
        qty=1.0,
        revenue=100.0,
        unit_cost=None,
        cost_basis="fallback",
        cost_total=100.0 - margin,
        margin=margin,
        margin_pct=margin,
    )
    values.update(extra)
    return ProfitRow(**values)


def test_extract_json_object_ignores_surrounding_prose() -> None:
    assert extract_json_object('Aquí tienes: {"items": [{"a": {"b": 1}}]} ¡listo!') == {"items": [{"a": {"b": 1}}]}


@pytest.mark.parametrize("text", ["", "sin llaves", "} al revés {", '{"a": }', "[1, 2]"])
def test_extract_json_object_rejects_bad_text(text) -> None:
    with pytest.raises(LLMError):
        extract_json_object(text)


def test_chat_posts_to_api_chat(chat_session) -> None:
    session = chat_session(["hola"])
    config = OllamaConfig(base_url="http://ollama.test:11434/", model="tiny", temperature=0.5)
    client = OllamaClient(config, session=session)

    assert client.chat("sys", "usr", num_ctx=512) == "hola"

    call = session.calls[0]
    assert call["url"] == "http://ollama.test:11434/api/chat"
    assert call["json"]["model"] == "tiny"
    assert call["json"]["options"] == {"temperature": 0.5, "num_ctx": 512}
    assert call["json"]["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "usr"},
    ]
    assert call["timeout"] == 60.0


def test_chat_reads_streamed_ndjson(make_response) -> None:
    lines = [
        json.dumps({"message": {"content": '{"items":'}, "done": False}).encode(),
        b"",
        b"not json",
        json.dumps({"message": {"content": " []}"}, "done": True}).encode(),
        json.dumps({"message": {"content": "ignored"}}).encode(),
    ]

    class _Session:
        def post(self, url, **kwargs):
            assert kwargs["stream"] is True
            return make_response({}, lines=lines)

    client = OllamaClient(OllamaConfig(stream=True), session=_Session())
    assert client.chat("s", "u") == '{"items": []}'


def test_streamed_response_is_closed_after_done_and_on_error(make_response) -> None:
    responses = [
        make_response({}, lines=[json.dumps({"message": {"content": "ok"}, "done": True}).encode(), b"{}"]),
        make_response("overloaded", status_code=503),
    ]

    class _Session:
        def __init__(self):
            self.pending = list(responses)

        def post(self, url, **kwargs):
            return self.pending.pop(0)

    client = OllamaClient(OllamaConfig(stream=True), session=_Session())
    assert client.chat("s", "u") == "ok"
    assert responses[0].closed is True

    with pytest.raises(LLMError, match="503"):
        client.chat("s", "u")
    assert responses[1].closed is True


def test_chat_accepts_generate_style_response(make_response) -> None:
    class _Session:
        def post(self, url, **kwargs):
            return make_response({"response": "texto"})

    assert OllamaClient(OllamaConfig(), session=_Session()).chat("s", "u") == "texto"


def test_chat_wraps_transport_and_status_errors(chat_session) -> None:
    failing = chat_session([requests.Timeout("timed out")])
    with pytest.raises(LLMError, match="timed out"):
        OllamaClient(OllamaConfig(), session=failing).chat("s", "u")

    bad_status = chat_session(["x"], status_code=503)
    with pytest.raises(LLMError, match="503"):
        OllamaClient(OllamaConfig(), session=bad_status).chat("s", "u")


def test_advisor_payload_ranks_winners_losers_and_gaps() -> None:
    rows = [_row(str(i), margin=float(i - 3)) for i in range(8)]
    rows.append(_row("gap", 10.0, my_price=100.0, competitor_price=90.0, price_gap_pct=10.0))
    payload = build_advisor_payload(rows)

    assert [item["name"] for item in payload["winners"]] == [
        "Producto gap",
        "Producto 7",
        "Producto 6",
        "Producto 5",
        "Producto 4",
    ]
    assert [item["loss"] for item in payload["losers"]] == [-3.0, -2.0, -1.0]
    assert payload["priceGaps"] == [{"name": "Producto gap", "myPrice": 100.0, "comp": 90.0, "gapPct": 10.0}]
    assert payload["kpis"]["products"] == 9


def test_generate_recommendations_returns_text(chat_session) -> None:
    session = chat_session(["  - Sube precios\n"])
    client = OllamaClient(OllamaConfig(), session=session)
    text = generate_recommendations([_row("1", 5.0)], client)

    assert text == "- Sube precios"
    call = session.calls[0]
    assert call["json"]["options"]["num_ctx"] == 1024
    assert '"kpis"' in call["json"]["messages"][1]["content"]


def test_generate_recommendations_degrades_to_none(chat_session, capsys) -> None:
    client = OllamaClient(OllamaConfig(), session=chat_session([requests.ConnectionError("refused")]))
    assert generate_recommendations([_row("1", 5.0)], client) is None
    assert "[AI]" in capsys.readouterr().out
    assert generate_recommendations([], client) is None
