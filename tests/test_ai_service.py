from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from timeboxing.core.config import Settings
from timeboxing.services.ai_service import (
    COCO_INSTRUCTION,
    FRIENDLY_ERROR_MESSAGE,
    AIService,
    AIServiceError,
    build_ads_summary_prompt,
    clean_ai_response,
    generate_ads_summary,
)

OPENROUTER_URL = "https://openrouter.test/chat"
COCO_URL = "https://coco.test/api"


def _settings(**overrides: object) -> Settings:
    values = {
        "gemini_api_key": None,
        "openrouter_api_key": None,
        "openrouter_api_url": OPENROUTER_URL,
        "openrouter_models": ["model-a", "model-b", "model-c"],
        "openrouter_batch_size": 2,
        "coco_api_url": COCO_URL,
        "ai_max_prompt_length": 20,
    }
    values.update(overrides)
    return Settings(**values)


class FakeGemini:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.calls: list[dict] = []
        self._text = text
        self._error = error
        self.models = SimpleNamespace(generate_content=self.generate_content)

    def generate_content(self, **kwargs: object) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self._error is not None:
            raise self._error
        return SimpleNamespace(text=self._text)


def _http(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_clean_ai_response_strips_markdown_and_html() -> None:
    raw = "**Bold**\n* item\n- other\n\n\n\nend<br>"

    assert clean_ai_response(raw) == "Bold\n• item\n• other\n\nend"


def test_gemini_is_used_first_when_configured() -> None:
    gemini = FakeGemini(text="Resumen")
    service = AIService(
        _settings(gemini_api_key="g-key", gemini_model="gemini-test", ai_temperature=0.3),
        http_client=_http(lambda request: httpx.Response(500)),
        gemini_client=gemini,
    )

    result = service.call_with_fallback("prompt")

    assert (result.provider, result.model_name, result.text) == ("gemini", "gemini-test", "Resumen")
    assert gemini.calls[0]["model"] == "gemini-test"
    assert gemini.calls[0]["contents"] == "prompt"
    assert gemini.calls[0]["config"].temperature == 0.3


def test_openrouter_tries_batches_until_one_answers() -> None:
    seen: list[list[str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body["models"])
        assert request.headers["Authorization"] == "Bearer or-key"
        assert request.headers["X-Title"] == "Timeboxing App"
        if body["models"] == ["model-a", "model-b"]:
            return httpx.Response(429, json={"error": "rate limited"})
        return httpx.Response(200, json={"model": "model-c", "choices": [{"message": {"content": "Hola"}}]})

    service = AIService(
        _settings(gemini_api_key="g-key", openrouter_api_key="or-key"),
        http_client=_http(handler),
        gemini_client=FakeGemini(error=RuntimeError("quota")),
    )

    result = service.call_with_fallback("prompt", context="test")

    assert seen == [["model-a", "model-b"], ["model-c"]]
    assert (result.provider, result.model_name, result.text) == ("openrouter", "model-c", "Hola")


def test_coco_is_the_last_resort() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url).startswith(OPENROUTER_URL):
            return httpx.Response(200, json={"choices": []})
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={"data": "**Resumen** listo<br>fin"})

    service = AIService(_settings(openrouter_api_key="or-key"), http_client=_http(handler))

    result = service.call_with_fallback("a prompt that is longer than twenty characters")

    assert (result.provider, result.model_name) == ("coco", "Coco Custom")
    assert result.text == "Resumen listo\nfin"
    assert captured["message"] == COCO_INSTRUCTION + "a prompt that is lon"
    assert captured["language"] == "es"


def test_all_providers_failing_raises() -> None:
    service = AIService(_settings(), http_client=_http(lambda request: httpx.Response(200, json={"data": "ok"})))

    with pytest.raises(AIServiceError):
        service.call_with_fallback("prompt")


def test_generate_ads_summary_returns_friendly_message_on_failure() -> None:
    service = AIService(_settings(), http_client=_http(lambda request: httpx.Response(503)))

    assert generate_ads_summary("Acme", [], 0, 0, service=service) == FRIENDLY_ERROR_MESSAGE


def test_generate_ads_summary_cleans_the_answer() -> None:
    service = AIService(
        _settings(gemini_api_key="g-key"),
        http_client=_http(lambda request: httpx.Response(503)),
        gemini_client=FakeGemini(text="**CPA** correcto\n- Pausar campaña"),
    )

    summary = generate_ads_summary("Acme", [], 100, 4, service=service)

    assert summary == "CPA correcto\n• Pausar campaña"


def test_ads_summary_prompt_includes_campaign_metrics() -> None:
    campaigns = [
        {
            "campaign_name": "Brand",
            "status": "ENABLED",
            "cost": 100,
            "clicks": 50,
            "impressions": 1000,
            "conversions": 4,
        }
    ]

    prompt = build_ads_summary_prompt("Acme", campaigns, 100, 4)

    assert 'Estás analizando la cuenta: "Acme"' in prompt
    assert "Inversión Total: 100.00€" in prompt
    assert "CTR: 5.00%" in prompt
    assert "CPA: 25.00€" in prompt
    assert "No hay datos detallados" in build_ads_summary_prompt("Acme", [], None, None)


def test_ads_summary_prompt_cleans_names_and_formats_counts() -> None:
    campaigns = [
        {
            "campaign_name": "<script>Promo</script> " + "x" * 200,
            "status": "ENABLED",
            "cost": 10,
            "clicks": 1200,
            "impressions": 45000,
            "conversions": 2.5,
        }
    ]

    prompt = build_ads_summary_prompt(" <Acme> ", campaigns, 10, 2.5)

    assert 'Estás analizando la cuenta: "Acme"' in prompt
    assert "<" not in prompt
    assert "scriptPromo/script" in prompt
    assert "x" * 80 not in prompt
    assert "Impresiones: 45.000 | Clicks: 1.200" in prompt
    assert "Conversiones: 2,5 |" in prompt
