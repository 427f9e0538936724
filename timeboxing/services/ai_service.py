"""Text generation with provider fallback: Gemini, OpenRouter, then Coco."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

import httpx
from google import genai
from google.genai import types as genai_types

from timeboxing.core.config import Settings, get_settings
from timeboxing.core.errors import handle_error
from timeboxing.services.formatting import format_number, sanitize_string, truncate

logger = logging.getLogger(__name__)

APP_TITLE = "Timeboxing App"
COCO_INSTRUCTION = "Responde breve y claro en texto plano (sin markdown): "
COCO_MODEL_NAME = "Coco Custom"
COCO_MIN_LENGTH = 5
PROMPT_NAME_LENGTH = 80
FRIENDLY_ERROR_MESSAGE = (
    "Lo siento, hubo un error al conectar con los servicios de IA para generar el análisis. "
    "Por favor, verifica tu conexión o intenta más tarde."
)


class AIServiceError(RuntimeError):
    """Raised when every configured provider failed."""


@dataclass(frozen=True, slots=True)
class AIResponse:
    text: str
    provider: str
    model_name: str


def clean_ai_response(text: str) -> str:
    """Strip markdown emphasis, code blocks and HTML; normalise bullets."""

    cleaned = text.replace("**", "")
    cleaned = re.sub(r"^\*\s+", "• ", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r"^-\s+", "• ", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r" {2,}", " ", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    cleaned = re.sub(r"```[\s\S]*?```", "", cleaned)
    cleaned = re.sub(r"<[^>]*>", "", cleaned)
    return cleaned.strip()


def _clean_coco_text(text: str) -> str:
    cleaned = text.replace("```", "")
    cleaned = re.sub(r"<br\s*/?>", "\n", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"<[^>]*>", "", cleaned)
    cleaned = re.sub(r"^\s*[*\-]\s*$", "", cleaned, flags=re.MULTILINE)
    cleaned = cleaned.replace("**", "")
    cleaned = re.sub(r"\*\s*\n", "\n", cleaned)
    cleaned = re.sub(r"^\*\s*", "- ", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def _chunks(items: Sequence[str], size: int) -> list[list[str]]:
    return [list(items[index : index + size]) for index in range(0, len(items), size)]


class AIService:
    """Try each configured provider in order and return the first answer."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        http_client: httpx.Client | None = None,
        gemini_client: genai.Client | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.http = http_client or httpx.Client(timeout=self.settings.http_timeout_seconds)
        self._gemini_client = gemini_client

    def _gemini(self) -> genai.Client:
        if self._gemini_client is None:
            self._gemini_client = genai.Client(api_key=self.settings.gemini_api_key)
        return self._gemini_client

    # ---------- Providers ----------
    def call_gemini(self, prompt: str) -> AIResponse:
        model_name = self.settings.gemini_model
        response = self._gemini().models.generate_content(
            model=model_name,
            contents=prompt,
            config=genai_types.GenerateContentConfig(temperature=self.settings.ai_temperature),
        )
        if not response.text:
            raise AIServiceError("Gemini returned an empty response.")
        return AIResponse(text=response.text, provider="gemini", model_name=model_name)

    def call_openrouter(self, prompt: str) -> AIResponse:
        """Send the prompt to batches of models; the first batch with content wins."""

        headers = {
            "Authorization": f"Bearer {self.settings.openrouter_api_key}",
            "Content-Type": "application/json",
            "X-Title": APP_TITLE,
        }
        batches = _chunks(self.settings.openrouter_models, self.settings.openrouter_batch_size)
        for batch in batches:
            try:
                response = self.http.post(
                    self.settings.openrouter_api_url,
                    headers=headers,
                    json={
                        "models": batch,
                        "messages": [{"role": "user", "content": prompt}],
                        "temperature": self.settings.ai_temperature,
                    },
                )
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("OpenRouter batch %s failed: %s", batch, exc)
                continue

            choices = data.get("choices") or []
            content = choices[0].get("message", {}).get("content") if choices else None
            if content:
                return AIResponse(text=content, provider="openrouter", model_name=data.get("model") or "unknown-model")

        raise AIServiceError("Every OpenRouter model batch failed.")

    def call_coco(self, prompt: str) -> AIResponse:
        payload = {
            "message": COCO_INSTRUCTION + prompt[: self.settings.ai_max_prompt_length],
            "noAuth": "true",
            "action": "text/generateResume",
            "app": "CHATBOT",
            "rol": "user",
            "method": "POST",
            "language": "es",
        }
        response = self.http.post(self.settings.coco_api_url, json=payload)
        response.raise_for_status()

        data = response.json()
        raw = data.get("data") if isinstance(data, dict) else None
        if not raw:
            raise AIServiceError("Unexpected Coco response.")
        text = _clean_coco_text(str(raw))
        if len(text) < COCO_MIN_LENGTH:
            raise AIServiceError("Coco response too short.")
        return AIResponse(text=text, provider="coco", model_name=COCO_MODEL_NAME)

    def call_with_fallback(self, prompt: str, context: str | None = None) -> AIResponse:
        """Gemini and OpenRouter are tried only when their API key is set."""

        providers = []
        if self.settings.gemini_api_key:
            providers.append(("gemini", self.call_gemini))
        if self.settings.openrouter_api_key:
            providers.append(("openrouter", self.call_openrouter))
        providers.append(("coco", self.call_coco))

        for name, call in providers:
            try:
                result = call(prompt)
            except Exception as exc:
                handle_error(exc, f"{context or 'ai'}:{name}", log_level="warning")
                continue
            logger.info("AI response from %s (%s)", result.provider, result.model_name)
            return result

        raise AIServiceError("No se pudo generar el análisis. Todos los proveedores de IA fallaron.")


def build_ads_summary_prompt(
    account_name: str,
    campaigns: Sequence[dict[str, object]],
    total_spend: float | None,
    total_conversions: float | None,
) -> str:
    account_label = truncate(sanitize_string(account_name), PROMPT_NAME_LENGTH)
    safe_spend = float(total_spend or 0)
    safe_conversions = float(total_conversions or 0)

    lines: list[str] = []
    for campaign in campaigns:
        cost = float(campaign.get("cost") or 0)
        clicks = float(campaign.get("clicks") or 0)
        impressions = float(campaign.get("impressions") or 0)
        conversions = float(campaign.get("conversions") or 0)
        ctr = clicks / impressions * 100 if impressions > 0 else 0.0
        cpa = cost / conversions if conversions > 0 else 0.0
        name = truncate(sanitize_string(str(campaign.get("campaign_name") or "")), PROMPT_NAME_LENGTH)
        lines.append(
            f'    - Campaña: "{name}" (Estado: {campaign.get("status")})\n'
            f"      * Inversión: {cost:.2f}€\n"
            f"      * Impresiones: {format_number(impressions)} | Clicks: {format_number(clicks)} | CTR: {ctr:.2f}%\n"
            f"      * Conversiones: {format_number(conversions)} | CPA: {cpa:.2f}€"
        )
    campaigns_summary = "\n".join(lines) or "    - No hay datos detallados de campañas disponibles."

    return f"""
    Actúa como un analista experto en Google Ads (PPC) Senior.
    Estás analizando la cuenta: "{account_label}".

    DATOS DEL PERIODO:
    - Inversión Total: {safe_spend:.2f}€
    - Conversiones Totales: {safe_conversions:g}

    DESGLOSE DE CAMPAÑAS:
{campaigns_summary}

    TU TAREA:
    Genera un resumen ejecutivo breve (máximo 4 párrafos) con:
    1. Análisis de rendimiento general (¿Es rentable? ¿El CPA es lógico?).
    2. Identifica la campaña "Estrella" y la "Estrellada" (Peor rendimiento).
    3. Dame 3 optimizaciones tácticas urgentes (presupuestos, keywords, pausar campañas).

    IMPORTANTE:
    - Usa formato Markdown (negritas en métricas clave).
    - Sé directo y profesional. No saludes, ve al grano.
    """


def generate_ads_summary(
    account_name: str,
    campaigns: Sequence[dict[str, object]],
    total_spend: float | None,
    total_conversions: float | None,
    *,
    service: AIService | None = None,
) -> str:
    """Executive summary of an ad account, or a friendly message on failure."""

    prompt = build_ads_summary_prompt(account_name, campaigns, total_spend, total_conversions)
    try:
        result = (service or AIService()).call_with_fallback(prompt, context="AdsReport")
    except AIServiceError as exc:
        handle_error(exc, "AdsReport")
        return FRIENDLY_ERROR_MESSAGE
    return clean_ai_response(result.text)
