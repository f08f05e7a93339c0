"""
AI reply generation.

Without an API key the generator answers with a fixed reply per
sentiment. With a key it calls the tenant's provider (OpenAI chat
completions or Anthropic messages). Provider failures are raised as
``GenerationError``; they never fall back silently.
"""

from dataclasses import dataclass
from typing import Any

import httpx

from engagehub.config import settings
from engagehub.core.exceptions import GenerationError
from engagehub.core.logging_config import get_logger
from engagehub.models.comment import Sentiment
from engagehub.models.tenant import AIProvider, Tenant

logger = get_logger(__name__)

FALLBACK_REPLIES: dict[str, str] = {
    Sentiment.POSITIVE.value: (
        "Thank you for your positive feedback! We're thrilled to hear that. "
        "If you need anything else, feel free to reach out!"
    ),
    Sentiment.NEGATIVE.value: (
        "We're sorry to hear about your experience. Our team would love to help "
        "resolve this. Please DM us or email us at {support_email} so we can "
        "assist you better."
    ),
    Sentiment.NEUTRAL.value: (
        "Thank you for reaching out! We're here to help. If you have any "
        "questions, feel free to DM us or email us at {support_email}."
    ),
}

SYSTEM_PROMPT = (
    "You are a helpful social media manager. Generate a friendly, professional, "
    "and concise reply to customer comments. Keep replies under 150 characters "
    "when possible. Be empathetic and helpful."
)


@dataclass(frozen=True)
class AIConfig:
    provider: str = AIProvider.OPENAI.value
    api_key: str | None = None
    model: str | None = None
    temperature: float = 0.7

    @classmethod
    def from_tenant(cls, tenant: Tenant) -> "AIConfig":
        return cls(
            provider=getattr(tenant.ai_provider, "value", tenant.ai_provider),
            api_key=tenant.ai_api_key,
            model=tenant.ai_model,
            temperature=tenant.ai_temperature,
        )


def fallback_reply(sentiment: str | None) -> str:
    """Deterministic reply used when no AI provider is configured."""
    key = getattr(sentiment, "value", sentiment)
    template = FALLBACK_REPLIES.get(key, FALLBACK_REPLIES[Sentiment.NEUTRAL.value])
    return template.format(support_email=settings.support_email)


def build_prompt(comment_text: str, context: dict[str, Any] | None) -> str:
    context = context or {}
    prompt = f'Customer comment: "{comment_text}"\n\n'
    if context.get("sentiment"):
        sentiment = getattr(context["sentiment"], "value", context["sentiment"])
        prompt += f"Sentiment: {sentiment}\n"
    if context.get("brand_voice"):
        prompt += f"Brand voice: {context['brand_voice']}\n"
    prompt += "\nGenerate a reply:"
    return prompt


class ReplyGenerator:
    """Generates reply text for a comment."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float | None = None):
        self._client = client
        self.timeout = timeout or settings.external_call_timeout_seconds

    async def generate(
        self,
        comment_text: str,
        ai_config: AIConfig,
        context: dict[str, Any] | None = None,
    ) -> str:
        if not ai_config.api_key:
            return fallback_reply((context or {}).get("sentiment"))

        prompt = build_prompt(comment_text, context)

        if ai_config.provider == AIProvider.OPENAI.value:
            return await self._openai(prompt, ai_config)
        if ai_config.provider == AIProvider.ANTHROPIC.value:
            return await self._anthropic(prompt, ai_config)

        raise GenerationError(
            f"Unsupported AI provider: {ai_config.provider}",
            details={"provider": ai_config.provider},
        )

    async def _openai(self, prompt: str, ai_config: AIConfig) -> str:
        data = await self._post(
            settings.openai_api_url,
            headers={
                "Authorization": f"Bearer {ai_config.api_key}",
                "Content-Type": "application/json",
            },
            payload={
                "model": ai_config.model or settings.openai_default_model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": settings.reply_max_tokens,
                "temperature": ai_config.temperature,
            },
            provider=AIProvider.OPENAI.value,
        )
        try:
            return data["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise GenerationError("Malformed OpenAI response", details={"provider": "openai"}) from e

    async def _anthropic(self, prompt: str, ai_config: AIConfig) -> str:
        data = await self._post(
            settings.anthropic_api_url,
            headers={
                "x-api-key": ai_config.api_key or "",
                "anthropic-version": settings.anthropic_api_version,
                "Content-Type": "application/json",
            },
            payload={
                "model": ai_config.model or settings.anthropic_default_model,
                "max_tokens": settings.reply_max_tokens,
                "temperature": ai_config.temperature,
                "system": SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": prompt}],
            },
            provider=AIProvider.ANTHROPIC.value,
        )
        try:
            return data["content"][0]["text"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise GenerationError("Malformed Anthropic response", details={"provider": "anthropic"}) from e

    async def _post(
        self,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
        provider: str,
    ) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.post(url, headers=headers, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning("ai_request_failed", provider=provider, error=str(e))
            raise GenerationError(f"{provider} request failed: {e}", details={"provider": provider}) from e

        if response.status_code >= 400:
            logger.warning("ai_error_response", provider=provider, status_code=response.status_code)
            raise GenerationError(
                f"{provider} API returned {response.status_code}",
                details={"provider": provider, "upstream_status": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise GenerationError(f"{provider} returned invalid JSON", details={"provider": provider}) from e


reply_generator = ReplyGenerator()
