"""
Unit tests for AI reply generation.
"""

import json

import httpx
import pytest

from engagehub.core.exceptions import GenerationError
from engagehub.integrations.reply_generator import AIConfig, ReplyGenerator, fallback_reply
from engagehub.models.tenant import Tenant

POSITIVE_REPLY = (
    "Thank you for your positive feedback! We're thrilled to hear that. "
    "If you need anything else, feel free to reach out!"
)
NEGATIVE_REPLY = (
    "We're sorry to hear about your experience. Our team would love to help resolve this. "
    "Please DM us or email us at support@example.com so we can assist you better."
)
NEUTRAL_REPLY = (
    "Thank you for reaching out! We're here to help. If you have any questions, "
    "feel free to DM us or email us at support@example.com."
)


def generator_with(handler) -> ReplyGenerator:
    return ReplyGenerator(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.unit
class TestFallback:
    @pytest.mark.parametrize("sentiment, expected", [
        ("positive", POSITIVE_REPLY),
        ("negative", NEGATIVE_REPLY),
        ("neutral", NEUTRAL_REPLY),
        (None, NEUTRAL_REPLY),
    ])
    def test_fallback_texts(self, sentiment, expected):
        assert fallback_reply(sentiment) == expected

    async def test_no_api_key_uses_fallback(self):
        def handler(request):
            raise AssertionError("no request expected without an API key")

        reply = await generator_with(handler).generate("Love it", AIConfig(), {"sentiment": "positive"})
        assert reply == POSITIVE_REPLY


@pytest.mark.unit
class TestOpenAI:
    async def test_chat_completion(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "  Glad you like it!  "}}]})

        config = AIConfig(provider="openai", api_key="sk-test", model="gpt-4o-mini", temperature=0.2)
        reply = await generator_with(handler).generate("Love it", config, {"sentiment": "positive"})

        assert reply == "Glad you like it!"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["payload"]["model"] == "gpt-4o-mini"
        assert seen["payload"]["max_tokens"] == 150
        assert seen["payload"]["temperature"] == 0.2
        assert "Sentiment: positive" in seen["payload"]["messages"][1]["content"]

    async def test_error_status_raises(self):
        config = AIConfig(provider="openai", api_key="sk-test")

        with pytest.raises(GenerationError):
            await generator_with(lambda request: httpx.Response(500, json={})).generate("hi", config)

    async def test_malformed_response_raises(self):
        config = AIConfig(provider="openai", api_key="sk-test")

        with pytest.raises(GenerationError):
            await generator_with(lambda request: httpx.Response(200, json={"choices": []})).generate("hi", config)

    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(GenerationError):
            await generator_with(handler).generate("hi", AIConfig(provider="openai", api_key="sk-test"))


@pytest.mark.unit
class TestAnthropic:
    async def test_messages(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.headers["x-api-key"]
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Thanks a lot!"}]})

        config = AIConfig(provider="anthropic", api_key="ak-test")
        reply = await generator_with(handler).generate("Love it", config)

        assert reply == "Thanks a lot!"
        assert seen["key"] == "ak-test"
        assert seen["payload"]["max_tokens"] == 150
        assert "system" in seen["payload"]


@pytest.mark.unit
class TestConfig:
    async def test_unsupported_provider(self):
        with pytest.raises(GenerationError):
            await generator_with(lambda request: httpx.Response(200)).generate(
                "hi", AIConfig(provider="gemini", api_key="k"),
            )

    def test_from_tenant(self):
        tenant = Tenant(ai_provider="anthropic", ai_api_key="k", ai_model="m", ai_temperature=0.5)

        assert AIConfig.from_tenant(tenant) == AIConfig(provider="anthropic", api_key="k", model="m", temperature=0.5)
