from __future__ import annotations

from types import SimpleNamespace

import pytest

from jotrack.config import Settings
from jotrack.llm.providers import ClaudeProvider, LLMProvider, ProviderConfig, ProviderPool, parse_json


class DummyAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FakeResponsePayload:
    def __init__(self, *, output_text: str = "", raw: dict | None = None):
        self.output_text = output_text
        self._raw = raw or {}

    def model_dump(self) -> dict:
        return self._raw


class FakeChatPayload:
    def __init__(self, *, content: str, raw: dict | None = None):
        self.choices = [SimpleNamespace(message=SimpleNamespace(content=content))]
        self._raw = raw or {}

    def model_dump(self) -> dict:
        return self._raw


class FakeCreateAPI:
    def __init__(self, fn):
        self._fn = fn

    def create(self, **kwargs):
        return self._fn(**kwargs)


class FakeChatAPI:
    def __init__(self, fn):
        self.completions = FakeCreateAPI(fn)


class FakeClient:
    def __init__(self, *, responses_fn, chat_fn):
        self.responses = FakeCreateAPI(responses_fn)
        self.chat = FakeChatAPI(chat_fn)


class FakeAnthropicClient:
    def __init__(self, fn):
        self.messages = FakeCreateAPI(fn)


def _provider_with_fake_client(fake_client: FakeClient) -> LLMProvider:
    provider = LLMProvider(
        ProviderConfig(
            name="openai",
            base_url="http://localhost:9999/v1",
            api_key="dummy",
            model="gpt-4o-mini",
            timeout_sec=5,
        )
    )
    provider.client = fake_client
    return provider


def _claude_with_fake_client(fn) -> ClaudeProvider:
    provider = ClaudeProvider(
        ProviderConfig(name="claude", api_key="dummy", model="claude-sonnet-4-20250514", timeout_sec=5, max_tokens=256)
    )
    provider.client = FakeAnthropicClient(fn)
    return provider


def test_complete_text_uses_responses_when_available() -> None:
    chat_called = {"value": False}

    def responses_fn(**kwargs):
        return FakeResponsePayload(output_text="RESP_OK", raw={"id": "resp_1"})

    def chat_fn(**kwargs):
        chat_called["value"] = True
        return FakeChatPayload(content="CHAT_OK", raw={"id": "chat_1"})

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    result = provider.complete_text(prompt="ping")

    assert result.content == "RESP_OK"
    assert result.provider == "openai"
    assert result.model == "gpt-4o-mini"
    assert result.raw["api_path"] == "responses"
    assert chat_called["value"] is False


def test_complete_text_falls_back_to_chat_on_responses_not_found() -> None:
    def responses_fn(**kwargs):
        raise DummyAPIError("Not found", status_code=404)

    def chat_fn(**kwargs):
        return FakeChatPayload(content="CHAT_OK", raw={"id": "chat_1"})

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    result = provider.complete_text(model="gpt-4.1", prompt="ping")

    assert result.content == "CHAT_OK"
    assert result.model == "gpt-4.1"
    assert result.raw["api_path"] == "chat_completions"


def test_complete_text_does_not_fall_back_on_other_errors() -> None:
    def responses_fn(**kwargs):
        raise DummyAPIError("rate limited", status_code=429)

    def chat_fn(**kwargs):
        raise AssertionError("chat path must not be used")

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    with pytest.raises(DummyAPIError, match="rate limited"):
        provider.complete_text(prompt="ping")


def test_complete_json_parses_chat_fallback_payload() -> None:
    def responses_fn(**kwargs):
        raise DummyAPIError("Not found", status_code=404)

    def chat_fn(**kwargs):
        return FakeChatPayload(content='{"status":"ok","source":"chat"}', raw={"id": "chat_2"})

    provider = _provider_with_fake_client(FakeClient(responses_fn=responses_fn, chat_fn=chat_fn))
    payload = provider.complete_json(prompt="json please")

    assert payload == {"status": "ok", "source": "chat"}


def test_claude_provider_joins_text_blocks_and_passes_limits() -> None:
    seen: dict = {}

    def create(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text='```json\n{"overall_score": 80}\n```')]
        )

    provider = _claude_with_fake_client(create)
    payload = provider.complete_json(prompt="score this")

    assert payload == {"overall_score": 80}
    assert seen["model"] == "claude-sonnet-4-20250514"
    assert seen["max_tokens"] == 256
    assert seen["messages"] == [{"role": "user", "content": "score this"}]


def test_parse_json_handles_fences_prose_and_non_objects() -> None:
    assert parse_json('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json('Here you go: {"a": 2} hope it helps') == {"a": 2}
    assert parse_json("[1, 2, 3]") == {}
    assert parse_json("not json at all") == {}
    assert parse_json("   ") == {}


def test_provider_pool_builds_each_vendor_once() -> None:
    pool = ProviderPool(Settings(anthropic_api_key="sk-ant", openai_api_key="sk-oai", openai_model="gpt-4.1"))

    claude = pool.get("claude")
    assert isinstance(claude, ClaudeProvider)
    assert pool.get("claude") is claude
    assert isinstance(pool.get("openai"), LLMProvider)
    assert pool.get("openai").config.model == "gpt-4.1"
    with pytest.raises(ValueError):
        pool.get("gemini")
