from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import anthropic
from openai import OpenAI

from jotrack.config import Settings
from jotrack.types import ModelResponse

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    api_key: str
    model: str
    timeout_sec: int
    base_url: str = ""
    max_tokens: int = 4000


def raw_payload(response: Any, **extra: Any) -> dict[str, Any]:
    raw = response.model_dump() if hasattr(response, "model_dump") else {}
    if not isinstance(raw, dict):
        raw = {"raw": raw}
    raw.update(extra)
    return raw


class BaseProvider:
    def __init__(self, config: ProviderConfig):
        self.config = config

    def complete_text(self, *, prompt: str, model: str | None = None) -> ModelResponse:
        raise NotImplementedError

    def complete_json(self, *, prompt: str, model: str | None = None) -> dict[str, Any]:
        return parse_json(self.complete_text(prompt=prompt, model=model).content)

    def _response(self, text: str, model: str, raw: dict[str, Any]) -> ModelResponse:
        return ModelResponse(content=text, provider=self.config.name, model=model, raw=raw)


class LLMProvider(BaseProvider):
    """OpenAI-compatible provider (Responses API, chat.completions fallback)."""

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.client = OpenAI(
            base_url=config.base_url or None,
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    def complete_text(self, *, prompt: str, model: str | None = None) -> ModelResponse:
        model = model or self.config.model
        try:
            return self._complete_via_responses(model=model, prompt=prompt)
        except Exception as exc:
            if not self._is_unsupported_responses_endpoint(exc):
                raise

            logger.warning(
                "Responses API unavailable for provider=%s base_url=%s; "
                "falling back to chat.completions (%s)",
                self.config.name,
                self.config.base_url,
                exc,
            )
            return self._complete_via_chat_completions(model=model, prompt=prompt)

    def _complete_via_responses(self, *, model: str, prompt: str) -> ModelResponse:
        response = self.client.responses.create(
            model=model,
            input=[{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
        )
        text = getattr(response, "output_text", "") or ""
        return self._response(text, model, raw_payload(response, api_path="responses"))

    def _complete_via_chat_completions(self, *, model: str, prompt: str) -> ModelResponse:
        response = self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
        )
        return self._response(
            self._extract_chat_text(response),
            model,
            raw_payload(response, api_path="chat_completions"),
        )

    @staticmethod
    def _extract_chat_text(response: Any) -> str:
        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None) if message is not None else None
        if content is None:
            return ""
        return content if isinstance(content, str) else str(content)

    @staticmethod
    def _is_unsupported_responses_endpoint(exc: Exception) -> bool:
        if getattr(exc, "status_code", None) == 404:
            return True
        message = str(exc).strip().lower()
        return bool(message) and ("not found" in message or "404" in message)


class ClaudeProvider(BaseProvider):
    """Anthropic Messages API provider."""

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.client = anthropic.Anthropic(
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    def complete_text(self, *, prompt: str, model: str | None = None) -> ModelResponse:
        model = model or self.config.model
        response = self.client.messages.create(
            model=model,
            max_tokens=self.config.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        blocks = getattr(response, "content", None) or []
        text = "".join(getattr(block, "text", "") for block in blocks).strip()
        return self._response(text, model, raw_payload(response))


def parse_json(content: str) -> dict[str, Any]:
    """Pull a JSON object out of model output; anything else yields {}."""
    candidate = content.strip()
    if not candidate:
        return {}

    if "```" in candidate:
        for part in candidate.split("```"):
            part = part.strip()
            if part.startswith("json"):
                part = part[4:].strip()
            if part.startswith("{") and part.endswith("}"):
                candidate = part
                break
    elif not candidate.startswith("{"):
        # prose around a bare object
        start, end = candidate.find("{"), candidate.rfind("}")
        if start != -1 and end > start:
            candidate = candidate[start : end + 1]

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        logger.warning("Failed to parse JSON model output")
        return {}
    return value if isinstance(value, dict) else {}


class ProviderPool:
    """Lazily built provider clients, one per configured vendor."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._providers: dict[str, BaseProvider] = {}

    def _config(self, name: str) -> ProviderConfig:
        s = self.settings
        if name == "claude":
            return ProviderConfig(
                name="claude",
                api_key=s.anthropic_api_key,
                model=s.anthropic_model,
                timeout_sec=s.anthropic_timeout_sec,
                max_tokens=s.anthropic_max_tokens,
            )
        if name == "openai":
            return ProviderConfig(
                name="openai",
                api_key=s.openai_api_key,
                model=s.openai_model,
                timeout_sec=s.openai_timeout_sec,
                base_url=s.openai_base_url,
            )
        raise ValueError(f"unknown provider '{name}'")

    def get(self, name: str) -> BaseProvider:
        if name not in self._providers:
            config = self._config(name)
            provider_cls = ClaudeProvider if name == "claude" else LLMProvider
            self._providers[name] = provider_cls(config)
        return self._providers[name]
