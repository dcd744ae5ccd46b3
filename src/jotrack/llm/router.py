from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from jotrack.config import Settings, get_settings
from jotrack.errors import AIProviderError
from jotrack.llm.prompts import CONNECTION_TEST_PROMPT
from jotrack.llm.providers import ProviderPool, parse_json

logger = logging.getLogger(__name__)

PROVIDER_NAMES = ("claude", "openai")


@dataclass(slots=True)
class JSONResult:
    data: dict[str, Any]
    provider: str
    model: str


class AIRouter:
    def __init__(self, settings: Settings | None = None, pool: ProviderPool | None = None):
        self.settings = settings or get_settings()
        self.pool = pool or ProviderPool(self.settings)

    def is_configured(self, name: str) -> bool:
        if name == "claude":
            return bool(self.settings.anthropic_api_key)
        if name == "openai":
            return bool(self.settings.openai_api_key)
        return False

    def configured_providers(self) -> list[str]:
        return [name for name in self._provider_order() if self.is_configured(name)]

    def complete_json(self, *, capability: str, prompt: str, provider: str | None = None) -> JSONResult:
        names = [name for name in self._provider_order(provider) if self.is_configured(name)]
        if not names:
            raise AIProviderError("no AI provider configured; set ANTHROPIC_API_KEY or OPENAI_API_KEY")

        errors: list[str] = []
        for name in names:
            client = self.pool.get(name)
            try:
                response = client.complete_text(prompt=prompt)
            except Exception as exc:
                logger.warning("LLM JSON call failed capability=%s provider=%s error=%s", capability, name, exc)
                errors.append(f"{name}: {exc}")
                continue

            data = parse_json(response.content)
            if not data:
                logger.warning("LLM returned no JSON object capability=%s provider=%s", capability, name)
                errors.append(f"{name}: response was not a JSON object")
                continue
            return JSONResult(data=data, provider=name, model=response.model or client.config.model)

        raise AIProviderError(f"AI call failed for {capability}: " + "; ".join(errors))

    def test_connection(self) -> dict[str, dict[str, Any]]:
        report: dict[str, dict[str, Any]] = {}
        for name in PROVIDER_NAMES:
            entry: dict[str, Any] = {"configured": self.is_configured(name), "ok": False, "error": ""}
            if entry["configured"]:
                client = self.pool.get(name)
                entry["model"] = client.config.model
                try:
                    entry["ok"] = bool(client.complete_json(prompt=CONNECTION_TEST_PROMPT).get("ok"))
                except Exception as exc:
                    logger.warning("Connection test failed provider=%s error=%s", name, exc)
                    entry["error"] = str(exc)
            report[name] = entry
        return report

    def _provider_order(self, preferred: str | None = None) -> list[str]:
        first = preferred or self.settings.ai_provider_default
        if first not in PROVIDER_NAMES:
            raise AIProviderError(f"unknown AI provider '{first}'")
        return [first, *[name for name in PROVIDER_NAMES if name != first]]
