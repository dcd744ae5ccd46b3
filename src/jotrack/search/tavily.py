from __future__ import annotations

import logging

import requests

from jotrack.config import Settings, get_settings
from jotrack.errors import AIProviderError
from jotrack.types import SearchResult

logger = logging.getLogger(__name__)


class TavilyClient:
    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None):
        self.settings = settings or get_settings()
        self.http = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.settings.tavily_api_key)

    def search(self, query: str, max_results: int | None = None, depth: str = "advanced") -> list[SearchResult]:
        if not self.configured:
            raise AIProviderError("web search unavailable; set TAVILY_API_KEY")

        payload = {
            "api_key": self.settings.tavily_api_key,
            "query": query,
            "max_results": max_results or self.settings.tavily_max_results,
            "search_depth": depth,
            "include_answer": False,
            "include_raw_content": False,
            "include_images": False,
        }
        try:
            response = self.http.post(
                f"{self.settings.tavily_base_url.rstrip('/')}/search",
                json=payload,
                timeout=self.settings.tavily_timeout_sec,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Tavily search failed query=%r error=%s", query[:80], exc)
            raise AIProviderError(f"web search failed: {exc}") from exc

        if not isinstance(data, dict):
            raise AIProviderError("web search returned an unexpected payload")
        try:
            results = [
                SearchResult(
                    title=str(item.get("title") or ""),
                    url=str(item.get("url") or ""),
                    content=str(item.get("content") or ""),
                    score=float(item.get("score") or 0.0),
                )
                for item in data.get("results") or []
                if isinstance(item, dict)
            ]
        except (TypeError, ValueError) as exc:
            logger.warning("Tavily returned malformed results query=%r error=%s", query[:80], exc)
            raise AIProviderError(f"web search returned malformed results: {exc}") from exc
        logger.info("Tavily returned %s results", len(results))
        return results


def format_sources(results: list[SearchResult]) -> str:
    if not results:
        return "No web search results available."
    blocks = []
    for index, result in enumerate(results, start=1):
        blocks.append(
            f"[Source {index}] {result.title}\nURL: {result.url}\n"
            f"Relevance: {round(result.score * 100)}%\n\n{result.content}"
        )
    return "\n\n---\n\n".join(blocks)
