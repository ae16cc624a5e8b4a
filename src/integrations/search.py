"""Web search adapter: single provider-agnostic call returning text."""

import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import httpx
import structlog

logger = structlog.get_logger()

PERPLEXITY_URL = "https://api.perplexity.ai/chat/completions"

_SEARCH_SYSTEM_PROMPT = """You are a search assistant providing accurate, current information.

Guidelines:
- Be concise and factual
- Include specific details like prices, times, ratings when available
- Format information clearly for easy reading
- If information might be outdated, mention that the user should verify
- Focus on actionable information the user can use

Current date: {today}"""


class SearchError(Exception):
    """Search request failed or returned an unusable payload."""


class SearchAdapter(ABC):
    enabled: bool = True

    @abstractmethod
    def search(self, query: str) -> str:
        """Return an answer text for the query.

        Raises:
            SearchError: request failed
        """
        ...


class DisabledSearch(SearchAdapter):
    """Search not configured."""

    enabled = False

    def search(self, query: str) -> str:
        raise SearchError("Search service not configured")


class PerplexitySearchClient(SearchAdapter):
    """Perplexity chat-completions search with citations."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "sonar",
        max_citations: int = 5,
        timeout: float = 30.0,
        retry_decorator=None,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key or os.getenv("PERPLEXITY_API_KEY")
        self.model = model
        self.max_citations = max_citations
        self.client = client or httpx.Client(timeout=timeout)
        self._post = retry_decorator(self._post_once) if retry_decorator else self._post_once

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def search(self, query: str) -> str:
        if not self.api_key:
            raise SearchError("Search service not configured (no PERPLEXITY_API_KEY)")

        body = {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": _SEARCH_SYSTEM_PROMPT.format(
                        today=datetime.now(timezone.utc).strftime("%A, %B %d, %Y")
                    ),
                },
                {"role": "user", "content": query},
            ],
            "max_tokens": 1024,
            "temperature": 0.2,
            "return_citations": True,
        }

        try:
            response = self._post(body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "search_api_error", status=e.response.status_code, body=e.response.text[:200]
            )
            raise SearchError(f"Search error ({e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error("search_request_failed", error=str(e))
            raise SearchError(f"Search request failed: {e}") from e
        except ValueError as e:
            raise SearchError("Failed to parse search results") from e

        result = self._parse(data)
        logger.info("search_complete", query_chars=len(query), result_chars=len(result))
        return result

    def _post_once(self, body: dict) -> httpx.Response:
        return self.client.post(
            PERPLEXITY_URL,
            json=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    def _parse(self, data: dict) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise SearchError("Failed to parse search results") from None
        if not isinstance(content, str):
            raise SearchError("Failed to parse search results")

        citations = data.get("citations") or []
        if citations:
            lines = [f"{i}. {url}" for i, url in enumerate(citations[: self.max_citations], 1)]
            content += "\n\nSources:\n" + "\n".join(lines)
        return content

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
