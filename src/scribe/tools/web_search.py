"""Web search tool using the Tavily search API."""

import json
import logging
import time

import httpx

from scribe.config.models import TavilyConfig
from scribe.tools.base import ToolProvider

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"

NOT_CONFIGURED_ERROR = "Web search is not available. API key not configured."
EXCEPTION_ERROR = "An exception occurred during the search."


def _result_count(data: object) -> int:
    if isinstance(data, dict) and isinstance(data.get("results"), list):
        return len(data["results"])
    return 0


class WebSearchTool(ToolProvider):
    """Search the web using the Tavily API.

    Every outcome is returned as a JSON string: the Tavily response body on
    success, an ``{"error": ...}`` payload otherwise. Requests are never
    retried.
    """

    primary_argument = "query"

    def __init__(
        self,
        config: TavilyConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize web search tool.

        Args:
            config: Tavily settings. Defaults to an unconfigured instance.
            client: Shared HTTP client. One is created lazily when omitted.
        """
        self._config = config or TavilyConfig()
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return "web_search"

    @property
    def description(self) -> str:
        return (
            "Search the web for current information, facts, or news. "
            "Use this when the user asks about recent events or something "
            "that may not be in your training data."
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._client

    async def invoke(self, query: str) -> str:
        api_key = self._config.api_key
        if api_key is None or not self._config.web_search_configured:
            logger.warning("web_search_not_configured")
            return json.dumps({"error": NOT_CONFIGURED_ERROR})

        logger.info("web_search_started", extra={"search.query": query})
        start_time = time.monotonic()

        try:
            response = await self._get_client().post(
                TAVILY_SEARCH_URL,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {api_key.get_secret_value()}",
                },
                json={
                    "query": query,
                    "search_depth": self._config.search_depth,
                    "max_results": self._config.max_results,
                    "include_answer": self._config.include_answer,
                    "include_raw_content": False,
                },
            )

            if not response.is_success:
                logger.error(
                    "web_search_failed",
                    extra={
                        "search.query": query,
                        "http.status_code": response.status_code,
                        "error.message": response.text[:500],
                    },
                )
                return json.dumps(
                    {
                        "error": f"Search failed with status: {response.status_code}",
                        "details": response.text,
                    }
                )

            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.exception("web_search_exception", extra={"search.query": query})
            return json.dumps({"error": EXCEPTION_ERROR, "message": str(e)})

        logger.info(
            "web_search_completed",
            extra={
                "search.query": query,
                "search.result_count": _result_count(data),
                "duration_ms": int((time.monotonic() - start_time) * 1000),
            },
        )
        return json.dumps(data)

    async def cleanup(self) -> None:
        """Close the HTTP client if this tool created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
