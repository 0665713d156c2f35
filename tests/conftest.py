import asyncio
from typing import Any

import pytest
from typing_extensions import override

from searxng_search_mcp.clients.base import BaseSearchClient
from searxng_search_mcp.models.search import SearchOptions
from searxng_search_mcp.models.searxng import SearxngSearchResponse


def searxng_payload(query: str, count: int = 2) -> dict[str, Any]:
    return {
        "query": query,
        "number_of_results": 1000 + count,
        "results": [
            {
                "url": f"https://example.com/{query.replace(' ', '-')}/{i}",
                "title": f"{query} result {i}",
                "content": f"Snippet {i} about {query}",
                "engine": "duckduckgo",
                "engines": ["duckduckgo", "brave"],
                "template": "default.html",
                "parsed_url": ["https", "example.com", f"/{i}", "", "", ""],
                "positions": [1, 2],
                "score": 4.0 / (i + 1),
                "category": "general",
                "thumbnail": None,
            }
            for i in range(count)
        ],
        "answers": [],
        "corrections": [],
        "infoboxes": [],
        "suggestions": [f"{query} tutorial"],
        "unresponsive_engines": [["google", "timeout"]],
    }


class MockSearchClient(BaseSearchClient):
    """Answers every query from canned data. Queries listed in `failures` raise instead, after `delays` seconds."""

    def __init__(self):
        self.calls: list[tuple[str, SearchOptions]] = []
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}

    @override
    async def fetch_one(self, query: str, options: SearchOptions) -> SearxngSearchResponse:
        self.calls.append((query, options))

        if delay := self.delays.get(query):
            await asyncio.sleep(delay)

        if failure := self.failures.get(query):
            raise failure

        return SearxngSearchResponse.model_validate(searxng_payload(query))


@pytest.fixture
def mock_search_client() -> MockSearchClient:
    return MockSearchClient()


@pytest.fixture
def make_payload():
    return searxng_payload
