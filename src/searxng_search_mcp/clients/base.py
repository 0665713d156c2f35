from abc import ABC, abstractmethod

from searxng_search_mcp.models.search import SearchOptions
from searxng_search_mcp.models.searxng import SearxngSearchResponse


class BaseSearchClient(ABC):
    @abstractmethod
    async def fetch_one(self, query: str, options: SearchOptions) -> SearxngSearchResponse: ...

    async def probe(self) -> bool:
        return True

    async def close(self) -> None:  # noqa: B027
        pass
