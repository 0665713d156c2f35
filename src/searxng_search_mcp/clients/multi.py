import asyncio

from fastmcp.utilities.logging import get_logger

from searxng_search_mcp.clients.base import BaseSearchClient
from searxng_search_mcp.models.errors import SearchValidationError, UpstreamError
from searxng_search_mcp.models.multi import UNKNOWN_ERROR, MultiSearchResult, QueryOutcome
from searxng_search_mcp.models.search import SearchOptions

logger = get_logger(__name__)


class MultiSearchClient:
    """Fans a list of queries out to a search client and gathers every outcome, successful or not."""

    def __init__(self, search_client: BaseSearchClient):
        self.search_client = search_client

    async def search_one(self, query: str, options: SearchOptions) -> QueryOutcome:
        try:
            data = await self.search_client.fetch_one(query, options)
        except UpstreamError as e:
            logger.warning(f"Query {query!r} failed: {e.reason}")
            return QueryOutcome.failed(query, str(e) or UNKNOWN_ERROR)

        return QueryOutcome.succeeded(query, data)

    async def search(self, queries: list[str], options: SearchOptions | None = None) -> MultiSearchResult:
        """Search every query concurrently.

        A failed query only fails its own outcome; the call returns once every query has settled.
        Outcomes are returned in the same order as `queries`.

        Raises:
            SearchValidationError: If `queries` is empty. No query is sent in that case.
        """

        if not queries:
            msg = "At least one search query is required"
            raise SearchValidationError(msg)

        options = options or SearchOptions()

        outcomes: list[QueryOutcome] = await asyncio.gather(*(self.search_one(query, options) for query in queries))

        result = MultiSearchResult.from_outcomes(queries=list(queries), outcomes=outcomes)

        logger.info(
            f"Searched {result.summary.total} queries: {result.summary.successful} succeeded, {result.summary.failed} failed",
        )

        return result
