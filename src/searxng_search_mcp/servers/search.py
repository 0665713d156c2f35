from typing import Annotated, Any

from fastmcp.contrib.mcp_mixin.mcp_mixin import MCPMixin, mcp_tool
from fastmcp.utilities.logging import get_logger
from pydantic import BeforeValidator, Field

from searxng_search_mcp.clients.base import BaseSearchClient
from searxng_search_mcp.clients.multi import MultiSearchClient
from searxng_search_mcp.models.errors import SearchExecutionError, SearchToolError, SearchValidationError
from searxng_search_mcp.models.search import MultiSearchResponse, SearchOptions

logger = get_logger(__name__)

SEARCH_TOOL_DESCRIPTION = (
    "Search multiple queries simultaneously using the SearXNG metasearch engine. "
    "Supports parallel execution of multiple search queries with optional engine and category filtering."
)


def _list_or_none(value: Any) -> Any:
    return value if isinstance(value, list) else None


def _str_or_none(value: Any) -> Any:
    return value if isinstance(value, str) else None


def _number_or_none(value: Any) -> Any:
    if isinstance(value, bool):
        return None

    return value if isinstance(value, int | float) else None


QueriesArg = Annotated[
    list[str],
    Field(
        min_length=1,
        description="List of search queries to execute in parallel. Each query will be searched independently and results will be aggregated.",
    ),
]
EnginesArg = Annotated[
    list[str] | None,
    BeforeValidator(_list_or_none),
    Field(description="Specific search engines to use (optional). Examples: google, bing, duckduckgo, startpage"),
]
CategoriesArg = Annotated[
    list[str] | None,
    BeforeValidator(_list_or_none),
    Field(description="Search categories to filter results (optional). Examples: general, images, news, videos, music, files, science"),
]
SafeSearchArg = Annotated[
    Annotated[int, Field(ge=0, le=2)] | None,
    BeforeValidator(_number_or_none),
    Field(description="Safe search level: 0 = off, 1 = moderate, 2 = strict (optional)"),
]
LanguageArg = Annotated[
    str | None,
    BeforeValidator(_str_or_none),
    Field(description="Search language code (optional). Examples: en, zh, es, fr, de"),
]


def check_queries(queries: Any) -> list[str]:
    if not isinstance(queries, list) or not queries:
        msg = "queries parameter is required and must be a non-empty array"
        raise SearchValidationError(msg)

    for query in queries:  # pyright: ignore[reportUnknownVariableType]
        if not isinstance(query, str) or not query.strip():
            msg = "All queries must be non-empty strings"
            raise SearchValidationError(msg)

    return queries  # pyright: ignore[reportUnknownVariableType]


def check_safesearch(safesearch: int | None) -> None:
    if safesearch is not None and not 0 <= safesearch <= 2:
        msg = "safesearch must be between 0 and 2"
        raise SearchValidationError(msg)


class SearchServer(MCPMixin):
    def __init__(self, search_client: BaseSearchClient):
        self.search_client = search_client
        self.multi_search_client = MultiSearchClient(search_client)

    @mcp_tool(name="search", description=SEARCH_TOOL_DESCRIPTION)
    async def search(
        self,
        queries: QueriesArg,
        engines: EnginesArg = None,
        categories: CategoriesArg = None,
        safesearch: SafeSearchArg = None,
        language: LanguageArg = None,
    ) -> MultiSearchResponse:
        """Search every query against SearXNG in parallel and return the results for each query, in order."""

        queries = check_queries(queries)
        check_safesearch(safesearch)

        options = SearchOptions(
            engines=tuple(engines) if engines else None,
            categories=tuple(categories) if categories else None,
            safesearch=safesearch,  # pyright: ignore[reportArgumentType]
            language=language,
        )

        logger.info(f"Searching {len(queries)} queries: {queries} with options {options.model_dump(exclude_none=True)}")

        try:
            result = await self.multi_search_client.search(queries, options)
        except SearchToolError:
            raise
        except Exception as e:
            logger.exception("Search execution failed")
            raise SearchExecutionError(str(e) or type(e).__name__) from e

        return result.to_search_response()
