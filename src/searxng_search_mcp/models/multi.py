from typing import Self

from pydantic import BaseModel, model_validator

from searxng_search_mcp.models.search import MultiSearchResponse, SearchResponse, SearchResponseSummary
from searxng_search_mcp.models.searxng import SearxngSearchResponse

UNKNOWN_ERROR = "Unknown error"


class QueryOutcome(BaseModel):
    """The settled outcome of one query in a multi-query search."""

    query: str
    success: bool
    data: SearxngSearchResponse | None = None
    error: str | None = None

    @model_validator(mode="after")
    def check_data_or_error(self) -> Self:
        if self.success and (self.data is None or self.error is not None):
            msg = "A successful outcome must carry data and no error"
            raise ValueError(msg)

        if not self.success and (self.data is not None or self.error is None):
            msg = "A failed outcome must carry an error and no data"
            raise ValueError(msg)

        return self

    @classmethod
    def succeeded(cls, query: str, data: SearxngSearchResponse) -> Self:
        return cls(query=query, success=True, data=data)

    @classmethod
    def failed(cls, query: str, error: str) -> Self:
        return cls(query=query, success=False, error=error)

    def to_search_response(self) -> SearchResponse:
        if self.success and self.data is not None:
            return SearchResponse(
                query=self.query,
                results=self.data.to_search_results(),
                total_results=self.data.number_of_results,
                success=True,
            )

        return SearchResponse(
            query=self.query,
            results=[],
            total_results=0,
            success=False,
            error=self.error or UNKNOWN_ERROR,
        )


class SearchSummary(BaseModel):
    total: int
    successful: int
    failed: int

    @classmethod
    def from_outcomes(cls, outcomes: list[QueryOutcome]) -> Self:
        successful = sum(1 for outcome in outcomes if outcome.success)
        return cls(total=len(outcomes), successful=successful, failed=len(outcomes) - successful)


class MultiSearchResult(BaseModel):
    queries: list[str]
    results: list[QueryOutcome]
    summary: SearchSummary

    @classmethod
    def from_outcomes(cls, queries: list[str], outcomes: list[QueryOutcome]) -> Self:
        return cls(queries=queries, results=outcomes, summary=SearchSummary.from_outcomes(outcomes))

    def to_search_response(self) -> MultiSearchResponse:
        """Project the raw SearXNG responses onto the minimal title/link/snippet shape returned to MCP clients."""

        return MultiSearchResponse(
            searches=[outcome.to_search_response() for outcome in self.results],
            summary=SearchResponseSummary(
                total_queries=self.summary.total,
                successful_queries=self.summary.successful,
                failed_queries=self.summary.failed,
            ),
        )
