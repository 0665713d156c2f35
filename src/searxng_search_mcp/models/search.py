from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

SafeSearchLevel = Literal[0, 1, 2]


class SearchOptions(BaseModel):
    """Options shared by every query in a single search call."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    engines: tuple[str, ...] | None = None
    categories: tuple[str, ...] | None = None
    safesearch: SafeSearchLevel | None = None
    language: str | None = None


class SearchResult(BaseModel):
    title: str
    link: str
    snippet: str


class SearchResponse(BaseModel):
    query: str = Field(description="The query that was searched.")
    results: list[SearchResult] = Field(default_factory=list, description="The results for the query.")
    total_results: int = Field(default=0, description="The number of results the SearXNG instance reported for the query.")
    success: bool = Field(description="Whether the query was searched successfully.")
    error: str | None = Field(default=None, description="Why the query failed, if it failed.")


class SearchResponseSummary(BaseModel):
    total_queries: int
    successful_queries: int
    failed_queries: int


class MultiSearchResponse(BaseModel):
    searches: list[SearchResponse]
    summary: SearchResponseSummary
