from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from searxng_search_mcp.models.search import SearchResult


class SearxngBaseModel(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(extra="allow")


class SearxngResult(SearxngBaseModel):
    """One result item. Only `url`, `title` and `content` are read; engine-specific fields are kept as extras."""

    url: str | None = ""
    title: str | None = ""
    content: str | None = ""
    engine: str | None = None
    engines: list[str] = Field(default_factory=list)
    score: float | None = None
    category: str | None = None

    def to_search_result(self) -> SearchResult:
        return SearchResult(
            title=self.title or "",
            link=self.url or "",
            snippet=self.content or "",
        )


class SearxngSearchResponse(SearxngBaseModel):
    """The JSON body returned by `GET /search?format=json` on a SearXNG instance.

    Everything except `results` is passed through as SearXNG sent it. Answers and infoboxes change shape
    between SearXNG releases and answer templates, so they are not modelled.
    """

    query: str = ""
    number_of_results: int = 0
    results: list[SearxngResult] = Field(default_factory=list)
    answers: list[Any] = Field(default_factory=list)
    corrections: list[Any] = Field(default_factory=list)
    infoboxes: list[dict[str, Any]] = Field(default_factory=list)
    suggestions: list[Any] = Field(default_factory=list)
    unresponsive_engines: list[Any] = Field(default_factory=list)

    def to_search_results(self) -> list[SearchResult]:
        return [result.to_search_result() for result in self.results]
