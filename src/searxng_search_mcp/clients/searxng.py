from typing import Any

from aiohttp import BasicAuth, ClientError, ClientResponseError, ClientSession, ClientTimeout
from fastmcp.utilities.logging import get_logger
from pydantic import ValidationError
from typing_extensions import override

from searxng_search_mcp import __version__
from searxng_search_mcp.clients.base import BaseSearchClient
from searxng_search_mcp.clients.languages import normalize_language
from searxng_search_mcp.config import Settings
from searxng_search_mcp.models.errors import UpstreamError, UpstreamTimeoutError
from searxng_search_mcp.models.search import SearchOptions
from searxng_search_mcp.models.searxng import SearxngSearchResponse

logger = get_logger(__name__)

DEFAULT_TIMEOUT_MS = 30_000
PROBE_TIMEOUT_MS = 5_000
USER_AGENT = f"SearXNG-Search-MCP-Client/{__version__}"


def build_search_params(query: str, options: SearchOptions) -> dict[str, str]:
    """Build the query string for `GET /search`, leaving out any option that is unset or unusable."""

    params: dict[str, str] = {"q": query, "format": "json"}

    if options.engines:
        params["engines"] = ",".join(options.engines)

    if options.categories:
        params["categories"] = ",".join(options.categories)

    if options.safesearch is not None:
        params["safesearch"] = str(options.safesearch)

    if language := normalize_language(options.language):
        params["language"] = language

    return params


class SearxngClient(BaseSearchClient):
    session: ClientSession | None

    def __init__(
        self,
        base_url: str,
        auth: tuple[str, str] | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        session: ClientSession | None = None,
    ):
        self.base_url = base_url.removesuffix("/")
        self.auth = BasicAuth(*auth) if auth else None
        self.timeout_ms = timeout_ms
        self.session = session

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearxngClient":
        return cls(base_url=settings.searxng_url, auth=settings.auth, timeout_ms=settings.timeout_ms)

    def _get_session(self) -> ClientSession:
        if self.session is None:
            self.session = ClientSession()

        return self.session

    def _auth_headers(self) -> dict[str, str]:
        if self.auth is None:
            return {}

        return {"Authorization": self.auth.encode()}

    @override
    async def fetch_one(self, query: str, options: SearchOptions) -> SearxngSearchResponse:
        params = build_search_params(query, options)
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json", **self._auth_headers()}

        logger.debug(f"Searching SearXNG for {query!r} with params {params}")

        payload: Any
        try:
            async with self._get_session().get(
                url=f"{self.base_url}/search",
                params=params,
                headers=headers,
                timeout=ClientTimeout(total=self.timeout_ms / 1000),
            ) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)
        except TimeoutError as e:
            raise UpstreamTimeoutError(query, self.timeout_ms) from e
        except ClientResponseError as e:
            raise UpstreamError(query, f"HTTP {e.status}: {e.message}") from e
        except ClientError as e:
            raise UpstreamError(query, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise UpstreamError(query, f"Invalid JSON response: {e}") from e

        try:
            return SearxngSearchResponse.model_validate(payload)
        except ValidationError as e:
            raise UpstreamError(query, f"Unexpected response shape: {e.error_count()} validation errors") from e

    @override
    async def probe(self) -> bool:
        """Check that the SearXNG instance answers a HEAD request. Never raises."""

        try:
            async with self._get_session().head(
                url=f"{self.base_url}/",
                headers=self._auth_headers(),
                timeout=ClientTimeout(total=PROBE_TIMEOUT_MS / 1000),
            ) as response:
                return response.ok
        except Exception as e:
            logger.debug(f"SearXNG probe of {self.base_url} failed: {e!r}")
            return False

    @override
    async def close(self) -> None:
        if self.session is not None and not self.session.closed:
            await self.session.close()
