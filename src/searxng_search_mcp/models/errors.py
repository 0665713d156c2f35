from fastmcp.exceptions import ToolError


class SearchToolError(ToolError):
    """Errors surfaced to the caller of the search tool."""


class SearchValidationError(SearchToolError):
    pass


class SearchExecutionError(SearchToolError):
    def __init__(self, reason: str):
        super().__init__(f"Search failed: {reason}")


class SearxngMCPError(Exception):
    """A base exception for the SearXNG search server."""

    msg: str

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)

    def __str__(self) -> str:
        return self.msg


class UpstreamError(SearxngMCPError):
    """A single query against the SearXNG instance failed."""

    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f'Search failed for query "{query}": {reason}')


class UpstreamTimeoutError(UpstreamError):
    def __init__(self, query: str, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(query, f"Request timed out after {timeout_ms} ms")


class ConfigurationError(SearxngMCPError):
    pass


class ShutdownError(SearxngMCPError):
    pass


BAD_REQUEST_CODE = -32000
INTERNAL_ERROR_CODE = -32603


class TransportError(SearxngMCPError):
    """A protocol-level error returned to an HTTP client as a JSON-RPC error envelope."""

    status_code: int = 500
    code: int = INTERNAL_ERROR_CODE

    def to_envelope(self) -> dict[str, object]:
        return {
            "jsonrpc": "2.0",
            "error": {"code": self.code, "message": self.msg},
            "id": None,
        }


class BadSessionRequestError(TransportError):
    status_code = 400
    code = BAD_REQUEST_CODE

    def __init__(self, reason: str = "No valid session ID provided or invalid initialization"):
        super().__init__(f"Bad Request: {reason}")


class SessionRegistryNotRunningError(TransportError):
    def __init__(self):
        super().__init__("The session registry is not running")
