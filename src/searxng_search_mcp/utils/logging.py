from fastmcp.utilities.logging import configure_logging, get_logger

BASE_LOGGER = get_logger("searxng_search_mcp")


def setup_logging(debug: bool = False) -> None:
    """Send log records to stderr so they never mix with JSON-RPC traffic on stdout."""

    configure_logging(level="DEBUG" if debug else "INFO")

    if BASE_LOGGER.parent is not None:
        BASE_LOGGER.parent.propagate = False
