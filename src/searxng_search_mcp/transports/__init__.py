from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger

from searxng_search_mcp.config import Settings
from searxng_search_mcp.transports.base import BaseTransport
from searxng_search_mcp.transports.http import HttpTransport
from searxng_search_mcp.transports.stdio import StdioTransport

logger = get_logger(__name__)

__all__ = ["BaseTransport", "HttpTransport", "StdioTransport", "create_transport"]


def create_transport(mcp: FastMCP[None], settings: Settings) -> BaseTransport:
    match settings.transport:
        case "stdio":
            logger.info("Creating stdio transport")
            return StdioTransport(mcp)
        case "http":
            logger.info(f"Creating HTTP transport on {settings.host}:{settings.port}")
            return HttpTransport(mcp, host=settings.host, port=settings.port, log_level="debug" if settings.debug else "info")
