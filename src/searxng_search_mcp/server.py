from fastmcp import FastMCP
from fastmcp.server.middleware.logging import LoggingMiddleware

from searxng_search_mcp.clients.base import BaseSearchClient
from searxng_search_mcp.servers.search import SearchServer

SERVER_NAME = "SearXNG Search MCP"

INSTRUCTIONS = """
Use the `search` tool to run one or more web searches through SearXNG. Pass several related phrasings of a question
in `queries` to search them all at once; each query succeeds or fails on its own.
"""


def build_mcp(search_client: BaseSearchClient) -> FastMCP[None]:
    mcp = FastMCP[None](name=SERVER_NAME, instructions=INSTRUCTIONS.strip())

    search_server = SearchServer(search_client=search_client)
    search_server.register_tools(mcp)

    mcp.add_middleware(middleware=LoggingMiddleware())

    return mcp
