import asyncio
import contextlib
from typing_extensions import override

from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger

from searxng_search_mcp.transports.base import BaseTransport

logger = get_logger(__name__)


class StdioTransport(BaseTransport):
    """Serves a single MCP connection over the process's stdin and stdout for the life of the process."""

    def __init__(self, mcp: FastMCP[None]):
        self.mcp = mcp
        self._task: asyncio.Task[None] | None = None

    @override
    async def start(self) -> None:
        if self._task is not None:
            msg = "The stdio transport can only be started once"
            raise RuntimeError(msg)

        logger.info("Starting stdio transport...")
        self._task = asyncio.create_task(self.mcp.run_stdio_async(show_banner=False), name="mcp-stdio")
        logger.info("MCP server is ready to accept connections via stdio")

    @override
    async def stop(self) -> None:
        if self._task is None:
            return

        logger.info("Stopping stdio transport...")

        if not self._task.done():
            self._task.cancel()

        with contextlib.suppress(asyncio.CancelledError):
            await self._task

        logger.info("Stdio transport stopped")

    @override
    async def wait_closed(self) -> None:
        if self._task is None:
            return

        await asyncio.wait({self._task})

    @property
    @override
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
