import asyncio
import contextlib
import signal

import asyncclick as click
from dotenv import load_dotenv
from fastmcp.utilities.logging import get_logger

from searxng_search_mcp.clients.searxng import SearxngClient
from searxng_search_mcp.config import Settings, load_settings
from searxng_search_mcp.models.errors import ConfigurationError, SearxngMCPError, ShutdownError
from searxng_search_mcp.server import build_mcp
from searxng_search_mcp.transports import create_transport
from searxng_search_mcp.utils.logging import setup_logging

logger = get_logger(__name__)

SEARXNG_URL_HELP = "The URL of the SearXNG instance to search, e.g. https://search.example.com."
USERNAME_HELP = "The Basic Auth username for the SearXNG instance. Requires --password."
PASSWORD_HELP = "The Basic Auth password for the SearXNG instance. Requires --username."
MCP_TRANSPORT_HELP = "The transport to use for the MCP server. Defaults to stdio."
HOST_HELP = "The host to bind the HTTP transport to."
PORT_HELP = "The port to bind the HTTP transport to."
TIMEOUT_HELP = "The timeout, in milliseconds, for each query sent to SearXNG."
DEBUG_HELP = "Enable debug logging."


async def wait_for_shutdown(transport_closed: asyncio.Future[None] | asyncio.Task[None]) -> None:
    """Wait for SIGINT/SIGTERM, or for the transport to close on its own."""

    loop = asyncio.get_running_loop()
    shutdown_requested = asyncio.Event()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, shutdown_requested.set)

    shutdown_task = asyncio.create_task(shutdown_requested.wait())

    try:
        await asyncio.wait({shutdown_task, transport_closed}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        shutdown_task.cancel()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.remove_signal_handler(sig)


async def serve(settings: Settings) -> None:
    search_client = SearxngClient.from_settings(settings)
    mcp = build_mcp(search_client)

    logger.info("Testing SearXNG connection...")
    if await search_client.probe():
        logger.info("SearXNG connection test successful")
    else:
        logger.warning("SearXNG connection test failed, but continuing anyway")
        logger.warning("Please check your SEARXNG_URL and authentication settings")

    transport = create_transport(mcp, settings)

    try:
        await transport.start()

        transport_closed = asyncio.create_task(transport.wait_closed())
        await wait_for_shutdown(transport_closed)
        transport_closed.cancel()

        logger.info("Shutting down...")

        try:
            await transport.stop()
        except Exception as e:
            msg = f"Error during shutdown: {e}"
            raise ShutdownError(msg) from e
    finally:
        await search_client.close()

    logger.info("Server stopped gracefully")


@click.command()
@click.option("--searxng-url", envvar="SEARXNG_URL", type=str, default=None, help=SEARXNG_URL_HELP)
@click.option("--username", envvar="SEARXNG_USERNAME", type=str, default=None, help=USERNAME_HELP)
@click.option("--password", envvar="SEARXNG_PASSWORD", type=str, default=None, help=PASSWORD_HELP)
@click.option("--mcp-transport", envvar="TRANSPORT", type=click.Choice(["stdio", "http"]), default="stdio", help=MCP_TRANSPORT_HELP)
@click.option("--host", envvar="HOST", type=str, default="0.0.0.0", help=HOST_HELP)
@click.option("--port", envvar="PORT", type=int, default=3000, help=PORT_HELP)
@click.option("--timeout", envvar="SEARXNG_TIMEOUT", type=int, default=30_000, help=TIMEOUT_HELP)
@click.option("--debug", envvar="DEBUG", is_flag=True, default=False, help=DEBUG_HELP)
async def cli(
    searxng_url: str | None,
    username: str | None,
    password: str | None,
    mcp_transport: str,
    host: str,
    port: int,
    timeout: int,
    debug: bool,
):
    setup_logging(debug=debug)

    logger.info("Starting SearXNG Search MCP Server...")
    logger.info(f"Transport: {mcp_transport}")

    try:
        settings = load_settings(
            searxng_url=searxng_url,
            username=username,
            password=password,
            transport=mcp_transport,
            host=host,
            port=port,
            timeout_ms=timeout,
            debug=debug,
        )
    except ConfigurationError as e:
        logger.error(f"Failed to start server: {e}")
        raise click.ClickException(str(e)) from e

    logger.info("Configuration loaded successfully")
    logger.debug(f"Configuration: {settings.model_dump(exclude={'password'})}")

    try:
        await serve(settings)
    except SearxngMCPError as e:
        logger.exception("Server failed")
        raise click.ClickException(str(e)) from e


def run_mcp():
    load_dotenv()
    asyncio.run(cli())


if __name__ == "__main__":
    run_mcp()
