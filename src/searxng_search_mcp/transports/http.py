import asyncio
import contextlib
from collections.abc import AsyncIterator, Generator
from datetime import UTC, datetime
from typing_extensions import override

import uvicorn
from fastmcp import FastMCP
from fastmcp.utilities.logging import get_logger
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER
from mcp.types import JSONRPCMessage, JSONRPCRequest
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from searxng_search_mcp import __version__
from searxng_search_mcp.models.errors import INTERNAL_ERROR_CODE, BadSessionRequestError, TransportError
from searxng_search_mcp.transports.base import BaseTransport
from searxng_search_mcp.transports.sessions import SessionRegistry

logger = get_logger(__name__)

MCP_PATH = "/mcp"
HEALTH_PATH = "/health"
PROTOCOL_VERSION = "2025-03-26"
DEFAULT_GRACE_PERIOD = 1.0

INTERNAL_ERROR_ENVELOPE = {
    "jsonrpc": "2.0",
    "error": {"code": INTERNAL_ERROR_CODE, "message": "Internal error"},
    "id": None,
}


def is_initialize_request(body: bytes) -> bool:
    try:
        message = JSONRPCMessage.model_validate_json(body)
    except ValidationError:
        return False

    return isinstance(message.root, JSONRPCRequest) and message.root.method == "initialize"


def replay_body(body: bytes, receive: Receive) -> Receive:
    """Hand an already-read request body to a downstream ASGI app, then fall back to the real receive channel."""

    replayed = False

    async def _receive() -> Message:
        nonlocal replayed

        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}

        return await receive()

    return _receive


class McpEndpoint:
    """Routes `/mcp` requests to the session they belong to, creating sessions only for initialize requests."""

    def __init__(self, sessions: SessionRegistry):
        self.sessions = sessions

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        token = request.headers.get(MCP_SESSION_ID_HEADER)

        logger.debug(f"{request.method} {request.url.path} (session: {token})")

        try:
            match request.method:
                case "POST":
                    await self.handle_post(request, token, send)
                case "GET":
                    await self.handle_get(request, token, send)
                case "DELETE":
                    await self.handle_delete(request, token, send)
                case _:
                    raise BadSessionRequestError(f"Unsupported method {request.method}")
        except TransportError as e:
            await JSONResponse(e.to_envelope(), status_code=e.status_code)(scope, receive, send)
        except Exception:
            logger.exception(f"Error handling MCP {request.method} request")
            await JSONResponse(INTERNAL_ERROR_ENVELOPE, status_code=500)(scope, receive, send)

    async def handle_post(self, request: Request, token: str | None, send: Send) -> None:
        body = await request.body()

        if token is None:
            if not is_initialize_request(body):
                logger.warning("Invalid MCP request: missing session ID and not an initialize request")
                raise BadSessionRequestError

            logger.info("Creating new MCP session")
            session = await self.sessions.create()
            response_status: int | None = None

            async def _send(message: Message) -> None:
                nonlocal response_status

                if message["type"] == "http.response.start":
                    response_status = message["status"]

                await send(message)

            try:
                await session.transport.handle_request(request.scope, replay_body(body, request.receive), _send)
            except Exception:
                await self.sessions.close(session.token)
                raise

            if response_status is None or response_status >= 400:
                logger.warning(f"Initialize request for session {session.token} failed with status {response_status}")
                await self.sessions.close(session.token)

            return

        session = self.sessions.get(token)

        await session.transport.handle_request(request.scope, replay_body(body, request.receive), send)

    async def handle_get(self, request: Request, token: str | None, send: Send) -> None:
        session = self.sessions.get(token)

        await session.transport.handle_request(request.scope, request.receive, send)

    async def handle_delete(self, request: Request, token: str | None, send: Send) -> None:
        session = self.sessions.get(token)

        await session.transport.handle_request(request.scope, request.receive, send)

        await self.sessions.close(session.token)
        logger.info(f"Session terminated: {session.token}")


class EmbeddedUvicornServer(uvicorn.Server):
    """A uvicorn server that leaves SIGINT/SIGTERM handling to the process that embeds it."""

    @override
    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None, None, None]:
        yield


class HttpTransport(BaseTransport):
    def __init__(
        self,
        mcp: FastMCP[None],
        host: str = "0.0.0.0",
        port: int = 3000,
        json_response: bool = False,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        log_level: str = "info",
    ):
        self.host = host
        self.port = port
        self.grace_period = grace_period
        self.log_level = log_level

        self.sessions = SessionRegistry(mcp._mcp_server, json_response=json_response)  # pyright: ignore[reportPrivateUsage]
        self.app = self.build_app()

        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None

    def build_app(self) -> Starlette:
        return Starlette(
            routes=[
                Route(HEALTH_PATH, endpoint=self.health, methods=["GET"]),
                Route(MCP_PATH, endpoint=McpEndpoint(self.sessions), methods=["GET", "POST", "DELETE"]),
            ],
            middleware=[
                Middleware(
                    CORSMiddleware,
                    allow_origins=["*"],
                    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
                    allow_headers=["Content-Type", "Authorization", MCP_SESSION_ID_HEADER],
                    expose_headers=[MCP_SESSION_ID_HEADER],
                    allow_credentials=False,
                ),
            ],
            exception_handlers={404: self.not_found, 500: self.internal_error},
            lifespan=self.lifespan,
        )

    @contextlib.asynccontextmanager
    async def lifespan(self, _app: Starlette) -> AsyncIterator[None]:
        async with self.sessions.run():
            yield

    async def health(self, _request: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "healthy",
                "timestamp": datetime.now(tz=UTC).isoformat(),
                "version": __version__,
                "transport": "StreamableHTTP",
                "protocol": PROTOCOL_VERSION,
                "sessions": len(self.sessions),
            }
        )

    async def not_found(self, _request: Request, _exc: Exception) -> JSONResponse:
        return JSONResponse({"error": "Not found"}, status_code=404)

    async def internal_error(self, _request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error in HTTP transport: {exc!r}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    async def _serve(self, server: uvicorn.Server) -> None:
        # uvicorn calls sys.exit(1) when it cannot bind, which would otherwise escape the event loop
        try:
            await server.serve()
        except SystemExit as e:
            msg = f"HTTP transport failed to start on http://{self.host}:{self.port}"
            raise TransportError(msg) from e

    @override
    async def start(self) -> None:
        if self._server is not None:
            msg = "The HTTP transport can only be started once"
            raise RuntimeError(msg)

        config = uvicorn.Config(
            app=self.app,
            host=self.host,
            port=self.port,
            lifespan="on",
            log_level=self.log_level,
            timeout_graceful_shutdown=max(1, round(self.grace_period)),
        )
        self._server = EmbeddedUvicornServer(config)
        self._serve_task = asyncio.create_task(self._serve(self._server), name="mcp-http")

        while not self._server.started:
            if self._serve_task.done():
                self._serve_task.result()
                msg = f"HTTP transport failed to start on http://{self.host}:{self.port}"
                raise TransportError(msg)

            await asyncio.sleep(0.05)

        if self.port == 0:
            self.port = self._server.servers[0].sockets[0].getsockname()[1]

        logger.info(f"StreamableHTTP transport started on http://{self.host}:{self.port}")
        logger.info(f"  Health check: http://{self.host}:{self.port}{HEALTH_PATH}")
        logger.info(f"  MCP endpoint: http://{self.host}:{self.port}{MCP_PATH}")

    @override
    async def stop(self) -> None:
        if self._server is None or self._serve_task is None:
            return

        logger.info("Stopping HTTP transport...")

        await self.sessions.close_all()

        self._server.should_exit = True

        done, _ = await asyncio.wait({self._serve_task}, timeout=self.grace_period)

        if not done:
            logger.warning("Force closing HTTP server connections")
            self._server.force_exit = True

        await self._serve_task

        logger.info("HTTP transport stopped")

    @override
    async def wait_closed(self) -> None:
        if self._serve_task is None:
            return

        await asyncio.wait({self._serve_task})

    @property
    @override
    def is_running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()
