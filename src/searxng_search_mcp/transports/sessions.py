"""Session bookkeeping for the Streamable HTTP transport.

Every MCP client that initializes over HTTP gets its own session: an opaque token, a
`StreamableHTTPServerTransport`, and a task running the MCP server over that transport's
streams. The registry owns the token -> session map. It is only mutated by plain dict
operations with no await in between, so insertions and removals never interleave on the
event loop.
"""

import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import StrEnum
from typing import Any, ClassVar

import anyio
from anyio.abc import TaskGroup, TaskStatus
from fastmcp.utilities.logging import get_logger
from mcp.server.lowlevel.server import Server as LowLevelServer
from mcp.server.streamable_http import StreamableHTTPServerTransport
from pydantic import BaseModel, ConfigDict, Field

from searxng_search_mcp.models.errors import BadSessionRequestError, SessionRegistryNotRunningError

logger = get_logger(__name__)


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


class SessionState(StrEnum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CLOSED = "closed"


class Session(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(arbitrary_types_allowed=True)

    token: str
    transport: StreamableHTTPServerTransport
    state: SessionState = SessionState.UNINITIALIZED
    cancel_scope: anyio.CancelScope = Field(default_factory=anyio.CancelScope)

    async def close(self) -> None:
        """Terminate the transport and stop the server task. Safe to call more than once."""

        if self.state is SessionState.CLOSED:
            return

        self.state = SessionState.CLOSED

        if not self.transport.is_terminated:
            await self.transport.terminate()

        self.cancel_scope.cancel()


class SessionRegistry:
    def __init__(self, server: LowLevelServer[Any, Any], json_response: bool = False):
        self.server = server
        self.json_response = json_response

        self._sessions: dict[str, Session] = {}
        self._task_group: TaskGroup | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        return token in self._sessions

    @property
    def tokens(self) -> list[str]:
        return list(self._sessions)

    @property
    def is_running(self) -> bool:
        return self._task_group is not None

    @asynccontextmanager
    async def run(self) -> AsyncIterator["SessionRegistry"]:
        """Own the task group the per-session servers run in. Every session is closed on exit."""

        async with anyio.create_task_group() as task_group:
            self._task_group = task_group
            try:
                yield self
            finally:
                self._task_group = None
                await self.close_all()
                task_group.cancel_scope.cancel()

    def get(self, token: str | None) -> Session:
        """Look up an active session. Unknown or missing tokens are rejected, never created."""

        if token is None:
            raise BadSessionRequestError

        session = self._sessions.get(token)

        if session is None or session.state is not SessionState.ACTIVE:
            logger.warning(f"Rejected request for unknown session {token}")
            raise BadSessionRequestError

        return session

    async def create(self) -> Session:
        if self._task_group is None:
            raise SessionRegistryNotRunningError

        token = generate_session_token()
        session = Session(
            token=token,
            transport=StreamableHTTPServerTransport(mcp_session_id=token, is_json_response_enabled=self.json_response),
        )

        await self._task_group.start(self._run_session, session)

        session.state = SessionState.ACTIVE
        self._sessions[session.token] = session

        logger.info(f"Session initialized: {session.token}")

        return session

    async def close(self, token: str) -> bool:
        """Close the session for `token`. Returns False if there was no such session."""

        session = self._sessions.pop(token, None)

        if session is None:
            logger.debug(f"Session {token} is already closed")
            return False

        await session.close()

        logger.info(f"Session closed: {token}")

        return True

    async def close_all(self) -> None:
        tokens = self.tokens

        logger.debug(f"Closing {len(tokens)} active sessions")

        for token in tokens:
            try:
                await self.close(token)
            except Exception:
                logger.warning(f"Error closing session {token}", exc_info=True)

    def _on_session_closed(self, session: Session) -> None:
        if self._sessions.get(session.token) is session:
            del self._sessions[session.token]
            logger.info(f"Session closed by connection: {session.token}")

        session.state = SessionState.CLOSED

    async def _run_session(self, session: Session, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        with session.cancel_scope:
            try:
                async with session.transport.connect() as (read_stream, write_stream):
                    task_status.started()
                    await self.server.run(
                        read_stream,
                        write_stream,
                        self.server.create_initialization_options(),
                        stateless=False,
                    )
            except Exception:
                logger.exception(f"Session {session.token} crashed")
            finally:
                self._on_session_closed(session)
