from abc import ABC, abstractmethod


class BaseTransport(ABC):
    """Binds an MCP server to a way of talking to clients."""

    @abstractmethod
    async def start(self) -> None:
        """Start serving. Returns once the transport is ready for clients."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop serving and release every connection."""

    @abstractmethod
    async def wait_closed(self) -> None:
        """Wait until the transport stops on its own (for example when stdin is closed)."""

    @property
    @abstractmethod
    def is_running(self) -> bool: ...
