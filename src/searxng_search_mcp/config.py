from typing import Literal, Self

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from yarl import URL

from searxng_search_mcp.models.errors import ConfigurationError

TransportType = Literal["stdio", "http"]

MISSING_URL_HELP = """SEARXNG_URL is required.

Set SEARXNG_URL (or pass --searxng-url) to the URL of your SearXNG instance, for example:
  export SEARXNG_URL="https://search.example.com"
  export SEARXNG_URL="http://localhost:8080"

The variable can also be placed in a .env file in the working directory."""


class Settings(BaseModel):
    searxng_url: str
    username: str | None = None
    password: str | None = None
    transport: TransportType = "stdio"
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    timeout_ms: int = Field(default=30_000, gt=0)
    debug: bool = False

    @field_validator("searxng_url")
    @classmethod
    def validate_searxng_url(cls, value: str) -> str:
        try:
            url = URL(value.strip())
        except ValueError as e:
            msg = f"Invalid SearXNG URL format: {value}"
            raise ValueError(msg) from e

        if url.scheme not in {"http", "https"} or not url.host:
            msg = f"Invalid SearXNG URL format: {value}. Expected something like https://search.example.com"
            raise ValueError(msg)

        return str(url).removesuffix("/")

    @model_validator(mode="after")
    def check_auth_pair(self) -> Self:
        if bool(self.username) != bool(self.password):
            msg = (
                "Both a username and a password must be provided for Basic Auth, or neither. "
                f"username is {'set' if self.username else 'not set'}, password is {'set' if self.password else 'not set'}."
            )
            raise ValueError(msg)

        return self

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username and self.password:
            return (self.username, self.password)

        return None


def load_settings(
    *,
    searxng_url: str | None,
    username: str | None = None,
    password: str | None = None,
    transport: str = "stdio",
    host: str = "0.0.0.0",
    port: int = 3000,
    timeout_ms: int = 30_000,
    debug: bool = False,
) -> Settings:
    """Validate the server settings, raising a ConfigurationError that is fit to show to a user."""

    if not searxng_url:
        raise ConfigurationError(MISSING_URL_HELP)

    try:
        return Settings.model_validate(
            {
                "searxng_url": searxng_url,
                "username": username or None,
                "password": password or None,
                "transport": transport,
                "host": host,
                "port": port,
                "timeout_ms": timeout_ms,
                "debug": debug,
            }
        )
    except ValidationError as e:
        problems = "\n".join(f"  {'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}" for error in e.errors())
        msg = f"Invalid configuration:\n{problems}"
        raise ConfigurationError(msg) from e
