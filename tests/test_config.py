import pytest

from searxng_search_mcp.config import MISSING_URL_HELP, Settings, load_settings
from searxng_search_mcp.models.errors import ConfigurationError


def test_load_settings_defaults():
    settings = load_settings(searxng_url="https://search.example.com")

    assert settings == Settings(searxng_url="https://search.example.com")
    assert settings.transport == "stdio"
    assert settings.host == "0.0.0.0"
    assert settings.port == 3000
    assert settings.timeout_ms == 30_000
    assert settings.debug is False
    assert settings.auth is None


@pytest.mark.parametrize("searxng_url", [None, ""])
def test_load_settings_requires_url(searxng_url: str | None):
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(searxng_url=searxng_url)

    assert str(exc_info.value) == MISSING_URL_HELP
    assert "SEARXNG_URL" in str(exc_info.value)


@pytest.mark.parametrize("searxng_url", ["search.example.com", "ftp://search.example.com", "not a url", "http://"])
def test_load_settings_rejects_invalid_url(searxng_url: str):
    with pytest.raises(ConfigurationError, match="Invalid SearXNG URL format"):
        load_settings(searxng_url=searxng_url)


@pytest.mark.parametrize(
    ("searxng_url", "expected"),
    [
        ("http://localhost:8080/", "http://localhost:8080"),
        ("https://search.example.com/searxng/", "https://search.example.com/searxng"),
        (" https://search.example.com ", "https://search.example.com"),
    ],
)
def test_load_settings_normalizes_url(searxng_url: str, expected: str):
    assert load_settings(searxng_url=searxng_url).searxng_url == expected


def test_load_settings_with_auth():
    settings = load_settings(searxng_url="https://search.example.com", username="user", password="pass")

    assert settings.auth == ("user", "pass")


@pytest.mark.parametrize(("username", "password"), [("user", None), (None, "pass"), ("user", "")])
def test_load_settings_requires_auth_pair(username: str | None, password: str | None):
    with pytest.raises(ConfigurationError, match="Both a username and a password"):
        load_settings(searxng_url="https://search.example.com", username=username, password=password)


@pytest.mark.parametrize("port", [0, -1, 65536])
def test_load_settings_rejects_invalid_port(port: int):
    with pytest.raises(ConfigurationError, match="port"):
        load_settings(searxng_url="https://search.example.com", port=port)


def test_load_settings_rejects_invalid_transport():
    with pytest.raises(ConfigurationError, match="transport"):
        load_settings(searxng_url="https://search.example.com", transport="websocket")


def test_load_settings_rejects_invalid_timeout():
    with pytest.raises(ConfigurationError, match="timeout_ms"):
        load_settings(searxng_url="https://search.example.com", timeout_ms=0)


def test_load_settings_http():
    settings = load_settings(searxng_url="https://search.example.com", transport="http", host="127.0.0.1", port=8080, debug=True)

    assert settings.transport == "http"
    assert settings.host == "127.0.0.1"
    assert settings.port == 8080
    assert settings.debug is True
