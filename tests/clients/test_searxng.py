import re
from collections.abc import AsyncGenerator
from typing import Any

import pytest
from aiohttp import ClientConnectionError
from aioresponses import aioresponses
from yarl import URL

from searxng_search_mcp.clients.searxng import USER_AGENT, SearxngClient, build_search_params
from searxng_search_mcp.models.errors import UpstreamError, UpstreamTimeoutError
from searxng_search_mcp.models.search import SearchOptions

BASE_URL = "http://searxng.test"
SEARCH_URL = re.compile(r"^http://searxng\.test/search\?.*$")


@pytest.fixture
async def searxng_client() -> AsyncGenerator[SearxngClient]:
    client = SearxngClient(base_url=f"{BASE_URL}/")
    yield client
    await client.close()


@pytest.fixture
async def authenticated_client() -> AsyncGenerator[SearxngClient]:
    client = SearxngClient(base_url=BASE_URL, auth=("user", "pass"))
    yield client
    await client.close()


def only_request(m: aioresponses) -> tuple[URL, dict[str, Any]]:
    [(method, url)] = m.requests.keys()
    assert method == "GET"
    [call] = m.requests[(method, url)]
    return url, call.kwargs


async def test_base_url_trailing_slash_is_stripped(searxng_client: SearxngClient):
    assert searxng_client.base_url == BASE_URL


def test_build_search_params_minimal():
    assert build_search_params("python", SearchOptions()) == {"q": "python", "format": "json"}


def test_build_search_params_all_options():
    options = SearchOptions(engines=("google", "bing"), categories=("general", "news"), safesearch=0, language=" ZH-CN ")

    assert build_search_params("python", options) == {
        "q": "python",
        "format": "json",
        "engines": "google,bing",
        "categories": "general,news",
        "safesearch": "0",
        "language": "zh-cn",
    }


@pytest.mark.parametrize("language", ["xx-yy", "zz", "EN_us"])
def test_build_search_params_drops_unknown_language(language: str):
    assert "language" not in build_search_params("python", SearchOptions(language=language))


async def test_fetch_one(searxng_client: SearxngClient, make_payload):
    with aioresponses() as m:
        m.get(SEARCH_URL, payload=make_payload("python"))

        response = await searxng_client.fetch_one("python", SearchOptions(engines=("duckduckgo",), safesearch=1, language="en"))

        url, kwargs = only_request(m)

    assert url.path == "/search"
    assert url.query["q"] == "python"
    assert url.query["format"] == "json"
    assert url.query["engines"] == "duckduckgo"
    assert url.query["safesearch"] == "1"
    assert url.query["language"] == "en"
    assert "categories" not in url.query

    assert kwargs["headers"]["User-Agent"] == USER_AGENT
    assert kwargs["headers"]["Accept"] == "application/json"
    assert "Authorization" not in kwargs["headers"]

    assert response.number_of_results == 1002
    assert len(response.results) == 2
    assert response.results[0].title == "python result 0"
    assert response.results[0].engines == ["duckduckgo", "brave"]
    assert response.unresponsive_engines == [["google", "timeout"]]


async def test_fetch_one_with_basic_auth(authenticated_client: SearxngClient, make_payload):
    with aioresponses() as m:
        m.get(SEARCH_URL, payload=make_payload("python"))

        await authenticated_client.fetch_one("python", SearchOptions())

        _, kwargs = only_request(m)

    assert kwargs["headers"]["Authorization"] == "Basic dXNlcjpwYXNz"


async def test_fetch_one_http_error(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.get(SEARCH_URL, status=500)

        with pytest.raises(UpstreamError, match="HTTP 500") as exc_info:
            await searxng_client.fetch_one("python", SearchOptions())

    assert exc_info.value.query == "python"


async def test_fetch_one_timeout(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.get(SEARCH_URL, exception=TimeoutError())

        with pytest.raises(UpstreamTimeoutError, match="timed out after 30000 ms"):
            await searxng_client.fetch_one("python", SearchOptions())


async def test_fetch_one_connection_error(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.get(SEARCH_URL, exception=ClientConnectionError("Connection refused"))

        with pytest.raises(UpstreamError, match="Connection refused"):
            await searxng_client.fetch_one("python", SearchOptions())


async def test_fetch_one_invalid_json(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.get(SEARCH_URL, body="<html>not json</html>")

        with pytest.raises(UpstreamError, match="Invalid JSON response"):
            await searxng_client.fetch_one("python", SearchOptions())


async def test_fetch_one_passes_through_answers_and_infoboxes(searxng_client: SearxngClient):
    translation_answer = {
        "translations": [{"text": "Bonjour", "transliteration": None}],
        "template": "answer/translations.html",
        "engine": "lingva",
    }
    infobox = {"infobox": "Python", "urls": [{"url": "https://www.python.org"}], "attributes": [{"value": "1991"}]}

    with aioresponses() as m:
        m.get(
            SEARCH_URL,
            payload={
                "query": "hello in french",
                "results": [{"title": "a result without a url"}, {"url": None, "title": None, "content": None}],
                "answers": [translation_answer, "a plain answer"],
                "infoboxes": [infobox],
            },
        )

        response = await searxng_client.fetch_one("hello in french", SearchOptions())

    assert response.answers == [translation_answer, "a plain answer"]
    assert response.infoboxes == [infobox]
    assert [result.model_dump() for result in response.to_search_results()] == [
        {"title": "a result without a url", "link": "", "snippet": ""},
        {"title": "", "link": "", "snippet": ""},
    ]


async def test_fetch_one_unexpected_shape(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.get(SEARCH_URL, payload={"results": "not a list"})

        with pytest.raises(UpstreamError, match="Unexpected response shape"):
            await searxng_client.fetch_one("python", SearchOptions())


async def test_fetch_one_is_not_retried(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.get(SEARCH_URL, status=429, repeat=True)

        with pytest.raises(UpstreamError, match="HTTP 429"):
            await searxng_client.fetch_one("python", SearchOptions())

        _, kwargs = only_request(m)

    assert kwargs["params"]["q"] == "python"


async def test_probe(authenticated_client: SearxngClient):
    with aioresponses() as m:
        m.head(f"{BASE_URL}/", status=200)

        assert await authenticated_client.probe() is True

        [call] = m.requests[("HEAD", URL(f"{BASE_URL}/"))]

    assert call.kwargs["headers"]["Authorization"] == "Basic dXNlcjpwYXNz"


async def test_probe_unhealthy(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.head(f"{BASE_URL}/", status=503)

        assert await searxng_client.probe() is False


async def test_probe_unreachable(searxng_client: SearxngClient):
    with aioresponses() as m:
        m.head(f"{BASE_URL}/", exception=ClientConnectionError("Connection refused"))

        assert await searxng_client.probe() is False
