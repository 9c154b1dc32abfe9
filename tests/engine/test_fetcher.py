from __future__ import annotations

import httpx
import pytest

from novel_fetcher.config import DEFAULT_USER_AGENT, HttpClientConfig
from novel_fetcher.engine.fetcher import READ_CHUNK_SIZE, Fetcher, LocalContent, build_client
from novel_fetcher.engine.listing import LocalSource, RemoteSource
from novel_fetcher.engine.sites import Cool18Site
from novel_fetcher.errors import FetchError, MissingUrlMarkerError, UnknownSourceError

COOL_URL = "https://www.cool18.com/novel/1"
MIRROR_URL = "https://mirror.chromaso.net/thread/52498?show=154344"


def test_remote_fetch_returns_raw_text(page_transport) -> None:
    seen: list[httpx.Request] = []
    transport = page_transport({COOL_URL: "<div class='show_content'>正文</div>"}, seen=seen)
    with Fetcher(HttpClientConfig(), transport=transport) as fetcher:
        response = fetcher.fetch(RemoteSource(COOL_URL))

    assert response.status_code == 200
    assert response.text == "<div class='show_content'>正文</div>"
    assert isinstance(response.site, Cool18Site)
    assert seen[0].method == "GET"
    assert seen[0].headers["User-Agent"] == DEFAULT_USER_AGENT
    assert "Referer" not in seen[0].headers


def test_mirror_fetch_sends_referer(page_transport) -> None:
    seen: list[httpx.Request] = []
    transport = page_transport({MIRROR_URL: "<html></html>"}, seen=seen)
    with Fetcher(HttpClientConfig(user_agent="custom-agent"), transport=transport) as fetcher:
        fetcher.fetch_remote(RemoteSource(MIRROR_URL))
    assert seen[0].headers["Referer"] == "https://mirror.chromaso.net/forum/"
    assert seen[0].headers["User-Agent"] == "custom-agent"


@pytest.mark.parametrize(
    ("url", "error"),
    [
        ("https://mirror.chromaso.net/thread/52498", MissingUrlMarkerError),
        ("https://unknown.example/page", UnknownSourceError),
    ],
)
def test_preconditions_fail_before_any_request(page_transport, url, error) -> None:
    seen: list[httpx.Request] = []
    with Fetcher(HttpClientConfig(), transport=page_transport({url: "x"}, seen=seen)) as fetcher:
        with pytest.raises(error):
            fetcher.fetch_remote(RemoteSource(url))
    assert seen == []


def test_error_status_becomes_fetch_error(page_transport) -> None:
    with Fetcher(HttpClientConfig(), transport=page_transport({COOL_URL: 503})) as fetcher:
        with pytest.raises(FetchError) as excinfo:
            fetcher.fetch_remote(RemoteSource(COOL_URL))
    assert excinfo.value.status_code == 503
    assert excinfo.value.url == COOL_URL


def test_transport_failure_becomes_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with Fetcher(HttpClientConfig(), transport=httpx.MockTransport(handler)) as fetcher:
        with pytest.raises(FetchError, match="connection refused") as excinfo:
            fetcher.fetch_remote(RemoteSource(COOL_URL))
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_undecodable_body_becomes_fetch_error(page_transport) -> None:
    with Fetcher(HttpClientConfig(), transport=page_transport({COOL_URL: b"\xff\xfe\xfa"})) as fetcher:
        with pytest.raises(FetchError, match="UTF-8"):
            fetcher.fetch_remote(RemoteSource(COOL_URL))


def test_read_local_reads_whole_file_in_chunks(tmp_path) -> None:
    payload = ("第一章\n" * 4000).encode("utf-8")
    assert len(payload) > READ_CHUNK_SIZE * 2
    path = tmp_path / "part.txt"
    path.write_bytes(payload)

    with Fetcher(HttpClientConfig()) as fetcher:
        content = fetcher.fetch(LocalSource(str(path)))

    assert isinstance(content, LocalContent)
    assert content.data == payload
    assert content.size == len(payload)


def test_read_local_missing_file(tmp_path) -> None:
    with Fetcher(HttpClientConfig()) as fetcher:
        with pytest.raises(FileNotFoundError):
            fetcher.read_local(LocalSource(str(tmp_path / "missing.txt")))


def test_build_client_applies_shared_settings() -> None:
    config = HttpClientConfig(proxy="http://127.0.0.1:7890", timeout=12)
    client = build_client(config)
    try:
        assert client.headers["User-Agent"] == DEFAULT_USER_AGENT
        assert client.timeout.read == 12
        assert client.follow_redirects is True
    finally:
        client.close()
