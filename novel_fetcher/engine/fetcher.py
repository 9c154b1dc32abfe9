"""Source fetching: local file reads and remote page retrieval."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

import httpx
import structlog

from ..config import HttpClientConfig
from ..errors import FetchError
from .listing import LocalSource, RemoteSource, SourceDescriptor
from .sites import SiteStrategy, resolve_site

READ_CHUNK_SIZE = 8 * 1024


@dataclass(slots=True)
class LocalContent:
    """Bytes read from a local source."""

    path: str
    data: bytes
    size: int


@dataclass(slots=True)
class FetchResponse:
    """Raw page body returned for a remote source, not yet extracted."""

    url: str
    status_code: int
    text: str
    site: SiteStrategy = field(repr=False)
    headers: Dict[str, str] = field(default_factory=dict, repr=False)


def build_client(
    config: HttpClientConfig, transport: httpx.BaseTransport | None = None
) -> httpx.Client:
    """Create the HTTP client shared, read-only, by every unit of a run."""

    kwargs: dict = {
        "headers": {"User-Agent": config.user_agent},
        "timeout": config.timeout,
        "follow_redirects": config.follow_redirects,
    }
    if config.proxy:
        kwargs["proxy"] = config.proxy
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.Client(**kwargs)


class Fetcher:
    """Produce raw content for a source descriptor."""

    def __init__(
        self,
        http_config: HttpClientConfig,
        logger: structlog.BoundLogger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.http_config = http_config
        self.logger = logger or structlog.get_logger("novel_fetcher.fetcher")
        self._client = build_client(http_config, transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def fetch(self, source: SourceDescriptor) -> LocalContent | FetchResponse:
        if isinstance(source, LocalSource):
            return self.read_local(source)
        return self.fetch_remote(source)

    # ------------------------------------------------------------------
    def read_local(self, source: LocalSource) -> LocalContent:
        chunks: list[bytes] = []
        size = 0
        with open(source.path, "rb") as stream:
            while True:
                chunk = stream.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
                size += len(chunk)
        return LocalContent(path=source.path, data=b"".join(chunks), size=size)

    def prepare_remote(self, source: RemoteSource) -> SiteStrategy:
        """Resolve the site and check its URL requirements without any network call."""

        site = resolve_site(source.url)
        site.check_url(source.url)
        return site

    def fetch_remote(self, source: RemoteSource, site: SiteStrategy | None = None) -> FetchResponse:
        site = site or self.prepare_remote(source)
        try:
            response = self._client.get(source.url, headers=site.request_headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self.logger.warning(
                "fetch_error", url=source.url, status=exc.response.status_code, error=str(exc)
            )
            raise FetchError(
                f"Unexpected status {exc.response.status_code}: {source.url}",
                url=source.url,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            self.logger.warning("fetch_error", url=source.url, error=str(exc))
            raise FetchError(f"Request failed for {source.url}: {exc}", url=source.url) from exc
        try:
            text = response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FetchError(
                f"Response body is not valid UTF-8: {source.url}",
                url=source.url,
                status_code=response.status_code,
            ) from exc
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=text,
            site=site,
            headers=dict(response.headers),
        )


__all__ = ["Fetcher", "FetchResponse", "LocalContent", "READ_CHUNK_SIZE", "build_client"]
