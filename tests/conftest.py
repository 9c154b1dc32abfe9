"""Shared fixtures: configs, list files and mocked HTTP transports."""

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Mapping

import httpx
import pytest

from novel_fetcher.config import GlobalConfig

FIXED_NOW = datetime(2024, 5, 20, 12, 0, 0, 123456)


@pytest.fixture
def cool18_page() -> Callable[[str], str]:
    return lambda body: f"<html><body><div class='show_content'>{body}</div></body></html>"


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def sample_global_config(tmp_path: Path) -> GlobalConfig:
    return GlobalConfig(output_dir=tmp_path / "out", pacing_delay_ms=0, unit_workers=8)


@pytest.fixture
def write_list(tmp_path: Path) -> Callable[[Iterable[str]], Path]:
    def _writer(lines: Iterable[str], name: str = "novels.txt") -> Path:
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _writer


@pytest.fixture
def page_transport() -> Callable[..., httpx.MockTransport]:
    """Build a transport serving fixed bodies per URL, with optional latency."""

    def _builder(
        pages: Mapping[str, str | bytes | int],
        delays: Mapping[str, float] | None = None,
        seen: list[httpx.Request] | None = None,
    ) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if seen is not None:
                seen.append(request)
            if delays and url in delays:
                time.sleep(delays[url])
            body = pages.get(url)
            if body is None:
                return httpx.Response(404, text="missing")
            if isinstance(body, int):
                return httpx.Response(body, text="error")
            content = body.encode("utf-8") if isinstance(body, str) else body
            return httpx.Response(200, content=content)

        return httpx.MockTransport(handler)

    return _builder
