"""Exception hierarchy for list parsing, fetching, extraction and output.

Every failure raised while processing a work unit derives from
:class:`NovelFetcherError` (apart from plain ``OSError`` for filesystem
problems), so the orchestrator can report a unit failure with a category
while leaving sibling units untouched.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "NovelFetcherError",
    "ConfigError",
    "PreconditionError",
    "UnknownSourceError",
    "MissingUrlMarkerError",
    "FetchError",
    "ExtractionError",
    "SinkError",
    "ListReadError",
]


class NovelFetcherError(RuntimeError):
    """Base exception for novel fetching failures."""


class ConfigError(NovelFetcherError):
    """Raised when a configuration file cannot be understood."""


class PreconditionError(NovelFetcherError):
    """Raised before any network call when a source cannot be fetched as given."""


class UnknownSourceError(PreconditionError):
    """Raised when no registered site matches a remote URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"unknown source: {url}")
        self.url = url


class MissingUrlMarkerError(PreconditionError):
    """Raised when a site requires a query marker that the URL does not carry."""

    def __init__(self, url: str, marker: str, hint: str | None = None) -> None:
        message = f"url is missing required marker {marker!r}: {url}"
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message)
        self.url = url
        self.marker = marker


class FetchError(NovelFetcherError):
    """Raised when retrieving a remote page fails."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ExtractionError(NovelFetcherError):
    """Raised when the expected structural marker is absent from a page."""

    def __init__(self, selector: str) -> None:
        super().__init__(f"no selector found: {selector}")
        self.selector = selector


class SinkError(NovelFetcherError):
    """Raised when assembled output cannot be written under a usable name."""


class ListReadError(NovelFetcherError):
    """Raised when the novel list cannot be read or decoded.

    ``summary`` carries the outcomes of the units spawned before the
    failure; they have already run to completion.
    """

    def __init__(self, path: str, reason: BaseException, summary: Any = None) -> None:
        super().__init__(f"cannot read novel list {path}: {reason}")
        self.path = path
        self.summary = summary
