"""Site strategies: per-domain request requirements and text extraction.

A strategy is looked up by matching its domain substring against the URL.
Adding a site means subclassing :class:`SiteStrategy` and calling
:func:`register_site`; the fetcher never needs to change.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from threading import Lock

from selectolax.parser import HTMLParser

from ..errors import ExtractionError, MissingUrlMarkerError, UnknownSourceError

_BR_TAG = re.compile(r"<br\s*/?>", re.IGNORECASE)


def select_text(html: str, selector: str) -> str:
    """Return the text of the first node matching ``selector``."""

    node = HTMLParser(html).css_first(selector)
    if node is None:
        raise ExtractionError(selector)
    return node.text(deep=True)


def select_all_text(html: str, selector: str) -> str:
    """Return the text of every node matching ``selector``, each ending in a newline."""

    nodes = HTMLParser(html).css(selector)
    if not nodes:
        raise ExtractionError(selector)
    return "".join(node.text(deep=True) + "\n" for node in nodes)


class SiteStrategy(ABC):
    """How one site is requested and how its pages turn into plain text."""

    name: str = ""
    domain: str = ""
    selector: str = ""
    required_marker: str | None = None
    marker_hint: str | None = None

    def matches(self, url: str) -> bool:
        return self.domain in url

    def check_url(self, url: str) -> None:
        """Fail fast when the URL lacks the marker this site depends on."""

        if self.required_marker and self.required_marker not in url:
            raise MissingUrlMarkerError(url, self.required_marker, self.marker_hint)

    def request_headers(self) -> dict[str, str]:
        return {}

    @abstractmethod
    def extract(self, html: str) -> str:
        """Translate a raw page body into plain narrative text."""


class Cool18Site(SiteStrategy):
    name = "cool18"
    domain = "cool18.com"
    selector = ".show_content"
    branding = " cool18.com"

    def extract(self, html: str) -> str:
        return select_text(html, self.selector).replace(self.branding, "\n")


class ChromasoMirrorSite(SiteStrategy):
    name = "chromaso-mirror"
    domain = "chromaso.net"
    selector = "div.card.mm-post > div.card-body"
    required_marker = "show="
    marker_hint = "select 'show this one only' first, otherwise other posts pollute the result"
    referer = "https://mirror.chromaso.net/forum/"

    def request_headers(self) -> dict[str, str]:
        return {"Referer": self.referer}

    def extract(self, html: str) -> str:
        return select_all_text(_BR_TAG.sub("\n", html), self.selector)


_registry: dict[str, SiteStrategy] = {}
_registry_lock = Lock()


def register_site(strategy: SiteStrategy, *, replace: bool = False) -> SiteStrategy:
    """Add a strategy to the lookup table keyed by its domain substring."""

    if not strategy.domain:
        raise ValueError("site strategy needs a domain")
    with _registry_lock:
        if strategy.domain in _registry and not replace:
            raise ValueError(f"site already registered for {strategy.domain}")
        _registry[strategy.domain] = strategy
    return strategy


def unregister_site(domain: str) -> None:
    with _registry_lock:
        _registry.pop(domain, None)


def registered_sites() -> list[SiteStrategy]:
    with _registry_lock:
        return list(_registry.values())


def resolve_site(url: str) -> SiteStrategy:
    """Return the strategy for ``url`` or raise :class:`UnknownSourceError`."""

    for strategy in registered_sites():
        if strategy.matches(url):
            return strategy
    raise UnknownSourceError(url)


register_site(Cool18Site())
register_site(ChromasoMirrorSite())


__all__ = [
    "ChromasoMirrorSite",
    "Cool18Site",
    "SiteStrategy",
    "register_site",
    "registered_sites",
    "resolve_site",
    "select_all_text",
    "select_text",
    "unregister_site",
]
