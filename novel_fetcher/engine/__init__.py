"""Engine components: list parsing, fetching, extraction, throttling, output."""

from .fetcher import FetchResponse, Fetcher, LocalContent
from .governor import ConcurrencyGovernor
from .listing import LocalSource, NovelListReader, RemoteSource, SourceDescriptor, WorkUnit
from .sink import BaseSink, FileSink, OutputPathAllocator
from .sites import SiteStrategy, register_site, registered_sites, resolve_site
from .thread_pool import ThreadPoolManager

__all__ = [
    "BaseSink",
    "ConcurrencyGovernor",
    "FetchResponse",
    "Fetcher",
    "FileSink",
    "LocalContent",
    "LocalSource",
    "NovelListReader",
    "OutputPathAllocator",
    "RemoteSource",
    "SiteStrategy",
    "SourceDescriptor",
    "ThreadPoolManager",
    "WorkUnit",
    "register_site",
    "registered_sites",
    "resolve_site",
]
