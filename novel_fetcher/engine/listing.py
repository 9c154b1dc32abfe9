"""Novel list parsing: group source lines into work units.

The list grammar is line oriented::

    // a comment
    https://www.cool18.com/bbs4/index.php?app=forum&act=threadview&tid=1
    file:///home/me/prologue.txt
    --- My Novel

Source lines accumulate into the current unit until a ``---`` delimiter
closes it. Text after the delimiter renames the unit; otherwise the unit
keeps the timestamp taken when it started. A delimiter with nothing
accumulated is a no-op, and whatever is left when the input ends becomes
the final unit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Iterator

COMMENT_MARKER = "//"
UNIT_DELIMITER = "---"
REMOTE_PREFIX = "http"
LOCAL_PREFIX = "file://"
UNIT_NAME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


@dataclass(frozen=True, slots=True)
class LocalSource:
    """A source read from the local filesystem."""

    path: str

    @property
    def is_remote(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{LOCAL_PREFIX}{self.path}"


@dataclass(frozen=True, slots=True)
class RemoteSource:
    """A source retrieved over HTTP(S)."""

    url: str

    @property
    def is_remote(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.url


SourceDescriptor = LocalSource | RemoteSource


@dataclass(slots=True)
class WorkUnit:
    """One logical novel: an ordered group of sources sharing one output."""

    name: str
    sources: list[SourceDescriptor] = field(default_factory=list)
    explicit_name: bool = False

    @property
    def remote_count(self) -> int:
        return sum(1 for source in self.sources if source.is_remote)


def default_unit_name(now: datetime | None = None) -> str:
    """Return a millisecond timestamp such as ``2024-05-20 12:00:00.123``."""

    moment = now or datetime.now()
    return moment.strftime(UNIT_NAME_FORMAT)[:-3]


def parse_source_line(line: str) -> SourceDescriptor | None:
    """Turn a trimmed list line into a source descriptor, or ``None``."""

    if line.startswith(LOCAL_PREFIX):
        return LocalSource(path=line[len(LOCAL_PREFIX):])
    if line.startswith(REMOTE_PREFIX):
        return RemoteSource(url=line)
    return None


class NovelListReader:
    """Stream work units out of a novel list, one line at a time."""

    def __init__(
        self,
        lines: Iterable[str],
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._lines = iter(lines)
        self._clock = clock or datetime.now

    @classmethod
    def open(cls, path: Path, clock: Callable[[], datetime] | None = None) -> "NovelListReader":
        """Read units from a list file; the file is opened on first iteration."""

        return cls(_read_lines(Path(path)), clock=clock)

    def __iter__(self) -> Iterator[WorkUnit]:
        return self.units()

    def units(self) -> Iterator[WorkUnit]:
        unit = self._new_unit()
        for raw_line in self._lines:
            line = raw_line.strip()
            if not line or line.startswith(COMMENT_MARKER):
                continue
            if line.startswith(UNIT_DELIMITER):
                if not unit.sources:
                    continue
                rename = line[len(UNIT_DELIMITER):].strip()
                if rename:
                    unit.name = rename
                    unit.explicit_name = True
                yield unit
                unit = self._new_unit()
                continue
            source = parse_source_line(line)
            if source is not None:
                unit.sources.append(source)
        if unit.sources:
            yield unit

    def _new_unit(self) -> WorkUnit:
        return WorkUnit(name=default_unit_name(self._clock()))


def _read_lines(path: Path) -> Iterator[str]:
    # Lines are decoded one at a time so a bad byte only fails from its own
    # line onwards.
    with path.open("rb") as stream:
        for raw_line in stream:
            yield raw_line.decode("utf-8")


__all__ = [
    "LocalSource",
    "NovelListReader",
    "RemoteSource",
    "SourceDescriptor",
    "WorkUnit",
    "default_unit_name",
    "parse_source_line",
]
