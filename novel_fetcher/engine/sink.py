"""Output sinks: one text file per work unit."""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock

from ..errors import SinkError

PART_SEPARATOR = b"\n\n"
OUTPUT_SUFFIX = ".txt"
_UNSAFE_CHARS = re.compile(r"[/\\\x00]")


class BaseSink(ABC):
    """Append-only destination for the parts of one unit."""

    parts_written: int = 0

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Append raw bytes."""

    def write_part(self, content: str | bytes) -> None:
        """Append one source's content, separated from the previous part."""

        data = content.encode("utf-8") if isinstance(content, str) else content
        if self.parts_written:
            self.write(PART_SEPARATOR)
        self.write(data)
        self.parts_written += 1

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


class FileSink(BaseSink):
    """Write a unit's parts to a file, truncating whatever was there."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("wb")
        self.parts_written = 0
        self.bytes_written = 0

    @property
    def closed(self) -> bool:
        return self._file.closed

    def write(self, data: bytes) -> None:
        self._file.write(data)
        self.bytes_written += len(data)

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> "FileSink":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def safe_file_stem(name: str) -> str:
    stem = _UNSAFE_CHARS.sub("_", name.strip())
    return stem or "untitled"


class OutputPathAllocator:
    """Hand out output paths, never the same one twice within a run.

    A name that is already taken gets a `` (2)``, `` (3)``... suffix.
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)
        self._claimed: set[Path] = set()
        self._lock = Lock()

    def allocate(self, name: str) -> Path:
        stem = safe_file_stem(name)
        with self._lock:
            candidate = self.output_dir / f"{stem}{OUTPUT_SUFFIX}"
            counter = 2
            while candidate in self._claimed:
                candidate = self.output_dir / f"{stem} ({counter}){OUTPUT_SUFFIX}"
                counter += 1
            self._claimed.add(candidate)
            return candidate

    def release(self, path: Path) -> None:
        with self._lock:
            self._claimed.discard(Path(path))


def title_of(content: str) -> str:
    """Return the first line of the trimmed content, used as a novel title."""

    text = content.strip()
    if not text:
        raise SinkError("this novel has no content")
    title = text.splitlines()[0].strip()
    if not title:
        raise SinkError("this novel doesn't have a title")
    return title


def rename_to_title(path: Path, allocator: OutputPathAllocator) -> Path:
    """Move a finished output file to ``<title>.txt`` taken from its first line."""

    content = Path(path).read_text(encoding="utf-8", errors="replace")
    title = title_of(content)
    if safe_file_stem(title) == Path(path).stem:
        return Path(path)
    target = allocator.allocate(title)
    os.replace(path, target)
    allocator.release(path)
    return target


__all__ = [
    "BaseSink",
    "FileSink",
    "OutputPathAllocator",
    "PART_SEPARATOR",
    "rename_to_title",
    "safe_file_stem",
    "title_of",
]
