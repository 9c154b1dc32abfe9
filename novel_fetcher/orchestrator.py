"""Run orchestration: one task per work unit, throttled remote fetches."""

from __future__ import annotations

import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

import httpx
import structlog

from .config import GlobalConfig
from .engine import (
    BaseSink,
    ConcurrencyGovernor,
    Fetcher,
    FileSink,
    LocalSource,
    NovelListReader,
    OutputPathAllocator,
    SourceDescriptor,
    ThreadPoolManager,
    WorkUnit,
)
from .engine.sink import rename_to_title
from .errors import ListReadError
from .logging_conf import unit_logger
from .ui import UnitProgress, UnitProgressReporter


@dataclass(slots=True)
class UnitResult:
    """Outcome of processing one work unit."""

    name: str
    status: str
    path: Path | None = None
    parts: int = 0
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


@dataclass(slots=True)
class RunSummary:
    """Per-unit outcomes of a whole run, in spawn order."""

    results: list[UnitResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[UnitResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> list[UnitResult]:
        return [result for result in self.results if not result.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def counts(self) -> dict[str, int]:
        return {
            "units": len(self.results),
            "success": len(self.succeeded),
            "failed": len(self.failed),
        }


class UnitProcessor:
    """Fetch a unit's sources in order and append them to its sink.

    Remote fetches hold a governor token only while the request is in
    flight; extraction and the pacing pause happen after release.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        governor: ConcurrencyGovernor,
        pacing_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.governor = governor
        self.pacing_delay = pacing_delay
        self._sleep = sleep

    def process(
        self,
        unit: WorkUnit,
        sink: BaseSink,
        reporter: UnitProgressReporter | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        log = logger or unit_logger(unit.name)
        try:
            for source in unit.sources:
                log.info("source_fetching", source=str(source))
                sink.write_part(self.fetch_part(source))
                if reporter is not None:
                    reporter.advance(str(source))
            sink.flush()
        finally:
            sink.close()

    def fetch_part(self, source: SourceDescriptor) -> str | bytes:
        if isinstance(source, LocalSource):
            local = self.fetcher.read_local(source)
            return local.data
        site = self.fetcher.prepare_remote(source)
        with self.governor.token():
            response = self.fetcher.fetch_remote(source, site)
        text = site.extract(response.text)
        if self.pacing_delay > 0:
            self._sleep(self.pacing_delay)
        return text


class Orchestrator:
    """Read a novel list and process every unit concurrently."""

    def __init__(
        self,
        config: GlobalConfig,
        *,
        governor: ConcurrencyGovernor | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.governor = governor or ConcurrencyGovernor(config.max_concurrent_fetches)
        self.transport = transport
        self.clock = clock
        self.sleep = sleep
        self.logger = structlog.get_logger("novel_fetcher").bind(component="orchestrator")

    def run(self, list_path: Path, progress: UnitProgress | None = None) -> RunSummary:
        reader = NovelListReader.open(Path(list_path), clock=self.clock)
        fetcher = Fetcher(self.config.http, transport=self.transport)
        processor = UnitProcessor(
            fetcher, self.governor, pacing_delay=self.config.pacing_delay, sleep=self.sleep
        )
        allocator = OutputPathAllocator(self.config.output_dir)
        pool = ThreadPoolManager(self.config.unit_workers)
        futures: list[Future[UnitResult]] = []
        summary = RunSummary()
        list_error: OSError | UnicodeDecodeError | None = None
        self.logger.info(
            "run_started",
            novel_list=str(list_path),
            max_concurrent_fetches=self.governor.capacity,
        )
        try:
            for unit in reader:
                reporter = (
                    progress.create_reporter(unit.name, len(unit.sources))
                    if progress is not None
                    else None
                )
                self.logger.info("unit_spawned", unit=unit.name, sources=len(unit.sources))
                futures.append(pool.submit(self._run_unit, processor, allocator, unit, reporter))
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.error(
                "list_read_failed",
                novel_list=str(list_path),
                error=str(exc),
                error_type=type(exc).__name__,
                units_spawned=len(futures),
            )
            list_error = exc
        finally:
            summary.results.extend(future.result() for future in futures)
            pool.shutdown(wait=True)
            fetcher.close()
        if list_error is not None:
            raise ListReadError(str(list_path), list_error, summary) from list_error
        self.logger.info("run_finished", **summary.counts())
        return summary

    def _run_unit(
        self,
        processor: UnitProcessor,
        allocator: OutputPathAllocator,
        unit: WorkUnit,
        reporter: UnitProgressReporter | None,
    ) -> UnitResult:
        log = unit_logger(unit.name)
        path: Path | None = None
        sink: FileSink | None = None
        try:
            path = allocator.allocate(unit.name)
            sink = FileSink(path)
            log.info("unit_started", path=str(path), sources=len(unit.sources))
            processor.process(unit, sink, reporter=reporter, logger=log)
            if self.config.title_from_content and not unit.explicit_name:
                path = rename_to_title(path, allocator)
        except Exception as exc:  # noqa: BLE001
            log.error("unit_failed", path=str(path), error=str(exc), error_type=type(exc).__name__)
            if reporter is not None:
                reporter.finish(ok=False)
            return UnitResult(
                name=unit.name,
                status="failed",
                path=path,
                parts=sink.parts_written if sink is not None else 0,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        log.info("unit_done", path=str(path), parts=sink.parts_written)
        if reporter is not None:
            reporter.finish(ok=True)
        return UnitResult(name=unit.name, status="success", path=path, parts=sink.parts_written)


__all__ = ["Orchestrator", "RunSummary", "UnitProcessor", "UnitResult"]
