from __future__ import annotations

import threading
import time
from pathlib import Path

import httpx
import pytest

from novel_fetcher.engine import ConcurrencyGovernor
from novel_fetcher.errors import ListReadError
from novel_fetcher.orchestrator import Orchestrator

FIXED_NAME = "2024-05-20 12:00:00.123"


def test_single_local_unit_end_to_end(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, write_list, fixed_clock, sample_global_config
) -> None:
    fixture = tmp_path / "hello.txt"
    fixture.write_text("Hello\nWorld", encoding="utf-8")
    novel_list = write_list([f"file://{fixture}"])
    monkeypatch.chdir(tmp_path)
    config = sample_global_config.model_copy(update={"output_dir": Path(".")})

    summary = Orchestrator(config, clock=fixed_clock).run(novel_list)

    assert summary.ok
    output = tmp_path / f"{FIXED_NAME}.txt"
    assert output.read_text(encoding="utf-8") == "Hello\nWorld"
    assert summary.results[0].parts == 1


def test_failing_unit_leaves_siblings_intact(
    tmp_path: Path, write_list, page_transport, cool18_page, sample_global_config
) -> None:
    local = tmp_path / "local.txt"
    local.write_text("local novel", encoding="utf-8")
    transport = page_transport(
        {
            "https://www.cool18.com/good/1": cool18_page("part one"),
            "https://www.cool18.com/good/2": cool18_page("part two"),
        },
        delays={"https://www.cool18.com/good/2": 0.05},
    )
    novel_list = write_list(
        [
            "https://www.cool18.com/good/1",
            "https://www.cool18.com/good/2",
            "--- Good Remote",
            "https://unreachable.example/1",
            "--- Broken",
            f"file://{local}",
            "--- Good Local",
        ]
    )

    summary = Orchestrator(sample_global_config, transport=transport).run(novel_list)

    out = sample_global_config.output_dir
    assert not summary.ok
    assert [result.name for result in summary.failed] == ["Broken"]
    assert summary.failed[0].error_type == "UnknownSourceError"
    assert summary.counts() == {"units": 3, "success": 2, "failed": 1}
    assert (out / "Good Remote.txt").read_text(encoding="utf-8") == "part one\n\npart two"
    assert (out / "Good Local.txt").read_text(encoding="utf-8") == "local novel"


def test_remote_fetches_are_throttled_across_units(
    write_list, sample_global_config, cool18_page
) -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with lock:
            active -= 1
        return httpx.Response(200, text=cool18_page(request.url.path))

    lines: list[str] = []
    for unit in range(6):
        lines += [f"https://www.cool18.com/u{unit}/p{part}" for part in range(3)]
        lines.append(f"--- unit-{unit}")
    governor = ConcurrencyGovernor(2)
    orchestrator = Orchestrator(
        sample_global_config, governor=governor, transport=httpx.MockTransport(handler)
    )

    summary = orchestrator.run(write_list(lines))

    assert summary.ok
    assert len(summary.results) == 6
    assert peak <= 2
    assert governor.peak <= 2
    assert governor.in_flight == 0
    text = (sample_global_config.output_dir / "unit-3.txt").read_text(encoding="utf-8")
    assert text == "/u3/p0\n\n/u3/p1\n\n/u3/p2"


def test_colliding_default_names_get_suffixes(
    tmp_path: Path, write_list, fixed_clock, sample_global_config
) -> None:
    first = tmp_path / "one.txt"
    second = tmp_path / "two.txt"
    first.write_text("one", encoding="utf-8")
    second.write_text("two", encoding="utf-8")
    novel_list = write_list([f"file://{first}", "---", f"file://{second}", "---"])

    summary = Orchestrator(sample_global_config, clock=fixed_clock).run(novel_list)

    out = sample_global_config.output_dir
    paths = sorted(result.path.name for result in summary.results)
    assert paths == [f"{FIXED_NAME} (2).txt", f"{FIXED_NAME}.txt"]
    contents = {(out / name).read_text(encoding="utf-8") for name in paths}
    assert contents == {"one", "two"}


def test_title_from_content_names_unnamed_units(
    tmp_path: Path, write_list, sample_global_config
) -> None:
    story = tmp_path / "story.txt"
    story.write_text("  Night Rain\nIt rained all night.", encoding="utf-8")
    novel_list = write_list([f"file://{story}", "---", f"file://{story}", "--- Kept Name"])
    config = sample_global_config.model_copy(update={"title_from_content": True})

    summary = Orchestrator(config).run(novel_list)

    out = config.output_dir
    assert summary.ok
    assert (out / "Night Rain.txt").exists()
    assert (out / "Kept Name.txt").exists()
    assert len(list(out.glob("*.txt"))) == 2


def test_missing_list_fails_the_run(tmp_path: Path, sample_global_config) -> None:
    with pytest.raises(ListReadError) as excinfo:
        Orchestrator(sample_global_config).run(tmp_path / "nope.txt")
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)
    assert excinfo.value.summary.results == []


def test_undecodable_list_keeps_spawned_unit_outcomes(
    tmp_path: Path, sample_global_config
) -> None:
    good = tmp_path / "good.txt"
    good.write_text("good novel", encoding="utf-8")
    novel_list = tmp_path / "list.txt"
    novel_list.write_bytes(f"file://{good}\n--- Good\n".encode() + b"\xff\n")

    with pytest.raises(ListReadError) as excinfo:
        Orchestrator(sample_global_config).run(novel_list)

    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)
    summary = excinfo.value.summary
    assert [result.name for result in summary.results] == ["Good"]
    assert summary.results[0].ok
    out = sample_global_config.output_dir / "Good.txt"
    assert out.read_text(encoding="utf-8") == "good novel"


def test_empty_list_produces_no_units(write_list, sample_global_config) -> None:
    summary = Orchestrator(sample_global_config).run(write_list(["// nothing", "---"]))
    assert summary.ok
    assert summary.results == []
