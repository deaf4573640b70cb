from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import pytest

from pycrosscode.exceptions import ResolutionCancelledError, SourceUnavailableError
from pycrosscode.models import CrossRecord, NodeKind, RecordPage, TreeNode
from pycrosscode.outcome import Cancelled, Err, Ok
from pycrosscode.resolver import ResolutionCoordinator
from pycrosscode.source import parse_page


def _rec(record_id: int, cross_code: str, main_code: str, by_code: str = "") -> CrossRecord:
    return CrossRecord(id=record_id, cross_code=cross_code, main_code=main_code, by_code=by_code)


def _shape(node: TreeNode) -> tuple[str, str, list[Any]]:
    return (node.kind.value, node.label, [_shape(child) for child in node.children])


@dataclass
class FakeRecordSource:
    """Serves ``pages`` in order; continuation tokens are page positions."""

    pages: list[list[CrossRecord]]
    calls: list[str | None] = field(default_factory=list)
    fail_at: int | None = None
    gate: asyncio.Event | None = None

    async def fetch_page(self, continuation: str | None = None) -> RecordPage:
        self.calls.append(continuation)
        if self.gate is not None:
            await self.gate.wait()
        position = int(continuation) if continuation is not None else 0
        if self.fail_at == position:
            raise SourceUnavailableError(f"page {position} unavailable")
        next_token = str(position + 1) if position + 1 < len(self.pages) else None
        return RecordPage(records=self.pages[position], next_token=next_token)


def _two_page_dataset() -> list[list[CrossRecord]]:
    return [
        [_rec(1, "A1", "A1", "")],
        [_rec(2, "A2", "A1", "BR")],
    ]


@pytest.mark.asyncio
async def test_resolve_reports_progress_and_builds_tree_for_match_on_later_page() -> None:
    source = FakeRecordSource(pages=_two_page_dataset())
    coordinator = ResolutionCoordinator(source)
    progress: list[tuple[int, str | None]] = []

    outcome = await coordinator.resolve("A2", lambda loaded, main: progress.append((loaded, main)))

    assert progress == [(1, None), (2, "A1")]
    assert isinstance(outcome, Ok)
    assert outcome.value is not None
    assert [_shape(node) for node in outcome.value] == [
        ("root", "A1", [("brand", "BR", [("code", "A2", [])])]),
    ]
    assert coordinator.fully_loaded is True


@pytest.mark.asyncio
async def test_progress_counts_follow_page_sizes() -> None:
    pages = [
        [_rec(i, f"P{i}", "P0") for i in range(0, 5)],
        [_rec(i, f"P{i}", "P0") for i in range(5, 10)],
        [_rec(i, f"P{i}", "P0") for i in range(10, 12)],
    ]
    coordinator = ResolutionCoordinator(FakeRecordSource(pages=pages))
    loaded: list[int] = []

    outcome = await coordinator.resolve("missing", lambda count, _main: loaded.append(count))

    assert loaded == [5, 10, 12]
    assert outcome == Ok(None)


@pytest.mark.asyncio
async def test_second_resolve_uses_index_without_source_calls() -> None:
    source = FakeRecordSource(pages=_two_page_dataset())
    coordinator = ResolutionCoordinator(source)

    first = await coordinator.resolve("A2")
    calls_after_first = list(source.calls)
    progress: list[int] = []
    second = await coordinator.resolve("A2", lambda count, _main: progress.append(count))

    assert source.calls == calls_after_first
    assert progress == []
    assert first == second


@pytest.mark.asyncio
async def test_input_code_is_trimmed() -> None:
    coordinator = ResolutionCoordinator(FakeRecordSource(pages=_two_page_dataset()))

    outcome = await coordinator.resolve("  A2 \t")

    assert isinstance(outcome, Ok)
    assert outcome.value is not None
    assert outcome.value[0].label == "A1"


@pytest.mark.asyncio
async def test_absent_codes_resolve_to_none_without_source_calls_once_fully_loaded() -> None:
    source = FakeRecordSource(pages=_two_page_dataset())
    coordinator = ResolutionCoordinator(source)

    assert await coordinator.resolve("nope") == Ok(None)
    assert coordinator.fully_loaded is True
    calls = list(source.calls)

    assert await coordinator.resolve("still-nope") == Ok(None)
    assert await coordinator.resolve("nope") == Ok(None)
    assert source.calls == calls


@pytest.mark.asyncio
async def test_scan_continues_past_match_to_collect_late_siblings() -> None:
    pages = [
        [_rec(1, "X", "X"), _rec(2, "X-BR1-a", "X", "BR1")],
        [_rec(3, "Y", "Y")],
        [_rec(4, "X-BR1-b", "X", "BR1"), _rec(5, "X-bare", "X", "")],
    ]
    source = FakeRecordSource(pages=pages)
    coordinator = ResolutionCoordinator(source)
    progress: list[tuple[int, str | None]] = []
    partial_leaf_counts: list[int] = []

    def on_progress(loaded: int, main: str | None) -> None:
        progress.append((loaded, main))
        if main is not None:
            tree = coordinator.get_partial_tree(main)
            partial_leaf_counts.append(sum(1 for n in tree[0].walk() if n.kind == NodeKind.CODE))

    outcome = await coordinator.resolve("X-BR1-a", on_progress)

    assert source.calls == [None, "1", "2"]
    # Only the target group is ever reported, also during the continued scan.
    assert progress == [(2, "X"), (3, "X"), (5, "X")]
    assert partial_leaf_counts == [1, 1, 3]
    assert isinstance(outcome, Ok)
    assert outcome.value is not None
    assert [_shape(node) for node in outcome.value] == [
        (
            "root",
            "X",
            [
                ("brand", "BR1", [("code", "X-BR1-a", []), ("code", "X-BR1-b", [])]),
                ("code", "X-bare", []),
            ],
        )
    ]


@pytest.mark.asyncio
async def test_source_failure_returns_err_and_keeps_partial_index() -> None:
    source = FakeRecordSource(pages=_two_page_dataset(), fail_at=1)
    coordinator = ResolutionCoordinator(source)

    outcome = await coordinator.resolve("A2")

    assert isinstance(outcome, Err)
    assert isinstance(outcome.error, SourceUnavailableError)
    with pytest.raises(SourceUnavailableError):
        outcome.unwrap()
    assert coordinator.fully_loaded is False
    assert coordinator.index.lookup_by_code("A1") is not None


@pytest.mark.asyncio
async def test_retry_after_failure_rescans_from_first_page_and_appends() -> None:
    source = FakeRecordSource(pages=_two_page_dataset(), fail_at=1)
    coordinator = ResolutionCoordinator(source)
    assert isinstance(await coordinator.resolve("A2"), Err)

    source.fail_at = None
    outcome = await coordinator.resolve("A2")

    assert source.calls == [None, "1", None, "1"]
    # The root from page one was ingested by both scans.
    assert [r.cross_code for r in coordinator.index.lookup_group("A1")] == ["A1", "A1", "A2"]
    assert isinstance(outcome, Ok)
    assert outcome.value is not None
    assert [_shape(node) for node in outcome.value] == [
        ("root", "A1", [("brand", "BR", [("code", "A2", [])])]),
        ("root", "A1", [("brand", "BR", [("code", "A2", [])])]),
    ]
    assert coordinator.fully_loaded is True


@pytest.mark.asyncio
async def test_unparseable_record_values_do_not_break_resolution() -> None:
    body_pages = [
        {
            "value": [{"Id": 1, "CrossCode": "A1", "MainCode": "A1", "ByCode": ""}],
            "@odata.nextLink": "1",
        },
        {
            "value": [
                {"Id": 2, "CrossCode": "A2", "MainCode": "A1", "ByCode": "BR", "By": "n/a", "Verity": "high"},
            ],
        },
    ]

    class PayloadSource:
        async def fetch_page(self, continuation: str | None = None) -> RecordPage:
            return parse_page(body_pages[int(continuation or 0)])

    coordinator = ResolutionCoordinator(PayloadSource())

    outcome = await coordinator.resolve("A1")

    assert isinstance(outcome, Ok)
    assert outcome.value is not None
    assert [_shape(node) for node in outcome.value] == [
        ("root", "A1", [("brand", "BR", [("code", "A2", [])])]),
    ]
    leaf = coordinator.index.lookup_by_code("A2")
    assert leaf is not None
    assert leaf.by is None
    assert leaf.verity is None
    assert leaf.raw["Verity"] == "high"


@pytest.mark.asyncio
async def test_unexpected_source_error_propagates_and_frees_coordinator() -> None:
    class BrokenSource:
        async def fetch_page(self, continuation: str | None = None) -> RecordPage:
            raise RuntimeError("driver bug")

    coordinator = ResolutionCoordinator(BrokenSource())

    with pytest.raises(RuntimeError, match="driver bug"):
        await coordinator.resolve("A1")
    assert coordinator.is_resolving is False
    assert coordinator.fully_loaded is False


@pytest.mark.asyncio
async def test_new_resolution_supersedes_inflight_one() -> None:
    gate = asyncio.Event()
    source = FakeRecordSource(
        pages=[[_rec(1, "A1", "A1")], [_rec(2, "B1", "B1")]],
        gate=gate,
    )
    coordinator = ResolutionCoordinator(source)
    progress_a: list[tuple[int, str | None]] = []

    task_a = asyncio.create_task(coordinator.resolve("A1", lambda n, m: progress_a.append((n, m))))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    # B runs unblocked while A's fetch is still parked on the gate.
    source.gate = None
    outcome_b = await coordinator.resolve("B1")
    gate.set()
    outcome_a = await task_a

    assert isinstance(outcome_a, Cancelled)
    with pytest.raises(ResolutionCancelledError):
        outcome_a.unwrap()
    assert progress_a == []
    assert isinstance(outcome_b, Ok)
    assert outcome_b.value is not None
    assert outcome_b.value[0].label == "B1"
    # Only B's two records were ingested.
    assert coordinator.index.record_count == 2
    assert coordinator.is_resolving is False


@pytest.mark.asyncio
async def test_stale_page_arriving_after_cancel_is_discarded() -> None:
    release = asyncio.Event()
    finished: list[bool] = []

    class StubbornSource:
        """Keeps fetching even when the caller stops waiting."""

        async def fetch_page(self, continuation: str | None = None) -> RecordPage:
            async def _work() -> RecordPage:
                await release.wait()
                finished.append(True)
                return RecordPage(records=(_rec(9, "Z9", "Z9"),))

            return await asyncio.shield(_work())

    coordinator = ResolutionCoordinator(StubbornSource())
    task = asyncio.create_task(coordinator.resolve("Z9"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    coordinator.cancel()
    release.set()
    outcome = await task
    await asyncio.sleep(0)

    assert isinstance(outcome, Cancelled)
    assert finished == [True]
    assert len(coordinator.index) == 0
    assert coordinator.fully_loaded is False


@pytest.mark.asyncio
async def test_cancelling_callers_task_propagates() -> None:
    source = FakeRecordSource(pages=_two_page_dataset(), gate=asyncio.Event())
    coordinator = ResolutionCoordinator(source)

    task = asyncio.create_task(coordinator.resolve("A2"))
    await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert coordinator.is_resolving is False
    assert coordinator.fully_loaded is False


@pytest.mark.asyncio
async def test_failing_progress_callback_does_not_abort_scan() -> None:
    coordinator = ResolutionCoordinator(FakeRecordSource(pages=_two_page_dataset()))

    def explode(_loaded: int, _main: str | None) -> None:
        raise RuntimeError("ui went away")

    outcome = await coordinator.resolve("A2", explode)

    assert isinstance(outcome, Ok)
    assert outcome.value is not None


@pytest.mark.asyncio
async def test_separate_coordinators_do_not_share_state() -> None:
    source = FakeRecordSource(pages=_two_page_dataset())
    first = ResolutionCoordinator(source)
    second = ResolutionCoordinator(source)

    await first.resolve("A2")

    assert first.fully_loaded is True
    assert second.fully_loaded is False
    assert second.get_partial_tree("A1") == []


@pytest.mark.asyncio
async def test_cancel_from_progress_callback_stops_scan() -> None:
    source = FakeRecordSource(pages=_two_page_dataset())
    coordinator = ResolutionCoordinator(source)
    progress: list[int] = []

    def on_progress(loaded: int, _main: str | None) -> None:
        progress.append(loaded)
        coordinator.cancel()

    outcome = await coordinator.resolve("A2", on_progress)

    assert isinstance(outcome, Cancelled)
    assert progress == [1]
    assert source.calls == [None]
    assert coordinator.fully_loaded is False


@pytest.mark.asyncio
async def test_resolution_serials_are_numbered_per_coordinator(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="pycrosscode.resolver")

    for _ in range(2):
        source = FakeRecordSource(pages=_two_page_dataset(), gate=asyncio.Event())
        coordinator = ResolutionCoordinator(source)
        task = asyncio.create_task(coordinator.resolve("A2"))
        await asyncio.sleep(0)
        coordinator.cancel()
        assert isinstance(await task, Cancelled)

    superseded = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Superseded")]
    assert superseded == ["Superseded resolution #1 for 'A2'", "Superseded resolution #1 for 'A2'"]
