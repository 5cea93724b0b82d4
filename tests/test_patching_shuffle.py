"""Shuffle trigger/setup patches over synthetic host modules."""

from __future__ import annotations

import asyncio
import inspect
import logging

import pytest

from shuffle_fix.discovery.probes import ShuffleSetupMatch, ShuffleTriggerMatch
from shuffle_fix.loader.controller import LoadSettings, ProgressiveLoadController
from shuffle_fix.loader.session import SessionLock
from shuffle_fix.models import LoadOutcome, LoadResult, PatchStatus
from shuffle_fix.patching.interceptor import is_patched, original_of
from shuffle_fix.patching.shuffle import (
    make_trigger_wrapper,
    patch_shuffle_setups,
    patch_shuffle_triggers,
    warn_if_more_pages,
)
from shuffle_fix.testing import AsyncSleepRecorder, FakeShuffleHost, build_host_module


def _patch_module(name: str, host: FakeShuffleHost, lock: SessionLock | None = None):
    module = build_host_module(name, host)
    results = patch_shuffle_triggers(
        [ShuffleTriggerMatch(name=name, owner=module)],
        lock=lock or SessionLock(),
        settings=LoadSettings(),
        sleep_fn=AsyncSleepRecorder(),
    )
    return module, results


def test_patched_trigger_runs_loader_to_completion_without_event_loop() -> None:
    host = FakeShuffleHost(initial=5, pages=[10, 10])
    module, results = _patch_module("player.queue", host)

    assert [result.status for result in results] == [PatchStatus.APPLIED]
    assert results[0].target == "player.queue.toggle_shuffle"
    assert is_patched(module.toggle_shuffle)

    assert module.toggle_shuffle() == "shuffling"
    assert len(host.queue) == 25
    assert len(host.toggle_calls) == 1
    assert host.enabled_calls == [False, True]
    assert module.toggle_shuffle.controller.last_result.outcome is LoadOutcome.COMPLETED


def test_patched_trigger_toggles_off_through_host_state() -> None:
    host = FakeShuffleHost(pages=[10], shuffling=True)
    module, _ = _patch_module("player.queue", host)

    assert module.toggle_shuffle() == "ordered"
    assert host.pull_calls == []
    assert host.enabled_calls == []


@pytest.mark.asyncio
async def test_patched_trigger_schedules_task_inside_running_loop() -> None:
    host = FakeShuffleHost(pages=[3, 3])
    module, _ = _patch_module("player.queue", host)

    task = module.toggle_shuffle()

    assert isinstance(task, asyncio.Task)
    result = await task
    assert isinstance(result, LoadResult)
    assert result.outcome is LoadOutcome.COMPLETED
    assert result.value == "shuffling"
    assert len(host.queue) == 6


@pytest.mark.asyncio
async def test_coroutine_trigger_gets_coroutine_wrapper() -> None:
    host = FakeShuffleHost(pages=[2])

    async def toggle(*args: object) -> str:
        return f"async:{len(args)}"

    controller = ProgressiveLoadController(host, toggle, sleep_fn=AsyncSleepRecorder())
    wrapper = make_trigger_wrapper(controller, toggle)

    assert inspect.iscoroutinefunction(wrapper)
    assert await wrapper("button") == "async:1"
    assert wrapper.controller is controller
    assert controller.last_result.outcome is LoadOutcome.COMPLETED


def test_trigger_patch_is_idempotent() -> None:
    host = FakeShuffleHost(pages=[1])
    module, _ = _patch_module("player.queue", host)
    first_wrapper = module.toggle_shuffle

    results = patch_shuffle_triggers(
        [ShuffleTriggerMatch(name="player.queue", owner=module)],
        lock=SessionLock(),
        settings=LoadSettings(),
    )

    assert results[0].status is PatchStatus.SKIPPED
    assert results[0].reason == "already patched"
    assert module.toggle_shuffle is first_wrapper
    assert original_of(module.toggle_shuffle) == host.toggle_shuffle


def test_triggers_in_different_modules_share_one_session_lock() -> None:
    lock = SessionLock()
    first, _ = _patch_module("player.a", FakeShuffleHost(pages=[1]), lock)
    second, _ = _patch_module("player.b", FakeShuffleHost(pages=[1]), lock)

    assert first.toggle_shuffle.controller.lock is lock
    assert second.toggle_shuffle.controller.lock is lock


def test_trigger_patch_reports_missing_member_as_failed() -> None:
    class Incomplete:
        pass

    results = patch_shuffle_triggers(
        [ShuffleTriggerMatch(name="player.broken", owner=Incomplete())],
        lock=SessionLock(),
        settings=LoadSettings(),
    )

    assert results[0].status is PatchStatus.FAILED
    assert "toggle_shuffle" in (results[0].reason or "")


def test_setup_patch_warns_when_queue_has_more_pages(caplog: pytest.LogCaptureFixture) -> None:
    host = FakeShuffleHost(initial=7, pages=[5])
    module = build_host_module("player.queue", host)
    shuffle_state = module.states["shuffle"]

    results = patch_shuffle_setups(
        [ShuffleSetupMatch(name="player.queue", owner=module, shuffle_state=shuffle_state)]
    )

    assert results[0].status is PatchStatus.APPLIED
    assert results[0].target == "player.queue.states.shuffle.setup"
    with caplog.at_level(logging.WARNING, logger="shuffle_fix.patching.shuffle"):
        assert shuffle_state["setup"]() == "setup"

    assert host.setup_calls == 1
    assert "Queue has more pages - 7 items loaded" in caplog.text


def test_setup_patch_is_quiet_for_complete_queue(caplog: pytest.LogCaptureFixture) -> None:
    host = FakeShuffleHost(initial=7)
    module = build_host_module("player.queue", host)
    patch_shuffle_setups(
        [ShuffleSetupMatch(name="player.queue", owner=module, shuffle_state=module.states["shuffle"])]
    )

    with caplog.at_level(logging.WARNING, logger="shuffle_fix.patching.shuffle"):
        module.states["shuffle"]["setup"]()

    assert host.setup_calls == 1
    assert "Queue has more pages" not in caplog.text


def test_warn_if_more_pages_tolerates_broken_owner() -> None:
    class Broken:
        def get_queue(self) -> None:
            raise RuntimeError("no queue")

    assert warn_if_more_pages(Broken()) is False
