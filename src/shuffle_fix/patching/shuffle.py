"""Replace the host shuffle toggle with the progressive queue loader."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
import inspect
import logging
from typing import Any

from shuffle_fix.discovery.probes import ShuffleSetupMatch, ShuffleTriggerMatch
from shuffle_fix.loader.base import HostStateControl, TriggerControl
from shuffle_fix.loader.controller import AsyncSleepFn, LoadSettings, ProgressiveLoadController
from shuffle_fix.loader.session import SessionLock
from shuffle_fix.models import PatchResult
from shuffle_fix.patching.interceptor import install_patch

logger = logging.getLogger(__name__)

TRIGGER_ATTRIBUTE = "toggle_shuffle"
SETUP_ATTRIBUTE = "setup"

ControlFactory = Callable[[Any], TriggerControl]


def make_trigger_wrapper(controller: ProgressiveLoadController, original: Callable[..., Any]) -> Callable[..., Any]:
    """Build a wrapper with the same calling style as ``original``.

    Coroutine originals get a coroutine wrapper that returns the original's
    result once delegated. Plain originals get a sync wrapper: inside a
    running event loop it schedules the loader and returns the task;
    without one it runs the loader to completion and returns the original's
    result. That path blocks the calling thread for the whole session, up to
    the loader deadline, so synchronous hosts should call it off their UI or
    event thread.
    """
    if inspect.iscoroutinefunction(original):

        async def toggle_shuffle_async(*args: Any, **kwargs: Any) -> Any:
            result = await controller.trigger(*args, **kwargs)
            return result.value

        toggle_shuffle_async.controller = controller  # type: ignore[attr-defined]
        return toggle_shuffle_async

    background: set[asyncio.Task[Any]] = set()

    def toggle_shuffle(*args: Any, **kwargs: Any) -> Any:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(controller.trigger(*args, **kwargs)).value

        task = loop.create_task(controller.trigger(*args, **kwargs))
        background.add(task)
        task.add_done_callback(background.discard)
        return task

    toggle_shuffle.controller = controller  # type: ignore[attr-defined]
    return toggle_shuffle


def patch_shuffle_triggers(
    matches: Iterable[ShuffleTriggerMatch],
    *,
    lock: SessionLock,
    settings: LoadSettings,
    control_factory: ControlFactory = HostStateControl,
    sleep_fn: AsyncSleepFn | None = None,
) -> tuple[PatchResult, ...]:
    results: list[PatchResult] = []
    for match in matches:
        owner = match.owner

        def _build(original: Callable[..., Any], owner: Any = owner) -> Callable[..., Any]:
            controller = ProgressiveLoadController(
                owner,
                original,
                lock=lock,
                control=control_factory(owner),
                settings=settings,
                sleep_fn=sleep_fn,
            )
            return make_trigger_wrapper(controller, original)

        results.append(
            install_patch(
                owner,
                TRIGGER_ATTRIBUTE,
                _build,
                target=f"{match.name}.{TRIGGER_ATTRIBUTE}",
                kind="toggle_shuffle",
            )
        )
    return tuple(results)


def make_setup_wrapper(owner: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def _build(original: Callable[..., Any]) -> Callable[..., Any]:
        def setup(*args: Any, **kwargs: Any) -> Any:
            warn_if_more_pages(owner)
            return original(*args, **kwargs)

        return setup

    return _build


def warn_if_more_pages(owner: Any) -> bool:
    """Log a warning when shuffle starts on a queue that still has upstream pages."""
    try:
        queue = owner.get_queue()
        next_href = getattr(queue, "next_href", None)
        if not next_href:
            return False
        logger.warning("Queue has more pages - %d items loaded", len(queue))
    except Exception as exc:
        logger.debug("Could not inspect queue during shuffle setup: %s", exc)
        return False
    return True


def patch_shuffle_setups(matches: Iterable[ShuffleSetupMatch]) -> tuple[PatchResult, ...]:
    return tuple(
        install_patch(
            match.shuffle_state,
            SETUP_ATTRIBUTE,
            make_setup_wrapper(match.owner),
            target=f"{match.name}.states.shuffle.{SETUP_ATTRIBUTE}",
            kind="shuffle_setup",
        )
        for match in matches
    )
