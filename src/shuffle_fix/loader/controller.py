"""Progressive queue loading before a trigger action, with explicit loop bounds.

Each trigger either delegates straight to the original action (toggle-off,
queue already complete), is rejected (another session active), or runs one
loading session:

* poll ``has_more_ahead``; stop as completed once it is false
* ``pull_next(batch_size)``, then sleep one poll interval
* count consecutive polls without queue growth; abort at ``stagnation_polls``
* abort when ``max_polls`` is spent or the deadline timer fires

The session is released on every exit path. Only a completed session runs
the original action afterwards.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sized
from dataclasses import dataclass, replace
import inspect
import logging
from typing import Any

from shuffle_fix.config import LoaderConfig
from shuffle_fix.errors import LoadError, SessionBusyError
from shuffle_fix.loader.base import NullControl, QueueSource, TriggerControl, control_is_active
from shuffle_fix.loader.session import LoadingSession, SessionLock
from shuffle_fix.models import LoadOutcome, LoadResult

logger = logging.getLogger(__name__)

AsyncSleepFn = Callable[[float], Awaitable[Any]]
PollOutcome = tuple[LoadOutcome, str, str | None]


@dataclass(frozen=True)
class LoadSettings:
    batch_size: int = 1000
    poll_interval_ms: int = 150
    deadline_ms: int = 60_000
    max_polls: int = 200
    stagnation_polls: int = 200

    @classmethod
    def from_config(cls, config: LoaderConfig) -> LoadSettings:
        return cls(
            batch_size=config.batch_size,
            poll_interval_ms=config.poll_interval_ms,
            deadline_ms=config.deadline_ms,
            max_polls=config.max_polls,
            stagnation_polls=config.stagnation_polls,
        )

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def deadline_seconds(self) -> float:
        return self.deadline_ms / 1000


class ProgressiveLoadController:
    """Load the whole host queue before running the wrapped trigger."""

    def __init__(
        self,
        source: QueueSource,
        original: Callable[..., Any],
        *,
        lock: SessionLock | None = None,
        control: TriggerControl | None = None,
        settings: LoadSettings = LoadSettings(),
        sleep_fn: AsyncSleepFn | None = None,
    ) -> None:
        self._source = source
        self._original = original
        self._lock = lock or SessionLock()
        self._control = control or NullControl()
        self._settings = _validate_settings(settings)
        self._sleep = sleep_fn or asyncio.sleep
        self._pending_pulls: set[asyncio.Future[Any]] = set()
        self.last_result: LoadResult | None = None

    @property
    def lock(self) -> SessionLock:
        return self._lock

    @property
    def control(self) -> TriggerControl:
        return self._control

    @property
    def settings(self) -> LoadSettings:
        return self._settings

    async def trigger(self, *args: Any, **kwargs: Any) -> LoadResult:
        result = await self._trigger(args, kwargs)
        self.last_result = result
        return result

    async def _trigger(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> LoadResult:
        if control_is_active(self._control):
            logger.info("Disabling shuffle")
            value = await self._delegate(args, kwargs)
            return LoadResult(outcome=LoadOutcome.TOGGLED_OFF, delegated=True, value=value)

        if self._lock.locked:
            logger.info("Already loading queue items; trigger ignored")
            return LoadResult(outcome=LoadOutcome.BUSY)

        try:
            queue = self._source.get_queue()
            initial_length = len(queue) if queue is not None else 0
            has_more = queue is not None and bool(self._source.has_more_ahead())
        except Exception as exc:
            logger.warning("Could not inspect queue before loading: %s", exc)
            return LoadResult(
                outcome=LoadOutcome.ABORTED_ERROR,
                stop_reason="internal_error",
                error=str(exc) or type(exc).__name__,
            )

        if not has_more:
            logger.info("All %d queue items already loaded", initial_length)
            value = await self._delegate(args, kwargs)
            return LoadResult(
                outcome=LoadOutcome.ALREADY_COMPLETE,
                initial_length=initial_length,
                final_length=initial_length,
                delegated=True,
                value=value,
            )

        try:
            with self._lock.acquire(self._control, initial_length=initial_length) as session:
                logger.info("Enabling shuffle - loading all queue items (current length %d)", initial_length)
                outcome, stop_reason, error = await self._run_session(session, queue)
                polls = session.polls
                final_length = _queue_length(queue, default=session.last_observed_length)
        except SessionBusyError:
            return LoadResult(outcome=LoadOutcome.BUSY)

        logger.info(
            "Loading finished (%s) - queue has %d items (was %d)",
            stop_reason,
            final_length,
            initial_length,
        )
        result = LoadResult(
            outcome=outcome,
            initial_length=initial_length,
            final_length=final_length,
            polls=polls,
            stop_reason=stop_reason,
            error=error,
        )
        if outcome is not LoadOutcome.COMPLETED:
            return result

        value = await self._delegate(args, kwargs)
        return replace(result, delegated=True, value=value)

    async def _run_session(self, session: LoadingSession, queue: Sized) -> PollOutcome:
        loop = asyncio.get_running_loop()
        poll_task = loop.create_task(self._poll(session, queue))
        session.deadline_handle = loop.call_later(
            self._settings.deadline_seconds,
            _expire,
            session,
            poll_task,
        )
        try:
            return await poll_task
        except asyncio.CancelledError:
            if not session.timed_out:
                poll_task.cancel()
                raise
            logger.warning(
                "Loading timeout reached (%.1fs), releasing lock and restoring control",
                self._settings.deadline_seconds,
            )
            return LoadOutcome.ABORTED_TIMEOUT, "deadline", None

    async def _poll(self, session: LoadingSession, queue: Sized) -> PollOutcome:
        settings = self._settings
        try:
            while session.polls < settings.max_polls:
                if not self._source.has_more_ahead():
                    return LoadOutcome.COMPLETED, "stream_ended", None

                try:
                    self._pull_next(settings.batch_size)
                except Exception as exc:
                    logger.warning("Error calling pull_next: %s", exc)
                    return LoadOutcome.ABORTED_ERROR, "pull_failed", str(exc) or type(exc).__name__

                await self._sleep(settings.poll_interval_seconds)
                session.polls += 1

                length = len(queue)
                if length > session.last_observed_length:
                    logger.info(
                        "Queue now has %d items (+%d)",
                        length,
                        length - session.last_observed_length,
                    )
                    session.last_observed_length = length
                    session.stagnation_count = 0
                    continue

                session.stagnation_count += 1
                if session.stagnation_count >= settings.stagnation_polls:
                    logger.warning(
                        "Loading stopped after %d polls of no progress",
                        session.stagnation_count,
                    )
                    return LoadOutcome.ABORTED_STAGNATION, "stagnation", None

            if not self._source.has_more_ahead():
                return LoadOutcome.COMPLETED, "stream_ended", None
            logger.warning("Loading stopped after spending the %d poll budget", settings.max_polls)
            return LoadOutcome.ABORTED_STAGNATION, "max_polls", None
        except Exception as exc:
            logger.warning("Error during queue loading: %s", exc)
            return LoadOutcome.ABORTED_ERROR, "internal_error", str(exc) or type(exc).__name__

    def _pull_next(self, batch_size: int) -> None:
        outcome = self._source.pull_next(batch_size)
        if not inspect.isawaitable(outcome):
            return
        future = asyncio.ensure_future(outcome)
        self._pending_pulls.add(future)
        future.add_done_callback(self._pull_done)

    def _pull_done(self, future: asyncio.Future[Any]) -> None:
        self._pending_pulls.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning("Background pull_next failed: %s", exc)

    async def _delegate(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        value = self._original(*args, **kwargs)
        if inspect.isawaitable(value):
            value = await value
        return value


def _expire(session: LoadingSession, poll_task: asyncio.Task[Any]) -> None:
    if poll_task.done():
        return
    session.timed_out = True
    poll_task.cancel()


def _queue_length(queue: Sized, *, default: int) -> int:
    try:
        return len(queue)
    except Exception:
        return default


def _validate_settings(settings: LoadSettings) -> LoadSettings:
    if settings.batch_size <= 0:
        raise LoadError("batch_size must be > 0.")
    if settings.poll_interval_ms < 0:
        raise LoadError("poll_interval_ms must be >= 0.")
    if settings.deadline_ms <= 0:
        raise LoadError("deadline_ms must be > 0.")
    if settings.max_polls <= 0:
        raise LoadError("max_polls must be > 0.")
    if settings.stagnation_polls <= 0:
        raise LoadError("stagnation_polls must be > 0.")
    return settings
