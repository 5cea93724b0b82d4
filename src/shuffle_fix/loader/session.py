"""Single-flight loading session with scoped acquisition and guaranteed release."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging

from shuffle_fix.errors import SessionBusyError
from shuffle_fix.loader.base import TriggerControl, set_control_interactive

logger = logging.getLogger(__name__)


@dataclass
class LoadingSession:
    is_loading: bool = False
    stagnation_count: int = 0
    last_observed_length: int = 0
    deadline_handle: asyncio.TimerHandle | None = None
    polls: int = 0
    timed_out: bool = False

    def reset(self) -> None:
        self.is_loading = False
        self.stagnation_count = 0
        self.last_observed_length = 0
        self.deadline_handle = None
        self.polls = 0
        self.timed_out = False


class SessionLock:
    """Owns the one LoadingSession allowed per process.

    A second acquisition while a session is active raises
    ``SessionBusyError``; requests are rejected, never queued.
    """

    def __init__(self) -> None:
        self._session = LoadingSession()
        self.acquisitions = 0
        self.releases = 0

    @property
    def locked(self) -> bool:
        return self._session.is_loading

    @property
    def session(self) -> LoadingSession:
        return self._session

    @contextmanager
    def acquire(self, control: TriggerControl, *, initial_length: int) -> Iterator[LoadingSession]:
        if self._session.is_loading:
            raise SessionBusyError("A loading session is already active.")

        session = self._session
        session.reset()
        session.is_loading = True
        session.last_observed_length = initial_length
        self.acquisitions += 1
        set_control_interactive(control, False)
        try:
            yield session
        finally:
            self._release(session, control)

    def _release(self, session: LoadingSession, control: TriggerControl) -> None:
        handle = session.deadline_handle
        if handle is not None:
            handle.cancel()
        session.reset()
        self.releases += 1
        set_control_interactive(control, True)
        logger.debug("Loading session released")


_PROCESS_LOCK = SessionLock()


def process_lock() -> SessionLock:
    """Return the lock shared by every trigger patched in this process."""
    return _PROCESS_LOCK
