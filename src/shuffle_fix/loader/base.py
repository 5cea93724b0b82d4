"""Host contracts consumed by the progressive queue loader."""

from __future__ import annotations

from collections.abc import Sized
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class QueueSource(Protocol):
    def get_queue(self) -> Sized | None:
        """Return the host's play queue."""

    def has_more_ahead(self) -> bool:
        """Return true while more queue items exist upstream."""

    def pull_next(self, max_size: int) -> Any:
        """Request the next batch of queue items."""


class TriggerControl(Protocol):
    def is_active(self) -> bool:
        """Return true when the mode the trigger toggles is already on."""

    def set_interactive(self, enabled: bool) -> None:
        """Enable or disable the user-facing control."""


class NullControl:
    """Control that is never active and ignores interactivity changes."""

    def is_active(self) -> bool:
        return False

    def set_interactive(self, enabled: bool) -> None:
        _ = enabled


class HostStateControl:
    """Read shuffle state from the host module and forward control locking to it.

    The host may expose ``is_shuffling`` as a flag or a callable, and
    ``set_shuffle_enabled(bool)`` to grey out its shuffle control. Both are
    optional.
    """

    def __init__(
        self,
        host: Any,
        *,
        state_attribute: str = "is_shuffling",
        enable_attribute: str = "set_shuffle_enabled",
    ) -> None:
        self._host = host
        self._state_attribute = state_attribute
        self._enable_attribute = enable_attribute
        self.interactive = True

    def is_active(self) -> bool:
        state = getattr(self._host, self._state_attribute, False)
        if callable(state):
            state = state()
        return bool(state)

    def set_interactive(self, enabled: bool) -> None:
        self.interactive = bool(enabled)
        setter = getattr(self._host, self._enable_attribute, None)
        if callable(setter):
            setter(self.interactive)


def control_is_active(control: TriggerControl) -> bool:
    try:
        return bool(control.is_active())
    except Exception as exc:
        logger.debug("Could not read trigger control state: %s", exc)
        return False


def set_control_interactive(control: TriggerControl, enabled: bool) -> None:
    try:
        control.set_interactive(enabled)
    except Exception as exc:
        logger.debug("Could not update trigger control: %s", exc)
