"""Progressive queue loading contracts."""

from .base import HostStateControl, NullControl, QueueSource, TriggerControl
from .controller import LoadSettings, ProgressiveLoadController
from .session import LoadingSession, SessionLock, process_lock

__all__ = [
    "HostStateControl",
    "LoadSettings",
    "LoadingSession",
    "NullControl",
    "ProgressiveLoadController",
    "QueueSource",
    "SessionLock",
    "TriggerControl",
    "process_lock",
]
