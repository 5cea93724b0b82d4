"""Test-only utilities for deterministic loader and patch assertions."""

from .fakes import (
    FakeQueue,
    FakeShuffleHost,
    RecordingControl,
    build_collection_class,
    build_host_module,
)
from .time_control import AsyncSleepRecorder, BlockingSleep

__all__ = [
    "AsyncSleepRecorder",
    "BlockingSleep",
    "FakeQueue",
    "FakeShuffleHost",
    "RecordingControl",
    "build_collection_class",
    "build_host_module",
]
