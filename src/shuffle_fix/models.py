"""Data model contracts for cross-module use."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class LoadOutcome(str, Enum):
    COMPLETED = "completed"
    ABORTED_STAGNATION = "aborted_stagnation"
    ABORTED_TIMEOUT = "aborted_timeout"
    ABORTED_ERROR = "aborted_error"
    TOGGLED_OFF = "toggled_off"
    BUSY = "busy"
    ALREADY_COMPLETE = "already_complete"


ABORTED_OUTCOMES = frozenset(
    {
        LoadOutcome.ABORTED_STAGNATION,
        LoadOutcome.ABORTED_TIMEOUT,
        LoadOutcome.ABORTED_ERROR,
    }
)


@dataclass(frozen=True)
class LoadResult:
    outcome: LoadOutcome
    initial_length: int = 0
    final_length: int = 0
    polls: int = 0
    stop_reason: str | None = None
    delegated: bool = False
    error: str | None = None
    value: Any = None

    @property
    def aborted(self) -> bool:
        return self.outcome in ABORTED_OUTCOMES

    @property
    def loaded(self) -> int:
        return max(0, self.final_length - self.initial_length)


class PatchStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class PatchResult:
    target: str
    kind: str
    status: PatchStatus
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not PatchStatus.FAILED
