"""Raise host collection page-size defaults and floor requested limits."""

from __future__ import annotations

from collections.abc import Callable, Iterable, MutableMapping
import logging
import math
from typing import Any

from shuffle_fix.discovery.probes import (
    DEFAULT_LIMIT_KEY,
    SET_LIMIT_ATTRIBUTE,
    CollectionDefaultsMatch,
)
from shuffle_fix.models import PatchResult, PatchStatus
from shuffle_fix.patching.interceptor import install_patch

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE_KEY = "max_page_size"


def floor_limit(limit: object, ceiling: int) -> int:
    """Return ``limit`` raised to at least ``ceiling``.

    Non-numeric and non-finite limits become the ceiling.
    """
    if isinstance(limit, bool) or not isinstance(limit, (int, float)):
        return ceiling
    if not math.isfinite(limit):
        return ceiling
    return int(max(limit, ceiling))


def make_set_limit_wrapper(ceiling: int) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def _build(original: Callable[..., Any]) -> Callable[..., Any]:
        def set_limit(instance: Any, limit: object = None, *args: Any, **kwargs: Any) -> Any:
            return original(instance, floor_limit(limit, ceiling), *args, **kwargs)

        return set_limit

    return _build


def patch_collection_defaults(
    matches: Iterable[CollectionDefaultsMatch],
    ceiling: int,
) -> tuple[PatchResult, ...]:
    results: list[PatchResult] = []
    patched_owners: set[int] = set()

    for match in matches:
        if match.defaults is not None:
            results.append(_raise_defaults(match.defaults, f"{match.name}.defaults", ceiling))

        owner = match.set_limit_owner
        if owner is None or id(owner) in patched_owners:
            continue
        patched_owners.add(id(owner))
        results.append(
            install_patch(
                owner,
                SET_LIMIT_ATTRIBUTE,
                make_set_limit_wrapper(ceiling),
                target=f"{owner.__module__}:{owner.__qualname__}.{SET_LIMIT_ATTRIBUTE}",
                kind="set_limit",
            )
        )
    return tuple(results)


def _raise_defaults(defaults: MutableMapping[str, Any], target: str, ceiling: int) -> PatchResult:
    try:
        defaults[DEFAULT_LIMIT_KEY] = ceiling
        defaults[MAX_PAGE_SIZE_KEY] = ceiling
    except Exception as exc:
        logger.warning("Could not raise collection defaults on %s: %s", target, exc)
        return PatchResult(
            target=target,
            kind="collection_defaults",
            status=PatchStatus.FAILED,
            reason=str(exc) or type(exc).__name__,
        )
    return PatchResult(target=target, kind="collection_defaults", status=PatchStatus.APPLIED)
