"""Install-once function replacement with a patch marker on every wrapper."""

from __future__ import annotations

from collections.abc import Callable, MutableMapping
import functools
import logging
from typing import Any

from shuffle_fix.errors import PatchError
from shuffle_fix.models import PatchResult, PatchStatus

logger = logging.getLogger(__name__)

PATCH_MARKER = "__shuffle_fix_patched__"

WrapperFactory = Callable[[Callable[..., Any]], Callable[..., Any]]


def is_patched(func: object) -> bool:
    return bool(getattr(func, PATCH_MARKER, False))


def original_of(func: Callable[..., Any]) -> Callable[..., Any]:
    """Return the function a patched wrapper delegates to, or ``func`` itself."""
    if not is_patched(func):
        return func
    return getattr(func, "__wrapped__", func)


def mark_patched(wrapper: Callable[..., Any], original: Callable[..., Any]) -> Callable[..., Any]:
    try:
        functools.update_wrapper(wrapper, original)
    except (AttributeError, TypeError):
        wrapper.__wrapped__ = original  # type: ignore[attr-defined]
    setattr(wrapper, PATCH_MARKER, True)
    return wrapper


def install_patch(
    owner: Any,
    attribute: str,
    build_wrapper: WrapperFactory,
    *,
    target: str,
    kind: str,
) -> PatchResult:
    """Replace ``owner.attribute`` (or ``owner[attribute]``) with a marked wrapper.

    Never raises: failures come back as ``PatchStatus.FAILED`` results so a
    batch of independent patches can proceed.
    """
    try:
        original = _read_member(owner, attribute)
        if not callable(original):
            raise PatchError(f"'{attribute}' on {target} is not callable.")
        if is_patched(original):
            return PatchResult(
                target=target,
                kind=kind,
                status=PatchStatus.SKIPPED,
                reason="already patched",
            )

        wrapper = mark_patched(build_wrapper(original), original)
        _write_member(owner, attribute, wrapper)
    except Exception as exc:
        logger.warning("Could not patch %s (%s): %s", target, kind, exc)
        return PatchResult(
            target=target,
            kind=kind,
            status=PatchStatus.FAILED,
            reason=str(exc) or type(exc).__name__,
        )

    logger.debug("Patched %s (%s)", target, kind)
    return PatchResult(target=target, kind=kind, status=PatchStatus.APPLIED)


def _read_member(owner: Any, attribute: str) -> Any:
    if isinstance(owner, MutableMapping):
        if attribute not in owner:
            raise PatchError(f"Key '{attribute}' is missing.")
        return owner[attribute]
    if not hasattr(owner, attribute):
        raise PatchError(f"Attribute '{attribute}' is missing.")
    return getattr(owner, attribute)


def _write_member(owner: Any, attribute: str, value: Any) -> None:
    if isinstance(owner, MutableMapping):
        owner[attribute] = value
        return
    setattr(owner, attribute, value)
