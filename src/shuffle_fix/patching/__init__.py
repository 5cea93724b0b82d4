"""Behavior interception contracts and host patches."""

from .defaults import floor_limit, make_set_limit_wrapper, patch_collection_defaults
from .interceptor import PATCH_MARKER, install_patch, is_patched, mark_patched, original_of
from .shuffle import (
    make_setup_wrapper,
    make_trigger_wrapper,
    patch_shuffle_setups,
    patch_shuffle_triggers,
    warn_if_more_pages,
)

__all__ = [
    "PATCH_MARKER",
    "floor_limit",
    "install_patch",
    "is_patched",
    "make_set_limit_wrapper",
    "make_setup_wrapper",
    "make_trigger_wrapper",
    "mark_patched",
    "original_of",
    "patch_collection_defaults",
    "patch_shuffle_setups",
    "patch_shuffle_triggers",
    "warn_if_more_pages",
]
