"""Structural capability probes for host modules and the classes they define.

Probes never rely on concrete host types. Each one inspects attributes (or
mapping keys) on a candidate object and returns a tagged match, or ``None``
when the candidate does not expose the expected shape. Probes have no side
effects; patching happens elsewhere.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass
import inspect
import logging
from typing import Any

from shuffle_fix.discovery.registry import ModuleRegistry

logger = logging.getLogger(__name__)

TRIGGER_FUNCTIONS = ("get_queue", "has_more_ahead", "pull_next", "toggle_shuffle")
DEFAULTS_ATTRIBUTE = "defaults"
DEFAULT_LIMIT_KEY = "limit"
SET_LIMIT_ATTRIBUTE = "set_limit"


@dataclass(frozen=True)
class Candidate:
    name: str
    obj: Any


@dataclass(frozen=True)
class CollectionDefaultsMatch:
    name: str
    owner: type
    defaults: MutableMapping[str, Any] | None = None
    set_limit_owner: type | None = None


@dataclass(frozen=True)
class ShuffleTriggerMatch:
    name: str
    owner: Any


@dataclass(frozen=True)
class ShuffleSetupMatch:
    name: str
    owner: Any
    shuffle_state: Any


@dataclass(frozen=True)
class ScanFailure:
    module: str
    candidate: str
    reason: str


@dataclass(frozen=True)
class ScanResult:
    modules_scanned: int = 0
    candidates_scanned: int = 0
    collection_matches: tuple[CollectionDefaultsMatch, ...] = ()
    trigger_matches: tuple[ShuffleTriggerMatch, ...] = ()
    setup_matches: tuple[ShuffleSetupMatch, ...] = ()
    failures: tuple[ScanFailure, ...] = ()

    @property
    def matched(self) -> int:
        return len(self.collection_matches) + len(self.trigger_matches) + len(self.setup_matches)


def lookup(container: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a mapping or as an attribute."""
    if isinstance(container, Mapping):
        return container.get(key, default)
    return getattr(container, key, default)


def iter_candidates(module_name: str, module: Any) -> Iterator[Candidate]:
    """Yield the module itself followed by the classes it defines."""
    yield Candidate(name=module_name, obj=module)

    namespace = getattr(module, "__dict__", None)
    if not isinstance(namespace, Mapping):
        return
    for attr_name, value in list(namespace.items()):
        if not inspect.isclass(value):
            continue
        if getattr(value, "__module__", None) != module_name:
            continue
        yield Candidate(name=f"{module_name}:{attr_name}", obj=value)


def probe_collection_defaults(name: str, obj: Any) -> CollectionDefaultsMatch | None:
    if not inspect.isclass(obj):
        return None

    defaults = getattr(obj, DEFAULTS_ATTRIBUTE, None)
    has_default_limit = isinstance(defaults, MutableMapping) and DEFAULT_LIMIT_KEY in defaults
    set_limit_owner = _defining_class(obj, SET_LIMIT_ATTRIBUTE)
    if set_limit_owner is not None and not callable(getattr(obj, SET_LIMIT_ATTRIBUTE, None)):
        set_limit_owner = None

    if not has_default_limit and set_limit_owner is None:
        return None
    return CollectionDefaultsMatch(
        name=name,
        owner=obj,
        defaults=defaults if has_default_limit else None,
        set_limit_owner=set_limit_owner,
    )


def probe_shuffle_trigger(name: str, obj: Any) -> ShuffleTriggerMatch | None:
    if inspect.isclass(obj):
        return None
    for function_name in TRIGGER_FUNCTIONS:
        if not callable(getattr(obj, function_name, None)):
            return None
    return ShuffleTriggerMatch(name=name, owner=obj)


def probe_shuffle_setup(name: str, obj: Any) -> ShuffleSetupMatch | None:
    if inspect.isclass(obj):
        return None
    if not callable(getattr(obj, "get_queue", None)):
        return None
    states = getattr(obj, "states", None)
    if states is None:
        return None
    shuffle_state = lookup(states, "shuffle")
    if shuffle_state is None or not callable(lookup(shuffle_state, "setup")):
        return None
    return ShuffleSetupMatch(name=name, owner=obj, shuffle_state=shuffle_state)


def scan_registry(registry: ModuleRegistry) -> ScanResult:
    """Probe every candidate in isolation; failures are recorded, never raised."""
    modules_scanned = 0
    candidates_scanned = 0
    collection_matches: list[CollectionDefaultsMatch] = []
    trigger_matches: list[ShuffleTriggerMatch] = []
    setup_matches: list[ShuffleSetupMatch] = []
    failures: list[ScanFailure] = []

    for module_name, module in registry.iter_modules():
        modules_scanned += 1
        try:
            candidates = list(iter_candidates(module_name, module))
        except Exception as exc:
            failures.append(_record_failure(module_name, module_name, exc))
            continue

        for candidate in candidates:
            candidates_scanned += 1
            try:
                collection_match = probe_collection_defaults(candidate.name, candidate.obj)
                trigger_match = probe_shuffle_trigger(candidate.name, candidate.obj)
                setup_match = probe_shuffle_setup(candidate.name, candidate.obj)
            except Exception as exc:
                failures.append(_record_failure(module_name, candidate.name, exc))
                continue

            if collection_match is not None:
                collection_matches.append(collection_match)
            if trigger_match is not None:
                trigger_matches.append(trigger_match)
            if setup_match is not None:
                setup_matches.append(setup_match)

    return ScanResult(
        modules_scanned=modules_scanned,
        candidates_scanned=candidates_scanned,
        collection_matches=tuple(collection_matches),
        trigger_matches=tuple(trigger_matches),
        setup_matches=tuple(setup_matches),
        failures=tuple(failures),
    )


def _defining_class(cls: type, attribute: str) -> type | None:
    for klass in inspect.getmro(cls):
        if attribute in vars(klass):
            return klass
    return None


def _record_failure(module_name: str, candidate_name: str, exc: Exception) -> ScanFailure:
    logger.debug("Capability probe failed for %s: %s", candidate_name, exc)
    return ScanFailure(module=module_name, candidate=candidate_name, reason=str(exc) or type(exc).__name__)
