"""Host module discovery contracts."""

from .probes import (
    Candidate,
    CollectionDefaultsMatch,
    ScanFailure,
    ScanResult,
    ShuffleSetupMatch,
    ShuffleTriggerMatch,
    iter_candidates,
    lookup,
    probe_collection_defaults,
    probe_shuffle_setup,
    probe_shuffle_trigger,
    scan_registry,
)
from .registry import ModuleRegistry, open_registry

__all__ = [
    "Candidate",
    "CollectionDefaultsMatch",
    "ModuleRegistry",
    "ScanFailure",
    "ScanResult",
    "ShuffleSetupMatch",
    "ShuffleTriggerMatch",
    "iter_candidates",
    "lookup",
    "open_registry",
    "probe_collection_defaults",
    "probe_shuffle_setup",
    "probe_shuffle_trigger",
    "scan_registry",
]
