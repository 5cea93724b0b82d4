"""One-shot, best-effort activation of every host patch."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import logging
from typing import Any

from shuffle_fix.config import RuntimeConfig, default_config
from shuffle_fix.discovery.probes import ScanFailure, scan_registry
from shuffle_fix.discovery.registry import RegistryHandle, open_registry
from shuffle_fix.errors import RegistryUnavailableError
from shuffle_fix.loader.base import HostStateControl
from shuffle_fix.loader.controller import AsyncSleepFn, LoadSettings
from shuffle_fix.loader.session import SessionLock, process_lock
from shuffle_fix.models import PatchResult, PatchStatus
from shuffle_fix.network.rewriter import LimitRewriter, install_http_rewriter
from shuffle_fix.patching.defaults import patch_collection_defaults
from shuffle_fix.patching.shuffle import (
    ControlFactory,
    patch_shuffle_setups,
    patch_shuffle_triggers,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivationReport:
    max_limit: int
    registry_available: bool
    modules_scanned: int = 0
    candidates_scanned: int = 0
    patches: tuple[PatchResult, ...] = ()
    scan_failures: tuple[ScanFailure, ...] = ()
    lock: SessionLock | None = None

    @property
    def applied(self) -> int:
        return sum(1 for patch in self.patches if patch.status is PatchStatus.APPLIED)

    @property
    def failed(self) -> int:
        return sum(1 for patch in self.patches if patch.status is PatchStatus.FAILED)

    def patches_of_kind(self, kind: str) -> tuple[PatchResult, ...]:
        return tuple(patch for patch in self.patches if patch.kind == kind)


def activate(
    config: RuntimeConfig | None = None,
    *,
    registry: RegistryHandle = None,
    control_factory: ControlFactory = HostStateControl,
    install_network: bool = True,
    sleep_fn: AsyncSleepFn | None = None,
    lock: SessionLock | None = None,
) -> ActivationReport:
    """Install the request rewriter and patch matching host modules once.

    Never raises for host-related failures: a missing registry leaves only
    the network rewriter active, and each patch reports its own status.
    Every trigger patched by any activation shares ``lock``, which defaults
    to the process-wide session lock.
    """
    resolved = config or default_config()
    max_limit = resolved.limits.max_limit
    session_lock = lock or process_lock()
    patches: list[PatchResult] = []

    if install_network and resolved.rewrite.enabled:
        patches.extend(install_http_rewriter(LimitRewriter.from_config(resolved)))

    try:
        module_registry = open_registry(registry, prefixes=resolved.discovery.module_prefixes)
        scan = scan_registry(module_registry)
    except RegistryUnavailableError as exc:
        logger.warning("Could not find host module registry: %s", exc)
        logger.info("Initialized with max_limit=%d (network rewriting only)", max_limit)
        return ActivationReport(
            max_limit=max_limit,
            registry_available=False,
            patches=tuple(patches),
            lock=session_lock,
        )

    patches.extend(patch_collection_defaults(scan.collection_matches, max_limit))
    patches.extend(
        patch_shuffle_triggers(
            scan.trigger_matches,
            lock=session_lock,
            settings=LoadSettings.from_config(resolved.loader),
            control_factory=control_factory,
            sleep_fn=sleep_fn,
        )
    )
    patches.extend(patch_shuffle_setups(scan.setup_matches))

    report = ActivationReport(
        max_limit=max_limit,
        registry_available=True,
        modules_scanned=scan.modules_scanned,
        candidates_scanned=scan.candidates_scanned,
        patches=tuple(patches),
        scan_failures=scan.failures,
        lock=session_lock,
    )
    if report.failed:
        logger.warning("%d patch(es) could not be applied", report.failed)
    logger.info(
        "Patched host modules: %d applied across %d module(s); initialized with max_limit=%d",
        report.applied,
        report.modules_scanned,
        max_limit,
    )
    return report


def report_to_dict(report: ActivationReport) -> dict[str, Any]:
    return {
        "max_limit": report.max_limit,
        "registry_available": report.registry_available,
        "modules_scanned": report.modules_scanned,
        "candidates_scanned": report.candidates_scanned,
        "applied": report.applied,
        "failed": report.failed,
        "patches": [
            {
                "target": patch.target,
                "kind": patch.kind,
                "status": patch.status.value,
                "reason": patch.reason,
            }
            for patch in report.patches
        ],
        "scan_failures": [asdict(failure) for failure in report.scan_failures],
    }
