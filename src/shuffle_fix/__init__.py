"""shuffle_fix package: load whole play queues before shuffling."""

from .activate import ActivationReport, activate, report_to_dict
from .config import (
    AppConfig,
    DiscoveryConfig,
    LimitsConfig,
    LoaderConfig,
    RewriteConfig,
    RuntimeConfig,
    config_to_dict,
    default_config,
    init_default_config,
    load_config_or_default,
    load_runtime_config,
    resolve_config_path,
)
from .loader import LoadSettings, ProgressiveLoadController, SessionLock
from .models import LoadOutcome, LoadResult, PatchResult, PatchStatus
from .network import LimitRewriter, rewrite_limit_url

__all__ = [
    "ActivationReport",
    "AppConfig",
    "DiscoveryConfig",
    "LimitRewriter",
    "LimitsConfig",
    "LoadOutcome",
    "LoadResult",
    "LoadSettings",
    "LoaderConfig",
    "PatchResult",
    "PatchStatus",
    "ProgressiveLoadController",
    "RewriteConfig",
    "RuntimeConfig",
    "SessionLock",
    "activate",
    "config_to_dict",
    "default_config",
    "init_default_config",
    "load_config_or_default",
    "load_runtime_config",
    "report_to_dict",
    "resolve_config_path",
    "rewrite_limit_url",
]

__version__ = "0.1.0"
