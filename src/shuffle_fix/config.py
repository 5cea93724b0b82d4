"""Shared configuration contracts and validation helpers for shuffle-fix."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any

from platformdirs import user_config_dir

from .errors import ConfigError

DEFAULT_CONFIG_FILENAME = "config.toml"
CONFIG_ENV_VAR = "SHUFFLE_FIX_CONFIG"
DEFAULT_PATH_SEGMENTS = ("likes", "tracks", "playlists", "favorites", "stream")

DEFAULT_CONFIG_TEMPLATE = """[app]
debug = false

[limits]
max_limit = 200

[loader]
batch_size = 1000
poll_interval_ms = 150
deadline_ms = 60000
max_polls = 200
stagnation_polls = 200

[rewrite]
enabled = true
url_marker = "api"
path_segments = ["likes", "tracks", "playlists", "favorites", "stream"]

[discovery]
module_prefixes = []
"""


@dataclass(frozen=True)
class AppConfig:
    debug: bool = False


@dataclass(frozen=True)
class LimitsConfig:
    max_limit: int = 200


@dataclass(frozen=True)
class LoaderConfig:
    batch_size: int = 1000
    poll_interval_ms: int = 150
    deadline_ms: int = 60_000
    max_polls: int = 200
    stagnation_polls: int = 200


@dataclass(frozen=True)
class RewriteConfig:
    enabled: bool = True
    url_marker: str = "api"
    path_segments: tuple[str, ...] = DEFAULT_PATH_SEGMENTS


@dataclass(frozen=True)
class DiscoveryConfig:
    module_prefixes: tuple[str, ...] = ()


@dataclass(frozen=True)
class RuntimeConfig:
    app: AppConfig = field(default_factory=AppConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    loader: LoaderConfig = field(default_factory=LoaderConfig)
    rewrite: RewriteConfig = field(default_factory=RewriteConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)


def default_config() -> RuntimeConfig:
    return RuntimeConfig()


def default_config_toml() -> str:
    return DEFAULT_CONFIG_TEMPLATE


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    if config_path:
        return Path(config_path).expanduser()

    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()

    config_dir = Path(user_config_dir("shuffle-fix", appauthor=False))
    return config_dir / DEFAULT_CONFIG_FILENAME


def init_default_config(config_path: str | Path | None = None, force: bool = False) -> Path:
    path = resolve_config_path(config_path)
    if path.exists() and path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; expected a TOML file path (for example '{path / DEFAULT_CONFIG_FILENAME}')."
        )
    if path.exists() and not force:
        raise ConfigError(
            f"Config file already exists at '{path}'. Re-run with --force to overwrite."
        )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default_config_toml(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not write config file at '{path}': {exc}. "
            "Check path permissions or choose a writable location with `--path`."
        ) from exc
    return path


def load_runtime_config(config_path: str | Path | None = None) -> RuntimeConfig:
    path = resolve_config_path(config_path)
    if not path.exists():
        raise ConfigError(
            f"Config file not found at '{path}'. Run `shuffle-fix config init --path \"{path}\"` to generate defaults."
        )
    if path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; pass a file path ending in '{DEFAULT_CONFIG_FILENAME}'."
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not read config file '{path}': {exc}. "
            "Check file permissions and that the path points to a readable TOML file."
        ) from exc
    raw = _load_toml(text, path)
    return _parse_runtime_config(raw)


def load_config_or_default(config_path: str | Path | None = None) -> RuntimeConfig:
    """Load configuration when a file exists; fall back to defaults for implicit paths."""
    path = resolve_config_path(config_path)
    if config_path is None and not path.exists():
        return default_config()
    return load_runtime_config(path)


def config_to_dict(config: RuntimeConfig) -> dict[str, Any]:
    return asdict(config)


def _load_toml(text: str, path: Path) -> dict[str, Any]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Config file '{path}' contains invalid TOML: {exc}. "
            "Fix the syntax or regenerate defaults with `shuffle-fix config init --force`."
        ) from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must parse to a TOML table.")
    return data


def _parse_runtime_config(data: dict[str, Any]) -> RuntimeConfig:
    app_raw = _expect_table(data, "app", default={})
    limits_raw = _expect_table(data, "limits", default={})
    loader_raw = _expect_table(data, "loader", default={})
    rewrite_raw = _expect_table(data, "rewrite", default={})
    discovery_raw = _expect_table(data, "discovery", default={})

    app_config = AppConfig(debug=_expect_bool(app_raw, "app.debug", default=False))
    limits_config = LimitsConfig(
        max_limit=_expect_positive_int(limits_raw, "limits.max_limit", default=200),
    )
    loader_config = LoaderConfig(
        batch_size=_expect_positive_int(loader_raw, "loader.batch_size", default=1000),
        poll_interval_ms=_expect_positive_int(loader_raw, "loader.poll_interval_ms", default=150),
        deadline_ms=_expect_positive_int(loader_raw, "loader.deadline_ms", default=60_000),
        max_polls=_expect_positive_int(loader_raw, "loader.max_polls", default=200),
        stagnation_polls=_expect_positive_int(loader_raw, "loader.stagnation_polls", default=200),
    )
    rewrite_config = RewriteConfig(
        enabled=_expect_bool(rewrite_raw, "rewrite.enabled", default=True),
        url_marker=_expect_string(rewrite_raw, "rewrite.url_marker", default="api"),
        path_segments=_expect_string_list(
            rewrite_raw,
            "rewrite.path_segments",
            default=DEFAULT_PATH_SEGMENTS,
            allow_empty=False,
        ),
    )
    discovery_config = DiscoveryConfig(
        module_prefixes=_expect_string_list(
            discovery_raw,
            "discovery.module_prefixes",
            default=(),
            allow_empty=True,
        ),
    )

    return RuntimeConfig(
        app=app_config,
        limits=limits_config,
        loader=loader_config,
        rewrite=rewrite_config,
        discovery=discovery_config,
    )


def _expect_table(data: dict[str, Any], key: str, default: dict[str, Any]) -> dict[str, Any]:
    value = data.get(key, default)
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid [{key}] table: expected table, got {type(value).__name__}.")
    return value


def _expect_string(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key.split(".")[-1], default)
    if not isinstance(value, str):
        raise ConfigError(f"Invalid value for '{key}': expected string.")
    return value


def _expect_positive_int(data: dict[str, Any], key: str, default: int) -> int:
    field = key.split(".")[-1]
    value = data.get(field, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"Invalid value for '{key}': expected positive integer.")
    return value


def _expect_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    field = key.split(".")[-1]
    value = data.get(field, default)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid value for '{key}': expected boolean true/false.")
    return value


def _expect_string_list(
    data: dict[str, Any],
    key: str,
    default: tuple[str, ...],
    *,
    allow_empty: bool,
) -> tuple[str, ...]:
    field = key.split(".")[-1]
    value = data.get(field, list(default))
    if not isinstance(value, list) or not all(
        isinstance(item, str) and item.strip() for item in value
    ):
        raise ConfigError(f"Invalid value for '{key}': expected array of non-empty strings.")
    if not value and not allow_empty:
        raise ConfigError(f"Invalid value for '{key}': expected at least one entry.")
    return tuple(item.strip() for item in value)
