"""Typer CLI for inspecting and previewing shuffle-fix behavior."""

from __future__ import annotations

from importlib import import_module
import json

import typer

from . import __version__
from .config import (
    RuntimeConfig,
    config_to_dict,
    init_default_config,
    load_config_or_default,
    resolve_config_path,
)
from .discovery.probes import ScanResult, scan_registry
from .discovery.registry import open_registry
from .errors import ConfigError, DiscoveryError, RewriteError
from .logging import configure_logging, get_logger
from .network.rewriter import LimitRewriter

logger = get_logger(__name__)

app = typer.Typer(help="Load whole play queues before shuffling and raise page-size limits.")

config_app = typer.Typer(help="Config commands.")

app.add_typer(config_app, name="config")


@app.command("version")
def version() -> None:
    typer.echo(__version__)


@config_app.command("init")
def config_init(
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file."),
) -> None:
    try:
        written = init_default_config(path, force=force)
    except ConfigError as exc:
        typer.secho(f"Config init failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc
    typer.echo(f"Wrote default config to {written}")


@config_app.command("show")
def config_show(
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Render resolved config as JSON."),
) -> None:
    config = _load_config(path)
    payload = config_to_dict(config)
    if as_json:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    typer.echo(f"Config path: {resolve_config_path(path)}")
    for section, values in payload.items():
        typer.echo(f"[{section}]")
        for key, value in values.items():
            typer.echo(f"{key} = {value!r}")


@app.command("scan")
def scan(
    modules: list[str] = typer.Argument(..., help="Host modules to import and inspect."),
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Render scan result as JSON."),
) -> None:
    """Report capability matches in host modules without patching anything."""
    config = _load_config(path)
    configure_logging(config.app.debug)

    for module_name in modules:
        try:
            import_module(module_name)
        except Exception as exc:
            typer.secho(f"Could not import '{module_name}': {exc}", err=True, fg=typer.colors.RED)
            raise typer.Exit(2) from exc
        logger.debug("Imported host module %s for scanning", module_name)

    try:
        result = scan_registry(open_registry(prefixes=modules))
    except DiscoveryError as exc:
        typer.secho(f"Scan failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    if as_json:
        typer.echo(json.dumps(_scan_to_dict(result), indent=2, sort_keys=True))
    else:
        typer.echo(f"Modules scanned: {result.modules_scanned}")
        typer.echo(f"Candidates scanned: {result.candidates_scanned}")
        for match in result.collection_matches:
            typer.echo(f"- collection defaults: {match.name}")
        for match in result.trigger_matches:
            typer.echo(f"- shuffle trigger: {match.name}")
        for match in result.setup_matches:
            typer.echo(f"- shuffle setup: {match.name}")
        for failure in result.failures:
            typer.echo(f"! {failure.candidate}: {failure.reason}")

    if result.matched == 0:
        raise typer.Exit(1)


@app.command("rewrite")
def rewrite(
    url: str = typer.Argument(..., help="Request URL to preview."),
    limit: int | None = typer.Option(
        None, "--limit", help="Ceiling to apply (defaults to configured limits.max_limit)."
    ),
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
) -> None:
    """Print the URL a collection request would be sent to."""
    config = _load_config(path)
    try:
        rewriter = LimitRewriter(
            limit if limit is not None else config.limits.max_limit,
            path_segments=config.rewrite.path_segments,
            url_marker=config.rewrite.url_marker,
        )
    except RewriteError as exc:
        typer.secho(f"Rewrite failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc
    typer.echo(rewriter.rewrite(url))


def _load_config(path: str | None) -> RuntimeConfig:
    try:
        return load_config_or_default(path)
    except ConfigError as exc:
        typer.secho(f"Config error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc


def _scan_to_dict(result: ScanResult) -> dict[str, object]:
    return {
        "modules_scanned": result.modules_scanned,
        "candidates_scanned": result.candidates_scanned,
        "collection_defaults": [match.name for match in result.collection_matches],
        "shuffle_triggers": [match.name for match in result.trigger_matches],
        "shuffle_setups": [match.name for match in result.setup_matches],
        "failures": [
            {"module": failure.module, "candidate": failure.candidate, "reason": failure.reason}
            for failure in result.failures
        ],
    }

