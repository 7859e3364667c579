from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from ..core.config import MASK, Config
from ..core.environment import Environment
from ..core.errors import ConfigServerError

app = typer.Typer(help="springconf CLI")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _fetch_config(env: str, config_path: Optional[Path]) -> Config:
    return asyncio.run(Environment(env, config_path).get_config())


def _load(env: str, config_path: Optional[Path], verbose: bool) -> Config:
    _setup_logging(verbose)
    try:
        return _fetch_config(env, config_path)
    except (ConfigServerError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def resolve(
    env: str = typer.Option("development", "--env"),
    config: Optional[Path] = typer.Option(None, "--config"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    show_secrets: bool = typer.Option(False, "--show-secrets"),
):
    """Print the resolved state as JSON."""
    cfg = _load(env, config, verbose)
    state = cfg.state.to_dict()
    if not show_secrets:
        state["properties"] = cfg.masked_values()
        secrets = cfg.get_all_secrets()
        state["property_source_map"] = {
            name: {k: MASK if k in secrets else v for k, v in props.items()}
            for name, props in state["property_source_map"].items()
        }
    typer.echo(json.dumps(state, indent=2))


@app.command()
def get(
    key: str,
    env: str = typer.Option("development", "--env"),
    config: Optional[Path] = typer.Option(None, "--config"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    show_secrets: bool = typer.Option(False, "--show-secrets"),
):
    """Print one property with its provenance."""
    cfg = _load(env, config, verbose)
    prop = cfg.get_property(key)
    value = prop.value
    if prop.secret and value is not None and not show_secrets:
        value = MASK
    typer.echo(json.dumps({
        "key": key,
        "value": value,
        "secret": prop.secret,
        "sources": cfg.provenance(key),
    }, indent=2))


@app.command()
def secrets(
    env: str = typer.Option("development", "--env"),
    config: Optional[Path] = typer.Option(None, "--config"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    show_secrets: bool = typer.Option(False, "--show-secrets"),
):
    """List the properties classified as secret."""
    cfg = _load(env, config, verbose)
    found = cfg.get_all_secrets()
    if not show_secrets:
        found = {key: MASK for key in found}
    typer.echo(json.dumps(found, indent=2))


@app.command()
def sources(
    env: str = typer.Option("development", "--env"),
    config: Optional[Path] = typer.Option(None, "--config"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """List the property sources that were merged, in precedence order."""
    cfg = _load(env, config, verbose)
    typer.echo(json.dumps([
        {"name": name, "properties": len(cfg.state.property_source_map.get(name, {}))}
        for name in cfg.source_names()
    ], indent=2))


if __name__ == "__main__":
    app()
