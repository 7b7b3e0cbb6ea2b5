#!/usr/bin/env python3
"""Main CLI entry point for the page tracker using Typer.

Commands:
    version   Show version information
    session   Show or clear the persisted session id
    simulate  Run a scripted page view through the tracking pipeline
    relay     Serve the batch relay API
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .. import __version__
from ..config.loader import ConfigLoadError, TrackerConfig, load_tracker_config
from ..session.provider import SessionIdentityProvider
from ..session.storage import JsonFileStorage, StorageUnavailableError
from .simulate import ScenarioError, load_scenario, run_simulation

DEFAULT_STORAGE_PATH = Path.home() / ".tracker" / "storage.json"


app = typer.Typer(
    name="tracker",
    help="Page tracker - client-side analytics event batching",
    add_completion=False,
)


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
):
    """
    Page tracker - client-side analytics event batching.

    Simulate page views against the tracking pipeline, inspect the
    persisted session and run the batch relay.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"Page tracker CLI v{__version__}")


def _load_config(config_path: Optional[Path], environment: Optional[str]) -> TrackerConfig:
    try:
        return load_tracker_config(config_path, environment)
    except ConfigLoadError as e:
        if config_path is not None:
            typer.echo(f"Configuration error: {e}", err=True)
            raise typer.Exit(2)
        # Bundled config is optional when running from an installed package
        return TrackerConfig()


@app.command()
def session(
    storage: Annotated[
        Optional[Path],
        typer.Option("--storage", "-s", help="Session storage file")
    ] = None,
    clear: Annotated[
        bool,
        typer.Option("--clear", help="Remove the persisted session id")
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Tracker configuration file")
    ] = None,
):
    """Show the persisted session id, creating it on first use."""
    config = _load_config(config_path, None)
    path = storage or config.session_storage_path or DEFAULT_STORAGE_PATH
    provider = SessionIdentityProvider(JsonFileStorage(path), key=config.session_storage_key)

    if clear:
        try:
            provider.clear()
        except StorageUnavailableError as e:
            typer.echo(f"Failed to clear session: {e}", err=True)
            raise typer.Exit(1)
        typer.echo(f"Session cleared ({path})")
        return

    typer.echo(provider.get_session_id())


@app.command()
def simulate(
    scenario_path: Annotated[
        Path,
        typer.Argument(help="Scenario YAML file")
    ],
    endpoint: Annotated[
        Optional[str],
        typer.Option("--endpoint", help="POST batches to this ingestion endpoint")
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="Shared secret sent with each batch")
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Tracker configuration file")
    ] = None,
    env: Annotated[
        Optional[str],
        typer.Option("--env", "-e", help="Configuration environment")
    ] = None,
):
    """Run a scripted page view and print every delivered batch as JSON."""
    config = _load_config(config_path, env)

    try:
        scenario = load_scenario(scenario_path)
        batches = asyncio.run(run_simulation(scenario, config, endpoint_url=endpoint, api_key=api_key))
    except ScenarioError as e:
        typer.echo(f"Scenario error: {e}", err=True)
        raise typer.Exit(2)

    for batch in batches:
        typer.echo(json.dumps(batch))

    event_count = sum(len(batch['data']) for batch in batches)
    typer.echo(f"{len(batches)} batches, {event_count} events", err=True)


@app.command()
def relay(
    host: Annotated[
        str,
        typer.Option("--host", help="Bind address")
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Bind port")
    ] = 8000,
):
    """Serve the batch relay API.

    Settings come from the TRACKER_RELAY_* environment variables.
    """
    import uvicorn

    from ..relay.main import create_relay_app

    uvicorn.run(create_relay_app(), host=host, port=port)


if __name__ == "__main__":
    app()
