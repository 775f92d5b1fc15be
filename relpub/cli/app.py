from __future__ import annotations

import os
from pathlib import Path

import typer

from relpub import __version__
from relpub.cli.commands.finalize_cmd import finalize
from relpub.cli.commands.publish_cmd import publish_app
from relpub.cli.commands.status_cmd import status
from relpub.services.publish.config import (
    ENV_CHANNEL,
    ENV_CLI_VERSION,
    ENV_COMMIT,
    ENV_CONFIG,
    ENV_PLATFORM,
    ENV_SHAREDFX_VERSION,
    ENV_STORAGE_ROOT,
)


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    invoke_without_command=True,
)


# Commands
app.command()(status)
app.command()(finalize)

# Sub-apps
app.add_typer(publish_app, name="publish")


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    config: Path | None = typer.Option(None, "--config", help="Path to relpub.toml."),
    channel: str | None = typer.Option(None, "--channel", help="Release channel."),
    cli_version: str | None = typer.Option(None, "--cli-version", help="CLI version being published."),
    sharedfx_version: str | None = typer.Option(
        None, "--sharedfx-version", help="Shared runtime version being published."
    ),
    platform: str | None = typer.Option(
        None, "--platform", help="Badge name of this agent (overrides detection)."
    ),
    commit: str | None = typer.Option(None, "--commit", help="Commit hash for version files."),
    storage_root: Path | None = typer.Option(None, "--storage-root", help="Blob store directory."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)

    # Options win over the environment; commands read everything from there.
    overrides = {
        ENV_CONFIG: str(config) if config is not None else None,
        ENV_CHANNEL: channel,
        ENV_CLI_VERSION: cli_version,
        ENV_SHAREDFX_VERSION: sharedfx_version,
        ENV_PLATFORM: platform,
        ENV_COMMIT: commit,
        ENV_STORAGE_ROOT: str(storage_root) if storage_root is not None else None,
    }
    for key, value in overrides.items():
        if value is not None:
            os.environ[key] = value


def main() -> None:
    app()
