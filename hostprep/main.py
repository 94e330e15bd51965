"""
hostprep — CLI entrypoint.

Usage:
    hostprep --help
    sudo hostprep provision
    hostprep verify
    hostprep repo
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from hostprep import __version__
from hostprep.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="hostprep")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to hostprep.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """hostprep — provision a development host and install repositories onto it."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("HOSTPREP_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("HOSTPREP_LOG_FILE"),
        log_file_level=os.environ.get("HOSTPREP_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


# ── Register sub-commands from hostprep/ui/cli/ ──────────────────

from hostprep.ui.cli.provision import provision, verify  # noqa: E402
from hostprep.ui.cli.repo import repo  # noqa: E402

cli.add_command(provision)
cli.add_command(verify)
cli.add_command(repo)


if __name__ == "__main__":
    cli()
