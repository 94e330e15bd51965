"""
CLI command for the interactive repository installer.

Thin wrapper over ``hostprep.core.services.repo_installer`` and
``hostprep.core.services.repo_push``.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click


@click.command()
@click.option(
    "--env-file",
    "env_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=".env",
    show_default=True,
    help="Environment file holding GITHUB_TOKEN and the last installed repository.",
)
@click.pass_context
def repo(ctx: click.Context, env_path: Path) -> None:
    """Clone a GitHub repository, install its dependencies and start it.

    Run it again afterwards to push local changes back to GitHub.
    """
    from hostprep.adapters.github.client import GitHubAPIError, GitHubClient
    from hostprep.adapters.shell.command import CommandExecutor
    from hostprep.core.config.loader import default_log_dir
    from hostprep.core.models.repo import InstallSession
    from hostprep.core.observability.live_tail import LiveTail
    from hostprep.core.observability.run_log import RunLog
    from hostprep.core.services.repo_installer import (
        InstallerAbort,
        RepoInstaller,
        authenticate,
        ensure_tools,
    )
    from hostprep.core.services.repo_push import RepoPusher, offer_previous_repo
    from hostprep.ui.cli.console import TerminalIO

    TerminalIO().banner()

    # No log files and no network before the token is known
    try:
        token = authenticate(env_path)
    except InstallerAbort as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    with RunLog(default_log_dir()) as run_log:
        io = TerminalIO(run_log)
        live = None if ctx.obj.get("quiet") else LiveTail()
        executor = CommandExecutor(run_log, live=live)
        io.success(f"GitHub token found in {env_path}")

        try:
            ensure_tools(io, executor)

            previous = offer_previous_repo(io, env_path)
            if previous is not None:
                RepoPusher(previous, token, env_path, io).run()
                return

            session = InstallSession(token=token, env_path=env_path)
            installer = RepoInstaller(session, io, GitHubClient(token), executor)
            repo_dir = installer.run()
        except (InstallerAbort, GitHubAPIError) as e:
            run_log.error("%s", e)
            click.echo(f"   See {run_log.errors_path}", err=True)
            sys.exit(1)

        io.success("Repository installation complete!")
        io.info(f"You can find your repository at: {repo_dir}")
        io.info(f"Repository information saved in {env_path}.")
        io.info("Run this command again to push changes back to GitHub.")
