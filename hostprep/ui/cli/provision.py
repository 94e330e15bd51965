"""
CLI commands for host provisioning.

Thin wrappers over ``hostprep.core.services.provision``.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from hostprep.core.models.profile import ProvisionProfile
from hostprep.core.models.step import ProvisionReport


def _load(ctx: click.Context) -> ProvisionProfile:
    """Load the profile or exit with a red error."""
    from hostprep.core.config.loader import ConfigError, load_profile

    config_path: Path | None = ctx.obj.get("config_path")
    try:
        return load_profile(config_path)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def _log_dir(profile: ProvisionProfile) -> Path:
    """The profile's log dir, or a per-user one when not root and left at the default."""
    from hostprep.core.config.loader import default_log_dir

    if not _is_root() and profile.log_dir == ProvisionProfile().log_dir:
        return default_log_dir()
    return profile.log_dir


def _print_summary(report: ProvisionReport, log_paths: tuple[Path, Path]) -> None:
    click.echo()
    if report.total:
        color = "green" if report.failed == 0 else "yellow"
        click.secho(
            f"   Steps: {report.succeeded} ok, {report.skipped} skipped, "
            f"{report.failed} failed (of {report.total})",
            fg=color,
            bold=True,
        )
        for outcome in report.outcomes:
            if outcome.failed:
                click.secho(f"     ✗ {outcome.step.name}", fg="red", nl=False)
                click.echo(f"  {outcome.message}" if outcome.message else "")

    passed = sum(1 for v in report.verifications if v.passed)
    if report.verification_failed:
        click.secho(
            f"   ⚠️  Verification: {passed}/{len(report.verifications)} passed",
            fg="yellow",
            bold=True,
        )
    else:
        click.secho(
            f"   ✅ Verification: {passed}/{len(report.verifications)} passed",
            fg="green",
            bold=True,
        )

    setup_log, errors_log = log_paths
    click.echo(f"   Setup log:  {setup_log}")
    click.echo(f"   Errors log: {errors_log}")
    click.echo()


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.pass_context
def provision(ctx: click.Context, as_json: bool) -> None:
    """Provision this host: packages, Docker, the dev user, Node.js tooling.

    Must run as root. Every step checks whether it is already done and
    skips itself if so, so re-running is safe.
    """
    from hostprep.adapters.shell.command import CommandExecutor
    from hostprep.core.engine.runner import ProvisionAbort
    from hostprep.core.engine.verifier import ComponentVerifier
    from hostprep.core.observability.live_tail import LiveTail
    from hostprep.core.observability.run_log import RunLog
    from hostprep.core.services.provision import provision_host

    if not _is_root():
        click.secho("❌ This command must be run as root (try: sudo hostprep provision)", fg="red", err=True)
        sys.exit(1)

    profile = _load(ctx)

    with RunLog(profile.log_dir, console=not as_json) as run_log:
        live = None if as_json or ctx.obj.get("quiet") else LiveTail(profile.tail_lines)
        executor = CommandExecutor(run_log, tail_lines=profile.tail_lines, live=live)
        verifier = ComponentVerifier(run_log)

        run_log.info("Provisioning host for user '%s'", profile.user.name)
        try:
            report = provision_host(profile, executor, verifier, run_log)
        except ProvisionAbort as e:
            run_log.error("Provisioning aborted: %s", e)
            click.secho(f"❌ Provisioning aborted at '{e.outcome.step.name}'", fg="red", err=True)
            click.echo(f"   See {run_log.errors_path}", err=True)
            sys.exit(1)

        log_paths = (run_log.setup_path, run_log.errors_path)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    _print_summary(report, log_paths)
    if report.all_ok:
        click.secho("✅ Host provisioned", fg="green", bold=True)
    else:
        click.secho("⚠️  Host provisioned with warnings — review the errors log", fg="yellow", bold=True)


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.pass_context
def verify(ctx: click.Context, as_json: bool) -> None:
    """Check what is installed, without changing anything."""
    from hostprep.core.engine.verifier import ComponentVerifier
    from hostprep.core.observability.run_log import RunLog
    from hostprep.core.services.provision import verify_host

    profile = _load(ctx)

    with RunLog(_log_dir(profile), console=not as_json) as run_log:
        report = verify_host(profile, ComponentVerifier(run_log), run_log)
        log_paths = (run_log.setup_path, run_log.errors_path)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _print_summary(report, log_paths)

    if report.verification_failed:
        sys.exit(1)
