"""
graalpack — CLI entrypoint.

Usage:
    python -m graalpack.main --help
    graalpack detect
    graalpack build /layers
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from graalpack import __version__
from graalpack.core.observability.logging_config import (
    FILE_ENV,
    FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="graalpack")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to graalpack.yml (default: <app-dir>/graalpack.yml).",
)
@click.option(
    "--app-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Application source directory (default: cwd).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    app_dir: str | None,
) -> None:
    """graalpack — GraalVM native-image buildpack for Java functions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["app_dir"] = Path(app_dir) if app_dir else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=os.environ),
        log_file=os.environ.get(FILE_ENV),
        log_file_level=os.environ.get(FILE_LEVEL_ENV),
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect(ctx: click.Context, as_json: bool) -> None:
    """Decide whether this buildpack takes part (exit 0) or not (exit 100)."""
    from graalpack.core.use_cases.detect import run_detect

    outcome = run_detect(
        config_path=ctx.obj.get("config_path"),
        app_dir=ctx.obj.get("app_dir"),
    )

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
        sys.exit(outcome.exit_code)

    if outcome.error:
        click.secho(f"❌ {outcome.error}", fg="red")
        sys.exit(outcome.exit_code)

    result = outcome.result
    assert result is not None
    if not ctx.obj.get("quiet"):
        if result.opted_in:
            click.secho(f"✓ pass: {result.reason}", fg="green")
        else:
            click.secho(f"⊘ skip: {result.reason}", fg="yellow")
    sys.exit(outcome.exit_code)


@cli.command()
@click.argument("layers_dir", type=click.Path(file_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Validate every step but don't execute.")
@click.pass_context
def build(ctx: click.Context, layers_dir: str, as_json: bool, dry_run: bool) -> None:
    """Install GraalVM, compile if a pom.xml exists, declare the launch command.

    Examples:

        graalpack build /layers

        graalpack --app-dir ./function build ./layers --dry-run
    """
    from graalpack.core.use_cases.build import run_build

    outcome = run_build(
        layers_dir=Path(layers_dir),
        config_path=ctx.obj.get("config_path"),
        app_dir=ctx.obj.get("app_dir"),
        dry_run=dry_run,
    )

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
        sys.exit(0 if outcome.ok else 1)

    report = outcome.report
    mode_label = "[dry-run] " if dry_run else ""
    if report and not ctx.obj.get("quiet"):
        name = report.layer.name if report.layer else "build"
        click.secho(f"\n⚡ {mode_label}{name}", fg="cyan", bold=True)
        for record in report.steps:
            receipt = record.receipt
            timing = f" ({receipt.duration_ms}ms)" if receipt.duration_ms else ""
            if receipt.ok:
                click.secho(f"   ✓ {record.step}", fg="green", nl=False)
                click.echo(timing)
                if ctx.obj.get("verbose") and receipt.output:
                    for line in receipt.output.split("\n")[:10]:
                        click.echo(f"     │ {line}")
            elif receipt.failed:
                click.secho(f"   ✗ {record.step}", fg="red", nl=False)
                click.echo(timing)
            else:
                click.secho(f"   ⊘ {record.step} ", fg="yellow", nl=False)
                click.echo(f"({receipt.output})")

    if outcome.error:
        click.echo()
        click.secho(f"❌ {outcome.error}", fg="red", err=True)
        sys.exit(1)

    assert report is not None and report.launch_process is not None
    if not ctx.obj.get("quiet"):
        click.echo()
        click.secho("   Launch: ", fg="white", bold=True, nl=False)
        click.echo(" ".join(report.launch_process.command))
        click.echo()


if __name__ == "__main__":
    cli()
