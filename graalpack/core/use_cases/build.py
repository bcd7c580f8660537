"""
Build use case — wire config, adapters and context, then run the Builder.

This is the top-level entry for a build: it loads configuration,
snapshots the environment, registers the real adapters (unless a
registry is injected) and turns the Builder's outcome into a
BuildOutcome the CLI can print.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from graalpack.adapters.layers.local import LayerAdapter
from graalpack.adapters.net.archive import ArchiveAdapter
from graalpack.adapters.registry import AdapterRegistry
from graalpack.adapters.shell.command import ShellCommandAdapter
from graalpack.core.config.loader import ConfigError, load_config
from graalpack.core.context import BuildContext
from graalpack.core.engine.builder import Builder, BuildReport
from graalpack.core.errors import BuildError

logger = logging.getLogger(__name__)


def default_registry() -> AdapterRegistry:
    """Registry with the production adapters."""
    return AdapterRegistry([LayerAdapter(), ArchiveAdapter(), ShellCommandAdapter()])


@dataclass
class BuildOutcome:
    """Result of the build use case."""

    report: BuildReport | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {}
        if self.report:
            result = self.report.to_dict()
        if self.error:
            result["error"] = self.error
            result["status"] = "failed"
        return result


def run_build(
    layers_dir: Path,
    config_path: Path | None = None,
    app_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> BuildOutcome:
    """Run the native-image build for the application in ``app_dir``.

    Args:
        layers_dir: Directory that holds this buildpack's layers.
        config_path: Optional explicit path to graalpack.yml.
        app_dir: Application directory (default: cwd).
        environ: Environment snapshot (default: the process environment).
        dry_run: Validate every action without executing it.
        registry: Adapter registry override (tests, mocks).
    """
    app_dir = (app_dir or Path.cwd()).resolve()

    try:
        config = load_config(config_path, app_dir=app_dir)
    except ConfigError as e:
        return BuildOutcome(error=str(e))

    context = BuildContext.from_environment(
        config,
        environ,
        app_dir=app_dir,
        layers_dir=layers_dir.resolve(),
        registry=registry or default_registry(),
        dry_run=dry_run,
    )
    builder = Builder(context)

    try:
        report = builder.execute()
    except BuildError as e:
        return BuildOutcome(report=builder.report, error=str(e))

    return BuildOutcome(report=report)
