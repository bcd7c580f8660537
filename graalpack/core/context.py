"""
Build context — the single explicit input to detect and build.

Constructed once at startup by whichever entry point launches the
buildpack:

    - CLI:    main.py → use_cases → BuildContext.from_environment(...)
    - Tests:  BuildContext(config=..., environ={...}, registry=...)

Design notes:
    - The process environment is snapshotted here. Detect and build read
      the snapshot, never ``os.environ``, so they can be driven with any
      environment in tests.
    - Variables exported by build steps go into ``exported_env``. Every
      later action receives them, and they never leak into the snapshot.
    - The launch command is write-once.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from graalpack.adapters.registry import AdapterRegistry
from graalpack.core.errors import LaunchAlreadyRegistered
from graalpack.core.models.action import Action, Receipt
from graalpack.core.models.config import BuildpackConfig
from graalpack.core.models.layer import LaunchProcess

logger = logging.getLogger(__name__)

_FALSEY = {"", "0", "false", "no", "off"}


@dataclass
class BuildContext:
    """Everything the detector and builder are allowed to see and touch."""

    config: BuildpackConfig
    environ: dict[str, str]
    app_dir: Path = field(default_factory=Path.cwd)
    layers_dir: Path | None = None
    registry: AdapterRegistry = field(default_factory=AdapterRegistry)
    dry_run: bool = False

    exported_env: dict[str, str] = field(default_factory=dict)
    launch_process: LaunchProcess | None = None

    @classmethod
    def from_environment(
        cls,
        config: BuildpackConfig,
        environ: Mapping[str, str] | None = None,
        **kwargs,
    ) -> BuildContext:
        """Snapshot ``environ`` (default: the process environment)."""
        source = os.environ if environ is None else environ
        return cls(config=config, environ=dict(source), **kwargs)

    # ── Environment ─────────────────────────────────────────────

    def lookup_env(self, name: str) -> str | None:
        """Value of ``name`` in the snapshot, or None when unset."""
        return self.environ.get(name)

    @property
    def dev_mode(self) -> bool:
        value = self.environ.get(self.config.env.dev_mode)
        return value is not None and value.strip().lower() not in _FALSEY

    def setenv(self, name: str, value: str) -> None:
        """Export a variable to every later action of this build."""
        logger.debug("Exporting %s=%s", name, value)
        self.exported_env[name] = value

    # ── Filesystem ──────────────────────────────────────────────

    def file_exists(self, relative: str) -> bool:
        return (self.app_dir / relative).is_file()

    # ── Actions ─────────────────────────────────────────────────

    def run(self, action: Action) -> Receipt:
        """Dispatch an action through the registry with this build's state."""
        return self.registry.execute_action(
            action,
            app_dir=str(self.app_dir),
            layers_dir=str(self.layers_dir) if self.layers_dir else None,
            env=self.exported_env,
            dry_run=self.dry_run,
        )

    # ── Launch ──────────────────────────────────────────────────

    def add_web_process(self, command: list[str]) -> LaunchProcess:
        """Declare the serving entry point. Allowed once per build."""
        if self.launch_process is not None:
            raise LaunchAlreadyRegistered(self.launch_process.command)
        self.launch_process = LaunchProcess(type="web", command=tuple(command))
        return self.launch_process
