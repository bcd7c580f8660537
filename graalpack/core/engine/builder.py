"""
Builder — the layered build-step lifecycle.

Installs GraalVM into a cached layer, optionally compiles the function
to a native image, and declares the launch command. Each step runs to
completion before the next one starts, and any failure ends the build.

States:
    init → target_resolved → layer_ready → sdk_installed
         → compiler_installed → env_bound → compiled | compile_skipped
         → launch_registered

    Any step → failed (error kept on the report). Nothing is retried.

Ordering rules:
    - The function target is resolved before any action is dispatched.
    - SDK download and component install finish before JAVA_HOME is bound
      and before the build tool runs.
    - When the layer manager restores the layer from cache, download and
      component install are recorded as skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from graalpack.core.context import BuildContext
from graalpack.core.errors import (
    BuildError,
    ExternalCommandFailure,
    LayerProvisioningFailure,
    MissingConfiguration,
)
from graalpack.core.models.action import Action, Receipt
from graalpack.core.models.layer import LaunchProcess, Layer, LayerFlags

logger = logging.getLogger(__name__)

TOOLCHAIN_FLAGS = LayerFlags(cache=True, build=True, launch_if_dev_mode=True)


class BuildState(StrEnum):
    """Builder lifecycle states."""

    INIT = "init"
    TARGET_RESOLVED = "target_resolved"
    LAYER_READY = "layer_ready"
    SDK_INSTALLED = "sdk_installed"
    COMPILER_INSTALLED = "compiler_installed"
    ENV_BOUND = "env_bound"
    COMPILED = "compiled"
    COMPILE_SKIPPED = "compile_skipped"
    LAUNCH_REGISTERED = "launch_registered"
    FAILED = "failed"


@dataclass
class StepRecord:
    """One step's receipt, labelled with the step that produced it."""

    step: str
    receipt: Receipt

    def to_dict(self) -> dict:
        return {"step": self.step, **self.receipt.model_dump(mode="json")}


@dataclass
class BuildReport:
    """Outcome of a build, successful or not."""

    target: str | None = None
    layer: Layer | None = None
    state: BuildState = BuildState.INIT
    history: list[BuildState] = field(default_factory=lambda: [BuildState.INIT])
    steps: list[StepRecord] = field(default_factory=list)
    exported_env: dict[str, str] = field(default_factory=dict)
    launch_process: LaunchProcess | None = None
    error: str | None = None
    failed_step: str | None = None

    @property
    def ok(self) -> bool:
        return self.state == BuildState.LAUNCH_REGISTERED

    @property
    def compiled(self) -> bool:
        return BuildState.COMPILED in self.history

    def receipt_for(self, step: str) -> Receipt | None:
        for record in self.steps:
            if record.step == step:
                return record.receipt
        return None

    def to_dict(self) -> dict:
        return {
            "status": "ok" if self.ok else "failed",
            "state": self.state.value,
            "history": [s.value for s in self.history],
            "target": self.target,
            "layer": self.layer.model_dump(mode="json") if self.layer else None,
            "exported_env": dict(self.exported_env),
            "launch": list(self.launch_process.command) if self.launch_process else None,
            "error": self.error,
            "failed_step": self.failed_step,
            "steps": [s.to_dict() for s in self.steps],
        }


class Builder:
    """Runs the build lifecycle against a BuildContext."""

    def __init__(self, context: BuildContext):
        self.ctx = context
        self.config = context.config
        self.report = BuildReport()

    @property
    def state(self) -> BuildState:
        return self.report.state

    def execute(self) -> BuildReport:
        """Run every step in order.

        Returns:
            The BuildReport of a successful build.

        Raises:
            BuildError: The first failure. ``self.report`` is left in the
                ``failed`` state with the error attached.
        """
        try:
            target = self._resolve_target()
            layer = self._provision_layer()
            self._install_sdk(layer)
            self._install_compiler(layer)
            self._bind_toolchain(layer)
            self._compile()
            self._register_launch(target)
        except BuildError as e:
            self.report.error = str(e)
            self.report.failed_step = e.step
            self._advance(BuildState.FAILED)
            logger.error("Build failed at %s: %s", e.step or self.state, e)
            raise

        logger.info("Build complete: %s", " ".join(self.report.launch_process.command))
        return self.report

    # ── Steps ───────────────────────────────────────────────────

    def _resolve_target(self) -> str:
        variable = self.config.env.function_target
        target = self.ctx.lookup_env(variable)
        if target is None or not target.strip():
            raise MissingConfiguration(variable)
        self.report.target = target
        self._advance(BuildState.TARGET_RESOLVED)
        return target

    def _provision_layer(self) -> Layer:
        name = self.config.layer_name
        launch = TOOLCHAIN_FLAGS.resolve_launch(self.ctx.dev_mode)
        receipt = self._dispatch(
            "provision-layer",
            Action(
                id="provision-layer",
                name=f"Provision layer {name}",
                adapter="layers",
                attribution="platform",
                params={
                    "operation": "provision",
                    "name": name,
                    "cache": TOOLCHAIN_FLAGS.cache,
                    "build": TOOLCHAIN_FLAGS.build,
                    "launch": launch,
                    "metadata": self._layer_inputs(),
                },
            ),
        )
        if receipt.failed:
            raise LayerProvisioningFailure(name, receipt.error or "provisioning failed")

        if receipt.skipped:
            # Dry run: nothing was created, but later steps still need a path
            layers_dir = self.ctx.layers_dir or Path(".")
            layer = Layer(
                name=name,
                path=str(layers_dir / name),
                cache=TOOLCHAIN_FLAGS.cache,
                build=TOOLCHAIN_FLAGS.build,
                launch=launch,
                metadata=self._layer_inputs(),
            )
        else:
            try:
                layer = Layer.model_validate(receipt.metadata["layer"])
            except (KeyError, ValueError) as e:
                raise LayerProvisioningFailure(name, f"layer manager returned no layer: {e}") from e

        self.report.layer = layer
        self._advance(BuildState.LAYER_READY)
        return layer

    def _install_sdk(self, layer: Layer) -> None:
        dist = self.config.distribution
        action = Action(
            id="install-sdk",
            name=f"Install GraalVM {dist.version}",
            adapter="archive",
            params={
                "url": dist.resolved_url,
                "destination": layer.path,
                "strip_components": dist.strip_components,
                "timeout": self.config.download_timeout,
            },
        )
        if layer.cache_hit:
            self._record_cached("install-sdk", action)
        else:
            self._require_ok("install-sdk", action)
        self._advance(BuildState.SDK_INSTALLED)

    def _install_compiler(self, layer: Layer) -> None:
        component = self.config.component
        updater = str(Path(layer.path) / component.updater)
        action = Action(
            id="install-native-image",
            name="Install native-image component",
            adapter="shell",
            params={
                "command": [updater, *component.args],
                "timeout": self.config.command_timeout,
            },
        )
        if layer.cache_hit:
            self._record_cached("install-native-image", action)
        else:
            self._require_ok("install-native-image", action)
            self._commit_layer(layer)
        self._advance(BuildState.COMPILER_INSTALLED)

    def _commit_layer(self, layer: Layer) -> None:
        receipt = self._dispatch(
            "commit-layer",
            Action(
                id="commit-layer",
                adapter="layers",
                attribution="platform",
                params={"operation": "commit", "name": layer.name},
            ),
        )
        if receipt.failed:
            raise LayerProvisioningFailure(layer.name, receipt.error or "commit failed", step="commit-layer")

    def _bind_toolchain(self, layer: Layer) -> None:
        variable = self.config.env.java_home
        self.ctx.setenv(variable, layer.path)
        self.report.exported_env[variable] = layer.path

        receipt = self._dispatch(
            "bind-toolchain",
            Action(
                id="bind-toolchain",
                name=f"Export {variable}",
                adapter="layers",
                attribution="platform",
                params={
                    "operation": "env",
                    "name": layer.name,
                    "variable": variable,
                    "value": layer.path,
                },
            ),
        )
        if receipt.failed:
            raise LayerProvisioningFailure(layer.name, receipt.error or "env export failed", step="bind-toolchain")
        self._advance(BuildState.ENV_BOUND)

    def _compile(self) -> None:
        tool = self.config.build_tool
        if not self.ctx.file_exists(tool.descriptor):
            logger.info(
                "No %s found, skipping native-image compilation; "
                "the function runs through the functions framework invoker",
                tool.descriptor,
            )
            self.report.steps.append(
                StepRecord(
                    "compile",
                    Receipt.skip(
                        adapter="shell",
                        action_id="compile",
                        reason=f"{tool.descriptor} not found",
                    ),
                )
            )
            self._advance(BuildState.COMPILE_SKIPPED)
            return

        self._require_ok(
            "compile",
            Action(
                id="compile",
                name="Compile native image",
                adapter="shell",
                params={
                    "command": tool.argv,
                    "cwd": str(self.ctx.app_dir),
                    "timeout": self.config.command_timeout,
                },
            ),
        )
        self._advance(BuildState.COMPILED)

    def _register_launch(self, target: str) -> None:
        process = self.ctx.add_web_process([self.config.invoker, "--target", target])
        receipt = self._dispatch(
            "register-launch",
            Action(
                id="register-launch",
                adapter="layers",
                attribution="platform",
                params={
                    "operation": "launch",
                    "processes": [process.model_dump(mode="json")],
                },
            ),
        )
        if receipt.failed:
            raise LayerProvisioningFailure(
                self.config.layer_name,
                receipt.error or "launch declaration failed",
                step="register-launch",
            )
        self.report.launch_process = process
        self._advance(BuildState.LAUNCH_REGISTERED)

    # ── Helpers ─────────────────────────────────────────────────

    def _layer_inputs(self) -> dict:
        """Everything that decides the toolchain layer's contents."""
        dist = self.config.distribution
        component = self.config.component
        return {
            **dist.cache_key(),
            "strip_components": dist.strip_components,
            "updater": component.updater,
            "components": list(component.args),
        }

    def _dispatch(self, step: str, action: Action) -> Receipt:
        receipt = self.ctx.run(action)
        self.report.steps.append(StepRecord(step, receipt))
        return receipt

    def _require_ok(self, step: str, action: Action) -> Receipt:
        receipt = self._dispatch(step, action)
        if receipt.failed:
            raise ExternalCommandFailure(step, receipt, attribution=action.attribution)
        return receipt

    def _record_cached(self, step: str, action: Action) -> None:
        logger.info("Layer restored from cache, skipping %s", step)
        self.report.steps.append(
            StepRecord(
                step,
                Receipt.skip(
                    adapter=action.adapter,
                    action_id=action.id,
                    reason="layer restored from cache",
                ),
            )
        )

    def _advance(self, state: BuildState) -> None:
        logger.debug("Build state: %s → %s", self.report.state, state)
        self.report.state = state
        self.report.history.append(state)
