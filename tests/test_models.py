"""
Tests for domain models, build errors and the build context.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from graalpack.adapters.mock import MockAdapter
from graalpack.adapters.registry import AdapterRegistry
from graalpack.core.context import BuildContext
from graalpack.core.errors import (
    BuildError,
    ExternalCommandFailure,
    LaunchAlreadyRegistered,
    LayerProvisioningFailure,
    MissingConfiguration,
)
from graalpack.core.models import (
    Action,
    BuildpackConfig,
    DetectResult,
    LaunchDeclaration,
    LaunchProcess,
    Layer,
    LayerFlags,
    Receipt,
)

# ── Action / Receipt ────────────────────────────────────────────────


class TestAction:
    def test_defaults(self):
        action = Action(id="install-sdk", adapter="archive")
        assert action.attribution == "user"
        assert action.params == {}

    def test_invalid_attribution(self):
        with pytest.raises(ValidationError):
            Action(id="x", adapter="shell", attribution="someone")


class TestReceipt:
    def test_success(self):
        r = Receipt.success(adapter="shell", action_id="op", output="done")
        assert r.ok and not r.failed and not r.skipped
        assert r.error is None

    def test_failure(self):
        r = Receipt.failure(adapter="shell", action_id="op", error="boom",
                            metadata={"return_code": 2})
        assert r.failed
        assert r.return_code == 2

    def test_skip(self):
        r = Receipt.skip(adapter="shell", action_id="op", reason="nothing to do")
        assert r.skipped
        assert r.output == "nothing to do"
        assert r.return_code is None

    def test_timestamps(self):
        r = Receipt.success(adapter="x", action_id="y")
        assert r.started_at
        assert r.ended_at


# ── Detect ──────────────────────────────────────────────────────────


class TestDetectResult:
    def test_frozen(self):
        result = DetectResult.opt_in_env_set("X")
        with pytest.raises(ValidationError):
            result.status = "opt_out"

    def test_to_dict(self):
        assert DetectResult.opt_out_env_not_set("X").to_dict() == {
            "status": "opt_out",
            "reason": "X not set",
        }


# ── Layers ──────────────────────────────────────────────────────────


class TestLayerFlags:
    @pytest.mark.parametrize(
        "flag,dev_mode,expected",
        [(True, True, True), (True, False, False), (False, True, False)],
    )
    def test_resolve_launch(self, flag, dev_mode, expected):
        assert LayerFlags(launch_if_dev_mode=flag).resolve_launch(dev_mode) is expected


class TestLayer:
    def test_defaults(self):
        layer = Layer(name="java-graalvm", path="/layers/java-graalvm")
        assert layer.cache_hit is False
        assert layer.metadata == {}


class TestLaunchProcess:
    def test_parts(self):
        proc = LaunchProcess(command=("./invoker", "--target", "fn"))
        assert proc.type == "web"
        assert proc.default is True
        assert proc.command == ("./invoker", "--target", "fn")

    def test_declaration_round_trip(self):
        decl = LaunchDeclaration(processes=[LaunchProcess(command=("./run",))])
        data = decl.model_dump(mode="json")
        assert LaunchDeclaration.model_validate(data) == decl


# ── Errors ──────────────────────────────────────────────────────────


class TestErrors:
    def test_missing_configuration(self):
        err = MissingConfiguration("GOOGLE_FUNCTION_TARGET")
        assert isinstance(err, BuildError)
        assert err.step == "resolve-target"
        assert "GOOGLE_FUNCTION_TARGET" in str(err)

    def test_external_command_failure_verbatim(self):
        receipt = Receipt.failure(
            adapter="shell",
            action_id="compile",
            error="BUILD FAILURE",
            metadata={
                "command": "mvn package -P native",
                "return_code": 1,
                "stdout": "[INFO] Scanning",
                "stderr": "[ERROR] BUILD FAILURE",
            },
        )
        err = ExternalCommandFailure("compile", receipt)
        assert err.return_code == 1
        assert err.stderr == "[ERROR] BUILD FAILURE"
        assert err.stdout == "[INFO] Scanning"
        message = str(err)
        assert message.startswith("[user] step 'compile' failed (exit status 1)")
        assert "command: mvn package -P native" in message
        assert message.endswith("[ERROR] BUILD FAILURE")

    def test_stdout_errors_shown_alongside_stderr(self):
        receipt = Receipt.failure(
            adapter="shell",
            action_id="compile",
            error="WARNING: An illegal reflective access operation has occurred",
            metadata={
                "command": "mvn package -P native",
                "return_code": 1,
                "stdout": "[INFO] Building function\n[ERROR] Failed to execute goal native-image",
                "stderr": "WARNING: An illegal reflective access operation has occurred",
            },
        )
        message = str(ExternalCommandFailure("compile", receipt))
        assert "[ERROR] Failed to execute goal native-image" in message
        assert "WARNING: An illegal reflective access" in message

    def test_long_stdout_is_tailed(self):
        stdout = "\n".join(f"[INFO] line {i}" for i in range(200))
        receipt = Receipt.failure(
            adapter="shell",
            action_id="compile",
            error="Command exited with code 1",
            metadata={"return_code": 1, "stdout": stdout + "\n[ERROR] BUILD FAILURE", "stderr": ""},
        )
        err = ExternalCommandFailure("compile", receipt)
        message = str(err)
        assert "[INFO] line 199\n[ERROR] BUILD FAILURE" in message
        assert "[INFO] line 0\n" not in message
        assert err.stdout.startswith("[INFO] line 0")

    def test_external_command_failure_without_exit_status(self):
        receipt = Receipt.failure(adapter="archive", action_id="install-sdk",
                                  error="Download failed: timed out")
        err = ExternalCommandFailure("install-sdk", receipt, attribution="platform")
        assert err.return_code is None
        assert str(err) == "[platform] step 'install-sdk' failed\nDownload failed: timed out"

    def test_layer_failure(self):
        err = LayerProvisioningFailure("java-graalvm", "disk full")
        assert err.step == "provision-layer"
        assert str(err) == "Layer 'java-graalvm': disk full"

    def test_launch_already_registered(self):
        err = LaunchAlreadyRegistered(("./invoker", "--target", "fn"))
        assert err.step == "register-launch"
        assert "./invoker --target fn" in str(err)


# ── Build Context ───────────────────────────────────────────────────


class TestBuildContext:
    def test_snapshot_isolated_from_process_env(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_FUNCTION_TARGET", "before")
        ctx = BuildContext.from_environment(BuildpackConfig())
        monkeypatch.setenv("GOOGLE_FUNCTION_TARGET", "after")
        assert ctx.lookup_env("GOOGLE_FUNCTION_TARGET") == "before"

    def test_explicit_environ(self):
        ctx = BuildContext.from_environment(BuildpackConfig(), {"A": "1"})
        assert ctx.lookup_env("A") == "1"
        assert ctx.lookup_env("B") is None

    @pytest.mark.parametrize(
        "value,expected",
        [(None, False), ("", False), ("false", False), ("0", False),
         ("true", True), ("1", True), ("yes", True)],
    )
    def test_dev_mode(self, value, expected):
        environ = {} if value is None else {"GOOGLE_DEVMODE": value}
        assert BuildContext(config=BuildpackConfig(), environ=environ).dev_mode is expected

    def test_setenv_does_not_touch_snapshot(self):
        ctx = BuildContext(config=BuildpackConfig(), environ={})
        ctx.setenv("JAVA_HOME", "/layers/java-graalvm")
        assert ctx.exported_env == {"JAVA_HOME": "/layers/java-graalvm"}
        assert ctx.lookup_env("JAVA_HOME") is None

    def test_file_exists(self, app_dir: Path):
        ctx = BuildContext(config=BuildpackConfig(), environ={}, app_dir=app_dir)
        assert not ctx.file_exists("pom.xml")
        (app_dir / "pom.xml").write_text("<project/>")
        assert ctx.file_exists("pom.xml")

    def test_run_passes_exported_env(self, app_dir: Path, layers_dir: Path):
        mock = MockAdapter(adapter_name="shell")
        ctx = BuildContext(
            config=BuildpackConfig(),
            environ={},
            app_dir=app_dir,
            layers_dir=layers_dir,
            registry=AdapterRegistry([mock]),
        )
        ctx.setenv("JAVA_HOME", "/sdk")
        ctx.run(Action(id="compile", adapter="shell"))
        call = mock.call_log[0]
        assert call.env == {"JAVA_HOME": "/sdk"}
        assert call.app_dir == str(app_dir)
        assert call.layers_dir == str(layers_dir)

    def test_launch_is_write_once(self):
        ctx = BuildContext(config=BuildpackConfig(), environ={})
        proc = ctx.add_web_process(["./invoker", "--target", "fn"])
        assert ctx.launch_process is proc
        with pytest.raises(LaunchAlreadyRegistered):
            ctx.add_web_process(["./other"])
        assert ctx.launch_process.command == ("./invoker", "--target", "fn")
