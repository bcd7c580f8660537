"""
Layer adapter — cache-aware layer directories on the local filesystem.

This is the layer manager. Layers live in ``<layers_dir>/<name>/`` with
their metadata in ``<layers_dir>/<name>.json``. The launch declaration
lives in ``<layers_dir>/launch.json``.

Operations (``operation`` param):
    provision   create or resolve a layer; decides cache reuse
    commit      mark a layer as fully populated for its requested inputs
    env         export a variable through ``<layer>/env/<NAME>.override``
    launch      persist the launch declaration

Cache policy: a cached layer is reused only if it was committed with
the same inputs now requested. Anything else is wiped and provisioned
fresh, so a half-populated layer from an aborted build is never reused.
Metadata writes are atomic (temp file, then rename).
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any

from graalpack.adapters.base import Adapter, ExecutionContext
from graalpack.core.models.action import Receipt
from graalpack.core.models.layer import LaunchDeclaration, Layer

logger = logging.getLogger(__name__)

LAUNCH_FILE = "launch.json"

_OPERATIONS = {"provision", "commit", "env", "launch"}


def layer_path(layers_dir: Path, name: str) -> Path:
    return layers_dir / name


def metadata_path(layers_dir: Path, name: str) -> Path:
    return layers_dir / f"{name}.json"


def read_metadata(path: Path) -> dict[str, Any]:
    """Load layer metadata, or an empty dict if absent or unreadable."""
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Unreadable layer metadata %s: %s — treating as absent", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON atomically: temp file in the same directory, then rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, sort_keys=True) + "\n"
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


class LayerAdapter(Adapter):
    """Provision and annotate layers under the build's layers directory.

    Action params:
        operation (str): One of 'provision', 'commit', 'env', 'launch'.
        name (str): Layer name (all operations except 'launch').
        cache, build, launch (bool): Layer flags ('provision').
        metadata (dict): Inputs that key cache reuse ('provision').
        variable, value (str): Exported variable ('env').
        processes (list[dict]): Launch processes ('launch').
    """

    @property
    def name(self) -> str:
        return "layers"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in _OPERATIONS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_OPERATIONS))}"
        if not context.layers_dir:
            return False, "No layers directory in execution context"
        if operation != "launch" and not params.get("name"):
            return False, "Missing required param: 'name'"
        if operation == "env" and not params.get("variable"):
            return False, "Missing required param: 'variable'"
        if operation == "launch" and not params.get("processes"):
            return False, "Missing required param: 'processes'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        layers_dir = Path(context.layers_dir or ".")

        try:
            if operation == "provision":
                return self._provision(context, layers_dir)
            elif operation == "commit":
                return self._commit(context, layers_dir)
            elif operation == "env":
                return self._env(context, layers_dir)
            else:
                return self._launch(context, layers_dir)
        except (OSError, ValueError) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Layer error: {e}",
                metadata={"operation": operation, "layers_dir": str(layers_dir)},
            )

    def _provision(self, ctx: ExecutionContext, layers_dir: Path) -> Receipt:
        params = ctx.action.params
        name = params["name"]
        cache = bool(params.get("cache", False))
        requested = dict(params.get("metadata") or {})
        target = layer_path(layers_dir, name)
        meta_file = metadata_path(layers_dir, name)

        stored = read_metadata(meta_file)
        cache_hit = (
            cache
            and stored.get("complete") is True
            and stored.get("metadata") == requested
            and target.is_dir()
            and any(target.iterdir())
        )

        if cache_hit:
            logger.info("Reusing cached layer %s (%s)", name, requested)
        else:
            if target.exists():
                logger.info("Discarding stale layer %s", name)
                shutil.rmtree(target)
            target.mkdir(parents=True)

        layer = Layer(
            name=name,
            path=str(target),
            cache=cache,
            build=bool(params.get("build", False)),
            launch=bool(params.get("launch", False)),
            metadata=requested,
            cache_hit=cache_hit,
        )
        write_json(
            meta_file,
            {
                "types": {"cache": layer.cache, "build": layer.build, "launch": layer.launch},
                "metadata": requested if cache_hit else {},
                "pending_metadata": requested,
                "complete": cache_hit,
            },
        )

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Layer {name} at {target}" + (" (cached)" if cache_hit else ""),
            metadata={"layer": layer.model_dump(mode="json")},
        )

    def _commit(self, ctx: ExecutionContext, layers_dir: Path) -> Receipt:
        name = ctx.action.params["name"]
        meta_file = metadata_path(layers_dir, name)
        stored = read_metadata(meta_file)
        if not stored:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Layer {name} was never provisioned",
            )

        stored["metadata"] = stored.pop("pending_metadata", stored.get("metadata", {}))
        stored["complete"] = True
        write_json(meta_file, stored)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Layer {name} committed",
            metadata={"metadata": stored["metadata"]},
        )

    def _env(self, ctx: ExecutionContext, layers_dir: Path) -> Receipt:
        params = ctx.action.params
        name = params["name"]
        variable = params["variable"]
        value = str(params.get("value", ""))

        env_dir = layer_path(layers_dir, name) / "env"
        env_dir.mkdir(parents=True, exist_ok=True)
        env_file = env_dir / f"{variable}.override"
        env_file.write_text(value, encoding="utf-8")

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"{variable}={value}",
            metadata={"path": str(env_file), "variable": variable, "value": value},
        )

    def _launch(self, ctx: ExecutionContext, layers_dir: Path) -> Receipt:
        declaration = LaunchDeclaration.model_validate(
            {"processes": ctx.action.params["processes"]}
        )
        target = layers_dir / LAUNCH_FILE
        write_json(target, declaration.model_dump(mode="json"))

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Launch declaration written to {target}",
            metadata={"path": str(target), "processes": len(declaration.processes)},
        )
