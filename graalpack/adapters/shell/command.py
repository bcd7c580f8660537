"""
Shell command adapter — run an external tool and capture its output.

This is the process executor behind every tool the build invokes
(gu, mvn). Commands are argv lists, never shell strings, so there is
no quoting or injection surface.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from pathlib import Path

from graalpack.adapters.base import Adapter, ExecutionContext
from graalpack.core.models.action import Receipt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3600


def _decode(partial: bytes | str | None) -> str:
    """Partial output of a timed-out process (bytes even in text mode)."""
    if partial is None:
        return ""
    if isinstance(partial, bytes):
        partial = partial.decode("utf-8", errors="replace")
    return partial.strip()


class ShellCommandAdapter(Adapter):
    """Execute a command and capture output.

    Action params:
        command (list[str]): argv of the command to execute.
        timeout (int): Timeout in seconds (default: 3600).
        cwd (str): Override working directory (default: context.working_dir).
    """

    @property
    def name(self) -> str:
        return "shell"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.action.params.get("command")
        if not command:
            return False, "Missing required param: 'command'"
        if not isinstance(command, list) or not all(isinstance(a, str) for a in command):
            return False, "Param 'command' must be a list of strings"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv: list[str] = context.action.params["command"]
        timeout = context.action.params.get("timeout", DEFAULT_TIMEOUT)
        cwd = context.working_dir
        display = shlex.join(argv)

        env = os.environ.copy()
        env.update(context.env)

        logger.info("Running: %s (cwd=%s)", display, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={
                    "command": display,
                    "timeout": timeout,
                    "stdout": _decode(e.stdout),
                    "stderr": _decode(e.stderr),
                },
            )
        except OSError as e:
            # Executable missing or not runnable; mirror the shell's 127
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Cannot execute {argv[0]}: {e}",
                metadata={"command": display, "return_code": 127, "stderr": str(e)},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = result.stdout.strip()
        stderr = result.stderr.strip()
        metadata = {
            "command": display,
            "return_code": result.returncode,
            "stdout": stdout,
            "stderr": stderr,
        }

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=stdout,
                duration_ms=elapsed_ms,
                metadata=metadata,
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata=metadata,
        )
