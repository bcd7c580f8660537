"""
Build errors — the terminal failures a build can surface.

Every error aborts the remaining steps and reaches the orchestrator
unchanged. Nothing here is retried. For external tools the wrapped
tool's own exit status and output are kept verbatim, so the operator
reads the tool's message rather than a translation of it.
"""

from __future__ import annotations

from graalpack.core.models.action import Attribution, Receipt

# Build tools such as Maven report their errors on stdout
STDOUT_TAIL_LINES = 40


def _tail(text: str, lines: int = STDOUT_TAIL_LINES) -> str:
    return "\n".join(text.splitlines()[-lines:])


class BuildError(Exception):
    """Base class for all build failures."""

    step: str = ""

    def __init__(self, message: str, *, step: str = "") -> None:
        super().__init__(message)
        self.step = step or self.step


class MissingConfiguration(BuildError):
    """A required environment variable is absent. No action was taken."""

    def __init__(self, variable: str) -> None:
        super().__init__(
            f"No function target set: environment variable {variable} is required",
            step="resolve-target",
        )
        self.variable = variable


class ExternalCommandFailure(BuildError):
    """An external tool exited non-zero or a transfer failed."""

    def __init__(
        self,
        step: str,
        receipt: Receipt,
        attribution: Attribution = "user",
    ) -> None:
        self.receipt = receipt
        self.attribution = attribution
        self.return_code = receipt.return_code
        self.stdout = receipt.metadata.get("stdout", "")
        self.stderr = receipt.metadata.get("stderr", "") or (receipt.error or "")
        super().__init__(self._format(step), step=step)

    def _format(self, step: str) -> str:
        who = "user" if self.attribution == "user" else "platform"
        head = f"[{who}] step '{step}' failed"
        if self.return_code is not None:
            head += f" (exit status {self.return_code})"
        command = self.receipt.metadata.get("command")
        if command:
            head += f"\n  command: {command}"
        if self.stdout:
            head += "\n" + _tail(self.stdout)
        if self.stderr:
            head += f"\n{self.stderr}"
        return head


class LayerProvisioningFailure(BuildError):
    """The layer manager could not create, resolve or annotate a layer."""

    def __init__(self, layer_name: str, reason: str, *, step: str = "provision-layer") -> None:
        super().__init__(f"Layer '{layer_name}': {reason}", step=step)
        self.layer_name = layer_name
        self.reason = reason


class LaunchAlreadyRegistered(BuildError):
    """A second launch command was declared in the same build."""

    def __init__(self, existing: tuple[str, ...]) -> None:
        super().__init__(
            f"Launch command already registered: {' '.join(existing)}",
            step="register-launch",
        )
        self.existing = existing
