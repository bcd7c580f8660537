"""
Adapter base — the protocol contract between the builder and tools.

This defines the abstract interface that every adapter must implement.
The builder only talks to adapters through this protocol, never
directly to curl, tar, gu, mvn or the layers directory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pydantic import BaseModel, Field

from graalpack.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action.

    ``env`` holds variables exported by earlier build steps (for example
    JAVA_HOME). Adapters that spawn processes layer it over the
    inherited process environment.
    """

    action: Action
    app_dir: str = "."
    layers_dir: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    dry_run: bool = False

    @property
    def working_dir(self) -> str:
        """Resolved working directory for the action."""
        return self.action.params.get("cwd") or self.app_dir


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name, validate, execute
        3. Register it in the AdapterRegistry
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'archive', 'layers')."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
