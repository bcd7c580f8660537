"""
Mock adapter — universal test double for adapter operations.

Used in tests to observe which actions the builder dispatches
without touching the network, the layers directory or any external
tool.
"""

from __future__ import annotations

from typing import Any

from graalpack.adapters.base import Adapter, ExecutionContext
from graalpack.core.models.action import Receipt


class MockAdapter(Adapter):
    """Universal mock adapter.

    By default, returns success for everything. Can be configured
    with custom responses per action ID, and with default metadata
    merged into every success receipt.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        default_output: str = "[mock] executed",
        default_metadata: dict[str, Any] | None = None,
    ):
        self._name = adapter_name
        self._default_output = default_output
        self._default_metadata = default_metadata or {}
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    def calls_for(self, action_id: str) -> list[ExecutionContext]:
        """Execution contexts received for one action ID."""
        return [c for c in self._call_log if c.action.id == action_id]

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        return_code: int | None = 1,
    ) -> None:
        """Configure a specific action to fail."""
        metadata: dict[str, Any] = {"stderr": error}
        if return_code is not None:
            metadata["return_code"] = return_code
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            metadata=metadata,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.action.id in self._responses:
            return self._responses[context.action.id]

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True, **self._default_metadata},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
