"""
Detect result — the participation decision.

Produced once per build by the detector and consumed by whoever
sequences buildpacks to decide whether the build step runs.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class DetectResult(BaseModel):
    """Opt-in or opt-out, with the reason that triggered it."""

    model_config = ConfigDict(frozen=True)

    status: Literal["opt_in", "opt_out"]
    reason: str

    @property
    def opted_in(self) -> bool:
        return self.status == "opt_in"

    @classmethod
    def opt_in_env_set(cls, name: str) -> DetectResult:
        return cls(status="opt_in", reason=f"{name} set")

    @classmethod
    def opt_out_env_not_set(cls, name: str) -> DetectResult:
        return cls(status="opt_out", reason=f"{name} not set")

    def to_dict(self) -> dict:
        return {"status": self.status, "reason": self.reason}
