"""
Layer and launch models — what the build leaves behind.

A Layer is a cache-aware directory owned by the layer manager. A
LaunchProcess is the single command the serving runtime starts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LayerFlags(BaseModel):
    """How a layer should be treated across builds and at launch."""

    model_config = ConfigDict(frozen=True)

    cache: bool = False               # reuse across builds when inputs match
    build: bool = False               # visible to later build steps
    launch_if_dev_mode: bool = False  # visible at launch, dev mode only

    def resolve_launch(self, dev_mode: bool) -> bool:
        """Whether the layer ships with the launch image for this build."""
        return self.launch_if_dev_mode and dev_mode


class Layer(BaseModel):
    """A provisioned (fresh or cache-restored) layer directory."""

    name: str
    path: str
    cache: bool = False
    build: bool = False
    launch: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    cache_hit: bool = False


class LaunchProcess(BaseModel):
    """The declared entry point for serving requests."""

    model_config = ConfigDict(frozen=True)

    type: str = "web"
    command: tuple[str, ...]
    default: bool = True


class LaunchDeclaration(BaseModel):
    """Persisted launch metadata, as written next to the layers."""

    processes: list[LaunchProcess] = Field(default_factory=list)
