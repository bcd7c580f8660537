"""
Domain models — Pydantic types for the buildpack.

All models are re-exported here for convenient access:

    from graalpack.core.models import Action, Receipt, Layer, DetectResult
"""

from graalpack.core.models.action import Action, Receipt
from graalpack.core.models.config import (
    BuildpackConfig,
    BuildToolConfig,
    ComponentInstall,
    DistributionManifest,
    EnvNames,
)
from graalpack.core.models.detect import DetectResult
from graalpack.core.models.layer import (
    LaunchDeclaration,
    LaunchProcess,
    Layer,
    LayerFlags,
)

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # config.py
    "BuildToolConfig",
    "BuildpackConfig",
    "ComponentInstall",
    "DistributionManifest",
    "EnvNames",
    # detect.py
    "DetectResult",
    # layer.py
    "LaunchDeclaration",
    "LaunchProcess",
    "Layer",
    "LayerFlags",
]
