"""
Detection service — should this buildpack take part in the build?

Pure logic: one lookup in an environment snapshot, no side effects.
"""

from __future__ import annotations

from collections.abc import Mapping

from graalpack.core.models.config import BuildpackConfig
from graalpack.core.models.detect import DetectResult


def decide(config: BuildpackConfig, environment: Mapping[str, str]) -> DetectResult:
    """Opt in when the trigger variable is present, whatever its value."""
    trigger = config.env.trigger
    if trigger in environment:
        return DetectResult.opt_in_env_set(trigger)
    return DetectResult.opt_out_env_not_set(trigger)
