"""
Detect use case — load config, snapshot the environment, decide.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from graalpack.core.config.loader import ConfigError, load_config
from graalpack.core.models.detect import DetectResult
from graalpack.core.services.detection import decide

logger = logging.getLogger(__name__)

# Exit codes understood by buildpack orchestrators
EXIT_PASS = 0
EXIT_FAIL = 100
EXIT_ERROR = 1


@dataclass
class DetectOutcome:
    """Result of the detect use case."""

    result: DetectResult | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error:
            return EXIT_ERROR
        assert self.result is not None
        return EXIT_PASS if self.result.opted_in else EXIT_FAIL

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        assert self.result is not None
        return self.result.to_dict()


def run_detect(
    config_path: Path | None = None,
    app_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> DetectOutcome:
    """Decide whether the native-image buildpack participates.

    Args:
        config_path: Optional explicit path to graalpack.yml.
        app_dir: Application directory (default: cwd).
        environ: Environment snapshot (default: the process environment).
    """
    try:
        config = load_config(config_path, app_dir=app_dir)
    except ConfigError as e:
        return DetectOutcome(error=str(e))

    snapshot = dict(os.environ if environ is None else environ)
    result = decide(config, snapshot)
    logger.info("Detect: %s (%s)", result.status, result.reason)
    return DetectOutcome(result=result)
