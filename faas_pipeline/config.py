"""Settings for running pipelines, read from the environment.

A ``.env`` file is loaded from ``~/.faas-pipeline/.env`` or the current
directory (first one found). Variables already set in the environment win.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_GATEWAY_URL = "http://127.0.0.1:8080/function"

ENV_GATEWAY_URL = "FAAS_GATEWAY_URL"
ENV_TIMEOUT = "FAAS_PIPELINE_TIMEOUT"
ENV_LOG_LEVEL = "FAAS_PIPELINE_LOG_LEVEL"


def load_env_files() -> Optional[Path]:
    """Load the first ``.env`` file found; return its path."""
    env_paths = [
        Path.home() / ".faas-pipeline" / ".env",
        Path.cwd() / ".env",
    ]
    for env_path in env_paths:
        if env_path.exists():
            load_dotenv(env_path, override=False)
            return env_path
    return None


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{ENV_TIMEOUT} must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{ENV_TIMEOUT} must be positive, got {raw!r}")
    return value


def _parse_log_level(raw: Optional[str]) -> str:
    level = (raw or "").strip().upper() or "INFO"
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{ENV_LOG_LEVEL} must be a logging level name, got {raw!r}")
    return level


@dataclass
class PipelineSettings:
    """Runtime settings.

    Attributes:
        gateway_url: Base address functions are reached under.
        timeout: Per-request timeout in seconds (``None``: wait forever).
        log_level: Name of a ``logging`` level.
    """

    gateway_url: str = DEFAULT_GATEWAY_URL
    timeout: Optional[float] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, *, load_files: bool = True
    ) -> "PipelineSettings":
        if environ is None:
            if load_files:
                load_env_files()
            environ = os.environ

        return cls(
            gateway_url=environ.get(ENV_GATEWAY_URL) or DEFAULT_GATEWAY_URL,
            timeout=_parse_timeout(environ.get(ENV_TIMEOUT)),
            log_level=_parse_log_level(environ.get(ENV_LOG_LEVEL)),
        )
