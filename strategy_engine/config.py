from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, Field

from .logging_utils import get_json_logger

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EngineConfig(BaseModel):
    """Engine behaviour switches.

    Loaded from the environment via `from_env()` or provided explicitly.
    """

    validate_outputs: bool = True
    check_annotations: bool = True
    invoke_timeout_sec: float | None = Field(default=None, gt=0)
    log_level: LogLevel = "INFO"

    @classmethod
    def from_env(cls) -> EngineConfig:
        logger = get_json_logger("config", static_fields={"op": "from_env"})

        validate_outputs = _env_bool("ENGINE_VALIDATE_OUTPUTS", True)
        logger.debug("loaded_validate_outputs", extra={"value": validate_outputs})

        check_annotations = _env_bool("ENGINE_CHECK_ANNOTATIONS", True)
        logger.debug("loaded_check_annotations", extra={"value": check_annotations})

        raw_timeout = os.getenv("ENGINE_INVOKE_TIMEOUT_SEC")
        try:
            timeout = float(raw_timeout) if raw_timeout else None
        except ValueError:
            timeout = None
        if timeout is not None and timeout <= 0:
            timeout = None
        logger.debug("loaded_invoke_timeout_sec", extra={"value": timeout})

        log_level = os.getenv("ENGINE_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in _LEVELS:
            log_level = "INFO"
        logger.debug("loaded_log_level", extra={"value": log_level})

        return cls(
            validate_outputs=validate_outputs,
            check_annotations=check_annotations,
            invoke_timeout_sec=timeout,
            log_level=log_level,
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    return default
