from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_LOG_STD_KEYS = {
    'name','msg','args','levelname','levelno','pathname','filename','module','exc_info','exc_text',
    'stack_info','lineno','funcName','created','msecs','relativeCreated','thread','threadName',
    'processName','process','asctime','taskName'
}

_TRUTHY = {"1", "true", "yes"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k in _LOG_STD_KEYS or k.startswith('_'):
                continue
            if isinstance(v, (str, int, float, bool)) or v is None:
                payload[k] = v
            elif isinstance(v, (list, tuple, dict)):
                try:
                    json.dumps(v)
                except (TypeError, ValueError):
                    payload[k] = repr(v)
                else:
                    payload[k] = v
            else:
                payload[k] = repr(v)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges per-call `extra` over the static fields.

    Each adapter carries its own threshold, so components sharing one named
    logger can run at different levels.
    """

    def __init__(
        self,
        logger: logging.Logger,
        extra: dict[str, Any] | None = None,
        level: int | str = logging.NOTSET,
    ) -> None:
        super().__init__(logger, extra or {})
        self.level = level if isinstance(level, int) else logging.getLevelName(str(level).upper())

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs

    def isEnabledFor(self, level: int) -> bool:
        return level >= self.level and self.logger.isEnabledFor(level)

    def bind(self, **fields: Any) -> ContextAdapter:
        """Return an adapter with extra static fields and the same threshold."""
        return ContextAdapter(self.logger, {**(self.extra or {}), **fields}, level=self.level)


def get_json_logger(
    name: str,
    *,
    log_path: Path | None = None,
    level: int | str = logging.INFO,
    static_fields: dict[str, Any] | None = None,
) -> ContextAdapter:
    """Create or fetch a JSON logger with optional file output and static fields.

    Env overrides (used only when `log_path` is None):
      - ENGINE_LOG_JSON_TO_FILE: when truthy ("1", "true", "yes"), log to a file.
      - ENGINE_LOG_FILE: path to JSONL log file (default: "logs/strategy_engine.jsonl").

    Returns a ContextAdapter that injects `static_fields` into each record
    and drops records below `level`.
    """
    logger = logging.getLogger(f"strategy_engine.{name}")
    # the named logger passes everything; each adapter applies its own level
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        effective_log_path = log_path
        if effective_log_path is None:
            if os.getenv("ENGINE_LOG_JSON_TO_FILE", "").strip().lower() in _TRUTHY:
                effective_log_path = Path(os.getenv("ENGINE_LOG_FILE", "logs/strategy_engine.jsonl"))

        if effective_log_path is not None:
            effective_log_path.parent.mkdir(parents=True, exist_ok=True)
            handler: logging.Handler = logging.FileHandler(effective_log_path, encoding='utf-8')
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.propagate = False

    fields = dict(static_fields or {})
    _cid = os.getenv("CORRELATION_ID", "").strip()
    if _cid and "correlation_id" not in fields:
        fields["correlation_id"] = _cid
    return ContextAdapter(logger, fields, level=level)


def get_context_logger(
    name: str,
    context: dict[str, Any] | None = None,
    *,
    log_path: Path | None = None,
    level: int | str = logging.INFO,
) -> ContextAdapter:
    """Convenience wrapper to obtain a JSON logger with contextual fields.

    Example:
        logger = get_context_logger("facade", {"correlation_id": cid, "key": "standard"})
    """
    return get_json_logger(name, log_path=log_path, level=level, static_fields=context)
