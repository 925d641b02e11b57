from __future__ import annotations

import datetime as dt
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from simengine.config import TelemetryConfig

ROOT_LOGGER = "simengine"
_HANDLER_NAME = "simengine-json"


class StructuredLogger(logging.LoggerAdapter):
    """
    Adapter that writes one compact JSON object per record.

    Fields bound with `bind()` (e.g. a simulation id) are merged into every
    event; explicit fields passed to `log_event()` win over bound ones.
    """

    def log_event(self, level: int, event: str, **fields: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        stamp = dt.datetime.now(dt.timezone.utc).isoformat()
        payload: Dict[str, Any] = {"event": event, "ts": stamp}
        payload.update(self.extra or {})
        payload.update(fields)
        message = json.dumps(payload, default=str, separators=(",", ":"))
        self.logger.log(level, message)

    def bind(self, **fields: Any) -> "StructuredLogger":
        merged = dict(self.extra or {})
        merged.update(fields)
        return StructuredLogger(self.logger, merged)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Set the package log level and attach a single message-only stderr handler."""

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    return root


def configure_from_telemetry(cfg: "TelemetryConfig") -> logging.Logger:
    return configure_logging(cfg.log_level)


def get_logger(name: str, level: Optional[str] = None) -> StructuredLogger:
    if level:
        configure_logging(level)
    base = logging.getLogger(name)
    return StructuredLogger(base, {})


def parse_event(message: str) -> Dict[str, Any]:
    """Decode a message emitted by `StructuredLogger.log_event` (empty dict if it is not one)."""

    try:
        payload = json.loads(message)
    except (TypeError, ValueError):
        return {}
    return payload if isinstance(payload, dict) else {}


__all__ = [
    "ROOT_LOGGER",
    "StructuredLogger",
    "configure_from_telemetry",
    "configure_logging",
    "get_logger",
    "parse_event",
]
