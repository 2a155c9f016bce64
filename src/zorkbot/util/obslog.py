from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# `extra=` keys zorkbot attaches to its records.
_EXTRA_KEYS = ("op", "channel_id", "author_id", "path")


class JsonlFormatter(logging.Formatter):
    """One JSON object per line; picks up `_EXTRA_KEYS` from `extra={...}`."""

    def __init__(self, *, component: str = "zorkbot"):
        super().__init__()
        self._component = component

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "component": self._component,
            "msg": record.getMessage(),
        }
        for k in _EXTRA_KEYS:
            v = getattr(record, k, None)
            if v is not None and str(v).strip():
                payload[k] = str(v)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _parse_level(level: str, default: int = logging.INFO) -> int:
    value = getattr(logging, str(level or "").strip().upper(), None)
    return value if isinstance(value, int) else default


def setup_root_json_logging(
    *,
    component: str,
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """Install the JSONL handler on the root logger.

    Repeated calls only adjust the level unless `force=True`, which replaces
    every existing root handler.
    """
    root = logging.getLogger()
    lvl = _parse_level(level)
    root.setLevel(lvl)

    if force:
        for h in list(root.handlers):
            root.removeHandler(h)

    for h in root.handlers:
        if isinstance(h.formatter, JsonlFormatter):
            h.setLevel(lvl)
            return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(lvl)
    handler.setFormatter(JsonlFormatter(component=component))
    root.addHandler(handler)
