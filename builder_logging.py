from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO

# Quote context passed via `extra=`; copied into the JSON line when present.
CONTEXT_FIELDS = ("quote_item_id", "bays", "est_total_usd", "status_code")

# httpx logs every request at INFO, which would duplicate the webhook outcome lines.
_QUIET_LOGGERS = ("httpx", "httpcore")


class JsonLogFormatter(logging.Formatter):
    """
    One JSON object per record: epoch-ms timestamp, level, logger, message, plus any quote
    context fields the caller attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": int(record.created * 1000),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def setup_logging(level: str = "INFO", *, stream: Optional[TextIO] = None) -> None:
    """
    Route all loggers to one JSON-lines handler.

    Safe to call on every Streamlit rerun: the root handlers are replaced, not appended.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level or "INFO").upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonLogFormatter())
    root.handlers = [handler]

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
