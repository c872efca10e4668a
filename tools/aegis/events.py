"""Append-only JSONL log of security-relevant auth events.

Events are written next to the database by default
(``.aegis/auth-events.jsonl``); ``AEGIS_EVENT_LOG`` overrides the path.
Callers must never pass passwords, codes or tokens as details.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_EVENT_LOG = ".aegis/auth-events.jsonl"


def event_log_path() -> Path:
    return Path(os.environ.get("AEGIS_EVENT_LOG", DEFAULT_EVENT_LOG))


def log_event(event_type: str, **details: Any) -> None:
    """Append one auth event. A failed write is logged and dropped."""
    line = json.dumps(
        {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            **details,
        },
        ensure_ascii=True,
    )
    path = event_log_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        logger.debug(f"Event {event_type} not recorded: {e}")
