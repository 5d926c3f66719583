from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict

from salesbot.core.config import settings

BACKEND_ROOT = Path(__file__).resolve().parents[2]


def debug_log_path() -> Path:
    return BACKEND_ROOT / settings.LOG_DIR / settings.DEBUG_LOG_FILE


def debug_log(payload: Dict[str, Any]) -> None:
    """Append a single NDJSON line to the stage trace when enabled. Never raises."""
    if not settings.DEBUG_TRACE_ENABLED:
        return
    try:
        path = debug_log_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        record = {"ts": round(time.time(), 3), **payload}
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
    except Exception:
        # Never let debug logging break the request
        pass
