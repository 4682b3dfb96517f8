from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict


def config_path() -> str:
    return os.getenv("TICKET_DESK_CONFIG", "ticket_desk.json")


@lru_cache(maxsize=1)
def load_config(path: str = "") -> Dict[str, Any]:
    p = Path(path or config_path())
    if not p.exists():
        return {}
    try:
        obj = json.loads(p.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return obj if isinstance(obj, dict) else {}


def _get(cfg: Dict[str, Any], *path: str, default: Any = None) -> Any:
    cur: Any = cfg
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def directory_base_url() -> str:
    cfg = load_config()
    v = _get(cfg, "directory", "base_url", default=None)
    if v is None:
        v = os.getenv("TICKET_DESK_API_URL", "http://localhost:3000")
    return str(v or "http://localhost:3000")


def directory_timeout_s() -> float:
    cfg = load_config()
    try:
        return float(_get(cfg, "directory", "timeout_s", default=10))
    except Exception:
        return 10.0


def channel_url() -> str:
    cfg = load_config()
    v = _get(cfg, "channel", "url", default=None)
    if v is None:
        v = os.getenv("TICKET_DESK_WS_URL", "ws://localhost:3000/ws")
    return str(v or "ws://localhost:3000/ws")


def transcripts_dir() -> str:
    cfg = load_config()
    return str(_get(cfg, "transcripts", "dir", default="./data/transcripts"))


def persist_inbound() -> bool:
    """
    Whether customer messages are written to the transcript cache too.
    Off by default: only agent sends are persisted.
    """
    cfg = load_config()
    return bool(_get(cfg, "transcripts", "persist_inbound", default=False))


def console_history_file() -> str:
    cfg = load_config()
    v = _get(cfg, "console", "history_file", default=None)
    if v is None:
        return str(Path.home() / ".ticket_desk_history")
    return str(v)
