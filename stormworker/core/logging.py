"""Lightweight logging setup for the protocol engine.

Users can override log level with STORMWORKER_LOG_LEVEL env var and mirror
records to a file with STORMWORKER_LOG_DIR. Handlers always write to stderr:
stdout belongs to the host protocol.

Also includes helpers to summarize tuple payloads for frame-level debug logs
without dumping full values.
"""
from __future__ import annotations
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FILE_NAME = "stormworker.log"


def _preview(obj: Any, limit: int = 120) -> str:
    try:
        s = repr(obj)
    except Exception:
        return f"<{type(obj).__name__}>"
    if len(s) > limit:
        s = s[: limit - 3] + "..."
    return s


def summarize_for_log(obj: Any, *, max_items: int = 8, max_level: int = 2) -> Any:
    """Return a compact, JSON-serializable summary suitable for logging.

    - Scalars: returned directly (strings truncated past 200 chars)
    - Dict: size, first keys and value types
    - List/Tuple: length plus a short preview of the leading items
    """
    if obj is None or isinstance(obj, (bool, int, float)):
        return obj
    if isinstance(obj, str):
        return obj if len(obj) <= 200 else obj[:197] + "..."
    if isinstance(obj, dict):
        keys = list(obj.keys())[:max_items]
        out: Dict[str, Any] = {"type": "dict", "len": len(obj), "keys": [str(k) for k in keys]}
        if max_level > 0:
            out["value_types"] = {str(k): type(obj[k]).__name__ for k in keys}
        return out
    if isinstance(obj, (list, tuple)):
        out = {"type": type(obj).__name__, "len": len(obj)}
        if max_level > 0:
            out["preview"] = [_preview(x) for x in list(obj)[:max_items]]
        return out
    return {"type": type(obj).__name__}


def _ensure_file_handler(logger: logging.Logger) -> None:
    log_dir = os.getenv("STORMWORKER_LOG_DIR")
    if not log_dir:
        return
    file_path = Path(os.path.abspath(Path(log_dir) / LOG_FILE_NAME))
    for h in logger.handlers:
        if isinstance(h, logging.FileHandler) and Path(h.baseFilename) == file_path:
            return
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(file_path, encoding="utf-8")
    except OSError as e:
        logger.warning(f"cannot open log file {file_path}: {e}")
        return
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(fh)


def get_logger(name: str = "stormworker") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(stream_handler)
        logger.setLevel(os.getenv("STORMWORKER_LOG_LEVEL", "WARNING").upper())
        logger.propagate = False
    _ensure_file_handler(logger)
    return logger


core_logger = get_logger("stormworker.core")

__all__ = ["get_logger", "core_logger", "summarize_for_log"]
