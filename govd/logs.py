"""Application logging and debug dumps of fetched payloads."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional, Union

import requests

logger = logging.getLogger("govd")
logger.setLevel(logging.INFO)

_TIME_FORMAT = "%H:%M:%S"
_LINE_FORMAT = "%(asctime)s\t%(levelname)s\t%(message)s"

_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[35m",
    logging.INFO: "\x1b[34m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[31m",
}
_RESET = "\x1b[0m"

_log_dir = Path("logs")


class _ColorFormatter(logging.Formatter):
    """Formatter that colours the level name for terminal output."""

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno, "")
        original = record.levelname
        record.levelname = f"{color}{original}{_RESET}" if color else original
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup(log_dir: Union[str, os.PathLike] = "logs") -> logging.Logger:
    """Create the log directory and attach console and file handlers."""
    global _log_dir
    _log_dir = Path(log_dir)
    _log_dir.mkdir(parents=True, exist_ok=True)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_ColorFormatter(_LINE_FORMAT, datefmt=_TIME_FORMAT))
    logger.addHandler(console)

    file_handler = logging.FileHandler(_log_dir / "app.log", mode="a", encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(_LINE_FORMAT, datefmt=_TIME_FORMAT))
    logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def set_level(level: Union[int, str]) -> None:
    """Change the level of every handler at once."""
    logger.setLevel(level)


def write_file(name: str, content: Any) -> Optional[Path]:
    """Dump content to the log directory when debugging; return the path written."""
    if logger.getEffectiveLevel() != logging.DEBUG:
        return None
    base_name = os.path.splitext(name)[0]
    try:
        raw = _raw_data(content)
    except TypeError as exc:
        logger.error("failed to extract data: %s", exc)
        return None
    if not raw:
        logger.warning("no data to write for file: %s", name)
        return None
    path = determine_file_path(base_name, raw)
    if path.suffix == ".json":
        raw = format_json(raw)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(raw)
    except OSError as exc:
        logger.error("failed to write file %s: %s", path, exc)
        return None
    logger.debug("saved file %s", path)
    return path


def _raw_data(content: Any) -> bytes:
    if isinstance(content, requests.Response):
        return content.content or b""
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if isinstance(content, str):
        return content.encode("utf-8")
    try:
        return json.dumps(content, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise TypeError(f"unsupported content type: {type(content).__name__}") from exc


def is_json_data(data: bytes) -> bool:
    """Whether data is a JSON object or array."""
    if data[:1] not in (b"{", b"["):
        return False
    try:
        json.loads(data)
    except ValueError:
        return False
    return True


def format_json(data: bytes) -> bytes:
    """Pretty-print JSON with two-space indent; return data unchanged if invalid."""
    try:
        obj = json.loads(data)
    except ValueError:
        return data
    return json.dumps(obj, indent=2, ensure_ascii=False).encode("utf-8")


def determine_file_path(base_name: str, data: bytes) -> Path:
    """Path in the log directory, with .json for JSON data and .txt otherwise."""
    suffix = ".json" if is_json_data(data) else ".txt"
    return _log_dir / (base_name + suffix)