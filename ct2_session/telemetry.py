"""Structured event log for sessions.

Events go to the ``ct2_session.events`` logger as one compact JSON object per
record. Nothing is written anywhere unless the host application configures
that logger itself, calls `enable_file_log`, or sets ``CT2_SESSION_LOGGING=1``
(which writes to `log_path()` on first use).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
import threading
from typing import Final

EVENT_LOGGER_NAME: Final[str] = "ct2_session.events"
_LOG_DIR_ENV: Final[str] = "CT2_SESSION_LOG_DIR"
_LOG_ENABLED_ENV: Final[str] = "CT2_SESSION_LOGGING"
_LOG_FILE_NAME: Final[str] = "ct2_session.log"

_logger = logging.getLogger(EVENT_LOGGER_NAME)
_logger.addHandler(logging.NullHandler())
_file_handler: logging.FileHandler | None = None
_lock = threading.Lock()


def log_path() -> Path:
    override = os.environ.get(_LOG_DIR_ENV, "").strip()
    if override:
        return Path(override) / _LOG_FILE_NAME
    return Path.home() / ".ct2_session" / "logs" / _LOG_FILE_NAME


def enable_file_log(path: Path | None = None) -> Path:
    global _file_handler
    target = path or log_path()
    with _lock:
        if _file_handler is not None:
            return Path(_file_handler.baseFilename)
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, mode="a", encoding="utf-8", delay=True)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(logging.INFO)
        _logger.addHandler(handler)
        _logger.setLevel(logging.INFO)
        _file_handler = handler
    return target


def disable_file_log() -> None:
    global _file_handler
    with _lock:
        handler = _file_handler
        if handler is None:
            return
        _file_handler = None
        _logger.removeHandler(handler)
        _logger.setLevel(logging.NOTSET)
        handler.close()


def log_event(event: str, **fields: object) -> None:
    _enable_from_env()
    if not _logger.isEnabledFor(logging.INFO):
        return
    _logger.info(_encode(_payload(event, None, fields)))


def log_error(event: str, exc: BaseException | None = None, **fields: object) -> None:
    _enable_from_env()
    if not _logger.isEnabledFor(logging.ERROR):
        return
    _logger.error(_encode(_payload(event, exc, fields)))


def batch_meta(sentences: Sequence[Sequence[str]]) -> dict[str, object]:
    # Token text stays out of the log.
    return {
        "sentences": len(sentences),
        "tokens": sum(len(sentence) for sentence in sentences),
    }


def _enable_from_env() -> None:
    if _file_handler is not None:
        return
    if os.environ.get(_LOG_ENABLED_ENV, "0").strip() != "1":
        return
    try:
        enable_file_log()
    except OSError:
        logging.getLogger(__name__).warning(
            "Cannot open event log at %s", log_path(), exc_info=True
        )


def _payload(
    event: str, exc: BaseException | None, fields: dict[str, object]
) -> dict[str, object]:
    payload: dict[str, object] = {
        "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        "event": event,
        "pid": os.getpid(),
        "thread": threading.get_ident(),
    }
    if exc is not None:
        payload["error_type"] = exc.__class__.__name__
        payload["error"] = str(exc)
    for key, value in fields.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            payload[key] = value
        else:
            payload[key] = str(value)
    return payload


def _encode(payload: dict[str, object]) -> str:
    return json.dumps(payload, ensure_ascii=True, separators=(",", ":"))
