"""Centralised logging helpers for ipcbridge."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}


def get_logger(name: str = "ipcbridge") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def log_transform_event(
    *,
    file_id: str,
    context: str,
    role: str,
    channels: Iterable[str],
    added_imports: Iterable[str],
    logger: Optional[logging.Logger] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Emit a structured log entry for one transformed file."""

    channel_list = list(channels)
    payload: Dict[str, Any] = {
        "file": file_id,
        "context": context,
        "role": role,
        "function_count": len(channel_list),
        "channels": channel_list,
        "added_imports": list(added_imports),
    }
    if extras:
        payload.update(extras)
    target_logger = logger or get_logger("ipcbridge.transform")
    target_logger.info(
        "Transformed %s (%s context, %s role, %d functions)",
        file_id,
        context,
        role,
        len(channel_list),
        extra={"ipcbridge_event": "file_transformed", "ipcbridge_data": payload},
    )


__all__ = ["get_logger", "log_transform_event"]
