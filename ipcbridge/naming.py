"""File role inference and channel naming.

Channels are the wire identity shared by the two halves of an IPC call, so
they must be derived from nothing but the file name, the export name and the
exact text of the function. Both sides are compiled independently and agree
on the channel without talking to each other.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Iterable, Optional, Union

HASH_LENGTH = 12
DEFAULT_SEGMENT = "default"
REPLY_SUFFIX = "-reply"


class Side(str, Enum):
    """One of the two cooperating process contexts."""

    MAIN = "main"
    RENDERER = "renderer"

    @classmethod
    def parse(cls, value: Union[str, "Side"]) -> "Side":
        if isinstance(value, Side):
            return value
        key = (value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown process context {value!r}; expected 'main' or 'renderer'")


@dataclass(frozen=True)
class TransformContext:
    """The (processing context, file role) pair fixed for one file transform."""

    processing: Side
    role: Side

    def describe(self) -> str:
        return f"{self.processing.value} context / {self.role.value} role"


def _role_pattern(extensions: Iterable[str]) -> "re.Pattern[str]":
    alternatives = "|".join(re.escape(ext) for ext in extensions)
    return re.compile(rf"\.(main|renderer)\.ipc\.(?:{alternatives})$")


def infer_file_role(file_id: str, extensions: Iterable[str] = ("ts", "js")) -> Optional[Side]:
    """Return the role encoded in ``file_id`` or ``None`` for ordinary files."""

    # Bundlers append query strings to module ids (``foo.ts?v=1``).
    path_part = file_id.split("?", 1)[0]
    match = _role_pattern(extensions).search(path_part)
    if match is None:
        return None
    return Side(match.group(1))


def file_base_name(file_id: str) -> str:
    return PurePath(file_id.split("?", 1)[0].replace("\\", "/")).name


def create_hash_for_text(text: Union[str, bytes]) -> str:
    """Return a stable 12 hex digit digest of ``text``."""

    data = text.encode("utf-8") if isinstance(text, str) else text
    return hashlib.sha256(data).hexdigest()[:HASH_LENGTH]


def channel_name(base_name: str, name_segment: str, body_text: Union[str, bytes]) -> str:
    return f"{base_name}:{name_segment}:{create_hash_for_text(body_text)}"


def reply_channel(channel: str) -> str:
    return f"{channel}{REPLY_SUFFIX}"


__all__ = [
    "Side",
    "TransformContext",
    "HASH_LENGTH",
    "DEFAULT_SEGMENT",
    "infer_file_role",
    "file_base_name",
    "create_hash_for_text",
    "channel_name",
    "reply_channel",
]
