"""Unified error model for ipcbridge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ErrorLocation:
    """Where an error was detected; ``line`` and ``column`` are 1-based."""

    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def describe(self) -> str:
        if not self.path:
            return "unknown location"
        parts = [self.path]
        if self.line is not None:
            parts.append(str(self.line))
            if self.column is not None:
                parts.append(str(self.column))
        return ":".join(parts)


class IpcBridgeError(Exception):
    """Base class for build-time errors reported against an IPC module.

    Subclasses set ``code`` and, where a fix is obvious, ``hint``; both can be
    overridden per instance.
    """

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = ErrorLocation(path, line, column)
        self.code = code or self.code
        self.hint = hint or self.hint

    @property
    def path(self) -> Optional[str]:
        return self.location.path

    @property
    def line(self) -> Optional[int]:
        return self.location.line

    @property
    def column(self) -> Optional[int]:
        return self.location.column

    def format(self) -> str:
        """Render as ``path:line:col: [CODE] message``, with the hint on its own line."""

        head = f"[{self.code}] {self.message}" if self.code else self.message
        if self.location.path:
            head = f"{self.location.describe()}: {head}"
        if self.hint:
            return f"{head}\n  Hint: {self.hint}"
        return head


class SourceParseError(IpcBridgeError):
    """Raised when the parser reports syntax errors in an IPC source file."""

    code = "IPC_PARSE"
    hint = "Fix the syntax error; IPC files are never emitted partially transformed."


class UnsupportedSourceError(IpcBridgeError):
    """Raised when no grammar is available for a file extension."""

    code = "IPC_UNSUPPORTED"


class ChannelCollisionError(IpcBridgeError):
    """Raised when two exported functions in one file derive the same channel."""

    code = "IPC_COLLISION"
    hint = "Rename one of the functions or change one of the bodies."


class ConfigError(IpcBridgeError):
    """Raised when a configuration file or value is invalid."""

    code = "IPC_CONFIG"


class TemplateRenderError(IpcBridgeError):
    """Raised when a code-generation template fails to render."""

    code = "IPC_TEMPLATE"


class PluginRegistryError(IpcBridgeError):
    """Raised when plugin registration or lookup fails."""

    code = "IPC_PLUGIN"


__all__ = [
    "ErrorLocation",
    "IpcBridgeError",
    "SourceParseError",
    "UnsupportedSourceError",
    "ChannelCollisionError",
    "ConfigError",
    "TemplateRenderError",
    "PluginRegistryError",
]
