"""
ipcbridge: build-time glue generation for two-process (main/renderer) apps.

Plain exported functions in ``*.main.ipc.*`` and ``*.renderer.ipc.*``
modules are the single source of truth. When a module is compiled for one
of the two process contexts, each exported function is either kept and
registered as a handler on a derived channel, or replaced by a proxy that
calls the other side over that same channel.

The code is organised into several modules:

* ``parser`` - tree-sitter parsing of JavaScript and TypeScript modules.
* ``extractor`` - collection of exported function-like declarations.
* ``naming`` - file roles and content-hashed channel names.
* ``codegen`` - the transform matrix and its Jinja2 templates.
* ``imports`` - merging the required host API names into imports.
* ``assembler`` - applying edits and mapping offsets back to the original.
* ``transform`` - the per-file pipeline tying everything together.
* ``plugin`` and ``cli`` - entry points for build pipelines and humans.
"""

import re
from pathlib import Path
from importlib import metadata as _metadata


def _local_version() -> str | None:
    root = Path(__file__).resolve().parents[1]
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        return None
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:  # pragma: no cover - IO errors should not break imports
        return None
    match = re.search(r"^version\s*=\s*\"([^\"]+)\"", text, flags=re.MULTILINE)
    if match:
        return match.group(1)
    return None


try:  # pragma: no cover - metadata fallback for editable installs
    __version__ = _metadata.version("ipcbridge")
except _metadata.PackageNotFoundError:  # pragma: no cover - source tree
    __version__ = _local_version() or "0.1.0"

from .config import BridgeConfig, load_config  # noqa: E402
from .errors import IpcBridgeError  # noqa: E402
from .naming import Side, TransformContext, channel_name  # noqa: E402
from .transform import TransformResult, transform_file, transform_include, transform_source  # noqa: E402

__all__ = [
    "__version__",
    "BridgeConfig",
    "load_config",
    "IpcBridgeError",
    "Side",
    "TransformContext",
    "channel_name",
    "TransformResult",
    "transform_file",
    "transform_include",
    "transform_source",
]
