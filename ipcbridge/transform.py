"""
Per-file transform pipeline.

Parser -> extractor -> channel namer -> generator -> import merger ->
assembler. The transform is a pure function of the file text, its name, the
processing context and the configuration; files never share state, so any
number of them may be transformed concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .assembler import AssembledOutput, EditBuffer, OffsetMap, build_source_map
from .codegen.matrix import ChannelBinding, generate
from .config import BridgeConfig
from .extractor import extract_exported_functions
from .imports import merge_host_imports, missing_symbols
from .naming import Side, TransformContext, file_base_name, infer_file_role
from .observability import log_transform_event
from .parser import parse_source

logger = logging.getLogger(__name__)


@dataclass
class TransformResult:
    """Transformed module text and everything needed to trace it back."""

    file_id: str
    context: TransformContext
    code: str
    offset_map: OffsetMap
    channels: List[ChannelBinding] = field(default_factory=list)
    added_imports: List[str] = field(default_factory=list)
    _assembled: Optional[AssembledOutput] = field(default=None, repr=False)

    def source_map(self, file_name: Optional[str] = None) -> Dict[str, Any]:
        """Return a version 3 source map from the transformed code to the original."""
        if self._assembled is None:
            raise ValueError("Source map data is not available for this result")
        return build_source_map(self._assembled, self.file_id, file_name)


def transform_include(file_id: str, config: Optional[BridgeConfig] = None) -> bool:
    """Return whether ``file_id`` names a main or renderer IPC module."""

    config = config or BridgeConfig()
    return infer_file_role(file_id, config.extensions) is not None


def transform_source(
    source: Union[str, bytes],
    file_id: str,
    context: Union[str, Side],
    config: Optional[BridgeConfig] = None,
) -> Optional[TransformResult]:
    """Transform one IPC module for the ``context`` currently being compiled.

    Returns ``None`` when ``file_id`` is not an IPC module or when it exports
    no qualifying function; the caller then keeps the file untouched. Parse
    failures raise and no partial output is produced.
    """

    config = config or BridgeConfig()
    processing = Side.parse(context)
    role = infer_file_role(file_id, config.extensions)
    if role is None:
        logger.debug("Skipping %s: not an IPC module", file_id)
        return None

    transform_context = TransformContext(processing=processing, role=role)
    parsed = parse_source(source, file_id)
    functions = extract_exported_functions(parsed, config.default_export_name)
    if not functions:
        logger.debug("Skipping %s: no exported functions", file_id)
        return None

    plan = generate(
        functions,
        transform_context,
        file_base_name(file_id),
        source_length=len(parsed.source),
        typescript=parsed.is_typescript,
        config=config,
        file_id=file_id,
    )
    import_edits = merge_host_imports(parsed, plan.required_symbols, config.host_module)
    added = missing_symbols(parsed, plan.required_symbols, config.host_module)

    buffer = EditBuffer(parsed.source)
    buffer.extend(import_edits)
    buffer.extend(plan.edits)
    assembled = buffer.apply()

    log_transform_event(
        file_id=file_id,
        context=processing.value,
        role=role.value,
        channels=[binding.channel for binding in plan.bindings],
        added_imports=added,
    )
    return TransformResult(
        file_id=file_id,
        context=transform_context,
        code=assembled.code,
        offset_map=assembled.offset_map,
        channels=plan.bindings,
        added_imports=added,
        _assembled=assembled,
    )


def transform_file(
    path: Union[str, Path],
    context: Union[str, Side],
    config: Optional[BridgeConfig] = None,
) -> Optional[TransformResult]:
    """Read ``path`` as UTF-8 and transform it."""

    file_path = Path(path)
    return transform_source(file_path.read_bytes(), str(file_path), context, config)


__all__ = ["TransformResult", "transform_include", "transform_source", "transform_file"]
