"""Make the host API symbols used by generated glue importable.

Merging works on the parsed ``import_statement`` nodes rather than on the
statement text, so specifiers are added exactly where the grammar says the
named list ends and unrelated imports are never touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from tree_sitter import Node

from .assembler import TextEdit
from .parser import ParsedSource

logger = logging.getLogger(__name__)


@dataclass
class HostImport:
    """One ``import ... from '<host>'`` statement and the parts merging cares about."""

    node: Node
    type_only: bool = False
    default_binding: Optional[Node] = None
    named_imports: Optional[Node] = None
    namespace_import: Optional[Node] = None
    source_node: Optional[Node] = None
    local_names: List[str] = field(default_factory=list)

    @property
    def is_side_effect_only(self) -> bool:
        return self.default_binding is None and self.named_imports is None and self.namespace_import is None

    @property
    def is_default_only(self) -> bool:
        return self.default_binding is not None and self.named_imports is None and self.namespace_import is None


def _module_name(parsed: ParsedSource, string_node: Node) -> str:
    raw = parsed.text(string_node).decode("utf-8")
    return raw[1:-1] if len(raw) >= 2 and raw[0] in "'\"" else raw


def _specifier_local_name(parsed: ParsedSource, specifier: Node) -> str:
    target = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
    return parsed.text(target).decode("utf-8") if target is not None else ""


def _describe(parsed: ParsedSource, statement: Node) -> HostImport:
    host = HostImport(node=statement, source_node=statement.child_by_field_name("source"))
    for child in statement.children:
        if child.type == "type":
            host.type_only = True
        elif child.type == "import_clause":
            for part in child.named_children:
                if part.type == "identifier":
                    host.default_binding = part
                elif part.type == "named_imports":
                    host.named_imports = part
                    host.local_names = [
                        _specifier_local_name(parsed, spec)
                        for spec in part.named_children
                        if spec.type == "import_specifier"
                    ]
                elif part.type == "namespace_import":
                    host.namespace_import = part
    return host


def find_host_imports(parsed: ParsedSource, host_module: str = "electron") -> List[HostImport]:
    """Return the top-level imports of ``host_module`` in source order."""

    found: List[HostImport] = []
    for statement in parsed.root.named_children:
        if statement.type != "import_statement":
            continue
        source_node = statement.child_by_field_name("source")
        if source_node is None or _module_name(parsed, source_node) != host_module:
            continue
        found.append(_describe(parsed, statement))
    return found


_UTF8_BOM = b"\xef\xbb\xbf"


def _leading_offset(source: bytes) -> int:
    """Offset after a byte order mark and a hashbang line, where new imports go."""

    start = len(_UTF8_BOM) if source.startswith(_UTF8_BOM) else 0
    if not source.startswith(b"#!", start):
        return start
    newline = source.find(b"\n", start)
    return len(source) if newline < 0 else newline + 1


def missing_symbols(
    parsed: ParsedSource,
    needed: Sequence[str],
    host_module: str = "electron",
) -> List[str]:
    """Return the names of ``needed`` not yet bound by a named import of ``host_module``."""

    imports = find_host_imports(parsed, host_module)
    bound = {name for entry in imports if not entry.type_only for name in entry.local_names}
    return [name for name in dict.fromkeys(needed) if name not in bound]


def merge_host_imports(
    parsed: ParsedSource,
    needed: Sequence[str],
    host_module: str = "electron",
) -> List[TextEdit]:
    """Return the edits that make every name in ``needed`` a named import of ``host_module``.

    Names already bound by a named specifier are left alone, so running the
    merge over its own output produces no edits.
    """

    missing = missing_symbols(parsed, needed, host_module)
    if not missing:
        return []

    imports = find_host_imports(parsed, host_module)
    listed = ", ".join(missing)
    value_imports = [entry for entry in imports if not entry.type_only]

    for entry in value_imports:
        if entry.named_imports is None:
            continue
        specifiers = [c for c in entry.named_imports.named_children if c.type == "import_specifier"]
        if specifiers:
            position = specifiers[-1].end_byte
            return [TextEdit(position, position, f", {listed}")]
        # ``import {} from 'electron'`` or ``import x, {} from 'electron'``
        position = entry.named_imports.start_byte + 1
        return [TextEdit(position, position, f" {listed} ")]

    for entry in value_imports:
        if entry.is_default_only:
            position = entry.default_binding.end_byte
            return [TextEdit(position, position, f", {{ {listed} }}")]

    for entry in value_imports:
        if entry.is_side_effect_only and entry.source_node is not None:
            position = entry.source_node.start_byte
            return [TextEdit(position, position, f"{{ {listed} }} from ")]

    statement = f"import {{ {listed} }} from '{host_module}';"
    if imports:
        # Namespace and type-only imports cannot carry value specifiers.
        position = imports[0].node.end_byte
        logger.debug("Adding a separate %s import after line %d", host_module, imports[0].node.start_point[0] + 1)
        return [TextEdit(position, position, f"\n{statement}")]

    position = _leading_offset(parsed.source)
    return [TextEdit(position, position, f"{statement}\n")]


__all__ = ["HostImport", "find_host_imports", "missing_symbols", "merge_host_imports"]
