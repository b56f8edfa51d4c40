"""Tree-sitter backed source parsing for IPC modules."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePath
from typing import Any, Iterator, Optional

import tree_sitter_javascript as ts_javascript
import tree_sitter_typescript as ts_typescript
from tree_sitter import Language, Node, Parser, Tree

from .errors import SourceParseError, UnsupportedSourceError

logger = logging.getLogger(__name__)

_GRAMMAR_BY_EXTENSION = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
}


@dataclass
class ParsedSource:
    """A parsed module: the UTF-8 bytes tree-sitter offsets refer to, plus the tree."""

    file_id: str
    source: bytes
    tree: Tree
    grammar: str

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def is_typescript(self) -> bool:
        return self.grammar in {"typescript", "tsx"}

    def text(self, node: Node) -> bytes:
        return self.source[node.start_byte:node.end_byte]


def grammar_for(file_id: str) -> str:
    suffix = PurePath(file_id.split("?", 1)[0]).suffix.lower()
    grammar = _GRAMMAR_BY_EXTENSION.get(suffix)
    if grammar is None:
        raise UnsupportedSourceError(
            f"No grammar available for '{suffix or file_id}' files",
            path=file_id,
            hint=f"Supported extensions: {', '.join(sorted(_GRAMMAR_BY_EXTENSION))}",
        )
    return grammar


@lru_cache(maxsize=None)
def _language(grammar: str) -> Language:
    if grammar == "typescript":
        return Language(ts_typescript.language_typescript())
    if grammar == "tsx":
        return Language(ts_typescript.language_tsx())
    return Language(ts_javascript.language())


def _iter_error_nodes(node: Node) -> Iterator[Node]:
    if node.type == "ERROR" or node.is_missing:
        yield node
        return
    if not node.has_error:
        return
    for child in node.children:
        yield from _iter_error_nodes(child)


def parse_source(source: Any, file_id: str) -> ParsedSource:
    """Parse ``source`` (text or UTF-8 bytes) with the grammar chosen by ``file_id``.

    Raises :class:`SourceParseError` when the tree contains error or missing
    nodes; a transform never runs over a partially understood module.
    """

    data = source.encode("utf-8") if isinstance(source, str) else bytes(source)
    grammar = grammar_for(file_id)
    # Parsers are cheap and not shared between threads; languages are cached.
    parser = Parser(_language(grammar))
    tree = parser.parse(data)
    first_error: Optional[Node] = next(_iter_error_nodes(tree.root_node), None)
    if first_error is not None:
        row, column = first_error.start_point
        what = f"missing '{first_error.type}'" if first_error.is_missing else "unexpected syntax"
        logger.debug("Parse failure in %s at %d:%d", file_id, row + 1, column + 1)
        raise SourceParseError(
            f"Syntax error: {what}",
            path=file_id,
            line=row + 1,
            column=column + 1,
        )
    return ParsedSource(file_id=file_id, source=data, tree=tree, grammar=grammar)


__all__ = ["ParsedSource", "grammar_for", "parse_source"]
