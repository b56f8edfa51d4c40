"""Collect the exported function-like declarations of an IPC module."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from tree_sitter import Node

from .naming import DEFAULT_SEGMENT
from .parser import ParsedSource

# Older grammar releases call the function expression node ``function``.
_FUNCTION_EXPRESSION_TYPES = {"function_expression", "function"}
_VARIABLE_STATEMENT_TYPES = {"lexical_declaration", "variable_declaration"}


class FunctionForm(str, Enum):
    """Syntactic shape of an exported function, which decides how a stub is spelled."""

    DECLARATION = "declaration"
    FUNCTION_EXPRESSION = "function_expression"
    ARROW = "arrow"


@dataclass(frozen=True)
class ExportedFunction:
    """One qualifying exported declaration.

    ``start``/``end`` are byte offsets into the UTF-8 source. For declarations
    the span covers the whole ``export`` statement; for ``export const x = ...``
    it covers only the function expression or arrow.
    """

    name: str
    start: int
    end: int
    is_async: bool
    is_default: bool
    form: FunctionForm
    body: bytes
    is_anonymous: bool = False
    name_insert_at: Optional[int] = None

    @property
    def name_segment(self) -> str:
        return DEFAULT_SEGMENT if self.is_default else self.name

    @property
    def body_text(self) -> str:
        return self.body.decode("utf-8")


def _has_token(node: Node, token: str) -> bool:
    return any(child.type == token for child in node.children)


def _function_keyword_end(node: Node) -> Optional[int]:
    for child in node.children:
        if child.type == "function":
            return child.end_byte
    return None


def _from_declaration(
    parsed: ParsedSource,
    statement: Node,
    function: Node,
    is_default: bool,
    default_name: str,
) -> ExportedFunction:
    name_node = function.child_by_field_name("name")
    anonymous = name_node is None
    name = default_name if anonymous else parsed.text(name_node).decode("utf-8")
    return ExportedFunction(
        name=name,
        start=statement.start_byte,
        end=statement.end_byte,
        is_async=_has_token(function, "async"),
        is_default=is_default or anonymous,
        form=FunctionForm.DECLARATION,
        body=parsed.text(statement),
        is_anonymous=anonymous,
        name_insert_at=_function_keyword_end(function) if anonymous else None,
    )


def _from_variable_statement(
    parsed: ParsedSource,
    declaration: Node,
    is_default: bool,
) -> Iterator[ExportedFunction]:
    for declarator in declaration.named_children:
        if declarator.type != "variable_declarator":
            continue
        name_node = declarator.child_by_field_name("name")
        value = declarator.child_by_field_name("value")
        if name_node is None or name_node.type != "identifier" or value is None:
            continue
        if value.type == "arrow_function":
            form = FunctionForm.ARROW
        elif value.type in _FUNCTION_EXPRESSION_TYPES:
            form = FunctionForm.FUNCTION_EXPRESSION
        else:
            continue
        yield ExportedFunction(
            name=parsed.text(name_node).decode("utf-8"),
            start=value.start_byte,
            end=value.end_byte,
            is_async=_has_token(value, "async"),
            is_default=is_default,
            form=form,
            body=parsed.text(value),
        )


def extract_exported_functions(
    parsed: ParsedSource,
    default_name: str = "_defaultExport",
) -> List[ExportedFunction]:
    """Return every top-level exported function of ``parsed`` in source order.

    Classes, non-function bindings and re-exports are not collected.
    """

    functions: List[ExportedFunction] = []
    for statement in parsed.root.named_children:
        if statement.type != "export_statement":
            continue
        is_default = _has_token(statement, "default")
        declaration = statement.child_by_field_name("declaration")
        value = statement.child_by_field_name("value")
        if declaration is not None and declaration.type == "function_declaration":
            functions.append(_from_declaration(parsed, statement, declaration, is_default, default_name))
        elif declaration is not None and declaration.type in _VARIABLE_STATEMENT_TYPES:
            functions.extend(_from_variable_statement(parsed, declaration, is_default))
        elif is_default and value is not None and value.type in _FUNCTION_EXPRESSION_TYPES:
            # ``export default function () {}`` parses as an expression.
            functions.append(_from_declaration(parsed, statement, value, True, default_name))
    return functions


__all__ = ["ExportedFunction", "FunctionForm", "extract_exported_functions"]
