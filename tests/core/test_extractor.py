"""Tests for exported function extraction."""

import pytest

from ipcbridge.errors import SourceParseError, UnsupportedSourceError
from ipcbridge.extractor import FunctionForm, extract_exported_functions
from ipcbridge.parser import grammar_for, parse_source

MIXED_MODULE = """import { app } from 'electron';

export async function fetchUser(id: string) { return id; }
export function add(a, b) { return a + b; }
export default function () { return 1; }
export const arrow = async (x) => x * 2;
export const fnExpr = function (y) { return y; };
export class NotAFunction {}
export const value = 42;
export { add as plus };
function internal() {}
"""


@pytest.fixture
def mixed(parse):
    return parse(MIXED_MODULE, "api.main.ipc.ts")


def test_collects_only_exported_functions_in_order(mixed):
    names = [fn.name for fn in extract_exported_functions(mixed)]
    assert names == ["fetchUser", "add", "_defaultExport", "arrow", "fnExpr"]


def test_async_detection(mixed):
    flags = {fn.name: fn.is_async for fn in extract_exported_functions(mixed)}
    assert flags == {
        "fetchUser": True,
        "add": False,
        "_defaultExport": False,
        "arrow": True,
        "fnExpr": False,
    }


def test_declaration_span_covers_export_statement(mixed):
    fetch_user = extract_exported_functions(mixed)[0]
    expected = b"export async function fetchUser(id: string) { return id; }"
    assert fetch_user.form is FunctionForm.DECLARATION
    assert fetch_user.body == expected
    assert mixed.source[fetch_user.start:fetch_user.end] == expected


def test_variable_forms_span_only_the_function(mixed):
    by_name = {fn.name: fn for fn in extract_exported_functions(mixed)}
    assert by_name["arrow"].form is FunctionForm.ARROW
    assert by_name["arrow"].body == b"async (x) => x * 2"
    assert by_name["fnExpr"].form is FunctionForm.FUNCTION_EXPRESSION
    assert by_name["fnExpr"].body_text == "function (y) { return y; }"
    assert not by_name["arrow"].is_default


def test_anonymous_default_gets_synthetic_name(mixed):
    default = [fn for fn in extract_exported_functions(mixed) if fn.is_default][0]
    assert default.is_anonymous
    assert default.name_segment == "default"
    keyword_end = MIXED_MODULE.encode("utf-8").index(b"export default function") + len(b"export default function")
    assert default.name_insert_at == keyword_end


def test_custom_default_name(mixed):
    names = [fn.name for fn in extract_exported_functions(mixed, default_name="main$default")]
    assert "main$default" in names


def test_named_default_keeps_name_but_uses_default_segment(parse):
    parsed = parse("export default async function load() { return 1; }\n", "load.main.ipc.js")
    (fn,) = extract_exported_functions(parsed)
    assert fn.name == "load"
    assert fn.is_default and not fn.is_anonymous
    assert fn.is_async
    assert fn.name_segment == "default"


def test_module_without_functions(parse):
    parsed = parse("export const x = 1;\nexport class A {}\nconst f = () => 1;\n", "none.main.ipc.ts")
    assert extract_exported_functions(parsed) == []


def test_multibyte_offsets_are_bytes(parse):
    source = "// héllo wörld\nexport function greet() { return 'ü'; }\n"
    parsed = parse(source, "greet.renderer.ipc.js")
    (fn,) = extract_exported_functions(parsed)
    assert fn.start == len("// héllo wörld\n".encode("utf-8"))
    assert fn.body_text == "export function greet() { return 'ü'; }"


class TestParser:
    """Grammar selection and syntax error reporting."""

    @pytest.mark.parametrize(
        "file_id, grammar",
        [
            ("a.main.ipc.ts", "typescript"),
            ("a.main.ipc.mts", "typescript"),
            ("a.main.ipc.tsx", "tsx"),
            ("a.main.ipc.js", "javascript"),
            ("a.main.ipc.cjs", "javascript"),
            ("a.main.ipc.ts?v=1", "typescript"),
        ],
    )
    def test_grammar_for(self, file_id, grammar):
        assert grammar_for(file_id) == grammar

    def test_unknown_extension(self):
        with pytest.raises(UnsupportedSourceError) as exc_info:
            parse_source("x = 1", "module.py")
        assert exc_info.value.code == "IPC_UNSUPPORTED"

    def test_syntax_error_reports_location(self):
        with pytest.raises(SourceParseError) as exc_info:
            parse_source("export function ok() {}\nexport function broken( {\n", "bad.main.ipc.ts")
        error = exc_info.value
        assert error.path == "bad.main.ipc.ts"
        assert error.line is not None and error.line >= 1
        assert error.code == "IPC_PARSE"

    def test_typescript_flag(self, parse):
        assert parse("export function a() {}", "a.main.ipc.ts").is_typescript
        assert not parse("export function a() {}", "a.main.ipc.js").is_typescript
