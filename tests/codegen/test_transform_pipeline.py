"""End-to-end tests for the per-file transform pipeline."""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from ipcbridge import transform_file, transform_include, transform_source
from ipcbridge.config import BridgeConfig
from ipcbridge.errors import ChannelCollisionError, SourceParseError
from ipcbridge.naming import Side

SOURCE = """import { app } from 'electron';

export function quit() {
  app.quit();
}

export async function version() {
  return app.getVersion();
}
"""


def test_non_ipc_modules_are_skipped():
    assert transform_source(SOURCE, "src/app.ts", "main") is None
    assert not transform_include("src/app.ts")
    assert transform_include("src/app.main.ipc.ts")


def test_modules_without_functions_are_skipped():
    source = "const x = 1;\nexport const y = 2;\nexport class A {}\n"
    assert transform_source(source, "consts.main.ipc.ts", "main") is None
    assert transform_source(source, "consts.main.ipc.ts", "renderer") is None


def test_existing_host_import_is_extended():
    result = transform_source(SOURCE, "app.main.ipc.ts", "main")
    assert result.code.startswith("import { app, ipcMain } from 'electron';\n")
    assert result.code.count("from 'electron'") == 1
    assert result.added_imports == ["ipcMain"]


def test_already_imported_symbol_is_not_added():
    source = "import { ipcMain } from 'electron';\nexport function a() { return 1; }\n"
    result = transform_source(source, "a.main.ipc.ts", "main")
    assert result.added_imports == []
    assert result.code.startswith(source)


def test_original_text_kept_in_register_cells():
    result = transform_source(SOURCE, "app.main.ipc.ts", "main")
    body = SOURCE[SOURCE.index("export function quit"):]
    assert body in result.code


def test_both_contexts_derive_the_same_channels():
    main = transform_source(SOURCE, "src/app.main.ipc.ts", "main")
    renderer = transform_source(SOURCE, "other/dir/app.main.ipc.ts", "renderer")
    assert [b.channel for b in main.channels] == [b.channel for b in renderer.channels]
    assert all(channel.channel.startswith("app.main.ipc.ts:") for channel in main.channels)


def test_channels_ignore_unrelated_edits():
    edited = "// a new comment\n" + SOURCE.replace("app.quit();", "app.quit();\n  return;")
    before = {b.name: b.channel for b in transform_source(SOURCE, "app.main.ipc.ts", "main").channels}
    after = {b.name: b.channel for b in transform_source(edited, "app.main.ipc.ts", "main").channels}
    assert before["version"] == after["version"]
    assert before["quit"] != after["quit"]


def test_transform_is_deterministic():
    first = transform_source(SOURCE, "app.main.ipc.ts", "renderer")
    second = transform_source(SOURCE, "app.main.ipc.ts", Side.RENDERER)
    assert first.code == second.code


def test_concurrent_transforms_match_sequential():
    ids = [f"mod{i}.main.ipc.ts" for i in range(8)]
    sequential = [transform_source(SOURCE, file_id, "renderer").code for file_id in ids]
    with ThreadPoolExecutor(max_workers=4) as pool:
        parallel = list(pool.map(lambda file_id: transform_source(SOURCE, file_id, "renderer").code, ids))
    assert parallel == sequential


def test_offset_map_points_back_to_original():
    source = "export async function bar(x){return x+1}"
    result = transform_source(source, "foo.main.ipc.ts", "main")
    generated_start = result.code.encode("utf-8").index(source.encode("utf-8"))
    assert result.offset_map.original_offset(generated_start) == 0
    assert result.offset_map.original_offset(generated_start + 7) == 7
    assert result.offset_map.original_offset(0) is None


def test_source_map():
    result = transform_source(SOURCE, "src/app.main.ipc.ts", "renderer")
    source_map = result.source_map("app.js")
    assert source_map["version"] == 3
    assert source_map["file"] == "app.js"
    assert source_map["sources"] == ["src/app.main.ipc.ts"]
    assert source_map["sourcesContent"] == [SOURCE]
    assert source_map["mappings"]


def test_parse_error_produces_no_output():
    with pytest.raises(SourceParseError) as exc_info:
        transform_source("export function broken( {\n", "bad.main.ipc.ts", "main")
    assert exc_info.value.path == "bad.main.ipc.ts"


def test_unknown_context():
    with pytest.raises(ValueError):
        transform_source(SOURCE, "app.main.ipc.ts", "worker")


class TestChannelCollisions:
    """Identical name and body in one file derive the same channel."""

    DUPLICATE = "export const dup = () => 1;\nexport const dup = () => 1;\n"

    def test_collision_raises_by_default(self):
        with pytest.raises(ChannelCollisionError) as exc_info:
            transform_source(self.DUPLICATE, "dup.main.ipc.js", "main")
        assert exc_info.value.path == "dup.main.ipc.js"

    def test_collision_warns_when_allowed(self, caplog):
        config = BridgeConfig(fail_on_channel_collision=False)
        with caplog.at_level(logging.WARNING, logger="ipcbridge"):
            result = transform_source(self.DUPLICATE, "dup.main.ipc.js", "main", config)
        assert len(result.channels) == 2
        assert "derive the same channel" in caplog.text


def test_transform_event_is_logged(caplog):
    with caplog.at_level(logging.INFO, logger="ipcbridge.transform"):
        transform_source(SOURCE, "app.main.ipc.ts", "main")
    records = [r for r in caplog.records if getattr(r, "ipcbridge_event", None)]
    assert records
    data = records[-1].ipcbridge_data
    assert data["file"] == "app.main.ipc.ts"
    assert data["context"] == "main"
    assert len(data["channels"]) == 2


def test_transform_file_reads_disk(write_module):
    path = write_module("src/notify.renderer.ipc.ts", "export function ping() { return 1; }\n")
    result = transform_file(path, "main")
    assert "webContents.getAllWebContents()" in result.code
    assert result.file_id == str(path)


def test_configured_extensions(write_module):
    config = BridgeConfig(extensions=["tsx"])
    path = write_module("view.renderer.ipc.tsx", "export const show = () => <div />;\n")
    result = transform_file(path, "renderer", config)
    assert "ipcRenderer.on(" in result.code
    assert transform_source("export function a() {}", "a.main.ipc.ts", "main", config) is None
