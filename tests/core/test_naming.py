"""Tests for file roles and channel naming."""

import hashlib

import pytest

from ipcbridge.naming import (
    Side,
    TransformContext,
    channel_name,
    create_hash_for_text,
    file_base_name,
    infer_file_role,
    reply_channel,
)


class TestInferFileRole:
    """Role inference from file names."""

    @pytest.mark.parametrize(
        "file_id, expected",
        [
            ("src/foo.main.ipc.ts", Side.MAIN),
            ("src/foo.main.ipc.js", Side.MAIN),
            ("/abs/path/notify.renderer.ipc.ts", Side.RENDERER),
            ("notify.renderer.ipc.js?v=3", Side.RENDERER),
        ],
    )
    def test_role_suffixes(self, file_id, expected):
        assert infer_file_role(file_id) is expected

    @pytest.mark.parametrize(
        "file_id",
        ["foo.ts", "foo.ipc.ts", "foo.main.ts", "foo.main.ipc.py", "foo.main.ipc.ts.bak", "foo.main.ipc.tsx"],
    )
    def test_other_names_have_no_role(self, file_id):
        assert infer_file_role(file_id) is None

    def test_configured_extensions(self):
        assert infer_file_role("view.renderer.ipc.tsx", ("tsx",)) is Side.RENDERER
        assert infer_file_role("view.renderer.ipc.ts", ("tsx",)) is None


class TestChannelNaming:
    """Channel strings must be reproducible on both sides of the boundary."""

    def test_hash_is_truncated_sha256(self):
        digest = create_hash_for_text("export function a() {}")
        assert digest == hashlib.sha256(b"export function a() {}").hexdigest()[:12]
        assert len(digest) == 12

    def test_hash_accepts_bytes_and_text_alike(self):
        assert create_hash_for_text("héllo") == create_hash_for_text("héllo".encode("utf-8"))

    def test_channel_layout(self):
        body = "export async function bar(x){return x+1}"
        expected_hash = hashlib.sha256(body.encode("utf-8")).hexdigest()[:12]
        assert channel_name("foo.main.ipc.ts", "bar", body) == f"foo.main.ipc.ts:bar:{expected_hash}"

    def test_channel_is_deterministic(self):
        first = channel_name("a.main.ipc.ts", "default", b"export default function () {}")
        second = channel_name("a.main.ipc.ts", "default", b"export default function () {}")
        assert first == second

    def test_body_change_changes_channel(self):
        assert channel_name("a.main.ipc.ts", "f", "f(){return 1}") != channel_name("a.main.ipc.ts", "f", "f(){return 2}")

    def test_reply_channel(self):
        assert reply_channel("a:b:c") == "a:b:c-reply"

    def test_file_base_name(self):
        assert file_base_name("src/ipc/foo.main.ipc.ts") == "foo.main.ipc.ts"
        assert file_base_name("C:\\proj\\foo.main.ipc.ts") == "foo.main.ipc.ts"
        assert file_base_name("foo.main.ipc.ts?import") == "foo.main.ipc.ts"


def test_side_parse():
    assert Side.parse("Main") is Side.MAIN
    assert Side.parse(Side.RENDERER) is Side.RENDERER
    with pytest.raises(ValueError):
        Side.parse("worker")


def test_transform_context_describe():
    ctx = TransformContext(processing=Side.RENDERER, role=Side.MAIN)
    assert ctx.describe() == "renderer context / main role"
