"""Apply text edits to a module and keep track of where every byte came from."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


@dataclass(frozen=True)
class TextEdit:
    """Replace ``source[start:end]`` with ``text``; ``start == end`` is an insertion."""

    start: int
    end: int
    text: str

    @property
    def is_insertion(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class MappedSegment:
    generated_start: int
    generated_end: int
    original_start: Optional[int]

    @property
    def synthesized(self) -> bool:
        return self.original_start is None


@dataclass
class OffsetMap:
    """Reverse mapping from generated byte offsets to original byte offsets."""

    segments: List[MappedSegment] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._starts = [segment.generated_start for segment in self.segments]

    def segment_at(self, generated_offset: int) -> Optional[MappedSegment]:
        index = bisect_right(self._starts, generated_offset) - 1
        if index < 0:
            return None
        segment = self.segments[index]
        if generated_offset >= segment.generated_end:
            return None
        return segment

    def original_offset(self, generated_offset: int) -> Optional[int]:
        """Return the original offset, or ``None`` for synthesized bytes."""

        segment = self.segment_at(generated_offset)
        if segment is None or segment.original_start is None:
            return None
        return segment.original_start + (generated_offset - segment.generated_start)


@dataclass
class AssembledOutput:
    code: str
    offset_map: OffsetMap
    original: bytes
    generated: bytes


class EditBuffer:
    """Collects edits against an immutable original and assembles the result."""

    def __init__(self, source: bytes) -> None:
        self.source = source
        self._edits: List[Tuple[int, int, int, TextEdit]] = []

    def __len__(self) -> int:
        return len(self._edits)

    @property
    def has_changes(self) -> bool:
        return bool(self._edits)

    def add(self, edit: TextEdit) -> None:
        if not 0 <= edit.start <= edit.end <= len(self.source):
            raise ValueError(f"Edit range {edit.start}:{edit.end} is outside the source")
        # Insertions sort before a replacement that starts at the same offset.
        order = 0 if edit.is_insertion else 1
        self._edits.append((edit.start, order, len(self._edits), edit))

    def extend(self, edits: Iterable[TextEdit]) -> None:
        for edit in edits:
            self.add(edit)

    def overwrite(self, start: int, end: int, text: str) -> None:
        self.add(TextEdit(start, end, text))

    def insert(self, position: int, text: str) -> None:
        self.add(TextEdit(position, position, text))

    def prepend(self, text: str) -> None:
        self.insert(0, text)

    def append(self, text: str) -> None:
        self.insert(len(self.source), text)

    def apply(self) -> AssembledOutput:
        edits = [entry[3] for entry in sorted(self._edits, key=lambda entry: entry[:3])]
        pieces: List[bytes] = []
        segments: List[MappedSegment] = []
        cursor = 0
        generated = 0

        def emit(data: bytes, original_start: Optional[int]) -> None:
            nonlocal generated
            if not data:
                return
            pieces.append(data)
            segments.append(MappedSegment(generated, generated + len(data), original_start))
            generated += len(data)

        for edit in edits:
            if edit.start < cursor:
                raise ValueError(
                    f"Edit at {edit.start}:{edit.end} overlaps an earlier replacement ending at {cursor}"
                )
            emit(self.source[cursor:edit.start], cursor)
            emit(edit.text.encode("utf-8"), None)
            cursor = edit.end
        emit(self.source[cursor:], cursor)

        output = b"".join(pieces)
        return AssembledOutput(
            code=output.decode("utf-8"),
            offset_map=OffsetMap(segments),
            original=self.source,
            generated=output,
        )


class _LineIndex:
    """Byte offset to (line, UTF-16 column) conversion, as source maps count columns."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.line_starts = [0]
        for index, byte in enumerate(data):
            if byte == 0x0A:
                self.line_starts.append(index + 1)

    def position(self, offset: int) -> Tuple[int, int]:
        line = bisect_right(self.line_starts, offset) - 1
        prefix = self.data[self.line_starts[line]:offset].decode("utf-8", errors="replace")
        return line, len(prefix.encode("utf-16-le")) // 2


def _encode_vlq(value: int) -> str:
    vlq = (-value << 1) | 1 if value < 0 else value << 1
    out = []
    while True:
        digit = vlq & 0x1F
        vlq >>= 5
        if vlq:
            digit |= 0x20
        out.append(_BASE64[digit])
        if not vlq:
            return "".join(out)


def _mapping_points(output: AssembledOutput, generated_lines: _LineIndex) -> List[Tuple[int, Optional[int]]]:
    points: List[Tuple[int, Optional[int]]] = []
    for segment in output.offset_map.segments:
        points.append((segment.generated_start, segment.original_start))
        if segment.original_start is None:
            continue
        first_line = bisect_right(generated_lines.line_starts, segment.generated_start)
        for line_start in generated_lines.line_starts[first_line:]:
            if line_start >= segment.generated_end:
                break
            points.append((line_start, segment.original_start + (line_start - segment.generated_start)))
    return points


def build_source_map(output: AssembledOutput, source_name: str, file_name: Optional[str] = None) -> Dict[str, Any]:
    """Return a version 3 source map for ``output`` against a single source."""

    generated_lines = _LineIndex(output.generated)
    original_lines = _LineIndex(output.original)
    lines: List[List[str]] = [[] for _ in generated_lines.line_starts]
    previous_column = {}
    prev_original_line = 0
    prev_original_column = 0

    for generated_offset, original_offset in _mapping_points(output, generated_lines):
        if generated_offset >= len(output.generated):
            continue
        line, column = generated_lines.position(generated_offset)
        fields = [_encode_vlq(column - previous_column.get(line, 0))]
        previous_column[line] = column
        if original_offset is not None:
            original_line, original_column = original_lines.position(original_offset)
            fields.append(_encode_vlq(0))
            fields.append(_encode_vlq(original_line - prev_original_line))
            fields.append(_encode_vlq(original_column - prev_original_column))
            prev_original_line, prev_original_column = original_line, original_column
        lines[line].append("".join(fields))

    return {
        "version": 3,
        "file": file_name or source_name,
        "sources": [source_name],
        "sourcesContent": [output.original.decode("utf-8")],
        "names": [],
        "mappings": ";".join(",".join(entries) for entries in lines),
    }


__all__ = [
    "TextEdit",
    "MappedSegment",
    "OffsetMap",
    "AssembledOutput",
    "EditBuffer",
    "build_source_map",
]
