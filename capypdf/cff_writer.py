"""Serialisation of subset CID-keyed CFF fonts."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .cff import (
    CFFDictItem,
    CFFFontDict,
    CFFPrivateDict,
    CFFSelectRange3,
    CFFont,
    DictOperator,
    IndexOutOfBounds,
    Operator,
    SubsetGlyphs,
    UnsupportedFormat,
)

_PLACEHOLDER = b"\xff\xff\xff\xff"

# Top dictionary entries copied into the subset font, in output order.
_TOPDICT_OPERATORS = (
    DictOperator.ROS,
    DictOperator.NOTICE,
    DictOperator.FULL_NAME,
    DictOperator.FAMILY_NAME,
    DictOperator.WEIGHT,
    DictOperator.FONT_BBOX,
    DictOperator.CID_FONT_VERSION,
    DictOperator.CID_COUNT,
    DictOperator.FD_ARRAY,
    DictOperator.FD_SELECT,
    DictOperator.CHARSET,
    DictOperator.CHAR_STRINGS,
)


def append_index_to(output: bytearray, entries: Iterable[bytes]) -> list[int]:
    """Append a CFF INDEX with 4-byte offsets to ``output``.

    Returns the positions in ``output`` where each entry's data starts.
    """
    entries = list(entries)
    output += struct.pack(">HB", len(entries), 4)
    offset = 1
    for entry in entries:
        output += struct.pack(">I", offset)
        offset += len(entry)
    output += struct.pack(">I", offset)
    positions = []
    for entry in entries:
        positions.append(len(output))
        output += entry
    return positions


class CFFDictWriter:
    """Builds a CFF DICT, encoding every operand as a 32-bit integer."""

    def __init__(self) -> None:
        self._output = bytearray()
        self._offsets: list[int] = []

    def append_command(self, operands: Sequence[int], op: Operator) -> None:
        self._offsets.append(len(self._output))
        for operand in operands:
            self._output.append(29)
            self._output += struct.pack(">i", operand)
        code = int(op)
        if code > 0xFF:
            self._output.append(0x0C)
        self._output.append(code & 0xFF)

    def append_item(self, item: CFFDictItem) -> None:
        self.append_command(item.operand, item.opr)

    def current_size(self) -> int:
        return len(self._output)

    def steal(self) -> tuple[bytes, list[int]]:
        """Return the encoded bytes and the start offset of every entry, then reset."""
        result = (bytes(self._output), self._offsets)
        self._output = bytearray()
        self._offsets = []
        return result


def _write_private_dict(output: bytearray, pdict: CFFPrivateDict) -> int:
    writer = CFFDictWriter()
    for entry in pdict.entries.entries:
        writer.append_item(entry)
    if pdict.subr is not None:
        # Subrs is always the last entry, so the dict size is known in advance.
        writer.append_command([writer.current_size() + 1 + 4 + 1], DictOperator.SUBRS)
    data, _ = writer.steal()
    output += data
    if pdict.subr is not None:
        append_index_to(output, pdict.subr)
    return len(data)


def _build_fdselect3(source: CFFont, sub: Sequence[SubsetGlyphs]) -> list[CFFSelectRange3]:
    result = [CFFSelectRange3(0, source.get_fontdict_id(0))]
    for i, glyph in enumerate(sub):
        if i == 0:
            continue
        fd = source.get_fontdict_id(glyph.gid)
        if fd != result[-1].fd:
            result.append(CFFSelectRange3(i, fd))
    return result


@dataclass
class _OffsetPatch:
    offset: Optional[int] = None
    value: Optional[int] = None


class CFFWriter:
    """Writes a subset of a CID-keyed CFF font containing the given glyphs."""

    def __init__(self, source: CFFont, sub: Sequence[SubsetGlyphs]) -> None:
        self._source = source
        self._sub = list(sub)
        self._output = bytearray()
        self._charsets = _OffsetPatch()
        self._fdselect = _OffsetPatch()
        self._charstrings = _OffsetPatch()
        self._fdarray = _OffsetPatch()

    def create(self) -> None:
        self._output = bytearray(b"\x01\x00\x04\x04")
        append_index_to(self._output, self._source.name)
        self._create_topdict()
        append_index_to(self._output, self._source.string)
        append_index_to(self._output, self._source.global_subr)
        self._charsets.value = len(self._output)
        self._append_charset()
        self._charstrings.value = len(self._output)
        self._append_charstrings()
        self._append_fdthings()
        for patch in (self._charsets, self._charstrings, self._fdselect, self._fdarray):
            self._write_fix(patch)

    def steal(self) -> bytes:
        result = bytes(self._output)
        self._output = bytearray()
        return result

    def _create_topdict(self) -> None:
        writer = CFFDictWriter()
        for op in _TOPDICT_OPERATORS:
            entry = self._source.find_command(op)
            if entry is None:
                raise UnsupportedFormat(f"source top dictionary lacks {op.name}")
            writer.append_item(entry)
        data, offsets = writer.steal()
        (dict_start,) = append_index_to(self._output, [data])
        # Skip the operand prefix byte to reach the 32-bit value.
        self._fdarray.offset = offsets[8] + 1 + dict_start
        self._fdselect.offset = offsets[9] + 1 + dict_start
        self._charsets.offset = offsets[10] + 1 + dict_start
        self._charstrings.offset = offsets[11] + 1 + dict_start

    def _append_charset(self) -> None:
        self._output.append(0)
        for i in range(1, len(self._sub)):
            self._output += struct.pack(">H", i)

    def _append_charstrings(self) -> None:
        strings = self._source.char_strings.entries
        entries = []
        for glyph in self._sub:
            if not 0 <= glyph.gid < len(strings):
                raise IndexOutOfBounds(f"glyph {glyph.gid} not in font")
            entries.append(strings[glyph.gid])
        append_index_to(self._output, entries)

    def _serialize_fontdict(
        self, source_dict: CFFFontDict, private_buffer: bytearray
    ) -> tuple[bytes, Optional[int]]:
        writer = CFFDictWriter()
        dict_size = -1
        if source_dict.priv is not None:
            dict_size = _write_private_dict(private_buffer, source_dict.priv)
        for entry in source_dict.entries.entries:
            writer.append_item(entry)
        reference = None
        if source_dict.priv is not None:
            reference = writer.current_size() + 6
            # The offset is relative to the file start and patched afterwards.
            writer.append_command([dict_size, -1], DictOperator.PRIVATE)
        data, _ = writer.steal()
        return data, reference

    def _append_fdthings(self) -> None:
        fontdicts: list[bytes] = []
        private_buffer = bytearray()
        private_offsets: list[int] = []
        references: list[Optional[int]] = []
        for source_dict in self._source.fdarray:
            private_offsets.append(len(private_buffer))
            data, reference = self._serialize_fontdict(source_dict, private_buffer)
            fontdicts.append(data)
            references.append(reference)

        self._fdarray.value = len(self._output)
        index_positions = append_index_to(self._output, fontdicts)
        private_area_start = len(self._output)
        self._output += private_buffer

        for position, reference, private_offset in zip(
            index_positions, references, private_offsets
        ):
            if reference is None:
                continue
            location = position + reference
            if self._output[location : location + 4] != _PLACEHOLDER:
                raise RuntimeError("private dictionary reference is misplaced")
            self._output[location : location + 4] = struct.pack(
                ">I", private_area_start + private_offset
            )

        self._fdselect.value = len(self._output)
        ranges = _build_fdselect3(self._source, self._sub)
        self._output.append(3)
        self._output += struct.pack(">H", len(ranges))
        for rng in ranges:
            self._output += struct.pack(">HB", rng.first, rng.fd)
        self._output += struct.pack(">H", len(self._sub))

    def _write_fix(self, patch: _OffsetPatch) -> None:
        if patch.offset is None or patch.value is None:
            raise RuntimeError("offset patch was never filled in")
        if patch.offset + 4 >= len(self._output):
            raise RuntimeError("offset patch lies outside the output")
        self._output[patch.offset : patch.offset + 4] = struct.pack(">I", patch.value)


def subset_cff(font: CFFont, glyphs: Sequence[SubsetGlyphs]) -> bytes:
    """Return the bytes of a CFF font holding only ``glyphs``, in order."""
    writer = CFFWriter(font, glyphs)
    writer.create()
    return writer.steal()