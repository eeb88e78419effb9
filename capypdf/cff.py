"""Parsing of CID-keyed CFF font data."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Iterator, Optional, Union


class CFFError(ValueError):
    """Base class for errors raised while reading CFF data."""


class MalformedFontFile(CFFError):
    """The font data violates the CFF format."""


class UnsupportedFormat(CFFError):
    """The font data uses a CFF feature that is not supported."""


class IndexOutOfBounds(CFFError):
    """A read went past the end of the font data."""


class DictOperator(IntEnum):
    """Operators of CFF top, font and private dictionaries."""

    VERSION = 0
    NOTICE = 1
    FULL_NAME = 2
    FAMILY_NAME = 3
    WEIGHT = 4
    FONT_BBOX = 5
    BLUE_VALUES = 6
    OTHER_BLUES = 7
    FAMILY_BLUES = 8
    FAMILY_OTHER_BLUES = 9
    STD_HW = 10
    STD_VW = 11
    ESCAPE = 12
    UNIQUE_ID = 13
    XUID = 14
    CHARSET = 15
    ENCODING = 16
    CHAR_STRINGS = 17
    PRIVATE = 18
    SUBRS = 19
    DEFAULT_WIDTH_X = 20
    NOMINAL_WIDTH_X = 21

    COPYRIGHT = 0x0C00
    IS_FIXED_PITCH = 0x0C01
    ITALIC_ANGLE = 0x0C02
    UNDERLINE_POSITION = 0x0C03
    UNDERLINE_THICKNESS = 0x0C04
    PAINT_TYPE = 0x0C05
    CHARSTRING_TYPE = 0x0C06
    FONT_MATRIX = 0x0C07
    STROKE_WIDTH = 0x0C08
    BLUE_SCALE = 0x0C09
    BLUE_SHIFT = 0x0C0A
    BLUE_FUZZ = 0x0C0B
    STEM_SNAP_H = 0x0C0C
    STEM_SNAP_V = 0x0C0D
    FORCE_BOLD = 0x0C0E

    LANGUAGE_GROUP = 0x0C11
    EXPANSION_FACTOR = 0x0C12
    INITIAL_RANDOM_SEED = 0x0C13
    SYNTHETIC_BASE = 0x0C14
    POST_SCRIPT = 0x0C15
    BASE_FONT_NAME = 0x0C16
    BASE_FONT_BLEND = 0x0C17

    ROS = 0x0C1E
    CID_FONT_VERSION = 0x0C1F
    CID_FONT_REVISION = 0x0C20
    CID_FONT_TYPE = 0x0C21
    CID_COUNT = 0x0C22
    UID_BASE = 0x0C23
    FD_ARRAY = 0x0C24
    FD_SELECT = 0x0C25
    FONT_NAME = 0x0C26


Operator = Union[DictOperator, int]


@dataclass
class CFFHeader:
    major: int
    minor: int
    hdrsize: int
    offsize: int


@dataclass
class CFFIndex:
    entries: list[bytes] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.entries)


@dataclass
class CFFDictItem:
    operand: list[int]
    opr: Operator


@dataclass
class CFFDict:
    entries: list[CFFDictItem] = field(default_factory=list)

    def find(self, op: Operator) -> Optional[CFFDictItem]:
        """Return the first entry with operator ``op``, or None."""
        return next((e for e in self.entries if e.opr == op), None)


@dataclass
class CFFSelectRange3:
    first: int
    fd: int


@dataclass
class CFFCharsetRange2:
    first: int
    n_left: int


@dataclass
class CFFPrivateDict:
    entries: CFFDict = field(default_factory=CFFDict)
    subr: Optional[CFFIndex] = None


@dataclass
class CFFFontDict:
    entries: CFFDict = field(default_factory=CFFDict)
    priv: Optional[CFFPrivateDict] = None


@dataclass
class SubsetGlyphs:
    codepoint: int
    gid: int


@dataclass
class CFFont:
    original_data: bytes = b""
    header: Optional[CFFHeader] = None
    name: CFFIndex = field(default_factory=CFFIndex)
    top_dict_data: CFFIndex = field(default_factory=CFFIndex)
    top_dict: CFFDict = field(default_factory=CFFDict)
    string: CFFIndex = field(default_factory=CFFIndex)
    global_subr: CFFIndex = field(default_factory=CFFIndex)
    char_strings: CFFIndex = field(default_factory=CFFIndex)
    charsets: list[CFFCharsetRange2] = field(default_factory=list)
    pdict: CFFDict = field(default_factory=CFFDict)
    fdarray: list[CFFFontDict] = field(default_factory=list)
    fdselect: list[CFFSelectRange3] = field(default_factory=list)

    def find_command(self, op: Operator) -> Optional[CFFDictItem]:
        """Look up an operator in the top dictionary."""
        return self.top_dict.find(op)

    def get_fontdict_id(self, glyph_id: int) -> int:
        """Return the font dictionary index that the glyph uses."""
        if not self.fdselect:
            raise UnsupportedFormat("font has no FDSelect ranges")
        previous: Optional[CFFSelectRange3] = None
        for rng in self.fdselect:
            if rng.first == glyph_id:
                return rng.fd
            if rng.first > glyph_id:
                if previous is None:
                    raise MalformedFontFile("glyph precedes the first FDSelect range")
                return previous.fd
            previous = rng
        return self.fdselect[-1].fd


def _read(data: bytes, offset: int, fmt: str) -> tuple:
    size = struct.calcsize(fmt)
    if offset < 0 or offset + size > len(data):
        raise IndexOutOfBounds(f"cannot read {size} bytes at offset {offset}")
    return struct.unpack_from(fmt, data, offset)


def _subspan(data: bytes, offset: int, size: int) -> bytes:
    if offset < 0 or size < 0 or offset + size > len(data):
        raise IndexOutOfBounds(f"range {offset}+{size} exceeds data")
    return data[offset : offset + size]


def _index_offset(data: bytes, offset: int, off_size: int) -> int:
    if len(data) <= offset + off_size:
        raise IndexOutOfBounds(f"index offset at {offset} exceeds data")
    if off_size not in (1, 2, 3, 4):
        raise MalformedFontFile(f"invalid index offset size {off_size}")
    return int.from_bytes(data[offset : offset + off_size], "big")


def load_index(data: bytes, offset: int) -> tuple[CFFIndex, int]:
    """Read an INDEX at ``offset``; return it and the offset just past it."""
    data = bytes(data)
    (count,) = _read(data, offset, ">H")
    if count == 0:
        return CFFIndex(), offset
    offset += 2
    (off_size,) = _read(data, offset, ">B")
    offset += 1
    if off_size > 5:
        raise MalformedFontFile(f"invalid index offset size {off_size}")
    offsets: list[int] = []
    for _ in range(count + 1):
        value = _index_offset(data, offset, off_size)
        if value <= 0:
            raise MalformedFontFile("index offset must be positive")
        if offsets and offsets[-1] > value:
            raise MalformedFontFile("index has an entry with negative size")
        offsets.append(value)
        offset += off_size
    offset -= 1
    entries = []
    for start, end in zip(offsets, offsets[1:]):
        if offset + end > len(data):
            raise MalformedFontFile("index entry exceeds data")
        entries.append(_subspan(data, offset + start, end - start))
    return CFFIndex(entries), offset + offsets[-1]


def _take(stream: Iterator[int]) -> int:
    value = next(stream, None)
    if value is None:
        raise IndexOutOfBounds("dictionary data ends in the middle of a value")
    return value


def _operator(value: int) -> Operator:
    try:
        return DictOperator(value)
    except ValueError:
        return value


def unpack_dictionary(data: bytes) -> CFFDict:
    """Decode a CFF DICT into its operator entries."""
    entries: list[CFFDictItem] = []
    operands: list[int] = []
    stream = iter(bytes(data))
    for b0 in stream:
        if b0 <= 21:
            op = b0
            if b0 == 0x0C:
                op = b0 << 8 | _take(stream)
            entries.append(CFFDictItem(operands, _operator(op)))
            operands = []
        elif 32 <= b0 <= 246:
            operands.append(b0 - 139)
        elif 247 <= b0 <= 250:
            operands.append((b0 - 247) * 256 + _take(stream) + 108)
        elif 251 <= b0 <= 254:
            operands.append(-(b0 - 251) * 256 - _take(stream) - 108)
        elif b0 == 28:
            high = _take(stream)
            operands.append(high << 8 | _take(stream))
        elif b0 == 29:
            raw = bytes([_take(stream), _take(stream), _take(stream), _take(stream)])
            operands.append(int.from_bytes(raw, "big", signed=True))
        elif b0 == 30:
            # Real numbers are skipped; their value is not decoded.
            while _take(stream) & 0xF != 0xF:
                pass
            operands.append(-1)
    if operands:
        raise MalformedFontFile("dictionary ends with operands but no operator")
    return CFFDict(entries)


def _unpack_charsets(data: bytes) -> list[CFFCharsetRange2]:
    if not data:
        raise MalformedFontFile("empty charset")
    fmt = data[0]
    if fmt == 0:
        return []
    if fmt == 1:
        raise UnsupportedFormat("charset format 1 is not supported")
    first, n_left = _read(data, 1, ">HH")
    return [CFFCharsetRange2(first, n_left)]


def _unpack_fdselect(data: bytes, num_glyphs: int) -> list[CFFSelectRange3]:
    if not data:
        raise IndexOutOfBounds("empty FDSelect")
    fmt = data[0]
    if fmt != 3:
        return []
    offset = 1
    (num_ranges,) = _read(data, offset, ">H")
    offset += 2
    ranges = []
    for _ in range(num_ranges):
        first, fd = _read(data, offset, ">HB")
        offset += 3
        ranges.append(CFFSelectRange3(first, fd))
    (sentinel,) = _read(data, offset, ">H")
    if sentinel != num_glyphs:
        raise MalformedFontFile("FDSelect sentinel does not match glyph count")
    return ranges


def _load_private_dict(data: bytes, dict_offset: int, dict_size: int) -> CFFPrivateDict:
    if dict_offset < 0 or dict_size < 0 or dict_offset + dict_size > len(data):
        raise MalformedFontFile("private dictionary exceeds data")
    raw = unpack_dictionary(_subspan(data, dict_offset, dict_size))
    pdict = CFFPrivateDict()
    for entry in raw.entries:
        if entry.opr == DictOperator.SUBRS:
            if not entry.operand:
                raise MalformedFontFile("Subrs entry without operand")
            pdict.subr, _ = load_index(data, dict_offset + entry.operand[0])
        else:
            pdict.entries.entries.append(entry)
    return pdict


def _load_fdarray_entry(data: bytes, dict_data: bytes) -> CFFFontDict:
    fdict = CFFFontDict()
    for entry in unpack_dictionary(dict_data).entries:
        if entry.opr == DictOperator.PRIVATE:
            if len(entry.operand) != 2:
                raise MalformedFontFile("Private entry needs size and offset")
            size, offset = entry.operand
            fdict.priv = _load_private_dict(data, offset, size)
        else:
            fdict.entries.entries.append(entry)
    return fdict


def parse_cff_data(data: bytes) -> CFFont:
    """Parse a CID-keyed CFF font from memory."""
    data = bytes(data)
    font = CFFont(original_data=data)
    header = CFFHeader(*_read(data, 0, ">BBBB"))
    if header.major != 1 or header.minor != 0:
        raise UnsupportedFormat(f"unsupported CFF version {header.major}.{header.minor}")
    font.header = header
    if header.hdrsize != 4:
        raise MalformedFontFile("invalid header size")
    if header.offsize == 0 or header.offsize >= 5:
        raise MalformedFontFile("invalid header offset size")

    offset = header.hdrsize
    font.name, offset = load_index(data, offset)
    font.top_dict_data, offset = load_index(data, offset)
    if not font.top_dict_data.entries:
        raise MalformedFontFile("empty top dictionary index")
    font.top_dict = unpack_dictionary(font.top_dict_data.entries[0])
    if not font.top_dict.entries:
        raise MalformedFontFile("empty top dictionary")
    font.string, offset = load_index(data, offset)
    font.global_subr, offset = load_index(data, offset)

    cse = font.find_command(DictOperator.CHAR_STRINGS)
    if cse is None or len(cse.operand) != 1:
        raise UnsupportedFormat("missing or invalid CharStrings entry")
    font.char_strings, _ = load_index(data, cse.operand[0])

    if font.find_command(DictOperator.ENCODING) is not None:
        raise UnsupportedFormat("only CID-keyed fonts are supported")

    cste = font.find_command(DictOperator.CHARSET)
    if cste is None:
        raise UnsupportedFormat("missing charset entry")
    if len(cste.operand) != 1:
        raise MalformedFontFile("invalid charset entry")
    charset_offset = cste.operand[0]
    if charset_offset < 0 or charset_offset > len(data):
        raise MalformedFontFile("charset offset exceeds data")
    font.charsets = _unpack_charsets(data[charset_offset:])

    priv = font.find_command(DictOperator.PRIVATE)
    if priv is not None:
        if not priv.operand:
            raise MalformedFontFile("Private entry without operands")
        pdata, _ = load_index(data, priv.operand[0])
        if not pdata.entries:
            raise MalformedFontFile("empty private dictionary")
        font.pdict = unpack_dictionary(pdata.entries[0])

    fda = font.find_command(DictOperator.FD_ARRAY)
    fds = font.find_command(DictOperator.FD_SELECT)
    if fda is None or not fda.operand:
        raise UnsupportedFormat("missing FDArray entry")
    if fds is None or not fds.operand:
        raise UnsupportedFormat("missing FDSelect entry")
    fdarray_index, _ = load_index(data, fda.operand[0])
    font.fdarray = [_load_fdarray_entry(data, entry) for entry in fdarray_index]

    fdselect_offset = fds.operand[0]
    if fdselect_offset < 0 or fdselect_offset > len(data):
        raise MalformedFontFile("FDSelect offset exceeds data")
    font.fdselect = _unpack_fdselect(data[fdselect_offset:], len(font.char_strings))
    return font


def parse_cff_file(path: Union[str, Path]) -> CFFont:
    """Read and parse a CFF font file."""
    return parse_cff_data(Path(path).read_bytes())