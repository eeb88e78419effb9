import struct

import pytest

from capypdf.cff import (
    CFFCharsetRange2,
    CFFHeader,
    CFFSelectRange3,
    DictOperator,
    IndexOutOfBounds,
    MalformedFontFile,
    UnsupportedFormat,
    load_index,
    parse_cff_data,
    parse_cff_file,
    unpack_dictionary,
)

GLYPHS = [b"\x0e", b"\x8b\x0e", b"\x8c\x8c\x0e"]
SUBRS = [b"\x0b", b"\x8b\x0b"]


def _index(entries, off_size=1):
    if not entries:
        return b"\x00\x00"
    offsets = [1]
    for e in entries:
        offsets.append(offsets[-1] + len(e))
    out = struct.pack(">HB", len(entries), off_size)
    out += b"".join(o.to_bytes(off_size, "big") for o in offsets)
    return out + b"".join(entries)


def _dict(items):
    out = b""
    for operands, op in items:
        for v in operands:
            out += b"\x1d" + struct.pack(">i", v)
        op = int(op)
        out += bytes([0x0C, op & 0xFF]) if op > 0xFF else bytes([op])
    return out


def build_font(omit=(), extra=(), sentinel=None, header=bytes([1, 0, 4, 4])):
    name = _index([b"TestFont"])
    strings = _index([b"Adobe", b"Identity"])
    gsubrs = _index([])
    charstrings = _index(GLYPHS)
    subrs = _index(SUBRS)
    priv_probe = _dict([([0, 10], DictOperator.BLUE_VALUES), ([0], DictOperator.SUBRS)])
    priv0 = _dict([([0, 10], DictOperator.BLUE_VALUES), ([len(priv_probe)], DictOperator.SUBRS)])
    priv1 = _dict([([0, 20], DictOperator.BLUE_VALUES)])
    charset = b"\x02" + struct.pack(">HH", 1, 2)
    count = len(GLYPHS) if sentinel is None else sentinel
    fdselect = (
        b"\x03"
        + struct.pack(">H", 2)
        + struct.pack(">HB", 0, 0)
        + struct.pack(">HB", 2, 1)
        + struct.pack(">H", count)
    )

    def top(charset_off, cs_off, fda_off, fds_off):
        items = [
            ([391, 392, 0], DictOperator.ROS),
            ([393], DictOperator.FULL_NAME),
            ([charset_off], DictOperator.CHARSET),
            ([cs_off], DictOperator.CHAR_STRINGS),
            ([fda_off], DictOperator.FD_ARRAY),
            ([fds_off], DictOperator.FD_SELECT),
        ]
        items = [i for i in items if i[1] not in omit] + list(extra)
        return _index([_dict(items)])

    prefix = len(header) + len(name) + len(top(0, 0, 0, 0)) + len(strings) + len(gsubrs)
    charset_off = prefix
    cs_off = charset_off + len(charset)
    fds_off = cs_off + len(charstrings)
    p0_off = fds_off + len(fdselect)
    p1_off = p0_off + len(priv0) + len(subrs)
    fda_off = p1_off + len(priv1)
    fdarray = _index(
        [
            _dict([([394], DictOperator.FONT_NAME), ([len(priv0), p0_off], DictOperator.PRIVATE)]),
            _dict([([395], DictOperator.FONT_NAME), ([len(priv1), p1_off], DictOperator.PRIVATE)]),
        ]
    )
    return (
        header
        + name
        + top(charset_off, cs_off, fda_off, fds_off)
        + strings
        + gsubrs
        + charset
        + charstrings
        + fdselect
        + priv0
        + subrs
        + priv1
        + fdarray
    )


def test_parse_indexes():
    font = parse_cff_data(build_font())
    assert font.header == CFFHeader(1, 0, 4, 4)
    assert font.name.entries == [b"TestFont"]
    assert font.string.entries == [b"Adobe", b"Identity"]
    assert font.global_subr.entries == []
    assert font.char_strings.entries == GLYPHS
    assert len(font.char_strings) == len(GLYPHS)


def test_parse_top_dict():
    font = parse_cff_data(build_font())
    assert font.find_command(DictOperator.ROS).operand == [391, 392, 0]
    assert font.find_command(DictOperator.FULL_NAME).operand == [393]
    assert font.find_command(DictOperator.WEIGHT) is None
    assert font.top_dict.find(DictOperator.ROS) is font.find_command(DictOperator.ROS)


def test_parse_fdarray_and_private():
    font = parse_cff_data(build_font())
    assert len(font.fdarray) == 2
    first, second = font.fdarray
    assert first.entries.find(DictOperator.FONT_NAME).operand == [394]
    assert first.entries.find(DictOperator.PRIVATE) is None
    assert first.priv.subr.entries == SUBRS
    assert first.priv.entries.find(DictOperator.BLUE_VALUES).operand == [0, 10]
    assert first.priv.entries.find(DictOperator.SUBRS) is None
    assert second.priv.subr is None
    assert second.priv.entries.find(DictOperator.BLUE_VALUES).operand == [0, 20]


def test_parse_charset_and_fdselect():
    font = parse_cff_data(build_font())
    assert font.charsets == [CFFCharsetRange2(1, 2)]
    assert font.fdselect == [CFFSelectRange3(0, 0), CFFSelectRange3(2, 1)]


def test_get_fontdict_id():
    font = parse_cff_data(build_font())
    assert font.get_fontdict_id(0) == 0
    assert font.get_fontdict_id(1) == 0
    assert font.get_fontdict_id(2) == 1
    assert font.get_fontdict_id(40) == 1


def test_parse_file(tmp_path):
    path = tmp_path / "font.cff"
    data = build_font()
    path.write_bytes(data)
    font = parse_cff_file(path)
    assert font.original_data == data
    assert font.char_strings.entries == GLYPHS


def test_bad_version():
    with pytest.raises(UnsupportedFormat):
        parse_cff_data(build_font(header=bytes([2, 0, 4, 4])))


def test_bad_header_size():
    with pytest.raises(MalformedFontFile):
        parse_cff_data(build_font(header=bytes([1, 0, 5, 4])))


def test_bad_header_offsize():
    with pytest.raises(MalformedFontFile):
        parse_cff_data(build_font(header=bytes([1, 0, 4, 0])))


def test_truncated_header():
    with pytest.raises(IndexOutOfBounds):
        parse_cff_data(b"\x01\x00")


@pytest.mark.parametrize(
    "op",
    [DictOperator.CHAR_STRINGS, DictOperator.CHARSET, DictOperator.FD_ARRAY, DictOperator.FD_SELECT],
)
def test_missing_required_entries(op):
    with pytest.raises(UnsupportedFormat):
        parse_cff_data(build_font(omit=(op,)))


def test_encoding_rejected():
    with pytest.raises(UnsupportedFormat):
        parse_cff_data(build_font(extra=[([0], DictOperator.ENCODING)]))


def test_fdselect_sentinel_mismatch():
    with pytest.raises(MalformedFontFile):
        parse_cff_data(build_font(sentinel=len(GLYPHS) + 1))


def test_unpack_small_operands():
    d = unpack_dictionary(bytes([139, 247, 0, 251, 0, 17]))
    assert len(d.entries) == 1
    assert d.entries[0].operand == [0, 108, -108]
    assert d.entries[0].opr == DictOperator.CHAR_STRINGS


def test_unpack_roundtrip_int32():
    items = [([-1, 70000], DictOperator.FONT_BBOX), ([5], DictOperator.FD_ARRAY)]
    d = unpack_dictionary(_dict(items))
    assert [(e.operand, e.opr) for e in d.entries] == items


def test_unpack_two_byte_operator():
    d = unpack_dictionary(bytes([0x0C, 0x26]))
    assert d.entries[0].opr is DictOperator.FONT_NAME
    assert d.entries[0].operand == []


def test_unpack_unknown_operator_kept_as_int():
    d = unpack_dictionary(bytes([0x0C, 0x0F]))
    assert d.entries[0].opr == 0x0C0F
    assert not isinstance(d.entries[0].opr, DictOperator)


def test_unpack_real_number():
    d = unpack_dictionary(bytes([30, 0x12, 0x3F, 0]))
    assert d.entries[0].operand == [-1]
    assert d.entries[0].opr == DictOperator.VERSION


def test_unpack_trailing_operand():
    with pytest.raises(MalformedFontFile):
        unpack_dictionary(bytes([139]))


def test_unpack_truncated():
    with pytest.raises(IndexOutOfBounds):
        unpack_dictionary(bytes([28, 1]))


def test_load_empty_index():
    index, offset = load_index(b"\x00\x00", 0)
    assert index.entries == []
    assert offset == 0


@pytest.mark.parametrize("off_size", [1, 2, 3, 4])
def test_load_index_roundtrip(off_size):
    entries = [b"abc", b"", b"defgh"]
    blob = b"xx" + _index(entries, off_size)
    index, offset = load_index(blob, 2)
    assert index.entries == entries
    assert offset == len(blob)


def test_load_index_bad_offsize():
    with pytest.raises(MalformedFontFile):
        load_index(struct.pack(">HB", 1, 6) + bytes(20), 0)
    with pytest.raises(MalformedFontFile):
        load_index(struct.pack(">HB", 1, 5) + bytes(20), 0)


def test_load_index_zero_offset():
    with pytest.raises(MalformedFontFile):
        load_index(struct.pack(">HB", 1, 1) + bytes([0, 1]) + b"x", 0)


def test_load_index_decreasing_offsets():
    with pytest.raises(MalformedFontFile):
        load_index(struct.pack(">HB", 2, 1) + bytes([1, 3, 2]) + b"ab", 0)


def test_load_index_truncated():
    with pytest.raises(IndexOutOfBounds):
        load_index(b"\x00", 0)
    with pytest.raises(IndexOutOfBounds):
        load_index(struct.pack(">HB", 3, 1) + bytes([1]), 0)