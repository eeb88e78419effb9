# capypdf

Pure-Python building blocks for writing PDF files. It has no dependencies
outside the standard library.

## Modules

### `capypdf.cff`: reading CID-keyed CFF fonts

- `parse_cff_data(data)` parses a CFF font held in memory and
  `parse_cff_file(path)` reads one from disk. Both return a `CFFont` with
  its header, name, string, global subroutine and charstring indexes
  (`CFFIndex`), the decoded top dictionary (`CFFDict`), the font
  dictionaries (`fdarray`, a list of `CFFFontDict`, each with an optional
  `CFFPrivateDict` and its local subroutines) and the FDSelect ranges.
- Only CID-keyed fonts are accepted: a font with an `Encoding` entry, without
  `CharStrings`, `charset`, `FDArray` or `FDSelect`, or in a version other
  than 1.0 is rejected.
- `CFFont.find_command(op)` and `CFFDict.find(op)` look up a `DictOperator`;
  `CFFont.get_fontdict_id(glyph_id)` tells which font dictionary a glyph uses.
- `load_index(data, offset)` and `unpack_dictionary(data)` are the lower-level
  readers for CFF INDEX and DICT structures. Real-number operands are skipped
  and read as `-1`.

Errors are raised as subclasses of `CFFError` (itself a `ValueError`):
`MalformedFontFile`, `UnsupportedFormat` and `IndexOutOfBounds`.

### `capypdf.cff_writer`: writing subset fonts

- `subset_cff(font, glyphs)` returns the bytes of a new CFF font that holds
  only the glyphs in `glyphs` (a sequence of `SubsetGlyphs(codepoint, gid)`),
  in that order. The first entry should be glyph 0.
- `CFFWriter(font, glyphs)` does the same work step by step: `create()`,
  then `steal()` for the bytes.
- `CFFDictWriter` encodes dictionary entries with 32-bit integer operands;
  `append_index_to(output, entries)` appends an INDEX with 4-byte offsets to a
  `bytearray`.

The subset keeps the source font's name, strings, global subroutines, font
dictionaries and private dictionaries as they are and writes the FDSelect
table in format 3.

### `capypdf.docprops`: document and page properties

- `DocumentProperties` holds title, author, creator, language, tagging,
  output colour space, ICC profile paths, a PDF/X (`PdfxType`) or PDF/A
  (`PdfaType`) subtype and more. `version()` gives `PdfVersion.V20` for
  PDF/A-4 flavours and `PdfVersion.V17` otherwise; `use_rdf_metadata()` and
  `require_embedded_files()` are true for PDF/A-4. `compress_streams`
  defaults to false when the `CAPY_DEBUG_PDF` environment variable is set.
- `PageProperties` holds the page boxes, user unit and transparency
  properties; `merge_with(other)` returns a copy where the values set in
  `other` win. `PdfRectangle.a4()` is an A4 page in points.
- `pdfa_metadata_xml(pdfa)` returns the XMP packet declaring PDF/A part and
  conformance, `pdfx_version_name(pdfx)` the `GTS_PDFXVersion` string and
  `colorspace_name(cs)` the PDF name of a `DeviceColorspace`.
- `DeviceRGBColor`, `DeviceGrayColor` and `DeviceCMYKColor` are the colour
  values used elsewhere in the package.

### `capypdf.shading`: mesh shading streams

- `serialize_shade4(shade)` encodes a `ShadingType4` (free-form triangle mesh
  of `ShadingElement`s) and `serialize_shade6(shade)` a `ShadingType6` (a list
  of `FullCoonsPatch`es) as the binary stream data of a PDF shading: 8-bit
  flags, 32-bit coordinates scaled into the shading's bounds and 16-bit colour
  components.
- `decode_ranges(shade)` returns the matching `/Decode` array.
- `pack_unit_value(value, nbytes)` scales a value in [0, 1] to the full range
  of an unsigned big-endian integer of `nbytes` bytes.

Errors are `ShadingError` (a `ValueError`) and its subclasses
`ColorOutOfRange` and `ColorspaceMismatch`.

## Example

```python
from capypdf.cff import parse_cff_file, SubsetGlyphs
from capypdf.cff_writer import subset_cff
from capypdf.docprops import DeviceColorspace, DeviceGrayColor
from capypdf.shading import (
    Point, ShadingElement, ShadingPoint, ShadingType4,
    decode_ranges, serialize_shade4,
)

font = parse_cff_file("font.cff")
data = subset_cff(font, [SubsetGlyphs(0, 0), SubsetGlyphs(0x41, 34)])

shade = ShadingType4(0, 0, 100, 100, DeviceColorspace.GRAY, [
    ShadingElement(ShadingPoint(Point(0, 0), DeviceGrayColor(0.0)), 0),
    ShadingElement(ShadingPoint(Point(100, 0), DeviceGrayColor(0.5)), 0),
    ShadingElement(ShadingPoint(Point(50, 100), DeviceGrayColor(1.0)), 0),
])
stream = serialize_shade4(shade)
decode = decode_ranges(shade)
```

## What it does not do

The package provides pieces, not a PDF writer. It does not assemble PDF
objects, cross-reference tables or whole files, does not format page content
streams, lay out text, build outlines or document catalogs, and has no
command-line program. Fonts other than CID-keyed CFF cannot be parsed or
subset, and no colour management is done.

## Tests

```
pip install -e .[test]
pytest
```