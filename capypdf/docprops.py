"""Document-wide and page-level properties of a generated PDF."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Optional, Union


class DeviceColorspace(IntEnum):
    RGB = 0
    GRAY = 1
    CMYK = 2


_COLORSPACE_NAMES = ("/DeviceRGB", "/DeviceGray", "/DeviceCMYK")


@dataclass(frozen=True)
class DeviceRGBColor:
    r: float
    g: float
    b: float


@dataclass(frozen=True)
class DeviceGrayColor:
    v: float


@dataclass(frozen=True)
class DeviceCMYKColor:
    c: float
    m: float
    y: float
    k: float


class PdfxType(IntEnum):
    X1_2001 = 0
    X1A_2001 = 1
    X1A_2003 = 2
    X3_2002 = 3
    X3_2003 = 4
    X4 = 5
    X4P = 6
    X5G = 7
    X5PG = 8


_PDFX_NAMES = (
    "PDF/X-1:2001",
    "PDF/X-1a:2001",
    "PDF/X-1a:2003",
    "PDF/X-3:2002",
    "PDF/X-3:2003",
    "PDF/X-4",
    "PDF/X-4p",
    "PDF/X-5g",
    "PDF/X-5pg",
)


class PdfaType(IntEnum):
    A1A = 0
    A1B = 1
    A2A = 2
    A2B = 3
    A2U = 4
    A3A = 5
    A3B = 6
    A3U = 7
    A4F = 8
    A4E = 9


_PDFA_PART = "1122233344"
_PDFA_CONFORMANCE = "ABABUABUFE"


class PdfVersion(Enum):
    V17 = "1.7"
    V20 = "2.0"


_PDFA_RDF_TEMPLATE = """<?xpacket begin="{magic}" id="W5M0MpCehiHzreSzNTczkc9d"?>
<x:xmpmeta xmlns:x="adobe:ns:meta/">
 <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
  <rdf:Description rdf:about="" xmlns:pdfaid="http://www.aiim.org/pdfa/ns/id/">
   <pdfaid:part>{part}</pdfaid:part>
   <pdfaid:conformance>{conformance}</pdfaid:conformance>
  </rdf:Description>
 </rdf:RDF>
</x:xmpmeta>
<?xpacket end="w"?>
"""

# The byte order mark, which encodes to EF BB BF in UTF-8.
_RDF_MAGIC = "\ufeff"


@dataclass(frozen=True)
class PdfRectangle:
    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def a4(cls) -> "PdfRectangle":
        """An A4 page in points."""
        return cls(0.0, 0.0, 595.28, 841.89)

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1


@dataclass
class PageProperties:
    mediabox: Optional[PdfRectangle] = None
    cropbox: Optional[PdfRectangle] = None
    bleedbox: Optional[PdfRectangle] = None
    trimbox: Optional[PdfRectangle] = None
    artbox: Optional[PdfRectangle] = None
    user_unit: Optional[float] = None
    transparency_props: Optional[Any] = None

    def merge_with(self, other: "PageProperties") -> "PageProperties":
        """Return a copy where every value set in ``other`` overrides this one."""
        overrides = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name) is not None
        }
        return replace(self, **overrides)


def _default_page_properties() -> PageProperties:
    return PageProperties(mediabox=PdfRectangle.a4())


def _compress_by_default() -> bool:
    return os.environ.get("CAPY_DEBUG_PDF") is None


@dataclass
class DocumentProperties:
    default_page_properties: PageProperties = field(default_factory=_default_page_properties)
    title: str = ""
    author: str = ""
    creator: str = ""
    lang: str = ""
    is_tagged: bool = False
    output_colorspace: DeviceColorspace = DeviceColorspace.RGB
    rgb_profile_file: Optional[Path] = None
    gray_profile_file: Optional[Path] = None
    cmyk_profile_file: Optional[Path] = None
    subtype: Union[None, PdfxType, PdfaType] = None
    metadata_xml: str = ""
    intent_condition_identifier: str = ""
    compress_streams: bool = field(default_factory=_compress_by_default)

    def _is_pdfa4(self) -> bool:
        return isinstance(self.subtype, PdfaType) and self.subtype >= PdfaType.A4F

    def version(self) -> PdfVersion:
        return PdfVersion.V20 if self._is_pdfa4() else PdfVersion.V17

    def use_rdf_metadata(self) -> bool:
        return self._is_pdfa4()

    def require_embedded_files(self) -> bool:
        return self._is_pdfa4()


def pdfa_metadata_xml(pdfa: PdfaType) -> str:
    """Return the XMP packet that declares PDF/A conformance."""
    pdfa = PdfaType(pdfa)
    return _PDFA_RDF_TEMPLATE.format(
        magic=_RDF_MAGIC,
        part=_PDFA_PART[pdfa],
        conformance=_PDFA_CONFORMANCE[pdfa],
    )


def pdfx_version_name(pdfx: PdfxType) -> str:
    """Return the GTS_PDFXVersion value for a PDF/X flavour."""
    return _PDFX_NAMES[PdfxType(pdfx)]


def colorspace_name(cs: DeviceColorspace) -> str:
    """Return the PDF name of a device colour space."""
    return _COLORSPACE_NAMES[DeviceColorspace(cs)]