"""Building blocks for PDF generation: CFF font parsing and subsetting, document properties and mesh shadings."""

__version__ = "0.16.99"

__all__ = [
    "cff",
    "cff_writer",
    "docprops",
    "shading",
]