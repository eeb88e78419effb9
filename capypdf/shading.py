"""Binary stream data for mesh-based shadings (types 4 and 6)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Union

from .docprops import DeviceCMYKColor, DeviceColorspace, DeviceGrayColor, DeviceRGBColor


class ShadingError(ValueError):
    """Base class for errors raised while serialising shadings."""


class ColorOutOfRange(ShadingError):
    """A value that must lie in [0, 1] does not."""


class ColorspaceMismatch(ShadingError):
    """A colour does not match the colour space of its shading."""


Color = Union[DeviceRGBColor, DeviceGrayColor, DeviceCMYKColor]

_COLOR_TYPES = {
    DeviceColorspace.RGB: DeviceRGBColor,
    DeviceColorspace.GRAY: DeviceGrayColor,
    DeviceColorspace.CMYK: DeviceCMYKColor,
}

_CHANNELS = {
    DeviceColorspace.RGB: 3,
    DeviceColorspace.GRAY: 1,
    DeviceColorspace.CMYK: 4,
}

_COORD_BYTES = 4
_COMPONENT_BYTES = 2


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class ShadingPoint:
    p: Point
    c: Color


@dataclass(frozen=True)
class ShadingElement:
    """One vertex of a free-form triangle mesh, with its edge flag (0-2)."""

    sp: ShadingPoint
    flag: int


@dataclass
class ShadingType4:
    minx: float
    miny: float
    maxx: float
    maxy: float
    colorspace: DeviceColorspace
    elements: list[ShadingElement] = field(default_factory=list)


@dataclass(frozen=True)
class FullCoonsPatch:
    """A Coons patch given by its 12 control points and 4 corner colours."""

    p: tuple[Point, ...]
    c: tuple[Color, ...]

    def __post_init__(self) -> None:
        if len(self.p) != 12:
            raise ShadingError("a Coons patch needs exactly 12 points")
        if len(self.c) != 4:
            raise ShadingError("a Coons patch needs exactly 4 colours")


@dataclass
class ShadingType6:
    minx: float
    miny: float
    maxx: float
    maxy: float
    colorspace: DeviceColorspace
    elements: list[FullCoonsPatch] = field(default_factory=list)


Shading = Union[ShadingType4, ShadingType6]


def pack_unit_value(value: float, nbytes: int) -> bytes:
    """Scale a value in [0, 1] to the full unsigned range of ``nbytes`` big-endian bytes."""
    if value < 0 or value > 1.0:
        raise ColorOutOfRange(f"value {value} is outside [0, 1]")
    maximum = (1 << (8 * nbytes)) - 1
    return int(maximum * value).to_bytes(nbytes, "big")


def _ratio(value: float, low: float, high: float) -> float:
    if high == low:
        raise ShadingError("shading bounds have zero extent")
    return min(max((value - low) / (high - low), 0.0), 1.0)


def _pack_point(shade: Shading, point: Point) -> bytes:
    return pack_unit_value(
        _ratio(point.x, shade.minx, shade.maxx), _COORD_BYTES
    ) + pack_unit_value(_ratio(point.y, shade.miny, shade.maxy), _COORD_BYTES)


def _components(color: Color) -> tuple[float, ...]:
    if isinstance(color, DeviceRGBColor):
        return (color.r, color.g, color.b)
    if isinstance(color, DeviceGrayColor):
        return (color.v,)
    if isinstance(color, DeviceCMYKColor):
        return (color.c, color.m, color.y, color.k)
    raise TypeError(f"unsupported colour type {type(color).__name__}")


def _pack_color(shade: Shading, color: Color) -> bytes:
    components = _components(color)
    expected = _COLOR_TYPES[DeviceColorspace(shade.colorspace)]
    if not isinstance(color, expected):
        raise ColorspaceMismatch(
            f"{type(color).__name__} in a {DeviceColorspace(shade.colorspace).name} shading"
        )
    return b"".join(pack_unit_value(v, _COMPONENT_BYTES) for v in components)


def serialize_shade4(shade: ShadingType4) -> bytes:
    """Encode a type 4 shading's vertices (8-bit flag, 32-bit coords, 16-bit colours)."""
    out = bytearray()
    for element in shade.elements:
        if not 0 <= element.flag < 3:
            raise ShadingError(f"invalid edge flag {element.flag}")
        out.append(element.flag)
        out += _pack_point(shade, element.sp.p)
        out += _pack_color(shade, element.sp.c)
    return bytes(out)


def serialize_shade6(shade: ShadingType6) -> bytes:
    """Encode a type 6 shading's patches; every patch is written as a full patch."""
    out = bytearray()
    for patch in shade.elements:
        if not isinstance(patch, FullCoonsPatch):
            raise ShadingError("only full Coons patches are supported")
        out.append(0)
        for point in patch.p:
            out += _pack_point(shade, point)
        for color in patch.c:
            out += _pack_color(shade, color)
    return bytes(out)


def decode_ranges(shade: Shading) -> list[float]:
    """Return the /Decode array for a mesh shading."""
    channels = _CHANNELS[DeviceColorspace(shade.colorspace)]
    return [shade.minx, shade.maxx, shade.miny, shade.maxy] + [0.0, 1.0] * channels