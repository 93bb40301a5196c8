"""Page sizing policy.

One input always becomes exactly one page, so every document needs a size:

1. an explicit intrinsic size supplied by the caller;
2. the root ``width``/``height`` (a missing one is completed from the
   ``viewBox`` aspect ratio);
3. the ``viewBox`` dimensions;
4. the configured default (A4 unless told otherwise).

User units and ``px`` map to one point each, as the historical output did.
Absolute units convert to physical points. Relative units (``%``, ``em``,
``ex``) cannot be resolved without a viewport and count as absent.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping

from svgbinder.pipeline.error_handling import MarkupError
from svgbinder.types import A4, PageSize

_LENGTH_RE = re.compile(
    r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)\s*([A-Za-z%]*)\s*$"
)
_UNIT_POINTS: dict[str, float] = {
    "": 1.0,
    "px": 1.0,
    "pt": 1.0,
    "pc": 12.0,
    "in": 72.0,
    "cm": 72.0 / 2.54,
    "mm": 72.0 / 25.4,
}


def parse_length(value: str | None) -> float | None:
    """Convert an SVG length to points; None when absent, relative or not positive."""
    if value is None:
        return None
    match = _LENGTH_RE.match(value)
    if match is None:
        return None
    factor = _UNIT_POINTS.get(match.group(2).lower())
    if factor is None:
        return None
    points = float(match.group(1)) * factor
    return points if points > 0 else None


def parse_view_box(value: str | None) -> tuple[float, float, float, float] | None:
    if value is None:
        return None
    parts = [p for p in re.split(r"[\s,]+", value.strip()) if p]
    if len(parts) != 4:
        return None
    try:
        min_x, min_y, width, height = (float(p) for p in parts)
    except ValueError:
        return None
    if width <= 0 or height <= 0:
        return None
    return min_x, min_y, width, height


def declared_size(attributes: Mapping[str, str]) -> PageSize | None:
    """Size declared by root ``<svg>`` attributes, or None if it declares none."""
    width = parse_length(attributes.get("width"))
    height = parse_length(attributes.get("height"))
    view_box = parse_view_box(attributes.get("viewBox"))

    if width is not None and height is not None:
        return PageSize(width, height)
    if view_box is not None:
        _, _, vb_width, vb_height = view_box
        if width is not None:
            return PageSize(width, width * vb_height / vb_width)
        if height is not None:
            return PageSize(height * vb_width / vb_height, height)
        return PageSize(vb_width, vb_height)
    return None


def read_root_attributes(text: str) -> dict[str, str]:
    """Parse the document and return the attributes of its root ``<svg>`` element.

    Raises:
        MarkupError: If the markup is not well-formed or the root is not ``<svg>``
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise MarkupError(reason="markup is not well-formed", cause=exc) from exc
    local_name = root.tag.rpartition("}")[2]
    if local_name != "svg":
        raise MarkupError(reason=f"root element is <{local_name}>, expected <svg>")
    return dict(root.attrib)


def resolve_page_size(
    text: str,
    intrinsic_size: PageSize | None = None,
    *,
    default: PageSize = A4,
) -> PageSize:
    if intrinsic_size is not None:
        return intrinsic_size
    return declared_size(read_root_attributes(text)) or default


__all__ = [
    "declared_size",
    "parse_length",
    "parse_view_box",
    "read_root_attributes",
    "resolve_page_size",
]
