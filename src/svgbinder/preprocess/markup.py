"""Rewrite embedded ``data:`` images into forms the renderer handles reliably.

Two rewrites are applied to ``<image>`` elements whose reference is a
``data:`` URI:

- ``image/svg+xml`` payloads are decoded and inlined as
  ``<g data-svgbinder="inlined"><svg …>…</svg></g>``, positioned with the
  image's geometry. Nested payloads are rewritten first. Past
  ``MAX_NESTING_DEPTH`` levels the element is kept as is and marked
  ``data-svgbinder="kept"``.
- raster payloads are re-encoded by Pillow and re-embedded as a single-line
  base64 URI, the element gaining ``data-svgbinder="normalized"``.

A payload that cannot be decoded leaves its element byte-identical and is
reported as a warning. Replacements are spliced at the original spans, so text
outside rewritten elements never changes.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from svgbinder.pipeline.error_handling import DecodeError, ErrorContext, ErrorManager, MarkupError
from svgbinder.preprocess.assets import (
    decode_payload,
    decode_svg_text,
    encode_data_uri,
    normalize_raster,
)
from svgbinder.preprocess.scanner import (
    MARKER_ATTR,
    Attribute,
    find_embedded_assets,
    find_svg_root,
    parse_start_tag,
)
from svgbinder.render.sizing import parse_length
from svgbinder.types import EmbeddedAsset

logger = logging.getLogger(__name__)

MAX_NESTING_DEPTH = 16

# Geometry attributes moved from the <image> onto the inlined <svg>
_GEOMETRY_ATTRS = ("x", "y", "width", "height", "preserveAspectRatio")


@dataclass
class PreprocessResult:
    text: str
    assets: list[EmbeddedAsset] = field(default_factory=list)
    normalized: int = 0
    kept: int = 0
    failures: list[DecodeError] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.normalized > 0 or self.kept > 0


def preprocess(raw_text: str) -> str:
    """Return ``raw_text`` with every decodable embedded image rewritten."""
    return preprocess_document(raw_text).text


def preprocess_document(raw_text: str, *, source: Path | None = None) -> PreprocessResult:
    """Rewrite embedded images and report what was found.

    Raises:
        MarkupError: If an ``<image>`` element is not terminated
    """
    manager = ErrorManager(ErrorContext(source_path=source, stage="preprocess"))
    return _preprocess(raw_text, source=source, manager=manager, depth=0)


def _preprocess(
    raw_text: str, *, source: Path | None, manager: ErrorManager, depth: int
) -> PreprocessResult:
    try:
        assets = find_embedded_assets(raw_text)
    except MarkupError as exc:
        raise MarkupError(source, reason=exc.reason, cause=exc.cause) from exc
    result = PreprocessResult(text=raw_text, assets=assets)
    if not assets:
        return result

    pieces: list[str] = []
    cursor = 0
    for asset in assets:
        if asset.mime_type == "image/svg+xml" and depth >= MAX_NESTING_DEPTH:
            replacement = _keep_too_deep(asset, result, source=source, manager=manager, depth=depth)
        else:
            try:
                replacement, nested_failures = _rewrite(asset, source=source, manager=manager, depth=depth)
            except DecodeError as exc:
                exc.path = source
                result.failures.append(exc)
                manager.warn(
                    "ASSET-001",
                    f"Embedded {asset.mime_type} image left untouched",
                    extra={"offset": asset.start, "scheme": asset.scheme},
                    exception=exc,
                )
                continue
            result.normalized += 1
            result.failures.extend(nested_failures)
        pieces.append(raw_text[cursor : asset.start])
        pieces.append(replacement)
        cursor = asset.end

    pieces.append(raw_text[cursor:])
    result.text = "".join(pieces)
    logger.debug(
        "Preprocessed %s: %d asset(s), %d rewritten, %d left untouched",
        source or "<memory>",
        len(assets),
        result.normalized,
        len(result.failures),
    )
    return result


def _keep_too_deep(
    asset: EmbeddedAsset,
    result: PreprocessResult,
    *,
    source: Path | None,
    manager: ErrorManager,
    depth: int,
) -> str:
    # The payload stays as is; the marker stops a later pass from retrying it
    result.kept += 1
    exc = DecodeError("embedded SVG nested too deeply", mime_type=asset.mime_type, path=source)
    result.failures.append(exc)
    manager.warn(
        "ASSET-002",
        "Embedded SVG nested too deeply, kept without inlining",
        extra={"offset": asset.start, "depth": depth, "limit": MAX_NESTING_DEPTH},
        exception=exc,
    )
    return _rewrite_start_tag(asset, marker="kept") + asset.element[asset.tag_end - asset.start :]


def _rewrite(
    asset: EmbeddedAsset, *, source: Path | None, manager: ErrorManager, depth: int
) -> tuple[str, list[DecodeError]]:
    data = decode_payload(asset)
    if asset.mime_type == "image/svg+xml":
        return _inline_svg(asset, decode_svg_text(data), source=source, manager=manager, depth=depth)

    mime_type, normalized = normalize_raster(data, asset.mime_type)
    start_tag = _rewrite_start_tag(asset, marker="normalized", href=encode_data_uri(mime_type, normalized))
    return start_tag + asset.element[asset.tag_end - asset.start :], []


def _rewrite_start_tag(asset: EmbeddedAsset, *, marker: str, href: str | None = None) -> str:
    tag = parse_start_tag(asset.start_tag)
    parts = [f"<{tag.name}"]
    for attribute in tag.attributes:
        if href is not None and attribute.local_name == "href" and attribute.value.lstrip().startswith("data:"):
            attribute = Attribute(attribute.name, href, '"')
        parts.append(attribute.render())
    parts.append(f' {MARKER_ATTR}="{marker}"')
    parts.append("/>" if tag.self_closing else ">")
    return "".join(parts)


def _inline_svg(
    asset: EmbeddedAsset,
    svg_text: str,
    *,
    source: Path | None,
    manager: ErrorManager,
    depth: int,
) -> tuple[str, list[DecodeError]]:
    try:
        root = ET.fromstring(svg_text)
    except ET.ParseError as exc:
        raise DecodeError("embedded SVG is not well-formed", mime_type=asset.mime_type, cause=exc) from exc
    if root.tag.rpartition("}")[2] != "svg":
        raise DecodeError("embedded document is not SVG", mime_type=asset.mime_type)

    try:
        inner = _preprocess(svg_text, source=source, manager=manager, depth=depth + 1)
        svg_tag, body = find_svg_root(inner.text)
    except MarkupError as exc:
        raise DecodeError("embedded SVG is malformed", mime_type=asset.mime_type, cause=exc) from exc

    image = parse_start_tag(asset.start_tag)
    geometry = {a.name: a for a in image.attributes if a.name in _GEOMETRY_ATTRS}

    svg_attrs = [a for a in svg_tag.attributes if a.name not in geometry]
    if svg_tag.get("viewBox") is None and ("width" in geometry or "height" in geometry):
        own_width = _user_units(svg_tag.get("width"))
        own_height = _user_units(svg_tag.get("height"))
        if own_width is not None and own_height is not None:
            svg_attrs.append(Attribute("viewBox", f"0 0 {own_width:g} {own_height:g}"))
    svg_attrs.extend(geometry.values())

    group_attrs = [
        a
        for a in image.attributes
        if a.name not in geometry and a.local_name != "href" and a.name != MARKER_ATTR
    ]

    opening = "".join(a.render() for a in group_attrs)
    svg_opening = "".join(a.render() for a in svg_attrs)
    replacement = (
        f'<g {MARKER_ATTR}="inlined"{opening}>'
        f"<{svg_tag.name}{svg_opening}>{body}</{svg_tag.name}>"
        "</g>"
    )
    return replacement, inner.failures


def _user_units(attribute: Attribute | None) -> float | None:
    if attribute is None:
        return None
    value = attribute.value.strip()
    if value.endswith("px"):
        value = value[:-2]
    if not value or value[-1].isalpha() or value.endswith("%"):
        return None
    return parse_length(value)


__all__ = [
    "MAX_NESTING_DEPTH",
    "PreprocessResult",
    "preprocess",
    "preprocess_document",
]
