"""Locate ``data:`` URI payloads on ``<image>`` elements without parsing the document.

The scan works on the raw text so that everything outside a rewritten element
stays byte-identical. Comments, CDATA sections, processing instructions and the
DOCTYPE are skipped.
"""

from __future__ import annotations

import bisect
import html
import re
from collections.abc import Iterator
from dataclasses import dataclass

from svgbinder.pipeline.error_handling import MarkupError
from svgbinder.types import EmbeddedAsset

MARKER_ATTR = "data-svgbinder"

_IGNORED_SECTION_RE = re.compile(
    r"<!--.*?-->|<!\[CDATA\[.*?\]\]>|<\?.*?\?>|<!DOCTYPE(?:[^\[>]|\[.*?\])*>",
    re.S,
)
_TAG_OPEN_RE = r"<(?P<name>(?:[A-Za-z_][\w.-]*:)?{local})(?=[\s/>])"
_TAG_BODY_RE = r"(?P<attrs>(?:[^>\"']|\"[^\"]*\"|'[^']*')*)>"
_IMAGE_OPEN_RE = re.compile(_TAG_OPEN_RE.format(local="image"))
_IMAGE_START_RE = re.compile(_TAG_OPEN_RE.format(local="image") + _TAG_BODY_RE, re.S)
_SVG_START_RE = re.compile(_TAG_OPEN_RE.format(local="svg") + _TAG_BODY_RE, re.S)
_ATTR_RE = re.compile(
    r"(?P<name>[^\s=/>\"']+)\s*=\s*(?:\"(?P<dq>[^\"]*)\"|'(?P<sq>[^']*)')"
)
_DATA_URI_RE = re.compile(
    r"^\s*data:(?P<mime>[^,;]*)(?P<params>(?:;[^,;]*)*),(?P<payload>.*)$", re.S
)


@dataclass(frozen=True)
class Attribute:
    """One attribute of a start tag, with its value as written (entities intact)."""

    name: str
    raw_value: str
    quote: str = '"'

    @property
    def value(self) -> str:
        return html.unescape(self.raw_value)

    @property
    def local_name(self) -> str:
        return self.name.rpartition(":")[2]

    def render(self) -> str:
        return f" {self.name}={self.quote}{self.raw_value}{self.quote}"


@dataclass(frozen=True)
class StartTag:
    name: str
    attributes: tuple[Attribute, ...]
    start: int
    end: int
    self_closing: bool

    def get(self, name: str) -> Attribute | None:
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        return None


def parse_attributes(attrs: str) -> tuple[Attribute, ...]:
    found: list[Attribute] = []
    for match in _ATTR_RE.finditer(attrs):
        if match.group("dq") is not None:
            found.append(Attribute(match.group("name"), match.group("dq"), '"'))
        else:
            found.append(Attribute(match.group("name"), match.group("sq"), "'"))
    return tuple(found)


def ignored_spans(text: str) -> list[tuple[int, int]]:
    return [(m.start(), m.end()) for m in _IGNORED_SECTION_RE.finditer(text)]


def _inside(spans: list[tuple[int, int]], starts: list[int], pos: int) -> bool:
    idx = bisect.bisect_right(starts, pos) - 1
    return idx >= 0 and spans[idx][0] <= pos < spans[idx][1]


def _start_tag(match: re.Match[str]) -> StartTag:
    attrs = match.group("attrs")
    self_closing = attrs.endswith("/")
    return StartTag(
        name=match.group("name"),
        attributes=parse_attributes(attrs[:-1] if self_closing else attrs),
        start=match.start(),
        end=match.end(),
        self_closing=self_closing,
    )


def _element_end(text: str, tag: StartTag) -> int:
    if tag.self_closing:
        return tag.end
    close = re.compile(rf"</{re.escape(tag.name)}\s*>").search(text, tag.end)
    if close is None:
        raise MarkupError(reason=f"unterminated <{tag.name}> element at offset {tag.start}")
    return close.end()


def iter_image_tags(text: str) -> Iterator[tuple[StartTag, int]]:
    """Yield every ``<image>`` start tag with the end offset of its element.

    Raises:
        MarkupError: If an ``<image>`` start tag or element is not terminated
    """
    spans = ignored_spans(text)
    starts = [s for s, _ in spans]
    pos = 0
    while True:
        opening = _IMAGE_OPEN_RE.search(text, pos)
        if opening is None:
            return
        if _inside(spans, starts, opening.start()):
            pos = opening.end()
            continue
        match = _IMAGE_START_RE.match(text, opening.start())
        if match is None:
            raise MarkupError(reason=f"unterminated <image> start tag at offset {opening.start()}")
        tag = _start_tag(match)
        end = _element_end(text, tag)
        yield tag, end
        pos = end


def href_attribute(tag: StartTag) -> Attribute | None:
    """Return the attribute holding the image reference; plain ``href`` wins over ``xlink:href``."""
    fallback: Attribute | None = None
    for attribute in tag.attributes:
        if attribute.name == "href":
            return attribute
        if fallback is None and attribute.local_name == "href" and attribute.name != "href":
            fallback = attribute
    return fallback


def find_embedded_assets(text: str) -> list[EmbeddedAsset]:
    """Return the image payloads that still need normalizing, in document order.

    Elements already carrying the marker attribute are skipped, which is what
    keeps repeated preprocessing a no-op.
    """
    assets: list[EmbeddedAsset] = []
    for tag, end in iter_image_tags(text):
        if tag.get(MARKER_ATTR) is not None:
            continue
        href = href_attribute(tag)
        if href is None:
            continue
        uri = _DATA_URI_RE.match(href.value)
        if uri is None:
            continue
        mime_type = uri.group("mime").strip().lower()
        if not mime_type.startswith("image/"):
            continue
        params = [p.strip().lower() for p in uri.group("params").split(";") if p.strip()]
        assets.append(
            EmbeddedAsset(
                start=tag.start,
                end=end,
                tag_end=tag.end,
                element=text[tag.start : end],
                href_name=href.name,
                mime_type=mime_type,
                scheme="base64" if "base64" in params else "percent",
                payload=uri.group("payload"),
                self_closing=tag.self_closing,
            )
        )
    return assets


def parse_start_tag(element: str) -> StartTag:
    match = _IMAGE_START_RE.match(element)
    if match is None:
        raise MarkupError(reason="not an <image> start tag")
    return _start_tag(match)


def find_svg_root(text: str) -> tuple[StartTag, str]:
    """Locate the root ``<svg>`` start tag of a standalone document and return it with its body.

    Raises:
        MarkupError: If no root element can be found or it is not terminated
    """
    spans = ignored_spans(text)
    starts = [s for s, _ in spans]
    for match in _SVG_START_RE.finditer(text):
        if _inside(spans, starts, match.start()):
            continue
        tag = _start_tag(match)
        if tag.self_closing:
            return tag, ""
        closes = list(re.finditer(rf"</{re.escape(tag.name)}\s*>", text))
        if not closes or closes[-1].start() < tag.end:
            raise MarkupError(reason=f"unterminated <{tag.name}> root element")
        return tag, text[tag.end : closes[-1].start()]
    raise MarkupError(reason="no <svg> root element")


__all__ = [
    "MARKER_ATTR",
    "Attribute",
    "StartTag",
    "find_embedded_assets",
    "find_svg_root",
    "href_attribute",
    "iter_image_tags",
    "parse_attributes",
    "parse_start_tag",
]
