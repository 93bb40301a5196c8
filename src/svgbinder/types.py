from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class PageSize:
    """Page dimensions in PDF points (1/72 inch)."""

    width: float
    height: float

    def __post_init__(self) -> None:
        if not (self.width > 0 and self.height > 0):
            raise ValueError(f"Page size must be positive, got {self.width}x{self.height}")


A4 = PageSize(595.0, 842.0)
LETTER = PageSize(612.0, 792.0)


class RenderBackend(Protocol):
    """Native engine turning SVG text into one-page PDF bytes of the given size."""

    def render(self, text: str, size: PageSize) -> bytes:  # pragma: no cover - typing
        ...


ProgressCallback = Callable[[str, dict[str, int | str]], None] | None


@dataclass(frozen=True)
class SourceDocument:
    """Raw markup of one input file.

    - path: where the text was read from (identity only)
    - text: the document markup, read once
    - declared_size: size taken from the root <svg> element, if it declares one
    """

    path: Path
    text: str
    declared_size: PageSize | None = None


@dataclass(frozen=True)
class EmbeddedAsset:
    """An image payload inlined in the markup through a ``data:`` URI.

    ``start``/``end`` delimit the whole element in the document text and
    ``tag_end`` the end of its start tag.
    """

    start: int
    end: int
    tag_end: int
    element: str
    href_name: str
    mime_type: str
    scheme: str
    payload: str
    self_closing: bool

    @property
    def start_tag(self) -> str:
        return self.element[: self.tag_end - self.start]


@dataclass(frozen=True)
class RenderedPage:
    width: float
    height: float
    data: bytes
    source: Path | None = None

    @property
    def label(self) -> str:
        return str(self.source) if self.source is not None else "<memory>"


@dataclass(frozen=True)
class OutlineItem:
    """A bookmark pointing at one page of the merged document."""

    title: str
    page_index: int
