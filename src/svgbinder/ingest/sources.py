"""Locate and read the SVG inputs of a run."""

from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path

from svgbinder.pipeline.error_handling import ConversionIOError, MarkupError
from svgbinder.render.sizing import declared_size, read_root_attributes
from svgbinder.types import SourceDocument

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".svg"

_XML_ENCODING_RE = re.compile(rb"""^(?:\xef\xbb\xbf)?<\?xml[^>]*?\sencoding\s*=\s*["']([A-Za-z][\w.:-]*)["']""")


def discover_sources(directory: Path, *, recursive: bool = False) -> list[Path]:
    """Return the ``.svg`` files of ``directory`` in lexical order.

    The suffix is matched case-insensitively. Ordering is by the path relative
    to ``directory`` so results do not depend on filesystem enumeration order.

    Raises:
        ConversionIOError: If ``directory`` is not a readable directory
    """
    if not directory.is_dir():
        raise ConversionIOError(directory, action="list")

    pattern = "**/*" if recursive else "*"
    try:
        candidates = [
            path
            for path in directory.glob(pattern)
            if path.suffix.lower() == SOURCE_SUFFIX and path.is_file()
        ]
    except OSError as exc:
        raise ConversionIOError(directory, action="list", cause=exc) from exc

    sources = sorted(candidates, key=lambda p: p.relative_to(directory).as_posix())
    logger.debug("Discovered %d source(s) in %s", len(sources), directory)
    return sources


def decode_source(data: bytes) -> str:
    """Decode raw SVG bytes, honouring a BOM or an XML encoding declaration.

    Raises:
        UnicodeDecodeError, LookupError: If the bytes do not match the encoding
    """
    match = _XML_ENCODING_RE.match(data)
    if match is None:
        return data.decode("utf-8-sig")
    encoding = codecs.lookup(match.group(1).decode("ascii")).name
    if encoding == "utf-8":
        encoding = "utf-8-sig"
    return data.decode(encoding)


def load_source(path: Path) -> SourceDocument:
    """Read one input file.

    The declared size is taken from the root element when the markup can be
    parsed; otherwise it is left unset and the renderer reports the problem.

    Raises:
        ConversionIOError: If the file cannot be read or decoded
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ConversionIOError(path, action="read", cause=exc) from exc

    try:
        text = decode_source(data)
    except (UnicodeDecodeError, LookupError) as exc:
        raise ConversionIOError(path, action="decode", cause=exc) from exc

    try:
        size = declared_size(read_root_attributes(text))
    except MarkupError:
        size = None
    return SourceDocument(path=path, text=text, declared_size=size)


__all__ = ["SOURCE_SUFFIX", "decode_source", "discover_sources", "load_source"]
