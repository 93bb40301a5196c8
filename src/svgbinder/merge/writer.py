"""Serialize an object table into a classic (xref table) PDF file."""

from __future__ import annotations

import io
from collections.abc import Mapping
from dataclasses import dataclass

from pypdf.generic import (
    ArrayObject,
    ByteStringObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    NumberObject,
    PdfObject,
)

PDF_HEADER = b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n"


@dataclass(frozen=True)
class RawStream:
    """A stream whose bytes are kept exactly as read, filters still applied.

    ``/Length`` is computed when written.
    """

    dictionary: DictionaryObject
    data: bytes


StoredObject = PdfObject | RawStream


def reference(object_id: int) -> IndirectObject:
    return IndirectObject(object_id, 0, None)


def serialize_object(obj: StoredObject) -> bytes:
    buf = io.BytesIO()
    _write_object(buf, obj)
    return buf.getvalue()


def _write_object(buf: io.BytesIO, obj: StoredObject) -> None:
    if isinstance(obj, RawStream):
        dictionary = DictionaryObject(obj.dictionary)
        dictionary[NameObject("/Length")] = NumberObject(len(obj.data))
        dictionary.write_to_stream(buf)
        buf.write(b"\nstream\n")
        buf.write(obj.data)
        buf.write(b"\nendstream")
    else:
        obj.write_to_stream(buf)


def write_pdf(
    objects: Mapping[int, StoredObject],
    *,
    root_id: int,
    info_id: int | None = None,
    file_id: bytes | None = None,
) -> bytes:
    """Write ``objects`` as one PDF with a single-section cross-reference table.

    Object numbers missing from ``objects`` (up to the highest one) are written as
    free entries linked into the free list.
    """
    buf = io.BytesIO()
    buf.write(PDF_HEADER)

    offsets: dict[int, int] = {}
    for object_id in sorted(objects):
        offsets[object_id] = buf.tell()
        buf.write(f"{object_id} 0 obj\n".encode("ascii"))
        _write_object(buf, objects[object_id])
        buf.write(b"\nendobj\n")

    size = max(objects, default=0) + 1
    free = [n for n in range(1, size) if n not in offsets]
    next_free = dict(zip([0, *free], [*free, 0], strict=True))

    xref_offset = buf.tell()
    buf.write(f"xref\n0 {size}\n".encode("ascii"))
    for object_id in range(size):
        if object_id in offsets:
            buf.write(f"{offsets[object_id]:010d} 00000 n\r\n".encode("ascii"))
        else:
            generation = 65535 if object_id == 0 else 0
            buf.write(f"{next_free[object_id]:010d} {generation:05d} f\r\n".encode("ascii"))

    trailer = DictionaryObject()
    trailer[NameObject("/Size")] = NumberObject(size)
    trailer[NameObject("/Root")] = reference(root_id)
    if info_id is not None:
        trailer[NameObject("/Info")] = reference(info_id)
    if file_id is not None:
        trailer[NameObject("/ID")] = ArrayObject([ByteStringObject(file_id), ByteStringObject(file_id)])
    buf.write(b"trailer\n")
    trailer.write_to_stream(buf)
    buf.write(f"\nstartxref\n{xref_offset}\n%%EOF\n".encode("ascii"))
    return buf.getvalue()


__all__ = ["RawStream", "StoredObject", "reference", "serialize_object", "write_pdf"]
