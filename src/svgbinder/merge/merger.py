"""Fold independently rendered one-page PDFs into one document.

Each page arrives as a complete PDF whose object numbers overlap with every
other page's. Ingesting a page:

1. collects the objects reachable from its page dictionary, breadth first;
2. decides, per object, whether it duplicates a stream already stored
   (optional de-duplication of streams without outgoing references);
3. assigns the remaining objects fresh numbers from the document's
   :class:`IdAllocator` and copies them with every reference rewritten.

References to the source page tree or catalog are pointed at the merged page
tree and catalog. References to objects that do not exist become ``null``.
Nothing is added to the document unless the whole page imports cleanly.
"""

from __future__ import annotations

import hashlib
import io
import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import pypdf
from pypdf import PdfReader
from pypdf.generic import (
    ArrayObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    NullObject,
    NumberObject,
    PdfObject,
    StreamObject,
    TextStringObject,
)

from svgbinder import __version__
from svgbinder.events import safe_emit
from svgbinder.ids import compute_document_id
from svgbinder.merge.allocator import IdAllocator
from svgbinder.merge.writer import RawStream, StoredObject, reference, serialize_object, write_pdf
from svgbinder.pipeline.error_handling import CorruptPageError, NoInputError
from svgbinder.types import OutlineItem, ProgressCallback, RenderedPage

logger = logging.getLogger(__name__)

INHERITABLE_PAGE_KEYS = ("/Resources", "/MediaBox", "/CropBox", "/Rotate")

_ObjectKey = tuple[int, int]


@dataclass(frozen=True)
class PageEntry:
    object_id: int
    source: Path | None
    width: float
    height: float
    outline_id: int | None = None

    def title(self, page_no: int) -> str:
        return self.source.stem if self.source is not None else f"Page {page_no}"


class MergedDocument:
    """Accumulates pages and their objects under one numbering space."""

    def __init__(
        self,
        allocator: IdAllocator | None = None,
        *,
        dedupe: bool = True,
        bookmarks: bool = True,
    ) -> None:
        self.allocator = allocator or IdAllocator()
        self.dedupe = dedupe
        self.bookmarks = bookmarks
        self.catalog_id = self.allocator.allocate()
        self.pages_id = self.allocator.allocate()
        self.info_id = self.allocator.allocate()
        self.outlines_id = self.allocator.allocate() if bookmarks else None
        self.objects: dict[int, StoredObject] = {}
        self.pages: list[PageEntry] = []
        self._streams: dict[str, int] = {}

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def outline(self) -> list[OutlineItem]:
        return [OutlineItem(title=p.title(i + 1), page_index=i) for i, p in enumerate(self.pages)]

    def append(self, page: RenderedPage, *, position: int | None = None) -> int:
        """Import one rendered page and return its object number in this document.

        Raises:
            CorruptPageError: If the page cannot be parsed or re-linked
        """
        index = len(self.pages) if position is None else position
        importer = _PageImporter(self, page, index)
        page_id, objects, new_streams = importer.run()

        self.objects.update(objects)
        self._streams.update(new_streams)
        outline_id = self.allocator.allocate() if self.bookmarks else None
        self.pages.append(
            PageEntry(
                object_id=page_id,
                source=page.source,
                width=page.width,
                height=page.height,
                outline_id=outline_id,
            )
        )
        logger.debug(
            "Merged %s as page %d (object %d, %d objects, %d shared)",
            page.label,
            len(self.pages),
            page_id,
            len(objects),
            importer.shared,
        )
        return page_id

    def to_bytes(self) -> bytes:
        """Serialize the document.

        Raises:
            NoInputError: If no page has been appended
        """
        if not self.pages:
            raise NoInputError("merged document has no pages")

        objects: dict[int, StoredObject] = dict(self.objects)

        pages = DictionaryObject()
        pages[NameObject("/Type")] = NameObject("/Pages")
        pages[NameObject("/Kids")] = ArrayObject([reference(p.object_id) for p in self.pages])
        pages[NameObject("/Count")] = NumberObject(len(self.pages))
        objects[self.pages_id] = pages

        catalog = DictionaryObject()
        catalog[NameObject("/Type")] = NameObject("/Catalog")
        catalog[NameObject("/Pages")] = reference(self.pages_id)
        if self.outlines_id is not None:
            objects.update(self._outline_objects())
            catalog[NameObject("/Outlines")] = reference(self.outlines_id)
            catalog[NameObject("/PageMode")] = NameObject("/UseOutlines")
        objects[self.catalog_id] = catalog

        info = DictionaryObject()
        info[NameObject("/Producer")] = TextStringObject(f"svgbinder {__version__}")
        objects[self.info_id] = info

        file_id = compute_document_id(
            [f"{p.title(i + 1)}:{p.width:g}x{p.height:g}" for i, p in enumerate(self.pages)]
        )
        return write_pdf(
            objects,
            root_id=self.catalog_id,
            info_id=self.info_id,
            file_id=bytes.fromhex(file_id),
        )

    def _outline_objects(self) -> dict[int, StoredObject]:
        assert self.outlines_id is not None
        items = [p for p in self.pages if p.outline_id is not None]
        objects: dict[int, StoredObject] = {}

        root = DictionaryObject()
        root[NameObject("/Type")] = NameObject("/Outlines")
        root[NameObject("/Count")] = NumberObject(len(items))
        if items:
            root[NameObject("/First")] = reference(items[0].outline_id)  # type: ignore[arg-type]
            root[NameObject("/Last")] = reference(items[-1].outline_id)  # type: ignore[arg-type]
        objects[self.outlines_id] = root

        for position, entry in enumerate(items):
            item = DictionaryObject()
            item[NameObject("/Title")] = TextStringObject(entry.title(position + 1))
            item[NameObject("/Parent")] = reference(self.outlines_id)
            item[NameObject("/Dest")] = ArrayObject([reference(entry.object_id), NameObject("/Fit")])
            if position > 0:
                item[NameObject("/Prev")] = reference(items[position - 1].outline_id)  # type: ignore[arg-type]
            if position + 1 < len(items):
                item[NameObject("/Next")] = reference(items[position + 1].outline_id)  # type: ignore[arg-type]
            objects[entry.outline_id] = item  # type: ignore[index]
        return objects


class _PageImporter:
    def __init__(self, document: MergedDocument, page: RenderedPage, index: int) -> None:
        self.document = document
        self.page = page
        self.index = index
        self.shared = 0
        self._redirect: dict[_ObjectKey, int] = {}
        self._mapping: dict[_ObjectKey, int] = {}

    def _corrupt(self, reason: str, cause: Exception | None = None) -> CorruptPageError:
        return CorruptPageError(self.page.source, page_index=self.index, reason=reason, cause=cause)

    def run(self) -> tuple[int, dict[int, StoredObject], dict[str, int]]:
        try:
            reader = PdfReader(io.BytesIO(self.page.data), strict=False)
            page_count = len(reader.pages)
        except Exception as exc:  # pypdf raises a wide range of errors on damaged input
            raise self._corrupt("unreadable PDF", exc) from exc
        if page_count != 1:
            raise self._corrupt(f"expected exactly one page, found {page_count}")

        try:
            return self._import(reader)
        except CorruptPageError:
            raise
        except Exception as exc:
            raise self._corrupt("object graph cannot be walked", exc) from exc

    def _import(self, reader: PdfReader) -> tuple[int, dict[int, StoredObject], dict[str, int]]:
        source_page = reader.pages[0]
        page_ref = source_page.indirect_reference
        if page_ref is None:
            raise self._corrupt("page is not an indirect object")

        root_ref = reader.trailer.raw_get("/Root")
        if isinstance(root_ref, IndirectObject):
            self._redirect[_key(root_ref)] = self.document.catalog_id
        for node_ref in _page_tree_refs(source_page):
            self._redirect[_key(node_ref)] = self.document.pages_id

        page_dict = _effective_page_dict(source_page)
        page_key = _key(page_ref)
        resolved: dict[_ObjectKey, PdfObject] = {page_key: page_dict}
        order: list[_ObjectKey] = [page_key]

        queue: deque[PdfObject] = deque([page_dict])
        while queue:
            for ref in _references(queue.popleft()):
                key = _key(ref)
                if key in resolved or key in self._redirect:
                    continue
                target = ref.get_object()
                if target is None or isinstance(target, NullObject):
                    logger.debug("Dangling reference %d %d R in %s", key[0], key[1], self.page.label)
                    continue
                resolved[key] = target
                order.append(key)
                queue.append(target)

        new_streams: dict[str, int] = {}
        fresh: list[_ObjectKey] = []
        for key in order:
            target = resolved[key]
            digest = _leaf_stream_digest(target) if self.document.dedupe else None
            if digest is not None:
                existing = self.document._streams.get(digest) or new_streams.get(digest)
                if existing is not None:
                    self._mapping[key] = existing
                    self.shared += 1
                    continue
            object_id = self.document.allocator.allocate()
            self._mapping[key] = object_id
            fresh.append(key)
            if digest is not None:
                new_streams[digest] = object_id

        objects: dict[int, StoredObject] = {}
        for key in fresh:
            objects[self._mapping[key]] = self._copy_indirect(resolved[key])

        page_id = self._mapping[page_key]
        page_copy = objects[page_id]
        assert isinstance(page_copy, DictionaryObject)
        page_copy[NameObject("/Parent")] = reference(self.document.pages_id)
        return page_id, objects, new_streams

    def _copy_indirect(self, obj: PdfObject) -> StoredObject:
        if isinstance(obj, StreamObject):
            dictionary = DictionaryObject()
            for name, value in obj.items():
                if name != "/Length":
                    dictionary[NameObject(name)] = self._copy(value)
            return RawStream(dictionary=dictionary, data=_raw_stream_data(obj))
        return self._copy(obj)

    def _copy(self, obj: PdfObject) -> PdfObject:
        if isinstance(obj, IndirectObject):
            key = _key(obj)
            if key in self._redirect:
                return reference(self._redirect[key])
            target = self._mapping.get(key)
            return reference(target) if target is not None else NullObject()
        if isinstance(obj, StreamObject):
            raise self._corrupt("direct stream object")
        if isinstance(obj, DictionaryObject):
            copy = DictionaryObject()
            for name, value in obj.items():
                copy[NameObject(name)] = self._copy(value)
            return copy
        if isinstance(obj, ArrayObject):
            return ArrayObject([self._copy(value) for value in obj])
        return obj


def merge(
    pages: Iterable[RenderedPage],
    allocator: IdAllocator | None = None,
    *,
    dedupe: bool = True,
    bookmarks: bool = True,
    on_progress: ProgressCallback = None,
) -> MergedDocument:
    """Merge rendered pages, in the given order, into one document.

    Raises:
        NoInputError: If ``pages`` is empty
        CorruptPageError: If any page cannot be re-linked; names its source
    """
    ordered = list(pages)
    if not ordered:
        raise NoInputError("no rendered pages to merge")

    document = MergedDocument(allocator, dedupe=dedupe, bookmarks=bookmarks)
    safe_emit(on_progress, "merge:start", {"page_count": len(ordered)})
    for position, page in enumerate(ordered):
        document.append(page, position=position)
        safe_emit(on_progress, "page:merged", {"page_no": position + 1, "source": page.label})
    safe_emit(on_progress, "merge:finalized", {"pages": document.page_count})
    return document


def _key(ref: IndirectObject) -> _ObjectKey:
    return (int(ref.idnum), int(ref.generation))


def _references(obj: PdfObject) -> Iterable[IndirectObject]:
    """Yield the indirect references held directly or in nested direct containers of ``obj``."""
    stack: list[PdfObject] = [obj]
    while stack:
        current = stack.pop()
        if isinstance(current, IndirectObject):
            yield current
        elif isinstance(current, DictionaryObject):
            for name, value in current.items():
                if isinstance(current, StreamObject) and name == "/Length":
                    continue
                stack.append(value)
        elif isinstance(current, ArrayObject):
            stack.extend(current)


def _page_tree_refs(page: DictionaryObject) -> list[IndirectObject]:
    refs: list[IndirectObject] = []
    seen: set[_ObjectKey] = set()
    parent = page.raw_get("/Parent") if "/Parent" in page else None
    while isinstance(parent, IndirectObject) and _key(parent) not in seen:
        seen.add(_key(parent))
        refs.append(parent)
        node = parent.get_object()
        if not isinstance(node, DictionaryObject) or "/Parent" not in node:
            break
        parent = node.raw_get("/Parent")
    return refs


def _effective_page_dict(page: DictionaryObject) -> DictionaryObject:
    """The page dictionary without ``/Parent``, with inherited attributes made explicit."""
    effective = DictionaryObject()
    for name, value in page.items():
        if name != "/Parent":
            effective[NameObject(name)] = value

    for node_ref in _page_tree_refs(page):
        node = node_ref.get_object()
        if not isinstance(node, DictionaryObject):
            break
        for name in INHERITABLE_PAGE_KEYS:
            if name not in effective and name in node:
                effective[NameObject(name)] = node.raw_get(name)
    return effective


def _raw_stream_data(stream: StreamObject) -> bytes:
    # pypdf keeps the undecoded bytes of streams read from a file in ``_data``
    data = getattr(stream, "_data", None)
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(
            f"pypdf {pypdf.__version__} does not expose the raw bytes of {type(stream).__name__}"
        )
    return bytes(data)


def _leaf_stream_digest(obj: PdfObject) -> str | None:
    if not isinstance(obj, StreamObject):
        return None
    dictionary = DictionaryObject()
    for name in sorted(obj.keys()):
        if name == "/Length":
            continue
        value = obj.raw_get(name)
        if any(True for _ in _references(value)):
            return None
        dictionary[NameObject(name)] = value
    digest = hashlib.sha256(serialize_object(dictionary))
    digest.update(b"\0")
    digest.update(_raw_stream_data(obj))
    return digest.hexdigest()


__all__ = ["INHERITABLE_PAGE_KEYS", "MergedDocument", "PageEntry", "merge"]
