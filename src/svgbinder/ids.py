from __future__ import annotations

import hashlib
from collections.abc import Iterable


def compute_document_id(parts: Iterable[str]) -> str:
    """Compute a deterministic 32-hex file identifier from the provided components.

    _id = sha1(<part-1>|<part-2>|...)[:32]
    Identical inputs in identical order always produce the same identifier,
    so merged output is byte-stable across runs.
    """

    seed = "|".join(parts)
    digest = hashlib.sha1(seed.encode("utf-8")).hexdigest()
    return digest[:32]
