from __future__ import annotations

import contextlib
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from svgbinder.pipeline.error_handling import ConversionIOError


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Atomically write bytes to a file by writing to a temp file then replacing.

    The temp file lives in the destination directory so the final rename never
    crosses filesystems; it is removed if anything fails before the rename.

    Raises:
        ConversionIOError: If the directory or the file cannot be written
    """
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            "wb", dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, path)
    except OSError as exc:
        _discard(tmp_path)
        raise ConversionIOError(path, action="write", cause=exc) from exc
    except BaseException:
        _discard(tmp_path)
        raise


def _discard(tmp_path: Path | None) -> None:
    if tmp_path is None:
        return
    with contextlib.suppress(OSError):
        tmp_path.unlink()


__all__ = ["atomic_write_bytes"]
