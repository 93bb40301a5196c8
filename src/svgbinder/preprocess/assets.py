from __future__ import annotations

import base64
import binascii
import io
import re
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from svgbinder.pipeline.error_handling import DecodeError
from svgbinder.types import EmbeddedAsset

_WHITESPACE_RE = re.compile(r"[\s]+")

# Modes that PDF image XObjects take without conversion
_DIRECT_MODES = {"RGB", "RGBA", "L", "LA"}


def decode_payload(asset: EmbeddedAsset) -> bytes:
    """Decode the payload of an embedded asset according to its scheme.

    Raises:
        DecodeError: If the payload is empty or not valid for its scheme
    """
    if asset.scheme == "base64":
        compact = _WHITESPACE_RE.sub("", asset.payload)
        remainder = len(compact) % 4
        if remainder == 1:
            raise DecodeError("truncated base64 payload", mime_type=asset.mime_type)
        if remainder:
            compact += "=" * (4 - remainder)
        try:
            data = base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError("invalid base64 payload", mime_type=asset.mime_type, cause=exc) from exc
    else:
        data = unquote_to_bytes(asset.payload)

    if not data:
        raise DecodeError("empty payload", mime_type=asset.mime_type)
    return data


def normalize_raster(data: bytes, mime_type: str) -> tuple[str, bytes]:
    """Re-encode a raster payload into a form every backend reads the same way.

    Opaque RGB/grayscale JPEGs are kept as they are; everything else is reduced to
    its first frame in a direct colour mode and written as PNG. CMYK JPEGs become
    RGB JPEGs.

    Returns:
        (mime type, encoded bytes)

    Raises:
        DecodeError: If Pillow cannot read the payload
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.seek(0)
            img.load()
            source_format = img.format

            if source_format == "JPEG":
                if img.mode in ("RGB", "L"):
                    return "image/jpeg", data
                out = io.BytesIO()
                img.convert("RGB").save(out, format="JPEG", quality=95)
                return "image/jpeg", out.getvalue()

            converted = img if img.mode in _DIRECT_MODES else img.convert(_target_mode(img))
            out = io.BytesIO()
            converted.save(out, format="PNG", optimize=False)
            return "image/png", out.getvalue()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as exc:
        raise DecodeError("unreadable raster payload", mime_type=mime_type, cause=exc) from exc


def _target_mode(img: Image.Image) -> str:
    if "transparency" in img.info or img.mode in ("PA", "RGBa", "La"):
        return "RGBA"
    if img.mode in ("1", "I", "I;16", "F"):
        return "L"
    return "RGB"


def encode_data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_svg_text(data: bytes, mime_type: str = "image/svg+xml") -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DecodeError("embedded SVG is not UTF-8", mime_type=mime_type, cause=exc) from exc


__all__ = [
    "decode_payload",
    "decode_svg_text",
    "encode_data_uri",
    "normalize_raster",
]
