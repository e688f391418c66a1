# -*- coding: utf-8 -*-
"""
In-memory problem-image session.

Images arrive as raw uploads, pasted data URLs, or camera snapshots posted by
the page. They are kept in display order until deleted or the process exits.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import base64
import binascii
import io
import logging
import re
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^,;]+)*?)(?P<b64>;base64)?,(?P<data>.*)$", re.S)


# ---------------------------
# Data URL helpers
# ---------------------------
def decode_data_url(url: str) -> Tuple[bytes, str]:
    """Return (bytes, mime_type) from a `data:` URL."""
    m = _DATA_URL_RE.match((url or "").strip())
    if not m:
        raise ValueError("Not a data URL.")
    mime = m.group("mime") or "application/octet-stream"
    payload = m.group("data")
    if m.group("b64"):
        try:
            data = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 image data: {e}") from e
    else:
        data = unquote_to_bytes(payload)
    return data, mime


def encode_data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def sniff_mime(data: bytes) -> str:
    """Detect the image MIME type with Pillow; non-images raise ValueError."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = (img.format or "PNG").lower()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("Unsupported or corrupt image data.") from e
    return "image/jpeg" if fmt in ("jpeg", "jpg", "mpo") else f"image/{fmt}"


def _parse_crop_box(box: Dict[str, Any], size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """
    Accept {left, top, right, bottom} or {x, y, width, height}; clamp to the image.
    """
    if not isinstance(box, dict):
        raise ValueError("Crop box must be an object.")
    try:
        if all(k in box for k in ("left", "top", "right", "bottom")):
            l, t = int(box["left"]), int(box["top"])
            r, b = int(box["right"]), int(box["bottom"])
        elif all(k in box for k in ("x", "y", "width", "height")):
            l, t = int(box["x"]), int(box["y"])
            r, b = l + int(box["width"]), t + int(box["height"])
        else:
            raise ValueError("Crop box needs left/top/right/bottom or x/y/width/height.")
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid crop values: {e}") from e

    w, h = size
    l, r = max(0, min(l, w)), max(0, min(r, w))
    t, b = max(0, min(t, h)), max(0, min(b, h))
    if r <= l or b <= t:
        raise ValueError("Crop box is empty.")
    return l, t, r, b


# ---------------------------
# Session
# ---------------------------
class ImageSession:
    """Ordered list of (bytes, mime_type)."""

    def __init__(self) -> None:
        self._images: List[Tuple[bytes, str]] = []

    def __len__(self) -> int:
        return len(self._images)

    def add(self, data: bytes, mime_type: Optional[str] = None) -> int:
        """Append an image; the type Pillow detects wins over the client-supplied `mime_type`."""
        if not data:
            raise ValueError("Empty image.")
        sniffed = sniff_mime(data)
        if mime_type and mime_type != sniffed:
            logger.info("Client sent %s for %s data; using %s", mime_type, sniffed, sniffed)
        self._images.append((data, sniffed))
        logger.info("Added image %d (%s, %d bytes)", len(self._images), self._images[-1][1], len(data))
        return len(self._images) - 1

    def add_data_url(self, url: str) -> int:
        data, mime = decode_data_url(url)
        if not mime.startswith("image/"):
            raise ValueError(f"Pasted data is not an image ({mime}).")
        return self.add(data, mime)

    def delete(self, index: int) -> None:
        if not 0 <= index < len(self._images):
            raise IndexError(f"No image at index {index}.")
        del self._images[index]

    def crop(self, index: int, box: Dict[str, Any]) -> None:
        """Replace image `index` with its cropped region (re-encoded as PNG)."""
        if not 0 <= index < len(self._images):
            raise IndexError(f"No image at index {index}.")
        data, _ = self._images[index]
        with Image.open(io.BytesIO(data)) as img:
            cropped = img.crop(_parse_crop_box(box, img.size))
        if cropped.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
            cropped = cropped.convert("RGB")
        bio = io.BytesIO()
        cropped.save(bio, format="PNG")
        self._images[index] = (bio.getvalue(), "image/png")

    def clear(self) -> None:
        self._images.clear()

    def items(self) -> List[Tuple[bytes, str]]:
        return list(self._images)

    def data_urls(self) -> List[str]:
        return [encode_data_url(d, m) for d, m in self._images]
