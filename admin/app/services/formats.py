"""Image format detection.

Contract:
    detect_format(data: bytes, hint: str | None = None) -> ImageFormat

Detection runs an ordered list of strategies, each returning an
``ImageFormat`` or ``None``; the first hit wins:

    1. extension of the hint path/URL (query string and fragment ignored)
    2. structural parse with Pillow (``Image.open(...).format``)
    3. magic-byte signature table
    4. default: ``ImageFormat.JPG``

Detection never raises.
"""

from __future__ import annotations

import io
import logging
from enum import Enum
from pathlib import PurePosixPath
from typing import Callable, List, Optional
from urllib.parse import urlsplit

from PIL import Image
from pillow_heif import register_heif_opener

log = logging.getLogger(__name__)

# HEIC/HEIF decoding for Image.open (detection and ingestion)
register_heif_opener()

SVG_SNIFF_BYTES = 256


class ImageFormat(str, Enum):
    JPG = "jpg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    AVIF = "avif"
    SVG = "svg"
    TIFF = "tiff"
    HEIC = "heic"
    BMP = "bmp"
    ICO = "ico"

    @property
    def ext(self) -> str:
        return self.value

    @property
    def pil_name(self) -> Optional[str]:
        """Pillow save format name (None for vector)."""
        return _PIL_SAVE_NAMES[self]


_PIL_SAVE_NAMES = {
    ImageFormat.JPG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.GIF: "GIF",
    ImageFormat.WEBP: "WEBP",
    ImageFormat.AVIF: "AVIF",
    ImageFormat.SVG: None,
    ImageFormat.TIFF: "TIFF",
    ImageFormat.HEIC: "HEIF",
    ImageFormat.BMP: "BMP",
    ImageFormat.ICO: "ICO",
}

# Recognized file extensions (lowercase, without dot)
EXTENSION_FORMATS = {
    "jpg": ImageFormat.JPG,
    "jpeg": ImageFormat.JPG,
    "jpe": ImageFormat.JPG,
    "png": ImageFormat.PNG,
    "gif": ImageFormat.GIF,
    "webp": ImageFormat.WEBP,
    "avif": ImageFormat.AVIF,
    "svg": ImageFormat.SVG,
    "tif": ImageFormat.TIFF,
    "tiff": ImageFormat.TIFF,
    "heic": ImageFormat.HEIC,
    "heif": ImageFormat.HEIC,
    "bmp": ImageFormat.BMP,
    "ico": ImageFormat.ICO,
}

# Pillow's Image.format names
PIL_FORMATS = {
    "JPEG": ImageFormat.JPG,
    "MPO": ImageFormat.JPG,  # multi-picture JPEG from phone cameras
    "PNG": ImageFormat.PNG,
    "GIF": ImageFormat.GIF,
    "WEBP": ImageFormat.WEBP,
    "AVIF": ImageFormat.AVIF,
    "TIFF": ImageFormat.TIFF,
    "HEIF": ImageFormat.HEIC,
    "BMP": ImageFormat.BMP,
    "ICO": ImageFormat.ICO,
}

# Fixed-prefix signatures; RIFF/ftyp/SVG need more than a prefix and are
# handled in _from_magic.
MAGIC_SIGNATURES = [
    (b"\xff\xd8\xff", ImageFormat.JPG),
    (b"\x89PNG", ImageFormat.PNG),
    (b"GIF8", ImageFormat.GIF),
    (b"II*\x00", ImageFormat.TIFF),
    (b"MM\x00*", ImageFormat.TIFF),
    (b"\x00\x00\x01\x00", ImageFormat.ICO),
    (b"BM", ImageFormat.BMP),
]

AVIF_BRANDS = {b"avif", b"avis"}
HEIC_BRANDS = {b"heic", b"heix", b"hevc", b"hevx", b"heim", b"heis", b"mif1", b"msf1"}

Strategy = Callable[[bytes, Optional[str]], Optional[ImageFormat]]


def format_from_hint(hint: Optional[str]) -> Optional[ImageFormat]:
    """Map the extension of a local path or URL to a format, if recognized."""
    if not hint:
        return None
    path = urlsplit(hint).path if "://" in hint else hint.split("?", 1)[0].split("#", 1)[0]
    suffix = PurePosixPath(path.replace("\\", "/")).suffix.lower().lstrip(".")
    return EXTENSION_FORMATS.get(suffix)


def _from_hint(data: bytes, hint: Optional[str]) -> Optional[ImageFormat]:
    return format_from_hint(hint)


def _from_structure(data: bytes, hint: Optional[str]) -> Optional[ImageFormat]:
    if not data:
        return None
    try:
        with Image.open(io.BytesIO(data)) as img:
            name = (img.format or "").upper()
    except Exception as e:  # corrupt or unsupported container
        log.debug("[formats] structural parse failed: %s", e)
        return None
    return PIL_FORMATS.get(name)


def _ftyp_brand(data: bytes) -> Optional[bytes]:
    # ISO-BMFF: 4-byte box size, then b"ftyp", then the major brand
    if len(data) >= 12 and data[4:8] == b"ftyp":
        return data[8:12]
    return None


def _looks_like_svg(data: bytes) -> bool:
    head = data[:SVG_SNIFF_BYTES]
    if head.startswith(b"\xef\xbb\xbf"):
        head = head[3:]
    if not head.lstrip().startswith(b"<"):
        return False
    lowered = head.lower()
    return b"<svg" in lowered or b"<!doctype svg" in lowered


def _from_magic(data: bytes, hint: Optional[str]) -> Optional[ImageFormat]:
    if not data:
        return None
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ImageFormat.WEBP
    brand = _ftyp_brand(data)
    if brand is not None:
        if brand in AVIF_BRANDS:
            return ImageFormat.AVIF
        if brand in HEIC_BRANDS:
            return ImageFormat.HEIC
    for signature, fmt in MAGIC_SIGNATURES:
        if data.startswith(signature):
            return fmt
    if _looks_like_svg(data):
        return ImageFormat.SVG
    return None


DETECTION_STRATEGIES: List[Strategy] = [_from_hint, _from_structure, _from_magic]
DEFAULT_FORMAT = ImageFormat.JPG


def detect_format(data: bytes, hint: Optional[str] = None) -> ImageFormat:
    for strategy in DETECTION_STRATEGIES:
        try:
            fmt = strategy(data, hint)
        except Exception as e:
            log.debug("[formats] %s failed: %s", strategy.__name__, e)
            continue
        if fmt is not None:
            return fmt
    return DEFAULT_FORMAT


__all__ = [
    "ImageFormat",
    "EXTENSION_FORMATS",
    "PIL_FORMATS",
    "DETECTION_STRATEGIES",
    "DEFAULT_FORMAT",
    "detect_format",
    "format_from_hint",
]
