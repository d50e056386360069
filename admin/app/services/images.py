"""Image ingestion: remote/local sources -> stored full assets + thumbnail.

Contract:
    ingest_images(sources, item_id) -> IngestResult(images=[...], thumbnail=...)

Per source (1-based ordinal n):
    * acquire bytes (http(s) URL via requests, otherwise a local path)
    * detect the real format (extension hint, then content)
    * classify: animated (gif, multi-frame webp) | vector (svg) | static
    * full asset {n}.{ext}: static -> JPEG q85 within 1200x800 (no upscale),
      animated -> same format, all frames, same bound (verbatim bytes if the
      re-encode fails), vector -> verbatim bytes
    * first source only: thumb.{ext}, 400x225 cover crop anchored to the top
      (animated keeps animation, vector rasterized to PNG, static JPEG q80)

Any unrecovered error aborts the call and the per-item directory is cleaned
up before the error propagates; no partial image list is ever returned.
"""

from __future__ import annotations

import io
import logging
import shutil
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

import requests
from PIL import Image, ImageOps, ImageSequence

from admin.app.config import settings
from admin.app.errors import DecodeError, EncodeError, FetchError, NotFoundError
from admin.app.services.formats import ImageFormat, detect_format
from admin.app.telemetry import telemetry
from admin.app.utils.paths import THUMB_STEM, CatalogPaths, get_paths, is_remote

log = logging.getLogger(__name__)

# Top-anchored cover crop
TOP_CENTER = (0.5, 0.0)
JPEG_BACKGROUND = (255, 255, 255)


class ImageKind(str, Enum):
    STATIC = "static"
    ANIMATED = "animated"
    VECTOR = "vector"


@dataclass(frozen=True)
class ImageRules:
    """Bounds and encoder settings for stored assets."""

    full_size: Tuple[int, int] = (1200, 800)
    full_quality: int = 85
    thumb_size: Tuple[int, int] = (400, 225)
    thumb_quality: int = 80
    timeout_s: float = 30.0
    user_agent: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)"

    @classmethod
    def from_settings(cls) -> "ImageRules":
        return cls(
            full_size=(settings.FULL_MAX_WIDTH, settings.FULL_MAX_HEIGHT),
            full_quality=settings.FULL_QUALITY,
            thumb_size=(settings.THUMB_WIDTH, settings.THUMB_HEIGHT),
            thumb_quality=settings.THUMB_QUALITY,
            timeout_s=settings.HTTP_TIMEOUT_S,
            user_agent=settings.HTTP_USER_AGENT,
        )


@dataclass
class IngestResult:
    images: List[str] = field(default_factory=list)
    thumbnail: Optional[str] = None

    def to_dict(self) -> dict:
        return {"images": list(self.images), "thumbnail": self.thumbnail}


@dataclass(frozen=True)
class Rendered:
    data: bytes
    ext: str


# --- acquisition --------------------------------------------------------------
def fetch_image_bytes(source: str, rules: Optional[ImageRules] = None) -> bytes:
    """Download a remote image or read a local one."""
    rules = rules or ImageRules.from_settings()
    if is_remote(source):
        headers = {"User-Agent": rules.user_agent, "Accept": "image/*"}
        try:
            resp = requests.get(source, headers=headers, timeout=rules.timeout_s)
        except requests.RequestException as e:
            raise FetchError(f"Network error: {e}", url=source) from e
        if not 200 <= resp.status_code < 300:
            raise FetchError(
                f"HTTP {resp.status_code}", url=source, status_code=resp.status_code
            )
        return resp.content

    path = Path(source)
    if not path.is_file():
        raise NotFoundError(f"image not found: {source}")
    return path.read_bytes()


# --- classification -------------------------------------------------------------
def _frame_count(data: bytes) -> int:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return int(getattr(img, "n_frames", 1) or 1)
    except Exception as e:
        log.debug("[images] frame count unavailable: %s", e)
        return 1


def classify(fmt: ImageFormat, data: bytes) -> ImageKind:
    if fmt is ImageFormat.SVG:
        return ImageKind.VECTOR
    if fmt is ImageFormat.GIF:
        return ImageKind.ANIMATED
    if fmt is ImageFormat.WEBP and _frame_count(data) > 1:
        return ImageKind.ANIMATED
    return ImageKind.STATIC


def output_format(fmt: ImageFormat, kind: ImageKind) -> ImageFormat:
    """Stored format of the full-size asset."""
    if kind is ImageKind.ANIMATED:
        return fmt
    if kind is ImageKind.VECTOR:
        return ImageFormat.SVG
    return ImageFormat.JPG


def thumbnail_format(fmt: ImageFormat, kind: ImageKind) -> ImageFormat:
    if kind is ImageKind.ANIMATED:
        return fmt
    if kind is ImageKind.VECTOR:
        return ImageFormat.PNG
    return ImageFormat.JPG


# --- raster helpers -------------------------------------------------------------
def fit_within(size: Tuple[int, int], box: Tuple[int, int]) -> Tuple[int, int]:
    """Largest size inside box keeping aspect ratio; never upscales."""
    w, h = size
    max_w, max_h = box
    if w <= max_w and h <= max_h:
        return w, h
    scale = min(max_w / w, max_h / h)
    return max(1, round(w * scale)), max(1, round(h * scale))


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, JPEG_BACKGROUND)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        return canvas
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _open_static(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except Exception as e:
        raise DecodeError(f"cannot decode image: {e}") from e
    return img


def _encode(img: Image.Image, fmt: ImageFormat, **kwargs) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt.pil_name, **kwargs)
    return buf.getvalue()


def _cover(img: Image.Image, box: Tuple[int, int]) -> Image.Image:
    return ImageOps.fit(img, box, method=Image.Resampling.LANCZOS, centering=TOP_CENTER)


def render_static_full(data: bytes, rules: ImageRules) -> bytes:
    img = _to_rgb(_open_static(data))
    target = fit_within(img.size, rules.full_size)
    if target != img.size:
        img = img.resize(target, Image.Resampling.LANCZOS)
    return _encode(img, ImageFormat.JPG, quality=rules.full_quality)


def render_static_thumb(data: bytes, rules: ImageRules) -> bytes:
    img = _to_rgb(_open_static(data))
    thumb = _cover(img, rules.thumb_size)
    return _encode(thumb, ImageFormat.JPG, quality=rules.thumb_quality)


def reencode_animated(
    data: bytes, fmt: ImageFormat, box: Tuple[int, int], *, cover: bool = False
) -> bytes:
    """Resize every frame (contain or top-anchored cover) and re-encode."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            default_duration = img.info.get("duration", 100)
            loop = img.info.get("loop", 0)
            target = fit_within(img.size, box)
            frames: List[Image.Image] = []
            durations: List[int] = []
            for frame in ImageSequence.Iterator(img):
                rgba = frame.convert("RGBA")
                if cover:
                    rgba = _cover(rgba, box)
                elif rgba.size != target:
                    rgba = rgba.resize(target, Image.Resampling.LANCZOS)
                frames.append(rgba)
                durations.append(int(frame.info.get("duration", default_duration) or 0))
        if not frames:
            raise EncodeError("no frames")
        save_kwargs = {
            "save_all": True,
            "append_images": frames[1:],
            "duration": durations,
            "loop": loop,
        }
        if fmt is ImageFormat.GIF:
            save_kwargs["disposal"] = 2
        return _encode(frames[0], fmt, **save_kwargs)
    except EncodeError:
        raise
    except Exception as e:
        raise EncodeError(f"animated re-encode failed: {e}") from e


def render_animated(data: bytes, fmt: ImageFormat, box: Tuple[int, int], *, cover: bool) -> bytes:
    try:
        return reencode_animated(data, fmt, box, cover=cover)
    except EncodeError as e:
        log.warning("[images] %s; storing original bytes", e)
        return data


def rasterize_svg(data: bytes, width: int) -> Image.Image:
    """Render SVG bytes to a Pillow image (cairosvg)."""
    try:
        import cairosvg  # lazy: needs the cairo runtime

        png = cairosvg.svg2png(bytestring=data, output_width=width)
        img = Image.open(io.BytesIO(png))
        img.load()
    except Exception as e:
        raise DecodeError(f"cannot rasterize svg: {e}") from e
    return img


def render_vector_thumb(data: bytes, rules: ImageRules) -> bytes:
    img = rasterize_svg(data, rules.thumb_size[0]).convert("RGBA")
    thumb = _cover(img, rules.thumb_size)
    return _encode(thumb, ImageFormat.PNG)


def render_full(data: bytes, fmt: ImageFormat, kind: ImageKind, rules: ImageRules) -> Rendered:
    out = output_format(fmt, kind)
    if kind is ImageKind.VECTOR:
        return Rendered(data, out.ext)
    if kind is ImageKind.ANIMATED:
        return Rendered(render_animated(data, out, rules.full_size, cover=False), out.ext)
    return Rendered(render_static_full(data, rules), out.ext)


def render_thumbnail(data: bytes, fmt: ImageFormat, kind: ImageKind, rules: ImageRules) -> Rendered:
    out = thumbnail_format(fmt, kind)
    if kind is ImageKind.VECTOR:
        return Rendered(render_vector_thumb(data, rules), out.ext)
    if kind is ImageKind.ANIMATED:
        return Rendered(render_animated(data, out, rules.thumb_size, cover=True), out.ext)
    return Rendered(render_static_thumb(data, rules), out.ext)


# --- directory lease --------------------------------------------------------------
@contextmanager
def item_dir_lease(target: Path) -> Iterator[List[Path]]:
    """
    Hold the per-item image directory for one ingestion call.

    Yields the list the caller appends newly created files to. On any error
    the directory is removed if this call created it, otherwise only the files
    created by this call are removed; then the error propagates.
    """
    created = not target.exists()
    target.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    try:
        yield written
    except BaseException:
        if created:
            shutil.rmtree(target, ignore_errors=True)
            log.info("[images] rolled back %s", target)
        else:
            for p in written:
                p.unlink(missing_ok=True)
            log.info("[images] rolled back %d file(s) in %s", len(written), target)
        raise


def _store(dest: Path, data: bytes, created: List[Path]) -> None:
    # overwritten files are not ours to roll back
    if not dest.exists():
        created.append(dest)
    dest.write_bytes(data)


# --- public API -------------------------------------------------------------------
def ingest_images(
    sources: Sequence[str],
    item_id: str,
    *,
    paths: Optional[CatalogPaths] = None,
    rules: Optional[ImageRules] = None,
    start: int = 1,
    with_thumbnail: Optional[bool] = None,
) -> IngestResult:
    """
    Store ``sources`` as ``{start}.ext, {start+1}.ext, ...`` under the item dir.

    A thumbnail is produced from the first source when ``start == 1`` (or when
    ``with_thumbnail`` is forced, e.g. appending to an item that has none).
    """
    if not sources:
        return IngestResult()
    if start < 1:
        raise ValueError("start must be >= 1")

    paths = paths or get_paths()
    rules = rules or ImageRules.from_settings()
    make_thumb = (start == 1) if with_thumbnail is None else with_thumbnail
    item_dir = paths.item_images_dir(item_id)
    result = IngestResult()

    try:
        with item_dir_lease(item_dir) as written:
            for offset, source in enumerate(sources):
                ordinal = start + offset
                log.info("[images] %s #%d <- %s", item_id, ordinal, source)
                data = fetch_image_bytes(source, rules)
                fmt = detect_format(data, source)
                kind = classify(fmt, data)

                full = render_full(data, fmt, kind, rules)
                name = f"{ordinal}.{full.ext}"
                _store(item_dir / name, full.data, written)
                result.images.append(paths.public_image_path(item_id, name))

                if make_thumb and offset == 0:
                    thumb = render_thumbnail(data, fmt, kind, rules)
                    thumb_name = f"{THUMB_STEM}.{thumb.ext}"
                    _store(item_dir / thumb_name, thumb.data, written)
                    result.thumbnail = paths.public_image_path(item_id, thumb_name)
    except Exception as e:
        telemetry.increment("ingest_failed")
        telemetry.set_error(f"ingest {item_id}: {e}")
        log.warning("[images] ingestion aborted for %s: %s", item_id, e)
        raise

    telemetry.increment("images_ingested", len(result.images))
    return result


def delete_images(item_id: str, paths: Optional[CatalogPaths] = None) -> None:
    """Remove the whole per-item image directory (missing is fine)."""
    paths = paths or get_paths()
    target = paths.item_images_dir(item_id)
    if target.exists():
        shutil.rmtree(target)
        log.info("[images] removed %s", target)


__all__ = [
    "ImageKind",
    "ImageRules",
    "IngestResult",
    "Rendered",
    "fetch_image_bytes",
    "classify",
    "output_format",
    "thumbnail_format",
    "fit_within",
    "reencode_animated",
    "rasterize_svg",
    "render_full",
    "render_thumbnail",
    "item_dir_lease",
    "ingest_images",
    "delete_images",
]
