# admin/tests/conftest.py
from __future__ import annotations

# Import/bootstrap so "import admin.app" works when running pytest from repo root
import io
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Tuple

import pytest

TESTS_DIR = Path(__file__).resolve().parent  # .../admin/tests
REPO_ROOT = TESTS_DIR.parents[1]  # repo root

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# Test-safe defaults: telemetry away from the repo, no real tokens, no auth
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="reposhelf-logs-"))
os.environ["GITHUB_TOKEN"] = ""
os.environ["ADMIN_AUTH_TOKEN"] = ""

from PIL import Image  # noqa: E402

from admin.app.config import settings  # noqa: E402
from admin.app.utils.paths import CatalogPaths  # noqa: E402


@pytest.fixture
def catalog_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CatalogPaths:
    """Point the configured catalog at tmp_path and return its paths."""
    paths = CatalogPaths.under(tmp_path)
    monkeypatch.setattr(settings, "DATA_DIR", str(paths.data_dir))
    monkeypatch.setattr(settings, "IMAGES_DIR", str(paths.images_dir))
    monkeypatch.setattr(settings, "SITE_DIR", str(tmp_path / "docs"))
    return paths


# --- in-memory image fixtures -----------------------------------------------------
def encode(img: Image.Image, fmt: str, **kwargs) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


def animated(fmt: str, size: Tuple[int, int], frames: int = 3) -> bytes:
    colors: List[Tuple[int, int, int]] = [(255, 0, 0), (0, 255, 0), (0, 0, 255), (255, 255, 0)]
    imgs = [Image.new("RGB", size, colors[i % len(colors)]) for i in range(frames)]
    return encode(imgs[0], fmt, save_all=True, append_images=imgs[1:], duration=80, loop=0)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode(Image.new("RGB", (1600, 1200), (30, 120, 200)), "JPEG")


@pytest.fixture
def small_png_rgba() -> bytes:
    return encode(Image.new("RGBA", (300, 200), (10, 200, 10, 128)), "PNG")


@pytest.fixture
def animated_gif() -> bytes:
    return animated("GIF", (1500, 1000))


@pytest.fixture
def animated_webp() -> bytes:
    return animated("WEBP", (640, 480))


@pytest.fixture
def svg_bytes() -> bytes:
    return (
        b'<?xml version="1.0" encoding="UTF-8"?>\n'
        b'<svg xmlns="http://www.w3.org/2000/svg" width="800" height="600">'
        b'<rect width="800" height="600" fill="#3366cc"/></svg>'
    )


@pytest.fixture
def write_file(tmp_path: Path):
    """Write bytes under tmp_path/src and return the path as a string."""

    def _write(name: str, data: bytes) -> str:
        src = tmp_path / "src"
        src.mkdir(exist_ok=True)
        fp = src / name
        fp.write_bytes(data)
        return str(fp)

    return _write
