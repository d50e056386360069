"""Single-source of truth for the on-disk catalog layout.

Centralizes:
  * items dir            {DATA_DIR}/{ITEMS_SUBDIR}/
  * light record         {id}.json
  * full record          {id}.full.json
  * catalog index        {DATA_DIR}/{INDEX_FILENAME}
  * per-item images      {IMAGES_DIR}/{id}/{n}.{ext}, thumb.{ext}
  * public image paths   {PUBLIC_IMAGES_PREFIX}/{id}/{filename}

Both the image ingestor and the item store resolve paths here so the layout
is defined once. Every per-item path goes through validate_item_id, so an id
like "." or "../x" never reaches the filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from admin.app.config import Settings, settings as default_settings
from admin.app.utils.ids import validate_item_id

LIGHT_SUFFIX = ".json"
FULL_SUFFIX = ".full.json"
THUMB_STEM = "thumb"


@dataclass(frozen=True)
class CatalogPaths:
    data_dir: Path
    items_dir: Path
    index_file: Path
    categories_file: Path
    images_dir: Path
    public_images_prefix: str = "/assets/images"

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "CatalogPaths":
        s = s or default_settings
        data_dir = Path(s.DATA_DIR)
        return cls(
            data_dir=data_dir,
            items_dir=data_dir / s.ITEMS_SUBDIR,
            index_file=data_dir / s.INDEX_FILENAME,
            categories_file=data_dir / s.CATEGORIES_FILENAME,
            images_dir=Path(s.IMAGES_DIR),
            public_images_prefix=s.PUBLIC_IMAGES_PREFIX.rstrip("/"),
        )

    @classmethod
    def under(cls, root: str | Path) -> "CatalogPaths":
        """Default layout rooted somewhere other than the cwd (tests, scripts)."""
        root = Path(root)
        data_dir = root / "docs" / "data"
        return cls(
            data_dir=data_dir,
            items_dir=data_dir / "items",
            index_file=data_dir / "collections.json",
            categories_file=data_dir / "categories.json",
            images_dir=root / "docs" / "assets" / "images",
        )

    # --- item records ---------------------------------------------------------
    def light_file(self, item_id: str) -> Path:
        return self.items_dir / f"{validate_item_id(item_id)}{LIGHT_SUFFIX}"

    def full_file(self, item_id: str) -> Path:
        return self.items_dir / f"{validate_item_id(item_id)}{FULL_SUFFIX}"

    # --- images ---------------------------------------------------------------
    def item_images_dir(self, item_id: str) -> Path:
        return self.images_dir / validate_item_id(item_id)

    def public_image_path(self, item_id: str, filename: str) -> str:
        return f"{self.public_images_prefix}/{validate_item_id(item_id)}/{filename}"

    def public_image_dir(self, item_id: str) -> str:
        return f"{self.public_images_prefix}/{validate_item_id(item_id)}/"

    def local_image_file(self, public_path: str) -> Optional[Path]:
        """Map a public image path back to its file; None if outside the prefix."""
        prefix = self.public_images_prefix + "/"
        if not public_path.startswith(prefix):
            return None
        return self.images_dir / public_path[len(prefix) :]


def get_paths() -> CatalogPaths:
    """Resolve paths from the current settings (read at call time)."""
    return CatalogPaths.from_settings(default_settings)


def is_remote(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


__all__ = [
    "CatalogPaths",
    "get_paths",
    "is_remote",
    "LIGHT_SUFFIX",
    "FULL_SUFFIX",
    "THUMB_STEM",
]
