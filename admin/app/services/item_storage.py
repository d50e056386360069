"""Dual-file item persistence.

Every item is stored twice under the items dir:
  * {id}.full.json  every field, including originalContent
  * {id}.json       the same record without originalContent (list pages)

Both files are written through ``write_json_atomic``; the full variant goes
first, so a failed light write leaves the previous light file intact and the
caller can simply retry ``save_item``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union
from pathlib import Path

from admin.app.errors import NotFoundError
from admin.app.schema.item_schema import CONTENT_FIELD, ItemRecord, now_iso
from admin.app.utils.jsonio import read_json, write_json_atomic
from admin.app.utils.paths import CatalogPaths, get_paths

log = logging.getLogger(__name__)

RecordLike = Union[ItemRecord, Mapping[str, Any]]


def _as_dict(record: RecordLike) -> Dict[str, Any]:
    if isinstance(record, ItemRecord):
        return record.to_full()
    return dict(record)


def light_variant(record: RecordLike) -> Dict[str, Any]:
    full = _as_dict(record)
    return {k: v for k, v in full.items() if k != CONTENT_FIELD}


def save_item(
    item_id: str, record: RecordLike, paths: Optional[CatalogPaths] = None
) -> Tuple[Path, Path]:
    """Write both variants; returns (light_file, full_file)."""
    paths = paths or get_paths()
    full = _as_dict(record)

    full_file = paths.full_file(item_id)
    light_file = paths.light_file(item_id)
    write_json_atomic(full_file, full)
    write_json_atomic(light_file, light_variant(full))
    log.info("[store] saved %s", item_id)
    return light_file, full_file


def read_item(
    item_id: str, full: bool = False, paths: Optional[CatalogPaths] = None
) -> Dict[str, Any]:
    paths = paths or get_paths()
    target = paths.full_file(item_id) if full else paths.light_file(item_id)
    if not target.is_file():
        raise NotFoundError(f"item not found: {item_id} ({target.name})")
    return read_json(target)


def item_exists(item_id: str, paths: Optional[CatalogPaths] = None) -> bool:
    paths = paths or get_paths()
    return paths.light_file(item_id).is_file() and paths.full_file(item_id).is_file()


def delete_item(item_id: str, paths: Optional[CatalogPaths] = None) -> None:
    """Remove both variants; already-missing files are fine."""
    paths = paths or get_paths()
    paths.light_file(item_id).unlink(missing_ok=True)
    paths.full_file(item_id).unlink(missing_ok=True)
    log.info("[store] deleted %s", item_id)


def update_item(
    item_id: str, updates: Mapping[str, Any], paths: Optional[CatalogPaths] = None
) -> Dict[str, Any]:
    """Merge ``updates`` into the full record, bump updatedAt, save both variants."""
    item = read_item(item_id, full=True, paths=paths)
    updated = {**item, **dict(updates), "updatedAt": now_iso()}
    save_item(item_id, updated, paths=paths)
    return updated


__all__ = [
    "light_variant",
    "save_item",
    "read_item",
    "item_exists",
    "delete_item",
    "update_item",
]
