"""
One-off conversions of older catalog generations to the current layout.

Current layout: flat JSON array index + ``{id}.json`` / ``{id}.full.json``.
Older generations used
  * an object index: ``{"items": [{id, ...}], "total", "lastUpdated"}`` or
    ``{"itemIds": [...], ...}``
  * a single ``{id}.json`` per item holding every field
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import Any, List, Optional

from admin.app.schema.item_schema import CONTENT_FIELD
from admin.app.services import item_storage as store
from admin.app.utils.jsonio import read_json, write_json_atomic
from admin.app.utils.paths import CatalogPaths, get_paths

log = logging.getLogger(__name__)


def _ids_from_legacy_index(data: Any) -> List[str]:
    if isinstance(data, list):
        return [str(x) for x in data]
    if isinstance(data, dict):
        if isinstance(data.get("itemIds"), list):
            return [str(x) for x in data["itemIds"]]
        if isinstance(data.get("items"), list):
            return [str(it["id"]) for it in data["items"] if isinstance(it, dict) and it.get("id")]
    raise ValueError("unrecognized index format")


def flatten_index(paths: Optional[CatalogPaths] = None, *, dry_run: bool = False) -> bool:
    """
    Rewrite an object-shaped index as a flat id array.

    The previous file is kept as ``{index}.backup``. Returns True if a
    rewrite was needed.
    """
    paths = paths or get_paths()
    if not paths.index_file.exists():
        return False
    data = read_json(paths.index_file)
    if isinstance(data, list):
        return False
    ids = _ids_from_legacy_index(data)
    if not dry_run:
        backup = paths.index_file.with_name(paths.index_file.name + ".backup")
        shutil.copyfile(paths.index_file, backup)
        write_json_atomic(paths.index_file, ids)
        log.info("[migrate] flattened index (%d ids), backup at %s", len(ids), backup)
    return True


@dataclass
class MigrationReport:
    migrated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: dict = field(default_factory=dict)


def migrate_to_dual_files(
    paths: Optional[CatalogPaths] = None, *, dry_run: bool = False
) -> MigrationReport:
    """Split every indexed single-file item into the light/full pair."""
    paths = paths or get_paths()
    report = MigrationReport()
    ids = _ids_from_legacy_index(read_json(paths.index_file)) if paths.index_file.exists() else []

    for item_id in ids:
        try:
            if paths.full_file(item_id).exists():
                report.skipped.append(item_id)
                continue
            record = read_json(paths.light_file(item_id))
            if not isinstance(record, dict):
                raise ValueError("record is not a JSON object")
            record.setdefault(CONTENT_FIELD, None)
            if not dry_run:
                store.save_item(item_id, record, paths=paths)
            report.migrated.append(item_id)
        except (OSError, ValueError) as e:
            report.failed.append(item_id)
            report.errors[item_id] = str(e)
            log.warning("[migrate] %s failed: %s", item_id, e)

    log.info(
        "[migrate] migrated=%d skipped=%d failed=%d",
        len(report.migrated),
        len(report.skipped),
        len(report.failed),
    )
    return report


__all__ = ["flatten_index", "MigrationReport", "migrate_to_dual_files"]
