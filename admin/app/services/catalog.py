"""Catalog index: the ordered list of item ids (most recent first).

The index is one JSON array rewritten as a whole on every mutation.
``check_index`` reports drift between the index and the item files.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional

from admin.app.utils.jsonio import read_json, write_json_atomic
from admin.app.utils.paths import FULL_SUFFIX, LIGHT_SUFFIX, CatalogPaths, get_paths

log = logging.getLogger(__name__)


def list_ids(paths: Optional[CatalogPaths] = None) -> List[str]:
    """Current index; a missing file is an empty catalog."""
    paths = paths or get_paths()
    if not paths.index_file.exists():
        return []
    data = read_json(paths.index_file)
    if not isinstance(data, list):
        raise ValueError(
            f"{paths.index_file} is not a flat id array; run scripts/migrate_to_dual_files.py"
        )
    return [str(x) for x in data]


def _write(ids: List[str], paths: CatalogPaths) -> None:
    write_json_atomic(paths.index_file, ids)


def ensure_index(paths: Optional[CatalogPaths] = None) -> None:
    paths = paths or get_paths()
    paths.items_dir.mkdir(parents=True, exist_ok=True)
    if not paths.index_file.exists():
        _write([], paths)


def insert(item_id: str, paths: Optional[CatalogPaths] = None) -> List[str]:
    """Prepend ``item_id``; callers must not insert an id twice."""
    paths = paths or get_paths()
    ids = list_ids(paths)
    ids.insert(0, item_id)
    _write(ids, paths)
    log.info("[index] inserted %s (%d total)", item_id, len(ids))
    return ids


def remove(item_id: str, paths: Optional[CatalogPaths] = None) -> List[str]:
    """Drop ``item_id``; absent ids are a no-op (the file is left untouched)."""
    paths = paths or get_paths()
    ids = list_ids(paths)
    kept = [x for x in ids if x != item_id]
    if len(kept) != len(ids):
        _write(kept, paths)
        log.info("[index] removed %s (%d total)", item_id, len(kept))
    return kept


@dataclass
class IndexReport:
    missing_records: List[str] = field(default_factory=list)  # in index, no file pair
    unindexed_records: List[str] = field(default_factory=list)  # file pair, not in index
    duplicates: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.missing_records or self.unindexed_records or self.duplicates)


def _record_ids_on_disk(paths: CatalogPaths) -> List[str]:
    if not paths.items_dir.is_dir():
        return []
    out = []
    for fp in sorted(paths.items_dir.glob(f"*{FULL_SUFFIX}")):
        item_id = fp.name[: -len(FULL_SUFFIX)]
        if (paths.items_dir / f"{item_id}{LIGHT_SUFFIX}").is_file():
            out.append(item_id)
    return out


def check_index(paths: Optional[CatalogPaths] = None) -> IndexReport:
    paths = paths or get_paths()
    ids = list_ids(paths)
    on_disk = set(_record_ids_on_disk(paths))
    indexed = set(ids)
    return IndexReport(
        missing_records=[x for x in ids if x not in on_disk],
        unindexed_records=sorted(on_disk - indexed),
        duplicates=sorted(x for x, n in Counter(ids).items() if n > 1),
    )


__all__ = ["list_ids", "ensure_index", "insert", "remove", "IndexReport", "check_index"]
