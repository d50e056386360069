"""categories.json: the category list plus the free-standing tag list.

Tags are independent of categories. Older files store tags as ``{id, name}``
objects, newer ones as plain strings; both are read, new tags are appended as
strings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from admin.app.schema.item_schema import normalize_tags
from admin.app.utils.jsonio import read_json, write_json_atomic
from admin.app.utils.paths import CatalogPaths, get_paths

log = logging.getLogger(__name__)

DEFAULT_CATEGORIES: List[Dict[str, str]] = [
    {"id": "flutter", "name": "Flutter", "icon": "🇫🇮"},
    {"id": "iOS", "name": "iOS", "icon": "🍎"},
    {"id": "unity", "name": "Unity", "icon": "🎮"},
    {"id": "vue", "name": "Vue", "icon": "🖼️"},
    {"id": "mini", "name": "小程序", "icon": "📱"},
    {"id": "tools", "name": "工具", "icon": "🔧"},
    {"id": "ai", "name": "AI/ML", "icon": "🤖"},
    {"id": "article", "name": "技术文章", "icon": "📝"},
]


def load_categories(paths: Optional[CatalogPaths] = None) -> Dict[str, Any]:
    """Return categories.json, writing the default set on first use."""
    paths = paths or get_paths()
    if paths.categories_file.exists():
        data = read_json(paths.categories_file)
        data.setdefault("categories", [])
        data.setdefault("tags", [])
        return data
    data = {"categories": [dict(c) for c in DEFAULT_CATEGORIES], "tags": []}
    write_json_atomic(paths.categories_file, data)
    log.info("[categories] wrote defaults to %s", paths.categories_file)
    return data


def category_ids(paths: Optional[CatalogPaths] = None) -> List[str]:
    return [c["id"] for c in load_categories(paths)["categories"]]


def _tag_id(entry: Any) -> str:
    if isinstance(entry, dict):
        return str(entry.get("id", ""))
    return str(entry)


def register_tags(tags: Iterable[str], paths: Optional[CatalogPaths] = None) -> List[str]:
    """Append tags not seen before; returns the newly added ones."""
    paths = paths or get_paths()
    wanted = normalize_tags(list(tags))
    if not wanted:
        return []
    data = load_categories(paths)
    existing = {_tag_id(t) for t in data["tags"]}
    new_tags = [t for t in wanted if t not in existing]
    if new_tags:
        data["tags"].extend(new_tags)
        write_json_atomic(paths.categories_file, data)
        log.info("[categories] added tags: %s", ", ".join(new_tags))
    return new_tags


__all__ = ["DEFAULT_CATEGORIES", "load_categories", "category_ids", "register_tags"]
