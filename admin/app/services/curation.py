"""
Top-level catalog operations used by the HTTP routes and the CLI.

Each call runs to completion before the next one starts; there is no locking,
the catalog assumes a single operator.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from admin.app.config import settings
from admin.app.errors import CatalogError
from admin.app.schema.item_schema import ItemRecord, build_item_record, normalize_tags
from admin.app.services import articles, catalog, categories, github_api
from admin.app.services import item_storage as store
from admin.app.services.images import delete_images, ingest_images
from admin.app.telemetry import telemetry
from admin.app.utils.ids import generate_item_id, validate_item_id
from admin.app.utils.paths import CatalogPaths, get_paths

log = logging.getLogger(__name__)

# never overwritten through update_item
_IMMUTABLE = ("id", "createdAt")


def fetch_original_content(item_type: str, url: Optional[str]) -> Optional[str]:
    """README HTML for repos, the article body otherwise; None when unavailable."""
    if not url:
        return None
    if item_type == "repo":
        return github_api.get_repo_readme(url)
    return articles.fetch_article_content(url)


def _next_ordinal(images: Sequence[str]) -> int:
    """First free ordinal after the numbered assets already stored."""
    highest = 0
    for p in images:
        stem = p.rsplit("/", 1)[-1].split(".", 1)[0]
        if stem.isdigit():
            highest = max(highest, int(stem))
    return max(highest, len(images)) + 1


def _discard_files(public_paths: Sequence[str], paths: CatalogPaths) -> None:
    for p in public_paths:
        fp = paths.local_image_file(p)
        if fp is not None:
            fp.unlink(missing_ok=True)


# --- add -------------------------------------------------------------------------
def add_item(
    data: Mapping[str, Any],
    image_sources: Sequence[str] = (),
    *,
    fetch_content: bool = True,
    paths: Optional[CatalogPaths] = None,
) -> ItemRecord:
    paths = paths or get_paths()
    item_id = validate_item_id(data.get("id") or generate_item_id(data.get("name") or ""))
    if item_id in catalog.list_ids(paths) or store.item_exists(item_id, paths):
        raise CatalogError(f"item already exists: {item_id}")

    # no record means no owner: leftovers of an interrupted run go first
    if paths.item_images_dir(item_id).exists():
        log.warning("[curation] removing orphan image dir for %s", item_id)
        delete_images(item_id, paths=paths)

    ingested = ingest_images(list(image_sources), item_id, paths=paths)

    content = None
    if fetch_content:
        content = fetch_original_content(data.get("type") or "repo", data.get("url"))

    try:
        record = build_item_record(
            item_id,
            dict(data),
            images=ingested.images,
            thumbnail=ingested.thumbnail,
            original_content=content,
        )
        store.save_item(item_id, record, paths=paths)
        catalog.insert(item_id, paths=paths)
    except Exception as e:
        store.delete_item(item_id, paths=paths)
        delete_images(item_id, paths=paths)
        telemetry.set_error(f"add {item_id}: {e}")
        raise

    categories.register_tags(record.tags, paths=paths)
    telemetry.increment("items_added")
    telemetry.log_json("item_added", id=item_id, images=len(record.images))
    log.info("[curation] added %s (%d image(s))", item_id, len(record.images))
    return record


# --- update ----------------------------------------------------------------------
def update_item(
    item_id: str,
    updates: Mapping[str, Any],
    image_sources: Sequence[str] = (),
    *,
    refetch_content: bool = False,
    paths: Optional[CatalogPaths] = None,
) -> Dict[str, Any]:
    """
    Merge ``updates`` into the stored record and append any new images.

    New images are numbered after the existing ones; the first one becomes the
    thumbnail only when the item has none. Raises NotFoundError for unknown ids.
    """
    paths = paths or get_paths()
    validate_item_id(item_id)
    current = store.read_item(item_id, full=True, paths=paths)

    changes = {k: v for k, v in dict(updates).items() if k not in _IMMUTABLE}
    if "tags" in changes:
        changes["tags"] = normalize_tags(changes["tags"])

    base_images: List[str] = list(changes.get("images", current.get("images") or []))
    merged = {**current, **changes, "images": base_images}
    # reject bad field values before any image is written
    ItemRecord.model_validate(merged)

    ingested = ingest_images(
        list(image_sources),
        item_id,
        paths=paths,
        start=_next_ordinal(base_images),
        with_thumbnail=not merged.get("thumbnail"),
    )
    if ingested.images or "images" in changes:
        changes["images"] = base_images + ingested.images
    if ingested.thumbnail:
        changes["thumbnail"] = ingested.thumbnail

    if refetch_content:
        merged_type = changes.get("type", current.get("type")) or "repo"
        merged_url = changes.get("url", current.get("url"))
        content = fetch_original_content(merged_type, merged_url)
        if content is not None:
            changes["originalContent"] = content

    try:
        updated = store.update_item(item_id, changes, paths=paths)
    except Exception as e:
        _discard_files(ingested.images + ([ingested.thumbnail] if ingested.thumbnail else []), paths)
        telemetry.set_error(f"update {item_id}: {e}")
        raise

    categories.register_tags(updated.get("tags") or [], paths=paths)
    telemetry.increment("items_updated")
    telemetry.log_json("item_updated", id=item_id, fields=sorted(changes))
    log.info("[curation] updated %s (%s)", item_id, ", ".join(sorted(changes)) or "touch")
    return updated


# --- delete ----------------------------------------------------------------------
def delete_item(item_id: str, *, paths: Optional[CatalogPaths] = None) -> bool:
    """Remove records, images and index entry. Returns False if nothing existed."""
    paths = paths or get_paths()
    validate_item_id(item_id)
    existed = (
        store.item_exists(item_id, paths)
        or paths.item_images_dir(item_id).exists()
        or item_id in catalog.list_ids(paths)
    )
    store.delete_item(item_id, paths=paths)
    delete_images(item_id, paths=paths)
    catalog.remove(item_id, paths=paths)
    if existed:
        telemetry.increment("items_deleted")
        telemetry.log_json("item_deleted", id=item_id)
    return existed


# --- batch refresh ---------------------------------------------------------------
def _refreshable(item: Mapping[str, Any]) -> bool:
    return item.get("type") == "repo" and github_api.parse_github_url(item.get("url") or "") is not None


def batch_refresh(
    *,
    delay: Optional[float] = None,
    paths: Optional[CatalogPaths] = None,
    fetch_stats: Optional[Callable[[str], Optional[Dict[str, Any]]]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[Dict[str, Any]]:
    """
    Refresh GitHub stats of every repo item, one at a time.

    Yields ``start`` / ``progress`` / ``done`` events. A failing entry is
    reported in its progress event and the loop moves on. ``delay`` seconds
    (BATCH_DELAY_MS by default) separate consecutive entries.
    """
    paths = paths or get_paths()
    delay = settings.BATCH_DELAY_MS / 1000.0 if delay is None else delay
    fetch_stats = fetch_stats or github_api.get_repo_stats

    targets: List[Dict[str, Any]] = []
    for item_id in catalog.list_ids(paths):
        try:
            item = store.read_item(item_id, paths=paths)
        except (CatalogError, OSError, ValueError) as e:
            log.warning("[batch] skipping unreadable %s: %s", item_id, e)
            continue
        if _refreshable(item):
            targets.append(item)

    total = len(targets)
    yield {"type": "start", "total": total}
    log.info("[batch] refreshing %d repo(s)", total)

    updated = failed = 0
    for i, item in enumerate(targets, start=1):
        if i > 1 and delay > 0:
            sleep(delay)
        event: Dict[str, Any] = {
            "type": "progress",
            "current": i,
            "total": total,
            "id": item["id"],
            "name": item.get("name") or item["id"],
        }
        telemetry.increment("batch_refresh_total")
        try:
            stats = fetch_stats(item["url"])
            if not stats:
                raise CatalogError("stats unavailable")
            full = store.read_item(item["id"], full=True, paths=paths)
            github = {**(full.get("github") or {}), **stats}
            store.update_item(item["id"], {"github": github}, paths=paths)
            event.update(success=True, stars=github.get("stars"), forks=github.get("forks"))
            updated += 1
        except Exception as e:
            failed += 1
            telemetry.increment("batch_refresh_failed")
            log.warning("[batch] %s failed: %s", item["id"], e)
            event.update(success=False, error=str(e))
        yield event

    telemetry.log_json("batch_refresh", total=total, updated=updated, failed=failed)
    log.info("[batch] done: %d updated, %d failed", updated, failed)
    yield {"type": "done", "total": total, "updated": updated, "failed": failed}


__all__ = [
    "fetch_original_content",
    "add_item",
    "update_item",
    "delete_item",
    "batch_refresh",
]
