# admin/app/routers/collections.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from admin.app.models import FetchContentIn, FetchContentOut, ParseUrlIn
from admin.app.services import articles, catalog, categories, github_api
from admin.app.services import item_storage as store
from admin.app.services.curation import fetch_original_content
from admin.app.errors import InvalidItemIdError, NotFoundError

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/collections")
def list_collections():
    """Index order (most recent first) plus the light record of each entry."""
    ids = catalog.list_ids()
    items = []
    for item_id in ids:
        try:
            items.append(store.read_item(item_id))
        except NotFoundError:
            log.warning("[index] %s listed but has no record", item_id)
        except InvalidItemIdError:
            log.warning("[index] skipping invalid id %r", item_id)
    return {"ok": True, "ids": ids, "items": items, "total": len(items)}


@router.get("/categories")
def list_categories():
    return categories.load_categories()


@router.get("/items/{item_id}")
def get_item(item_id: str, full: bool = Query(False)):
    return store.read_item(item_id, full=full)


@router.post("/parse-url")
def parse_url(body: ParseUrlIn):
    if github_api.parse_github_url(body.url):
        info = github_api.get_repo_info(body.url)
        info["type"] = "repo"
    else:
        info = articles.get_article_info(body.url)
        info["type"] = "article"
    return info


@router.post("/fetch-content", response_model=FetchContentOut)
def fetch_content(body: FetchContentIn):
    kind = "repo" if github_api.parse_github_url(body.url) else body.type
    return FetchContentOut(content=fetch_original_content(kind, body.url))
