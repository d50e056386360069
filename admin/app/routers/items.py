# admin/app/routers/items.py
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from admin.app.dependencies.auth import require_auth
from admin.app.models import ItemCreatedOut, OkOut
from admin.app.services import curation

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/items", tags=["items"])


@contextmanager
def spooled_uploads(files: List[UploadFile]) -> Iterator[List[str]]:
    """Copy uploads to a temp dir (original basenames kept as format hints)."""
    tmp = Path(tempfile.mkdtemp(prefix="reposhelf-upload-"))
    try:
        out: List[str] = []
        for i, f in enumerate(files):
            name = os.path.basename(f.filename or "") or f"upload-{uuid.uuid4().hex}"
            dest = tmp / f"{i}-{name}"
            with dest.open("wb") as fh:
                shutil.copyfileobj(f.file, fh)
            out.append(str(dest))
        yield out
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


def _parse_data(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail={"ok": False, "error": f"invalid data JSON: {e}"})
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail={"ok": False, "error": "data must be an object"})
    return data


@router.post("", response_model=ItemCreatedOut, dependencies=[Depends(require_auth)])
def create_item(data: str = Form(...), files: List[UploadFile] = File(default=[])):
    payload = _parse_data(data)
    image_urls = list(payload.pop("imageUrls", None) or [])
    with spooled_uploads(files) as uploaded:
        record = curation.add_item(payload, image_urls + uploaded)
    return ItemCreatedOut(id=record.id, images=record.images, thumbnail=record.thumbnail)


async def _read_update_body(request: Request) -> tuple[Dict[str, Any], List[UploadFile]]:
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("multipart/form-data"):
        form = await request.form()
        uploads = [f for f in form.getlist("files") if hasattr(f, "filename")]
        return _parse_data(form.get("data")), uploads
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail={"ok": False, "error": f"invalid JSON: {e}"})
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail={"ok": False, "error": "body must be an object"})
    return body, []


@router.put("/{item_id}", dependencies=[Depends(require_auth)])
async def modify_item(item_id: str, request: Request):
    updates, uploads = await _read_update_body(request)
    image_urls = list(updates.pop("imageUrls", None) or [])
    refetch = bool(updates.pop("refetchContent", False))
    with spooled_uploads(uploads) as uploaded:
        item = await run_in_threadpool(
            curation.update_item,
            item_id,
            updates,
            image_urls + uploaded,
            refetch_content=refetch,
        )
    return {"ok": True, "item": item}


@router.delete("/{item_id}", response_model=OkOut, dependencies=[Depends(require_auth)])
def remove_item(item_id: str):
    curation.delete_item(item_id)
    return OkOut()
