# admin/app/routers/status.py
from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from admin.app.config import settings
from admin.app.services import catalog
from admin.app.telemetry import telemetry

router = APIRouter()


@router.get("/status")
async def status():
    """
    Returns service health + catalog size.
    Adds:
      - counters from the telemetry singleton
      - index_ok: False when the index is unreadable
    """
    try:
        total = len(catalog.list_ids())
        index_ok = True
    except (OSError, ValueError) as e:
        total = 0
        index_ok = False
        telemetry.set_error(f"index: {e}")

    # Get telemetry stats
    telemetry_stats = telemetry.get_stats()

    data = {
        "ok": True,
        "data_dir": settings.DATA_DIR,
        "images_dir": settings.IMAGES_DIR,
        "index_ok": index_ok,
        "counts": {"items": total},
        "github_token": bool(settings.GITHUB_TOKEN),
        **telemetry_stats,
    }
    return JSONResponse(data)
