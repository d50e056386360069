# admin/app/routers/batch.py
from __future__ import annotations

import json
import logging
from typing import Iterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from admin.app.dependencies.auth import require_auth
from admin.app.services.curation import batch_refresh

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["batch"])


def sse_events() -> Iterator[str]:
    try:
        for event in batch_refresh():
            yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
    except Exception as e:
        log.exception("[batch] aborted")
        yield f"data: {json.dumps({'type': 'error', 'message': str(e)}, ensure_ascii=False)}\n\n"


@router.post("/batch-update", dependencies=[Depends(require_auth)])
def batch_update():
    return StreamingResponse(
        sse_events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
