# admin/app/dependencies/auth.py
import logging

from fastapi import HTTPException, Request
from fastapi.security import HTTPBearer

from ..config import settings

log = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def require_auth(request: Request) -> bool:
    """
    Dependency that requires a bearer token on mutating routes.
    If ADMIN_AUTH_TOKEN is not set, authentication is disabled.
    """
    token = settings.ADMIN_AUTH_TOKEN.strip()
    if not token:
        log.debug("[auth] no ADMIN_AUTH_TOKEN configured, skipping authentication")
        return True

    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=401, detail={"ok": False, "error": "unauthorized"}
        )

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0] != "Bearer":
        raise HTTPException(
            status_code=401, detail={"ok": False, "error": "unauthorized"}
        )

    if parts[1] != token:
        log.debug("[auth] bearer token mismatch for %s", request.url.path)
        raise HTTPException(
            status_code=401, detail={"ok": False, "error": "unauthorized"}
        )

    return True
