from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
import logging
from pathlib import Path

from admin.app.routers import batch as batch_router
from admin.app.routers import collections as collections_router
from admin.app.routers import items as items_router
from admin.app.routers import status as status_router
from admin.app.config import settings as C
from admin.app.errors import CatalogError, FetchError, NotFoundError
from admin.app.services.catalog import ensure_index
from admin.app.telemetry import telemetry

log = logging.getLogger(__name__)

# /docs is the static site preview, so the OpenAPI UI moves under /api
app = FastAPI(title="reposhelf-admin", docs_url="/api/docs", redoc_url=None)

origins = [origin.strip() for origin in C.CORS_ORIGINS.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routers
app.include_router(status_router.router)
app.include_router(collections_router.router)
app.include_router(items_router.router)
app.include_router(batch_router.router)

# Site preview: /docs is the published site, /assets its images
site = Path(C.SITE_DIR)
app.mount("/assets", StaticFiles(directory=site / "assets", check_dir=False), name="assets")
app.mount("/docs", StaticFiles(directory=site, html=True, check_dir=False), name="docs")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return _error(404, str(exc))


@app.exception_handler(FetchError)
async def _fetch_failed(request: Request, exc: FetchError):
    # upstream 4xx means the operator gave a bad source; anything else is a gateway failure
    code = 400 if exc.status_code and 400 <= exc.status_code < 500 else 502
    telemetry.set_error(f"fetch {exc.url or request.url.path}: {exc}")
    return _error(code, str(exc))


@app.exception_handler(CatalogError)
async def _catalog_error(request: Request, exc: CatalogError):
    return _error(400, str(exc))


@app.exception_handler(RequestValidationError)
async def _bad_request(request: Request, exc: RequestValidationError):
    return _error(400, str(exc))


@app.exception_handler(ValidationError)
async def _invalid_record(request: Request, exc: ValidationError):
    return _error(400, str(exc))


@app.exception_handler(ValueError)
async def _bad_value(request: Request, exc: ValueError):
    return _error(400, str(exc))


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception):
    log.exception("[admin] %s %s failed", request.method, request.url.path)
    telemetry.set_error(f"{request.url.path}: {exc}")
    return _error(500, str(exc))


@app.on_event("startup")
async def _startup_log():
    logging.info(f"[admin] DATA_DIR={C.DATA_DIR}  IMAGES_DIR={C.IMAGES_DIR}")
    try:
        ensure_index()
    except OSError as e:
        logging.warning(f"[admin] ensure_index skipped due to error: {e}")
    logging.info(
        "[admin] Routes: /status /api/collections /api/categories /api/items /api/batch-update"
    )


@app.get("/")
async def root():
    return {"message": "reposhelf admin service"}


def run(port: int | None = None, host: str = "0.0.0.0") -> None:
    import uvicorn

    uvicorn.run(app, host=host, port=port or C.PORT_ADMIN)


if __name__ == "__main__":
    run()
