"""
FastAPI app assembly: logging, engine lifecycle, error mapping and routers.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, status
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.requests import Request
from starlette.responses import JSONResponse

from server_registry.api.servers import router as servers_router
from server_registry.db.database import dispose_engine, get_db, init_engine
from server_registry.errors import ErrorKind, RegistryError

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.CANCELLED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_engine()
    logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)
    try:
        yield
    finally:
        dispose_engine()


app = FastAPI(
    title="Server Registry",
    description="Versioned server metadata registry with per-server latest tracking.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error("request_failed: path=%s kind=%s error=%s", request.url.path, exc.kind.value, exc)
    return JSONResponse({"detail": str(exc), "kind": exc.kind.value}, status_code=status_code)


@app.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}


app.include_router(servers_router)
