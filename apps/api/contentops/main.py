import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from contentops.api.articles import router as articles_router
from contentops.api.submissions import router as submissions_router
from contentops.api.webhooks import router as webhooks_router
from contentops.core.config import settings
from contentops.core.errors import ContentOpsError
from contentops.core.logging import setup_logging
from contentops.db.session import get_db

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Content Operations API", version="0.1.0")
app.include_router(articles_router)
app.include_router(submissions_router)
app.include_router(webhooks_router)


@app.exception_handler(ContentOpsError)
def contentops_error_handler(request: Request, exc: ContentOpsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.message})


class HealthResponse(BaseModel):
    ok: bool
    service: str
    version: str
    db_ok: bool


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    db_ok = False
    db: Session | None = None
    try:
        db = next(get_db())
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.exception("Health check database probe failed")
    finally:
        if db is not None:
            db.close()

    return HealthResponse(ok=True, service="api", version=app.version, db_ok=db_ok)
