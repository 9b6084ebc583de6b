from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from campus.core.config import settings, validate_runtime_config
from campus.core.exceptions import BaseAPIException
from campus.core.logging import setup_logging
from campus.api.routes.health import router as health_router
from campus.api.routes.auth import router as auth_router
from campus.api.routes.courses import router as courses_router
from campus.api.routes.teachers import router as teachers_router
from campus.api.routes.enrollments import router as enrollments_router
from campus.db.base import Base
from campus.db.session import SessionLocal, engine
from campus.db.seed import seed_demo_data
from campus.infra.cache import close_redis_conn
from campus.schemas.common import ErrorOut

logger = logging.getLogger(__name__)


def envelope(request_id: str, data: Any = None, error: Optional[ErrorOut] = None) -> Dict[str, Any]:
    return {
        "request_id": request_id,
        "data": data,
        "error": error.model_dump(exclude_none=True) if error is not None else None,
    }


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = req_id
    return response


@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    req_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    error = ErrorOut(code=exc.code, message=exc.message, details=exc.details or None)
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(request_id=req_id, data=None, error=error),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    req_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    detail = exc.detail
    if isinstance(detail, dict):
        code = str(detail.get("code") or "HTTP_ERROR")
        message = detail.get("message") or str(detail)
        error = ErrorOut(code=code, message=str(message), details=detail)
    else:
        error = ErrorOut(code="HTTP_ERROR", message=str(detail))

    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(request_id=req_id, data=None, error=error),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    req_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return JSONResponse(
        status_code=422,
        content=envelope(
            request_id=req_id,
            data=None,
            error=ErrorOut(
                code="VALIDATION_ERROR",
                message="Invalid request",
                details={"errors": jsonable_encoder(exc.errors())},
            ),
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    req_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    logger.exception("Unhandled error on %s %s (request %s)", request.method, request.url.path, req_id)
    message = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(
        status_code=500,
        content=envelope(
            request_id=req_id,
            data=None,
            error=ErrorOut(code="INTERNAL_ERROR", message=message),
        ),
    )


@app.on_event("startup")
def on_startup():
    setup_logging()
    validate_runtime_config(settings)

    if not settings.is_production:
        # production schemas are managed by alembic
        Base.metadata.create_all(bind=engine)

    if settings.SEED_DEMO_DATA:
        db = SessionLocal()
        try:
            seed_demo_data(db)
        finally:
            db.close()

    logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)


@app.on_event("shutdown")
def on_shutdown():
    close_redis_conn()


app.include_router(health_router, prefix="/api")
app.include_router(auth_router, prefix="/api")
app.include_router(courses_router, prefix="/api")
app.include_router(teachers_router, prefix="/api")
app.include_router(enrollments_router, prefix="/api")
