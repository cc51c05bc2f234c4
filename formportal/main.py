from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from formportal.api.categories import router as categories_router
from formportal.api.forms import router as forms_router
from formportal.api.health import router as health_router
from formportal.api.locations import router as locations_router
from formportal.api.me import router as me_router
from formportal.api.root import router as root_router
from formportal.api.submissions import router as submissions_router
from formportal.core.config import settings
from formportal.core.errors import (
    ConfigNotFound,
    DuplicateIdError,
    FormEngineError,
    FormReadOnlyError,
    NetworkError,
    PersistenceError,
    ValidationError,
)
from formportal.core.logging_config import configure_logging
from formportal.db.session import init_models, mirror_engine, primary_engine

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ConfigNotFound: 404,
    ValidationError: 400,
    DuplicateIdError: 409,
    FormReadOnlyError: 409,
    PersistenceError: 502,
    NetworkError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.APP_ENV, settings.LOG_LEVEL)
    await init_models(primary_engine, mirror_engine)
    logger.info("formportal started (env=%s)", settings.APP_ENV)
    yield
    await primary_engine.dispose()
    await mirror_engine.dispose()


app = FastAPI(title="Form Portal", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FormEngineError)
async def form_engine_error_handler(request: Request, exc: FormEngineError):
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    body: dict = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.errors:
        body["errors"] = exc.errors
    if isinstance(exc, PersistenceError) and exc.backends:
        body["backends"] = exc.backends
    if status_code >= 500:
        logger.warning("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content=body)


app.include_router(root_router)
app.include_router(health_router)
app.include_router(me_router)
app.include_router(categories_router)
app.include_router(forms_router)
app.include_router(submissions_router)
app.include_router(locations_router)
