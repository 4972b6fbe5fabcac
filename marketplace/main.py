# marketplace/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.core import logging_config  # noqa: F401
from marketplace.core.config import get_settings
from marketplace.core.exceptions import BaseServiceError
from marketplace.database import async_session
from marketplace.routes import chats, health
from marketplace.scheduler import start_scheduler, stop_scheduler
from marketplace.services.attempt_ledger import AttemptLedger
from marketplace.services.name_cache import NameCache

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SCHEDULER_ENABLED:
        attempts = AttemptLedger(async_session, ttl_seconds=settings.CHECKOUT_ATTEMPT_TTL_SECONDS)
        await start_scheduler(app.state.name_cache, attempts, settings)
    else:
        logger.info("Scheduler is disabled. Set SCHEDULER_ENABLED=true to enable")
    try:
        yield
    finally:
        await stop_scheduler()


app = FastAPI(
    title="Campus Marketplace Chat",
    lifespan=lifespan
)

app.state.name_cache = NameCache(ttl_seconds=settings.NAME_CACHE_TTL_SECONDS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BaseServiceError)
async def service_error_handler(request: Request, exc: BaseServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Invalid input",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content = {"success": False, "message": "Internal server error"}
    if settings.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


app.include_router(chats.router)
app.include_router(health.router)  # Health check should be accessible without auth
