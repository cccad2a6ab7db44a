"""
app/main.py

Purpose: Application entry point

- Builds the FastAPI app (CORS, timing header, error handlers, routers)
- Startup: validate config, connect the record store, purge stale temp media,
  start the idle-session sweeper
- Shutdown: stop the sweeper, close the store
"""

import asyncio
import time
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api import health, webhook
from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import get_logger, setup_logging
from app.db.indexes import create_indexes
from app.db.mongo import check_database_health, close_mongo_connection, connect_to_mongo
from app.flow.dispatcher import get_dispatcher

setup_logging()
logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 30.0


async def open_store():
    if not settings.uses_mongo:
        logger.info("Record store: in-memory")
        return
    await connect_to_mongo()
    await create_indexes()
    if not await check_database_health():
        logger.warning("⚠️ Database health check failed during startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🌱 Starting AgriBot...")
    try:
        validate_settings()
        await open_store()

        services = get_dispatcher().services
        services.media.purge_stale()
        sweeper = asyncio.create_task(services.sessions.run_sweeper())
    except Exception as e:
        logger.critical(f"Failed to start application: {e}", exc_info=True)
        raise

    logger.info(f"🎉 AgriBot ready ({settings.ENVIRONMENT}, store={settings.STORE_BACKEND})")
    yield

    logger.info("🛑 Shutting down AgriBot...")
    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    if settings.uses_mongo:
        await close_mongo_connection()


app = FastAPI(
    title="AgriBot - WhatsApp Agronomy Assistant",
    description="WhatsApp agronomy assistant with receipt-verified premium access",
    version=health.APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)


@app.middleware("http")
async def timing_header(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    if elapsed > SLOW_REQUEST_SECONDS:
        # webhook turns include AI and authority calls
        logger.warning(f"🐢 Slow request: {request.method} {request.url.path} took {elapsed:.1f}s")
    return response


app.include_router(health.router, tags=["Health"])
app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower(),
    )
