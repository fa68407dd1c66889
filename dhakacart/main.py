# dhakacart/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.concurrency import run_in_threadpool

from dhakacart.api import include_routers
from dhakacart.api.errors import register_error_handlers
from dhakacart.data.database import engine, init_db
from dhakacart.services.cache_service import CacheService
from dhakacart.services.notification_service import NotificationService
from dhakacart.services.payment_gateway import default_gateways
from dhakacart.services.rate_limiter import RateLimiter
from dhakacart.utils.settings import ENV
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database...")
    init_db()

    # serwisy wspoldzielone przez caly proces: tworzone przy starcie, zamykane przy stopie
    if getattr(app.state, "cache", None) is None:
        app.state.cache = CacheService()
    if getattr(app.state, "rate_limiter", None) is None:
        app.state.rate_limiter = RateLimiter()
    if getattr(app.state, "payment_gateways", None) is None:
        app.state.payment_gateways = default_gateways()
    if getattr(app.state, "notifier", None) is None:
        app.state.notifier = NotificationService()

    logger.info(f"DhakaCart backend started ({ENV})")
    yield

    logger.info("Shutting down gracefully...")
    app.state.cache.close()
    app.state.rate_limiter.close()
    engine.dispose()


async def rate_limit_middleware(request: Request, call_next):
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or request.url.path == "/health":
        return await call_next(request)

    client_key = request.client.host if request.client else "unknown"
    try:
        # klient redisa jest synchroniczny, wiec poza petla zdarzen
        result = await run_in_threadpool(limiter.hit, client_key)
    except RedisError as e:
        # limiter niedostepny - przepuszczamy ruch
        logger.warning(f"Rate limiter unavailable: {e}")
        return await call_next(request)

    if not result.allowed:
        return JSONResponse(
            status_code=429,
            content={"error": RATE_LIMIT_MESSAGE, "retryAfter": result.retry_after},
        )
    return await call_next(request)


def create_app() -> FastAPI:
    app = FastAPI(
        title="DhakaCart Backend",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.middleware("http")(rate_limit_middleware)
    register_error_handlers(app)
    include_routers(app)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=5000)
