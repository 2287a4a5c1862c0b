import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import Redis

import config
from db import create_db_and_tables
from jobs.cart_cleanup_job import cart_cleanup_scheduler
from web.api_router import api_router

# Background tasks
cart_cleanup_task = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    global cart_cleanup_task

    # Startup
    await create_db_and_tables()

    if config.REDIS_URL:
        app.state.redis = Redis.from_url(config.REDIS_URL)
        logging.info("[Startup] Restaurant settings cache enabled (Redis)")
    else:
        app.state.redis = None
        logging.info("[Startup] Restaurant settings cache disabled (no REDIS_URL)")

    cart_cleanup_task = asyncio.create_task(cart_cleanup_scheduler())
    logging.info("[Startup] Cart cleanup job started")

    yield

    # Shutdown
    logging.warning('Shutting down..')

    if cart_cleanup_task is not None:
        cart_cleanup_task.cancel()
        try:
            await cart_cleanup_task
        except asyncio.CancelledError:
            logging.info("[Shutdown] Cart cleanup job stopped")

    if app.state.redis is not None:
        await app.state.redis.aclose()
    logging.warning('Bye!')


app = FastAPI(lifespan=lifespan)

if config.API_CORS_ALLOWED_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.API_CORS_ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "X-User-Id"],
    )
    logging.info(f"[Startup] CORS middleware enabled for origins: {config.API_CORS_ALLOWED_ORIGINS}")
else:
    logging.debug("[Startup] CORS middleware disabled (no allowed origins configured)")

app.include_router(api_router)


# Health check endpoint (for Docker container monitoring)
@app.get("/health")
async def health_check():
    """Health check endpoint for Docker healthcheck."""
    return {"status": "healthy"}


@app.exception_handler(Exception)
async def exception_handler(request: Request, exc: Exception):
    logging.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "An unexpected error occurred. Please try again later"},
    )


def main() -> None:
    uvicorn.run(app, host=config.WEBAPP_HOST, port=config.WEBAPP_PORT)
