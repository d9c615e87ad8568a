import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .errors import StudioError
from .logging_config import setup_logging
from .redis_client import redis_client
from .routers import (
    availability,
    billing,
    buddy,
    circuit,
    clients,
    forms,
    holidays,
    nutrition,
    overrides,
    push_subscriptions,
    reschedule,
    sessions,
    tools,
)
from .services.push import p2p_consumer_loop, retry_consumer_loop

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks = []
    if settings.run_push_consumers:
        tasks = [
            asyncio.create_task(p2p_consumer_loop(settings.redis_url)),
            asyncio.create_task(retry_consumer_loop(settings.redis_url)),
        ]
        logger.info("Push consumers started")
    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


app = FastAPI(title="Studio API", lifespan=lifespan)


@app.exception_handler(StudioError)
async def studio_error_handler(request: Request, exc: StudioError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


for module in (
    clients,
    sessions,
    holidays,
    overrides,
    availability,
    reschedule,
    circuit,
    billing,
    buddy,
    push_subscriptions,
    nutrition,
    forms,
    tools,
):
    app.include_router(module.router)


@app.get("/health")
def health():
    try:
        redis_ok = redis_client.ping()
    except Exception as e:
        logger.warning(f"Redis ping failed: {e}")
        redis_ok = False
    return {"redis": redis_ok}
