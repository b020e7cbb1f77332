import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import get_settings
from src.infra.redis import close_redis, ping_redis
from src.routes.cache import router as cache_router
from src.routes.translate import router as translate_router
from src.routes.usage import router as usage_router
from src.services import runtime

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    runtime.get_scheduler().start()
    yield
    await runtime.shutdown()
    close_redis()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type"],
    max_age=600,
)

app.include_router(translate_router)
app.include_router(usage_router)
app.include_router(cache_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "redis": "ok" if ping_redis() else "unavailable"}
