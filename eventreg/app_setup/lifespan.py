"""
Lifespan FastAPI: ressources partagées du service d'inscription.
- Connexion Redis du rate limiting (FastAPILimiter), fermée à l'arrêt.
- Variables d'environnement lues au démarrage:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: pas d'init du tout (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: Redis en mémoire via fakeredis
  - LOCAL_RATE_LIMIT_FALLBACK=1: limiteur local si Redis est injoignable
"""
import os
import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

try:
    from fakeredis.aioredis import FakeRedis  # extra [test]
except ImportError:
    FakeRedis = None

logger = logging.getLogger("uvicorn.error")

DEFAULT_REDIS_URL = "redis://127.0.0.1:6379/0"

def _redis_connection():
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        if FakeRedis is None:
            raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
        return FakeRedis(decode_responses=True)
    url = os.getenv("RATE_LIMIT_REDIS_URL") or DEFAULT_REDIS_URL
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)

async def _init_rate_limiter(app: FastAPI) -> bool:
    """
    Initialise FastAPILimiter. Retourne True si Redis est réellement branché.
    L'état effectif est exposé dans app.state.rate_limit_enabled (lu par /health).
    """
    try:
        await FastAPILimiter.init(_redis_connection())
    except Exception as e:
        fallback = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        app.state.rate_limit_enabled = fallback
        logger.warning(
            "app_setup.lifespan rate limiting %s (init error: %s)",
            "local fallback" if fallback else "disabled",
            e,
        )
        return False
    app.state.rate_limit_enabled = True
    logger.info("app_setup.lifespan rate limiting enabled")
    return True

@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("app_setup.lifespan rate limiting disabled for tests")
        yield
        return

    connected = await _init_rate_limiter(app)
    try:
        yield
    finally:
        if connected:
            await FastAPILimiter.close()
