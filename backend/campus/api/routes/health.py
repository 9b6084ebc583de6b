import logging

import redis
from fastapi import APIRouter

from campus.core.config import settings
from campus.infra.cache import get_redis_conn

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _cache_status() -> dict:
    if not settings.CACHE_ENABLED:
        return {"enabled": False, "reachable": None}
    try:
        reachable = bool(get_redis_conn().ping())
    except redis.RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        reachable = False
    return {"enabled": True, "reachable": reachable}


@router.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV, "cache": _cache_status()}
