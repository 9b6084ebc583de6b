from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis

from campus.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def get_redis_conn() -> redis.Redis:
    """Process-wide Redis client, created on first use."""
    global _client
    if _client is None:
        _client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def close_redis_conn() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


class CacheService:
    """Key-value entries kept in Redis.

    Two kinds of entries live here. Advisory ones (login lookup, profile,
    session) are best-effort: a Redis error is logged and treated as a miss,
    and ``enabled=False`` turns them off entirely. Reset-token records are
    authoritative and let Redis errors propagate.
    """

    LOGIN_PREFIX = "cache:login:"
    USER_PREFIX = "user:"
    SESSION_PREFIX = "session:"
    RESET_PREFIX = "reset_token:"

    def __init__(self, client: redis.Redis, *, enabled: bool = True):
        self.client = client
        self.enabled = enabled

    # ----- raw access -----

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl:
            self.client.setex(key, int(ttl), value)
        else:
            self.client.set(key, value)

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    # ----- best-effort helpers -----

    def _safe_set_json(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        if not self.enabled:
            return
        try:
            self.set(key, json.dumps(value, default=str), ttl)
        except redis.RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key.split(":")[0], exc)

    def _safe_get_json(self, key: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            return None
        try:
            raw = self.get(key)
        except redis.RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key.split(":")[0], exc)
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Dropping unreadable cache entry %s", key.split(":")[0])
            self._safe_delete(key)
            return None

    def _safe_delete(self, key: str) -> None:
        try:
            self.delete(key)
        except redis.RedisError as exc:
            logger.warning("Cache delete failed for %s: %s", key.split(":")[0], exc)

    # ----- login lookup -----

    def get_login(self, email: str) -> Optional[Dict[str, Any]]:
        return self._safe_get_json(self.LOGIN_PREFIX + email.lower())

    def set_login(self, email: str, data: Dict[str, Any]) -> None:
        self._safe_set_json(self.LOGIN_PREFIX + email.lower(), data, settings.LOGIN_CACHE_TTL_SEC)

    def invalidate_login(self, email: str) -> None:
        # invalidation runs even with the cache disabled so a re-enable never serves stale hashes
        self._safe_delete(self.LOGIN_PREFIX + email.lower())

    # ----- profile -----

    def get_user(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self._safe_get_json(f"{self.USER_PREFIX}{user_id}")

    def set_user(self, user_id: int, data: Dict[str, Any]) -> None:
        self._safe_set_json(f"{self.USER_PREFIX}{user_id}", data, settings.USER_CACHE_TTL_SEC)

    def invalidate_user(self, user_id: int) -> None:
        self._safe_delete(f"{self.USER_PREFIX}{user_id}")

    # ----- session -----

    def set_session(self, user_id: int, email: str) -> None:
        data = {
            "id": int(user_id),
            "email": email,
            "logged_in_at": datetime.now(timezone.utc).isoformat(),
        }
        self._safe_set_json(f"{self.SESSION_PREFIX}{user_id}", data, settings.SESSION_TTL_SEC)

    def delete_session(self, user_id: int) -> None:
        self._safe_delete(f"{self.SESSION_PREFIX}{user_id}")

    # ----- password reset tokens (authoritative) -----

    def store_reset_token(self, token: str, user_id: int, ttl: int) -> None:
        self.set(self.RESET_PREFIX + token, str(int(user_id)), ttl)

    def consume_reset_token(self, token: str) -> Optional[int]:
        """Return the user id stored for ``token`` and remove the record in the same call."""
        raw = self.client.getdel(self.RESET_PREFIX + token)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            return None


def get_cache() -> CacheService:
    return CacheService(get_redis_conn(), enabled=settings.CACHE_ENABLED)
