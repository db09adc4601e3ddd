# quillpost/services/token_store.py

"""
Реестр активных refresh-токенов в Redis.

Ключ - jti токена, значение - id пользователя, TTL равен сроку жизни токена.
Пока клиент не подключен (например, в тестах), запись молча пропускается,
а проверка считает токен неактивным.
"""
import json
import logging
from typing import Any, Optional

import redis.asyncio as redis

from quillpost.config import settings

logger = logging.getLogger(__name__)

REFRESH_PREFIX = "refresh"


class RedisTokenStore:
    def __init__(self, url: str):
        self._url = url
        self._client: Optional[redis.Redis] = None

    async def connect(self):
        if self._client is None:
            self._client = redis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, key: str) -> Optional[Any]:
        if self._client is None:
            return None
        raw_data = await self._client.get(key)
        if raw_data is None:
            return None
        return json.loads(raw_data)

    async def _set(self, key: str, value: Any, ttl: int):
        if self._client is None:
            return
        await self._client.setex(key, ttl, json.dumps(value, default=str))

    async def _delete(self, key: str):
        if self._client is None:
            return
        await self._client.delete(key)

    async def store_refresh_token(self, jti: str, user_id: int) -> None:
        ttl_seconds = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
        await self._set(f"{REFRESH_PREFIX}:{jti}", {"user_id": user_id}, ttl=ttl_seconds)

    async def is_refresh_token_active(self, jti: str) -> bool:
        return await self._get(f"{REFRESH_PREFIX}:{jti}") is not None

    async def revoke_refresh_token(self, jti: str) -> None:
        await self._delete(f"{REFRESH_PREFIX}:{jti}")

    async def ping(self) -> bool:
        """
        Простейшая проверка доступности Redis
        Возвращает True, если пинг прошел, иначе False.
        """
        if self._client is None:
            return False
        try:
            await self._client.ping()
            return True
        except redis.RedisError as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

token_store = RedisTokenStore(settings.REDIS_URL)
