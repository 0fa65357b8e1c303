"""Implementação de SessionStore usando Redis (produção).

Espera um cliente ``redis.asyncio``; sessões são gravadas como JSON em
``session:{key}`` com ``SETEX`` quando há TTL.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from messenger_router.domain.errors import SessionStoreError
from messenger_router.domain.protocols import SessionStore
from messenger_router.domain.session import Session
from messenger_router.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)


class RedisSessionStore(SessionStore):
    """Armazenamento em Redis para produção."""

    def __init__(self, redis_client: Any, key_prefix: str = "session:") -> None:
        self._redis = redis_client
        self._prefix = key_prefix

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def set(self, key: str, session: Session, ttl_seconds: int | None = None) -> Session:
        payload = session.model_dump_json()
        try:
            if ttl_seconds:
                await self._redis.setex(self._redis_key(key), ttl_seconds, payload)
            else:
                await self._redis.set(self._redis_key(key), payload)
        except Exception as e:
            logger.error(
                "session_save_failed_redis",
                extra={"session_key": mask_id(key), "error_type": type(e).__name__},
            )
            raise SessionStoreError(f"Redis save failed: {e}") from e

        logger.debug(
            "session_saved_redis",
            extra={"session_key": mask_id(key), "ttl_seconds": ttl_seconds},
        )
        return session

    async def get(self, key: str) -> Session | None:
        try:
            payload = await self._redis.get(self._redis_key(key))
        except Exception as e:
            logger.error(
                "session_load_failed_redis",
                extra={"session_key": mask_id(key), "error_type": type(e).__name__},
            )
            raise SessionStoreError(f"Redis load failed: {e}") from e

        if not payload:
            logger.debug("session_not_found_redis", extra={"session_key": mask_id(key)})
            return None

        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        try:
            return Session.model_validate_json(payload)
        except ValidationError as e:
            logger.error("session_corrupted_redis", extra={"session_key": mask_id(key)})
            raise SessionStoreError(f"Corrupted session payload for {key!r}") from e
