"""Implementação de SessionStore em memória (apenas dev/testes)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from messenger_router.domain.protocols import SessionStore
from messenger_router.domain.session import Session
from messenger_router.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)


class InMemorySessionStore(SessionStore):
    """Armazenamento em memória (não usar em produção)."""

    def __init__(self, default_ttl_seconds: int | None = None) -> None:
        self._sessions: dict[str, tuple[Session, float | None]] = {}
        self._default_ttl = default_ttl_seconds

    async def set(self, key: str, session: Session, ttl_seconds: int | None = None) -> Session:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expire_at = datetime.now(tz=UTC).timestamp() + ttl if ttl else None
        self._sessions[key] = (session, expire_at)
        logger.debug(
            "session_saved_memory",
            extra={"session_key": mask_id(key), "ttl_seconds": ttl},
        )
        return session

    async def get(self, key: str) -> Session | None:
        entry = self._sessions.get(key)
        if entry is None:
            logger.debug("session_not_found_memory", extra={"session_key": mask_id(key)})
            return None

        session, expire_at = entry
        if expire_at is not None and datetime.now(tz=UTC).timestamp() > expire_at:
            del self._sessions[key]
            logger.debug("session_expired_memory", extra={"session_key": mask_id(key)})
            return None
        return session

    def __len__(self) -> int:
        return len(self._sessions)
