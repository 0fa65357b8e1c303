"""Implementação de SessionStore usando Firestore (``firestore.AsyncClient``)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from messenger_router.domain.errors import SessionStoreError
from messenger_router.domain.protocols import SessionStore
from messenger_router.domain.session import Session
from messenger_router.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)

_TTL_FIELD = "_ttl_expire_at"


class FirestoreSessionStore(SessionStore):
    """Armazenamento de sessão em Firestore.

    A expiração é gravada em ``_ttl_expire_at`` (compatível com TTL policy do
    Firestore) e também verificada na leitura.
    """

    def __init__(self, firestore_client: Any, collection: str = "sessions") -> None:
        self._client = firestore_client
        self._collection = collection

    def _document(self, key: str) -> Any:
        return self._client.collection(self._collection).document(key)

    async def set(self, key: str, session: Session, ttl_seconds: int | None = None) -> Session:
        payload: dict[str, Any] = session.model_dump(mode="json")
        if ttl_seconds:
            payload[_TTL_FIELD] = datetime.now(tz=UTC) + timedelta(seconds=ttl_seconds)

        try:
            await self._document(key).set(payload)
        except Exception as e:
            logger.error(
                "session_save_failed_firestore",
                extra={"session_key": mask_id(key), "error_type": type(e).__name__},
            )
            raise SessionStoreError(f"Failed to save session to Firestore: {e}") from e

        logger.debug(
            "session_saved_firestore",
            extra={"session_key": mask_id(key), "ttl_seconds": ttl_seconds},
        )
        return session

    async def get(self, key: str) -> Session | None:
        try:
            doc = await self._document(key).get()
        except Exception as e:
            logger.error(
                "session_load_failed_firestore",
                extra={"session_key": mask_id(key), "error_type": type(e).__name__},
            )
            raise SessionStoreError(f"Failed to load session from Firestore: {e}") from e

        if not doc.exists:
            logger.debug("session_not_found_firestore", extra={"session_key": mask_id(key)})
            return None

        data = doc.to_dict() or {}
        expire_at = data.pop(_TTL_FIELD, None)
        if isinstance(expire_at, datetime) and datetime.now(tz=UTC) > expire_at:
            logger.debug("session_expired_firestore", extra={"session_key": mask_id(key)})
            return None

        try:
            return Session.model_validate(data)
        except ValidationError as e:
            logger.error("session_corrupted_firestore", extra={"session_key": mask_id(key)})
            raise SessionStoreError(f"Corrupted session document for {key!r}") from e
