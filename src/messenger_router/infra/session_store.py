"""Factory de SessionStore por backend (memory | redis | firestore)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from messenger_router.domain.protocols import SessionStore
from messenger_router.infra.session_store_firestore import FirestoreSessionStore
from messenger_router.infra.session_store_memory import InMemorySessionStore
from messenger_router.infra.session_store_redis import RedisSessionStore
from messenger_router.observability.logging import get_logger

if TYPE_CHECKING:
    from messenger_router.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


def create_session_store(
    backend: str,
    client: Any | None = None,
    collection: str = "sessions",
) -> SessionStore:
    """Cria SessionStore para o backend informado.

    Args:
        backend: "memory", "redis" ou "firestore"
        client: cliente redis.asyncio ou firestore.AsyncClient
        collection: coleção Firestore

    Raises:
        ValueError: backend desconhecido ou cliente ausente
    """
    backend = backend.lower()
    if backend == "memory":
        return InMemorySessionStore()
    if backend == "redis":
        if client is None:
            raise ValueError("redis backend requer client")
        return RedisSessionStore(client)
    if backend == "firestore":
        if client is None:
            raise ValueError("firestore backend requer client")
        return FirestoreSessionStore(client, collection=collection)
    raise ValueError(f"Unknown session store backend: {backend}")


def create_session_store_from_settings(settings: Settings) -> SessionStore:
    """Instancia o cliente do backend configurado e cria o store."""
    backend = settings.session_store_backend.lower()

    if backend == "redis":
        if not settings.redis_url:
            raise ValueError("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")
        from redis import asyncio as redis_asyncio

        client = redis_asyncio.from_url(settings.redis_url, decode_responses=True)
        store = create_session_store("redis", client=client)
    elif backend == "firestore":
        from google.cloud import firestore

        client = firestore.AsyncClient(project=settings.firestore_project_id)
        store = create_session_store(
            "firestore", client=client, collection=settings.sessions_collection
        )
    else:
        store = create_session_store("memory")

    logger.info("session_store_created", extra={"backend": backend})
    return store
