"""SessionManager — ciclo de vida da sessão por evento de mensageria.

Um passe de roteamento: carrega (ou cria) a sessão, checa pausa, enriquece
perfil, atualiza contadores/origem, classifica e persiste. Todo o passe
read→mutate→write roda sob um lock por chave, então eventos concorrentes do
mesmo usuário nunca competem pela sessão em cache.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from messenger_router.application.classifier import Classification, EventClassifier
from messenger_router.domain.errors import (
    GraphApiError,
    MalformedEventError,
    MissingPageConfigError,
    UnknownUserError,
)
from messenger_router.domain.protocols import CredentialRegistry, ProfileResolver, SessionStore
from messenger_router.domain.session import Session, SessionSource, build_session_key
from messenger_router.observability.logging import get_logger, log_fallback, mask_id

SESSION_TIMEOUT_MS = 3600 * 1000
PAUSE_WINDOW_MS = 3600 * 1000


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class KeyedLock:
    """Locks asyncio por chave; entradas somem quando ninguém mais as usa."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def _sender_id(raw_event: Any) -> str:
    """Valida o evento bruto e retorna ``sender.id`` como string."""
    if not isinstance(raw_event, dict):
        raise MalformedEventError("messaging event must be an object")
    sender = raw_event.get("sender")
    sender_id = sender.get("id") if isinstance(sender, dict) else None
    if isinstance(sender_id, bool) or not isinstance(sender_id, (str, int)):
        raise MalformedEventError("messaging event is missing sender.id")
    if isinstance(sender_id, str) and not sender_id.strip():
        raise MalformedEventError("messaging event has an empty sender.id")
    return str(sender_id)


class SessionManager:
    """Orquestra load → pausa → perfil → timing → classificação → persistência."""

    def __init__(
        self,
        store: SessionStore,
        classifier: EventClassifier,
        credentials: CredentialRegistry,
        profile_resolver: ProfileResolver,
        *,
        namespace: str | None = None,
        session_timeout_ms: int = SESSION_TIMEOUT_MS,
        pause_window_ms: int = PAUSE_WINDOW_MS,
        profile_lookup_timeout_seconds: float = 5.0,
        session_ttl_seconds: int | None = None,
        now_ms: Callable[[], int] = wall_clock_ms,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._credentials = credentials
        self._profiles = profile_resolver
        self._namespace = namespace
        self._session_timeout_ms = session_timeout_ms
        self._pause_window_ms = pause_window_ms
        self._profile_timeout = profile_lookup_timeout_seconds
        self._session_ttl_seconds = session_ttl_seconds
        self._now_ms = now_ms
        self._logger = logger or get_logger(__name__)
        self._locks = KeyedLock()

    def session_key(self, sender_id: object) -> str:
        return build_session_key(sender_id, self._namespace)

    async def route(self, raw_event: Any, page_id: object | None = None) -> Classification:
        """Executa um passe de roteamento completo para um evento.

        Raises:
            MalformedEventError: evento sem ``sender.id``
            SessionStoreError: falha de leitura/escrita (fatal para o passe)
        """
        sender_id = _sender_id(raw_event)
        key = self.session_key(sender_id)

        async with self._locks.acquire(key):
            session = await self._load(key, page_id)

            now = self._now_ms()
            if session.paused:
                if session.is_paused(now, self._pause_window_ms):
                    self._logger.info(
                        "session_paused_skip",
                        extra={"session_key": mask_id(key), "paused_at": session.paused},
                    )
                    return Classification(session)
                self._logger.info(
                    "session_pause_expired",
                    extra={"session_key": mask_id(key), "paused_at": session.paused},
                )
                session = session.model_copy(update={"paused": None})

            session = await self._enrich_profile(session, sender_id)
            session = self._update_last_seen(session, now)

            classification = self._classifier.classify(raw_event, session)
            persisted = await self._store.set(
                key, classification.session, ttl_seconds=self._session_ttl_seconds
            )

        self._logger.debug(
            "session_routed",
            extra={
                "session_key": mask_id(key),
                "count": persisted.count,
                "events": classification.event_names,
            },
        )
        return Classification(persisted, classification.events)

    async def set_paused(self, user_id: object, paused: bool) -> Session:
        """Pausa/retoma o bot para um usuário (operador humano assumiu).

        Raises:
            UnknownUserError: nenhuma sessão existe ainda para o usuário
        """
        key = self.session_key(user_id)
        async with self._locks.acquire(key):
            session = await self._store.get(key)
            if session is None:
                raise UnknownUserError(user_id)
            session = session.model_copy(update={"paused": self._now_ms() if paused else None})
            persisted = await self._store.set(key, session, ttl_seconds=self._session_ttl_seconds)

        self._logger.info(
            "session_pause_updated",
            extra={"session_key": mask_id(key), "paused": paused},
        )
        return persisted

    async def _load(self, key: str, page_id: object | None) -> Session:
        session = await self._store.get(key)
        if session is None:
            self._logger.debug("session_created", extra={"session_key": mask_id(key)})
            return Session(key=key, page_id=page_id, count=0, profile=None)
        if page_id is not None and session.page_id != str(page_id):
            return session.model_copy(update={"page_id": str(page_id)})
        return session

    async def _enrich_profile(self, session: Session, sender_id: str) -> Session:
        if session.profile is not None:
            return session

        page_id = session.page_id or self._credentials.default_page_id
        if page_id is not None and sender_id == str(page_id):
            # A página não tem perfil público; a consulta sempre falharia.
            return session.model_copy(update={"profile": {}})

        started = time.monotonic()
        try:
            access_token = self._credentials.resolve(session.page_id)
            profile = await asyncio.wait_for(
                self._profiles.lookup(sender_id, access_token),
                timeout=self._profile_timeout,
            )
        except (GraphApiError, MissingPageConfigError, TimeoutError) as exc:
            log_fallback(
                self._logger,
                "profile_enrichment",
                reason=type(exc).__name__,
                elapsed_ms=round((time.monotonic() - started) * 1000, 2),
                sender_id=mask_id(sender_id),
            )
            profile = {}

        return session.model_copy(update={"profile": dict(profile or {})})

    def _update_last_seen(self, session: Session, now: int) -> Session:
        source = session.source
        if (
            source != SessionSource.RETURN
            and session.last_seen
            and now - session.last_seen > self._session_timeout_ms
        ):
            source = SessionSource.RETURN
        return session.model_copy(
            update={"count": session.count + 1, "source": source, "last_seen": now}
        )
