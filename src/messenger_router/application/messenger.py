"""Messenger — fachada do roteador para a aplicação embarcada.

Liga SessionManager, EventBus, registro de credenciais e MessageSender:

    messenger = Messenger.from_settings(settings)

    @messenger.handler("text.greeting")
    async def greet(event):
        await event.reply(Text("hello", event.first_name))
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

from messenger_router.adapters.messenger.responses import Generic
from messenger_router.adapters.messenger.webhook import (
    WebhookProcessingSummary,
    extract_messaging_events,
    is_page_payload,
)
from messenger_router.application.classifier import EventClassifier
from messenger_router.application.dispatcher import EventBus, Handler
from messenger_router.application.matchers import build_greeting_matcher, build_help_matcher
from messenger_router.application.session_manager import (
    PAUSE_WINDOW_MS,
    SESSION_TIMEOUT_MS,
    SessionManager,
    wall_clock_ms,
)
from messenger_router.domain.errors import MalformedEventError
from messenger_router.domain.events import LinkEvent, LoginEvent, Response
from messenger_router.domain.protocols import (
    CredentialRegistry,
    MessageSender,
    ProfileResolver,
    SendResult,
    SessionStore,
    TextMatcher,
)
from messenger_router.domain.session import Session
from messenger_router.infra.conversation_logger import ConversationLogger
from messenger_router.observability.logging import get_logger, mask_id

if TYPE_CHECKING:
    from messenger_router.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


class Messenger:
    """Roteamento de eventos, publicação tipada e envio de respostas."""

    def __init__(
        self,
        *,
        store: SessionStore,
        credentials: CredentialRegistry,
        profile_resolver: ProfileResolver,
        sender: MessageSender,
        bus: EventBus | None = None,
        emit_greetings: bool | str | re.Pattern[str] | TextMatcher = True,
        help_matcher: str | re.Pattern[str] | TextMatcher | None = None,
        conversation_logger: ConversationLogger | None = None,
        namespace: str | None = None,
        server_url: str = "http://localhost:3000",
        session_timeout_ms: int = SESSION_TIMEOUT_MS,
        pause_window_ms: int = PAUSE_WINDOW_MS,
        profile_lookup_timeout_seconds: float = 5.0,
        session_ttl_seconds: int | None = None,
        now_ms: Callable[[], int] = wall_clock_ms,
    ) -> None:
        self.bus = bus or EventBus()
        self.store = store
        self.credentials = credentials
        self._profiles = profile_resolver
        self._sender = sender
        self.conversations = conversation_logger or ConversationLogger()
        self._server_url = server_url.rstrip("/")
        self._now_ms = now_ms

        self.classifier = EventClassifier(
            greeting_matcher=build_greeting_matcher(emit_greetings),
            help_matcher=build_help_matcher(help_matcher),
            reply_with=self._reply,
        )
        self.sessions = SessionManager(
            store,
            self.classifier,
            credentials,
            profile_resolver,
            namespace=namespace,
            session_timeout_ms=session_timeout_ms,
            pause_window_ms=pause_window_ms,
            profile_lookup_timeout_seconds=profile_lookup_timeout_seconds,
            session_ttl_seconds=session_ttl_seconds,
            now_ms=now_ms,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: SessionStore | None = None,
        graph_client: Any | None = None,
        credentials: CredentialRegistry | None = None,
    ) -> Messenger:
        """Monta a fachada com os adapters padrão (Graph API, store configurado)."""
        from messenger_router.infra.credentials import StaticCredentialRegistry
        from messenger_router.infra.graph_api import GraphApiClient
        from messenger_router.infra.session_store import create_session_store_from_settings

        graph_client = graph_client or GraphApiClient.from_settings(settings)
        emit_greetings: bool | str = settings.emit_greetings
        if settings.emit_greetings and settings.greeting_pattern:
            emit_greetings = settings.greeting_pattern

        return cls(
            store=store or create_session_store_from_settings(settings),
            credentials=credentials or StaticCredentialRegistry.from_settings(settings),
            profile_resolver=graph_client,
            sender=graph_client,
            emit_greetings=emit_greetings,
            help_matcher=settings.help_pattern,
            conversation_logger=ConversationLogger(settings.conversation_log_file),
            namespace=settings.facebook_app_id,
            server_url=settings.server_url,
            session_timeout_ms=settings.session_timeout_ms,
            pause_window_ms=settings.pause_window_ms,
            profile_lookup_timeout_seconds=settings.profile_lookup_timeout_seconds,
            session_ttl_seconds=settings.session_ttl_seconds,
        )

    # Assinatura de eventos (delegação ao EventBus)

    def on(self, name: str, handler: Handler) -> Handler:
        return self.bus.on(name, handler)

    def once(self, name: str, handler: Handler) -> Handler:
        return self.bus.once(name, handler)

    def off(self, name: str, handler: Handler) -> None:
        self.bus.off(name, handler)

    def subscribe(self, event_type: type[Response], handler: Handler) -> Handler:
        return self.bus.subscribe(event_type, handler)

    def handler(self, name: str) -> Callable[[Handler], Handler]:
        return self.bus.handler(name)

    # Roteamento

    async def route_each_message(self, raw_event: Any, page_id: object | None = None) -> Session:
        """Roteia um evento de mensageria e publica os eventos classificados.

        Publicação acontece depois do lock da sessão ser liberado.
        """
        classification = await self.sessions.route(raw_event, page_id)
        for event in classification.events:
            await self.bus.publish(event)
        return classification.session

    async def handle_webhook(self, payload: Any) -> WebhookProcessingSummary:
        """Processa um payload completo do webhook, em ordem.

        Eventos malformados são contados e não abortam os irmãos; falhas de
        store propagam para que a plataforma reentregue.
        """
        summary = WebhookProcessingSummary(
            object_type=payload.get("object") if isinstance(payload, dict) else None
        )
        if not is_page_payload(payload):
            summary.notes.append("ignored_non_page_object")
            return summary

        envelopes = extract_messaging_events(payload)
        summary.total_received = len(envelopes)
        for envelope in envelopes:
            try:
                await self.route_each_message(envelope.event, envelope.page_id)
            except MalformedEventError as exc:
                summary.total_malformed += 1
                summary.errors.append(str(exc))
                logger.warning(
                    "malformed_messaging_event",
                    extra={"page_id": mask_id(envelope.page_id), "error": str(exc)},
                )
                continue
            summary.total_processed += 1

        logger.info(
            "webhook_processed",
            extra={
                "total_received": summary.total_received,
                "total_processed": summary.total_processed,
                "total_malformed": summary.total_malformed,
            },
        )
        return summary

    # Envio

    async def send(
        self, recipient_id: object, payload: Any, page_id: object | None = None
    ) -> SendResult:
        """Envia ``payload`` usando a credencial da página.

        Raises:
            MissingPageConfigError: página sem credencial (antes de qualquer I/O)
            SendError: falha de entrega, sem retry aqui
        """
        access_token = self.credentials.resolve(page_id)
        result = await self._sender.send(access_token, str(recipient_id), payload)
        serialized = payload.to_dict() if hasattr(payload, "to_dict") else payload
        self.conversations.log_outgoing(str(recipient_id), serialized, result)
        return result

    async def _reply(self, sender_id: str, payload: Any, page_id: str | None) -> SendResult:
        return await self.send(sender_id, payload, page_id)

    async def get_public_profile(
        self, user_id: object, page_id: object | None = None
    ) -> dict[str, Any]:
        """Raises MissingPageConfigError ou GraphApiError (sem fallback aqui)."""
        access_token = self.credentials.resolve(page_id)
        return await self._profiles.lookup(str(user_id), access_token)

    async def set_paused(self, user_id: object, paused: bool) -> Session:
        return await self.sessions.set_paused(user_id, paused)

    # Página estática de login

    def _transient_session(self, sender_id: str) -> Session:
        return Session(
            key=self.sessions.session_key(sender_id),
            page_id=self.credentials.default_page_id,
        )

    async def on_link(self, raw_event: Any) -> LinkEvent:
        """Postback da página de login: publica ``link`` com os dados do Facebook."""
        sender = raw_event.get("sender") if isinstance(raw_event, dict) else None
        sender_id = sender.get("id") if isinstance(sender, dict) else None
        if not sender_id:
            raise MalformedEventError("link event is missing sender.id")

        fb_data = raw_event.get("facebook")
        event = LinkEvent(
            event=raw_event,
            sender_id=str(sender_id),
            session=self._transient_session(str(sender_id)),
            reply_with=self._reply,
            fb_data=fb_data if isinstance(fb_data, dict) else {},
        )
        logger.info("link_received", extra={"sender_id": mask_id(sender_id)})
        await self.bus.publish(event)
        return event

    def login_url(self, sender_id: object) -> str:
        return f"{self._server_url}/login?{urlencode({'userId': sender_id})}"

    async def do_login(self, sender_id: object) -> SendResult:
        """Publica ``login`` e envia o botão "Login With Facebook"."""
        sender_id = str(sender_id)
        raw_event = {
            "sender": {"id": sender_id},
            "recipient": {"id": self.credentials.default_page_id},
            "timestamp": self._now_ms(),
        }
        await self.bus.publish(
            LoginEvent(
                event=raw_event,
                sender_id=sender_id,
                session=self._transient_session(sender_id),
                reply_with=self._reply,
            )
        )
        logger.info("login_requested", extra={"sender_id": mask_id(sender_id)})

        template = Generic(
            [
                {
                    "title": "Login With Facebook",
                    "subtitle": "",
                    "buttons": [
                        {
                            "type": "web_url",
                            "url": self.login_url(sender_id),
                            "title": "Login With Facebook",
                        }
                    ],
                }
            ]
        )
        return await self.send(sender_id, template)
