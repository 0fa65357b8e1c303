"""Classificador de eventos de mensageria.

Transforma um evento bruto do webhook (já com sessão resolvida) em zero ou
mais eventos tipados. Função pura: não faz I/O e não persiste nada; a única
mudança de sessão possível é ``source="web"`` em optin.

Prioridade (primeiro discriminante presente vence):
optin > message > delivery > postback > read > referral.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from messenger_router.application.matchers import (
    build_greeting_matcher,
    build_help_matcher,
    normalize_string,
)
from messenger_router.domain.errors import MalformedEventError
from messenger_router.domain.events import (
    AttachmentEvent,
    AuthEvent,
    GreetingEvent,
    HelpEvent,
    MessageEvent,
    MessageTextEvent,
    PostbackEvent,
    QuickReplyEvent,
    ReferralEvent,
    ReplySender,
    Response,
    TextEvent,
    TextSource,
)
from messenger_router.domain.protocols import TextMatcher
from messenger_router.domain.session import Session, SessionSource
from messenger_router.observability.logging import get_logger, mask_id

logger: logging.Logger = get_logger(__name__)

# Botão especial de "joinha" do Messenger chega como sticker com este id.
THUMBS_UP_STICKER_ID = 369239263222822


@dataclass(frozen=True)
class Classification:
    """Resultado de um passe de roteamento: sessão final + eventos emitidos."""

    session: Session
    events: list[Response] = field(default_factory=list)

    @property
    def event_names(self) -> list[str]:
        return [event.event_name for event in self.events]


def _text_or_empty(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _is_thumbs_up(sticker_id: Any) -> bool:
    return str(sticker_id) == str(THUMBS_UP_STICKER_ID)


def _find_sticker_id(message: dict[str, Any], attachment: dict[str, Any]) -> Any:
    """Procura o sticker id na mensagem, no anexo ou no payload do anexo."""
    payload = attachment.get("payload")
    candidates = [message.get("sticker_id"), attachment.get("sticker_id")]
    if isinstance(payload, dict):
        candidates.append(payload.get("sticker_id"))

    present = [candidate for candidate in candidates if candidate]
    for candidate in present:
        if _is_thumbs_up(candidate):
            return candidate
    return present[0] if present else None


def attachment_kind(message: dict[str, Any], attachment: dict[str, Any]) -> str:
    """Tag do anexo: thumbsup > sticker > tipo declarado ("unknown" se ausente)."""
    sticker_id = _find_sticker_id(message, attachment)
    if sticker_id is not None:
        return "thumbsup" if _is_thumbs_up(sticker_id) else "sticker"
    kind = attachment.get("type")
    return str(kind) if kind else "unknown"


class EventClassifier:
    """Classifica eventos brutos em eventos tipados.

    Matchers de saudação/ajuda são estratégias injetadas; ``reply_with`` é a
    capacidade de resposta vinculada em cada envelope emitido.
    """

    def __init__(
        self,
        greeting_matcher: TextMatcher | None = None,
        help_matcher: TextMatcher | None = None,
        reply_with: ReplySender | None = None,
    ) -> None:
        self._greetings = greeting_matcher or build_greeting_matcher(True)
        self._help = help_matcher or build_help_matcher()
        self._reply_with = reply_with

    def classify(self, raw_event: dict[str, Any], session: Session) -> Classification:
        sender_id = str(raw_event["sender"]["id"])

        if raw_event.get("optin"):
            session = session.model_copy(update={"source": SessionSource.WEB})
            return Classification(session, [self._auth(raw_event, sender_id, session)])

        if raw_event.get("message"):
            return Classification(session, self._on_message(raw_event, sender_id, session))

        if raw_event.get("delivery"):
            logger.debug("delivery_event_ignored", extra={"sender_id": mask_id(sender_id)})
            return Classification(session)

        if raw_event.get("postback"):
            return Classification(session, self._on_postback(raw_event, sender_id, session))

        if raw_event.get("read"):
            logger.debug("read_event_ignored", extra={"sender_id": mask_id(sender_id)})
            return Classification(session)

        if raw_event.get("referral"):
            referral = raw_event["referral"]
            event = ReferralEvent(
                **self._envelope(raw_event, sender_id, session),
                referral=referral if isinstance(referral, dict) else {"ref": referral},
            )
            return Classification(session, [event])

        logger.info(
            "unknown_messaging_event",
            extra={"sender_id": mask_id(sender_id), "keys": sorted(raw_event.keys())},
        )
        return Classification(session)

    # Construtores de eventos

    def _envelope(
        self, raw_event: dict[str, Any], sender_id: str, session: Session
    ) -> dict[str, Any]:
        return {
            "event": raw_event,
            "sender_id": sender_id,
            "session": session,
            "reply_with": self._reply_with,
        }

    def _auth(self, raw_event: dict[str, Any], sender_id: str, session: Session) -> AuthEvent:
        optin = raw_event["optin"]
        optin_ref = optin.get("ref") if isinstance(optin, dict) else None
        logger.info(
            "auth_received",
            extra={"sender_id": mask_id(sender_id), "has_ref": optin_ref is not None},
        )
        return AuthEvent(**self._envelope(raw_event, sender_id, session), optin_ref=optin_ref)

    def _optional_events(
        self, raw_event: dict[str, Any], sender_id: str, session: Session, text: str
    ) -> list[Response]:
        """Saudação tem precedência sobre ajuda; lista vazia se nenhum casar."""
        envelope = self._envelope(raw_event, sender_id, session)
        if self._greetings.matches(text):
            first_name = session.profile_field("first_name")
            sur_name = session.profile_field("last_name")
            return [
                GreetingEvent(
                    **envelope,
                    first_name=first_name,
                    sur_name=sur_name,
                    full_name=f"{first_name} {sur_name}",
                )
            ]
        if self._help.matches(text):
            return [HelpEvent(**envelope)]
        return []

    def _on_message(
        self, raw_event: dict[str, Any], sender_id: str, session: Session
    ) -> list[Response]:
        message = raw_event["message"]
        if not isinstance(message, dict):
            raise MalformedEventError("message must be an object")

        envelope = self._envelope(raw_event, sender_id, session)
        events: list[Response] = [MessageEvent(**envelope, message=message)]

        if message.get("is_echo"):
            # Ecos das mensagens enviadas pela própria página
            logger.debug(
                "message_echo_ignored",
                extra={"sender_id": mask_id(sender_id), "has_metadata": "metadata" in message},
            )
            return events

        text = message.get("text")
        quick_reply = message.get("quick_reply")
        attachments = message.get("attachments")

        if not quick_reply and isinstance(text, str):
            optional = self._optional_events(raw_event, sender_id, session, text)
            if optional:
                return events + optional

        if quick_reply:
            payload = _text_or_empty(
                quick_reply.get("payload") if isinstance(quick_reply, dict) else quick_reply
            )
            events.append(
                TextEvent(
                    **envelope,
                    source=TextSource.QUICK_REPLY,
                    text=payload,
                    normalized_text=normalize_string(payload),
                )
            )
            events.append(QuickReplyEvent(**envelope, payload=payload))
            return events

        if text:
            text = _text_or_empty(text)
            logger.debug(
                "text_received",
                extra={
                    "sender_id": mask_id(sender_id),
                    "count": session.count,
                    "seq": message.get("seq"),
                },
            )
            events.append(
                TextEvent(
                    **envelope,
                    source=TextSource.TEXT,
                    text=text,
                    normalized_text=normalize_string(text),
                )
            )
            events.append(MessageTextEvent(**envelope, text=text))
            return events

        if isinstance(attachments, list) and attachments:
            # Apenas o primeiro anexo é considerado
            attachment = attachments[0] if isinstance(attachments[0], dict) else {}
            payload = attachment.get("payload")
            url = payload.get("url") if isinstance(payload, dict) else None
            events.append(
                AttachmentEvent(
                    **envelope,
                    kind=attachment_kind(message, attachment),
                    attachment=attachment,
                    url=url,
                )
            )
        return events

    def _on_postback(
        self, raw_event: dict[str, Any], sender_id: str, session: Session
    ) -> list[Response]:
        postback = raw_event["postback"]
        payload = _text_or_empty(postback.get("payload") if isinstance(postback, dict) else None)
        logger.debug(
            "postback_received",
            extra={"sender_id": mask_id(sender_id), "payload_length": len(payload)},
        )

        envelope = self._envelope(raw_event, sender_id, session)
        events: list[Response] = [PostbackEvent(**envelope, payload=payload)]

        optional = self._optional_events(raw_event, sender_id, session, payload)
        if optional:
            return events + optional

        events.append(
            TextEvent(
                **envelope,
                source=TextSource.POSTBACK,
                text=payload,
                normalized_text=normalize_string(payload),
            )
        )
        return events
