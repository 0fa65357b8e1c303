"""Eventos classificados publicados para os handlers da aplicação.

Todo evento herda de ``Response``: o envelope com ``sender_id``, ``session``
e a capacidade de resposta já vinculada ao remetente e à página da sessão.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar

from messenger_router.domain.errors import IncompleteResponseError
from messenger_router.domain.session import Session

if TYPE_CHECKING:
    from messenger_router.domain.protocols import SendResult

ReplySender = Callable[[str, Any, "str | None"], Awaitable["SendResult"]]


class EventName(StrEnum):
    """Nomes canônicos de eventos."""

    AUTH = "auth"
    LINK = "link"
    LOGIN = "login"
    MESSAGE = "message"
    MESSAGE_TEXT = "message.text"
    MESSAGE_QUICK_REPLY = "message.quickReply"
    TEXT = "text"
    TEXT_GREETING = "text.greeting"
    TEXT_HELP = "text.help"
    POSTBACK = "postback"
    REFERRAL = "referral"


class TextSource(StrEnum):
    """Origem do evento genérico ``text``."""

    TEXT = "text"
    QUICK_REPLY = "quickReply"
    POSTBACK = "postback"


def attachment_event_name(kind: str) -> str:
    """``message.<kind>`` (image, audio, video, file, sticker, thumbsup, ...)."""
    return f"{EventName.MESSAGE}.{kind}"


@dataclass(frozen=True, kw_only=True)
class Response:
    """Envelope imutável vinculado a um remetente e sua sessão.

    ``reply(payload)`` envia para ``sender_id`` usando a credencial da página
    da sessão. Construir sem ``sender_id`` ou ``session`` é erro de programação.
    """

    name: ClassVar[str] = ""

    event: dict[str, Any] = field(default_factory=dict)
    sender_id: str | None = None
    session: Session | None = None
    reply_with: ReplySender | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.sender_id:
            raise IncompleteResponseError("Response requires a sender_id")
        if self.session is None:
            raise IncompleteResponseError("Response requires a session")

    @property
    def event_name(self) -> str:
        return self.name

    @property
    def page_id(self) -> str | None:
        return self.session.page_id if self.session else None

    async def reply(self, payload: Any) -> SendResult:
        """Envia ``payload`` ao remetente via a página da sessão."""
        if self.reply_with is None:
            raise IncompleteResponseError("Response has no reply capability bound")
        return await self.reply_with(self.sender_id, payload, self.page_id)


@dataclass(frozen=True, kw_only=True)
class AuthEvent(Response):
    name: ClassVar[str] = EventName.AUTH

    optin_ref: Any = None


@dataclass(frozen=True, kw_only=True)
class MessageEvent(Response):
    name: ClassVar[str] = EventName.MESSAGE

    message: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class TextEvent(Response):
    """Evento genérico de texto (texto livre, quick reply ou postback)."""

    name: ClassVar[str] = EventName.TEXT

    source: TextSource
    text: str
    normalized_text: str


@dataclass(frozen=True, kw_only=True)
class MessageTextEvent(Response):
    name: ClassVar[str] = EventName.MESSAGE_TEXT

    text: str


@dataclass(frozen=True, kw_only=True)
class QuickReplyEvent(Response):
    name: ClassVar[str] = EventName.MESSAGE_QUICK_REPLY

    payload: str


@dataclass(frozen=True, kw_only=True)
class GreetingEvent(Response):
    name: ClassVar[str] = EventName.TEXT_GREETING

    first_name: str = ""
    sur_name: str = ""
    full_name: str = ""


@dataclass(frozen=True, kw_only=True)
class HelpEvent(Response):
    name: ClassVar[str] = EventName.TEXT_HELP


@dataclass(frozen=True, kw_only=True)
class AttachmentEvent(Response):
    """Primeiro anexo da mensagem; ``kind`` define ``message.<kind>``."""

    kind: str
    attachment: dict[str, Any] = field(default_factory=dict)
    url: str | None = None

    @property
    def event_name(self) -> str:
        return attachment_event_name(self.kind)


@dataclass(frozen=True, kw_only=True)
class PostbackEvent(Response):
    name: ClassVar[str] = EventName.POSTBACK

    payload: str


@dataclass(frozen=True, kw_only=True)
class ReferralEvent(Response):
    name: ClassVar[str] = EventName.REFERRAL

    referral: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class LinkEvent(Response):
    """Postback da página estática de login (não é evento da plataforma)."""

    name: ClassVar[str] = EventName.LINK

    fb_data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class LoginEvent(Response):
    name: ClassVar[str] = EventName.LOGIN
