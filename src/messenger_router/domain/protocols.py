"""Contratos dos colaboradores externos do roteador (async)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from messenger_router.domain.session import Session


class SendResult(BaseModel):
    """Resultado de um envio outbound."""

    recipient_id: str | None = None
    message_id: str | None = None


class SessionStore(ABC):
    """Contrato mínimo assíncrono de cache chave/valor de sessões.

    Expiração por TTL é responsabilidade do store, nunca do core.
    """

    @abstractmethod
    async def get(self, key: str) -> Session | None:
        """Retorna a sessão ou None quando ausente/expirada.

        Raises:
            SessionStoreError: Falha do backend (fatal para o roteamento)
        """
        ...

    @abstractmethod
    async def set(self, key: str, session: Session, ttl_seconds: int | None = None) -> Session:
        """Persiste e devolve a sessão persistida.

        Raises:
            SessionStoreError: Falha do backend (fatal para o roteamento)
        """
        ...


class ProfileResolver(ABC):
    """Consulta de perfil público de um usuário."""

    @abstractmethod
    async def lookup(self, user_id: str, access_token: str) -> dict[str, Any]:
        """Raises GraphApiError em qualquer falha de transporte/plataforma."""
        ...


class MessageSender(ABC):
    """Entrega de payload outbound a um usuário via credencial da página."""

    @abstractmethod
    async def send(self, access_token: str, recipient_id: str, payload: Any) -> SendResult:
        """Raises SendError em falha de entrega."""
        ...


class CredentialRegistry(ABC):
    """Resolve o token de envio de uma página."""

    @property
    @abstractmethod
    def default_page_id(self) -> str | None: ...

    @abstractmethod
    def resolve(self, page_id: object | None) -> str:
        """Raises MissingPageConfigError quando não há credencial para a página."""
        ...


@runtime_checkable
class TextMatcher(Protocol):
    """Predicado configurável de texto (saudação, ajuda)."""

    def matches(self, text: str) -> bool: ...
