"""Modelo de sessão — estado durável de uma conversa usuário/página.

Session é imutável: cada estágio do roteamento devolve uma cópia nova via
``model_copy(update=...)`` e apenas o resultado final é persistido.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class SessionSource(StrEnum):
    """Origem da sessão corrente."""

    WEB = "web"  # Chegou via optin/autenticação
    RETURN = "return"  # Voltou após o timeout de sessão


DEFAULT_SESSION_NAMESPACE = "messenger"


def build_session_key(sender_id: object, namespace: str | None = None) -> str:
    """Deriva a chave estável da sessão a partir do id do usuário."""
    return f"{namespace or DEFAULT_SESSION_NAMESPACE}-{sender_id}"


class Session(BaseModel):
    """Estado da conversa de um usuário com uma página.

    - ``profile`` None = ainda não consultado; ``{}`` = consultado, nada disponível
    - ``paused`` guarda o timestamp (ms) em que um operador assumiu a conversa
    - ``source`` é "web", "return" ou None
    """

    model_config = ConfigDict(frozen=True)

    key: str
    page_id: str | None = None
    count: int = 0
    profile: dict[str, Any] | None = None
    last_seen: int | None = None
    source: str | None = None
    paused: int | None = None

    @field_validator("page_id", mode="before")
    @classmethod
    def _page_id_as_str(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("paused", mode="before")
    @classmethod
    def _paused_false_is_none(cls, value: Any) -> Any:
        # Stores antigos gravam `paused: false` para "não pausado".
        if value is False:
            return None
        return value

    def is_paused(self, now_ms: int, pause_window_ms: int) -> bool:
        """Pausa ativa apenas dentro da janela a partir do timestamp."""
        return bool(self.paused) and now_ms - int(self.paused) < pause_window_ms

    def profile_field(self, name: str) -> str:
        """Campo textual do perfil, aparado; vazio quando ausente."""
        value = (self.profile or {}).get(name)
        if not isinstance(value, str):
            return ""
        return value.strip()
