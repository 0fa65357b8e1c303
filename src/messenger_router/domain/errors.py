"""Taxonomia de erros do roteador.

Política de propagação:
- Falha de lookup de perfil é recuperada localmente (perfil vazio).
- Falhas de store, envio e credencial propagam sem embrulho genérico.
- IncompleteResponseError é erro de programação: nunca suprimir.
"""

from __future__ import annotations


class MessengerRouterError(Exception):
    """Base de todos os erros do roteador."""


class MalformedEventError(MessengerRouterError):
    """Evento bruto sem campos obrigatórios (ex.: sender.id ausente)."""


class GraphApiError(MessengerRouterError):
    """Falha de transporte ou da plataforma ao consultar a Graph API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class MissingPageConfigError(MessengerRouterError):
    """Nenhuma credencial registrada para a página solicitada."""

    def __init__(self, page_id: object | None) -> None:
        super().__init__(f"Tried accessing page {page_id!r} without a configured access token")
        self.page_id = page_id


class SendError(MessengerRouterError):
    """Falha ao entregar mensagem outbound (sem retry no core)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable


class UnknownUserError(MessengerRouterError):
    """Controle de pausa para usuário sem sessão existente."""

    def __init__(self, user_id: object) -> None:
        super().__init__(f"No session found for user {user_id!r}")
        self.user_id = user_id


class IncompleteResponseError(MessengerRouterError):
    """Envelope de resposta construído sem sender_id ou session."""


class SessionStoreError(MessengerRouterError):
    """Erro ao persistir ou recuperar sessão."""
