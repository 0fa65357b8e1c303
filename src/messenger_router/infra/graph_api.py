"""Cliente da Graph API (Messenger Platform).

Implementa ``ProfileResolver`` (perfil público) e ``MessageSender`` (Send API)
sobre o ``HttpClient`` com retry. Também expõe o texto de saudação da thread.

Erros:
- lookup / thread settings → GraphApiError
- send → SendError (``is_retryable`` preservado do transporte)

Tokens vão apenas em query string; a URL logada é mascarada.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from messenger_router.domain.errors import GraphApiError, SendError
from messenger_router.domain.protocols import MessageSender, ProfileResolver, SendResult
from messenger_router.infra.http import HttpClient, HttpError, create_http_client
from messenger_router.observability.logging import get_logger, mask_id

if TYPE_CHECKING:
    from messenger_router.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

PROFILE_FIELDS = "first_name,last_name,profile_pic,locale,timezone,gender"


def _graph_error_details(body: dict[str, Any] | None) -> tuple[str | None, str | None]:
    """Extrai (type, message) de um corpo ``{"error": {...}}`` da Graph API."""
    error = (body or {}).get("error")
    if not isinstance(error, dict):
        return None, None
    return error.get("type"), error.get("message")


def serialize_payload(payload: Any) -> Any:
    """Payloads de ``responses`` expõem ``to_dict()``; dicts passam intactos."""
    to_dict = getattr(payload, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return payload


class GraphApiClient(ProfileResolver, MessageSender):
    """Acesso à Graph API com credencial por chamada."""

    def __init__(self, http_client: HttpClient, endpoint: str) -> None:
        self._http = http_client
        self._endpoint = endpoint.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> GraphApiClient:
        return cls(create_http_client(settings), settings.graph_api_endpoint)

    async def close(self) -> None:
        await self._http.close()

    async def lookup(self, user_id: str, access_token: str) -> dict[str, Any]:
        """Perfil público do usuário (first_name, last_name, ...)."""
        data = await self._call_graph(
            "GET",
            f"{self._endpoint}/{user_id}",
            access_token,
            params={"fields": PROFILE_FIELDS},
        )
        logger.debug("profile_lookup_succeeded", extra={"user_id": mask_id(user_id)})
        return data

    async def send(self, access_token: str, recipient_id: str, payload: Any) -> SendResult:
        """Envia ``payload`` como ``message`` ao destinatário.

        Raises:
            SendError: falha de transporte ou erro devolvido pela plataforma
        """
        body = {"recipient": {"id": recipient_id}, "message": serialize_payload(payload)}
        try:
            response = await self._http.post(
                f"{self._endpoint}/me/messages",
                json=body,
                params={"access_token": access_token},
            )
        except HttpError as exc:
            error_type, message = _graph_error_details(exc.body)
            logger.warning(
                "message_send_failed",
                extra={
                    "recipient_id": mask_id(recipient_id),
                    "status_code": exc.status_code,
                    "error_type": error_type,
                },
            )
            raise SendError(
                message or str(exc),
                status_code=exc.status_code,
                is_retryable=exc.is_retryable,
            ) from exc

        data = self._json(response, SendError)
        error_type, message = _graph_error_details(data)
        if error_type or message:
            raise SendError(message or "Graph API error", status_code=response.status_code)

        result = SendResult(
            recipient_id=data.get("recipient_id"),
            message_id=data.get("message_id"),
        )
        logger.info(
            "message_sent",
            extra={"recipient_id": mask_id(recipient_id), "message_id": result.message_id},
        )
        return result

    async def set_greeting_text(self, access_token: str, text: str) -> dict[str, Any]:
        """Define o texto de saudação exibido antes da primeira conversa."""
        return await self._call_graph(
            "POST",
            f"{self._endpoint}/me/thread_settings",
            access_token,
            json={"setting_type": "greeting", "greeting": {"text": text}},
        )

    async def remove_greeting_text(self, access_token: str) -> dict[str, Any]:
        return await self._call_graph(
            "DELETE",
            f"{self._endpoint}/me/thread_settings",
            access_token,
            json={"setting_type": "greeting"},
        )

    async def _call_graph(
        self,
        method: str,
        url: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        query = {**(params or {}), "access_token": access_token}
        try:
            if method == "GET":
                response = await self._http.get(url, params=query)
            elif method == "DELETE":
                response = await self._http.delete(url, json=json, params=query)
            else:
                response = await self._http.post(url, json=json, params=query)
        except HttpError as exc:
            error_type, message = _graph_error_details(exc.body)
            logger.warning(
                "graph_api_failed",
                extra={"method": method, "status_code": exc.status_code, "error_type": error_type},
            )
            raise GraphApiError(
                message or str(exc), status_code=exc.status_code, error_type=error_type
            ) from exc

        data = self._json(response, GraphApiError)
        error_type, message = _graph_error_details(data)
        if error_type or message:
            raise GraphApiError(
                message or "Graph API error",
                status_code=response.status_code,
                error_type=error_type,
            )
        return data

    @staticmethod
    def _json(
        response: httpx.Response, error_cls: type[GraphApiError] | type[SendError]
    ) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise error_cls("Resposta JSON inválida da Graph API") from exc
        if not isinstance(data, dict):
            raise error_cls("Resposta inesperada da Graph API")
        return data
