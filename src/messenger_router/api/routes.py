"""Rotas HTTP: webhook do Messenger, link de login, saúde e pausa."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from messenger_router.adapters.messenger.signature import verify_hub_signature
from messenger_router.api.dependencies import get_messenger, get_settings
from messenger_router.application.messenger import Messenger
from messenger_router.config.settings import Settings
from messenger_router.domain.errors import MalformedEventError, UnknownUserError
from messenger_router.observability.logging import get_logger, mask_id
from messenger_router.observability.middleware import get_correlation_id

logger = get_logger(__name__)


class PauseRequest(BaseModel):
    paused: bool


def build_router(hook_path: str = "/webhook", link_path: str = "/link") -> APIRouter:
    """Cria o router com os caminhos configurados de webhook e link."""
    router = APIRouter()

    @router.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return "\N{THUMBS UP SIGN}"

    @router.get("/ping", response_class=PlainTextResponse)
    def ping() -> str:
        return "pong"

    @router.get("/health")
    def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
        """Healthcheck simples para Cloud Run."""
        return {"status": "ok", "service": settings.service_name, "version": settings.version}

    @router.get(hook_path)
    def messenger_verify(
        hub_mode: str | None = Query(None, alias="hub.mode"),
        hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
        hub_challenge: str | None = Query(None, alias="hub.challenge"),
        settings: Settings = Depends(get_settings),
    ) -> Response:
        """Verificação de webhook exigida pela plataforma."""
        if not settings.messenger_validation_token:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="missing_validation_token",
            )

        if hub_mode != "subscribe" or hub_verify_token != settings.messenger_validation_token:
            logger.warning("webhook_validation_failed")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="verification_failed",
            )

        logger.info("webhook_validated")
        return Response(content=hub_challenge or "", media_type="text/plain")

    @router.post(hook_path)
    async def messenger_webhook(
        request: Request,
        settings: Settings = Depends(get_settings),
        messenger: Messenger = Depends(get_messenger),
    ) -> dict[str, Any]:
        """Recebe eventos do Messenger e roteia cada evento de mensageria."""
        raw_body = await request.body()
        signature_result = verify_hub_signature(
            raw_body, request.headers, settings.messenger_app_secret
        )
        if not signature_result.valid:
            logger.warning("webhook_signature_invalid", extra={"error": signature_result.error})
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_signature")

        try:
            payload = json.loads(raw_body or b"{}")
        except json.JSONDecodeError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json"
            ) from exc

        messenger.conversations.log_incoming(payload)
        summary = await messenger.handle_webhook(payload)
        summary.signature_validated = signature_result.valid and not signature_result.skipped
        summary.signature_skipped = signature_result.skipped

        return {
            "ok": True,
            "correlation_id": get_correlation_id(),
            **summary.model_dump(),
        }

    @router.post(link_path)
    async def messenger_link(
        request: Request,
        messenger: Messenger = Depends(get_messenger),
    ) -> dict[str, Any]:
        """Postback da página estática de login."""
        try:
            body = await request.json()
        except json.JSONDecodeError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json"
            ) from exc

        try:
            await messenger.on_link(body)
        except MalformedEventError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="missing_sender_id"
            ) from exc
        return {"ok": True}

    @router.put("/admin/sessions/{user_id}/pause")
    async def set_session_paused(
        user_id: str,
        body: PauseRequest,
        x_admin_token: str | None = Header(None),
        settings: Settings = Depends(get_settings),
        messenger: Messenger = Depends(get_messenger),
    ) -> dict[str, Any]:
        """Operador humano assume (paused=true) ou devolve (false) a conversa."""
        if settings.admin_token and x_admin_token != settings.admin_token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

        try:
            session = await messenger.set_paused(user_id, body.paused)
        except UnknownUserError as exc:
            logger.info("pause_unknown_user", extra={"user_id": mask_id(user_id)})
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="unknown_user") from exc

        return {"ok": True, "user_id": user_id, "paused": session.paused}

    return router
