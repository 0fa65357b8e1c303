"""Transcrição de conversas (entrada e saída) em log JSON dedicado.

Grava no logger ``messenger_router.conversation``; opcionalmente também em um
arquivo próprio (uma linha JSON por mensagem).
"""

from __future__ import annotations

import logging
import os
from typing import Any

from messenger_router.domain.protocols import SendResult
from messenger_router.observability.logging import build_json_formatter, get_logger

CONVERSATION_LOGGER_NAME = "messenger_router.conversation"


def _first_messaging_event(payload: Any) -> dict[str, Any] | None:
    try:
        event = payload["entry"][0]["messaging"][0]
    except (KeyError, IndexError, TypeError):
        return None
    return event if isinstance(event, dict) else None


class ConversationLogger:
    """Registra mensagens recebidas e enviadas (sem tokens)."""

    def __init__(self, log_file: str | None = None, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_logger(CONVERSATION_LOGGER_NAME)
        self._logger.setLevel(logging.INFO)
        if log_file and not any(
            isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(log_file)
            for h in self._logger.handlers
        ):
            handler = logging.FileHandler(log_file, encoding="utf-8")
            handler.setFormatter(build_json_formatter())
            self._logger.addHandler(handler)

    def log_incoming(self, payload: Any) -> None:
        """Só a primeira mensagem/postback do webhook entra na transcrição."""
        event = _first_messaging_event(payload)
        if event is None or not (event.get("message") or event.get("postback")):
            return

        sender_id = (event.get("sender") or {}).get("id")
        transcript: dict[str, Any] = {}
        for part in ("message", "postback"):
            if isinstance(event.get(part), dict):
                transcript.update(event[part])

        self._logger.info(
            "conversation_incoming",
            extra={"user_id": sender_id, "sender_id": sender_id, "transcript": transcript},
        )

    def log_outgoing(self, recipient_id: str, payload: Any, result: SendResult) -> None:
        self._logger.info(
            "conversation_outgoing",
            extra={
                "user_id": recipient_id,
                "recipient_id": recipient_id,
                "mid": result.message_id,
                "transcript": payload if isinstance(payload, dict) else {"payload": repr(payload)},
            },
        )
