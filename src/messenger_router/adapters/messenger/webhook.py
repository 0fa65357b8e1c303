"""Extração de eventos de mensageria do payload do webhook.

Formato (objeto "page")::

    {"object": "page",
     "entry": [{"id": "<page_id>", "time": 0,
                "messaging": [{"sender": {"id": ...}, "recipient": {...}, ...}]}]}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from messenger_router.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

PAGE_OBJECT = "page"


@dataclass(frozen=True, slots=True)
class MessagingEnvelope:
    """Evento bruto + página da entry que o trouxe."""

    page_id: str | None
    event: Any


class WebhookProcessingSummary(BaseModel):
    """Resumo do processamento do webhook (sem PII)."""

    object_type: str | None = None
    total_received: int = 0
    total_processed: int = 0
    total_malformed: int = 0
    signature_validated: bool = False
    signature_skipped: bool = False
    errors: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


def is_page_payload(payload: Any) -> bool:
    return isinstance(payload, dict) and payload.get("object") == PAGE_OBJECT


def extract_messaging_events(payload: Any) -> list[MessagingEnvelope]:
    """Achata ``entry[].messaging[]`` preservando a ordem do payload.

    Entries sem lista ``messaging`` (ex.: ``standby``) são ignoradas.
    """
    if not is_page_payload(payload):
        return []

    entries = payload.get("entry")
    if not isinstance(entries, list):
        logger.warning("webhook_entry_missing")
        return []

    envelopes: list[MessagingEnvelope] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        page_id = entry.get("id")
        messaging = entry.get("messaging")
        if not isinstance(messaging, list):
            continue
        for event in messaging:
            envelopes.append(
                MessagingEnvelope(str(page_id) if page_id is not None else None, event)
            )
    return envelopes
