"""Testes do ConversationLogger."""

from __future__ import annotations

import json
import logging

import pytest

from messenger_router.domain.protocols import SendResult
from messenger_router.infra.conversation_logger import (
    CONVERSATION_LOGGER_NAME,
    ConversationLogger,
)


def _payload(event: dict) -> dict:
    return {"object": "page", "entry": [{"id": "p1", "messaging": [event]}]}


@pytest.fixture()
def conversation_logger():
    target = logging.getLogger(CONVERSATION_LOGGER_NAME)
    yield ConversationLogger()
    for handler in list(target.handlers):
        if isinstance(handler, logging.FileHandler):
            target.removeHandler(handler)
            handler.close()


class TestConversationLogger:
    def test_incoming_message(self, conversation_logger, caplog):
        with caplog.at_level(logging.INFO, logger=CONVERSATION_LOGGER_NAME):
            conversation_logger.log_incoming(
                _payload({"sender": {"id": "u1"}, "message": {"mid": "m1", "text": "hi"}})
            )

        record = caplog.records[-1]
        assert record.getMessage() == "conversation_incoming"
        assert record.user_id == "u1"
        assert record.transcript == {"mid": "m1", "text": "hi"}

    def test_incoming_ignores_delivery_and_empty(self, conversation_logger, caplog):
        with caplog.at_level(logging.INFO, logger=CONVERSATION_LOGGER_NAME):
            conversation_logger.log_incoming(_payload({"sender": {"id": "u1"}, "delivery": {}}))
            conversation_logger.log_incoming({"object": "page", "entry": []})

        assert not [r for r in caplog.records if r.name == CONVERSATION_LOGGER_NAME]

    def test_outgoing(self, conversation_logger, caplog):
        with caplog.at_level(logging.INFO, logger=CONVERSATION_LOGGER_NAME):
            conversation_logger.log_outgoing(
                "u1", {"text": "hello"}, SendResult(recipient_id="u1", message_id="mid.9")
            )

        record = caplog.records[-1]
        assert record.getMessage() == "conversation_outgoing"
        assert record.mid == "mid.9"
        assert record.transcript == {"text": "hello"}

    def test_file_handler_writes_json_lines(self, tmp_path):
        log_file = tmp_path / "conversations.log"
        target = logging.getLogger(CONVERSATION_LOGGER_NAME)
        try:
            conversation_logger = ConversationLogger(str(log_file))
            ConversationLogger(str(log_file))
            file_handlers = [h for h in target.handlers if isinstance(h, logging.FileHandler)]
            assert len(file_handlers) == 1

            conversation_logger.log_outgoing(
                "u1", {"text": "hey"}, SendResult(recipient_id="u1", message_id="mid.1")
            )
            file_handlers[0].flush()
        finally:
            for handler in list(target.handlers):
                if isinstance(handler, logging.FileHandler):
                    target.removeHandler(handler)
                    handler.close()

        line = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert line["message"] == "conversation_outgoing"
        assert line["recipient_id"] == "u1"
