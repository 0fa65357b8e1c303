"""Testes do EventClassifier (prioridade, eventos opcionais, anexos)."""

from __future__ import annotations

import pytest

from messenger_router.application.classifier import (
    THUMBS_UP_STICKER_ID,
    EventClassifier,
    attachment_kind,
)
from messenger_router.application.matchers import NeverMatcher, RegexMatcher
from messenger_router.domain.errors import MalformedEventError
from messenger_router.domain.events import (
    AttachmentEvent,
    AuthEvent,
    GreetingEvent,
    PostbackEvent,
    QuickReplyEvent,
    TextEvent,
    TextSource,
)
from messenger_router.domain.session import Session, SessionSource


@pytest.fixture()
def session() -> Session:
    return Session(
        key="messenger-u1",
        page_id="PAGE1",
        count=1,
        profile={"first_name": " Ann ", "last_name": "Lee "},
    )


@pytest.fixture()
def classifier() -> EventClassifier:
    return EventClassifier()


def _message(**message):
    return {"sender": {"id": "u1"}, "message": message}


class TestPriority:
    """Primeiro discriminante presente vence."""

    def test_optin_wins_over_message(self, classifier, session):
        """optin + message emite apenas auth."""
        raw = {"sender": {"id": "u1"}, "optin": {"ref": "abc"}, "message": {"text": "hi"}}

        result = classifier.classify(raw, session)

        assert result.event_names == ["auth"]

    def test_optin_sets_web_source(self, classifier, session):
        raw = {"sender": {"id": "u1"}, "optin": {"ref": "PASS_THROUGH"}}

        result = classifier.classify(raw, session)

        assert result.session.source == SessionSource.WEB
        event = result.events[0]
        assert isinstance(event, AuthEvent)
        assert event.optin_ref == "PASS_THROUGH"
        assert event.session.source == "web"

    def test_delivery_and_read_emit_nothing(self, classifier, session):
        for key in ("delivery", "read"):
            result = classifier.classify({"sender": {"id": "u1"}, key: {"watermark": 1}}, session)
            assert result.events == []
            assert result.session == session

    def test_unknown_shape_emits_nothing(self, classifier, session):
        result = classifier.classify({"sender": {"id": "u1"}, "account_linking": {}}, session)

        assert result.events == []

    def test_referral_event(self, classifier, session):
        raw = {"sender": {"id": "u1"}, "referral": {"ref": "ad-1", "source": "SHORTLINK"}}

        result = classifier.classify(raw, session)

        assert result.event_names == ["referral"]
        assert result.events[0].referral["ref"] == "ad-1"

    def test_message_must_be_object(self, classifier, session):
        with pytest.raises(MalformedEventError):
            classifier.classify({"sender": {"id": "u1"}, "message": "oops"}, session)


class TestOptionalEvents:
    """Saudação e ajuda."""

    def test_help_emits_only_help(self, classifier, session):
        """'help me' emite text.help e nenhum text/message.text."""
        result = classifier.classify(_message(text="help me"), session)

        assert "text.help" in result.event_names
        assert "text" not in result.event_names
        assert "message.text" not in result.event_names
        help_event = result.events[-1]
        assert help_event.sender_id == "u1"

    def test_help_requires_whole_word(self, classifier, session):
        result = classifier.classify(_message(text="helpful tips"), session)

        assert "text.help" not in result.event_names
        assert result.event_names == ["message", "text", "message.text"]

    def test_greeting_full_name_from_trimmed_profile(self, classifier, session):
        result = classifier.classify(_message(text="Hello there"), session)

        assert result.event_names == ["message", "text.greeting"]
        greeting = result.events[-1]
        assert isinstance(greeting, GreetingEvent)
        assert greeting.first_name == "Ann"
        assert greeting.sur_name == "Lee"
        assert greeting.full_name == "Ann Lee"

    def test_greeting_tolerates_missing_profile(self, classifier):
        session = Session(key="messenger-u1", profile={})

        greeting = classifier.classify(_message(text="hey"), session).events[-1]

        assert greeting.first_name == ""
        assert greeting.sur_name == ""
        assert greeting.full_name == " "

    def test_greeting_disabled_falls_through_to_text(self, session):
        classifier = EventClassifier(greeting_matcher=NeverMatcher())

        result = classifier.classify(_message(text="hello"), session)

        assert result.event_names == ["message", "text", "message.text"]

    def test_custom_greeting_pattern_replaces_default(self, session):
        classifier = EventClassifier(greeting_matcher=RegexMatcher.compile(r"^olleh"))

        assert classifier.classify(_message(text="Olleh!"), session).event_names[-1] == (
            "text.greeting"
        )
        assert "text.greeting" not in classifier.classify(_message(text="hello"), session).event_names

    def test_greeting_not_checked_for_quick_replies(self, classifier, session):
        raw = _message(text="hi", quick_reply={"payload": "HI_PAYLOAD"})

        result = classifier.classify(raw, session)

        assert result.event_names == ["message", "text", "message.quickReply"]


class TestMessageSubClassifier:
    def test_quick_reply_emits_text_and_quick_reply(self, classifier, session):
        raw = _message(text="Yes", quick_reply={"payload": " YES_Payload "})

        result = classifier.classify(raw, session)

        text_event, quick_reply = result.events[1], result.events[2]
        assert isinstance(text_event, TextEvent)
        assert text_event.source == TextSource.QUICK_REPLY
        assert text_event.text == " YES_Payload "
        assert text_event.normalized_text == "yes_payload"
        assert isinstance(quick_reply, QuickReplyEvent)
        assert quick_reply.payload == " YES_Payload "

    def test_text_keeps_raw_and_normalized(self, classifier, session):
        result = classifier.classify(_message(text="  Foo BAR "), session)

        text_event, message_text = result.events[1], result.events[2]
        assert text_event.source == "text"
        assert text_event.text == "  Foo BAR "
        assert text_event.normalized_text == "foo bar"
        assert message_text.text == "  Foo BAR "

    def test_echo_stops_after_message(self, classifier, session):
        result = classifier.classify(_message(text="hello", is_echo=True, metadata="x"), session)

        assert result.event_names == ["message"]

    def test_thumbs_up_sticker(self, classifier, session):
        raw = _message(
            attachments=[
                {
                    "type": "image",
                    "sticker_id": THUMBS_UP_STICKER_ID,
                    "payload": {"url": "http://x/y.png"},
                }
            ]
        )

        result = classifier.classify(raw, session)

        assert result.event_names == ["message", "message.thumbsup"]
        assert "message.image" not in result.event_names
        assert result.events[-1].url == "http://x/y.png"

    def test_other_sticker(self, classifier, session):
        raw = _message(sticker_id=123, attachments=[{"type": "image", "payload": {"url": "u"}}])

        assert classifier.classify(raw, session).event_names[-1] == "message.sticker"

    def test_attachment_type_and_first_only(self, classifier, session):
        raw = _message(
            attachments=[
                {"type": "audio", "payload": {"url": "http://a"}},
                {"type": "image", "payload": {"url": "http://b"}},
            ]
        )

        result = classifier.classify(raw, session)

        attachment = result.events[-1]
        assert isinstance(attachment, AttachmentEvent)
        assert attachment.event_name == "message.audio"
        assert attachment.url == "http://a"

    def test_attachment_without_payload(self, classifier, session):
        result = classifier.classify(_message(attachments=[{"type": "location"}]), session)

        assert result.events[-1].event_name == "message.location"
        assert result.events[-1].url is None

    def test_attachment_kind_unknown(self):
        assert attachment_kind({}, {}) == "unknown"
        assert attachment_kind({}, {"payload": {"sticker_id": "369239263222822"}}) == "thumbsup"


class TestPostback:
    def test_postback_then_generic_text(self, classifier, session):
        raw = {"sender": {"id": "u1"}, "postback": {"payload": "MENU_Item"}}

        result = classifier.classify(raw, session)

        assert result.event_names == ["postback", "text"]
        assert isinstance(result.events[0], PostbackEvent)
        text_event = result.events[1]
        assert text_event.source == TextSource.POSTBACK
        assert text_event.normalized_text == "menu_item"

    def test_postback_runs_optional_events(self, classifier, session):
        raw = {"sender": {"id": "u1"}, "postback": {"payload": "Get Started"}}

        result = classifier.classify(raw, session)

        assert result.event_names == ["postback", "text.greeting"]
