"""Testes dos matchers de saudação e ajuda."""

from __future__ import annotations

import re

import pytest

from messenger_router.application.matchers import (
    NeverMatcher,
    RegexMatcher,
    build_greeting_matcher,
    build_help_matcher,
    normalize_string,
)
from messenger_router.domain.protocols import TextMatcher


def test_normalize_string_trims_and_lowercases():
    assert normalize_string("  HeLLo ") == "hello"


@pytest.mark.parametrize(
    "value",
    ["", "   ", "\t\n", "  HeLLo ", "\u0130stanbul", "STRASSE ß", "line one\nLine Two\n", " \u00c9T\u00c9 "],
)
def test_normalize_string_idempotent(value):
    once = normalize_string(value)

    assert normalize_string(once) == once


class TestGreetingMatcher:
    def test_default_pattern(self):
        matcher = build_greeting_matcher(True)

        assert matcher.matches("Hello there")
        assert matcher.matches("get started")
        assert not matcher.matches("say hello")

    def test_disabled(self):
        assert isinstance(build_greeting_matcher(False), NeverMatcher)

    def test_custom_string_and_compiled_pattern(self):
        assert build_greeting_matcher("^olá").matches("Olá!")
        compiled = re.compile(r"^yo$")
        matcher = build_greeting_matcher(compiled)
        assert matcher.matches("yo")
        assert not matcher.matches("YO")

    def test_custom_strategy_passthrough(self):
        class Always:
            def matches(self, text: str) -> bool:
                return True

        strategy = Always()

        assert isinstance(strategy, TextMatcher)
        assert build_greeting_matcher(strategy) is strategy


class TestHelpMatcher:
    def test_default_whole_word(self):
        matcher = build_help_matcher()

        assert matcher.matches("help me")
        assert matcher.matches("HELP")
        assert not matcher.matches("helpful")

    def test_custom_pattern(self):
        matcher = build_help_matcher(r"^ajuda")

        assert matcher.matches("Ajuda por favor")
        assert isinstance(matcher, RegexMatcher)
