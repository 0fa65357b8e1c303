"""Predicados de texto usados pelos "eventos opcionais" (saudação e ajuda)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from messenger_router.domain.protocols import TextMatcher

DEFAULT_GREETINGS_PATTERN = r"^(get started|good(morning|afternoon)|hello|hey|hi|hola|what's up)"
DEFAULT_HELP_PATTERN = r"^help\b"


def normalize_string(value: str) -> str:
    """Normaliza texto para comparação: trim + lowercase (idempotente)."""
    return value.strip().lower()


@dataclass(frozen=True)
class RegexMatcher:
    """Casa o texto bruto contra um regex (equivalente a ``RegExp.test``)."""

    pattern: re.Pattern[str]

    @classmethod
    def compile(cls, pattern: str | re.Pattern[str]) -> RegexMatcher:
        if isinstance(pattern, re.Pattern):
            return cls(pattern)
        return cls(re.compile(pattern, re.IGNORECASE))

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))


class NeverMatcher:
    """Matcher desabilitado (ex.: emissão de saudações desligada)."""

    def matches(self, text: str) -> bool:
        return False


def build_greeting_matcher(
    emit_greetings: bool | str | re.Pattern[str] | TextMatcher = True,
) -> TextMatcher:
    """Resolve a configuração de saudação.

    - True: regex padrão
    - False: desabilitado (a mensagem segue como ``text`` genérico)
    - str/regex: padrão customizado substitui o padrão
    - TextMatcher: estratégia injetada
    """
    if emit_greetings is True:
        return RegexMatcher.compile(DEFAULT_GREETINGS_PATTERN)
    if emit_greetings is False or emit_greetings is None:
        return NeverMatcher()
    if isinstance(emit_greetings, (str, re.Pattern)):
        return RegexMatcher.compile(emit_greetings)
    return emit_greetings


def build_help_matcher(help_pattern: str | re.Pattern[str] | TextMatcher | None = None) -> TextMatcher:
    """Resolve o matcher de ajuda (padrão: começa com "help" como palavra)."""
    if help_pattern is None:
        return RegexMatcher.compile(DEFAULT_HELP_PATTERN)
    if isinstance(help_pattern, (str, re.Pattern)):
        return RegexMatcher.compile(help_pattern)
    return help_pattern
