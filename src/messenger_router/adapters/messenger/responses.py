"""Builders de payload outbound da Send API (mais → menos usados).

``Text`` consulta um dicionário de mensagens (semelhante a um ``.pot``):
quando a chave existe, o texto traduzido é usado; listas sorteiam uma opção.

Exemplo de ``messages.json``::

    {"hello": "Olá %s!", "catch_all": ["opção um", "opção dois"]}
"""

from __future__ import annotations

import json
import logging
import random
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from messenger_router.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r"%[sdifj%]")

_dictionary: dict[str, Any] | None = None


def load_dictionary(path: str | Path) -> dict[str, Any]:
    """Lê o dicionário JSON; arquivo ausente vira dicionário vazio."""
    file_path = Path(path)
    if not file_path.exists():
        logger.debug("message_dictionary_empty", extra={"path": str(file_path)})
        return {}
    data = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Message dictionary must be a JSON object: {file_path}")
    logger.debug("message_dictionary_loaded", extra={"entries": len(data)})
    return data


def use_dictionary(entries: Mapping[str, Any] | None) -> None:
    """Substitui o dicionário ativo (None força recarregar de MESSAGES_PATH)."""
    global _dictionary
    _dictionary = dict(entries) if entries is not None else None


def get_dictionary() -> dict[str, Any]:
    global _dictionary
    if _dictionary is None:
        from messenger_router.config.settings import get_settings

        _dictionary = load_dictionary(get_settings().messages_path)
    return _dictionary


def _format_value(placeholder: str, value: Any) -> str:
    if placeholder in ("%d", "%i"):
        try:
            return str(int(value))
        except (TypeError, ValueError):
            return "NaN"
    if placeholder == "%f":
        try:
            return str(float(value))
        except (TypeError, ValueError):
            return "NaN"
    if placeholder == "%j":
        return json.dumps(value)
    return str(value)


def format_text(template: str, args: Sequence[Any]) -> str:
    """Formatação estilo printf: placeholders consomem args, sobras vão ao fim."""
    remaining = list(args)

    def replace(match: re.Match[str]) -> str:
        placeholder = match.group(0)
        if placeholder == "%%":
            return "%"
        if not remaining:
            return placeholder
        return _format_value(placeholder, remaining.pop(0))

    text = _PLACEHOLDER.sub(replace, template)
    return " ".join([text, *(str(arg) for arg in remaining)])


def _quick_reply(option: Any) -> dict[str, Any]:
    if isinstance(option, Mapping):
        return dict(option)
    return {"content_type": "text", "title": str(option), "payload": str(option)}


class Text:
    """Mensagem de texto; ``codetext`` guarda a chave original (não é enviada)."""

    def __init__(self, text: str, *args: Any) -> None:
        self.codetext = text
        translation = get_dictionary().get(text)
        if isinstance(translation, list) and translation:
            translation = random.choice(translation)
        if not isinstance(translation, str) or not translation:
            translation = text
        self.text = format_text(translation, args) if args else translation
        self._quick_replies: list[dict[str, Any]] = []

    def quick_replies(self, options: Sequence[Any]) -> Text:
        self._quick_replies = [_quick_reply(option) for option in options]
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": self.text}
        if self._quick_replies:
            payload["quick_replies"] = list(self._quick_replies)
        return payload

    def __repr__(self) -> str:
        return f"Text({self.codetext!r})"


class Image:
    def __init__(self, url: str) -> None:
        self.url = url

    def to_dict(self) -> dict[str, Any]:
        return {"attachment": {"type": "image", "payload": {"url": self.url}}}


class ImageQuickReply(Image):
    """Imagem com quick replies (ex.: perguntas de quiz)."""

    def __init__(self, url: str, options: Sequence[Any]) -> None:
        super().__init__(url)
        self.options = [_quick_reply(option) for option in options]

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["quick_replies"] = list(self.options)
        return payload


class Generic:
    """Generic template (carrossel de elementos)."""

    def __init__(self, elements: Sequence[Mapping[str, Any]]) -> None:
        self.elements = [dict(element) for element in elements]

    def to_dict(self) -> dict[str, Any]:
        return {
            "attachment": {
                "type": "template",
                "payload": {"template_type": "generic", "elements": list(self.elements)},
            }
        }
