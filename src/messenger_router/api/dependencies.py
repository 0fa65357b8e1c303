"""Dependências injetadas nas rotas."""

from __future__ import annotations

from fastapi import Request

from messenger_router.application.messenger import Messenger
from messenger_router.config.settings import Settings


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_messenger(request: Request) -> Messenger:
    """Retorna a fachada do roteador."""

    return request.app.state.messenger
