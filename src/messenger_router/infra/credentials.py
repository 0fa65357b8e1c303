"""Registro estático de credenciais por página.

Somente leitura após a inicialização. Resolução falha rápido: nunca devolve
o token de outra página quando a página pedida não está configurada.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from messenger_router.domain.errors import MissingPageConfigError
from messenger_router.domain.protocols import CredentialRegistry
from messenger_router.observability.logging import get_logger, mask_id

if TYPE_CHECKING:
    from messenger_router.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


class StaticCredentialRegistry(CredentialRegistry):
    """Mapa page_id → token, com fallback opcional de página única."""

    def __init__(
        self,
        pages: Mapping[object, str] | None = None,
        default_page_id: object | None = None,
        default_access_token: str | None = None,
    ) -> None:
        self._pages = {str(page_id): token for page_id, token in (pages or {}).items() if token}
        self._default_page_id = str(default_page_id) if default_page_id is not None else None
        self._default_access_token = default_access_token

    @classmethod
    def from_settings(cls, settings: Settings) -> StaticCredentialRegistry:
        registry = cls(
            pages=settings.messenger_pages,
            default_page_id=settings.facebook_page_id,
            default_access_token=settings.messenger_page_access_token,
        )
        logger.info(
            "credential_registry_loaded",
            extra={
                "pages_configured": len(registry._pages),
                "default_page_id": mask_id(registry._default_page_id),
            },
        )
        return registry

    @property
    def default_page_id(self) -> str | None:
        if self._default_page_id is not None:
            return self._default_page_id
        if len(self._pages) == 1:
            return next(iter(self._pages))
        return None

    @property
    def page_ids(self) -> list[str]:
        return sorted(self._pages)

    def resolve(self, page_id: object | None) -> str:
        if page_id is not None and str(page_id) in self._pages:
            return self._pages[str(page_id)]

        if page_id is None and len(self._pages) == 1 and self._default_page_id is None:
            return next(iter(self._pages.values()))

        if self._default_access_token and (
            page_id is None or str(page_id) == self._default_page_id
        ):
            return self._default_access_token

        if page_id is None and self._default_page_id in self._pages:
            return self._pages[self._default_page_id]

        logger.warning("missing_page_config", extra={"page_id": mask_id(page_id)})
        raise MissingPageConfigError(page_id)
