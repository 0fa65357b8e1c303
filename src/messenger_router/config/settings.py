"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars (ou arquivo .env).
Nunca hardcode tokens de página ou secrets.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from messenger_router.observability.logging import get_logger

# -----------------------------------------------------------------------------
# Constantes da Graph API (Messenger Platform)
# Referência: https://developers.facebook.com/docs/messenger-platform
# -----------------------------------------------------------------------------
GRAPH_API_VERSION: str = "v2.8"
GRAPH_API_BASE_URL: str = "https://graph.facebook.com"

SESSION_STORE_BACKENDS = frozenset({"memory", "redis", "firestore"})


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Aplicação
    service_name: str = "messenger_router"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    server_url: str = "http://localhost:3000"  # URL pública (login/link)

    # Rotas HTTP
    hook_path: str = "/webhook"
    link_path: str = "/link"

    # Facebook / Messenger
    facebook_app_id: str | None = None  # Namespace das chaves de sessão
    facebook_page_id: str | None = None  # Página padrão (fallback single-page)
    messenger_page_access_token: str | None = None  # Token da página padrão
    messenger_pages: dict[str, str] = Field(default_factory=dict)  # page_id -> token
    messenger_validation_token: str | None = None  # Handshake do webhook
    messenger_app_secret: str | None = None  # HMAC das requisições do webhook
    admin_token: str | None = None  # Protege a rota de pausa (operadores)

    # Graph API (transporte do MessageSender/ProfileResolver)
    graph_api_base_url: str = GRAPH_API_BASE_URL
    graph_api_version: str = GRAPH_API_VERSION
    graph_request_timeout_seconds: float = 10.0
    graph_max_retries: int = 2
    graph_retry_backoff_seconds: float = 1.0

    @property
    def graph_api_endpoint(self) -> str:
        """Retorna a URL base completa da Graph API (base + versão)."""
        return f"{self.graph_api_base_url}/{self.graph_api_version}"

    # Sessão
    session_store_backend: str = "memory"  # memory | redis | firestore
    redis_url: str | None = None  # Para session_store_backend=redis
    firestore_project_id: str | None = None
    sessions_collection: str = "sessions"
    session_ttl_seconds: int = 60 * 60 * 24 * 30  # Expiração no store (30 dias)
    session_timeout_seconds: int = 3600  # Acima disso a visita conta como retorno
    pause_window_seconds: int = 3600  # Janela de atendimento humano
    profile_lookup_timeout_seconds: float = 5.0

    # Classificação
    emit_greetings: bool = True
    greeting_pattern: str | None = None  # Substitui o regex padrão de saudação
    help_pattern: str | None = None  # Substitui o regex padrão de ajuda

    # Respostas e log de conversas
    messages_path: str = "messages.json"  # Dicionário de textos
    conversation_log_file: str | None = None

    @property
    def session_timeout_ms(self) -> int:
        return self.session_timeout_seconds * 1000

    @property
    def pause_window_ms(self) -> int:
        return self.pause_window_seconds * 1000

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    def validate_session_store_config(self) -> list[str]:
        """Valida backend de session store.

        Em produção, memory é proibido (várias instâncias não compartilham sessão).
        Retorna lista de erros (vazia = tudo OK).
        """
        errors: list[str] = []
        backend = self.session_store_backend.lower()

        if backend not in SESSION_STORE_BACKENDS:
            errors.append(
                f"SESSION_STORE_BACKEND '{backend}' inválido. "
                f"Valores válidos: {sorted(SESSION_STORE_BACKENDS)}"
            )
        if self.is_production and backend == "memory":
            errors.append(
                "SESSION_STORE_BACKEND=memory é proibido em produção. "
                "Use 'redis' ou 'firestore'."
            )
        if backend == "redis" and not self.redis_url:
            errors.append("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")
        return errors

    def validate_credentials_config(self) -> list[str]:
        """Valida tokens de página.

        Em produção exige ao menos uma credencial (mapa de páginas ou página padrão).
        """
        errors: list[str] = []
        if self.facebook_page_id and not (
            self.messenger_page_access_token or self.facebook_page_id in self.messenger_pages
        ):
            errors.append("FACEBOOK_PAGE_ID configurado sem MESSENGER_PAGE_ACCESS_TOKEN")
        if self.messenger_page_access_token and not self.facebook_page_id:
            errors.append("MESSENGER_PAGE_ACCESS_TOKEN requer FACEBOOK_PAGE_ID configurado")
        has_credential = bool(self.messenger_pages or self.messenger_page_access_token)
        if self.is_production and not has_credential:
            errors.append(
                "MESSENGER_PAGES ou MESSENGER_PAGE_ACCESS_TOKEN obrigatório em produção"
            )
        if self.is_production and not self.messenger_app_secret:
            errors.append("MESSENGER_APP_SECRET obrigatório em produção")
        return errors

    def model_post_init(self, __context: Any) -> None:
        """Registra o ambiente carregado (sem expor valores de tokens)."""
        logger: logging.Logger = get_logger(__name__)
        logger.debug(
            "settings_loaded",
            extra={
                "environment": self.environment,
                "session_store_backend": self.session_store_backend,
                "pages_configured": len(self.messenger_pages),
                "default_page_configured": bool(self.facebook_page_id),
            },
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
