"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from fastapi import FastAPI

from messenger_router.api.routes import build_router
from messenger_router.application.messenger import Messenger
from messenger_router.config.settings import Settings, get_settings
from messenger_router.observability.logging import configure_logging, get_logger
from messenger_router.observability.middleware import CorrelationIdMiddleware

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, messenger: Messenger | None = None) -> FastAPI:
    """Cria a aplicação FastAPI.

    ``messenger`` permite injetar uma fachada já montada (handlers registrados,
    stores de teste); sem ela, a fachada é criada a partir de ``settings``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name)

    validation_errors: list[str] = []
    validation_errors.extend(settings.validate_session_store_config())
    validation_errors.extend(settings.validate_credentials_config())

    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    app = FastAPI(title=settings.service_name, version=settings.version)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(build_router(settings.hook_path, settings.link_path))

    app.state.settings = settings
    app.state.messenger = messenger or Messenger.from_settings(settings)

    logger.info(
        "app_created",
        extra={
            "environment": settings.environment,
            "hook_path": settings.hook_path,
            "session_store_backend": settings.session_store_backend,
        },
    )
    return app


app = create_app()
