"""Configuração de logging estruturado (JSON) do roteador."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from messenger_router.observability.middleware import get_correlation_id

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s"


class CorrelationIdFilter(logging.Filter):
    """Insere correlation_id e service no record de log.

    Importante: nunca adicionar tokens de página ou payloads brutos nos logs.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        existing = getattr(record, "correlation_id", None)
        record.correlation_id = existing if existing else get_correlation_id()
        record.service = self._service_name
        return True


def build_json_formatter() -> JsonFormatter:
    """Formatter JSON padrão (também usado pelo log de conversas)."""
    return JsonFormatter(
        _LOG_FORMAT,
        rename_fields={"levelname": "level", "name": "logger"},
    )


def configure_logging(level: str, service_name: str) -> None:
    """Configura logging JSON com campos padrão do serviço."""

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(build_json_formatter())
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Retorna logger simples; o filtro injeta service/correlation_id."""

    return logging.getLogger(name)


def mask_id(value: object | None) -> str | None:
    """Trunca identificadores de usuário/página para logs."""
    if value is None:
        return None
    text = str(value)
    if len(text) <= 8:
        return text
    return text[:8] + "..."


def log_fallback(
    logger: logging.Logger,
    component: str,
    reason: str | None = None,
    elapsed_ms: float | None = None,
    **fields: object,
) -> None:
    """Log observável de fallback usado.

    Args:
        logger: Logger instance
        component: Nome do componente (ex: "profile_enrichment")
        reason: Razão do fallback (ex: "timeout", "missing_page_config")
        elapsed_ms: Tempo decorrido em ms (quando aplicável)
        **fields: Campos extras já mascarados

    Exemplo:
        log_fallback(logger, "profile_enrichment", reason="GraphApiError")
    """
    extra: dict[str, object] = {
        "fallback_used": True,
        "component": component,
    }
    if reason:
        extra["reason"] = reason
    if elapsed_ms is not None:
        extra["elapsed_ms"] = elapsed_ms
    extra.update(fields)

    logger.info(
        f"Fallback applied for {component}",
        extra=extra,
    )
