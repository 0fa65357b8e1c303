"""Cliente HTTP assíncrono com retry, timeout e logging.

Usado pelo cliente da Graph API com:
- Retry com backoff exponencial (apenas 429 e 5xx, timeout e conexão)
- Timeouts configuráveis
- Logging estruturado sem tokens (``access_token`` é mascarado na URL)
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from messenger_router.observability.logging import get_logger

if TYPE_CHECKING:
    from messenger_router.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

_ACCESS_TOKEN_PATTERN = re.compile(r"access_token=[^&]+")


def _sanitize_url(url: str) -> str:
    """Remove tokens da URL para logging seguro."""
    if "access_token=" in url:
        return _ACCESS_TOKEN_PATTERN.sub("access_token=***", url)
    return url


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP."""

    timeout_seconds: float = 10.0
    max_retries: int = 2
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    default_headers: dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True


class HttpError(Exception):
    """Erro de requisição HTTP sem expor informações sensíveis.

    ``body`` guarda o JSON de erro devolvido pelo servidor, quando houver.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
        body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.body = body


def _is_retryable_status(status_code: int) -> bool:
    """429 ou 5xx."""
    return status_code == 429 or 500 <= status_code < 600


def _calculate_backoff(attempt: int, base_seconds: float, max_seconds: float) -> float:
    return min((2**attempt) * base_seconds, max_seconds)


def _json_body(response: httpx.Response) -> dict[str, Any] | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _handle_transient_exception(
    exc: Exception,
    method: str,
    url: str,
    attempt: int,
) -> HttpError:
    """Converte timeout/conexão em HttpError retentável; demais propagam."""
    if isinstance(exc, httpx.TimeoutException):
        logger.warning(
            "http_timeout",
            extra={"method": method, "url": _sanitize_url(url), "attempt": attempt + 1},
        )
        return HttpError("Timeout", is_retryable=True)

    if isinstance(exc, httpx.TransportError):
        logger.warning(
            "http_connection_error",
            extra={
                "method": method,
                "url": _sanitize_url(url),
                "attempt": attempt + 1,
                "error_type": type(exc).__name__,
            },
        )
        return HttpError("Erro de conexão", is_retryable=True)

    logger.error(
        "http_unexpected_error",
        extra={"method": method, "url": _sanitize_url(url), "error_type": type(exc).__name__},
    )
    raise HttpError(f"Erro inesperado: {type(exc).__name__}") from exc


class HttpClient:
    """Cliente HTTP assíncrono com retry e logging.

    Uso típico:
        async with HttpClient(config) as client:
            response = await client.post(url, json=payload)
    """

    def __init__(
        self,
        config: HttpClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or HttpClientConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Retorna cliente httpx (lazy loading)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=self._config.default_headers,
                verify=self._config.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Executa requisição com retry automático.

        Raises:
            HttpError: status não retentável ou tentativas esgotadas
        """
        client = await self._get_client()
        last_error: HttpError | None = None
        cfg = self._config

        for attempt in range(cfg.max_retries + 1):
            logger.debug(
                "http_request",
                extra={"method": method, "url": _sanitize_url(url), "attempt": attempt + 1},
            )
            try:
                response = await client.request(method, url, **kwargs)
                result = self._process_response(response, method, url)
                if result is not None:
                    return result
                last_error = HttpError(
                    f"HTTP {response.status_code}",
                    status_code=response.status_code,
                    is_retryable=True,
                    body=_json_body(response),
                )
            except HttpError:
                raise
            except Exception as exc:
                last_error = _handle_transient_exception(exc, method, url, attempt)

            await self._wait_backoff_if_needed(attempt)

        logger.error(
            "http_retries_exhausted",
            extra={"method": method, "url": _sanitize_url(url), "total_attempts": attempt + 1},
        )
        raise last_error or HttpError("Falha após todos os retries")

    def _process_response(
        self, response: httpx.Response, method: str, url: str
    ) -> httpx.Response | None:
        """Retorna a resposta em sucesso, None se retentável, levanta caso contrário."""
        if response.is_success:
            logger.debug(
                "http_request_succeeded",
                extra={
                    "method": method,
                    "url": _sanitize_url(url),
                    "status_code": response.status_code,
                },
            )
            return response

        if not _is_retryable_status(response.status_code):
            logger.warning(
                "http_request_failed",
                extra={
                    "method": method,
                    "url": _sanitize_url(url),
                    "status_code": response.status_code,
                },
            )
            raise HttpError(
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                is_retryable=False,
                body=_json_body(response),
            )
        return None

    async def _wait_backoff_if_needed(self, attempt: int) -> None:
        cfg = self._config
        if attempt < cfg.max_retries:
            backoff = _calculate_backoff(attempt, cfg.backoff_base_seconds, cfg.backoff_max_seconds)
            logger.info(
                "http_retry_backoff",
                extra={"backoff_seconds": backoff, "next_attempt": attempt + 2},
            )
            await asyncio.sleep(backoff)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._request("GET", url, **kwargs)

    async def post(
        self, url: str, json: dict[str, Any] | None = None, **kwargs: Any
    ) -> httpx.Response:
        return await self._request("POST", url, json=json, **kwargs)

    async def delete(
        self, url: str, json: dict[str, Any] | None = None, **kwargs: Any
    ) -> httpx.Response:
        # DELETE com corpo: httpx só aceita via request()
        return await self._request("DELETE", url, json=json, **kwargs)


def create_http_client(settings: Settings | None = None) -> HttpClient:
    """Factory do cliente HTTP da Graph API a partir de Settings."""
    if settings is None:
        from messenger_router.config.settings import get_settings

        settings = get_settings()

    config = HttpClientConfig(
        timeout_seconds=float(settings.graph_request_timeout_seconds),
        max_retries=settings.graph_max_retries,
        backoff_base_seconds=float(settings.graph_retry_backoff_seconds),
        default_headers={"User-Agent": f"{settings.service_name}/{settings.version}"},
    )
    logger.info(
        "http_client_created",
        extra={"timeout_seconds": config.timeout_seconds, "max_retries": config.max_retries},
    )
    return HttpClient(config)
