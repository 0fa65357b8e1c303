"""Configurações centralizadas do messenger_router.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- get_settings: função cacheada para obter instância única
- Constantes da Graph API (GRAPH_API_VERSION, GRAPH_API_BASE_URL)

Uso típico:
    from messenger_router.config import get_settings
"""

from messenger_router.config.settings import (
    GRAPH_API_BASE_URL,
    GRAPH_API_VERSION,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "GRAPH_API_VERSION",
    "GRAPH_API_BASE_URL",
]
