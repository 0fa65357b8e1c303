"""Camada de infraestrutura — adapters para serviços externos.

- Session: InMemorySessionStore, RedisSessionStore, FirestoreSessionStore, create_session_store
- Credenciais: StaticCredentialRegistry
- Graph API: GraphApiClient (ProfileResolver + MessageSender)
- HTTP: HttpClient

Infraestrutura não decide regra de negócio; logs estruturados sem tokens.
"""

from messenger_router.infra.conversation_logger import ConversationLogger
from messenger_router.infra.credentials import StaticCredentialRegistry
from messenger_router.infra.graph_api import GraphApiClient
from messenger_router.infra.http import (
    HttpClient,
    HttpClientConfig,
    HttpError,
    create_http_client,
)
from messenger_router.infra.session_store import (
    create_session_store,
    create_session_store_from_settings,
)
from messenger_router.infra.session_store_firestore import FirestoreSessionStore
from messenger_router.infra.session_store_memory import InMemorySessionStore
from messenger_router.infra.session_store_redis import RedisSessionStore

__all__ = [
    "ConversationLogger",
    "StaticCredentialRegistry",
    "GraphApiClient",
    "HttpClient",
    "HttpClientConfig",
    "HttpError",
    "create_http_client",
    "create_session_store",
    "create_session_store_from_settings",
    "FirestoreSessionStore",
    "InMemorySessionStore",
    "RedisSessionStore",
]
