from __future__ import annotations

import asyncio
from typing import Any

import pytest

from messenger_router.application.messenger import Messenger
from messenger_router.config.settings import get_settings
from messenger_router.domain.errors import SendError
from messenger_router.domain.protocols import MessageSender, ProfileResolver, SendResult
from messenger_router.infra.credentials import StaticCredentialRegistry
from messenger_router.infra.session_store_memory import InMemorySessionStore

PAGE_ID = "PAGE1"
PAGE_TOKEN = "page-token-1"
T0 = 1_700_000_000_000


class FakeClock:
    """Relógio injetável em ms."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeProfileResolver(ProfileResolver):
    def __init__(
        self,
        profile: dict[str, Any] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.profile = profile if profile is not None else {"first_name": "Ann", "last_name": "Lee"}
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def lookup(self, user_id: str, access_token: str) -> dict[str, Any]:
        self.calls.append((user_id, access_token))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return dict(self.profile)


class FakeSender(MessageSender):
    def __init__(self, error: SendError | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str, Any]] = []

    async def send(self, access_token: str, recipient_id: str, payload: Any) -> SendResult:
        self.calls.append((access_token, recipient_id, payload))
        if self.error is not None:
            raise self.error
        return SendResult(recipient_id=recipient_id, message_id=f"mid.{len(self.calls)}")


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture()
def credentials() -> StaticCredentialRegistry:
    return StaticCredentialRegistry(pages={PAGE_ID: PAGE_TOKEN})


@pytest.fixture()
def resolver() -> FakeProfileResolver:
    return FakeProfileResolver()


@pytest.fixture()
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture()
def messenger(store, credentials, resolver, sender, clock) -> Messenger:
    return Messenger(
        store=store,
        credentials=credentials,
        profile_resolver=resolver,
        sender=sender,
        server_url="http://bot.example",
        now_ms=clock,
    )


def text_event(text: str, sender_id: str = "u1", **message: Any) -> dict[str, Any]:
    return {"sender": {"id": sender_id}, "recipient": {"id": PAGE_ID}, "message": {"text": text, **message}}
