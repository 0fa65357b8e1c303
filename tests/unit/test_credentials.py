"""Testes do StaticCredentialRegistry."""

from __future__ import annotations

import pytest

from messenger_router.config.settings import Settings
from messenger_router.domain.errors import MissingPageConfigError
from messenger_router.infra.credentials import StaticCredentialRegistry


class TestResolve:
    def test_page_from_map(self):
        registry = StaticCredentialRegistry(pages={"p1": "tok1", "p2": "tok2"})

        assert registry.resolve("p2") == "tok2"

    def test_numeric_page_id_is_stringified(self):
        registry = StaticCredentialRegistry(pages={123: "tok"})

        assert registry.resolve(123) == "tok"
        assert registry.resolve("123") == "tok"

    def test_unknown_page_never_falls_back_to_other_page(self):
        """Página desconhecida não recebe o token de outra página."""
        registry = StaticCredentialRegistry(
            pages={"p1": "tok1"}, default_page_id="p1", default_access_token="default"
        )

        with pytest.raises(MissingPageConfigError) as exc_info:
            registry.resolve("p9")

        assert exc_info.value.page_id == "p9"

    def test_none_with_single_page_uses_it(self):
        registry = StaticCredentialRegistry(pages={"p1": "tok1"})

        assert registry.resolve(None) == "tok1"
        assert registry.default_page_id == "p1"

    def test_none_with_many_pages_and_no_default_fails(self):
        registry = StaticCredentialRegistry(pages={"p1": "tok1", "p2": "tok2"})

        with pytest.raises(MissingPageConfigError):
            registry.resolve(None)
        assert registry.default_page_id is None

    def test_default_token_for_default_page(self):
        registry = StaticCredentialRegistry(default_page_id="p0", default_access_token="tok0")

        assert registry.resolve("p0") == "tok0"
        assert registry.resolve(None) == "tok0"

    def test_none_uses_default_page_entry_in_map(self):
        registry = StaticCredentialRegistry(pages={"p1": "tok1", "p2": "tok2"}, default_page_id="p2")

        assert registry.resolve(None) == "tok2"

    def test_empty_tokens_are_dropped(self):
        registry = StaticCredentialRegistry(pages={"p1": "", "p2": "tok2"})

        assert registry.page_ids == ["p2"]


def test_from_settings(monkeypatch):
    monkeypatch.setenv("MESSENGER_PAGES", '{"p1": "tok1"}')
    monkeypatch.setenv("FACEBOOK_PAGE_ID", "p0")
    monkeypatch.setenv("MESSENGER_PAGE_ACCESS_TOKEN", "tok0")

    registry = StaticCredentialRegistry.from_settings(Settings())

    assert registry.resolve("p1") == "tok1"
    assert registry.resolve("p0") == "tok0"
    assert registry.default_page_id == "p0"
