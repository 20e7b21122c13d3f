"""Tests for Client: bind operations, change scopes and the cache."""

from __future__ import annotations

import logging

import pytest

from hacfg.cache import Cache
from hacfg.client import Client
from hacfg.config import load_config
from hacfg.errors import (
    AlreadyExistsError,
    ErrorKind,
    NotFoundError,
    ScopeError,
    ValidationError,
    VersionConflictError,
)
from hacfg.models import Bind

WEB = Bind(name="web", address="10.0.0.1", port=8080)


@pytest.fixture(params=["cached", "uncached"])
def any_client(request, client, uncached_client) -> Client:
    return client if request.param == "cached" else uncached_client


def _unchanged(config_file, before: str) -> bool:
    return config_file.read_text() == before


# =============================================================================
# Reads
# =============================================================================


class TestRead:
    def test_get_binds(self, any_client):
        result = any_client.get_binds("http")
        assert result.version == 1
        assert [b.name for b in result.data] == ["http", "admin"]
        assert result.data[0] == Bind(name="http", address="0.0.0.0", port=80)

    def test_get_binds_twice_is_stable(self, any_client):
        assert any_client.get_binds("http") == any_client.get_binds("http")

    def test_missing_frontend_lists_empty(self, any_client):
        result = any_client.get_binds("nope")
        assert result.version == 1
        assert result.data == []

    def test_get_bind(self, any_client):
        result = any_client.get_bind("admin", "http")
        assert result.version == 1
        assert result.data == Bind(name="admin", address="/var/run/haproxy.sock", process="1")

    def test_get_bind_missing(self, any_client):
        with pytest.raises(NotFoundError) as exc_info:
            any_client.get_bind("nope", "http")
        assert str(exc_info.value) == "Bind nope does not exist in frontend http"

    def test_get_bind_missing_frontend(self, any_client):
        with pytest.raises(NotFoundError) as exc_info:
            any_client.get_bind("http", "nope")
        assert str(exc_info.value) == "Frontend nope does not exist"

    def test_get_frontends(self, any_client):
        assert any_client.get_frontends() == ["http", "empty"]

    def test_get_version(self, any_client):
        assert any_client.get_version() == 1

    def test_read_unknown_transaction(self, any_client):
        with pytest.raises(NotFoundError):
            any_client.get_binds("http", "6f1c3a5e-7d2b-4a8e-9c0f-1b2d3e4f5a6b")


# =============================================================================
# Implicit transactions (version given)
# =============================================================================


class TestImplicitWrites:
    def test_create(self, any_client, config_file):
        assert any_client.create_bind("http", WEB, version=1) == 2
        assert any_client.get_version() == 2
        result = any_client.get_binds("http")
        assert result.version == 2
        assert [b.name for b in result.data] == ["http", "admin", "web"]
        assert "bind 10.0.0.1:8080 name web" in config_file.read_text()
        assert any_client.get_transactions() == []

    def test_create_then_delete(self, any_client):
        any_client.create_bind("http", WEB, version=1)
        assert any_client.delete_bind("web", "http", version=2) == 3
        with pytest.raises(NotFoundError):
            any_client.get_bind("web", "http")

    def test_create_into_frontend_without_binds(self, any_client):
        any_client.create_bind("empty", WEB, version=1)
        assert any_client.get_binds("empty").data == [WEB]

    def test_create_existing(self, any_client, config_file):
        before = config_file.read_text()
        with pytest.raises(AlreadyExistsError) as exc_info:
            any_client.create_bind("http", Bind(name="http", address="1.2.3.4", port=81), version=1)
        assert str(exc_info.value) == "Bind http already exists in frontend http"
        assert _unchanged(config_file, before)
        assert any_client.get_transactions() == []

    def test_create_in_missing_frontend(self, any_client, config_file):
        before = config_file.read_text()
        with pytest.raises(NotFoundError) as exc_info:
            any_client.create_bind("nope", WEB, version=1)
        assert str(exc_info.value) == "Frontend nope does not exist"
        assert _unchanged(config_file, before)
        assert any_client.get_transactions() == []

    def test_invalid_bind_touches_nothing(self, any_client, config_file):
        before = config_file.read_text()
        with pytest.raises(ValidationError) as exc_info:
            any_client.create_bind("http", Bind(name="bad name", port=70000), version=1)
        assert exc_info.value.kind == ErrorKind.VALIDATION_FAILED
        assert "whitespace" in str(exc_info.value)
        assert "out of range" in str(exc_info.value)
        assert _unchanged(config_file, before)
        assert any_client.get_transactions() == []

    def test_stale_version(self, any_client, config_file):
        before = config_file.read_text()
        with pytest.raises(VersionConflictError):
            any_client.create_bind("http", WEB, version=7)
        assert _unchanged(config_file, before)
        assert any_client.get_transactions() == []

    def test_same_version_twice_conflicts(self, any_client):
        any_client.create_bind("http", WEB, version=1)
        with pytest.raises(VersionConflictError):
            any_client.delete_bind("admin", "http", version=1)
        assert [b.name for b in any_client.get_binds("http").data] == ["http", "admin", "web"]

    def test_delete_missing(self, any_client):
        with pytest.raises(NotFoundError) as exc_info:
            any_client.delete_bind("nope", "http", version=1)
        assert str(exc_info.value) == "Bind nope does not exist in frontend http"
        assert any_client.get_version() == 1
        assert any_client.get_transactions() == []

    def test_failed_write_logs_rollback(self, client, caplog):
        with caplog.at_level(logging.WARNING, logger="hacfg.client"), pytest.raises(NotFoundError):
            client.delete_bind("nope", "http", version=1)
        assert "rolling back implicit transaction" in caplog.text


class TestEdit:
    def test_edit_keeps_position(self, any_client):
        any_client.edit_bind("http", "http", Bind(name="http", address="0.0.0.0", port=8080), version=1)
        binds = any_client.get_binds("http").data
        assert [b.name for b in binds] == ["http", "admin"]
        assert binds[0].port == 8080

    def test_edit_rename(self, any_client):
        any_client.edit_bind("http", "http", Bind(name="public", address="0.0.0.0", port=80), version=1)
        assert any_client.get_bind("public", "http").data.port == 80
        with pytest.raises(NotFoundError):
            any_client.get_bind("http", "http")

    def test_edit_rename_clash(self, any_client, config_file):
        before = config_file.read_text()
        with pytest.raises(AlreadyExistsError):
            any_client.edit_bind("http", "http", Bind(name="admin", address="0.0.0.0", port=80), version=1)
        assert _unchanged(config_file, before)

    def test_edit_missing(self, any_client):
        with pytest.raises(NotFoundError):
            any_client.edit_bind("nope", "http", WEB, version=1)


# =============================================================================
# Change scope selection
# =============================================================================


class TestScope:
    def test_neither_given(self, any_client):
        with pytest.raises(ScopeError) as exc_info:
            any_client.create_bind("http", WEB)
        assert str(exc_info.value) == "Version or transaction not specified"

    def test_both_given(self, any_client):
        t = any_client.start_transaction(1)
        with pytest.raises(ScopeError) as exc_info:
            any_client.delete_bind("admin", "http", transaction_id=t.id, version=1)
        assert str(exc_info.value) == "Both version and transaction specified, specify only one"

    def test_unknown_transaction(self, any_client):
        with pytest.raises(NotFoundError):
            any_client.create_bind("http", WEB, transaction_id="6f1c3a5e-7d2b-4a8e-9c0f-1b2d3e4f5a6b")


# =============================================================================
# Explicit transactions
# =============================================================================


class TestExplicitTransaction:
    def test_changes_visible_only_inside_until_commit(self, any_client):
        t = any_client.start_transaction(1)
        assert any_client.create_bind("http", WEB, transaction_id=t.id) == 1
        assert any_client.delete_bind("admin", "http", transaction_id=t.id) == 1

        assert [b.name for b in any_client.get_binds("http").data] == ["http", "admin"]
        inside = any_client.get_binds("http", t.id)
        assert inside.version == 1
        assert [b.name for b in inside.data] == ["http", "web"]

        assert any_client.commit_transaction(t.id) == 2
        committed = any_client.get_binds("http")
        assert committed.version == 2
        assert [b.name for b in committed.data] == ["http", "web"]
        assert any_client.get_transactions() == []

    def test_failure_inside_explicit_transaction_keeps_it(self, any_client):
        t = any_client.start_transaction(1)
        with pytest.raises(NotFoundError):
            any_client.delete_bind("nope", "http", transaction_id=t.id)
        assert [x.id for x in any_client.get_transactions()] == [t.id]

    def test_commit_after_concurrent_commit(self, any_client, config_file):
        t = any_client.start_transaction(1)
        any_client.create_bind("http", WEB, transaction_id=t.id)
        any_client.delete_bind("admin", "http", version=1)
        before = config_file.read_text()

        with pytest.raises(VersionConflictError):
            any_client.commit_transaction(t.id)
        assert _unchanged(config_file, before)
        assert any_client.get_transaction(t.id).version == 1

    def test_delete_transaction(self, any_client):
        t = any_client.start_transaction(1)
        any_client.create_bind("http", WEB, transaction_id=t.id)
        any_client.delete_transaction(t.id)
        assert any_client.get_transactions() == []
        with pytest.raises(NotFoundError):
            any_client.get_binds("http", t.id)

    def test_version_of_transaction(self, any_client):
        t = any_client.start_transaction(1)
        assert any_client.get_version(t.id) == 1


# =============================================================================
# Cache coherency
# =============================================================================


class TestCache:
    def test_write_after_read_is_visible(self, client):
        client.get_binds("http")
        client.get_bind("admin", "http")
        client.create_bind("http", WEB, version=1)
        assert [b.name for b in client.get_binds("http").data] == ["http", "admin", "web"]
        assert client.get_bind("web", "http").data == WEB

    def test_cached_read_matches_disk(self, client, config_file, transaction_dir):
        lossy = Bind(name="b", address="10.0.0.2", port=81, tcp_user_timeout=0)
        client.create_bind("http", lossy, version=1)
        cached = client.get_bind("b", "http")
        fresh = Client(config_file, transaction_dir, cache=Cache(enabled=False)).get_bind("b", "http")
        assert cached == fresh
        assert cached.data.tcp_user_timeout is None

    def test_returned_values_are_not_shared(self, client):
        first = client.get_binds("http").data
        first[0].port = 1
        assert client.get_binds("http").data[0].port == 80

    def test_transaction_entries_dropped_on_commit(self, client):
        t = client.start_transaction(1)
        client.get_binds("http", t.id)
        client.create_bind("http", WEB, transaction_id=t.id)
        client.commit_transaction(t.id)
        with pytest.raises(NotFoundError):
            client.get_binds("http", t.id)
        assert client.get_version() == 2

    def test_from_config_honours_cache_switch(self, tmp_path):
        (tmp_path / "hacfg.toml").write_text("[cache]\nenabled = false\n")
        cfg = load_config(tmp_path)
        cfg.ensure_dirs()
        assert Client.from_config(cfg).cache.enabled is False


class TestValidationSwitch:
    def test_disabled_validation_allows_nameless_bind(self, config_file, transaction_dir):
        client = Client(config_file, transaction_dir, use_validation=False)
        client.create_bind("http", Bind(address="10.0.0.5", port=9000), version=1)
        assert client.get_bind("10.0.0.5:9000", "http").data.port == 9000


class TestScenarios:
    def test_create_get_delete_in_frontend_without_binds(self, any_client):
        b1 = Bind(name="b1", address="0.0.0.0", port=80)
        v2 = any_client.create_bind("empty", b1, version=1)

        got = any_client.get_bind("b1", "empty")
        assert got.version == v2
        assert got.data.address == "0.0.0.0"
        assert got.data.port == 80
        assert got.data.name == "b1"

        any_client.delete_bind("b1", "empty", version=v2)
        with pytest.raises(NotFoundError):
            any_client.get_bind("b1", "empty")
        assert any_client.get_binds("empty").data == []


class TestDuplicateNames:
    DUPLICATES = (
        "# _version=1\n"
        "frontend http\n"
        "    bind 10.0.0.1:80\n"
        "    bind 10.0.0.2:81 name 10.0.0.1:80\n"
    )

    def test_cached_read_returns_first_like_disk(self, config_file, transaction_dir):
        config_file.write_text(self.DUPLICATES)
        cached = Client(config_file, transaction_dir)
        uncached = Client(config_file, transaction_dir, cache=Cache(enabled=False))

        assert len(cached.get_binds("http").data) == 2
        from_cache = cached.get_bind("10.0.0.1:80", "http")
        from_disk = uncached.get_bind("10.0.0.1:80", "http")
        assert from_cache == from_disk
        assert from_cache.data.address == "10.0.0.1"

