"""Client: transactional access to the binds of an HAProxy configuration.

Reads take an optional transaction id and otherwise see the committed file:

    client = Client.from_config(load_config())
    result = client.get_binds("http")          # GetBindsResult(version, data)

Writes take exactly one of transaction_id or version:

    # implicit: one edit, committed immediately if version is still current
    client.create_bind("http", Bind(name="web", address="0.0.0.0", port=80), version=3)

    # explicit: several edits staged in a transaction, committed later
    t = client.start_transaction(version=4)
    client.delete_bind("web", "http", transaction_id=t.id)
    client.create_bind("http", Bind(name="web", address="0.0.0.0", port=8080), transaction_id=t.id)
    client.commit_transaction(t.id)

Every write checks existence and validity before touching the engine. A
failure inside an implicit transaction deletes its staged file before the
error is raised, so the committed file never holds a partial edit. The
cache is written only after the change has been saved.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hacfg import accessor
from hacfg.cache import Cache
from hacfg.codec import bind_path
from hacfg.errors import AlreadyExistsError, ConfError, EngineError, ScopeError, ValidationError
from hacfg.models import Bind, GetBindResult, GetBindsResult, Transaction
from hacfg.parser import ConfigParser, ParserError
from hacfg.transactions import TransactionStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from hacfg.config import HacfgConfig

logger = logging.getLogger("hacfg.client")


@dataclass
class _ChangeScope:
    transaction: Transaction
    implicit: bool
    engine: ConfigParser
    version: int = 0        # version the change is visible at once saved

    @property
    def cache_key(self) -> str | None:
        """Cache scope the change lands in once saved."""
        return None if self.implicit else self.transaction.id


class Client:
    def __init__(
        self,
        config_file: Path | str,
        transaction_dir: Path | str,
        *,
        use_validation: bool = True,
        cache: Cache | None = None,
    ) -> None:
        self.transactions = TransactionStore(config_file, transaction_dir)
        self.use_validation = use_validation
        self.cache = cache if cache is not None else Cache(enabled=True)

    @classmethod
    def from_config(cls, cfg: HacfgConfig) -> Client:
        return cls(
            cfg.config_file,
            cfg.transaction_dir,
            use_validation=cfg.use_validation,
            cache=Cache(enabled=cfg.cache.enabled),
        )

    # ------------------------------------------------------------------
    # Engine
    # ------------------------------------------------------------------

    def _load(self, transaction_id: str | None) -> ConfigParser:
        """Fresh engine holding the configuration as seen by transaction_id."""
        if transaction_id:
            self.transactions.get(transaction_id)
        path = self.transactions.path_for(transaction_id)
        engine = ConfigParser()
        try:
            engine.load_data(path)
        except ParserError as exc:
            raise EngineError(str(exc)) from exc
        logger.debug("loaded %s (version %d)", path, engine.version)
        return engine

    # ------------------------------------------------------------------
    # Versions and transactions
    # ------------------------------------------------------------------

    def get_version(self, transaction_id: str | None = None) -> int:
        """Committed version, or the base version of a transaction."""
        version, found = self.cache.version.get(transaction_id)
        if found:
            return version
        if transaction_id:
            version = self.transactions.get(transaction_id).version
        else:
            version = self.transactions.current_version()
        self.cache.version.set(transaction_id, version)
        return version

    def start_transaction(self, version: int) -> Transaction:
        return self.transactions.start(version)

    def get_transaction(self, transaction_id: str) -> Transaction:
        return self.transactions.get(transaction_id)

    def get_transactions(self) -> list[Transaction]:
        return self.transactions.list_transactions()

    def commit_transaction(self, transaction_id: str) -> int:
        """Commit an explicit transaction. Returns the new committed version.

        On VersionConflictError the transaction stays staged; the caller
        decides whether to delete it.
        """
        version = self.transactions.commit(transaction_id)
        self.cache.invalidate_transaction(transaction_id)
        self.cache.binds.invalidate_committed()
        self.cache.version.set(None, version)
        return version

    def delete_transaction(self, transaction_id: str) -> None:
        self.transactions.delete(transaction_id)
        self.cache.invalidate_transaction(transaction_id)

    @contextlib.contextmanager
    def _change_scope(self, transaction_id: str | None, version: int | None) -> Iterator[_ChangeScope]:
        """Open a change scope, save it on success, discard it if implicit and failed."""
        if transaction_id and version is not None:
            msg = "Both version and transaction specified, specify only one"
            raise ScopeError(msg)
        if transaction_id:
            transaction = self.transactions.get(transaction_id)
            implicit = False
        elif version is not None:
            transaction = self.transactions.start(version)
            implicit = True
        else:
            msg = "Version or transaction not specified"
            raise ScopeError(msg)

        try:
            scope = _ChangeScope(transaction=transaction, implicit=implicit, engine=self._load(transaction.id))
            yield scope
            self._save(scope)
        except Exception:
            if implicit:
                logger.warning("rolling back implicit transaction %s", transaction.id)
                with contextlib.suppress(ConfError):
                    self.transactions.delete(transaction.id)
            raise

    def _save(self, scope: _ChangeScope) -> None:
        try:
            scope.engine.save(self.transactions.path_for(scope.transaction.id))
        except ParserError as exc:
            raise EngineError(str(exc)) from exc
        if scope.implicit:
            scope.version = self.transactions.commit(scope.transaction.id)
            self.cache.version.set(None, scope.version)
        else:
            scope.version = scope.transaction.version

    def _validate(self, data: Bind) -> None:
        if not self.use_validation:
            return
        problems = data.validate()
        if problems:
            raise ValidationError("; ".join(problems))

    # ------------------------------------------------------------------
    # Binds
    # ------------------------------------------------------------------

    def get_frontends(self, transaction_id: str | None = None) -> list[str]:
        """Names of the frontend sections, in file order."""
        return self._load(transaction_id).section_names(accessor.binds.section)

    def get_binds(self, frontend: str, transaction_id: str | None = None) -> GetBindsResult:
        """All binds of frontend. A frontend that does not exist has none."""
        binds, found = self.cache.binds.get(frontend, transaction_id)
        if found:
            return GetBindsResult(version=self.get_version(transaction_id), data=binds)

        engine = self._load(transaction_id)
        binds = accessor.binds.list_objects(engine, frontend)
        self.cache.version.set(transaction_id, engine.version)
        self.cache.binds.set_all(frontend, transaction_id, binds)
        return GetBindsResult(version=engine.version, data=binds)

    def get_bind(self, name: str, frontend: str, transaction_id: str | None = None) -> GetBindResult:
        bind, found = self.cache.binds.get_one(name, frontend, transaction_id)
        if found and bind is not None:
            return GetBindResult(version=self.get_version(transaction_id), data=bind)

        engine = self._load(transaction_id)
        bind, _ = accessor.binds.find_by_name(engine, name, frontend)
        if bind is None:
            raise self._missing(engine, name, frontend)
        self.cache.version.set(transaction_id, engine.version)
        self.cache.binds.put_one(name, frontend, transaction_id, bind)
        return GetBindResult(version=engine.version, data=bind)

    def create_bind(
        self,
        frontend: str,
        data: Bind,
        transaction_id: str | None = None,
        version: int | None = None,
    ) -> int:
        """Append a bind to frontend. Returns the version the change is visible at."""
        self._validate(data)
        name = data.name or bind_path(data)
        with self._change_scope(transaction_id, version) as scope:
            existing, _ = accessor.binds.find_by_name(scope.engine, name, frontend)
            if existing is not None:
                msg = f"Bind {name} already exists in frontend {frontend}"
                raise AlreadyExistsError(msg)
            accessor.binds.insert(scope.engine, frontend, data)

        logger.info("bind created: %s/%s", frontend, name)
        self.cache.binds.set(name, frontend, scope.cache_key, self._stored(data))
        return scope.version

    def edit_bind(
        self,
        name: str,
        frontend: str,
        data: Bind,
        transaction_id: str | None = None,
        version: int | None = None,
    ) -> int:
        """Replace bind name in place, keeping its position in the frontend."""
        self._validate(data)
        new_name = data.name or bind_path(data)
        with self._change_scope(transaction_id, version) as scope:
            existing, position = accessor.binds.find_by_name(scope.engine, name, frontend)
            if existing is None:
                raise self._missing(scope.engine, name, frontend)
            if new_name != name:
                clash, _ = accessor.binds.find_by_name(scope.engine, new_name, frontend)
                if clash is not None:
                    msg = f"Bind {new_name} already exists in frontend {frontend}"
                    raise AlreadyExistsError(msg)
            accessor.binds.set_at(scope.engine, frontend, data, position, name)

        logger.info("bind edited: %s/%s", frontend, name)
        self.cache.binds.delete(name, frontend, scope.cache_key)
        self.cache.binds.set(new_name, frontend, scope.cache_key, self._stored(data))
        return scope.version

    def delete_bind(
        self,
        name: str,
        frontend: str,
        transaction_id: str | None = None,
        version: int | None = None,
    ) -> int:
        with self._change_scope(transaction_id, version) as scope:
            existing, position = accessor.binds.find_by_name(scope.engine, name, frontend)
            if existing is None:
                raise self._missing(scope.engine, name, frontend)
            accessor.binds.delete_at(scope.engine, frontend, position, name)

        logger.info("bind deleted: %s/%s", frontend, name)
        self.cache.binds.delete(name, frontend, scope.cache_key)
        return scope.version

    @staticmethod
    def _missing(engine: ConfigParser, name: str, frontend: str) -> ConfError:
        if not engine.section_exists(accessor.binds.section, frontend):
            return accessor.binds.section_missing(frontend)
        return accessor.binds.object_missing(name, frontend)

    @staticmethod
    def _stored(data: Bind) -> Bind:
        """The bind as it reads back from disk."""
        stored = accessor.binds.decode(accessor.binds.encode(data))
        return stored if stored is not None else data
