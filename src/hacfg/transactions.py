"""Transaction files: staged snapshots of the configuration file.

Layout:

    haproxy.cfg                          # committed configuration
    haproxy.cfg.lock                     # flock target serializing commits
    <transaction_dir>/
        haproxy.cfg.<transaction-id>     # staged snapshot, one per transaction

A transaction is started from a committed version: the committed file is
copied into transaction_dir and edited there. Commit re-checks, under an
exclusive flock on the lock file, that the committed version is still the
one the snapshot was taken from, stamps the snapshot with version + 1 and
renames it over the committed file. A transaction that lost the race fails
with VersionConflictError and leaves the committed file untouched.

Staged files outlive the process that wrote them. An orphaned one stays
listed until it is committed or deleted by id.
"""

from __future__ import annotations

import contextlib
import fcntl
import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from hacfg.errors import EngineError, NotFoundError, VersionConflictError
from hacfg.models import Transaction, is_transaction_id, new_transaction_id
from hacfg.parser import read_version, stamp_version

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("hacfg.transactions")


class TransactionStore:
    """Stages, commits and discards transaction files for one config file."""

    def __init__(self, config_file: Path | str, transaction_dir: Path | str) -> None:
        self.config_file = Path(config_file)
        self.transaction_dir = Path(transaction_dir)
        self.transaction_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def path_for(self, transaction_id: str | None) -> Path:
        """File holding the configuration as seen by transaction_id.

        None (or "") is the committed file.
        """
        if not transaction_id:
            return self.config_file
        return self.transaction_dir / f"{self.config_file.name}.{transaction_id}"

    def _lock_path(self) -> Path:
        return self.config_file.with_name(self.config_file.name + ".lock")

    @contextlib.contextmanager
    def _locked(self) -> Iterator[None]:
        with self._lock_path().open("a") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def current_version(self) -> int:
        """Version of the committed configuration."""
        return self._read_version(self.config_file)

    @staticmethod
    def _read_version(path: Path) -> int:
        try:
            return read_version(path.read_text())
        except OSError as exc:
            msg = f"cannot read {path}: {exc}"
            raise EngineError(msg) from exc

    def get(self, transaction_id: str) -> Transaction:
        if not is_transaction_id(transaction_id) or not self.path_for(transaction_id).exists():
            msg = f"Transaction {transaction_id} does not exist"
            raise NotFoundError(msg)
        return Transaction(id=transaction_id, version=self._read_version(self.path_for(transaction_id)))

    def list_transactions(self) -> list[Transaction]:
        prefix = self.config_file.name + "."
        out: list[Transaction] = []
        for path in sorted(self.transaction_dir.glob(prefix + "*")):
            transaction_id = path.name[len(prefix):]
            if not is_transaction_id(transaction_id):
                continue
            out.append(Transaction(id=transaction_id, version=self._read_version(path)))
        return out

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def start(self, version: int) -> Transaction:
        """Stage a snapshot of the committed file taken at version."""
        with self._locked():
            self._check_version(version)
            transaction_id = new_transaction_id()
            try:
                shutil.copyfile(self.config_file, self.path_for(transaction_id))
            except OSError as exc:
                msg = f"cannot stage transaction {transaction_id}: {exc}"
                raise EngineError(msg) from exc
        logger.info("transaction started: %s (version %d)", transaction_id, version)
        return Transaction(id=transaction_id, version=version)

    def commit(self, transaction_id: str) -> int:
        """Promote the staged snapshot to the committed file. Returns the new version."""
        with self._locked():
            transaction = self.get(transaction_id)
            self._check_version(transaction.version)
            path = self.path_for(transaction_id)
            new_version = transaction.version + 1
            tmp = self.config_file.with_name(self.config_file.name + ".tmp")
            try:
                tmp.write_text(stamp_version(path.read_text(), new_version))
                tmp.replace(self.config_file)
                path.unlink()
            except OSError as exc:
                msg = f"cannot commit transaction {transaction_id}: {exc}"
                raise EngineError(msg) from exc
        logger.info("transaction committed: %s (version %d)", transaction_id, new_version)
        return new_version

    def delete(self, transaction_id: str) -> None:
        """Discard a staged snapshot."""
        self.get(transaction_id)
        with contextlib.suppress(FileNotFoundError):
            self.path_for(transaction_id).unlink()
        logger.info("transaction deleted: %s", transaction_id)

    def _check_version(self, version: int) -> None:
        current = self.current_version()
        if version != current:
            msg = f"Version in configuration file is {current}, given version is {version}"
            raise VersionConflictError(msg)
