"""Transactional editing of HAProxy frontend binds.

The managed configuration file is the source of truth; binds are decoded
from it on demand and never stored anywhere else:

    haproxy.cfg
        # _version=3
        frontend http
            bind 0.0.0.0:80 name web
            bind /var/run/haproxy.sock name admin

Writes go through a transaction: either an explicit one (start, several
edits, commit) or an implicit one opened and committed inside a single call
and guarded by the caller's expected version. Commits are serialized with
flock(LOCK_EX) on haproxy.cfg.lock and land by atomic rename.

An optional in-process cache serves repeated reads; see hacfg.cache.
"""

from hacfg.client import Client
from hacfg.config import HacfgConfig, init_config, load_config
from hacfg.errors import (
    AlreadyExistsError,
    ConfError,
    EngineError,
    ErrorKind,
    NotFoundError,
    ScopeError,
    ValidationError,
    VersionConflictError,
)
from hacfg.models import Bind, GetBindResult, GetBindsResult, Transaction

__all__ = [
    "AlreadyExistsError",
    "Bind",
    "Client",
    "ConfError",
    "EngineError",
    "ErrorKind",
    "GetBindResult",
    "GetBindsResult",
    "HacfgConfig",
    "NotFoundError",
    "ScopeError",
    "Transaction",
    "ValidationError",
    "VersionConflictError",
    "init_config",
    "load_config",
]
