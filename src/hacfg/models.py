"""Data models for frontend binds and configuration transactions."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Any

_NO_SPACE = re.compile(r"^[^\s]+$")
_MAX_PORT = 65535


def new_transaction_id() -> str:
    """Generate a transaction ID (uuid4, canonical form)."""
    return str(uuid.uuid4())


def is_transaction_id(value: str) -> bool:
    try:
        return str(uuid.UUID(value)) == value
    except ValueError:
        return False


@dataclass
class Bind:
    """A bind directive of a frontend, in structured form.

    Empty strings, None and False all mean "not set". port and
    tcp_user_timeout use None rather than 0 so an unset value never turns
    into a zero on disk.
    """

    name: str = ""
    address: str = ""
    port: int | None = None
    process: str = ""
    ssl: bool = False
    ssl_certificate: str = ""          # crt
    ssl_cafile: str = ""               # ca-file
    tcp_user_timeout: int | None = None  # tcp-ut, milliseconds
    transparent: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Bind:
        port = d.get("port")
        timeout = d.get("tcp_user_timeout")
        return cls(
            name=d.get("name", ""),
            address=d.get("address", ""),
            port=int(port) if port is not None else None,
            process=d.get("process", ""),
            ssl=bool(d.get("ssl", False)),
            ssl_certificate=d.get("ssl_certificate", ""),
            ssl_cafile=d.get("ssl_cafile", ""),
            tcp_user_timeout=int(timeout) if timeout is not None else None,
            transparent=bool(d.get("transparent", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name}
        if self.address:
            d["address"] = self.address
        if self.port is not None:
            d["port"] = self.port
        if self.process:
            d["process"] = self.process
        if self.ssl:
            d["ssl"] = True
        if self.ssl_certificate:
            d["ssl_certificate"] = self.ssl_certificate
        if self.ssl_cafile:
            d["ssl_cafile"] = self.ssl_cafile
        if self.tcp_user_timeout is not None:
            d["tcp_user_timeout"] = self.tcp_user_timeout
        if self.transparent:
            d["transparent"] = True
        return d

    def validate(self) -> list[str]:
        """Return a list of schema problems; empty when the bind is valid."""
        problems: list[str] = []
        if not self.name:
            problems.append("name is required")
        elif not _NO_SPACE.match(self.name):
            problems.append(f"name {self.name!r} must not contain whitespace")
        if not self.address and self.port is None:
            problems.append("address or port is required")
        if self.address.startswith("/") and self.port is not None:
            problems.append(f"port must not be set for socket address {self.address!r}")
        for key in ("address", "process", "ssl_certificate", "ssl_cafile"):
            value = getattr(self, key)
            if value and not _NO_SPACE.match(value):
                problems.append(f"{key} {value!r} must not contain whitespace")
        if self.port is not None and not 1 <= self.port <= _MAX_PORT:
            problems.append(f"port {self.port} out of range 1-{_MAX_PORT}")
        if self.tcp_user_timeout is not None and self.tcp_user_timeout < 0:
            problems.append(f"tcp_user_timeout {self.tcp_user_timeout} must be >= 0")
        return problems


@dataclass
class Transaction:
    """A staged change scope over the configuration file."""

    id: str
    version: int                       # committed version the snapshot was taken from
    status: str = "in_progress"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "version": self.version, "status": self.status}


@dataclass
class GetBindsResult:
    version: int
    data: list[Bind] = field(default_factory=list)


@dataclass
class GetBindResult:
    version: int
    data: Bind
