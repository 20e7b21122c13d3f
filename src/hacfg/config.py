"""HacfgConfig: project-local settings for editing one HAProxy config file.

Default layout (all relative to the project root):

    hacfg.toml            # project config
    haproxy.cfg           # the managed configuration file
    haproxy.cfg.lock      # commit lock (created on first commit)
    .hacfg/
        transactions/     # staged transaction snapshots
        .gitignore        # auto-written: ignores transactions/

hacfg.toml example:

    [hacfg]
    config_file = "haproxy.cfg"
    transaction_dir = ".hacfg/transactions"
    use_validation = true

    [cache]
    enabled = true

HACFG_CONFIG_FILE and HACFG_TRANSACTION_DIR in the environment override the
file paths from hacfg.toml.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_CONFIG_FILENAME = "hacfg.toml"
_DEFAULT_CONFIG_FILE = "haproxy.cfg"
_DEFAULT_TRANSACTION_DIR = ".hacfg/transactions"
_EMPTY_CONFIG = "# _version=1\n"


@dataclass
class CacheConfig:
    enabled: bool = True


@dataclass
class HacfgConfig:
    """Resolved configuration for a managed HAProxy file."""

    root: Path                          # directory that contains hacfg.toml
    config_file: Path = field(default_factory=Path)
    transaction_dir: Path = field(default_factory=Path)
    use_validation: bool = True
    cache: CacheConfig = field(default_factory=CacheConfig)

    def ensure_dirs(self) -> None:
        """Create transaction_dir, and an empty version-1 config file if missing."""
        self.transaction_dir.mkdir(parents=True, exist_ok=True)
        self._write_gitignore()
        if not self.config_file.exists():
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            self.config_file.write_text(_EMPTY_CONFIG)

    def _write_gitignore(self) -> None:
        """Write .hacfg/.gitignore to keep staged transactions out of git."""
        parent = self.transaction_dir.parent
        if parent == self.root or self.root not in parent.parents:
            return
        gitignore = parent / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text(f"{self.transaction_dir.name}/\n")


def load_config(root: Path | str | None = None) -> HacfgConfig:
    """Load hacfg.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd())
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    main = raw.get("hacfg", {})
    cache_section = raw.get("cache", {})

    config_file = os.environ.get("HACFG_CONFIG_FILE") or main.get("config_file", _DEFAULT_CONFIG_FILE)
    transaction_dir = os.environ.get("HACFG_TRANSACTION_DIR") or main.get(
        "transaction_dir", _DEFAULT_TRANSACTION_DIR,
    )

    return HacfgConfig(
        root=root_path,
        config_file=root_path / config_file,
        transaction_dir=root_path / transaction_dir,
        use_validation=bool(main.get("use_validation", True)),
        cache=CacheConfig(
            enabled=bool(cache_section.get("enabled", True)),
        ),
    )


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for hacfg.toml."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists():
            return directory
    return start


def init_config(root: Path, config_file: str | None = None) -> Path:
    """Write a default hacfg.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"hacfg.toml already exists at {config_path}"
        raise FileExistsError(msg)

    content = f"""\
[hacfg]
config_file = "{config_file or _DEFAULT_CONFIG_FILE}"
# transaction_dir = ".hacfg/transactions"   # default; keep it out of git
# use_validation = true                     # check binds before writing

[cache]
# enabled = true    # false: always re-read the configuration file
"""
    config_path.write_text(content)
    return config_path
