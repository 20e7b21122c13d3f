"""
Shared pytest fixtures for hacfg tests.
"""

from pathlib import Path

import pytest

from hacfg.cache import Cache
from hacfg.client import Client

SAMPLE_CONFIG = """\
# _version=1
global
    daemon

defaults
    mode http
    timeout client 30s

frontend http
    mode http
    bind 0.0.0.0:80 name http
    bind /var/run/haproxy.sock name admin process 1
    default_backend app

frontend empty
    mode http

backend app
    server s1 127.0.0.1:8080
"""


@pytest.fixture
def config_file(tmp_path) -> Path:
    """haproxy.cfg with two binds in frontend 'http' and none in 'empty'."""
    path = tmp_path / "haproxy.cfg"
    path.write_text(SAMPLE_CONFIG)
    return path


@pytest.fixture
def transaction_dir(tmp_path) -> Path:
    return tmp_path / "transactions"


@pytest.fixture
def client(config_file, transaction_dir) -> Client:
    return Client(config_file, transaction_dir)


@pytest.fixture
def uncached_client(config_file, transaction_dir) -> Client:
    return Client(config_file, transaction_dir, cache=Cache(enabled=False))
