"""Convert between on-disk bind records and Bind objects.

Decoding is lossy and never raises:

- an empty path has no address segment at all and the record is dropped
  (parse_bind returns None);
- a port segment that is not a non-negative integer is ignored and the bind
  is kept without a port;
- unknown options are skipped;
- tcp-ut 0 reads as "not set".

The first two policies treat malformed input differently: one drops the
record, the other drops only the port.
"""

from __future__ import annotations

from hacfg.models import Bind
from hacfg.params import BindOption, BindOptionValue, BindOptionWord, BindRecord


def _parse_uint(text: str) -> int | None:
    if text and text.isascii() and text.isdigit():
        return int(text)
    return None


def parse_bind(record: BindRecord) -> Bind | None:
    """Decode one bind record. Returns None when the path is unusable."""
    bind = Bind(name=record.path)
    if record.path.startswith("/"):
        bind.address = record.path
    else:
        segments = record.path.split(":") if record.path else []
        if not segments:
            return None
        bind.address = segments[0]
        if len(segments) > 1:
            bind.port = _parse_uint(segments[1])

    for option in record.params:
        _apply_option(bind, option)
    return bind


def _apply_option(bind: Bind, option: BindOption) -> None:
    match option:
        case BindOptionWord(name="ssl"):
            bind.ssl = True
        case BindOptionWord(name="transparent"):
            bind.transparent = True
        case BindOptionValue(name="name", value=v):
            bind.name = v
        case BindOptionValue(name="process", value=v):
            bind.process = v
        case BindOptionValue(name="crt", value=v):
            bind.ssl_certificate = v
        case BindOptionValue(name="ca-file", value=v):
            bind.ssl_cafile = v
        case BindOptionValue(name="tcp-ut", value=v):
            timeout = _parse_uint(v)
            if timeout:
                bind.tcp_user_timeout = timeout
        case BindOptionWord() | BindOptionValue():
            pass


def bind_path(bind: Bind) -> str:
    """Address and port as written after the ``bind`` keyword."""
    if bind.port is not None:
        return f"{bind.address}:{bind.port}"
    return bind.address


def serialize_bind(bind: Bind) -> BindRecord:
    """Encode a Bind. Options are always emitted in the same order."""
    path = bind_path(bind)
    params: list[BindOption] = [BindOptionValue(name="name", value=bind.name or path)]
    if bind.process:
        params.append(BindOptionValue(name="process", value=bind.process))
    if bind.ssl_certificate:
        params.append(BindOptionValue(name="crt", value=bind.ssl_certificate))
    if bind.ssl_cafile:
        params.append(BindOptionValue(name="ca-file", value=bind.ssl_cafile))
    if bind.tcp_user_timeout:
        params.append(BindOptionValue(name="tcp-ut", value=str(bind.tcp_user_timeout)))
    if bind.ssl:
        params.append(BindOptionWord(name="ssl"))
    if bind.transparent:
        params.append(BindOptionWord(name="transparent"))
    return BindRecord(path=path, params=params)
