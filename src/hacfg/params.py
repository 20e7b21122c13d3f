"""On-disk bind record: path plus an ordered list of options.

A bind line looks like:

    bind 0.0.0.0:443 name https crt /etc/ssl/site.pem ssl

Options come in two shapes, a bare word (``ssl``) or a key followed by a
value (``crt /etc/ssl/site.pem``). Which shape a keyword takes is fixed by
HAProxy, so tokenizing needs the keyword tables below. Keywords missing from
both tables are read as words.
"""

from __future__ import annotations

from dataclasses import dataclass, field

BIND_WORD_OPTIONS = frozenset({
    "accept-proxy", "allow-0rtt", "defer-accept", "force-sslv3",
    "force-tlsv10", "force-tlsv11", "force-tlsv12", "force-tlsv13",
    "generate-certificates", "no-ca-names", "no-sslv3", "no-tls-tickets",
    "no-tlsv10", "no-tlsv11", "no-tlsv12", "no-tlsv13",
    "prefer-client-ciphers", "ssl", "strict-sni", "tfo", "transparent",
    "v4v6", "v6only",
})

BIND_VALUE_OPTIONS = frozenset({
    "accept-netscaler-cip", "alpn", "backlog", "ca-file", "ca-ignore-err",
    "ca-sign-file", "ca-sign-pass", "ciphers", "ciphersuites", "crl-file",
    "crt", "crt-ignore-err", "crt-list", "curves", "ecdhe", "expose-fd",
    "gid", "group", "id", "interface", "level", "maxconn", "mode", "mss",
    "name", "namespace", "nice", "npn", "process", "proto",
    "severity-output", "ssl-max-ver", "ssl-min-ver", "tcp-ut",
    "tls-ticket-keys", "uid", "user", "verify",
})


@dataclass(frozen=True)
class BindOptionWord:
    """Flag option, present or absent."""

    name: str

    def tokens(self) -> list[str]:
        return [self.name]


@dataclass(frozen=True)
class BindOptionValue:
    """Keyword option carrying one value."""

    name: str
    value: str

    def tokens(self) -> list[str]:
        return [self.name, self.value]


BindOption = BindOptionWord | BindOptionValue


@dataclass
class BindRecord:
    """One ``bind`` directive as stored in a frontend section."""

    path: str
    params: list[BindOption] = field(default_factory=list)
    comment: str = ""

    def to_line(self) -> str:
        """Render the directive without the leading indentation."""
        tokens = ["bind", self.path]
        for p in self.params:
            tokens.extend(p.tokens())
        line = " ".join(t for t in tokens if t)
        if self.comment:
            line += f" # {self.comment}"
        return line

    @classmethod
    def from_tokens(cls, tokens: list[str], comment: str = "") -> BindRecord:
        """Build a record from the tokens following the ``bind`` keyword.

        A value keyword at the end of the line with no value is kept as a
        word so the line still round-trips.
        """
        if not tokens:
            return cls(path="", comment=comment)
        path, rest = tokens[0], tokens[1:]
        params: list[BindOption] = []
        i = 0
        while i < len(rest):
            tok = rest[i]
            if tok in BIND_VALUE_OPTIONS and i + 1 < len(rest):
                params.append(BindOptionValue(name=tok, value=rest[i + 1]))
                i += 2
            else:
                params.append(BindOptionWord(name=tok))
                i += 1
        return cls(path=path, params=params, comment=comment)
