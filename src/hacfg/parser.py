"""Line-oriented HAProxy configuration engine.

Reads a configuration file into sections and directives, and edits one
attribute's directives by index:

    p = ConfigParser()
    p.load_data("haproxy.cfg")
    binds = p.get(Section.FRONTEND, "http", "bind")
    p.insert(Section.FRONTEND, "http", "bind", record)        # append
    p.set(Section.FRONTEND, "http", "bind", record, 0)
    p.delete(Section.FRONTEND, "http", "bind", 0)
    p.save("haproxy.cfg")

Only attributes listed in _RECORD_TYPES are parsed into records; every other
line is kept verbatim, so an edit leaves the rest of the file byte-for-byte
as it was. The file version lives in a leading ``# _version=N`` comment and
is exposed as ConfigParser.version.

Directives have no stable identity in this format. Callers address them by
their index among the section's directives of the same attribute, which is
only valid until the next structural change of that section.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from hacfg.params import BindRecord

_VERSION_RE = re.compile(r"^#\s*_version\s*=\s*(\d+)\s*$")
_COMMENT_RE = re.compile(r"(?:^|\s)#")
_DEFAULT_INDENT = "    "
DEFAULT_VERSION = 1


class Section(str, Enum):
    GLOBAL = "global"
    DEFAULTS = "defaults"
    FRONTEND = "frontend"
    BACKEND = "backend"
    LISTEN = "listen"
    RESOLVERS = "resolvers"
    PEERS = "peers"
    USERLIST = "userlist"
    MAILERS = "mailers"
    CACHE = "cache"
    PROGRAM = "program"
    HTTP_ERRORS = "http-errors"
    RING = "ring"


_SECTION_KEYWORDS = {s.value: s for s in Section}

# attribute -> record class with from_tokens()/to_line()
_RECORD_TYPES: dict[str, type[BindRecord]] = {
    "bind": BindRecord,
}


class ParserErrorKind(str, Enum):
    SECTION_MISSING = "section_missing"
    FETCH_ERROR = "fetch_error"       # attribute absent, or index out of range
    INVALID_DATA = "invalid_data"
    FILE_ERROR = "file_error"


class ParserError(Exception):
    def __init__(self, kind: ParserErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class _Directive:
    attribute: str
    record: Any
    indent: str = _DEFAULT_INDENT

    def render(self) -> str:
        return self.indent + self.record.to_line()


@dataclass
class _Section:
    type: Section
    name: str
    header: str
    lines: list[str | _Directive] = field(default_factory=list)

    def directive_positions(self, attribute: str) -> list[int]:
        return [
            i for i, line in enumerate(self.lines)
            if isinstance(line, _Directive) and line.attribute == attribute
        ]


def _split_comment(text: str) -> tuple[str, str]:
    m = _COMMENT_RE.search(text)
    if m is None:
        return text, ""
    hash_at = text.index("#", m.start())
    return text[:hash_at], text[hash_at + 1:].strip()


def read_version(text: str) -> int:
    """Return the ``# _version=N`` stamp of a configuration text."""
    for raw in text.splitlines():
        stripped = raw.strip()
        if not stripped:
            continue
        m = _VERSION_RE.match(stripped)
        if m:
            return int(m.group(1))
        if not stripped.startswith("#"):
            break
    return DEFAULT_VERSION


class ConfigParser:
    """In-memory view of one configuration file."""

    def __init__(self) -> None:
        self.version: int = DEFAULT_VERSION
        self._preamble: list[str] = []
        self._sections: list[_Section] = []

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load_data(self, path: Path | str) -> None:
        try:
            text = Path(path).read_text()
        except OSError as exc:
            raise ParserError(ParserErrorKind.FILE_ERROR, f"cannot read {path}: {exc}") from exc
        self.parse(text)

    def parse(self, text: str) -> None:
        self.version = DEFAULT_VERSION
        self._preamble = []
        self._sections = []
        current: _Section | None = None

        for raw in text.splitlines():
            body, comment = _split_comment(raw)
            tokens = body.split()

            if current is None and not tokens:
                m = _VERSION_RE.match(raw.strip())
                if m:
                    self.version = int(m.group(1))
                else:
                    self._preamble.append(raw)
                continue

            if tokens and tokens[0] in _SECTION_KEYWORDS:
                current = _Section(
                    type=_SECTION_KEYWORDS[tokens[0]],
                    name=tokens[1] if len(tokens) > 1 else "",
                    header=raw,
                )
                self._sections.append(current)
                continue

            if current is None:
                # directive outside any section: keep it, there is nothing to attach it to
                self._preamble.append(raw)
                continue

            record_type = _RECORD_TYPES.get(tokens[0]) if tokens else None
            if record_type is None:
                current.lines.append(raw)
                continue
            indent = raw[: len(raw) - len(raw.lstrip())]
            current.lines.append(_Directive(
                attribute=tokens[0],
                record=record_type.from_tokens(tokens[1:], comment=comment),
                indent=indent,
            ))

    def string(self) -> str:
        out = [f"# _version={self.version}"]
        out.extend(self._preamble)
        for section in self._sections:
            out.append(section.header)
            for line in section.lines:
                out.append(line.render() if isinstance(line, _Directive) else line)
        return "\n".join(out) + "\n"

    def save(self, path: Path | str) -> None:
        """Write the configuration to path via a temp file and rename."""
        target = Path(path)
        tmp = target.with_name(target.name + ".tmp")
        try:
            tmp.write_text(self.string())
            tmp.replace(target)
        except OSError as exc:
            raise ParserError(ParserErrorKind.FILE_ERROR, f"cannot write {path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def section_names(self, section: Section) -> list[str]:
        return [s.name for s in self._sections if s.type == section]

    def section_exists(self, section: Section, name: str) -> bool:
        return self._find_section(section, name) is not None

    def _find_section(self, section: Section, name: str) -> _Section | None:
        for s in self._sections:
            if s.type == section and s.name == name:
                return s
        return None

    def _section_or_raise(self, section: Section, name: str) -> _Section:
        s = self._find_section(section, name)
        if s is None:
            raise ParserError(ParserErrorKind.SECTION_MISSING, f"section {section.value} {name} missing")
        return s

    @staticmethod
    def _check_attribute(attribute: str, data: Any = None) -> None:
        record_type = _RECORD_TYPES.get(attribute)
        if record_type is None:
            raise ParserError(ParserErrorKind.INVALID_DATA, f"unsupported attribute {attribute}")
        if data is not None and not isinstance(data, record_type):
            raise ParserError(
                ParserErrorKind.INVALID_DATA,
                f"{attribute} expects {record_type.__name__}, got {type(data).__name__}",
            )

    # ------------------------------------------------------------------
    # Directives
    # ------------------------------------------------------------------

    def get(self, section: Section, name: str, attribute: str) -> list[Any]:
        """Return the records of attribute in section, in file order."""
        self._check_attribute(attribute)
        s = self._section_or_raise(section, name)
        positions = s.directive_positions(attribute)
        if not positions:
            raise ParserError(ParserErrorKind.FETCH_ERROR, f"no {attribute} in {section.value} {name}")
        return [s.lines[i].record for i in positions]  # type: ignore[union-attr]

    def insert(self, section: Section, name: str, attribute: str, data: Any, index: int = -1) -> None:
        """Insert data before the index-th directive; -1 or past-the-end appends."""
        self._check_attribute(attribute, data)
        s = self._section_or_raise(section, name)
        positions = s.directive_positions(attribute)

        if positions:
            indent = s.lines[positions[0]].indent  # type: ignore[union-attr]
        else:
            indent = _DEFAULT_INDENT
        directive = _Directive(attribute=attribute, record=data, indent=indent)

        if 0 <= index < len(positions):
            s.lines.insert(positions[index], directive)
        elif positions:
            s.lines.insert(positions[-1] + 1, directive)
        else:
            s.lines.insert(self._content_end(s), directive)

    def set(self, section: Section, name: str, attribute: str, data: Any, index: int) -> None:
        self._check_attribute(attribute, data)
        s = self._section_or_raise(section, name)
        line_no = self._position(s, attribute, index)
        current: _Directive = s.lines[line_no]  # type: ignore[assignment]
        s.lines[line_no] = _Directive(attribute=attribute, record=data, indent=current.indent)

    def delete(self, section: Section, name: str, attribute: str, index: int) -> None:
        self._check_attribute(attribute)
        s = self._section_or_raise(section, name)
        del s.lines[self._position(s, attribute, index)]

    @staticmethod
    def _position(s: _Section, attribute: str, index: int) -> int:
        positions = s.directive_positions(attribute)
        if not 0 <= index < len(positions):
            raise ParserError(
                ParserErrorKind.FETCH_ERROR,
                f"no {attribute} at index {index} in {s.type.value} {s.name}",
            )
        return positions[index]

    @staticmethod
    def _content_end(s: _Section) -> int:
        """Index after the last non-blank line, so new lines stay above the gap."""
        end = len(s.lines)
        while end > 0:
            line = s.lines[end - 1]
            if isinstance(line, _Directive) or line.strip():
                break
            end -= 1
        return end


def stamp_version(text: str, version: int) -> str:
    """Return text with its leading version stamp set to version."""
    lines = text.splitlines()
    body_start = 0
    header: list[str] = []
    for i, raw in enumerate(lines):
        stripped = raw.strip()
        if stripped and not stripped.startswith("#"):
            body_start = i
            break
        if not _VERSION_RE.match(stripped):
            header.append(raw)
    else:
        body_start = len(lines)
    out = [f"# _version={version}", *header, *lines[body_start:]]
    return "\n".join(out) + "\n"
