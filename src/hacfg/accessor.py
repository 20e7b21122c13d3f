"""Objects of one kind inside one section of the configuration.

An ObjectAccessor pairs an engine attribute (``bind`` in ``frontend``) with
the codec for it. It holds no engine state: every call takes the
ConfigParser it should read or edit, loaded by the caller for the scope it
is working in.

Positions returned by find_by_name index the raw directive list, so they
stay correct when the codec drops records it cannot decode. They are still
plain indexes, valid only until the section changes shape.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from hacfg.codec import parse_bind, serialize_bind
from hacfg.errors import EngineError, NotFoundError
from hacfg.parser import ConfigParser, ParserError, ParserErrorKind, Section

if TYPE_CHECKING:
    from collections.abc import Callable

    from hacfg.models import Bind

T = TypeVar("T")


class ObjectAccessor(Generic[T]):
    def __init__(
        self,
        kind: str,
        section: Section,
        attribute: str,
        decode: Callable[[Any], T | None],
        encode: Callable[[T], Any],
        name_of: Callable[[T], str],
    ) -> None:
        self.kind = kind
        self.section = section
        self.attribute = attribute
        self.decode = decode
        self.encode = encode
        self.name_of = name_of

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def section_missing(self, section_name: str) -> NotFoundError:
        return NotFoundError(f"{self.section.value.capitalize()} {section_name} does not exist")

    def object_missing(self, name: str, section_name: str) -> NotFoundError:
        return NotFoundError(f"{self.kind} {name} does not exist in {self.section.value} {section_name}")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _decoded(self, engine: ConfigParser, section_name: str) -> list[tuple[int, T]]:
        try:
            records = engine.get(self.section, section_name, self.attribute)
        except ParserError as exc:
            if exc.kind in (ParserErrorKind.SECTION_MISSING, ParserErrorKind.FETCH_ERROR):
                return []
            raise EngineError(str(exc)) from exc
        out: list[tuple[int, T]] = []
        for i, record in enumerate(records):
            obj = self.decode(record)
            if obj is not None:
                out.append((i, obj))
        return out

    def list_objects(self, engine: ConfigParser, section_name: str) -> list[T]:
        """All decodable objects of the section, in file order.

        A missing section reads as empty.
        """
        return [obj for _, obj in self._decoded(engine, section_name)]

    def find_by_name(self, engine: ConfigParser, name: str, section_name: str) -> tuple[T | None, int]:
        """First object called name and its position; (None, 0) if absent."""
        for position, obj in self._decoded(engine, section_name):
            if self.name_of(obj) == name:
                return obj, position
        return None, 0

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def insert(self, engine: ConfigParser, section_name: str, obj: T, position: int = -1) -> None:
        self._mutate(
            lambda: engine.insert(self.section, section_name, self.attribute, self.encode(obj), position),
            self.name_of(obj), section_name,
        )

    def set_at(self, engine: ConfigParser, section_name: str, obj: T, position: int, name: str) -> None:
        self._mutate(
            lambda: engine.set(self.section, section_name, self.attribute, self.encode(obj), position),
            name, section_name,
        )

    def delete_at(self, engine: ConfigParser, section_name: str, position: int, name: str) -> None:
        self._mutate(
            lambda: engine.delete(self.section, section_name, self.attribute, position),
            name, section_name,
        )

    def _mutate(self, op: Callable[[], None], name: str, section_name: str) -> None:
        try:
            op()
        except ParserError as exc:
            if exc.kind == ParserErrorKind.SECTION_MISSING:
                raise self.section_missing(section_name) from exc
            if exc.kind == ParserErrorKind.FETCH_ERROR:
                raise self.object_missing(name, section_name) from exc
            raise EngineError(str(exc)) from exc


def _bind_name(bind: Bind) -> str:
    return bind.name


binds = ObjectAccessor(
    kind="Bind",
    section=Section.FRONTEND,
    attribute="bind",
    decode=parse_bind,
    encode=serialize_bind,
    name_of=_bind_name,
)
