"""Tests for the configuration engine."""

from __future__ import annotations

import pytest

from hacfg.params import BindOptionValue, BindRecord
from hacfg.parser import (
    ConfigParser,
    ParserError,
    ParserErrorKind,
    Section,
    read_version,
    stamp_version,
)

from conftest import SAMPLE_CONFIG


@pytest.fixture
def parser() -> ConfigParser:
    p = ConfigParser()
    p.parse(SAMPLE_CONFIG)
    return p


def _bind(path: str, name: str) -> BindRecord:
    return BindRecord(path=path, params=[BindOptionValue("name", name)])


class TestLoad:
    def test_unchanged_file_renders_identically(self, parser):
        assert parser.string() == SAMPLE_CONFIG

    def test_version_read_from_stamp(self, parser):
        assert parser.version == 1

    def test_missing_stamp_is_version_one(self):
        p = ConfigParser()
        p.parse("frontend http\n    bind :80\n")
        assert p.version == 1
        assert p.string().startswith("# _version=1\n")

    def test_sections(self, parser):
        assert parser.section_names(Section.FRONTEND) == ["http", "empty"]
        assert parser.section_exists(Section.BACKEND, "app")
        assert not parser.section_exists(Section.FRONTEND, "app")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ParserError) as exc_info:
            ConfigParser().load_data(tmp_path / "nope.cfg")
        assert exc_info.value.kind == ParserErrorKind.FILE_ERROR

    def test_comment_on_bind_line_survives(self):
        p = ConfigParser()
        p.parse("frontend f\n    bind :80 name a # public\n")
        assert p.get(Section.FRONTEND, "f", "bind")[0].comment == "public"
        assert "bind :80 name a # public" in p.string()


class TestGet:
    def test_returns_records_in_order(self, parser):
        records = parser.get(Section.FRONTEND, "http", "bind")
        assert [r.path for r in records] == ["0.0.0.0:80", "/var/run/haproxy.sock"]

    def test_section_missing(self, parser):
        with pytest.raises(ParserError) as exc_info:
            parser.get(Section.FRONTEND, "nope", "bind")
        assert exc_info.value.kind == ParserErrorKind.SECTION_MISSING

    def test_no_records_is_fetch_error(self, parser):
        with pytest.raises(ParserError) as exc_info:
            parser.get(Section.FRONTEND, "empty", "bind")
        assert exc_info.value.kind == ParserErrorKind.FETCH_ERROR

    def test_unsupported_attribute(self, parser):
        with pytest.raises(ParserError) as exc_info:
            parser.get(Section.FRONTEND, "http", "mode")
        assert exc_info.value.kind == ParserErrorKind.INVALID_DATA


class TestEdit:
    def test_append_goes_after_last_bind(self, parser):
        parser.insert(Section.FRONTEND, "http", "bind", _bind(":8080", "alt"))
        text = parser.string()
        assert text.index("name admin") < text.index("bind :8080 name alt") < text.index("default_backend")

    def test_insert_at_index(self, parser):
        parser.insert(Section.FRONTEND, "http", "bind", _bind(":8080", "alt"), 0)
        assert [r.path for r in parser.get(Section.FRONTEND, "http", "bind")][0] == ":8080"

    def test_insert_into_section_without_binds(self, parser):
        parser.insert(Section.FRONTEND, "empty", "bind", _bind(":81", "e"))
        assert "frontend empty\n    mode http\n    bind :81 name e\n\nbackend app" in parser.string()

    def test_insert_wrong_type(self, parser):
        with pytest.raises(ParserError) as exc_info:
            parser.insert(Section.FRONTEND, "http", "bind", "bind :80")
        assert exc_info.value.kind == ParserErrorKind.INVALID_DATA

    def test_set_replaces_in_place(self, parser):
        parser.set(Section.FRONTEND, "http", "bind", _bind(":443", "https"), 0)
        records = parser.get(Section.FRONTEND, "http", "bind")
        assert [r.path for r in records] == [":443", "/var/run/haproxy.sock"]

    def test_set_out_of_range(self, parser):
        with pytest.raises(ParserError) as exc_info:
            parser.set(Section.FRONTEND, "http", "bind", _bind(":443", "x"), 5)
        assert exc_info.value.kind == ParserErrorKind.FETCH_ERROR

    def test_delete(self, parser):
        parser.delete(Section.FRONTEND, "http", "bind", 0)
        assert [r.path for r in parser.get(Section.FRONTEND, "http", "bind")] == ["/var/run/haproxy.sock"]
        assert "0.0.0.0:80" not in parser.string()

    def test_delete_in_missing_section(self, parser):
        with pytest.raises(ParserError) as exc_info:
            parser.delete(Section.FRONTEND, "nope", "bind", 0)
        assert exc_info.value.kind == ParserErrorKind.SECTION_MISSING

    def test_save_round_trip(self, parser, tmp_path):
        parser.insert(Section.FRONTEND, "empty", "bind", _bind(":81", "e"))
        parser.version = 7
        path = tmp_path / "out.cfg"
        parser.save(path)
        reloaded = ConfigParser()
        reloaded.load_data(path)
        assert reloaded.version == 7
        assert reloaded.string() == parser.string()
        assert not (tmp_path / "out.cfg.tmp").exists()


class TestVersionStamp:
    def test_read_version(self):
        assert read_version("# _version=12\nglobal\n") == 12
        assert read_version("# comment\n\n# _version=3\nglobal\n") == 3
        assert read_version("global\n# _version=3\n") == 1

    def test_stamp_replaces_existing(self):
        text = stamp_version("# _version=2\n# note\nglobal\n    daemon\n", 3)
        assert text == "# _version=3\n# note\nglobal\n    daemon\n"

    def test_stamp_adds_missing(self):
        assert stamp_version("global\n", 5) == "# _version=5\nglobal\n"
