"""Tests for JSONL persistence of expertise records."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from tilth.expertise.errors import MalformedRecordError, StoreNotInitializedError
from tilth.expertise.ids import generate_record_id
from tilth.expertise.models import (
    Classification,
    ConventionRecord,
    FailureRecord,
    Outcome,
    OutcomeStatus,
    PatternRecord,
    ReferenceRecord,
)
from tilth.expertise.store import (
    append_record,
    create_expertise_file,
    filter_by_classification,
    filter_by_file,
    filter_by_outcome_status,
    filter_by_tag,
    filter_by_type,
    find_duplicate,
    get_file_mod_time,
    read_expertise_file,
    write_expertise_file,
)


@pytest.fixture
def domain_file(tmp_path: Path) -> Path:
    return tmp_path / "testing.jsonl"


def _convention(content: str = "Use ruff", **kwargs) -> ConventionRecord:
    kwargs.setdefault("classification", Classification.FOUNDATIONAL)
    return ConventionRecord(content=content, **kwargs)


def _pattern(name: str = "atomic-writes", **kwargs) -> PatternRecord:
    kwargs.setdefault("classification", Classification.TACTICAL)
    kwargs.setdefault("description", "temp file then rename")
    return PatternRecord(name=name, **kwargs)


class TestReadExpertiseFile:
    def test_missing_file_is_empty(self, domain_file: Path) -> None:
        assert read_expertise_file(domain_file) == []

    def test_blank_lines_skipped(self, domain_file: Path) -> None:
        line = json.dumps(_convention(id="mx-aaaaaa").to_dict())
        domain_file.write_text(f"\n{line}\n\n   \n{line}\n")
        assert len(read_expertise_file(domain_file)) == 2

    def test_invalid_json_reports_domain_and_line(self, domain_file: Path) -> None:
        good = json.dumps(_convention().to_dict())
        domain_file.write_text(f"{good}\n{{not json\n")
        with pytest.raises(MalformedRecordError) as exc_info:
            read_expertise_file(domain_file)
        assert exc_info.value.domain == "testing"
        assert exc_info.value.line == 2
        assert str(exc_info.value).startswith("testing:2 - ")

    def test_schema_violation_is_malformed(self, domain_file: Path) -> None:
        domain_file.write_text(json.dumps({"type": "convention", "content": "x"}) + "\n")
        with pytest.raises(MalformedRecordError) as exc_info:
            read_expertise_file(domain_file)
        assert exc_info.value.line == 1
        assert "classification" in str(exc_info.value)

    def test_invalid_utf8_is_malformed(self, domain_file: Path) -> None:
        good = json.dumps(_convention().to_dict()).encode("utf-8")
        domain_file.write_bytes(good + b"\n" + b'{"type": "convention", "content": "\xff"}\n')
        with pytest.raises(MalformedRecordError) as exc_info:
            read_expertise_file(domain_file)
        assert exc_info.value.line == 2
        assert exc_info.value.reason == "Invalid UTF-8"

    def test_non_ascii_content_round_trips(self, domain_file: Path) -> None:
        write_expertise_file(domain_file, [_convention("Prüfe Zeitstempel vor dem Schreiben")])
        assert read_expertise_file(domain_file)[0].content == "Prüfe Zeitstempel vor dem Schreiben"

    def test_unparseable_timestamp_is_malformed(self, domain_file: Path) -> None:
        data = _convention().to_dict()
        data["recorded_at"] = "last tuesday"
        domain_file.write_text(json.dumps(data) + "\n")
        with pytest.raises(MalformedRecordError) as exc_info:
            read_expertise_file(domain_file)
        assert exc_info.value.line == 1
        assert "recorded_at" in exc_info.value.reason


class TestWriteExpertiseFile:
    def test_round_trip(self, domain_file: Path) -> None:
        records = [
            _convention(tags=["style"]),
            _pattern(files=["src/a.py"], outcomes=[Outcome(status=OutcomeStatus.SUCCESS, agent="bot")]),
            FailureRecord(
                description="flaky test",
                resolution="pin the seed",
                classification=Classification.OBSERVATIONAL,
            ),
        ]
        write_expertise_file(domain_file, records)
        loaded = read_expertise_file(domain_file)
        assert [r.to_dict() for r in loaded] == [r.to_dict() for r in records]

    def test_one_compact_line_per_record(self, domain_file: Path) -> None:
        write_expertise_file(domain_file, [_convention("a"), _convention("b")])
        text = domain_file.read_text()
        assert text.endswith("\n")
        lines = text.splitlines()
        assert len(lines) == 2
        assert all(": " not in line and ", " not in line for line in lines)

    def test_assigns_missing_ids_and_keeps_existing(self, domain_file: Path) -> None:
        fresh = _convention("fresh")
        legacy = _convention("legacy", id="mx-000000")
        write_expertise_file(domain_file, [fresh, legacy])
        loaded = read_expertise_file(domain_file)
        assert loaded[0].id == generate_record_id(fresh)
        assert loaded[1].id == "mx-000000"

    def test_empty_list_gives_empty_file(self, domain_file: Path) -> None:
        write_expertise_file(domain_file, [_convention()])
        write_expertise_file(domain_file, [])
        assert domain_file.read_bytes() == b""

    def test_no_temp_files_left_behind(self, domain_file: Path) -> None:
        write_expertise_file(domain_file, [_convention()])
        assert [p.name for p in domain_file.parent.iterdir()] == ["testing.jsonl"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(StoreNotInitializedError):
            write_expertise_file(tmp_path / "nope" / "testing.jsonl", [])


class TestAppendRecord:
    def test_assigns_id(self, domain_file: Path) -> None:
        record = append_record(domain_file, _convention())
        assert record.id == generate_record_id(record)
        assert read_expertise_file(domain_file)[0].id == record.id

    def test_repairs_missing_trailing_newline(self, domain_file: Path) -> None:
        domain_file.write_text(json.dumps(_convention("first").to_dict()))
        append_record(domain_file, _convention("second"))
        loaded = read_expertise_file(domain_file)
        assert [r.content for r in loaded] == ["first", "second"]
        assert domain_file.read_text().count("\n") == 2

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(StoreNotInitializedError):
            append_record(tmp_path / "nope" / "testing.jsonl", _convention())


class TestFileHelpers:
    def test_create_keeps_existing_content(self, domain_file: Path) -> None:
        append_record(domain_file, _convention())
        create_expertise_file(domain_file)
        assert len(read_expertise_file(domain_file)) == 1

    def test_mod_time(self, domain_file: Path) -> None:
        assert get_file_mod_time(domain_file) is None
        create_expertise_file(domain_file)
        assert get_file_mod_time(domain_file) is not None


class TestDuplicatesAndFilters:
    def test_find_duplicate_matches_type_and_key(self) -> None:
        records = [_convention("a"), _pattern("p")]
        assert find_duplicate(records, _pattern("p", description="other"))[0] == 1
        assert find_duplicate(records, _pattern("a")) is None
        assert find_duplicate(records, _convention("b")) is None

    def test_filter_by_type_and_classification(self) -> None:
        records = [_convention("a"), _pattern("p")]
        assert filter_by_type(records, "pattern") == [records[1]]
        assert filter_by_classification(records, Classification.FOUNDATIONAL) == [records[0]]

    def test_filter_by_tag_is_case_insensitive(self) -> None:
        records = [_convention("a", tags=["Testing"]), _convention("b", tags=["other"])]
        assert filter_by_tag(records, "testing") == [records[0]]

    def test_filter_by_file_substring(self) -> None:
        ref = ReferenceRecord(
            name="store",
            description="persistence",
            files=["src/tilth/expertise/store.py"],
            classification=Classification.FOUNDATIONAL,
        )
        records = [_convention("a"), ref]
        assert filter_by_file(records, "expertise/") == [ref]

    def test_filter_by_outcome_status(self) -> None:
        ok = _convention("a", outcomes=[Outcome(status=OutcomeStatus.SUCCESS)])
        bad = _convention("b", outcomes=[Outcome(status=OutcomeStatus.FAILURE)])
        assert filter_by_outcome_status([ok, bad, _convention("c")], "failure") == [bad]
