"""Tests for expertise record models and schema validation."""
from __future__ import annotations

from datetime import timezone

import pytest

from tilth.expertise.errors import RecordValidationError
from tilth.expertise.models import (
    Classification,
    ConventionRecord,
    DecisionRecord,
    Evidence,
    Outcome,
    OutcomeStatus,
    PatternRecord,
    RecordType,
    make_record,
    parse_timestamp,
)
from tilth.expertise.schema import parse_record, schema_errors, validate_record


def _pattern_dict(**overrides) -> dict:
    data = {
        "id": "mx-abc123",
        "type": "pattern",
        "name": "atomic-writes",
        "description": "Write to a temp file then rename",
        "files": ["src/store.py"],
        "classification": "foundational",
        "recorded_at": "2025-01-01T00:00:00.000Z",
    }
    data.update(overrides)
    return data


class TestRecordSerialization:
    def test_to_dict_field_order(self) -> None:
        record = PatternRecord(
            name="n",
            description="d",
            classification=Classification.TACTICAL,
            recorded_at="2025-01-01T00:00:00Z",
            id="mx-abc123",
            tags=["a"],
        )
        assert list(record.to_dict()) == [
            "id", "type", "name", "description", "classification", "recorded_at", "tags",
        ]

    def test_to_dict_omits_absent_optionals(self) -> None:
        record = ConventionRecord(content="c", classification=Classification.FOUNDATIONAL)
        data = record.to_dict()
        assert "id" not in data
        assert "tags" not in data
        assert "outcomes" not in data

    def test_key_uses_defining_field(self) -> None:
        decision = DecisionRecord(title="Use TOML", rationale="stdlib reader", classification=Classification.FOUNDATIONAL)
        assert decision.key == "Use TOML"
        assert decision.is_named

    def test_convention_is_not_named(self) -> None:
        assert not ConventionRecord(content="c", classification=Classification.TACTICAL).is_named

    def test_make_record_accepts_strings(self) -> None:
        record = make_record("convention", content="c", classification="observational")
        assert record.type == RecordType.CONVENTION
        assert record.classification == Classification.OBSERVATIONAL


class TestTimestamps:
    def test_trailing_z(self) -> None:
        parsed = parse_timestamp("2025-01-01T12:00:00.000Z")
        assert parsed.tzinfo is not None
        assert parsed.utcoffset().total_seconds() == 0

    def test_naive_is_utc(self) -> None:
        assert parse_timestamp("2025-01-01T12:00:00").tzinfo == timezone.utc


class TestParseRecord:
    def test_valid_pattern(self) -> None:
        record = parse_record(_pattern_dict())
        assert isinstance(record, PatternRecord)
        assert record.id == "mx-abc123"
        assert record.files == ["src/store.py"]

    def test_round_trip_preserves_dict(self) -> None:
        data = _pattern_dict(
            tags=["io"],
            evidence={"commit": "abc1234"},
            outcomes=[{"status": "success", "recorded_at": "2025-01-02T00:00:00Z", "agent": "bot"}],
        )
        assert parse_record(data).to_dict() == data

    def test_unknown_type(self) -> None:
        with pytest.raises(RecordValidationError):
            parse_record(_pattern_dict(type="insight"))

    def test_missing_required_field(self) -> None:
        data = _pattern_dict()
        del data["description"]
        with pytest.raises(RecordValidationError, match="description"):
            parse_record(data)

    def test_extra_field_rejected(self) -> None:
        with pytest.raises(RecordValidationError):
            parse_record(_pattern_dict(severity="high"))

    def test_field_of_another_type_rejected(self) -> None:
        with pytest.raises(RecordValidationError):
            parse_record(_pattern_dict(resolution="not a pattern field"))

    def test_bad_id_pattern(self) -> None:
        with pytest.raises(RecordValidationError):
            parse_record(_pattern_dict(id="mx-ABC123"))

    def test_bad_classification(self) -> None:
        assert schema_errors(_pattern_dict(classification="permanent"))

    def test_bad_outcome_status(self) -> None:
        data = _pattern_dict(outcomes=[{"status": "maybe", "recorded_at": "2025-01-01T00:00:00Z"}])
        assert schema_errors(data)

    @pytest.mark.parametrize("stamp", ["last tuesday", "n/a", "2025-13-01T00:00:00Z"])
    def test_recorded_at_must_be_iso(self, stamp: str) -> None:
        errors = schema_errors(_pattern_dict(recorded_at=stamp))
        assert len(errors) == 1
        assert errors[0].startswith("/recorded_at")
        assert "ISO-8601" in errors[0]

    def test_outcome_recorded_at_must_be_iso(self) -> None:
        data = _pattern_dict(outcomes=[{"status": "success", "recorded_at": "yesterday"}])
        assert [e.split(" ")[0] for e in schema_errors(data)] == ["/outcomes/0/recorded_at"]

    @pytest.mark.parametrize(
        "stamp",
        ["2025-01-01T00:00:00.000Z", "2025-01-01T00:00:00+02:00", "2025-01-01T00:00:00", "2025-01-01"],
    )
    def test_iso_variants_accepted(self, stamp: str) -> None:
        assert schema_errors(_pattern_dict(recorded_at=stamp)) == []

    def test_schema_errors_empty_when_valid(self) -> None:
        assert schema_errors(_pattern_dict()) == []


class TestValidateRecord:
    def test_valid_record_passes(self) -> None:
        record = ConventionRecord(
            content="c",
            classification=Classification.FOUNDATIONAL,
            evidence=Evidence(issue="#12"),
            outcomes=[Outcome(status=OutcomeStatus.SUCCESS, duration=120.0)],
        )
        assert validate_record(record) is record

    def test_empty_defining_field_fails(self) -> None:
        with pytest.raises(RecordValidationError):
            validate_record(ConventionRecord(content="", classification=Classification.FOUNDATIONAL))

    def test_negative_duration_fails(self) -> None:
        record = ConventionRecord(
            content="c",
            classification=Classification.FOUNDATIONAL,
            outcomes=[Outcome(status=OutcomeStatus.FAILURE, duration=-1.0)],
        )
        with pytest.raises(RecordValidationError):
            validate_record(record)
