"""Tests for markdown and status rendering."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from tilth.config.project import GovernanceConfig
from tilth.expertise.formatting import (
    format_compact_line,
    format_domain_expertise,
    format_prime_output,
    format_records_markdown,
    format_status_line,
    format_status_output,
    format_time_ago,
    record_summary,
)
from tilth.expertise.models import (
    Classification,
    ConventionRecord,
    DecisionRecord,
    FailureRecord,
    Outcome,
    OutcomeStatus,
    PatternRecord,
)
from tilth.expertise.service import DomainStatus

NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)
FOUNDATIONAL = Classification.FOUNDATIONAL


class TestTimeAgo:
    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=30), "just now"),
            (timedelta(minutes=5), "5m ago"),
            (timedelta(hours=3, minutes=59), "3h ago"),
            (timedelta(days=2, hours=1), "2d ago"),
        ],
    )
    def test_buckets(self, delta, expected):
        assert format_time_ago(NOW - delta, now=NOW) == expected

    def test_naive_is_utc(self):
        assert format_time_ago((NOW - timedelta(hours=2)).replace(tzinfo=None), now=NOW) == "2h ago"


class TestRecordLines:
    def test_summary_per_type(self):
        assert record_summary(ConventionRecord(content="c", classification=FOUNDATIONAL)) == "c"
        assert record_summary(PatternRecord(name="n", description="d", classification=FOUNDATIONAL)) == "n: d"
        assert record_summary(DecisionRecord(title="t", rationale="r", classification=FOUNDATIONAL)) == "t"

    def test_compact_line(self):
        record = ConventionRecord(content="c", classification=FOUNDATIONAL, id="mx-123456", tags=["a", "b"])
        assert format_compact_line(record) == "mx-123456 convention: c [a, b]"

    def test_markdown_sections_in_fixed_order(self):
        records = [
            FailureRecord(description="boom", resolution="retry", classification=FOUNDATIONAL, id="mx-000001"),
            ConventionRecord(content="tabs", classification=FOUNDATIONAL),
            PatternRecord(name="p", description="d", files=["a.py"], classification=FOUNDATIONAL),
        ]
        assert format_records_markdown(records) == (
            "### Conventions\n- tabs\n\n"
            "### Patterns\n- **p**: d (a.py)\n\n"
            "### Known Failures\n- boom (mx-000001)\n  -> retry"
        )

    def test_outcome_summary_line(self):
        record = ConventionRecord(
            content="c",
            classification=FOUNDATIONAL,
            outcomes=[Outcome(status=OutcomeStatus.SUCCESS), Outcome(status=OutcomeStatus.FAILURE)],
        )
        assert "  outcomes: 1/2 successful" in format_records_markdown([record])

    def test_domain_header(self):
        assert format_domain_expertise("api", []) == "## api (0 entries)"
        text = format_domain_expertise(
            "api", [ConventionRecord(content="c", classification=FOUNDATIONAL)], datetime.now(timezone.utc)
        )
        assert text.startswith("## api (1 entries, updated just now)\n\n### Conventions")


class TestPrimeAndStatus:
    def test_prime_without_domains(self):
        text = format_prime_output([])
        assert text.startswith("# Project Expertise (via tilth)\n")
        assert "No expertise recorded yet." in text
        assert "## Recording New Learnings" in text

    def test_prime_joins_sections(self):
        text = format_prime_output(["## a (0 entries)", "## b (0 entries)"])
        assert "## a (0 entries)\n\n## b (0 entries)" in text

    def test_status_line_notes(self):
        assert format_status_line("api", 3, None, "ok") == "  api: 3 entries (updated never)"
        assert format_status_line("api", 250, None, "over").endswith("! OVER HARD LIMIT, must decompose")

    def test_status_output(self):
        statuses = [DomainStatus("api", 1, None, "ok")]
        text = format_status_output(statuses, GovernanceConfig())
        assert "  api: 1 entries (updated never)" in text
        assert text.endswith("Governance: max 100, warn 150, hard limit 200")

    def test_status_output_without_domains(self):
        assert "No domains configured." in format_status_output([], GovernanceConfig())
