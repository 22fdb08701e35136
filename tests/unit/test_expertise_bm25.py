"""Tests for BM25 ranking of expertise records."""
from __future__ import annotations

import math

import pytest

from tilth.expertise.bm25 import (
    BM25Params,
    DEFAULT_BM25_PARAMS,
    extract_record_text,
    search_bm25,
    tokenize,
)
from tilth.expertise.models import (
    Classification,
    ConventionRecord,
    DecisionRecord,
    FailureRecord,
    GuideRecord,
    PatternRecord,
    ReferenceRecord,
)

F = Classification.FOUNDATIONAL


@pytest.fixture
def corpus():
    return [
        PatternRecord(
            id="mx-000001",
            name="atomic-writes",
            description="Write to a temp file and rename over the target",
            files=["src/store.py"],
            classification=F,
        ),
        PatternRecord(
            id="mx-000002",
            name="file-locking",
            description="Hold an exclusive lock file around every file mutation",
            tags=["concurrency"],
            classification=F,
        ),
        ConventionRecord(
            id="mx-000003",
            content="Use sys.exit codes instead of raising SystemExit in helpers",
            classification=F,
        ),
        FailureRecord(
            id="mx-000004",
            description="Tests hung waiting on a lock",
            resolution="Remove the stale lock marker",
            classification=F,
        ),
    ]


class TestTokenize:
    def test_lowercases(self) -> None:
        assert tokenize("Hello WORLD") == ["hello", "world"]

    def test_splits_on_whitespace(self) -> None:
        assert tokenize("foo bar  baz\tqux") == ["foo", "bar", "baz", "qux"]

    def test_punctuation_becomes_separator(self) -> None:
        assert tokenize("foo.bar,baz!qux?") == ["foo", "bar", "baz", "qux"]

    def test_keeps_hyphens_and_underscores(self) -> None:
        assert tokenize("multi-agent snake_case") == ["multi-agent", "snake_case"]

    def test_empty(self) -> None:
        assert tokenize("") == []
        assert tokenize("  ...  ") == []


class TestExtractRecordText:
    def test_pattern_fields(self) -> None:
        record = PatternRecord(name="p", description="d", files=["a.py", "b.py"], classification=F)
        all_text, fields = extract_record_text(record)
        assert fields == {"name": "p", "description": "d", "files": "a.py b.py"}
        assert all_text == "p d a.py b.py"

    def test_decision_excludes_date(self) -> None:
        record = DecisionRecord(title="t", rationale="r", date="2025-01-01", classification=F)
        assert set(extract_record_text(record)[1]) == {"title", "rationale"}

    def test_reference_and_guide(self) -> None:
        ref = ReferenceRecord(name="BM25", description="ranking", files=["bm25.py"], classification=F)
        guide = GuideRecord(name="Testing", description="how to test", classification=F)
        assert "bm25.py" in extract_record_text(ref)[0]
        assert set(extract_record_text(guide)[1]) == {"name", "description"}

    def test_tags_are_searchable(self) -> None:
        record = ConventionRecord(content="c", tags=["foo", "bar"], classification=F)
        assert extract_record_text(record)[1]["tags"] == "foo bar"

    def test_blank_optional_fields_skipped(self) -> None:
        record = PatternRecord(name="p", description="d", files=[], tags=["  "], classification=F)
        assert set(extract_record_text(record)[1]) == {"name", "description"}


class TestSearchBM25:
    def test_empty_inputs(self, corpus) -> None:
        assert search_bm25([], "lock") == []
        assert search_bm25(corpus, "") == []
        assert search_bm25(corpus, "   ") == []
        assert search_bm25(corpus, "!!!") == []

    def test_no_match(self, corpus) -> None:
        assert search_bm25(corpus, "kubernetes") == []

    def test_exact_name_ranks_first(self, corpus) -> None:
        results = search_bm25(corpus, "atomic-writes")
        assert results[0].record.id == "mx-000001"
        assert "name" in results[0].matched_fields

    def test_scores_descending_and_positive(self, corpus) -> None:
        results = search_bm25(corpus, "lock file")
        assert len(results) > 1
        assert all(r.score > 0 for r in results)
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

    def test_more_occurrences_rank_higher(self, corpus) -> None:
        # Same length, "lock" twice in the failure and once in the pattern
        results = search_bm25(corpus, "lock")
        assert [r.record.id for r in results] == ["mx-000004", "mx-000002"]

    def test_case_insensitive(self, corpus) -> None:
        upper = search_bm25(corpus, "LOCK")
        lower = search_bm25(corpus, "lock")
        assert [r.record.id for r in upper] == [r.record.id for r in lower]

    def test_matched_fields(self, corpus) -> None:
        results = search_bm25(corpus, "stale concurrency")
        by_id = {r.record.id: r.matched_fields for r in results}
        assert by_id["mx-000004"] == ["resolution"]
        assert by_id["mx-000002"] == ["tags"]

    def test_single_document_corpus(self) -> None:
        record = ConventionRecord(content="always lock", classification=F)
        results = search_bm25([record], "lock")
        assert len(results) == 1
        # idf = ln((1 - 1 + 0.5) / (1 + 0.5) + 1), doc length equals the average
        idf = math.log(0.5 / 1.5 + 1)
        assert results[0].score == pytest.approx(idf * (1 * 2.5) / (1 + 1.5))

    def test_ties_keep_input_order(self) -> None:
        a = ConventionRecord(id="mx-00000a", content="lock alpha", classification=F)
        b = ConventionRecord(id="mx-00000b", content="lock bravo", classification=F)
        results = search_bm25([a, b], "lock")
        assert [r.record.id for r in results] == ["mx-00000a", "mx-00000b"]

    def test_custom_params(self, corpus) -> None:
        no_length_norm = search_bm25(corpus, "lock", BM25Params(k1=1.2, b=0.0))
        assert no_length_norm
        assert DEFAULT_BM25_PARAMS == BM25Params(k1=1.5, b=0.75)
