"""BM25 relevance ranking over expertise records.

Each record is one document built from its type-specific text fields plus
its tags. Scores are relative to the record set passed in, so the same
record can score differently against different corpora.
"""
from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from tilth.config.constants import DEFAULT_BM25_B, DEFAULT_BM25_K1
from tilth.expertise.models import ExpertiseRecord

_PUNCTUATION_RE = re.compile(r"[^\w\s-]")

# Text fields searched per record kind, in matched-field order
_SEARCH_FIELDS: dict[str, tuple[str, ...]] = {
    "convention": ("content",),
    "pattern": ("name", "description", "files"),
    "failure": ("description", "resolution"),
    "decision": ("title", "rationale"),
    "reference": ("name", "description", "files"),
    "guide": ("name", "description"),
}


@dataclass(frozen=True)
class BM25Params:
    k1: float = DEFAULT_BM25_K1  # term-frequency saturation
    b: float = DEFAULT_BM25_B  # length normalization, 0 = none, 1 = full


DEFAULT_BM25_PARAMS = BM25Params()


@dataclass
class BM25Result:
    record: ExpertiseRecord
    score: float
    matched_fields: list[str] = field(default_factory=list)


def tokenize(text: str) -> list[str]:
    """Lowercase, turn punctuation other than hyphens into spaces, split on whitespace."""
    return _PUNCTUATION_RE.sub(" ", text.lower()).split()


def extract_record_text(record: ExpertiseRecord) -> tuple[str, dict[str, str]]:
    """Return ``(all_text, field_texts)`` for *record*.

    List fields are space-joined; blank fields are left out of both.
    """
    field_texts: dict[str, str] = {}
    names = _SEARCH_FIELDS[record.type.value] + ("tags",)
    for name in names:
        value = getattr(record, name, None)
        if isinstance(value, str):
            text = value
        elif isinstance(value, list):
            text = " ".join(item for item in value if isinstance(item, str))
        else:
            continue
        if text.strip():
            field_texts[name] = text
    return " ".join(field_texts.values()), field_texts


def _inverse_document_frequency(corpus: Sequence[list[str]]) -> dict[str, float]:
    doc_count = len(corpus)
    doc_freq: Counter[str] = Counter()
    for tokens in corpus:
        doc_freq.update(set(tokens))
    return {
        term: math.log((doc_count - df + 0.5) / (df + 0.5) + 1)
        for term, df in doc_freq.items()
    }


def _score(
    query_tokens: list[str],
    doc_tokens: list[str],
    avg_doc_length: float,
    idf: dict[str, float],
    params: BM25Params,
) -> float:
    tf = Counter(doc_tokens)
    norm = params.k1 * (1 - params.b + params.b * (len(doc_tokens) / avg_doc_length))
    score = 0.0
    for term in query_tokens:
        freq = tf.get(term, 0)
        if not freq:
            continue
        score += idf.get(term, 0.0) * (freq * (params.k1 + 1)) / (freq + norm)
    return score


def search_bm25(
    records: Sequence[ExpertiseRecord],
    query: str,
    params: BM25Params = DEFAULT_BM25_PARAMS,
) -> list[BM25Result]:
    """Rank *records* against *query*, best first.

    Records scoring zero are left out. Ties keep their input order.
    """
    if not records or not query.strip():
        return []
    query_tokens = tokenize(query)
    if not query_tokens:
        return []

    docs = []
    for record in records:
        all_text, field_texts = extract_record_text(record)
        docs.append((record, tokenize(all_text), field_texts))

    total_length = sum(len(tokens) for _, tokens, _ in docs)
    # Every document empty: no term can match, any positive average will do
    avg_doc_length = total_length / len(docs) or 1.0
    idf = _inverse_document_frequency([tokens for _, tokens, _ in docs])

    query_set = set(query_tokens)
    results: list[BM25Result] = []
    for record, tokens, field_texts in docs:
        score = _score(query_tokens, tokens, avg_doc_length, idf, params)
        if score <= 0:
            continue
        matched = [
            name for name, text in field_texts.items()
            if query_set.intersection(tokenize(text))
        ]
        results.append(BM25Result(record=record, score=score, matched_fields=matched))

    results.sort(key=lambda r: r.score, reverse=True)
    return results
