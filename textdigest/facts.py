"""Cross-document fact analysis: frequency, rarity and length categories."""

from __future__ import annotations

import logging
import re

import numpy as np

from textdigest.grounding import strip_source_tags
from textdigest.models import AnalyzedFact, DocumentSummary, FactAnalysis

log = logging.getLogger(__name__)

STOPWORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
        "with", "is", "was", "are", "were", "been", "be", "have", "has", "had", "do",
        "does", "did", "will", "would", "could", "should", "may", "might", "must",
        "can", "this", "that", "these", "those",
    }
)

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:['.-][a-z0-9]+)*")


def tokenize(text: str) -> list[str]:
    return [token for token in _TOKEN_PATTERN.findall(text.lower()) if token not in STOPWORDS]


def rarity_scores(facts: list[str]) -> list[float]:
    """Score each fact as ``1 / (1 + mean tf-idf of its terms)``.

    Every fact is one document of the corpus. Term frequency is the raw term
    count and idf is ``1 + ln(N / (1 + df))``, so the score does not grow with
    fact length. A fact with no terms left after stopword removal scores 0.5.
    """
    tokenized = [tokenize(fact) for fact in facts]
    vocabulary: dict[str, int] = {}
    for tokens in tokenized:
        for token in tokens:
            vocabulary.setdefault(token, len(vocabulary))
    if not vocabulary:
        return [0.5] * len(facts)

    counts = np.zeros((len(facts), len(vocabulary)))
    for row, tokens in enumerate(tokenized):
        for token in tokens:
            counts[row, vocabulary[token]] += 1

    df = (counts > 0).sum(axis=0)
    idf = 1.0 + np.log(len(facts) / (1.0 + df))
    tfidf = counts * idf

    scores: list[float] = []
    for row in range(len(facts)):
        present = counts[row] > 0
        if not present.any():
            scores.append(0.5)
            continue
        avg = float(tfidf[row, present].mean())
        scores.append(1.0 / (1.0 + avg) if avg > 0 else 0.5)
    return scores


def analyze_facts(
    summaries: list[DocumentSummary],
    *,
    common_min_frequency: int | None = None,
    unusual_min_rarity: float | None = None,
    long_min_words: int | None = None,
    top_n: int | None = None,
) -> FactAnalysis:
    """Group key facts by their marker-free text and rank them into categories.

    Frequency counts distinct documents, not mentions. A fact lands in at
    most one returned category, assigned in the order common, unusual, long.
    """
    from textdigest import config

    min_common = common_min_frequency or config.COMMON_MIN_FREQUENCY
    min_rarity = unusual_min_rarity if unusual_min_rarity is not None else config.UNUSUAL_MIN_RARITY
    min_words = long_min_words if long_min_words is not None else config.LONG_MIN_WORDS
    limit = top_n or config.FACT_TOP_N

    fact_sources: dict[str, list[str]] = {}
    for summary in summaries:
        for raw in summary.key_facts:
            text = strip_source_tags(raw)
            if not text:
                continue
            sources = fact_sources.setdefault(text, [])
            if summary.document.path not in sources:
                sources.append(summary.document.path)

    texts = list(fact_sources)
    scores = rarity_scores(texts)
    analyzed = [
        AnalyzedFact(
            text=text,
            sources=fact_sources[text],
            frequency=len(fact_sources[text]),
            rarity_score=score,
            word_count=len(text.split()),
            category="common",
        )
        for text, score in zip(texts, scores, strict=True)
    ]

    common = sorted(
        (f for f in analyzed if f.frequency >= min_common),
        key=lambda f: f.frequency,
        reverse=True,
    )[:limit]
    unusual = sorted(
        (f for f in analyzed if f.frequency == 1 and f.rarity_score >= min_rarity),
        key=lambda f: f.rarity_score,
        reverse=True,
    )[:limit]
    placed = {f.text for f in common} | {f.text for f in unusual}
    long = sorted(
        (f for f in analyzed if f.word_count > min_words and f.text not in placed),
        key=lambda f: f.word_count,
        reverse=True,
    )

    result = FactAnalysis(
        common=[f.model_copy(update={"category": "common"}) for f in common],
        unusual=[f.model_copy(update={"category": "unusual"}) for f in unusual],
        long=[f.model_copy(update={"category": "long"}) for f in long],
    )
    log.info(
        "Fact analysis: %d unique facts, %d common, %d unusual, %d long.",
        len(analyzed),
        len(result.common),
        len(result.unusual),
        len(result.long),
    )
    return result


def get_fact_statistics(facts: FactAnalysis) -> dict[str, int | float]:
    unusual = facts.unusual
    return {
        "total_unique_facts": len({f.text for f in facts.all_facts()}),
        "most_common_fact_count": facts.common[0].frequency if facts.common else 0,
        "average_rarity_score": round(sum(f.rarity_score for f in unusual) / len(unusual), 2) if unusual else 0.0,
        "longest_fact_words": facts.long[0].word_count if facts.long else 0,
    }


def format_facts_for_digest(facts: list[AnalyzedFact]) -> list[str]:
    lines: list[str] = []
    for fact in facts:
        shown = ", ".join(fact.sources[:3])
        more = f" (+{len(fact.sources) - 3} more)" if len(fact.sources) > 3 else ""
        lines.append(f"- {fact.text}\n  - **Frequency**: {fact.frequency} | **Sources**: {shown}{more}")
    return lines
