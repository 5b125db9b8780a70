"""Quality gate over a finished digest."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from textdigest.grounding import citation_confidence
from textdigest.models import Digest, EvaluationResult, EvaluationScores, ExtractedDocument

log = logging.getLogger(__name__)


def _summaries(digest: Digest):
    return [summary for items in digest.file_summaries.values() for summary in items]


def source_linked_score(digest: Digest) -> float:
    items = [item for s in _summaries(digest) for item in (*s.key_facts, *s.insights)]
    return citation_confidence(items)


def coverage_score(digest: Digest, documents: Sequence[ExtractedDocument]) -> float:
    if not documents:
        return 0.0
    cited = set(digest.source_index)
    return sum(1 for doc in documents if doc.path in cited) / len(documents)


def confidence_score(digest: Digest) -> float:
    summaries = _summaries(digest)
    if not summaries:
        return 0.0
    return sum(s.confidence for s in summaries) / len(summaries)


def evaluate_digest(digest: Digest, documents: Sequence[ExtractedDocument]) -> EvaluationResult:
    from textdigest import config

    scores = EvaluationScores(
        source_linked=source_linked_score(digest),
        coverage=coverage_score(digest, documents),
        confidence=confidence_score(digest),
    )
    thresholds = EvaluationScores(
        source_linked=config.QUALITY_SOURCE_LINKED,
        coverage=config.QUALITY_COVERAGE,
        confidence=config.QUALITY_CONFIDENCE,
    )

    issues: list[str] = []
    checks = (
        ("Source linking", scores.source_linked, thresholds.source_linked),
        ("File coverage", scores.coverage, thresholds.coverage),
        ("Average confidence", scores.confidence, thresholds.confidence),
    )
    for name, value, minimum in checks:
        if value < minimum:
            issues.append(f"{name} below threshold: {value:.1%} < {minimum:.1%}")

    recommendations: list[str] = []
    if scores.source_linked < 0.95:
        recommendations.append("Tighten the prompt so every fact and insight carries a [source: ...] tag.")
    if scores.coverage < 0.90:
        recommendations.append("Check that every input file produced a summary.")
    if scores.confidence < 0.80:
        recommendations.append("Review provider responses for incomplete source citations.")

    result = EvaluationResult(
        scores=scores,
        thresholds=thresholds,
        passed=not issues,
        issues=issues,
        recommendations=recommendations,
    )
    log.info(
        "Quality evaluation %s: source_linked=%.2f coverage=%.2f confidence=%.2f.",
        "passed" if result.passed else "failed",
        scores.source_linked,
        scores.coverage,
        scores.confidence,
    )
    return result
