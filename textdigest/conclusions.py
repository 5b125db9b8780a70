"""Best-effort strategic conclusions over the whole digest."""

from __future__ import annotations

import logging

from textdigest.grounding import has_source_tag
from textdigest.llm_client import ProviderSlot
from textdigest.models import Conclusions, ConclusionsResponse, DocumentSummary, FactAnalysis
from textdigest.prompts import SYSTEM_PROMPT, build_conclusions_prompt
from textdigest.summarizer import SummarizationGateway

log = logging.getLogger(__name__)

MAX_ITEMS = 5


def conclusions_confidence(evidence: list[str]) -> float:
    """Share of evidence lines that keep a source marker; 0.5 when no evidence was given."""
    if not evidence:
        return 0.5
    return sum(1 for item in evidence if has_source_tag(item)) / len(evidence)


async def generate_conclusions(
    summaries: list[DocumentSummary],
    facts: FactAnalysis,
    gateway: SummarizationGateway,
    *,
    context_facts: list[str] | None = None,
) -> Conclusions:
    """One structured call through the provider chain. Never raises."""
    prompt = build_conclusions_prompt(summaries, facts, context_facts)

    async def attempt(slot: ProviderSlot) -> Conclusions:
        from textdigest.config import CONCLUSIONS_TEMPERATURE

        log.info("Generating conclusions with %s (%s).", slot.name, slot.client.model)
        payload, _ = await slot.client.generate_json(
            prompt,
            system=SYSTEM_PROMPT,
            temperature=CONCLUSIONS_TEMPERATURE,
        )
        parsed = ConclusionsResponse.model_validate(payload)
        evidence = parsed.evidence[:MAX_ITEMS]
        return Conclusions(
            conclusions=parsed.conclusions[:MAX_ITEMS],
            recommendations=parsed.recommendations[:MAX_ITEMS],
            evidence=evidence,
            confidence=conclusions_confidence(evidence),
        )

    try:
        result = await gateway.call_with_fallback("Conclusions", attempt)
    except Exception as exc:
        log.warning("Conclusions unavailable, continuing without them: %s", exc)
        return Conclusions.empty()

    log.info(
        "Generated %d conclusions and %d recommendations (confidence %.2f).",
        len(result.conclusions),
        len(result.recommendations),
        result.confidence,
    )
    return result
