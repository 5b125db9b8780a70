"""Summarization gateway: one structured request per batch with provider failover."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from textdigest.grounding import citation_confidence
from textdigest.llm_client import (
    LLMResponse,
    LLMServiceError,
    NoProvidersConfiguredError,
    ProviderChain,
    ProviderSlot,
    get_provider_chain,
)
from textdigest.models import BatchResponse, DocumentSummary, FileResult, WorkBatch
from textdigest.prompts import SYSTEM_PROMPT, build_batch_prompt

log = logging.getLogger(__name__)

T = TypeVar("T")


class ProvidersExhaustedError(LLMServiceError):
    """Raised when every available provider failed for one request."""

    def __init__(self, label: str, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"{label} failed on all providers: {'; '.join(errors)}")


class BatchSummarizationError(ProvidersExhaustedError):
    """Raised when a batch failed on every available provider."""

    def __init__(self, batch_id: str, errors: list[str]) -> None:
        self.batch_id = batch_id
        super().__init__(f"Batch {batch_id}", errors)


def compute_confidence(result: FileResult) -> float:
    return citation_confidence([*result.key_facts, *result.insights])


def parse_batch_response(
    payload: dict,
    batch: WorkBatch,
    response: LLMResponse,
) -> list[DocumentSummary]:
    parsed = BatchResponse.model_validate(payload)
    if len(parsed.summaries) != len(batch.documents):
        raise ValueError(
            f"Expected {len(batch.documents)} summaries for batch {batch.batch_id}, "
            f"got {len(parsed.summaries)}."
        )
    return [
        DocumentSummary(
            document=doc,
            summary=result.summary,
            key_facts=result.key_facts,
            insights=result.insights,
            statistics=result.statistics,
            sources=result.sources,
            model=response.model,
            tokens=response.total_tokens,
            confidence=compute_confidence(result),
        )
        for doc, result in zip(batch.documents, parsed.summaries, strict=True)
    ]


class SummarizationGateway:
    """Invokes the primary provider and, on any failure, the fallback with the same payload."""

    def __init__(
        self,
        chain: ProviderChain | None = None,
        *,
        max_chars_per_document: int | None = None,
    ) -> None:
        from textdigest.config import MAX_CHARS_PER_DOCUMENT

        self.chain = chain or get_provider_chain()
        self.max_chars_per_document = max_chars_per_document or MAX_CHARS_PER_DOCUMENT

    async def call_with_fallback(
        self,
        label: str,
        attempt: Callable[[ProviderSlot], Awaitable[T]],
    ) -> T:
        slots = self.chain.available_slots()
        if not slots:
            reasons = "; ".join(
                f"{slot.name}: {slot.reason}" for slot in (self.chain.primary, self.chain.fallback)
            )
            raise NoProvidersConfiguredError(f"No LLM provider is configured ({reasons}).")

        errors: list[str] = []
        for position, slot in enumerate(slots):
            try:
                return await attempt(slot)
            except Exception as exc:
                errors.append(f"{slot.name}: {exc}")
                if position < len(slots) - 1:
                    log.warning(
                        "%s failed on %s (%s); falling back to %s.",
                        label,
                        slot.name,
                        exc,
                        slots[position + 1].name,
                    )
                else:
                    log.error("%s failed on %s (%s); no provider left.", label, slot.name, exc)
        raise ProvidersExhaustedError(label, errors)

    async def summarize_batch(self, batch: WorkBatch) -> list[DocumentSummary]:
        """Return exactly one summary per document in ``batch``, in order, or raise."""
        prompt = build_batch_prompt(batch, self.max_chars_per_document)

        async def attempt(slot: ProviderSlot) -> list[DocumentSummary]:
            from textdigest.config import SUMMARY_TEMPERATURE

            log.info(
                "Summarizing batch %s with %s (%s), %d documents.",
                batch.batch_id,
                slot.name,
                slot.client.model,
                len(batch.documents),
            )
            started = time.perf_counter()
            payload, response = await slot.client.generate_json(
                prompt,
                system=SYSTEM_PROMPT,
                temperature=SUMMARY_TEMPERATURE,
            )
            summaries = parse_batch_response(payload, batch, response)
            log.info(
                "Batch %s summarized by %s: %d summaries, %d tokens, %.0f ms.",
                batch.batch_id,
                slot.name,
                len(summaries),
                response.total_tokens,
                (time.perf_counter() - started) * 1000,
            )
            return summaries

        try:
            return await self.call_with_fallback(f"Batch {batch.batch_id}", attempt)
        except ProvidersExhaustedError as exc:
            raise BatchSummarizationError(batch.batch_id, exc.errors) from exc
