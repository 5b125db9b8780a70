"""End-to-end digest pipeline: batch summaries, fact analysis and the scale-triggered graph stage."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from textdigest.batching import create_batches
from textdigest.clustering import cluster_entities
from textdigest.conclusions import generate_conclusions
from textdigest.context import retrieve_context
from textdigest.digest import DigestRun, generate_digest, write_digest
from textdigest.entities import TaggerUnavailableError
from textdigest.evaluator import evaluate_digest
from textdigest.facts import analyze_facts
from textdigest.graph import build_knowledge_graph, should_build_graph
from textdigest.ingest import discover_files, extract_contents
from textdigest.llm_client import LLMServiceError
from textdigest.models import Digest, EvaluationResult, ExtractedDocument
from textdigest.scheduler import process_batches_in_parallel
from textdigest.summarizer import SummarizationGateway

log = logging.getLogger(__name__)


class NoInputError(ValueError):
    """Raised when there are no documents to digest."""


class PipelineStageError(RuntimeError):
    """Fatal abort of a pipeline stage, carrying the underlying provider message."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"Stage '{stage}' failed: {message}")


@dataclass
class DigestResult:
    digest: Digest
    evaluation: EvaluationResult
    output_path: Path
    documents: list[ExtractedDocument]


async def run_pipeline(
    documents: Sequence[ExtractedDocument],
    *,
    gateway: SummarizationGateway | None = None,
    batch_size: int | None = None,
    max_concurrent: int | None = None,
    with_conclusions: bool = True,
) -> DigestRun:
    if not documents:
        raise NoInputError("No documents to digest.")

    gateway = gateway or SummarizationGateway()
    batches = create_batches(list(documents), batch_size)

    log.info("Stage summarization: %d documents in %d batches.", len(documents), len(batches))
    try:
        summaries = await process_batches_in_parallel(batches, gateway.summarize_batch, max_concurrent)
    except LLMServiceError as exc:
        raise PipelineStageError("summarization", str(exc)) from exc

    log.info("Stage fact analysis over %d summaries.", len(summaries))
    facts = analyze_facts(summaries)
    run = DigestRun(summaries=summaries, fact_analysis=facts)

    context_facts: list[str] | None = None
    if should_build_graph(documents):
        log.info("Graph stage enabled for %d documents.", len(documents))
        try:
            graph = build_knowledge_graph(documents)
        except TaggerUnavailableError as exc:
            raise PipelineStageError("knowledge graph", str(exc)) from exc
        graph.clusters = cluster_entities(graph.nodes)
        run.knowledge_graph = graph
        run.graph_built = True
        context_facts = retrieve_context(graph, summaries).relevant_facts
    else:
        log.info("Graph stage skipped: collection below the size threshold.")

    if with_conclusions:
        log.info("Stage conclusions.")
        run.conclusions = await generate_conclusions(summaries, facts, gateway, context_facts=context_facts)
    return run


def run_digest(
    folder: str | Path,
    *,
    days: int | None = None,
    output: str | Path | None = None,
    json_output: str | Path | None = None,
    batch_size: int | None = None,
    max_concurrent: int | None = None,
    with_conclusions: bool = True,
) -> DigestResult:
    """Discover, summarize, analyze and write the digest for ``folder``."""
    from textdigest.config import DEFAULT_OUTPUT_PATH

    started = time.perf_counter()
    documents = extract_contents(discover_files(folder, days))
    if not documents:
        raise NoInputError(f"No readable .txt, .md or .log files found in {folder}.")

    run = asyncio.run(
        run_pipeline(
            documents,
            batch_size=batch_size,
            max_concurrent=max_concurrent,
            with_conclusions=with_conclusions,
        )
    )
    digest = generate_digest(run, time.perf_counter() - started)
    output_path = write_digest(digest, output or DEFAULT_OUTPUT_PATH, json_output)
    evaluation = evaluate_digest(digest, documents)
    return DigestResult(digest=digest, evaluation=evaluation, output_path=output_path, documents=documents)
