"""Graph-derived context for the conclusion synthesizer."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from textdigest.models import DocumentSummary, KnowledgeGraph

log = logging.getLogger(__name__)

TOP_ENTITIES = 20
MAX_CONTEXT_FACTS = 50


@dataclass
class GraphContext:
    relevant_facts: list[str] = field(default_factory=list)
    entity_counts: dict[str, int] = field(default_factory=dict)


def _summary_text(summary: DocumentSummary) -> str:
    return " ".join([summary.summary, *summary.key_facts, *summary.insights]).lower()


def retrieve_context(graph: KnowledgeGraph, summaries: list[DocumentSummary]) -> GraphContext:
    """Rank graph nodes by mentions in the summaries and collect the facts naming the top ones."""
    if not graph.nodes:
        return GraphContext()

    texts = [_summary_text(summary) for summary in summaries]
    mentions: Counter[str] = Counter()
    patterns: dict[str, re.Pattern[str]] = {}
    for node in graph.nodes:
        pattern = re.compile(rf"\b{re.escape(node.label.lower())}\b")
        patterns[node.id] = pattern
        count = sum(len(pattern.findall(text)) for text in texts)
        if count:
            mentions[node.id] = count

    labels = {node.id: node.label for node in graph.nodes}
    top = mentions.most_common(TOP_ENTITIES)

    relevant: list[str] = []
    for summary in summaries:
        for fact in summary.key_facts:
            if fact in relevant:
                continue
            lowered = fact.lower()
            if any(patterns[node_id].search(lowered) for node_id, _ in top):
                relevant.append(fact)

    context = GraphContext(
        relevant_facts=relevant[:MAX_CONTEXT_FACTS],
        entity_counts={labels[node_id]: count for node_id, count in top},
    )
    log.info(
        "Graph context: %d top entities, %d relevant facts from %d summaries.",
        len(context.entity_counts),
        len(context.relevant_facts),
        len(summaries),
    )
    return context


def build_cooccurrence_matrix(graph: KnowledgeGraph) -> dict[str, dict[str, float]]:
    """Node id to neighbour weights, reading every edge in both directions."""
    matrix: dict[str, dict[str, float]] = {node.id: {} for node in graph.nodes}
    for edge in graph.edges:
        if edge.source in matrix:
            matrix[edge.source][edge.target] = edge.weight
        if edge.target in matrix:
            matrix[edge.target][edge.source] = edge.weight
    return matrix
