"""Knowledge graph construction from entity co-occurrence."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence

from textdigest.entities import TaggedEntities, tag_entities
from textdigest.models import ExtractedDocument, GraphEdge, GraphNode, KnowledgeGraph, NodeType

log = logging.getLogger(__name__)

Tagger = Callable[[str], TaggedEntities]

CONCEPTS_PER_DOCUMENT = 10
MIN_CONCEPT_LENGTH = 4


def estimate_tokens(documents: Sequence[ExtractedDocument]) -> int:
    from textdigest.config import CHARS_PER_TOKEN

    return sum(len(doc.content) for doc in documents) // CHARS_PER_TOKEN


def should_build_graph(documents: Sequence[ExtractedDocument]) -> bool:
    """True when the collection is large enough for graph analysis."""
    from textdigest import config

    return len(documents) > config.GRAPH_MIN_DOCUMENTS or estimate_tokens(documents) > config.GRAPH_MIN_TOKENS


def _merge_key(label: str) -> str:
    return label.strip().lower()


class KnowledgeGraphBuilder:
    """Accumulates nodes and same-type co-occurrence counts document by document."""

    def __init__(self, tagger: Tagger | None = None) -> None:
        self.tagger = tagger or tag_entities
        self._nodes: dict[str, GraphNode] = {}
        self._cooccurrence: Counter[tuple[str, str]] = Counter()
        self._documents = 0

    def add_node(self, label: str, node_type: NodeType, source: str, kind: str | None = None) -> GraphNode:
        key = _merge_key(label)
        node = self._nodes.get(key)
        if node is None:
            properties = {"kind": kind} if kind else {}
            node = GraphNode(
                id=f"node_{len(self._nodes)}",
                type=node_type,
                label=label.strip(),
                sources=[source],
                properties=properties,
            )
            self._nodes[key] = node
        elif source not in node.sources:
            node.sources.append(source)
        return node

    def _count_pairs(self, labels: list[str]) -> None:
        keys = list(dict.fromkeys(_merge_key(label) for label in labels))
        for first in keys:
            for second in keys:
                if first != second:
                    self._cooccurrence[(first, second)] += 1

    def add_document(self, document: ExtractedDocument) -> None:
        tagged = self.tagger(document.content)
        groups = {
            "person": tagged.people,
            "place": tagged.places,
            "organization": tagged.organizations,
        }
        for kind, labels in groups.items():
            for label in labels:
                self.add_node(label, "entity", document.path, kind=kind)
            self._count_pairs(labels)

        concepts = [noun for noun in tagged.nouns[:CONCEPTS_PER_DOCUMENT] if len(noun) >= MIN_CONCEPT_LENGTH]
        for noun in concepts:
            self.add_node(noun, "concept", document.path)
        self._documents += 1

    def build(self) -> KnowledgeGraph:
        total = max(self._documents, 1)
        edges = [
            GraphEdge(
                source=self._nodes[first].id,
                target=self._nodes[second].id,
                weight=min(count / total, 1.0),
            )
            for (first, second), count in self._cooccurrence.items()
        ]
        return KnowledgeGraph(nodes=list(self._nodes.values()), edges=edges)


def build_knowledge_graph(
    documents: Sequence[ExtractedDocument],
    tagger: Tagger | None = None,
) -> KnowledgeGraph:
    """Extract entities and concepts from every document and link co-occurring entities."""
    builder = KnowledgeGraphBuilder(tagger)
    for document in documents:
        builder.add_document(document)
    graph = builder.build()
    log.info(
        "Knowledge graph built from %d documents: %d nodes, %d edges.",
        len(documents),
        len(graph.nodes),
        len(graph.edges),
    )
    return graph


def get_graph_statistics(graph: KnowledgeGraph) -> dict[str, int | float]:
    entity_nodes = [node for node in graph.nodes if node.type == "entity"]
    concept_nodes = [node for node in graph.nodes if node.type == "concept"]
    node_count = len(graph.nodes)
    # Each undirected link is stored once per direction.
    density = len(graph.edges) / (node_count * (node_count - 1)) if node_count > 1 else 0.0
    return {
        "total_nodes": node_count,
        "total_edges": len(graph.edges),
        "entity_nodes": len(entity_nodes),
        "concept_nodes": len(concept_nodes),
        "clusters": len(graph.clusters),
        "density": round(density, 4),
    }
