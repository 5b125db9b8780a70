from datetime import UTC, datetime

from textdigest.context import build_cooccurrence_matrix, retrieve_context
from textdigest.models import DocumentSummary, ExtractedDocument, GraphEdge, GraphNode, KnowledgeGraph


def _summary(path: str, summary: str, facts: list[str]) -> DocumentSummary:
    doc = ExtractedDocument(
        path=path,
        content="",
        size=0,
        modified_at=datetime(2026, 1, 1, tzinfo=UTC),
        doc_type="txt",
    )
    return DocumentSummary(document=doc, summary=summary, key_facts=facts, insights=[], model="m", confidence=1.0)


def _graph() -> KnowledgeGraph:
    return KnowledgeGraph(
        nodes=[
            GraphNode(id="node_0", type="entity", label="Acme"),
            GraphNode(id="node_1", type="entity", label="Berlin"),
            GraphNode(id="node_2", type="entity", label="Zed"),
        ],
        edges=[GraphEdge(source="node_0", target="node_1", weight=0.5)],
    )


def test_entities_are_ranked_by_whole_word_mentions() -> None:
    summaries = [
        _summary("a.txt", "Acme expanded.", ["Acme ships product X [source: a.txt:4]", "Acmeville is unrelated"]),
        _summary("b.txt", "Quiet week.", ["acme opened an office in Berlin [source: b.txt:2]"]),
    ]

    context = retrieve_context(_graph(), summaries)

    assert context.entity_counts == {"Acme": 3, "Berlin": 1}
    assert context.relevant_facts == [
        "Acme ships product X [source: a.txt:4]",
        "acme opened an office in Berlin [source: b.txt:2]",
    ]


def test_duplicate_facts_are_kept_once() -> None:
    fact = "Acme ships product X [source: a.txt:4]"
    context = retrieve_context(_graph(), [_summary("a.txt", "", [fact]), _summary("b.txt", "", [fact])])
    assert context.relevant_facts == [fact]


def test_empty_graph_gives_empty_context() -> None:
    context = retrieve_context(KnowledgeGraph(), [_summary("a.txt", "Acme", ["Acme"])])
    assert context.relevant_facts == []
    assert context.entity_counts == {}


def test_cooccurrence_matrix_reads_edges_in_both_directions() -> None:
    matrix = build_cooccurrence_matrix(_graph())
    assert matrix["node_0"] == {"node_1": 0.5}
    assert matrix["node_1"] == {"node_0": 0.5}
    assert matrix["node_2"] == {}
