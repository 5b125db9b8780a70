import json
from datetime import UTC, datetime

from textdigest.digest import DigestRun, format_bytes, generate_digest, render_markdown, write_digest
from textdigest.evaluator import evaluate_digest
from textdigest.models import (
    AnalyzedFact,
    Conclusions,
    DocumentSummary,
    EntityCluster,
    ExtractedDocument,
    FactAnalysis,
    GraphNode,
    KnowledgeGraph,
)


def _doc(path: str, doc_type: str, day: int) -> ExtractedDocument:
    return ExtractedDocument(
        path=path,
        content="",
        size=1024,
        modified_at=datetime(2026, 1, day, tzinfo=UTC),
        doc_type=doc_type,
    )


def _summary(doc: ExtractedDocument, insights: list[str], facts: list[str], confidence: float) -> DocumentSummary:
    return DocumentSummary(
        document=doc,
        summary=f"About {doc.path}",
        key_facts=facts,
        insights=insights,
        statistics={"lines": 2},
        model="gemini-2.0-flash-exp",
        confidence=confidence,
    )


def _run(**kwargs) -> DigestRun:
    summaries = [
        _summary(_doc("z.md", "md", 3), ["Shared insight [source: z.md]"], ["Z fact [source: z.md:1]"], 1.0),
        _summary(_doc("a.txt", "txt", 1), ["Shared insight [source: z.md]", "A insight"], ["A fact"], 0.0),
        _summary(_doc("logs/b.log", "log", 2), ["B insight [source: logs/b.log]"], [], 1.0),
    ]
    facts = FactAnalysis(
        common=[
            AnalyzedFact(
                text="Acme ships product X",
                sources=["a.txt", "z.md", "logs/b.log"],
                frequency=3,
                rarity_score=0.3,
                word_count=4,
                category="common",
            )
        ]
    )
    return DigestRun(summaries=summaries, fact_analysis=facts, **kwargs)


def test_digest_groups_summaries_and_computes_statistics() -> None:
    digest = generate_digest(_run(), processing_time_s=12.346)

    assert digest.executive_summary == ["Shared insight [source: z.md]", "A insight", "B insight [source: logs/b.log]"]
    assert [s.document.path for s in digest.file_summaries["txt"]] == ["a.txt"]
    assert digest.statistics.total_files == 3
    assert digest.statistics.total_size == 3072
    assert digest.statistics.file_types == {"txt": 1, "md": 1, "log": 1}
    assert digest.statistics.date_range[0].day == 1
    assert digest.statistics.date_range[1].day == 3
    assert digest.source_index == ["a.txt", "logs/b.log", "z.md"]
    assert digest.model == "gemini-2.0-flash-exp"
    assert digest.processing_time_s == 12.35


def test_markdown_has_sections_and_optional_parts() -> None:
    plain = render_markdown(generate_digest(_run(), 1.0))
    assert "## Executive Summary" in plain
    assert "## Fact Analysis" in plain
    assert "- Acme ships product X" in plain
    assert "### Markdown Files (.md)" in plain
    assert "- [logs/b.log](logs/b.log)" in plain
    assert "## Conclusions" not in plain
    assert "## Knowledge Graph" not in plain

    node = GraphNode(id="node_0", type="entity", label="Acme Corp", sources=["a.txt"])
    graph = KnowledgeGraph(
        nodes=[node],
        clusters=[EntityCluster(id="cluster_0", label="All Entities", entities=[node], coherence=1.0)],
    )
    conclusions = Conclusions(conclusions=["c1"], recommendations=["r1"], evidence=["e [source: a.txt]"], confidence=1.0)
    full = render_markdown(generate_digest(_run(knowledge_graph=graph, conclusions=conclusions), 1.0))

    assert "### High-Level Conclusions" in full
    assert "1. c1" in full
    assert "*Confidence: 100.0%*" in full
    assert "## Knowledge Graph" in full
    assert "- **All Entities** (coherence 1.00): Acme Corp" in full


def test_empty_conclusions_are_visible_as_placeholder() -> None:
    markdown = render_markdown(generate_digest(_run(conclusions=Conclusions.empty()), 1.0))
    assert "No conclusions could be generated for this run." in markdown
    assert "*Confidence: 0.0%*" in markdown


def test_write_digest_outputs_markdown_and_json(tmp_path) -> None:
    digest = generate_digest(_run(), 2.0)
    md_path = write_digest(digest, tmp_path / "out" / "digest.md", tmp_path / "out" / "digest.json")

    assert md_path.read_text(encoding="utf-8").startswith("# Text File Digest")
    parsed = json.loads((tmp_path / "out" / "digest.json").read_text(encoding="utf-8"))
    assert parsed["statistics"]["total_files"] == 3


def test_format_bytes() -> None:
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.0 KB"
    assert format_bytes(5 * 1024 * 1024) == "5.0 MB"


def test_evaluation_scores_and_thresholds() -> None:
    run = _run()
    digest = generate_digest(run, 1.0)
    documents = [s.document for s in run.summaries] + [_doc("missing.txt", "txt", 1)]

    result = evaluate_digest(digest, documents)

    # 4 of 6 facts/insights cited, 3 of 4 documents covered, mean confidence 2/3.
    assert result.scores.source_linked == 4 / 6
    assert result.scores.coverage == 0.75
    assert abs(result.scores.confidence - 2 / 3) < 1e-9
    assert result.passed is False
    assert len(result.issues) == 3
    assert result.recommendations


def test_evaluation_passes_when_scores_meet_thresholds(monkeypatch) -> None:
    from textdigest import config

    monkeypatch.setattr(config, "QUALITY_SOURCE_LINKED", 0.5)
    monkeypatch.setattr(config, "QUALITY_COVERAGE", 0.5)
    monkeypatch.setattr(config, "QUALITY_CONFIDENCE", 0.5)
    run = _run()

    result = evaluate_digest(generate_digest(run, 1.0), [s.document for s in run.summaries])

    assert result.passed is True
    assert result.issues == []
