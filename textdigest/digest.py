"""Digest assembly and Markdown/JSON output."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from textdigest.clustering import top_entities_per_cluster
from textdigest.facts import format_facts_for_digest, get_fact_statistics
from textdigest.graph import get_graph_statistics
from textdigest.models import (
    Conclusions,
    Digest,
    DigestStatistics,
    DocumentSummary,
    FactAnalysis,
    KnowledgeGraph,
)

log = logging.getLogger(__name__)

EXECUTIVE_SUMMARY_SIZE = 10
TYPE_HEADINGS = {"txt": "Text Files (.txt)", "md": "Markdown Files (.md)", "log": "Log Files (.log)"}


@dataclass
class DigestRun:
    """Everything one pipeline run produced, before digest assembly."""

    summaries: list[DocumentSummary]
    fact_analysis: FactAnalysis
    knowledge_graph: KnowledgeGraph | None = None
    conclusions: Conclusions | None = None
    graph_built: bool = False


def _top_insights(summaries: list[DocumentSummary], count: int) -> list[str]:
    unique = list(dict.fromkeys(insight for s in summaries for insight in s.insights))
    return unique[:count]


def generate_digest(run: DigestRun, processing_time_s: float) -> Digest:
    summaries = run.summaries
    grouped: dict[str, list[DocumentSummary]] = {doc_type: [] for doc_type in TYPE_HEADINGS}
    for summary in summaries:
        grouped.setdefault(summary.document.doc_type, []).append(summary)

    dates = [s.document.modified_at for s in summaries]
    statistics = DigestStatistics(
        total_files=len(summaries),
        total_size=sum(s.document.size for s in summaries),
        date_range=(min(dates), max(dates)) if dates else None,
        file_types={doc_type: len(items) for doc_type, items in grouped.items()},
    )
    digest = Digest(
        executive_summary=_top_insights(summaries, EXECUTIVE_SUMMARY_SIZE),
        file_summaries=grouped,
        statistics=statistics,
        source_index=sorted({s.document.path for s in summaries}),
        generated_at=datetime.now(UTC),
        processing_time_s=round(processing_time_s, 2),
        model=summaries[0].model if summaries else "unknown",
        fact_analysis=run.fact_analysis,
        knowledge_graph=run.knowledge_graph,
        conclusions=run.conclusions,
    )
    log.info(
        "Digest assembled: %d files, %d insights, graph=%s, conclusions=%s.",
        statistics.total_files,
        len(digest.executive_summary),
        digest.knowledge_graph is not None,
        digest.conclusions is not None,
    )
    return digest


def format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _format_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def _render_file_summary(summary: DocumentSummary) -> list[str]:
    doc = summary.document
    lines = [
        f"#### [{doc.path}]({doc.path})",
        f"**Modified**: {_format_date(doc.modified_at)} | **Size**: {format_bytes(doc.size)}",
        "",
        summary.summary,
        "",
    ]
    if summary.key_facts:
        lines.append("**Key Facts**:")
        lines.extend(f"- {fact}" for fact in summary.key_facts)
        lines.append("")
    if summary.insights:
        lines.append("**Insights**:")
        lines.extend(f"- {insight}" for insight in summary.insights)
        lines.append("")
    if summary.statistics:
        lines.append(f"**Statistics**: {json.dumps(summary.statistics, ensure_ascii=True)}")
        lines.append("")
    return lines


def _render_conclusions(conclusions: Conclusions) -> list[str]:
    md = ["## Conclusions & Recommendations", ""]
    if conclusions.conclusions:
        md += ["### High-Level Conclusions", ""]
        md += [f"{i}. {item}" for i, item in enumerate(conclusions.conclusions, start=1)]
        md.append("")
    if conclusions.recommendations:
        md += ["### Actionable Recommendations", ""]
        md += [f"{i}. {item}" for i, item in enumerate(conclusions.recommendations, start=1)]
        md.append("")
    if conclusions.evidence:
        md += ["### Supporting Evidence", ""]
        md += [f"- {item}" for item in conclusions.evidence[:5]]
        md.append("")
    if not (conclusions.conclusions or conclusions.recommendations):
        md += ["No conclusions could be generated for this run.", ""]
    md += [f"*Confidence: {conclusions.confidence * 100:.1f}%*", "", "---", ""]
    return md


def _render_fact_analysis(facts: FactAnalysis) -> list[str]:
    md = ["## Fact Analysis", ""]
    sections = (
        ("Most Common Facts", "Facts that appear across multiple files:", facts.common[:5]),
        ("Most Unusual Facts", "Rare but significant findings:", facts.unusual[:5]),
        ("Long Facts", "Detailed findings requiring attention:", facts.long[:3]),
    )
    for title, blurb, items in sections:
        if items:
            md += [f"### {title}", "", blurb, ""]
            md += format_facts_for_digest(items)
            md.append("")
    md += ["### Fact Statistics", ""]
    for key, value in get_fact_statistics(facts).items():
        md.append(f"- **{key.replace('_', ' ').capitalize()}**: {value}")
    md += ["", "---", ""]
    return md


def _render_graph(graph: KnowledgeGraph) -> list[str]:
    md = ["## Knowledge Graph", ""]
    for key, value in get_graph_statistics(graph).items():
        md.append(f"- **{key.replace('_', ' ').capitalize()}**: {value}")
    md.append("")
    if graph.clusters:
        md += ["### Entity Clusters", ""]
        ranked = top_entities_per_cluster(graph.clusters)
        for cluster, (label, members) in zip(graph.clusters, ranked, strict=True):
            md.append(f"- **{label}** (coherence {cluster.coherence:.2f}): {', '.join(members) or 'none'}")
        md.append("")
    md += ["---", ""]
    return md


def render_markdown(digest: Digest) -> str:
    stats = digest.statistics
    md = [
        "# Text File Digest",
        "",
        f"**Generated**: {digest.generated_at.isoformat()}",
        f"**Processing Time**: {digest.processing_time_s:.1f}s",
        f"**Model**: {digest.model}",
        "",
        "---",
        "",
        "## Executive Summary",
        "",
        f"Top insights from {stats.total_files} files:",
        "",
    ]
    md += [f"{i}. {insight}" for i, insight in enumerate(digest.executive_summary, start=1)]
    md += ["", "---", ""]

    if digest.conclusions is not None:
        md += _render_conclusions(digest.conclusions)
    md += _render_fact_analysis(digest.fact_analysis)
    if digest.knowledge_graph is not None:
        md += _render_graph(digest.knowledge_graph)

    md += [
        "## File Statistics",
        "",
        f"- **Total Files**: {stats.total_files}",
        f"- **Total Size**: {format_bytes(stats.total_size)}",
    ]
    if stats.date_range:
        md.append(f"- **Date Range**: {_format_date(stats.date_range[0])} to {_format_date(stats.date_range[1])}")
    md.append(f"- **File Types**: {', '.join(f'{k}: {v}' for k, v in stats.file_types.items())}")
    md += ["", "---", "", "## File Summaries", ""]

    for doc_type, heading in TYPE_HEADINGS.items():
        items = digest.file_summaries.get(doc_type, [])
        if items:
            md += [f"### {heading}", ""]
            for summary in items:
                md += _render_file_summary(summary)

    md += ["---", "", "## Source Index", ""]
    md += [f"- [{path}]({path})" for path in digest.source_index]
    md.append("")
    return "\n".join(md)


def write_digest(digest: Digest, path: str | Path, json_path: str | Path | None = None) -> Path:
    out_path = Path(path).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    markdown = render_markdown(digest)
    out_path.write_text(markdown, encoding="utf-8")
    log.info("Digest written to %s (%d chars).", out_path, len(markdown))

    if json_path:
        json_out = Path(json_path).expanduser().resolve()
        json_out.parent.mkdir(parents=True, exist_ok=True)
        json_out.write_text(
            json.dumps(digest.model_dump(mode="json"), indent=2, ensure_ascii=True),
            encoding="utf-8",
        )
        log.info("Digest JSON written to %s.", json_out)
    return out_path
