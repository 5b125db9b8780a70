"""Shared data models for the digest pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

DocumentType = Literal["txt", "md", "log"]
FactCategory = Literal["common", "unusual", "long"]
NodeType = Literal["entity", "concept", "fact"]


class DiscoveredFile(BaseModel):
    path: str = Field(..., description="POSIX path relative to the scanned folder.")
    absolute_path: str
    size: int = Field(..., ge=0)
    modified_at: datetime
    doc_type: DocumentType


class ExtractedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    size: int = Field(..., ge=0, description="File size in bytes.")
    modified_at: datetime
    doc_type: DocumentType
    line_count: int = 0
    word_count: int = 0
    encoding: str = "utf-8"


class WorkBatch(BaseModel):
    batch_id: str
    documents: list[ExtractedDocument]
    total_size: int
    created_at: datetime


class DocumentSummary(BaseModel):
    document: ExtractedDocument
    summary: str
    key_facts: list[str]
    insights: list[str]
    statistics: dict[str, Any] = Field(default_factory=dict)
    sources: list[str] = Field(default_factory=list)
    model: str
    tokens: int = 0
    confidence: float = Field(..., ge=0.0, le=1.0)


class AnalyzedFact(BaseModel):
    text: str
    sources: list[str]
    frequency: int
    rarity_score: float
    word_count: int
    category: FactCategory


class FactAnalysis(BaseModel):
    common: list[AnalyzedFact] = Field(default_factory=list)
    unusual: list[AnalyzedFact] = Field(default_factory=list)
    long: list[AnalyzedFact] = Field(default_factory=list)

    def all_facts(self) -> list[AnalyzedFact]:
        return [*self.common, *self.unusual, *self.long]


class GraphNode(BaseModel):
    id: str
    type: NodeType
    label: str
    sources: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)


class GraphEdge(BaseModel):
    source: str = Field(..., description="Source node id.")
    target: str = Field(..., description="Target node id.")
    relation: str = "co-occurs"
    weight: float = Field(..., ge=0.0, le=1.0)


class EntityCluster(BaseModel):
    id: str
    label: str
    entities: list[GraphNode]
    centroid: list[float] = Field(default_factory=list)
    coherence: float = Field(..., ge=0.0, le=1.0)


class KnowledgeGraph(BaseModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    clusters: list[EntityCluster] = Field(default_factory=list)


class Conclusions(BaseModel):
    conclusions: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)
    confidence: float = Field(0.0, ge=0.0, le=1.0)

    @classmethod
    def empty(cls) -> Conclusions:
        return cls()


# Structured responses expected back from the summarization providers.


class FileResult(BaseModel):
    file: str = ""
    summary: str = "No summary provided"
    key_facts: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    statistics: dict[str, Any] = Field(default_factory=dict)
    sources: list[str] = Field(default_factory=list)


class BatchResponse(BaseModel):
    summaries: list[FileResult]


class ConclusionsResponse(BaseModel):
    conclusions: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    evidence: list[str] = Field(default_factory=list)


# Digest output handed to rendering.


class DigestStatistics(BaseModel):
    total_files: int
    total_size: int
    date_range: tuple[datetime, datetime] | None = None
    file_types: dict[str, int] = Field(default_factory=dict)


class Digest(BaseModel):
    executive_summary: list[str]
    file_summaries: dict[str, list[DocumentSummary]]
    statistics: DigestStatistics
    source_index: list[str]
    generated_at: datetime
    processing_time_s: float
    model: str
    fact_analysis: FactAnalysis
    knowledge_graph: KnowledgeGraph | None = None
    conclusions: Conclusions | None = None


class EvaluationScores(BaseModel):
    source_linked: float
    coverage: float
    confidence: float


class EvaluationResult(BaseModel):
    scores: EvaluationScores
    thresholds: EvaluationScores
    passed: bool
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
