"""Pydantic schemas for AI analysis results (chat, summary, insights, validation)."""

from typing import Literal

from pydantic import BaseModel, Field

from docintel.core.schemas_documents import DocumentRecord

Level = Literal["high", "medium", "low"]
InsightCategory = Literal["pattern", "anomaly", "opportunity", "risk"]
ClaimType = Literal["fact", "opinion", "recommendation", "requirement"]


# =============================================================================
# Chat
# =============================================================================


class ChatSource(BaseModel):
    """How many retrieved chunks a document contributed to an answer."""

    document_id: str
    document_title: str
    chunks_used: int


class ChatAnswer(BaseModel):
    """Grounded answer to a user question."""

    answer: str
    sources: list[ChatSource] = Field(default_factory=list)
    chunks_used: int = 0


# =============================================================================
# Summary
# =============================================================================


class SummaryMetadata(BaseModel):
    """Locally computed document statistics."""

    word_count: int = 0
    page_count: int = 0
    reading_time: int = Field(default=0, description="Minutes at ~200 words per minute")


class DocumentSummary(BaseModel):
    """Structured document summary persisted onto the document row."""

    overview: str
    key_findings: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    metadata: SummaryMetadata = Field(default_factory=SummaryMetadata)
    cached: bool = Field(default=False, description="Set at read time, never stored")


# =============================================================================
# Insights
# =============================================================================


class Insight(BaseModel):
    """A single non-obvious finding about one or more documents."""

    title: str
    description: str = ""
    confidence: float = Field(..., ge=0.0, le=1.0)
    category: InsightCategory
    evidence: list[str] = Field(default_factory=list)
    impact: str = ""


class InsightResponse(BaseModel):
    """Insights plus provenance of the result."""

    insights: list[Insight] = Field(default_factory=list)
    generated_at: str
    document_count: int
    cached: bool = False


# =============================================================================
# Validation (contradictions, gaps, claims)
# =============================================================================


class DocumentReference(BaseModel):
    """An excerpt reconciled to the chunk that most plausibly contains it."""

    document_id: str
    document_name: str
    excerpt: str = ""
    chunk_index: int = 0


class Contradiction(BaseModel):
    claim: str
    evidence: str = ""
    severity: Level = "medium"
    confidence: float = Field(..., ge=0.0, le=1.0)
    explanation: str = ""
    impact: str = "Impact not specified"
    claim_source: DocumentReference
    evidence_source: DocumentReference


class Agreement(BaseModel):
    statement: str
    sources: list[DocumentReference] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    significance: str = ""


class InformationGap(BaseModel):
    area: str
    description: str = ""
    severity: Level = "medium"
    expected_information: str = ""


class KeyClaim(BaseModel):
    claim: str
    source: DocumentReference
    importance: Level = "medium"
    type: ClaimType = "fact"


class Recommendation(BaseModel):
    title: str
    description: str = ""
    priority: Level = "medium"
    action_items: list[str] = Field(default_factory=list)
    related_issues: list[str] = Field(default_factory=list)


class RiskAssessment(BaseModel):
    overall_risk: Level = "medium"
    summary: str = "Analysis complete"
    critical_items: list[str] = Field(default_factory=list)
    next_steps: list[str] = Field(default_factory=list)


class AnalysisMetadata(BaseModel):
    documents_analyzed: int
    total_chunks_reviewed: int
    analysis_timestamp: str
    documents_comparable: bool = True
    cached: bool = False


class ValidationResult(BaseModel):
    """Full contradiction / quality analysis of one or more documents."""

    contradictions: list[Contradiction] = Field(default_factory=list)
    gaps: list[InformationGap] = Field(default_factory=list)
    agreements: list[Agreement] = Field(default_factory=list)
    key_claims: list[KeyClaim] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    analysis_metadata: AnalysisMetadata


class TechnicalClassification(BaseModel):
    """Result of the lightweight technical-document gate."""

    is_technical: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str = ""


# =============================================================================
# Report
# =============================================================================


class DocumentReport(BaseModel):
    """One document's metadata together with every analysis available for it."""

    document: DocumentRecord
    summary: DocumentSummary | None = None
    insights: list[Insight] = Field(default_factory=list)
    insights_generated_at: str | None = None
    validation: ValidationResult | None = None
    generated_at: str
