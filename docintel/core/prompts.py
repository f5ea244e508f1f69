"""Prompt text and prompt builders for the analysis use-cases."""

import json
from typing import Any

from docintel.core.schemas_documents import SearchResult

SUMMARY_TRUNCATION_MARKER = "\n\n[Document truncated for analysis]"
INSIGHTS_TRUNCATION_MARKER = "\n\n[Document truncated due to length...]"


def truncate(text: str, max_chars: int, marker: str = "") -> str:
    """Cut text to max_chars, appending marker only when something was cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker


# =============================================================================
# Chat
# =============================================================================

CHAT_SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on provided document "
    "excerpts. Answer only from the excerpts. If they do not contain the answer, say so. "
    "Always cite which document your information comes from."
)


def build_chat_context(chunks: list[SearchResult]) -> str:
    """Number each excerpt and label it with its similarity percentage."""
    return "\n---\n".join(
        f"[{i}] Similarity: {chunk.similarity * 100:.1f}%\n{chunk.content}\n"
        for i, chunk in enumerate(chunks, start=1)
    )


def build_chat_prompt(question: str, context: str) -> str:
    return (
        "Based on the following document excerpts, answer this question:\n\n"
        f"Question: {question}\n\n"
        f"Context:\n{context}\n\n"
        "Provide a comprehensive answer based on the provided context."
    )


# =============================================================================
# Summary
# =============================================================================

SUMMARY_SYSTEM_PROMPT = (
    "You are a document analysis expert. Provide concise, accurate summaries in JSON format."
)


def build_summary_prompt(text: str) -> str:
    return f"""You are an expert document analyst. Analyze the following document and provide:

1. A clear 3-4 sentence overview that captures the main theme and purpose.
2. 4-6 key findings or main points (bullet points).
3. 5-8 important keywords or phrases that represent core concepts.

The document may be technical, academic, business, legal, or general-purpose. Focus on faithfully representing the content without adding external assumptions.

Document to analyze:
{text}

Respond in JSON format:
{{
  "overview": "3-4 sentence overview here",
  "keyFindings": ["finding 1", "finding 2", "..."],
  "keywords": ["keyword1", "keyword2", "..."]
}}"""


# =============================================================================
# Insights
# =============================================================================

INSIGHTS_SYSTEM_PROMPT = (
    "You are an expert document analyst. You find non-obvious, helpful insights in any "
    "kind of non-fiction document. Always return valid JSON only."
)

CROSS_INSIGHTS_SYSTEM_PROMPT = (
    "You are an expert document analyst who compares multiple documents to find "
    "cross-document insights. Always respond with valid JSON only."
)

_CATEGORY_RULES = """3. Only use these categories:
   - "pattern": {pattern}
   - "anomaly": {anomaly}
   - "opportunity": {opportunity}
   - "risk": {risk}"""


def build_document_insights_prompt(document_name: str, content: str) -> str:
    categories = _CATEGORY_RULES.format(
        pattern="recurring or emerging themes, behaviour, or structure in the document",
        anomaly="contradictions, blind spots, inconsistencies, or surprising elements",
        opportunity="chances to improve, extend, clarify, or apply the document's ideas",
        risk="potential problems, weaknesses, limitations, or points of confusion",
    )
    return f"""You are an expert document analyst. The document you will read could be an academic paper, a report, a guide, a specification, a policy document, or any other non-fiction text.

Your job is to extract NON-OBVIOUS insights that would be genuinely useful to someone who wants to understand, use, or improve this document.

Document name: {document_name or "Untitled document"}

Document content:
\"\"\"{content}\"\"\"

CRITICAL INSTRUCTIONS:
1. You MUST return between 10 and 16 insights.
2. Do NOT use the "correlation" category at all.
{categories}
4. Each insight must be clearly distinct from the others (no duplicates or near-duplicates).
5. Each insight MUST be supported by specific evidence from the document (quotes, data points, or described sections).
6. Write in clear, accessible language that would make sense to a smart reader who has not yet read the full document.

Return ONLY valid JSON in this structure:

[
  {{
    "title": "Short descriptive title of the insight",
    "description": "2-4 sentence explanation of the insight and how it relates to the document",
    "confidence": "High" | "Medium" | "Low",
    "category": "pattern" | "anomaly" | "opportunity" | "risk",
    "evidence": ["Specific quote, data point, or section that supports this insight"],
    "impact": "2 sentences explaining why this insight matters."
  }}
]
"""


def build_cross_insights_prompt(documents: list[dict[str, Any]]) -> str:
    """Build the prompt comparing documents by name, summary and metadata."""
    categories = _CATEGORY_RULES.format(
        pattern="recurring or shared themes across documents",
        anomaly="contradictions, diverging results, or inconsistencies between documents",
        opportunity="chances for synthesis, extension, or useful combination of ideas",
        risk="conflicts, gaps, or limitations that appear when comparing documents",
    )
    return f"""You are an expert analyst comparing multiple documents. You will receive a list of document summaries with optional metadata.

Your task:
- Identify cross-document insights that rely on comparing or combining information across documents.
- Go beyond surface-level observations.
- Each insight MUST reference which documents it comes from.

Documents (JSON):
{json.dumps(documents, indent=2, default=str)}

CRITICAL INSTRUCTIONS:
1. You MUST return between 8 and 15 insights.
2. Do NOT use the "correlation" category at all.
{categories}
4. Each insight must reference at least two documents.
5. Provide specific evidence from the summaries.

Return ONLY valid JSON in this structure:

[
  {{
    "title": "Short descriptive title",
    "description": "2-4 sentence explanation that explicitly references multiple documents",
    "confidence": "High" | "Medium" | "Low",
    "category": "pattern" | "anomaly" | "opportunity" | "risk",
    "evidence": ["Doc A: specific point", "Doc B: specific point"],
    "impact": "2 sentences: what this multi-document insight implies"
  }}
]
"""


# =============================================================================
# Validation
# =============================================================================

VALIDATION_SYSTEM_PROMPT = (
    "You are an expert document validator. Provide comprehensive analysis with evidence. "
    "Always return complete JSON with all required fields."
)


def build_within_document_prompt(document_name: str, text: str) -> str:
    return f"""You are analyzing "{document_name}" for comprehensive quality review.

DOCUMENT CONTENT:
{text}

Provide thorough analysis including:
1. CONTRADICTIONS - conflicting statements
2. INFORMATION GAPS - missing critical info
3. KEY CLAIMS - most important statements (max 5)
4. RECOMMENDATIONS - actionable advice (3-5 items)
5. RISK ASSESSMENT - overall quality

Return ONLY valid JSON:
{{
  "contradictions": [{{
    "claim": "...", "evidence": "...", "severity": "high|medium|low",
    "confidence": "high|medium|low", "explanation": "...", "impact": "...",
    "claimExcerpt": "...", "evidenceExcerpt": "..."
  }}],
  "gaps": [{{
    "area": "...", "description": "...", "severity": "high|medium|low",
    "expectedInformation": "..."
  }}],
  "keyClaims": [{{
    "claim": "...", "importance": "high|medium|low",
    "type": "fact|opinion|recommendation|requirement", "excerpt": "..."
  }}],
  "recommendations": [{{
    "title": "...", "description": "...", "priority": "high|medium|low",
    "actionItems": ["..."], "relatedIssues": ["..."]
  }}],
  "riskAssessment": {{
    "overallRisk": "high|medium|low", "summary": "...",
    "criticalItems": ["..."], "nextSteps": ["..."]
  }}
}}

Note: overallRisk values mean: high = major issues found, medium = minor issues, low = good quality/consistency"""


def build_cross_document_prompt(
    primary_name: str,
    primary_text: str,
    comparisons: list[tuple[str, str]],
) -> str:
    """
    Build the comparison prompt.

    Args:
        primary_name: Name of the document being validated
        primary_text: Its (already truncated) text
        comparisons: (name, truncated text) for each comparison document
    """
    comparison_texts = "\n\n---\n\n".join(
        f'DOCUMENT: "{name}"\n{text}' for name, text in comparisons
    )
    second_name = comparisons[0][0] if comparisons else "ComparisonDoc"

    return f"""Compare primary document "{primary_name}" against other documents.

PRIMARY: "{primary_name}"
{primary_text}

COMPARISON DOCUMENTS:
{comparison_texts}

CRITICAL FIRST STEP: Determine if these documents are related enough to meaningfully compare.
- If documents are about completely different topics/domains (e.g., astrophysics vs machine learning, legal contract vs recipe), they are NOT comparable.
- If documents share NO common subject matter, concepts, or purposes, they are NOT comparable.

Analyze for contradictions, agreements, gaps, key claims, recommendations, and risk.

Return ONLY valid JSON:
{{
  "documentsComparable": true|false,
  "comparabilityReason": "Brief explanation of why documents are/aren't comparable",
  "contradictions": [{{
    "claim": "Statement from primary",
    "evidence": "Conflicting statement from comparison",
    "severity": "high|medium|low",
    "confidence": "high|medium|low",
    "explanation": "Why this is a contradiction",
    "impact": "What this means",
    "claimExcerpt": "20-30 word excerpt from primary",
    "evidenceExcerpt": "20-30 word excerpt from comparison",
    "evidenceDocumentName": "Name of comparison document"
  }}],
  "agreements": [{{
    "statement": "What the documents agree on",
    "sources": ["{primary_name}", "{second_name}"],
    "confidence": "high|medium|low",
    "significance": "Why this agreement matters",
    "excerpts": ["excerpt from primary (20-30 words)", "excerpt from comparison (20-30 words)"]
  }}],
  "gaps": [{{
    "area": "Topic or section",
    "description": "What's missing from primary",
    "severity": "high|medium|low",
    "expectedInformation": "What should be included"
  }}],
  "keyClaims": [{{
    "claim": "Important statement from primary",
    "importance": "high|medium|low",
    "type": "fact|opinion|recommendation|requirement",
    "excerpt": "20-30 word excerpt"
  }}],
  "recommendations": [{{
    "title": "Recommendation title",
    "description": "What to do about findings",
    "priority": "high|medium|low",
    "actionItems": ["Specific action 1", "Specific action 2"],
    "relatedIssues": ["Related contradiction or gap"]
  }}],
  "riskAssessment": {{
    "overallRisk": "high|medium|low",
    "summary": "Overall consistency and quality assessment",
    "criticalItems": ["Most critical conflicts or issues found"],
    "nextSteps": ["Recommended next actions"]
  }}
}}

Note: overallRisk values mean: high = major issues/conflicts, medium = minor issues, low = good consistency/quality

IMPORTANT RULES:
- If documentsComparable is false, return EMPTY arrays for contradictions, gaps, agreements, keyClaims, recommendations, and riskAssessment should note documents are unrelated.
- If documents are unrelated, DO NOT fabricate connections or suggest changes to make them related.
- Only compare documents that actually discuss similar topics, concepts, or domains."""


# =============================================================================
# Technical-document gate
# =============================================================================

CLASSIFIER_SYSTEM_PROMPT = (
    "You classify documents by domain. Respond with a JSON object only."
)

CLASSIFIER_SAMPLE_CHARS = 3000


def build_classifier_prompt(file_name: str, text: str) -> str:
    sample = truncate(text, CLASSIFIER_SAMPLE_CHARS, "\n[...]")
    return f"""Decide whether the following document is a TECHNICAL document.

Technical documents include: software or API documentation, system designs, requirements
and specifications, engineering or scientific reports, research papers, technical manuals,
data analyses, architecture or infrastructure notes.

Non-technical documents include: recipes, fiction, personal letters, marketing copy,
general news, lifestyle content.

File name: {file_name}

Document sample:
\"\"\"{sample}\"\"\"

Respond in JSON format:
{{
  "isTechnical": true|false,
  "confidence": 0.0-1.0,
  "reason": "One sentence explaining the decision"
}}"""
