"""Redaction analysis: local marker detection plus AI review of the visible content.

Features:
- Marker detection across the common redaction formats ([REDACTED], █, [PII], ...)
- Redaction type classification from the words preceding each marker
- Integrity check (mixed formats, partial redactions, broken sentences)
- AI clause review with a text fallback when the reply is not JSON
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from pydantic import ValidationError

from ..common.errors import AIProviderError
from ..common.json_tools import extract_json_object
from ..common.router import ProviderRouter
from ..common.status import ensure_ready
from .contracts import (
    RedactionAnalysisRequest,
    RedactionAnalysisResult,
    RedactionDetection,
    RedactionDocumentInfo,
    RedactionIntegrityCheck,
    RedactionRiskAssessment,
    RedactionTypeClassification,
)

logger = logging.getLogger(__name__)

REDACTION_MAX_TOKENS = 6000
WORDS_PER_REDACTION = 3
NETWORK_ISSUE_MESSAGE = "Network issue. Try again"


class RedactionAnalysisError(Exception):
    """Raised when a redacted document cannot be analyzed."""


REDACTION_MARKERS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\[REDACTED\]",
        r"\*\*\*REDACTED\*\*\*",
        r"█+",
        r"\[CONFIDENTIAL\]",
        r"\[CLASSIFIED\]",
        r"\[REMOVED\]",
        r"\[WITHHELD\]",
        r"\[PROTECTED\]",
        r"\[SEALED\]",
        r"\[PRIVILEGED\]",
        r"\[ATTORNEY-CLIENT PRIVILEGE\]",
        r"\[WORK PRODUCT\]",
        r"\[TRADE SECRET\]",
        r"\[PROPRIETARY\]",
        r"\[PERSONAL INFORMATION\]",
        r"\[PII\]",
        r"\[SENSITIVE\]",
        r"\[CONFIDENTIAL INFORMATION\]",
        r"\[BUSINESS CONFIDENTIAL\]",
    )
)


def _labelled(*labels: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(rf"{re.escape(label)}[:\s]*\[REDACTED\]", re.IGNORECASE) for label in labels)


# (type, risk level, description, examples, label patterns)
_TYPE_RULES = (
    (
        "financial",
        "CRITICAL",
        "Financial terms, amounts, and payment obligations",
        ["Payment amounts", "Salary figures", "Contract values", "Penalty fees"],
        (re.compile(r"\$\s*\[REDACTED\]", re.IGNORECASE),)
        + _labelled("amount", "price", "salary", "payment", "fee", "cost", "budget"),
    ),
    (
        "personal",
        "MEDIUM",
        "Personal identifying information",
        ["Names", "Addresses", "Contact information", "ID numbers"],
        _labelled("name", "address", "phone", "email", "ssn", "social security"),
    ),
    (
        "legal",
        "CRITICAL",
        "Legal terms and conditions",
        ["Governing law", "Liability clauses", "Dispute resolution", "Termination conditions"],
        _labelled("governing law", "jurisdiction", "liability", "damages", "termination", "breach", "dispute resolution"),
    ),
    (
        "business",
        "HIGH",
        "Business entities and corporate information",
        ["Company names", "Business addresses", "Corporate structures", "Entity types"],
        _labelled("company", "business", "organization", "entity", "corporation"),
    ),
    (
        "location",
        "HIGH",
        "Geographic and venue information",
        ["Cities", "States", "Countries", "Venues", "Jurisdictional locations"],
        _labelled("location", "city", "state", "country", "venue"),
    ),
    (
        "temporal",
        "HIGH",
        "Time-related information and deadlines",
        ["Contract dates", "Deadlines", "Terms", "Duration periods"],
        _labelled("date", "deadline", "term", "duration", "period"),
    ),
    (
        "technical",
        "MEDIUM",
        "Technical specifications and requirements",
        ["System specifications", "Technical requirements", "Software details", "Hardware specs"],
        _labelled("specification", "technical", "system", "software", "hardware"),
    ),
)

_REDACTED_RE = re.compile(r"\[REDACTED\]", re.IGNORECASE)
_FORMAT_VARIANTS = (
    re.compile(r"\[REDACTED\]"),
    re.compile(r"\*\*\*REDACTED\*\*\*"),
    re.compile(r"█+"),
    re.compile(r"\[CONFIDENTIAL\]"),
)
_PARTIAL_PATTERNS = (
    re.compile(r"\w+\[REDACTED\]"),
    re.compile(r"\[REDACTED\]\w+"),
    re.compile(r"\w+\s*\[REDACTED\]\s*\w+"),
)
_CONTEXTUAL_RE = re.compile(r"\w{10,}\s*\[REDACTED\]\s*\w{10,}")
_BROKEN_SENTENCE_RE = re.compile(r"\.\s*\[REDACTED\]\s*[a-z]")
_ORPHANED_TERM_RE = re.compile(r"(whereas|therefore|notwithstanding)\s*\[REDACTED\]", re.IGNORECASE)


def _count(content: str, patterns) -> int:
    return sum(len(p.findall(content)) for p in patterns)


def classify_redaction_types(content: str) -> list[RedactionTypeClassification]:
    classifications: list[RedactionTypeClassification] = []
    for kind, risk, description, examples, patterns in _TYPE_RULES:
        count = _count(content, patterns)
        if count:
            classifications.append(
                RedactionTypeClassification(
                    type=kind,
                    count=count,
                    risk_level=risk,
                    description=description,
                    examples=examples,
                )
            )

    unknown = len(_REDACTED_RE.findall(content)) - sum(c.count for c in classifications)
    if unknown > 0:
        classifications.append(
            RedactionTypeClassification(
                type="unknown",
                count=unknown,
                risk_level="MEDIUM",
                description="Unclassified redacted information",
                examples=["General redacted content", "Unspecified information"],
            )
        )
    return classifications


def check_integrity(content: str, total_redactions: int) -> RedactionIntegrityCheck:
    suspicious: list[str] = []
    incompleteness: list[str] = []
    recommendations: list[str] = []
    score = 100

    used_variants = sum(1 for p in _FORMAT_VARIANTS if p.search(content))
    if used_variants > 2:
        suspicious.append("Multiple redaction formats used inconsistently")
        score -= 20

    for pattern in _PARTIAL_PATTERNS:
        if pattern.search(content):
            suspicious.append("Partial redactions detected - may indicate incomplete redaction process")
            score -= 15

    plain = re.findall(r"\[REDACTED\]", content)
    if plain and len(_CONTEXTUAL_RE.findall(content)) > len(plain) * 0.3:
        suspicious.append("Many redactions appear in sensitive contexts - review for completeness")
        score -= 10

    if _BROKEN_SENTENCE_RE.search(content):
        incompleteness.append("Sentence structures broken by redactions")
        score -= 10

    if _ORPHANED_TERM_RE.search(content):
        incompleteness.append("Legal terms separated from their clauses")
        score -= 15

    if suspicious:
        recommendations.append("Review redaction consistency and ensure uniform redaction standards")
    if incompleteness:
        recommendations.append("Verify that redactions maintain document readability and legal coherence")
    if total_redactions > 50:
        recommendations.append("High number of redactions detected - consider if document is suitable for analysis")
        score -= 10
    if score < 70:
        recommendations.append(
            "Document redaction integrity is questionable - request clarification from document provider"
        )

    return RedactionIntegrityCheck(
        consistency_score=max(0, score),
        suspicious_patterns=suspicious,
        incompleteness=incompleteness,
        recommendations=recommendations,
    )


def detect_redactions(content: str) -> RedactionDetection:
    total = 0
    found: list[str] = []
    for pattern in REDACTION_MARKERS:
        matches = pattern.findall(content)
        if matches:
            total += len(matches)
            found.append(pattern.pattern)

    total_words = len(content.split()) or 1
    visible = (total_words - total * WORDS_PER_REDACTION) / total_words * 100
    visible = max(0.0, min(100.0, visible))

    return RedactionDetection(
        has_redactions=total > 0,
        redacted_sections=total,
        visible_content_percentage=int(visible + 0.5),
        redaction_patterns=found,
        redaction_types=classify_redaction_types(content),
        integrity_check=check_integrity(content, total),
    )


def build_redaction_system_prompt(jurisdiction: str) -> str:
    return (
        "You are a legal document analysis expert specializing in analyzing documents with redacted "
        f"content for {jurisdiction} law.\n\n"
        "Provide granular clause-level analysis of VISIBLE content only while clearly acknowledging "
        "limitations caused by redactions.\n\n"
        "CRITICAL: respond with valid JSON only. No text before or after the JSON object.\n\n"
        "The JSON structure must be:\n"
        "{\n"
        '  "summary": "Brief overview of visible content and document purpose",\n'
        '  "visibleContentAnalysis": {"identifiedClauses": [{"clauseType": "...", "content": "...", '
        '"isComplete": true, "redactionImpact": "NONE|MINOR|MODERATE|SEVERE"}], "vagueClauses": [], '
        '"potentialIssues": [], "missingStandardClauses": []},\n'
        '  "granularClauseImpact": [{"clauseType": "...", "visibleContent": "...", "redactedElements": [], '
        '"enforceabilityImpact": {"level": "NONE|MINOR|MODERATE|SEVERE|CRITICAL", "description": "...", '
        '"specificRisks": []}, "jurisdictionalUncertainty": false, "missingCriticalTerms": [], '
        '"recommendations": []}],\n'
        '  "riskAssessment": {"level": "LOW|MEDIUM|HIGH|CRITICAL", "score": 1-10, "factors": [], '
        '"limitationNotice": "..."},\n'
        '  "impactAssessment": {"criticalGaps": [], "operationalRisks": [], "legalExposure": [], '
        '"complianceRisks": []},\n'
        '  "recommendations": [], "nextSteps": [], "legalCitations": []\n'
        "}"
    )


def build_redaction_prompt(request: RedactionAnalysisRequest, detection: RedactionDetection) -> str:
    types = ", ".join(f"{t.type} ({t.count})" for t in detection.redaction_types) or "none classified"
    return (
        f"Analyze this redacted legal document for {request.jurisdiction} jurisdiction.\n\n"
        f"Document Type: {request.document_type or 'Legal Document'}\n"
        f"File: {request.file_name}\n"
        f"Redacted sections: {detection.redacted_sections}\n"
        f"Visible content: {detection.visible_content_percentage}%\n"
        f"Redaction types: {types}\n"
        f"Redaction consistency score: {detection.integrity_check.consistency_score}/100\n\n"
        f"Document Content:\n{request.content}\n\n"
        "Remember to respond with valid JSON only."
    )


def _document_info(request: RedactionAnalysisRequest) -> RedactionDocumentInfo:
    return RedactionDocumentInfo(
        file_name=request.file_name,
        file_size=request.file_size,
        file_type=request.file_type,
        jurisdiction=request.jurisdiction,
        analysis_date=datetime.now(timezone.utc).isoformat(),
    )


def _risk_from_detection(detection: RedactionDetection) -> str:
    levels = {t.risk_level for t in detection.redaction_types}
    for level in ("CRITICAL", "HIGH", "MEDIUM"):
        if level in levels:
            return level
    return "LOW"


def parse_redaction_text_response(
    text: str,
    request: RedactionAnalysisRequest,
    detection: RedactionDetection,
) -> RedactionAnalysisResult:
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    summary = " ".join(lines[:3])[:300] if lines else "Redaction analysis completed."
    return RedactionAnalysisResult(
        summary=summary,
        redaction_detection=detection,
        risk_assessment=RedactionRiskAssessment(
            level=_risk_from_detection(detection),
            factors=[
                f"{detection.redacted_sections} redacted section(s) detected",
                f"{detection.visible_content_percentage}% of content visible",
            ],
        ),
        recommendations=detection.integrity_check.recommendations
        or ["Request the unredacted document for a complete review"],
        next_steps=["Review full analysis text", "Consult legal professional about redacted sections"],
        legal_citations=[f"{request.jurisdiction} applicable law"],
        document_info=_document_info(request),
    )


async def analyze_redacted_document(
    request: RedactionAnalysisRequest,
    *,
    router: ProviderRouter,
) -> RedactionAnalysisResult:
    detection = detect_redactions(request.content)
    if not detection.has_redactions:
        raise RedactionAnalysisError(
            "No redactions detected in the document. "
            "This service is specifically for analyzing documents with redacted content."
        )

    messages = [
        {"role": "system", "content": build_redaction_system_prompt(request.jurisdiction)},
        {"role": "user", "content": build_redaction_prompt(request, detection)},
    ]
    try:
        ensure_ready(router)
        response = await router.generate_response(
            messages,
            task="analysis",
            temperature=0.1,
            max_tokens=REDACTION_MAX_TOKENS,
        )
    except AIProviderError as exc:
        logger.warning("Redaction analysis could not reach a provider: %s", exc)
        raise RedactionAnalysisError(NETWORK_ISSUE_MESSAGE) from exc

    result: RedactionAnalysisResult | None = None
    parsed = extract_json_object(response.content)
    if parsed is not None:
        for key in ("redactionDetection", "redaction_detection", "documentInfo", "document_info"):
            parsed.pop(key, None)
        try:
            result = RedactionAnalysisResult.model_validate(
                {
                    "summary": "Redaction analysis completed.",
                    **parsed,
                    "redactionDetection": detection,
                    "documentInfo": _document_info(request),
                }
            )
        except ValidationError as exc:
            logger.warning("Redaction JSON from %s failed validation: %s", response.provider, exc.error_count())

    if result is None:
        result = parse_redaction_text_response(response.content, request, detection)

    return result.model_copy(update={"provider": response.provider, "model": response.model})
