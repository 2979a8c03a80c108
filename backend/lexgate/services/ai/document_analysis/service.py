"""Legal document analysis over the provider router.

The model is asked for a JSON report. When the reply is not usable JSON a
keyword-based text fallback still produces a complete result.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from datetime import datetime, timezone

from pydantic import ValidationError

from ..common.json_tools import extract_json_object
from ..common.router import ProviderRouter
from ..common.status import ensure_ready
from .contracts import (
    MAX_DOCUMENT_CHARS,
    BatchAnalysisResult,
    DocumentAnalysisRequest,
    DocumentAnalysisResult,
    DocumentInfo,
    KeyFinding,
    RiskAssessment,
)

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.1
ANALYSIS_MAX_TOKENS = 4000

_RISK_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("CRITICAL", ("critical", "severe", "major risk", "high risk", "dangerous")),
    ("HIGH", ("high", "significant", "important", "concerning")),
    ("LOW", ("low", "minor", "minimal", "acceptable")),
)
_RECOMMENDATION_RE = re.compile(r"(?:recommendation|suggest|should|must|need to)[^\n]*", re.IGNORECASE)


def build_system_prompt(jurisdiction: str) -> str:
    return (
        f"You are a legal document analysis expert specializing in {jurisdiction} law.\n"
        "Analyze legal documents and provide comprehensive, structured analysis with specific "
        "legal citations and practical recommendations.\n\n"
        "CRITICAL: respond with valid JSON only. No text before or after the JSON object.\n\n"
        "The JSON structure must be:\n"
        "{\n"
        '  "summary": "Brief overview of the document and main purpose",\n'
        '  "riskAssessment": {"level": "LOW|MEDIUM|HIGH|CRITICAL", "score": 1-10, "factors": ["..."]},\n'
        '  "keyFindings": [{"category": "Contract Terms", "finding": "...", "severity": "info|warning|critical"}],\n'
        '  "recommendations": ["..."],\n'
        '  "missingClauses": ["..."],\n'
        '  "problematicClauses": [{"clause": "exact text", "issue": "...", "suggestion": "..."}],\n'
        f'  "legalCitations": ["relevant law or statute for {jurisdiction}"],\n'
        '  "nextSteps": ["..."]\n'
        "}\n\n"
        "Focus on:\n"
        f"- Contract enforceability under {jurisdiction} law\n"
        "- Risk exposure and liability issues\n"
        "- Missing protective clauses\n"
        "- Ambiguous terms that could cause disputes\n"
        f"- Compliance with {jurisdiction} regulations"
    )


def build_analysis_prompt(request: DocumentAnalysisRequest) -> str:
    return (
        f"Analyze this legal document for {request.jurisdiction} jurisdiction:\n\n"
        f"Document Type: {request.document_type or 'Legal Document'}\n"
        f"Analysis Type: {request.analysis_type}\n"
        f"File: {request.file_name}\n\n"
        f"Document Content:\n{request.content}\n\n"
        "Provide a comprehensive legal analysis focusing on:\n"
        "1. Risk assessment and scoring (1-10 scale)\n"
        "2. Key findings with severity levels\n"
        "3. Specific problematic clauses with exact text\n"
        "4. Missing protective clauses\n"
        "5. Actionable recommendations\n"
        f"6. Relevant legal citations for {request.jurisdiction}\n"
        "7. Immediate next steps\n\n"
        "Remember to respond with valid JSON only."
    )


def truncate_content(content: str, limit: int = MAX_DOCUMENT_CHARS) -> str:
    return content if len(content) <= limit else content[:limit] + "..."


def _document_info(request: DocumentAnalysisRequest) -> DocumentInfo:
    return DocumentInfo(
        file_name=request.file_name,
        file_size=request.file_size,
        file_type=request.file_type,
        jurisdiction=request.jurisdiction,
        analysis_date=datetime.now(timezone.utc).isoformat(),
    )


def parse_text_response(text: str, request: DocumentAnalysisRequest) -> DocumentAnalysisResult:
    """Best-effort structured result from a free-text model reply."""
    lines = [line for line in text.split("\n") if line.strip()]
    lowered = text.lower()

    risk_level = "MEDIUM"
    for level, keywords in _RISK_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            risk_level = level
            break

    recommendations = [m.group(0).strip() for m in _RECOMMENDATION_RE.finditer(text)][:5]
    summary = " ".join(lines[:3])[:300] if lines else "Document analysis completed using cloud AI services."
    finding = text[:500] + ("..." if len(text) > 500 else "")

    return DocumentAnalysisResult(
        summary=summary,
        risk_assessment=RiskAssessment(
            level=risk_level,
            score=5,
            factors=[
                "Analysis completed with cloud AI services",
                "Manual review recommended for detailed assessment",
            ],
        ),
        key_findings=[KeyFinding(category="AI Analysis", finding=finding, severity="info")],
        recommendations=recommendations
        or ["Review the full analysis text", "Consult with legal counsel for detailed review"],
        legal_citations=[f"{request.jurisdiction} applicable law"],
        next_steps=["Review full analysis text", "Consult legal professional if needed"],
        document_info=_document_info(request),
    )


async def analyze_document(
    request: DocumentAnalysisRequest,
    *,
    router: ProviderRouter,
) -> DocumentAnalysisResult:
    ensure_ready(router)

    request = request.model_copy(update={"content": truncate_content(request.content)})
    messages = [
        {"role": "system", "content": build_system_prompt(request.jurisdiction)},
        {"role": "user", "content": build_analysis_prompt(request)},
    ]
    response = await router.generate_response(
        messages,
        task="analysis",
        temperature=ANALYSIS_TEMPERATURE,
        max_tokens=ANALYSIS_MAX_TOKENS,
    )

    parsed = extract_json_object(response.content)
    result: DocumentAnalysisResult | None = None
    if parsed is not None:
        parsed.pop("documentInfo", None)
        parsed.pop("document_info", None)
        try:
            result = DocumentAnalysisResult.model_validate({**parsed, "documentInfo": _document_info(request)})
        except ValidationError as exc:
            logger.warning("Analysis JSON from %s failed validation: %s", response.provider, exc.error_count())

    if result is None:
        logger.info("Falling back to text parsing for analysis from %s", response.provider)
        result = parse_text_response(response.content, request)

    return result.model_copy(update={"provider": response.provider, "model": response.model})


async def batch_analyze_documents(
    requests: list[DocumentAnalysisRequest],
    *,
    router: ProviderRouter,
    delay_seconds: float = 1.0,
) -> BatchAnalysisResult:
    """Analyze documents one after another; per-file failures are collected, not raised."""
    ensure_ready(router)

    batch = BatchAnalysisResult(
        id=str(uuid.uuid4()),
        status="processing",
        total_files=len(requests),
        created_at=datetime.now(timezone.utc).isoformat(),
    )

    for index, request in enumerate(requests):
        try:
            result = await analyze_document(request, router=router)
            batch.results.append(result)
            batch.completed_files += 1
        except Exception as exc:
            logger.warning("Batch %s: analysis of %s failed: %s", batch.id, request.file_name, exc)
            batch.errors.append(f"{request.file_name}: {exc}")
        if delay_seconds > 0 and index < len(requests) - 1:
            await asyncio.sleep(delay_seconds)

    batch.status = "completed" if batch.completed_files or not requests else "failed"
    return batch
