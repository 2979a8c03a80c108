"""Document analysis contracts: request + structured result."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
AnalysisType = Literal["comprehensive", "risk-only", "compliance"]

MAX_DOCUMENT_CHARS = 12000


class _CamelModel(BaseModel):
    # LLM output follows the camelCase schema in the prompt.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentInfo(_CamelModel):
    file_name: str
    file_size: int = 0
    file_type: str = ""
    jurisdiction: str
    analysis_date: str


class RiskAssessment(_CamelModel):
    level: RiskLevel = "MEDIUM"
    score: float = 5
    factors: list[str] = []

    @field_validator("level", mode="before")
    @classmethod
    def level_upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("score")
    @classmethod
    def score_range(cls, v: float) -> float:
        return min(10.0, max(0.0, v))


class KeyFinding(_CamelModel):
    category: str
    finding: str
    severity: Literal["info", "warning", "critical"] = "info"

    @field_validator("severity", mode="before")
    @classmethod
    def severity_lower(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class ProblematicClause(_CamelModel):
    clause: str
    issue: str
    suggestion: str = ""


class DocumentAnalysisRequest(_CamelModel):
    content: str = Field(..., min_length=1)
    jurisdiction: str = Field(..., min_length=1)
    analysis_type: AnalysisType = "comprehensive"
    document_type: str | None = None
    file_name: str = "document.txt"
    file_size: int = 0
    file_type: str = "text/plain"


class DocumentAnalysisResult(_CamelModel):
    summary: str
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    key_findings: list[KeyFinding] = []
    recommendations: list[str] = []
    missing_clauses: list[str] = []
    problematic_clauses: list[ProblematicClause] = []
    legal_citations: list[str] = []
    next_steps: list[str] = []
    document_info: DocumentInfo | None = None
    provider: str | None = None
    model: str | None = None


class BatchAnalysisResult(_CamelModel):
    id: str
    status: Literal["pending", "processing", "completed", "failed"]
    total_files: int
    completed_files: int = 0
    results: list[DocumentAnalysisResult] = []
    errors: list[str] = []
    created_at: str
