"""Redaction analysis contracts."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
RedactionType = Literal["financial", "personal", "legal", "business", "location", "temporal", "technical", "unknown"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RedactionTypeClassification(_CamelModel):
    type: RedactionType
    count: int
    risk_level: RiskLevel
    description: str
    examples: list[str] = []


class RedactionIntegrityCheck(_CamelModel):
    consistency_score: int = Field(..., ge=0, le=100)
    suspicious_patterns: list[str] = []
    incompleteness: list[str] = []
    recommendations: list[str] = []


class RedactionDetection(_CamelModel):
    has_redactions: bool
    redacted_sections: int
    visible_content_percentage: int
    redaction_patterns: list[str] = []
    redaction_types: list[RedactionTypeClassification] = []
    integrity_check: RedactionIntegrityCheck


class RedactionRiskAssessment(_CamelModel):
    level: RiskLevel = "MEDIUM"
    score: float = 5
    factors: list[str] = []
    limitation_notice: str = (
        "This analysis covers visible content only; redacted sections may change the legal effect."
    )

    @field_validator("level", mode="before")
    @classmethod
    def level_upper(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class ImpactAssessment(_CamelModel):
    critical_gaps: list[str] = []
    operational_risks: list[str] = []
    legal_exposure: list[str] = []
    compliance_risks: list[str] = []


class RedactionDocumentInfo(_CamelModel):
    file_name: str
    file_size: int = 0
    file_type: str = ""
    jurisdiction: str
    analysis_date: str


class RedactionAnalysisRequest(_CamelModel):
    content: str = Field(..., min_length=1)
    jurisdiction: str = Field(..., min_length=1)
    document_type: str | None = None
    file_name: str = "document.txt"
    file_size: int = 0
    file_type: str = "text/plain"


class RedactionAnalysisResult(_CamelModel):
    summary: str
    redaction_detection: RedactionDetection
    # Clause-level detail is passed through as returned by the model.
    visible_content_analysis: dict[str, Any] = {}
    granular_clause_impact: list[dict[str, Any]] = []
    risk_assessment: RedactionRiskAssessment = Field(default_factory=RedactionRiskAssessment)
    impact_assessment: ImpactAssessment = Field(default_factory=ImpactAssessment)
    recommendations: list[str] = []
    next_steps: list[str] = []
    legal_citations: list[str] = []
    document_info: RedactionDocumentInfo
    provider: str | None = None
    model: str | None = None
