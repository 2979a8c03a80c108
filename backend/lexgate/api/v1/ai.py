"""AI endpoints: generation, streaming, provider status and the analysis services."""

from __future__ import annotations

from dataclasses import asdict
from typing import AsyncIterator, Literal

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from lexgate.core.dependencies import get_ai_router
from lexgate.services.ai.common.providers import ChatMessage
from lexgate.services.ai.common.router import ProviderRouter
from lexgate.services.ai.common.sse import sse_event
from lexgate.services.ai.common.status import get_configuration_status
from lexgate.services.ai.deepsearch.contracts import (
    ClarificationRequest,
    ClarificationResponse,
    DeepSearchRequest,
    DeepSearchResponse,
)
from lexgate.services.ai.document_analysis.contracts import DocumentAnalysisRequest, DocumentAnalysisResult
from lexgate.services.ai.redaction.contracts import RedactionAnalysisRequest, RedactionAnalysisResult, RedactionDetection

router = APIRouter()


class GenerateRequest(BaseModel):
    messages: list[ChatMessage] = Field(..., min_length=1)
    provider: str | None = None
    task: Literal["chat", "analysis", "reasoning"] = "chat"
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)

    def options(self) -> dict:
        return {
            "provider": self.provider,
            "task": self.task,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


class UsageResponse(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class GenerateResponse(BaseModel):
    content: str
    provider: str
    model: str
    usage: UsageResponse


class ProviderStatusResponse(BaseModel):
    name: str
    configured: bool
    available: bool


class RecommendationResponse(BaseModel):
    provider: str
    task: str
    reason: str


class ConfigurationResponse(BaseModel):
    configured: bool
    message: str
    providers: dict[str, ProviderStatusResponse]
    recommendations: list[RecommendationResponse]


class LegalTermsRequest(BaseModel):
    content: str = Field(..., min_length=1)
    jurisdiction: str = Field(..., min_length=1)


class LegalTermsResponse(BaseModel):
    terms: list[str]


class RedactionDetectRequest(BaseModel):
    content: str = Field(..., min_length=1)


@router.post("/ai/generate", response_model=GenerateResponse, summary="Generate a response via the provider router")
async def generate_endpoint(body: GenerateRequest, ai: ProviderRouter = Depends(get_ai_router)):
    result = await ai.generate_response(body.messages, **body.options())
    return GenerateResponse(
        content=result.content,
        provider=result.provider,
        model=result.model,
        usage=UsageResponse(**asdict(result.usage)),
    )


@router.post("/ai/stream", summary="Stream a response as server-sent events")
async def stream_endpoint(body: GenerateRequest, ai: ProviderRouter = Depends(get_ai_router)):
    # Fail before the stream opens so configuration problems keep their status code.
    ai.select_provider(body.task, body.provider)

    async def events() -> AsyncIterator[bytes]:
        async for chunk in ai.stream_response(body.messages, **body.options()):
            yield sse_event(asdict(chunk))

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/ai/providers/status", response_model=dict[str, ProviderStatusResponse])
def provider_status_endpoint(ai: ProviderRouter = Depends(get_ai_router)):
    return {key: asdict(status) for key, status in ai.get_provider_status().items()}


@router.get("/ai/providers/recommended", response_model=list[RecommendationResponse])
def recommended_providers_endpoint(ai: ProviderRouter = Depends(get_ai_router)):
    return [asdict(r) for r in ai.get_recommended_providers()]


@router.get("/ai/configuration", response_model=ConfigurationResponse)
def configuration_endpoint(ai: ProviderRouter = Depends(get_ai_router)):
    status = get_configuration_status(ai)
    return ConfigurationResponse(
        configured=status.configured,
        message=status.message,
        providers={key: ProviderStatusResponse(**asdict(s)) for key, s in status.providers.items()},
        recommendations=[RecommendationResponse(**asdict(r)) for r in status.recommendations],
    )


@router.post("/ai/documents/analyze", response_model=DocumentAnalysisResult, response_model_by_alias=True)
async def analyze_document_endpoint(body: DocumentAnalysisRequest, ai: ProviderRouter = Depends(get_ai_router)):
    from lexgate.services.ai.document_analysis.service import analyze_document

    return await analyze_document(body, router=ai)


@router.post("/ai/deepsearch/terms", response_model=LegalTermsResponse)
async def legal_terms_endpoint(body: LegalTermsRequest, ai: ProviderRouter = Depends(get_ai_router)):
    from lexgate.services.ai.deepsearch.service import extract_legal_terms

    terms = await extract_legal_terms(body.content, body.jurisdiction, router=ai)
    return LegalTermsResponse(terms=terms)


@router.post("/ai/deepsearch/search", response_model=DeepSearchResponse, response_model_by_alias=True)
async def deep_search_endpoint(body: DeepSearchRequest, ai: ProviderRouter = Depends(get_ai_router)):
    from lexgate.services.ai.deepsearch.service import perform_deep_search

    return await perform_deep_search(body, router=ai)


@router.post("/ai/deepsearch/clarify", response_model=ClarificationResponse)
async def clarification_endpoint(body: ClarificationRequest, ai: ProviderRouter = Depends(get_ai_router)):
    from lexgate.services.ai.deepsearch.service import get_clarification

    answer = await get_clarification(body.result, body.question, router=ai)
    return ClarificationResponse(answer=answer)


@router.post("/ai/redactions/detect", response_model=RedactionDetection, response_model_by_alias=True)
def detect_redactions_endpoint(body: RedactionDetectRequest):
    from lexgate.services.ai.redaction.service import detect_redactions

    return detect_redactions(body.content)


@router.post("/ai/redactions/analyze", response_model=RedactionAnalysisResult, response_model_by_alias=True)
async def analyze_redactions_endpoint(body: RedactionAnalysisRequest, ai: ProviderRouter = Depends(get_ai_router)):
    from lexgate.services.ai.redaction.service import RedactionAnalysisError, analyze_redacted_document

    try:
        return await analyze_redacted_document(body, router=ai)
    except RedactionAnalysisError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
