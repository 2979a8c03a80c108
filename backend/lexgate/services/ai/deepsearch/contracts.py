"""DeepSearch contracts: research request, results and clarification."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ResultType = Literal["case_law", "statute", "article", "news"]
RESULT_TYPES: tuple[str, ...] = ("case_law", "statute", "article", "news")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeepSearchResult(_CamelModel):
    id: str
    type: ResultType
    title: str
    summary: str
    source: str
    url: str = ""
    date: str = ""
    jurisdiction: str
    relevance_score: float = Field(..., ge=0.0, le=1.0)
    tags: list[str] = []
    content: str | None = None


class DeepSearchRequest(_CamelModel):
    document_content: str = Field(..., min_length=1)
    jurisdiction: str = Field(..., min_length=1)
    legal_clauses: list[str] = []
    search_terms: list[str] = []

    @property
    def all_terms(self) -> list[str]:
        return [*self.legal_clauses, *self.search_terms]


class SearchMetadata(_CamelModel):
    total_results: int
    search_time: int  # milliseconds
    jurisdiction: str
    search_terms: list[str] = []


class DeepSearchResponse(_CamelModel):
    results: list[DeepSearchResult]
    search_metadata: SearchMetadata


class ClarificationRequest(_CamelModel):
    result: DeepSearchResult
    question: str = Field(..., min_length=1)


class ClarificationResponse(_CamelModel):
    answer: str
