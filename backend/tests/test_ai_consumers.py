"""
Tests for the services built on top of the router: configuration status,
document analysis, DeepSearch term extraction and redaction analysis.
"""

from __future__ import annotations

import json

import pytest

from lexgate.services.ai.common.errors import ConfigurationError
from lexgate.services.ai.common.registry import PROVIDERS


# ── Configuration status ─────────────────────────────────────────────


class TestConfigurationStatus:
    def test_nothing_configured(self, make_router):
        from lexgate.services.ai.common.status import get_configuration_status

        status = get_configuration_status(make_router())

        assert status.configured is False
        assert status.message.startswith("No AI providers configured")
        assert len(status.recommendations) == 4

    def test_ready_message_counts_providers(self, make_router):
        from lexgate.services.ai.common.status import get_configuration_status

        status = get_configuration_status(make_router("groq", "deepseek"))

        assert status.configured is True
        assert status.message == "Ready with 2 AI provider(s). 2 currently available."

    @pytest.mark.asyncio
    async def test_all_rate_limited(self, make_router, vendors):
        from lexgate.services.ai.common.status import ensure_ready, get_configuration_status

        vendors.reply("groq", "ok")
        router = make_router("groq")
        for _ in range(PROVIDERS["groq"].rate_limit.requests_per_minute):
            await router.generate_response([{"role": "user", "content": "hi"}])

        status = get_configuration_status(router, include_recommendations=False)

        assert status.configured is False
        assert "rate limits exceeded" in status.message
        assert status.recommendations == []
        with pytest.raises(ConfigurationError):
            ensure_ready(router)


# ── Document analysis ────────────────────────────────────────────────


ANALYSIS_JSON = {
    "summary": "Residential lease between landlord and tenant.",
    "riskAssessment": {"level": "high", "score": 12, "factors": ["No deposit cap"]},
    "keyFindings": [{"category": "Contract Terms", "finding": "Auto-renewal", "severity": "Warning"}],
    "recommendations": ["Cap the security deposit"],
    "missingClauses": ["Force majeure"],
    "problematicClauses": [{"clause": "Tenant waives all rights", "issue": "Unenforceable"}],
    "legalCitations": ["Civil Code 1950.5"],
    "nextSteps": ["Negotiate deposit terms"],
    "documentInfo": {"fileName": "spoofed.pdf", "jurisdiction": "Mars", "analysisDate": "never"},
}


def _analysis_request(**overrides):
    from lexgate.services.ai.document_analysis.contracts import DocumentAnalysisRequest

    values = {"content": "This lease is made between A and B.", "jurisdiction": "California", "file_name": "lease.txt"}
    values.update(overrides)
    return DocumentAnalysisRequest(**values)


class TestDocumentAnalysis:
    @pytest.mark.asyncio
    async def test_structured_json_reply(self, make_router, vendors):
        from lexgate.services.ai.document_analysis.service import analyze_document

        vendors.reply("groq", "```json\n" + json.dumps(ANALYSIS_JSON) + "\n```")
        router = make_router("groq", "deepseek")

        result = await analyze_document(_analysis_request(), router=router)

        assert result.summary.startswith("Residential lease")
        assert result.risk_assessment.level == "HIGH"
        assert result.risk_assessment.score == 10
        assert result.key_findings[0].severity == "warning"
        assert result.problematic_clauses[0].suggestion == ""
        assert result.document_info.file_name == "lease.txt"
        assert result.document_info.jurisdiction == "California"
        assert result.provider == "groq"
        assert result.model == PROVIDERS["groq"].models["analysis"]

        body = vendors.body()
        assert body["temperature"] == 0.1
        assert body["max_tokens"] == 4000
        assert body["messages"][0]["role"] == "system"
        assert "California" in body["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_text_reply_falls_back_to_keyword_parsing(self, make_router, vendors):
        from lexgate.services.ai.document_analysis.service import analyze_document

        vendors.reply(
            "together",
            "The contract carries significant exposure.\nYou should add an indemnity clause.\nOverall fine.",
        )
        router = make_router("together")

        result = await analyze_document(_analysis_request(), router=router)

        assert result.risk_assessment.level == "HIGH"
        assert result.recommendations == ["should add an indemnity clause."]
        assert result.key_findings[0].category == "AI Analysis"
        assert result.legal_citations == ["California applicable law"]
        assert result.provider == "together"

    def test_text_parser_defaults(self):
        from lexgate.services.ai.document_analysis.service import parse_text_response

        result = parse_text_response("Nothing notable here.", _analysis_request())

        assert result.risk_assessment.level == "MEDIUM"
        assert result.recommendations == [
            "Review the full analysis text",
            "Consult with legal counsel for detailed review",
        ]

    @pytest.mark.asyncio
    async def test_long_documents_are_truncated(self, make_router, vendors):
        from lexgate.services.ai.document_analysis.contracts import MAX_DOCUMENT_CHARS
        from lexgate.services.ai.document_analysis.service import analyze_document

        vendors.reply("groq", json.dumps({"summary": "ok"}))
        router = make_router("groq")

        await analyze_document(_analysis_request(content="x" * (MAX_DOCUMENT_CHARS + 500)), router=router)

        prompt = vendors.body()["messages"][1]["content"]
        assert "x" * MAX_DOCUMENT_CHARS + "..." in prompt
        assert "x" * (MAX_DOCUMENT_CHARS + 1) not in prompt

    @pytest.mark.asyncio
    async def test_not_configured_raises_before_any_call(self, make_router, vendors):
        from lexgate.services.ai.document_analysis.service import analyze_document

        with pytest.raises(ConfigurationError):
            await analyze_document(_analysis_request(), router=make_router())
        assert vendors.calls == []

    @pytest.mark.asyncio
    async def test_batch_collects_results(self, make_router, vendors):
        from lexgate.services.ai.document_analysis.service import batch_analyze_documents

        vendors.reply("groq", json.dumps({"summary": "ok"}))
        router = make_router("groq")

        batch = await batch_analyze_documents(
            [_analysis_request(file_name="a.txt"), _analysis_request(file_name="b.txt")],
            router=router,
            delay_seconds=0,
        )

        assert batch.status == "completed"
        assert batch.total_files == 2
        assert batch.completed_files == 2
        assert [r.document_info.file_name for r in batch.results] == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_batch_records_failures(self, make_router, vendors):
        from lexgate.services.ai.document_analysis.service import batch_analyze_documents

        vendors.fail("groq", 500)
        router = make_router("groq")

        batch = await batch_analyze_documents([_analysis_request()], router=router, delay_seconds=0)

        assert batch.status == "failed"
        assert batch.completed_files == 0
        assert len(batch.errors) == 1
        assert batch.errors[0].startswith("document.txt")


# ── DeepSearch ───────────────────────────────────────────────────────


class TestLegalTerms:
    @pytest.mark.asyncio
    async def test_json_array_reply(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import extract_legal_terms

        terms = [f"term {i}" for i in range(12)]
        vendors.reply("groq", "Here you go: " + json.dumps(terms))
        router = make_router("groq")

        result = await extract_legal_terms("Some contract text", "Texas", router=router)

        assert result == terms[:10]
        body = vendors.body()
        assert body["max_tokens"] == 1000
        assert "Texas" in body["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_line_reply_fallback(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import extract_legal_terms

        vendors.reply("groq", '- contract\n- "liability",\n* breach\n')
        router = make_router("groq")

        assert await extract_legal_terms("text", "Texas", router=router) == ["contract", "liability", "breach"]

    @pytest.mark.asyncio
    async def test_input_capped(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import MAX_TERM_INPUT_CHARS, extract_legal_terms

        vendors.reply("groq", "[]")
        router = make_router("groq")

        await extract_legal_terms("y" * (MAX_TERM_INPUT_CHARS * 2), "Texas", router=router)

        prompt = vendors.body()["messages"][1]["content"]
        assert prompt.endswith("\n\n" + "y" * MAX_TERM_INPUT_CHARS)

    @pytest.mark.asyncio
    async def test_no_provider_returns_common_terms(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import extract_legal_terms

        content = "This Agreement limits liability for breach and damages. Arbitration applies."

        result = await extract_legal_terms(content, "Texas", router=make_router())

        assert result == ["agreement", "liability", "damages", "breach", "arbitration"]
        assert vendors.calls == []


def _search_request(**overrides):
    from lexgate.services.ai.deepsearch.contracts import DeepSearchRequest

    values = {
        "document_content": "The tenant shall indemnify the landlord.",
        "jurisdiction": "Texas",
        "legal_clauses": ["indemnification"],
        "search_terms": ["lease", "tenant"],
    }
    values.update(overrides)
    return DeepSearchRequest(**values)


class TestDeepSearch:
    @pytest.mark.asyncio
    async def test_model_results_are_normalized(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import DEFAULT_RELEVANCE, perform_deep_search

        drafted = [
            {
                "id": "case-001",
                "type": "case_law",
                "title": "Doe v. Roe",
                "summary": "Indemnity upheld.",
                "source": "Texas Reports",
                "date": "03/15/2023",
                "jurisdiction": "Texas",
                "relevanceScore": 0.9,
                "tags": ["indemnity"],
            },
            {"type": "blog", "relevanceScore": 7, "tags": "lease"},
            "stray string",
        ]
        vendors.reply("groq", "```json\n" + json.dumps(drafted) + "\n```")
        router = make_router("groq")

        response = await perform_deep_search(_search_request(), router=router)

        assert [r.id for r in response.results][0] == "case-001"
        assert response.results[0].relevance_score == 0.9
        filled = response.results[1]
        assert filled.type == "article"
        assert filled.title == "Legal Document"
        assert filled.summary == "Summary not available"
        assert filled.source == "Legal Database"
        assert filled.jurisdiction == "Texas"
        assert filled.relevance_score == DEFAULT_RELEVANCE
        assert filled.tags == ["Texas"]
        assert filled.id
        assert response.search_metadata.total_results == 2
        assert response.search_metadata.search_terms == ["indemnification", "lease", "tenant"]
        assert response.search_metadata.search_time >= 0

        body = vendors.body()
        assert body["max_tokens"] == 2000
        assert body["temperature"] == 0.1
        assert "Search terms: indemnification, lease, tenant" in body["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_excerpt_capped(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import MAX_SEARCH_INPUT_CHARS, perform_deep_search

        vendors.reply("groq", "[]")
        router = make_router("groq")

        await perform_deep_search(_search_request(document_content="z" * 5000), router=router)

        prompt = vendors.body()["messages"][1]["content"]
        assert "z" * MAX_SEARCH_INPUT_CHARS + "\n\n" in prompt
        assert "z" * (MAX_SEARCH_INPUT_CHARS + 1) not in prompt

    @pytest.mark.asyncio
    async def test_non_array_reply_uses_fallback_leads(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import perform_deep_search

        vendors.reply("groq", "I could not find anything relevant.")
        router = make_router("groq")

        response = await perform_deep_search(_search_request(), router=router)

        assert len(response.results) == 6
        assert response.results[0].title == "Smith v. Johnson (Texas Supreme Court, 2023)"
        assert "indemnification" in response.results[0].summary
        assert response.results[2].title == "Recent Developments in Texas Indemnification Law"

    @pytest.mark.asyncio
    async def test_no_provider_uses_fallback_leads(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import perform_deep_search

        response = await perform_deep_search(
            _search_request(legal_clauses=[], search_terms=[]),
            router=make_router(),
        )

        assert [r.type for r in response.results] == ["case_law", "statute", "article", "news", "case_law", "article"]
        assert all("Texas" in r.tags for r in response.results)
        assert "contract" in response.results[0].summary
        assert len({r.id for r in response.results}) == 6
        assert vendors.calls == []


class TestClarification:
    def _result(self):
        from lexgate.services.ai.deepsearch.contracts import DeepSearchResult

        return DeepSearchResult(
            id="case-001",
            type="case_law",
            title="Doe v. Roe",
            summary="Indemnity upheld.",
            source="Texas Reports",
            jurisdiction="Texas",
            relevance_score=0.9,
        )

    @pytest.mark.asyncio
    async def test_answer_from_chat_task(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import get_clarification

        vendors.reply("cerebras", "It means the tenant pays.")
        router = make_router("groq", "cerebras", chat_provider="cerebras")

        answer = await get_clarification(self._result(), "What does this mean for me?", router=router)

        assert answer == "It means the tenant pays."
        body = vendors.body()
        assert body["model"] == PROVIDERS["cerebras"].models["chat"]
        assert body["temperature"] == 0.3
        assert body["max_tokens"] == 1000
        assert "Title: Doe v. Roe" in body["messages"][1]["content"]
        assert "User Question: What does this mean for me?" in body["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_provider_failure_returns_apology(self, make_router, vendors):
        from lexgate.services.ai.deepsearch.service import CLARIFICATION_UNAVAILABLE, get_clarification

        vendors.fail("groq", 500)
        router = make_router("groq")

        answer = await get_clarification(self._result(), "Is this binding?", router=router)

        assert answer == CLARIFICATION_UNAVAILABLE


# ── Redaction ────────────────────────────────────────────────────────


REDACTED_DOC = "The amount: [REDACTED] is due. Name: [REDACTED] signs here today now."


class TestRedactionDetection:
    def test_detects_and_classifies(self):
        from lexgate.services.ai.redaction.service import detect_redactions

        detection = detect_redactions(REDACTED_DOC)

        assert detection.has_redactions is True
        assert detection.redacted_sections == 2
        # 11 words, 3 hidden per redaction: 5/11 visible
        assert detection.visible_content_percentage == 45
        assert {t.type: t.count for t in detection.redaction_types} == {"financial": 1, "personal": 1}
        assert detection.integrity_check.consistency_score == 100

    def test_clean_document(self):
        from lexgate.services.ai.redaction.service import detect_redactions

        detection = detect_redactions("Nothing hidden in this agreement.")

        assert detection.has_redactions is False
        assert detection.redacted_sections == 0
        assert detection.visible_content_percentage == 100

    def test_block_characters_and_unknown_type(self):
        from lexgate.services.ai.redaction.service import detect_redactions

        detection = detect_redactions("Signed by ████ on behalf of [REDACTED] and [PII].")

        assert detection.redacted_sections == 3
        assert [t.type for t in detection.redaction_types] == ["unknown"]

    def test_integrity_flags_mixed_and_partial_redactions(self):
        from lexgate.services.ai.redaction.service import check_integrity

        content = "Pay ██ now. ***REDACTED*** and [CONFIDENTIAL] plus foo[REDACTED]. [REDACTED] whereas"
        check = check_integrity(content, 5)

        assert "Multiple redaction formats used inconsistently" in check.suspicious_patterns
        assert any(p.startswith("Partial redactions") for p in check.suspicious_patterns)
        assert check.consistency_score < 100
        assert "Review redaction consistency and ensure uniform redaction standards" in check.recommendations

    def test_camel_case_serialization(self):
        from lexgate.services.ai.redaction.service import detect_redactions

        dumped = detect_redactions(REDACTED_DOC).model_dump(by_alias=True)

        assert dumped["hasRedactions"] is True
        assert "consistencyScore" in dumped["integrityCheck"]


class TestRedactionAnalysis:
    @pytest.mark.asyncio
    async def test_rejects_documents_without_redactions(self, make_router, vendors):
        from lexgate.services.ai.redaction.contracts import RedactionAnalysisRequest
        from lexgate.services.ai.redaction.service import RedactionAnalysisError, analyze_redacted_document

        request = RedactionAnalysisRequest(content="Plain text.", jurisdiction="Texas")

        with pytest.raises(RedactionAnalysisError, match="No redactions detected"):
            await analyze_redacted_document(request, router=make_router("groq"))
        assert vendors.calls == []

    @pytest.mark.asyncio
    async def test_provider_problems_become_network_issue(self, make_router, vendors):
        from lexgate.services.ai.redaction.contracts import RedactionAnalysisRequest
        from lexgate.services.ai.redaction.service import RedactionAnalysisError, analyze_redacted_document

        vendors.disconnect("groq")
        request = RedactionAnalysisRequest(content=REDACTED_DOC, jurisdiction="Texas")

        with pytest.raises(RedactionAnalysisError, match="Network issue. Try again"):
            await analyze_redacted_document(request, router=make_router("groq"))

    @pytest.mark.asyncio
    async def test_json_reply_keeps_local_detection(self, make_router, vendors):
        from lexgate.services.ai.redaction.contracts import RedactionAnalysisRequest
        from lexgate.services.ai.redaction.service import analyze_redacted_document

        reply = {
            "summary": "Payment agreement with hidden amount.",
            "redactionDetection": {"hasRedactions": False},
            "visibleContentAnalysis": {"identifiedClauses": [{"clauseType": "Payment"}]},
            "granularClauseImpact": [{"clauseType": "Payment", "enforceabilityImpact": {"level": "SEVERE"}}],
            "riskAssessment": {"level": "critical", "score": 8, "factors": ["Amount unknown"]},
            "recommendations": ["Obtain the unredacted amount"],
        }
        vendors.reply("groq", json.dumps(reply))
        request = RedactionAnalysisRequest(content=REDACTED_DOC, jurisdiction="Texas", file_name="deal.txt")

        result = await analyze_redacted_document(request, router=make_router("groq"))

        assert result.summary == "Payment agreement with hidden amount."
        assert result.redaction_detection.redacted_sections == 2
        assert result.risk_assessment.level == "CRITICAL"
        assert result.granular_clause_impact[0]["clauseType"] == "Payment"
        assert result.document_info.file_name == "deal.txt"
        assert result.provider == "groq"
        assert vendors.body()["max_tokens"] == 6000

    @pytest.mark.asyncio
    async def test_text_reply_fallback(self, make_router, vendors):
        from lexgate.services.ai.redaction.contracts import RedactionAnalysisRequest
        from lexgate.services.ai.redaction.service import analyze_redacted_document

        vendors.reply("groq", "The visible clauses look standard.\nThe payment amount is hidden.")
        request = RedactionAnalysisRequest(content=REDACTED_DOC, jurisdiction="Texas")

        result = await analyze_redacted_document(request, router=make_router("groq"))

        assert result.summary == "The visible clauses look standard. The payment amount is hidden."
        assert result.risk_assessment.level == "CRITICAL"
        assert result.recommendations == ["Request the unredacted document for a complete review"]
