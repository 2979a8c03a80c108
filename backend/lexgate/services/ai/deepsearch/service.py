"""DeepSearch: legal-term extraction, AI-drafted research results and clarifications."""

from __future__ import annotations

import logging
import time
import uuid

from ..common.errors import AIProviderError
from ..common.json_tools import extract_json_array, extract_string_list, strip_code_fences
from ..common.router import ProviderRouter
from .contracts import RESULT_TYPES, DeepSearchRequest, DeepSearchResponse, DeepSearchResult, SearchMetadata

logger = logging.getLogger(__name__)

MAX_TERM_INPUT_CHARS = 5000
MAX_TERMS = 10
MAX_FALLBACK_TERMS = 5

COMMON_LEGAL_TERMS = (
    "contract",
    "agreement",
    "liability",
    "damages",
    "breach",
    "jurisdiction",
    "arbitration",
    "indemnification",
    "termination",
    "confidentiality",
    "intellectual property",
    "warranty",
)

_STRIP_CHARS = "-*\"' \t"


def build_terms_system_prompt(jurisdiction: str) -> str:
    return (
        f"You are a legal expert specializing in {jurisdiction} law. Extract the most important legal "
        "terms, clauses, and concepts from the provided document. Focus on:\n\n"
        "1. Key legal terminology\n"
        "2. Names of specific laws, acts, or statutes mentioned\n"
        "3. Legal principles or doctrines referenced\n"
        "4. Types of legal agreements or contracts\n"
        "5. Legal rights or obligations discussed\n\n"
        "Return ONLY a JSON array of strings with the extracted terms. "
        "Do not include any explanations or other text.\n\n"
        'Example format: ["contract", "liability", "breach", "damages", "jurisdiction"]'
    )


def terms_from_lines(text: str) -> list[str]:
    """Fallback when the reply is not a JSON array: one term per cleaned line."""
    terms: list[str] = []
    for raw in strip_code_fences(text).split("\n"):
        line = raw.strip()
        if not line or line.startswith("[") or line.startswith("]"):
            continue
        line = line.strip(_STRIP_CHARS).rstrip(",").strip(_STRIP_CHARS)
        if line:
            terms.append(line)
    return terms[:MAX_TERMS]


def common_terms_in(content: str) -> list[str]:
    lowered = content.lower()
    return [term for term in COMMON_LEGAL_TERMS if term in lowered][:MAX_FALLBACK_TERMS]


async def extract_legal_terms(
    document_content: str,
    jurisdiction: str,
    *,
    router: ProviderRouter,
) -> list[str]:
    """Return up to ten key legal terms for *document_content*.

    Never raises for provider problems: when no provider can answer, the
    common legal terms present in the document are returned instead.
    """
    messages = [
        {"role": "system", "content": build_terms_system_prompt(jurisdiction)},
        {
            "role": "user",
            "content": (
                f"Extract the key legal terms and concepts from this document for {jurisdiction} "
                f"jurisdiction:\n\n{document_content[:MAX_TERM_INPUT_CHARS]}"
            ),
        },
    ]
    try:
        response = await router.generate_response(messages, task="analysis", temperature=0.1, max_tokens=1000)
    except AIProviderError as exc:
        logger.warning("Legal term extraction unavailable, using keyword fallback: %s", exc)
        return common_terms_in(document_content)

    terms = extract_string_list(response.content)
    if terms is not None:
        return terms[:MAX_TERMS]

    logger.info("Term reply from %s was not a JSON array; parsing lines", response.provider)
    return terms_from_lines(response.content)


# --- research results ---

MAX_SEARCH_INPUT_CHARS = 2000
MAX_PROMPT_TERMS = 5
SEARCH_MAX_TOKENS = 2000
DEFAULT_RELEVANCE = 0.75

CLARIFICATION_TEMPERATURE = 0.3
CLARIFICATION_MAX_TOKENS = 1000
CLARIFICATION_UNAVAILABLE = "Unable to provide clarification at this time. Please try again later."


def build_search_system_prompt(jurisdiction: str) -> str:
    return (
        f"You are a legal research expert specializing in {jurisdiction} law. Generate realistic search "
        "results based on the provided document excerpt and search terms. Create a diverse set of results "
        "including case law, statutes, articles, and news.\n\n"
        "Return ONLY a valid JSON array with 5-8 results. Each result must be a JSON object with these "
        "exact fields:\n"
        "- id (string): unique identifier\n"
        '- type (string): one of "case_law", "statute", "article", "news"\n'
        "- title (string): realistic title\n"
        "- summary (string): concise summary of the content\n"
        "- source (string): realistic source name\n"
        '- url (string): empty string ""\n'
        '- date (string): date in MM/DD/YYYY format or empty string ""\n'
        f'- jurisdiction (string): use "{jurisdiction}"\n'
        "- relevanceScore (number): between 0.1 and 1.0\n"
        "- tags (array): array of relevant legal concept strings\n\n"
        "Do not include any text before or after the JSON array."
    )


def build_search_prompt(document_content: str, jurisdiction: str, terms: list[str]) -> str:
    return (
        f"Document excerpt:\n{document_content[:MAX_SEARCH_INPUT_CHARS]}\n\n"
        f"Search terms: {', '.join(terms[:MAX_PROMPT_TERMS])}\n\n"
        f"Generate 6 realistic search results for {jurisdiction} jurisdiction."
    )


def _relevance(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1:
        return float(value)
    return DEFAULT_RELEVANCE


def normalize_result(raw: dict, jurisdiction: str) -> DeepSearchResult:
    """Fill the gaps of one model-drafted result so it always validates."""
    tags = raw.get("tags")
    content = raw.get("content")
    return DeepSearchResult(
        id=str(raw.get("id") or f"result-{uuid.uuid4().hex[:8]}"),
        type=raw.get("type") if raw.get("type") in RESULT_TYPES else "article",
        title=str(raw.get("title") or "Legal Document"),
        summary=str(raw.get("summary") or "Summary not available"),
        source=str(raw.get("source") or "Legal Database"),
        url=str(raw.get("url") or ""),
        date=str(raw.get("date") or ""),
        jurisdiction=str(raw.get("jurisdiction") or jurisdiction),
        relevance_score=_relevance(raw.get("relevanceScore")),
        tags=[str(t) for t in tags] if isinstance(tags, list) else [jurisdiction],
        content=content if isinstance(content, str) else None,
    )


def fallback_results(jurisdiction: str, terms: list[str]) -> list[DeepSearchResult]:
    """Static research leads used when no provider can draft results."""
    term = terms[0] if terms else "contract"
    title_term = term[:1].upper() + term[1:]
    stamp = uuid.uuid4().hex[:8]
    leads = (
        (
            "case_law",
            f"Smith v. Johnson ({jurisdiction} Supreme Court, 2023)",
            f"This landmark case established key principles regarding {term} interpretation in {jurisdiction}. "
            "The court held that ambiguous terms should be construed against the drafter, particularly in "
            "adhesion contracts.",
            f"{jurisdiction} Supreme Court Reports",
            "03/15/2023",
            0.92,
            [term, "contract interpretation", "adhesion contracts"],
        ),
        (
            "statute",
            f"{jurisdiction} Uniform Commercial Code § 2-302",
            f"This statute governs unconscionable contracts or clauses in {jurisdiction}. It allows courts to "
            "refuse to enforce contracts or terms found to be unconscionable at the time they were made.",
            f"{jurisdiction} Statutes",
            "",
            0.85,
            ["UCC", "unconscionability", "contract law"],
        ),
        (
            "article",
            f"Recent Developments in {jurisdiction} {title_term} Law",
            f"This scholarly article examines recent developments in {jurisdiction}'s approach to {term} law, "
            "including key cases from the past five years and their implications for practitioners.",
            f"{jurisdiction} Law Review",
            "06/22/2024",
            0.78,
            [term, "legal developments", "case analysis"],
        ),
        (
            "news",
            f"{jurisdiction} Legislature Considers New {title_term} Reform Bill",
            f"The {jurisdiction} legislature is currently debating a new bill that would significantly reform "
            f"{term} law in the state, particularly regarding enforcement and remedies.",
            f"{jurisdiction} Legal News",
            "07/02/2024",
            0.65,
            ["legislation", "legal reform", term],
        ),
        (
            "case_law",
            f"Brown v. Metropolitan Corp ({jurisdiction} Court of Appeals, 2022)",
            f"This case addressed the enforceability of {term} provisions when one party has substantially "
            "more bargaining power. The court established a multi-factor test for determining validity.",
            f"{jurisdiction} Appellate Reports",
            "11/30/2022",
            0.81,
            [term, "bargaining power", "enforceability"],
        ),
        (
            "article",
            f"Practical Guide to {jurisdiction} {title_term} Enforcement",
            f"A comprehensive guide for practitioners on enforcing {term} provisions in {jurisdiction}, "
            "including procedural requirements and common pitfalls to avoid.",
            f"{jurisdiction} Bar Journal",
            "01/10/2024",
            0.73,
            [term, "enforcement", "practice guide"],
        ),
    )
    return [
        DeepSearchResult(
            id=f"fallback-{kind}-{stamp}-{index}",
            type=kind,
            title=title,
            summary=summary,
            source=source,
            date=date,
            jurisdiction=jurisdiction,
            relevance_score=score,
            tags=[*tags, jurisdiction],
        )
        for index, (kind, title, summary, source, date, score, tags) in enumerate(leads, start=1)
    ]


async def draft_search_results(
    document_content: str,
    jurisdiction: str,
    terms: list[str],
    *,
    router: ProviderRouter,
) -> list[DeepSearchResult]:
    messages = [
        {"role": "system", "content": build_search_system_prompt(jurisdiction)},
        {"role": "user", "content": build_search_prompt(document_content, jurisdiction, terms)},
    ]
    try:
        response = await router.generate_response(
            messages,
            task="analysis",
            temperature=0.1,
            max_tokens=SEARCH_MAX_TOKENS,
        )
    except AIProviderError as exc:
        logger.warning("Research drafting unavailable, using fallback leads: %s", exc)
        return fallback_results(jurisdiction, terms)

    items = extract_json_array(response.content)
    if items is None:
        logger.warning("Research reply from %s was not a JSON array; using fallback leads", response.provider)
        return fallback_results(jurisdiction, terms)
    return [normalize_result(item, jurisdiction) for item in items if isinstance(item, dict)]


async def perform_deep_search(request: DeepSearchRequest, *, router: ProviderRouter) -> DeepSearchResponse:
    """Research leads for a document; never fails because of provider problems."""
    started = time.monotonic()
    terms = request.all_terms
    results = await draft_search_results(request.document_content, request.jurisdiction, terms, router=router)
    return DeepSearchResponse(
        results=results,
        search_metadata=SearchMetadata(
            total_results=len(results),
            search_time=int((time.monotonic() - started) * 1000),
            jurisdiction=request.jurisdiction,
            search_terms=terms,
        ),
    )


def build_clarification_prompt(result: DeepSearchResult, question: str) -> str:
    return (
        "Search Result:\n"
        f"Title: {result.title}\n"
        f"Summary: {result.summary}\n"
        f"Type: {result.type}\n"
        f"Source: {result.source}\n"
        f"Jurisdiction: {result.jurisdiction}\n\n"
        f"User Question: {question}\n\n"
        "Provide a helpful explanation that addresses the question specifically in relation to this search result."
    )


async def get_clarification(result: DeepSearchResult, question: str, *, router: ProviderRouter) -> str:
    """Answer a follow-up question about one result, or a fixed apology when no provider answers."""
    messages = [
        {
            "role": "system",
            "content": (
                f"You are a legal research expert specializing in {result.jurisdiction} law. Provide a clear, "
                "concise explanation about the search result in response to the user's question. Focus on legal "
                "accuracy and practical implications."
            ),
        },
        {"role": "user", "content": build_clarification_prompt(result, question)},
    ]
    try:
        response = await router.generate_response(
            messages,
            task="chat",
            temperature=CLARIFICATION_TEMPERATURE,
            max_tokens=CLARIFICATION_MAX_TOKENS,
        )
    except AIProviderError as exc:
        logger.error("Clarification failed: %s", exc)
        return CLARIFICATION_UNAVAILABLE
    return response.content
