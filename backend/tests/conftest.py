import json
from typing import Callable

import httpx
import pytest
import pytest_asyncio

from lexgate.core.config import Settings, get_settings

AI_ENV_VARS = (
    "GROQ_API_KEY",
    "TOGETHER_AI_API_KEY",
    "HUGGINGFACE_API_KEY",
    "DEEPSEEK_API_KEY",
    "CEREBRAS_API_KEY",
    "FIREWORKS_API_KEY",
    "CHAT_PROVIDER",
    "PRIMARY_AI_PROVIDER",
    "DOCUMENT_ANALYSIS_PROVIDER",
    "FALLBACK_AI_PROVIDER",
    "AI_DEFAULT_TEMPERATURE",
    "AI_TIMEOUT_SECONDS",
    "AI_ENFORCE_TOKEN_BUDGET",
    "ENVIRONMENT",
)

KEY_FIELDS = {
    "groq": "groq_api_key",
    "together": "together_ai_api_key",
    "huggingface": "huggingface_api_key",
    "deepseek": "deepseek_api_key",
    "cerebras": "cerebras_api_key",
    "fireworks": "fireworks_api_key",
}

HOSTS = {
    "groq": "api.groq.com",
    "together": "api.together.xyz",
    "huggingface": "api-inference.huggingface.co",
    "deepseek": "api.deepseek.com",
    "cerebras": "api.cerebras.ai",
    "fireworks": "api.fireworks.ai",
}


@pytest.fixture(autouse=True)
def _clean_ai_environment(monkeypatch):
    # Routing tests see only the keys they configure.
    for name in AI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(f"VITE_{name}", raising=False)
    get_settings.cache_clear()
    from lexgate.services.ai.common.router import get_router

    get_router.cache_clear()
    yield
    get_settings.cache_clear()
    get_router.cache_clear()


def make_settings(*providers: str, **overrides) -> Settings:
    values = {KEY_FIELDS[p]: f"test-key-{p}" for p in providers}
    values.update(overrides)
    return Settings(**values)


class FakeVendors:
    """Routes httpx requests by host to canned vendor replies and records every call."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self._routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self._routes.get(request.url.host)
        if handler is None:
            return httpx.Response(500, text="no route configured")
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def providers_called(self) -> list[str]:
        by_host = {host: name for name, host in HOSTS.items()}
        return [by_host.get(r.url.host, r.url.host) for r in self.calls]

    def body(self, index: int = -1) -> dict:
        return json.loads(self.calls[index].content)

    def reply(self, provider: str, content: str, *, prompt_tokens: int = 5, completion_tokens: int = 7) -> None:
        payload = {
            "choices": [{"message": {"role": "assistant", "content": content}}],
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        }
        self._routes[HOSTS[provider]] = lambda request: httpx.Response(200, json=payload)

    def reply_raw(self, provider: str, payload) -> None:
        self._routes[HOSTS[provider]] = lambda request: httpx.Response(200, json=payload)

    def fail(self, provider: str, status_code: int = 500, text: str = "upstream exploded") -> None:
        self._routes[HOSTS[provider]] = lambda request: httpx.Response(status_code, text=text)

    def disconnect(self, provider: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self._routes[HOSTS[provider]] = _raise

    def stream(self, provider: str, lines: list[str]) -> None:
        body = "".join(f"{line}\n\n" for line in lines).encode()
        self._routes[HOSTS[provider]] = lambda request: httpx.Response(
            200,
            content=body,
            headers={"content-type": "text/event-stream"},
        )


@pytest.fixture
def vendors() -> FakeVendors:
    return FakeVendors()


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_router(vendors, clock):
    """Factory: ``make_router("groq", "together", fallback_ai_provider="together")``."""
    from lexgate.services.ai.common.router import ProviderRouter
    from lexgate.utils.rate_limit import ProviderRateLimiter

    def _make(*providers: str, **overrides):
        settings = make_settings(*providers, **overrides)
        limiter = ProviderRateLimiter(
            enforce_token_budget=settings.ai_enforce_token_budget,
            clock=clock,
        )
        return ProviderRouter(settings, rate_limiter=limiter, transport=vendors.transport)

    return _make


@pytest_asyncio.fixture
async def api_client():
    """In-process ASGI client; tests install their router via ``api_client.use_router``."""
    from lexgate.core.dependencies import get_ai_router
    from lexgate.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:

        def use_router(router) -> None:
            app.dependency_overrides[get_ai_router] = lambda: router

        c.use_router = use_router
        yield c
    app.dependency_overrides.clear()
