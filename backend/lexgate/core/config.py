from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROVIDER_IDS = ("groq", "together", "huggingface", "deepseek", "cerebras", "fireworks")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        validate_by_name=True,
        populate_by_name=True,
    )

    environment: str = Field(default="development", validation_alias=AliasChoices("ENVIRONMENT"))
    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = Field(
        default=False,
        validation_alias=AliasChoices("EXPOSE_ERROR_DETAILS"),
    )

    # Vendor credentials. The VITE_* names are what the browser build used.
    groq_api_key: str = Field(default="", validation_alias=AliasChoices("GROQ_API_KEY", "VITE_GROQ_API_KEY"))
    together_ai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("TOGETHER_AI_API_KEY", "VITE_TOGETHER_AI_API_KEY"),
    )
    huggingface_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("HUGGINGFACE_API_KEY", "VITE_HUGGINGFACE_API_KEY"),
    )
    deepseek_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("DEEPSEEK_API_KEY", "VITE_DEEPSEEK_API_KEY"),
    )
    cerebras_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("CEREBRAS_API_KEY", "VITE_CEREBRAS_API_KEY"),
    )
    fireworks_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("FIREWORKS_API_KEY", "VITE_FIREWORKS_API_KEY"),
    )

    chat_provider: str = Field(default="groq", validation_alias=AliasChoices("CHAT_PROVIDER", "VITE_CHAT_PROVIDER"))
    primary_ai_provider: str = Field(
        default="groq",
        validation_alias=AliasChoices("PRIMARY_AI_PROVIDER", "VITE_PRIMARY_AI_PROVIDER"),
    )
    document_analysis_provider: str = Field(
        default="deepseek",
        validation_alias=AliasChoices("DOCUMENT_ANALYSIS_PROVIDER", "VITE_DOCUMENT_ANALYSIS_PROVIDER"),
    )
    fallback_ai_provider: str = Field(
        default="together",
        validation_alias=AliasChoices("FALLBACK_AI_PROVIDER", "VITE_FALLBACK_AI_PROVIDER"),
    )

    ai_default_temperature: float = Field(
        default=0.1,
        validation_alias=AliasChoices("AI_DEFAULT_TEMPERATURE"),
    )
    ai_timeout_seconds: float | None = Field(
        default=60.0,
        validation_alias=AliasChoices("AI_TIMEOUT_SECONDS"),
    )
    ai_enforce_token_budget: bool = Field(
        default=False,
        validation_alias=AliasChoices("AI_ENFORCE_TOKEN_BUDGET"),
    )

    cors_allow_origins: list[str] = Field(default_factory=list)
    cors_allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: list[str] = Field(default_factory=lambda: ["Authorization", "Content-Type", "Accept"])

    @field_validator("cors_allow_origins", "cors_allow_methods", "cors_allow_headers", mode="before")
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator(
        "chat_provider",
        "primary_ai_provider",
        "document_analysis_provider",
        "fallback_ai_provider",
        mode="before",
    )
    @classmethod
    def _normalize_provider_id(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def provider_api_keys(self) -> dict[str, str]:
        return {
            "groq": self.groq_api_key,
            "together": self.together_ai_api_key,
            "huggingface": self.huggingface_api_key,
            "deepseek": self.deepseek_api_key,
            "cerebras": self.cerebras_api_key,
            "fireworks": self.fireworks_api_key,
        }

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}

    def validate_required_config(self) -> list[str]:
        """Return human-readable configuration problems (empty when healthy)."""
        from lexgate.services.ai.common.credentials import CredentialTable

        errors: list[str] = []
        credentials = CredentialTable.from_settings(self)
        if not credentials.configured_ids():
            errors.append("No AI provider API key configured")

        for field_name in (
            "chat_provider",
            "primary_ai_provider",
            "document_analysis_provider",
            "fallback_ai_provider",
        ):
            value = getattr(self, field_name)
            if value and value not in KNOWN_PROVIDER_IDS:
                errors.append(f"{field_name.upper()}={value!r} is not a known provider")

        if self.ai_timeout_seconds is not None and self.ai_timeout_seconds <= 0:
            errors.append("AI_TIMEOUT_SECONDS must be positive")
        return errors


@lru_cache
def get_settings() -> Settings:
    return Settings()
