"""
Assistant Configuration Settings
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from enum import Enum


class SupportedLanguage(str, Enum):
    ENGLISH = "english"
    HINDI = "hindi"
    TAMIL = "tamil"


# Language to ISO code mapping
LANGUAGE_CODES = {
    "english": "en-IN",
    "hindi": "hi-IN",
    "tamil": "ta-IN",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # LLM Settings
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    llm_model: str = Field(default="gpt-4o", alias="LLM_MODEL")
    intent_classifier: str = Field(default="keyword", alias="INTENT_CLASSIFIER")

    # Language Settings
    default_language: SupportedLanguage = Field(
        default=SupportedLanguage.ENGLISH,
        alias="DEFAULT_LANGUAGE"
    )

    # Session lifecycle
    session_ttl_seconds: float = Field(default=1800.0, alias="SESSION_TTL_SECONDS")
    returning_user_retention_seconds: float = Field(
        default=30 * 24 * 3600.0,
        alias="RETURNING_USER_RETENTION_SECONDS"
    )
    max_history_messages: int = Field(default=100, alias="MAX_HISTORY_MESSAGES")
    max_state_stack: int = Field(default=20, alias="MAX_STATE_STACK")
    context_extras_limit: int = Field(default=16, alias="CONTEXT_EXTRAS_LIMIT")
    commit_max_attempts: int = Field(default=3, alias="COMMIT_MAX_ATTEMPTS")

    # Conversation
    context_window_turns: int = Field(default=10, alias="CONTEXT_WINDOW_TURNS")
    summary_turn_threshold: int = Field(default=10, alias="SUMMARY_TURN_THRESHOLD")
    inactivity_timeout_seconds: float = Field(default=120.0, alias="INACTIVITY_TIMEOUT_SECONDS")
    confidence_threshold: float = Field(default=0.5, alias="CONFIDENCE_THRESHOLD")
    alternative_scheme_limit: int = Field(default=3, alias="ALTERNATIVE_SCHEME_LIMIT")

    # External calls
    turn_budget_seconds: float = Field(default=5.0, alias="TURN_BUDGET_SECONDS")
    retry_max_attempts: int = Field(default=3, alias="RETRY_MAX_ATTEMPTS")
    retry_backoff_base: float = Field(default=0.5, alias="RETRY_BACKOFF_BASE")
    retry_backoff_max: float = Field(default=4.0, alias="RETRY_BACKOFF_MAX")
    circuit_failure_threshold: int = Field(default=5, alias="CIRCUIT_FAILURE_THRESHOLD")
    circuit_reset_seconds: float = Field(default=30.0, alias="CIRCUIT_RESET_SECONDS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")
    redact_pii: bool = Field(default=True, alias="REDACT_PII")

    # Server Settings
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    debug: bool = Field(default=False, alias="DEBUG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    def get_language_code(self, language: Optional[str] = None) -> str:
        """Get ISO language code for the specified or default language"""
        lang = language or self.default_language.value
        return LANGUAGE_CODES.get(lang, "en-IN")

    def resolve_language(self, language: Optional[str]) -> SupportedLanguage:
        """Map a free-form language name onto a supported language, falling back to the default"""
        if isinstance(language, SupportedLanguage):
            return language
        if language:
            try:
                return SupportedLanguage(language.strip().lower())
            except ValueError:
                pass
        return self.default_language


# Global settings instance
settings = Settings()
