"""LLM Configuration for Provider-Agnostic Classifier Access"""

import os
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, model_validator
import certifi

# Ensure HTTP clients (httpx/openai/langchain) have a CA bundle available.
os.environ.setdefault("SSL_CERT_FILE", certifi.where())


def get_ca_bundle_path() -> str:
    """Return the CA bundle path in use for HTTP clients."""
    return os.environ.get("SSL_CERT_FILE", certifi.where())


# Default models per provider
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-1.5-flash",
    "anthropic": "claude-sonnet-4-20250514",
    "openrouter": "meta-llama/llama-3.2-3b-instruct",
    "ollama": "qwen3:8b",
}

LLMProvider = Literal["openai", "gemini", "anthropic", "openrouter", "ollama"]


class LLMSettings(BaseSettings):
    """
    LLM Provider Configuration for task classification.

    Environment Variables:
    ---------------------
    LLM_PROVIDER: Active provider (openai | gemini | anthropic | openrouter | ollama)
    LLM_MODEL: Model override (optional, uses provider default if not set)
    LLM_TEMPERATURE: Sampling temperature (0.0-1.0, default: 0.2)
    LLM_MAX_TOKENS: Maximum tokens to generate (default: 500)

    Provider-Specific API Keys:
    ---------------------------
    OPENAI_API_KEY, GEMINI_API_KEY, ANTHROPIC_API_KEY, OPENROUTER_API_KEY
    OLLAMA_BASE_URL: Ollama server URL (default: http://localhost:11434)

    Example .env:
    -------------
    LLM_PROVIDER=gemini
    GEMINI_API_KEY=AIza...
    LLM_MODEL=gemini-2.0-flash
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    provider: LLMProvider = Field(default="openai", alias="LLM_PROVIDER")

    # Model override (if not set, uses DEFAULT_MODELS[provider])
    model: Optional[str] = Field(default=None, alias="LLM_MODEL")

    # Generation parameters
    temperature: float = Field(default=0.2, alias="LLM_TEMPERATURE")
    max_tokens: int = Field(default=500, alias="LLM_MAX_TOKENS")

    # Provider-specific API keys (all can be stored, used based on provider)
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")

    ollama_base_url: Optional[str] = Field(
        default="http://localhost:11434", alias="OLLAMA_BASE_URL"
    )

    @model_validator(mode="after")
    def resolve_provider_config(self) -> "LLMSettings":
        """Resolve the default model for the selected provider."""
        if self.model is None:
            self.model = DEFAULT_MODELS[self.provider]

        return self

    def get_api_key(self) -> Optional[str]:
        """Get the API key for the current provider."""
        provider_keys = {
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
            "anthropic": self.anthropic_api_key,
            "openrouter": self.openrouter_api_key,
            "ollama": None,  # Ollama doesn't need an API key
        }
        return provider_keys.get(self.provider)

    def get_base_url(self) -> Optional[str]:
        """Get the base URL for the current provider."""
        if self.provider == "ollama":
            return self.ollama_base_url or "http://localhost:11434"
        if self.provider == "openrouter":
            return "https://openrouter.ai/api/v1"
        return None


def get_llm_settings() -> LLMSettings:
    """
    Get current LLM settings from environment.

    Raises:
        ValidationError: If LLM_PROVIDER names an unsupported provider
    """
    return LLMSettings()
