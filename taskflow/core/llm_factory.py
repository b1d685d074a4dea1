"""LLM Provider Factory - provider selection for the task classifier"""

import logging
from typing import Optional

import httpx
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from taskflow.core.llm_config import LLMSettings, get_ca_bundle_path, get_llm_settings

logger = logging.getLogger(__name__)


def get_llm_provider(settings: LLMSettings) -> BaseChatModel:
    """
    Create a LangChain chat model for the configured provider.

    Args:
        settings: LLM configuration (provider, model, API keys, etc.)

    Returns:
        Configured LangChain chat model instance

    Raises:
        ValueError: If the provider requires an API key that is not set

    Supported Providers:
    --------------------
    - openai: OpenAI API (requires OPENAI_API_KEY)
    - gemini: Google Gemini API (requires GEMINI_API_KEY)
    - anthropic: Anthropic API (requires ANTHROPIC_API_KEY)
    - openrouter: OpenRouter API (requires OPENROUTER_API_KEY)
    - ollama: Local Ollama instance (default: http://localhost:11434)
    """
    api_key = settings.get_api_key()
    base_url = settings.get_base_url()

    if settings.provider == "ollama":
        return ChatOllama(
            model=settings.model,
            base_url=base_url,
            temperature=settings.temperature,
            num_predict=settings.max_tokens,
            format="json",
        )

    if not api_key:
        raise ValueError(
            f"{settings.provider} provider requires "
            f"{settings.provider.upper()}_API_KEY environment variable"
        )

    if settings.provider == "openai":
        return ChatOpenAI(
            model=settings.model,
            api_key=api_key,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )

    elif settings.provider == "openrouter":
        # Async httpx client so the corporate CA bundle is honoured on async calls
        http_async_client = httpx.AsyncClient(verify=get_ca_bundle_path(), trust_env=True)
        return ChatOpenAI(
            model=settings.model,
            base_url=base_url,
            api_key=api_key,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            http_async_client=http_async_client,
        )

    elif settings.provider == "anthropic":
        return ChatAnthropic(
            model=settings.model,
            api_key=api_key,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )

    elif settings.provider == "gemini":
        logger.info(f"Creating ChatGoogleGenerativeAI with model={settings.model}")
        return ChatGoogleGenerativeAI(
            model=settings.model,
            google_api_key=api_key,
            temperature=settings.temperature,
            max_output_tokens=settings.max_tokens,
        )

    raise ValueError(
        f"Unknown LLM provider: {settings.provider}. "
        f"Supported providers: openai, gemini, anthropic, openrouter, ollama"
    )


def get_llm(settings: Optional[LLMSettings] = None) -> BaseChatModel:
    """Get a chat model from explicit settings or the environment defaults."""
    return get_llm_provider(settings or get_llm_settings())
