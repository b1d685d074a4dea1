import pytest
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from taskflow.core.database import get_async_url
from taskflow.core.llm_config import DEFAULT_MODELS, LLMSettings
from taskflow.core.llm_factory import get_llm_provider


@pytest.fixture(autouse=True)
def clean_llm_env(monkeypatch):
    for name in ("LLM_PROVIDER", "LLM_MODEL", "OPENAI_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize("provider", sorted(DEFAULT_MODELS))
def test_default_model_per_provider(provider):
    assert LLMSettings(LLM_PROVIDER=provider).model == DEFAULT_MODELS[provider]


def test_model_override(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "gemini")
    monkeypatch.setenv("LLM_MODEL", "gemini-2.0-flash")

    llm_settings = LLMSettings()

    assert llm_settings.provider == "gemini"
    assert llm_settings.model == "gemini-2.0-flash"


def test_api_key_and_base_url_follow_provider():
    llm_settings = LLMSettings(LLM_PROVIDER="openrouter", OPENROUTER_API_KEY="or-key", OPENAI_API_KEY="oa-key")

    assert llm_settings.get_api_key() == "or-key"
    assert llm_settings.get_base_url() == "https://openrouter.ai/api/v1"
    assert LLMSettings(LLM_PROVIDER="ollama").get_api_key() is None
    assert LLMSettings(LLM_PROVIDER="openai").get_base_url() is None


def test_factory_requires_api_key():
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        get_llm_provider(LLMSettings(LLM_PROVIDER="openai", OPENAI_API_KEY=None))


def test_factory_builds_openai_model():
    llm = get_llm_provider(LLMSettings(LLM_PROVIDER="openai", OPENAI_API_KEY="sk-test"))

    assert isinstance(llm, ChatOpenAI)
    assert llm.model_name == DEFAULT_MODELS["openai"]


def test_factory_builds_ollama_without_key():
    llm = get_llm_provider(LLMSettings(LLM_PROVIDER="ollama", OLLAMA_BASE_URL="http://ollama:11434"))

    assert isinstance(llm, ChatOllama)
    assert llm.base_url == "http://ollama:11434"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgresql://u:p@db/taskflow", "postgresql+asyncpg://u:p@db/taskflow"),
        ("sqlite:///./taskflow.db", "sqlite+aiosqlite:///./taskflow.db"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_async_database_url(url, expected):
    assert get_async_url(url) == expected
