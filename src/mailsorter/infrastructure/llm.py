"""Chat model factory for the configured LLM provider."""

from langchain_core.language_models.chat_models import BaseChatModel
from loguru import logger

from mailsorter.infrastructure.settings import Settings

DEFAULT_MODELS = {
    "groq": "llama-3.1-8b-instant",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}

# A category name is a word or two
CLASSIFIER_MAX_TOKENS = 16


def create_llm(settings: Settings) -> BaseChatModel:
    """Create the appropriate LLM based on settings."""
    provider = settings.llm_provider
    model = settings.llm_model_name or DEFAULT_MODELS.get(provider, settings.vllm_model_name)
    timeout = settings.llm_timeout_seconds

    if provider == "local":
        from langchain_openai import ChatOpenAI

        logger.info(f"Initializing local vLLM at {settings.vllm_base_url} with model {model}")
        return ChatOpenAI(
            base_url=settings.vllm_base_url,
            api_key="not-needed",
            model_name=model,
            temperature=0,
            max_tokens=CLASSIFIER_MAX_TOKENS,
            timeout=timeout,
        )

    elif provider == "groq":
        from langchain_groq import ChatGroq

        if not settings.groq_api_key:
            raise ValueError("GROQ_API_KEY is required when llm_provider=groq")

        logger.info(f"Initializing Groq LLM with model {model}")
        return ChatGroq(
            api_key=settings.groq_api_key.get_secret_value(),
            model_name=model,
            temperature=0,
            max_tokens=CLASSIFIER_MAX_TOKENS,
            timeout=timeout,
        )

    elif provider == "openai":
        from langchain_openai import ChatOpenAI

        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required when llm_provider=openai")

        logger.info(f"Initializing OpenAI LLM with model {model}")
        return ChatOpenAI(
            api_key=settings.openai_api_key.get_secret_value(),
            model_name=model,
            temperature=0,
            max_tokens=CLASSIFIER_MAX_TOKENS,
            timeout=timeout,
        )

    elif provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        if not settings.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is required when llm_provider=anthropic")

        logger.info(f"Initializing Anthropic LLM with model {model}")
        return ChatAnthropic(
            api_key=settings.anthropic_api_key.get_secret_value(),
            model_name=model,
            temperature=0,
            max_tokens=CLASSIFIER_MAX_TOKENS,
            timeout=timeout,
        )

    else:
        raise ValueError(f"Unknown LLM provider: {provider}")
