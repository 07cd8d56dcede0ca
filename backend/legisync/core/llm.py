"""
LLM factory for the application.
Central place for creating LLM instances.
"""

from langchain_openai import ChatOpenAI

from legisync.core.config import get_settings


def get_llm(temperature: float | None = None) -> ChatOpenAI:
    """
    Get the configured LLM for bill analysis.

    Args:
        temperature: Override for the configured temperature
                     (0.0 = deterministic, 1.0 = creative)

    Returns:
        Configured ChatOpenAI instance
    """
    settings = get_settings()
    return ChatOpenAI(
        openai_api_base=settings.llm_api_url,
        openai_api_key=settings.llm_api_key,
        model_name=settings.llm_model_name,
        temperature=settings.llm_temperature if temperature is None else temperature,
        streaming=False,
    )
