"""LLM module."""

from .extractor import IIntroductionExtractor, IntroductionExtractor, parse_introduction
from .llm_provider import ILLMProvider, LLMProvider, to_llm_messages
from .responder import IResponseGenerator, ResponseGenerator

__all__ = [
    "ILLMProvider",
    "LLMProvider",
    "IIntroductionExtractor",
    "IntroductionExtractor",
    "IResponseGenerator",
    "ResponseGenerator",
    "parse_introduction",
    "to_llm_messages",
]
