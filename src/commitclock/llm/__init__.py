"""LLM integration for feature grouping and effort prediction."""

from commitclock.llm.base import BaseLLMProvider, ChatResult
from commitclock.llm.classifier import (
    MERGE_PREFIXES,
    FeatureClassifier,
    normalize_groups,
    prepare_commit_entries,
)
from commitclock.llm.openai_provider import OpenAIProvider, OpenAIProviderError
from commitclock.llm.prompts import PromptTemplates

__all__ = [
    "BaseLLMProvider",
    "ChatResult",
    "OpenAIProvider",
    "OpenAIProviderError",
    "PromptTemplates",
    "FeatureClassifier",
    "MERGE_PREFIXES",
    "normalize_groups",
    "prepare_commit_entries",
]
