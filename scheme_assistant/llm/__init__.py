"""
LLM Package
Contains LLM client implementations and intent classifiers
"""
from .client import (
    BaseLLMClient,
    OpenAIClient,
    AnthropicClient,
    MockLLMClient,
    LLMClientFactory
)
from .classifier import (
    IntentCandidate,
    BaseIntentClassifier,
    KeywordIntentClassifier,
    LLMIntentClassifier,
    build_classifier
)

__all__ = [
    "BaseLLMClient",
    "OpenAIClient",
    "AnthropicClient",
    "MockLLMClient",
    "LLMClientFactory",
    "IntentCandidate",
    "BaseIntentClassifier",
    "KeywordIntentClassifier",
    "LLMIntentClassifier",
    "build_classifier"
]
