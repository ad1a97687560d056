"""Shared test fixtures for the scheme assistant test suite."""

from typing import Any, List, Optional

import pytest
import pytest_asyncio

from scheme_assistant.agent.core import IntentType
from scheme_assistant.agent.orchestrator import ConversationOrchestrator
from scheme_assistant.clock import ManualClock
from scheme_assistant.config import SupportedLanguage
from scheme_assistant.llm.classifier import BaseIntentClassifier, IntentCandidate, KeywordIntentClassifier
from scheme_assistant.memory.manager import SessionManager
from scheme_assistant.resilience import RetryPolicy
from scheme_assistant.tools.cache import SchemeCache
from scheme_assistant.tools.catalog import GOVERNMENT_SCHEMES
from scheme_assistant.tools.repository import InMemorySchemeRepository


class ScriptedClassifier(BaseIntentClassifier):
    """Returns queued candidates in order, then UNKNOWN."""

    def __init__(self, candidates: Optional[List[Any]] = None) -> None:
        self.candidates = list(candidates or [])
        self.calls: List[str] = []

    def queue(self, intent: IntentType, confidence: float = 0.9, **extra: Any) -> None:
        self.candidates.append(IntentCandidate(intent=intent, confidence=confidence, **extra))

    async def classify(self, text, language, active_question=None, scheme_names=None) -> IntentCandidate:
        self.calls.append(text)
        if not self.candidates:
            return IntentCandidate(intent=IntentType.UNKNOWN, confidence=0.3)
        candidate = self.candidates.pop(0)
        if isinstance(candidate, Exception):
            raise candidate
        return candidate


@pytest.fixture
def clock() -> ManualClock:
    """Deterministic clock starting at t=1000s."""
    return ManualClock(start=1000.0)


@pytest.fixture
def repository() -> InMemorySchemeRepository:
    """Repository seeded with the standard catalog."""
    return InMemorySchemeRepository(GOVERNMENT_SCHEMES)


@pytest.fixture
def cache(repository) -> SchemeCache:
    return SchemeCache(repository, RetryPolicy.no_delay())


@pytest.fixture
def manager(clock) -> SessionManager:
    return SessionManager(
        clock=clock,
        ttl_seconds=1800.0,
        retention_seconds=3600.0,
        max_history=100,
        commit_max_attempts=3,
    )


@pytest.fixture
def scripted_classifier() -> ScriptedClassifier:
    return ScriptedClassifier()


def make_orchestrator(manager, cache, clock, classifier, **overrides: Any) -> ConversationOrchestrator:
    options = dict(
        sessions=manager,
        cache=cache,
        classifier=classifier,
        retry_policy=RetryPolicy.no_delay(),
        clock=clock,
        turn_budget_seconds=5.0,
        summary_threshold=10,
        inactivity_timeout_seconds=120.0,
    )
    options.update(overrides)
    return ConversationOrchestrator(**options)


@pytest.fixture
def orchestrator_factory(manager, cache, clock):
    """Builds an orchestrator around a given classifier, with overrides"""
    def factory(classifier, **overrides: Any) -> ConversationOrchestrator:
        return make_orchestrator(manager, cache, clock, classifier, **overrides)
    return factory


@pytest_asyncio.fixture
async def orchestrator(manager, cache, clock) -> ConversationOrchestrator:
    """Keyword-driven orchestrator over a warmed cache."""
    await cache.warm()
    return make_orchestrator(manager, cache, clock, KeywordIntentClassifier())


@pytest_asyncio.fixture
async def scripted_orchestrator(manager, cache, clock, scripted_classifier) -> ConversationOrchestrator:
    """Orchestrator whose classifier replays queued candidates."""
    await cache.warm()
    return make_orchestrator(manager, cache, clock, scripted_classifier)


@pytest.fixture
def english() -> SupportedLanguage:
    return SupportedLanguage.ENGLISH
