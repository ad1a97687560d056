"""
Scheme tools: records, repository, cache and the eligibility engine
"""
from .schemes import ApplicationStep, CriterionKind, CriterionSpec, LocalizedScheme, Scheme
from .repository import InMemorySchemeRepository, SchemeRepository
from .cache import SchemeCache
from .eligibility import (
    CustomPredicate,
    EligibilityCriteria,
    EligibilityEngine,
    EligibilityResult,
    MembershipPredicate,
    PredicateRegistry,
    RangePredicate,
)
from .catalog import GOVERNMENT_SCHEMES

__all__ = [
    "ApplicationStep",
    "CriterionKind",
    "CriterionSpec",
    "LocalizedScheme",
    "Scheme",
    "SchemeRepository",
    "InMemorySchemeRepository",
    "SchemeCache",
    "EligibilityEngine",
    "EligibilityCriteria",
    "EligibilityResult",
    "PredicateRegistry",
    "RangePredicate",
    "MembershipPredicate",
    "CustomPredicate",
    "GOVERNMENT_SCHEMES",
]
