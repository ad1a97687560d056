"""
Eligibility Rule Engine
Evaluates a scheme's ordered predicates against a partial user profile
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ..agent.templates import field_label, render
from ..config import SupportedLanguage
from ..errors import ValidationFailure
from ..memory.memory import UserProfile
from ..observability import get_logger
from .schemes import CriterionKind, CriterionSpec, Scheme

logger = get_logger(__name__)

# Fields asked about first, in this order; anything else follows in declaration order
FIELD_PRIORITY = ("age", "income", "location", "occupation")

TRUE_WORDS = {"true", "yes", "y", "1", "haan", "हाँ", "हां", "ஆம்"}
FALSE_WORDS = {"false", "no", "n", "0", "nahi", "नहीं", "இல்லை"}

ProfileLike = Union[UserProfile, Mapping[str, Any]]


def as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_WORDS:
            return True
        if text in FALSE_WORDS:
            return False
    return None


def as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return None
    return None


def _fmt(number: Optional[float]) -> str:
    if number is None:
        return ""
    return str(int(number)) if float(number).is_integer() else f"{number:g}"


class Predicate(ABC):
    """A named boolean test over one profile field"""

    def __init__(self, name: str, field: str):
        self.name = name
        self.field = field

    @abstractmethod
    def evaluate(self, value: Any) -> bool:
        pass

    @abstractmethod
    def explain(self, value: Any, met: bool, language: SupportedLanguage) -> str:
        pass


class RangePredicate(Predicate):
    """Inclusive numeric bounds; either bound may be open"""

    def __init__(self, name: str, field: str, minimum: Optional[float] = None, maximum: Optional[float] = None):
        super().__init__(name, field)
        self.minimum = minimum
        self.maximum = maximum

    def evaluate(self, value: Any) -> bool:
        number = as_number(value)
        if number is None:
            return False
        if self.minimum is not None and number < self.minimum:
            return False
        if self.maximum is not None and number > self.maximum:
            return False
        return True

    def bounds(self) -> str:
        if self.minimum is not None and self.maximum is not None:
            return f"{_fmt(self.minimum)}-{_fmt(self.maximum)}"
        if self.minimum is not None:
            return f">= {_fmt(self.minimum)}"
        return f"<= {_fmt(self.maximum)}"

    def explain(self, value: Any, met: bool, language: SupportedLanguage) -> str:
        key = "criterion_range_met" if met else "criterion_range_unmet"
        return render(key, language, field=field_label(self.field, language),
                      value=value, bounds=self.bounds())


class MembershipPredicate(Predicate):
    """Value must be one of an allowed set (case-insensitive)"""

    def __init__(self, name: str, field: str, allowed: Iterable[str]):
        super().__init__(name, field)
        self.allowed = tuple(allowed)
        self._normalized = {str(a).strip().lower() for a in self.allowed}

    def evaluate(self, value: Any) -> bool:
        if value is None:
            return False
        return str(value).strip().lower() in self._normalized

    def explain(self, value: Any, met: bool, language: SupportedLanguage) -> str:
        if met:
            return render("criterion_member_met", language,
                          field=field_label(self.field, language), value=value)
        return render("criterion_member_unmet", language,
                      field=field_label(self.field, language), value=value,
                      allowed=", ".join(self.allowed))


class CustomPredicate(Predicate):
    def __init__(self, name: str, field: str, predicate_name: str, fn: Callable[[Any], bool]):
        super().__init__(name, field)
        self.predicate_name = predicate_name
        self.fn = fn

    def evaluate(self, value: Any) -> bool:
        return bool(self.fn(value))

    def explain(self, value: Any, met: bool, language: SupportedLanguage) -> str:
        key = "criterion_custom_met" if met else "criterion_custom_unmet"
        return render(key, language, field=field_label(self.field, language))


class PredicateRegistry:
    """Named custom predicates; new ones can be registered without touching the engine"""

    def __init__(self):
        self._predicates: Dict[str, Callable[[Any], bool]] = {}
        self.register("is_true", lambda v: as_bool(v) is True)
        self.register("is_false", lambda v: as_bool(v) is False)

    def register(self, name: str, fn: Callable[[Any], bool]):
        self._predicates[name] = fn

    def get(self, name: str) -> Callable[[Any], bool]:
        if name not in self._predicates:
            raise ValidationFailure(f"Unknown predicate: {name}", field="predicate")
        return self._predicates[name]

    def __contains__(self, name: str) -> bool:
        return name in self._predicates


class EligibilityCriteria:
    """Ordered predicates for one scheme"""

    def __init__(self, predicates: Sequence[Predicate] = ()):
        self.predicates: Tuple[Predicate, ...] = tuple(predicates)

    @classmethod
    def from_specs(cls, specs: Iterable[CriterionSpec], registry: PredicateRegistry) -> "EligibilityCriteria":
        predicates: List[Predicate] = []
        for spec in specs:
            if spec.kind == CriterionKind.RANGE:
                predicates.append(RangePredicate(spec.name, spec.field, spec.minimum, spec.maximum))
            elif spec.kind == CriterionKind.MEMBERSHIP:
                predicates.append(MembershipPredicate(spec.name, spec.field, spec.allowed))
            else:
                predicates.append(CustomPredicate(spec.name, spec.field, spec.predicate,
                                                  registry.get(spec.predicate)))
        return cls(predicates)

    def fields(self) -> List[str]:
        seen: List[str] = []
        for p in self.predicates:
            if p.field not in seen:
                seen.append(p.field)
        return seen

    def __len__(self) -> int:
        return len(self.predicates)


class EligibilityResult(BaseModel):
    """Outcome of one evaluation; computed fresh every time, never cached"""
    model_config = ConfigDict(frozen=True)

    scheme_id: Optional[str] = None
    eligible: bool
    complete: bool
    matched: Tuple[str, ...] = ()
    unmatched: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()
    explanations: Tuple[str, ...]
    confidence: float
    next_field: Optional[str] = None
    alternatives: Tuple[str, ...] = ()

    @property
    def explanation(self) -> str:
        return " ".join(self.explanations)


def _profile_values(profile: ProfileLike) -> Dict[str, Any]:
    if isinstance(profile, UserProfile):
        return profile.as_dict()
    return {k: v for k, v in dict(profile).items() if v is not None}


class EligibilityEngine:
    """
    Pure rule evaluation: the same criteria and profile always yield the same result
    """

    def __init__(self, registry: Optional[PredicateRegistry] = None, alternative_limit: int = 3):
        self.registry = registry or PredicateRegistry()
        self.alternative_limit = alternative_limit

    def compile(self, scheme: Scheme) -> EligibilityCriteria:
        return EligibilityCriteria.from_specs(scheme.criteria, self.registry)

    def next_question_field(self, criteria: EligibilityCriteria, profile: ProfileLike) -> Optional[str]:
        """Highest-priority field the profile still lacks"""
        values = _profile_values(profile)
        missing = [f for f in criteria.fields() if f not in values]
        if not missing:
            return None
        declared = criteria.fields()

        def rank(field: str):
            if field in FIELD_PRIORITY:
                return (0, FIELD_PRIORITY.index(field))
            return (1, declared.index(field))

        return sorted(missing, key=rank)[0]

    def evaluate(self,
                 criteria: EligibilityCriteria,
                 profile: ProfileLike,
                 language: SupportedLanguage,
                 scheme_id: Optional[str] = None) -> EligibilityResult:
        values = _profile_values(profile)

        if not criteria.predicates:
            return EligibilityResult(
                scheme_id=scheme_id,
                eligible=True,
                complete=True,
                explanations=(render("open_to_all", language),),
                confidence=1.0,
            )

        matched: List[str] = []
        unmatched: List[str] = []
        missing: List[str] = []
        explanations: List[str] = []

        for predicate in criteria.predicates:
            if predicate.field not in values:
                missing.append(predicate.name)
                continue
            value = values[predicate.field]
            met = predicate.evaluate(value)
            (matched if met else unmatched).append(predicate.name)
            explanations.append(predicate.explain(value, met, language))

        complete = not missing
        next_field = None
        if not complete:
            next_field = self.next_question_field(criteria, values)
            explanations.append(render("criterion_missing", language, field=field_label(next_field, language)))

        evaluated = len(matched) + len(unmatched)
        return EligibilityResult(
            scheme_id=scheme_id,
            eligible=complete and not unmatched,
            complete=complete,
            matched=tuple(matched),
            unmatched=tuple(unmatched),
            missing=tuple(missing),
            explanations=tuple(explanations),
            confidence=1.0 if complete else evaluated / len(criteria),
            next_field=next_field,
        )

    def check_scheme(self,
                     scheme: Scheme,
                     profile: ProfileLike,
                     language: SupportedLanguage,
                     candidates: Iterable[Scheme] = ()) -> EligibilityResult:
        """Evaluate one scheme; a complete negative result carries ranked alternatives"""
        result = self.evaluate(self.compile(scheme), profile, language, scheme_id=scheme.id)
        if result.complete and not result.eligible:
            alternatives = self.find_alternatives(scheme, profile, language, candidates)
            result = result.model_copy(update={"alternatives": tuple(alternatives)})
        return result

    def find_alternatives(self,
                          scheme: Scheme,
                          profile: ProfileLike,
                          language: SupportedLanguage,
                          candidates: Iterable[Scheme]) -> List[str]:
        eligible: List[Scheme] = []
        for candidate in candidates:
            if candidate.id == scheme.id:
                continue
            try:
                criteria = self.compile(candidate)
            except ValidationFailure as e:
                logger.warning("alternative_skipped", scheme_id=candidate.id, error=str(e))
                continue
            result = self.evaluate(criteria, profile, language, scheme_id=candidate.id)
            if result.complete and result.eligible:
                eligible.append(candidate)

        eligible.sort(key=lambda c: (c.category != scheme.category, -c.version, c.id))
        return [c.id for c in eligible[:self.alternative_limit]]
