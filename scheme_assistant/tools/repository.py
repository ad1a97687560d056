"""
Scheme Repository
Versioned persistent store of scheme records; every update keeps the prior versions
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ..errors import SchemeNotFound, ValidationFailure
from ..observability import get_logger
from .eligibility import PredicateRegistry
from .schemes import CriterionKind, Scheme

logger = get_logger(__name__)

SchemeInput = Union[Scheme, Mapping[str, Any]]


def to_scheme(record: SchemeInput, **overrides: Any) -> Scheme:
    """Validate a record before it is persisted"""
    data = record.model_dump() if isinstance(record, Scheme) else dict(record)
    data.update(overrides)
    try:
        return Scheme.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())) or None
        raise ValidationFailure(f"Invalid scheme record: {first.get('msg', str(e))}", field=field) from e


def check_predicates(scheme: Scheme, registry: PredicateRegistry):
    """Every custom criterion must name a registered predicate"""
    for criterion in scheme.criteria:
        if criterion.kind == CriterionKind.CUSTOM and criterion.predicate not in registry:
            raise ValidationFailure(
                f"Criterion '{criterion.name}' uses unknown predicate: {criterion.predicate}",
                field="criteria",
            )


class SchemeRepository(ABC):
    """Abstract interface for scheme storage.

    Implementations may be remote; callers wrap calls in the retry policy
    and treat TransientExternalFailure as retryable.
    """

    @abstractmethod
    async def create(self, record: SchemeInput) -> Scheme:
        """Store a new scheme at version 1"""
        pass

    @abstractmethod
    async def read(self, scheme_id: str, version: Optional[int] = None) -> Scheme:
        """Read the current (or a specific) version"""
        pass

    @abstractmethod
    async def update(self, scheme_id: str, changes: SchemeInput) -> Scheme:
        """Store a new version built from the current one plus changes"""
        pass

    @abstractmethod
    async def delete(self, scheme_id: str) -> bool:
        """Withdraw a scheme; its history stays readable"""
        pass

    @abstractmethod
    async def list_by_category(self, category: str) -> List[Scheme]:
        pass

    @abstractmethod
    async def list_all(self) -> List[Scheme]:
        pass

    @abstractmethod
    async def history(self, scheme_id: str) -> List[Scheme]:
        """Every stored version, oldest first"""
        pass

    @abstractmethod
    async def current_version(self, scheme_id: str) -> int:
        pass


class InMemorySchemeRepository(SchemeRepository):
    """In-memory implementation of SchemeRepository for development and tests.

    Records handed out are copies, so nothing a caller does to one can reach
    the stored version history.
    """

    def __init__(self,
                 schemes: Optional[List[SchemeInput]] = None,
                 registry: Optional[PredicateRegistry] = None):
        self.registry = registry or PredicateRegistry()
        self._versions: Dict[str, List[Scheme]] = {}
        self._withdrawn: set = set()
        for record in schemes or []:
            scheme = self._validated(record, version=1)
            self._versions[scheme.id] = [scheme]

    def _validated(self, record: SchemeInput, **overrides: Any) -> Scheme:
        scheme = to_scheme(record, **overrides)
        check_predicates(scheme, self.registry)
        return scheme

    def _current(self, scheme_id: str) -> Scheme:
        versions = self._versions.get(scheme_id)
        if not versions or scheme_id in self._withdrawn:
            raise SchemeNotFound(scheme_id)
        return versions[-1]

    async def create(self, record: SchemeInput) -> Scheme:
        scheme = self._validated(record, version=1)
        if scheme.id in self._versions and scheme.id not in self._withdrawn:
            raise ValidationFailure(f"Scheme already exists: {scheme.id}", field="id")
        if scheme.id in self._versions:
            # re-publishing a withdrawn scheme continues its version line
            scheme = to_scheme(scheme, version=self._versions[scheme.id][-1].version + 1)
            self._versions[scheme.id].append(scheme)
            self._withdrawn.discard(scheme.id)
        else:
            self._versions[scheme.id] = [scheme]
        logger.info("scheme_created", scheme_id=scheme.id, version=scheme.version)
        return scheme.snapshot()

    async def read(self, scheme_id: str, version: Optional[int] = None) -> Scheme:
        if version is None:
            return self._current(scheme_id).snapshot()
        for scheme in self._versions.get(scheme_id, []):
            if scheme.version == version:
                return scheme.snapshot()
        raise SchemeNotFound(scheme_id, version)

    async def update(self, scheme_id: str, changes: SchemeInput) -> Scheme:
        current = self._current(scheme_id)
        data = current.model_dump()
        patch = changes.model_dump() if isinstance(changes, Scheme) else dict(changes)
        patch.pop("id", None)
        patch.pop("version", None)
        data.update(patch)
        scheme = self._validated(data, version=current.version + 1)
        self._versions[scheme_id].append(scheme)
        logger.info("scheme_updated", scheme_id=scheme_id, version=scheme.version)
        return scheme.snapshot()

    async def delete(self, scheme_id: str) -> bool:
        if scheme_id not in self._versions or scheme_id in self._withdrawn:
            return False
        self._withdrawn.add(scheme_id)
        logger.info("scheme_withdrawn", scheme_id=scheme_id)
        return True

    async def list_by_category(self, category: str) -> List[Scheme]:
        wanted = category.strip().lower()
        return [s for s in await self.list_all() if s.category.lower() == wanted]

    async def list_all(self) -> List[Scheme]:
        return [
            versions[-1].snapshot()
            for scheme_id, versions in sorted(self._versions.items())
            if scheme_id not in self._withdrawn
        ]

    async def history(self, scheme_id: str) -> List[Scheme]:
        if scheme_id not in self._versions:
            raise SchemeNotFound(scheme_id)
        return [scheme.snapshot() for scheme in self._versions[scheme_id]]

    async def current_version(self, scheme_id: str) -> int:
        return self._current(scheme_id).version
