"""
Scheme Cache
Read-through cache of full multi-language scheme records, checked against the
repository's version on every access so an update is never served stale
"""
from typing import Dict, List, Optional

from ..config import SupportedLanguage
from ..errors import SchemeNotFound
from ..observability import get_logger
from ..resilience import RetryPolicy
from .repository import SchemeRepository
from .schemes import LocalizedScheme, Scheme

logger = get_logger(__name__)

CAPABILITY = "scheme_repository"


class SchemeCache:
    """
    Keeps one record per scheme id holding every language, so a language
    switch mid-conversation never needs a second fetch. Callers get copies;
    a record only changes through the repository's update path.
    """

    def __init__(self, repository: SchemeRepository, retry_policy: Optional[RetryPolicy] = None):
        self.repository = repository
        self.retry_policy = retry_policy or RetryPolicy.no_delay()
        self._records: Dict[str, Scheme] = {}
        self.hits = 0
        self.misses = 0

    async def get(self, scheme_id: str, language: SupportedLanguage) -> LocalizedScheme:
        record = await self._fresh(scheme_id)
        return record.localized(language)

    async def get_record(self, scheme_id: str) -> Scheme:
        """Full record, refetched when the repository holds a newer version"""
        return (await self._fresh(scheme_id)).snapshot()

    async def _fresh(self, scheme_id: str) -> Scheme:
        try:
            current = await self.retry_policy.call(
                self.repository.current_version, scheme_id, capability=CAPABILITY
            )
        except SchemeNotFound:
            self._records.pop(scheme_id, None)
            raise

        cached = self._records.get(scheme_id)
        if cached is not None and cached.version == current:
            self.hits += 1
            return cached

        self.misses += 1
        record = await self.retry_policy.call(self.repository.read, scheme_id, capability=CAPABILITY)
        if cached is not None:
            logger.info("scheme_cache_refreshed", scheme_id=scheme_id,
                        old_version=cached.version, new_version=record.version)
        self._records[scheme_id] = record
        return record

    async def refresh(self) -> List[Scheme]:
        """
        Reload every live scheme at its current version, dropping withdrawn
        ones; returns copies ordered by id
        """
        records = await self.retry_policy.call(self.repository.list_all, capability=CAPABILITY)
        self._records = {r.id: r for r in records}
        return self.cached_schemes()

    async def warm(self) -> int:
        """Load every current scheme; returns how many were cached"""
        count = len(await self.refresh())
        logger.info("scheme_cache_warmed", count=count)
        return count

    async def list(self, language: SupportedLanguage, category: Optional[str] = None) -> List[LocalizedScheme]:
        """Current schemes (optionally one category), refreshing the cache as a side effect"""
        if category:
            records = await self.retry_policy.call(
                self.repository.list_by_category, category, capability=CAPABILITY
            )
            for record in records:
                self._records[record.id] = record
        else:
            records = await self.retry_policy.call(self.repository.list_all, capability=CAPABILITY)
            self._records = {r.id: r for r in records}
        return [r.localized(language) for r in records]

    def cached_schemes(self) -> List[Scheme]:
        """Copies of everything cached, ordered by id; may lag the repository"""
        return [self._records[k].snapshot() for k in sorted(self._records)]

    def scheme_names(self) -> Dict[str, List[str]]:
        """Every language's name per cached scheme, for matching utterances"""
        return {k: list(self._records[k].name.values()) for k in sorted(self._records)}

    def invalidate(self, scheme_id: Optional[str] = None):
        if scheme_id is None:
            self._records.clear()
        else:
            self._records.pop(scheme_id, None)

    def __contains__(self, scheme_id: str) -> bool:
        return scheme_id in self._records

    def __len__(self) -> int:
        return len(self._records)
