"""
Session Lifecycle Manager
Creates, reads, commits and ends sessions; every mutation goes through a
version-checked commit so concurrent turns on one session never interleave
"""
import copy
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from ..agent.core import INITIAL_STATE, ConversationState
from ..clock import Clock, SystemClock
from ..config import SupportedLanguage
from ..errors import (
    ConcurrencyConflict,
    SessionExpired,
    SessionNotFound,
    TransientExternalFailure,
    ValidationFailure,
)
from ..observability import get_logger
from .memory import BoundedExtras, ConsentFlags, DialogueContext, Session, SessionAggregate

logger = get_logger(__name__)

Mutation = Callable[[Session], Any]


class SessionStore(ABC):
    """Abstract interface for session storage.

    replace() is a compare-and-set on the stored version; it must be atomic
    with respect to other replace() calls for the same session.
    """

    @abstractmethod
    async def load(self, session_id: str) -> Optional[Session]:
        pass

    @abstractmethod
    async def insert(self, session: Session) -> None:
        pass

    @abstractmethod
    async def replace(self, session: Session, expected_version: int) -> bool:
        """Store session only if the stored version equals expected_version"""
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        pass

    @abstractmethod
    async def list_ids(self) -> List[str]:
        pass


class InMemorySessionStore(SessionStore):
    """In-memory implementation of SessionStore for development and tests"""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    async def load(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def insert(self, session: Session) -> None:
        if session.session_id in self._sessions:
            raise ValidationFailure(f"Session already exists: {session.session_id}", field="session_id")
        self._sessions[session.session_id] = session

    async def replace(self, session: Session, expected_version: int) -> bool:
        current = self._sessions.get(session.session_id)
        if current is None or current.version != expected_version:
            return False
        self._sessions[session.session_id] = session
        return True

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def list_ids(self) -> List[str]:
        return list(self._sessions.keys())


@dataclass
class SessionMetrics:
    """Anonymous counters; nothing here identifies a citizen"""
    created: int = 0
    ended: int = 0
    expired: int = 0
    expired_reads: int = 0
    conflicts: int = 0
    aggregates: List[SessionAggregate] = field(default_factory=list)
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def to_dict(self) -> Dict[str, Any]:
        completed = sum(1 for a in self.aggregates if a.completed)
        return {
            "created": self.created,
            "ended": self.ended,
            "expired": self.expired,
            "expired_reads": self.expired_reads,
            "conflicts": self.conflicts,
            "completed": completed,
        }


class SessionManager:
    """
    Owns every Session. Callers only ever receive deep copies; the stored
    record changes solely through commit().
    """

    def __init__(self,
                 store: Optional[SessionStore] = None,
                 clock: Optional[Clock] = None,
                 ttl_seconds: float = 1800.0,
                 retention_seconds: float = 30 * 24 * 3600.0,
                 max_history: int = 100,
                 extras_limit: int = 16,
                 commit_max_attempts: int = 3,
                 default_language: SupportedLanguage = SupportedLanguage.ENGLISH):
        self.store = store or InMemorySessionStore()
        self.clock = clock or SystemClock()
        self.ttl_seconds = ttl_seconds
        self.retention_seconds = retention_seconds
        self.max_history = max_history
        self.extras_limit = extras_limit
        self.commit_max_attempts = commit_max_attempts
        self.default_language = default_language
        self.metrics = SessionMetrics()
        # user_id -> (language, last seen); language preference only, no profile data
        self._language_hints: Dict[str, Tuple[str, float]] = {}
        self._archive: Dict[str, Session] = {}

    @classmethod
    def from_settings(cls, settings, store: Optional[SessionStore] = None,
                      clock: Optional[Clock] = None) -> "SessionManager":
        return cls(
            store=store,
            clock=clock,
            ttl_seconds=settings.session_ttl_seconds,
            retention_seconds=settings.returning_user_retention_seconds,
            max_history=settings.max_history_messages,
            extras_limit=settings.context_extras_limit,
            commit_max_attempts=settings.commit_max_attempts,
            default_language=settings.default_language,
        )

    def _resolve_language(self, language) -> SupportedLanguage:
        if isinstance(language, SupportedLanguage):
            return language
        try:
            return SupportedLanguage(str(language).strip().lower())
        except ValueError:
            raise ValidationFailure(f"Unsupported language: {language}", field="language")

    def _remember_language(self, user_id: Optional[str], language: str, now: float):
        if user_id:
            self._language_hints[user_id] = (language, now)

    def _prior_language(self, user_id: Optional[str], now: float) -> Optional[str]:
        if not user_id or user_id not in self._language_hints:
            return None
        language, last_seen = self._language_hints[user_id]
        if now - last_seen > self.retention_seconds:
            del self._language_hints[user_id]
            return None
        return language

    async def create(self,
                     language: Optional[str] = None,
                     user_id: Optional[str] = None,
                     consent: Optional[ConsentFlags] = None) -> Session:
        """Start a session; a returning user inherits their last language unless one is given"""
        now = self.clock.monotonic()
        if language is not None:
            resolved = self._resolve_language(language).value
        else:
            resolved = self._prior_language(user_id, now) or self.default_language.value

        session = Session(
            session_id=uuid.uuid4().hex,
            language=resolved,
            created_at=now,
            last_accessed_at=now,
            expires_at=now + self.ttl_seconds,
            ttl_seconds=self.ttl_seconds,
            state=INITIAL_STATE,
            context=DialogueContext(extras=BoundedExtras(self.extras_limit)),
            consent=copy.copy(consent) if consent else ConsentFlags(),
            user_id=user_id,
        )
        await self.store.insert(session)
        self._remember_language(user_id, resolved, now)
        self.metrics.created += 1
        logger.info("session_created", session_id=session.session_id, language=resolved,
                    returning=language is None and resolved != self.default_language.value)
        return copy.deepcopy(session)

    async def _live(self, session_id: str) -> Session:
        record = await self.store.load(session_id)
        if record is None:
            raise SessionNotFound(session_id)
        if record.ended:
            self.metrics.expired_reads += 1
            raise SessionExpired(session_id)
        if self.clock.monotonic() >= record.expires_at:
            self.metrics.expired_reads += 1
            await self._close(record, consent_persist=record.consent.pii_retention, reason="expired")
            raise SessionExpired(session_id)
        return record

    def _touch(self, record: Session):
        now = self.clock.monotonic()
        record.last_accessed_at = now
        record.expires_at = now + record.ttl_seconds

    async def get(self, session_id: str) -> Session:
        """Copy of the session; refreshes the TTL without changing the version"""
        record = await self._live(session_id)
        self._touch(record)
        return copy.deepcopy(record)

    async def peek(self, session_id: str) -> Session:
        """Copy of the session without refreshing the TTL; background checks read through here"""
        return copy.deepcopy(await self._live(session_id))

    async def commit(self, session_id: str, mutation: Mutation, expected_version: int) -> Session:
        """
        Apply mutation to a copy and store it as version expected_version + 1.
        Raises ConcurrencyConflict when the stored version has moved on.
        """
        record = await self._live(session_id)
        if record.version != expected_version:
            self.metrics.conflicts += 1
            logger.info("session_conflict", session_id=session_id,
                        expected=expected_version, actual=record.version)
            raise ConcurrencyConflict(session_id, expected_version, record.version)

        draft = copy.deepcopy(record)
        mutation(draft)
        if draft.session_id != session_id:
            raise ValidationFailure("session_id is immutable", field="session_id")
        draft.version = expected_version + 1
        if self.max_history and len(draft.history) > self.max_history:
            del draft.history[:len(draft.history) - self.max_history]
        self._touch(draft)

        if not await self.store.replace(draft, expected_version):
            self.metrics.conflicts += 1
            current = await self.store.load(session_id)
            raise ConcurrencyConflict(session_id, expected_version, current.version if current else -1)

        self._remember_language(draft.user_id, draft.language, draft.last_accessed_at)
        return copy.deepcopy(draft)

    async def update(self, session_id: str, mutation: Mutation, max_attempts: Optional[int] = None) -> Session:
        """Read-mutate-commit, retried on conflict; exhaustion surfaces as a transient failure"""
        attempts = max_attempts or self.commit_max_attempts
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type(ConcurrencyConflict),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    current = await self.get(session_id)
                    session = await self.commit(session_id, mutation, current.version)
        except ConcurrencyConflict as e:
            raise TransientExternalFailure(
                f"Could not commit session after {attempts} attempts",
                capability="session_store",
                session_id=session_id,
            ) from e
        return session

    async def set_consent(self,
                          session_id: str,
                          audio_retention: Optional[bool] = None,
                          pii_retention: Optional[bool] = None) -> Session:
        def apply(session: Session):
            if audio_retention is not None:
                session.consent.audio_retention = audio_retention
            if pii_retention is not None:
                session.consent.pii_retention = pii_retention
        return await self.update(session_id, apply)

    def record_error(self, session_id: Optional[str]):
        """Count a surfaced error against the session's anonymous aggregate"""
        if session_id:
            self.metrics.error_counts[session_id] += 1

    async def end(self, session_id: str, consent_persist: bool = False) -> SessionAggregate:
        """
        Close the session. Without consent the profile, history and context are
        scrubbed irreversibly and only the anonymous aggregate survives.
        """
        record = await self.store.load(session_id)
        if record is None:
            raise SessionNotFound(session_id)
        if record.ended:
            raise SessionExpired(session_id)
        return await self._close(record, consent_persist=consent_persist, reason="ended")

    async def _close(self, record: Session, consent_persist: bool, reason: str) -> SessionAggregate:
        ended_at = self.clock.monotonic() if reason == "ended" else record.last_accessed_at
        aggregate = SessionAggregate(
            duration_seconds=max(0.0, ended_at - record.created_at),
            completed=record.context.profile_submitted,
            error_count=self.metrics.error_counts.pop(record.session_id, 0),
        )

        if consent_persist:
            archived = copy.deepcopy(record)
            archived.ended = True
            archived.state = ConversationState.ENDED
            self._archive[record.session_id] = archived

        scrubbed = copy.deepcopy(record)
        scrubbed.profile.clear()
        scrubbed.history = []
        scrubbed.context = DialogueContext(extras=BoundedExtras(self.extras_limit))
        scrubbed.state = ConversationState.ENDED
        scrubbed.state_stack = []
        scrubbed.ended = True
        scrubbed.version = record.version + 1
        if not await self.store.replace(scrubbed, record.version):
            # lost a race with a commit; the newer record is closed instead
            current = await self.store.load(record.session_id)
            if current is not None and not current.ended:
                return await self._close(current, consent_persist, reason)

        self.metrics.aggregates.append(aggregate)
        if reason == "expired":
            self.metrics.expired += 1
        else:
            self.metrics.ended += 1
        logger.info("session_closed", session_id=record.session_id, reason=reason,
                    persisted=consent_persist, completed=aggregate.completed)
        return aggregate

    async def archived(self, session_id: str) -> Session:
        """Consented record of an ended session"""
        if session_id not in self._archive:
            raise SessionNotFound(session_id)
        return copy.deepcopy(self._archive[session_id])

    async def purge_expired(self) -> int:
        """Close every session past its TTL and forget stale language hints"""
        now = self.clock.monotonic()
        closed = 0
        for session_id in await self.store.list_ids():
            record = await self.store.load(session_id)
            if record is None or record.ended or now < record.expires_at:
                continue
            await self._close(record, consent_persist=record.consent.pii_retention, reason="expired")
            closed += 1
        for user_id, (_, last_seen) in list(self._language_hints.items()):
            if now - last_seen > self.retention_seconds:
                del self._language_hints[user_id]
        if closed:
            logger.info("sessions_purged", count=closed)
        return closed
