"""
Error Taxonomy
Every failure the core can surface, each mapped to one localized template
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    TRANSIENT = "transient_external_failure"
    VALIDATION = "validation_failure"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    CONFLICT = "concurrency_conflict"
    AMBIGUOUS_REFERENCE = "ambiguous_reference"
    UNEXPECTED = "unexpected"


class AssistantError(Exception):
    """Base class for errors raised by the assistant core"""

    kind: ErrorKind = ErrorKind.UNEXPECTED
    recoverable: bool = False

    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id


class TransientExternalFailure(AssistantError):
    """An external capability (classifier, repository, speech) is temporarily unreachable"""

    kind = ErrorKind.TRANSIENT
    recoverable = True

    def __init__(self, message: str, capability: str = "external", session_id: Optional[str] = None):
        super().__init__(message, session_id)
        self.capability = capability


class ValidationFailure(AssistantError):
    """A record is missing a required field or carries an incomplete language map"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFound(AssistantError):
    kind = ErrorKind.NOT_FOUND


class SchemeNotFound(NotFound):
    def __init__(self, scheme_id: str, version: Optional[int] = None):
        suffix = f" (version {version})" if version is not None else ""
        super().__init__(f"Scheme not found: {scheme_id}{suffix}")
        self.scheme_id = scheme_id
        self.version = version


class SessionNotFound(NotFound):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}", session_id)


class SessionExpired(SessionNotFound):
    """Session is past its TTL or has been ended; reads behave like not-found"""

    kind = ErrorKind.EXPIRED

    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.args = (f"Session expired: {session_id}",)


class ConcurrencyConflict(AssistantError):
    """Optimistic version check failed on commit"""

    kind = ErrorKind.CONFLICT
    recoverable = True

    def __init__(self, session_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Version mismatch for {session_id}: expected {expected_version}, found {actual_version}",
            session_id
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class AmbiguousReference(AssistantError):
    """The context resolver cannot pick a single referent"""

    kind = ErrorKind.AMBIGUOUS_REFERENCE
    recoverable = True

    def __init__(self, message: str, candidates: Optional[list] = None):
        super().__init__(message)
        self.candidates = candidates or []
