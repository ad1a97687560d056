"""Structured logging and error recording.

Logging goes through structlog with a PII redaction processor. Errors surfaced
to citizens are also kept as structured records (kind, timestamp, session id)
for operational visibility, redacted before they are stored.
"""

import re
import sys
from collections import deque
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, cast

import structlog
from structlog.types import EventDict, WrappedLogger

# Key names whose values are never logged. Profile fields and raw utterances
# are personal data in this domain.
SENSITIVE_KEYS: frozenset = frozenset({
    "password",
    "secret",
    "token",
    "api_key",
    "authorization",
    "email",
    "phone",
    "aadhaar",
    "age",
    "income",
    "location",
    "occupation",
    "profile",
    "utterance",
    "utterance_text",
    "text",
    "response_text",
    "transcript",
})

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
AADHAAR_PATTERN = re.compile(r"\b\d{4}\s?\d{4}\s?\d{4}\b")
PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-]{8,}\d")


class PIIRedactor:
    """Processor that redacts PII from log events.

    Known sensitive keys are replaced outright; string values are scrubbed
    for e-mail, Aadhaar-like and phone-like patterns.
    """

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        return cast(EventDict, self.redact(event_dict))

    def redact(self, data: MutableMapping) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() in SENSITIVE_KEYS:
                result[key] = "[REDACTED]"
            elif isinstance(value, dict):
                result[key] = self.redact(value)
            elif isinstance(value, str):
                result[key] = self._redact_string(value)
            elif isinstance(value, (list, tuple)):
                result[key] = [
                    self.redact(v) if isinstance(v, dict)
                    else self._redact_string(v) if isinstance(v, str)
                    else v
                    for v in value
                ]
            else:
                result[key] = value
        return result

    def _redact_string(self, value: str) -> str:
        value = EMAIL_PATTERN.sub("[EMAIL]", value)
        value = AADHAAR_PATTERN.sub("[ID]", value)
        value = PHONE_PATTERN.sub("[PHONE]", value)
        return value


def setup_logging(level: str = "INFO", format: str = "console", redact_pii: bool = True) -> None:
    """Configure structured logging.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        format: "json" for production, "console" for development
        redact_pii: Whether to redact PII from logs
    """
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact_pii:
        processors.append(PIIRedactor())

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    level_map = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_map.get(level.upper(), 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to the given module name"""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


logger = get_logger(__name__)


@dataclass
class ErrorRecord:
    kind: str
    timestamp: datetime
    session_id: Optional[str]
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "timestamp": self.timestamp.isoformat(),
            "session_id": self.session_id,
            "detail": self.detail,
        }


class ErrorRecorder:
    """Keeps a bounded, redacted trail of errors for operators"""

    def __init__(self, capacity: int = 500):
        self._records: Deque[ErrorRecord] = deque(maxlen=capacity)
        self._redactor = PIIRedactor()

    def record(self,
               kind: str,
               timestamp: datetime,
               session_id: Optional[str] = None,
               **detail: Any) -> ErrorRecord:
        entry = ErrorRecord(
            kind=kind,
            timestamp=timestamp,
            session_id=session_id,
            detail=self._redactor.redact(detail),
        )
        self._records.append(entry)
        logger.warning("assistant_error", kind=kind, session_id=session_id, detail=entry.detail)
        return entry

    def records(self, session_id: Optional[str] = None) -> List[ErrorRecord]:
        if session_id is None:
            return list(self._records)
        return [r for r in self._records if r.session_id == session_id]

    def __len__(self) -> int:
        return len(self._records)
