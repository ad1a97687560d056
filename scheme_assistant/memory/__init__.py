"""
Memory Package
Session records, user profile and the session lifecycle manager
"""
from .memory import (
    MessageRole,
    MessageKind,
    MentionKind,
    EntityMention,
    Message,
    ProfileValue,
    UserProfile,
    BoundedExtras,
    PendingConfirmation,
    DialogueContext,
    ConsentFlags,
    Session,
    SessionAggregate
)
from .manager import (
    SessionStore,
    InMemorySessionStore,
    SessionMetrics,
    SessionManager
)

__all__ = [
    "MessageRole",
    "MessageKind",
    "MentionKind",
    "EntityMention",
    "Message",
    "ProfileValue",
    "UserProfile",
    "BoundedExtras",
    "PendingConfirmation",
    "DialogueContext",
    "ConsentFlags",
    "Session",
    "SessionAggregate",
    "SessionStore",
    "InMemorySessionStore",
    "SessionMetrics",
    "SessionManager"
]
