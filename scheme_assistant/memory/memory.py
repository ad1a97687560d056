"""
Session Memory Models
Session, conversation messages, the partial user profile and the typed dialogue context
"""
import copy
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..agent.core import ConversationState, SideEffect


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MessageKind(str, Enum):
    TURN = "turn"
    SUMMARY = "summary"
    STATUS = "status"


class MentionKind(str, Enum):
    SCHEME = "scheme"
    PROFILE_FIELD = "profile_field"


@dataclass(frozen=True)
class EntityMention:
    """Something a message talked about, used for follow-up resolution"""
    kind: MentionKind
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "value": self.value}


@dataclass
class Message:
    """Single conversation message"""
    role: MessageRole
    text: str
    timestamp: datetime
    intent: Optional[str] = None
    entities: List[EntityMention] = field(default_factory=list)
    kind: MessageKind = MessageKind.TURN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "intent": self.intent,
            "entities": [e.to_dict() for e in self.entities],
            "kind": self.kind.value
        }


@dataclass
class ProfileValue:
    value: Any
    updated_at: float
    source: str = "user"


class UserProfile:
    """
    Sparse profile collected over the conversation.
    Merge is last-write-wins by timestamp: an older write never replaces a newer one.
    """

    def __init__(self):
        self._fields: Dict[str, ProfileValue] = {}

    def merge(self, name: str, value: Any, timestamp: float, source: str = "user") -> bool:
        """Returns True when the value was applied"""
        if value is None:
            return False
        current = self._fields.get(name)
        if current is not None and current.updated_at > timestamp:
            return False
        self._fields[name] = ProfileValue(value=value, updated_at=timestamp, source=source)
        return True

    def merge_all(self, values: Dict[str, Any], timestamp: float, source: str = "user") -> List[str]:
        return [k for k, v in values.items() if self.merge(k, v, timestamp, source)]

    def get(self, name: str, default: Any = None) -> Any:
        entry = self._fields.get(name)
        return entry.value if entry else default

    def has(self, name: str) -> bool:
        return name in self._fields

    def entry(self, name: str) -> Optional[ProfileValue]:
        return self._fields.get(name)

    def fields(self) -> List[str]:
        return list(self._fields.keys())

    def as_dict(self) -> Dict[str, Any]:
        return {k: v.value for k, v in self._fields.items()}

    def clear(self):
        self._fields = {}

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other) -> bool:
        return isinstance(other, UserProfile) and self._fields == other._fields


class BoundedExtras(OrderedDict):
    """Forward-compatible custom attributes with FIFO eviction past max_size"""

    def __init__(self, max_size: int = 16, *args, **kwargs):
        self.max_size = max_size
        super().__init__(*args, **kwargs)

    def __setitem__(self, key: str, value: Any):
        if key in self:
            self.move_to_end(key)
        elif len(self) >= self.max_size:
            self.popitem(last=False)
        super().__setitem__(key, value)

    def __deepcopy__(self, memo):
        clone = BoundedExtras(self.max_size)
        for k, v in self.items():
            clone[k] = copy.deepcopy(v, memo)
        return clone


@dataclass(frozen=True)
class PendingConfirmation:
    """Transition held while the user confirms an important action"""
    target_state: ConversationState
    side_effects: Tuple[SideEffect, ...] = ()


@dataclass
class DialogueContext:
    """Typed conversation context; every known key is a field, anything else goes in extras"""
    pending_confirmation: Optional[PendingConfirmation] = None
    active_scheme_id: Optional[str] = None
    active_question: Optional[str] = None
    profile_submitted: bool = False
    idle_prompted: bool = False
    extras: BoundedExtras = field(default_factory=BoundedExtras)

    def to_dict(self) -> Dict[str, Any]:
        pending = None
        if self.pending_confirmation:
            pending = {
                "target_state": self.pending_confirmation.target_state.value,
                "side_effects": [e.value for e in self.pending_confirmation.side_effects]
            }
        return {
            "pending_confirmation": pending,
            "active_scheme_id": self.active_scheme_id,
            "active_question": self.active_question,
            "profile_submitted": self.profile_submitted,
            "extras": dict(self.extras)
        }


@dataclass
class ConsentFlags:
    audio_retention: bool = False
    pii_retention: bool = False


@dataclass
class Session:
    """
    One citizen's conversation. Owned exclusively by the SessionManager;
    everything else works on copies handed out by it.
    """
    session_id: str
    language: str
    created_at: float
    last_accessed_at: float
    expires_at: float
    ttl_seconds: float
    state: ConversationState = ConversationState.LANGUAGE_SELECTION
    state_stack: List[ConversationState] = field(default_factory=list)
    profile: UserProfile = field(default_factory=UserProfile)
    history: List[Message] = field(default_factory=list)
    context: DialogueContext = field(default_factory=DialogueContext)
    consent: ConsentFlags = field(default_factory=ConsentFlags)
    version: int = 1
    turn_count: int = 0
    last_input_at: Optional[float] = None
    user_id: Optional[str] = None
    ended: bool = False

    def add_message(self, message: Message, max_messages: int):
        self.history.append(message)
        if max_messages and len(self.history) > max_messages:
            del self.history[:len(self.history) - max_messages]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "language": self.language,
            "state": self.state.value,
            "state_stack": [s.value for s in self.state_stack],
            "profile": self.profile.as_dict(),
            "history": [m.to_dict() for m in self.history],
            "context": self.context.to_dict(),
            "consent": {
                "audio_retention": self.consent.audio_retention,
                "pii_retention": self.consent.pii_retention
            },
            "version": self.version,
            "turn_count": self.turn_count,
            "ended": self.ended
        }


@dataclass(frozen=True)
class SessionAggregate:
    """Anonymized metrics that survive a session without persistence consent"""
    duration_seconds: float
    completed: bool
    error_count: int
