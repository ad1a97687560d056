"""
Context Resolver
Resolves follow-up references ("that scheme", "my income") against recent history
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from ..errors import AmbiguousReference
from ..memory.memory import EntityMention, MentionKind, Message, MessageKind, MessageRole


class ReferenceKind(str, Enum):
    SCHEME = "scheme"
    PROFILE_FIELD = "profile_field"
    ANY = "any"


@dataclass(frozen=True)
class ResolvedReference:
    kind: MentionKind
    value: str
    messages_back: int


def _compatible(mention: EntityMention, wanted: ReferenceKind) -> bool:
    return wanted == ReferenceKind.ANY or mention.kind.value == wanted.value


class ContextResolver:
    """
    Looks back over the last `window` turns, newest message first, and returns
    the most recent compatible mention. A turn starts at a user message and
    runs through the replies to it. Ties at the same recency are never guessed.
    """

    def __init__(self, window: int = 10):
        self.window = window

    def _recent(self, history: Sequence[Message]) -> List[Message]:
        """Messages of the last `window` turns, newest first; status notices excluded"""
        recent: List[Message] = []
        if self.window <= 0:
            return recent
        turns = 0
        for message in reversed(history):
            if message.kind == MessageKind.STATUS:
                continue
            recent.append(message)
            if message.role == MessageRole.USER:
                turns += 1
                if turns >= self.window:
                    break
        return recent

    def resolve(self,
                history: Sequence[Message],
                wanted: ReferenceKind = ReferenceKind.ANY) -> ResolvedReference:
        for back, message in enumerate(self._recent(history)):
            candidates: List[EntityMention] = []
            for mention in message.entities:
                if _compatible(mention, wanted) and mention not in candidates:
                    candidates.append(mention)
            if not candidates:
                continue
            if len(candidates) > 1:
                raise AmbiguousReference(
                    f"{len(candidates)} equally recent referents",
                    candidates=[c.to_dict() for c in candidates],
                )
            return ResolvedReference(kind=candidates[0].kind, value=candidates[0].value, messages_back=back)

        raise AmbiguousReference(f"No {wanted.value} referent in the last {self.window} turns")

    def try_resolve(self,
                    history: Sequence[Message],
                    wanted: ReferenceKind = ReferenceKind.ANY) -> Optional[ResolvedReference]:
        """Like resolve() but returns None when nothing was mentioned at all"""
        try:
            return self.resolve(history, wanted)
        except AmbiguousReference as e:
            if e.candidates:
                raise
            return None
