"""
Agent Package
Dialogue state machine, context resolution, templates and the turn orchestrator
"""
from .core import (
    ConversationState,
    IntentType,
    SideEffect,
    TransitionKind,
    TransitionRule,
    StateTransition,
    StateMachine,
    InvalidStateTransitionError,
    INITIAL_STATE,
    TERMINAL_STATES
)

__all__ = [
    "ConversationState",
    "IntentType",
    "SideEffect",
    "TransitionKind",
    "TransitionRule",
    "StateTransition",
    "StateMachine",
    "InvalidStateTransitionError",
    "INITIAL_STATE",
    "TERMINAL_STATES"
]
