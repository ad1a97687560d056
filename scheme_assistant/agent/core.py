"""
Conversation State Machine
Explicit, total transition table over dialogue states and intents,
with stack-based back-navigation and confirmation gating
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict


class ConversationState(str, Enum):
    """Dialogue states"""
    LANGUAGE_SELECTION = "language_selection"
    MAIN_MENU = "main_menu"
    SCHEME_BROWSING = "scheme_browsing"
    SCHEME_DETAILS = "scheme_details"
    ELIGIBILITY_CHECK = "eligibility_check"
    APPLICATION_GUIDE = "application_guide"
    CONFIRMATION = "confirmation"
    ENDED = "ended"


INITIAL_STATE = ConversationState.LANGUAGE_SELECTION
TERMINAL_STATES = frozenset({ConversationState.ENDED})


class IntentType(str, Enum):
    """Intents the classifier can resolve an utterance to"""
    SELECT_LANGUAGE = "select_language"
    GREETING = "greeting"
    MAIN_MENU = "main_menu"
    BROWSE_SCHEMES = "browse_schemes"
    SELECT_SCHEME = "select_scheme"
    CHECK_ELIGIBILITY = "check_eligibility"
    PROVIDE_INFO = "provide_info"
    APPLY = "apply"
    SUBMIT_PROFILE = "submit_profile"
    AFFIRM = "affirm"
    DENY = "deny"
    GO_BACK = "go_back"
    HELP = "help"
    END_SESSION = "end_session"
    UNKNOWN = "unknown"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "IntentType":
        """Lenient parse; anything unrecognised becomes UNKNOWN"""
        if isinstance(label, IntentType):
            return label
        try:
            return cls((label or "").strip().lower())
        except ValueError:
            return cls.UNKNOWN


class SideEffect(str, Enum):
    """Work the orchestrator must carry out for a transition"""
    SET_LANGUAGE = "set_language"
    SHOW_LANGUAGE_MENU = "show_language_menu"
    SHOW_MAIN_MENU = "show_main_menu"
    LIST_SCHEMES = "list_schemes"
    FETCH_SCHEME = "fetch_scheme"
    RECORD_PROFILE = "record_profile"
    EVALUATE_ELIGIBILITY = "evaluate_eligibility"
    SHOW_APPLICATION_STEPS = "show_application_steps"
    REQUEST_CONFIRMATION = "request_confirmation"
    SUBMIT_PROFILE = "submit_profile"
    CANCEL_CONFIRMATION = "cancel_confirmation"
    END_SESSION = "end_session"
    WENT_BACK = "went_back"
    HELP_PROMPT = "help_prompt"
    GUIDANCE_PROMPT = "guidance_prompt"
    SESSION_CLOSED = "session_closed"


class TransitionKind(str, Enum):
    ADVANCE = "advance"          # enter a new state, stack the prior one
    INTERRUPT = "interrupt"      # switch topic, prior state discarded
    STAY = "stay"                # same state, stack untouched
    GATED = "gated"              # enter CONFIRMATION holding a pending target
    COMMIT_PENDING = "commit_pending"
    RESTORE = "restore"          # pop back to the stacked state
    CLARIFY = "clarify"          # fallback: stay and emit a help prompt
    INACTIVITY = "inactivity"


@dataclass(frozen=True)
class TransitionRule:
    kind: TransitionKind
    target: Optional[ConversationState] = None
    side_effects: Tuple[SideEffect, ...] = ()


class StateTransition(BaseModel):
    """Outcome of one transition; a value, the caller decides whether to commit it"""
    model_config = ConfigDict(frozen=True)

    from_state: ConversationState
    to_state: ConversationState
    intent: IntentType
    kind: TransitionKind
    side_effects: Tuple[SideEffect, ...] = ()
    state_stack: Tuple[ConversationState, ...] = ()
    pending_target: Optional[ConversationState] = None
    pending_effects: Tuple[SideEffect, ...] = ()

    @property
    def changed_state(self) -> bool:
        return self.from_state != self.to_state


class InvalidStateTransitionError(Exception):
    """Raised when the transition table is built with an invalid rule"""
    pass


S = ConversationState
E = SideEffect
K = TransitionKind


def _rule(kind: TransitionKind, target: Optional[ConversationState] = None, *effects: SideEffect) -> TransitionRule:
    return TransitionRule(kind=kind, target=target, side_effects=tuple(effects))


CLARIFY_RULE = _rule(K.CLARIFY, None, E.HELP_PROMPT)

# Explicit per-state rows
STATE_RULES: Dict[ConversationState, Dict[IntentType, TransitionRule]] = {
    S.LANGUAGE_SELECTION: {
        IntentType.SELECT_LANGUAGE: _rule(K.ADVANCE, S.MAIN_MENU, E.SET_LANGUAGE, E.SHOW_MAIN_MENU),
        IntentType.GREETING: _rule(K.STAY, None, E.SHOW_LANGUAGE_MENU),
    },
    S.MAIN_MENU: {
        IntentType.GREETING: _rule(K.STAY, None, E.SHOW_MAIN_MENU),
        IntentType.BROWSE_SCHEMES: _rule(K.ADVANCE, S.SCHEME_BROWSING, E.LIST_SCHEMES),
        IntentType.SELECT_SCHEME: _rule(K.ADVANCE, S.SCHEME_DETAILS, E.FETCH_SCHEME),
        IntentType.CHECK_ELIGIBILITY: _rule(K.ADVANCE, S.ELIGIBILITY_CHECK, E.RECORD_PROFILE, E.EVALUATE_ELIGIBILITY),
        IntentType.PROVIDE_INFO: _rule(K.STAY, None, E.RECORD_PROFILE, E.SHOW_MAIN_MENU),
        IntentType.APPLY: _rule(K.ADVANCE, S.APPLICATION_GUIDE, E.FETCH_SCHEME, E.SHOW_APPLICATION_STEPS),
    },
    S.SCHEME_BROWSING: {
        IntentType.BROWSE_SCHEMES: _rule(K.STAY, None, E.LIST_SCHEMES),
        IntentType.SELECT_SCHEME: _rule(K.ADVANCE, S.SCHEME_DETAILS, E.FETCH_SCHEME),
        IntentType.CHECK_ELIGIBILITY: _rule(K.ADVANCE, S.ELIGIBILITY_CHECK, E.RECORD_PROFILE, E.EVALUATE_ELIGIBILITY),
        IntentType.PROVIDE_INFO: _rule(K.STAY, None, E.RECORD_PROFILE, E.LIST_SCHEMES),
        IntentType.APPLY: _rule(K.ADVANCE, S.APPLICATION_GUIDE, E.FETCH_SCHEME, E.SHOW_APPLICATION_STEPS),
    },
    S.SCHEME_DETAILS: {
        IntentType.SELECT_SCHEME: _rule(K.STAY, None, E.FETCH_SCHEME),
        IntentType.BROWSE_SCHEMES: _rule(K.ADVANCE, S.SCHEME_BROWSING, E.LIST_SCHEMES),
        IntentType.CHECK_ELIGIBILITY: _rule(K.ADVANCE, S.ELIGIBILITY_CHECK, E.RECORD_PROFILE, E.EVALUATE_ELIGIBILITY),
        IntentType.PROVIDE_INFO: _rule(K.STAY, None, E.RECORD_PROFILE, E.FETCH_SCHEME),
        IntentType.APPLY: _rule(K.ADVANCE, S.APPLICATION_GUIDE, E.FETCH_SCHEME, E.SHOW_APPLICATION_STEPS),
    },
    S.ELIGIBILITY_CHECK: {
        IntentType.PROVIDE_INFO: _rule(K.STAY, None, E.RECORD_PROFILE, E.EVALUATE_ELIGIBILITY),
        IntentType.CHECK_ELIGIBILITY: _rule(K.STAY, None, E.RECORD_PROFILE, E.EVALUATE_ELIGIBILITY),
        IntentType.SELECT_SCHEME: _rule(K.INTERRUPT, S.SCHEME_DETAILS, E.FETCH_SCHEME),
        IntentType.BROWSE_SCHEMES: _rule(K.INTERRUPT, S.SCHEME_BROWSING, E.LIST_SCHEMES),
        IntentType.APPLY: _rule(K.ADVANCE, S.APPLICATION_GUIDE, E.FETCH_SCHEME, E.SHOW_APPLICATION_STEPS),
        IntentType.SUBMIT_PROFILE: _rule(K.GATED, S.APPLICATION_GUIDE, E.SUBMIT_PROFILE, E.SHOW_APPLICATION_STEPS),
    },
    S.APPLICATION_GUIDE: {
        IntentType.APPLY: _rule(K.STAY, None, E.FETCH_SCHEME, E.SHOW_APPLICATION_STEPS),
        IntentType.PROVIDE_INFO: _rule(K.STAY, None, E.RECORD_PROFILE, E.SHOW_APPLICATION_STEPS),
        IntentType.CHECK_ELIGIBILITY: _rule(K.ADVANCE, S.ELIGIBILITY_CHECK, E.RECORD_PROFILE, E.EVALUATE_ELIGIBILITY),
        IntentType.SELECT_SCHEME: _rule(K.INTERRUPT, S.SCHEME_DETAILS, E.FETCH_SCHEME),
        IntentType.BROWSE_SCHEMES: _rule(K.INTERRUPT, S.SCHEME_BROWSING, E.LIST_SCHEMES),
        IntentType.SUBMIT_PROFILE: _rule(K.GATED, S.APPLICATION_GUIDE, E.SUBMIT_PROFILE, E.SHOW_APPLICATION_STEPS),
    },
    S.CONFIRMATION: {
        IntentType.AFFIRM: _rule(K.COMMIT_PENDING),
        IntentType.DENY: _rule(K.RESTORE, None, E.CANCEL_CONFIRMATION),
        IntentType.GO_BACK: _rule(K.RESTORE, None, E.CANCEL_CONFIRMATION),
        IntentType.HELP: _rule(K.STAY, None, E.REQUEST_CONFIRMATION),
    },
    S.ENDED: {intent: _rule(K.STAY, None, E.SESSION_CLOSED) for intent in IntentType},
}

# Rows shared by every open state unless the state overrides them
GLOBAL_RULES: Dict[IntentType, TransitionRule] = {
    IntentType.GO_BACK: _rule(K.RESTORE, None, E.WENT_BACK),
    IntentType.HELP: _rule(K.STAY, None, E.HELP_PROMPT),
    IntentType.MAIN_MENU: _rule(K.ADVANCE, S.MAIN_MENU, E.SHOW_MAIN_MENU),
    IntentType.SELECT_LANGUAGE: _rule(K.STAY, None, E.SET_LANGUAGE),
    IntentType.END_SESSION: _rule(K.GATED, S.ENDED, E.END_SESSION),
}


def build_transition_table() -> Dict[Tuple[ConversationState, IntentType], TransitionRule]:
    table: Dict[Tuple[ConversationState, IntentType], TransitionRule] = {}
    for state in ConversationState:
        if state not in TERMINAL_STATES and state != S.CONFIRMATION:
            for intent, rule in GLOBAL_RULES.items():
                table[(state, intent)] = rule
        for intent, rule in STATE_RULES.get(state, {}).items():
            table[(state, intent)] = rule

    for (state, intent), rule in table.items():
        if rule.kind in (K.ADVANCE, K.INTERRUPT, K.GATED) and rule.target is None:
            raise InvalidStateTransitionError(f"{state.value}/{intent.value} needs a target state")
        if rule.kind == K.GATED and state == S.CONFIRMATION:
            raise InvalidStateTransitionError("Confirmation cannot gate itself")
    return table


class StateMachine:
    """
    Pure dialogue transition function.
    Holds no per-session state: callers pass the current state, stack and
    pending confirmation and receive a StateTransition to commit.
    """

    def __init__(self, max_stack: int = 20):
        self.max_stack = max_stack
        self.table = build_transition_table()

    def rule_for(self, state: ConversationState, intent: IntentType) -> TransitionRule:
        return self.table.get((state, intent), CLARIFY_RULE)

    def next(self,
             state: ConversationState,
             intent: IntentType,
             stack: Sequence[ConversationState] = (),
             pending_target: Optional[ConversationState] = None,
             pending_effects: Sequence[SideEffect] = ()) -> StateTransition:
        """Compute the next state and side effects for one intent"""
        intent = IntentType.from_label(intent)
        rule = self.rule_for(state, intent)
        new_stack = list(stack)
        held_target: Optional[ConversationState] = None
        held_effects: Tuple[SideEffect, ...] = ()
        effects = rule.side_effects

        if rule.kind in (K.STAY, K.CLARIFY):
            to_state = state
            if state == S.CONFIRMATION:
                held_target, held_effects = pending_target, tuple(pending_effects)

        elif rule.kind == K.ADVANCE:
            to_state = rule.target
            if to_state != state:
                self._push(new_stack, state)

        elif rule.kind == K.INTERRUPT:
            to_state = rule.target

        elif rule.kind == K.GATED:
            to_state = S.CONFIRMATION
            self._push(new_stack, state)
            held_target, held_effects = rule.target, rule.side_effects
            effects = (E.REQUEST_CONFIRMATION,)

        elif rule.kind == K.COMMIT_PENDING:
            if pending_target is None:
                # nothing to confirm; treat like a cancellation
                to_state = new_stack.pop() if new_stack else S.MAIN_MENU
                effects = (E.CANCEL_CONFIRMATION,)
            else:
                to_state = pending_target
                effects = tuple(pending_effects)
                if to_state in TERMINAL_STATES:
                    new_stack = []
                elif new_stack and new_stack[-1] == to_state:
                    new_stack.pop()

        elif rule.kind == K.RESTORE:
            to_state = new_stack.pop() if new_stack else S.MAIN_MENU

        else:
            raise InvalidStateTransitionError(f"Unhandled rule kind: {rule.kind}")

        return StateTransition(
            from_state=state,
            to_state=to_state,
            intent=intent,
            kind=rule.kind,
            side_effects=effects,
            state_stack=tuple(new_stack),
            pending_target=held_target,
            pending_effects=held_effects
        )

    def on_inactivity(self,
                      state: ConversationState,
                      stack: Sequence[ConversationState] = (),
                      pending_target: Optional[ConversationState] = None,
                      pending_effects: Sequence[SideEffect] = ()) -> StateTransition:
        """No input within the timeout: stay put and nudge the user"""
        effects = (E.SESSION_CLOSED,) if state in TERMINAL_STATES else (E.GUIDANCE_PROMPT,)
        return StateTransition(
            from_state=state,
            to_state=state,
            intent=IntentType.UNKNOWN,
            kind=K.INACTIVITY,
            side_effects=effects,
            state_stack=tuple(stack),
            pending_target=pending_target,
            pending_effects=tuple(pending_effects)
        )

    def _push(self, stack: List[ConversationState], state: ConversationState):
        if state == S.CONFIRMATION or state in TERMINAL_STATES:
            return
        stack.append(state)
        if len(stack) > self.max_stack:
            del stack[0]
