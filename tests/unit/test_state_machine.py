"""Tests for the conversation state machine."""

import pytest

from scheme_assistant.agent.core import (
    INITIAL_STATE,
    TERMINAL_STATES,
    ConversationState,
    IntentType,
    SideEffect,
    StateMachine,
    TransitionKind,
)

S = ConversationState
I = IntentType
E = SideEffect


@pytest.fixture
def machine() -> StateMachine:
    return StateMachine(max_stack=20)


# =============================================================================
# Totality
# =============================================================================


class TestTotality:
    """Every (state, intent) pair has a defined outcome."""

    def test_initial_and_terminal_states(self):
        assert INITIAL_STATE == S.LANGUAGE_SELECTION
        assert TERMINAL_STATES == frozenset({S.ENDED})

    @pytest.mark.parametrize("state", list(ConversationState))
    @pytest.mark.parametrize("intent", list(IntentType))
    def test_every_pair_yields_a_transition(self, machine, state, intent):
        """Should never raise and always land in a known state."""
        transition = machine.next(state, intent)

        assert transition.from_state == state
        assert transition.to_state in ConversationState
        assert transition.intent == intent

    @pytest.mark.parametrize("state", [s for s in ConversationState if s != S.ENDED])
    def test_unknown_intent_clarifies(self, machine, state):
        """Unrecognised input stays put and asks for clarification."""
        transition = machine.next(state, I.UNKNOWN)

        assert transition.to_state == state
        assert transition.kind == TransitionKind.CLARIFY
        assert transition.side_effects == (E.HELP_PROMPT,)

    def test_label_parsing_is_lenient(self, machine):
        transition = machine.next(S.MAIN_MENU, "no-such-intent")
        assert transition.intent == I.UNKNOWN


# =============================================================================
# Navigation
# =============================================================================


class TestNavigation:
    """Advancing pushes, going back pops."""

    def test_language_selection_advances_to_main_menu(self, machine):
        transition = machine.next(S.LANGUAGE_SELECTION, I.SELECT_LANGUAGE)

        assert transition.to_state == S.MAIN_MENU
        assert transition.side_effects == (E.SET_LANGUAGE, E.SHOW_MAIN_MENU)
        assert transition.state_stack == (S.LANGUAGE_SELECTION,)

    def test_advance_pushes_prior_state(self, machine):
        transition = machine.next(S.MAIN_MENU, I.BROWSE_SCHEMES, stack=[S.LANGUAGE_SELECTION])

        assert transition.to_state == S.SCHEME_BROWSING
        assert transition.state_stack == (S.LANGUAGE_SELECTION, S.MAIN_MENU)

    def test_go_back_returns_to_previous_state(self, machine):
        forward = machine.next(S.SCHEME_BROWSING, I.SELECT_SCHEME, stack=[S.MAIN_MENU])
        back = machine.next(forward.to_state, I.GO_BACK, stack=forward.state_stack)

        assert back.to_state == S.SCHEME_BROWSING
        assert back.side_effects == (E.WENT_BACK,)
        assert back.state_stack == (S.MAIN_MENU,)

    def test_go_back_on_empty_stack_goes_to_main_menu(self, machine):
        transition = machine.next(S.SCHEME_DETAILS, I.GO_BACK, stack=[])
        assert transition.to_state == S.MAIN_MENU

    def test_interrupt_discards_current_state(self, machine):
        """Switching topic from an eligibility check does not stack it."""
        transition = machine.next(S.ELIGIBILITY_CHECK, I.SELECT_SCHEME, stack=[S.MAIN_MENU])

        assert transition.kind == TransitionKind.INTERRUPT
        assert transition.to_state == S.SCHEME_DETAILS
        assert transition.state_stack == (S.MAIN_MENU,)

    def test_stay_leaves_stack_untouched(self, machine):
        transition = machine.next(S.ELIGIBILITY_CHECK, I.PROVIDE_INFO, stack=[S.MAIN_MENU])

        assert transition.to_state == S.ELIGIBILITY_CHECK
        assert transition.state_stack == (S.MAIN_MENU,)
        assert transition.side_effects == (E.RECORD_PROFILE, E.EVALUATE_ELIGIBILITY)

    def test_stack_depth_is_bounded(self):
        machine = StateMachine(max_stack=3)
        stack = [S.MAIN_MENU, S.SCHEME_BROWSING, S.SCHEME_DETAILS]

        transition = machine.next(S.SCHEME_DETAILS, I.CHECK_ELIGIBILITY, stack=stack)

        assert len(transition.state_stack) == 3
        assert transition.state_stack[0] == S.SCHEME_BROWSING
        assert transition.state_stack[-1] == S.SCHEME_DETAILS

    def test_help_and_language_switch_are_global(self, machine):
        for state in (S.MAIN_MENU, S.SCHEME_DETAILS, S.APPLICATION_GUIDE):
            assert machine.next(state, I.HELP).side_effects == (E.HELP_PROMPT,)
            switch = machine.next(state, I.SELECT_LANGUAGE)
            assert switch.to_state == state
            assert switch.side_effects == (E.SET_LANGUAGE,)


# =============================================================================
# Confirmation gating
# =============================================================================


class TestConfirmation:
    """END_SESSION and SUBMIT_PROFILE wait for explicit confirmation."""

    def test_end_session_is_gated(self, machine):
        transition = machine.next(S.SCHEME_DETAILS, I.END_SESSION, stack=[S.MAIN_MENU])

        assert transition.to_state == S.CONFIRMATION
        assert transition.kind == TransitionKind.GATED
        assert transition.side_effects == (E.REQUEST_CONFIRMATION,)
        assert transition.pending_target == S.ENDED
        assert transition.pending_effects == (E.END_SESSION,)
        assert transition.state_stack == (S.MAIN_MENU, S.SCHEME_DETAILS)

    def test_affirm_commits_pending_end(self, machine):
        gated = machine.next(S.SCHEME_DETAILS, I.END_SESSION, stack=[S.MAIN_MENU])
        done = machine.next(
            gated.to_state, I.AFFIRM, gated.state_stack, gated.pending_target, gated.pending_effects
        )

        assert done.to_state == S.ENDED
        assert done.side_effects == (E.END_SESSION,)
        assert done.state_stack == ()
        assert done.pending_target is None

    def test_submit_profile_commits_to_application_guide(self, machine):
        gated = machine.next(S.ELIGIBILITY_CHECK, I.SUBMIT_PROFILE, stack=[S.MAIN_MENU])
        done = machine.next(
            gated.to_state, I.AFFIRM, gated.state_stack, gated.pending_target, gated.pending_effects
        )

        assert gated.pending_target == S.APPLICATION_GUIDE
        assert done.to_state == S.APPLICATION_GUIDE
        assert done.side_effects == (E.SUBMIT_PROFILE, E.SHOW_APPLICATION_STEPS)

    @pytest.mark.parametrize("intent", [I.DENY, I.GO_BACK])
    def test_deny_or_back_restores_stacked_state(self, machine, intent):
        gated = machine.next(S.SCHEME_DETAILS, I.END_SESSION, stack=[S.MAIN_MENU])
        restored = machine.next(
            gated.to_state, intent, gated.state_stack, gated.pending_target, gated.pending_effects
        )

        assert restored.to_state == S.SCHEME_DETAILS
        assert restored.side_effects == (E.CANCEL_CONFIRMATION,)
        assert restored.pending_target is None
        assert restored.state_stack == (S.MAIN_MENU,)

    def test_unclear_answer_keeps_pending_confirmation(self, machine):
        gated = machine.next(S.MAIN_MENU, I.END_SESSION)
        unclear = machine.next(
            gated.to_state, I.UNKNOWN, gated.state_stack, gated.pending_target, gated.pending_effects
        )

        assert unclear.to_state == S.CONFIRMATION
        assert unclear.pending_target == S.ENDED
        assert unclear.pending_effects == (E.END_SESSION,)

    def test_affirm_without_pending_cancels(self, machine):
        transition = machine.next(S.CONFIRMATION, I.AFFIRM, stack=[S.MAIN_MENU])

        assert transition.to_state == S.MAIN_MENU
        assert transition.side_effects == (E.CANCEL_CONFIRMATION,)


# =============================================================================
# Terminal state and inactivity
# =============================================================================


class TestEndedAndInactivity:
    @pytest.mark.parametrize("intent", list(IntentType))
    def test_ended_absorbs_every_intent(self, machine, intent):
        transition = machine.next(S.ENDED, intent)

        assert transition.to_state == S.ENDED
        assert transition.side_effects == (E.SESSION_CLOSED,)

    def test_inactivity_stays_and_guides(self, machine):
        transition = machine.on_inactivity(S.ELIGIBILITY_CHECK, stack=[S.MAIN_MENU])

        assert transition.to_state == S.ELIGIBILITY_CHECK
        assert transition.kind == TransitionKind.INACTIVITY
        assert transition.side_effects == (E.GUIDANCE_PROMPT,)
        assert transition.state_stack == (S.MAIN_MENU,)

    def test_inactivity_preserves_pending_confirmation(self, machine):
        transition = machine.on_inactivity(
            S.CONFIRMATION, pending_target=S.ENDED, pending_effects=[E.END_SESSION]
        )

        assert transition.pending_target == S.ENDED
        assert transition.pending_effects == (E.END_SESSION,)
