"""
Conversation Orchestrator
Runs one turn end to end: classify the utterance, resolve references, step the
state machine, carry out its side effects and commit the result against the
session version it was computed from
"""
import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog
from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from ..clock import Clock, SystemClock
from ..config import SupportedLanguage
from ..errors import (
    AmbiguousReference,
    AssistantError,
    ConcurrencyConflict,
    ErrorKind,
    SessionNotFound,
    TransientExternalFailure,
)
from ..llm.classifier import FLAG_FIELDS, BaseIntentClassifier, IntentCandidate
from ..memory.manager import SessionManager
from ..memory.memory import (
    EntityMention,
    MentionKind,
    Message,
    MessageKind,
    MessageRole,
    PendingConfirmation,
    Session,
)
from ..observability import ErrorRecorder, get_logger
from ..resilience import RetryPolicy
from ..tools.cache import SchemeCache
from ..tools.eligibility import EligibilityEngine, EligibilityResult
from .context import ContextResolver, ReferenceKind
from .core import ConversationState, IntentType, SideEffect, StateMachine, StateTransition
from .templates import field_label, render, suggestions_for

logger = get_logger(__name__)

# Intents that act on a particular scheme
SCHEME_INTENTS = frozenset({
    IntentType.SELECT_SCHEME,
    IntentType.CHECK_ELIGIBILITY,
    IntentType.APPLY,
    IntentType.SUBMIT_PROFILE,
    IntentType.PROVIDE_INFO,
})

# Session fields a turn may change; everything else belongs to the manager
TURN_FIELDS = ("language", "state", "state_stack", "profile", "history",
               "context", "turn_count", "last_input_at")

StatusCallback = Callable[[str], Any]


class TurnRequest(BaseModel):
    session_id: str
    utterance_text: str
    language: Optional[SupportedLanguage] = None
    recognition_confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class ErrorDetails(BaseModel):
    kind: ErrorKind
    message: str
    next_action: str
    recoverable: bool = False


class TurnResponse(BaseModel):
    session_id: str
    response_text: str
    next_state: ConversationState
    suggestions: List[str] = Field(default_factory=list)
    language: SupportedLanguage = SupportedLanguage.ENGLISH
    error: Optional[ErrorDetails] = None
    status_updates: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    eligibility: Optional[EligibilityResult] = None
    intent: Optional[IntentType] = None
    version: Optional[int] = None


@dataclass
class _Progress:
    """What the turn has learned so far, visible to the budget watcher and error path"""
    language: SupportedLanguage = SupportedLanguage.ENGLISH
    state: Optional[ConversationState] = None


@dataclass
class _Reply:
    lines: List[str] = field(default_factory=list)
    mentions: List[EntityMention] = field(default_factory=list)
    eligibility: Optional[EligibilityResult] = None
    summary: Optional[str] = None
    end_session: bool = False

    def say(self, text: str):
        self.lines.append(text)

    @property
    def text(self) -> str:
        return " ".join(line for line in self.lines if line)


def _copy_turn_fields(source: Session) -> Callable[[Session], None]:
    def apply(target: Session):
        for name in TURN_FIELDS:
            setattr(target, name, getattr(source, name))
    return apply


class ConversationOrchestrator:
    """
    Stateless between turns: everything a turn needs is read from the session
    manager and written back through a version-checked commit
    """

    def __init__(self,
                 sessions: SessionManager,
                 cache: SchemeCache,
                 classifier: BaseIntentClassifier,
                 engine: Optional[EligibilityEngine] = None,
                 state_machine: Optional[StateMachine] = None,
                 resolver: Optional[ContextResolver] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 clock: Optional[Clock] = None,
                 errors: Optional[ErrorRecorder] = None,
                 confidence_threshold: float = 0.5,
                 turn_budget_seconds: float = 5.0,
                 summary_threshold: int = 10,
                 inactivity_timeout_seconds: float = 120.0,
                 max_history: int = 100):
        self.sessions = sessions
        self.cache = cache
        self.classifier = classifier
        self.engine = engine or EligibilityEngine()
        self.state_machine = state_machine or StateMachine()
        self.resolver = resolver or ContextResolver()
        self.retry_policy = retry_policy or RetryPolicy.no_delay()
        self.clock = clock or sessions.clock or SystemClock()
        self.errors = errors or ErrorRecorder()
        self.confidence_threshold = confidence_threshold
        self.turn_budget_seconds = turn_budget_seconds
        self.summary_threshold = summary_threshold
        self.inactivity_timeout_seconds = inactivity_timeout_seconds
        self.max_history = max_history

    # ------------------------------------------------------------------ turns

    async def process_turn(self,
                           request: TurnRequest,
                           on_status: Optional[StatusCallback] = None) -> TurnResponse:
        """
        Handle one utterance. Never raises for conversational failures; they
        come back as a TurnResponse carrying localized error details.
        """
        progress = _Progress(language=request.language or self.sessions.default_language)
        status_updates: List[str] = []

        with structlog.contextvars.bound_contextvars(session_id=request.session_id):
            task = asyncio.ensure_future(self._guarded_turn(request, progress))
            done, _ = await asyncio.wait({task}, timeout=self.turn_budget_seconds)
            if not done:
                # over budget: tell the user once, then keep waiting
                notice = render("still_working", progress.language)
                status_updates.append(notice)
                logger.info("turn_over_budget", budget_seconds=self.turn_budget_seconds)
                if on_status is not None:
                    on_status(notice)
            response = await task

        if status_updates:
            response = response.model_copy(update={"status_updates": status_updates})
        return response

    async def _guarded_turn(self, request: TurnRequest, progress: _Progress) -> TurnResponse:
        try:
            return await self._run_turn(request, progress)
        except AssistantError as e:
            return self._error_response(request.session_id, e, progress)
        except Exception as e:
            logger.exception("turn_failed", error_type=type(e).__name__)
            return self._error_response(request.session_id, e, progress)

    async def _run_turn(self, request: TurnRequest, progress: _Progress) -> TurnResponse:
        session = await self.sessions.get(request.session_id)
        progress.language = SupportedLanguage(session.language)
        progress.state = session.state

        if request.recognition_confidence < self.confidence_threshold:
            logger.info("low_confidence_input", confidence=request.recognition_confidence)
            return TurnResponse(
                session_id=session.session_id,
                response_text=render("low_confidence", progress.language),
                next_state=session.state,
                suggestions=suggestions_for(session.state.value, progress.language),
                language=progress.language,
                version=session.version,
            )

        candidate = await self.retry_policy.call(
            self.classifier.classify,
            request.utterance_text,
            request.language or progress.language,
            session.context.active_question,
            self._scheme_names(),
            capability="intent_classifier",
        )
        logger.info("intent_classified", intent=candidate.intent.value, confidence=candidate.confidence)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.sessions.commit_max_attempts),
            retry=retry_if_exception_type(ConcurrencyConflict),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        session = await self.sessions.get(request.session_id)
                    draft, transition, reply = await self._compute(session, request, candidate)
                    committed = await self.sessions.commit(
                        session.session_id, _copy_turn_fields(draft), session.version
                    )
        except ConcurrencyConflict as e:
            raise TransientExternalFailure(
                "Turn could not be committed", capability="session_store", session_id=request.session_id
            ) from e

        language = SupportedLanguage(committed.language)
        progress.language = language
        progress.state = committed.state
        logger.info("turn_committed", from_state=transition.from_state.value,
                    to_state=transition.to_state.value, version=committed.version)

        if reply.end_session:
            await self.sessions.end(committed.session_id, consent_persist=committed.consent.pii_retention)

        return TurnResponse(
            session_id=committed.session_id,
            response_text=reply.text,
            next_state=committed.state,
            suggestions=suggestions_for(committed.state.value, language),
            language=language,
            summary=reply.summary,
            eligibility=reply.eligibility,
            intent=candidate.intent,
            version=committed.version,
        )

    async def _compute(self,
                       session: Session,
                       request: TurnRequest,
                       candidate: IntentCandidate) -> Tuple[Session, StateTransition, _Reply]:
        """Work out the turn on a private copy; nothing is stored here"""
        draft = copy.deepcopy(session)
        now = self.clock.now()
        draft.last_input_at = self.clock.monotonic()
        draft.context.idle_prompted = False
        draft.turn_count += 1

        scheme_id = self._target_scheme(draft, candidate)
        mentions = [EntityMention(MentionKind.PROFILE_FIELD, name) for name in candidate.entities]
        if scheme_id and (candidate.scheme_id or candidate.reference):
            mentions.append(EntityMention(MentionKind.SCHEME, scheme_id))
        draft.add_message(Message(
            role=MessageRole.USER,
            text=request.utterance_text,
            timestamp=now,
            intent=candidate.intent.value,
            entities=mentions,
        ), self.max_history)

        pending = draft.context.pending_confirmation
        transition = self.state_machine.next(
            draft.state,
            candidate.intent,
            draft.state_stack,
            pending.target_state if pending else None,
            pending.side_effects if pending else (),
        )
        draft.state = transition.to_state
        draft.state_stack = list(transition.state_stack)
        draft.context.pending_confirmation = (
            PendingConfirmation(transition.pending_target, transition.pending_effects)
            if transition.pending_target is not None else None
        )

        reply = _Reply()
        if self.summary_threshold and draft.turn_count >= self.summary_threshold:
            reply.summary = await self._summarize(draft)
            draft.add_message(Message(
                role=MessageRole.ASSISTANT,
                text=reply.summary,
                timestamp=now,
                kind=MessageKind.SUMMARY,
            ), self.max_history)
            draft.turn_count = 0

        for effect in transition.side_effects:
            await self._apply_effect(effect, draft, transition, candidate, scheme_id, reply)

        if not reply.lines:
            reply.say(render("help", draft.language))
        draft.add_message(Message(
            role=MessageRole.ASSISTANT,
            text=reply.text,
            timestamp=now,
            intent=candidate.intent.value,
            entities=reply.mentions,
        ), self.max_history)
        return draft, transition, reply

    def _target_scheme(self, draft: Session, candidate: IntentCandidate) -> Optional[str]:
        """Scheme the utterance is about: named, referred to, or carried over from context"""
        if candidate.scheme_id:
            return candidate.scheme_id
        if candidate.reference:
            # an explicit "that scheme" must resolve or the turn fails
            return self.resolver.resolve(draft.history, ReferenceKind.SCHEME).value
        if candidate.intent not in SCHEME_INTENTS:
            return None
        if draft.context.active_scheme_id:
            return draft.context.active_scheme_id
        found = self.resolver.try_resolve(draft.history, ReferenceKind.SCHEME)
        return found.value if found else None

    # ------------------------------------------------------------ side effects

    async def _apply_effect(self,
                            effect: SideEffect,
                            draft: Session,
                            transition: StateTransition,
                            candidate: IntentCandidate,
                            scheme_id: Optional[str],
                            reply: _Reply):
        language = SupportedLanguage(draft.language)
        effects = transition.side_effects

        if effect == SideEffect.SET_LANGUAGE:
            if candidate.language is not None:
                draft.language = candidate.language.value
            reply.say(render("language_set", draft.language))

        elif effect == SideEffect.SHOW_LANGUAGE_MENU:
            reply.say(render("language_menu", language))

        elif effect == SideEffect.SHOW_MAIN_MENU:
            reply.say(render("main_menu", language))

        elif effect == SideEffect.LIST_SCHEMES:
            schemes = await self.cache.list(language, category=candidate.category)
            if not schemes:
                reply.say(render("scheme_list_empty", language))
            else:
                reply.say(render("scheme_list", language, names=", ".join(s.name for s in schemes)))
                reply.mentions.extend(EntityMention(MentionKind.SCHEME, s.id) for s in schemes)

        elif effect == SideEffect.FETCH_SCHEME:
            if scheme_id is None:
                reply.say(render("which_scheme", language))
                return
            scheme = await self.cache.get(scheme_id, language)
            draft.context.active_scheme_id = scheme.id
            reply.mentions.append(EntityMention(MentionKind.SCHEME, scheme.id))
            if SideEffect.SHOW_APPLICATION_STEPS not in effects:
                reply.say(render("scheme_details", language, name=scheme.name, description=scheme.description))
                if scheme.deadline:
                    reply.say(render("scheme_deadline", language, deadline=scheme.deadline.isoformat()))

        elif effect == SideEffect.RECORD_PROFILE:
            applied = draft.profile.merge_all(candidate.entities, self.clock.monotonic(), source="user")
            if draft.context.active_question in applied:
                draft.context.active_question = None
            if applied and SideEffect.EVALUATE_ELIGIBILITY not in effects:
                reply.say(render("profile_recorded", language))

        elif effect == SideEffect.EVALUATE_ELIGIBILITY:
            await self._evaluate(draft, scheme_id, language, reply)

        elif effect == SideEffect.SHOW_APPLICATION_STEPS:
            target = scheme_id or draft.context.active_scheme_id
            if target is None:
                reply.say(render("which_scheme", language))
                return
            scheme = await self.cache.get(target, language)
            draft.context.active_scheme_id = scheme.id
            steps = " ".join(f"{i}. {step}" for i, step in enumerate(scheme.application_steps, 1))
            reply.say(render("application_steps", language, scheme=scheme.name, steps=steps))
            if scheme.documents:
                reply.say(render("documents", language, documents=", ".join(scheme.documents)))
            if SideEffect.FETCH_SCHEME not in effects:
                reply.mentions.append(EntityMention(MentionKind.SCHEME, scheme.id))

        elif effect == SideEffect.REQUEST_CONFIRMATION:
            pending = draft.context.pending_confirmation
            if pending is not None and pending.target_state == ConversationState.ENDED:
                reply.say(render("confirm_end", language))
            elif draft.context.active_scheme_id:
                scheme = await self.cache.get(draft.context.active_scheme_id, language)
                reply.say(render("confirm_submit", language, scheme=scheme.name))
            else:
                reply.say(render("confirm_submit_general", language))

        elif effect == SideEffect.SUBMIT_PROFILE:
            draft.context.profile_submitted = True
            reply.say(render("profile_submitted", language))
            logger.info("profile_submitted", scheme_id=draft.context.active_scheme_id,
                        fields=len(draft.profile))

        elif effect == SideEffect.CANCEL_CONFIRMATION:
            reply.say(render("confirm_cancelled", language))

        elif effect == SideEffect.END_SESSION:
            reply.say(render("goodbye", language))
            reply.end_session = True

        elif effect == SideEffect.WENT_BACK:
            reply.say(render("went_back", language))
            if draft.state == ConversationState.MAIN_MENU:
                reply.say(render("main_menu", language))

        elif effect == SideEffect.HELP_PROMPT:
            reply.say(render("help", language))

        elif effect == SideEffect.GUIDANCE_PROMPT:
            reply.say(self._guidance(draft.state, language))

        elif effect == SideEffect.SESSION_CLOSED:
            reply.say(render("session_closed", language))

    async def _evaluate(self,
                        draft: Session,
                        scheme_id: Optional[str],
                        language: SupportedLanguage,
                        reply: _Reply):
        if scheme_id is None:
            reply.say(render("which_scheme", language))
            return

        scheme = await self.cache.get_record(scheme_id)
        localized = scheme.localized(language)
        draft.context.active_scheme_id = scheme.id
        reply.mentions.append(EntityMention(MentionKind.SCHEME, scheme.id))

        # alternatives are judged on current versions only; withdrawn schemes drop out
        current = await self.cache.refresh()
        result = self.engine.check_scheme(scheme, draft.profile, language, current)
        reply.eligibility = result

        if not result.complete:
            draft.context.active_question = result.next_field
            key = "ask_flag" if result.next_field in FLAG_FIELDS else "ask_field"
            reply.say(render(key, language, scheme=localized.name,
                             field=field_label(result.next_field, language)))
            return

        draft.context.active_question = None
        if result.eligible:
            reply.say(render("eligible", language, scheme=localized.name))
            reply.say(result.explanation)
            return

        reply.say(render("ineligible", language, scheme=localized.name))
        reply.say(result.explanation)
        if result.alternatives:
            by_id = {s.id: s for s in current}
            names = [by_id[alternative].name[language] for alternative in result.alternatives]
            reply.say(render("alternatives", language, names=", ".join(names)))
        else:
            reply.say(render("no_alternatives", language))

    async def _summarize(self, draft: Session) -> str:
        language = SupportedLanguage(draft.language)
        facts = [f"{field_label(name, language)}: {value}" for name, value in draft.profile.as_dict().items()]
        if draft.context.active_scheme_id:
            try:
                scheme = await self.cache.get(draft.context.active_scheme_id, language)
                facts.insert(0, scheme.name)
            except AssistantError as e:
                logger.info("summary_scheme_unavailable", error_kind=e.kind.value)
        if not facts:
            return render("summary_empty", language)
        return render("summary", language, facts="; ".join(facts))

    def _guidance(self, state: ConversationState, language: SupportedLanguage) -> str:
        hints = suggestions_for(state.value, language)
        return render("guidance", language, hint=", ".join(hints)).strip()

    def _scheme_names(self) -> Dict[str, List[str]]:
        return self.cache.scheme_names()

    # ------------------------------------------------------------- inactivity

    async def check_inactivity(self, session_id: str) -> Optional[TurnResponse]:
        """
        Nudge a user who has gone quiet. Prompts at most once per silence;
        returns None when no prompt is due.
        """
        session = await self.sessions.peek(session_id)
        last_input = session.last_input_at if session.last_input_at is not None else session.created_at
        if self.clock.monotonic() - last_input < self.inactivity_timeout_seconds:
            return None
        if session.context.idle_prompted:
            return None

        pending = session.context.pending_confirmation
        transition = self.state_machine.on_inactivity(
            session.state,
            session.state_stack,
            pending.target_state if pending else None,
            pending.side_effects if pending else (),
        )
        language = SupportedLanguage(session.language)
        text = self._guidance(transition.to_state, language)
        now = self.clock.now()

        def prompt(target: Session):
            target.context.idle_prompted = True
            target.add_message(Message(
                role=MessageRole.ASSISTANT,
                text=text,
                timestamp=now,
                kind=MessageKind.STATUS,
            ), self.max_history)

        committed = await self.sessions.update(session_id, prompt)
        logger.info("inactivity_prompted", state=committed.state.value)
        return TurnResponse(
            session_id=session_id,
            response_text=text,
            next_state=committed.state,
            suggestions=suggestions_for(committed.state.value, language),
            language=language,
            version=committed.version,
        )

    # ----------------------------------------------------------------- errors

    def _error_response(self, session_id: str, error: Exception, progress: _Progress) -> TurnResponse:
        if isinstance(error, AssistantError):
            kind, recoverable = error.kind, error.recoverable
        else:
            kind, recoverable = ErrorKind.UNEXPECTED, False
        language = progress.language

        detail: Dict[str, Any] = {"error_type": type(error).__name__}
        if isinstance(error, TransientExternalFailure):
            detail["capability"] = error.capability
        if isinstance(error, AmbiguousReference):
            detail["candidates"] = len(error.candidates)
        self.errors.record(kind.value, self.clock.now(), session_id, **detail)

        if isinstance(error, SessionNotFound):
            next_state = ConversationState.ENDED
        else:
            self.sessions.record_error(session_id)
            next_state = progress.state or ConversationState.LANGUAGE_SELECTION

        details = ErrorDetails(
            kind=kind,
            message=render(f"error.{kind.value}", language),
            next_action=render(f"next_action.{kind.value}", language),
            recoverable=recoverable,
        )
        return TurnResponse(
            session_id=session_id,
            response_text=f"{details.message} {details.next_action}",
            next_state=next_state,
            suggestions=suggestions_for(next_state.value, language),
            language=language,
            error=details,
        )


def build_orchestrator(settings,
                       repository=None,
                       clock: Optional[Clock] = None,
                       llm_client=None,
                       store=None) -> ConversationOrchestrator:
    """Wire the default collaborators from settings"""
    from ..llm.classifier import build_classifier
    from ..tools.catalog import GOVERNMENT_SCHEMES
    from ..tools.repository import InMemorySchemeRepository

    clock = clock or SystemClock()
    policy = RetryPolicy.from_settings(settings, clock)
    engine = EligibilityEngine(alternative_limit=settings.alternative_scheme_limit)
    repository = repository or InMemorySchemeRepository(GOVERNMENT_SCHEMES, registry=engine.registry)
    sessions = SessionManager.from_settings(settings, store=store, clock=clock)
    return ConversationOrchestrator(
        sessions=sessions,
        cache=SchemeCache(repository, policy),
        classifier=build_classifier(settings, llm_client),
        engine=engine,
        state_machine=StateMachine(max_stack=settings.max_state_stack),
        resolver=ContextResolver(window=settings.context_window_turns),
        retry_policy=policy,
        clock=clock,
        confidence_threshold=settings.confidence_threshold,
        turn_budget_seconds=settings.turn_budget_seconds,
        summary_threshold=settings.summary_turn_threshold,
        inactivity_timeout_seconds=settings.inactivity_timeout_seconds,
        max_history=settings.max_history_messages,
    )
