"""
Session state machine.

``transition`` is a pure function from (state, event) to a new state plus the
effects the boundary layer has to carry out. ``SessionFlow`` is that boundary:
it applies events to a state cell and runs the oracle call, the only
suspension point of a session.
"""
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Protocol, Tuple, Union

from pydantic import ValidationError

import config
from intake import IntakeForm, ValidationFailure
from schemas import EMPTY_INPUT, AnalysisResult, UserInput

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    INTRO = "intro"
    INTAKE = "intake"
    SUBMITTING = "submitting"
    REPORT = "report"


@dataclass(frozen=True)
class SessionState:
    phase: SessionPhase = SessionPhase.INTRO
    draft: UserInput = EMPTY_INPUT
    submitted: Optional[UserInput] = None
    result: Optional[AnalysisResult] = None


# --- Events ---
@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class UpdateField:
    field: str
    value: str


@dataclass(frozen=True)
class Submit:
    pass


@dataclass(frozen=True)
class OracleSucceeded:
    result: AnalysisResult


@dataclass(frozen=True)
class OracleFailed:
    error: Any = None


@dataclass(frozen=True)
class Restart:
    pass


Event = Union[Start, UpdateField, Submit, OracleSucceeded, OracleFailed, Restart]


# --- Effects ---
@dataclass(frozen=True)
class InvokeOracle:
    user_input: UserInput


@dataclass(frozen=True)
class ScrollToTop:
    def to_dict(self) -> dict:
        return {"type": "scroll_to_top"}


@dataclass(frozen=True)
class Notify:
    message: str

    def to_dict(self) -> dict:
        return {"type": "notify", "message": self.message}


Effect = Union[InvokeOracle, ScrollToTop, Notify]


@dataclass(frozen=True)
class Transition:
    state: SessionState
    effects: Tuple[Effect, ...] = field(default_factory=tuple)


class FlowError(Exception):
    pass


class InvalidTransition(FlowError):
    def __init__(self, phase: SessionPhase, event: Event):
        self.phase = phase
        self.event = event
        super().__init__(f"Event {type(event).__name__} is not allowed in phase '{phase.value}'")


def _intro(state: SessionState, event: Event) -> Transition:
    if isinstance(event, Start):
        return Transition(SessionState(phase=SessionPhase.INTAKE))
    raise InvalidTransition(state.phase, event)


def _intake(state: SessionState, event: Event) -> Transition:
    if isinstance(event, UpdateField):
        form = IntakeForm(state.draft)
        form.update(event.field, event.value)
        return Transition(replace(state, draft=form.draft))
    if isinstance(event, Submit):
        try:
            finalized = IntakeForm(state.draft).try_submit()
        except ValidationFailure:
            # Required fields are enforced by the form itself, nothing to surface.
            return Transition(state)
        return Transition(
            replace(state, phase=SessionPhase.SUBMITTING, submitted=finalized),
            (InvokeOracle(finalized),),
        )
    raise InvalidTransition(state.phase, event)


def _submitting(state: SessionState, event: Event) -> Transition:
    if isinstance(event, OracleSucceeded):
        return Transition(
            replace(state, phase=SessionPhase.REPORT, result=event.result),
            (ScrollToTop(),),
        )
    if isinstance(event, OracleFailed):
        # The draft survives so the user can retry without retyping.
        return Transition(
            replace(state, phase=SessionPhase.INTAKE, submitted=None, result=None),
            (Notify(config.BUSY_MESSAGE),),
        )
    raise InvalidTransition(state.phase, event)


def _report(state: SessionState, event: Event) -> Transition:
    if isinstance(event, Restart):
        return Transition(SessionState())
    raise InvalidTransition(state.phase, event)


_HANDLERS = {
    SessionPhase.INTRO: _intro,
    SessionPhase.INTAKE: _intake,
    SessionPhase.SUBMITTING: _submitting,
    SessionPhase.REPORT: _report,
}


def transition(state: SessionState, event: Event) -> Transition:
    return _HANDLERS[state.phase](state, event)


# --- Boundary ---
class Analyzer(Protocol):
    async def analyze(self, user_input: UserInput) -> AnalysisResult: ...


class StateCell:
    """In-memory holder of one session's state."""

    def __init__(self, state: Optional[SessionState] = None):
        self.state = state if state is not None else SessionState()

    def apply(self, event: Event) -> Transition:
        outcome = transition(self.state, event)
        self.state = outcome.state
        return outcome


def coerce_result(response: Any) -> AnalysisResult:
    """Validates whatever the analyzer returned as an ``AnalysisResult``."""
    if isinstance(response, AnalysisResult):
        return AnalysisResult.model_validate(response.model_dump(by_alias=True))
    return AnalysisResult.model_validate(response)


class SessionFlow:
    def __init__(self, analyzer: Analyzer, cell=None):
        self.analyzer = analyzer
        self.cell = cell if cell is not None else StateCell()
        self.last_state: Optional[SessionState] = None

    @property
    def state(self) -> SessionState:
        return self.cell.state

    def apply(self, event: Event) -> List[Effect]:
        before = self.cell.state.phase
        outcome = self.cell.apply(event)
        self.last_state = outcome.state
        if outcome.state.phase is not before:
            logger.info(f"Session phase {before.value} -> {outcome.state.phase.value} on {type(event).__name__}")
        return list(outcome.effects)

    async def dispatch(self, event: Event) -> List[Effect]:
        """
        Applies ``event`` and runs any oracle call it triggers.

        Returns only the presentation effects (scroll, notify); the oracle
        effect is consumed here.
        """
        pending = self.apply(event)
        presented: List[Effect] = []
        while pending:
            effect = pending.pop(0)
            if isinstance(effect, InvokeOracle):
                pending.extend(self.apply(await self._consult_oracle(effect.user_input)))
            else:
                presented.append(effect)
        return presented

    async def _consult_oracle(self, user_input: UserInput) -> Event:
        logger.info("Calling oracle for analysis...")
        try:
            response = await self.analyzer.analyze(user_input)
            result = coerce_result(response)
        except ValidationError as e:
            logger.error(f"Oracle returned a malformed analysis: {e}")
            return OracleFailed(e)
        except Exception as e:
            logger.error(f"Oracle call failed: {e}", exc_info=True)
            return OracleFailed(e)
        if len(result.indicators) != config.EXPECTED_INDICATOR_COUNT:
            logger.warning(f"Oracle returned {len(result.indicators)} indicators, expected {config.EXPECTED_INDICATOR_COUNT}.")
        logger.info("Oracle analysis complete.")
        return OracleSucceeded(result)
