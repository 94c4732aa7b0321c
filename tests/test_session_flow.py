from __future__ import annotations

import asyncio

import pytest

from conftest import FakeAnalyzer, make_result
from schemas import UserInput
from session_flow import (
    InvalidTransition,
    InvokeOracle,
    Notify,
    OracleFailed,
    OracleSucceeded,
    Restart,
    ScrollToTop,
    SessionFlow,
    SessionPhase,
    SessionState,
    StateCell,
    Start,
    Submit,
    UpdateField,
    transition,
)


def _intake_with(full_name: str, birth_date: str, intention: str = "") -> SessionState:
    state = transition(SessionState(), Start()).state
    for field, value in (("fullName", full_name), ("birthDate", birth_date), ("intention", intention)):
        state = transition(state, UpdateField(field, value)).state
    return state


def test_start_moves_intro_to_intake_with_empty_draft() -> None:
    outcome = transition(SessionState(), Start())
    assert outcome.state.phase is SessionPhase.INTAKE
    assert outcome.state.draft == UserInput()
    assert outcome.effects == ()


def test_invalid_submit_stays_in_intake_without_effects() -> None:
    state = _intake_with("", "2020-01-01")
    outcome = transition(state, Submit())
    assert outcome.state == state
    assert outcome.effects == ()


def test_valid_submit_moves_to_submitting_and_requests_oracle() -> None:
    outcome = transition(_intake_with("Nguyen Van A", "1990-05-01"), Submit())
    expected = UserInput(full_name="Nguyen Van A", birth_date="1990-05-01")
    assert outcome.state.phase is SessionPhase.SUBMITTING
    assert outcome.state.submitted == expected
    assert outcome.state.result is None
    assert outcome.effects == (InvokeOracle(expected),)


def test_oracle_success_moves_to_report_and_scrolls(sample_result) -> None:
    submitting = transition(_intake_with("A", "2020-01-01"), Submit()).state
    outcome = transition(submitting, OracleSucceeded(sample_result))
    assert outcome.state.phase is SessionPhase.REPORT
    assert outcome.state.result == sample_result
    assert outcome.effects == (ScrollToTop(),)


def test_oracle_failure_returns_to_intake_with_draft_preserved() -> None:
    submitting = transition(_intake_with("Nguyen Van A", "1990-05-01", "clarity"), Submit()).state
    outcome = transition(submitting, OracleFailed(RuntimeError("boom")))
    assert outcome.state.phase is SessionPhase.INTAKE
    assert outcome.state.draft == UserInput("Nguyen Van A", "1990-05-01", "clarity")
    assert outcome.state.result is None
    assert len(outcome.effects) == 1
    assert isinstance(outcome.effects[0], Notify)


def test_restart_discards_everything(sample_result) -> None:
    submitting = transition(_intake_with("A", "2020-01-01", "x"), Submit()).state
    report = transition(submitting, OracleSucceeded(sample_result)).state

    intro = transition(report, Restart()).state
    assert intro == SessionState()

    intake = transition(intro, Start()).state
    assert intake.draft == UserInput(full_name="", birth_date="", intention="")


@pytest.mark.parametrize(
    "state, event",
    [
        (SessionState(), Submit()),
        (SessionState(), UpdateField("fullName", "A")),
        (SessionState(phase=SessionPhase.INTAKE), Restart()),
        (SessionState(phase=SessionPhase.SUBMITTING, submitted=UserInput("A", "2020-01-01")), UpdateField("fullName", "B")),
        (SessionState(phase=SessionPhase.SUBMITTING, submitted=UserInput("A", "2020-01-01")), Submit()),
    ],
)
def test_events_outside_their_phase_are_rejected(state: SessionState, event) -> None:
    with pytest.raises(InvalidTransition):
        transition(state, event)


def test_flow_happy_path_reaches_report() -> None:
    result = make_result(indicator_count=21)
    analyzer = FakeAnalyzer(result=result)
    flow = SessionFlow(analyzer, StateCell(_intake_with("Nguyen Van A", "1990-05-01")))

    effects = asyncio.run(flow.dispatch(Submit()))

    assert flow.state.phase is SessionPhase.REPORT
    assert flow.state.submitted == UserInput("Nguyen Van A", "1990-05-01")
    assert flow.state.result == result
    assert analyzer.calls == [UserInput("Nguyen Van A", "1990-05-01")]
    assert effects == [ScrollToTop()]


def test_flow_failure_path_preserves_input() -> None:
    analyzer = FakeAnalyzer(error=ConnectionError("channel busy"))
    flow = SessionFlow(analyzer, StateCell(_intake_with("Nguyen Van A", "1990-05-01")))

    effects = asyncio.run(flow.dispatch(Submit()))

    assert flow.state.phase is SessionPhase.INTAKE
    assert flow.state.draft.full_name == "Nguyen Van A"
    assert flow.state.draft.birth_date == "1990-05-01"
    assert [type(effect) for effect in effects] == [Notify]


def test_flow_routes_malformed_result_to_failure() -> None:
    payload = make_result().to_dict()
    payload["mainColorHex"] = "blue"
    flow = SessionFlow(FakeAnalyzer(result=payload), StateCell(_intake_with("A", "2020-01-01")))

    effects = asyncio.run(flow.dispatch(Submit()))

    assert flow.state.phase is SessionPhase.INTAKE
    assert flow.state.result is None
    assert [type(effect) for effect in effects] == [Notify]


def test_flow_accepts_plain_dict_payload() -> None:
    payload = make_result(indicator_count=0).to_dict()
    flow = SessionFlow(FakeAnalyzer(result=payload), StateCell(_intake_with("A", "2020-01-01")))

    asyncio.run(flow.dispatch(Submit()))

    assert flow.state.phase is SessionPhase.REPORT
    assert flow.state.result.indicators == []


def test_flow_skips_oracle_when_validation_fails() -> None:
    analyzer = FakeAnalyzer()
    flow = SessionFlow(analyzer, StateCell(_intake_with("A", "")))

    effects = asyncio.run(flow.dispatch(Submit()))

    assert effects == []
    assert analyzer.calls == []
    assert flow.state.phase is SessionPhase.INTAKE


def test_last_state_is_the_state_the_submit_was_judged_on() -> None:
    flow = SessionFlow(FakeAnalyzer(), StateCell(_intake_with("", "2020-01-01")))
    assert flow.last_state is None

    asyncio.run(flow.dispatch(Submit()))

    assert flow.last_state.phase is SessionPhase.INTAKE
    assert flow.last_state.draft.full_name == ""
