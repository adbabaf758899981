from __future__ import annotations

import pytest

from ownership_tracker.models.workflow import (
    Back,
    ChooseScenario,
    DecisionTarget,
    EnterManualName,
    Next,
    OnboardingMode,
    SelectEntry,
    SetConfirmed,
    SetFound,
    SetIntegration,
    SetMonitoringName,
    Step,
    TechServiceScenario,
)
from ownership_tracker.services.onboarding import can_save, initial_state, reduce, step_guard

TEAM = DecisionTarget.TEAM
TECH = DecisionTarget.TECH_SERVICE


def _run(state, *events):
    for event in events:
        state = reduce(state, event)
    return state


def test_initial_state():
    state = initial_state()
    assert state.step is Step.TEAM
    assert state.team.found is None
    assert state.mode is OnboardingMode.SINGLE


def test_team_guard_blocks_while_found_undecided():
    state = _run(initial_state(), SelectEntry(TEAM, "T1"), EnterManualName(TEAM, "Platform"), Next())
    assert state.step is Step.TEAM
    assert state.team.selected_id == "T1"  # answers kept


@pytest.mark.parametrize("name", ["", "   "])
def test_team_guard_blocks_blank_manual_name(name):
    state = _run(initial_state(), SetFound(TEAM, False), EnterManualName(TEAM, name), Next())
    assert state.step is Step.TEAM


def test_team_guard_blocks_found_without_selection():
    state = _run(initial_state(), SetFound(TEAM, True), Next())
    assert state.step is Step.TEAM


def test_team_found_with_selection_advances():
    state = _run(initial_state(), SetFound(TEAM, True), SelectEntry(TEAM, "T1"), Next())
    assert state.step is Step.TECH_SERVICE


def test_team_manual_name_advances():
    state = _run(initial_state(), SetFound(TEAM, False), EnterManualName(TEAM, "New Team"), Next())
    assert state.step is Step.TECH_SERVICE


def test_tech_service_guard_same_shape():
    at_tech = _run(initial_state(), SetFound(TEAM, False), EnterManualName(TEAM, "X"), Next())
    blocked = _run(at_tech, SetFound(TECH, False), Next())
    assert blocked.step is Step.TECH_SERVICE
    passed = _run(blocked, EnterManualName(TECH, "svc-x"), Next())
    assert passed.step is Step.DYNATRACE


def test_scenario_none_satisfies_tech_guard():
    at_tech = _run(initial_state(), SetFound(TEAM, False), EnterManualName(TEAM, "X"), Next())
    state = _run(at_tech, ChooseScenario(TechServiceScenario.NONE), Next())
    assert state.step is Step.DYNATRACE


def test_scenario_integrate_presets_monitoring():
    at_tech = _run(initial_state(), SetFound(TEAM, False), EnterManualName(TEAM, "X"), Next())
    state = _run(
        at_tech,
        ChooseScenario(TechServiceScenario.INTEGRATE_WITH_MONITORING),
        SetFound(TECH, True),
        SelectEntry(TECH, "S1"),
        Next(),
    )
    assert state.step is Step.DYNATRACE
    assert state.monitoring.wants_integration is True


def test_scenario_ignored_in_batch_mode():
    state = reduce(initial_state(OnboardingMode.BATCH), ChooseScenario(TechServiceScenario.NONE))
    assert state.tech_service.scenario is None


def test_dynatrace_guard_requires_answer():
    at_dt = _run(
        initial_state(),
        SetFound(TEAM, False), EnterManualName(TEAM, "X"), Next(),
        SetFound(TECH, False), EnterManualName(TECH, "svc"), Next(),
    )
    assert step_guard(at_dt) is False
    assert reduce(at_dt, Next()).step is Step.DYNATRACE
    confirmed = _run(at_dt, SetIntegration(False), Next())
    assert confirmed.step is Step.CONFIRM


def test_confirm_is_last_state_and_save_needs_confirmation():
    at_confirm = _run(
        initial_state(),
        SetFound(TEAM, False), EnterManualName(TEAM, "X"), Next(),
        SetFound(TECH, False), EnterManualName(TECH, "svc"), Next(),
        SetIntegration(True), SetMonitoringName("dt-svc"), Next(),
    )
    assert at_confirm.step is Step.CONFIRM
    assert can_save(at_confirm) is False
    done = _run(at_confirm, SetConfirmed(True), Next())
    assert done.step is Step.CONFIRM
    assert can_save(done) is True


@pytest.mark.parametrize(
    "edit",
    [
        EnterManualName(TEAM, "   "),
        SetFound(TEAM, None),
        SetFound(TECH, True),  # found without a selection
        SetIntegration(None),
    ],
)
def test_save_blocked_when_earlier_answer_cleared_on_confirm(edit):
    confirmed = _run(
        initial_state(),
        SetFound(TEAM, False), EnterManualName(TEAM, "Ops"), Next(),
        SetFound(TECH, False), EnterManualName(TECH, "svc"), Next(),
        SetIntegration(True), Next(),
        SetConfirmed(True),
    )
    assert can_save(confirmed) is True

    edited = reduce(confirmed, edit)
    assert edited.step is Step.CONFIRM
    assert can_save(edited) is False
    assert step_guard(edited) is False


def test_next_blocked_when_team_cleared_after_leaving_team():
    at_tech = _run(
        initial_state(),
        SetFound(TEAM, False), EnterManualName(TEAM, "Ops"), Next(),
        SetFound(TECH, False), EnterManualName(TECH, "svc"),
        EnterManualName(TEAM, ""),
        Next(),
    )
    assert at_tech.step is Step.TECH_SERVICE


def test_back_keeps_answers():
    at_dt = _run(
        initial_state(),
        SetFound(TEAM, True), SelectEntry(TEAM, "T1"), Next(),
        SetFound(TECH, False), EnterManualName(TECH, "svc"), Next(),
    )
    back = _run(at_dt, Back(), Back())
    assert back.step is Step.TEAM
    assert back.team.selected_id == "T1"
    assert back.tech_service.manual_name == "svc"
    assert reduce(back, Back()).step is Step.TEAM


def test_flipping_found_keeps_both_inputs():
    state = _run(
        initial_state(),
        SetFound(TEAM, True), SelectEntry(TEAM, "T1"),
        SetFound(TEAM, False), EnterManualName(TEAM, "Manual"),
        SetFound(TEAM, True),
    )
    assert state.team.selected_id == "T1"
    assert state.team.manual_name == "Manual"


def test_reduce_is_pure():
    state = initial_state()
    reduce(state, SetFound(TEAM, True))
    assert state.team.found is None


def test_unknown_event_rejected():
    with pytest.raises(TypeError):
        reduce(initial_state(), object())  # type: ignore[arg-type]
