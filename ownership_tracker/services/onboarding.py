from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from ..excel.writer import WriteFailure
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary
from ..models.directory import Service, Team
from ..models.error_record import ErrorRecord
from ..models.save_result import SaveResult
from ..models.schema import SchemaDefinition
from ..models.service_record import ServiceRecord
from ..models.workflow import (
    STEP_ORDER,
    Back,
    ChooseScenario,
    ConfirmDecision,
    DecisionTarget,
    DirectoryDecision,
    EnterManualName,
    MonitoringDecision,
    Next,
    OnboardingMode,
    SelectEntry,
    SetConfirmed,
    SetFound,
    SetIntegration,
    SetMonitoringName,
    Step,
    TechServiceDecision,
    TechServiceScenario,
    WorkflowEvent,
    WorkflowState,
)
from .completion import overall_progress
from .directory import DirectoryError, DirectoryGateway, DirectoryNotFound
from .merger import PatchSet, batch_patch
from .record_store import RecordStore
from .summary import render_summary_line

"""Onboarding workflow engine.

TEAM -> TECH_SERVICE -> DYNATRACE -> CONFIRM, then the terminal SAVE action.

- ``reduce`` is pure: same state + event -> same state, no I/O
- ``Next`` advances only when the current step's guard holds; otherwise the
  state comes back unchanged (answers are never discarded)
- ``Back`` always moves one step back and keeps every answer
- ``derive_patch_set`` turns the final answers into ordered field assignments
- ``OnboardingSession`` wires the reducer to the directory and the record store
"""

__all__ = [
    "GuardViolation",
    "RecordsNotFound",
    "YES",
    "NO",
    "initial_state",
    "step_guard",
    "can_save",
    "reduce",
    "derive_patch_set",
    "prefill_state",
    "resolve_service",
    "OnboardingSession",
]

logger = logging.getLogger(__name__)

YES = "Yes"
NO = "No"


class GuardViolation(Exception):
    """Raised when SAVE is requested before every step guard holds."""


class RecordsNotFound(ValueError):
    """None of the session's record ids exist in the workbook."""


def _flag(value: bool) -> str:
    return YES if value else NO


def initial_state(mode: OnboardingMode = OnboardingMode.SINGLE) -> WorkflowState:
    return WorkflowState(mode=mode)


def step_guard(state: WorkflowState, step: Step | None = None) -> bool:
    """True when the answers collected for ``step`` (default: current) allow moving on."""
    step = step or state.step
    if step is Step.TEAM:
        return state.team.is_complete
    if step is Step.TECH_SERVICE:
        return state.tech_service.is_complete
    if step is Step.DYNATRACE:
        return state.monitoring.wants_integration is not None
    return can_save(state)


def _earlier_guards_hold(state: WorkflowState, step: Step) -> bool:
    # answers of earlier steps stay editable, so they are re-checked on every move
    return all(step_guard(state, s) for s in STEP_ORDER[: STEP_ORDER.index(step)])


def can_save(state: WorkflowState) -> bool:
    return (
        state.step is Step.CONFIRM
        and state.confirm.confirmed is True
        and _earlier_guards_hold(state, Step.CONFIRM)
    )


def _update_decision(state: WorkflowState, target: DecisionTarget, **changes: object) -> WorkflowState:
    if target is DecisionTarget.TEAM:
        return replace(state, team=replace(state.team, **changes))
    return replace(state, tech_service=replace(state.tech_service, **changes))


def _advance(state: WorkflowState) -> WorkflowState:
    if state.step is Step.CONFIRM:
        return state
    if not (step_guard(state) and _earlier_guards_hold(state, state.step)):
        return state
    index = STEP_ORDER.index(state.step)
    advanced = replace(state, step=STEP_ORDER[index + 1])
    if (
        state.step is Step.TECH_SERVICE
        and state.tech_service.scenario is TechServiceScenario.INTEGRATE_WITH_MONITORING
        and state.monitoring.wants_integration is None
    ):
        advanced = replace(advanced, monitoring=replace(state.monitoring, wants_integration=True))
    return advanced


def _retreat(state: WorkflowState) -> WorkflowState:
    index = STEP_ORDER.index(state.step)
    if index == 0:
        return state
    return replace(state, step=STEP_ORDER[index - 1])


def reduce(state: WorkflowState, event: WorkflowEvent) -> WorkflowState:
    """Apply one event. Unknown event types raise ``TypeError``."""
    if isinstance(event, SetFound):
        return _update_decision(state, event.target, found=event.found)
    if isinstance(event, SelectEntry):
        return _update_decision(state, event.target, selected_id=event.entry_id)
    if isinstance(event, EnterManualName):
        return _update_decision(state, event.target, manual_name=event.name)
    if isinstance(event, ChooseScenario):
        if state.mode is not OnboardingMode.SINGLE:
            # scenario choice only exists in the single-record editor
            return state
        return replace(state, tech_service=replace(state.tech_service, scenario=event.scenario))
    if isinstance(event, SetIntegration):
        return replace(state, monitoring=replace(state.monitoring, wants_integration=event.wants_integration))
    if isinstance(event, SetMonitoringName):
        return replace(state, monitoring=replace(state.monitoring, service_name=event.name))
    if isinstance(event, SetConfirmed):
        return replace(state, confirm=ConfirmDecision(confirmed=event.confirmed))
    if isinstance(event, Next):
        return _advance(state)
    if isinstance(event, Back):
        return _retreat(state)
    raise TypeError(f"unsupported workflow event: {type(event).__name__}")


def _find_by_id(entries: Iterable[Team | Service], entry_id: str) -> Team | Service | None:
    for entry in entries:
        if entry.id == entry_id:
            return entry
    return None


def _selected_service(state: WorkflowState, services: Sequence[Service]) -> Service | None:
    decision = state.tech_service
    if decision.scenario is TechServiceScenario.NONE or decision.found is not True:
        return None
    found = _find_by_id(services, decision.selected_id)
    return found if isinstance(found, Service) else None


def derive_patch_set(
    state: WorkflowState,
    schema: SchemaDefinition,
    teams: Sequence[Team],
    services: Sequence[Service],
) -> PatchSet:
    """Turn the workflow answers into ordered (field, value) assignments.

    Precedence:
    1. team name (directory name, or manual name + team-not-found flag)
    2. tech service (directory name + id + owning team, or manual name + flag)
    3. monitoring (flag, and name = override or resolved tech-service name)
    4. integrated flag = confirmed and both directory decisions answered

    A later rule may overwrite a field set by an earlier one; each field keeps
    the position of its first assignment. Roles the schema lacks are skipped.
    """
    roles = schema.roles
    patch: dict[str, str] = {}

    def put(key: str | None, value: str) -> None:
        if key is not None:
            patch[key] = value

    put(roles.acknowledged, _flag(state.confirm.confirmed))

    team = state.team
    if team.found is True:
        entry = _find_by_id(teams, team.selected_id)
        if entry is not None:
            put(roles.team, entry.name)
            put(roles.team_not_found, NO)
    elif team.found is False:
        put(roles.team, team.manual_name.strip())
        put(roles.team_not_found, YES)

    tech = state.tech_service
    service = _selected_service(state, services)
    tech_name = ""
    if tech.scenario is not TechServiceScenario.NONE:
        if service is not None:
            tech_name = service.name
            put(roles.tech_service, service.name)
            put(roles.tech_service_id, service.id)
            put(roles.tech_service_not_found, NO)
            if service.owning_team_name:
                put(roles.owning_team, service.owning_team_name)
        elif tech.found is False:
            tech_name = tech.manual_name.strip()
            put(roles.tech_service, tech_name)
            put(roles.tech_service_not_found, YES)

    monitoring = state.monitoring
    if monitoring.wants_integration is True:
        put(roles.monitoring_enabled, YES)
        put(roles.monitoring_name, monitoring.service_name.strip() or tech_name)
        if (
            state.mode is OnboardingMode.SINGLE
            and roles.owning_team is None
            and service is not None
            and service.owning_team_name
        ):
            # the tech service's owner is authoritative for the team column
            put(roles.team, service.owning_team_name)
    elif monitoring.wants_integration is False:
        put(roles.monitoring_enabled, NO)

    resolved = team.found is not None and tech.found is not None
    put(roles.integrated, _flag(state.confirm.confirmed and resolved))

    return list(patch.items())


def _prefill_decision(
    value: str,
    not_found_flag: str,
    entries: Sequence[Team | Service],
    decision: DirectoryDecision,
) -> DirectoryDecision:
    if not value:
        return decision
    if not_found_flag == YES:
        return replace(decision, found=False, manual_name=value)
    for entry in entries:
        if entry.name == value:
            return replace(decision, found=True, selected_id=entry.id)
    return decision


def prefill_state(
    record: ServiceRecord,
    schema: SchemaDefinition,
    teams: Sequence[Team],
    services: Sequence[Service],
    mode: OnboardingMode = OnboardingMode.SINGLE,
) -> WorkflowState:
    """Restore earlier answers from a record that was onboarded before.

    A directory name that no longer exists in the fetched list leaves the
    decision unanswered rather than guessing.
    """
    roles = schema.roles

    def value_of(key: str | None) -> str:
        return record.get(key) if key is not None else ""

    team = _prefill_decision(
        value_of(roles.team), value_of(roles.team_not_found), teams, DirectoryDecision()
    )
    tech = _prefill_decision(
        value_of(roles.tech_service), value_of(roles.tech_service_not_found), services, TechServiceDecision()
    )

    monitoring = MonitoringDecision()
    if roles.monitoring_enabled is not None:
        if value_of(roles.monitoring_enabled) == YES:
            monitoring = MonitoringDecision(True, value_of(roles.monitoring_name))
        else:
            monitoring = MonitoringDecision(False)

    confirmed = value_of(roles.acknowledged).lower() == "yes"
    return WorkflowState(
        mode=mode,
        team=team,
        tech_service=tech,  # type: ignore[arg-type]
        monitoring=monitoring,
        confirm=ConfirmDecision(confirmed),
    )


def resolve_service(
    gateway: DirectoryGateway,
    services: Sequence[Service],
    service_id: str,
    name: str = "",
) -> Service | None:
    """Look a service up by id; on NotFound fall back to a name match in ``services``."""
    try:
        return gateway.get_service(service_id)
    except DirectoryNotFound:
        logger.info("service %s not found by id, matching by name %r", service_id, name)
    wanted = name.strip().lower()
    if not wanted:
        return None
    for service in services:
        if service.name.strip().lower() == wanted:
            return service
    return None


class OnboardingSession:
    """One onboarding run over one record (single) or a selection (batch).

    Created with ``start``; directory data is fetched before any state exists,
    so a directory failure means there is no session at all.
    """

    def __init__(
        self,
        gateway: DirectoryGateway,
        store: RecordStore,
        record_ids: Sequence[str],
        teams: Sequence[Team],
        services: Sequence[Service],
        state: WorkflowState,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.record_ids = list(record_ids)
        self.teams = list(teams)
        self.services = list(services)
        self.state = state
        self.error_log = error_log
        self._pending: list[ServiceRecord] | None = None
        self._pending_patched = 0

    @classmethod
    def start(
        cls,
        gateway: DirectoryGateway,
        store: RecordStore,
        record_ids: Sequence[str],
        mode: OnboardingMode = OnboardingMode.SINGLE,
        *,
        error_log: ErrorLogBuffer | None = None,
    ) -> OnboardingSession:
        """Fetch directory lists, load records and build the initial state.

        Raises:
            DirectoryError: any directory failure (no session is created)
            StorageError: the workbook cannot be loaded
            RecordsNotFound: the single record, or every batch record, is missing
            ValueError: no ids, or more than one id in single mode
        """
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            raise ValueError("no record ids selected")
        if mode is OnboardingMode.SINGLE and len(ids) != 1:
            raise ValueError(f"single mode needs exactly one record id, got {len(ids)}")

        try:
            teams = gateway.get_all_teams()
            services = gateway.get_all_services()
        except DirectoryError as e:
            logger.error("directory unavailable: %s", e)
            if error_log is not None:
                error_log.append(ErrorRecord.create("directory", "", type(e).__name__, str(e)))
                error_log.flush()
            raise

        loaded = store.load()
        by_id = {r.id: r for r in loaded.records}
        missing = [record_id for record_id in ids if record_id not in by_id]
        if len(missing) == len(ids):
            raise RecordsNotFound(f"record id(s) not found in {store.path.name}: {', '.join(missing)}")
        if missing:
            logger.warning("record id(s) not found in %s, skipped: %s", store.path.name, missing)

        state = initial_state(mode)
        if mode is OnboardingMode.SINGLE:
            state = prefill_state(by_id[ids[0]], store.schema, teams, services, mode)
        return cls(gateway, store, ids, teams, services, state, error_log)

    def dispatch(self, event: WorkflowEvent) -> WorkflowState:
        if isinstance(event, SelectEntry):
            entries: Sequence[Team | Service] = (
                self.teams if event.target is DecisionTarget.TEAM else self.services
            )
            if _find_by_id(entries, event.entry_id) is None:
                raise ValueError(f"unknown {event.target.value} id: {event.entry_id}")
        self.state = reduce(self.state, event)
        return self.state

    @property
    def pending_records(self) -> list[ServiceRecord] | None:
        """Patched records kept after a failed write, ``None`` when nothing is pending."""
        return list(self._pending) if self._pending is not None else None

    def _refresh_selected_service(self) -> list[Service]:
        service = _selected_service(self.state, self.services)
        if service is None:
            return self.services
        try:
            fresh = resolve_service(self.gateway, self.services, service.id, service.name)
        except DirectoryError as e:
            logger.warning("could not refresh service %s, using fetched list: %s", service.id, e)
            return self.services
        if fresh is None or fresh.id != service.id:
            return self.services
        return [fresh if s.id == service.id else s for s in self.services]

    def patch_set(self) -> PatchSet:
        return derive_patch_set(self.state, self.store.schema, self.teams, self.services)

    def save(self) -> SaveResult:
        """Re-read the file, apply the patch-set to the session's ids and write it back.

        Raises:
            GuardViolation: an answer is incomplete or confirmation is missing
            RecordsNotFound: the session's records were removed from the file
            WriteFailure: every write attempt failed (see ``retry_save``)
        """
        if not can_save(self.state):
            raise GuardViolation("onboarding must be complete and confirmed on the last step before saving")

        loaded = self.store.load()
        services = self._refresh_selected_service()
        patch = derive_patch_set(self.state, self.store.schema, self.teams, services)
        present = {r.id for r in loaded.records}
        patched_rows = sum(1 for record_id in self.record_ids if record_id in present)
        if patched_rows == 0:
            raise RecordsNotFound(f"session records no longer in {self.store.path.name}")
        records = batch_patch(loaded.records, self.record_ids, patch, self.store.schema)
        logger.info("applying %d fields to %d record(s)", len(patch), patched_rows)
        return self._write(records, patched_rows)

    def retry_save(self) -> SaveResult:
        if self._pending is None:
            raise ValueError("no failed save to retry")
        return self._write(self._pending, self._pending_patched)

    def _write(self, records: list[ServiceRecord], patched_rows: int) -> SaveResult:
        try:
            result = self.store.save(records, patched_rows=patched_rows)
        except WriteFailure as e:
            self._pending = records
            self._pending_patched = patched_rows
            if self.error_log is not None:
                self.error_log.append(
                    ErrorRecord.create("storage", self.store.path.name, "WRITE_FAILURE", str(e))
                )
                self.error_log.flush()
            raise
        self._pending = None
        self._pending_patched = 0
        summary_line = render_summary_line(result, overall_progress(records, self.store.schema))
        # log_summary adds the "SUMMARY " prefix itself
        log_summary(summary_line.removeprefix("SUMMARY "))
        return result
