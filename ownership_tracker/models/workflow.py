from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Onboarding workflow state and events.

The state is an immutable snapshot: the current step, the mode and one
decision per step. Events are plain frozen dataclasses consumed by
``ownership_tracker.services.onboarding.reduce``.
"""

__all__ = [
    "Step",
    "STEP_ORDER",
    "OnboardingMode",
    "TechServiceScenario",
    "DecisionTarget",
    "DirectoryDecision",
    "TechServiceDecision",
    "MonitoringDecision",
    "ConfirmDecision",
    "WorkflowState",
    "SelectEntry",
    "EnterManualName",
    "SetFound",
    "ChooseScenario",
    "SetIntegration",
    "SetMonitoringName",
    "SetConfirmed",
    "Next",
    "Back",
    "WorkflowEvent",
]


class Step(Enum):
    TEAM = "team"
    TECH_SERVICE = "tech_service"
    DYNATRACE = "dynatrace"
    CONFIRM = "confirm"


STEP_ORDER: tuple[Step, ...] = (Step.TEAM, Step.TECH_SERVICE, Step.DYNATRACE, Step.CONFIRM)


class OnboardingMode(Enum):
    SINGLE = "single"  # one record, scenario choice available
    BATCH = "batch"  # same answers applied to every selected record


class TechServiceScenario(Enum):
    EXISTING = "existing"
    INTEGRATE_WITH_MONITORING = "integrate-with-monitoring"
    NONE = "none"


class DecisionTarget(Enum):
    TEAM = "team"
    TECH_SERVICE = "tech_service"


@dataclass(frozen=True)
class DirectoryDecision:
    """Was the entry found in the directory, and which one / what name.

    ``found`` is ``None`` until the user answers. Both ``selected_id`` and
    ``manual_name`` are kept when the answer flips so going back and forth
    never loses input.
    """
    found: bool | None = None
    selected_id: str = ""
    manual_name: str = ""

    @property
    def is_complete(self) -> bool:
        if self.found is True:
            return self.selected_id.strip() != ""
        if self.found is False:
            return self.manual_name.strip() != ""
        return False


@dataclass(frozen=True)
class TechServiceDecision(DirectoryDecision):
    scenario: TechServiceScenario | None = None

    @property
    def is_complete(self) -> bool:
        if self.scenario is TechServiceScenario.NONE:
            return True
        return super().is_complete


@dataclass(frozen=True)
class MonitoringDecision:
    wants_integration: bool | None = None
    service_name: str = ""  # optional override, falls back to the tech-service name


@dataclass(frozen=True)
class ConfirmDecision:
    confirmed: bool = False


@dataclass(frozen=True)
class WorkflowState:
    mode: OnboardingMode = OnboardingMode.SINGLE
    step: Step = Step.TEAM
    team: DirectoryDecision = field(default_factory=DirectoryDecision)
    tech_service: TechServiceDecision = field(default_factory=TechServiceDecision)
    monitoring: MonitoringDecision = field(default_factory=MonitoringDecision)
    confirm: ConfirmDecision = field(default_factory=ConfirmDecision)


@dataclass(frozen=True)
class SelectEntry:
    target: DecisionTarget
    entry_id: str


@dataclass(frozen=True)
class EnterManualName:
    target: DecisionTarget
    name: str


@dataclass(frozen=True)
class SetFound:
    target: DecisionTarget
    found: bool | None


@dataclass(frozen=True)
class ChooseScenario:
    scenario: TechServiceScenario | None


@dataclass(frozen=True)
class SetIntegration:
    wants_integration: bool | None


@dataclass(frozen=True)
class SetMonitoringName:
    name: str


@dataclass(frozen=True)
class SetConfirmed:
    confirmed: bool


@dataclass(frozen=True)
class Next:
    pass


@dataclass(frozen=True)
class Back:
    pass


WorkflowEvent = (
    SelectEntry
    | EnterManualName
    | SetFound
    | ChooseScenario
    | SetIntegration
    | SetMonitoringName
    | SetConfirmed
    | Next
    | Back
)
