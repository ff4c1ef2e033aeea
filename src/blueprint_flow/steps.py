"""Step catalogue: global order, stage membership, required fields and legal actions.

Everything the flow needs to know about an individual step lives in
:data:`STEP_INFO`.  :data:`ACTION_TABLE` is the only place that decides
which chip actions are legal at a step.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.shared.models.blueprint import BlueprintDocument, ChipAction, Impact, Stage


class Step(str, Enum):
    """Every position in the authoring flow, in global order."""
    WIZARD_VISION = "WIZARD_VISION"
    WIZARD_SUBJECT = "WIZARD_SUBJECT"
    WIZARD_STUDENTS = "WIZARD_STUDENTS"
    WIZARD_LOCATION = "WIZARD_LOCATION"
    WIZARD_RESOURCES = "WIZARD_RESOURCES"
    WIZARD_SCOPE = "WIZARD_SCOPE"
    IDEATION_CONCEPT = "IDEATION_CONCEPT"
    IDEATION_DRIVING_QUESTION = "IDEATION_DRIVING_QUESTION"
    IDEATION_CHALLENGE = "IDEATION_CHALLENGE"
    IDEATION_CLARIFIER = "IDEATION_CLARIFIER"
    JOURNEY_PHASES = "JOURNEY_PHASES"
    JOURNEY_ACTIVITIES = "JOURNEY_ACTIVITIES"
    JOURNEY_RESOURCES = "JOURNEY_RESOURCES"
    JOURNEY_CLARIFIER = "JOURNEY_CLARIFIER"
    DELIVER_MILESTONES = "DELIVER_MILESTONES"
    DELIVER_RUBRIC = "DELIVER_RUBRIC"
    DELIVER_IMPACT = "DELIVER_IMPACT"
    DELIVERABLES_CLARIFIER = "DELIVERABLES_CLARIFIER"
    COMPLETED = "COMPLETED"


class StepKind(str, Enum):
    """Role of a step; selects the row of :data:`ACTION_TABLE`."""
    INITIATOR = "initiator"
    DATA = "data"
    CLARIFIER = "clarifier"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class StepInfo:
    """Static description of one step.

    ``field`` is a dotted attribute path into :class:`BlueprintDocument`;
    ``required`` steps block :meth:`BlueprintFlow.advance` until it is filled.
    """

    step: Step
    stage: Stage
    kind: StepKind
    field: str | None = None
    required: bool = False


STEP_ORDER: tuple[Step, ...] = tuple(Step)

STEP_INFO: dict[Step, StepInfo] = {
    info.step: info
    for info in (
        StepInfo(Step.WIZARD_VISION, Stage.WIZARD, StepKind.INITIATOR, "wizard_context.vision", True),
        StepInfo(Step.WIZARD_SUBJECT, Stage.WIZARD, StepKind.INITIATOR, "wizard_context.subject", True),
        StepInfo(Step.WIZARD_STUDENTS, Stage.WIZARD, StepKind.INITIATOR, "wizard_context.students", True),
        StepInfo(Step.WIZARD_LOCATION, Stage.WIZARD, StepKind.INITIATOR, "wizard_context.location"),
        StepInfo(Step.WIZARD_RESOURCES, Stage.WIZARD, StepKind.INITIATOR, "wizard_context.resources"),
        StepInfo(Step.WIZARD_SCOPE, Stage.WIZARD, StepKind.INITIATOR, "wizard_context.scope"),
        StepInfo(Step.IDEATION_CONCEPT, Stage.IDEATION, StepKind.DATA, "ideation.concept_statement", True),
        StepInfo(Step.IDEATION_DRIVING_QUESTION, Stage.IDEATION, StepKind.DATA, "ideation.driving_question", True),
        StepInfo(Step.IDEATION_CHALLENGE, Stage.IDEATION, StepKind.DATA, "ideation.challenge_statement", True),
        StepInfo(Step.IDEATION_CLARIFIER, Stage.IDEATION, StepKind.CLARIFIER),
        StepInfo(Step.JOURNEY_PHASES, Stage.JOURNEY, StepKind.DATA, "journey.phases", True),
        StepInfo(Step.JOURNEY_ACTIVITIES, Stage.JOURNEY, StepKind.DATA, "journey.activities", True),
        StepInfo(Step.JOURNEY_RESOURCES, Stage.JOURNEY, StepKind.DATA, "journey.resources", True),
        StepInfo(Step.JOURNEY_CLARIFIER, Stage.JOURNEY, StepKind.CLARIFIER),
        StepInfo(Step.DELIVER_MILESTONES, Stage.DELIVERABLES, StepKind.DATA, "deliverables.milestones", True),
        StepInfo(Step.DELIVER_RUBRIC, Stage.DELIVERABLES, StepKind.DATA, "deliverables.rubric.criteria", True),
        StepInfo(Step.DELIVER_IMPACT, Stage.DELIVERABLES, StepKind.DATA, "deliverables.impact", True),
        StepInfo(Step.DELIVERABLES_CLARIFIER, Stage.DELIVERABLES, StepKind.CLARIFIER),
        StepInfo(Step.COMPLETED, Stage.COMPLETED, StepKind.TERMINAL),
    )
}

STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)

STAGE_STEPS: dict[Stage, tuple[Step, ...]] = {
    stage: tuple(s for s in STEP_ORDER if STEP_INFO[s].stage is stage)
    for stage in STAGE_ORDER
}

ACTION_TABLE: dict[StepKind, tuple[ChipAction, ...]] = {
    StepKind.INITIATOR: (ChipAction.CONTINUE,),
    StepKind.CLARIFIER: (ChipAction.CONTINUE, ChipAction.REFINE, ChipAction.HELP),
    StepKind.DATA: (ChipAction.IDEAS, ChipAction.WHATIF, ChipAction.HELP, ChipAction.CONTINUE),
    StepKind.TERMINAL: (),
}

QUICK_REPLY_LABELS: dict[ChipAction, str] = {
    ChipAction.CONTINUE: "Continue",
    ChipAction.REFINE: "Refine",
    ChipAction.HELP: "Help",
    ChipAction.IDEAS: "Ideas",
    ChipAction.WHATIF: "What-If",
    ChipAction.BACK: "Back",
}


def stage_of(step: Step) -> Stage:
    return STEP_INFO[step].stage


def kind_of(step: Step) -> StepKind:
    return STEP_INFO[step].kind


def next_step(step: Step) -> Step | None:
    """The step after *step* in the global order, or ``None`` at the end."""
    index = STEP_ORDER.index(step)
    if index + 1 >= len(STEP_ORDER):
        return None
    return STEP_ORDER[index + 1]


def stage_step_number(step: Step) -> int:
    """1-based position of *step* within its own stage."""
    return STAGE_STEPS[stage_of(step)].index(step) + 1


def first_data_step(stage: Stage) -> Step | None:
    for step in STAGE_STEPS[stage]:
        if kind_of(step) is StepKind.DATA:
            return step
    return None


def closing_step(stage: Stage) -> Step:
    """Where a stage rests once its required fields are all filled.

    The clarifier for the three content stages, the last intake step for
    the wizard and ``COMPLETED`` for itself.
    """
    return STAGE_STEPS[stage][-1]


def resolve_field(doc: BlueprintDocument, path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        value = getattr(value, part)
    return value


def is_filled(value: Any) -> bool:
    """Strings need non-zero length, collections a non-zero count."""
    if isinstance(value, Impact):
        return value.is_complete
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return True


def step_is_satisfied(step: Step, doc: BlueprintDocument) -> bool:
    """True when the field *step* captures has content.

    Steps without a field (clarifiers, ``COMPLETED``) count as satisfied.
    """
    info = STEP_INFO[step]
    if info.field is None:
        return True
    return is_filled(resolve_field(doc, info.field))


def can_leave(step: Step, doc: BlueprintDocument) -> bool:
    """Whether the author may move on from *step* given *doc*."""
    info = STEP_INFO[step]
    if info.kind is StepKind.TERMINAL:
        return False
    if not info.required:
        return True
    return step_is_satisfied(step, doc)
