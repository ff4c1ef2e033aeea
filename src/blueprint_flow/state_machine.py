"""Authoring-flow state machine using the ``transitions`` library.

One state per :class:`~src.blueprint_flow.steps.Step`, a ``next_step``
transition between every consecutive pair (guarded by ``can_advance``), a
``restart_stage`` transition back to each content stage's first data step
and a ``finish_wizard`` shortcut into ideation.
"""

from __future__ import annotations

import logging
from typing import Any

from transitions import Machine, State

from src.blueprint_flow.steps import (
    STAGE_STEPS,
    STEP_ORDER,
    STEP_INFO,
    Step,
    can_leave,
    first_data_step,
    step_is_satisfied,
)
from src.shared.models.blueprint import BlueprintDocument, Stage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# States -- one per step, named by the step value
# ---------------------------------------------------------------------------
STATES: list[State] = [State(step.value) for step in STEP_ORDER]

# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
TRANSITIONS: list[dict[str, Any]] = [
    {
        "trigger": "next_step",
        "source": current.value,
        "dest": following.value,
        "conditions": ["can_advance"],
    }
    for current, following in zip(STEP_ORDER, STEP_ORDER[1:])
]

TRANSITIONS += [
    {
        "trigger": "restart_stage",
        "source": [step.value for step in STAGE_STEPS[stage]],
        "dest": first_data_step(stage).value,
    }
    for stage in (Stage.IDEATION, Stage.JOURNEY, Stage.DELIVERABLES)
]

TRANSITIONS.append(
    {
        "trigger": "finish_wizard",
        "source": [step.value for step in STAGE_STEPS[Stage.WIZARD]],
        "dest": Step.IDEATION_CONCEPT.value,
        "conditions": ["wizard_complete"],
    }
)


class FlowModel:
    """Model object for the ``transitions`` machine.

    Holds the document the guards read.  The ``state`` attribute is
    managed by the machine; :attr:`step` is its typed view.
    """

    def __init__(self, document: BlueprintDocument, initial: Step = Step.WIZARD_VISION) -> None:
        self.document = document
        self.state: str = initial.value

    @property
    def step(self) -> Step:
        return Step(self.state)

    # ---- Guard methods ---------------------------------------------------

    def can_advance(self, *args, **kwargs) -> bool:
        """True when the current step's required data is present."""
        return can_leave(self.step, self.document)

    def wizard_complete(self, *args, **kwargs) -> bool:
        """True when every required intake field is filled."""
        return all(
            step_is_satisfied(step, self.document)
            for step in STAGE_STEPS[Stage.WIZARD]
            if STEP_INFO[step].required
        )


def create_flow_machine(model: FlowModel, initial_state: Step | None = None) -> Machine:
    """Create and return a ``Machine`` bound to *model*.

    Invalid triggers (``restart_stage`` from the wizard, ``next_step`` from
    ``COMPLETED``) are ignored and return False.  Positions restored on
    resume are applied with ``machine.set_state``.

    Args:
        model: The object whose state the machine manages.
        initial_state: Starting step; defaults to the model's current state.

    Returns:
        Configured ``Machine`` instance.
    """
    initial = initial_state.value if initial_state is not None else model.state
    machine = Machine(
        model=model,
        states=STATES,
        transitions=TRANSITIONS,
        initial=initial,
        auto_transitions=False,
        send_event=True,
        ignore_invalid_triggers=True,
    )
    logger.debug("Flow machine created at %s", initial)
    return machine
