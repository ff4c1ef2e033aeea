"""Shared test fixtures for the blueprint-flow test suite."""
from __future__ import annotations

from typing import Any

import pytest

from src.blueprint_flow.config import FlowConfig
from src.blueprint_flow.flow import BlueprintFlow
from src.persistence.autosave import DebouncedAutosaver
from src.shared.models.blueprint import (
    BlueprintDocument,
    Deliverables,
    Ideation,
    Impact,
    Journey,
    Milestone,
    Phase,
    Rubric,
    RubricCriterion,
    WizardContext,
)

# Long enough that a scheduled write never fires on its own during a test.
NEVER_MS = 60_000


class InMemoryGateway:
    """Gateway double that keeps deep copies of every saved document."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: dict[str, BlueprintDocument] = {}
        self.save_calls: list[str] = []

    def save(self, blueprint_id: str, doc: BlueprintDocument) -> bool:
        self.save_calls.append(blueprint_id)
        if self.fail:
            return False
        self.saved[blueprint_id] = doc.model_copy(deep=True)
        return True

    def load(self, blueprint_id: str) -> BlueprintDocument | None:
        doc = self.saved.get(blueprint_id)
        return doc.model_copy(deep=True) if doc is not None else None


class FakeBackend:
    """Generative backend double returning a canned answer."""

    def __init__(self, answer: Any = None, error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.prompts: list[str] = []

    def generate(self, prompt: str, *, system: str | None = None) -> Any:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer


# ---------------------------------------------------------------------------
# Documents at each stage
# ---------------------------------------------------------------------------


def wizard_context(duration: str = "10 weeks") -> WizardContext:
    return WizardContext(
        vision="Students see themselves as scientists",
        subject="Biology",
        students="Grade 7",
        duration=duration,
    )


def ideation() -> Ideation:
    return Ideation(
        concept_statement="Healthy ecosystems depend on clean water",
        driving_question="How might we improve water quality in our creek?",
        challenge_statement="Design a filter prototype for the city council",
    )


def journey() -> Journey:
    return Journey(
        phases=[Phase(title="Explore", description="Investigate the creek")],
        activities=["Collect water samples"],
        resources=["Water testing kits"],
    )


def deliverables() -> Deliverables:
    return Deliverables(
        milestones=[
            Milestone(id=f"m{i}", title=f"Milestone {i}", phase=f"phase{i}") for i in (1, 2, 3)
        ],
        rubric=Rubric(criteria=[
            RubricCriterion(criterion="Research", weight=50),
            RubricCriterion(criterion="Communication", weight=50),
        ]),
        impact=Impact(audience="City council", method="Public presentation"),
    )


@pytest.fixture
def empty_document() -> BlueprintDocument:
    return BlueprintDocument()


@pytest.fixture
def wizard_document() -> BlueprintDocument:
    """Required intake answered; the scope question is still open."""
    return BlueprintDocument(wizard_context=wizard_context(duration=""))


@pytest.fixture
def ideation_document() -> BlueprintDocument:
    return BlueprintDocument(wizard_context=wizard_context(), ideation=ideation())


@pytest.fixture
def journey_document() -> BlueprintDocument:
    return BlueprintDocument(
        wizard_context=wizard_context(), ideation=ideation(), journey=journey()
    )


@pytest.fixture
def completed_document() -> BlueprintDocument:
    return BlueprintDocument(
        wizard_context=wizard_context(),
        ideation=ideation(),
        journey=journey(),
        deliverables=deliverables(),
    )


# ---------------------------------------------------------------------------
# Flow wiring
# ---------------------------------------------------------------------------


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def make_flow(gateway: InMemoryGateway):
    """Factory building a flow whose autosave never fires on its own."""

    def _make(
        document: BlueprintDocument | None = None,
        *,
        blueprint_id: str = "bp-test",
        backend: Any = None,
        config: FlowConfig | None = None,
    ) -> BlueprintFlow:
        autosaver = DebouncedAutosaver(gateway, delay_ms=NEVER_MS)
        return BlueprintFlow(
            blueprint_id,
            document,
            gateway=gateway,
            autosaver=autosaver,
            backend=backend,
            config=config,
        )

    return _make
