"""Blueprint document Pydantic v2 data models."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

from src.shared.constants import RUBRIC_TOTAL_WEIGHT, SCHEMA_VERSION
from src.shared.utils import now_utc

_MODEL_CONFIG = {
    "populate_by_name": True,
    "alias_generator": to_camel,
    "from_attributes": True,
}


class Stage(str, Enum):
    """Top-level authoring stages, in document order."""
    WIZARD = "WIZARD"
    IDEATION = "IDEATION"
    JOURNEY = "JOURNEY"
    DELIVERABLES = "DELIVERABLES"
    COMPLETED = "COMPLETED"


class ChipAction(str, Enum):
    """Actions a UI may offer as chips or quick replies."""
    CONTINUE = "continue"
    REFINE = "refine"
    HELP = "help"
    IDEAS = "ideas"
    WHATIF = "whatif"
    BACK = "back"


class WizardContext(BaseModel):
    """Intake answers captured before ideation starts."""
    vision: str = ""
    subject: str = ""
    students: str = ""
    location: str = ""
    resources: str = ""
    scope: str = "unit"
    duration: str = ""

    model_config = _MODEL_CONFIG


class Ideation(BaseModel):
    """Concept statement, driving question and challenge statement."""
    concept_statement: str = ""
    driving_question: str = ""
    challenge_statement: str = ""

    model_config = _MODEL_CONFIG


class Phase(BaseModel):
    """A phase of the learning journey."""
    title: str
    description: str = ""

    model_config = _MODEL_CONFIG


class Journey(BaseModel):
    """Ordered phases plus flat activity and resource lists."""
    phases: list[Phase] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)

    model_config = _MODEL_CONFIG


class Milestone(BaseModel):
    """A checkpoint within deliverables, tagged to one of three phases."""
    id: str
    title: str
    description: str = ""
    phase: str = Field(default="phase1", pattern=r"^phase[1-3]$")

    model_config = _MODEL_CONFIG


class RubricCriterion(BaseModel):
    """A named, weighted assessment dimension."""
    criterion: str
    description: str = ""
    weight: int = Field(..., ge=0, le=RUBRIC_TOTAL_WEIGHT)

    model_config = _MODEL_CONFIG


class Rubric(BaseModel):
    """Ordered rubric criteria whose weights total exactly 100."""
    criteria: list[RubricCriterion] = Field(default_factory=list)

    model_config = _MODEL_CONFIG

    @model_validator(mode="after")
    def check_weight_total(self) -> Rubric:
        if self.criteria:
            total = sum(c.weight for c in self.criteria)
            if total != RUBRIC_TOTAL_WEIGHT:
                raise ValueError(
                    f"Rubric weights must total {RUBRIC_TOTAL_WEIGHT}, got {total}"
                )
        return self


class Impact(BaseModel):
    """Who sees the work and how it is shared."""
    audience: str = ""
    method: str = ""
    timeline: str = ""

    model_config = _MODEL_CONFIG

    @property
    def is_complete(self) -> bool:
        return bool(self.audience) and bool(self.method)


class Deliverables(BaseModel):
    """Milestones, final artifacts, rubric and impact plan."""
    milestones: list[Milestone] = Field(default_factory=list)
    artifacts: list[str] = Field(default_factory=list)
    rubric: Rubric = Field(default_factory=Rubric)
    impact: Impact = Field(default_factory=Impact)

    model_config = _MODEL_CONFIG


class Timestamps(BaseModel):
    """Creation and last-update times (UTC)."""
    created: datetime = Field(default_factory=now_utc)
    updated: datetime = Field(default_factory=now_utc)

    model_config = _MODEL_CONFIG


class BlueprintDocument(BaseModel):
    """The single persisted curriculum blueprint."""
    wizard_context: WizardContext = Field(default_factory=WizardContext)
    ideation: Ideation = Field(default_factory=Ideation)
    journey: Journey = Field(default_factory=Journey)
    deliverables: Deliverables = Field(default_factory=Deliverables)
    timestamps: Timestamps = Field(default_factory=Timestamps)
    schema_version: int = SCHEMA_VERSION

    model_config = _MODEL_CONFIG

    def touch(self) -> None:
        """Refresh ``timestamps.updated``."""
        self.timestamps.updated = now_utc()

    def to_export_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible structure with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_export_dict(cls, data: dict[str, Any]) -> BlueprintDocument:
        return cls.model_validate(data)


class ChatMessage(BaseModel):
    """A conversation entry, kept for context only."""
    role: str = Field(..., pattern=r"^(user|assistant|system)$")
    content: str
    suggestions: list[str] = Field(default_factory=list)
    quick_replies: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=now_utc)

    model_config = _MODEL_CONFIG
