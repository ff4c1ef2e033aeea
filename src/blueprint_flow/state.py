"""Read-only snapshots of the authoring flow handed to UI listeners."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.blueprint_flow.steps import Step
from src.shared.models.blueprint import BlueprintDocument, ChatMessage, ChipAction, Stage


@dataclass(frozen=True)
class Progress:
    """Stage-relative progress as shown in a progress bar."""

    percentage: int = 0
    current_step_number: int = 0
    total_steps: int = 0


@dataclass(frozen=True)
class QuickReply:
    """A labelled chip the UI can offer for the current step."""

    label: str
    action: ChipAction


@dataclass(frozen=True)
class FlowState:
    """Snapshot of the flow at one moment.

    ``document`` is a deep copy, so listeners may keep the snapshot
    without observing later edits.
    """

    blueprint_id: str
    stage: Stage
    step: Step
    stage_step: int
    can_advance: bool
    allowed_actions: tuple[ChipAction, ...]
    progress: Progress
    document: BlueprintDocument
    conversation: tuple[ChatMessage, ...] = ()
    autosave_enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Plain dictionary for JSON output (document excluded)."""
        return {
            "blueprint_id": self.blueprint_id,
            "stage": self.stage.value,
            "step": self.step.value,
            "stage_step": self.stage_step,
            "can_advance": self.can_advance,
            "allowed_actions": [a.value for a in self.allowed_actions],
            "progress": {
                "percentage": self.progress.percentage,
                "current_step_number": self.progress.current_step_number,
                "total_steps": self.progress.total_steps,
            },
            "messages": len(self.conversation),
            "autosave_enabled": self.autosave_enabled,
        }


@dataclass
class RevisionEntry:
    """One changed path recorded by a direct blueprint edit."""

    path: str
    old: Any
    new: Any
    reason: str = ""
    timestamp: str = ""


@dataclass
class FlowReply:
    """What the flow answers to one piece of author input."""

    kind: str  # "command", "data", "journey", "deliverables" or "none"
    message: str = ""
    action: ChipAction | None = None
    suggestions: list[str] = field(default_factory=list)
    stored: bool = False
    advanced: bool = False
