"""The blueprint authoring flow.

:class:`BlueprintFlow` owns one :class:`BlueprintDocument`, the
``transitions`` machine that tracks the author's position in it, and the
collaborators it talks to (storage gateway, debounced autosaver, event
channel, optional generative backend).  Build one with :func:`create_flow`.

The position is always recoverable from the document alone
(:func:`detect_stage` / :func:`detect_step`); it is never persisted.  A
wizard whose scope was already answered resumes at the first ideation step.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_snake

from src.blueprint_flow.config import FlowConfig
from src.blueprint_flow.events import EventChannel, FlowEvent, FlowEventKind, Listener
from src.blueprint_flow.exceptions import AdvanceBlockedError, InvalidUpdateError
from src.blueprint_flow.guidance import describe_help, guidance_for, suggestions_for
from src.blueprint_flow.state import FlowReply, FlowState, Progress, QuickReply, RevisionEntry
from src.blueprint_flow.state_machine import FlowModel, create_flow_machine
from src.blueprint_flow.steps import (
    ACTION_TABLE,
    QUICK_REPLY_LABELS,
    STAGE_STEPS,
    STEP_INFO,
    Step,
    StepKind,
    closing_step,
    kind_of,
    stage_of,
    stage_step_number,
    step_is_satisfied,
)
from src.commands.classifier import interpret_input
from src.extraction.text_extractor import (
    extract_impact,
    extract_list_items,
    extract_milestones,
    extract_phases,
    extract_rubric,
    extract_text,
    is_numbered_selection,
    parse_numbered_selection,
)
from src.generative.client import GenerativeBackend, create_backend
from src.journey.deliverables import (
    DeliverablesChoice,
    DeliverablesSuggestion,
    deliverables_chips,
    format_deliverables_review,
    handle_deliverables_choice,
    suggest_deliverables,
)
from src.journey.generator import JourneyContext
from src.journey.planner import (
    JourneyChoice,
    JourneySuggestion,
    format_journey_suggestion,
    handle_journey_choice,
    suggest_journey,
)
from src.persistence.autosave import DebouncedAutosaver
from src.persistence.gateway import BlueprintGateway, JsonFileGateway
from src.shared.logging import bind_blueprint_id
from src.shared.models.blueprint import (
    BlueprintDocument,
    ChatMessage,
    ChipAction,
    Deliverables,
    Journey,
    Phase,
    Stage,
    WizardContext,
)
from src.shared.utils import now_iso

logger = logging.getLogger(__name__)

STEPS_PER_STAGE = 3

# Extra dict keys accepted for plain-text steps, besides the field name.
_TEXT_KEYS: dict[Step, tuple[str, ...]] = {
    Step.WIZARD_VISION: ("vision",),
    Step.WIZARD_SUBJECT: ("subject",),
    Step.WIZARD_STUDENTS: ("students", "gradeLevel", "grade_level"),
    Step.WIZARD_LOCATION: ("location",),
    Step.WIZARD_RESOURCES: ("resources",),
    Step.IDEATION_CONCEPT: ("concept_statement", "conceptStatement", "concept", "bigIdea"),
    Step.IDEATION_DRIVING_QUESTION: (
        "driving_question", "drivingQuestion", "question", "essentialQuestion",
    ),
    Step.IDEATION_CHALLENGE: ("challenge_statement", "challengeStatement", "challenge"),
}

_DURATION_HINT_RE = re.compile(r"\b(day|week|month|quarter|semester|term|year)s?\b", re.IGNORECASE)
_SCOPE_MAX_LENGTH = 60

_EDITABLE_SECTIONS = ("wizard_context", "ideation", "journey", "deliverables")


# ---------------------------------------------------------------------------
# Position detection
# ---------------------------------------------------------------------------


def detect_stage(doc: BlueprintDocument) -> Stage:
    """Furthest stage with real content.

    Checked in this order: impact method, milestones, phases, concept
    statement.  Earlier stages edited later do not pull the author back.
    """
    if doc.deliverables.impact.method:
        return Stage.COMPLETED
    if doc.deliverables.milestones:
        return Stage.DELIVERABLES
    if doc.journey.phases:
        return Stage.JOURNEY
    if doc.ideation.concept_statement:
        return Stage.IDEATION
    return Stage.WIZARD


def detect_step(doc: BlueprintDocument) -> Step:
    """First required step of the detected stage that is still empty.

    When every required field is filled the stage's closing step is
    returned: the clarifier, ``WIZARD_SCOPE`` or ``COMPLETED``.
    """
    stage = detect_stage(doc)
    for step in STAGE_STEPS[stage]:
        if STEP_INFO[step].required and not step_is_satisfied(step, doc):
            return step
    return closing_step(stage)


def _resume_step(doc: BlueprintDocument) -> Step:
    """Step an author picks a stored blueprint back up at.

    Same as :func:`detect_step`, except that a wizard whose required intake
    is filled and whose scope question was answered (a duration is set)
    resumes at the first ideation step instead of re-asking the scope.
    """
    step = detect_step(doc)
    if step is Step.WIZARD_SCOPE and doc.wizard_context.duration:
        return Step.IDEATION_CONCEPT
    return step


def new_blueprint_id() -> str:
    return f"bp-{uuid.uuid4().hex[:12]}"


def _assign(doc: BlueprintDocument, path: str, value: Any) -> None:
    *parents, name = path.split(".")
    target: Any = doc
    for part in parents:
        target = getattr(target, part)
    setattr(target, name, value)


def _scope_for_duration(duration: str) -> str:
    return "unit" if "week" in duration.lower() else "course"


class BlueprintFlow:
    """Stage/step state machine over a single blueprint.

    Args:
        blueprint_id: Storage key for the blueprint.
        document: Existing document to resume; a fresh one when omitted.
        gateway: Storage used by :meth:`load` and :meth:`close`.
        autosaver: Debounced writer for edits.
        events: Channel state-change events are published on.
        backend: Generative backend for journey suggestions.
        config: Flow configuration.
    """

    def __init__(
        self,
        blueprint_id: str,
        document: BlueprintDocument | None = None,
        *,
        gateway: BlueprintGateway | None = None,
        autosaver: DebouncedAutosaver | None = None,
        events: EventChannel | None = None,
        backend: GenerativeBackend | None = None,
        config: FlowConfig | None = None,
    ) -> None:
        self.blueprint_id = blueprint_id
        self.config = config or FlowConfig()
        self.events = events if events is not None else EventChannel()
        self._gateway = gateway
        self._autosaver = autosaver
        self._backend = backend
        self._doc = document if document is not None else BlueprintDocument()
        initial = _resume_step(self._doc) if document is not None else Step.WIZARD_VISION
        self._model = FlowModel(self._doc, initial)
        self._machine = create_flow_machine(self._model)
        self._conversation: list[ChatMessage] = []
        self._revision_log: list[RevisionEntry] = []
        self._journey_suggestion: JourneySuggestion | None = None
        self._deliverables_suggestion: DeliverablesSuggestion | None = None
        bind_blueprint_id(blueprint_id)

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------

    @property
    def step(self) -> Step:
        return self._model.step

    @property
    def stage(self) -> Stage:
        return stage_of(self.step)

    @property
    def stage_step(self) -> int:
        """1-based position within the current stage."""
        return stage_step_number(self.step)

    @property
    def document(self) -> BlueprintDocument:
        return self._doc

    @property
    def conversation(self) -> list[ChatMessage]:
        return list(self._conversation)

    @property
    def revision_log(self) -> list[RevisionEntry]:
        return list(self._revision_log)

    @property
    def journey_suggestion(self) -> JourneySuggestion | None:
        return self._journey_suggestion

    @property
    def deliverables_suggestion(self) -> DeliverablesSuggestion | None:
        return self._deliverables_suggestion

    def detect_stage(self, doc: BlueprintDocument | None = None) -> Stage:
        return detect_stage(doc if doc is not None else self._doc)

    def detect_step(self, doc: BlueprintDocument | None = None) -> Step:
        return detect_step(doc if doc is not None else self._doc)

    def can_advance(self) -> bool:
        return self._model.can_advance()

    def advance(self) -> Step:
        """Move to the next step in the global order.

        Pending autosaves are flushed first.

        Raises:
            AdvanceBlockedError: If :meth:`can_advance` is False.
        """
        self._flush()
        previous = self.step
        if not self.can_advance() or not self._model.next_step():
            raise AdvanceBlockedError(previous.value)
        logger.info("Advanced from %s to %s", previous.value, self.step.value)
        self._publish(FlowEventKind.ADVANCED, {"from": previous.value, "to": self.step.value})
        return self.step

    def complete_stage(self) -> Stage:
        """Advance step by step until the stage changes.

        Raises:
            AdvanceBlockedError: At the first step that cannot be left,
                including ``COMPLETED``.
        """
        self._flush()
        start = self.stage
        while self.stage is start:
            self.advance()
        return self.stage

    def complete_wizard(self, data: WizardContext | Mapping[str, Any]) -> Step:
        """Fill the intake answers in one go and jump to the first ideation step.

        When a duration is given without a scope, the scope becomes ``unit``
        for week-based durations and ``course`` otherwise.

        Raises:
            AdvanceBlockedError: If the flow is past the wizard or a required
                intake answer is still missing.
        """
        if isinstance(data, BaseModel):
            data = data.model_dump()
        fields = {to_snake(key): value for key, value in data.items()}
        context = self._doc.wizard_context
        for name in WizardContext.model_fields:
            value = fields.get(name)
            if value is not None:
                setattr(context, name, str(value).strip())
        if "scope" not in fields and context.duration:
            context.scope = _scope_for_duration(context.duration)

        self._doc.touch()
        self._schedule_save()
        self._flush()
        previous = self.step
        if not self._model.finish_wizard():
            raise AdvanceBlockedError(
                previous.value, "Wizard needs a vision, subject and students before ideation"
            )
        logger.info("Wizard completed; moved from %s to %s", previous.value, self.step.value)
        self._publish(FlowEventKind.WIZARD_COMPLETED, {"from": previous.value, "to": self.step.value})
        return self.step

    def reset_to_stage_beginning(self) -> bool:
        """Return to the current stage's first data step.

        No-op (returns False) for the wizard and ``COMPLETED``.
        """
        if self.stage in (Stage.WIZARD, Stage.COMPLETED):
            return False
        self._model.restart_stage()
        self._publish(FlowEventKind.STAGE_RESET, {"step": self.step.value})
        return True

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def allowed_actions(self) -> list[ChipAction]:
        return list(ACTION_TABLE[kind_of(self.step)])

    def is_action_allowed(self, action: ChipAction | str) -> bool:
        try:
            action = ChipAction(action)
        except ValueError:
            return False
        return action in ACTION_TABLE[kind_of(self.step)]

    def quick_replies(self) -> list[QuickReply]:
        """Chips for the current step; data steps offer continue only once it would succeed."""
        replies = []
        for action in self.allowed_actions():
            if (
                action is ChipAction.CONTINUE
                and kind_of(self.step) is StepKind.DATA
                and not self.can_advance()
            ):
                continue
            replies.append(QuickReply(label=QUICK_REPLY_LABELS[action], action=action))
        return replies

    def get_progress(self) -> Progress:
        stage = self.stage
        if stage is Stage.WIZARD:
            return Progress(percentage=0, current_step_number=0, total_steps=0)
        if stage is Stage.COMPLETED:
            return Progress(
                percentage=100, current_step_number=STEPS_PER_STAGE, total_steps=STEPS_PER_STAGE
            )
        current = min(self.stage_step, STEPS_PER_STAGE)
        return Progress(
            percentage=round(current / STEPS_PER_STAGE * 100),
            current_step_number=current,
            total_steps=STEPS_PER_STAGE,
        )

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def update_step_data(self, value: Any) -> bool:
        """Store *value* in the field captured by the current step.

        Text is run through the matching extractor; structured input is
        normalised.  Returns False (and changes nothing) at steps that
        capture no data and for text that does not answer the step.
        """
        step = self.step
        if not self._route(step, value):
            logger.info("Nothing stored for step %s", step.value)
            return False
        logger.debug("Stored data for %s", step.value)
        self._changed(
            FlowEventKind.STEP_DATA_UPDATED,
            {"step": step.value, "field": STEP_INFO[step].field},
        )
        return True

    def _route(self, step: Step, value: Any) -> bool:
        doc = self._doc
        info = STEP_INFO[step]
        if step in _TEXT_KEYS:
            _assign(doc, info.field, extract_text(value, *_TEXT_KEYS[step]))
        elif step is Step.WIZARD_SCOPE:
            return self._store_scope(value)
        elif step is Step.JOURNEY_PHASES:
            pairs = parse_numbered_selection(value, "Phase") if is_numbered_selection(value, "Phase") else []
            doc.journey.phases = (
                [Phase(title=t, description=d) for t, d in pairs] if pairs else extract_phases(value)
            )
        elif step is Step.JOURNEY_ACTIVITIES:
            pairs = (
                parse_numbered_selection(value, "Activity")
                if is_numbered_selection(value, "Activity") else []
            )
            doc.journey.activities = (
                [f"{t}: {d}" for t, d in pairs] if pairs else extract_list_items(value, "activities")
            )
        elif step is Step.JOURNEY_RESOURCES:
            doc.journey.resources = extract_list_items(value, "resources")
        elif step is Step.DELIVER_MILESTONES:
            doc.deliverables.milestones = extract_milestones(value)
        elif step is Step.DELIVER_RUBRIC:
            doc.deliverables.rubric = extract_rubric(value)
        elif step is Step.DELIVER_IMPACT:
            doc.deliverables.impact = extract_impact(value)
        else:
            return False
        return True

    def _store_scope(self, value: Any) -> bool:
        """Duration text sets duration and scope; other short text is the scope.

        Longer prose is refused; it is not an answer to the scope question.
        """
        context = self._doc.wizard_context
        if isinstance(value, Mapping):
            scope = extract_text(value, "scope")
            duration = extract_text(value, "duration")
            if duration:
                context.duration = duration
            if scope:
                context.scope = scope
            elif duration:
                context.scope = _scope_for_duration(duration)
            return bool(scope or duration)
        text = extract_text(value)
        if _DURATION_HINT_RE.search(text):
            context.duration = text
            context.scope = _scope_for_duration(text)
            return True
        if not text or len(text) > _SCOPE_MAX_LENGTH:
            return False
        context.scope = text
        return True

    def update_blueprint(
        self, partial: Mapping[str, Any], reason: str = "Manual edit"
    ) -> list[RevisionEntry]:
        """Merge direct edits per section and record them in the revision log.

        Keys may be snake_case or camelCase.  Either every section validates
        and is applied, or nothing changes.

        Raises:
            InvalidUpdateError: For unknown sections or values that fail
                validation.
        """
        staged: dict[str, BaseModel] = {}
        entries: list[RevisionEntry] = []
        timestamp = now_iso()
        for raw_key, updates in partial.items():
            section = to_snake(raw_key)
            if section not in _EDITABLE_SECTIONS:
                raise InvalidUpdateError(raw_key, f"Unknown blueprint section '{raw_key}'")
            if not isinstance(updates, Mapping):
                raise InvalidUpdateError(section, f"Section '{section}' must be a mapping")
            current_model = getattr(self._doc, section)
            current = current_model.model_dump()
            normalized = {to_snake(key): value for key, value in updates.items()}
            try:
                staged[section] = type(current_model).model_validate({**current, **normalized})
            except ValidationError as exc:
                raise InvalidUpdateError(section, str(exc)) from exc
            for key, value in normalized.items():
                entries.append(RevisionEntry(
                    path=f"{section}.{key}",
                    old=current.get(key),
                    new=value,
                    reason=reason,
                    timestamp=timestamp,
                ))

        for section, model in staged.items():
            setattr(self._doc, section, model)
        self._revision_log.extend(entries)
        self._changed(FlowEventKind.BLUEPRINT_UPDATED, {"paths": [e.path for e in entries]})
        return entries

    def add_message(self, message: ChatMessage | Mapping[str, Any]) -> ChatMessage:
        if not isinstance(message, ChatMessage):
            message = ChatMessage.model_validate(message)
        self._conversation.append(message)
        self._publish(FlowEventKind.MESSAGE_ADDED, {"role": message.role})
        return message

    # ------------------------------------------------------------------
    # Conversational input
    # ------------------------------------------------------------------

    def handle_input(self, text: str) -> FlowReply:
        """Route one piece of author text: suggestion reply, command or step data."""
        if not text or not text.strip():
            return FlowReply(kind="none", message=guidance_for(self.step).prompt)
        self.add_message(ChatMessage(role="user", content=text))

        reply = None
        if self.step is Step.JOURNEY_PHASES:
            reply = self._journey_reply(text)
        elif self.step is Step.DELIVER_MILESTONES:
            reply = self._deliverables_reply(text)
        if reply is None:
            interpretation = interpret_input(text)
            match = interpretation.match
            # Loose matches naming an unavailable action are answers, e.g. "Beach".
            if interpretation.is_command and (
                match.method == "exact" or self.is_action_allowed(match.command)
            ):
                reply = self._run_command(match.command)
            else:
                reply = self._store_reply(text)

        self.add_message(ChatMessage(
            role="assistant",
            content=reply.message,
            suggestions=reply.suggestions,
            quick_replies=[r.label for r in self.quick_replies()],
        ))
        return reply

    def _journey_reply(self, text: str) -> FlowReply | None:
        has_suggestion = self._journey_suggestion is not None
        choice = handle_journey_choice(
            self._journey_suggestion.phases if has_suggestion else [], text
        )
        if choice.action == "show_all" or (
            has_suggestion and choice.action in ("accept_all", "refine", "regenerate")
        ):
            choice = self.handle_journey_reply(text)
            if choice.action == "accept_all":
                message = "Journey saved. " + guidance_for(self.step).tip
            else:
                message = format_journey_suggestion(choice.phases)
            return FlowReply(kind="journey", message=message, stored=choice.action == "accept_all")
        return None

    def _deliverables_reply(self, text: str) -> FlowReply | None:
        pending = self._deliverables_suggestion is not None
        choice = handle_deliverables_choice(
            self._deliverables_suggestion or DeliverablesSuggestion(), text
        )
        if choice.action == "none" or (not pending and choice.action != "show_all"):
            return None
        choice = self.handle_deliverables_reply(text)
        if choice.action == "accept_all":
            message = "Deliverables saved. " + guidance_for(self.step).tip
        elif choice.action == "refine":
            message = choice.message
        else:
            message = format_deliverables_review(choice.suggestion)
        suggestions = []
        if choice.action not in ("accept_all", "refine"):
            suggestions = deliverables_chips(choice.suggestion)
        return FlowReply(
            kind="deliverables", message=message, suggestions=suggestions,
            stored=choice.action == "accept_all",
        )

    def _run_command(self, action: ChipAction) -> FlowReply:
        if not self.is_action_allowed(action):
            return FlowReply(
                kind="command", action=action,
                message=f"'{action.value}' isn't available at this step.",
            )
        if action is ChipAction.CONTINUE:
            if not self.can_advance():
                return FlowReply(
                    kind="command", action=action,
                    message=f"This step still needs an answer. {guidance_for(self.step).prompt}",
                )
            self.advance()
            return FlowReply(
                kind="command", action=action, advanced=True,
                message=guidance_for(self.step).prompt,
            )
        if action is ChipAction.REFINE:
            self.reset_to_stage_beginning()
            return FlowReply(kind="command", action=action, message=guidance_for(self.step).prompt)
        if action in (ChipAction.IDEAS, ChipAction.WHATIF):
            suggestions = suggestions_for(self.step, action, self._doc)
            return FlowReply(
                kind="command", action=action, suggestions=suggestions,
                message="\n".join(f"• {s}" for s in suggestions) or describe_help(self.step),
            )
        return FlowReply(kind="command", action=action, message=describe_help(self.step))

    def _store_reply(self, text: str) -> FlowReply:
        stored = self.update_step_data(text)
        if not stored and STEP_INFO[self.step].field is not None:
            message = f"That doesn't look like an answer to this step. {guidance_for(self.step).prompt}"
        elif not stored:
            message = "Nothing to capture here. Say continue or refine."
        elif self.can_advance():
            message = "Got it. Say continue when you're ready."
        else:
            message = guidance_for(self.step).prompt
        return FlowReply(kind="data", stored=stored, message=message)

    # ------------------------------------------------------------------
    # Journey suggestions
    # ------------------------------------------------------------------

    def suggest_journey(self) -> JourneySuggestion:
        """Propose a journey from the current document and remember it."""
        backend = self._backend if self.config.journey.prefer_generative else None
        context = JourneyContext.from_document(self._doc)
        self._journey_suggestion = suggest_journey(context, backend)
        logger.info(
            "Suggested %d-phase journey (%s)",
            len(self._journey_suggestion.phases), self._journey_suggestion.source,
        )
        return self._journey_suggestion

    def apply_journey(self, suggestion: JourneySuggestion | None = None) -> Journey:
        """Write a suggested journey's phases and activities into the document.

        Existing resources are kept.
        """
        suggestion = suggestion or self._journey_suggestion or self.suggest_journey()
        self._doc.journey = suggestion.to_journey(resources=self._doc.journey.resources)
        self._journey_suggestion = None
        self._changed(FlowEventKind.JOURNEY_APPLIED, {"phases": len(suggestion.phases)})
        return self._doc.journey

    def handle_journey_reply(self, text: str) -> JourneyChoice:
        """Act on the author's reply to the current journey suggestion."""
        current = self._journey_suggestion
        choice = handle_journey_choice(current.phases if current else [], text)
        if choice.action == "show_all":
            suggestion = current or self.suggest_journey()
            return JourneyChoice(action="show_all", phases=list(suggestion.phases))
        if current is None:
            if choice.action in ("accept_all", "refine"):
                return JourneyChoice(action="none", message="There is no journey suggestion yet.")
            if choice.action != "regenerate":
                return choice
        if choice.action == "accept_all":
            self.apply_journey(JourneySuggestion(phases=choice.phases, source=current.source))
        elif choice.action == "refine":
            self._journey_suggestion = JourneySuggestion(phases=choice.phases, source=current.source)
        elif choice.action == "regenerate":
            suggestion = self.suggest_journey()
            return JourneyChoice(
                action="regenerate", phases=list(suggestion.phases), phase_index=choice.phase_index
            )
        return choice

    # ------------------------------------------------------------------
    # Deliverables suggestions
    # ------------------------------------------------------------------

    def suggest_deliverables(self) -> DeliverablesSuggestion:
        """Propose milestones, artifacts and criteria and start the review."""
        self._deliverables_suggestion = suggest_deliverables(self._doc)
        logger.info(
            "Suggested deliverables: %d milestones, %d artifacts, %d criteria",
            len(self._deliverables_suggestion.milestones),
            len(self._deliverables_suggestion.artifacts),
            len(self._deliverables_suggestion.criteria),
        )
        return self._deliverables_suggestion

    def apply_deliverables(self, suggestion: DeliverablesSuggestion | None = None) -> Deliverables:
        suggestion = suggestion or self._deliverables_suggestion or self.suggest_deliverables()
        self._doc.deliverables = suggestion.to_deliverables()
        self._deliverables_suggestion = None
        self._changed(
            FlowEventKind.DELIVERABLES_APPLIED,
            {"milestones": len(self._doc.deliverables.milestones), "criteria": len(suggestion.criteria)},
        )
        return self._doc.deliverables

    def handle_deliverables_reply(self, text: str) -> DeliverablesChoice:
        """Act on the author's reply to the deliverables under review.

        Asking to see everything starts a review when none is open.  Asking
        to customise a component closes the review so the author's own lines
        are stored as step data.
        """
        current = self._deliverables_suggestion
        choice = handle_deliverables_choice(current or DeliverablesSuggestion(), text)
        if choice.action == "show_all" and current is None:
            suggestion = self.suggest_deliverables()
            suggestion.review = "all"
            return DeliverablesChoice(action="show_all", suggestion=suggestion)
        if current is None:
            if choice.action == "none":
                return choice
            return DeliverablesChoice(
                action="none", message="There are no deliverables suggestions yet."
            )
        if choice.action == "accept_all":
            self.apply_deliverables(choice.suggestion)
        elif choice.action == "refine":
            self._deliverables_suggestion = None
        elif choice.action != "none":
            self._deliverables_suggestion = choice.suggestion
        return choice

    # ------------------------------------------------------------------
    # UI surface
    # ------------------------------------------------------------------

    def get_state(self) -> FlowState:
        return FlowState(
            blueprint_id=self.blueprint_id,
            stage=self.stage,
            step=self.step,
            stage_step=self.stage_step,
            can_advance=self.can_advance(),
            allowed_actions=tuple(self.allowed_actions()),
            progress=self.get_progress(),
            document=self._doc.model_copy(deep=True),
            conversation=tuple(self._conversation),
            autosave_enabled=self.autosave_enabled,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)

    def export_document(self) -> BlueprintDocument:
        return self._doc.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def autosave_enabled(self) -> bool:
        return self._autosaver is not None and self._autosaver.enabled

    def set_autosave_enabled(self, enabled: bool) -> None:
        if self._autosaver is not None:
            self._autosaver.set_enabled(enabled)

    def load(self, blueprint_id: str) -> bool:
        """Replace the document with a stored one and re-derive the position.

        Returns False, leaving the flow untouched, when the gateway has no
        such blueprint.
        """
        if self._gateway is None:
            return False
        doc = self._gateway.load(blueprint_id)
        if doc is None:
            logger.info("Blueprint %s not found", blueprint_id)
            return False
        self._flush()
        self.blueprint_id = blueprint_id
        bind_blueprint_id(blueprint_id)
        self._doc = doc
        self._model.document = doc
        self._machine.set_state(_resume_step(doc).value)
        self._journey_suggestion = None
        self._deliverables_suggestion = None
        logger.info("Loaded blueprint %s at %s", blueprint_id, self.step.value)
        self._publish(FlowEventKind.LOADED, {"step": self.step.value})
        return True

    def save(self) -> bool:
        """Write the document now, bypassing the debounce."""
        if self._gateway is None:
            if self._autosaver is not None:
                self._autosaver.cancel()
            return False
        if self._autosaver is not None and self._autosaver.gateway is self._gateway:
            return self._autosaver.save_now(self.blueprint_id, self._doc)
        if self._autosaver is not None:
            self._autosaver.cancel()
        return self._gateway.save(self.blueprint_id, self._doc)

    def close(self) -> bool:
        """Final save; listeners are dropped and the backend is closed afterwards."""
        saved = self.save()
        self.events.clear()
        close_backend = getattr(self._backend, "close", None)
        if callable(close_backend):
            close_backend()
        self._backend = None
        return saved

    def _flush(self) -> None:
        if self._autosaver is not None:
            self._autosaver.flush()

    def _schedule_save(self) -> None:
        if self._autosaver is not None:
            self._autosaver.schedule(self.blueprint_id, self._doc)

    def _publish(self, kind: FlowEventKind, detail: dict[str, Any] | None = None) -> None:
        if len(self.events):
            self.events.publish(FlowEvent(kind=kind, state=self.get_state(), detail=detail or {}))

    def _changed(self, kind: FlowEventKind, detail: dict[str, Any] | None = None) -> None:
        self._doc.touch()
        self._schedule_save()
        self._publish(kind, detail)


def create_flow(
    config: FlowConfig | None = None,
    blueprint_id: str | None = None,
    *,
    document: BlueprintDocument | None = None,
    gateway: BlueprintGateway | None = None,
    backend: GenerativeBackend | None = None,
    events: EventChannel | None = None,
) -> BlueprintFlow:
    """Wire a :class:`BlueprintFlow` with its collaborators from *config*.

    A :class:`JsonFileGateway` under ``config.storage_dir`` is used unless
    *gateway* is given, and an HTTP backend is created when a generative
    base URL is configured.
    """
    config = config or FlowConfig()
    if gateway is None:
        gateway = JsonFileGateway(config.storage_dir, keep_revisions=config.keep_revisions)
    autosaver = DebouncedAutosaver(
        gateway,
        delay_ms=config.autosave.debounce_ms,
        enabled=config.autosave.enabled,
    )
    if backend is None and config.journey.prefer_generative:
        backend = create_backend(
            config.generative.base_url,
            api_key=config.generative.api_key or None,
            timeout=config.generative.timeout,
        )
    return BlueprintFlow(
        blueprint_id or new_blueprint_id(),
        document,
        gateway=gateway,
        autosaver=autosaver,
        events=events,
        backend=backend,
        config=config,
    )
