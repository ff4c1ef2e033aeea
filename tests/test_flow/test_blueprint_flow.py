"""Tests for BlueprintFlow -- position, transitions, data and persistence."""

from __future__ import annotations

import json

import pytest

from src.blueprint_flow.config import FlowConfig, JourneyConfig
from src.blueprint_flow.events import FlowEventKind
from src.blueprint_flow.exceptions import AdvanceBlockedError, InvalidUpdateError
from src.blueprint_flow.flow import BlueprintFlow, create_flow, detect_stage, detect_step
from src.blueprint_flow.steps import Step
from src.persistence.autosave import DebouncedAutosaver
from src.shared.models.blueprint import (
    BlueprintDocument,
    ChipAction,
    Deliverables,
    Ideation,
    Impact,
    Journey,
    Milestone,
    Phase,
    Stage,
)
from tests.conftest import FakeBackend, InMemoryGateway

LONG_CONCEPT = (
    "Students will explore how local wetland ecosystems filter water and support "
    "wildlife, and then help design practical restoration plans."
)


class ClosableBackend(FakeBackend):

    def __init__(self) -> None:
        super().__init__()
        self.closed = False

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Position detection
# ---------------------------------------------------------------------------


class TestDetectStage:

    def test_empty_is_wizard(self, empty_document: BlueprintDocument) -> None:
        assert detect_stage(empty_document) is Stage.WIZARD

    def test_concept_is_ideation(self) -> None:
        doc = BlueprintDocument(ideation=Ideation(concept_statement="Systems"))
        assert detect_stage(doc) is Stage.IDEATION

    def test_phase_is_journey(self) -> None:
        doc = BlueprintDocument(journey=Journey(phases=[Phase(title="Explore")]))
        assert detect_stage(doc) is Stage.JOURNEY

    def test_milestone_is_deliverables(self) -> None:
        doc = BlueprintDocument(
            deliverables=Deliverables(milestones=[Milestone(id="m1", title="Kickoff")])
        )
        assert detect_stage(doc) is Stage.DELIVERABLES

    def test_impact_method_is_completed(self) -> None:
        doc = BlueprintDocument(deliverables=Deliverables(impact=Impact(method="Gallery walk")))
        assert detect_stage(doc) is Stage.COMPLETED

    def test_furthest_content_wins(self, completed_document: BlueprintDocument) -> None:
        completed_document.ideation = Ideation()
        completed_document.journey = Journey()
        assert detect_stage(completed_document) is Stage.COMPLETED


class TestDetectStep:

    def test_first_empty_required_step(self) -> None:
        doc = BlueprintDocument(ideation=Ideation(concept_statement="Systems"))
        assert detect_step(doc) is Step.IDEATION_DRIVING_QUESTION

    def test_full_stage_rests_on_clarifier(self, ideation_document: BlueprintDocument) -> None:
        assert detect_step(ideation_document) is Step.IDEATION_CLARIFIER

    def test_wizard_rests_on_scope(self, wizard_document: BlueprintDocument) -> None:
        assert detect_step(wizard_document) is Step.WIZARD_SCOPE

    def test_completed(self, completed_document: BlueprintDocument) -> None:
        assert detect_step(completed_document) is Step.COMPLETED

    def test_resume_is_idempotent(self, make_flow, journey_document: BlueprintDocument) -> None:
        first = detect_step(journey_document)
        assert detect_step(journey_document) is first
        flow = make_flow(journey_document)
        assert flow.step is first
        assert flow.detect_step() is first
        assert flow.detect_stage() is Stage.JOURNEY


# ---------------------------------------------------------------------------
# Advancing
# ---------------------------------------------------------------------------


class TestAdvance:

    def test_new_flow_starts_at_vision(self, make_flow) -> None:
        flow = make_flow()
        assert flow.step is Step.WIZARD_VISION
        assert flow.stage is Stage.WIZARD
        assert flow.can_advance() is False

    def test_blocked_advance_raises(self, make_flow) -> None:
        flow = make_flow()
        with pytest.raises(AdvanceBlockedError) as excinfo:
            flow.advance()
        assert excinfo.value.step == "WIZARD_VISION"
        assert flow.step is Step.WIZARD_VISION

    def test_advance_after_data(self, make_flow) -> None:
        flow = make_flow()
        assert flow.update_step_data("Curious scientists") is True
        assert flow.can_advance()
        assert flow.advance() is Step.WIZARD_SUBJECT

    def test_optional_steps_can_be_skipped(self, make_flow, wizard_document) -> None:
        wizard_document.wizard_context.location = ""
        flow = make_flow(wizard_document)
        assert flow.step is Step.WIZARD_SCOPE
        assert flow.advance() is Step.IDEATION_CONCEPT

    def test_clarifier_can_always_advance(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        assert flow.step is Step.IDEATION_CLARIFIER
        assert flow.can_advance()
        assert flow.advance() is Step.JOURNEY_PHASES

    def test_completed_cannot_advance(self, make_flow, completed_document) -> None:
        flow = make_flow(completed_document)
        assert flow.can_advance() is False
        with pytest.raises(AdvanceBlockedError):
            flow.complete_stage()

    def test_complete_stage(self, make_flow, ideation_document) -> None:
        ideation_document.ideation.challenge_statement = ""
        flow = make_flow(ideation_document)
        assert flow.step is Step.IDEATION_CHALLENGE
        flow.update_step_data("Design a filter for the creek")
        assert flow.complete_stage() is Stage.JOURNEY
        assert flow.step is Step.JOURNEY_PHASES

    def test_complete_stage_blocked_midway(self, make_flow, wizard_document) -> None:
        wizard_document.ideation = Ideation(concept_statement="Systems")
        flow = make_flow(wizard_document)
        with pytest.raises(AdvanceBlockedError):
            flow.complete_stage()
        assert flow.step is Step.IDEATION_DRIVING_QUESTION


class TestFlushBeforeTransition:
    """Pending debounced writes land before any transition."""

    def test_complete_stage_persists_latest_content(
        self, make_flow, gateway: InMemoryGateway, ideation_document
    ) -> None:
        ideation_document.ideation.challenge_statement = ""
        flow = make_flow(ideation_document)
        flow.update_step_data("Design a filter for the city council")
        assert gateway.save_calls == []

        flow.complete_stage()
        saved = gateway.saved["bp-test"]
        assert saved.ideation.challenge_statement == "Design a filter for the city council"

    def test_advance_flushes(self, make_flow, gateway: InMemoryGateway) -> None:
        flow = make_flow()
        flow.update_step_data("Curious scientists")
        seen = []
        flow.subscribe(lambda event: seen.append(list(gateway.save_calls)))
        flow.advance()
        assert seen == [["bp-test"]]

    def test_failed_save_does_not_block(self, ideation_document) -> None:
        gateway = InMemoryGateway(fail=True)
        ideation_document.ideation.challenge_statement = ""
        flow = BlueprintFlow(
            "bp-x", ideation_document,
            gateway=gateway, autosaver=DebouncedAutosaver(gateway, delay_ms=60_000),
        )
        flow.update_step_data("A challenge")
        assert flow.advance() is Step.IDEATION_CLARIFIER
        assert flow.document.ideation.challenge_statement == "A challenge"


class TestCompleteWizard:

    def test_jumps_to_ideation(self, make_flow) -> None:
        flow = make_flow()
        step = flow.complete_wizard({
            "vision": "Scientists", "subject": "Biology", "students": "Grade 7",
            "duration": "6 weeks",
        })
        assert step is Step.IDEATION_CONCEPT
        assert flow.document.wizard_context.scope == "unit"

    def test_scope_from_long_duration(self, make_flow) -> None:
        flow = make_flow()
        flow.complete_wizard({
            "vision": "v", "subject": "History", "students": "Grade 10",
            "duration": "one semester",
        })
        assert flow.document.wizard_context.scope == "course"

    def test_explicit_scope_kept(self, make_flow) -> None:
        flow = make_flow()
        flow.complete_wizard({"vision": "v", "subject": "s", "students": "t", "scope": "course"})
        assert flow.document.wizard_context.scope == "course"

    def test_missing_required_answer(self, make_flow) -> None:
        flow = make_flow()
        with pytest.raises(AdvanceBlockedError):
            flow.complete_wizard({"vision": "v", "subject": "s"})
        assert flow.stage is Stage.WIZARD

    def test_flushes_intake(self, make_flow, gateway: InMemoryGateway) -> None:
        flow = make_flow()
        flow.complete_wizard({"vision": "v", "subject": "s", "students": "t"})
        assert gateway.saved["bp-test"].wizard_context.subject == "s"


class TestReset:

    def test_reset_from_clarifier(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        assert flow.reset_to_stage_beginning() is True
        assert flow.step is Step.IDEATION_CONCEPT

    def test_reset_is_noop_in_wizard(self, make_flow) -> None:
        flow = make_flow()
        assert flow.reset_to_stage_beginning() is False
        assert flow.step is Step.WIZARD_VISION

    def test_reset_is_noop_when_completed(self, make_flow, completed_document) -> None:
        flow = make_flow(completed_document)
        assert flow.reset_to_stage_beginning() is False


# ---------------------------------------------------------------------------
# Actions and progress
# ---------------------------------------------------------------------------


class TestActions:

    def test_wizard_actions(self, make_flow) -> None:
        assert make_flow().allowed_actions() == [ChipAction.CONTINUE]

    def test_data_step_actions(self, make_flow, wizard_document) -> None:
        wizard_document.ideation = Ideation(concept_statement="x")
        flow = make_flow(wizard_document)
        assert flow.allowed_actions() == [
            ChipAction.IDEAS, ChipAction.WHATIF, ChipAction.HELP, ChipAction.CONTINUE,
        ]
        assert not flow.is_action_allowed("refine")

    def test_clarifier_actions(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        assert flow.allowed_actions() == [ChipAction.CONTINUE, ChipAction.REFINE, ChipAction.HELP]
        assert flow.is_action_allowed(ChipAction.REFINE)

    def test_completed_has_no_actions(self, make_flow, completed_document) -> None:
        assert make_flow(completed_document).allowed_actions() == []

    def test_unknown_action(self, make_flow) -> None:
        assert make_flow().is_action_allowed("dance") is False

    def test_quick_replies_hide_unavailable_continue(self, make_flow, wizard_document) -> None:
        wizard_document.ideation = Ideation(concept_statement="x")
        flow = make_flow(wizard_document)
        labels = [r.label for r in flow.quick_replies()]
        assert labels == ["Ideas", "What-If", "Help"]
        flow.update_step_data("How might we?")
        assert "Continue" in [r.label for r in flow.quick_replies()]


class TestProgress:

    def test_wizard(self, make_flow) -> None:
        progress = make_flow().get_progress()
        assert (progress.percentage, progress.current_step_number, progress.total_steps) == (0, 0, 0)

    def test_first_ideation_step(self, make_flow, wizard_document) -> None:
        wizard_document.ideation = Ideation()
        flow = make_flow(wizard_document)
        flow.advance()
        progress = flow.get_progress()
        assert flow.step is Step.IDEATION_CONCEPT
        assert (progress.percentage, progress.current_step_number, progress.total_steps) == (33, 1, 3)

    def test_clarifier_caps_at_three(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        assert flow.stage_step == 4
        progress = flow.get_progress()
        assert (progress.percentage, progress.current_step_number) == (100, 3)

    def test_completed(self, make_flow, completed_document) -> None:
        progress = make_flow(completed_document).get_progress()
        assert (progress.percentage, progress.current_step_number, progress.total_steps) == (100, 3, 3)


# ---------------------------------------------------------------------------
# Step data
# ---------------------------------------------------------------------------


class TestUpdateStepData:

    def _flow_at(self, make_flow, document: BlueprintDocument, step: Step) -> BlueprintFlow:
        flow = make_flow(document)
        while flow.step is not step:
            flow.advance()
        return flow

    def test_scope_duration_text(self, make_flow, wizard_document) -> None:
        flow = make_flow(wizard_document)
        flow.update_step_data("one semester")
        assert flow.document.wizard_context.duration == "one semester"
        assert flow.document.wizard_context.scope == "course"

    def test_scope_word(self, make_flow, wizard_document) -> None:
        flow = make_flow(wizard_document)
        flow.update_step_data("course")
        assert flow.document.wizard_context.scope == "course"

    def test_phases_numbered_selection(self, make_flow, ideation_document) -> None:
        flow = self._flow_at(make_flow, ideation_document, Step.JOURNEY_PHASES)
        flow.update_step_data("Phase 1: Launch - Kick off\nPhase 2: Build - Make the filter")
        assert [p.title for p in flow.document.journey.phases] == ["Launch", "Build"]
        assert flow.document.journey.phases[1].description == "Make the filter"

    def test_activity_selection(self, make_flow, journey_document) -> None:
        journey_document.journey.activities = []
        flow = make_flow(journey_document)
        assert flow.step is Step.JOURNEY_ACTIVITIES
        flow.update_step_data("Activity 1: Survey - Ask neighbours\nActivity 2: Test - Sample water")
        assert flow.document.journey.activities == ["Survey: Ask neighbours", "Test: Sample water"]

    def test_milestones_via_extractor(self, make_flow, journey_document) -> None:
        flow = self._flow_at(make_flow, journey_document, Step.DELIVER_MILESTONES)
        flow.update_step_data("1. Team forms\n2. Build prototype\n3. Present findings")
        assert [m.title for m in flow.document.deliverables.milestones] == [
            "Team forms", "Build prototype", "Present findings",
        ]

    def test_rubric_and_impact(self, make_flow, journey_document) -> None:
        flow = self._flow_at(make_flow, journey_document, Step.DELIVER_MILESTONES)
        flow.update_step_data("1. Kickoff\n2. Draft")
        flow.advance()
        flow.update_step_data("• Accuracy: Correct facts\n• Clarity: Easy to follow")
        assert sum(c.weight for c in flow.document.deliverables.rubric.criteria) == 100
        flow.advance()
        flow.update_step_data("Audience: city council. Method: public hearing")
        flow.advance()
        assert flow.step is Step.DELIVERABLES_CLARIFIER
        flow.advance()
        assert flow.stage is Stage.COMPLETED

    def test_clarifier_takes_no_data(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        assert flow.update_step_data("anything") is False

    def test_structured_text_value(self, make_flow, wizard_document) -> None:
        wizard_document.ideation = Ideation()
        flow = make_flow(wizard_document)
        flow.advance()
        flow.update_step_data({"conceptStatement": "Systems thinking"})
        assert flow.document.ideation.concept_statement == "Systems thinking"


class TestUpdateBlueprint:

    def test_revision_log(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        entries = flow.update_blueprint(
            {"ideation": {"drivingQuestion": "Why?"}}, reason="Teacher edit"
        )
        assert [e.path for e in entries] == ["ideation.driving_question"]
        assert entries[0].old == "How might we improve water quality in our creek?"
        assert entries[0].new == "Why?"
        assert entries[0].reason == "Teacher edit"
        assert flow.document.ideation.driving_question == "Why?"
        assert flow.revision_log == entries

    def test_invalid_section_is_atomic(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        with pytest.raises(InvalidUpdateError):
            flow.update_blueprint({
                "ideation": {"conceptStatement": "Changed"},
                "deliverables": {"rubric": {"criteria": [{"criterion": "A", "weight": 50}]}},
            })
        assert flow.document.ideation.concept_statement == "Healthy ecosystems depend on clean water"
        assert flow.revision_log == []

    def test_unknown_section(self, make_flow) -> None:
        with pytest.raises(InvalidUpdateError):
            make_flow().update_blueprint({"timestamps": {"created": "now"}})

    def test_position_is_not_moved(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        flow.update_blueprint({"journey": {"phases": [{"title": "Explore"}]}})
        assert flow.step is Step.IDEATION_CLARIFIER
        assert flow.detect_stage() is Stage.JOURNEY


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class TestEvents:

    def test_listener_gets_snapshot(self, make_flow) -> None:
        flow = make_flow()
        events = []
        flow.subscribe(events.append)
        flow.update_step_data("Curious scientists")
        assert [e.kind for e in events] == [FlowEventKind.STEP_DATA_UPDATED]
        snapshot = events[0].state
        assert snapshot.document.wizard_context.vision == "Curious scientists"
        flow.document.wizard_context.vision = "Changed"
        assert snapshot.document.wizard_context.vision == "Curious scientists"

    def test_failing_listener_is_isolated(self, make_flow) -> None:
        flow = make_flow()
        received = []

        def broken(event) -> None:
            raise RuntimeError("boom")

        flow.subscribe(broken)
        flow.subscribe(received.append)
        flow.update_step_data("Scientists")
        assert len(received) == 1

    def test_unsubscribe(self, make_flow) -> None:
        flow = make_flow()
        received = []
        unsubscribe = flow.subscribe(received.append)
        unsubscribe()
        flow.update_step_data("Scientists")
        assert received == []

    def test_advance_event(self, make_flow) -> None:
        flow = make_flow()
        flow.update_step_data("Scientists")
        events = []
        flow.subscribe(events.append)
        flow.advance()
        assert events[0].kind is FlowEventKind.ADVANCED
        assert events[0].detail == {"from": "WIZARD_VISION", "to": "WIZARD_SUBJECT"}

    def test_close_drops_listeners(self, make_flow) -> None:
        flow = make_flow()
        flow.subscribe(lambda event: None)
        flow.close()
        assert len(flow.events) == 0


# ---------------------------------------------------------------------------
# Conversational input
# ---------------------------------------------------------------------------


class TestHandleInput:

    @pytest.fixture
    def concept_flow(self, make_flow, wizard_document) -> BlueprintFlow:
        wizard_document.ideation = Ideation()
        flow = make_flow(wizard_document)
        flow.advance()
        return flow

    def test_help(self, concept_flow: BlueprintFlow) -> None:
        reply = concept_flow.handle_input("help")
        assert reply.kind == "command"
        assert reply.action is ChipAction.HELP
        assert "What:" in reply.message

    def test_ideas_mention_subject(self, concept_flow: BlueprintFlow) -> None:
        reply = concept_flow.handle_input("ideas")
        assert reply.suggestions
        assert all("(through Biology)" in s for s in reply.suggestions)

    def test_long_text_is_stored(self, concept_flow: BlueprintFlow) -> None:
        reply = concept_flow.handle_input(LONG_CONCEPT)
        assert reply.kind == "data"
        assert reply.stored
        assert concept_flow.document.ideation.concept_statement == LONG_CONCEPT

    def test_continue_blocked_then_allowed(self, concept_flow: BlueprintFlow) -> None:
        reply = concept_flow.handle_input("continue")
        assert not reply.advanced
        assert concept_flow.step is Step.IDEATION_CONCEPT

        concept_flow.handle_input(LONG_CONCEPT)
        reply = concept_flow.handle_input("next")
        assert reply.advanced
        assert concept_flow.step is Step.IDEATION_DRIVING_QUESTION

    def test_disallowed_command(self, concept_flow: BlueprintFlow) -> None:
        reply = concept_flow.handle_input("refine")
        assert "isn't available" in reply.message

    def test_loose_match_for_unavailable_action_is_an_answer(self, make_flow) -> None:
        flow = make_flow()
        flow.update_step_data("Scientists")
        flow.advance()
        reply = flow.handle_input("Video editing")
        assert reply.kind == "data"
        assert flow.document.wizard_context.subject == "Video editing"

        flow.advance()
        flow.update_step_data("Grade 7")
        flow.advance()
        assert flow.step is Step.WIZARD_LOCATION
        reply = flow.handle_input("Beach")
        assert reply.stored
        assert flow.document.wizard_context.location == "Beach"

    def test_prose_is_not_a_scope(self, make_flow, wizard_document) -> None:
        flow = make_flow(wizard_document)
        reply = flow.handle_input(LONG_CONCEPT)
        assert reply.stored is False
        assert "doesn't look like an answer" in reply.message
        assert flow.document.wizard_context.scope == "unit"

    def test_refine_at_clarifier(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        flow.handle_input("refine")
        assert flow.step is Step.IDEATION_CONCEPT

    def test_conversation_is_recorded(self, concept_flow: BlueprintFlow) -> None:
        concept_flow.handle_input("help")
        roles = [m.role for m in concept_flow.conversation]
        assert roles == ["user", "assistant"]

    def test_blank_input(self, concept_flow: BlueprintFlow) -> None:
        reply = concept_flow.handle_input("   ")
        assert reply.kind == "none"
        assert concept_flow.conversation == []

    def test_add_message_validates(self, concept_flow: BlueprintFlow) -> None:
        message = concept_flow.add_message({"role": "system", "content": "hello"})
        assert message.role == "system"


class TestJourneyConversation:

    @pytest.fixture
    def phases_flow(self, make_flow, ideation_document) -> BlueprintFlow:
        flow = make_flow(ideation_document)
        flow.advance()
        assert flow.step is Step.JOURNEY_PHASES
        return flow

    def test_suggest_then_accept(self, phases_flow: BlueprintFlow) -> None:
        reply = phases_flow.handle_input("suggest a journey")
        assert reply.kind == "journey"
        assert "**Phase 1:" in reply.message
        assert phases_flow.journey_suggestion is not None

        reply = phases_flow.handle_input("yes")
        assert reply.stored
        assert len(phases_flow.document.journey.phases) == 4
        assert phases_flow.document.journey.activities
        assert phases_flow.document.journey.resources == []
        assert phases_flow.journey_suggestion is None
        assert phases_flow.can_advance()

    def test_shorter_refines_suggestion(self, phases_flow: BlueprintFlow) -> None:
        phases_flow.suggest_journey()
        choice = phases_flow.handle_journey_reply("make it shorter")
        assert choice.action == "refine"
        assert len(phases_flow.journey_suggestion.phases) == 3

    def test_accept_without_suggestion(self, phases_flow: BlueprintFlow) -> None:
        choice = phases_flow.handle_journey_reply("yes")
        assert choice.action == "none"

    def test_generative_backend_used(self, make_flow, ideation_document) -> None:
        answer = json.dumps([
            {"name": f"G{i}", "summary": "s", "activities": ["a"]} for i in range(4)
        ])
        flow = make_flow(ideation_document, backend=FakeBackend(answer=answer))
        assert flow.suggest_journey().source == "generative"

    def test_prefer_generative_off(self, make_flow, ideation_document) -> None:
        config = FlowConfig(journey=JourneyConfig(prefer_generative=False))
        backend = FakeBackend(answer="[]")
        flow = make_flow(ideation_document, backend=backend, config=config)
        assert flow.suggest_journey().source == "template"
        assert backend.prompts == []

    def test_apply_keeps_resources(self, make_flow, journey_document) -> None:
        flow = make_flow(journey_document)
        flow.apply_journey()
        assert flow.document.journey.resources == ["Water testing kits"]
        assert len(flow.document.journey.phases) == 4


class TestDeliverablesConversation:

    @pytest.fixture
    def milestones_flow(self, make_flow, journey_document) -> BlueprintFlow:
        flow = make_flow(journey_document)
        flow.advance()
        assert flow.step is Step.DELIVER_MILESTONES
        return flow

    def test_show_all_then_accept(self, milestones_flow: BlueprintFlow) -> None:
        events = []
        milestones_flow.subscribe(events.append)
        reply = milestones_flow.handle_input("suggest deliverables")
        assert reply.kind == "deliverables"
        assert "1. Explore checkpoint complete" in reply.message
        assert milestones_flow.deliverables_suggestion.review == "all"

        reply = milestones_flow.handle_input("yes, use all of these")
        assert reply.stored
        deliverables = milestones_flow.document.deliverables
        assert deliverables.milestones[0].title == "Explore checkpoint complete"
        assert sum(c.weight for c in deliverables.rubric.criteria) == 100
        assert deliverables.artifacts[0] == "Working prototype demonstrated to the city council"
        assert deliverables.impact.method == deliverables.artifacts[0]
        assert milestones_flow.deliverables_suggestion is None
        assert FlowEventKind.DELIVERABLES_APPLIED in [e.kind for e in events]

    def test_step_by_step_review(self, milestones_flow: BlueprintFlow) -> None:
        milestones_flow.suggest_deliverables()
        reply = milestones_flow.handle_input("yes")
        assert "**Milestones**" in reply.message
        assert reply.suggestions[0] == "Yes, these work"
        milestones_flow.handle_input("yes")
        milestones_flow.handle_input("yes")
        assert milestones_flow.deliverables_suggestion.review == "criteria"
        reply = milestones_flow.handle_input("yes")
        assert reply.stored
        assert milestones_flow.document.deliverables.artifacts

    def test_customize_closes_review(self, milestones_flow: BlueprintFlow) -> None:
        milestones_flow.suggest_deliverables()
        reply = milestones_flow.handle_input("customize milestones")
        assert "Type your own milestones" in reply.message
        assert milestones_flow.deliverables_suggestion is None

        reply = milestones_flow.handle_input("Milestone 1: Field notes\nMilestone 2: Lab report")
        assert reply.kind == "data"
        assert reply.stored

    def test_typed_milestones_stored_during_review(self, milestones_flow: BlueprintFlow) -> None:
        milestones_flow.suggest_deliverables()
        reply = milestones_flow.handle_input("Research: gather creek data")
        assert reply.kind == "data"
        assert reply.stored
        assert milestones_flow.deliverables_suggestion is not None

    def test_accept_without_suggestion(self, milestones_flow: BlueprintFlow) -> None:
        choice = milestones_flow.handle_deliverables_reply("yes")
        assert choice.action == "none"
        assert "no deliverables suggestions" in choice.message

    def test_apply_completes_blueprint(self, milestones_flow: BlueprintFlow) -> None:
        deliverables = milestones_flow.apply_deliverables()
        assert len(deliverables.milestones) == 3
        assert milestones_flow.detect_stage() is Stage.COMPLETED


# ---------------------------------------------------------------------------
# Persistence and state
# ---------------------------------------------------------------------------


class TestPersistence:

    def test_load_rederives_position(
        self, make_flow, gateway: InMemoryGateway, journey_document
    ) -> None:
        gateway.save("bp-stored", journey_document)
        flow = make_flow()
        events = []
        flow.subscribe(events.append)
        assert flow.load("bp-stored") is True
        assert flow.blueprint_id == "bp-stored"
        assert flow.step is detect_step(journey_document)
        assert events[-1].kind is FlowEventKind.LOADED

    def test_reload_after_wizard_resumes_at_concept(
        self, make_flow, gateway: InMemoryGateway
    ) -> None:
        flow = make_flow()
        flow.complete_wizard({
            "vision": "Scientists", "subject": "Biology", "students": "Grade 7",
            "duration": "6 weeks",
        })
        assert flow.close() is True

        reloaded = make_flow()
        assert reloaded.load("bp-test") is True
        assert reloaded.step is Step.IDEATION_CONCEPT
        reply = reloaded.handle_input(LONG_CONCEPT)
        assert reply.stored
        assert reloaded.document.ideation.concept_statement == LONG_CONCEPT
        assert reloaded.document.wizard_context.scope == "unit"
        assert make_flow(gateway.load("bp-test")).step is Step.IDEATION_CONCEPT

    def test_close_releases_backend(self, make_flow) -> None:
        backend = ClosableBackend()
        flow = make_flow(backend=backend)
        flow.close()
        assert backend.closed is True

    def test_load_missing(self, make_flow) -> None:
        flow = make_flow()
        assert flow.load("missing") is False
        assert flow.step is Step.WIZARD_VISION

    def test_save_and_close(self, make_flow, gateway: InMemoryGateway) -> None:
        flow = make_flow()
        flow.update_step_data("Scientists")
        assert flow.close() is True
        assert gateway.save_calls == ["bp-test"]
        assert gateway.saved["bp-test"].wizard_context.vision == "Scientists"

    def test_autosave_toggle(self, make_flow, gateway: InMemoryGateway) -> None:
        flow = make_flow()
        assert flow.autosave_enabled
        flow.set_autosave_enabled(False)
        flow.update_step_data("Scientists")
        flow.advance()
        assert gateway.save_calls == []

    def test_state_and_export_are_copies(self, make_flow, ideation_document) -> None:
        flow = make_flow(ideation_document)
        state = flow.get_state()
        exported = flow.export_document()
        state.document.ideation.concept_statement = "mutated"
        exported.ideation.concept_statement = "mutated"
        assert flow.document.ideation.concept_statement != "mutated"
        assert state.to_dict()["step"] == "IDEATION_CLARIFIER"
        assert state.allowed_actions == (ChipAction.CONTINUE, ChipAction.REFINE, ChipAction.HELP)


class TestCreateFlow:

    def test_wires_file_gateway(self, tmp_path) -> None:
        config = FlowConfig(storage_dir=str(tmp_path))
        flow = create_flow(config, "bp-file")
        flow.update_step_data("Scientists")
        assert flow.close() is True
        assert (tmp_path / "bp-file.json").exists()

    def test_generates_id(self, tmp_path) -> None:
        flow = create_flow(FlowConfig(storage_dir=str(tmp_path)))
        assert flow.blueprint_id.startswith("bp-")
        assert len(flow.blueprint_id) == 15
