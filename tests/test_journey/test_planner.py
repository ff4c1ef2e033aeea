"""Tests for journey suggestions and reply handling."""

from __future__ import annotations

import json

import pytest

from src.journey.generator import JourneyContext, SuggestedPhase
from src.journey.planner import (
    UNCLEAR_CHOICE_MESSAGE,
    JourneySuggestion,
    build_journey_prompt,
    detect_phase_reference,
    format_journey_suggestion,
    handle_journey_choice,
    parse_generated_phases,
    suggest_journey,
)
from src.shared.errors import GenerativeBackendError
from tests.conftest import FakeBackend

CONTEXT = JourneyContext(
    topic="water quality",
    subject="Biology",
    students="Grade 7",
    duration="6 weeks",
    challenge="Build a prototype filter",
)


def _generated(count: int) -> list[dict]:
    return [
        {
            "name": f"Generated {i}",
            "duration": "Week 99",
            "summary": f"Summary {i}",
            "activities": [f"Activity {i}a", f"Activity {i}b"],
        }
        for i in range(1, count + 1)
    ]


def _phases(count: int) -> list[SuggestedPhase]:
    return [SuggestedPhase(name=f"P{i}", duration="", summary="") for i in range(1, count + 1)]


# ---------------------------------------------------------------------------
# Generative-first suggestion
# ---------------------------------------------------------------------------


class TestSuggestJourney:

    def test_without_backend_uses_template(self) -> None:
        suggestion = suggest_journey(CONTEXT)
        assert suggestion.source == "template"
        assert len(suggestion.phases) == 4

    def test_generative_answer_used(self) -> None:
        backend = FakeBackend(answer=json.dumps(_generated(4)))
        suggestion = suggest_journey(CONTEXT, backend)
        assert suggestion.source == "generative"
        assert [p.name for p in suggestion.phases][0] == "Generated 1"
        assert [p.duration for p in suggestion.phases] == ["Week 1", "Week 2", "Week 3", "Weeks 4-6"]
        assert "exactly 4 phases" in backend.prompts[0]

    def test_code_fenced_answer(self) -> None:
        backend = FakeBackend(answer="```json\n" + json.dumps(_generated(4)) + "\n```")
        assert suggest_journey(CONTEXT, backend).source == "generative"

    def test_structured_answer(self) -> None:
        backend = FakeBackend(answer=_generated(4))
        assert suggest_journey(CONTEXT, backend).source == "generative"

    def test_wrong_phase_count_falls_back(self) -> None:
        backend = FakeBackend(answer=json.dumps(_generated(3)))
        suggestion = suggest_journey(CONTEXT, backend)
        assert suggestion.source == "template"
        assert len(suggestion.phases) == 4

    def test_bad_json_falls_back(self) -> None:
        backend = FakeBackend(answer="Here is a journey: phase one...")
        assert suggest_journey(CONTEXT, backend).source == "template"

    def test_backend_error_falls_back(self) -> None:
        backend = FakeBackend(error=GenerativeBackendError("down"))
        assert suggest_journey(CONTEXT, backend).source == "template"

    def test_none_answer_falls_back(self) -> None:
        assert suggest_journey(CONTEXT, FakeBackend(answer=None)).source == "template"


class TestParseGeneratedPhases:

    def test_week_labels_replace_backend_values(self) -> None:
        phases = parse_generated_phases(_generated(3), weeks=6, phase_count=3)
        assert [p.duration for p in phases] == ["Weeks 1-2", "Weeks 3-4", "Weeks 5-6"]
        assert phases[0].activities == ["Activity 1a", "Activity 1b"]

    def test_non_dict_items_rejected(self) -> None:
        assert parse_generated_phases(["a", "b"], weeks=6, phase_count=2) is None

    def test_object_rejected(self) -> None:
        assert parse_generated_phases('{"phases": []}', weeks=6, phase_count=3) is None

    def test_prompt_mentions_context(self) -> None:
        prompt = build_journey_prompt(CONTEXT, 3, 6)
        assert "water quality" in prompt
        assert "Weeks 1-2" in prompt
        assert "Return ONLY valid JSON." in prompt


# ---------------------------------------------------------------------------
# Reply handling
# ---------------------------------------------------------------------------


class TestHandleJourneyChoice:

    def test_accept(self) -> None:
        for reply in ("yes", "Yes!", "looks good", "use this", "go ahead"):
            choice = handle_journey_choice(_phases(4), reply)
            assert choice.action == "accept_all", reply
            assert len(choice.phases) == 4

    def test_show_all(self) -> None:
        assert handle_journey_choice([], "suggest a journey").action == "show_all"
        assert handle_journey_choice(_phases(2), "show me all of it").action == "show_all"

    def test_shorter(self) -> None:
        choice = handle_journey_choice(_phases(4), "make it shorter")
        assert choice.action == "refine"
        assert [p.name for p in choice.phases] == ["P1", "P2", "P3"]

    def test_shorter_keeps_two(self) -> None:
        choice = handle_journey_choice(_phases(2), "fewer phases please")
        assert choice.action == "refine"
        assert len(choice.phases) == 2

    def test_three_phases(self) -> None:
        choice = handle_journey_choice(_phases(4), "change it to 3 phases")
        assert choice.action == "refine"
        assert len(choice.phases) == 3

    def test_customise_single_phase(self) -> None:
        choice = handle_journey_choice(_phases(4), "change phase two")
        assert choice.action == "regenerate"
        assert choice.phase_index == 1

    def test_reject(self) -> None:
        assert handle_journey_choice(_phases(4), "no thanks").action == "regenerate"

    def test_unclear(self) -> None:
        choice = handle_journey_choice(_phases(4), "hmm")
        assert choice.action == "none"
        assert choice.message == UNCLEAR_CHOICE_MESSAGE

    @pytest.mark.parametrize("reply", [
        "Research: study different ecosystems",
        "Phase 1: Launch - Kick off\nPhase 2: Build - Make the filter",
        "We should spend the first weeks on fieldwork and then change to lab analysis of the samples",
    ])
    def test_typed_phases_are_not_choices(self, reply: str) -> None:
        assert handle_journey_choice(_phases(4), reply).action == "none"


class TestHelpers:

    def test_detect_phase_reference(self) -> None:
        assert detect_phase_reference("phase 3 needs work") == 2
        assert detect_phase_reference("Phase two") == 1
        assert detect_phase_reference("nothing here") is None
        assert detect_phase_reference("phase 0") is None

    def test_format(self) -> None:
        text = format_journey_suggestion(
            [SuggestedPhase("Explore", "Weeks 1-2", "Look around", ["Walk"])]
        )
        assert "**Phase 1: Explore** (Weeks 1-2)" in text
        assert "  • Walk" in text

    def test_to_journey_flattens_activities(self) -> None:
        suggestion = JourneySuggestion(phases=[
            SuggestedPhase("A", "", "a", ["a1", "a2"]),
            SuggestedPhase("B", "", "b", ["b1"]),
        ])
        journey = suggestion.to_journey(resources=["Kits"])
        assert [p.title for p in journey.phases] == ["A", "B"]
        assert journey.activities == ["a1", "a2", "b1"]
        assert journey.resources == ["Kits"]
