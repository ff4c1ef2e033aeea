"""Journey suggestion flow: generative first, deterministic fallback.

The planner asks the generative backend for exactly the recommended number
of phases.  Anything else (no backend, an error, malformed JSON, the wrong
phase count) falls back to :func:`src.journey.generator.generate_journey`,
so a suggestion is always produced.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from src.generative.client import GenerativeBackend
from src.journey.generator import (
    JourneyContext,
    SuggestedPhase,
    allocate_week_ranges,
    estimate_duration_weeks,
    generate_journey,
    recommended_phase_count,
)
from src.shared.errors import GenerativeBackendError
from src.shared.models.blueprint import Journey

logger = logging.getLogger(__name__)

JOURNEY_CHOICE_CHIPS: tuple[str, ...] = (
    "Yes, use this journey",
    "Make it shorter",
    "Different approach",
)

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

_SHOW_ALL_PATTERNS = (
    re.compile(r"suggest.*journey"),
    re.compile(r"show.*all"),
    re.compile(r"show.*complete"),
    re.compile(r"see.*all.*phases"),
)
_ACCEPT_PATTERNS = (
    re.compile(r"^(yes|yep|yeah|yup|sure|okay|ok|perfect|great|looks good|sounds good)[.!]*$"),
    re.compile(r"^yes,?\s+(continue|use this|use that|use these|use this journey)[.!]*$"),
    re.compile(r"^(use (this|that|these|it)|let'?s (use|go with) (this|that|it))[.!]*$"),
    re.compile(r"^i like (it|this|that)[.!]*$"),
    re.compile(r"^(go ahead|proceed)[.!]*$"),
)
_CUSTOMIZE_PATTERNS = (
    re.compile(r"\b(customize|modify|change|adjust|edit|tweak)\b"),
    re.compile(r"\bphase\s+(\d+|one|two|three|four)\b"),
    re.compile(r"\b(different|shorter|longer|fewer phases|more phases)\b"),
)
_THREE_PHASES_RE = re.compile(r"\b(3|three|just 3)\s+phases?\b")
_SHORTER_RE = re.compile(r"\b(shorter|fewer)\b")
_REGENERATE_PATTERNS = (
    re.compile(r"^(no|nah|not quite|different|other|another|try again|regenerate|new suggestion)"),
    re.compile(r"\bshow me (something|anything) (else|different)\b"),
)
_PHASE_REFERENCE_RE = re.compile(r"phase\s*(\d+|one|two|three|four|five)", re.IGNORECASE)
_PHASE_WORDS = {"one": 1, "two": 2, "three": 3, "four": 4, "five": 5}
_MIN_PHASES = 2
_MAX_CHOICE_LENGTH = 80

UNCLEAR_CHOICE_MESSAGE = (
    "I'm not sure what you'd like to do. You can:\n"
    '• Say "yes" to use this journey\n'
    '• Ask for "something shorter" if you want fewer phases\n'
    '• Request "different suggestions" for alternatives'
)


@dataclass
class JourneySuggestion:
    """A proposed journey and where it came from."""

    phases: list[SuggestedPhase] = field(default_factory=list)
    source: str = "template"  # "generative" or "template"

    def to_journey(self, resources: list[str] | None = None) -> Journey:
        return phases_to_journey(self.phases, resources)


@dataclass
class JourneyChoice:
    """Outcome of interpreting the author's reply to a suggestion."""

    action: str  # accept_all, refine, regenerate, show_all or none
    phases: list[SuggestedPhase] = field(default_factory=list)
    phase_index: int | None = None
    message: str = ""


def phases_to_journey(
    phases: list[SuggestedPhase], resources: list[str] | None = None
) -> Journey:
    """Convert suggested phases into the document's journey section."""
    return Journey(
        phases=[p.to_phase() for p in phases],
        activities=[activity for p in phases for activity in p.activities],
        resources=list(resources or []),
    )


def build_journey_prompt(context: JourneyContext, phase_count: int, weeks: int) -> str:
    ranges = allocate_week_ranges(weeks, phase_count)
    first_range = ranges[0].label if ranges else "Week 1"
    return "\n".join([
        f"Generate a {phase_count}-phase learning journey for this project.",
        "",
        "PROJECT FOUNDATION:",
        f"- Topic: {context.topic}",
        f"- Challenge: {context.challenge}",
        "",
        "CONTEXT:",
        f"- Students: {context.students}",
        f"- Subject: {context.subject}",
        f"- Duration: {weeks} weeks ({phase_count} phases)",
        "",
        "REQUIREMENTS:",
        f"Generate exactly {phase_count} phases that build progressively toward the challenge,",
        "each with 2-3 specific activities that reference the actual topic.",
        "",
        "OUTPUT FORMAT (JSON):",
        "[",
        '  {"name": "Phase title (3-6 words)", '
        f'"duration": "{first_range}", '
        '"summary": "One sentence", "activities": ["...", "..."]}',
        "]",
        "",
        "Return ONLY valid JSON.",
    ])


def _decode(raw: Any) -> Any:
    if isinstance(raw, str):
        cleaned = _CODE_FENCE_RE.sub("", raw.strip())
        return json.loads(cleaned)
    return raw


def parse_generated_phases(raw: Any, weeks: int, phase_count: int) -> list[SuggestedPhase] | None:
    """Validate a backend answer; ``None`` unless it holds exactly *phase_count* phases.

    Week-range labels always come from :func:`allocate_week_ranges`, never
    from the backend.
    """
    try:
        data = _decode(raw)
    except (ValueError, TypeError):
        logger.info("Generated journey was not valid JSON")
        return None
    if not isinstance(data, list) or len(data) != phase_count:
        logger.info(
            "Generated journey rejected: expected %d phases, got %s",
            phase_count, len(data) if isinstance(data, list) else type(data).__name__,
        )
        return None

    ranges = allocate_week_ranges(weeks, phase_count)
    phases: list[SuggestedPhase] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            return None
        activities = item.get("activities")
        phases.append(SuggestedPhase(
            name=str(item.get("name") or f"Phase {index + 1}"),
            duration=ranges[index].label,
            summary=str(item.get("summary") or ""),
            activities=[str(a) for a in activities] if isinstance(activities, list) else [],
        ))
    return phases


def suggest_journey(
    context: JourneyContext,
    backend: GenerativeBackend | None = None,
) -> JourneySuggestion:
    """Propose a complete journey for *context*."""
    if backend is not None:
        weeks = estimate_duration_weeks(context.duration)
        phase_count = recommended_phase_count(weeks)
        try:
            raw = backend.generate(build_journey_prompt(context, phase_count, weeks))
        except GenerativeBackendError as exc:
            logger.warning("Journey generation failed, using template: %s", exc.detail)
        else:
            phases = parse_generated_phases(raw, weeks, phase_count) if raw is not None else None
            if phases:
                return JourneySuggestion(phases=phases, source="generative")
    return JourneySuggestion(phases=generate_journey(context), source="template")


def format_journey_suggestion(phases: list[SuggestedPhase]) -> str:
    lines = ["Here's a complete learning journey for your project:", ""]
    for index, phase in enumerate(phases, start=1):
        header = f"**Phase {index}: {phase.name}**"
        if phase.duration:
            header += f" ({phase.duration})"
        lines.append(header)
        lines.append(phase.summary)
        for activity in phase.activities:
            lines.append(f"  • {activity}")
        lines.append("")
    return "\n".join(lines)


def detect_phase_reference(text: str) -> int | None:
    """Zero-based index of a phase mentioned as "phase 2" or "phase two"."""
    match = _PHASE_REFERENCE_RE.search(text)
    if not match:
        return None
    token = match.group(1).lower()
    number = _PHASE_WORDS.get(token) or int(token)
    return number - 1 if number > 0 else None


def handle_journey_choice(phases: list[SuggestedPhase], text: str) -> JourneyChoice:
    """Interpret the author's reply to a journey suggestion.

    Checked in order: show everything again, accept the whole journey,
    customise (trim to three phases, drop one phase, or regenerate), an
    explicit rejection, and finally ``none`` with a hint message.  Replies
    that read like typed phases (a colon, several lines, or long text) are
    always ``none`` so the caller can store them.
    """
    reply = text.strip().lower()
    if "\n" in reply or ":" in reply or len(reply) > _MAX_CHOICE_LENGTH:
        return JourneyChoice(action="none", message=UNCLEAR_CHOICE_MESSAGE)

    if any(p.search(reply) for p in _SHOW_ALL_PATTERNS):
        return JourneyChoice(action="show_all", phases=list(phases))

    if any(p.search(reply) for p in _ACCEPT_PATTERNS):
        return JourneyChoice(action="accept_all", phases=list(phases))

    if any(p.search(reply) for p in _CUSTOMIZE_PATTERNS):
        if _THREE_PHASES_RE.search(reply):
            return JourneyChoice(action="refine", phases=list(phases[:3]))
        if _SHORTER_RE.search(reply):
            count = max(_MIN_PHASES, len(phases) - 1)
            return JourneyChoice(action="refine", phases=list(phases[:count]))
        return JourneyChoice(action="regenerate", phase_index=detect_phase_reference(reply))

    if any(p.search(reply) for p in _REGENERATE_PATTERNS):
        return JourneyChoice(action="regenerate")

    return JourneyChoice(action="none", message=UNCLEAR_CHOICE_MESSAGE)
