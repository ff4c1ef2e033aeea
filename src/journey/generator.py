"""Deterministic journey generation from structured context alone.

Used whenever the generative backend is unavailable or returns something
unusable: the duration text is mapped to a week count, the week count to a
phase count, weeks are split across phases, and a subject template is filled
in with the topic, deliverable and audience inferred from the ideation data.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field

from src.journey.templates import select_template
from src.shared.models.blueprint import BlueprintDocument, Phase

DEFAULT_DURATION_WEEKS = 6
DEFAULT_TOPIC = "this topic"
DEFAULT_DELIVERABLE = "project artifact"
DEFAULT_AUDIENCE = "the audience"

# (upper bound exclusive, phase count); anything longer gets _MAX_PHASES.
_PHASE_BANDS: tuple[tuple[int, int], ...] = ((2, 2), (4, 3))
_MAX_PHASES = 4

_WORD_NUMBERS: dict[str, int] = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12,
}
_UNIT_WEEKS: dict[str, int] = {
    "week": 1, "month": 4, "quarter": 9, "semester": 18, "term": 18, "year": 36,
}
_NUMBER = r"(\d+|" + "|".join(_WORD_NUMBERS) + r")"
_RANGE_RE = re.compile(r"(\d+)\s*(?:-|–|to)\s*(\d+)\s*(week|month)s?\b")
_AMOUNT_RE = re.compile(
    rf"\b{_NUMBER}\s*(?:full\s+)?(day|week|month|quarter|semester|term|year)s?\b"
)
_BARE_UNIT_RE = re.compile(r"\b(semester|term|quarter|year)\b")

_DELIVERABLE_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("exhibit", "exhibition"),
    ("campaign", "campaign"),
    ("proposal", "proposal"),
    ("prototype", "prototype"),
    ("podcast", "podcast"),
    ("documentary", "documentary"),
    ("portfolio", "portfolio"),
    ("toolkit", "toolkit"),
)
_AUDIENCE_PHRASE_RE = re.compile(r"\bfor\s+([^.,;]+)", re.IGNORECASE)
_GRADE_AUDIENCES: tuple[tuple[str, str], ...] = (
    ("elementary", "families and younger students"),
    ("middle", "school leaders and community partners"),
    ("high", "community partners and decision makers"),
)


@dataclass(frozen=True)
class WeekRange:
    """An inclusive range of project weeks."""

    start: int
    end: int

    @property
    def weeks(self) -> int:
        return max(self.end - self.start + 1, 0)

    @property
    def label(self) -> str:
        if self.weeks <= 1:
            return f"Week {self.start}"
        return f"Weeks {self.start}-{self.end}"


@dataclass
class SuggestedPhase:
    """A generated journey phase."""

    name: str
    duration: str
    summary: str
    activities: list[str] = field(default_factory=list)

    def to_phase(self) -> Phase:
        return Phase(title=self.name, description=self.summary)


@dataclass(frozen=True)
class JourneyContext:
    """The structured inputs journey generation works from."""

    topic: str = DEFAULT_TOPIC
    subject: str = ""
    students: str = ""
    duration: str = ""
    challenge: str = ""

    @classmethod
    def from_document(cls, doc: BlueprintDocument) -> JourneyContext:
        ideation = doc.ideation
        return cls(
            topic=ideation.concept_statement or ideation.driving_question or DEFAULT_TOPIC,
            subject=doc.wizard_context.subject,
            students=doc.wizard_context.students,
            duration=doc.wizard_context.duration,
            challenge=ideation.challenge_statement,
        )


def _to_int(token: str) -> int:
    return int(token) if token.isdigit() else _WORD_NUMBERS[token]


def estimate_duration_weeks(text: str | None) -> int:
    """Map phrases like "6 weeks", "2 months" or "one semester" to weeks.

    Ranges ("4-6 weeks") use the upper bound, months count as 4 weeks, a
    semester as 18, a quarter as 9, a year as 36 and days as school weeks of
    five days.  Unrecognised phrasing returns ``DEFAULT_DURATION_WEEKS``.
    """
    lowered = (text or "").lower()

    match = _RANGE_RE.search(lowered)
    if match:
        return int(match.group(2)) * _UNIT_WEEKS[match.group(3)]

    match = _AMOUNT_RE.search(lowered)
    if match:
        amount = _to_int(match.group(1))
        unit = match.group(2)
        if unit == "day":
            return max(1, math.ceil(amount / 5))
        return max(1, amount * _UNIT_WEEKS[unit])

    match = _BARE_UNIT_RE.search(lowered)
    if match:
        return _UNIT_WEEKS[match.group(1)]

    return DEFAULT_DURATION_WEEKS


def recommended_phase_count(weeks: int) -> int:
    """Phase count for a project length, from a fixed banding table."""
    for upper, count in _PHASE_BANDS:
        if weeks < upper:
            return count
    return _MAX_PHASES


def allocate_week_ranges(weeks: int, phase_count: int) -> list[WeekRange]:
    """Split *weeks* evenly across *phase_count* phases.

    Every range gets ``weeks // phase_count`` weeks and the final range also
    takes the remainder, so the ranges always sum to exactly *weeks*.
    """
    if phase_count <= 0:
        return []
    weeks = max(weeks, 0)
    base, remainder = divmod(weeks, phase_count)
    ranges: list[WeekRange] = []
    start = 1
    for index in range(phase_count):
        length = base + (remainder if index == phase_count - 1 else 0)
        ranges.append(WeekRange(start=start, end=start + length - 1))
        start += length
    return ranges


def infer_deliverable_type(challenge: str) -> str:
    lowered = challenge.lower()
    for keyword, deliverable in _DELIVERABLE_KEYWORDS:
        if keyword in lowered:
            return deliverable
    return DEFAULT_DELIVERABLE


def infer_audience(challenge: str, students: str = "") -> str:
    """Audience named in the challenge ("... for local farmers"), else by grade band."""
    match = _AUDIENCE_PHRASE_RE.search(challenge)
    if match and match.group(1).strip():
        return match.group(1).strip()
    grade = students.lower()
    for keyword, audience in _GRADE_AUDIENCES:
        if keyword in grade:
            return audience
    return DEFAULT_AUDIENCE


def generate_journey(context: JourneyContext) -> list[SuggestedPhase]:
    """Build a complete journey for *context* without any generative backend."""
    weeks = estimate_duration_weeks(context.duration)
    phase_count = recommended_phase_count(weeks)
    ranges = allocate_week_ranges(weeks, phase_count)
    deliverable = infer_deliverable_type(context.challenge)
    audience = infer_audience(context.challenge, context.students)
    _, template = select_template(context.subject)

    phases: list[SuggestedPhase] = []
    for index, phase in enumerate(template[:phase_count]):
        summary = (
            phase.summary.replace("{topic}", context.topic)
            .replace("{deliverable}", deliverable)
            .replace("{audience}", audience)
        )
        phases.append(SuggestedPhase(
            name=phase.title,
            duration=ranges[index].label if index < len(ranges) else "",
            summary=summary,
            activities=list(phase.default_activities),
        ))
    return phases
