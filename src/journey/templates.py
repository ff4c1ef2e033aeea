"""Fixed four-phase journey templates keyed by subject family.

Summaries carry ``{topic}``, ``{deliverable}`` and ``{audience}`` placeholders
that :mod:`src.journey.generator` fills in.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TemplatePhase:
    """One phase of a journey template."""

    title: str
    summary: str
    default_activities: tuple[str, ...]


SCIENCE_TEMPLATE: tuple[TemplatePhase, ...] = (
    TemplatePhase(
        "Research & Explore",
        "Investigate the scientific concepts behind {topic} through research and experimentation.",
        ("Literature review", "Lab experiments", "Data collection"),
    ),
    TemplatePhase(
        "Hypothesis & Design",
        "Form testable hypotheses and design the {deliverable} approach.",
        ("Develop hypotheses", "Create experimental design", "Plan methodology"),
    ),
    TemplatePhase(
        "Build & Test",
        "Construct prototypes and test them with {audience} feedback.",
        ("Build prototype", "Run tests", "Collect feedback"),
    ),
    TemplatePhase(
        "Analyze & Present",
        "Analyze results and present findings to {audience}.",
        ("Data analysis", "Create visualizations", "Practice presentation"),
    ),
)

HUMANITIES_TEMPLATE: tuple[TemplatePhase, ...] = (
    TemplatePhase(
        "Investigate Context",
        "Audit current realities around {topic} and interview {audience}.",
        ("Research historical context", "Conduct interviews", "Analyze primary sources"),
    ),
    TemplatePhase(
        "Analyze & Synthesize",
        "Compare perspectives and identify patterns related to {topic}.",
        ("Compare viewpoints", "Identify themes", "Create synthesis"),
    ),
    TemplatePhase(
        "Co-Design Solutions",
        "Run brainstorming sprints and pick a direction for the {deliverable}.",
        ("Brainstorm ideas", "Evaluate options", "Select approach"),
    ),
    TemplatePhase(
        "Launch & Reflect",
        "Finalize the {deliverable} and present to {audience}.",
        ("Refine final work", "Rehearse presentation", "Reflect on process"),
    ),
)

ARTS_TEMPLATE: tuple[TemplatePhase, ...] = (
    TemplatePhase(
        "Explore & Experiment",
        "Investigate artistic techniques and experiment with approaches to {topic}.",
        ("Research artists and styles", "Experimental sketches", "Try multiple mediums"),
    ),
    TemplatePhase(
        "Develop Concept",
        "Refine the artistic vision and plan the {deliverable} for {audience}.",
        ("Concept development", "Storyboarding", "Collect feedback"),
    ),
    TemplatePhase(
        "Create & Iterate",
        "Produce the {deliverable} and refine it based on critiques.",
        ("Create first draft", "Peer critique", "Revise work"),
    ),
    TemplatePhase(
        "Exhibition & Reflection",
        "Present work to {audience} and reflect on artistic growth.",
        ("Install or stage work", "Artist talk", "Reflection"),
    ),
)

GENERAL_TEMPLATE: tuple[TemplatePhase, ...] = (
    TemplatePhase(
        "Investigate the Context",
        "Audit current realities around {topic} and interview {audience}.",
        ("Research topic", "Conduct interviews", "Identify key issues"),
    ),
    TemplatePhase(
        "Co-Design Possibilities",
        "Run brainstorming sprints, analyze models, and pick a direction for the {deliverable}.",
        ("Brainstorm solutions", "Analyze examples", "Choose direction"),
    ),
    TemplatePhase(
        "Prototype & Test",
        "Build a draft, run a critique, and capture feedback from peers and {audience}.",
        ("Create prototype", "Peer review", "Gather feedback"),
    ),
    TemplatePhase(
        "Launch & Reflect",
        "Finalize the {deliverable}, rehearse the presentation, and plan reflection on impact.",
        ("Final revisions", "Rehearse presentation", "Deliver to audience"),
    ),
)

# Checked in order; the first family whose keyword occurs in the subject wins.
SUBJECT_TEMPLATES: tuple[tuple[str, tuple[str, ...], tuple[TemplatePhase, ...]], ...] = (
    ("science", ("science", "stem", "biology", "chemistry", "physics", "engineering"), SCIENCE_TEMPLATE),
    ("humanities", ("history", "social", "humanities", "civics", "geography"), HUMANITIES_TEMPLATE),
    ("arts", ("art", "music", "theatre", "theater", "dance", "design"), ARTS_TEMPLATE),
)


def select_template(subject: str) -> tuple[str, tuple[TemplatePhase, ...]]:
    """Return ``(family, template)`` for a subject string."""
    lowered = subject.lower()
    for family, keywords, template in SUBJECT_TEMPLATES:
        if any(keyword in lowered for keyword in keywords):
            return family, template
    return "general", GENERAL_TEMPLATE
