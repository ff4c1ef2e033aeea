"""Deterministic deliverables suggestions and the review conversation.

Milestones come from the journey's phase titles, final artifacts from the
deliverable type named in the challenge, and rubric criteria from the
subject family.  The author reviews them one component at a time (intro,
milestones, artifacts, criteria) or all at once, and accepting the last
review yields a complete :class:`Deliverables` section.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace

from src.extraction.text_extractor import assign_weights, extract_milestones
from src.journey.generator import JourneyContext, infer_audience, infer_deliverable_type
from src.journey.templates import select_template
from src.shared.constants import MILESTONE_COUNT
from src.shared.models.blueprint import (
    BlueprintDocument,
    Deliverables,
    Impact,
    Rubric,
    RubricCriterion,
)

DEFAULT_TIMELINE = "End of project"

# Review order; "all" shows every component together.
REVIEW_STEPS: tuple[str, ...] = ("intro", "milestones", "artifacts", "criteria")

DEFAULT_MILESTONES: tuple[str, ...] = (
    "Research insights synthesized",
    "Prototype critiqued and revised",
    "Launch rehearsal complete",
)

_ARTIFACTS: dict[str, tuple[str, ...]] = {
    "exhibition": (
        "Exhibition ready for {audience}",
        "Curator statement and labels",
        "Process portfolio documenting decisions",
    ),
    "campaign": (
        "Campaign materials for {audience}",
        "Campaign strategy document",
        "Metrics and success criteria",
    ),
    "proposal": (
        "Evidence-based proposal for {audience}",
        "Supporting research documentation",
        "Implementation timeline",
    ),
    "prototype": (
        "Working prototype demonstrated to {audience}",
        "Technical documentation",
        "User feedback report",
    ),
    "podcast": (
        "Podcast episode(s) for {audience}",
        "Script and show notes",
        "Reflection on production process",
    ),
    "documentary": (
        "Documentary screened for {audience}",
        "Director's statement",
        "Production journal",
    ),
    "portfolio": (
        "Portfolio presented to {audience}",
        "Artist/reflective statements",
        "Evidence of growth over time",
    ),
}
_DEFAULT_ARTIFACTS = (
    "{deliverable} ready for {audience}",
    "Process documentation",
    "Reflection on learning",
)

_LANGUAGE_RE = re.compile(r"\b(english|writing|literature|language arts|ela)\b")
_CRITERIA: dict[str, tuple[str, ...]] = {
    "science": (
        "Scientific evidence is credible and relevant",
        "Methodology is sound and well-documented",
        "Conclusions are supported by data",
        "Communication is clear for {audience}",
    ),
    "humanities": (
        "Historical evidence is accurate and well-sourced",
        "Multiple perspectives are examined",
        "Connections to present are meaningful",
        "Narrative engages {audience}",
    ),
    "arts": (
        "Artistic choices support the concept",
        "Technical skill shows growth",
        "Personal voice is evident",
        "Work resonates with {audience}",
    ),
    "language": (
        "Writing is clear and purposeful",
        "Evidence supports claims",
        "Voice and style are appropriate",
        "Message connects with {audience}",
    ),
}
_DEFAULT_CRITERIA = (
    "Evidence is credible and relevant",
    "Quality meets professional standards",
    "Impact on {audience} is clear",
    "Student voice and reflection show growth",
)

_SHOW_ALL_PATTERNS = (
    re.compile(r"show.*all"),
    re.compile(r"see.*everything"),
    re.compile(r"complete.*structure"),
    re.compile(r"review.*all"),
    re.compile(r"suggest.*(deliverables|milestones)"),
)
_ACCEPT_PATTERNS = (
    re.compile(r"^(yes|yep|yeah|yup|sure|okay|ok|perfect|great|looks good|sounds good)[.!]*$"),
    re.compile(r"^yes,?\s+(these work|continue|start with milestones|finalize these|use all of these)[.!]*$"),
    re.compile(r"^(use (this|that|these|it)|let'?s (use|go with) (this|that|it))[.!]*$"),
    re.compile(r"^i like (it|this|that|these)[.!]*$"),
    re.compile(r"^(continue|next|move on)[.!]*$"),
)
_CUSTOMIZE_RE = re.compile(r"\b(customi[sz]e|change|modify|edit|tweak|adjust)\b")
_COMPONENT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("milestones", re.compile(r"milestone|checkpoint|phase")),
    ("artifacts", re.compile(r"artifact|deliverable|product|final")),
    ("criteria", re.compile(r"rubric|criteri|assess|quality")),
)
_MAX_CHOICE_LENGTH = 80

UNCLEAR_DELIVERABLES_MESSAGE = (
    "I'm not sure what you'd like to do. Say \"yes\" to continue, "
    "\"show all\" to see every component, or ask for help."
)

_CHIPS: dict[str, tuple[str, ...]] = {
    "intro": ("Yes, start with milestones", "Show all components", "Explain more"),
    "milestones": ("Yes, these work", "Customize milestones", "Show all at once"),
    "artifacts": ("Yes, continue", "Customize artifacts", "Show all at once"),
    "criteria": ("Yes, finalize these", "Customize criteria", "Review all again"),
    "all": ("Yes, use all of these", "Customize milestones", "Customize artifacts"),
}


@dataclass
class DeliverablesSuggestion:
    """Suggested deliverables plus where the author is in reviewing them."""

    milestones: list[str] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)
    criteria: list[str] = field(default_factory=list)
    audience: str = ""
    review: str = "intro"  # one of REVIEW_STEPS, "all" or "final"

    def to_deliverables(self) -> Deliverables:
        """The document section this suggestion describes.

        Milestones are padded to the three phase slots, criteria share the
        rubric weight evenly, and the first artifact is how the work reaches
        its audience.
        """
        weights = assign_weights(len(self.criteria))
        return Deliverables(
            milestones=extract_milestones(list(self.milestones)),
            artifacts=list(self.artifacts),
            rubric=Rubric(criteria=[
                RubricCriterion(criterion=name, weight=weight)
                for name, weight in zip(self.criteria, weights)
            ]),
            impact=Impact(
                audience=self.audience,
                method=self.artifacts[0] if self.artifacts else "",
                timeline=DEFAULT_TIMELINE,
            ),
        )


@dataclass
class DeliverablesChoice:
    """Outcome of interpreting the author's reply during the review."""

    action: str  # intro_accepted, next_component, accept_all, show_all, refine or none
    suggestion: DeliverablesSuggestion | None = None
    component: str | None = None
    message: str = ""


def _fill(lines: tuple[str, ...], **values: str) -> list[str]:
    return [line.format(**values) for line in lines]


def _criteria_family(subject: str) -> str:
    if _LANGUAGE_RE.search(subject.lower()):
        return "language"
    family, _ = select_template(subject)
    return family


def generate_deliverables(
    context: JourneyContext, phase_titles: list[str] | None = None
) -> DeliverablesSuggestion:
    """Build milestones, artifacts and criteria without a generative backend."""
    deliverable = infer_deliverable_type(context.challenge)
    audience = infer_audience(context.challenge, context.students)

    titles = [t for t in (phase_titles or []) if t.strip()][:MILESTONE_COUNT]
    milestones = (
        [f"{title} checkpoint complete" for title in titles] if titles else list(DEFAULT_MILESTONES)
    )
    artifacts = _fill(
        _ARTIFACTS.get(deliverable, _DEFAULT_ARTIFACTS), deliverable=deliverable, audience=audience
    )
    artifacts[0] = artifacts[0][:1].upper() + artifacts[0][1:]
    criteria = _fill(
        _CRITERIA.get(_criteria_family(context.subject), _DEFAULT_CRITERIA), audience=audience
    )
    return DeliverablesSuggestion(
        milestones=milestones, artifacts=artifacts, criteria=criteria, audience=audience
    )


def suggest_deliverables(doc: BlueprintDocument) -> DeliverablesSuggestion:
    return generate_deliverables(
        JourneyContext.from_document(doc), [p.title for p in doc.journey.phases]
    )


def detect_component_reference(text: str) -> str | None:
    """``milestones``, ``artifacts`` or ``criteria`` when *text* names one."""
    lowered = text.lower()
    for component, pattern in _COMPONENT_PATTERNS:
        if pattern.search(lowered):
            return component
    return None


def _numbered(title: str, items: list[str], question: str = "") -> list[str]:
    lines = [title, ""]
    lines.extend(f"{index}. {item}" for index, item in enumerate(items, start=1))
    if question:
        lines.extend(["", question])
    return lines


def format_deliverables_review(suggestion: DeliverablesSuggestion) -> str:
    """Text for the component the author is currently reviewing."""
    review = suggestion.review
    if review == "intro":
        return "\n".join([
            "**Time to define deliverables!**",
            "",
            "Three kinds of deliverables work together:",
            "• **Milestones**: progress checkpoints during the journey",
            "• **Artifacts**: the final products students create",
            "• **Rubric criteria**: the qualities you'll assess",
            "",
            "I'll suggest each one based on your journey. Ready to start with milestones?",
        ])
    if review == "milestones":
        return "\n".join(_numbered(
            "**Milestones**: suggested from your journey phases",
            suggestion.milestones,
            "Do these milestones work for tracking student progress?",
        ))
    if review == "artifacts":
        return "\n".join(_numbered(
            "**Final artifacts**: what students will create and present",
            suggestion.artifacts,
            "Do these artifacts match what you envision students creating?",
        ))
    if review == "criteria":
        return "\n".join(_numbered(
            "**Assessment criteria**: how you'll evaluate quality",
            suggestion.criteria,
            "Do these criteria cover what matters most for this project?",
        ))
    lines = ["Here's a complete deliverables structure for your project:", ""]
    lines += _numbered("**Milestones**", suggestion.milestones) + [""]
    lines += _numbered("**Final artifacts**", suggestion.artifacts) + [""]
    lines += _numbered("**Assessment criteria**", suggestion.criteria)
    return "\n".join(lines)


def deliverables_chips(suggestion: DeliverablesSuggestion) -> list[str]:
    return list(_CHIPS.get(suggestion.review, ()))


def handle_deliverables_choice(
    suggestion: DeliverablesSuggestion, text: str
) -> DeliverablesChoice:
    """Interpret the author's reply to the current review.

    Replies that read like typed content (a colon, several lines, or long
    text) are left alone so the caller can store them.  Otherwise checked
    in order: show everything, accept the current component, customise a
    named component, and finally ``none``.
    """
    reply = text.strip().lower()
    if not reply or "\n" in reply or ":" in reply or len(reply) > _MAX_CHOICE_LENGTH:
        return DeliverablesChoice(action="none", suggestion=suggestion)

    if any(p.search(reply) for p in _SHOW_ALL_PATTERNS):
        return DeliverablesChoice(action="show_all", suggestion=replace(suggestion, review="all"))

    if any(p.search(reply) for p in _ACCEPT_PATTERNS):
        review = suggestion.review
        if review == "intro":
            return DeliverablesChoice(
                action="intro_accepted", suggestion=replace(suggestion, review="milestones")
            )
        if review in ("milestones", "artifacts"):
            following = REVIEW_STEPS[REVIEW_STEPS.index(review) + 1]
            return DeliverablesChoice(
                action="next_component", suggestion=replace(suggestion, review=following)
            )
        if review in ("criteria", "all"):
            return DeliverablesChoice(
                action="accept_all", suggestion=replace(suggestion, review="final")
            )

    component = detect_component_reference(reply)
    if _CUSTOMIZE_RE.search(reply) and component is not None:
        return DeliverablesChoice(
            action="refine",
            suggestion=suggestion,
            component=component,
            message=f"Type your own {component}, one per line, and I'll use them instead.",
        )

    return DeliverablesChoice(
        action="none", suggestion=suggestion, message=UNCLEAR_DELIVERABLES_MESSAGE
    )
