"""Learning-journey and deliverables generation and suggestion handling."""
from src.journey.deliverables import (
    DeliverablesChoice,
    DeliverablesSuggestion,
    detect_component_reference,
    format_deliverables_review,
    generate_deliverables,
    handle_deliverables_choice,
    suggest_deliverables,
)
from src.journey.generator import (
    JourneyContext,
    SuggestedPhase,
    WeekRange,
    allocate_week_ranges,
    estimate_duration_weeks,
    generate_journey,
    infer_audience,
    infer_deliverable_type,
    recommended_phase_count,
)
from src.journey.planner import (
    JourneyChoice,
    JourneySuggestion,
    detect_phase_reference,
    format_journey_suggestion,
    handle_journey_choice,
    suggest_journey,
)

__all__ = [
    "DeliverablesChoice",
    "DeliverablesSuggestion",
    "detect_component_reference",
    "format_deliverables_review",
    "generate_deliverables",
    "handle_deliverables_choice",
    "suggest_deliverables",
    "JourneyContext",
    "SuggestedPhase",
    "WeekRange",
    "allocate_week_ranges",
    "estimate_duration_weeks",
    "generate_journey",
    "infer_audience",
    "infer_deliverable_type",
    "recommended_phase_count",
    "JourneyChoice",
    "JourneySuggestion",
    "detect_phase_reference",
    "format_journey_suggestion",
    "handle_journey_choice",
    "suggest_journey",
]
