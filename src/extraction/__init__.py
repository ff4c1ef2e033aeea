"""Text extraction engine -- freeform text to blueprint entities."""
from src.extraction.cascade import CascadeResult, Strategy, run_cascade
from src.extraction.text_extractor import (
    assign_weights,
    extract_impact,
    extract_list_items,
    extract_milestones,
    extract_phases,
    extract_rubric,
    extract_rubric_criteria,
    extract_suggestions,
    extract_text,
)

__all__ = [
    "CascadeResult",
    "Strategy",
    "run_cascade",
    "assign_weights",
    "extract_impact",
    "extract_list_items",
    "extract_milestones",
    "extract_phases",
    "extract_rubric",
    "extract_rubric_criteria",
    "extract_suggestions",
    "extract_text",
]
