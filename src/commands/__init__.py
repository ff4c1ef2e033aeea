"""Command classification for conversational input."""
from src.commands.classifier import (
    COMMAND_SYNONYMS,
    CommandMatch,
    InputInterpretation,
    classify_command,
    interpret_input,
    is_command,
    levenshtein,
    looks_like_data,
)

__all__ = [
    "COMMAND_SYNONYMS",
    "CommandMatch",
    "InputInterpretation",
    "classify_command",
    "interpret_input",
    "is_command",
    "levenshtein",
    "looks_like_data",
]
