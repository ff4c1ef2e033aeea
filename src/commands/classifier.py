"""Control-command detection for raw author input.

Decides whether a string is a control command ("help", "continue", ...) or
authoring data.  Unrecognised text is always data; the classifier never
blocks input.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from src.shared.models.blueprint import ChipAction

# Ordered: earlier commands win substring and distance ties.
COMMAND_SYNONYMS: dict[ChipAction, tuple[str, ...]] = {
    ChipAction.HELP: ("help", "?", "help me", "i'm stuck", "what do i do", "how does this work"),
    ChipAction.IDEAS: ("ideas", "idea", "suggestions", "give me ideas", "examples", "brainstorm"),
    ChipAction.WHATIF: ("whatif", "what if", "what-if", "scenarios", "alternatives"),
    ChipAction.CONTINUE: ("continue", "next", "proceed", "move on", "go on", "keep going"),
    ChipAction.REFINE: ("refine", "improve", "revise", "edit", "tweak"),
    ChipAction.BACK: ("back", "go back", "previous", "undo", "return"),
}

_SUBSTRING_MAX_LENGTH = 20
_FUZZY_MAX_TOKEN_LENGTH = 10
_FUZZY_MAX_DISTANCE = 2
_DATA_MIN_LENGTH = 30
_DATA_MAX_SENTENCES = 2

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_DATA_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\d"),
    re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b"),
    re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+"),
    re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE),
)


@dataclass(frozen=True)
class CommandMatch:
    """A recognised command and how it was recognised."""

    command: ChipAction
    synonym: str
    method: str  # "exact", "substring" or "fuzzy"
    distance: int = 0


@dataclass(frozen=True)
class InputInterpretation:
    """Combined verdict of :func:`classify_command` and :func:`looks_like_data`."""

    kind: str  # "command" or "data"
    text: str
    match: CommandMatch | None = None

    @property
    def is_command(self) -> bool:
        return self.kind == "command"


def levenshtein(a: str, b: str) -> int:
    """Classic dynamic-programming edit distance."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def _normalize(text: str) -> str:
    return text.strip().lower()


def classify_command(text: str) -> CommandMatch | None:
    """Return the command *text* expresses, or ``None`` for data.

    1. Exact match of the normalised text against the synonym table.
    2. Under 20 characters: the text contains a synonym.
    3. A single token under 10 characters: edit distance of at most 2 to a
       single-word synonym (closest wins).
    """
    normalized = _normalize(text)
    if not normalized:
        return None

    for command, synonyms in COMMAND_SYNONYMS.items():
        if normalized in synonyms:
            return CommandMatch(command=command, synonym=normalized, method="exact")

    if len(normalized) < _SUBSTRING_MAX_LENGTH:
        for command, synonyms in COMMAND_SYNONYMS.items():
            for synonym in synonyms:
                if synonym in normalized:
                    return CommandMatch(command=command, synonym=synonym, method="substring")

    tokens = normalized.split()
    if len(tokens) == 1 and len(normalized) < _FUZZY_MAX_TOKEN_LENGTH:
        best: CommandMatch | None = None
        for command, synonyms in COMMAND_SYNONYMS.items():
            for synonym in synonyms:
                # Punctuation and multi-word synonyms are exact/substring only.
                if not synonym.isalpha():
                    continue
                distance = levenshtein(normalized, synonym)
                if distance <= _FUZZY_MAX_DISTANCE and (best is None or distance < best.distance):
                    best = CommandMatch(
                        command=command, synonym=synonym, method="fuzzy", distance=distance
                    )
        return best

    return None


def is_command(text: str) -> bool:
    return classify_command(text) is not None


def looks_like_data(text: str) -> bool:
    """Advisory check that *text* is authoring content rather than a command.

    True when the text is longer than 30 characters, has more than two
    sentences, or contains a number, a capitalised word pair, an email
    address or a URL.
    """
    stripped = text.strip()
    if len(stripped) > _DATA_MIN_LENGTH:
        return True
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(stripped) if s.strip()]
    if len(sentences) > _DATA_MAX_SENTENCES:
        return True
    return any(pattern.search(stripped) for pattern in _DATA_PATTERNS)


def interpret_input(text: str) -> InputInterpretation:
    """Route *text* to command or data.

    Exact command matches always win.  Substring and fuzzy matches are
    overridden when the text also looks like data.
    """
    match = classify_command(text)
    if match is not None and (match.method == "exact" or not looks_like_data(text)):
        return InputInterpretation(kind="command", text=text, match=match)
    return InputInterpretation(kind="data", text=text)
