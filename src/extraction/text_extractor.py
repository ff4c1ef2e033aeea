"""Freeform text extraction for blueprint step data.

Converts unstructured natural-language input (typed by an author or returned
by a generative backend) into the structured entities the blueprint document
requires, using deterministic regex/string matching only.

Every public function accepts either a string or an already-structured value
(list, dict, model) and always returns a fully-typed result.  Nothing here
raises on bad input: when no strategy matches, a deterministic fallback or
padding value is produced instead.

Strategy order per data kind is fixed and first-match-wins, even when a later
strategy would structure the same text more completely.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from src.extraction.cascade import Strategy, run_cascade
from src.shared.constants import MILESTONE_COUNT, RUBRIC_TOTAL_WEIGHT
from src.shared.models.blueprint import (
    Impact,
    Milestone,
    Phase,
    Rubric,
    RubricCriterion,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_SUBSTANTIAL_LINE_LENGTH = 10
_SUBSTANTIAL_BLOCK_LENGTH = 20
_MAX_FALLBACK_TITLE = 100

_BULLET_CHARS = "•·▪◦"
_BULLET_PREFIX = rf"(?:[{_BULLET_CHARS}]|[-*](?=\s))"
_LIST_MARKER_RE = re.compile(rf"^[ \t]*(?:\d+[.)]|{_BULLET_PREFIX})[ \t]*")

# "Milestone N: <title>" with an optional description on the next line.
_MILESTONE_LABEL_RE = re.compile(
    r"Milestone\s*\d+\s*:\s*([^\n]+)"
    r"(?:\n(?![ \t]*Milestone\s*\d+\s*:)[ \t]*([^\n]+))?",
    re.IGNORECASE,
)
# "N. <title> - <description>"
_NUMBERED_TITLE_RE = re.compile(
    r"^[ \t]*\d+[.)][ \t]*(.+?)(?:[ \t]+[-–—][ \t]+(.+?))?[ \t]*$", re.MULTILINE
)
_PHASE_MENTION_RE = re.compile(r"Phase\s*\d+[:\s]+([^.!?\n]+)", re.IGNORECASE)

_NUMBERED_CRITERION_RE = re.compile(
    r"^[ \t]*\d+[.)][ \t]*([^:\n]+?)[ \t]*:[ \t]*(.+?)[ \t]*$", re.MULTILINE
)
_BULLET_CRITERION_RE = re.compile(
    rf"^[ \t]*{_BULLET_PREFIX}[ \t]*([^:\n]+?)[ \t]*:[ \t]*(.+?)[ \t]*$",
    re.MULTILINE,
)
_BLOCK_SPLIT_RE = re.compile(r"\n[ \t]*\n")

_NUMBERED_ITEM_RE = re.compile(r"^[ \t]*\d+[.)][ \t]*(.+?)[ \t]*$", re.MULTILINE)
_TITLE_DESCRIPTION_RE = re.compile(r"^([^:\n]+?)[ \t]*:[ \t]*(.+?)[ \t]*$")

_FIELD_STOP = r"[^\n.;,]+"
_AUDIENCE_RE = re.compile(
    rf"\baudience\b[:\s]+(?:(?:is|are|will\s+be|includes?)\s+)?({_FIELD_STOP})",
    re.IGNORECASE,
)
_METHOD_RE = re.compile(
    rf"\bmethod\b[:\s]+(?:(?:is|will\s+be)\s+)?({_FIELD_STOP})", re.IGNORECASE
)
_SHARE_RE = re.compile(rf"\bshare\b(?!\s+with\b)[:\s]+({_FIELD_STOP})", re.IGNORECASE)
_SOFT_AUDIENCE_RE = re.compile(
    rf"\b(?:present(?:ed)?\s+to|share\s+with|showcase\s+(?:it\s+)?to)\s+({_FIELD_STOP})",
    re.IGNORECASE,
)
_SOFT_METHOD_RE = re.compile(rf"\b(?:through|via|using)\s+({_FIELD_STOP})", re.IGNORECASE)
_TIMELINE_RE = re.compile(rf"\b(?:timeline|when)\b[:\s]+({_FIELD_STOP})", re.IGNORECASE)
_SOFT_TIMELINE_RE = re.compile(
    r"\b((?:at|by)\s+the\s+end\s+of\s+[^\n.;,]+)", re.IGNORECASE
)

DEFAULT_IMPACT_AUDIENCE = "Community stakeholders"
DEFAULT_IMPACT_METHOD = "Presentation and demonstration"
DEFAULT_IMPACT_TIMELINE = "End of project"
DEFAULT_CRITERION_DESCRIPTION = "Assessment of this criterion"
PADDED_MILESTONE_DESCRIPTION = "To be developed"

FALLBACK_RUBRIC: tuple[tuple[str, str, int], ...] = (
    ("Content Understanding", "Demonstrates comprehension of key concepts", 40),
    ("Application & Creativity", "Applies learning in creative ways", 30),
    ("Communication", "Clearly communicates ideas and findings", 30),
)

_HEADER_MARKERS = ("here are",)


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------


def _clean(text: str) -> str:
    """Trim whitespace and stray Markdown emphasis/heading characters."""
    return text.strip().strip("*_#").strip()


def _strip_marker(line: str) -> str:
    return _clean(_LIST_MARKER_RE.sub("", line, count=1))


def _as_plain(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump()
    return item


def _first_key(data: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _is_header(line: str) -> bool:
    lowered = line.lower()
    return any(m in lowered for m in _HEADER_MARKERS) or line.rstrip().endswith(":")


def _bullet_lines(text: str) -> list[str]:
    """Content of bullet lines, splitting inline ``•`` separated items."""
    items: list[str] = []
    bullet_start = re.compile(rf"^[ \t]*{_BULLET_PREFIX}")
    for line in text.splitlines():
        match = bullet_start.match(line)
        if not match:
            continue
        for part in re.split(rf"[{_BULLET_CHARS}]", line[match.end():]):
            cleaned = _clean(part)
            if cleaned:
                items.append(cleaned)
    return items


def assign_weights(count: int, total: int = RUBRIC_TOTAL_WEIGHT) -> list[int]:
    """Split *total* across *count* items; the last takes the remainder.

    >>> assign_weights(3)
    [33, 33, 34]
    """
    if count <= 0:
        return []
    base = total // count
    return [base] * (count - 1) + [base + total % count]


def extract_text(value: Any, *keys: str) -> str:
    """Coerce step input to a plain string.

    Dicts are searched for *keys* and then ``text``; other objects are
    stringified.  ``None`` becomes the empty string.
    """
    value = _as_plain(value)
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, Mapping):
        return _first_key(value, *keys, "text")
    return str(value).strip()


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------


def _milestone_labels(text: str) -> list[tuple[str, str]]:
    return [
        (_clean(title), _clean(desc or ""))
        for title, desc in _MILESTONE_LABEL_RE.findall(text)
    ]


def _numbered_titles(text: str) -> list[tuple[str, str]]:
    return [
        (_clean(title), _clean(desc or ""))
        for title, desc in _NUMBERED_TITLE_RE.findall(text)
    ]


def _bullet_titles(text: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for item in _bullet_lines(text):
        title, _, desc = item.partition(":")
        pairs.append((_clean(title), _clean(desc)))
    return pairs


def _phase_mentions(text: str) -> list[tuple[str, str]]:
    return [(_clean(title), "") for title in _PHASE_MENTION_RE.findall(text)]


_MILESTONE_STRATEGIES: tuple[Strategy[tuple[str, str]], ...] = (
    Strategy("milestone_labels", _milestone_labels),
    Strategy("numbered_list", _numbered_titles),
    Strategy("bullet_list", _bullet_titles),
    Strategy("phase_mentions", _phase_mentions),
)


def _milestone_fallback(text: str) -> list[tuple[str, str]]:
    lines = [
        _strip_marker(line)
        for line in text.splitlines()
        if len(line.strip()) > _SUBSTANTIAL_LINE_LENGTH
    ]
    lines = [line for line in lines if line]
    if lines:
        return [(line, "") for line in lines[:MILESTONE_COUNT]]
    stripped = text.strip()
    if stripped:
        return [(stripped[:_MAX_FALLBACK_TITLE], "")]
    return []


def _milestone_from_item(item: Any, index: int) -> tuple[str, str, str]:
    """Return ``(id, title, description)`` for a structured milestone item."""
    item = _as_plain(item)
    if isinstance(item, Mapping):
        return (
            _first_key(item, "id") or f"m{index + 1}",
            _first_key(item, "title", "name", "text") or f"Milestone {index + 1}",
            _first_key(item, "description", "summary"),
        )
    return (f"m{index + 1}", str(item).strip() or f"Milestone {index + 1}", "")


def _finalize_milestones(entries: list[tuple[str, str, str]]) -> list[Milestone]:
    """Pad or truncate to exactly three and tag phases by position."""
    entries = entries[:MILESTONE_COUNT]
    while len(entries) < MILESTONE_COUNT:
        position = len(entries) + 1
        entries.append(
            (f"m{position}", f"Phase {position} Milestone", PADDED_MILESTONE_DESCRIPTION)
        )
    return [
        Milestone(id=mid, title=title, description=desc, phase=f"phase{idx + 1}")
        for idx, (mid, title, desc) in enumerate(entries)
    ]


def extract_milestones(value: Any) -> list[Milestone]:
    """Extract exactly three milestones from text or structured input.

    Text strategies, in priority order (first yielding two or more items
    wins): ``Milestone N:`` labels, ``N. title - description`` numbered
    lists, bullets, ``Phase N:`` mentions.  Otherwise the first substantial
    lines become bare titles.  Results are padded with ``Phase K Milestone``
    placeholders or truncated so exactly three remain, and each is tagged
    ``phase1``..``phase3`` by position.

    Args:
        value: Freeform text, a list of strings/dicts/models, or a single
            dict/model.

    Returns:
        Three :class:`Milestone` instances.
    """
    value = _as_plain(value)
    if isinstance(value, (list, tuple)):
        entries = [_milestone_from_item(item, idx) for idx, item in enumerate(value)]
        return _finalize_milestones(entries)
    if isinstance(value, Mapping):
        return _finalize_milestones([_milestone_from_item(value, 0)])

    text = extract_text(value)
    result = run_cascade(text, _MILESTONE_STRATEGIES, min_items=2)
    pairs = result.items if result.matched else _milestone_fallback(text)
    if not result.matched:
        logger.debug("No milestone strategy matched; using %d fallback lines", len(pairs))
    entries = [(f"m{idx + 1}", title, desc) for idx, (title, desc) in enumerate(pairs)]
    return _finalize_milestones(entries)


# ---------------------------------------------------------------------------
# Rubric criteria
# ---------------------------------------------------------------------------


def _numbered_criteria(text: str) -> list[tuple[str, str]]:
    return [
        (_clean(name), _clean(desc))
        for name, desc in _NUMBERED_CRITERION_RE.findall(text)
        if _clean(name)
    ]


def _bullet_criteria(text: str) -> list[tuple[str, str]]:
    return [
        (_clean(name), _clean(desc))
        for name, desc in _BULLET_CRITERION_RE.findall(text)
        if _clean(name)
    ]


def _paragraph_criteria(text: str) -> list[tuple[str, str]]:
    blocks = [
        b.strip()
        for b in _BLOCK_SPLIT_RE.split(text)
        if len(b.strip()) > _SUBSTANTIAL_BLOCK_LENGTH
    ]
    if len(blocks) < 2:
        return []
    pairs: list[tuple[str, str]] = []
    for block in blocks:
        lines = block.splitlines()
        name = re.sub(r"[*_#]", "", lines[0]).strip()
        desc = " ".join(line.strip() for line in lines[1:]).strip()
        pairs.append((name, desc or DEFAULT_CRITERION_DESCRIPTION))
    return pairs


_RUBRIC_STRATEGIES: tuple[Strategy[tuple[str, str]], ...] = (
    Strategy("numbered_criteria", _numbered_criteria),
    Strategy("bullet_criteria", _bullet_criteria),
    Strategy("paragraph_blocks", _paragraph_criteria),
)


def _fallback_criteria() -> list[RubricCriterion]:
    return [
        RubricCriterion(criterion=name, description=desc, weight=weight)
        for name, desc, weight in FALLBACK_RUBRIC
    ]


def _weighted(pairs: list[tuple[str, str]]) -> list[RubricCriterion]:
    weights = assign_weights(len(pairs))
    return [
        RubricCriterion(
            criterion=name,
            description=desc or DEFAULT_CRITERION_DESCRIPTION,
            weight=weight,
        )
        for (name, desc), weight in zip(pairs, weights)
    ]


def _criteria_from_items(items: list[Any]) -> list[RubricCriterion]:
    pairs: list[tuple[str, str]] = []
    given: list[Any] = []
    for idx, item in enumerate(items):
        item = _as_plain(item)
        if isinstance(item, Mapping):
            pairs.append((
                _first_key(item, "criterion", "name", "title") or f"Criterion {idx + 1}",
                _first_key(item, "description"),
            ))
            given.append(item.get("weight"))
        else:
            pairs.append((str(item).strip() or f"Criterion {idx + 1}", ""))
            given.append(None)

    explicit = all(
        isinstance(w, int) and not isinstance(w, bool) and 0 <= w <= RUBRIC_TOTAL_WEIGHT
        for w in given
    )
    if explicit and sum(given) == RUBRIC_TOTAL_WEIGHT:
        return [
            RubricCriterion(
                criterion=name,
                description=desc or DEFAULT_CRITERION_DESCRIPTION,
                weight=weight,
            )
            for (name, desc), weight in zip(pairs, given)
        ]
    return _weighted(pairs)


def extract_rubric_criteria(value: Any) -> list[RubricCriterion]:
    """Extract weighted rubric criteria whose weights total exactly 100.

    Text strategies: ``N. Criterion: Description``, then bulleted
    ``• Criterion: Description``, then paragraph blocks separated by blank
    lines (only when at least two substantial blocks exist).  Weights are
    ``100 // n`` each with the remainder added to the last criterion.  When
    nothing matches, a fixed three-criterion rubric (40/30/30) is returned.

    Structured lists keep their own weights only when every item carries one
    and they already total 100; otherwise weights are reassigned.
    """
    value = _as_plain(value)
    if isinstance(value, Mapping) and "criteria" in value:
        value = value["criteria"]
    if isinstance(value, (list, tuple)):
        return _criteria_from_items(list(value)) if value else _fallback_criteria()
    if isinstance(value, Mapping):
        return _criteria_from_items([value])

    text = extract_text(value)
    result = run_cascade(text, _RUBRIC_STRATEGIES, min_items=1)
    if not result.matched:
        logger.debug("No rubric strategy matched; using fallback criteria")
        return _fallback_criteria()
    return _weighted(result.items)


def extract_rubric(value: Any) -> Rubric:
    """Wrap :func:`extract_rubric_criteria` in a :class:`Rubric`."""
    return Rubric(criteria=extract_rubric_criteria(value))


# ---------------------------------------------------------------------------
# Impact
# ---------------------------------------------------------------------------


def _search(patterns: tuple[re.Pattern[str], ...], text: str) -> str:
    for pattern in patterns:
        match = pattern.search(text)
        if match and _clean(match.group(1)):
            return _clean(match.group(1))
    return ""


def extract_impact(value: Any) -> Impact:
    """Extract an impact plan (audience, method, timeline).

    Objects with ``audience``/``method`` keys pass through with defaults
    filled for missing fields.  Free text is scanned for ``audience:``,
    ``method:`` and ``share:`` (method fallback) phrases, then softer
    phrasing such as "present to" or "through".  Audience and method are
    never left empty.
    """
    value = _as_plain(value)
    if isinstance(value, Mapping):
        return Impact(
            audience=_first_key(value, "audience") or DEFAULT_IMPACT_AUDIENCE,
            method=_first_key(value, "method") or DEFAULT_IMPACT_METHOD,
            timeline=_first_key(value, "timeline") or DEFAULT_IMPACT_TIMELINE,
        )

    text = extract_text(value)
    audience = _search((_AUDIENCE_RE, _SOFT_AUDIENCE_RE), text)
    method = _search((_METHOD_RE, _SHARE_RE, _SOFT_METHOD_RE), text)
    timeline = _search((_TIMELINE_RE, _SOFT_TIMELINE_RE), text)
    return Impact(
        audience=audience or DEFAULT_IMPACT_AUDIENCE,
        method=method or DEFAULT_IMPACT_METHOD,
        timeline=timeline or DEFAULT_IMPACT_TIMELINE,
    )


# ---------------------------------------------------------------------------
# Generic lists (activities, resources, suggestions)
# ---------------------------------------------------------------------------


def _numbered_items(text: str) -> list[str]:
    return [_clean(m) for m in _NUMBERED_ITEM_RE.findall(text) if _clean(m)]


def _plain_lines(text: str) -> list[str]:
    return [
        _clean(line)
        for line in text.splitlines()
        if line.strip() and not _is_header(line.strip()) and _clean(line)
    ]


_LIST_STRATEGIES: tuple[Strategy[str], ...] = (
    Strategy("numbered_list", _numbered_items),
    Strategy("bullet_list", _bullet_lines),
    Strategy("plain_lines", _plain_lines),
)


def _list_item_text(item: Any) -> str:
    item = _as_plain(item)
    if isinstance(item, Mapping):
        title = _first_key(item, "title", "name", "text")
        desc = _first_key(item, "description")
        if title and desc:
            return f"{title}: {desc}"
        return title or desc
    return str(item).strip()


def extract_list_items(value: Any, kind: str = "items") -> list[str]:
    """Extract a flat list of strings.

    Strategies: numbered list, bullets, then non-empty lines that do not look
    like headers ("here are ..." or a trailing colon), then the whole string
    as one item.  Blank input yields an empty list.

    Args:
        value: Text or a list of strings/dicts.
        kind: Label used in debug logging only.
    """
    value = _as_plain(value)
    if isinstance(value, (list, tuple)):
        return [text for text in (_list_item_text(i) for i in value) if text]

    text = extract_text(value)
    if not text:
        return []
    result = run_cascade(text, _LIST_STRATEGIES, min_items=1)
    if result.matched:
        logger.debug("Extracted %d %s via %s", len(result.items), kind, result.strategy)
        return result.items
    return [text]


def extract_suggestions(value: Any) -> list[str]:
    """Suggestion chips from a generative response; see :func:`extract_list_items`."""
    return extract_list_items(value, kind="suggestions")


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


def _phase_from_item(item: Any, index: int) -> Phase:
    item = _as_plain(item)
    if isinstance(item, Mapping):
        return Phase(
            title=_first_key(item, "title", "name") or f"Phase {index + 1}",
            description=_first_key(item, "description", "summary"),
        )
    return Phase(title=str(item).strip() or f"Phase {index + 1}")


def extract_phases(value: Any) -> list[Phase]:
    """Extract journey phases with optional descriptions.

    Each ``<title>: <description>`` line becomes a phase; when no line has
    that shape the generic list extractor supplies titles with empty
    descriptions.
    """
    value = _as_plain(value)
    if isinstance(value, (list, tuple)):
        return [_phase_from_item(item, idx) for idx, item in enumerate(value)]
    if isinstance(value, Mapping):
        return [_phase_from_item(value, 0)]

    text = extract_text(value)
    phases: list[Phase] = []
    for line in text.splitlines():
        match = _TITLE_DESCRIPTION_RE.match(_strip_marker(line))
        if match and _clean(match.group(1)):
            phases.append(Phase(title=_clean(match.group(1)), description=_clean(match.group(2))))
    if phases:
        return phases
    return [Phase(title=item) for item in extract_list_items(text, kind="phases")]


def parse_numbered_selection(text: str, label: str) -> list[tuple[str, str]]:
    """Parse the ``<Label> N: <title> - <description>`` multi-select format.

    This is the shape produced by phase and activity pickers.  Lines that do
    not follow the format are skipped.
    """
    pattern = re.compile(
        rf"^[ \t]*{re.escape(label)}[ \t]*\d+[ \t]*:[ \t]*(.+?)[ \t]+[-–—][ \t]+(.+?)[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
    )
    return [(_clean(title), _clean(desc)) for title, desc in pattern.findall(text)]


def is_numbered_selection(value: Any, label: str) -> bool:
    """True when *value* is a string containing ``<Label> 1:``."""
    return isinstance(value, str) and f"{label} 1:".lower() in value.lower()
