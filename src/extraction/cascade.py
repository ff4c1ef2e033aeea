"""Ordered, first-match-wins strategy cascade.

Every strategy exposes the same ``attempt(text)`` call and returns either a
list of extracted items or ``None`` when it does not apply.  The cascade runs
strategies in a fixed order and stops at the first one whose result satisfies
the cascade's minimum item count, so strategies can be added or reordered
without touching callers.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Strategy(Generic[T]):
    """A named parsing strategy.

    Attributes:
        name: Identifier reported in logs and in :class:`CascadeResult`.
        parse: Callable returning the items found in the text (possibly
            empty).
    """

    name: str
    parse: Callable[[str], list[T]]

    def attempt(self, text: str) -> list[T] | None:
        """Run the strategy, returning ``None`` when nothing matched."""
        items = self.parse(text)
        return items or None


@dataclass(frozen=True)
class CascadeResult(Generic[T]):
    """Items produced by a cascade and the strategy that produced them."""

    items: list[T]
    strategy: str | None

    @property
    def matched(self) -> bool:
        return self.strategy is not None


def run_cascade(
    text: str,
    strategies: Sequence[Strategy[Any]],
    min_items: int = 1,
) -> CascadeResult[Any]:
    """Apply *strategies* in order; the first with ``>= min_items`` wins.

    Args:
        text: Input text.
        strategies: Ordered strategies.
        min_items: Minimum number of items a strategy must yield to win.

    Returns:
        A :class:`CascadeResult`.  When no strategy qualifies, ``items`` is
        empty and ``strategy`` is ``None``.
    """
    for strategy in strategies:
        items = strategy.attempt(text)
        if items is not None and len(items) >= min_items:
            logger.debug("Strategy %s matched %d items", strategy.name, len(items))
            return CascadeResult(items=items, strategy=strategy.name)
    return CascadeResult(items=[], strategy=None)
