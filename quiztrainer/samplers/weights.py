from __future__ import annotations

"""Category weight table and the weighted category lottery.

Higher weight = more questions drawn from that category. Categories missing
from the table get the default weight (1).
"""

import logging
import random
from bisect import bisect_right
from typing import Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1


class CategoryWeights:
    """Static mapping category -> positive integer sampling weight."""

    def __init__(self, weights: Optional[Mapping[str, int]] = None, default: int = DEFAULT_WEIGHT) -> None:
        self.default = default if isinstance(default, int) and default > 0 else DEFAULT_WEIGHT
        self._weights: Dict[str, int] = {}
        for cat, w in (weights or {}).items():
            try:
                value = int(w)
            except (TypeError, ValueError):
                value = 0
            if value <= 0:
                logger.warning("Ignoring non-positive weight %r for category %r", w, cat)
                continue
            self._weights[str(cat)] = value

    def weight(self, category: str) -> int:
        return self._weights.get(category, self.default)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._weights)

    def lottery(self, categories: Iterable[str]) -> "CategoryLottery":
        cats = list(dict.fromkeys(categories))
        return CategoryLottery(cats, [self.weight(c) for c in cats])


class CategoryLottery:
    """Weighted draw over categories using a cumulative-weight table.

    Equivalent to a pool holding `weight` tickets per category; a draw picks
    a uniform ticket in [0, total) and locates its category by binary search.
    """

    def __init__(self, categories: List[str], weights: List[int]) -> None:
        if len(categories) != len(weights):
            raise ValueError("categories and weights must have equal length")
        self._categories: List[str] = []
        self._weights: List[int] = []
        for c, w in zip(categories, weights):
            if w > 0:
                self._categories.append(c)
                self._weights.append(int(w))
        self._cumulative: List[int] = []
        self._rebuild()

    def _rebuild(self) -> None:
        total = 0
        self._cumulative = []
        for w in self._weights:
            total += w
            self._cumulative.append(total)

    @property
    def total(self) -> int:
        return self._cumulative[-1] if self._cumulative else 0

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    def __len__(self) -> int:
        return len(self._categories)

    def draw(self, rng: random.Random) -> str:
        if not self._categories:
            raise IndexError("draw from an empty lottery")
        ticket = rng.randrange(self.total)
        return self._categories[bisect_right(self._cumulative, ticket)]

    def discard(self, category: str) -> None:
        """Remove an exhausted category so later draws never land on it."""
        try:
            i = self._categories.index(category)
        except ValueError:
            return
        del self._categories[i]
        del self._weights[i]
        self._rebuild()
