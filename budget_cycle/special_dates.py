"""Category budget adjustments from special dates.

Each special date that occurs within a calendar month adds its
``amount_increase`` to the budget of its affected category for that month.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .models import MonthLike, SpecialDate, parse_month

logger = logging.getLogger(__name__)


def occurrence_in_month(special: SpecialDate, month: pd.Period) -> Optional[date]:
    """Date on which ``special`` falls inside ``month``, or None."""
    month_start = month.start_time.date()
    month_end = month.end_time.date()
    occurrence = special.next_occurrence(month_start)
    if occurrence is None or occurrence > month_end:
        return None
    return occurrence


class SpecialDateAdjuster:
    """Computes per-category additive budget deltas for a target month."""

    def __init__(self, special_dates: Iterable[SpecialDate]) -> None:
        self.special_dates = list(special_dates)

    def _matches(self, year_month: MonthLike) -> List[Tuple[SpecialDate, date]]:
        month = parse_month(year_month)
        matches: List[Tuple[SpecialDate, date]] = []
        for special in self.special_dates:
            if not special.affected_category:
                logger.debug("Special date '%s' has no affected category, skipping", special.name)
                continue
            occurrence = occurrence_in_month(special, month)
            if occurrence is not None:
                matches.append((special, occurrence))
        return matches

    def special_dates_for_month(self, year_month: MonthLike) -> List[SpecialDate]:
        return [special for special, _ in self._matches(year_month)]

    def adjustments_for_month(self, year_month: MonthLike) -> Dict[str, float]:
        """Map of category to total additive delta; empty when nothing matches.

        Example:
            >>> adjuster.adjustments_for_month('2024-12')
            {'Gifts': 500.0, 'Travel': 800.0}
        """
        adjustments: Dict[str, float] = {}
        for special, occurrence in self._matches(year_month):
            category = special.affected_category
            adjustments[category] = adjustments.get(category, 0.0) + special.amount_increase
            logger.info(
                "Special date '%s' on %s adjusts category '%s' by %+.2f",
                special.name, occurrence, category, special.amount_increase,
            )
        return adjustments

    def total_for_month(self, year_month: MonthLike) -> float:
        return float(sum(self.adjustments_for_month(year_month).values()))
