"""
Star-rating statistics over a set of reviews.
"""

from datetime import datetime
from typing import Iterable, Optional, Tuple

from ..infrastructure.persistence.timestamps import parse_timestamp, utcnow


def _previous_month(year: int, month: int) -> Tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def rating_stats(ratings: Iterable[Tuple[int, Optional[str]]],
                 now: Optional[datetime] = None) -> dict:
    """
    Summarize (star_rating, gmb_create_time) pairs.

    Months are calendar months in UTC; reviews without a create time count
    toward the totals only.
    """
    now = now or utcnow()
    this_month = (now.year, now.month)
    last_month = _previous_month(now.year, now.month)

    total = rating_sum = this_month_count = last_month_count = 0
    distribution = {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    for rating, created in ratings:
        total += 1
        rating_sum += rating or 0
        if rating in distribution:
            distribution[rating] += 1

        created_at = parse_timestamp(created)
        if created_at is None:
            continue
        month = (created_at.year, created_at.month)
        if month == this_month:
            this_month_count += 1
        elif month == last_month:
            last_month_count += 1

    return {
        "total": total,
        "average_rating": round(rating_sum / total, 1) if total else 0,
        "this_month": this_month_count,
        "last_month": last_month_count,
        "rating_distribution": distribution,
    }
