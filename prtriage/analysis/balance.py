# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Daily open-PR involvement per author and two workload balance scores.

Both scores range over [0, 1], higher meaning load is spread more evenly:
- balance score: 1 - Gini coefficient of per-author counts
- entropy score: Shannon entropy of the count distribution over its maximum
"""

from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence

import numpy as np

from prtriage.classes import DailyInvolvementPoint, InvolvementIndex, PullRequest


def calculate_gini_coefficient(values: Sequence[float]) -> float:
    """
    Gini coefficient of a distribution (0 = perfect equality, 1 = perfect inequality).

    Zeros are kept since they represent inequality. All-zero input is perfect equality.
    """
    if len(values) == 0:
        return 0.0

    ordered = np.sort(np.asarray(values, dtype=float))
    total = ordered.sum()
    if total == 0:
        return 0.0

    n = len(ordered)
    ranks = np.arange(1, n + 1)
    return float(np.sum((2 * ranks - n - 1) * ordered) / (n * total))


def calculate_team_balance_score(values: Sequence[float]) -> float:
    """Inverted Gini: 0 = worst, 1 = best."""
    return 1.0 - calculate_gini_coefficient(values)


def calculate_normalized_entropy(values: Sequence[float]) -> float:
    """Shannon entropy of ``values`` normalized by log2(len(values)); 1 when undefined."""
    counts = np.asarray(values, dtype=float)
    total = counts.sum()
    if total == 0:
        return 1.0

    probabilities = counts[counts > 0] / total
    entropy = -np.sum(probabilities * np.log2(probabilities))

    max_entropy = np.log2(len(counts))
    if max_entropy == 0:
        return 1.0
    return float(entropy / max_entropy)


def end_of_day(day: date) -> datetime:
    """Last instant of ``day`` in local time."""
    return datetime.combine(day, time.max).astimezone()


def _first_day(prs: List[PullRequest]) -> date:
    timestamps = [pr.created_at for pr in prs] + [pr.closed_at for pr in prs if pr.closed_at is not None]
    return min(timestamps).astimezone().date()


def build_involvement_series(
    total_prs: List[PullRequest],
    involvement: InvolvementIndex,
    authors: Optional[List[str]] = None,
    today: Optional[date] = None,
) -> List[DailyInvolvementPoint]:
    """
    One point per local calendar day, from the earliest PR creation/closure through today.

    Each author's count is the number of total-set PRs open at the end of the day that the
    involvement index attributes to them. Authors at zero that day are reported but left out
    of the balance scores, so people joining or leaving do not drag the score down.

    Args:
        total_prs (List[PullRequest]): deduplicated denominator PRs
        involvement (InvolvementIndex): PR key -> involved logins
        authors (Optional[List[str]]): configured authors; without them only ``open_count`` is meaningful
        today (Optional[date]): last day of the series, defaults to the current local date

    Returns:
        List[DailyInvolvementPoint]: ascending by day
    """
    if not total_prs:
        return []

    authors = list(authors or [])
    today = today or datetime.now().astimezone().date()

    points = []
    day = _first_day(total_prs)
    while day <= today:
        day_end = end_of_day(day)
        open_prs = [pr for pr in total_prs if pr.is_open_at(day_end)]

        author_counts: Dict[str, int] = {}
        for author in authors:
            author_counts[author] = sum(1 for pr in open_prs if author in involvement.get(pr.key, ()))

        active_counts = [count for count in author_counts.values() if count > 0]
        points.append(
            DailyInvolvementPoint(
                day=day,
                open_count=len(open_prs),
                author_counts=author_counts,
                balance_score=calculate_team_balance_score(active_counts),
                entropy_score=calculate_normalized_entropy(active_counts),
            )
        )
        day += timedelta(days=1)

    return points


def anonymize_authors(authors: List[str]) -> Dict[str, str]:
    """Stable ``dev1..devN`` placeholders in configured order."""
    return {author: f"dev{index}" for index, author in enumerate(authors, start=1)}
