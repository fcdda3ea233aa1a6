# The MIT License (MIT)
# Copyright © 2025 Entrius

from collections import Counter, defaultdict
from datetime import datetime
from typing import Dict, List

from prtriage.classes import MonthlyThroughputPoint, PullRequest, RepoBreakdown, Repository, RepoThroughput
from prtriage.constants import MONTH_KEY_FORMAT


def month_key(timestamp: datetime) -> str:
    """Local-time "YYYY-MM" bucket of a timestamp."""
    return timestamp.astimezone().strftime(MONTH_KEY_FORMAT)


def calculate_monthly_throughput(
    bugfix_prs: List[PullRequest], total_prs: List[PullRequest]
) -> List[MonthlyThroughputPoint]:
    """
    Bugfix share of all PRs per calendar month, per repository.

    The denominator is every total-set PR created that month across all repositories.
    A repository with no bugfix PRs in a month is left out of that month's point
    rather than reported as 0%.

    Returns:
        List[MonthlyThroughputPoint]: one point per month with at least one total-set PR, ascending
    """
    bugfix_by_month: Dict[str, Counter] = defaultdict(Counter)
    for pr in bugfix_prs:
        bugfix_by_month[month_key(pr.created_at)][pr.repo_id] += 1

    totals_by_month = Counter(month_key(pr.created_at) for pr in total_prs)

    points = []
    for month in sorted(totals_by_month):
        month_total = totals_by_month[month]
        repos = {
            repo_id: RepoThroughput(percentage=count / month_total * 100, count=count)
            for repo_id, count in bugfix_by_month.get(month, {}).items()
        }
        points.append(MonthlyThroughputPoint(month=month, month_total=month_total, repos=repos))

    return points


def repositories_with_data(
    repositories: List[Repository], bugfix_prs: List[PullRequest], total_prs: List[PullRequest]
) -> List[Repository]:
    """Configured repositories that appear in either PR set, in configured order."""
    repo_ids = {pr.repo_id for pr in bugfix_prs} | {pr.repo_id for pr in total_prs}
    return [repository for repository in repositories if repository.id in repo_ids]


def calculate_repo_breakdown(
    repositories: List[Repository], bugfix_prs: List[PullRequest], total_prs: List[PullRequest]
) -> List[RepoBreakdown]:
    """Bugfix count, total count and bugfix percentage per repository with data."""
    bugfix_counts = Counter(pr.repo_id for pr in bugfix_prs)
    total_counts = Counter(pr.repo_id for pr in total_prs)

    breakdown = []
    for repository in repositories_with_data(repositories, bugfix_prs, total_prs):
        bugfix_count = bugfix_counts[repository.id]
        total_count = total_counts[repository.id]
        breakdown.append(
            RepoBreakdown(
                repo_id=repository.id,
                bugfix_count=bugfix_count,
                total_count=total_count,
                percentage=bugfix_count / total_count * 100 if total_count > 0 else 0.0,
            )
        )
    return breakdown
