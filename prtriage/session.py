# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Fetch cycles and the most recent successfully loaded data.

Each ``refresh`` takes a new generation number. Only the latest generation may
replace the current snapshot, so a slow earlier cycle that finishes late is
discarded. A failed cycle leaves the previous snapshot in place.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Sequence

import bittensor as bt

from prtriage.analysis.balance import build_involvement_series
from prtriage.analysis.hotspots import aggregate_hotspots, prs_touching_file
from prtriage.analysis.throughput import calculate_monthly_throughput, calculate_repo_breakdown
from prtriage.classes import (
    DailyInvolvementPoint,
    FetchWarning,
    HotspotView,
    InvolvementIndex,
    LoadingProgress,
    MonthlyThroughputPoint,
    PRFilesMap,
    PullRequest,
    RepoBreakdown,
)
from prtriage.client import SearchClient
from prtriage.errors import TriageError
from prtriage.fetch.file_fetcher import fetch_files_for_prs
from prtriage.fetch.orchestrator import fetch_pull_requests
from prtriage.utils.config import TriageConfig, validate_config
from prtriage.utils.logging import log_fetch_summary, log_hotspot_view, log_throughput


@dataclass(frozen=True)
class TriageSnapshot:
    """Everything one completed fetch cycle produced."""

    generation: int
    fetched_at: datetime
    bugfix_prs: List[PullRequest] = field(default_factory=list)
    total_prs: List[PullRequest] = field(default_factory=list)
    involvement: InvolvementIndex = field(default_factory=dict)
    files_map: PRFilesMap = field(default_factory=dict)
    warnings: List[FetchWarning] = field(default_factory=list)
    failed_repos: List[str] = field(default_factory=list)


class TriageSession:
    def __init__(self, config: TriageConfig, client: SearchClient):
        self.config = config
        self.client = client
        self._generation = 0
        self._snapshot: Optional[TriageSnapshot] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def snapshot(self) -> Optional[TriageSnapshot]:
        return self._snapshot

    async def refresh(
        self,
        on_warning: Optional[Callable[[FetchWarning], None]] = None,
        on_progress: Optional[Callable[[LoadingProgress], None]] = None,
    ) -> Optional[TriageSnapshot]:
        """
        Run one fetch cycle and make it current.

        Returns:
            Optional[TriageSnapshot]: the new snapshot, or None if a newer cycle started meanwhile.
                A superseded cycle that fails is logged and also returns None.

        Raises:
            TriageError: configuration is unusable or the cycle failed outright.
                The previous snapshot is kept.
        """
        validate_config(self.config)

        self._generation += 1
        generation = self._generation
        bt.logging.info(
            f"Starting fetch cycle #{generation} for {len(self.config.repositories)} repositories, "
            f"{len(self.config.authors)} authors"
        )

        try:
            result = await fetch_pull_requests(
                self.client,
                self.config.repositories,
                self.config.bugfix_query,
                self.config.total_query,
                self.config.authors,
                on_warning=on_warning,
                on_progress=on_progress,
            )
            files_map = {}
            if result.bugfix_prs:
                files_map = await fetch_files_for_prs(
                    self.client, result.bugfix_prs, max_concurrency=self.config.file_fetch_concurrency
                )
        except Exception as e:
            if generation != self._generation:
                bt.logging.warning(
                    f"Dropping failure of stale fetch cycle #{generation} (current: #{self._generation}): {e}"
                )
                return None
            bt.logging.error(f"Fetch cycle #{generation} failed: {e}")
            if isinstance(e, TriageError):
                raise
            raise TriageError(f"Failed to load GitHub PRs: {e}") from e

        if generation != self._generation:
            bt.logging.debug(f"Discarding results of stale fetch cycle #{generation} (current: #{self._generation})")
            return None

        self._snapshot = TriageSnapshot(
            generation=generation,
            fetched_at=datetime.now(timezone.utc),
            bugfix_prs=result.bugfix_prs,
            total_prs=result.total_prs,
            involvement=result.involvement,
            files_map=files_map,
            warnings=result.warnings,
            failed_repos=result.failed_repos,
        )
        log_fetch_summary(self._snapshot)
        return self._snapshot

    def _current(self) -> TriageSnapshot:
        if self._snapshot is None:
            return TriageSnapshot(generation=0, fetched_at=datetime.now(timezone.utc))
        return self._snapshot

    def hotspots(self, repo_id: Optional[str] = None, path: Optional[Sequence[str]] = None) -> HotspotView:
        """Hotspots in ``repo_id`` (default: first configured repository) below ``path``."""
        if repo_id is None and self.config.repositories:
            repo_id = self.config.repositories[0].id
        snapshot = self._current()
        view = aggregate_hotspots(snapshot.files_map, snapshot.bugfix_prs, repo_id, path)
        if repo_id:
            log_hotspot_view(view, repo_id)
        return view

    def prs_touching_file(self, repo_id: str, path: Sequence[str], file_name: str) -> List[PullRequest]:
        snapshot = self._current()
        return prs_touching_file(snapshot.files_map, snapshot.bugfix_prs, repo_id, path, file_name)

    def throughput(self) -> List[MonthlyThroughputPoint]:
        snapshot = self._current()
        points = calculate_monthly_throughput(snapshot.bugfix_prs, snapshot.total_prs)
        log_throughput(points)
        return points

    def breakdown(self) -> List[RepoBreakdown]:
        snapshot = self._current()
        return calculate_repo_breakdown(self.config.repositories, snapshot.bugfix_prs, snapshot.total_prs)

    def involvement(self, today: Optional[date] = None) -> List[DailyInvolvementPoint]:
        snapshot = self._current()
        return build_involvement_series(snapshot.total_prs, snapshot.involvement, self.config.authors, today=today)
