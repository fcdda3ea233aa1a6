# The MIT License (MIT)
# Copyright © 2025 Entrius

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from prtriage.constants import PR_KEY_SEPARATOR
from prtriage.utils.utils import parse_github_timestamp

# PR identity key ("owner/repo#number") -> logins involved in that PR
InvolvementIndex = Dict[str, Set[str]]

# PR identity key -> files changed by that PR
PRFilesMap = Dict[str, List["FileChange"]]


def pr_key(repo_id: str, number: int) -> str:
    """Composite identity key shared by PRs, file lists and the involvement index."""
    return f"{repo_id}{PR_KEY_SEPARATOR}{number}"


class QueryLabel(Enum):
    """Which of the two configured searches produced a result"""

    BUGFIX = "bugfix"
    TOTAL = "total"


class WarningKind(Enum):
    TRUNCATED = "truncated"
    EMPTY = "empty"


@dataclass(frozen=True)
class Repository:
    """Repository information"""

    owner: str
    repo: str

    @property
    def id(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class PullRequest:
    """A pull request as returned by the issue search endpoint, tagged with its repository."""

    number: int
    title: str
    url: str
    created_at: datetime
    closed_at: Optional[datetime]  # None while open
    author_login: str
    repo_id: str
    owner: str
    repo: str

    @property
    def key(self) -> str:
        return pr_key(self.repo_id, self.number)

    def is_open_at(self, instant: datetime) -> bool:
        """Created before ``instant`` and not closed by it."""
        return self.created_at < instant and (self.closed_at is None or self.closed_at > instant)

    @classmethod
    def from_search_item(cls, item: Dict[str, Any], repository: Repository) -> 'PullRequest':
        """Create PullRequest from a /search/issues item. Raises ValueError on malformed items."""
        if not isinstance(item, dict):
            raise ValueError(f"search item is not an object: {item!r}")

        number = item.get('number')
        if not isinstance(number, int) or isinstance(number, bool):
            raise ValueError(f"search item has no valid number: {number!r}")

        created_raw = item.get('created_at')
        if not isinstance(created_raw, str):
            raise ValueError(f"PR #{number} has no created_at timestamp")

        closed_raw = item.get('closed_at')
        user = item.get('user') or {}

        return cls(
            number=number,
            title=item.get('title') or '',
            url=item.get('html_url') or '',
            created_at=parse_github_timestamp(created_raw),
            closed_at=parse_github_timestamp(closed_raw) if closed_raw else None,
            author_login=user.get('login') or '',
            repo_id=repository.id,
            owner=repository.owner,
            repo=repository.repo,
        )


@dataclass(frozen=True)
class FileChange:
    """Represents a single file change in a PR"""

    pr_number: int
    repo_id: str
    filename: str
    status: str  # "added", "modified", "removed", etc.
    additions: int
    deletions: int
    changes: int

    @property
    def short_name(self) -> str:
        """Return only the base filename (strip directories)."""
        return self.filename.split("/")[-1]

    @classmethod
    def from_github_response(cls, pr_number: int, repo_id: str, file_diff: Dict[str, Any]) -> 'FileChange':
        """Create FileChange from GitHub API response. Raises ValueError on malformed entries."""
        if not isinstance(file_diff, dict):
            raise ValueError(f"file entry is not an object: {file_diff!r}")

        filename = file_diff.get('filename')
        if not isinstance(filename, str) or not filename:
            raise ValueError(f"file entry has no filename: {file_diff!r}")

        counts = {}
        for name in ('additions', 'deletions', 'changes'):
            value = file_diff.get(name, 0)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{filename}: '{name}' is not an integer ({value!r})")
            counts[name] = value

        return cls(
            pr_number=pr_number,
            repo_id=repo_id,
            filename=filename,
            status=str(file_diff.get('status') or 'modified'),
            **counts,
        )


@dataclass(frozen=True)
class FetchWarning:
    """Side-channel notice about a search that was abandoned or matched nothing."""

    kind: WarningKind
    repo_id: str
    query_label: QueryLabel
    total_count: int = 0
    author: Optional[str] = None  # set for per-author "involves:" searches

    @property
    def message(self) -> str:
        if self.kind == WarningKind.TRUNCATED:
            return f'Repository "{self.repo_id}" has {self.total_count} PRs (exceeds 1000 limit)'
        return f'Repository "{self.repo_id}" has no PRs matching query'

    @property
    def description(self) -> str:
        if self.kind == WarningKind.TRUNCATED:
            return 'Please refine your query with date filters to get complete results.'
        return 'Try adjusting your query to match more results.'

    def __str__(self) -> str:
        scope = f" (involves:{self.author})" if self.author else ""
        return f"{self.message} for {self.query_label.value} query{scope}. {self.description}"


@dataclass
class SearchPage:
    """One page of /search/issues results."""

    items: List[Dict[str, Any]]
    total_count: int
    incomplete_results: bool = False
    has_more: bool = False


@dataclass
class LoadingProgress:
    total_repos: int
    loaded_repos: int = 0
    total_prs: int = 0  # running count of bugfix PRs


@dataclass
class FetchResult:
    """Output of one orchestrated fetch across every configured repository."""

    bugfix_prs: List[PullRequest] = field(default_factory=list)
    total_prs: List[PullRequest] = field(default_factory=list)
    involvement: InvolvementIndex = field(default_factory=dict)
    warnings: List[FetchWarning] = field(default_factory=list)
    failed_repos: List[str] = field(default_factory=list)


# =============================================================================
# Aggregate outputs
# =============================================================================


class HotspotType(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class HotspotNode:
    name: str
    count: int
    type: HotspotType


@dataclass(frozen=True)
class HotspotView:
    """Top entries at one navigation level, plus the root-level maximum used as a fixed axis scale."""

    nodes: List[HotspotNode]
    max_count_at_root: int
    path: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RepoThroughput:
    percentage: float
    count: int


@dataclass(frozen=True)
class MonthlyThroughputPoint:
    month: str  # "YYYY-MM"
    month_total: int
    repos: Dict[str, RepoThroughput]  # only repositories with bugfix PRs that month


@dataclass(frozen=True)
class RepoBreakdown:
    repo_id: str
    bugfix_count: int
    total_count: int
    percentage: float


@dataclass(frozen=True)
class DailyInvolvementPoint:
    day: date
    open_count: int  # all total-set PRs open at the end of the day
    author_counts: Dict[str, int]
    balance_score: float
    entropy_score: float
