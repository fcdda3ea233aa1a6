# The MIT License (MIT)
# Copyright © 2025 Entrius

import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import bittensor as bt

from prtriage.classes import (
    FetchResult,
    FetchWarning,
    InvolvementIndex,
    LoadingProgress,
    PullRequest,
    QueryLabel,
    Repository,
)
from prtriage.client import SearchClient
from prtriage.errors import ConfigurationError
from prtriage.fetch.search_fetcher import fetch_prs_with_pagination
from prtriage.utils.repository_parser import with_author_filter, with_involves_filter

ProgressCallback = Callable[[LoadingProgress], None]


@dataclass
class RepositoryFetch:
    """Everything fetched for one repository. Keys always include the repository id."""

    repo_id: str
    bugfix_prs: Dict[str, PullRequest] = field(default_factory=dict)
    total_prs: Dict[str, PullRequest] = field(default_factory=dict)
    involvement: InvolvementIndex = field(default_factory=dict)


async def fetch_repository(
    client: SearchClient,
    repository: Repository,
    bugfix_query: str,
    total_query: str,
    authors: List[str],
    on_warning: Optional[Callable[[FetchWarning], None]] = None,
) -> RepositoryFetch:
    """
    Run the bugfix query and the total query (or one "involves:" query per author) for one repository.

    Per-author searches run one after another so a single repository never sees a burst
    of simultaneous searches. Any search failure propagates to the caller.
    """
    fetched = RepositoryFetch(repo_id=repository.id)

    bugfix_prs = await fetch_prs_with_pagination(
        client, repository, with_author_filter(bugfix_query, authors), QueryLabel.BUGFIX, on_warning
    )
    for pr in bugfix_prs:
        fetched.bugfix_prs[pr.key] = pr

    if not authors:
        total_prs = await fetch_prs_with_pagination(client, repository, total_query, QueryLabel.TOTAL, on_warning)
        for pr in total_prs:
            fetched.total_prs[pr.key] = pr
        return fetched

    for author in authors:
        involved_prs = await fetch_prs_with_pagination(
            client, repository, with_involves_filter(total_query, author), QueryLabel.TOTAL, on_warning, author=author
        )
        for pr in involved_prs:
            # every copy of a PR carries the same fields, so the last one seen wins
            fetched.total_prs[pr.key] = pr
            fetched.involvement.setdefault(pr.key, set()).add(author)

    return fetched


async def fetch_pull_requests(
    client: SearchClient,
    repositories: List[Repository],
    bugfix_query: str,
    total_query: str,
    authors: Optional[List[str]] = None,
    on_warning: Optional[Callable[[FetchWarning], None]] = None,
    on_progress: Optional[ProgressCallback] = None,
    max_concurrent_repos: Optional[int] = None,
) -> FetchResult:
    """
    Fetch bugfix and total PRs for every repository concurrently.

    A repository whose searches fail contributes nothing and is listed in
    ``FetchResult.failed_repos``; the other repositories are unaffected.

    Args:
        client (SearchClient): search capability
        repositories (List[Repository]): configured repositories
        bugfix_query (str): numerator query
        total_query (str): denominator query
        authors (Optional[List[str]]): logins to scope both queries to
        on_warning: receives each FetchWarning as it is emitted
        on_progress: receives a LoadingProgress after each repository completes
        max_concurrent_repos (Optional[int]): bound on repositories fetched at once, None for no bound

    Returns:
        FetchResult: deduplicated PR sets, involvement index, warnings and failed repositories

    Raises:
        ConfigurationError: no repositories or a blank query
    """
    if not repositories:
        raise ConfigurationError("No repositories configured")
    if not bugfix_query or not bugfix_query.strip():
        raise ConfigurationError("Bugfix query is empty")
    if not total_query or not total_query.strip():
        raise ConfigurationError("Total query is empty")

    authors = list(authors or [])
    result = FetchResult()
    progress = LoadingProgress(total_repos=len(repositories))
    semaphore = asyncio.Semaphore(max_concurrent_repos) if max_concurrent_repos else None

    def record_warning(warning: FetchWarning) -> None:
        result.warnings.append(warning)
        if on_warning is not None:
            on_warning(warning)

    async def run_repository(repository: Repository) -> Optional[RepositoryFetch]:
        async with semaphore if semaphore is not None else contextlib.nullcontext():
            try:
                fetched = await fetch_repository(
                    client, repository, bugfix_query, total_query, authors, on_warning=record_warning
                )
            except Exception as e:
                bt.logging.error(f"Failed to load {repository.id}: {e}")
                fetched = None

        progress.loaded_repos += 1
        if fetched is not None:
            progress.total_prs += len(fetched.bugfix_prs)
        bt.logging.info(
            f"Loaded {progress.loaded_repos}/{progress.total_repos} repos ({progress.total_prs} bugfix PRs so far)"
        )
        if on_progress is not None:
            on_progress(LoadingProgress(progress.total_repos, progress.loaded_repos, progress.total_prs))
        return fetched

    repository_results = await asyncio.gather(*(run_repository(repository) for repository in repositories))

    bugfix_by_key: Dict[str, PullRequest] = {}
    total_by_key: Dict[str, PullRequest] = {}
    for repository, fetched in zip(repositories, repository_results):
        if fetched is None:
            result.failed_repos.append(repository.id)
            continue
        bugfix_by_key.update(fetched.bugfix_prs)
        total_by_key.update(fetched.total_prs)
        for key, logins in fetched.involvement.items():
            result.involvement.setdefault(key, set()).update(logins)

    result.bugfix_prs = list(bugfix_by_key.values())
    result.total_prs = list(total_by_key.values())

    bt.logging.info(
        f"Fetched {len(result.bugfix_prs)} bugfix PRs and {len(result.total_prs)} total PRs "
        f"from {len(repositories) - len(result.failed_repos)}/{len(repositories)} repositories"
    )
    return result
