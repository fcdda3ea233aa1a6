# The MIT License (MIT)
# Copyright © 2025 Entrius

from typing import Callable, List, Optional

import bittensor as bt

from prtriage.classes import FetchWarning, PullRequest, QueryLabel, Repository, WarningKind
from prtriage.client import SearchClient
from prtriage.constants import SEARCH_PAGE_SIZE, SEARCH_RESULT_CAP
from prtriage.errors import SearchFailedError

WarningCallback = Callable[[FetchWarning], None]


async def fetch_prs_with_pagination(
    client: SearchClient,
    repository: Repository,
    query: str,
    query_label: QueryLabel,
    on_warning: Optional[WarningCallback] = None,
    author: Optional[str] = None,
) -> List[PullRequest]:
    """
    Fetch every PR matching ``query`` in one repository, one page at a time.

    Pages are requested sequentially since the truncation decision is taken on page 1.
    A query reporting more than SEARCH_RESULT_CAP matches yields nothing and a TRUNCATED
    warning; a query matching nothing yields an EMPTY warning.

    Args:
        client (SearchClient): search capability
        repository (Repository): repository to search
        query (str): search query without the repo qualifier
        query_label (QueryLabel): which configured query this is, for warnings and logs
        on_warning: receives every FetchWarning emitted
        author (Optional[str]): login of an "involves:" sub-query, for warnings

    Returns:
        List[PullRequest]: matching PRs in the order returned

    Raises:
        SearchFailedError: a page request failed; results gathered so far are discarded
    """
    collected: List[PullRequest] = []
    page = 1

    while True:
        try:
            result = await client.search(repository, query, page, SEARCH_PAGE_SIZE)
        except Exception as e:
            bt.logging.error(f"Error loading {repository.id} ({query_label.value} query, page {page}): {e}")
            raise SearchFailedError(repository.id, query_label.value, e) from e

        if page == 1 and result.total_count > SEARCH_RESULT_CAP:
            _emit(on_warning, FetchWarning(WarningKind.TRUNCATED, repository.id, query_label, result.total_count, author))
            bt.logging.warning(
                f"{repository.id} {query_label.value} query matches {result.total_count} PRs "
                f"(exceeds {SEARCH_RESULT_CAP}), skipping"
            )
            return []

        if page == 1 and result.total_count == 0:
            _emit(on_warning, FetchWarning(WarningKind.EMPTY, repository.id, query_label, 0, author))
            bt.logging.info(f"{repository.id} {query_label.value} query matched no PRs")
            return []

        for item in result.items:
            try:
                collected.append(PullRequest.from_search_item(item, repository))
            except ValueError as e:
                bt.logging.warning(f"Skipping malformed search item in {repository.id}: {e}")

        bt.logging.debug(
            f"{repository.id} {query_label.value} query: page {page}, "
            f"{len(collected)}/{result.total_count} loaded"
        )

        if (
            len(collected) >= result.total_count
            or len(collected) >= SEARCH_RESULT_CAP
            or len(result.items) < SEARCH_PAGE_SIZE
        ):
            break

        page += 1

    return collected


def _emit(on_warning: Optional[WarningCallback], warning: FetchWarning) -> None:
    if on_warning is not None:
        on_warning(warning)
