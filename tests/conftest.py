# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Shared pytest fixtures.

``FakeSearchClient`` stands in for the GitHub search capability. Results are
registered per (repo_id, query) and served in pages exactly like the search
endpoint, so pagination, truncation and failure paths can be driven without
network access.

Usage:
    def test_something(fake_client, search_item):
        fake_client.add_results('acme/widgets', 'is:pr', [search_item(1), search_item(2)])
"""

import asyncio
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from prtriage.classes import FileChange, PullRequest, Repository, SearchPage
from prtriage.client import SearchClient
from prtriage.errors import GitHubAPIError


class FakeSearchClient(SearchClient):
    def __init__(self):
        self.results: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        self.total_overrides: Dict[Tuple[str, str], int] = {}
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self.fail_on_page: Dict[Tuple[str, str], int] = {}
        self.files: Dict[str, Union[List[Dict[str, Any]], Exception]] = {}
        self.search_calls: List[Tuple[str, str, int]] = []
        self.file_calls: List[Tuple[str, int]] = []
        self._in_flight: Dict[str, int] = defaultdict(int)
        self.max_in_flight_per_repo: Dict[str, int] = defaultdict(int)
        self._in_flight_total = 0
        self.max_in_flight_total = 0
        self.max_files_in_flight = 0
        self._files_in_flight = 0
        # when set, the next search call waits for this event
        self.release: Optional[asyncio.Event] = None

    def add_results(self, repo_id: str, query: str, items: List[Dict[str, Any]], total_count: Optional[int] = None):
        self.results[(repo_id, query)] = items
        if total_count is not None:
            self.total_overrides[(repo_id, query)] = total_count

    def add_failure(self, repo_id: str, query: str, error: Exception, page: int = 1):
        self.failures[(repo_id, query)] = error
        self.fail_on_page[(repo_id, query)] = page

    def add_files(self, repo_id: str, number: int, files: Union[List[Dict[str, Any]], Exception]):
        self.files[f'{repo_id}#{number}'] = files

    async def search(self, repository: Repository, query: str, page: int, per_page: int = 100) -> SearchPage:
        if self.release is not None:
            release, self.release = self.release, None
            await release.wait()

        key = (repository.id, query)
        self.search_calls.append((repository.id, query, page))

        self._in_flight[repository.id] += 1
        self._in_flight_total += 1
        self.max_in_flight_per_repo[repository.id] = max(
            self.max_in_flight_per_repo[repository.id], self._in_flight[repository.id]
        )
        self.max_in_flight_total = max(self.max_in_flight_total, self._in_flight_total)
        try:
            # yield so sibling repositories interleave
            await asyncio.sleep(0)
            await asyncio.sleep(0)

            if key in self.failures and page >= self.fail_on_page[key]:
                raise self.failures[key]

            items = self.results.get(key, [])
            total_count = self.total_overrides.get(key, len(items))
            start = (page - 1) * per_page
            page_items = items[start:start + per_page]
            return SearchPage(items=page_items, total_count=total_count, has_more=page * per_page < total_count)
        finally:
            self._in_flight[repository.id] -= 1
            self._in_flight_total -= 1

    async def list_files(self, repository: Repository, pr_number: int) -> List[Dict[str, Any]]:
        self.file_calls.append((repository.id, pr_number))
        self._files_in_flight += 1
        self.max_files_in_flight = max(self.max_files_in_flight, self._files_in_flight)
        try:
            await asyncio.sleep(0)
            files = self.files.get(f'{repository.id}#{pr_number}', [])
            if isinstance(files, Exception):
                raise files
            return files
        finally:
            self._files_in_flight -= 1


@pytest.fixture
def fake_client() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def search_item() -> Callable[..., Dict[str, Any]]:
    """Factory for raw /search/issues items."""

    def _make(
        number: int,
        created_at: str = '2025-02-01T12:00:00Z',
        closed_at: Optional[str] = None,
        login: str = 'alice',
        title: Optional[str] = None,
    ) -> Dict[str, Any]:
        return {
            'number': number,
            'title': title or f'PR #{number}',
            'html_url': f'https://github.com/acme/widgets/pull/{number}',
            'created_at': created_at,
            'closed_at': closed_at,
            'user': {'login': login, 'avatar_url': ''},
        }

    return _make


@pytest.fixture
def pr_factory() -> Callable[..., PullRequest]:
    """Factory for PullRequest records. Naive datetimes are taken as local time."""

    def _make(
        number: int,
        repo_id: str = 'acme/widgets',
        created_at: datetime = datetime(2025, 2, 15, 12, 0),
        closed_at: Optional[datetime] = None,
        author_login: str = 'alice',
    ) -> PullRequest:
        owner, repo = repo_id.split('/')
        return PullRequest(
            number=number,
            title=f'PR #{number}',
            url=f'https://github.com/{repo_id}/pull/{number}',
            created_at=created_at.astimezone(),
            closed_at=closed_at.astimezone() if closed_at else None,
            author_login=author_login,
            repo_id=repo_id,
            owner=owner,
            repo=repo,
        )

    return _make


@pytest.fixture
def file_factory() -> Callable[..., FileChange]:
    def _make(filename: str, pr_number: int = 1, repo_id: str = 'acme/widgets') -> FileChange:
        return FileChange(
            pr_number=pr_number,
            repo_id=repo_id,
            filename=filename,
            status='modified',
            additions=1,
            deletions=1,
            changes=2,
        )

    return _make


@pytest.fixture
def widgets() -> Repository:
    return Repository(owner='acme', repo='widgets')


@pytest.fixture
def gadgets() -> Repository:
    return Repository(owner='acme', repo='gadgets')


@pytest.fixture
def api_error() -> GitHubAPIError:
    return GitHubAPIError('search failed: status 502', 502)
