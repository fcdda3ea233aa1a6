# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Search capabilities consumed by the fetch pipeline.

The pipeline only depends on ``SearchClient``; ``GitHubSearchClient`` is the
live implementation backed by the REST helpers in ``prtriage.utils.github_api_tools``.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from prtriage.classes import Repository, SearchPage
from prtriage.constants import SEARCH_PAGE_SIZE
from prtriage.errors import ConfigurationError
from prtriage.utils.github_api_tools import get_pull_request_file_changes, search_pull_requests


class SearchClient(ABC):
    """Authenticated, rate-limited access to PR search and changed-file listings."""

    @abstractmethod
    async def search(self, repository: Repository, query: str, page: int, per_page: int = SEARCH_PAGE_SIZE) -> SearchPage:
        """Return one page of PRs in ``repository`` matching ``query``."""

    @abstractmethod
    async def list_files(self, repository: Repository, pr_number: int) -> List[Dict[str, Any]]:
        """Return the raw changed-file entries of one PR."""


class GitHubSearchClient(SearchClient):
    """SearchClient over the GitHub REST API. Blocking requests run in worker threads."""

    def __init__(self, token: str):
        if not token:
            raise ConfigurationError("A GitHub token is required (set GITHUB_TOKEN)")
        self._token = token

    async def search(self, repository: Repository, query: str, page: int, per_page: int = SEARCH_PAGE_SIZE) -> SearchPage:
        return await asyncio.to_thread(search_pull_requests, repository.id, query, page, self._token, per_page)

    async def list_files(self, repository: Repository, pr_number: int) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(get_pull_request_file_changes, repository.id, pr_number, self._token)
