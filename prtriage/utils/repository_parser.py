# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Turns free-text repository/author input into identifiers and search query strings.
"""

import re
from typing import List, Optional

from prtriage.classes import Repository

_LIST_SEPARATORS = re.compile(r'[\n,]')


def _split_entries(text: str) -> List[str]:
    return [entry.strip() for entry in _LIST_SEPARATORS.split(text or '') if entry.strip()]


def parse_repository(entry: str) -> Optional[Repository]:
    """Parse one repository reference.

    Supports ``owner/repo``, ``github.com/owner/repo`` and
    ``https://github.com/owner/repo`` with an optional ``.git`` suffix.

    Returns:
        Optional[Repository]: The repository, or None if fewer than two path parts remain.
    """
    cleaned = entry.strip()
    if 'github.com/' in cleaned:
        cleaned = cleaned.split('github.com/', 1)[1]
    cleaned = re.sub(r'\.git$', '', cleaned)

    parts = [part for part in cleaned.split('/') if part]
    if len(parts) < 2:
        return None

    owner, repo = parts[-2:]
    return Repository(owner=owner, repo=repo)


def parse_repositories(text: str) -> List[Repository]:
    """Parse comma or newline separated repository references, dropping invalid ones."""
    repositories = []
    for entry in _split_entries(text):
        repository = parse_repository(entry)
        if repository is not None:
            repositories.append(repository)
    return repositories


def parse_authors(text: str) -> List[str]:
    """Parse comma or newline separated author logins."""
    return _split_entries(text)


def with_author_filter(query: str, authors: List[str]) -> str:
    """Append one ``author:<login>`` term per author."""
    if not authors:
        return query
    return query + ' ' + ' '.join(f'author:{author}' for author in authors)


def with_involves_filter(query: str, login: str) -> str:
    """Append an ``involves:<login>`` term (author, assignee, reviewer or commenter)."""
    return f'{query} involves:{login}'


def scoped_query(repo_id: str, query: str) -> str:
    """Restrict a search query to a single repository."""
    return f'repo:{repo_id} {query}'
