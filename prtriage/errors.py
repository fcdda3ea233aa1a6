# The MIT License (MIT)
# Copyright © 2025 Entrius

from typing import Optional


class TriageError(Exception):
    """Base class for every error raised by prtriage."""


class ConfigurationError(TriageError):
    """Configuration is unusable. Always fatal to a fetch cycle."""


class GitHubAPIError(TriageError):
    """The GitHub API answered with a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SearchFailedError(TriageError):
    """A single paginated search query was aborted part way through."""

    def __init__(self, repo_id: str, query_label: str, cause: Exception):
        super().__init__(f"Search for {repo_id} ({query_label} query) failed: {cause}")
        self.repo_id = repo_id
        self.query_label = query_label
        self.cause = cause
