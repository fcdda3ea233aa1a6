# The MIT License (MIT)
# Copyright © 2025 Entrius
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import bittensor as bt
import requests

from prtriage.classes import SearchPage
from prtriage.constants import (
    BASE_GITHUB_API_URL,
    FILES_REQUEST_TIMEOUT,
    MAX_REQUEST_ATTEMPTS,
    PR_FILES_PAGE_SIZE,
    RATE_LIMIT_BUFFER_SECONDS,
    RATE_LIMIT_MAX_WAIT_SECONDS,
    RATE_LIMIT_MIN_REMAINING,
    SECONDARY_RATE_LIMIT_WAIT_SECONDS,
    SEARCH_PAGE_SIZE,
    SEARCH_REQUEST_TIMEOUT,
)
from prtriage.errors import GitHubAPIError
from prtriage.utils.repository_parser import scoped_query


@dataclass
class RateLimitInfo:
    """Represents GitHub API rate limit information extracted from response headers."""

    limit: int  # Maximum requests allowed per window
    remaining: int  # Requests remaining in current window
    reset_timestamp: int  # Unix timestamp when the rate limit resets

    @property
    def is_exceeded(self) -> bool:
        """Check if rate limit has been exceeded."""
        return self.remaining == 0

    @property
    def seconds_until_reset(self) -> int:
        """Calculate seconds until rate limit resets."""
        current_time = int(time.time())
        return max(0, self.reset_timestamp - current_time)


def parse_rate_limit_headers(response: requests.Response) -> Optional[RateLimitInfo]:
    """
    Parse GitHub API rate limit information from response headers.

    Args:
        response: The HTTP response from GitHub API

    Returns:
        RateLimitInfo object if headers are present, None otherwise
    """
    headers = response.headers

    try:
        limit = int(headers.get('X-RateLimit-Limit', 0))
        remaining = int(headers.get('X-RateLimit-Remaining', 0))
        reset_timestamp = int(headers.get('X-RateLimit-Reset', 0))

        if limit == 0 and reset_timestamp == 0:
            return None

        return RateLimitInfo(limit=limit, remaining=remaining, reset_timestamp=reset_timestamp)
    except (ValueError, TypeError) as e:
        bt.logging.debug(f"Could not parse rate limit headers: {e}")
        return None


def rate_limit_wait(response: requests.Response) -> Optional[int]:
    """
    Seconds to wait before retrying a rate-limited response, or None if it was not rate limited.

    The primary limit is read from the X-RateLimit headers. The search endpoint's secondary
    limit only shows up in the body, optionally with a Retry-After header.
    """
    if response.status_code not in (403, 429):
        return None

    rate_limit_info = parse_rate_limit_headers(response)
    if rate_limit_info and rate_limit_info.is_exceeded:
        return min(rate_limit_info.seconds_until_reset + RATE_LIMIT_BUFFER_SECONDS, RATE_LIMIT_MAX_WAIT_SECONDS)

    if 'rate limit' not in (response.text or '').lower():
        return None

    retry_after = response.headers.get('Retry-After')
    if retry_after and retry_after.isdigit():
        return min(int(retry_after) + RATE_LIMIT_BUFFER_SECONDS, RATE_LIMIT_MAX_WAIT_SECONDS)
    return SECONDARY_RATE_LIMIT_WAIT_SECONDS


def warn_if_rate_limit_low(response: requests.Response, context: str = "") -> None:
    rate_limit_info = parse_rate_limit_headers(response)
    if rate_limit_info is None or rate_limit_info.remaining > RATE_LIMIT_MIN_REMAINING:
        return
    bt.logging.warning(
        f"{context or 'GitHub API'}: {rate_limit_info.remaining}/{rate_limit_info.limit} requests left, "
        f"window resets in {rate_limit_info.seconds_until_reset}s"
    )


def sleep_through_rate_limit(wait_seconds: int, context: str = "") -> None:
    """Block for ``wait_seconds``, logging progress once a minute."""
    bt.logging.warning(f"{context or 'GitHub API'}: rate limited, waiting {wait_seconds}s")

    waited = 0
    while waited < wait_seconds:
        step = min(60, wait_seconds - waited)
        time.sleep(step)
        waited += step
        if waited < wait_seconds:
            bt.logging.info(f"{context or 'GitHub API'}: still rate limited, {wait_seconds - waited}s to go")

    bt.logging.info(f"{context or 'GitHub API'}: resuming requests")


def make_headers(token: str) -> Dict[str, str]:
    """Build standard GitHub HTTP headers for a PAT.

    Args:
        token (str): Github pat
    Returns:
        Dict[str, str]: Mapping of HTTP header names to values.
    """
    return {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3+json",
    }


def github_get(
    path: str, token: str, params: Optional[Dict[str, Any]] = None, timeout: int = SEARCH_REQUEST_TIMEOUT, context: str = ""
) -> requests.Response:
    """
    GET a GitHub REST endpoint with rate limit handling and retries on transient failures.

    Server errors and connection errors are retried with exponential backoff (5s, 10s, ...).
    Client errors other than rate limiting are not retried.

    Raises:
        GitHubAPIError: if no successful response was obtained.
    """
    headers = make_headers(token)
    url = f"{BASE_GITHUB_API_URL}{path}"

    for attempt in range(MAX_REQUEST_ATTEMPTS):
        is_last_attempt = attempt == MAX_REQUEST_ATTEMPTS - 1
        try:
            response = requests.get(url, headers=headers, params=params, timeout=timeout)
        except requests.exceptions.RequestException as e:
            if is_last_attempt:
                raise GitHubAPIError(f"{context or path}: request failed after {MAX_REQUEST_ATTEMPTS} attempts: {e}")
            backoff_delay = 5 * (2**attempt)
            bt.logging.warning(
                f"{context or path}: connection error (attempt {attempt + 1}/{MAX_REQUEST_ATTEMPTS}): {e}, "
                f"retrying in {backoff_delay}s..."
            )
            time.sleep(backoff_delay)
            continue

        wait_seconds = rate_limit_wait(response)
        if wait_seconds:
            if is_last_attempt:
                raise GitHubAPIError(f"{context or path}: rate limit exceeded on final attempt", response.status_code)
            sleep_through_rate_limit(wait_seconds, context=context or path)
            continue

        if response.status_code == 200:
            warn_if_rate_limit_low(response, context=context or path)
            return response

        if response.status_code >= 500 and not is_last_attempt:
            backoff_delay = 5 * (2**attempt)
            bt.logging.warning(
                f"{context or path}: status {response.status_code} (attempt {attempt + 1}/{MAX_REQUEST_ATTEMPTS}), "
                f"retrying in {backoff_delay}s..."
            )
            time.sleep(backoff_delay)
            continue

        raise GitHubAPIError(f"{context or path}: status {response.status_code}: {response.text}", response.status_code)

    raise GitHubAPIError(f"{context or path}: no response after {MAX_REQUEST_ATTEMPTS} attempts")


def search_pull_requests(
    repo_id: str, query: str, page: int, token: str, per_page: int = SEARCH_PAGE_SIZE
) -> SearchPage:
    """
    Run one page of an issue search restricted to a repository.

    Args:
        repo_id (str): Repository in format 'owner/repo'
        query (str): Raw search query (e.g. "is:pr fix in:title")
        page (int): 1-based page number
        token (str): Github pat
        per_page (int): Page size, at most 100
    Returns:
        SearchPage: raw items plus the total match count reported by the index
    """
    response = github_get(
        '/search/issues',
        token,
        params={
            'q': scoped_query(repo_id, query),
            'sort': 'created',
            'order': 'desc',
            'per_page': per_page,
            'page': page,
        },
        timeout=SEARCH_REQUEST_TIMEOUT,
        context=f"search {repo_id} page {page}",
    )

    try:
        data = response.json()
        items = data['items']
        total_count = int(data['total_count'])
    except (ValueError, KeyError, TypeError) as e:
        raise GitHubAPIError(f"search {repo_id} page {page}: malformed response: {e}", response.status_code)

    return SearchPage(
        items=items,
        total_count=total_count,
        incomplete_results=bool(data.get('incomplete_results', False)),
        has_more=page * per_page < total_count,
    )


def get_pull_request_file_changes(repo_id: str, pr_number: int, token: str) -> List[Dict[str, Any]]:
    '''
    Get the changed files for a specific PR by repository name and PR number.

    Args:
        repo_id (str): Repository in format 'owner/repo'
        pr_number (int): PR number
        token (str): Github pat
    Returns:
        List[Dict[str, Any]]: raw file entries as returned by the API
    '''
    response = github_get(
        f'/repos/{repo_id}/pulls/{pr_number}/files',
        token,
        params={'per_page': PR_FILES_PAGE_SIZE},
        timeout=FILES_REQUEST_TIMEOUT,
        context=f"PR #{pr_number} files in {repo_id}",
    )

    try:
        file_diffs = response.json()
    except ValueError as e:
        raise GitHubAPIError(f"PR #{pr_number} files in {repo_id}: malformed response: {e}", response.status_code)

    if not isinstance(file_diffs, list):
        raise GitHubAPIError(f"PR #{pr_number} files in {repo_id}: expected a list, got {type(file_diffs).__name__}")
    return file_diffs
