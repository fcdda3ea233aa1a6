# The MIT License (MIT)
# Copyright © 2025 Entrius

import asyncio
import contextlib
from typing import List, Optional, Tuple

import bittensor as bt

from prtriage.classes import FileChange, PRFilesMap, PullRequest, Repository
from prtriage.client import SearchClient
from prtriage.constants import DEFAULT_FILE_FETCH_CONCURRENCY


def parse_file_changes(pr: PullRequest, file_diffs: List[dict]) -> List[FileChange]:
    """Validate raw file entries into FileChange records, logging and dropping malformed ones."""
    file_changes = []
    for file_diff in file_diffs:
        try:
            file_changes.append(FileChange.from_github_response(pr.number, pr.repo_id, file_diff))
        except ValueError as e:
            bt.logging.warning(f"Skipping malformed file entry in PR #{pr.number} ({pr.repo_id}): {e}")
    return file_changes


async def fetch_files_for_prs(
    client: SearchClient,
    prs: List[PullRequest],
    max_concurrency: Optional[int] = DEFAULT_FILE_FETCH_CONCURRENCY,
) -> PRFilesMap:
    """
    Fetch the changed files of every PR concurrently.

    Args:
        client (SearchClient): search capability
        prs (List[PullRequest]): PRs to fetch files for
        max_concurrency (Optional[int]): simultaneous requests, None for one task per PR with no bound

    Returns:
        PRFilesMap: ``owner/repo#number`` -> file changes. PRs whose request failed are absent.
    """
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def fetch_one(pr: PullRequest) -> Optional[Tuple[str, List[FileChange]]]:
        async with semaphore if semaphore is not None else contextlib.nullcontext():
            try:
                file_diffs = await client.list_files(Repository(owner=pr.owner, repo=pr.repo), pr.number)
            except Exception as e:
                bt.logging.error(f"Failed to load files for PR #{pr.number} in {pr.repo_id}: {e}")
                return None
        return pr.key, parse_file_changes(pr, file_diffs)

    results = await asyncio.gather(*(fetch_one(pr) for pr in prs))

    files_map: PRFilesMap = {}
    for entry in results:
        if entry is not None:
            key, file_changes = entry
            files_map[key] = file_changes

    bt.logging.info(f"Loaded file changes for {len(files_map)}/{len(prs)} PRs")
    return files_map
