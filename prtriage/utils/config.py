# The MIT License (MIT)
# Copyright © 2025 Entrius

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import bittensor as bt
from dotenv import load_dotenv

from prtriage.classes import Repository
from prtriage.constants import (
    DEFAULT_BUGFIX_QUERY,
    DEFAULT_FILE_FETCH_CONCURRENCY,
    DEFAULT_TOTAL_QUERY,
    GITHUB_TOKEN_ENV_VAR,
)
from prtriage.errors import ConfigurationError
from prtriage.utils.repository_parser import parse_authors, parse_repositories

DEFAULT_CONFIG_FILE = Path('config.json')


@dataclass
class TriageConfig:
    """Repositories, authors and the two search queries a fetch cycle runs with."""

    repositories: List[Repository] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    bugfix_query: str = DEFAULT_BUGFIX_QUERY
    total_query: str = DEFAULT_TOTAL_QUERY
    token: Optional[str] = None
    file_fetch_concurrency: Optional[int] = DEFAULT_FILE_FETCH_CONCURRENCY


def _parse_entries(value: Any, parse: Callable[[str], List[Any]]) -> Any:
    """Config lists may be stored as JSON arrays or as one comma/newline separated string.

    Any other shape is returned unchanged for validate_config to reject.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return parse(value)
    if isinstance(value, list) and all(isinstance(entry, str) for entry in value):
        return parse('\n'.join(value))
    return value


def config_from_dict(data: Dict[str, Any]) -> TriageConfig:
    """Build a TriageConfig from the JSON config shape (repositories, authors, bugfixPRsQuery, totalPRsQuery)."""
    return TriageConfig(
        repositories=_parse_entries(data.get('repositories'), parse_repositories),
        authors=_parse_entries(data.get('authors'), parse_authors),
        bugfix_query=data.get('bugfixPRsQuery') or DEFAULT_BUGFIX_QUERY,
        total_query=data.get('totalPRsQuery') or DEFAULT_TOTAL_QUERY,
        file_fetch_concurrency=data.get('fileFetchConcurrency', DEFAULT_FILE_FETCH_CONCURRENCY),
    )


def load_github_token() -> Optional[str]:
    """Read the GitHub token from the environment, honouring a local .env file."""
    load_dotenv()
    token = os.getenv(GITHUB_TOKEN_ENV_VAR)
    return token.strip() if token else None


def load_config(config_path: Optional[Union[str, Path]] = None) -> TriageConfig:
    """
    Load configuration from a JSON file, falling back to defaults.

    Returns:
        TriageConfig: parsed configuration with the token read from the environment.
        A missing or unreadable file yields the default configuration.
    """
    config_file = Path(config_path) if config_path else DEFAULT_CONFIG_FILE
    data: Dict[str, Any] = {}

    try:
        with open(config_file, 'r') as f:
            loaded = json.load(f)
        if isinstance(loaded, dict):
            data = loaded
            bt.logging.debug(f"Loaded configuration from {config_file}")
        else:
            bt.logging.error(f"Expected dict from {config_file}, got {type(loaded)}")
    except FileNotFoundError:
        bt.logging.info(f"No config file at {config_file}, using defaults")
    except json.JSONDecodeError as e:
        bt.logging.error(f"Failed to parse JSON from {config_file}: {e}")
    except OSError as e:
        bt.logging.error(f"Could not read {config_file}: {e}")

    config = config_from_dict(data)
    config.token = load_github_token()
    return config


def check_config_types(config: TriageConfig) -> None:
    """Raise ConfigurationError if any setting has the wrong shape (e.g. a query given as a list)."""
    if not isinstance(config.repositories, list) or not all(
        isinstance(repository, Repository) for repository in config.repositories
    ):
        raise ConfigurationError(f"repositories must be a list of 'owner/repo' strings, got {config.repositories!r}")
    if not isinstance(config.authors, list) or not all(isinstance(author, str) for author in config.authors):
        raise ConfigurationError(f"authors must be a list of logins, got {config.authors!r}")
    for name, query in (("bugfixPRsQuery", config.bugfix_query), ("totalPRsQuery", config.total_query)):
        if not isinstance(query, str):
            raise ConfigurationError(f"{name} must be a string, got {query!r}")

    concurrency = config.file_fetch_concurrency
    # bool is an int subclass
    if concurrency is not None and (not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1):
        raise ConfigurationError(f"fileFetchConcurrency must be a positive integer or null, got {concurrency!r}")


def validate_config(config: TriageConfig) -> None:
    """Raise ConfigurationError if a fetch cycle cannot run with ``config``."""
    check_config_types(config)
    if not config.repositories:
        raise ConfigurationError("No repositories configured")
    if not config.bugfix_query.strip():
        raise ConfigurationError("Bugfix query is empty")
    if not config.total_query.strip():
        raise ConfigurationError("Total query is empty")
