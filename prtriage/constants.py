# The MIT License (MIT)
# Copyright © 2025 Entrius

# =============================================================================
# GitHub API
# =============================================================================
BASE_GITHUB_API_URL = "https://api.github.com"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"

# Search index hard limits
SEARCH_PAGE_SIZE = 100
SEARCH_RESULT_CAP = 1000  # the search index never serves more than 1000 results per query
PR_FILES_PAGE_SIZE = 100

SEARCH_REQUEST_TIMEOUT = 30
FILES_REQUEST_TIMEOUT = 15
MAX_REQUEST_ATTEMPTS = 3

# =============================================================================
# Rate Limit Configuration
# =============================================================================
RATE_LIMIT_BUFFER_SECONDS = 5  # Extra buffer time when waiting for rate limit reset
RATE_LIMIT_MIN_REMAINING = 10  # Minimum remaining requests before preemptive wait
RATE_LIMIT_MAX_WAIT_SECONDS = 900  # Maximum time to wait for rate limit reset (15 min)
SECONDARY_RATE_LIMIT_WAIT_SECONDS = 60  # no Retry-After on a secondary limit

# =============================================================================
# Queries
# =============================================================================
DEFAULT_BUGFIX_QUERY = "is:pr fix in:title created:>2025-01-01 sort:created-desc"
DEFAULT_TOTAL_QUERY = "is:pr created:>2025-01-01 sort:created-desc"

# =============================================================================
# Fetching
# =============================================================================
DEFAULT_FILE_FETCH_CONCURRENCY = 10  # simultaneous /pulls/{n}/files requests

# =============================================================================
# Analysis
# =============================================================================
HOTSPOT_MAX_ENTRIES = 15
PATH_SEPARATOR = "/"
PR_KEY_SEPARATOR = "#"
MONTH_KEY_FORMAT = "%Y-%m"
