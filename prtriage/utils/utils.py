"""
prtriage utilities
"""

import hashlib
from datetime import datetime, timezone


def mask_secret(secret: str, length: int = 5) -> str:
    """Return a short SHA-256 hash of a secret for logging."""
    h = hashlib.sha256(str(secret).encode("utf-8")).hexdigest()
    return f"<masked:{h[:length]}>"


def parse_github_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO-8601 timestamp ("2025-02-01T10:00:00Z") into an aware UTC datetime."""
    try:
        parsed = datetime.fromisoformat(value.rstrip("Z"))
    except (AttributeError, TypeError) as e:
        raise ValueError(f"Invalid timestamp {value!r}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
