from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as timezone-naive UTC, the form stored in the audit tables."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_timestamp(timestamp: Optional[datetime]) -> Optional[datetime]:
    """
    Convert timestamp to timezone-naive UTC datetime.

    Args:
        timestamp: The timestamp to normalize

    Returns:
        Timezone-naive UTC datetime
    """
    if timestamp is None:
        return None

    if timestamp.tzinfo is not None:
        return timestamp.astimezone(timezone.utc).replace(tzinfo=None)

    return timestamp
