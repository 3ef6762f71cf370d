"""
Parsing of the leading metadata comment block in change scripts.

    -- Author: Jane Smith
    -- Purpose: Add index on orders.created_at
    -- Target: production
    -- Date: 2024-01-15
    -- DirectProd: true
"""

import re
from typing import Optional

from sqlgate.models.enums import TargetDatabase
from sqlgate.schemas.sync import ScriptMetadata

DEFAULT_SCAN_LINES = 20

# Field names are case-insensitive: "-- author:" and "-- AUTHOR:" both count.
_FIELD_RE = re.compile(r"^\s*--\s*(author|purpose|target|date)\s*:(.*)$", re.IGNORECASE)

# Only the exact token DirectProd is recognised; Direct-Prod and Direct_Prod are not.
_DIRECT_PROD_RE = re.compile(r"^\s*--\s*DirectProd\b\s*:?\s*(\S*)", re.IGNORECASE)
_DIRECT_PROD_TRUE = {"", "true", "yes", "1"}


def parse_sql_metadata(content: str, scan_lines: int = DEFAULT_SCAN_LINES) -> ScriptMetadata:
    """
    Read metadata from the first ``scan_lines`` lines of a script.

    Args:
        content: Full script text
        scan_lines: Number of leading lines to inspect

    Returns:
        ScriptMetadata with any fields found; later lines win on repeats
    """
    values = {}
    for line in (content or "").split("\n")[:scan_lines]:
        line = line.rstrip("\r")
        field_match = _FIELD_RE.match(line)
        if field_match:
            values[field_match.group(1).lower()] = field_match.group(2).strip()
            continue
        match = _DIRECT_PROD_RE.match(line)
        if match:
            values["direct_prod"] = match.group(1).lower() in _DIRECT_PROD_TRUE

    return ScriptMetadata(**values)


def extract_target_database(metadata: ScriptMetadata) -> Optional[TargetDatabase]:
    """Target named in the metadata, or None when absent or unrecognised."""
    if not metadata.target:
        return None
    try:
        return TargetDatabase(metadata.target.strip().lower())
    except ValueError:
        return None
