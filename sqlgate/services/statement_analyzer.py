"""
Statement analysis for raw SQL change scripts.

Everything here works on comment-stripped text, so SQL that has been
commented out never influences how a script is executed.
"""

import re
from typing import List

from sqlgate.schemas.execution import StatementAnalysis

TERMINATOR = ";"

# Line comments run to end of line; block comments do not nest.
# A single alternation keeps whichever opener appears first.
_COMMENT_RE = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)
_TRANSACTION_START_RE = re.compile(r"^(BEGIN|START\s+TRANSACTION)\b")
_TRANSACTION_COMMIT_RE = re.compile(r"\bCOMMIT(\s+(TRANSACTION|WORK))?\s*;?$")
_RETURNING_RE = re.compile(r"\bRETURNING\b", re.IGNORECASE)
_SELECT_RE = re.compile(r"^SELECT\b")


def strip_comments(sql_text: str) -> str:
    """Remove ``--`` line comments and ``/* */`` block comments."""
    return _COMMENT_RE.sub(" ", sql_text or "")


def split_statements(sql_text: str) -> List[str]:
    """
    Split a script into terminator-delimited statements, in source order.

    Comments are stripped first and empty segments are dropped, so
    ``"SELECT 1;;"`` yields a single statement.
    """
    segments = strip_comments(sql_text).split(TERMINATOR)
    return [segment.strip() for segment in segments if segment.strip()]


class StatementAnalyzer:
    """Classifies a raw SQL script."""

    def analyze(self, sql_text: str) -> StatementAnalysis:
        stripped = strip_comments(sql_text)
        normalized = stripped.strip().upper()

        return StatementAnalysis(
            # Terminators, not non-empty segments: a stray double ';' still counts
            statement_count=stripped.count(TERMINATOR),
            is_already_wrapped=bool(
                _TRANSACTION_START_RE.search(normalized) and _TRANSACTION_COMMIT_RE.search(normalized)
            ),
            has_returning_clause=bool(_RETURNING_RE.search(stripped)),
            is_select_only=bool(_SELECT_RE.search(normalized)),
        )
