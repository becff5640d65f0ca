"""Text processing utilities."""

import re


def normalize_text(text: str) -> str:
    """
    Collapse runs of whitespace to a single space and trim.

    Args:
        text: Input text

    Returns:
        Normalized text
    """
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def normalize_sql(sql: str | None) -> str:
    """
    Normalize SQL text for source comparison: whitespace-collapsed, case-folded.

    This is a heuristic. Two statements that differ only inside string
    literals by whitespace or case compare equal.
    """
    if not sql:
        return ""
    return normalize_text(sql).casefold()


def sql_matches(left: str | None, right: str | None) -> bool:
    """True when both SQL texts normalize to the same string."""
    return normalize_sql(left) == normalize_sql(right)
