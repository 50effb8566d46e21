from typing import Any

# Tokens meaning "yes" in the Child / Teenager import columns.
# "C" and "T" are the single-letter codes used in the guest spreadsheet.
AFFIRMATIVE_TOKENS = frozenset({"yes", "y", "true", "1", "c", "t"})

def is_affirmative_flag(value: Any) -> bool:
    """Interpret a spreadsheet flag cell (case-insensitive, whitespace ignored)"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in AFFIRMATIVE_TOKENS
