import re
import secrets
import string
from typing import Callable, Optional

from wedding_rsvp.core.config import settings

CODE_ALPHABET = string.digits + string.ascii_uppercase  # base 36

def generate_household_code(length: Optional[int] = None) -> str:
    """Generate a random uppercase base-36 household access code"""
    length = length or settings.HOUSEHOLD_CODE_LENGTH
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))

def generate_unique_household_code(
    code_exists: Callable[[str], bool],
    attempts: Optional[int] = None,
) -> str:
    """
    Generate a household code that is not already taken.
    `code_exists` is asked about every candidate.
    """
    attempts = attempts or settings.HOUSEHOLD_CODE_ATTEMPTS
    for _ in range(attempts):
        code = generate_household_code()
        if not code_exists(code):
            return code
    raise RuntimeError(f"Could not generate a free household code after {attempts} attempts")

def normalize_code(code: str) -> str:
    """Uppercase a guest-entered code and drop any whitespace"""
    return re.sub(r"\s+", "", code or "").upper()
