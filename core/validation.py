"""
Account Identifier Validation.

Discord account ids are snowflakes: unsigned 64-bit integers transmitted as
decimal text. In practice they are between 17 and 20 digits long. The predicate
here is the single source of truth for that rule; the profile gateway and the
widget embed endpoint both call it.

The candidate is checked exactly as given. Trimming whitespace is the caller's
responsibility.
"""

import re
from typing import Any

from core.exceptions import InvalidAccountIdError
from core.logging_config import get_logger

logger = get_logger(__name__)

# ASCII only: `\d` would also accept other Unicode decimal digits.
ACCOUNT_ID_PATTERN = re.compile(r"[0-9]{17,20}")


def is_valid_account_id(candidate: Any) -> bool:
    """Return True iff `candidate` is a 17-20 digit ASCII string"""
    if not isinstance(candidate, str):
        return False
    return ACCOUNT_ID_PATTERN.fullmatch(candidate) is not None


def validate_account_id(candidate: Any) -> str:
    """Return `candidate` unchanged, or raise InvalidAccountIdError"""
    if not is_valid_account_id(candidate):
        logger.debug(f"Rejected account id: {str(candidate)[:40]!r}")
        raise InvalidAccountIdError(candidate)
    return candidate
