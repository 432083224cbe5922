"""
@file: allocator.py
@description:
Allocates short opaque file ids.

An id is 8 characters drawn independently and uniformly from a 62-character
alphanumeric alphabet (about 47.6 bits). Each candidate is checked against the
live rows of the catalog and redrawn on collision, for a bounded number of
attempts.

@dependencies:
- secrets: Uniform draws from the alphabet; ids double as download capabilities
- tenacity: The bounded redraw loop
- filevault.db.catalog: Live-row lookups
"""

import secrets
from typing import Optional

from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from filevault.core.exceptions import AllocationError, StorageUnavailable
from filevault.core.logger import setup_logger

logger = setup_logger("filevault.services.allocator")

ID_ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ1234567890"
ID_LENGTH = 8
DEFAULT_MAX_ATTEMPTS = 10


class IdCollision(Exception):
    """A drawn id is already live in the catalog."""


def generate_id(length: int = ID_LENGTH) -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(length))


def is_valid_id(value: str) -> bool:
    return len(value) == ID_LENGTH and all(ch in ID_ALPHABET for ch in value)


class IdAllocator:
    """
    Draws file ids that no live catalog row is using.

    The check is advisory: a concurrent upload can still take the same id
    between the check and its insert, and the catalog's primary key is what
    finally rejects the second insert.

    Args:
        catalog: The catalog to check candidates against
        max_attempts: Draws before giving up with AllocationError
    """

    def __init__(self, catalog, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.catalog = catalog
        self.max_attempts = max_attempts

    def _draw(self) -> str:
        candidate = generate_id()
        try:
            taken = self.catalog.count_by_creator_or_id(file_id=candidate) > 0
        except StorageUnavailable as e:
            raise AllocationError(f"Could not check file id availability: {e.detail}") from e
        if taken:
            logger.warning(f"File id collision on {candidate}, drawing again")
            raise IdCollision(candidate)
        return candidate

    def allocate(self, max_attempts: Optional[int] = None) -> str:
        """
        Return an id not currently used by any catalog row.

        Raises:
            AllocationError: If the catalog lookup fails or every attempt collided
        """
        attempts = max_attempts or self.max_attempts
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type(IdCollision),
        )
        try:
            return retrying(self._draw)
        except RetryError as e:
            raise AllocationError(f"No free file id after {attempts} attempts") from e
