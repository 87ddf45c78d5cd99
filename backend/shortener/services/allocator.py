"""
Short-code allocation against a uniqueness-enforcing store.

A candidate code is drawn from ``secrets`` (an OS-backed generator that is
safe to share between threads), handed to a ``persist`` callable, and the
outcome decides what happens next:

    COMMITTED             -> return the candidate
    CODE_CONFLICT         -> draw a fresh candidate, at most MAX_ATTEMPTS in total
    FINGERPRINT_CONFLICT  -> someone else stored the same URL; return their code
    FATAL_STORAGE_ERROR   -> give up immediately

No locks are taken here; uniqueness is the store's job.
"""
import secrets
import string
from enum import Enum
from typing import Callable, Optional, Union

from loguru import logger

from shortener.core.errors import ErrorKind, UrlError


ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
SHORT_CODE_LENGTH = 6
MAX_ATTEMPTS = 5


class PersistOutcome(str, Enum):
    COMMITTED = "Committed"
    CODE_CONFLICT = "CodeConflict"
    FINGERPRINT_CONFLICT = "FingerprintConflict"
    FATAL_STORAGE_ERROR = "FatalStorageError"


def generate_short_code(length: int = SHORT_CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def is_valid_short_code(code: str) -> bool:
    return len(code) == SHORT_CODE_LENGTH and all(c in ALPHABET for c in code)


def allocate(
    persist: Callable[[str], PersistOutcome],
    fetch_winner: Callable[[], Optional[str]],
    *,
    generate: Callable[[], str] = generate_short_code,
    max_attempts: int = MAX_ATTEMPTS,
) -> Union[str, UrlError]:
    """
    Commit a fresh short code through ``persist``.

    ``fetch_winner`` is called once, only on a fingerprint conflict, to read
    back the code the concurrent writer committed.
    """
    for attempt in range(1, max_attempts + 1):
        candidate = generate()
        outcome = persist(candidate)

        if outcome == PersistOutcome.COMMITTED:
            logger.debug(f"Allocated short code {candidate} on attempt {attempt}")
            return candidate

        if outcome == PersistOutcome.CODE_CONFLICT:
            logger.warning(f"Short code collision on {candidate} (attempt {attempt}/{max_attempts})")
            continue

        if outcome == PersistOutcome.FINGERPRINT_CONFLICT:
            winner = fetch_winner()
            if winner is None:
                return UrlError(
                    ErrorKind.FATAL_STORAGE_ERROR,
                    "Fingerprint conflict reported but no mapping could be read back",
                )
            logger.info(f"Lost allocation race; reusing existing short code {winner}")
            return winner

        return UrlError(ErrorKind.FATAL_STORAGE_ERROR, "Storage failed while saving mapping")

    logger.error(f"Short code allocation exhausted after {max_attempts} attempts")
    return UrlError(
        ErrorKind.ALLOCATION_EXHAUSTED,
        f"Could not allocate a unique short code after {max_attempts} attempts",
    )
