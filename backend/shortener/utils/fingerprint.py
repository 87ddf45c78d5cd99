import hashlib
from typing import NewType, Union

from shortener.utils.canonical import CanonicalUrl


Fingerprint = NewType("Fingerprint", str)

FINGERPRINT_LENGTH = 64


def fingerprint(canonical: Union[CanonicalUrl, str]) -> Fingerprint:
    """Lowercase hex SHA-256 of the canonical URL's UTF-8 bytes."""
    return Fingerprint(hashlib.sha256(str(canonical).encode("utf-8")).hexdigest())
