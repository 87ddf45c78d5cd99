"""
Dedup orchestration: normalize -> fingerprint -> lookup-or-allocate.

Equivalent URLs under the active policy share one canonical form, hence one
fingerprint, hence at most one mapping row. Resolution skips normalization
and reads the mapping by code.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from loguru import logger

from shortener.core.config import settings
from shortener.core.errors import ErrorKind, StorageError, UrlError
from shortener.services.allocator import allocate, is_valid_short_code
from shortener.services.store import MappingStore
from shortener.utils.canonical import normalize_url
from shortener.utils.fingerprint import fingerprint
from shortener.utils.policies import NormalizationPolicy, get_policy


@dataclass(frozen=True)
class ShortenResult:
    short_code: str
    canonical_url: str
    fingerprint: str
    created: bool

    @property
    def short_url(self) -> str:
        return f"{settings.base_url}{self.short_code}"


def _storage_error(e: StorageError) -> UrlError:
    return UrlError(ErrorKind.FATAL_STORAGE_ERROR, f"Storage unavailable: {e}")


def get_or_create_mapping(
    store: MappingStore,
    raw_url: str,
    policy: NormalizationPolicy,
) -> Union[ShortenResult, UrlError]:
    canonical = normalize_url(raw_url, policy)
    if isinstance(canonical, UrlError):
        # validation errors return before any storage call
        return canonical

    fp = fingerprint(canonical)
    try:
        existing = store.find_mapping_by_fingerprint(fp)
    except StorageError as e:
        return _storage_error(e)
    if existing is not None:
        logger.debug(f"Reusing {existing.short_code} for {canonical}")
        return ShortenResult(existing.short_code, existing.canonical_url, fp, created=False)

    lost_race = False

    def persist(code: str):
        return store.save_mapping(code, canonical.value, fp)

    def fetch_winner() -> Optional[str]:
        nonlocal lost_race
        lost_race = True
        winner = store.find_mapping_by_fingerprint(fp)
        return winner.short_code if winner else None

    try:
        code = allocate(persist, fetch_winner)
    except StorageError as e:
        return _storage_error(e)
    if isinstance(code, UrlError):
        return code

    if not lost_race:
        logger.info(f"Created mapping {code} -> {canonical} ({policy.name.value})")
    return ShortenResult(code, canonical.value, fp, created=not lost_race)


def get_or_create_short_code(
    store: MappingStore,
    raw_url: str,
    policy: NormalizationPolicy,
) -> Union[str, UrlError]:
    result = get_or_create_mapping(store, raw_url, policy)
    if isinstance(result, UrlError):
        return result
    return result.short_code


def shorten(
    store: MappingStore,
    raw_url: str,
    policy_name: Optional[str] = None,
) -> Union[ShortenResult, UrlError]:
    """Shorten ``raw_url`` under the named policy, or the deployment default."""
    policy = get_policy(policy_name or settings.normalization_policy)
    if isinstance(policy, UrlError):
        return policy
    return get_or_create_mapping(store, raw_url, policy)


def resolve(store: MappingStore, short_code: str) -> Union[str, UrlError]:
    """Return the canonical URL stored for ``short_code``."""
    if not is_valid_short_code(short_code):
        # cannot have been issued, so skip the lookup
        return UrlError(ErrorKind.NOT_FOUND, f"Short code not found: {short_code}")
    try:
        mapping = store.find_mapping_by_code(short_code)
    except StorageError as e:
        return _storage_error(e)
    if mapping is None:
        return UrlError(ErrorKind.NOT_FOUND, f"Short code not found: {short_code}")
    return mapping.canonical_url
