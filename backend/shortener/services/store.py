"""
Persistence port for URL mappings and its SQLAlchemy implementation.

The engine only needs three operations from storage: two lookups and an
insert that reports which uniqueness rule, if any, it violated.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from loguru import logger
import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shortener.core.errors import StorageError
from shortener.models.tables import UrlMapping
from shortener.services.allocator import PersistOutcome


@dataclass(frozen=True)
class MappingRecord:
    short_code: str
    canonical_url: str
    fingerprint: str
    created_at: Optional[datetime] = None


class MappingStore(Protocol):
    def find_mapping_by_fingerprint(self, fingerprint: str) -> Optional[MappingRecord]:
        ...

    def find_mapping_by_code(self, short_code: str) -> Optional[MappingRecord]:
        ...

    def save_mapping(self, short_code: str, canonical_url: str, fingerprint: str) -> PersistOutcome:
        ...


def _to_record(row: UrlMapping) -> MappingRecord:
    return MappingRecord(
        short_code=row.short_code,
        canonical_url=row.canonical_url,
        fingerprint=row.fingerprint,
        created_at=row.created_at,
    )


def classify_integrity_error(exc: IntegrityError) -> PersistOutcome:
    """Work out which unique column an insert collided on.

    SQLite names the column (``url_mappings.fingerprint``), MySQL and
    PostgreSQL name the constraint (``uq_url_mappings_fingerprint``); both
    contain the column name.
    """
    message = str(exc.orig).lower()
    if "unique" not in message and "duplicate" not in message:
        # NOT NULL / foreign key failures are not retryable conflicts
        return PersistOutcome.FATAL_STORAGE_ERROR
    if "fingerprint" in message:
        return PersistOutcome.FINGERPRINT_CONFLICT
    if "short_code" in message:
        return PersistOutcome.CODE_CONFLICT
    return PersistOutcome.FATAL_STORAGE_ERROR


class SqlMappingStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _find_one(self, *criteria) -> Optional[MappingRecord]:
        try:
            with self._session_factory() as session:
                row = session.execute(sa.select(UrlMapping).where(*criteria)).scalars().first()
                return _to_record(row) if row else None
        except SQLAlchemyError as e:
            logger.error(f"Mapping lookup failed: {e}")
            raise StorageError(str(e)) from e

    def find_mapping_by_fingerprint(self, fingerprint: str) -> Optional[MappingRecord]:
        return self._find_one(UrlMapping.fingerprint == fingerprint)

    def find_mapping_by_code(self, short_code: str) -> Optional[MappingRecord]:
        return self._find_one(UrlMapping.short_code == short_code)

    def save_mapping(self, short_code: str, canonical_url: str, fingerprint: str) -> PersistOutcome:
        # One session, one transaction: the row is either committed or absent
        with self._session_factory() as session:
            session.add(
                UrlMapping(
                    short_code=short_code,
                    canonical_url=canonical_url,
                    fingerprint=fingerprint,
                )
            )
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                outcome = classify_integrity_error(e)
                if outcome == PersistOutcome.FATAL_STORAGE_ERROR:
                    logger.error(f"Unexpected integrity error saving {short_code}: {e.orig}")
                return outcome
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Saving mapping {short_code} failed: {e}")
                return PersistOutcome.FATAL_STORAGE_ERROR
        return PersistOutcome.COMMITTED


def count_mappings(session: Session) -> int:
    return session.execute(sa.select(sa.func.count()).select_from(UrlMapping)).scalar() or 0
