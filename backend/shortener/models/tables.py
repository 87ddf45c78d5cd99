from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UrlMapping(Base):
    __tablename__ = "url_mappings"
    # Constraint names are matched when classifying insert conflicts
    __table_args__ = (
        UniqueConstraint("short_code", name="uq_url_mappings_short_code"),
        UniqueConstraint("fingerprint", name="uq_url_mappings_fingerprint"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    short_code = Column(String(10), nullable=False)
    canonical_url = Column(Text, nullable=False)
    fingerprint = Column(String(64), nullable=False)  # sha256 hex of canonical_url
    created_at = Column(DateTime, nullable=False, default=_utcnow)
