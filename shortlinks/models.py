"""SQLAlchemy ORM models for the durable record store.

Data Model Layout
=================
::
    urls table
    ├─ short_path (VARCHAR(16) PRIMARY KEY)
    ├─ original_url (TEXT NOT NULL, INDEXED)
    ├─ created_at (BIGINT NOT NULL, epoch ms)
    └─ expires_at (BIGINT NULL, epoch ms, INDEXED)

Key Behaviours
===============
- short_path is the primary key, so the database is the final arbiter of
  uniqueness for concurrent creators.
- original_url is indexed for the dedup lookup; it is not unique because
  expired records may still point at the same URL until they are swept.
- expires_at is indexed for the bulk expiry sweep.
- Timestamps are plain integers so records round-trip unchanged through the
  cache and the API.

Classes:
    ShortLink:  Represents one short path to URL mapping.
"""

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortlinks.database import Base
from shortlinks.schemas import LinkRecord

__all__ = ["ShortLink"]


class ShortLink(Base):
    __tablename__ = "urls"

    short_path: Mapped[str] = mapped_column(String(16), primary_key=True)
    original_url: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int | None] = mapped_column(BigInteger, index=True, nullable=True)

    @classmethod
    def from_record(cls, record: LinkRecord) -> "ShortLink":
        return cls(
            short_path=record.short_path,
            original_url=record.original_url,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )

    def to_record(self) -> LinkRecord:
        return LinkRecord(
            short_path=self.short_path,
            original_url=self.original_url,
            created_at=self.created_at,
            expires_at=self.expires_at,
        )

    def __repr__(self) -> str:
        return f"<ShortLink(short_path='{self.short_path}', expires_at={self.expires_at})>"
