"""
Collection blob table.

The shop stores the whole order collection as one JSON document under a
fixed key (``tailorOrders``).  ``revision`` is the optimistic-concurrency
counter: writers compare-and-swap against the revision they read.
"""

from datetime import datetime

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tailor_kernel.db.base import Base


class CollectionBlobModel(Base):
    """One named JSON collection with its write revision."""

    __tablename__ = "collection_blobs"

    __table_args__ = (
        Index("uq_collection_blob_key", "key", unique=True),
    )

    key: Mapped[str] = mapped_column(String(100), nullable=False)
    revision: Mapped[int] = mapped_column(nullable=False, default=1)
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<CollectionBlob {self.key} rev={self.revision}>"
