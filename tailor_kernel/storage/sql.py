"""
SqlOrderStore -- order collection in a ``collection_blobs`` row.

Responsibility:
    Store the serialized collection under its key and enforce the revision
    compare-and-swap in the database, so stations on different machines
    sharing one PostgreSQL database cannot overwrite each other.

Architecture position:
    Kernel > Storage.  Uses db/ for the table and sessions.

Invariants enforced:
    - CAS is a single ``UPDATE ... WHERE key = :key AND revision = :expected``;
      a zero row count means another writer got there first.
    - The first write inserts revision 1; a concurrent first insert loses
      on the unique key and surfaces as ``StaleCollectionError``.

Failure modes:
    - StaleCollectionError on a lost race.
    - UnsupportedSchemaVersionError / CorruptCollectionError from decoding.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from tailor_kernel.db.engine import session_scope
from tailor_kernel.db.models import CollectionBlobModel
from tailor_kernel.domain.clock import Clock, SystemClock
from tailor_kernel.domain.order import Order
from tailor_kernel.domain.serialization import (
    SCHEMA_VERSION,
    dump_collection,
    load_collection,
)
from tailor_kernel.exceptions import StaleCollectionError
from tailor_kernel.logging_config import get_logger
from tailor_kernel.storage.base import (
    DEFAULT_COLLECTION_KEY,
    CollectionSnapshot,
    OrderStore,
)

logger = get_logger("storage.sql")


class SqlOrderStore(OrderStore):
    """Order collection persisted through SQLAlchemy."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        collection_key: str = DEFAULT_COLLECTION_KEY,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self.collection_key = collection_key
        self._clock = clock or SystemClock()

    def _current_revision(self, session: Session) -> int | None:
        return session.execute(
            select(CollectionBlobModel.revision).where(
                CollectionBlobModel.key == self.collection_key
            )
        ).scalar_one_or_none()

    def load(self) -> CollectionSnapshot:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                select(CollectionBlobModel.revision, CollectionBlobModel.payload).where(
                    CollectionBlobModel.key == self.collection_key
                )
            ).one_or_none()
        if row is None:
            return CollectionSnapshot(revision=0, orders=())
        return CollectionSnapshot(revision=row.revision, orders=load_collection(row.payload))

    def save(self, orders: Sequence[Order], expected_revision: int) -> int:
        payload = dump_collection(orders)
        now = self._clock.now()

        if expected_revision == 0:
            return self._insert_first(payload, now)

        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(CollectionBlobModel)
                .where(
                    CollectionBlobModel.key == self.collection_key,
                    CollectionBlobModel.revision == expected_revision,
                )
                .values(
                    revision=expected_revision + 1,
                    schema_version=SCHEMA_VERSION,
                    payload=payload,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                actual = self._current_revision(session)
                logger.info(
                    "collection_cas_rejected",
                    extra={
                        "collection_key": self.collection_key,
                        "expected_revision": expected_revision,
                        "actual_revision": actual,
                    },
                )
                raise StaleCollectionError(self.collection_key, expected_revision, actual)
        return expected_revision + 1

    def _insert_first(self, payload: str, now) -> int:
        try:
            with session_scope(self._session_factory) as session:
                session.add(
                    CollectionBlobModel(
                        key=self.collection_key,
                        revision=1,
                        schema_version=SCHEMA_VERSION,
                        payload=payload,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            with session_scope(self._session_factory) as session:
                actual = self._current_revision(session)
            raise StaleCollectionError(self.collection_key, 0, actual) from None
        return 1
