"""
Order store adapters.

The core only ever touches one print record at a time through the
``OrderStore`` contract:

    create(job)                 -> PrintJob with record_id | StoreWriteFailedError
    find_by_job_id(job_id)      -> PrintJob | None         | StoreReadFailedError
    exists(job_id)              -> bool                    | StoreReadFailedError
    update(job_id, fields,
           record_id=None)      -> bool (matched)          | StoreWriteFailedError

There are no multi-record transactions. Callers must not assume
read-after-write consistency across replicas.

Implementations:
    InMemoryOrderStore - dict + threading.Lock, for development and tests
    SqlOrderStore      - SQLAlchemy ``prints`` table (PostgreSQL, MySQL, SQLite)
"""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, Float, Integer, String, Text, create_engine, select
from sqlalchemy import update as sql_update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from core.exceptions import StoreReadFailedError, StoreWriteFailedError
from models.job import PrintJob
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

# Columns that may be changed after creation
UPDATABLE_FIELDS = frozenset({
    "payment_status",
    "print_status",
    "print_code",
    "notification",
    "checkout_url",
})


def _check_fields(job_id: str, fields: Dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise StoreWriteFailedError(
            f"Refusing to update immutable or unknown fields: {sorted(unknown)}",
            operation="update",
            job_id=job_id,
        )


class OrderStore(ABC):
    """Narrow single-record interface to the prints table."""

    @abstractmethod
    def create(self, job: PrintJob) -> PrintJob:
        """Insert a new job and return it with its record id."""

    @abstractmethod
    def find_by_job_id(self, job_id: str) -> Optional[PrintJob]:
        """Return the job, or None if no record has this print id."""

    def exists(self, job_id: str) -> bool:
        return self.find_by_job_id(job_id) is not None

    @abstractmethod
    def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        record_id: Optional[int] = None
    ) -> bool:
        """
        Overwrite ``fields`` on one job.

        Args:
            job_id: Print id of the job
            fields: Columns to overwrite (see UPDATABLE_FIELDS)
            record_id: Restrict the write to this record. Without it every
                record carrying the print id is updated.

        Returns:
            True if a record matched, False otherwise
        """


class InMemoryOrderStore(OrderStore):
    """
    Process-local store.

    Records are kept in their column layout and copied on the way in and
    out, so callers can never mutate stored state by accident. Like the
    SQL table, a print id may (rarely) map to several records; reads return
    the newest, and updates touch all of them unless scoped to one record id.
    """

    def __init__(self):
        self._records: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self._next_id = 1

    def __len__(self) -> int:
        with self._lock:
            return sum(len(records) for records in self._records.values())

    def create(self, job: PrintJob) -> PrintJob:
        record = job.to_record()
        with self._lock:
            record["id"] = self._next_id
            self._next_id += 1
            self._records.setdefault(job.job_id, []).append(record)
            stored = copy.deepcopy(record)

        logger.debug(f"Stored {job.job_id} as record {stored['id']}")
        return PrintJob.from_record(stored)

    def find_by_job_id(self, job_id: str) -> Optional[PrintJob]:
        with self._lock:
            records = self._records.get(job_id)
            if not records:
                return None
            record = copy.deepcopy(records[-1])
        return PrintJob.from_record(record)

    def exists(self, job_id: str) -> bool:
        with self._lock:
            return bool(self._records.get(job_id))

    def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        record_id: Optional[int] = None
    ) -> bool:
        _check_fields(job_id, fields)
        with self._lock:
            records = [
                record for record in self._records.get(job_id, [])
                if record_id is None or record["id"] == record_id
            ]
            for record in records:
                record.update(copy.deepcopy(fields))
        return bool(records)


# =============================================================================
# SQLAlchemy backend
# =============================================================================

Base = declarative_base()


class PrintRecord(Base):
    """Row of the ``prints`` table."""

    __tablename__ = "prints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    print_id = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(64), nullable=False)
    pages = Column(Integer, nullable=False, default=1)
    copies = Column(Integer, nullable=False, default=1)
    color = Column(String(32))
    fulfill = Column(String(32))
    location = Column(Text)
    files = Column(JSON, nullable=False)
    amount = Column(Float, nullable=False, default=0)
    payment_status = Column(String(16), nullable=False, default="Unpaid")
    print_status = Column(String(16), nullable=False, default="Pending")
    print_code = Column(String(255))
    notification = Column(String(255))
    checkout_url = Column(Text)
    created_at = Column(String(64), nullable=False)

    def to_record(self) -> Dict[str, Any]:
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}


class SqlOrderStore(OrderStore):
    """
    Store backed by a relational database through SQLAlchemy.

    ``print_id`` is indexed but deliberately not unique: uniqueness is
    best-effort and decided by the identifier allocator.
    """

    def __init__(self, database_url: str, echo: bool = False, engine=None):
        """
        Args:
            database_url: SQLAlchemy URL, e.g. ``postgresql+psycopg2://...``
            echo: Log every SQL statement (debugging only)
            engine: Pre-built engine (overrides database_url)
        """
        if engine is None:
            engine_kwargs: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
            if database_url.startswith("sqlite") and ":memory:" in database_url:
                # One shared connection, otherwise each session sees an empty database
                engine_kwargs.update(
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
            engine = create_engine(database_url, **engine_kwargs)

        self._engine = engine
        self._session_factory = sessionmaker(
            autoflush=False,
            bind=engine,
            expire_on_commit=False,
        )
        logger.info(f"SqlOrderStore using {engine.url.render_as_string(hide_password=True)}")

    @property
    def engine(self):
        return self._engine

    def create_tables(self) -> None:
        """Create the prints table if it does not exist."""
        Base.metadata.create_all(self._engine)

    def create(self, job: PrintJob) -> PrintJob:
        record = job.to_record()
        try:
            with self._session_factory() as session:
                row = PrintRecord(**record)
                session.add(row)
                session.commit()
                session.refresh(row)
                stored = row.to_record()
        except SQLAlchemyError as e:
            logger.error(f"Insert failed for {job.job_id}: {e}")
            raise StoreWriteFailedError(
                "Database insert failed", operation="create", job_id=job.job_id
            ) from e

        return PrintJob.from_record(stored)

    def find_by_job_id(self, job_id: str) -> Optional[PrintJob]:
        statement = (
            select(PrintRecord)
            .where(PrintRecord.print_id == job_id)
            .order_by(PrintRecord.id.desc())
            .limit(1)
        )
        try:
            with self._session_factory() as session:
                row = session.execute(statement).scalars().first()
                record = row.to_record() if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Select failed for {job_id}: {e}")
            raise StoreReadFailedError(
                "Database read failed", operation="find_by_job_id", job_id=job_id
            ) from e

        return PrintJob.from_record(record) if record is not None else None

    def exists(self, job_id: str) -> bool:
        statement = select(PrintRecord.id).where(PrintRecord.print_id == job_id).limit(1)
        try:
            with self._session_factory() as session:
                return session.execute(statement).first() is not None
        except SQLAlchemyError as e:
            logger.error(f"Existence check failed for {job_id}: {e}")
            raise StoreReadFailedError(
                "Database read failed", operation="exists", job_id=job_id
            ) from e

    def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        record_id: Optional[int] = None
    ) -> bool:
        _check_fields(job_id, fields)
        statement = sql_update(PrintRecord).where(PrintRecord.print_id == job_id)
        if record_id is not None:
            statement = statement.where(PrintRecord.id == record_id)
        statement = statement.values(**fields)
        try:
            with self._session_factory() as session:
                result = session.execute(statement)
                session.commit()
                matched = result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Update failed for {job_id}: {e}")
            raise StoreWriteFailedError(
                "Database update failed", operation="update", job_id=job_id
            ) from e

        return bool(matched)


def build_order_store(database_url: str) -> OrderStore:
    """
    Pick the store implementation from configuration.

    An empty URL selects the in-memory store.
    """
    if not database_url:
        logger.warning("DATABASE_URL not set - print jobs are kept in memory only")
        return InMemoryOrderStore()

    store = SqlOrderStore(database_url)
    store.create_tables()
    return store
