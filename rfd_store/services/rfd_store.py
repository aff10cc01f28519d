"""RFD record store.

Durable, uniquely-keyed storage of RFD records. The store validates the
records it is handed but never derives fields itself: ``number_string`` and
``name`` come from the ingestion side already formatted.

Writes for one RFD number are serialized through a per-number lock and run in
a single transaction, so ``sha``, ``commit_date``, ``content`` and ``html``
always move together. Uniqueness is checked up front for a precise error and
backed by the table's unique constraints for writers in other processes.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, AsyncIterator, Dict, List, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import defer
from sqlmodel import select

from rfd_store.config.logger import app_logger, log_performance
from rfd_store.models.rfd import MAX_RFD_NUMBER, RFD, REVISION_FIELDS, RFDWrite
from rfd_store.utils.errors import (
    ConflictError,
    DurabilityError,
    NotFoundError,
    RFDStoreError,
    ValidationError,
)

UNIQUE_FIELDS = ("number", "number_string", "name")

RecordInput = Union[RFDWrite, Mapping[str, Any]]


@dataclass(frozen=True)
class RFDFilter:
    """Optional constraints for a listing. ``None`` means "any"."""

    state: Optional[str] = None
    milestone: Optional[str] = None
    complaint: Optional[str] = None

    def matches(self, rfd: RFD) -> bool:
        if self.state is not None and rfd.state != self.state:
            return False
        if self.milestone is not None and self.milestone not in rfd.milestones:
            return False
        if self.complaint is not None and self.complaint not in rfd.relevant_complaints:
            return False
        return True


def _validate_record(record: RecordInput) -> RFDWrite:
    """Validate a full field set, converting pydantic errors to ours."""
    data = record.model_dump() if isinstance(record, BaseModel) else dict(record)
    try:
        return RFDWrite.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "record" for err in errors)
        raise ValidationError(f"Invalid RFD record ({fields})", errors=errors) from e


async def _find_conflicts(
    session: AsyncSession,
    payload: RFDWrite,
    exclude_id: Optional[int] = None,
) -> List[str]:
    """Return the unique fields ``payload`` shares with other stored records."""
    stmt = select(RFD).where(
        or_(
            RFD.number == payload.number,
            RFD.number_string == payload.number_string,
            RFD.name == payload.name,
        )
    )
    if exclude_id is not None:
        stmt = stmt.where(RFD.id != exclude_id)

    result = await session.execute(stmt)
    conflicts: List[str] = []
    for other in result.scalars().all():
        for field_name in UNIQUE_FIELDS:
            if getattr(other, field_name) == getattr(payload, field_name) and field_name not in conflicts:
                conflicts.append(field_name)
    return conflicts


def _in_range(number: int) -> bool:
    return 0 < number <= MAX_RFD_NUMBER


class RFDListing:
    """Lazy, restartable listing of RFDs ordered by number.

    Every iteration starts a fresh scan and pages through the table in
    ``batch_size`` chunks, so nothing is loaded until it is consumed. With
    ``include_bodies=False`` the ``html`` and ``content`` columns are left
    unloaded.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        rfd_filter: RFDFilter,
        batch_size: int,
        include_bodies: bool = True,
    ):
        self._session_maker = session_maker
        self.filter = rfd_filter
        self.batch_size = batch_size
        self.include_bodies = include_bodies

    def __aiter__(self) -> AsyncIterator[RFD]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[RFD]:
        last_number = 0
        while True:
            stmt = (
                select(RFD)
                .where(RFD.number > last_number)
                .order_by(RFD.number)
                .limit(self.batch_size)
            )
            if self.filter.state is not None:
                stmt = stmt.where(RFD.state == self.filter.state)
            if not self.include_bodies:
                stmt = stmt.options(defer(RFD.html), defer(RFD.content))

            async with self._session_maker() as session:
                result = await session.execute(stmt)
                batch = result.scalars().all()

            for rfd in batch:
                if self.filter.matches(rfd):
                    yield rfd

            if len(batch) < self.batch_size:
                return
            last_number = batch[-1].number

    async def collect(self) -> List[RFD]:
        """Drain the listing into a list."""
        return [rfd async for rfd in self]


class RFDStore:
    """Create/read/update/delete access to RFD records."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], batch_size: int = 100):
        self._session_maker = session_maker
        self.batch_size = batch_size
        # Only numbers with a write in flight have an entry
        self._locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}

    @asynccontextmanager
    async def _number_lock(self, number: int) -> AsyncGenerator[None, None]:
        """Serialize writers of one RFD number; the entry is dropped when idle."""
        lock = self._locks.get(number)
        if lock is None:
            lock = self._locks[number] = asyncio.Lock()
            self._lock_users[number] = 0
        self._lock_users[number] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[number] -= 1
            if not self._lock_users[number]:
                del self._locks[number]
                del self._lock_users[number]

    @asynccontextmanager
    async def _transaction(
        self,
        action: str,
        on_integrity_error: Type[RFDStoreError],
    ) -> AsyncGenerator[AsyncSession, None]:
        """Run the body in one transaction and commit it, or roll it back entirely."""
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                app_logger.warning(f"{action} rejected by a unique constraint: {e.orig}")
                raise on_integrity_error(f"{action} violates a unique constraint") from e
            except SQLAlchemyError as e:
                await session.rollback()
                app_logger.error(f"{action} failed, rolled back: {e}")
                raise DurabilityError(f"{action} could not be committed") from e

    async def insert(self, record: RecordInput) -> RFD:
        """Persist a new RFD.

        Raises:
            ValidationError: the record is incomplete or inconsistent.
            ConflictError: number, number_string or name is already taken.
            DurabilityError: the write could not be committed.
        """
        payload = _validate_record(record)
        start = time.perf_counter()

        async with self._number_lock(payload.number):
            async with self._transaction(f"insert RFD {payload.number}", ConflictError) as session:
                conflicts = await _find_conflicts(session, payload)
                if conflicts:
                    app_logger.warning(
                        f"Rejected insert of RFD {payload.number}: duplicate {', '.join(conflicts)}"
                    )
                    raise ConflictError(
                        f"RFD {payload.number} duplicates an existing record on {', '.join(conflicts)}",
                        fields=conflicts,
                    )
                rfd = RFD(**payload.model_dump())
                session.add(rfd)

        app_logger.info(f"Inserted RFD {rfd.number} ({rfd.name}) as id={rfd.id}")
        log_performance("rfd.insert", time.perf_counter() - start, number=rfd.number)
        return rfd

    async def upsert_by_number(self, number: int, fields: RecordInput) -> RFD:
        """Insert or fully replace the RFD identified by ``number``.

        ``fields`` is a complete field set; ``number`` may be omitted from it
        but must match when present.

        Raises:
            ValidationError: the field set is invalid, names a different number,
                or its number_string/name belongs to a different record.
            DurabilityError: the write could not be committed.
        """
        data = fields.model_dump() if isinstance(fields, BaseModel) else dict(fields)
        data.setdefault("number", number)
        payload = _validate_record(data)
        if payload.number != number:
            raise ValidationError(
                f"Field set carries number {payload.number} but targets RFD {number}"
            )
        start = time.perf_counter()

        async with self._number_lock(number):
            async with self._transaction(f"upsert RFD {number}", ValidationError) as session:
                result = await session.execute(
                    select(RFD).where(RFD.number == number).with_for_update()
                )
                rfd = result.scalar_one_or_none()

                conflicts = await _find_conflicts(
                    session, payload, exclude_id=rfd.id if rfd is not None else None
                )
                if conflicts:
                    app_logger.warning(
                        f"Rejected upsert of RFD {number}: {', '.join(conflicts)} used by another record"
                    )
                    raise ValidationError(
                        f"RFD {number} would reuse the {', '.join(conflicts)} of another record"
                    )

                values = payload.model_dump()
                if rfd is None:
                    rfd = RFD(**values)
                    session.add(rfd)
                    action = "created"
                else:
                    if rfd.name != payload.name:
                        app_logger.warning(f"RFD {number} renamed from {rfd.name!r} to {payload.name!r}")
                    revision_changed = any(getattr(rfd, f) != values[f] for f in REVISION_FIELDS)
                    for key, value in values.items():
                        setattr(rfd, key, value)
                    action = "updated" if revision_changed else "refreshed"

        app_logger.info(f"Upserted RFD {number} ({action}, sha={rfd.sha})")
        log_performance("rfd.upsert", time.perf_counter() - start, number=number)
        return rfd

    async def get_by_number(self, number: int) -> RFD:
        """Return the RFD with this number or raise NotFoundError."""
        if not _in_range(number):
            raise NotFoundError(number)

        async with self._session_maker() as session:
            result = await session.execute(select(RFD).where(RFD.number == number))
            rfd = result.scalar_one_or_none()

        if rfd is None:
            raise NotFoundError(number)
        return rfd

    def list(self, rfd_filter: Optional[RFDFilter] = None, include_bodies: bool = True) -> RFDListing:
        """Records matching ``rfd_filter`` (all when omitted), ordered by number."""
        return RFDListing(
            self._session_maker,
            rfd_filter or RFDFilter(),
            self.batch_size,
            include_bodies=include_bodies,
        )

    async def page(
        self,
        rfd_filter: Optional[RFDFilter] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[int, List[RFD]]:
        """Count the matching records and return one slice of them without bodies.

        State-only filters are counted and sliced in SQL. Tag filters are
        matched in Python over a body-less scan.
        """
        rfd_filter = rfd_filter or RFDFilter()

        if rfd_filter.milestone is not None or rfd_filter.complaint is not None:
            total = 0
            items: List[RFD] = []
            async for rfd in self.list(rfd_filter, include_bodies=False):
                if offset <= total < offset + limit:
                    items.append(rfd)
                total += 1
            return total, items

        count_stmt = select(func.count()).select_from(RFD)
        page_stmt = (
            select(RFD)
            .options(defer(RFD.html), defer(RFD.content))
            .order_by(RFD.number)
            .offset(offset)
            .limit(limit)
        )
        if rfd_filter.state is not None:
            count_stmt = count_stmt.where(RFD.state == rfd_filter.state)
            page_stmt = page_stmt.where(RFD.state == rfd_filter.state)

        async with self._session_maker() as session:
            total = (await session.execute(count_stmt)).scalar_one()
            result = await session.execute(page_stmt)
            items = list(result.scalars().all())
        return total, items

    async def delete(self, number: int) -> None:
        """Remove the whole record for ``number``."""
        if not _in_range(number):
            raise NotFoundError(number)

        async with self._number_lock(number):
            async with self._transaction(f"delete RFD {number}", ConflictError) as session:
                result = await session.execute(
                    select(RFD).where(RFD.number == number).with_for_update()
                )
                rfd = result.scalar_one_or_none()
                if rfd is None:
                    raise NotFoundError(number)
                await session.delete(rfd)

        app_logger.info(f"Deleted RFD {number}")
