"""The inventory store: the only code that changes an event's ticket count.

A purchase holds the per-event lock and runs check, decrement and record
insert in one transaction, so two purchases of the same event behave as if
they ran one after the other and `ticket_count` never drops below zero.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from loguru import logger
from sqlalchemy import Connection, Engine, delete, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from tigertix.core.config import DATABASE_URL, LOCK_TIMEOUT, TRANSACTION_TIMEOUT
from tigertix.database.db import MAX_ROW_ID, READ_ONLY, Base, make_engine, make_session_factory
from tigertix.models.events import Event
from tigertix.models.purchases import Purchase
from tigertix.services.errors import (
    InsufficientInventoryError,
    InvalidInputError,
    NotFoundError,
    StorageError,
    StorageTimeoutError,
)
from tigertix.services.locks import EventLocker, LocalEventLocker, make_locker
from tigertix.services.snapshots import BookingResult, EventSnapshot, PurchaseRecord


# Statements run this many SQLite VM instructions between deadline checks
PROGRESS_STEPS = 1000


def _require_int(value, field: str, *, minimum: int | None = None, maximum: int | None = None) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{field} must be an integer")
    if minimum is not None and value < minimum:
        raise InvalidInputError(f"{field} must be at least {minimum}")
    if maximum is not None and value > maximum:
        raise InvalidInputError(f"{field} must be at most {maximum}")


def _is_row_id(event_id: int) -> bool:
    """Ids are assigned from 1 and SQLite cannot hold anything past MAX_ROW_ID."""
    return 1 <= event_id <= MAX_ROW_ID


def _require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required")
    return value.strip()


def _is_lock_timeout(exc: OperationalError) -> bool:
    return "locked" in str(exc.orig).lower()


def _is_interrupted(exc: OperationalError) -> bool:
    return "interrupted" in str(exc.orig).lower()


class InventoryStore:
    """
    Owns the event table.

    Construct one per process, share it between request handlers and call
    `close()` at shutdown.
    """

    def __init__(
        self,
        engine: Engine,
        locker: EventLocker | None = None,
        *,
        transaction_timeout: float = TRANSACTION_TIMEOUT,
        lock_timeout: float = LOCK_TIMEOUT,
    ) -> None:
        self._engine = engine
        self._sessions = make_session_factory(engine)
        self._locker = locker or LocalEventLocker()
        self._transaction_timeout = transaction_timeout
        self._lock_timeout = lock_timeout

    @classmethod
    def from_settings(cls) -> InventoryStore:
        engine = make_engine(DATABASE_URL, busy_timeout=TRANSACTION_TIMEOUT)
        Base.metadata.create_all(bind=engine)
        logger.info("Inventory store opened on {}", engine.url.render_as_string(hide_password=True))
        return cls(engine, make_locker())

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Inventory store closed")

    @contextmanager
    def transaction(self, *, read_only: bool = False) -> Iterator[Session]:
        """
        Yield a session inside one transaction.

        Commits only when the block finishes normally within the time budget;
        any exception rolls everything back. SQLAlchemy failures come out as
        StorageError, lock waits and overruns as StorageTimeoutError.

        On SQLite the budget is also enforced while a statement runs: the
        statement is interrupted once the deadline passes. `read_only`
        transactions start with a deferred BEGIN so they do not queue behind
        writers.
        """
        started = time.monotonic()
        deadline = started + self._transaction_timeout
        session = self._sessions()
        try:
            with session.begin():
                conn = session.connection(execution_options={READ_ONLY: True} if read_only else None)
                driver_conn = self._arm_deadline(conn, deadline)
                try:
                    yield session
                finally:
                    if driver_conn is not None:
                        driver_conn.set_progress_handler(None, 0)
                elapsed = time.monotonic() - started
                if elapsed > self._transaction_timeout:
                    logger.warning(
                        "Transaction took {:.3f}s, budget is {}s; rolling back",
                        elapsed,
                        self._transaction_timeout,
                    )
                    raise StorageTimeoutError()
        except OperationalError as exc:
            if _is_lock_timeout(exc):
                logger.warning("Database stayed locked for more than {}s", self._transaction_timeout)
                raise StorageTimeoutError() from exc
            if _is_interrupted(exc):
                logger.warning("Statement interrupted after the {}s budget", self._transaction_timeout)
                raise StorageTimeoutError() from exc
            logger.exception("Storage failure")
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            logger.exception("Storage failure")
            raise StorageError() from exc
        finally:
            session.close()

    def _arm_deadline(self, conn: Connection, deadline: float):
        """Abort SQLite statements still running at `deadline`. Returns the driver connection, if armed."""
        if conn.dialect.name != "sqlite":
            return None
        driver_conn = conn.connection.driver_connection
        driver_conn.set_progress_handler(lambda: time.monotonic() > deadline, PROGRESS_STEPS)
        return driver_conn

    def create(self, name: str, date: str, initial_ticket_count: int) -> int:
        name = _require_text(name, "name")
        date = _require_text(date, "date")
        _require_int(initial_ticket_count, "ticket_count", minimum=0, maximum=MAX_ROW_ID)

        with self.transaction() as session:
            event = Event(name=name, date=date, ticket_count=initial_ticket_count)
            session.add(event)
            session.flush()  # gets event.id
            event_id = event.id

        logger.info("Event {} created with {} tickets", event_id, initial_ticket_count)
        return event_id

    def list(self) -> list[EventSnapshot]:
        """Return all events, most recently created first."""
        with self.transaction(read_only=True) as session:
            events = session.scalars(select(Event).order_by(Event.created_at.desc(), Event.id.desc())).all()
            return [EventSnapshot.from_model(event) for event in events]

    def list_available(self) -> list[EventSnapshot]:
        """Return events that still have tickets, ordered by date."""
        with self.transaction(read_only=True) as session:
            events = session.scalars(
                select(Event).where(Event.ticket_count > 0).order_by(Event.date, Event.id)
            ).all()
            return [EventSnapshot.from_model(event) for event in events]

    def get(self, event_id: int) -> EventSnapshot | None:
        _require_int(event_id, "event_id")
        if not _is_row_id(event_id):
            return None
        with self.transaction(read_only=True) as session:
            event = session.get(Event, event_id)
            return EventSnapshot.from_model(event) if event else None

    def find_by_name(self, name: str) -> EventSnapshot | None:
        """
        Match `name` against events that still have tickets.

        An exact case-insensitive match wins; otherwise the first event whose
        name contains the search, or is contained in it.
        """
        search = _require_text(name, "event_name").lower()
        events = self.list_available()

        for event in events:
            if event.name.lower() == search:
                return event
        for event in events:
            candidate = event.name.lower()
            if search in candidate or candidate in search:
                return event
        return None

    def remove(self, event_id: int) -> bool:
        _require_int(event_id, "event_id")
        if not _is_row_id(event_id):
            logger.info("No event found with id {}", event_id)
            return False
        with self.transaction() as session:
            res = session.execute(
                delete(Event).where(Event.id == event_id).execution_options(synchronize_session=False)
            )
            deleted = res.rowcount > 0  # type: ignore

        if deleted:
            logger.info("Event {} deleted", event_id)
        else:
            logger.info("No event found with id {}", event_id)
        return deleted

    def purchase(self, event_id: int, quantity: int = 1, user_id: int | None = None) -> EventSnapshot:
        """
        Take `quantity` tickets from the event and return its new state.

        Raises:
            InvalidInputError: If event_id or quantity is malformed.
            NotFoundError: If the event does not exist.
            InsufficientInventoryError: If fewer than `quantity` tickets remain.
            StorageError: If the database fails; nothing was changed.
            StorageTimeoutError: If the lock or transaction ran out of time.
        """
        _require_int(event_id, "event_id")
        _require_int(quantity, "quantity", minimum=1)
        if user_id is not None:
            _require_int(user_id, "user_id", minimum=1, maximum=MAX_ROW_ID)
        if not _is_row_id(event_id):
            raise NotFoundError(event_id)

        with self._locker.hold(event_id, timeout=self._lock_timeout):
            with self.transaction() as session:
                event = session.get(Event, event_id)
                if event is None:
                    raise NotFoundError(event_id)
                if event.ticket_count < quantity:
                    logger.info(
                        "Rejected {} ticket(s) for event {}: {} remaining",
                        quantity,
                        event_id,
                        event.ticket_count,
                    )
                    raise InsufficientInventoryError(remaining=event.ticket_count, requested=quantity)

                stmt = (
                    update(Event)
                    .where(Event.id == event_id)
                    .where(Event.ticket_count >= quantity)
                    .values(ticket_count=Event.ticket_count - quantity)
                    .execution_options(synchronize_session=False)
                )
                res = session.execute(stmt)
                if res.rowcount != 1:  # type: ignore
                    # a writer outside the event lock got there first
                    remaining = session.scalar(select(Event.ticket_count).where(Event.id == event_id))
                    if remaining is None:
                        raise NotFoundError(event_id)
                    raise InsufficientInventoryError(remaining=remaining, requested=quantity)

                if user_id is not None:
                    self._record_purchase(session, event_id=event_id, user_id=user_id, quantity=quantity)

                session.refresh(event)
                snapshot = EventSnapshot.from_model(event)

        logger.info(
            "Purchased {} ticket(s) for event {}; {} remaining",
            quantity,
            event_id,
            snapshot.ticket_count,
        )
        return snapshot

    def book_by_name(self, name: str, quantity: int = 1, user_id: int | None = None) -> BookingResult:
        """Resolve an event by name and purchase tickets for it."""
        event = self.find_by_name(name)
        if event is None:
            raise NotFoundError(event_name=name)

        updated = self.purchase(event.id, quantity, user_id)
        return BookingResult(
            event_id=updated.id,
            event_name=updated.name,
            tickets_booked=quantity,
            remaining_tickets=updated.ticket_count,
        )

    def purchases_for(self, event_id: int) -> list[PurchaseRecord]:
        _require_int(event_id, "event_id")
        if not _is_row_id(event_id):
            return []
        with self.transaction(read_only=True) as session:
            purchases = session.scalars(
                select(Purchase).where(Purchase.event_id == event_id).order_by(Purchase.id)
            ).all()
            return [PurchaseRecord.from_model(purchase) for purchase in purchases]

    def _record_purchase(self, session: Session, *, event_id: int, user_id: int, quantity: int) -> None:
        session.add(Purchase(event_id=event_id, user_id=user_id, quantity=quantity))
        session.flush()


def get_store(request: Request) -> InventoryStore:
    return request.app.state.store
