"""
Realtime change feed

Services stage row changes on the session they write with. The changes are
handed to subscribers only after that session commits; a rollback drops
them. Delivery to clients (websocket, push) belongs to the subscribers.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from app.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

_PENDING_KEY = "pending_changes"


class ChangeOperation(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class ChangeEvent:
    """A committed change to one row"""
    table: str
    operation: ChangeOperation
    record: Dict[str, Any]
    committed_at: Any = field(default_factory=utc_now)


Subscriber = Callable[[ChangeEvent], None]


def row_snapshot(row) -> Dict[str, Any]:
    """Column values of an ORM row, keyed by column name"""
    mapper = inspect(row).mapper
    return {column.key: getattr(row, column.key) for column in mapper.column_attrs}


class ChangeFeed:
    """Publishes committed row changes to in-process subscribers"""

    def __init__(self):
        self._subscribers: Dict[Optional[str], List[Subscriber]] = {}

    def subscribe(self, callback: Subscriber, table: Optional[str] = None) -> Callable[[], None]:
        """
        Register ``callback`` for changes on ``table`` (all tables when None).

        Returns a function that removes the subscription.
        """
        self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(table, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def stage(self, db: Session, operation: ChangeOperation, row) -> None:
        """Queue a change on ``db``; it is published when ``db`` commits"""
        if operation != ChangeOperation.DELETE:
            # Generated keys and onupdate timestamps must be in the snapshot
            db.flush()
        change = ChangeEvent(
            table=row.__tablename__,
            operation=operation,
            record=row_snapshot(row),
        )
        db.info.setdefault(_PENDING_KEY, []).append(change)

    def publish(self, change: ChangeEvent) -> None:
        callbacks = self._subscribers.get(change.table, []) + self._subscribers.get(None, [])
        for callback in list(callbacks):
            try:
                callback(change)
            except Exception:
                # A failing subscriber must not undo a committed write
                logger.exception(f"Change subscriber failed for {change.table} {change.operation.value}")

    def flush_committed(self, db: Session) -> None:
        changes = db.info.pop(_PENDING_KEY, [])
        for change in changes:
            self.publish(change)
        if changes:
            logger.debug(f"Published {len(changes)} committed change(s)")

    def discard(self, db: Session) -> None:
        dropped = db.info.pop(_PENDING_KEY, [])
        if dropped:
            logger.debug(f"Discarded {len(dropped)} change(s) after rollback")


change_feed = ChangeFeed()


@event.listens_for(Session, "after_commit")
def _publish_after_commit(session):
    change_feed.flush_committed(session)


@event.listens_for(Session, "after_rollback")
def _discard_after_rollback(session):
    change_feed.discard(session)
