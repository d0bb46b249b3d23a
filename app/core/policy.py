"""
Row-level authorization policy

One TablePolicy per model decides, for a caller identity, which rows are
visible (``select``, an SQL predicate) and which writes are allowed
(``insert`` / ``update`` / ``delete``, row predicates). Every service reads
through ``PolicyEngine.scoped`` and checks writes with
``PolicyEngine.authorize``; nothing else decides access.

    table          select                        insert                    update             delete
    profiles       owner or any friendship row   owner                     owner              -
    friendships    requester or addressee        requester                 either party       either party
    conversations  participant                   participant               -                  participant
    messages       participant of conversation   sender and participant    sender             -
    notifications  recipient                     originator (from_user)    recipient          recipient

A denied read is indistinguishable from a missing row. A denied insert is a
rejected write (PolicyViolationError); a denied update/delete is reported
as NotFoundError so it leaks nothing about the row.
"""
import logging
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, exists, false, or_
from sqlalchemy.orm import Query, Session

from app.core.exceptions import NotFoundError, PolicyViolationError
from app.models.chat import Conversation, Message
from app.models.notification import Notification
from app.models.profile import Profile
from app.models.social import Friendship

logger = logging.getLogger(__name__)


class Action(str, Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def any_friendship_between(caller_id: UUID, other_id_column):
    """EXISTS a friendship row (any status) between the caller and the given column"""
    return exists().where(
        or_(
            and_(Friendship.requester_id == caller_id, Friendship.addressee_id == other_id_column),
            and_(Friendship.addressee_id == caller_id, Friendship.requester_id == other_id_column),
        )
    )


def is_conversation_participant(caller_id: UUID, conversation_id_column):
    return exists().where(
        Conversation.id == conversation_id_column,
        or_(Conversation.participant1_id == caller_id, Conversation.participant2_id == caller_id),
    )


class TablePolicy:
    """Default policy: nothing is visible and no write is allowed"""
    model = None

    def select(self, caller_id: UUID):
        return false()

    def insert(self, db: Session, caller_id: UUID, row) -> bool:
        return False

    def update(self, db: Session, caller_id: UUID, row) -> bool:
        return False

    def delete(self, db: Session, caller_id: UUID, row) -> bool:
        return False


class ProfilePolicy(TablePolicy):
    model = Profile

    def select(self, caller_id):
        # Any relationship row counts, whatever its status
        return or_(
            Profile.user_id == caller_id,
            any_friendship_between(caller_id, Profile.user_id),
        )

    def insert(self, db, caller_id, row):
        return row.user_id == caller_id

    def update(self, db, caller_id, row):
        return row.user_id == caller_id


class FriendshipPolicy(TablePolicy):
    model = Friendship

    def select(self, caller_id):
        return or_(Friendship.requester_id == caller_id, Friendship.addressee_id == caller_id)

    def insert(self, db, caller_id, row):
        return row.requester_id == caller_id

    def update(self, db, caller_id, row):
        return row.involves(caller_id)

    def delete(self, db, caller_id, row):
        return row.involves(caller_id)


class ConversationPolicy(TablePolicy):
    model = Conversation

    def select(self, caller_id):
        return or_(Conversation.participant1_id == caller_id, Conversation.participant2_id == caller_id)

    def insert(self, db, caller_id, row):
        return row.has_participant(caller_id)

    def delete(self, db, caller_id, row):
        return row.has_participant(caller_id)


class MessagePolicy(TablePolicy):
    model = Message

    def select(self, caller_id):
        return is_conversation_participant(caller_id, Message.conversation_id)

    def insert(self, db, caller_id, row):
        if row.sender_id != caller_id:
            return False
        return db.query(
            is_conversation_participant(caller_id, row.conversation_id)
        ).scalar()

    def update(self, db, caller_id, row):
        return row.sender_id == caller_id


class NotificationPolicy(TablePolicy):
    model = Notification

    def select(self, caller_id):
        return Notification.user_id == caller_id

    def insert(self, db, caller_id, row):
        return row.from_user_id == caller_id

    def update(self, db, caller_id, row):
        return row.user_id == caller_id

    def delete(self, db, caller_id, row):
        return row.user_id == caller_id


class PolicyEngine:
    """Evaluates the policy table for (caller, action, row)"""

    def __init__(self, *policies: TablePolicy):
        self._policies = {policy.model: policy for policy in policies}

    def policy_for(self, model) -> TablePolicy:
        try:
            return self._policies[model]
        except KeyError:
            raise LookupError(f"No policy registered for {model.__name__}")

    def scoped(self, db: Session, caller_id: UUID, model) -> Query:
        """Query over ``model`` restricted to the rows the caller may select"""
        return db.query(model).filter(self.policy_for(model).select(caller_id))

    def get_visible(self, db: Session, caller_id: UUID, model, row_id) -> Optional[object]:
        return self.scoped(db, caller_id, model).filter(model.id == row_id).first()

    def is_allowed(self, db: Session, caller_id: UUID, action: Action, row) -> bool:
        policy = self.policy_for(type(row))
        if action == Action.SELECT:
            model = type(row)
            return db.query(
                exists().where(model.id == row.id, policy.select(caller_id))
            ).scalar()
        check = getattr(policy, action.value)
        return bool(check(db, caller_id, row))

    def authorize(self, db: Session, caller_id: UUID, action: Action, row) -> None:
        """Raise unless the caller may perform ``action`` on ``row``"""
        if self.is_allowed(db, caller_id, action, row):
            return
        table = type(row).__tablename__
        logger.info(f"Policy denied {action.value} on {table} for {caller_id}")
        if action == Action.INSERT:
            raise PolicyViolationError(f"New row violates the {table} policy")
        raise NotFoundError(f"{type(row).__name__} not found")


policy_engine = PolicyEngine(
    ProfilePolicy(),
    FriendshipPolicy(),
    ConversationPolicy(),
    MessagePolicy(),
    NotificationPolicy(),
)
