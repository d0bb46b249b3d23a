"""
Social service for managing friends and friend requests

Friendship rows move through pending -> accepted, pending -> (deleted) and
any state -> blocked. Blocked is terminal.
"""
import logging
from typing import Dict, List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import or_, and_

from app.core.exceptions import (
    ConstraintViolationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.policy import Action, PolicyEngine, policy_engine
from app.database import write_transaction
from app.models.chat import Conversation, Message
from app.models.enums import FriendshipStatus, NotificationType
from app.models.notification import Notification
from app.models.profile import Profile
from app.models.social import Friendship, canonical_pair
from app.models.user import User
from app.schemas.social import (
    FriendInfo,
    FriendWithRequestInfo,
    FriendListResponse,
    FriendRequestWithUser,
    LastMessagePreview,
    PendingRequestsResponse,
)
from app.services.profile_service import profile_service
from app.services.realtime_service import ChangeOperation, change_feed

logger = logging.getLogger(__name__)


def between(user_id: UUID, other_id: UUID):
    """Friendship rows for the pair, in either direction"""
    return or_(
        and_(Friendship.requester_id == user_id, Friendship.addressee_id == other_id),
        and_(Friendship.requester_id == other_id, Friendship.addressee_id == user_id)
    )


def friend_info(user_id: UUID, profile: Optional[Profile]) -> FriendInfo:
    if profile is None:
        return FriendInfo(user_id=user_id)
    return FriendInfo(
        user_id=user_id,
        username=profile.username,
        avatar_url=profile.avatar_url,
        bio=profile.bio
    )


class SocialService:
    """Service for social/friend operations"""

    def __init__(self, policy: PolicyEngine = policy_engine):
        self.policy = policy

    def _get_request(self, db: Session, user_id: UUID, request_id: UUID) -> Friendship:
        friendship = self.policy.get_visible(db, user_id, Friendship, request_id)
        if not friendship:
            raise NotFoundError("Friend request not found")
        return friendship

    def _require_pending(self, friendship: Friendship) -> None:
        if friendship.status != FriendshipStatus.PENDING:
            raise InvalidTransitionError(f"Friend request is already {friendship.status.value}")

    def send_friend_request(self, db: Session, user_id: UUID, addressee_id: UUID) -> Friendship:
        """
        Send a friend request.

        Inserts the pending row and the addressee's friend_request
        notification in one transaction.
        """
        if addressee_id == user_id:
            raise ValidationError("Cannot send friend request to yourself")

        if db.query(User.id).filter(User.id == addressee_id).first() is None:
            raise NotFoundError("User not found")

        # Check both orderings before inserting
        existing = self.policy.scoped(db, user_id, Friendship).filter(
            between(user_id, addressee_id)
        ).first()

        if existing:
            if existing.status == FriendshipStatus.ACCEPTED:
                raise ConstraintViolationError("Already friends")
            elif existing.status == FriendshipStatus.PENDING:
                raise ConstraintViolationError("Friend request already pending")
            raise ConstraintViolationError("Unable to send friend request")

        friendship = Friendship(
            requester_id=user_id,
            addressee_id=addressee_id,
            status=FriendshipStatus.PENDING
        )
        self.policy.authorize(db, user_id, Action.INSERT, friendship)

        with write_transaction(db, "Friendship already exists"):
            db.add(friendship)
            change_feed.stage(db, ChangeOperation.INSERT, friendship)

            notification = Notification(
                user_id=addressee_id,
                type=NotificationType.FRIEND_REQUEST,
                from_user_id=user_id,
                friendship_id=friendship.id
            )
            self.policy.authorize(db, user_id, Action.INSERT, notification)
            db.add(notification)
            change_feed.stage(db, ChangeOperation.INSERT, notification)
        db.refresh(friendship)

        logger.info(f"Friend request {friendship.id}: {user_id} -> {addressee_id}")
        return friendship

    def respond_to_friend_request(
        self,
        db: Session,
        user_id: UUID,
        request_id: UUID,
        accept: bool
    ) -> Optional[Friendship]:
        """
        Accept or decline a pending request addressed to the caller.

        The caller's notifications about the request are marked read first.
        Accepting returns the updated row; declining deletes it and returns
        None.
        """
        friendship = self._get_request(db, user_id, request_id)
        if friendship.addressee_id != user_id:
            raise InvalidTransitionError("Only the addressee can respond to a friend request")
        self._require_pending(friendship)
        self.policy.authorize(db, user_id, Action.UPDATE if accept else Action.DELETE, friendship)

        with write_transaction(db, "Friend request could not be updated"):
            notifications = self.policy.scoped(db, user_id, Notification).filter(
                Notification.friendship_id == friendship.id
            ).all()
            for notification in notifications:
                if not notification.is_read:
                    notification.is_read = True
                    change_feed.stage(db, ChangeOperation.UPDATE, notification)
            db.flush()

            if accept:
                friendship.status = FriendshipStatus.ACCEPTED
                change_feed.stage(db, ChangeOperation.UPDATE, friendship)
            else:
                # Notifications go with the row (ON DELETE CASCADE)
                for notification in notifications:
                    change_feed.stage(db, ChangeOperation.DELETE, notification)
                change_feed.stage(db, ChangeOperation.DELETE, friendship)
                db.delete(friendship)

        if not accept:
            logger.info(f"Friend request {request_id} declined by {user_id}")
            return None

        db.refresh(friendship)
        logger.info(f"Friend request {request_id} accepted by {user_id}")
        return friendship

    def cancel_friend_request(
        self,
        db: Session,
        user_id: UUID,
        request_id: UUID
    ) -> bool:
        """Cancel a sent friend request"""
        friendship = self._get_request(db, user_id, request_id)
        if friendship.requester_id != user_id:
            raise InvalidTransitionError("Only the requester can cancel a friend request")
        self._require_pending(friendship)
        self.policy.authorize(db, user_id, Action.DELETE, friendship)

        with write_transaction(db, "Friend request could not be cancelled"):
            change_feed.stage(db, ChangeOperation.DELETE, friendship)
            db.delete(friendship)

        logger.info(f"Friend request {request_id} cancelled by {user_id}")
        return True

    def remove_friendship(
        self,
        db: Session,
        user_id: UUID,
        friend_id: UUID
    ) -> bool:
        """Unfriend; the pair's conversations and their messages go too"""
        friendship = self.get_relationship(db, user_id, friend_id)
        if not friendship:
            raise NotFoundError("Friendship not found")
        if friendship.status != FriendshipStatus.ACCEPTED:
            raise InvalidTransitionError(f"Cannot remove a {friendship.status.value} friendship")
        self.policy.authorize(db, user_id, Action.DELETE, friendship)

        low, high = canonical_pair(user_id, friend_id)
        conversations = self.policy.scoped(db, user_id, Conversation).filter(
            Conversation.pair_low == low,
            Conversation.pair_high == high
        ).all()

        with write_transaction(db, "Friendship could not be removed"):
            for conversation in conversations:
                self.policy.authorize(db, user_id, Action.DELETE, conversation)
                change_feed.stage(db, ChangeOperation.DELETE, conversation)
                db.delete(conversation)
            change_feed.stage(db, ChangeOperation.DELETE, friendship)
            db.delete(friendship)

        logger.info(
            f"Friendship {user_id} <-> {friend_id} removed "
            f"with {len(conversations)} conversation(s)"
        )
        return True

    def block_user(self, db: Session, user_id: UUID, other_id: UUID) -> Friendship:
        """Set every friendship row for the pair to blocked"""
        if other_id == user_id:
            raise ValidationError("Cannot block yourself")

        friendships = self.policy.scoped(db, user_id, Friendship).filter(
            between(user_id, other_id)
        ).all()
        if not friendships:
            raise NotFoundError("Friendship not found")

        with write_transaction(db, "Friendship could not be blocked"):
            for friendship in friendships:
                self.policy.authorize(db, user_id, Action.UPDATE, friendship)
                if friendship.status == FriendshipStatus.BLOCKED:
                    continue
                friendship.status = FriendshipStatus.BLOCKED
                change_feed.stage(db, ChangeOperation.UPDATE, friendship)

        logger.info(f"User {other_id} blocked by {user_id}")
        db.refresh(friendships[0])
        return friendships[0]

    def get_relationship(self, db: Session, user_id: UUID, other_id: UUID) -> Optional[Friendship]:
        """The friendship row for the pair, if any"""
        return self.policy.scoped(db, user_id, Friendship).filter(
            between(user_id, other_id)
        ).first()

    def _last_message(self, db: Session, user_id: UUID, conversation_id: UUID) -> Optional[LastMessagePreview]:
        message = self.policy.scoped(db, user_id, Message).filter(
            Message.conversation_id == conversation_id
        ).order_by(Message.created_at.desc()).first()
        if not message:
            return None
        return LastMessagePreview(
            id=message.id,
            sender_id=message.sender_id,
            content=message.content,
            media_type=message.media_type,
            created_at=message.created_at
        )

    def get_friends(self, db: Session, user_id: UUID) -> FriendListResponse:
        """Accepted friends, most recent conversation first"""
        friendships = self.policy.scoped(db, user_id, Friendship).filter(
            Friendship.status == FriendshipStatus.ACCEPTED
        ).all()

        friend_ids = [fs.other_party(user_id) for fs in friendships]
        profiles = profile_service.get_profiles(db, user_id, friend_ids)

        conversations: Dict[tuple, Conversation] = {}
        if friend_ids:
            rows = self.policy.scoped(db, user_id, Conversation).filter(
                or_(
                    Conversation.participant1_id.in_(friend_ids),
                    Conversation.participant2_id.in_(friend_ids)
                )
            ).all()
            conversations = {(c.pair_low, c.pair_high): c for c in rows}

        friends = []
        for fs in friendships:
            friend_id = fs.other_party(user_id)
            conversation = conversations.get(canonical_pair(user_id, friend_id))
            friends.append(FriendWithRequestInfo(
                friend=friend_info(friend_id, profiles.get(friend_id)),
                friendship_id=fs.id,
                since=fs.updated_at or fs.created_at,
                conversation_id=conversation.id if conversation else None,
                last_message=self._last_message(db, user_id, conversation.id) if conversation else None
            ))

        friends.sort(
            key=lambda f: f.last_message.created_at if f.last_message else f.since,
            reverse=True
        )

        return FriendListResponse(
            friends=friends,
            total_count=len(friends)
        )

    def get_pending_requests(
        self,
        db: Session,
        user_id: UUID
    ) -> PendingRequestsResponse:
        """Get pending friend requests (both incoming and outgoing)"""
        pending = self.policy.scoped(db, user_id, Friendship).filter(
            Friendship.status == FriendshipStatus.PENDING
        ).order_by(Friendship.created_at.desc()).all()

        profiles = profile_service.get_profiles(db, user_id, [fs.other_party(user_id) for fs in pending])

        incoming_requests = []
        outgoing_requests = []
        for fs in pending:
            other_id = fs.other_party(user_id)
            request = FriendRequestWithUser(
                request_id=fs.id,
                user=friend_info(other_id, profiles.get(other_id)),
                status=fs.status,
                created_at=fs.created_at
            )
            if fs.addressee_id == user_id:
                incoming_requests.append(request)
            else:
                outgoing_requests.append(request)

        return PendingRequestsResponse(
            incoming=incoming_requests,
            outgoing=outgoing_requests,
            incoming_count=len(incoming_requests),
            outgoing_count=len(outgoing_requests)
        )


social_service = SocialService()
