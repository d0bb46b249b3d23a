"""
Notification service - the recipient's view of their notifications
"""
import logging
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.core.policy import Action, PolicyEngine, policy_engine
from app.database import write_transaction
from app.models.notification import Notification
from app.schemas.notification import NotificationResponse
from app.services.profile_service import profile_service
from app.services.realtime_service import ChangeOperation, change_feed
from app.services.social_service import friend_info

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for reading and acknowledging notifications"""

    def __init__(self, policy: PolicyEngine = policy_engine):
        self.policy = policy

    def _get(self, db: Session, user_id: UUID, notification_id: UUID) -> Notification:
        notification = self.policy.get_visible(db, user_id, Notification, notification_id)
        if not notification:
            raise NotFoundError("Notification not found")
        return notification

    def list_unread_notifications(self, db: Session, user_id: UUID) -> List[NotificationResponse]:
        """Unread notifications for the caller, newest first"""
        notifications = self.policy.scoped(db, user_id, Notification).filter(
            Notification.is_read.is_(False)
        ).order_by(Notification.created_at.desc()).all()

        senders = [n.from_user_id for n in notifications if n.from_user_id]
        profiles = profile_service.get_profiles(db, user_id, senders)

        results = []
        for notification in notifications:
            response = NotificationResponse.model_validate(notification)
            profile = profiles.get(notification.from_user_id)
            if profile is not None:
                response.from_user = friend_info(notification.from_user_id, profile)
            results.append(response)
        return results

    def mark_notification_read(self, db: Session, user_id: UUID, notification_id: UUID) -> Notification:
        notification = self._get(db, user_id, notification_id)
        self.policy.authorize(db, user_id, Action.UPDATE, notification)

        if not notification.is_read:
            with write_transaction(db, "Notification could not be updated"):
                notification.is_read = True
                change_feed.stage(db, ChangeOperation.UPDATE, notification)
            db.refresh(notification)
        return notification

    def mark_all_read(self, db: Session, user_id: UUID) -> int:
        """Mark every unread notification of the caller as read"""
        notifications = self.policy.scoped(db, user_id, Notification).filter(
            Notification.is_read.is_(False)
        ).all()

        with write_transaction(db, "Notifications could not be updated"):
            for notification in notifications:
                self.policy.authorize(db, user_id, Action.UPDATE, notification)
                notification.is_read = True
                change_feed.stage(db, ChangeOperation.UPDATE, notification)

        logger.info(f"Marked {len(notifications)} notification(s) read for {user_id}")
        return len(notifications)

    def delete_notification(self, db: Session, user_id: UUID, notification_id: UUID) -> bool:
        notification = self._get(db, user_id, notification_id)
        self.policy.authorize(db, user_id, Action.DELETE, notification)

        with write_transaction(db, "Notification could not be deleted"):
            change_feed.stage(db, ChangeOperation.DELETE, notification)
            db.delete(notification)

        logger.info(f"Notification {notification_id} deleted by {user_id}")
        return True


notification_service = NotificationService()
