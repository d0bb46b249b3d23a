"""
Authorization table: who may select, insert, update and delete which rows
"""
import pytest

from app.core.exceptions import NotFoundError, PolicyViolationError
from app.core.policy import Action, policy_engine
from app.models.chat import Conversation, Message
from app.models.enums import NotificationType
from app.models.notification import Notification
from app.models.profile import Profile
from app.models.social import Friendship
from app.services.chat_service import chat_service
from app.services.social_service import social_service


@pytest.fixture
def conversation(db, alice, bob):
    return chat_service.get_or_create_conversation(db, alice.id, alice.id, bob.id)


class TestProfilePolicy:

    def test_owner_may_update(self, db, alice):
        profile = db.query(Profile).filter(Profile.user_id == alice.id).one()
        assert policy_engine.is_allowed(db, alice.id, Action.UPDATE, profile)

    def test_others_may_not_update_even_when_visible(self, db, alice, bob):
        social_service.send_friend_request(db, alice.id, bob.id)
        profile = db.query(Profile).filter(Profile.user_id == bob.id).one()

        assert policy_engine.is_allowed(db, alice.id, Action.SELECT, profile)
        with pytest.raises(NotFoundError):
            policy_engine.authorize(db, alice.id, Action.UPDATE, profile)

    def test_profiles_are_never_deleted(self, db, alice):
        profile = db.query(Profile).filter(Profile.user_id == alice.id).one()
        assert not policy_engine.is_allowed(db, alice.id, Action.DELETE, profile)

    def test_insert_for_someone_else_is_rejected(self, db, alice, make_user):
        other = make_user()
        with pytest.raises(PolicyViolationError):
            policy_engine.authorize(db, alice.id, Action.INSERT, Profile(user_id=other.id, username="imposter"))


class TestFriendshipPolicy:

    def test_only_parties_see_the_row(self, db, alice, bob, carol):
        request = social_service.send_friend_request(db, alice.id, bob.id)

        assert policy_engine.get_visible(db, alice.id, Friendship, request.id) is not None
        assert policy_engine.get_visible(db, bob.id, Friendship, request.id) is not None
        assert policy_engine.get_visible(db, carol.id, Friendship, request.id) is None

    def test_insert_requires_caller_as_requester(self, db, alice, bob, carol):
        row = Friendship(requester_id=bob.id, addressee_id=carol.id)
        with pytest.raises(PolicyViolationError):
            policy_engine.authorize(db, alice.id, Action.INSERT, row)

    def test_either_party_may_update_and_delete(self, db, alice, bob, carol):
        request = social_service.send_friend_request(db, alice.id, bob.id)
        for caller in (alice.id, bob.id):
            assert policy_engine.is_allowed(db, caller, Action.UPDATE, request)
            assert policy_engine.is_allowed(db, caller, Action.DELETE, request)
        with pytest.raises(NotFoundError):
            policy_engine.authorize(db, carol.id, Action.DELETE, request)


class TestConversationPolicy:

    def test_participants_only(self, db, alice, bob, carol, conversation):
        assert policy_engine.scoped(db, alice.id, Conversation).count() == 1
        assert policy_engine.scoped(db, bob.id, Conversation).count() == 1
        assert policy_engine.scoped(db, carol.id, Conversation).count() == 0

    def test_conversations_are_never_updated(self, db, alice, conversation):
        assert not policy_engine.is_allowed(db, alice.id, Action.UPDATE, conversation)

    def test_insert_requires_caller_as_participant(self, db, alice, bob, carol):
        row = Conversation(participant1_id=bob.id, participant2_id=carol.id)
        with pytest.raises(PolicyViolationError):
            policy_engine.authorize(db, alice.id, Action.INSERT, row)


class TestMessagePolicy:

    def test_visible_to_participants(self, db, alice, bob, carol, conversation):
        chat_service.send_message(db, alice.id, conversation.id, content="hello")

        assert policy_engine.scoped(db, bob.id, Message).count() == 1
        assert policy_engine.scoped(db, carol.id, Message).count() == 0

    def test_insert_requires_sender_to_be_caller(self, db, alice, bob, conversation):
        forged = Message(conversation_id=conversation.id, sender_id=bob.id, content="not me")
        with pytest.raises(PolicyViolationError):
            policy_engine.authorize(db, alice.id, Action.INSERT, forged)

    def test_only_sender_updates(self, db, alice, bob, conversation):
        message = chat_service.send_message(db, alice.id, conversation.id, content="hello")
        assert policy_engine.is_allowed(db, alice.id, Action.UPDATE, message)
        assert not policy_engine.is_allowed(db, bob.id, Action.UPDATE, message)

    def test_messages_are_never_deleted(self, db, alice, conversation):
        message = chat_service.send_message(db, alice.id, conversation.id, content="hello")
        assert not policy_engine.is_allowed(db, alice.id, Action.DELETE, message)


class TestNotificationPolicy:

    def test_recipient_only(self, db, alice, bob):
        social_service.send_friend_request(db, alice.id, bob.id)

        assert policy_engine.scoped(db, bob.id, Notification).count() == 1
        assert policy_engine.scoped(db, alice.id, Notification).count() == 0

    def test_insert_requires_caller_as_originator(self, db, alice, bob, carol):
        row = Notification(user_id=bob.id, type=NotificationType.FRIEND_REQUEST, from_user_id=carol.id)
        with pytest.raises(PolicyViolationError):
            policy_engine.authorize(db, alice.id, Action.INSERT, row)

    def test_originator_cannot_touch_delivered_notification(self, db, alice, bob):
        social_service.send_friend_request(db, alice.id, bob.id)
        notification = db.query(Notification).one()

        with pytest.raises(NotFoundError):
            policy_engine.authorize(db, alice.id, Action.UPDATE, notification)
        with pytest.raises(NotFoundError):
            policy_engine.authorize(db, alice.id, Action.DELETE, notification)


def test_unregistered_model():
    with pytest.raises(LookupError):
        policy_engine.policy_for(object)
