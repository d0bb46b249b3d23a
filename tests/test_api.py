"""
HTTP surface: authentication, error mapping and the main flows end to end
"""
import pytest

from app.core.config import settings
from app.services.storage_service import MEGABYTE

API = "/api/v1"


@pytest.fixture
def ids(alice, bob, carol):
    return {"alice": str(alice.id), "bob": str(bob.id), "carol": str(carol.id)}


class TestService:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["status"] == "running"


class TestAuthentication:

    def test_missing_token(self, client):
        assert client.get(f"{API}/profiles/me").status_code == 401

    def test_garbage_token(self, client):
        response = client.get(f"{API}/profiles/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_me(self, client, alice, auth_headers):
        response = client.get(f"{API}/auth/me", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["id"] == str(alice.id)


class TestProfilesApi:

    def test_my_profile(self, client, alice, auth_headers):
        response = client.get(f"{API}/profiles/me", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    def test_create_profile(self, client, make_user, auth_headers):
        user = make_user()
        headers = auth_headers(user)

        response = client.post(f"{API}/profiles", json={"username": "New_User!"}, headers=headers)
        assert response.status_code == 201
        assert response.json()["username"] == "new_user"

        again = client.post(f"{API}/profiles", json={"username": "another"}, headers=headers)
        assert again.status_code == 409

    def test_short_username_is_422(self, client, make_user, auth_headers):
        user = make_user()
        response = client.post(f"{API}/profiles", json={"username": "x!"}, headers=auth_headers(user))
        assert response.status_code == 422

    def test_update_profile(self, client, alice, bob, auth_headers):
        headers = auth_headers(alice)

        response = client.put(f"{API}/profiles/me", json={"bio": "hi there", "gender": "female"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["bio"] == "hi there"
        assert response.json()["gender"] == "female"

        taken = client.put(f"{API}/profiles/me", json={"username": "BOB"}, headers=headers)
        assert taken.status_code == 409

        bad_gender = client.put(f"{API}/profiles/me", json={"gender": "robot"}, headers=headers)
        assert bad_gender.status_code == 422

    def test_stranger_profile_is_404(self, client, alice, ids, auth_headers):
        response = client.get(f"{API}/profiles/{ids['bob']}", headers=auth_headers(alice))
        assert response.status_code == 404
        assert response.json()["detail"] == "Profile not found"

    def test_search(self, client, alice, ids, auth_headers):
        response = client.get(f"{API}/profiles/search", params={"q": "BO"}, headers=auth_headers(alice))
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["results"][0]["user_id"] == ids["bob"]
        assert "gender" not in body["results"][0]

    def test_avatar_upload(self, client, alice, storage, auth_headers):
        response = client.post(
            f"{API}/profiles/me/avatar",
            files={"file": ("me.png", b"\x89PNG", "image/png")},
            headers=auth_headers(alice)
        )
        assert response.status_code == 200
        assert response.json()["avatar_url"] == f"/media/chat-media/{alice.id}/avatar.png"

    def test_avatar_one_byte_over_limit_is_422(self, client, alice, storage, auth_headers):
        response = client.post(
            f"{API}/profiles/me/avatar",
            files={"file": ("big.png", b"x" * (5 * MEGABYTE + 1), "image/png")},
            headers=auth_headers(alice)
        )
        assert response.status_code == 422
        assert response.json()["detail"] == "File size must be less than 5MB"
        assert not storage.path_for(f"{alice.id}/avatar.png").exists()

    def test_avatar_must_be_image(self, client, alice, storage, auth_headers):
        response = client.post(
            f"{API}/profiles/me/avatar",
            files={"file": ("notes.txt", b"text", "text/plain")},
            headers=auth_headers(alice)
        )
        assert response.status_code == 422


class TestFriendshipApi:

    def test_request_accept_flow(self, client, alice, bob, ids, auth_headers):
        as_alice, as_bob = auth_headers(alice), auth_headers(bob)

        sent = client.post(f"{API}/social/friends/request", json={"addressee_id": ids["bob"]}, headers=as_alice)
        assert sent.status_code == 201
        request_id = sent.json()["friendship_id"]

        duplicate = client.post(f"{API}/social/friends/request", json={"addressee_id": ids["alice"]}, headers=as_bob)
        assert duplicate.status_code == 409

        incoming = client.get(f"{API}/social/requests", headers=as_bob).json()
        assert incoming["incoming"][0]["request_id"] == request_id

        notifications = client.get(f"{API}/notifications", headers=as_bob).json()
        assert notifications["unread_count"] == 1
        assert notifications["notifications"][0]["from_user"]["username"] == "alice"

        accepted = client.post(f"{API}/social/friends/respond/{request_id}", json={"accept": True}, headers=as_bob)
        assert accepted.status_code == 200
        assert accepted.json()["status"] == "accepted"

        assert client.get(f"{API}/notifications", headers=as_bob).json()["unread_count"] == 0
        friends = client.get(f"{API}/social/friends", headers=as_alice).json()
        assert [f["friend"]["username"] for f in friends["friends"]] == ["bob"]

        relationship = client.get(f"{API}/social/relationship/{ids['alice']}", headers=as_bob).json()
        assert relationship["status"] == "accepted"

    def test_requester_cannot_accept(self, client, alice, ids, auth_headers):
        as_alice = auth_headers(alice)
        sent = client.post(f"{API}/social/friends/request", json={"addressee_id": ids["bob"]}, headers=as_alice)
        request_id = sent.json()["friendship_id"]

        response = client.post(f"{API}/social/friends/respond/{request_id}", json={"accept": True}, headers=as_alice)
        assert response.status_code == 409

    def test_self_request_is_422(self, client, alice, ids, auth_headers):
        response = client.post(
            f"{API}/social/friends/request", json={"addressee_id": ids["alice"]}, headers=auth_headers(alice)
        )
        assert response.status_code == 422

    def test_block_and_remove(self, client, alice, bob, ids, auth_headers):
        as_alice, as_bob = auth_headers(alice), auth_headers(bob)
        assert client.post(f"{API}/social/block/{ids['bob']}", headers=as_alice).status_code == 404

        client.post(f"{API}/social/friends/request", json={"addressee_id": ids["bob"]}, headers=as_alice)
        blocked = client.post(f"{API}/social/block/{ids['alice']}", headers=as_bob)
        assert blocked.status_code == 200
        assert blocked.json()["status"] == "blocked"

        assert client.delete(f"{API}/social/friends/{ids['bob']}", headers=as_alice).status_code == 409

    def test_unknown_relationship_is_404(self, client, alice, ids, auth_headers):
        response = client.get(f"{API}/social/relationship/{ids['carol']}", headers=auth_headers(alice))
        assert response.status_code == 404


class TestConversationApi:

    def test_conversation_flow(self, client, alice, bob, carol, ids, auth_headers):
        as_alice, as_bob, as_carol = auth_headers(alice), auth_headers(bob), auth_headers(carol)

        opened = client.post(f"{API}/conversations/with/{ids['bob']}", headers=as_alice)
        assert opened.status_code == 200
        conversation_id = opened.json()["id"]
        reopened = client.post(f"{API}/conversations/with/{ids['alice']}", headers=as_bob)
        assert reopened.json()["id"] == conversation_id

        intruder = client.post(
            f"{API}/conversations/{conversation_id}/messages", json={"content": "hi"}, headers=as_carol
        )
        assert intruder.status_code == 403

        sent = client.post(
            f"{API}/conversations/{conversation_id}/messages", json={"content": "  hi bob "}, headers=as_alice
        )
        assert sent.status_code == 201
        message_id = sent.json()["id"]
        assert sent.json()["content"] == "hi bob"

        empty = client.post(f"{API}/conversations/{conversation_id}/messages", json={"content": ""}, headers=as_alice)
        assert empty.status_code == 422

        listed = client.get(f"{API}/conversations/{conversation_id}/messages", headers=as_bob).json()
        assert [m["content"] for m in listed["messages"]] == ["hi bob"]
        assert client.get(f"{API}/conversations/{conversation_id}/messages", headers=as_carol).json()["total_count"] == 0

        assert client.patch(f"{API}/messages/{message_id}", json={"content": "hijack"}, headers=as_bob).status_code == 404
        edited = client.patch(f"{API}/messages/{message_id}", json={"content": "hello bob"}, headers=as_alice)
        assert edited.json()["content"] == "hello bob"

        assert client.get(f"{API}/conversations", headers=as_bob).json()["total_count"] == 1

        assert client.delete(f"{API}/conversations/{conversation_id}", headers=as_carol).status_code == 404
        assert client.delete(f"{API}/conversations/{conversation_id}", headers=as_bob).status_code == 204
        assert client.get(f"{API}/conversations", headers=as_alice).json()["total_count"] == 0

    def test_media_upload(self, client, alice, ids, storage, auth_headers):
        as_alice = auth_headers(alice)
        conversation_id = client.post(f"{API}/conversations/with/{ids['bob']}", headers=as_alice).json()["id"]

        response = client.post(
            f"{API}/conversations/{conversation_id}/media",
            files={"file": ("cat.jpg", b"jpeg", "image/jpeg")},
            data={"content": "my cat"},
            headers=as_alice
        )

        assert response.status_code == 201
        body = response.json()
        assert body["media_type"] == "image"
        assert body["content"] == "my cat"
        assert body["media_url"].endswith(".jpg")

        rejected = client.post(
            f"{API}/conversations/{conversation_id}/media",
            files={"file": ("song.mp3", b"mp3", "audio/mpeg")},
            headers=as_alice
        )
        assert rejected.status_code == 422


class TestNotificationApi:

    def test_mark_read_and_delete(self, client, alice, bob, ids, auth_headers):
        as_alice, as_bob = auth_headers(alice), auth_headers(bob)
        client.post(f"{API}/social/friends/request", json={"addressee_id": ids["bob"]}, headers=as_alice)
        notification_id = client.get(f"{API}/notifications", headers=as_bob).json()["notifications"][0]["id"]

        assert client.post(f"{API}/notifications/{notification_id}/read", headers=as_alice).status_code == 404
        marked = client.post(f"{API}/notifications/{notification_id}/read", headers=as_bob)
        assert marked.status_code == 200
        assert marked.json()["is_read"] is True

        assert client.delete(f"{API}/notifications/{notification_id}", headers=as_bob).status_code == 204
        assert client.post(f"{API}/notifications/read-all", headers=as_bob).json()["updated"] == 0


class TestUploadLimits:

    def test_chat_media_over_limit_is_422(self, client, alice, ids, storage, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "MAX_CHAT_MEDIA_MB", 1)
        as_alice = auth_headers(alice)
        conversation_id = client.post(f"{API}/conversations/with/{ids['bob']}", headers=as_alice).json()["id"]

        response = client.post(
            f"{API}/conversations/{conversation_id}/media",
            files={"file": ("clip.mp4", b"x" * (MEGABYTE + 1), "video/mp4")},
            headers=as_alice
        )

        assert response.status_code == 422
        assert client.get(f"{API}/conversations/{conversation_id}/messages", headers=as_alice).json()["total_count"] == 0


class TestMediaApi:

    def test_owner_deletes_uploaded_media(self, client, alice, bob, ids, storage, auth_headers):
        as_alice = auth_headers(alice)
        conversation_id = client.post(f"{API}/conversations/with/{ids['bob']}", headers=as_alice).json()["id"]
        media_url = client.post(
            f"{API}/conversations/{conversation_id}/media",
            files={"file": ("cat.jpg", b"jpeg", "image/jpeg")},
            headers=as_alice
        ).json()["media_url"]
        key = media_url.removeprefix("/media/chat-media/")

        assert client.delete(f"{API}/media/{key}", headers=auth_headers(bob)).status_code == 404
        assert storage.path_for(key).exists()

        assert client.delete(f"{API}/media/{key}", headers=as_alice).status_code == 204
        assert not storage.path_for(key).exists()
        assert client.delete(f"{API}/media/{key}", headers=as_alice).status_code == 404
