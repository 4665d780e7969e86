import pytest
from sqlalchemy.exc import OperationalError

from chattrix.core.config import settings
from chattrix.core.errors import BackendError, NotFriends, RoomNotFound, ValidationError
from chattrix.models import DirectChat, MessageType
from chattrix.services import messaging

from conftest import seed_friends, seed_room


def test_direct_chat_id_is_order_independent():
    assert messaging.direct_chat_id("bob", "alice") == "alice_bob"
    assert messaging.direct_chat_id("alice", "bob") == "alice_bob"


class TestRoomMessages:
    def test_send_and_list_in_order(self, db):
        seed_room(db, "123456", "General")
        messaging.send_room_message(db, "123456", "alice", " first ")
        messaging.send_room_message(db, "123456", "bob", "second")

        msgs = messaging.list_room_messages(db, "123456")
        assert [(m.sender_username, m.text) for m in msgs] == [("alice", "first"), ("bob", "second")]
        assert msgs[0].type is MessageType.text

    def test_image_message(self, db):
        seed_room(db, "123456", "General")
        msg = messaging.send_room_image(db, "123456", "alice", "https://img.example.com/cat.png")

        assert msg.type is MessageType.image
        assert msg.image_url == "https://img.example.com/cat.png"
        assert msg.text is None

    def test_empty_text_rejected(self, db):
        seed_room(db, "123456", "General")
        with pytest.raises(ValidationError):
            messaging.send_room_message(db, "123456", "alice", "   ")

    def test_unknown_room(self, db):
        with pytest.raises(RoomNotFound):
            messaging.send_room_message(db, "999999", "alice", "hi")


class TestDirectMessages:
    def test_requires_friendship(self, db):
        with pytest.raises(NotFriends):
            messaging.send_direct_message(db, "alice", "bob", "hi")

    def test_send_updates_chat_preview(self, db):
        seed_friends(db, "alice", "bob")
        messaging.send_direct_message(db, "bob", "alice", "hey")
        messaging.send_direct_message(db, "alice", "bob", "hi back")

        msgs = messaging.list_direct_messages(db, "alice", "bob")
        assert [m.text for m in msgs] == ["hey", "hi back"]
        chat = db.get(DirectChat, "alice_bob")
        assert chat.last_message == "hi back"
        assert (chat.user_a, chat.user_b) == ("alice", "bob")


class TestSendFailurePolicy:
    @pytest.fixture
    def offline_room(self, db, monkeypatch):
        seed_room(db, "123456", "General")

        def fail():
            raise OperationalError("COMMIT", {}, Exception("store offline"))

        monkeypatch.setattr(db, "commit", fail)

    def test_silent_policy_reports_not_stored(self, db, offline_room, monkeypatch):
        monkeypatch.setattr(settings, "delivery_failure_policy", "silent")

        assert messaging.send_room_message(db, "123456", "alice", "hi") is None

    def test_surface_policy_raises(self, db, offline_room, monkeypatch):
        monkeypatch.setattr(settings, "delivery_failure_policy", "surface")

        with pytest.raises(BackendError):
            messaging.send_room_message(db, "123456", "alice", "hi")
