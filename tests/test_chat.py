import pytest

from linkinpurry import chat_service, db, push_service, socketio
from linkinpurry.errors import PermissionDenied, ValidationError
from linkinpurry.models import Chat

from .conftest import auth_header, token_for


def _socket(app, user_id):
    with app.app_context():
        token = token_for(user_id)
    client = socketio.test_client(app, auth={"token": token})
    assert client.is_connected()
    return client


def _events(client, name):
    return [event["args"][0] for event in client.get_received() if event["name"] == name]


def test_send_chat_rules(ctx, users):
    with pytest.raises(ValidationError):
        chat_service.send_chat(users["alice"], users["bob"], "   ")
    with pytest.raises(PermissionDenied):
        chat_service.send_chat(users["alice"], users["carol"], "hi stranger")

    chat = chat_service.send_chat(users["alice"], users["bob"], "hi bob")
    assert chat["from_id"] == users["alice"]
    assert chat["to_id"] == users["bob"]
    assert chat["timestamp"]


def test_chat_history_is_oldest_first(ctx, users):
    for sender, receiver, message in [("alice", "bob", "one"), ("bob", "alice", "two"), ("alice", "bob", "three")]:
        chat_service.send_chat(users[sender], users[receiver], message)

    history = chat_service.get_chat_history(users["bob"], users["alice"])
    assert [c["message"] for c in history] == ["one", "two", "three"]

    with pytest.raises(PermissionDenied):
        chat_service.get_chat_history(users["alice"], users["carol"])


def test_recent_chats_keyed_by_partner(ctx, users):
    chat_service.send_chat(users["bob"], users["alice"], "hey alice")
    chat_service.send_chat(users["bob"], users["carol"], "hey carol")
    chat_service.send_chat(users["carol"], users["bob"], "hey yourself")

    recent = chat_service.get_recent_chats(users["bob"])
    assert set(recent) == {str(users["alice"]), str(users["carol"])}
    assert recent[str(users["carol"])]["message"] == "hey yourself"
    assert chat_service.get_recent_chats(users["frank"]) == {}


def test_chat_routes(app, client, users):
    with app.app_context():
        alice = auth_header(users["alice"])
        bob = auth_header(users["bob"])

    r = client.post(f"/api/chat/{users['bob']}", json={"message": "coffee?"}, headers=alice)
    assert r.status_code == 201
    assert r.json["body"]["message"] == "coffee?"

    r = client.post(f"/api/chat/{users['carol']}", json={"message": "hello"}, headers=alice)
    assert r.status_code == 403

    r = client.get(f"/api/chat/{users['alice']}", headers=bob)
    assert r.status_code == 200
    assert [c["message"] for c in r.json["body"]] == ["coffee?"]

    r = client.get(f"/api/chat/{users['dave']}", headers=bob)
    assert r.status_code == 403
    assert r.json["success"] is False

    r = client.get("/api/chat/recents", headers=bob)
    assert r.json["body"][str(users["alice"])]["message"] == "coffee?"


def test_socket_requires_valid_token(app, users):
    assert not socketio.test_client(app).is_connected()
    assert not socketio.test_client(app, auth={"token": "forged"}).is_connected()


def test_socket_accepts_bearer_header(app, users):
    with app.app_context():
        headers = auth_header(users["alice"])
    client = socketio.test_client(app, headers=headers)
    assert client.is_connected()
    client.disconnect()


def test_join_room_only_own(app, users):
    alice = _socket(app, users["alice"])
    alice.emit("joinRoom", {"userId": users["bob"]})
    assert _events(alice, "error") == ["Cannot join another user's room"]


def test_typing_is_relayed_to_the_partner(app, users):
    alice = _socket(app, users["alice"])
    bob = _socket(app, users["bob"])
    bob.emit("joinRoom", {"userId": users["bob"]})
    alice.emit("joinRoom")

    alice.emit("typing", {"fromId": users["alice"], "toId": users["bob"]})
    alice.emit("stopTyping", {"toId": users["bob"]})

    received = bob.get_received()
    assert [(e["name"], e["args"][0]) for e in received] == [
        ("userTyping", {"fromId": users["alice"]}),
        ("userStopTyping", {"fromId": users["alice"]}),
    ]
    assert alice.get_received() == []


def test_typing_to_stranger_is_refused(app, users):
    alice = _socket(app, users["alice"])
    carol = _socket(app, users["carol"])
    carol.emit("joinRoom")

    alice.emit("typing", {"toId": users["carol"]})

    assert carol.get_received() == []
    assert _events(alice, "error") == ["Cannot send message to non-connected user"]


def test_send_message_over_socket(app, users):
    alice = _socket(app, users["alice"])
    bob = _socket(app, users["bob"])
    bob.emit("joinRoom")

    alice.emit("sendMessage", {"fromId": users["alice"], "toId": users["bob"], "message": "hi there"})

    delivered = _events(bob, "receiveMessage")
    assert len(delivered) == 1
    assert delivered[0]["from_id"] == users["alice"]
    assert delivered[0]["message"] == "hi there"

    with app.app_context():
        assert Chat.between(users["alice"], users["bob"]).count() == 1


def test_send_message_rejects_spoofed_sender(app, users):
    alice = _socket(app, users["alice"])

    alice.emit("sendMessage", {"fromId": users["bob"], "toId": users["carol"], "message": "as bob"})
    alice.emit("sendMessage", {"message": "nowhere"})
    alice.emit("sendMessage", {"toId": users["carol"], "message": "not connected"})

    assert _events(alice, "error") == [
        "Sender does not match the authenticated user",
        "toId is required",
        "Users are not connected. Cannot send a chat message.",
    ]
    with app.app_context():
        assert db.session.query(Chat).count() == 0


def test_non_string_message_is_rejected(app, client, users):
    with app.app_context():
        with pytest.raises(ValidationError):
            chat_service.send_chat(users["alice"], users["bob"], 42)
        alice = auth_header(users["alice"])

    r = client.post(f"/api/chat/{users['bob']}", json={"message": 42}, headers=alice)
    assert r.status_code == 400
    assert r.json["error"] == "Message cannot be empty"

    socket = _socket(app, users["alice"])
    socket.emit("sendMessage", {"toId": users["bob"], "message": 42})
    assert _events(socket, "error") == ["Message cannot be empty"]


def test_unexpected_socket_failures_reach_the_sender(app, users, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("push service exploded")

    monkeypatch.setattr(push_service, "notify_users", broken)
    monkeypatch.setattr(chat_service, "is_connected", broken)
    alice = _socket(app, users["alice"])
    bob = _socket(app, users["bob"])
    bob.emit("joinRoom")

    alice.emit("typing", {"toId": users["bob"]})
    alice.emit("sendMessage", {"toId": users["bob"], "message": "hello"})

    assert _events(alice, "error") == ["Failed to send typing status", "Failed to send message"]
    assert bob.get_received() == []
