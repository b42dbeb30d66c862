import pytest

from linkinpurry import db, feed_service, push_service
from linkinpurry.errors import NotFound, PermissionDenied, ValidationError
from linkinpurry.models import Feed, PushSubscription

from .conftest import auth_header


def _post(user_id, content):
    feed = Feed(user_id=user_id, content=content)
    db.session.add(feed)
    db.session.commit()
    return feed.id


@pytest.mark.parametrize("content", [None, "", "   ", "x" * 281, 123, ["list"]])
def test_create_feed_validation(ctx, users, content):
    with pytest.raises(ValidationError):
        feed_service.create_feed(users["alice"], content)


def test_create_feed_accepts_max_length(ctx, users):
    feed = feed_service.create_feed(users["alice"], "x" * 280)
    assert feed["user"]["id"] == users["alice"]
    assert feed["created_at"]


def test_feeds_include_self_and_connections_only(ctx, users):
    own = _post(users["bob"], "bob here")
    friend = _post(users["alice"], "alice here")
    _post(users["dave"], "dave is 2nd degree for bob")

    page = feed_service.get_feeds(users["bob"])
    assert [f["id"] for f in page["feeds"]] == [friend, own]
    assert page["cursor"] == own


def test_feed_pagination_by_cursor(ctx, users):
    ids = [_post(users["alice"], f"post {i}") for i in range(5)]

    page = feed_service.get_feeds(users["alice"], limit=2)
    assert [f["id"] for f in page["feeds"]] == [ids[4], ids[3]]

    page = feed_service.get_feeds(users["alice"], cursor=page["cursor"], limit=2)
    assert [f["id"] for f in page["feeds"]] == [ids[2], ids[1]]

    page = feed_service.get_feeds(users["alice"], cursor=page["cursor"], limit=2)
    assert [f["id"] for f in page["feeds"]] == [ids[0]]

    page = feed_service.get_feeds(users["alice"], cursor=page["cursor"], limit=2)
    assert page == {"feeds": [], "cursor": None}


@pytest.mark.parametrize("limit, expected", [(0, 1), (-5, 1), (None, 10), (7, 7), (51, 50), (500, 50)])
def test_feed_limit_is_clamped(ctx, users, limit, expected):
    db.session.add_all([Feed(user_id=users["alice"], content=f"post {i}") for i in range(55)])
    db.session.commit()

    page = feed_service.get_feeds(users["alice"], limit=limit)
    assert len(page["feeds"]) == expected


def test_get_feed_visibility(ctx, users):
    feed_id = _post(users["alice"], "hello network")

    assert feed_service.get_feed(feed_id, users["alice"])["content"] == "hello network"
    assert feed_service.get_feed(feed_id, users["bob"])["user"]["full_name"] == "Alice"
    with pytest.raises(PermissionDenied):
        feed_service.get_feed(feed_id, users["carol"])
    with pytest.raises(NotFound):
        feed_service.get_feed(feed_id + 100, users["alice"])


def test_update_and_delete_need_ownership(ctx, users):
    feed_id = _post(users["alice"], "first draft")

    with pytest.raises(PermissionDenied):
        feed_service.update_feed(feed_id, users["bob"], "hijacked")
    with pytest.raises(PermissionDenied):
        feed_service.delete_feed(feed_id, users["bob"])
    with pytest.raises(ValidationError):
        feed_service.update_feed(feed_id, users["alice"], "")

    updated = feed_service.update_feed(feed_id, users["alice"], "final")
    assert updated["content"] == "final"

    feed_service.delete_feed(feed_id, users["alice"])
    assert db.session.get(Feed, feed_id) is None
    with pytest.raises(NotFound):
        feed_service.delete_feed(feed_id, users["alice"])


def test_feed_routes(app, client, users, monkeypatch):
    sent = []
    monkeypatch.setattr(push_service, "send_notification_to_all",
                        lambda subscriptions, data: sent.append((subscriptions, data)) or [])

    with app.app_context():
        db.session.add(PushSubscription(endpoint="https://push.example/bob", user_id=users["bob"],
                                        keys={"p256dh": "k", "auth": "a"}))
        db.session.commit()
        alice = auth_header(users["alice"])
        bob = auth_header(users["bob"])
        carol = auth_header(users["carol"])

    r = client.post("/api/feed", json={"content": "Open to work!"}, headers=alice)
    assert r.status_code == 200
    feed_id = r.json["body"]["id"]

    # bob is alice's only connection
    assert len(sent) == 1
    subscriptions, data = sent[0]
    assert [s["endpoint"] for s in subscriptions] == ["https://push.example/bob"]
    assert data == {"title": "New Feed Posted", "body": "New post by user Alice!", "url": f"/feed/{feed_id}"}

    r = client.get("/api/feed", headers=bob)
    assert [f["id"] for f in r.json["body"]["feeds"]] == [feed_id]

    r = client.get(f"/api/feed/{feed_id}", headers=carol)
    assert r.status_code == 403
    assert r.json["error"] == "Cannot fetch feed from unconnected users"

    r = client.put(f"/api/feed/{feed_id}", json={"content": "x" * 281}, headers=alice)
    assert r.status_code == 400
    assert r.json["error"] == "Content must contain at most 280 characters"

    r = client.put(f"/api/feed/{feed_id}", json={"content": "Hired!"}, headers=alice)
    assert r.status_code == 200
    assert r.json["body"]["content"] == "Hired!"

    r = client.delete(f"/api/feed/{feed_id}", headers=bob)
    assert r.status_code == 403

    r = client.delete(f"/api/feed/{feed_id}", headers=alice)
    assert r.status_code == 200
    assert client.get(f"/api/feed/{feed_id}", headers=alice).status_code == 404


def test_feed_routes_reject_non_string_content(app, client, users):
    with app.app_context():
        alice = auth_header(users["alice"])
        feed_id = _post(users["alice"], "original")

    r = client.post("/api/feed", json={"content": 123}, headers=alice)
    assert r.status_code == 400
    assert r.json["error"] == "Content must be a string"

    r = client.put(f"/api/feed/{feed_id}", json={"content": {"text": "x"}}, headers=alice)
    assert r.status_code == 400
