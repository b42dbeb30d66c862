from sqlalchemy.orm import joinedload

from linkinpurry import db
from linkinpurry.chat_service import is_connected
from linkinpurry.connection_service import connected_user_ids
from linkinpurry.errors import NotFound, PermissionDenied, ValidationError
from linkinpurry.models import Feed, User
from linkinpurry.utils import isoformat

DEFAULT_LIMIT = 10
MAX_LIMIT = 50


def feed_dict(feed):
    return {
        'id': feed.id,
        'content': feed.content,
        'created_at': isoformat(feed.created_at),
        'updated_at': isoformat(feed.updated_at),
        'user': feed.author.summary(),
    }


def validate_content(content):
    if content is not None and not isinstance(content, str):
        raise ValidationError("Content must be a string")
    if not content or not content.strip():
        raise ValidationError("Content cannot be empty")
    if len(content) > Feed.MAX_LENGTH:
        raise ValidationError(f"Content must contain at most {Feed.MAX_LENGTH} characters")


def get_feeds(user_id, cursor=None, limit=DEFAULT_LIMIT):
    """
    Posts by the user and their connections, newest first.

    Pagination is keyed on the post id: pass back the returned `cursor` to
    get the next (older) page. `cursor` is None once a page comes back empty.
    """
    limit = max(1, min(limit if limit is not None else DEFAULT_LIMIT, MAX_LIMIT))
    author_ids = connected_user_ids(user_id) | {user_id}

    query = Feed.query.options(joinedload(Feed.author)).filter(Feed.user_id.in_(author_ids))
    if cursor:
        query = query.filter(Feed.id < cursor)
    feeds = query.order_by(Feed.id.desc()).limit(limit).all()

    return {
        'feeds': [feed_dict(feed) for feed in feeds],
        'cursor': feeds[-1].id if feeds else None,
    }


def get_feed(feed_id, viewer_id):
    feed = db.session.get(Feed, feed_id)
    if not feed:
        raise NotFound("Feed not found")
    if feed.user_id != viewer_id and not is_connected(feed.user_id, viewer_id):
        raise PermissionDenied("Cannot fetch feed from unconnected users")
    return feed_dict(feed)


def create_feed(user_id, content):
    validate_content(content)
    if not db.session.get(User, user_id):
        raise NotFound("User not found")

    feed = Feed(user_id=user_id, content=content)
    db.session.add(feed)
    db.session.commit()
    return feed_dict(feed)


def _owned_feed(feed_id, user_id, verb):
    feed = db.session.get(Feed, feed_id)
    if not feed:
        raise NotFound("Feed not found")
    if feed.user_id != user_id:
        raise PermissionDenied(f"Unauthorized to {verb} this feed")
    return feed


def update_feed(feed_id, user_id, content):
    validate_content(content)
    feed = _owned_feed(feed_id, user_id, 'update')
    feed.content = content
    db.session.commit()
    return {'id': feed.id, 'content': feed.content, 'updated_at': isoformat(feed.updated_at)}


def delete_feed(feed_id, user_id):
    feed = _owned_feed(feed_id, user_id, 'delete')
    db.session.delete(feed)
    db.session.commit()
