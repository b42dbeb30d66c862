import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from linkinpurry import db
from linkinpurry.errors import NotFound, ValidationError
from linkinpurry.models import Chat, Connection, ConnectionRequest, User
from linkinpurry.utils import escape_like, isoformat

logger = logging.getLogger(__name__)

DEGREE_LABELS = ('1st', '2nd', '3rd')
RESPONSE_ACTIONS = ('accept', 'reject')


def neighbours(user_ids):
    """Ids of every user sharing a connection with one of `user_ids`."""
    if not user_ids:
        return set()
    ids = set(user_ids)
    rows = (
        db.session.query(Connection.from_id, Connection.to_id)
        .filter(db.or_(Connection.from_id.in_(ids), Connection.to_id.in_(ids)))
        .all()
    )
    found = set()
    for from_id, to_id in rows:
        if from_id in ids:
            found.add(to_id)
        if to_id in ids:
            found.add(from_id)
    return found


def walk_network(user_id, depth=len(DEGREE_LABELS)):
    """
    Breadth-first walk of the connection graph starting at `user_id`.

    Yields one set of user ids per level (1st degree first). A user shows up
    only in the first level that reaches them, and the start user never does.
    Each level costs a single query.
    """
    seen = {user_id}
    frontier = {user_id}
    for _ in range(depth):
        frontier = neighbours(frontier) - seen
        seen |= frontier
        yield frontier


def get_users(search='', user_id=None, target_id=None, take=None):
    query = User.query
    if take:
        excluded = [i for i in (user_id, target_id) if i is not None]
        if excluded:
            query = query.filter(~User.id.in_(excluded))
        users = query.order_by(User.id).limit(take).all()
    else:
        pattern = f"%{escape_like(search or '')}%"
        users = query.filter(User.full_name.ilike(pattern, escape='\\')).order_by(User.id).all()

    if user_id is None:
        return [dict(user.summary(), isConnected=False) for user in users]

    first, second, third = walk_network(user_id)
    return [
        dict(
            user.summary(),
            isConnected=user.id in first,
            isSecondDegree=user.id in second,
            isThirdDegree=user.id in third,
            isOwner=user.id == user_id,
        )
        for user in users
    ]


def get_connection_degree(user_id, viewer_id=None):
    """'1st', '2nd', '3rd', or '' when unrelated within three hops (or same user / anonymous)."""
    if viewer_id is None or user_id == viewer_id:
        return ''

    if Connection.between(user_id, viewer_id).first():
        return DEGREE_LABELS[0]

    for label, level in zip(DEGREE_LABELS, walk_network(user_id)):
        if viewer_id in level:
            return label
        if not level:
            break
    return ''


def _request_dict(req):
    return {'from_id': req.from_id, 'to_id': req.to_id, 'created_at': isoformat(req.created_at)}


def send_connection_request(from_id, to_id):
    if from_id == to_id:
        raise ValidationError("You cannot send a connection request to yourself")

    if User.query.filter(User.id.in_([from_id, to_id])).count() != 2:
        raise NotFound("User doesn't exist")

    if ConnectionRequest.between(from_id, to_id).first():
        raise ValidationError("Connection request already sent")

    if Connection.between(from_id, to_id).first():
        raise ValidationError("Connection already exist")

    req = ConnectionRequest(from_id=from_id, to_id=to_id)
    db.session.add(req)
    db.session.commit()
    logger.info("Connection request %s -> %s", from_id, to_id)
    return _request_dict(req)


def get_pending_requests(user_id):
    requests = (
        ConnectionRequest.query.options(joinedload(ConnectionRequest.sender))
        .filter_by(to_id=user_id)
        .order_by(ConnectionRequest.created_at.desc())
        .all()
    )
    return [
        {'from_id': req.from_id, 'created_at': isoformat(req.created_at), 'user': req.sender.summary()}
        for req in requests
    ]


def respond_to_request(from_id, to_id, action):
    if action not in RESPONSE_ACTIONS:
        raise ValidationError("Invalid action")

    req = db.session.get(ConnectionRequest, (from_id, to_id))
    if not req:
        raise NotFound("Connection request not found")

    # The request and the connection must never coexist
    try:
        db.session.delete(req)
        if action == 'accept':
            db.session.add(Connection(from_id=from_id, to_id=to_id))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info("Connection request %s -> %s %sed", from_id, to_id, action)


def get_connections(user_id):
    connections = (
        Connection.involving(user_id)
        .options(joinedload(Connection.from_user), joinedload(Connection.to_user))
        .order_by(Connection.created_at)
        .all()
    )
    return [
        (c.to_user if c.from_id == user_id else c.from_user).summary()
        for c in connections
    ]


def connected_user_ids(user_id):
    return {c.other(user_id) for c in Connection.involving(user_id).all()}


def remove_connection(user_id, target_id):
    connection = Connection.between(user_id, target_id).first()
    if not connection:
        raise NotFound("Connection does not exist")

    try:
        Chat.between(user_id, target_id).delete(synchronize_session=False)
        db.session.delete(connection)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    logger.info("Connection %s <-> %s removed", user_id, target_id)
