from linkinpurry import db
from linkinpurry.errors import PermissionDenied, ValidationError
from linkinpurry.models import Chat, Connection
from linkinpurry.utils import isoformat


def chat_dict(chat):
    return {
        'id': chat.id,
        'from_id': chat.from_id,
        'to_id': chat.to_id,
        'message': chat.message,
        'timestamp': isoformat(chat.timestamp),
    }


def is_connected(user_id, target_id):
    return Connection.between(user_id, target_id).first() is not None


def send_chat(from_id, to_id, message):
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("Message cannot be empty")
    if not is_connected(from_id, to_id):
        raise PermissionDenied("Users are not connected. Cannot send a chat message.")

    chat = Chat(from_id=from_id, to_id=to_id, message=message)
    db.session.add(chat)
    db.session.commit()
    return chat_dict(chat)


def get_chat_history(user_id, target_id):
    if not is_connected(user_id, target_id):
        raise PermissionDenied("Users are not connected. Cannot fetch chat history.")

    chats = Chat.between(user_id, target_id).order_by(Chat.timestamp, Chat.id).all()
    return [chat_dict(chat) for chat in chats]


def get_recent_chats(user_id):
    """Latest message with each connection, keyed by the other user's id."""
    recent = {}
    for connection in Connection.involving(user_id).all():
        other_id = connection.other(user_id)
        last = Chat.between(user_id, other_id).order_by(Chat.timestamp.desc(), Chat.id.desc()).first()
        if last:
            recent[str(other_id)] = {
                'from_id': last.from_id,
                'to_id': last.to_id,
                'message': last.message,
                'timestamp': isoformat(last.timestamp),
            }
    return recent
