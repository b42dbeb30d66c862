import logging

from flask import Blueprint, jsonify, request, session
from flask_jwt_extended import jwt_required
from flask_socketio import emit, join_room

from linkinpurry import chat_service, db, push_service, socketio
from linkinpurry.auth import current_user_id, verify_token
from linkinpurry.errors import PermissionDenied, ServiceError, ValidationError
from linkinpurry.models import User
from linkinpurry.utils import error_response, parse_int, success_response

logger = logging.getLogger(__name__)

chat_bp = Blueprint('chat', __name__)


def room_for(user_id):
    return f"room-{user_id}"


def deliver_message(from_id, to_id, message):
    """Store a message, push it to the recipient's devices and their socket room."""
    chat = chat_service.send_chat(from_id, to_id, message)

    sender = db.session.get(User, from_id)
    push_service.notify_users([to_id], {
        'title': 'New message',
        'body': f"{sender.full_name}: {message}",
        'url': f"/messaging/{from_id}",
    })
    socketio.emit('receiveMessage', chat, to=room_for(to_id))
    return chat


@chat_bp.route('/recents', methods=['GET'])
@jwt_required()
def get_recent_chats():
    recent_chats = chat_service.get_recent_chats(current_user_id())
    return jsonify(success_response('Recent chats fetched successfully', recent_chats)), 200


@chat_bp.route('/<int:to_id>', methods=['GET'])
@jwt_required()
def get_chat_history(to_id):
    try:
        history = chat_service.get_chat_history(current_user_id(), to_id)
    except ServiceError as e:
        return jsonify(error_response('Failed to fetch chat history', e.message)), e.status_code
    return jsonify(success_response('Chat history fetched successfully', history)), 200


@chat_bp.route('/<int:to_id>', methods=['POST'])
@jwt_required()
def send_chat(to_id):
    message = (request.get_json(silent=True) or {}).get('message')
    try:
        chat = deliver_message(current_user_id(), to_id, message)
    except ServiceError as e:
        return jsonify(error_response('Failed to send chat message', e.message)), e.status_code
    return jsonify(success_response('Chat message sent successfully', chat)), 201


# WebSocket events for real-time messaging

def _bearer_token():
    header = request.headers.get('Authorization', '')
    return header.split('Bearer ')[-1] if header.startswith('Bearer ') else None


@socketio.on('connect')
def handle_connect(auth=None):
    token = (auth or {}).get('token') or request.cookies.get('token') or _bearer_token()
    user_id = verify_token(token) if token else None
    if user_id is None:
        raise ConnectionRefusedError('Authentication error: Invalid token')
    session['user_id'] = user_id
    logger.info("User %s connected (sid=%s)", user_id, request.sid)


@socketio.on('disconnect')
def handle_disconnect(reason=None):
    logger.info("User %s disconnected (sid=%s)", session.get('user_id'), request.sid)


def _parties(data):
    """Sender is always the authenticated user; a conflicting fromId is refused."""
    data = data or {}
    from_id = session['user_id']
    claimed = data.get('fromId')
    if claimed is not None and parse_int(claimed) != from_id:
        raise PermissionDenied('Sender does not match the authenticated user')
    to_id = parse_int(data.get('toId'))
    if to_id is None:
        raise ValidationError('toId is required')
    return from_id, to_id


@socketio.on('joinRoom')
def handle_join_room(data=None):
    user_id = session['user_id']
    requested = parse_int((data or {}).get('userId'), user_id)
    if requested != user_id:
        emit('error', "Cannot join another user's room")
        return
    join_room(room_for(user_id))


def _relay_typing(event, data):
    try:
        from_id, to_id = _parties(data)
        if not chat_service.is_connected(from_id, to_id):
            raise PermissionDenied('Cannot send message to non-connected user')
        emit(event, {'fromId': from_id}, to=room_for(to_id), include_self=False)
    except ServiceError as e:
        emit('error', e.message)
    except Exception as e:
        logger.exception("Failed to relay %s: %s", event, e)
        db.session.rollback()
        emit('error', 'Failed to send typing status')


@socketio.on('typing')
def handle_typing(data):
    _relay_typing('userTyping', data)


@socketio.on('stopTyping')
def handle_stop_typing(data):
    _relay_typing('userStopTyping', data)


@socketio.on('sendMessage')
def handle_send_message(data):
    try:
        from_id, to_id = _parties(data)
        deliver_message(from_id, to_id, (data or {}).get('message'))
    except ServiceError as e:
        emit('error', e.message)
    except Exception as e:
        logger.exception("Failed to handle sendMessage: %s", e)
        db.session.rollback()
        emit('error', 'Failed to send message')
