from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from linkinpurry import cache, db, feed_service, push_service
from linkinpurry.auth import current_user_id
from linkinpurry.connection_service import connected_user_ids
from linkinpurry.errors import ServiceError
from linkinpurry.models import User
from linkinpurry.utils import error_response, parse_int, success_response

feed_bp = Blueprint('feed', __name__)


@feed_bp.route('', methods=['GET'])
@jwt_required()
@cache.cached
def get_feeds():
    feeds = feed_service.get_feeds(
        current_user_id(),
        cursor=parse_int(request.args.get('cursor')),
        limit=parse_int(request.args.get('limit'), feed_service.DEFAULT_LIMIT),
    )
    return jsonify(success_response('Feeds fetched successfully', feeds)), 200


@feed_bp.route('/<int:feed_id>', methods=['GET'])
@jwt_required()
def get_feed(feed_id):
    try:
        feed = feed_service.get_feed(feed_id, current_user_id())
    except ServiceError as e:
        return jsonify(error_response('Failed to fetch feed', e.message)), e.status_code
    return jsonify(success_response('Feed fetched successfully', feed)), 200


@feed_bp.route('', methods=['POST'])
@jwt_required()
@cache.invalidates('/api/feed', '/api/profile/')
def create_feed():
    user_id = current_user_id()
    content = (request.get_json(silent=True) or {}).get('content')
    try:
        feed = feed_service.create_feed(user_id, content)
    except ServiceError as e:
        return jsonify(error_response('Failed to create feed', e.message)), e.status_code

    author = db.session.get(User, user_id)
    results = push_service.notify_users(connected_user_ids(user_id), {
        'title': 'New Feed Posted',
        'body': f'New post by user {author.full_name}!',
        'url': f"/feed/{feed['id']}",
    })
    current_app.logger.debug("Feed %s notifications: %s", feed['id'], results)
    return jsonify(success_response('Feed created successfully', feed)), 200


@feed_bp.route('/<int:feed_id>', methods=['PUT'])
@jwt_required()
@cache.invalidates('/api/feed', '/api/profile/')
def update_feed(feed_id):
    content = (request.get_json(silent=True) or {}).get('content')
    try:
        feed = feed_service.update_feed(feed_id, current_user_id(), content)
    except ServiceError as e:
        return jsonify(error_response('Failed to update feed', e.message)), e.status_code
    return jsonify(success_response('Feed updated successfully', feed)), 200


@feed_bp.route('/<int:feed_id>', methods=['DELETE'])
@jwt_required()
@cache.invalidates('/api/feed', '/api/profile/')
def delete_feed(feed_id):
    try:
        feed_service.delete_feed(feed_id, current_user_id())
    except ServiceError as e:
        return jsonify(error_response('Failed to delete feed', e.message)), e.status_code
    return jsonify(success_response('Feed deleted successfully')), 200
