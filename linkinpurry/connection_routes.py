from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from linkinpurry import cache, connection_service
from linkinpurry.auth import current_user_id, optional_user_id
from linkinpurry.errors import ServiceError
from linkinpurry.utils import error_response, parse_int, success_response

connection_bp = Blueprint('connection', __name__)

# Accepting or dropping a connection changes degrees, feeds and profile flags
GRAPH_CACHE_PREFIXES = ('/api/connection/users', '/api/feed', '/api/profile/')


def _list_users():
    users = connection_service.get_users(
        search=request.args.get('search', ''),
        user_id=optional_user_id(),
        target_id=parse_int(request.args.get('targetId')),
        take=parse_int(request.args.get('take')),
    )
    return jsonify(success_response('Users fetched successfully', users)), 200


@connection_bp.route('/connection/users', methods=['GET'])
@cache.cached
def get_users():
    return _list_users()


@connection_bp.route('/connection/recommendations', methods=['GET'])
def get_recommendations():
    return _list_users()


@connection_bp.route('/connection/<int:user_id>/request', methods=['POST'])
@jwt_required()
def send_request(user_id):
    try:
        result = connection_service.send_connection_request(current_user_id(), user_id)
    except ServiceError as e:
        return jsonify(error_response('Failed to send connection request', e.message)), e.status_code
    return jsonify(success_response('Connection request sent', result)), 200


@connection_bp.route('/connection/requests', methods=['GET'])
@jwt_required()
def get_pending_requests():
    requests = connection_service.get_pending_requests(current_user_id())
    return jsonify(success_response('Pending requests fetched successfully', requests)), 200


@connection_bp.route('/connection/<int:user_id>/respond', methods=['POST'])
@jwt_required()
@cache.invalidates(*GRAPH_CACHE_PREFIXES)
def respond_to_request(user_id):
    action = (request.get_json(silent=True) or {}).get('action')
    try:
        connection_service.respond_to_request(user_id, current_user_id(), action)
    except ServiceError as e:
        return jsonify(error_response('Failed to respond to connection request', e.message)), e.status_code
    return jsonify(success_response(f'Connection request {action}ed successfully')), 200


@connection_bp.route('/connection/<int:user_id>/connections', methods=['GET'])
def get_connections(user_id):
    connections = connection_service.get_connections(user_id)
    return jsonify(success_response('Connections fetched successfully', connections)), 200


@connection_bp.route('/connection-degree/<int:user_id>', methods=['GET'])
def get_connection_degree(user_id):
    degree = connection_service.get_connection_degree(user_id, optional_user_id())
    return jsonify(success_response('Degree fetched successfully', {'degree': degree})), 200


@connection_bp.route('/connection/<int:user_id>', methods=['DELETE'])
@jwt_required()
@cache.invalidates(*GRAPH_CACHE_PREFIXES)
def remove_connection(user_id):
    try:
        connection_service.remove_connection(current_user_id(), user_id)
    except ServiceError as e:
        return jsonify(error_response('Failed to remove connection', e.message)), e.status_code
    return jsonify(success_response('Connection removed successfully')), 200
