from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from linkinpurry import push_service
from linkinpurry.auth import current_user_id
from linkinpurry.errors import ServiceError
from linkinpurry.notifications import send_notification, send_notification_to_all
from linkinpurry.utils import error_response, parse_int, success_response

push_bp = Blueprint('push', __name__)


@push_bp.route('/public-key', methods=['GET'])
def get_public_key():
    return jsonify(success_response(
        'Public key fetched successfully', {'publicKey': current_app.config['VAPID_PUBLIC_KEY']}
    )), 200


@push_bp.route('/subscription', methods=['POST'])
@jwt_required()
def save_subscription():
    data = request.get_json(silent=True) or {}
    try:
        subscription = push_service.save_subscription(data.get('endpoint'), current_user_id(), data.get('keys'))
    except ServiceError as e:
        return jsonify(error_response('Failed to save subscription', e.message)), e.status_code
    return jsonify(success_response('Subscription saved successfully', subscription)), 200


@push_bp.route('/subscription', methods=['DELETE'])
@jwt_required()
def delete_subscription():
    data = request.get_json(silent=True) or {}
    try:
        push_service.delete_subscription(data.get('endpoint'), current_user_id())
    except ServiceError as e:
        return jsonify(error_response('Failed to delete subscription', e.message)), e.status_code
    return jsonify(success_response('Subscription deleted successfully')), 200


@push_bp.route('/send-notification', methods=['POST'])
@jwt_required()
def send_notification_to_user():
    data = request.get_json(silent=True) or {}
    subscription = push_service.get_subscription_by_endpoint(data.get('endpoint'))
    if not subscription:
        return jsonify(error_response('Failed to send notification', 'Subscription not found')), 404

    result = send_notification(subscription.as_webpush_info(), data.get('data') or {})
    return jsonify(success_response('Notification sent successfully', result)), 200


@push_bp.route('/send-notification-to-users', methods=['POST'])
@jwt_required()
def send_notification_to_all_users():
    data = request.get_json(silent=True) or {}
    user_ids = [parse_int(user_id) for user_id in data.get('userIds') or []]
    if None in user_ids:
        return jsonify(error_response('Failed to send notifications to all users', 'Invalid user id')), 400

    subscriptions = [s.as_webpush_info() for s in push_service.get_all_subscriptions(user_ids)]
    results = send_notification_to_all(subscriptions, data.get('data') or {})
    return jsonify(success_response('Notifications sent to all users', results)), 200
