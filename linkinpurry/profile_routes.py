from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from linkinpurry import cache, profile_service
from linkinpurry.auth import current_user_id, optional_user_id
from linkinpurry.errors import ServiceError
from linkinpurry.utils import error_response, success_response

profile_bp = Blueprint('profile', __name__)


@profile_bp.route('/<int:user_id>', methods=['GET'])
@cache.cached
def get_profile(user_id):
    try:
        profile = profile_service.get_profile(user_id, optional_user_id())
    except ServiceError as e:
        return jsonify(error_response('Profile not found', e.message)), e.status_code
    return jsonify(success_response('Profile retrieved successfully', profile)), 200


@profile_bp.route('/<int:user_id>', methods=['PUT'])
@jwt_required()
@cache.invalidates('/api/profile', '/api/feed', '/api/connection/users')
def update_profile(user_id):
    files = request.files.getlist('profile_photo')
    if len(files) > 1:
        return jsonify(error_response(
            'Too many files uploaded', "Please upload only one file for 'profile_photo'"
        )), 400

    photo = None
    if files and files[0].filename:
        file = files[0]
        photo = (file.read(), file.filename, file.mimetype)

    form = request.form
    try:
        profile = profile_service.update_profile(
            user_id,
            current_user_id(),
            name=form.get('name'),
            work_history=form.get('work_history'),
            skills=form.get('skills'),
            username=form.get('username'),
            photo=photo,
        )
    except ServiceError as e:
        return jsonify(error_response('Failed to update profile', e.message)), e.status_code
    return jsonify(success_response('Profile updated successfully', profile)), 200
