from flask import Blueprint, jsonify, request
from flask_jwt_extended import set_access_cookies, unset_jwt_cookies

from linkinpurry import auth_service, cache
from linkinpurry.errors import ServiceError
from linkinpurry.utils import error_response, success_response

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
@cache.invalidates('/api/connection/users')
def register():
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    password = data.get('password')

    try:
        auth_service.register(
            username,
            data.get('name'),
            data.get('email'),
            password,
            data.get('confirmPassword'),
        )
        token = auth_service.login(data.get('email'), password)
    except ServiceError as e:
        return jsonify(error_response('Registration failed', e.message)), 400

    response = jsonify(success_response('Registration and login successful', {'token': token}))
    set_access_cookies(response, token)
    return response, 200


@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}

    try:
        token = auth_service.login(data.get('identifier'), data.get('password'))
    except ServiceError as e:
        return jsonify(error_response('Login failed', e.message)), 401

    response = jsonify(success_response('Login successful', {'token': token}))
    set_access_cookies(response, token)
    return response, 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    response = jsonify(success_response('Logout successful'))
    unset_jwt_cookies(response)
    return response, 200
