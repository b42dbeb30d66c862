import jwt
from flask import jsonify
from flask_jwt_extended import (
    create_access_token,
    decode_token,
    get_jwt_identity,
    verify_jwt_in_request,
)
from flask_jwt_extended.exceptions import JWTExtendedException

from linkinpurry.utils import error_response


def generate_token(user):
    """
    Generate a JWT access token for the given user.
    """
    return create_access_token(identity=str(user.id), additional_claims={'email': user.email})


def verify_token(token):
    """
    Decode and verify a raw JWT token. Returns the user id or None.
    """
    try:
        payload = decode_token(token)
        return int(payload['sub'])
    except (jwt.PyJWTError, JWTExtendedException, KeyError, ValueError):
        return None


def current_user_id():
    """Id of the authenticated user. Only valid behind @jwt_required()."""
    return int(get_jwt_identity())


def optional_user_id():
    """
    Id of the caller when a valid token is present, otherwise None.
    Invalid or expired tokens are treated the same as no token.
    """
    try:
        verify_jwt_in_request(optional=True)
    except (jwt.PyJWTError, JWTExtendedException):
        return None
    identity = get_jwt_identity()
    return int(identity) if identity is not None else None


def register_jwt_handlers(jwt_manager):
    """Answer token problems with the API's error envelope."""

    @jwt_manager.unauthorized_loader
    def missing_token(reason):
        return jsonify(error_response('Unauthorized access', reason)), 401

    @jwt_manager.invalid_token_loader
    def invalid_token(reason):
        return jsonify(error_response('Unauthorized access', reason)), 401

    @jwt_manager.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify(error_response('Unauthorized access', 'Token has expired')), 401
