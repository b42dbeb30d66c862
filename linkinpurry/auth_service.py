from flask import current_app

from linkinpurry import bcrypt, db
from linkinpurry.auth import generate_token
from linkinpurry.errors import AuthenticationError, ValidationError
from linkinpurry.models import User
from linkinpurry.utils import is_valid_email

MIN_PASSWORD_LENGTH = 6


def login(identifier, password):
    """Check credentials (email first, then username) and return an access token."""
    user = User.query.filter_by(email=identifier).first()
    if not user:
        user = User.query.filter_by(username=identifier).first()
    if not user:
        raise AuthenticationError("User not found")

    if not password or not bcrypt.check_password_hash(user.password_hash, password):
        raise AuthenticationError("Invalid credentials")

    return generate_token(user)


def register(username, full_name, email, password, confirm_password=None):
    if confirm_password is not None and password != confirm_password:
        raise ValidationError("Passwords do not match")
    if not username:
        raise ValidationError("Username is required")
    if not is_valid_email(email):
        raise ValidationError("Invalid email format")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters long")

    if User.query.filter_by(email=email).first():
        raise ValidationError("Email already in use")
    if User.query.filter_by(username=username).first():
        raise ValidationError("Username already in use")

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=bcrypt.generate_password_hash(password).decode('utf-8'),
        profile_photo_path=current_app.config['DEFAULT_PROFILE'],
    )
    db.session.add(user)
    db.session.commit()

    return {'userId': user.id, 'username': user.username, 'email': user.email}
