import logging
import os

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from linkinpurry import db
from linkinpurry.errors import NotFound, PermissionDenied, ValidationError
from linkinpurry.images import compress_image, validate_photo
from linkinpurry.models import Connection, ConnectionRequest, Feed, User
from linkinpurry.storage import StorageError

logger = logging.getLogger(__name__)

RELEVANT_POST_COUNT = 5


def _connection_status(user_id, viewer_id):
    """'sent' when the viewer asked to connect, 'received' when the user did, else 'none'."""
    if db.session.get(ConnectionRequest, (viewer_id, user_id)):
        return 'sent'
    if db.session.get(ConnectionRequest, (user_id, viewer_id)):
        return 'received'
    return 'none'


def get_profile(user_id, viewer_id=None):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    profile = {
        'id': user.id,
        'username': user.username,
        'name': user.full_name,
        'profile_photo_path': user.profile_photo_path,
        'work_history': user.work_history,
        'skills': user.skills,
        'connection_count': Connection.involving(user_id).count(),
    }
    if viewer_id is None:
        return profile

    posts = (
        Feed.query.filter_by(user_id=user_id)
        .order_by(Feed.created_at.desc(), Feed.id.desc())
        .limit(RELEVANT_POST_COUNT)
        .all()
    )
    profile['relevant_posts'] = [{'id': post.id, 'content': post.content} for post in posts]

    if viewer_id == user_id:
        profile['isOwner'] = True
    elif Connection.between(user_id, viewer_id).first():
        profile['isConnected'] = True
    else:
        profile['isConnected'] = False
        profile['connectionStatus'] = _connection_status(user_id, viewer_id)
    return profile


def _store_photo(photo):
    data, filename, mime_type = photo
    validate_photo(data, mime_type, current_app.config['MAX_PHOTO_SIZE'])
    compressed = compress_image(data)
    storage = current_app.extensions['storage']
    try:
        # stored bytes are always JPEG, whatever was uploaded
        return storage.upload(compressed, f"{os.path.splitext(filename)[0]}.jpg", 'image/jpeg')
    except StorageError as e:
        raise ValidationError(str(e))


def update_profile(user_id, actor_id, name=None, work_history=None, skills=None, username=None, photo=None):
    """
    Update the owner's profile in one transaction.

    Fields left as None are unchanged; `photo` is a (bytes, filename, mimetype)
    tuple. The previous photo is removed from storage only after the new
    values are committed, and never when it is the default picture.
    """
    if user_id != actor_id:
        raise PermissionDenied("You can only update your own profile")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    if username is not None:
        username = username.strip()
        if not username:
            raise ValidationError("Username cannot be empty!")
        taken = User.query.filter_by(username=username).first()
        if taken and taken.id != user_id:
            raise ValidationError("Username is already in use")

    if name is not None and not name.strip():
        raise ValidationError("Full Name cannot be empty!")

    old_photo = user.profile_photo_path
    new_photo = _store_photo(photo) if photo is not None else None

    if username is not None:
        user.username = username
    if name is not None:
        user.full_name = name
    if work_history is not None:
        user.work_history = work_history
    if skills is not None:
        user.skills = skills
    if new_photo:
        user.profile_photo_path = new_photo

    storage = current_app.extensions['storage']
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        if new_photo:
            storage.delete(new_photo)
        raise

    if new_photo and old_photo and old_photo != current_app.config['DEFAULT_PROFILE']:
        try:
            storage.delete(old_photo)
        except StorageError as e:
            logger.warning("Could not delete old profile photo %s: %s", old_photo, e)

    return {
        'userId': user.id,
        'fullName': user.full_name,
        'profilePhotoPath': user.profile_photo_path,
        'workHistory': user.work_history,
        'skills': user.skills,
        'username': user.username,
    }
