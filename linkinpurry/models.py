from datetime import datetime, timezone

from linkinpurry import db


def utcnow():
    """Naive UTC timestamp, as stored by every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(255), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.Text, nullable=False)
    full_name = db.Column(db.String(255), nullable=True)
    profile_photo_path = db.Column(db.Text, nullable=False, default='')
    work_history = db.Column(db.Text, nullable=True)
    skills = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    feeds = db.relationship('Feed', back_populates='author', cascade='all, delete-orphan')

    def summary(self):
        return {
            'id': self.id,
            'full_name': self.full_name,
            'profile_photo_path': self.profile_photo_path,
        }


class Connection(db.Model):
    """An accepted connection. Stored once per pair; direction carries no meaning."""

    __tablename__ = 'connection'

    from_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    to_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    from_user = db.relationship('User', foreign_keys=[from_id])
    to_user = db.relationship('User', foreign_keys=[to_id])

    @classmethod
    def between(cls, user_a, user_b):
        return cls.query.filter(
            db.or_(
                db.and_(cls.from_id == user_a, cls.to_id == user_b),
                db.and_(cls.from_id == user_b, cls.to_id == user_a),
            )
        )

    @classmethod
    def involving(cls, user_id):
        return cls.query.filter(db.or_(cls.from_id == user_id, cls.to_id == user_id))

    def other(self, user_id):
        return self.to_id if self.from_id == user_id else self.from_id


class ConnectionRequest(db.Model):
    __tablename__ = 'connection_request'

    from_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    to_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    sender = db.relationship('User', foreign_keys=[from_id])

    @classmethod
    def between(cls, user_a, user_b):
        return cls.query.filter(
            db.or_(
                db.and_(cls.from_id == user_a, cls.to_id == user_b),
                db.and_(cls.from_id == user_b, cls.to_id == user_a),
            )
        )


class Feed(db.Model):
    __tablename__ = 'feed'

    MAX_LENGTH = 280

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    content = db.Column(db.String(MAX_LENGTH), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    author = db.relationship('User', back_populates='feeds')


class Chat(db.Model):
    __tablename__ = 'chat'

    id = db.Column(db.Integer, primary_key=True)
    from_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    to_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    @classmethod
    def between(cls, user_a, user_b):
        return cls.query.filter(
            db.or_(
                db.and_(cls.from_id == user_a, cls.to_id == user_b),
                db.and_(cls.from_id == user_b, cls.to_id == user_a),
            )
        )


class PushSubscription(db.Model):
    __tablename__ = 'push_subscriptions'

    endpoint = db.Column(db.Text, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    keys = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def as_webpush_info(self):
        return {'endpoint': self.endpoint, 'keys': dict(self.keys or {})}
