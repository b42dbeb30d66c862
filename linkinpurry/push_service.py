from linkinpurry import db
from linkinpurry.errors import NotFound, ValidationError
from linkinpurry.models import PushSubscription
from linkinpurry.notifications import send_notification_to_all
from linkinpurry.utils import isoformat

SUBSCRIPTION_KEYS = ('p256dh', 'auth')


def subscription_dict(subscription):
    return {
        'endpoint': subscription.endpoint,
        'user_id': subscription.user_id,
        'keys': subscription.keys,
        'created_at': isoformat(subscription.created_at),
    }


def save_subscription(endpoint, user_id, keys):
    """Create or re-assign the subscription for `endpoint` (one browser, one row)."""
    if not endpoint:
        raise ValidationError("Subscription endpoint is required")
    if not isinstance(keys, dict):
        raise ValidationError("Subscription keys are required")
    for name in SUBSCRIPTION_KEYS:
        if not isinstance(keys.get(name), str) or not keys[name]:
            raise ValidationError(f"Subscription key '{name}' is required")
    keys = {name: keys[name] for name in SUBSCRIPTION_KEYS}

    subscription = db.session.get(PushSubscription, endpoint)
    if subscription:
        subscription.user_id = user_id
        subscription.keys = keys
    else:
        subscription = PushSubscription(endpoint=endpoint, user_id=user_id, keys=keys)
        db.session.add(subscription)
    db.session.commit()
    return subscription_dict(subscription)


def get_subscription_by_endpoint(endpoint):
    return db.session.get(PushSubscription, endpoint) if endpoint else None


def get_subscriptions_by_user(user_id):
    return PushSubscription.query.filter_by(user_id=user_id).all()


def get_all_subscriptions(user_ids):
    if not user_ids:
        return []
    return PushSubscription.query.filter(PushSubscription.user_id.in_(list(user_ids))).all()


def delete_subscription(endpoint, user_id):
    subscription = get_subscription_by_endpoint(endpoint)
    if not subscription or subscription.user_id != user_id:
        raise NotFound("Subscription not found")
    db.session.delete(subscription)
    db.session.commit()


def notify_users(user_ids, data):
    """Push `data` to every subscription owned by `user_ids`."""
    subscriptions = [s.as_webpush_info() for s in get_all_subscriptions(user_ids)]
    if not subscriptions:
        return []
    return send_notification_to_all(subscriptions, data)
