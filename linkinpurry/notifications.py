import json
import logging

import requests
from flask import current_app
from pywebpush import WebPushException, webpush

from linkinpurry import db
from linkinpurry.models import PushSubscription

logger = logging.getLogger(__name__)

# Push services answer with these once a subscription is gone for good
GONE_STATUSES = (404, 410)


def _vapid():
    config = current_app.config
    private_key = config.get('VAPID_PRIVATE_KEY')
    mailto = config.get('VAPID_MAILTO')
    if not private_key or not mailto:
        return None, None
    return private_key, {'sub': f"mailto:{mailto}"}


def send_notification(subscription, data, ttl=0):
    """
    Deliver one payload to one subscription.

    `subscription` is a dict with ``endpoint`` and ``keys``; `data` is the
    notification (title, body, url, ...). Returns a result dict rather than
    raising so that fan-out never stops at the first dead endpoint.
    """
    endpoint = subscription['endpoint']
    private_key, claims = _vapid()
    if private_key is None:
        logger.info("VAPID keys not configured; skipping push to %s", endpoint)
        return {'success': False, 'endpoint': endpoint, 'error': 'Push notifications are not configured'}

    try:
        response = webpush(
            subscription_info=subscription,
            data=json.dumps(data),
            vapid_private_key=private_key,
            vapid_claims=dict(claims),
            ttl=ttl,
        )
    except requests.RequestException as e:
        logger.warning("Push to %s failed: %s", endpoint, e)
        return {'success': False, 'endpoint': endpoint, 'error': str(e)}
    except (ValueError, TypeError) as e:
        # malformed subscription keys or VAPID key
        logger.warning("Push to %s rejected: %s", endpoint, e)
        return {'success': False, 'endpoint': endpoint, 'error': str(e)}
    except WebPushException as e:
        status = e.response.status_code if e.response is not None else None
        logger.warning("Push to %s failed (status=%s): %s", endpoint, status, e)
        if status in GONE_STATUSES:
            PushSubscription.query.filter_by(endpoint=endpoint).delete()
            db.session.commit()
        return {'success': False, 'endpoint': endpoint, 'error': str(e)}

    return {'success': True, 'endpoint': endpoint, 'status': getattr(response, 'status_code', None)}


def send_notification_to_all(subscriptions, data):
    return [send_notification(subscription, data) for subscription in subscriptions]
