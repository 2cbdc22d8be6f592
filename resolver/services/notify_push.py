#resolver/services/notify_push.py
import json
import logging
from pywebpush import webpush, WebPushException
from resolver.core.config import settings
from resolver.models.push import PushSubscription
from resolver.services.changes import ChangeEvent

VAPID_PRIVATE = settings.vapid_private_key
VAPID_PUBLIC = settings.vapid_public_key
VAPID_CLAIMS = {"sub": settings.vapid_sub}

def push_enabled() -> bool:
    return bool(VAPID_PRIVATE and VAPID_PUBLIC)

def send_push(subscription: dict, payload: dict) -> bool:
    if not push_enabled():
        return False
    try:
        webpush(
            subscription_info=subscription,
            data=json.dumps(payload),
            vapid_private_key=VAPID_PRIVATE,
            vapid_public_key=VAPID_PUBLIC,
            vapid_claims=VAPID_CLAIMS
        )
        return True
    except WebPushException as e:
        logging.warning(f"push failed: {e}")
        return False

class PushFanout:
    """Change feed subscriber that relays every event to all stored push subscriptions."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def __call__(self, event: ChangeEvent) -> None:
        if not push_enabled():
            return
        db = self.session_factory()
        try:
            subs = db.query(PushSubscription).all()
            payload = event.to_payload()
            for s in subs:
                send_push(
                    {"endpoint": s.endpoint, "keys": {"p256dh": s.p256dh, "auth": s.auth}},
                    payload,
                )
        finally:
            db.close()
