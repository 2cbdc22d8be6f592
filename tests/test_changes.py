from resolver.models.push import PushSubscription
from resolver.services import notify_push
from resolver.services.changes import ChangeEvent, ChangeFeed


def test_subscribe_and_unsubscribe():
    feed = ChangeFeed()
    seen = []
    unsubscribe = feed.subscribe(seen.append)
    assert len(feed) == 1

    feed.publish(ChangeEvent("issues", "INSERT", 1))
    unsubscribe()
    feed.publish(ChangeEvent("issues", "UPDATE", 1))

    assert seen == [ChangeEvent("issues", "INSERT", 1)]
    assert len(feed) == 0
    unsubscribe()


def test_failing_subscriber_does_not_block_others():
    feed = ChangeFeed()
    seen = []

    def broken(event):
        raise RuntimeError("renderer went away")

    feed.subscribe(broken)
    feed.subscribe(seen.append)
    feed.publish(ChangeEvent("profiles", "UPDATE", 7))
    assert seen == [ChangeEvent("profiles", "UPDATE", 7)]


def test_event_payload():
    assert ChangeEvent("issues", "UPDATE", 3).to_payload() == {"table": "issues", "event": "UPDATE", "id": 3}


def test_push_fanout_is_inert_without_vapid_keys(session_factory):
    opened = []

    def factory():
        opened.append(True)
        return session_factory()

    notify_push.PushFanout(factory)(ChangeEvent("issues", "INSERT", 1))
    assert opened == []


def test_push_fanout_sends_to_every_subscription(db, resident, session_factory, monkeypatch):
    db.add(PushSubscription(user_id=resident.id, endpoint="https://push.example.com/a", p256dh="k1", auth="a1"))
    db.add(PushSubscription(user_id=resident.id, endpoint="https://push.example.com/b", p256dh="k2", auth="a2"))
    db.commit()

    sent = []
    monkeypatch.setattr(notify_push, "VAPID_PRIVATE", "private")
    monkeypatch.setattr(notify_push, "VAPID_PUBLIC", "public")
    monkeypatch.setattr(notify_push, "webpush", lambda **kwargs: sent.append(kwargs))

    notify_push.PushFanout(session_factory)(ChangeEvent("issues", "UPDATE", 5))

    assert sorted(s["subscription_info"]["endpoint"] for s in sent) == [
        "https://push.example.com/a",
        "https://push.example.com/b",
    ]
    assert sent[0]["data"] == '{"table": "issues", "event": "UPDATE", "id": 5}'
