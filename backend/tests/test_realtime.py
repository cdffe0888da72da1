import asyncio
import threading
from types import SimpleNamespace

import pytest

from conftest import FakeTransport
from gourmetclick.integrations.firestore_realtime import FirestoreTransport
from gourmetclick.services.realtime import (
    CHANNEL_ERROR,
    SUBSCRIBED,
    WATCHED_TABLES,
    ChangeEvent,
    ChannelState,
    RealtimeRouter,
)


@pytest.fixture
def router(transport):
    r = RealtimeRouter(transport)
    yield r
    r.close()


def test_connect_opens_one_channel_bound_to_all_tables(router, transport):
    router.connect("t1")

    assert len(transport.channels) == 1
    channel = transport.last
    assert channel.name == "global-tenant-t1"
    assert [b.table for b in channel.bindings] == ["products", "categories", "orders", "cash_sessions"]
    assert all(b.tenant_field == "tenant_id" for b in channel.bindings)
    assert router.state is ChannelState.CONNECTING


def test_same_tenant_does_not_reconnect(router, transport):
    router.connect("t1")
    router.connect("t1")

    assert len(transport.channels) == 1


def test_tenant_change_tears_down_before_opening(router, transport):
    router.connect("t1")
    old = transport.last

    router.connect("t2")

    assert old.closed
    assert transport.open_channels() == [transport.last]
    assert transport.last.name == "global-tenant-t2"


def test_events_fan_out_in_registration_order(router, transport):
    calls = []
    router.subscribe("orders", lambda e: calls.append(("a", e.record_id)))
    router.subscribe("orders", lambda e: calls.append(("b", e.record_id)))
    router.subscribe("products", lambda e: calls.append(("p", e.record_id)))
    router.connect("t1")

    transport.last.emit("orders", "INSERT", record_id="o1")

    assert calls == [("a", "o1"), ("b", "o1")]


def test_events_from_a_replaced_channel_are_dropped(router, transport):
    seen = []
    router.subscribe("orders", seen.append)
    router.connect("t1")
    stale = transport.last
    router.connect("t2")

    stale.emit("orders")
    stale.on_status(SUBSCRIBED)

    assert seen == []
    assert router.state is ChannelState.CONNECTING


def test_listener_registered_before_a_switch_hears_the_new_channel(router, transport):
    seen = []
    router.subscribe("orders", seen.append)
    router.connect("t1")
    router.connect("t2")

    transport.last.emit("orders", "INSERT", record_id="o2")

    assert [e.record_id for e in seen] == ["o2"]
    assert transport.last.tenant_id == "t2"


def test_failing_subscriber_does_not_stop_the_others(router, transport):
    seen = []

    def boom(event):
        raise RuntimeError("listener bug")

    router.subscribe("orders", boom)
    router.subscribe("orders", seen.append)
    router.connect("t1")

    transport.last.emit("orders")

    assert len(seen) == 1


def test_unsubscribe_is_idempotent(router, transport):
    seen = []
    sub = router.subscribe("orders", seen.append)
    router.connect("t1")

    sub.unsubscribe()
    sub.unsubscribe()
    transport.last.emit("orders")

    assert seen == []
    assert router.subscriber_count("orders") == 0


def test_subscription_as_context_manager(router):
    with router.subscribe("products", lambda e: None):
        assert router.subscriber_count("products") == 1
    assert router.subscriber_count("products") == 0


def test_status_changes(router, transport):
    router.connect("t1")
    transport.last.on_status(SUBSCRIBED)
    assert router.state is ChannelState.CONNECTED

    err = ConnectionError("lost")
    transport.last.on_status(CHANNEL_ERROR, err)
    assert router.state is ChannelState.ERROR
    assert router.last_error is err
    # errors are not retried
    assert len(transport.channels) == 1


def test_open_failure_puts_router_in_error():
    router = RealtimeRouter(FakeTransport(fail=True))
    router.connect("t1")

    assert router.state is ChannelState.ERROR
    assert isinstance(router.last_error, ConnectionError)
    assert not router.has_channel


def test_close_is_final(router, transport):
    router.connect("t1")
    router.close()

    assert transport.last.closed
    assert router.state is ChannelState.CLOSED
    with pytest.raises(RuntimeError):
        router.connect("t1")


def test_connect_none_disconnects(router, transport):
    router.connect("t1")
    router.connect(None)

    assert transport.last.closed
    assert router.state is ChannelState.DISCONNECTED


async def test_foreign_thread_events_are_dispatched_on_the_loop(transport):
    loop = asyncio.get_running_loop()
    router = RealtimeRouter(transport, loop=loop)
    seen = []
    router.subscribe("orders", lambda e: seen.append(threading.get_ident()))
    router.connect("t1")
    channel = transport.last

    worker = threading.Thread(target=lambda: (channel.on_status(SUBSCRIBED), channel.emit("orders")))
    worker.start()
    worker.join()
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert seen == [threading.get_ident()]
    assert router.state is ChannelState.CONNECTED
    router.close()


# ---------- Firestore transport ----------

class _Watch:
    def __init__(self):
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True


class _Query:
    def __init__(self, registry, name):
        self.registry = registry
        self.name = name
        self.filters = []

    def where(self, filter=None):
        self.filters.append((filter.field_path, filter.op_string, filter.value))
        return self

    def on_snapshot(self, callback):
        watch = _Watch()
        self.registry[self.name] = (callback, watch, self.filters)
        return watch


class _Db:
    def __init__(self):
        self.watches = {}

    def collection(self, name):
        return _Query(self.watches, name)


def _change(kind, doc_id, **data):
    return SimpleNamespace(
        type=SimpleNamespace(name=kind),
        document=SimpleNamespace(id=doc_id, to_dict=lambda: data),
    )


def test_firestore_transport_reports_subscribed_after_every_initial_snapshot():
    db = _Db()
    statuses, events = [], []
    channel = FirestoreTransport(lambda: db).open(
        "global-tenant-t1", "t1", WATCHED_TABLES, events.append, lambda *a: statuses.append(a[0])
    )

    assert set(db.watches) == {"products", "categories", "orders", "cash_sessions"}
    assert db.watches["orders"][2] == [("tenant_id", "==", "t1")]

    for name in ("products", "categories", "orders"):
        db.watches[name][0]([], [], None)
    assert statuses == []
    db.watches["cash_sessions"][0]([], [], None)
    assert statuses == [SUBSCRIBED]

    db.watches["orders"][0]([], [_change("ADDED", "o1", total=10), _change("REMOVED", "o2", total=5)], None)
    assert events == [
        ChangeEvent(table="orders", event_type="INSERT", record_id="o1", new={"total": 10}),
        ChangeEvent(table="orders", event_type="DELETE", record_id="o2", old={"total": 5}),
    ]

    channel.close()
    assert all(w.unsubscribed for _, w, _ in db.watches.values())
    db.watches["orders"][0]([], [_change("MODIFIED", "o1")], None)
    assert len(events) == 2


def test_firestore_transport_open_failure_reports_channel_error():
    db = _Db()
    opened = []

    class _BrokenQuery(_Query):
        def on_snapshot(self, callback):
            if self.name == "orders":
                raise ValueError("listen rejected")
            watch = super().on_snapshot(callback)
            opened.append(watch)
            return watch

    db.collection = lambda name: _BrokenQuery(db.watches, name)
    statuses = []
    FirestoreTransport(lambda: db).open("c", "t1", WATCHED_TABLES, lambda e: None,
                                        lambda *a: statuses.append(a[0]))

    assert statuses == [CHANNEL_ERROR]
    assert opened and all(w.unsubscribed for w in opened)
