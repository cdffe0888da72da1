# gourmetclick/integrations/firestore_realtime.py
"""
Firestore implementation of the realtime channel transport.

A channel is one `Query.on_snapshot` watch per watched collection, each
filtered on the collection's tenant column. Firestore delivers the current
result set as the first snapshot of every watch; once all of them arrived the
channel reports SUBSCRIBED. Later snapshots carry document changes which are
turned into INSERT / UPDATE / DELETE events.

Snapshot callbacks run on Firestore's watch threads.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Sequence

from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.services.realtime import (
    CHANNEL_ERROR,
    SUBSCRIBED,
    ChangeEvent,
    TableBinding,
)

logger = logging.getLogger("gourmetclick.realtime.firestore")

_CHANGE_TYPES = {"ADDED": "INSERT", "MODIFIED": "UPDATE", "REMOVED": "DELETE"}


def _change_to_event(table: str, change) -> ChangeEvent:
    kind = getattr(change.type, "name", str(change.type))
    doc = change.document
    data = doc.to_dict() or {}
    event_type = _CHANGE_TYPES.get(kind, "UPDATE")
    if event_type == "DELETE":
        return ChangeEvent(table=table, event_type=event_type, record_id=doc.id, old=data)
    return ChangeEvent(table=table, event_type=event_type, record_id=doc.id, new=data)


class FirestoreChannel:
    def __init__(self, name: str):
        self.name = name
        self.watches: List = []
        self._lock = threading.Lock()
        self._pending_acks = 0
        self._closed = False

    def close(self) -> None:
        with self._lock:
            self._closed = True
            watches, self.watches = self.watches, []
        for watch in watches:
            watch.unsubscribe()


class FirestoreTransport:
    """Opens tenant-filtered snapshot watches on the given Firestore client."""

    def __init__(self, db_provider: Callable):
        self._db_provider = db_provider

    def open(self, name: str, tenant_id: str, bindings: Sequence[TableBinding], on_event, on_status) -> FirestoreChannel:
        db = self._db_provider()
        channel = FirestoreChannel(name)
        channel._pending_acks = len(bindings)

        for binding in bindings:
            query = db.collection(collection_name(binding.table)).where(
                filter=FieldFilter(binding.tenant_field, "==", tenant_id)
            )
            handler = self._make_handler(channel, binding.table, on_event, on_status)
            try:
                channel.watches.append(query.on_snapshot(handler))
            except Exception as exc:
                channel.close()
                on_status(CHANNEL_ERROR, exc)
                return channel
        return channel

    @staticmethod
    def _make_handler(channel: FirestoreChannel, table: str, on_event, on_status):
        state = {"initial": True}

        def handler(docs, changes, read_time):
            if channel._closed:
                return
            if state["initial"]:
                # first snapshot is the current result set, not a change
                state["initial"] = False
                with channel._lock:
                    channel._pending_acks -= 1
                    ready = channel._pending_acks == 0
                if ready:
                    on_status(SUBSCRIBED)
                return
            for change in changes:
                try:
                    on_event(_change_to_event(table, change))
                except Exception:
                    logger.exception("Failed to forward %s change on %s", table, channel.name)

        return handler
