# gourmetclick/services/realtime.py
"""
Realtime fan-out router.

One router owns exactly one upstream change-notification channel for the
tenant it is connected to. The channel is bound to every watched table with a
tenant filter; incoming change events are fanned out to the callbacks
registered for that table.

Events only signal that data changed: subscribers refetch what they need.
Channel errors are logged and not retried; a reconnect happens only when the
tenant changes or the router is rebuilt.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

logger = logging.getLogger("gourmetclick.realtime")

SUBSCRIBED = "SUBSCRIBED"
CHANNEL_ERROR = "CHANNEL_ERROR"

EVENT_TYPES = ("INSERT", "UPDATE", "DELETE")


@dataclass(frozen=True)
class TableBinding:
    table: str
    tenant_field: str = "tenant_id"


# Every collection this application writes is scoped by `tenant_id`.
WATCHED_TABLES: Tuple[TableBinding, ...] = (
    TableBinding("products"),
    TableBinding("categories"),
    TableBinding("orders"),
    TableBinding("cash_sessions"),
)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str
    record_id: Optional[str] = None
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], Any]
StatusCallback = Callable[..., None]


class Channel(Protocol):
    def close(self) -> None: ...


class ChannelTransport(Protocol):
    def open(
        self,
        name: str,
        tenant_id: str,
        bindings: Sequence[TableBinding],
        on_event: ChangeCallback,
        on_status: StatusCallback,
    ) -> Channel: ...


class ChannelState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    CLOSED = "closed"


class Subscription:
    """Handle returned by `RealtimeRouter.subscribe`; dispose with `unsubscribe()`."""

    def __init__(self, router: "RealtimeRouter", table: str, callback: ChangeCallback):
        self._router = router
        self.table = table
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._router._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


class RealtimeRouter:
    """
    Multiplexed change-notification channel per tenant with per-table listeners.

    When `loop` is given, transport callbacks (which may arrive on foreign
    threads, e.g. Firestore watch threads) are queued onto that loop and
    dispatched there.
    """

    def __init__(
        self,
        transport: ChannelTransport,
        bindings: Sequence[TableBinding] = WATCHED_TABLES,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._transport = transport
        self._bindings = tuple(bindings)
        self._loop = loop
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._channel: Optional[Channel] = None
        self._generation = 0
        self.tenant_id: Optional[str] = None
        self.state = ChannelState.DISCONNECTED
        self.last_error: Optional[BaseException] = None

    # ---------- lifecycle ----------
    @property
    def has_channel(self) -> bool:
        return self._channel is not None

    def connect(self, tenant_id: Optional[str]) -> None:
        """
        Points the router at `tenant_id`. The previous channel is always torn
        down before a new one is opened; `None` just disconnects.
        """
        if self.state is ChannelState.CLOSED:
            raise RuntimeError("Realtime router is closed")
        if tenant_id and tenant_id == self.tenant_id and self._channel is not None:
            return

        self._teardown()
        self.tenant_id = tenant_id
        if not tenant_id:
            self.state = ChannelState.DISCONNECTED
            return

        self._generation += 1
        generation = self._generation
        name = f"global-tenant-{tenant_id}"
        logger.info("Opening realtime channel %s", name)
        self.state = ChannelState.CONNECTING
        try:
            self._channel = self._transport.open(
                name,
                tenant_id,
                self._bindings,
                partial(self._receive, generation),
                partial(self._receive_status, generation),
            )
        except Exception as exc:
            self._set_status(generation, CHANNEL_ERROR, exc)

    def close(self) -> None:
        """Unconditional teardown; the router cannot be reconnected afterwards."""
        self._teardown()
        self.state = ChannelState.CLOSED

    def _teardown(self) -> None:
        channel, self._channel = self._channel, None
        # events still in flight from the old channel are dropped
        self._generation += 1
        if channel is None:
            return
        logger.info("Closing realtime channel for tenant %s", self.tenant_id)
        try:
            channel.close()
        except Exception:
            logger.exception("Realtime channel teardown failed (tenant %s)", self.tenant_id)

    # ---------- subscribers ----------
    def subscribe(self, table: str, callback: ChangeCallback) -> Subscription:
        sub = Subscription(self, table, callback)
        self._subscribers.setdefault(table, []).append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.table)
        if subs and sub in subs:
            subs.remove(sub)

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers.get(table, ()))

    # ---------- transport callbacks ----------
    def _receive(self, generation: int, event: ChangeEvent) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._deliver, generation, event)
        else:
            self._deliver(generation, event)

    def _receive_status(self, generation: int, status: str, error: Optional[BaseException] = None) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._set_status, generation, status, error)
        else:
            self._set_status(generation, status, error)

    def _set_status(self, generation: int, status: str, error: Optional[BaseException] = None) -> None:
        if generation != self._generation:
            return
        if status == SUBSCRIBED:
            self.state = ChannelState.CONNECTED
            self.last_error = None
            logger.info("Realtime connected (tenant %s)", self.tenant_id)
        elif status == CHANNEL_ERROR:
            self.state = ChannelState.ERROR
            self.last_error = error
            logger.error("Realtime channel error (tenant %s): %s", self.tenant_id, error)

    def _deliver(self, generation: int, event: ChangeEvent) -> None:
        if generation != self._generation:
            logger.debug("Dropping %s event from a closed channel", event.table)
            return
        self.dispatch(event)

    def dispatch(self, event: ChangeEvent) -> None:
        """Calls every listener of `event.table` in registration order."""
        logger.debug("Realtime event [%s] %s %s", event.table, event.event_type, event.record_id)
        for sub in list(self._subscribers.get(event.table, ())):
            if not sub.active:
                continue
            try:
                sub.callback(event)
            except Exception:
                logger.exception("Realtime subscriber for %s failed", event.table)
