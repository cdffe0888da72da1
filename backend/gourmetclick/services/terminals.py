# gourmetclick/services/terminals.py
"""
POS terminals: per terminal, one cart, one realtime router and one catalog cache.

Services are built once at startup and handed to routers through the
`get_terminals` dependency; each terminal has an explicit attach/detach
lifecycle.

Terminals are keyed by (tenant_id, terminal_id): two restaurants that pick the
same `X-Terminal-Id` never share a cart or a channel. A terminal only changes
tenant when the principal that attached it comes back under another tenant.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from gourmetclick.services.cart import CartComposer
from gourmetclick.services.catalog import Catalog, CatalogCache
from gourmetclick.services.realtime import ChannelTransport, RealtimeRouter

logger = logging.getLogger("gourmetclick.terminals")

TerminalKey = Tuple[str, str]


@dataclass
class Terminal:
    terminal_id: str
    tenant_id: str
    cart: CartComposer
    realtime: RealtimeRouter
    catalog: CatalogCache
    uid: Optional[str] = None
    # cart endpoints run in the threadpool; hold this around every cart read/write
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def key(self) -> TerminalKey:
        return (self.tenant_id, self.terminal_id)

    def close(self) -> None:
        self.catalog.dispose()
        self.realtime.close()


class TerminalRegistry:
    def __init__(
        self,
        transport: ChannelTransport,
        catalog_loader: Callable[[str], Catalog],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._transport = transport
        self._catalog_loader = catalog_loader
        self._loop = loop
        self._terminals: Dict[TerminalKey, Terminal] = {}

    def __len__(self) -> int:
        return len(self._terminals)

    def get(self, tenant_id: str, terminal_id: str) -> Optional[Terminal]:
        return self._terminals.get((tenant_id, terminal_id))

    def _previous_for(self, terminal_id: str, tenant_id: str, uid: Optional[str]) -> Optional[Terminal]:
        if not uid:
            return None
        for terminal in self._terminals.values():
            if terminal.terminal_id == terminal_id and terminal.uid == uid and terminal.tenant_id != tenant_id:
                return terminal
        return None

    def attach(self, terminal_id: str, tenant_id: str, uid: Optional[str] = None) -> Terminal:
        """
        Returns the tenant's terminal, creating it on first use.

        When the same principal (`uid`) re-attaches the terminal under another
        tenant, that terminal is switched: the router reconnects and the cart is
        cleared. Requests from other principals get their own terminal.
        """
        terminal = self._terminals.get((tenant_id, terminal_id))
        if terminal is not None:
            return terminal

        previous = self._previous_for(terminal_id, tenant_id, uid)
        if previous is not None:
            self._switch(previous, tenant_id)
            return previous

        router = RealtimeRouter(self._transport, loop=self._loop)
        terminal = Terminal(
            terminal_id=terminal_id,
            tenant_id=tenant_id,
            cart=CartComposer(),
            realtime=router,
            catalog=CatalogCache(self._catalog_loader, router),
            uid=uid,
        )
        self._terminals[terminal.key] = terminal
        logger.info("Terminal %s attached for tenant %s", terminal_id, tenant_id)
        router.connect(tenant_id)
        return terminal

    def _switch(self, terminal: Terminal, tenant_id: str) -> None:
        logger.info("Terminal %s switching tenant %s -> %s", terminal.terminal_id, terminal.tenant_id, tenant_id)
        with terminal.lock:
            del self._terminals[terminal.key]
            terminal.tenant_id = tenant_id
            terminal.cart.clear()
            terminal.catalog.invalidate()
            terminal.realtime.connect(tenant_id)
            self._terminals[terminal.key] = terminal

    def detach(self, tenant_id: str, terminal_id: str) -> bool:
        terminal = self._terminals.pop((tenant_id, terminal_id), None)
        if terminal is None:
            return False
        terminal.close()
        logger.info("Terminal %s detached from tenant %s", terminal_id, tenant_id)
        return True

    def close_all(self) -> None:
        for tenant_id, terminal_id in list(self._terminals):
            self.detach(tenant_id, terminal_id)


def get_terminals(request: Request) -> TerminalRegistry:
    """FastAPI dependency: the registry built at startup."""
    return request.app.state.terminals
