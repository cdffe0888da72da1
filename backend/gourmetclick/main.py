"""
gourmetclick/main.py - application entry point.

Routers are mounted here (admin routers under `/admin`), CORS is configured
from settings, and two long-lived services are started with the app:

- the POS terminal registry (cart + realtime router + catalog cache per
  terminal), fed by Firestore snapshot listeners
- an APScheduler job that closes duplicate open cash sessions
"""
import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gourmetclick.config import get_db, settings
from gourmetclick.integrations.firestore_realtime import FirestoreTransport
from gourmetclick.routers import (
    auth,
    cash_sessions,
    categories,
    expenses,
    link_card,
    orders,
    pos,
    products,
    public,
    reports,
    staff,
    terminal,
)
from gourmetclick.routers import settings as settings_router
from gourmetclick.services.catalog import load_catalog
from gourmetclick.services.sessions_sync import sweep_sessions_once
from gourmetclick.services.terminals import TerminalRegistry

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gourmetclick")

scheduler = AsyncIOScheduler()

app = FastAPI(
    title="GourmetClick POS API",
    description="Point-of-sale, orders, cash register and public menu backend for restaurants.",
    version="1.0.0",
    debug=settings.debug,
    redirect_slashes=False,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Public / staff routers
app.include_router(auth.router)
app.include_router(terminal.router)
app.include_router(pos.router)
app.include_router(orders.router)
app.include_router(cash_sessions.router)
app.include_router(expenses.router)
app.include_router(categories.router)
app.include_router(products.router)
app.include_router(settings_router.router)
app.include_router(link_card.router)
app.include_router(public.router)

# Admin routers (prefix /admin)
app.include_router(orders.admin_router, prefix="/admin")
app.include_router(categories.admin_router, prefix="/admin")
app.include_router(products.admin_router, prefix="/admin")
app.include_router(staff.admin_router, prefix="/admin")
app.include_router(reports.admin_router, prefix="/admin")


def _load_catalog(tenant_id: str):
    return load_catalog(get_db(), tenant_id)


@app.on_event("startup")
async def _startup():
    app.state.terminals = TerminalRegistry(
        FirestoreTransport(get_db),
        _load_catalog,
        loop=asyncio.get_running_loop(),
    )
    if settings.orphan_sweep_minutes > 0:
        scheduler.add_job(
            sweep_sessions_once,
            "interval",
            minutes=settings.orphan_sweep_minutes,
            id="orphan-session-sweep",
            replace_existing=True,
        )
        if not scheduler.running:
            scheduler.start()
    logger.info("GourmetClick API started")


@app.on_event("shutdown")
async def _shutdown():
    terminals = getattr(app.state, "terminals", None)
    if terminals is not None:
        terminals.close_all()
    if scheduler.running:
        scheduler.shutdown(wait=False)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}


# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("gourmetclick.main:app", host="0.0.0.0", port=8000, reload=True)
