import logging

from fastapi import FastAPI

from farmrelay.api.v1.router import router as v1_router
from farmrelay.core import settings
from farmrelay.core.logging import configure_logging, log_system_info
from farmrelay.services.presence_store import SqlPresenceStore
from farmrelay.services.relay_router import RelayRouter

logger = logging.getLogger("farmrelay")

app = FastAPI(title="farmrelay", version="0.1.0")
app.include_router(v1_router, prefix="/v1")


@app.on_event("startup")
async def startup_event():
    """Build the relay and drop host records left over from a previous run."""
    configure_logging(settings.LOG_LEVEL)
    log_system_info(logger)

    if getattr(app.state, "relay", None) is None:
        app.state.relay = RelayRouter(SqlPresenceStore())

    if settings.CLEAR_HOSTS_ON_STARTUP:
        await app.state.relay.presence.clear_hosts()
    logger.info("Relay ready (env=%s)", settings.ENV)
