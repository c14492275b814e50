import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from entitlements.core import config
from entitlements.core.logging_config import setup_logging
from entitlements.api.routes import health, resources, usage, webhooks

logger = logging.getLogger(__name__)


# ============================================
# ✅ STARTUP
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL)

    if config.RUN_MIGRATIONS == "1":
        from entitlements.db.migrate import run_migrations
        run_migrations()
    else:
        from entitlements.db.init_db import init_db
        init_db()

    logger.info("Entitlement engine started")
    yield


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

# CORS for the webhook routes is answered by each provider gateway itself
app = FastAPI(title="Entitlement Engine", lifespan=lifespan)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(webhooks.router)
app.include_router(resources.router)
app.include_router(usage.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "Entitlement engine running"}
