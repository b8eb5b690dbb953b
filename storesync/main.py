# storesync/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storesync.core import logging_config  # noqa: F401  (configures logging on import)
from storesync.core.config import get_sync_config
from storesync.core.exceptions import ConfigurationError
from storesync.routes import health, skus, webhooks
from storesync.services.endpoint_resolver import SyncEndpointResolver
from storesync.services.inventory_reconciler import SkuLockRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail fast: an unset EXTERNAL_API_BASE_URL stops startup instead of surfacing later as HTTP errors
    config = get_sync_config()
    try:
        SyncEndpointResolver(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        raise

    if not config.shop_domain or not config.access_token:
        logger.warning("Shopify credentials are not configured; inventory reconciliation will fail until they are set")
    if not config.api_secret:
        logger.warning("SHOPIFY_API_SECRET is not set; incoming webhooks will be rejected")

    app.state.sku_locks = SkuLockRegistry()
    yield


app = FastAPI(
    title="storesync",
    lifespan=lifespan
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error handling {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Service is not configured", "error": str(exc)},
    )


app.include_router(skus.router)
app.include_router(webhooks.router)  # Webhooks authenticate via HMAC, not sessions
app.include_router(health.router)
