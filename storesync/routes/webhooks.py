import logging
from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from storesync.core.config import SyncConfig
from storesync.core.enums import PRIVACY_TOPICS, WebhookTopic
from storesync.core.exceptions import ShopifyServiceError
from storesync.core.security import verify_shopify_webhook
from storesync.dependencies import get_order_relay, get_shopify_client, sync_config_dependency
from storesync.services.order_webhook_relay import OrderWebhookRelay
from storesync.services.shopify.client import ShopifyAdminClient
from storesync.services.shopify.webhooks import register_order_webhooks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("")
async def shopify_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    body: bytes = Depends(verify_shopify_webhook),
    relay: OrderWebhookRelay = Depends(get_order_relay),
):
    """Receive a Shopify webhook, acknowledge it and relay order topics in the background"""
    topic_header = request.headers.get("X-Shopify-Topic", "")
    shop_domain = request.headers.get("X-Shopify-Shop-Domain", "")
    webhook_id = request.headers.get("X-Shopify-Webhook-Id")

    if topic_header in PRIVACY_TOPICS:
        # Nothing customer-identifying is stored here, so there is nothing to export or redact
        logger.info(f"Privacy webhook {topic_header} acknowledged for {shop_domain}")
        return {"status": "received"}

    topic = WebhookTopic.from_header(topic_header)
    if topic is None:
        logger.info(f"Ignoring webhook topic '{topic_header}' from {shop_domain}")
        return {"status": "ignored"}

    background_tasks.add_task(relay.on_order_event, topic, shop_domain, body, webhook_id)
    return {"status": "received"}


@router.post("/register")
async def register_webhooks(
    config: SyncConfig = Depends(sync_config_dependency),
    client: ShopifyAdminClient = Depends(get_shopify_client),
):
    """Subscribe the order webhooks to this service's /api/webhooks endpoint"""
    if not config.app_url:
        raise HTTPException(status_code=400, detail="APP_URL must be set to register webhooks")

    callback_url = f"{config.app_url}/api/webhooks"
    logger.info(f"Registering order webhooks for {client.shop_domain} -> {callback_url}")

    try:
        result = await register_order_webhooks(client, callback_url)
    except ShopifyServiceError as e:
        logger.error(f"Error registering webhooks: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to register webhooks", "error": str(e)},
        )

    success = all(r["success"] for r in result)
    return {
        "success": success,
        "message": "Webhooks registered successfully" if success else "Some webhooks failed to register",
        "result": result,
    }


@router.get("/test")
async def test_webhook(request: Request):
    logger.info("Webhook test endpoint hit")
    return {
        "message": "Webhook endpoint is working!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "url": str(request.url),
    }
