"""
Shopify webhook signature verification
"""

import base64
import hashlib
import hmac
import logging

from fastapi import Depends, HTTPException, Request, status

from storesync.core.config import SyncConfig
from storesync.dependencies import sync_config_dependency

logger = logging.getLogger(__name__)


def compute_shopify_hmac(secret: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 digest as sent in X-Shopify-Hmac-Sha256."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def is_valid_shopify_hmac(secret: str, body: bytes, signature: str) -> bool:
    if not secret or not signature:
        return False
    expected = compute_shopify_hmac(secret, body)
    return hmac.compare_digest(expected.encode("utf-8"), signature.strip().encode("utf-8"))


async def verify_shopify_webhook(
    request: Request,
    config: SyncConfig = Depends(sync_config_dependency),
) -> bytes:
    """Verify the webhook signature from Shopify and hand back the raw body"""
    signature = request.headers.get("X-Shopify-Hmac-Sha256")
    if not signature:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No signature provided")

    if not config.api_secret:
        logger.error("SHOPIFY_API_SECRET is not configured; rejecting webhook")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )

    body = await request.body()
    if not is_valid_shopify_hmac(config.api_secret, body, signature):
        logger.warning("Rejected webhook with invalid HMAC (shop=%s)", request.headers.get("X-Shopify-Shop-Domain"))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    return body
