# storesync/services/shopify/webhooks.py

import logging
from typing import Any, Dict, List

from storesync.core.enums import WebhookTopic
from storesync.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)


WEBHOOK_SUBSCRIPTION_CREATE = """
mutation webhookSubscriptionCreate($topic: WebhookSubscriptionTopic!, $webhookSubscription: WebhookSubscriptionInput!) {
  webhookSubscriptionCreate(topic: $topic, webhookSubscription: $webhookSubscription) {
    webhookSubscription {
      id
      topic
    }
    userErrors {
      field
      message
    }
  }
}
"""


async def register_order_webhooks(client: ShopifyAdminClient, callback_url: str) -> List[Dict[str, Any]]:
    """Subscribe both order topics to callback_url; returns one result per topic."""
    results = []
    for topic in WebhookTopic:
        data = await client.graphql(
            WEBHOOK_SUBSCRIPTION_CREATE,
            {
                "topic": topic.value,
                "webhookSubscription": {"callbackUrl": callback_url, "format": "JSON"},
            },
        )
        payload = data.get("webhookSubscriptionCreate") or {}
        user_errors = payload.get("userErrors") or []
        subscription = payload.get("webhookSubscription") or {}
        if user_errors:
            logger.warning(f"Webhook registration for {topic.value} returned errors: {user_errors}")
        else:
            logger.info(f"Registered {topic.value} webhook -> {callback_url} ({subscription.get('id')})")
        results.append({
            "topic": topic.value,
            "success": not user_errors,
            "subscription_id": subscription.get("id"),
            "errors": user_errors,
        })
    return results
