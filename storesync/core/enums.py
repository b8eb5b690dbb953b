"""
Shared enums and constants used across the application.
"""

from enum import Enum


class SyncEndpointKind(str, Enum):
    """External endpoints the service talks to"""
    ORDER_SYNC = "ORDER_SYNC"
    SKU_QUANTITIES = "SKU_QUANTITIES"
    PRODUCT_SYNC = "PRODUCT_SYNC"


class WebhookTopic(str, Enum):
    ORDERS_CREATE = "ORDERS_CREATE"
    ORDERS_UPDATED = "ORDERS_UPDATED"

    @property
    def header_value(self):
        # X-Shopify-Topic uses the REST form, e.g. "orders/create"
        return {
            WebhookTopic.ORDERS_CREATE: "orders/create",
            WebhookTopic.ORDERS_UPDATED: "orders/updated",
        }[self]

    @property
    def sync_type(self):
        return "webhook" if self is WebhookTopic.ORDERS_CREATE else "webhook-update"

    @classmethod
    def from_header(cls, value: str):
        """Map an X-Shopify-Topic header (or enum name) to a topic, None if unsupported."""
        if not value:
            return None
        normalized = value.strip()
        for topic in cls:
            if normalized == topic.header_value or normalized.upper() == topic.value:
                return topic
        return None


# Mandatory compliance topics; acknowledged only, no data is stored here
PRIVACY_TOPICS = frozenset({
    "customers/data_request",
    "customers/redact",
    "shop/redact",
})


class SkuOutcomeStatus(str, Enum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class RelayOutcome(str, Enum):
    """Terminal states of a single webhook relay invocation"""
    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"
    PARSE_FAILED = "parse_failed"
    IGNORED = "ignored"
