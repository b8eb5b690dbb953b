# storesync/services/order_webhook_relay.py
"""
Relays Shopify order webhooks to the external system.

Each delivery goes Received -> Parsed -> Transformed -> Delivered, or ends in
DeliveryFailed / ParseFailed. There is exactly one delivery attempt per
invocation: no queue, no retry, no stored delivery state. Shopify redelivering
the same webhook produces a second, independent relay; the external system is
expected to be idempotent on order id.

Delivery sits behind OrderDelivery so a durable outbox can replace the direct
POST without touching the transform.
"""

import json
import logging
from typing import Any, Dict, Optional, Protocol, Union

from pydantic import ValidationError

from storesync.core.enums import RelayOutcome, WebhookTopic
from storesync.core.exceptions import ExternalAPIError, WebhookPayloadError
from storesync.schemas.orders import (
    LineItemProduct,
    LineItemVariant,
    OrderCustomer,
    OrderLineItem,
    OrderWebhookEvent,
    OutboundOrderEnvelope,
    TransformedOrder,
)

logger = logging.getLogger(__name__)


class OrderDelivery(Protocol):
    async def deliver(self, envelope: OutboundOrderEnvelope) -> Any:
        ...


def parse_order_body(raw_body: Union[bytes, str, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(raw_body, dict):
        return raw_body
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise WebhookPayloadError(f"Webhook body is not valid UTF-8: {e}")
    try:
        parsed = json.loads(raw_body)
    except (TypeError, json.JSONDecodeError) as e:
        raise WebhookPayloadError(f"Webhook body is not valid JSON: {e}")
    if not isinstance(parsed, dict):
        raise WebhookPayloadError(f"Webhook body must be a JSON object, got {type(parsed).__name__}")
    return parsed


def _str_or_none(value) -> Optional[str]:
    return None if value is None else str(value)


def _dict_or_none(value) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _transform_line_item(item: Dict[str, Any]) -> OrderLineItem:
    variant = None
    if item.get("variant_id"):
        variant = LineItemVariant(
            id=f"gid://shopify/ProductVariant/{item['variant_id']}",
            title=item.get("variant_title"),
            sku=item.get("sku"),
            price=_str_or_none(item.get("price")),
        )

    product = None
    if item.get("product_id"):
        product = LineItemProduct(
            id=f"gid://shopify/Product/{item['product_id']}",
            title=item.get("product_title") or item.get("title"),
            product_type=item.get("product_type"),
            vendor=item.get("vendor"),
        )

    return OrderLineItem(
        id=item.get("id"),
        title=item.get("title"),
        quantity=item.get("quantity") or 0,
        variant=variant,
        product=product,
    )


def transform_order(order: Dict[str, Any]) -> TransformedOrder:
    """Project a Shopify REST order payload onto the outbound order shape.

    Missing optional sections map to None rather than raising.
    """
    customer_data = _dict_or_none(order.get("customer"))
    customer = None
    if customer_data:
        customer = OrderCustomer(
            id=customer_data.get("id"),
            first_name=customer_data.get("first_name"),
            last_name=customer_data.get("last_name"),
            email=customer_data.get("email"),
            phone=customer_data.get("phone"),
        )

    shipping_set = _dict_or_none(order.get("total_shipping_price_set")) or {}
    shop_money = _dict_or_none(shipping_set.get("shop_money")) or {}

    line_items = order.get("line_items") or []
    if not isinstance(line_items, list):
        raise WebhookPayloadError("line_items must be a list")

    return TransformedOrder(
        order_id=order.get("id"),
        order_name=order.get("name"),
        email=order.get("email"),
        total_price=_str_or_none(order.get("total_price")),
        subtotal_price=_str_or_none(order.get("subtotal_price")),
        total_tax=_str_or_none(order.get("total_tax")),
        total_shipping=_str_or_none(shop_money.get("amount")) or "0",
        currency_code=order.get("currency"),
        fulfillment_status=order.get("fulfillment_status"),
        financial_status=order.get("financial_status"),
        processed_at=order.get("processed_at"),
        created_at=order.get("created_at"),
        updated_at=order.get("updated_at"),
        customer=customer,
        shipping_address=_dict_or_none(order.get("shipping_address")),
        billing_address=_dict_or_none(order.get("billing_address")),
        line_items=[_transform_line_item(item) for item in line_items if isinstance(item, dict)],
    )


def build_envelope(event: OrderWebhookEvent, order: TransformedOrder) -> OutboundOrderEnvelope:
    return OutboundOrderEnvelope(
        orders=[order],
        data=[order],
        order_data=[order],
        shop_domain=event.shop_domain,
        sync_type=event.topic.sync_type,
        webhook_id=event.webhook_id,
        topic=event.topic.value,
    )


class OrderWebhookRelay:

    def __init__(self, delivery: OrderDelivery):
        self.delivery = delivery

    async def on_order_event(
        self,
        topic: Union[WebhookTopic, str],
        shop_domain: str,
        raw_body: Union[bytes, str, Dict[str, Any]],
        webhook_id: Optional[str] = None,
    ) -> RelayOutcome:
        """Handle one order webhook delivery. Never raises."""
        resolved_topic = topic if isinstance(topic, WebhookTopic) else WebhookTopic.from_header(topic)
        if resolved_topic is None:
            logger.info(f"Ignoring unsupported webhook topic '{topic}' from {shop_domain}")
            return RelayOutcome.IGNORED

        logger.info(f"Webhook received: topic={resolved_topic.value} shop={shop_domain} webhook_id={webhook_id}")

        # Parsed
        try:
            raw_order = parse_order_body(raw_body)
            event = OrderWebhookEvent(
                topic=resolved_topic,
                shop_domain=shop_domain,
                webhook_id=webhook_id,
                raw_order=raw_order,
            )
            # Transformed
            order = transform_order(event.raw_order)
            envelope = build_envelope(event, order)
        except (WebhookPayloadError, ValidationError) as e:
            logger.error(f"Dropping {resolved_topic.value} webhook {webhook_id} from {shop_domain}: {e}")
            return RelayOutcome.PARSE_FAILED

        order_label = order.order_name or order.order_id
        logger.info(f"Sending order {order_label} ({envelope.sync_type}) to external API")

        # Delivered / DeliveryFailed
        try:
            result = await self.delivery.deliver(envelope)
        except ExternalAPIError as e:
            logger.error(
                f"Failed to send order webhook {order_label}: {e} "
                f"(status={e.status_code}, body={(e.body or '')[:500]})"
            )
            return RelayOutcome.DELIVERY_FAILED
        except Exception:
            logger.exception(f"Unexpected error delivering order webhook {order_label}")
            return RelayOutcome.DELIVERY_FAILED

        logger.info(f"Order webhook sent successfully: {order_label}")
        logger.debug(f"External API response for {order_label}: {result}")
        return RelayOutcome.DELIVERED
