# File: storesync/schemas/orders.py
"""
Shapes for the order webhook relay.

Inbound webhook bodies are Shopify REST order JSON (snake_case). The outbound
envelope keeps the camelCase field names the external system already reads,
so models below serialize by alias.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storesync.core.enums import WebhookTopic


class _Outbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class OrderCustomer(_Outbound):
    id: Optional[Any] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None


class LineItemVariant(_Outbound):
    id: str
    title: Optional[str] = None
    sku: Optional[str] = None
    price: Optional[str] = None


class LineItemProduct(_Outbound):
    id: str
    title: Optional[str] = None
    product_type: Optional[str] = Field(default=None, alias="productType")
    vendor: Optional[str] = None


class OrderLineItem(_Outbound):
    id: Optional[Any] = None
    title: Optional[str] = None
    quantity: int = 0
    variant: Optional[LineItemVariant] = None
    product: Optional[LineItemProduct] = None


class TransformedOrder(_Outbound):
    order_id: Optional[Any] = Field(default=None, alias="orderId")
    order_name: Optional[str] = Field(default=None, alias="orderName")
    email: Optional[str] = None
    total_price: Optional[str] = Field(default=None, alias="totalPrice")
    subtotal_price: Optional[str] = Field(default=None, alias="subtotalPrice")
    total_tax: Optional[str] = Field(default=None, alias="totalTax")
    total_shipping: str = Field(default="0", alias="totalShipping")
    currency_code: Optional[str] = Field(default=None, alias="currencyCode")
    fulfillment_status: Optional[str] = Field(default=None, alias="fulfillmentStatus")
    financial_status: Optional[str] = Field(default=None, alias="financialStatus")
    processed_at: Optional[str] = Field(default=None, alias="processedAt")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    customer: Optional[OrderCustomer] = None
    shipping_address: Optional[Dict[str, Any]] = Field(default=None, alias="shippingAddress")
    billing_address: Optional[Dict[str, Any]] = Field(default=None, alias="billingAddress")
    line_items: List[OrderLineItem] = Field(default_factory=list, alias="lineItems")


class OrderWebhookEvent(BaseModel):
    """A single webhook delivery, alive only for the callback invocation"""
    topic: WebhookTopic
    shop_domain: str
    webhook_id: Optional[str] = None
    raw_order: Dict[str, Any]


class OutboundOrderEnvelope(_Outbound):
    dry_run: bool = Field(default=False, alias="dryRun")
    limit: int = 1
    skip_existing: bool = Field(default=False, alias="skipExisting")
    update_existing: bool = Field(default=True, alias="updateExisting")
    orders: List[TransformedOrder]
    data: List[TransformedOrder]
    order_data: List[TransformedOrder] = Field(alias="orderData")
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    source: str = "shopify-webhook"
    shop_domain: str = Field(alias="shopDomain")
    sync_type: str = Field(alias="syncType")
    order_count: int = Field(default=1, alias="orderCount")
    webhook_id: Optional[str] = Field(default=None, alias="webhookId")
    topic: str

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
