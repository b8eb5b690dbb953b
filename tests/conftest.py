# tests/conftest.py
import copy
import os

# Settings are read once and cached, so the environment must be in place before the app is imported
os.environ["EXTERNAL_API_BASE_URL"] = "https://erp.example.test"
os.environ["SHOPIFY_SHOP_URL"] = "test-shop.myshopify.com"
os.environ["SHOPIFY_ADMIN_API_ACCESS_TOKEN"] = "shpat_test_token"
os.environ["SHOPIFY_API_SECRET"] = "test_secret"
os.environ["APP_URL"] = "https://storesync.example.test"

import pytest
from fastapi.testclient import TestClient

from storesync.core.config import Settings, SyncConfig
from storesync.dependencies import sync_config_dependency
from storesync.main import app
from storesync.schemas.inventory import (
    AdjustmentChange,
    AdjustmentResult,
    InventoryRecord,
    LocationStock,
    ShopifyVariantStock,
)


@pytest.fixture
def settings():
    """Provide test settings"""
    return Settings(
        EXTERNAL_API_BASE_URL="https://erp.example.test",
        SHOPIFY_SHOP_URL="test-shop.myshopify.com",
        SHOPIFY_ADMIN_API_ACCESS_TOKEN="shpat_test_token",
        SHOPIFY_API_SECRET="test_secret",
        APP_URL="https://storesync.example.test",
    )


@pytest.fixture
def sync_config(settings):
    return SyncConfig.from_settings(settings)


@pytest.fixture
def test_client(sync_config):
    """Provide a test client with overridden settings"""
    app.dependency_overrides[sync_config_dependency] = lambda: sync_config
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def make_stock(sku, available, locations=None, committed=0):
    locations = locations or [LocationStock(location_id="gid://shopify/Location/1", available=available, committed=committed)]
    return ShopifyVariantStock(
        variant_id=f"gid://shopify/ProductVariant/{sku}",
        sku=sku,
        available_quantity=available,
        inventory_item_id=f"gid://shopify/InventoryItem/{sku}",
        locations=locations,
    )


class FakeInventoryGateway:
    """In-memory stand-in for ShopifyInventoryGateway.

    Applied adjustments change the stored stock, so a second pass sees the result.
    """

    def __init__(self, stock=None, fail_skus=None):
        self.stock = dict(stock or {})
        self.fail_skus = dict(fail_skus or {})
        self.adjust_calls = []
        self.lookups = []

    async def find_variant_by_sku(self, sku):
        self.lookups.append(sku)
        stock = self.stock.get(sku)
        return copy.deepcopy(stock) if stock is not None else None

    def build_reference(self, sku):
        return f"app://storesync/{sku}-0"

    async def adjust_available(self, inventory_item_id, location_id, delta, reason="correction", reference=None):
        sku = inventory_item_id.split("/")[-1]
        self.adjust_calls.append({
            "sku": sku,
            "inventory_item_id": inventory_item_id,
            "location_id": location_id,
            "delta": delta,
            "reason": reason,
            "reference": reference,
        })
        failure = self.fail_skus.get(sku)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return AdjustmentResult(success=False, user_errors=failure)

        current = self.stock[sku]
        new_available = current.available_quantity + delta
        current.available_quantity = new_available
        current.locations[0].available = new_available
        return AdjustmentResult(
            success=True,
            adjustment_group_id="gid://shopify/InventoryAdjustmentGroup/1",
            changes=[AdjustmentChange(name="available", delta=delta, quantity_after_change=new_available)],
        )


@pytest.fixture
def fake_gateway_factory():
    return FakeInventoryGateway


@pytest.fixture
def stock_factory():
    return make_stock


@pytest.fixture
def sample_records():
    return [
        InventoryRecord(
            company_name="Acme Supplies",
            company_website="https://acme.example",
            skus=[
                {"sku": "X1", "quantity_on_hand": 50},
                {"sku": "X2", "quantity_on_hand": 10},
            ],
        )
    ]


@pytest.fixture
def sample_order_payload():
    """Shopify REST order payload as delivered by orders/create"""
    return {
        "id": 5551234567,
        "name": "#1001",
        "email": "jane@example.com",
        "total_price": "125.00",
        "subtotal_price": "110.00",
        "total_tax": "10.00",
        "total_shipping_price_set": {"shop_money": {"amount": "5.00", "currency_code": "USD"}},
        "currency": "USD",
        "fulfillment_status": None,
        "financial_status": "paid",
        "processed_at": "2025-07-01T10:00:00-04:00",
        "created_at": "2025-07-01T10:00:00-04:00",
        "updated_at": "2025-07-01T10:05:00-04:00",
        "customer": {
            "id": 777,
            "first_name": "Jane",
            "last_name": "Doe",
            "email": "jane@example.com",
            "phone": "+15555550100",
        },
        "shipping_address": {"first_name": "Jane", "address1": "1 Main St", "city": "Springfield", "zip": "12345"},
        "billing_address": {"first_name": "Jane", "address1": "1 Main St", "city": "Springfield", "zip": "12345"},
        "line_items": [
            {
                "id": 111,
                "title": "Blue Widget",
                "quantity": 2,
                "variant_id": 222,
                "variant_title": "Large",
                "sku": "X1",
                "price": "55.00",
                "product_id": 333,
                "vendor": "Acme",
                "product_type": "Widgets",
            },
            {
                "id": 112,
                "title": "Gift Card",
                "quantity": 1,
                "variant_id": None,
                "product_id": None,
                "price": "0.00",
            },
        ],
    }
