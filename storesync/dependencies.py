# storesync/dependencies.py
"""
FastAPI dependency providers.

Components are built per request from the immutable SyncConfig; the only
process-wide mutable object is the SKU lock registry kept on app.state.
"""

from fastapi import Depends, Request

from storesync.core.config import SyncConfig, get_sync_config
from storesync.services.endpoint_resolver import SyncEndpointResolver
from storesync.services.external_client import ExternalSyncClient
from storesync.services.inventory_reconciler import InventoryReconciler, SkuLockRegistry
from storesync.services.order_webhook_relay import OrderWebhookRelay
from storesync.services.shopify.client import ShopifyAdminClient
from storesync.services.shopify.inventory import ShopifyInventoryGateway


def sync_config_dependency() -> SyncConfig:
    return get_sync_config()


def get_endpoint_resolver(config: SyncConfig = Depends(sync_config_dependency)) -> SyncEndpointResolver:
    return SyncEndpointResolver(config)


def get_external_client(
    resolver: SyncEndpointResolver = Depends(get_endpoint_resolver),
    config: SyncConfig = Depends(sync_config_dependency),
) -> ExternalSyncClient:
    return ExternalSyncClient(resolver, timeout=config.http_timeout)


def get_shopify_client(config: SyncConfig = Depends(sync_config_dependency)) -> ShopifyAdminClient:
    return ShopifyAdminClient.from_config(config)


def get_sku_locks(request: Request) -> SkuLockRegistry:
    locks = getattr(request.app.state, "sku_locks", None)
    if locks is None:
        locks = SkuLockRegistry()
        request.app.state.sku_locks = locks
    return locks


def get_reconciler(
    client: ShopifyAdminClient = Depends(get_shopify_client),
    locks: SkuLockRegistry = Depends(get_sku_locks),
) -> InventoryReconciler:
    return InventoryReconciler(ShopifyInventoryGateway(client), locks=locks)


def get_order_relay(external_client: ExternalSyncClient = Depends(get_external_client)) -> OrderWebhookRelay:
    return OrderWebhookRelay(delivery=external_client)
