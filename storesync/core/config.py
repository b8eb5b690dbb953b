# storesync/core/config.py

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # External system (ERP / warehouse API) - NOT the Shopify app URL
    EXTERNAL_API_BASE_URL: str = ""
    ORDER_SYNC_PATH: str = "/api/receive-orders"
    SKU_QUANTITIES_PATH: str = "/api/shopify/sync/skus/quantities"
    PRODUCT_SYNC_PATH: str = "/api/shopify/sync/products"

    # Shopify API
    SHOPIFY_SHOP_URL: Optional[str] = None
    SHOPIFY_ADMIN_API_ACCESS_TOKEN: Optional[str] = None
    SHOPIFY_API_KEY: Optional[str] = None
    SHOPIFY_API_SECRET: Optional[str] = None
    SHOPIFY_API_VERSION: str = "2025-07"

    # Public URL of this service, used as the webhook callback base
    APP_URL: str = ""

    # Outbound calls
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )


@dataclass(frozen=True)
class SyncConfig:
    """Immutable snapshot of the settings the sync components need.

    Built once at startup and handed to each component constructor, so
    nothing below the route layer reads the environment.
    """
    external_api_base_url: str
    order_sync_path: str
    sku_quantities_path: str
    product_sync_path: str
    shop_domain: Optional[str]
    access_token: Optional[str]
    api_secret: Optional[str]
    api_version: str
    app_url: str
    http_timeout: float

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncConfig":
        return cls(
            external_api_base_url=(settings.EXTERNAL_API_BASE_URL or "").strip(),
            order_sync_path=settings.ORDER_SYNC_PATH,
            sku_quantities_path=settings.SKU_QUANTITIES_PATH,
            product_sync_path=settings.PRODUCT_SYNC_PATH,
            shop_domain=settings.SHOPIFY_SHOP_URL,
            access_token=settings.SHOPIFY_ADMIN_API_ACCESS_TOKEN,
            api_secret=settings.SHOPIFY_API_SECRET,
            api_version=settings.SHOPIFY_API_VERSION,
            app_url=(settings.APP_URL or "").rstrip("/"),
            http_timeout=settings.HTTP_TIMEOUT_SECONDS,
        )


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()


@lru_cache()
def get_sync_config() -> SyncConfig:
    return SyncConfig.from_settings(get_settings())
