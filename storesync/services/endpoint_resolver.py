# storesync/services/endpoint_resolver.py
"""
Resolves the external system URLs used by the reconciler and the order relay.

The external API has renamed its sync paths more than once, so the per-kind
path is configuration rather than a constant. The base URL is mandatory and
checked when the resolver is built.
"""

import logging
from typing import Dict

from storesync.core.config import SyncConfig
from storesync.core.enums import SyncEndpointKind
from storesync.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class SyncEndpointResolver:

    def __init__(self, config: SyncConfig):
        base_url = (config.external_api_base_url or "").strip().rstrip("/")
        if not base_url:
            raise ConfigurationError(
                "EXTERNAL_API_BASE_URL is not set. Point it at the external system "
                "(ERP / warehouse API), not at this Shopify app."
            )
        if not base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"EXTERNAL_API_BASE_URL must be an http(s) URL, got '{base_url}'")

        self.base_url = base_url
        self._paths: Dict[SyncEndpointKind, str] = {
            SyncEndpointKind.ORDER_SYNC: config.order_sync_path,
            SyncEndpointKind.SKU_QUANTITIES: config.sku_quantities_path,
            SyncEndpointKind.PRODUCT_SYNC: config.product_sync_path,
        }
        logger.info(
            "External API configured: base=%s order_sync=%s sku_quantities=%s",
            self.base_url,
            self.resolve(SyncEndpointKind.ORDER_SYNC),
            self.resolve(SyncEndpointKind.SKU_QUANTITIES),
        )

    def resolve(self, kind: SyncEndpointKind) -> str:
        path = self._paths[SyncEndpointKind(kind)]
        return f"{self.base_url}/{path.lstrip('/')}"
