# storesync/services/shopify/inventory.py
"""
Inventory adapter over the Shopify Admin API.

Two capabilities only: look a variant up by SKU together with its per-location
stock, and push a signed delta onto the available quantity at one location.
No business rules live here.
"""

import logging
import time
from urllib.parse import quote
from typing import Any, Dict, List, Optional

from storesync.schemas.inventory import (
    AdjustmentChange,
    AdjustmentResult,
    LocationStock,
    ShopifyVariantStock,
)
from storesync.services.shopify.client import ShopifyAdminClient

logger = logging.getLogger(__name__)


FIND_VARIANT_BY_SKU_QUERY = """
query findVariantBySku($query: String!) {
  productVariants(first: 1, query: $query) {
    edges {
      node {
        id
        sku
        inventoryQuantity
        inventoryItem {
          id
        }
      }
    }
  }
}
"""

ADJUST_QUANTITIES_MUTATION = """
mutation inventoryAdjustQuantities($input: InventoryAdjustQuantitiesInput!) {
  inventoryAdjustQuantities(input: $input) {
    inventoryAdjustmentGroup {
      id
      reason
      changes {
        name
        delta
        quantityAfterChange
        item {
          id
          sku
        }
        location {
          id
          name
        }
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""


def gid_to_id(gid: str) -> str:
    """'gid://shopify/InventoryItem/123' -> '123' (plain ids pass through)."""
    return str(gid).split("/")[-1]


def location_gid(location_id: Any) -> str:
    location_id = str(location_id)
    if location_id.startswith("gid://"):
        return location_id
    return f"gid://shopify/Location/{location_id}"


class ShopifyInventoryGateway:

    def __init__(self, client: ShopifyAdminClient, reference_prefix: str = "app://storesync"):
        self.client = client
        self.reference_prefix = reference_prefix.rstrip("/")

    async def find_variant_by_sku(self, sku: str) -> Optional[ShopifyVariantStock]:
        """
        Resolve a variant by SKU and read its stock at every location.

        Returns None when no variant carries the SKU, or when the variant has no
        inventory level rows. API failures raise ShopifyAPIError.
        """
        # Quoted so SKUs with spaces or dashes stay a single search term
        data = await self.client.graphql(FIND_VARIANT_BY_SKU_QUERY, {"query": f'sku:"{sku}"'})
        edges = ((data.get("productVariants") or {}).get("edges")) or []
        if not edges:
            logger.info(f"No Shopify variant found for SKU {sku}")
            return None

        node = edges[0]["node"]
        inventory_item_gid = (node.get("inventoryItem") or {}).get("id")
        if not inventory_item_gid:
            logger.warning(f"Variant {node.get('id')} for SKU {sku} has no inventory item")
            return None

        levels = await self._get_inventory_levels(inventory_item_gid)
        if not levels:
            logger.info(f"No inventory levels found for SKU {sku} (item {inventory_item_gid})")
            return None

        locations = [
            LocationStock(
                location_id=location_gid(level["location_id"]),
                available=int(level.get("available") or 0),
                committed=int(level.get("committed") or 0),
            )
            for level in levels
        ]

        stock = ShopifyVariantStock(
            variant_id=node["id"],
            sku=node.get("sku") or sku,
            available_quantity=locations[0].available,
            inventory_item_id=inventory_item_gid,
            locations=locations,
        )
        logger.debug(
            f"SKU {sku}: variant {stock.variant_id}, available {stock.available_quantity} "
            f"across {len(locations)} location(s)"
        )
        return stock

    async def _get_inventory_levels(self, inventory_item_gid: str) -> List[Dict[str, Any]]:
        response = await self.client.rest_get(
            "inventory_levels.json",
            params={"inventory_item_ids": gid_to_id(inventory_item_gid)},
        )
        return response.get("inventory_levels") or []

    def build_reference(self, sku: str) -> str:
        return f"{self.reference_prefix}/{quote(sku, safe='')}-{int(time.time() * 1000)}"

    async def adjust_available(
        self,
        inventory_item_id: str,
        location_id: str,
        delta: int,
        reason: str = "correction",
        reference: Optional[str] = None,
    ) -> AdjustmentResult:
        """
        Apply a signed delta to the available quantity at one location.

        Shopify arbitrates conflicts; this call fires the delta and trusts the
        response. Transport or HTTP failures raise ShopifyAPIError, user errors
        come back as an unsuccessful AdjustmentResult. Nothing is retried.
        """
        variables = {
            "input": {
                "name": "available",
                "reason": reason,
                "referenceDocumentUri": reference or self.build_reference(gid_to_id(inventory_item_id)),
                "changes": [{
                    "delta": delta,
                    "inventoryItemId": inventory_item_id,
                    "locationId": location_gid(location_id),
                }],
            }
        }

        data = await self.client.graphql(ADJUST_QUANTITIES_MUTATION, variables)
        payload = data.get("inventoryAdjustQuantities") or {}
        user_errors = payload.get("userErrors") or []
        if user_errors:
            logger.error(f"inventoryAdjustQuantities user errors for item {inventory_item_id}: {user_errors}")
            return AdjustmentResult(success=False, user_errors=user_errors)

        group = payload.get("inventoryAdjustmentGroup") or {}
        changes = [
            AdjustmentChange(
                name=change.get("name"),
                delta=change.get("delta", 0),
                quantity_after_change=change.get("quantityAfterChange"),
                location_name=(change.get("location") or {}).get("name"),
            )
            for change in group.get("changes") or []
        ]
        return AdjustmentResult(success=True, adjustment_group_id=group.get("id"), changes=changes)
