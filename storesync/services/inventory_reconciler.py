# storesync/services/inventory_reconciler.py
"""
Reconciles external stock counts against live Shopify inventory.

For every SKU the external system reports, the current Shopify available
quantity is read and the difference is applied as a single delta adjustment.
A SKU whose delta is zero is left untouched, so a second pass over unchanged
data performs no writes.

Failures are recorded per SKU and never abort the batch.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Iterable

from storesync.core.enums import SkuOutcomeStatus
from storesync.core.exceptions import ShopifyServiceError
from storesync.schemas.inventory import (
    AdjustmentIntent,
    InventoryRecord,
    ReconciliationReport,
    SkuOutcome,
)
from storesync.services.shopify.inventory import ShopifyInventoryGateway

logger = logging.getLogger(__name__)

NOT_FOUND_REASON = "not found"


class SkuLockRegistry:
    """In-process locks keyed by SKU.

    Serializes the read-then-adjust sequence for one SKU across concurrent
    reconciliation passes in this process. Entries are dropped once no task
    holds or waits on them.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, sku: str):
        lock = self._locks.setdefault(sku, asyncio.Lock())
        self._holders[sku] = self._holders.get(sku, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[sku] -= 1
            if self._holders[sku] == 0:
                del self._holders[sku]
                del self._locks[sku]

    def __len__(self):
        return len(self._locks)


class InventoryReconciler:

    def __init__(self, gateway: ShopifyInventoryGateway, locks: SkuLockRegistry | None = None):
        self.gateway = gateway
        self.locks = locks if locks is not None else SkuLockRegistry()

    async def reconcile(self, records: Iterable[InventoryRecord]) -> ReconciliationReport:
        report = ReconciliationReport()
        records = list(records)

        for record in records:
            logger.info(
                f"Company: {record.company_name} ({record.company_website or 'no website'}) - "
                f"{record.total_skus} SKUs, total quantity {record.total_quantity}"
            )
            for item in record.skus:
                async with self.locks.hold(item.sku):
                    outcome = await self._reconcile_sku(record.company_name, item.sku, item.quantity_on_hand)
                report.record(outcome)

            logger.info(f"Completed processing inventory for {record.company_name}")

        logger.info(
            f"Reconciliation finished for {len(records)} companies: processed={report.processed} "
            f"updated={report.updated} skipped={report.skipped} failed={report.failed}"
        )
        return report

    async def _reconcile_sku(self, company_name: str, sku: str, target: int) -> SkuOutcome:
        outcome = SkuOutcome(sku=sku, company_name=company_name, status=SkuOutcomeStatus.FAILED, target_quantity=target)

        try:
            stock = await self.gateway.find_variant_by_sku(sku)
            if stock is None:
                logger.warning(f"SKU {sku}: no matching Shopify variant, skipping")
                outcome.reason = NOT_FOUND_REASON
                return outcome

            outcome.current_available = stock.available_quantity
            delta = target - stock.available_quantity
            outcome.delta = delta

            if delta == 0:
                logger.info(f"SKU {sku} already has correct available quantity: {target}")
                outcome.status = SkuOutcomeStatus.SKIPPED
                return outcome

            # Full delta goes to the primary location; no split across locations
            location = stock.primary_location
            intent = AdjustmentIntent(
                sku=sku,
                location_id=location.location_id,
                inventory_item_id=stock.inventory_item_id,
                delta=delta,
            )
            if len(stock.locations) > 1:
                on_hand = ", ".join(f"{loc.location_id}={loc.on_hand}" for loc in stock.locations)
                logger.debug(f"SKU {sku} stocked at {len(stock.locations)} locations (on hand: {on_hand}); adjusting {location.location_id} only")

            logger.info(
                f"Adjusting SKU {sku} at {intent.location_id}: current {stock.available_quantity}, "
                f"target {target}, delta {delta:+d} (company: {company_name})"
            )
            result = await self.gateway.adjust_available(
                intent.inventory_item_id,
                intent.location_id,
                intent.delta,
                reason="correction",
                reference=self.gateway.build_reference(sku),
            )
            if not result.success:
                messages = "; ".join(e.get("message", str(e)) for e in result.user_errors) or "adjustment rejected"
                outcome.reason = messages
                logger.error(f"Failed to update inventory for SKU {sku}: {messages}")
                return outcome

            outcome.status = SkuOutcomeStatus.UPDATED
            logger.info(f"Successfully updated available inventory for SKU {sku} to {target}")
            return outcome

        except ShopifyServiceError as e:
            logger.error(f"Shopify error reconciling SKU {sku}: {e}")
            outcome.reason = str(e)
            return outcome
        except Exception as e:
            logger.exception(f"Unexpected error reconciling SKU {sku}")
            outcome.reason = f"unexpected error: {e}"
            return outcome
