# File: storesync/schemas/inventory.py

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storesync.core.enums import SkuOutcomeStatus


# --- External source (boundary, validated) ---

class SkuQuantity(BaseModel):
    sku: str = Field(min_length=1)
    quantity_on_hand: int

    model_config = ConfigDict(extra="ignore")


class InventoryRecord(BaseModel):
    """One company's stock as reported by the external system"""
    company_name: str
    company_website: Optional[str] = None
    skus: List[SkuQuantity] = []
    total_skus: Optional[int] = None
    total_quantity: Optional[int] = None

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _fill_totals(self):
        if self.total_skus is None:
            self.total_skus = len(self.skus)
        if self.total_quantity is None:
            self.total_quantity = sum(s.quantity_on_hand for s in self.skus)
        return self


class SkuQuantitiesResponse(BaseModel):
    success: bool = True
    data: List[InventoryRecord] = []

    model_config = ConfigDict(extra="allow")


# --- Shopify side (internal) ---

@dataclass
class LocationStock:
    location_id: str
    available: int
    committed: int = 0

    @property
    def on_hand(self) -> int:
        return self.available + self.committed


@dataclass
class ShopifyVariantStock:
    """Snapshot of one variant's stock at the moment it was queried."""
    variant_id: str
    sku: str
    available_quantity: int
    inventory_item_id: str
    locations: List[LocationStock] = field(default_factory=list)

    @property
    def primary_location(self) -> Optional[LocationStock]:
        return self.locations[0] if self.locations else None


@dataclass
class AdjustmentIntent:
    sku: str
    location_id: str
    inventory_item_id: str
    delta: int


@dataclass
class AdjustmentChange:
    name: Optional[str]
    delta: int
    quantity_after_change: Optional[int]
    location_name: Optional[str] = None


@dataclass
class AdjustmentResult:
    success: bool
    adjustment_group_id: Optional[str] = None
    changes: List[AdjustmentChange] = field(default_factory=list)
    user_errors: List[Dict[str, Any]] = field(default_factory=list)


# --- Report ---

@dataclass
class SkuFailure:
    sku: str
    reason: str


@dataclass
class SkuOutcome:
    sku: str
    company_name: str
    status: SkuOutcomeStatus
    target_quantity: int
    current_available: Optional[int] = None
    delta: int = 0
    reason: Optional[str] = None


@dataclass
class ReconciliationReport:
    """Aggregate result of one reconciliation pass"""
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[SkuFailure] = field(default_factory=list)
    outcomes: List[SkuOutcome] = field(default_factory=list)

    def record(self, outcome: SkuOutcome):
        self.processed += 1
        self.outcomes.append(outcome)
        if outcome.status is SkuOutcomeStatus.UPDATED:
            self.updated += 1
        elif outcome.status is SkuOutcomeStatus.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            self.failures.append(SkuFailure(sku=outcome.sku, reason=outcome.reason or "unknown error"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": self.failed,
            "failures": [asdict(f) for f in self.failures],
            "outcomes": [
                {**asdict(o), "status": o.status.value} for o in self.outcomes
            ],
        }
