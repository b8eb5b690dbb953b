# Inventory reconciler unit tests
import asyncio
import pytest

from storesync.core.enums import SkuOutcomeStatus
from storesync.core.exceptions import ShopifyAPIError
from storesync.schemas.inventory import InventoryRecord, LocationStock
from storesync.services.inventory_reconciler import InventoryReconciler, SkuLockRegistry


def _records(*skus, company="A"):
    return [InventoryRecord(company_name=company, skus=[{"sku": s, "quantity_on_hand": q} for s, q in skus])]


@pytest.mark.asyncio
async def test_end_to_end_single_sku(fake_gateway_factory, stock_factory):
    """Source 50 vs Shopify 30 -> one adjustment of +20"""
    gateway = fake_gateway_factory(stock={"X1": stock_factory("X1", 30)})
    reconciler = InventoryReconciler(gateway)

    report = await reconciler.reconcile(_records(("X1", 50)))

    assert len(gateway.adjust_calls) == 1
    assert gateway.adjust_calls[0]["delta"] == 20
    assert gateway.adjust_calls[0]["location_id"] == "gid://shopify/Location/1"
    assert gateway.adjust_calls[0]["reason"] == "correction"
    assert (report.updated, report.skipped, report.failed) == (1, 0, 0)
    assert report.processed == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("target,current,expected_delta", [(120, 100, 20), (80, 100, -20)])
async def test_delta_sign(fake_gateway_factory, stock_factory, target, current, expected_delta):
    gateway = fake_gateway_factory(stock={"S": stock_factory("S", current)})

    await InventoryReconciler(gateway).reconcile(_records(("S", target)))

    assert [c["delta"] for c in gateway.adjust_calls] == [expected_delta]


@pytest.mark.asyncio
async def test_zero_delta_is_skipped(fake_gateway_factory, stock_factory):
    gateway = fake_gateway_factory(stock={"S": stock_factory("S", 100)})

    report = await InventoryReconciler(gateway).reconcile(_records(("S", 100)))

    assert gateway.adjust_calls == []
    assert report.skipped == 1
    assert report.updated == 0
    assert report.outcomes[0].status is SkuOutcomeStatus.SKIPPED


@pytest.mark.asyncio
async def test_second_pass_performs_no_writes(fake_gateway_factory, stock_factory):
    gateway = fake_gateway_factory(stock={
        "X1": stock_factory("X1", 30),
        "X2": stock_factory("X2", 12),
    })
    reconciler = InventoryReconciler(gateway)
    records = _records(("X1", 50), ("X2", 10))

    first = await reconciler.reconcile(records)
    calls_after_first = len(gateway.adjust_calls)
    second = await reconciler.reconcile(records)

    assert first.updated == 2
    assert calls_after_first == 2
    assert len(gateway.adjust_calls) == calls_after_first
    assert second.skipped == 2
    assert second.updated == 0


@pytest.mark.asyncio
async def test_missing_sku_does_not_halt_batch(fake_gateway_factory, stock_factory):
    gateway = fake_gateway_factory(stock={"X3": stock_factory("X3", 1)})

    report = await InventoryReconciler(gateway).reconcile(_records(("MISSING", 5), ("X3", 4)))

    assert gateway.lookups == ["MISSING", "X3"]
    assert report.processed == 2
    assert report.failed == 1
    assert report.updated == 1
    assert report.failures[0].sku == "MISSING"
    assert report.failures[0].reason == "not found"


@pytest.mark.asyncio
async def test_partial_failure_aggregation(fake_gateway_factory, stock_factory):
    gateway = fake_gateway_factory(
        stock={
            "A1": stock_factory("A1", 1),
            "A2": stock_factory("A2", 1),
            "A3": stock_factory("A3", 1),
        },
        fail_skus={"A2": ShopifyAPIError("Request failed with status 500: boom", status_code=500)},
    )

    report = await InventoryReconciler(gateway).reconcile(_records(("A1", 5), ("A2", 5), ("A3", 5)))

    assert [c["sku"] for c in gateway.adjust_calls] == ["A1", "A2", "A3"]
    assert report.processed == 3
    assert report.updated == 2
    assert report.failed == 1
    assert report.failures[0].sku == "A2"
    assert "500" in report.failures[0].reason


@pytest.mark.asyncio
async def test_user_errors_count_as_failure(fake_gateway_factory, stock_factory):
    gateway = fake_gateway_factory(
        stock={"U1": stock_factory("U1", 3)},
        fail_skus={"U1": [{"field": ["input"], "message": "Location is not active"}]},
    )

    report = await InventoryReconciler(gateway).reconcile(_records(("U1", 9)))

    assert report.failed == 1
    assert report.failures[0].reason == "Location is not active"


@pytest.mark.asyncio
async def test_lookup_error_is_recorded(fake_gateway_factory, mocker):
    gateway = fake_gateway_factory()
    gateway.find_variant_by_sku = mocker.AsyncMock(side_effect=ShopifyAPIError("Request timed out: read timeout"))

    report = await InventoryReconciler(gateway).reconcile(_records(("T1", 2), ("T2", 3)))

    assert report.processed == 2
    assert report.failed == 2
    assert gateway.find_variant_by_sku.await_count == 2


@pytest.mark.asyncio
async def test_full_delta_goes_to_primary_location(fake_gateway_factory, stock_factory):
    locations = [
        LocationStock(location_id="gid://shopify/Location/10", available=4, committed=1),
        LocationStock(location_id="gid://shopify/Location/20", available=9),
    ]
    gateway = fake_gateway_factory(stock={"M1": stock_factory("M1", 4, locations=locations)})

    await InventoryReconciler(gateway).reconcile(_records(("M1", 10)))

    assert gateway.adjust_calls == [{
        "sku": "M1",
        "inventory_item_id": "gid://shopify/InventoryItem/M1",
        "location_id": "gid://shopify/Location/10",
        "delta": 6,
        "reason": "correction",
        "reference": "app://storesync/M1-0",
    }]


@pytest.mark.asyncio
async def test_report_to_dict(fake_gateway_factory, stock_factory):
    gateway = fake_gateway_factory(stock={"X1": stock_factory("X1", 30)})

    report = await InventoryReconciler(gateway).reconcile(_records(("X1", 50), ("NOPE", 1)))
    data = report.to_dict()

    assert data["processed"] == 2
    assert data["failures"] == [{"sku": "NOPE", "reason": "not found"}]
    assert data["outcomes"][0]["status"] == "updated"
    assert data["outcomes"][0]["delta"] == 20


@pytest.mark.asyncio
async def test_concurrent_passes_do_not_double_apply(fake_gateway_factory, stock_factory):
    """Two passes on the same SKU serialize, so the second sees the first one's write"""
    gateway = fake_gateway_factory(stock={"C1": stock_factory("C1", 0)})
    original_find = gateway.find_variant_by_sku

    async def slow_find(sku):
        result = await original_find(sku)
        await asyncio.sleep(0)
        return result

    gateway.find_variant_by_sku = slow_find
    locks = SkuLockRegistry()
    records = _records(("C1", 7))

    reports = await asyncio.gather(
        InventoryReconciler(gateway, locks=locks).reconcile(records),
        InventoryReconciler(gateway, locks=locks).reconcile(records),
    )

    assert [c["delta"] for c in gateway.adjust_calls] == [7]
    assert sorted(r.updated for r in reports) == [0, 1]
    assert gateway.stock["C1"].available_quantity == 7
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_sample_company_records(fake_gateway_factory, stock_factory, sample_records):
    gateway = fake_gateway_factory(stock={
        "X1": stock_factory("X1", 50),
        "X2": stock_factory("X2", 4),
    })

    report = await InventoryReconciler(gateway).reconcile(sample_records)

    assert sample_records[0].total_skus == 2
    assert sample_records[0].total_quantity == 60
    assert (report.processed, report.updated, report.skipped, report.failed) == (2, 1, 1, 0)
    assert gateway.adjust_calls[0]["delta"] == 6


def test_shared_lock_registry_is_kept_when_empty(fake_gateway_factory):
    locks = SkuLockRegistry()

    reconciler = InventoryReconciler(fake_gateway_factory(), locks=locks)

    assert len(locks) == 0
    assert reconciler.locks is locks


@pytest.mark.asyncio
async def test_multi_location_debug_log_reports_on_hand(fake_gateway_factory, stock_factory, caplog):
    locations = [
        LocationStock(location_id="gid://shopify/Location/10", available=4, committed=1),
        LocationStock(location_id="gid://shopify/Location/20", available=9, committed=2),
    ]
    gateway = fake_gateway_factory(stock={"M2": stock_factory("M2", 4, locations=locations)})

    with caplog.at_level("DEBUG", logger="storesync.services.inventory_reconciler"):
        await InventoryReconciler(gateway).reconcile(_records(("M2", 5)))

    assert "gid://shopify/Location/10=5" in caplog.text
    assert "gid://shopify/Location/20=11" in caplog.text
