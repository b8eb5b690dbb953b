import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storesync.core.exceptions import ExternalAPIError
from storesync.dependencies import get_external_client, get_reconciler
from storesync.services.external_client import ExternalSyncClient
from storesync.services.inventory_reconciler import InventoryReconciler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/skus", tags=["skus"])


@router.get("/quantities")
async def get_sku_quantities(
    external_client: ExternalSyncClient = Depends(get_external_client),
    reconciler: InventoryReconciler = Depends(get_reconciler),
):
    """
    Pull SKU quantities from the external system and reconcile them into Shopify.

    Returns the source payload with the reconciliation report attached. Only a
    failure to fetch the source turns into a 500; per-SKU failures are reported.
    """
    try:
        source = await external_client.fetch_sku_quantities()
    except ExternalAPIError as e:
        logger.error(f"Failed to fetch from external API: {e} (status={e.status_code})")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "External API is unavailable",
                "error": str(e),
            },
        )

    report = await reconciler.reconcile(source.data)

    body = source.model_dump(mode="json")
    body["reconciliation"] = report.to_dict()
    return body
