# storesync/services/external_client.py

import json
import logging
import httpx
from typing import Any, Dict, Optional

from pydantic import ValidationError

from storesync.core.enums import SyncEndpointKind
from storesync.core.exceptions import ExternalAPIError, ExternalPayloadError
from storesync.schemas.inventory import SkuQuantitiesResponse
from storesync.schemas.orders import OutboundOrderEnvelope
from storesync.services.endpoint_resolver import SyncEndpointResolver

logger = logging.getLogger(__name__)


class ExternalSyncClient:
    """
    Client for the external system (ERP / warehouse API).

    - fetch_sku_quantities(): source-of-truth stock for the reconciler
    - deliver(): single POST of an order envelope, used by the webhook relay

    Neither call retries. Failures surface as ExternalAPIError so the caller
    decides what a failure means.
    """

    def __init__(self, resolver: SyncEndpointResolver, timeout: float = 10.0):
        self.resolver = resolver
        self.timeout = timeout

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            # The external API is often exposed through an ngrok tunnel during development
            "ngrok-skip-browser-warning": "true",
        }

    async def _make_request(self, method: str, url: str, data: Optional[Dict] = None) -> httpx.Response:
        logger.debug(f"Making {method} request to {url}")
        if data:
            logger.debug(f"Data: {json.dumps(data)[:500]}...")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method=method, url=url, headers=self._get_headers(), json=data)
        except httpx.TimeoutException as e:
            raise ExternalAPIError(f"Request to {url} timed out: {str(e)}")
        except httpx.RequestError as e:
            raise ExternalAPIError(f"Network error calling {url}: {str(e)}")

        if not 200 <= response.status_code < 300:
            raise ExternalAPIError(
                f"External API error: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def fetch_sku_quantities(self) -> SkuQuantitiesResponse:
        url = self.resolver.resolve(SyncEndpointKind.SKU_QUANTITIES)
        logger.info(f"Fetching SKU quantities from external API: {url}")
        response = await self._make_request("GET", url)

        try:
            body = response.json()
        except json.JSONDecodeError:
            raise ExternalPayloadError(
                "External API returned a non-JSON body",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            parsed = SkuQuantitiesResponse.model_validate(body)
        except ValidationError as e:
            raise ExternalPayloadError(
                f"External API returned an unexpected SKU payload: {e.error_count()} validation error(s)",
                status_code=response.status_code,
                body=response.text,
            )

        logger.info(
            f"Fetched {len(parsed.data)} compan{'y' if len(parsed.data) == 1 else 'ies'} "
            f"({sum(len(r.skus) for r in parsed.data)} SKUs) from external API"
        )
        return parsed

    async def deliver(self, envelope: OutboundOrderEnvelope) -> Any:
        """POST one order envelope to the order sync endpoint. Response body is passed through."""
        url = self.resolver.resolve(SyncEndpointKind.ORDER_SYNC)
        response = await self._make_request("POST", url, data=envelope.to_payload())
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text
