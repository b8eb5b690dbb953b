# storesync.services.shopify.client

import json
import logging
import httpx
from typing import Dict, Optional, Any

from storesync.core.config import SyncConfig
from storesync.core.exceptions import ConfigurationError, ShopifyAPIError, ShopifyGraphQLError

logger = logging.getLogger(__name__)


class ShopifyAdminClient:
    """
    Asynchronous client for the Shopify Admin API.

    Hybrid GraphQL + REST, as most Shopify integrations end up:
    - GraphQL for variant lookups, inventory adjustments and webhook subscriptions
    - REST for inventory_levels, which still exposes per-location committed counts simply

    Every request opens its own httpx.AsyncClient with the configured timeout, so
    one slow call cannot hold a connection pool hostage across requests.
    """

    def __init__(self, shop_domain: str, access_token: str, api_version: str = "2025-07", timeout: float = 10.0):
        if not shop_domain or not access_token:
            raise ConfigurationError(
                "SHOPIFY_SHOP_URL and SHOPIFY_ADMIN_API_ACCESS_TOKEN must be set in .env or as environment variables."
            )
        self.shop_domain = shop_domain.strip().lower().replace("https://", "").replace("http://", "").strip("/")
        self.access_token = access_token.strip()
        self.api_version = api_version
        self.timeout = timeout

        self.base_url = f"https://{self.shop_domain}/admin/api/{self.api_version}"
        self.graphql_url = f"{self.base_url}/graphql.json"

        # Throttle status reported by GraphQL extensions; informational only
        self.currently_available_points: Optional[float] = None
        self.max_available_points: Optional[float] = None

        logger.info(f"ShopifyAdminClient initialized for {self.shop_domain} (API version {self.api_version})")

    @classmethod
    def from_config(cls, config: SyncConfig) -> "ShopifyAdminClient":
        return cls(
            shop_domain=config.shop_domain,
            access_token=config.access_token,
            api_version=config.api_version,
            timeout=config.http_timeout,
        )

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _update_throttle_status(self, extensions: Optional[Dict[str, Any]]):
        if extensions and "cost" in extensions:
            throttle = extensions["cost"].get("throttleStatus") or {}
            if "currentlyAvailable" in throttle:
                self.currently_available_points = float(throttle["currentlyAvailable"])
            if "maximumAvailable" in throttle:
                self.max_available_points = float(throttle["maximumAvailable"])
            logger.debug(
                "Shopify throttle: %s/%s points available",
                self.currently_available_points,
                self.max_available_points,
            )

    async def _make_request(
        self,
        method: str,
        url: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None,
    ) -> Dict:
        """
        Make a request to the Shopify Admin API

        Raises:
            ShopifyAPIError: on non-2xx responses, transport failures and timeouts
        """
        logger.debug(f"Making {method} request to {url}")
        if params:
            logger.debug(f"Params: {params}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    json=data,
                    params=params,
                )
        except httpx.TimeoutException as e:
            logger.error(f"Shopify request timed out: {method} {url}: {e}")
            raise ShopifyAPIError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Shopify network error: {method} {url}: {e}")
            raise ShopifyAPIError(f"Network error: {str(e)}")

        if response.status_code not in (200, 201, 202, 204):
            logger.error(f"Shopify API error {response.status_code}: {response.text}")
            if response.status_code == 429:
                logger.warning(f"Shopify throttled the request (Retry-After={response.headers.get('Retry-After')})")
            raise ShopifyAPIError(
                f"Request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        if response.status_code == 204:
            return {}

        try:
            return response.json()
        except json.JSONDecodeError:
            raise ShopifyAPIError(
                f"Failed to decode JSON response: {response.text[:500]}",
                status_code=response.status_code,
                body=response.text,
            )

    async def graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a GraphQL query/mutation and return its `data` block."""
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        response_data = await self._make_request("POST", self.graphql_url, data=payload)
        self._update_throttle_status(response_data.get("extensions"))

        if response_data.get("errors"):
            raise ShopifyGraphQLError(response_data["errors"])

        return response_data.get("data") or {}

    async def rest_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        return await self._make_request("GET", url, params=params)
