"""
Minimal async Shopify Admin REST client.

Only the calls store jobs need are implemented. Transport and HTTP errors
are raised as StoreFetchError so jobs surface them unchanged.
"""

import logging
from typing import Any

import httpx

from storesync.errors import StoreFetchError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"


class ShopifyClient:
    """
    Client for one shop, built from its domain and access token.

    Args:
        shop: The ``*.myshopify.com`` domain.
        access_token: Admin API access token.
        api_version: Admin API version, e.g. ``2024-01``.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        shop: str,
        access_token: str | None,
        api_version: str = "2024-01",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.shop = shop
        self._client = httpx.AsyncClient(
            base_url=f"https://{shop}/admin/api/{api_version}",
            headers={ACCESS_TOKEN_HEADER: access_token or ""},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ShopifyClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise StoreFetchError(
                f"{self.shop}: GET {path} returned HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise StoreFetchError(f"{self.shop}: GET {path} failed: {e}") from e

    async def get_shop(self) -> dict[str, Any]:
        """Fetch the shop resource."""
        body = await self._get("/shop.json")
        try:
            return body["shop"]
        except KeyError as e:
            raise StoreFetchError(f"{self.shop}: shop.json response has no 'shop'") from e

    async def count(self, resource: str, params: dict[str, str] | None = None) -> int:
        """
        Fetch the count of a resource, e.g. ``customers`` or ``orders``.

        Args:
            resource: Resource collection name.
            params: Extra query parameters such as ``status=any``.
        """
        body = await self._get(f"/{resource}/count.json", params=params)
        try:
            return int(body["count"])
        except (KeyError, TypeError, ValueError) as e:
            raise StoreFetchError(
                f"{self.shop}: {resource}/count.json response has no count"
            ) from e
