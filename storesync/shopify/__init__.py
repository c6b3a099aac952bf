"""
Shopify Admin API client used by store jobs.
"""

from storesync.shopify.client import ShopifyClient

__all__ = ["ShopifyClient"]
