"""Shopify inventory reconciliation and order webhook relay."""
