"""Synthetic data generation utilities.

This package produces realistic-but-fake Superstore order lines to
exercise the metrics layer without the proprietary extract.
"""

from .generator import (
    PRODUCT_HIERARCHY,
    REGIONS,
    SEGMENTS,
    Customer,
    Product,
    StoreConfig,
    generate_catalog,
    generate_customers,
    generate_order_lines,
)

__all__ = [
    "PRODUCT_HIERARCHY",
    "REGIONS",
    "SEGMENTS",
    "Customer",
    "Product",
    "StoreConfig",
    "generate_catalog",
    "generate_customers",
    "generate_order_lines",
]
