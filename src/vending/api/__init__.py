"""Vending domain API package."""

from vending.api.routes import maintenance_router, order_router, payment_router, product_router

__all__ = ["order_router", "payment_router", "product_router", "maintenance_router"]
