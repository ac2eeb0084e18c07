"""API route handlers."""

from src.api.openapi.routes import assets, carousel, health, products, proxy

__all__ = [
    "assets",
    "carousel",
    "health",
    "products",
    "proxy",
]
