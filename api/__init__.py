"""
HTTP API for the Laroza storefront console.

The application acts as one tab on an origin and exposes the catalog,
inventory, orders, promotions, reviews and dashboard over FastAPI.
"""

from api.main import app, create_app

__all__ = ["app", "create_app"]
