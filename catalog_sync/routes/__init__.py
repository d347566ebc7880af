"""
Routes package.
"""

from .pipeline import router as pipeline_router
from .products import router as products_router
from .settings import router as settings_router

__all__ = [
    "pipeline_router",
    "products_router",
    "settings_router",
]
