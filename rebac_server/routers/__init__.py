# (c) Copyright Datacraft, 2026
"""API routers."""
from .stores import router as stores_router
from .models import router as models_router
from .relationships import router as relationships_router

__all__ = ["stores_router", "models_router", "relationships_router"]
