# src/widgetkit/api/router.py

from fastapi import APIRouter
from widgetkit.api.v1 import schemas

# The main router for API v1
router = APIRouter(prefix="/api/v1")

# ===================================================================
# Widget Schema Store & Composition Routes
# ===================================================================

router.include_router(schemas.router, prefix="/schemas", tags=["Widget Schemas"])
