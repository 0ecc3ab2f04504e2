"""API routers."""
from finance_hub.routers.functions import router as functions_router

__all__ = ["functions_router"]
