"""FastAPI routers package."""

from .auth import router as auth_router
from .booking import router as booking_router
from .health import router as health_router
from .metrics import router as metrics_router
from .package import router as package_router

__all__ = [
    "auth_router",
    "booking_router",
    "health_router",
    "metrics_router",
    "package_router",
]
