"""API route modules."""
from .notifications import router as notifications_router
from .assessments import router as assessments_router
from .identity import router as identity_router

__all__ = [
    "notifications_router",
    "assessments_router",
    "identity_router",
]
