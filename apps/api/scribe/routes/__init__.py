"""Route modules."""

from .internal import router as internal_router
from .jobs import router as jobs_router
from .sessions import router as sessions_router

__all__ = ["internal_router", "jobs_router", "sessions_router"]
