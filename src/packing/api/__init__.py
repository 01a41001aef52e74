"""Packing domain API package."""

from packing.api.errors import register_packing_exception_handlers
from packing.api.feed import feed_router
from packing.api.routes import check_count_router, job_router, put_aside_router, scan_router

routers = [job_router, scan_router, put_aside_router, check_count_router, feed_router]

__all__ = [
    "check_count_router",
    "feed_router",
    "job_router",
    "put_aside_router",
    "register_packing_exception_handlers",
    "routers",
    "scan_router",
]
