"""
HTTP API routers
"""

from .monitoring_endpoints import router

__all__ = ["router"]
