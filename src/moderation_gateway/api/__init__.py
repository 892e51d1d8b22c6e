"""
API endpoints for the Moderation Gateway.

This module contains FastAPI routers for health checks and v1 API endpoints.
"""

from moderation_gateway.api.health import router as health_router

__all__ = ["health_router"]
