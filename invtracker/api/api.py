"""
API router aggregation.

``main.py`` mounts this router at ``settings.API_PREFIX``.
"""

from fastapi import APIRouter

from invtracker.api.endpoints import investments

api_router = APIRouter()

# The investment routes use two roots (/inv and /invs), so they carry full
# paths and are mounted without an extra prefix.
api_router.include_router(investments.router, tags=["Investments"])
