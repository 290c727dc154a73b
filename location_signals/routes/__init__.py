"""
API Routes Module.

Contains all FastAPI router definitions:
- v1_router: Location signal endpoints (traffic, demographics, cache deletion)
"""

from .v1 import router as v1_router

__all__ = ["v1_router"]
