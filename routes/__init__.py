"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.employee_import import router as employee_import_router

__all__ = [
    "employee_import_router",
]
