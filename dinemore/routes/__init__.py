"""
Route aggregation package for the DineMore companion.

Each functional area (authentication, branch selection and activity
logs) is its own module defining an ``APIRouter``.  The main
application imports these routers and includes them in the global
FastAPI instance.
"""

__all__ = [
    "auth",
    "branches",
    "activity",
]

from . import activity, auth, branches  # noqa: E402,F401
