"""Soochna API routers.

Each router handles one API namespace, mounted under /api:
- auth: Registration, login, identity and logout
- notices: Notice listing, publishing, editing, download and objections
"""

from soochna.api.routers.auth import router as auth_router
from soochna.api.routers.notices import router as notices_router

__all__ = [
    "auth_router",
    "notices_router",
]
