"""SGP-RP API routers.

Each router handles one namespace under /api:
- auth: citizen accounts and password recovery
- policia: officer accounts and the member area
- boletim: citizen incident reports
- admin: RH administration panel
- staff: city-wide staff panel
- public: unauthenticated portal content
"""

from sgprp.api.routers.admin import router as admin_router
from sgprp.api.routers.auth import router as auth_router
from sgprp.api.routers.boletim import router as boletim_router
from sgprp.api.routers.policia import router as policia_router
from sgprp.api.routers.public import router as public_router
from sgprp.api.routers.staff import router as staff_router

__all__ = [
    "admin_router",
    "auth_router",
    "boletim_router",
    "policia_router",
    "public_router",
    "staff_router",
]
