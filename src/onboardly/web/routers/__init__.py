from onboardly.web.routers.auth import router as auth_router
from onboardly.web.routers.tenant import router as tenant_router
from onboardly.web.routers.users import router as users_router

__all__ = [
    "auth_router",
    "tenant_router",
    "users_router",
]
