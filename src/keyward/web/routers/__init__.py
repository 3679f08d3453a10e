from keyward.web.routers.account import router as account_router
from keyward.web.routers.auth import router as auth_router
from keyward.web.routers.profile import router as profile_router

__all__ = [
    "account_router",
    "auth_router",
    "profile_router",
]
