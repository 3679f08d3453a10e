from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from keyward.app import App
from keyward.config import Config
from keyward.errors import LinkError, NotificationError, SessionError, StorageError, UserError
from keyward.web.error_handlers import (
    general_exception_handler,
    internal_error_handler,
    link_error_handler,
    session_error_handler,
    user_error_handler,
)
from keyward.web.openapi import set_custom_openapi
from keyward.web.routers import account_router, auth_router, profile_router


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        app.state.app = app_instance
        app.state.config = config
        async with app_instance.lifespan():
            yield

    app = FastAPI(title="keyward API", lifespan=lifespan)

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Health check endpoint (at root level, not versioned)
    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(profile_router, prefix="/api/v1")
    app.include_router(account_router, prefix="/api/v1")

    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(SessionError, session_error_handler)
    app.add_exception_handler(LinkError, link_error_handler)
    app.add_exception_handler(StorageError, internal_error_handler)
    app.add_exception_handler(NotificationError, internal_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
