from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

# Endpoints reachable without a session
PUBLIC_ENDPOINTS = {
    ("POST", "/api/v1/auth/login"),
    ("POST", "/api/v1/auth/register"),
    ("POST", "/api/v1/account/email/confirm"),
    ("POST", "/api/v1/account/email/reset"),
    ("POST", "/api/v1/account/password/confirm"),
    ("POST", "/api/v1/account/password/reset"),
    ("GET", "/health"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="keyward API",
            version="0.1.0",
            summary="Sessions, password policy and emailed confirmation links",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Session secret as a bearer token (preferred)",
            },
            "SessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": "session",
                "description": "Session secret stored in a cookie",
            },
        }

        openapi_schema["security"] = [
            {"BearerAuth": []},
            {"SessionCookie": []},
        ]

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in PUBLIC_ENDPOINTS:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid email or password", "type": "authentication_error"},
                {"message": "Session expired", "type": "session_expired"},
                {"message": "Link expired", "type": "link_expired"},
            ]
        }
    }
