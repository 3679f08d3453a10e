from datetime import datetime

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field

from keyward.core.modules.session.models import Session
from keyward.web.deps import SESSION_COOKIE, AppDep, ClientIpDep, SessionDep
from keyward.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Authentication request."""

    email: str = Field(..., description="Account email address")
    password: str = Field(..., description="Account password")


class SessionResponse(BaseModel):
    """A freshly issued session. The secret is shown only here."""

    token: str = Field(..., description="Session secret for subsequent requests")
    expires_at: datetime = Field(..., description="Session expiry")


class RenewResponse(BaseModel):
    expires_at: datetime = Field(..., description="New session expiry")


def set_session_cookie(request: Request, response: Response, session: Session) -> None:
    """Set cookie for browser-based clients."""
    config = request.app.state.config
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.secret or "",
        httponly=True,
        samesite="lax",
        secure=not config.debug,
        max_age=config.session_ttl_days * 24 * 60 * 60,
    )


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description="Authenticate with email and password to receive a session secret.",
    operation_id="login",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    },
)
async def login(
    login_data: LoginRequest, app: AppDep, ip_address: ClientIpDep, request: Request, response: Response
) -> SessionResponse:
    session = await app.login(login_data.email, login_data.password, ip_address)
    set_session_cookie(request, response, session)
    return SessionResponse(token=session.secret or "", expires_at=session.expires_at)


@router.post(
    "/auth/register",
    summary="Create account",
    description="Create an account and open a session for it.",
    operation_id="register",
    status_code=201,
    responses={
        201: {"description": "Account created"},
        400: {"model": ErrorResponse, "description": "Invalid email, email taken or weak password"},
    },
)
async def register(
    login_data: LoginRequest, app: AppDep, ip_address: ClientIpDep, request: Request, response: Response
) -> SessionResponse:
    session = await app.register(login_data.email, login_data.password, ip_address)
    set_session_cookie(request, response, session)
    return SessionResponse(token=session.secret or "", expires_at=session.expires_at)


@router.post(
    "/auth/renew",
    summary="Renew session",
    description="Extend the current session from now by the session lifetime.",
    operation_id="renewSession",
    responses={
        200: {"description": "Session renewed"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def renew(app: AppDep, session: SessionDep) -> RenewResponse:
    renewed = await app.renew(session)
    return RenewResponse(expires_at=renewed.expires_at)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Invalidate the current session.",
    operation_id="logout",
    status_code=204,
    responses={
        204: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def logout(app: AppDep, session: SessionDep, response: Response) -> None:
    await app.logout(session)
    response.delete_cookie(SESSION_COOKIE)
