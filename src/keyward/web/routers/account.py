from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from keyward.web.deps import SESSION_COOKIE, AppDep, SessionDep
from keyward.web.openapi import ErrorResponse

router = APIRouter(tags=["account"])

LINK_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid input or wrong link type"},
    404: {"model": ErrorResponse, "description": "Unknown or already used link"},
    410: {"model": ErrorResponse, "description": "Link expired"},
}


class ConfirmEmailRequest(BaseModel):
    token: str = Field(..., description="Token from the emailed link")
    email: str = Field(..., description="Email address to set")


class ConfirmPasswordRequest(BaseModel):
    token: str = Field(..., description="Token from the emailed link")
    new_password: str = Field(..., min_length=1, description="New password")


@router.post(
    "/account/email/request",
    summary="Request email change",
    description="Mail a confirmation link to the current address.",
    operation_id="requestEmailChange",
    status_code=202,
    responses={
        202: {"description": "Request accepted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def request_email_change(app: AppDep, session: SessionDep) -> None:
    await app.request_email_change(session)


@router.post(
    "/account/email/confirm",
    summary="Confirm email change",
    description="Move the account to a new address. A reset link is mailed to the old one.",
    operation_id="confirmEmailChange",
    status_code=204,
    responses={204: {"description": "Email changed"}, **LINK_ERRORS},
)
async def confirm_email_change(request: ConfirmEmailRequest, app: AppDep) -> None:
    await app.confirm_email_change(request.token, request.email)


@router.post(
    "/account/email/reset",
    summary="Restore email address",
    description="Undo an email change with the link sent to the old address. Ends all sessions.",
    operation_id="resetEmail",
    status_code=204,
    responses={204: {"description": "Email restored"}, **LINK_ERRORS},
)
async def reset_email(request: ConfirmEmailRequest, app: AppDep) -> None:
    await app.confirm_email_reset(request.token, request.email)


@router.post(
    "/account/password/request",
    summary="Request password change",
    description="Mail a confirmation link to the current address.",
    operation_id="requestPasswordChange",
    status_code=202,
    responses={
        202: {"description": "Request accepted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def request_password_change(app: AppDep, session: SessionDep) -> None:
    await app.request_password_change(session)


@router.post(
    "/account/password/confirm",
    summary="Confirm password change",
    description="Set a new password. Ends all sessions and mails a reset link.",
    operation_id="confirmPasswordChange",
    status_code=204,
    responses={204: {"description": "Password changed"}, **LINK_ERRORS},
)
async def confirm_password_change(request: ConfirmPasswordRequest, app: AppDep) -> None:
    await app.confirm_password_change(request.token, request.new_password)


@router.post(
    "/account/password/reset",
    summary="Reset password",
    description="Set a new password with a reset link. Ends all sessions.",
    operation_id="resetPassword",
    status_code=204,
    responses={204: {"description": "Password reset"}, **LINK_ERRORS},
)
async def reset_password(request: ConfirmPasswordRequest, app: AppDep) -> None:
    await app.confirm_password_reset(request.token, request.new_password)


@router.delete(
    "/account",
    summary="Delete account",
    description="Delete the current account with all of its sessions and pending links.",
    operation_id="deleteAccount",
    status_code=204,
    responses={
        204: {"description": "Account deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def delete_account(app: AppDep, session: SessionDep, response: Response) -> None:
    await app.delete_account(session)
    response.delete_cookie(SESSION_COOKIE)
