from collections.abc import AsyncGenerator

from fastapi import APIRouter, Response
from fastapi.responses import StreamingResponse

from keyward.core.modules.user.models import ProfileSnapshot
from keyward.web.deps import SESSION_COOKIE, AppDep, SessionDep
from keyward.web.openapi import ErrorResponse

router = APIRouter(tags=["profile"])


@router.get(
    "/profile",
    summary="Get current user profile",
    description="Get the profile of the currently authenticated user.",
    operation_id="getCurrentUserProfile",
    responses={
        200: {"description": "Current user profile"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_profile(app: AppDep, session: SessionDep) -> ProfileSnapshot:
    return await app.get_profile(session)


@router.get(
    "/profile/stream",
    summary="Stream profile changes",
    description="Newline-delimited JSON: a snapshot, then one event per change, ending with an error event.",
    operation_id="streamProfile",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Profile events", "content": {"application/x-ndjson": {}}},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def stream_profile(app: AppDep, session: SessionDep) -> StreamingResponse:
    events = app.stream_profile(session)

    async def lines() -> AsyncGenerator[str]:
        try:
            async for event in events:
                yield event.model_dump_json(exclude_none=True) + "\n"
        finally:
            await events.aclose()

    return StreamingResponse(lines(), media_type="application/x-ndjson")


@router.delete(
    "/profile",
    summary="Disable account",
    description="Deactivate the current account and end all of its sessions.",
    operation_id="disableAccount",
    status_code=204,
    responses={
        204: {"description": "Account disabled"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def disable_account(app: AppDep, session: SessionDep, response: Response) -> None:
    await app.disable_account(session)
    response.delete_cookie(SESSION_COOKIE)
