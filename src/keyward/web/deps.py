from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from keyward.app import App
from keyward.core.modules.session.models import Session
from keyward.errors import AuthenticationError

SESSION_COOKIE = "session"

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)
cookie_scheme = APIKeyCookie(name=SESSION_COOKIE, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


def get_client_ip(request: Request) -> str | None:
    """Client address: first X-Forwarded-For entry, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


async def get_session(
    app: Annotated[App, Depends(get_app)],
    ip_address: Annotated[str | None, Depends(get_client_ip)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    session_cookie: Annotated[str | None, Depends(cookie_scheme)] = None,
) -> Session:
    """Validate the session secret from the Authorization Bearer header or cookie."""

    # Bearer header wins over the cookie
    if credentials and credentials.scheme == "Bearer":
        return await app.authenticate(credentials.credentials, ip_address)

    if session_cookie:
        return await app.authenticate(session_cookie, ip_address)

    raise AuthenticationError


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ClientIpDep = Annotated[str | None, Depends(get_client_ip)]
SessionDep = Annotated[Session, Depends(get_session)]
