from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog

from keyward.config import Config
from keyward.core.core import Core
from keyward.core.modules.mail.mailer import Mailer
from keyward.core.modules.profile.models import ProfileEvent
from keyward.core.modules.session.models import Session
from keyward.core.modules.user.hashing import PasswordHasher
from keyward.core.modules.user.models import ProfileSnapshot
from keyward.core.storage.port import Storage
from keyward.errors import AccessDeniedError, AuthenticationError, NotificationError

logger = structlog.get_logger(__name__)


class App:
    """Facade for all application operations, authenticates callers before delegating to Core."""

    def __init__(
        self,
        config: Config,
        storage: Storage | None = None,
        mailer: Mailer | None = None,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._core = Core(config, storage=storage, mailer=mailer, hasher=hasher)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def login(self, email: str, password: str, ip_address: str | None) -> Session:
        """Check credentials and open a session.

        Unknown email and wrong password fail the same way. The owner is
        mailed when none of their open sessions comes from this address.
        """
        user = await self._core.services.user.verify_password(email, password)
        if user is None:
            logger.info("login_failed", ip_address=ip_address)
            raise AuthenticationError("Invalid email or password")

        existing = await self._core.services.session.list_sessions(user.id)
        if existing and all(session.ip_address != ip_address for session in existing):
            try:
                await self._core.services.account.notify_new_connection(user, ip_address)
            except NotificationError as e:
                logger.warning("new_connection_notification_failed", user_id=user.id, error=str(e))

        return await self._core.services.session.create_session(user.id, ip_address, user.is_admin)

    async def register(self, email: str, password: str, ip_address: str | None) -> Session:
        """Create an account and sign it in."""
        user = await self._core.services.user.create_user(email, password)
        return await self._core.services.session.create_session(user.id, ip_address, user.is_admin)

    async def authenticate(self, secret: str, ip_address: str | None) -> Session:
        """Resolve a session secret presented by a client."""
        session = await self._core.services.session.validate_session(secret, ip_address)
        user = await self._core.services.user.find_user(session.user_id)
        if user is None:
            raise AuthenticationError
        if not user.activated:
            raise AccessDeniedError("Account is disabled")
        return session

    async def logout(self, session: Session) -> None:
        await self._core.services.session.delete_session(session.id)

    async def renew(self, session: Session) -> Session:
        return await self._core.services.session.renew_session(session.id)

    async def get_profile(self, session: Session) -> ProfileSnapshot:
        user = await self._core.services.user.get_user(session.user_id)
        return ProfileSnapshot.from_domain(user)

    async def request_email_change(self, session: Session) -> None:
        await self._core.services.account.request_email_change(session)

    async def confirm_email_change(self, token: str, new_email: str) -> None:
        await self._core.services.account.confirm_email_change(token, new_email)

    async def request_password_change(self, session: Session) -> None:
        await self._core.services.account.request_password_change(session)

    async def confirm_password_change(self, token: str, new_password: str) -> None:
        await self._core.services.account.confirm_password_change(token, new_password)

    async def confirm_email_reset(self, token: str, email: str) -> None:
        await self._core.services.account.confirm_email_reset(token, email)

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        await self._core.services.account.confirm_password_reset(token, new_password)

    async def disable_account(self, session: Session) -> None:
        """Deactivate the caller's account and sign out all of its sessions."""
        await self._core.services.account.disable_account(session)

    async def delete_account(self, session: Session) -> None:
        """Delete the caller's account. Open profile streams end with not_found."""
        await self._core.services.account.delete_account(session)

    def stream_profile(self, session: Session) -> AsyncGenerator[ProfileEvent]:
        """Live feed of the caller's profile. Close the generator to stop it."""
        return self._core.services.profile.stream_profile(session.user_id)
