import secrets
from datetime import timedelta
from uuid import UUID

import structlog

from keyward.core.core import Service
from keyward.core.modules.session.models import Session, SessionSecret
from keyward.errors import DuplicateRecordError, SessionError, SessionFailure, StorageError
from keyward.utils import hash_token, now

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Session lifecycle: create, validate, renew, delete.

    Expiry is lazy. An expired session is rejected on validation whether or
    not the record has been reaped yet.
    """

    @property
    def ttl(self) -> timedelta:
        return timedelta(days=self.core.config.session_ttl_days)

    async def on_start(self) -> None:
        await self.storage.prepare(Session)

    async def create_session(self, user_id: UUID, ip_address: str | None, is_admin: bool) -> Session:
        try:
            secret = SessionSecret(secrets.token_urlsafe(32))
        except (OSError, NotImplementedError) as e:
            raise SessionError(SessionFailure.KEY_GENERATION_FAILED) from e

        session = Session(
            secret_hash=hash_token(secret),
            user_id=user_id,
            expires_at=now() + self.ttl,
            ip_address=ip_address,
            is_admin=is_admin,
        )
        try:
            await self.storage.create(session)
        except DuplicateRecordError as e:
            raise SessionError(SessionFailure.KEY_GENERATION_FAILED) from e
        except StorageError as e:
            raise SessionError(SessionFailure.NOT_CREATED) from e

        session.secret = secret
        logger.info("session_created", session_id=session.id, user_id=user_id)
        return session

    async def validate_session(self, secret: str, ip_address: str | None = None) -> Session:
        """Resolve a secret to its live session.

        Raises:
            SessionError: NOT_FOUND, EXPIRED, or IP_MISMATCH when IP binding
                is enabled and the caller's address differs from the one the
                session was created from.
        """
        sessions = await self.storage.find(Session, {"secret_hash": hash_token(secret)})
        if not sessions:
            raise SessionError(SessionFailure.NOT_FOUND)
        session = sessions[0]

        if session.is_expired(now()):
            raise SessionError(SessionFailure.EXPIRED)

        if self.core.config.session_ip_binding and session.ip_address is not None and ip_address != session.ip_address:
            logger.warning("session_ip_mismatch", session_id=session.id, user_id=session.user_id)
            raise SessionError(SessionFailure.IP_MISMATCH)

        return session

    async def renew_session(self, session_id: UUID) -> Session:
        """Push expiry to now + TTL. Never moves it backwards.

        An expired session stays expired.
        """
        try:
            session = await self.storage.select(Session, session_id)
        except StorageError as e:
            raise SessionError(SessionFailure.RENEWAL_FAILED) from e
        if session is None:
            raise SessionError(SessionFailure.NOT_FOUND)
        current = now()
        if session.is_expired(current):
            raise SessionError(SessionFailure.EXPIRED)

        expires_at = max(session.expires_at, current + self.ttl)
        try:
            if not await self.storage.update_field(Session, session_id, "expires_at", expires_at):
                raise SessionError(SessionFailure.NOT_FOUND)
        except StorageError as e:
            raise SessionError(SessionFailure.RENEWAL_FAILED) from e

        session.expires_at = expires_at
        logger.debug("session_renewed", session_id=session_id)
        return session

    async def delete_session(self, session_id: UUID) -> None:
        """Delete a session. Deleting an absent session is not an error."""
        try:
            await self.storage.delete(Session, session_id)
        except StorageError as e:
            raise SessionError(SessionFailure.DELETION_FAILED) from e
        logger.info("session_deleted", session_id=session_id)

    async def destroy_all_sessions(self, user_id: UUID) -> int:
        try:
            count = await self.storage.delete_where(Session, {"user_id": user_id})
        except StorageError as e:
            raise SessionError(SessionFailure.DESTROY_ALL_FAILED) from e
        logger.info("sessions_destroyed", user_id=user_id, count=count)
        return count

    async def list_sessions(self, user_id: UUID) -> list[Session]:
        """Unexpired sessions of a user."""
        current = now()
        sessions = await self.storage.find(Session, {"user_id": user_id})
        return [session for session in sessions if not session.is_expired(current)]
