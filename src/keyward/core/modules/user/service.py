from uuid import UUID

import structlog

from keyward.core.core import Service
from keyward.core.modules.user.models import User
from keyward.core.modules.user.validators import validate_password
from keyward.errors import DuplicateRecordError, NotFoundError, ValidationError
from keyward.utils import is_email

logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService(Service):
    """Manages user accounts. Every read goes to storage."""

    async def get_user(self, user_id: UUID) -> User:
        """Get user by ID."""
        user = await self.storage.select(User, user_id)
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return user

    async def find_user(self, user_id: UUID) -> User | None:
        return await self.storage.select(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        users = await self.storage.find(User, {"email": normalize_email(email)})
        return users[0] if users else None

    async def has_email(self, email: str) -> bool:
        return await self.get_user_by_email(email) is not None

    async def create_user(self, email: str, password: str, is_admin: bool = False) -> User:
        """Create user with hashed password."""
        email = normalize_email(email)
        if not is_email(email):
            raise ValidationError("Invalid email address")
        if await self.has_email(email):
            raise ValidationError("Email address already in use")

        validate_password(password)
        user = User(email=email, password_hash=self.core.hasher.hash(password), is_admin=is_admin)
        try:
            await self.storage.create(user)
        except DuplicateRecordError as e:
            raise ValidationError("Email address already in use") from e
        logger.info("user_created", user_id=user.id)
        return user

    async def verify_password(self, email: str, password: str) -> User | None:
        """Return the active user owning these credentials, or None."""
        user = await self.get_user_by_email(email)
        if user is None or not user.activated:
            return None
        if not self.core.hasher.verify(password, user.password_hash):
            return None
        return user

    async def update_email(self, user_id: UUID, email: str) -> None:
        email = normalize_email(email)
        if not is_email(email):
            raise ValidationError("Invalid email address")
        try:
            updated = await self.storage.update_field(User, user_id, "email", email)
        except DuplicateRecordError as e:
            raise ValidationError("Email address already in use") from e
        if not updated:
            raise NotFoundError(f"User '{user_id}' not found")

    async def update_password(self, user_id: UUID, new_password: str) -> None:
        validate_password(new_password)
        password_hash = self.core.hasher.hash(new_password)
        if not await self.storage.update_field(User, user_id, "password_hash", password_hash):
            raise NotFoundError(f"User '{user_id}' not found")

    async def disable_user(self, user_id: UUID) -> None:
        await self.storage.delete_soft(User, user_id)
        logger.info("user_disabled", user_id=user_id)

    async def delete_user(self, user_id: UUID) -> None:
        """Remove the user record for good."""
        if not await self.storage.delete(User, user_id):
            raise NotFoundError(f"User '{user_id}' not found")
        logger.info("user_deleted", user_id=user_id)

    async def ensure_admin_user_exists(self) -> None:
        """Create the configured admin account if it does not exist yet."""
        config = self.core.config
        if config.admin_email is None or config.admin_password is None:
            return
        if not await self.has_email(config.admin_email):
            await self.create_user(config.admin_email, config.admin_password, is_admin=True)

    async def on_start(self) -> None:
        """Initialize indexes and admin user."""
        await self.storage.prepare(User)
        await self.ensure_admin_user_exists()
        logger.debug("user_service_started")
