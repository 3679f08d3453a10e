from datetime import timedelta
from uuid import UUID

import structlog

from keyward.core.core import Service
from keyward.core.modules.link.models import Link, LinkType
from keyward.core.modules.session.models import Session
from keyward.core.modules.user.models import User
from keyward.errors import ValidationError
from keyward.utils import now

logger = structlog.get_logger(__name__)


class AccountService(Service):
    """Email and password change flows confirmed through emailed links.

    A confirming mutation is applied only after its link validated, and the
    link is deleted only after the mutation succeeded, so a storage failure
    in between leaves the link usable for a retry.
    """

    @property
    def change_link_ttl(self) -> timedelta:
        return timedelta(hours=self.core.config.change_link_ttl_hours)

    @property
    def reset_link_ttl(self) -> timedelta:
        return timedelta(hours=self.core.config.reset_link_ttl_hours)

    async def _issue_link(self, user_id: UUID, link_type: LinkType, ttl: timedelta) -> tuple[Link, str]:
        link = await self.core.services.link.create_from_user(user_id, now() + ttl, link_type)
        return link, self.core.services.link.construct_link(link)

    async def _request_user(self, session: Session, flow: str) -> User | None:
        user = await self.core.services.user.find_user(session.user_id)
        if user is None or not user.activated:
            logger.warning("change_request_for_missing_user", flow=flow, user_id=session.user_id)
            return None
        return user

    async def request_email_change(self, session: Session) -> None:
        user = await self._request_user(session, "email_change")
        if user is None:
            return
        _, url = await self._issue_link(user.id, LinkType.EMAIL_CHANGE, self.change_link_ttl)
        await self.core.services.mail.send_template(
            user.email,
            "Confirm your email change",
            "email_change.html",
            {"USER_NAME": user.email, "CHANGE_URL": url},
        )
        logger.info("email_change_requested", user_id=user.id)

    async def confirm_email_change(self, token: str, new_email: str) -> None:
        """Move the account to ``new_email`` and mail a reset link to the old address."""
        link = await self.core.services.link.validate_and_fetch(token, LinkType.EMAIL_CHANGE)
        user = await self.core.services.user.get_user(link.user_id)

        new_email = new_email.strip().lower()
        if new_email == user.email:
            raise ValidationError("New email address is the same as the current one")
        if await self.core.services.user.has_email(new_email):
            raise ValidationError("Email address already in use")

        old_email = user.email
        await self.core.services.user.update_email(user.id, new_email)
        await self.core.services.link.delete_link_by_user_and_type(user.id, LinkType.EMAIL_CHANGE)

        _, reset_url = await self._issue_link(user.id, LinkType.EMAIL_RESET, self.reset_link_ttl)
        await self.core.services.mail.send_template(
            old_email,
            "Your email address was changed",
            "email_changed.html",
            {"USER_NAME": old_email, "RESET_URL": reset_url, "NEW_MAIL": new_email},
        )
        logger.info("email_changed", user_id=user.id)

    async def request_password_change(self, session: Session) -> None:
        user = await self._request_user(session, "password_change")
        if user is None:
            return
        _, url = await self._issue_link(user.id, LinkType.PASSWORD_CHANGE, self.change_link_ttl)
        await self.core.services.mail.send_template(
            user.email,
            "Confirm your password change",
            "password_change.html",
            {"USER_NAME": user.email, "CHANGE_URL": url},
        )
        logger.info("password_change_requested", user_id=user.id)

    async def confirm_password_change(self, token: str, new_password: str) -> None:
        """Set a new password, sign out everywhere and mail a reset link."""
        link = await self.core.services.link.validate_and_fetch(token, LinkType.PASSWORD_CHANGE)
        user = await self.core.services.user.get_user(link.user_id)

        await self.core.services.user.update_password(user.id, new_password)
        await self.core.services.link.delete_link_by_user_and_type(user.id, LinkType.PASSWORD_CHANGE)
        await self.core.services.session.destroy_all_sessions(user.id)

        _, reset_url = await self._issue_link(user.id, LinkType.PASSWORD_RESET, self.reset_link_ttl)
        await self.core.services.mail.send_template(
            user.email,
            "Your password was changed",
            "password_changed.html",
            {"USER_NAME": user.email, "RESET_URL": reset_url},
        )
        logger.info("password_changed", user_id=user.id)

    async def confirm_email_reset(self, token: str, email: str) -> None:
        """Undo an email change from the old address. Pending change links are dropped."""
        link = await self.core.services.link.validate_and_fetch(token, LinkType.EMAIL_RESET)
        user = await self.core.services.user.get_user(link.user_id)

        email = email.strip().lower()
        if email != user.email and await self.core.services.user.has_email(email):
            raise ValidationError("Email address already in use")

        await self.core.services.user.update_email(user.id, email)
        await self.core.services.link.delete_link_by_user_and_type(user.id, LinkType.EMAIL_RESET)
        await self.core.services.link.delete_link_by_user_and_type(user.id, LinkType.EMAIL_CHANGE)
        await self.core.services.session.destroy_all_sessions(user.id)
        logger.info("email_reset", user_id=user.id)

    async def confirm_password_reset(self, token: str, new_password: str) -> None:
        link = await self.core.services.link.validate_and_fetch(token, LinkType.PASSWORD_RESET)
        user = await self.core.services.user.get_user(link.user_id)

        await self.core.services.user.update_password(user.id, new_password)
        await self.core.services.link.delete_link_by_user_and_type(user.id, LinkType.PASSWORD_RESET)
        await self.core.services.link.delete_link_by_user_and_type(user.id, LinkType.PASSWORD_CHANGE)
        await self.core.services.session.destroy_all_sessions(user.id)
        logger.info("password_reset", user_id=user.id)

    async def disable_account(self, session: Session) -> None:
        await self.core.services.user.disable_user(session.user_id)
        await self.core.services.session.destroy_all_sessions(session.user_id)
        logger.info("account_disabled", user_id=session.user_id)

    async def delete_account(self, session: Session) -> None:
        """Delete the caller's user record with every session and pending link."""
        await self.core.services.user.delete_user(session.user_id)
        await self.core.services.session.destroy_all_sessions(session.user_id)
        await self.core.services.link.delete_links_by_user(session.user_id)
        logger.info("account_deleted", user_id=session.user_id)

    async def notify_new_connection(self, user: User, ip_address: str | None, connection_type: str = "login") -> None:
        await self.core.services.mail.send_template(
            user.email,
            "New connection to your account",
            "new_connection_detected.html",
            {
                "USER_NAME": user.email,
                "CONNECTION_TYPE": connection_type,
                "CONNECTION_DATE": now().strftime("%Y-%m-%d %H:%M:%S UTC"),
                "CONNECTION_IP": ip_address or "unknown",
            },
        )
