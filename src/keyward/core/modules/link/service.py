from datetime import datetime
from uuid import UUID

import structlog

from keyward.core.core import Service
from keyward.core.modules.link.models import LINK_PATHS, Link, LinkType
from keyward.errors import DuplicateRecordError, LinkError, LinkFailure, ValidationError
from keyward.utils import now

logger = structlog.get_logger(__name__)


def parse_token(token: str) -> UUID | None:
    try:
        return UUID(token)
    except ValueError:
        return None


class LinkService(Service):
    """Issues and verifies single-use links. At most one link per user and type."""

    async def on_start(self) -> None:
        await self.storage.prepare(Link)

    async def create_from_user(self, user_id: UUID, expires_at: datetime, link_type: LinkType) -> Link:
        """Issue a link, replacing any previous link of the same type for the user."""
        if expires_at <= now():
            raise ValidationError("Link expiry must be in the future")

        await self.delete_link_by_user_and_type(user_id, link_type)
        link = Link(user_id=user_id, link_type=link_type, expires_at=expires_at)
        try:
            await self.storage.create(link)
        except DuplicateRecordError as e:
            # Another request issued the same link type between delete and create
            raise LinkError(LinkFailure.ALREADY_EXISTS) from e

        logger.info("link_created", link_id=link.id, user_id=user_id, link_type=link_type)
        return link

    async def validate_and_fetch(self, token: str, link_type: LinkType | None = None) -> Link:
        """Resolve a token to a live link.

        Raises:
            LinkError: NOT_FOUND for malformed or unknown tokens, EXPIRED past
                the expiry instant, INVALID_TYPE when ``link_type`` is given
                and does not match.
        """
        link_id = parse_token(token)
        if link_id is None:
            raise LinkError(LinkFailure.NOT_FOUND)

        link = await self.storage.select(Link, link_id)
        if link is None:
            raise LinkError(LinkFailure.NOT_FOUND)
        if link.is_expired(now()):
            raise LinkError(LinkFailure.EXPIRED)
        if link_type is not None and link.link_type != link_type:
            raise LinkError(LinkFailure.INVALID_TYPE)
        return link

    async def delete_link_by_user_and_type(self, user_id: UUID, link_type: LinkType) -> int:
        return await self.storage.delete_where(Link, {"user_id": user_id, "link_type": link_type})

    async def delete_links_by_user(self, user_id: UUID) -> int:
        return await self.storage.delete_where(Link, {"user_id": user_id})

    async def get_links_by_user(self, user_id: UUID) -> list[Link]:
        current = now()
        links = await self.storage.find(Link, {"user_id": user_id})
        return sorted((link for link in links if not link.is_expired(current)), key=lambda link: link.expires_at)

    def construct_link(self, link: Link) -> str:
        base = self.core.config.frontend_url.rstrip("/")
        return f"{base}/{LINK_PATHS[link.link_type]}/{link.token}"
