"""Tests for single-use links."""

from datetime import timedelta
from uuid import uuid4

import pytest

from keyward.core.modules.link.models import Link, LinkType
from keyward.errors import DuplicateRecordError, LinkError, LinkFailure, ValidationError


class TestCreateLink:
    """Tests for issuing links."""

    async def test_link_id_is_token(self, core, user, clock):
        """Test that the link token is its id."""
        link = await core.services.link.create_from_user(user.id, clock.at + timedelta(hours=24), LinkType.EMAIL_CHANGE)
        assert link.token == str(link.id)
        assert (await core.services.link.validate_and_fetch(link.token)).user_id == user.id

    async def test_new_link_supersedes_previous_of_same_type(self, core, user, clock):
        """Test that a new link replaces the previous one of the same type."""
        expires_at = clock.at + timedelta(hours=24)
        first = await core.services.link.create_from_user(user.id, expires_at, LinkType.EMAIL_CHANGE)
        other = await core.services.link.create_from_user(user.id, expires_at, LinkType.PASSWORD_CHANGE)
        second = await core.services.link.create_from_user(user.id, expires_at, LinkType.EMAIL_CHANGE)

        with pytest.raises(LinkError) as exc_info:
            await core.services.link.validate_and_fetch(first.token)
        assert exc_info.value.kind == LinkFailure.NOT_FOUND
        assert (await core.services.link.validate_and_fetch(second.token)).id == second.id
        assert (await core.services.link.validate_and_fetch(other.token)).id == other.id

    async def test_past_expiry_rejected(self, core, user, clock):
        """Test that a link cannot be issued already expired."""
        with pytest.raises(ValidationError):
            await core.services.link.create_from_user(user.id, clock.at, LinkType.EMAIL_CHANGE)

    async def test_concurrent_duplicate_reports_already_exists(self, core, storage, user, clock, monkeypatch):
        """Test that a link slipped in between delete and create is reported."""

        async def racing_create(record):
            raise DuplicateRecordError("duplicate user_id/link_type")

        monkeypatch.setattr(storage, "create", racing_create)
        with pytest.raises(LinkError) as exc_info:
            await core.services.link.create_from_user(user.id, clock.at + timedelta(hours=1), LinkType.EMAIL_CHANGE)
        assert exc_info.value.kind == LinkFailure.ALREADY_EXISTS

    async def test_storage_rejects_second_link_of_same_type(self, storage, user, clock):
        """Test that storage refuses two links of the same type for a user."""
        expires_at = clock.at + timedelta(hours=1)
        await storage.create(Link(user_id=user.id, link_type=LinkType.EMAIL_RESET, expires_at=expires_at))
        with pytest.raises(DuplicateRecordError):
            await storage.create(Link(user_id=user.id, link_type=LinkType.EMAIL_RESET, expires_at=expires_at))


class TestValidateLink:
    """Tests for link validation."""

    async def test_expires_after_ttl(self, core, user, clock):
        """Test a 24 hour link at one and at twenty-five hours."""
        link = await core.services.link.create_from_user(user.id, clock.at + timedelta(hours=24), LinkType.EMAIL_CHANGE)

        clock.advance(hours=25)
        with pytest.raises(LinkError) as exc_info:
            await core.services.link.validate_and_fetch(link.token, LinkType.EMAIL_CHANGE)
        assert exc_info.value.kind == LinkFailure.EXPIRED

        clock.advance(hours=-24)
        assert (await core.services.link.validate_and_fetch(link.token, LinkType.EMAIL_CHANGE)).id == link.id

    async def test_wrong_type(self, core, user, clock):
        """Test that a link of another type is rejected."""
        link = await core.services.link.create_from_user(user.id, clock.at + timedelta(hours=1), LinkType.EMAIL_CHANGE)
        with pytest.raises(LinkError) as exc_info:
            await core.services.link.validate_and_fetch(link.token, LinkType.PASSWORD_CHANGE)
        assert exc_info.value.kind == LinkFailure.INVALID_TYPE

    @pytest.mark.parametrize("token", ["", "not-a-uuid", "../etc/passwd"])
    async def test_malformed_token(self, core, token):
        """Test that a token that is not a UUID is reported as NOT_FOUND."""
        with pytest.raises(LinkError) as exc_info:
            await core.services.link.validate_and_fetch(token)
        assert exc_info.value.kind == LinkFailure.NOT_FOUND

    async def test_unknown_token(self, core):
        """Test that an unknown token is reported as NOT_FOUND."""
        with pytest.raises(LinkError) as exc_info:
            await core.services.link.validate_and_fetch(str(uuid4()))
        assert exc_info.value.kind == LinkFailure.NOT_FOUND


class TestLinkQueries:
    """Tests for listing and deleting links."""

    async def test_delete_by_user_and_type(self, core, user, clock):
        """Test that only the link of the given type is deleted."""
        expires_at = clock.at + timedelta(hours=1)
        await core.services.link.create_from_user(user.id, expires_at, LinkType.EMAIL_CHANGE)
        await core.services.link.create_from_user(user.id, expires_at, LinkType.PASSWORD_CHANGE)

        assert await core.services.link.delete_link_by_user_and_type(user.id, LinkType.EMAIL_CHANGE) == 1
        assert await core.services.link.delete_link_by_user_and_type(user.id, LinkType.EMAIL_CHANGE) == 0
        assert [link.link_type for link in await core.services.link.get_links_by_user(user.id)] == [
            LinkType.PASSWORD_CHANGE
        ]

    async def test_delete_links_by_user_keeps_other_users(self, core, user, password, clock):
        """Test that every link of the user is deleted and other users keep theirs."""
        other = await core.services.user.create_user("bob@example.com", password)
        expires_at = clock.at + timedelta(hours=1)
        await core.services.link.create_from_user(user.id, expires_at, LinkType.EMAIL_CHANGE)
        await core.services.link.create_from_user(user.id, expires_at, LinkType.PASSWORD_RESET)
        kept = await core.services.link.create_from_user(other.id, expires_at, LinkType.EMAIL_CHANGE)

        assert await core.services.link.delete_links_by_user(user.id) == 2
        assert await core.services.link.get_links_by_user(user.id) == []
        assert (await core.services.link.validate_and_fetch(kept.token)).user_id == other.id

    async def test_get_links_by_user_orders_by_expiry_and_skips_expired(self, core, user, clock):
        """Test that live links are listed soonest expiry first."""
        await core.services.link.create_from_user(user.id, clock.at + timedelta(hours=48), LinkType.EMAIL_RESET)
        await core.services.link.create_from_user(user.id, clock.at + timedelta(hours=24), LinkType.EMAIL_CHANGE)
        await core.services.link.create_from_user(user.id, clock.at + timedelta(hours=1), LinkType.PASSWORD_CHANGE)

        clock.advance(hours=2)
        links = await core.services.link.get_links_by_user(user.id)
        assert [link.link_type for link in links] == [LinkType.EMAIL_CHANGE, LinkType.EMAIL_RESET]


class TestConstructLink:
    """Tests for building link URLs."""

    @pytest.mark.parametrize(
        ("link_type", "path"),
        [
            (LinkType.EMAIL_CHANGE, "change-email"),
            (LinkType.PASSWORD_CHANGE, "change-password"),
            (LinkType.EMAIL_RESET, "reset-email"),
            (LinkType.PASSWORD_RESET, "reset-password"),
        ],
    )
    async def test_url_embeds_path_and_token(self, core, user, clock, link_type, path):
        """Test that the URL is the frontend base, the flow path and the token."""
        link = Link(user_id=user.id, link_type=link_type, expires_at=clock.at + timedelta(hours=1))
        assert core.services.link.construct_link(link) == f"https://app.example.com/{path}/{link.token}"
