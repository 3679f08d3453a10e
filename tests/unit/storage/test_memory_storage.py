"""Tests for the in-memory storage backend."""

import asyncio

import pytest

from keyward.core.modules.user.models import User
from keyward.core.storage.memory import MemoryStorage
from keyward.core.storage.port import ChangeAction
from keyward.errors import DuplicateRecordError, StorageError


@pytest.fixture
def alice():
    return User(email="alice@example.com", password_hash="x")


class TestMemoryStorage:
    """Tests for the in-memory storage backend."""

    async def test_returned_records_are_copies(self, alice):
        """Test that changing a returned record does not change the stored one."""
        storage = MemoryStorage()
        await storage.create(alice)

        loaded = await storage.select(User, alice.id)
        loaded.email = "changed@example.com"
        assert (await storage.select(User, alice.id)).email == "alice@example.com"

    async def test_unique_fields_enforced_on_create_and_update(self, alice):
        """Test that unique fields hold on both create and update."""
        storage = MemoryStorage()
        bob = User(email="bob@example.com", password_hash="x")
        await storage.create(alice)
        await storage.create(bob)

        with pytest.raises(DuplicateRecordError):
            await storage.create(User(email="alice@example.com", password_hash="y"))
        with pytest.raises(DuplicateRecordError):
            await storage.update_field(User, bob.id, "email", "alice@example.com")

    async def test_update_and_delete_report_absence(self, alice):
        """Test that update and delete report a missing record."""
        storage = MemoryStorage()
        assert not await storage.update_field(User, alice.id, "email", "a@example.com")
        assert not await storage.delete(User, alice.id)
        await storage.create(alice)
        assert await storage.delete(User, alice.id)

    async def test_delete_soft_deactivates(self, alice):
        """Test that a soft delete keeps the record inactive."""
        storage = MemoryStorage()
        await storage.create(alice)
        await storage.delete_soft(User, alice.id)
        assert (await storage.select(User, alice.id)).activated is False

    async def test_find_and_delete_where(self, alice):
        """Test that filters select and delete matching records."""
        storage = MemoryStorage()
        await storage.create(alice)
        await storage.create(User(email="bob@example.com", password_hash="x", is_admin=True))

        assert [user.email for user in await storage.find(User, {"is_admin": True})] == ["bob@example.com"]
        assert await storage.delete_where(User, {"is_admin": False}) == 1
        assert await storage.find(User, {}) != []

    async def test_subscription_sees_changes_in_order(self, alice):
        """Test that subscribers see changes in write order."""
        storage = MemoryStorage()
        async with storage.subscribe(User) as changes:
            await storage.create(alice)
            await storage.update_field(User, alice.id, "email", "a2@example.com")
            await storage.delete(User, alice.id)

            events = [await asyncio.wait_for(anext(changes), timeout=1) for _ in range(3)]

        assert [event.action for event in events] == [ChangeAction.CREATE, ChangeAction.UPDATE, ChangeAction.DELETE]
        assert events[1].document["email"] == "a2@example.com"
        assert events[2].document is None
        assert storage.subscriber_count(User) == 0

    async def test_broken_subscription_raises(self):
        """Test that a broken subscription raises on the next read."""
        storage = MemoryStorage()
        async with storage.subscribe(User) as changes:
            storage.break_subscriptions(User, StorageError("lost"))
            with pytest.raises(StorageError, match="lost"):
                await anext(changes)
