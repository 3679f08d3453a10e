import asyncio
from collections.abc import AsyncGenerator
from uuid import UUID

import structlog

from keyward.core.core import Service
from keyward.core.modules.profile.models import ProfileError, ProfileEvent, ProfileEventKind
from keyward.core.modules.user.models import ProfileSnapshot, User
from keyward.core.storage.port import ChangeAction
from keyward.errors import StorageError

logger = structlog.get_logger(__name__)


class ProfileService(Service):
    """Live feed of one user's profile built on storage change subscriptions."""

    async def stream_profile(self, user_id: UUID) -> AsyncGenerator[ProfileEvent]:
        """Yield a snapshot, then every change to the user, until an error event.

        Closing the generator cancels the producer task and releases the
        storage subscription.
        """
        queue: asyncio.Queue[ProfileEvent] = asyncio.Queue(maxsize=self.core.config.profile_feed_buffer)
        producer = asyncio.create_task(self._produce(user_id, queue))
        logger.debug("profile_stream_opened", user_id=user_id)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.is_terminal:
                    return
        finally:
            producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)
            logger.debug("profile_stream_closed", user_id=user_id)

    async def _produce(self, user_id: UUID, queue: asyncio.Queue[ProfileEvent]) -> None:
        try:
            # Subscribe before reading the snapshot so no change falls in between
            async with self.storage.subscribe(User) as changes:
                user = await self.storage.select(User, user_id)
                if user is None:
                    await queue.put(ProfileEvent.failure(ProfileError.NOT_FOUND, f"User '{user_id}' not found"))
                    return
                await queue.put(ProfileEvent(kind=ProfileEventKind.SNAPSHOT, profile=ProfileSnapshot.from_domain(user)))

                async for change in changes:
                    if change.record_id != user_id:
                        continue
                    if change.action == ChangeAction.DELETE or change.document is None:
                        await queue.put(ProfileEvent.failure(ProfileError.NOT_FOUND, f"User '{user_id}' was deleted"))
                        return
                    profile = ProfileSnapshot.from_domain(User.from_mongo(change.document))
                    await queue.put(ProfileEvent(kind=ProfileEventKind.UPDATE, profile=profile))

            raise StorageError("Change subscription closed")
        except StorageError as e:
            logger.warning("profile_stream_failed", user_id=user_id, error=str(e))
            await queue.put(ProfileEvent.failure(ProfileError.STORAGE_ERROR, "Profile feed interrupted"))
        except Exception:
            logger.exception("profile_stream_crashed", user_id=user_id)
            await queue.put(ProfileEvent.failure(ProfileError.STORAGE_ERROR, "Profile feed interrupted"))
