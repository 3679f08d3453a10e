from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, cast

from keyward.config import Config
from keyward.core.modules.mail.mailer import Mailer, create_mailer
from keyward.core.modules.user.hashing import BcryptHasher, PasswordHasher
from keyward.core.storage.mongo import MongoStorage
from keyward.core.storage.port import Storage

if TYPE_CHECKING:
    from keyward.core.modules.account.service import AccountService
    from keyward.core.modules.link.service import LinkService
    from keyward.core.modules.mail.service import MailService
    from keyward.core.modules.profile.service import ProfileService
    from keyward.core.modules.session.service import SessionService
    from keyward.core.modules.user.service import UserService


class Service:
    """Base class for services backed by the shared storage."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    user: UserService
    session: SessionService
    link: LinkService
    mail: MailService
    account: AccountService
    profile: ProfileService

    def __init__(self, storage: Storage) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []
        self._storage = storage

        # Service configuration: (attribute_name, module_path, class_name)
        # Order matters for initialization - user must exist before the admin account is seeded
        service_configs = [
            ("user", "keyward.core.modules.user.service", "UserService"),
            ("session", "keyward.core.modules.session.service", "SessionService"),
            ("link", "keyward.core.modules.link.service", "LinkService"),
            ("mail", "keyward.core.modules.mail.service", "MailService"),
            ("account", "keyward.core.modules.account.service", "AccountService"),
            ("profile", "keyward.core.modules.profile.service", "ProfileService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(storage)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        """Start all services that have startup logic."""
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        """Stop all services that have cleanup logic."""
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, storage, mailer, and all service instances.

    Storage, mailer and hasher are built from config unless injected.
    """

    config: Config
    storage: Storage
    mailer: Mailer
    hasher: PasswordHasher
    services: Services

    def __init__(
        self,
        config: Config,
        storage: Storage | None = None,
        mailer: Mailer | None = None,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self.config = config
        self.storage = storage if storage is not None else MongoStorage.from_url(config.database_url)
        self.mailer = mailer if mailer is not None else create_mailer(config)
        self.hasher = hasher if hasher is not None else BcryptHasher()
        self.services = Services(self.storage)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Start all services on application startup."""
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and release the storage connection on shutdown."""
        await self.services.stop_all()
        await self.storage.close()
