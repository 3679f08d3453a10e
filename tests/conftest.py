"""Shared pytest fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest

from keyward.app import App
from keyward.config import Config
from keyward.core.core import Core
from keyward.core.modules.mail.mailer import Mailer
from keyward.core.modules.mail.models import MailMessage
from keyward.core.modules.user.models import User
from keyward.core.storage.memory import MemoryStorage

# Modules that read the clock through a module-level ``now``
CLOCK_MODULES = (
    "keyward.core.modules.session.service",
    "keyward.core.modules.link.service",
    "keyward.core.modules.account.service",
)

PASSWORD = "s3cret-pass"


class RecordingMailer(Mailer):
    """Keeps every delivered message in memory."""

    def __init__(self) -> None:
        self.sent: list[MailMessage] = []

    async def send(self, message: MailMessage) -> None:
        self.sent.append(message)

    def last_to(self, recipient: str) -> MailMessage:
        return next(message for message in reversed(self.sent) if message.recipient == recipient)


class PlainHasher:
    """Reversible stand-in for bcrypt so tests stay fast."""

    def hash(self, password: str) -> str:
        return f"plain${password}"

    def verify(self, password: str, password_hash: str) -> bool:
        return password_hash == f"plain${password}"


class FrozenClock:
    def __init__(self, at: datetime) -> None:
        self.at = at

    def __call__(self) -> datetime:
        return self.at

    def advance(self, **kwargs: float) -> None:
        self.at += timedelta(**kwargs)


@pytest.fixture
def config() -> Config:
    return Config(database_url="mongodb://localhost:27017/keyward_test", frontend_url="https://app.example.com/")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FrozenClock:
    frozen = FrozenClock(datetime(2025, 3, 1, 12, 0, tzinfo=UTC))
    for module in CLOCK_MODULES:
        monkeypatch.setattr(f"{module}.now", frozen)
    return frozen


@pytest.fixture
def hasher() -> PlainHasher:
    return PlainHasher()


@pytest.fixture
def password() -> str:
    return PASSWORD


@pytest.fixture
async def core(
    config: Config, storage: MemoryStorage, mailer: RecordingMailer, hasher: PlainHasher
) -> AsyncGenerator[Core]:
    core = Core(config, storage=storage, mailer=mailer, hasher=hasher)
    async with core.lifespan():
        yield core


@pytest.fixture
async def app(
    config: Config, storage: MemoryStorage, mailer: RecordingMailer, hasher: PlainHasher
) -> AsyncGenerator[App]:
    app = App(config, storage=storage, mailer=mailer, hasher=hasher)
    async with app.lifespan():
        yield app


@pytest.fixture
async def user(core: Core) -> User:
    return await core.services.user.create_user("alice@example.com", PASSWORD)
