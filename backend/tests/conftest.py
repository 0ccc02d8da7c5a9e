"""Shared fixtures: in-memory database, API client, fake storage and mail."""

import os

# Settings are cached on first import; configure the test environment first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_KEY"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DEBUG"] = "true"
os.environ["STORAGE_SYNC_INTERVAL_MINUTES"] = "0"

from datetime import date
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database import get_db
from exceptions import NotFoundError, UpstreamFailure
from main import app
from models import Base, Month, Platform, SocialMediaAccount, User, UserRole, Video
from services.auth_service import AuthService
from services.email_service import get_email_service
from services.storage_service import get_storage_service


class FakeStorage:
    """In-memory stand-in for the Supabase Storage client."""

    def __init__(self):
        self.bucket = "videos"
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.removed: list[str] = []
        self.fail_remove = False

    async def ensure_bucket(self) -> bool:
        return False

    async def upload(self, path: str, content: bytes, content_type: str = "video/mp4") -> str:
        self.objects[path] = (content, content_type)
        return path

    async def remove(self, paths: list[str]) -> None:
        if self.fail_remove:
            raise UpstreamFailure("Storage delete failed")
        for path in paths:
            self.removed.append(path)
            self.objects.pop(path, None)

    async def create_signed_url(self, path: str, expires_in: Optional[int] = None) -> str:
        if path not in self.objects:
            raise NotFoundError("File not found in storage")
        return f"https://storage.test/sign/{path}?token=abc"

    async def list(self, prefix: str = "", limit: int = 1000) -> list[dict]:
        """One level of entries under ``prefix``, folders with id None."""
        prefix = prefix.rstrip("/") + "/" if prefix else ""
        entries: dict[str, dict] = {}
        for path, (content, content_type) in self.objects.items():
            if not path.startswith(prefix):
                continue
            head, _, rest = path[len(prefix):].partition("/")
            if rest:
                entries.setdefault(head, {"name": head, "id": None})
            else:
                entries[head] = {
                    "name": head,
                    "id": path,
                    "metadata": {"size": len(content), "mimetype": content_type},
                }
        return sorted(entries.values(), key=lambda e: e["name"])


class FakeEmail:
    """Records sends instead of mailing; ``deliver`` controls the result."""

    def __init__(self):
        self.deliver = True
        self.invitations: list[dict] = []
        self.resets: list[dict] = []

    async def send_invitation(self, to_email, name, role, raw_token) -> bool:
        self.invitations.append({"to": to_email, "name": name, "role": role, "token": raw_token})
        return self.deliver

    async def send_password_reset(self, to_email, name, raw_token) -> bool:
        self.resets.append({"to": to_email, "name": name, "token": raw_token})
        return self.deliver


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def email():
    return FakeEmail()


@pytest.fixture
async def api(session_factory, storage, email):
    """HTTP client against the app with database, storage and mail overridden."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_email_service] = lambda: email

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


async def make_user(
    db,
    email: str,
    role: UserRole = UserRole.CLIENT,
    password: str = "password123",
    active: bool = True,
    name: str = "Test User",
) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        active=active,
        password_hash=AuthService.hash_password(password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"x-auth-token": AuthService.create_access_token(user.id, user.role.value)}


@pytest.fixture
async def editor(db):
    return await make_user(db, "editor@example.com", UserRole.EDITOR, name="Erin Editor")


@pytest.fixture
async def client_user(db):
    return await make_user(db, "client@example.com", UserRole.CLIENT, name="Cora Client")


@pytest.fixture
async def other_client(db):
    return await make_user(db, "other@example.com", UserRole.CLIENT, name="Otto Other")


@pytest.fixture
async def month(db, editor):
    month = Month(name="March 2025", month=3, year=2025, created_by=editor.id)
    db.add(month)
    await db.commit()
    await db.refresh(month)
    return month


@pytest.fixture
async def video(db, storage, editor, client_user, month):
    path = f"clients/{client_user.id}/3-2025/launch.mp4"
    await storage.upload(path, b"fake video bytes")
    video = Video(
        title="Launch",
        storage_path=path,
        month_id=month.id,
        client_id=client_user.id,
        created_by=editor.id,
    )
    db.add(video)
    await db.commit()
    await db.refresh(video)
    return video


@pytest.fixture
async def account(db, client_user):
    account = SocialMediaAccount(
        client_id=client_user.id,
        platform=Platform.INSTAGRAM,
        username="@cora",
        display_name="Cora",
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


def d(value: str) -> date:
    return date.fromisoformat(value)
