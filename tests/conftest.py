"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import proxportal.config
from proxportal.config import AuthConfig, DatabaseConfig, SecretsConfig, Settings
from proxportal.core.database import Base, get_session
from proxportal.core.security import create_access_token, create_user
from proxportal.main import create_app
from proxportal.models import ProxmoxServer, User, UserRole

TEST_PASSWORD = "Secret123"


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    """Test settings, installed as the global settings instance.

    bcrypt runs at its minimum cost to keep the suite fast.
    """
    test_settings = Settings(
        database=DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path}/test.db"),
        auth=AuthConfig(bcrypt_rounds=4),
        secrets=SecretsConfig(jwt_secret="test-jwt-secret"),
        config_dir=tmp_path,
    )
    monkeypatch.setattr(proxportal.config, "_settings", test_settings)
    return test_settings


@pytest.fixture
async def test_engine(settings: Settings):
    """Create a test database engine backed by a temporary file."""
    engine = create_async_engine(settings.database.url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Get a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def app(settings: Settings, session_factory, monkeypatch):
    """Application wired to the test settings and database."""
    monkeypatch.setattr("proxportal.main.init_settings", lambda config_dir=None: settings)
    application = create_app()

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_session] = override_get_session
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Get an async test client for the FastAPI app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


async def make_user(
    db: AsyncSession,
    email: str,
    role: UserRole = UserRole.USER,
    name: str = "Test User",
    password: str = TEST_PASSWORD,
) -> User:
    user = await create_user(db, email, password, name, role=role)
    await db.commit()
    return user


@pytest.fixture
async def admin(db: AsyncSession) -> User:
    return await make_user(db, "admin@example.com", UserRole.ADMIN, name="Admin")


@pytest.fixture
async def operator(db: AsyncSession) -> User:
    return await make_user(db, "operator@example.com", UserRole.USER, name="Operator")


@pytest.fixture
async def viewer(db: AsyncSession) -> User:
    return await make_user(db, "viewer@example.com", UserRole.READONLY, name="Viewer")


@pytest.fixture
def auth_headers(settings: Settings) -> Callable[[User], dict[str, str]]:
    """Build bearer headers for a user."""

    def build(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user, settings)}"}

    return build


@pytest.fixture
async def token_server(db: AsyncSession, admin: User) -> ProxmoxServer:
    """An active server using API token auth, owned by the admin."""
    server = ProxmoxServer(
        name="pve-lab",
        host="pve.example.com",
        port=8006,
        token_id="root@pam!dashboard",
        token_secret="token-secret-uuid",
        user_id=admin.id,
    )
    db.add(server)
    await db.commit()
    return server


class FakeProxmox:
    """Canned Proxmox API replies served through httpx.MockTransport.

    Routes are keyed by (method, path below /api2/json). Every request
    is recorded.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []
        self.on("GET", "/version", {"data": {"version": "8.1.3", "release": "8.1"}})

    def on(self, method: str, path: str, body=None, status_code: int = 200) -> None:
        def reply(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json=body)

        self.routes[(method, path)] = reply

    def fail(self, method: str, path: str, error: Exception) -> None:
        def raise_error(request: httpx.Request):
            raise error

        self.routes[(method, path)] = raise_error

    def paths(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path.removeprefix("/api2/json")) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api2/json")
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"data": None, "message": f"no such route {path}"})
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_api() -> FakeProxmox:
    """A fake Proxmox API."""
    return FakeProxmox()


@pytest.fixture
def fake_proxmox(app, fake_api: FakeProxmox) -> FakeProxmox:
    """A fake Proxmox API installed on the app."""
    fake = fake_api
    app.state.proxmox_transport = fake.transport
    return fake
