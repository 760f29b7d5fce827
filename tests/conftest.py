"""Pytest configuration and fixtures for the auth service tests."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from helparound.api.deps import get_verifiers
from helparound.app import create_app
from helparound.core import AuthError, get_session, init_db
from helparound.models import AuthProvider, OAuthIdentity
from helparound.services import IdentityResolver, SQLIdentityStore


class FakeVerifier:
    """Verifier that accepts a fixed set of tokens."""

    def __init__(self, provider, identities=None):
        self.provider = provider
        self.identities = dict(identities or {})
        self.seen_tokens = []

    async def verify(self, token):
        self.seen_tokens.append(token)
        identity = self.identities.get(token)
        if identity is None:
            raise AuthError(f"Invalid {self.provider.value.title()} token")
        return identity


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session):
    return SQLIdentityStore(session)


@pytest.fixture
def resolver(store):
    return IdentityResolver(store)


@pytest.fixture
def google_identity():
    return OAuthIdentity(
        provider=AuthProvider.GOOGLE,
        provider_id="sub123",
        email="g@example.com",
        first_name="G",
        last_name="Ex",
    )


@pytest.fixture
def facebook_identity():
    return OAuthIdentity(
        provider=AuthProvider.FACEBOOK,
        provider_id="fb-456",
        email="g@example.com",
        first_name="G",
        last_name="Ex",
        image="https://example.com/fb.png",
    )


@pytest.fixture
def verifiers(google_identity, facebook_identity):
    return {
        AuthProvider.GOOGLE: FakeVerifier(
            AuthProvider.GOOGLE, {"valid-google-token": google_identity}
        ),
        AuthProvider.FACEBOOK: FakeVerifier(
            AuthProvider.FACEBOOK, {"valid-facebook-token": facebook_identity}
        ),
    }


@pytest_asyncio.fixture
async def client(session_factory, verifiers):
    app = create_app()

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_verifiers] = lambda: verifiers

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
