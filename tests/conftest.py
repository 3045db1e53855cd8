from __future__ import annotations

import uuid
from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import compliance.models  # noqa: F401
from compliance.business.factories.models import Factory
from compliance.core.auth import issue_access_token
from compliance.core.config import Settings, get_settings
from compliance.core.database import Base, get_db
from compliance.main import create_app
from compliance.middleware.rate_limit import TokenBucketLimiter
from compliance.platform.security.context import Actor, Role
from compliance.services import ServiceRegistry, build_services
from compliance.tenancy.models import Tenant, User


@pytest.fixture()
def session_factory() -> Generator[sessionmaker[Session], None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    try:
        yield SessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "true")
    monkeypatch.setenv("METRICS_ENABLED", "true")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def services() -> ServiceRegistry:
    return build_services(Settings())


@dataclass
class Seeder:
    session: Session

    def tenant(self, name: str = "Acme Apparel", *, is_active: bool = True) -> Tenant:
        tenant = Tenant(name=name, is_active=is_active)
        self.session.add(tenant)
        self.session.commit()
        return tenant

    def factory(self, tenant: Tenant, name: str = "Plant One", *, code: str | None = None, is_active: bool = True) -> Factory:
        factory = Factory(
            tenant_id=tenant.id,
            name=name,
            code=code or f"F-{uuid.uuid4().hex[:8]}",
            address="1 Mill Road",
            country="Bangladesh",
            industry="Textiles",
            size=250,
            is_active=is_active,
        )
        self.session.add(factory)
        self.session.commit()
        return factory

    def user(
        self,
        tenant: Tenant,
        role: Role,
        *,
        factory: Factory | None = None,
        is_active: bool = True,
        last_login_at: datetime | None = None,
    ) -> User:
        user = User(
            email=f"{role.lower()}-{uuid.uuid4().hex[:8]}@example.com",
            first_name=role.title(),
            last_name="Tester",
            role=str(role),
            tenant_id=tenant.id,
            factory_id=factory.id if factory is not None else None,
            is_active=is_active,
            last_login_at=last_login_at,
        )
        self.session.add(user)
        self.session.commit()
        return user

    def actor(self, tenant: Tenant, role: Role, *, factory: Factory | None = None) -> Actor:
        return actor_for(self.user(tenant, role, factory=factory))


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, role=Role(user.role), tenant_id=user.tenant_id, factory_id=user.factory_id)


def auth_headers(user: User | Actor) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token(str(user.id))}"}


def recently() -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=1)


@pytest.fixture()
def seed(db_session: Session) -> Seeder:
    return Seeder(db_session)


@pytest.fixture()
def limiter() -> TokenBucketLimiter:
    return TokenBucketLimiter()


@pytest.fixture()
def client(
    db_session: Session,
    services: ServiceRegistry,
    limiter: TokenBucketLimiter,
) -> Generator[TestClient, None, None]:
    app = create_app(get_settings(), services=services, limiter=limiter)

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
