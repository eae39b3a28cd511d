import os
import uuid
from collections.abc import AsyncGenerator

# Settings are read on first import; keep tests off the deployment database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from medcontract.common.enums import UserRole
from medcontract.common.security import create_access_token, get_password_hash
from medcontract.config import settings
from medcontract.db.base import Base
from medcontract.db.models import *  # noqa: F401,F403 - ensure all models loaded


# Make JSONB render as JSON for SQLite
@event.listens_for(Base.metadata, "before_create")
def _remap_jsonb(target, connection, **kw):
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_PATH", str(path))
    return path


@pytest.fixture
async def client(db_session):
    from medcontract.api.deps import get_db
    from medcontract.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session, role: UserRole, first_name: str):
    from medcontract.db.models.user import User

    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}_{uuid.uuid4().hex[:8]}@test.com",
        hashed_password=get_password_hash("testpass123"),
        first_name=first_name,
        last_name="Tester",
        company=f"{first_name} Health",
        role=role.value,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


def _headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
async def client_user(db_session):
    return await _make_user(db_session, UserRole.CLIENT, "Clara")


@pytest.fixture
async def contractor_user(db_session):
    return await _make_user(db_session, UserRole.CONTRACTOR, "Xavier")


@pytest.fixture
async def outsider_user(db_session):
    return await _make_user(db_session, UserRole.CLIENT, "Dana")


@pytest.fixture
def auth_headers(client_user):
    return _headers(client_user)


@pytest.fixture
def contractor_headers(contractor_user):
    return _headers(contractor_user)


@pytest.fixture
def outsider_headers(outsider_user):
    return _headers(outsider_user)


@pytest.fixture
def contract_payload(contractor_user):
    return {
        "title": "Clinic Website Redesign",
        "description": "Patient portal and appointment booking",
        "contractor_id": str(contractor_user.id),
        "project_type": "medical-website",
        "budget": 5000,
        "timeline": {
            "start_date": "2026-01-05",
            "end_date": "2026-06-30",
            "milestones": [{"title": "Design sign-off", "due_date": "2026-02-01"}],
        },
        "requirements": {
            "features": ["booking", "portal", "booking"],
            "compliance": ["HIPAA"],
        },
        "terms": {"payment_schedule": "50% upfront", "deliverables": ["Website"]},
    }


@pytest.fixture
async def contract_id(client, auth_headers, contract_payload):
    response = await client.post("/api/v1/contracts", headers=auth_headers, json=contract_payload)
    assert response.status_code == 201
    return response.json()["id"]
