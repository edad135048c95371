from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from citizen_portal.api.deps import get_blob_store, get_db
from citizen_portal.core.db import enable_sqlite_savepoints, init_db
from citizen_portal.main import app
from citizen_portal.models import User, UserRole
from citizen_portal.services.storage import LocalBlobStore

OFFICIAL_ID = "official-1"
CHAIRMAN_ID = "chairman-1"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    # One shared in-memory connection; sessions must not overlap transactions.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        init_db(session)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(engine: Engine) -> Callable[..., str]:
    def _make_user(
        user_id: str,
        *,
        role: UserRole = UserRole.CITIZEN,
        national_id: str | None = None,
        full_name: str | None = None,
    ) -> str:
        with Session(engine) as session:
            session.add(
                User(
                    id=user_id,
                    role=role.value,
                    national_id=national_id,
                    full_name=full_name,
                )
            )
            session.commit()
        return user_id

    return _make_user


@pytest.fixture
def staff(make_user: Callable[..., str]) -> dict[str, str]:
    return {
        "official": make_user(OFFICIAL_ID, role=UserRole.OFFICIAL),
        "chairman": make_user(CHAIRMAN_ID, role=UserRole.CHAIRMAN),
    }


@pytest.fixture
def client(engine: Engine, tmp_path: Path) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: LocalBlobStore(tmp_path / "uploads")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
