import logging
from typing import Any

from sqlalchemy import Engine, event
from sqlmodel import Session, create_engine, select

from citizen_portal.core.config import settings
from citizen_portal.models import ServiceCode, ServiceType

logger = logging.getLogger(__name__)

connect_args = (
    {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
)
engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)


def enable_sqlite_savepoints(target: Engine) -> None:
    """Let pysqlite honour SAVEPOINT by emitting BEGIN ourselves."""

    @event.listens_for(target, "connect")
    def _disable_pysqlite_transactions(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _emit_begin(connection: Any) -> None:
        connection.exec_driver_sql("BEGIN")


if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)


SERVICE_CATALOG: dict[ServiceCode, dict[str, str | int]] = {
    ServiceCode.BIRTH_REGISTRATION: {
        "name": "Birth Registration",
        "description": "Birth registration for newborn children",
        "fee": 0,
    },
    ServiceCode.MARRIAGE_REGISTRATION: {
        "name": "Marriage Registration",
        "description": "Marriage registration for citizens",
        "fee": 50000,
    },
    ServiceCode.TEMPORARY_RESIDENCE: {
        "name": "Temporary Residence Registration",
        "description": "Temporary residence registration for citizens",
        "fee": 0,
    },
    ServiceCode.RESIDENT_REGISTRATION: {
        "name": "Resident Registration",
        "description": "Permanent residence registration into a new or existing household",
        "fee": 15000,
    },
}


# make sure all SQLModel models are imported (citizen_portal.models) before initializing DB
# otherwise, SQLModel might fail to initialize relationships properly
# tables should be created with Alembic migrations


def init_db(session: Session) -> None:
    """Seed the service type catalog. Existing rows are left untouched."""
    for code, entry in SERVICE_CATALOG.items():
        existing = session.exec(
            select(ServiceType).where(ServiceType.code == code.value)
        ).first()
        if existing:
            continue
        session.add(ServiceType(code=code.value, **entry))
        logger.info("Seeded service type %s", code.value)
    session.commit()


def get_service_type(session: Session, code: ServiceCode) -> ServiceType | None:
    return session.exec(select(ServiceType).where(ServiceType.code == code.value)).first()