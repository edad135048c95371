import logging

from sqlmodel import Session

from citizen_portal.core.config import settings
from citizen_portal.core.db import engine, init_db
from citizen_portal.models import User, UserRole

logger = logging.getLogger(__name__)

LOCAL_STAFF = (
    ("official-1", "Demo Official", UserRole.OFFICIAL),
    ("chairman-1", "Demo Chairman", UserRole.CHAIRMAN),
)


def seed_local_staff(session: Session) -> None:
    for user_id, full_name, role in LOCAL_STAFF:
        if session.get(User, user_id):
            continue
        session.add(User(id=user_id, full_name=full_name, role=role.value))
        logger.info("Created local %s account %s", role.value, user_id)
    session.commit()


def init() -> None:
    with Session(engine) as session:
        init_db(session)
        if settings.ENVIRONMENT == "local":
            seed_local_staff(session)


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL)
    logger.info("Creating initial data")
    init()
    logger.info("Initial data created")


if __name__ == "__main__":
    main()
