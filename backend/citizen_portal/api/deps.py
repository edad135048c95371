from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from citizen_portal.core.config import settings
from citizen_portal.core.db import engine
from citizen_portal.models import User, UserRole
from citizen_portal.services.storage import BlobStore, LocalBlobStore

OFFICIAL_ROLES = {UserRole.OFFICIAL.value, UserRole.CHAIRMAN.value, UserRole.ADMIN.value}
CHAIRMAN_ROLES = {UserRole.CHAIRMAN.value, UserRole.ADMIN.value}


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]


def get_current_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
) -> str:
    # Identity is established upstream; the gateway forwards the actor id.
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity",
        )
    return x_actor_id.strip()


CurrentActor = Annotated[str, Depends(get_current_actor)]


def _require_role(session: Session, actor_id: str, roles: set[str]) -> str:
    user = session.get(User, actor_id)
    if not user or user.role not in roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The user doesn't have enough privileges",
        )
    return actor_id


def get_current_official(session: SessionDep, actor_id: CurrentActor) -> str:
    return _require_role(session, actor_id, OFFICIAL_ROLES)


def get_current_chairman(session: SessionDep, actor_id: CurrentActor) -> str:
    return _require_role(session, actor_id, CHAIRMAN_ROLES)


CurrentOfficial = Annotated[str, Depends(get_current_official)]
CurrentChairman = Annotated[str, Depends(get_current_chairman)]


def get_blob_store() -> BlobStore:
    return LocalBlobStore(settings.UPLOAD_ROOT)


BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]
