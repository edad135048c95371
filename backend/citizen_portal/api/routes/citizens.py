from typing import Any

from fastapi import APIRouter

from citizen_portal.api.deps import CurrentActor, SessionDep
from citizen_portal.models import PersonLookupPublic
from citizen_portal.services.registry import lookup_person

router = APIRouter(prefix="/citizens", tags=["citizens"])


@router.get("/lookup/{national_id}", response_model=PersonLookupPublic)
def read_person(session: SessionDep, actor_id: CurrentActor, national_id: str) -> Any:
    return lookup_person(session=session, national_id=national_id.strip())
