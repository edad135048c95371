from typing import Any

from fastapi import APIRouter

from citizen_portal.api.deps import CurrentOfficial, SessionDep
from citizen_portal.models import ApplicationPublic, ApplicationsPublic, ProcessApplicationRequest
from citizen_portal.services import lifecycle

router = APIRouter(prefix="/official", tags=["official"])


@router.get("/inbox", response_model=ApplicationsPublic)
def read_inbox(
    session: SessionDep, official_id: CurrentOfficial, skip: int = 0, limit: int = 100
) -> Any:
    applications, count = lifecycle.list_official_inbox(
        session=session, skip=skip, limit=limit
    )
    return ApplicationsPublic(data=applications, count=count)


@router.post("/applications/{application_id}/process", response_model=ApplicationPublic)
def process_application(
    *,
    session: SessionDep,
    official_id: CurrentOfficial,
    application_id: int,
    request_in: ProcessApplicationRequest,
) -> Any:
    return lifecycle.process_application(
        session=session,
        application_id=application_id,
        official_id=official_id,
        next_status=request_in.next_status,
        note=request_in.note,
    )
