from typing import Any

from fastapi import APIRouter

from citizen_portal.api.deps import CurrentChairman, SessionDep
from citizen_portal.models import (
    ApplicationPublic,
    ApplicationsPublic,
    RejectApplicationRequest,
    ResidenceExpiryPublic,
    SignApplicationRequest,
)
from citizen_portal.services import lifecycle
from citizen_portal.services.registry import expire_temporary_residences

router = APIRouter(prefix="/chairman", tags=["chairman"])


@router.get("/queue", response_model=ApplicationsPublic)
def read_signing_queue(
    session: SessionDep, chairman_id: CurrentChairman, skip: int = 0, limit: int = 100
) -> Any:
    applications, count = lifecycle.list_chairman_queue(
        session=session, skip=skip, limit=limit
    )
    return ApplicationsPublic(data=applications, count=count)


@router.get("/unmaterialized", response_model=ApplicationsPublic)
def read_unmaterialized_applications(
    session: SessionDep, chairman_id: CurrentChairman
) -> Any:
    """Signed applications whose registry record was never created."""
    applications = lifecycle.list_unmaterialized_applications(session=session)
    return ApplicationsPublic(data=applications, count=len(applications))


@router.post("/applications/{application_id}/sign", response_model=ApplicationPublic)
def sign_application(
    *,
    session: SessionDep,
    chairman_id: CurrentChairman,
    application_id: int,
    request_in: SignApplicationRequest | None = None,
) -> Any:
    return lifecycle.sign_application(
        session=session,
        application_id=application_id,
        chairman_id=chairman_id,
        note=request_in.note if request_in else None,
    )


@router.post("/applications/{application_id}/reject", response_model=ApplicationPublic)
def reject_application(
    *,
    session: SessionDep,
    chairman_id: CurrentChairman,
    application_id: int,
    request_in: RejectApplicationRequest,
) -> Any:
    return lifecycle.reject_application(
        session=session,
        application_id=application_id,
        chairman_id=chairman_id,
        reason=request_in.reason,
    )


@router.post("/applications/{application_id}/complete", response_model=ApplicationPublic)
def complete_application(
    session: SessionDep, chairman_id: CurrentChairman, application_id: int
) -> Any:
    return lifecycle.complete_application(
        session=session, application_id=application_id, chairman_id=chairman_id
    )


@router.post("/temporary-residences/expire", response_model=ResidenceExpiryPublic)
def expire_residences(session: SessionDep, chairman_id: CurrentChairman) -> Any:
    """Mark active temporary residences past their end date as expired."""
    return ResidenceExpiryPublic(expired=expire_temporary_residences(session=session))
