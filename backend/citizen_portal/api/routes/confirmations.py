from typing import Any

from fastapi import APIRouter

from citizen_portal.api.deps import CurrentActor, SessionDep
from citizen_portal.models import (
    ConfirmationRequestPublic,
    ConfirmationRequestsPublic,
    RejectApplicationRequest,
)
from citizen_portal.services import confirmation

router = APIRouter(prefix="/confirmations", tags=["confirmations"])


@router.get("/pending", response_model=ConfirmationRequestsPublic)
def read_pending_confirmations(
    session: SessionDep, actor_id: CurrentActor, skip: int = 0, limit: int = 100
) -> Any:
    requests, count = confirmation.list_pending_confirmations(
        session=session, target_user_id=actor_id, skip=skip, limit=limit
    )
    return ConfirmationRequestsPublic(data=requests, count=count)


@router.post("/{request_id}/confirm", response_model=ConfirmationRequestPublic)
def confirm_request(session: SessionDep, actor_id: CurrentActor, request_id: int) -> Any:
    return confirmation.confirm_request(
        session=session, request_id=request_id, actor_id=actor_id
    )


@router.post("/{request_id}/reject", response_model=ConfirmationRequestPublic)
def reject_request(
    *,
    session: SessionDep,
    actor_id: CurrentActor,
    request_id: int,
    request_in: RejectApplicationRequest,
) -> Any:
    return confirmation.reject_request(
        session=session,
        request_id=request_id,
        actor_id=actor_id,
        reason=request_in.reason,
    )
