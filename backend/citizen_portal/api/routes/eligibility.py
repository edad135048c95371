from typing import Any

from fastapi import APIRouter, Body

from citizen_portal.api.deps import CurrentActor, SessionDep
from citizen_portal.models import (
    EligibilityReport,
    ServiceCode,
    TemporaryResidenceEligibilityRequest,
)
from citizen_portal.services.eligibility import (
    evaluate_marriage_eligibility,
    evaluate_temporary_residence_eligibility,
)
from citizen_portal.services.forms import decode_form

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


@router.post("/marriage", response_model=EligibilityReport)
def check_marriage_eligibility(
    *, session: SessionDep, actor_id: CurrentActor, content: dict[str, Any] = Body(...)
) -> Any:
    form = decode_form(ServiceCode.MARRIAGE_REGISTRATION, content).unwrap()
    return evaluate_marriage_eligibility(session=session, form=form)


@router.post("/temporary-residence", response_model=EligibilityReport)
def check_temporary_residence_eligibility(
    *,
    session: SessionDep,
    actor_id: CurrentActor,
    request_in: TemporaryResidenceEligibilityRequest,
) -> Any:
    return evaluate_temporary_residence_eligibility(
        session=session, applicant_national_id=request_in.applicant_national_id
    )
