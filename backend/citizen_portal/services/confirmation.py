"""Counter-party confirmation of marriage and temporary residence requests.

A request is opened on submission when the spouse (or the property owner)
has a portal account. The application waits in ``awaiting_confirmation``
until the target user confirms or rejects it.
"""

import logging

from sqlmodel import Session, col, func, select

from citizen_portal.exceptions import (
    ContentValidationError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
)
from citizen_portal.models import (
    Application,
    ConfirmationRequest,
    ConfirmationStatus,
    ConfirmationType,
    User,
    get_datetime_utc,
)
from citizen_portal.services.state_machine import (
    ApplicationEvent,
    apply_transition,
    lock_application,
    unit_of_work,
)

logger = logging.getLogger(__name__)

COUNTERPARTY_LABELS = {
    ConfirmationType.MARRIAGE: "spouse",
    ConfirmationType.TEMPORARY_RESIDENCE: "property owner",
}


def counterparty_label(request_type: str) -> str:
    try:
        return COUNTERPARTY_LABELS[ConfirmationType(request_type)]
    except ValueError:
        return "counter-party"


def open_confirmation_request(
    *,
    session: Session,
    application: Application,
    requester_id: str,
    target_user: User,
    request_type: ConfirmationType,
) -> ConfirmationRequest:
    """Add a pending request to the session; the caller commits."""
    existing = session.exec(
        select(ConfirmationRequest).where(
            ConfirmationRequest.application_id == application.id,
            ConfirmationRequest.target_user_id == target_user.id,
            ConfirmationRequest.status == ConfirmationStatus.PENDING.value,
        )
    ).first()
    if existing:
        raise StateConflictError("A confirmation request is already pending for this user")

    request = ConfirmationRequest(
        application_id=application.id,
        requester_id=requester_id,
        target_user_id=target_user.id,
        target_national_id=target_user.national_id or "",
        request_type=request_type.value,
        status=ConfirmationStatus.PENDING.value,
    )
    session.add(request)
    logger.info(
        "Opened %s confirmation for application %s, target user %s",
        request_type.value,
        application.id,
        target_user.id,
    )
    return request


def list_pending_confirmations(
    *, session: Session, target_user_id: str, skip: int = 0, limit: int = 100
) -> tuple[list[ConfirmationRequest], int]:
    conditions = (
        ConfirmationRequest.target_user_id == target_user_id,
        ConfirmationRequest.status == ConfirmationStatus.PENDING.value,
    )
    count = session.exec(
        select(func.count()).select_from(ConfirmationRequest).where(*conditions)
    ).one()
    requests = session.exec(
        select(ConfirmationRequest)
        .where(*conditions)
        .order_by(col(ConfirmationRequest.created_at).desc())
        .offset(skip)
        .limit(limit)
    ).all()
    return list(requests), count


def get_confirmation_request(*, session: Session, request_id: int) -> ConfirmationRequest:
    request = session.get(ConfirmationRequest, request_id)
    if not request:
        raise NotFoundError("Confirmation request not found")
    return request


def _begin_resolution(
    *, session: Session, request_id: int, actor_id: str
) -> tuple[ConfirmationRequest, Application]:
    request = get_confirmation_request(session=session, request_id=request_id)
    application = lock_application(session=session, application_id=request.application_id)
    session.refresh(request)
    if request.target_user_id != actor_id:
        raise PermissionDeniedError("Only the requested user can answer this confirmation")
    if request.status != ConfirmationStatus.PENDING.value:
        raise StateConflictError(f"Confirmation request is already {request.status}")
    return request, application


def confirm_request(
    *, session: Session, request_id: int, actor_id: str
) -> ConfirmationRequest:
    with unit_of_work(session):
        request, application = _begin_resolution(
            session=session, request_id=request_id, actor_id=actor_id
        )
        label = counterparty_label(request.request_type)
        apply_transition(
            session=session,
            application=application,
            event=ApplicationEvent.CONFIRM,
            actor_id=actor_id,
            note=f"Confirmed by the {label}; forwarded for review",
        )
        request.status = ConfirmationStatus.CONFIRMED.value
        request.responded_at = get_datetime_utc()
        session.add(request)
    session.refresh(request)
    logger.info("Confirmation %s accepted by %s", request.id, actor_id)
    return request


def reject_request(
    *, session: Session, request_id: int, actor_id: str, reason: str
) -> ConfirmationRequest:
    reason = (reason or "").strip()
    if not reason:
        raise ContentValidationError("A reason is required to reject a confirmation")

    with unit_of_work(session):
        request, application = _begin_resolution(
            session=session, request_id=request_id, actor_id=actor_id
        )
        label = counterparty_label(request.request_type)
        apply_transition(
            session=session,
            application=application,
            event=ApplicationEvent.DECLINE,
            actor_id=actor_id,
            note=f"Rejected by the {label}: {reason}",
        )
        application.reject_reason = f"The {label} declined to confirm: {reason}"
        request.status = ConfirmationStatus.REJECTED.value
        request.reject_reason = reason
        request.responded_at = get_datetime_utc()
        session.add(request)
    session.refresh(request)
    logger.info("Confirmation %s rejected by %s", request.id, actor_id)
    return request
