"""Application lifecycle operations.

Citizens submit (optionally through a draft), officials triage, the chairman
signs, rejects or completes. Each operation runs as one unit of work on a
locked application row and leaves exactly one history entry behind.
"""

import logging
from typing import Any

from sqlmodel import Session, col, func, select

from citizen_portal.core.db import get_service_type
from citizen_portal.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    PortalError,
    StateConflictError,
)
from citizen_portal.models import (
    Application,
    ApplicationHistory,
    ApplicationStatus,
    DerivationStatus,
    ServiceCode,
    get_datetime_utc,
)
from citizen_portal.services.confirmation import open_confirmation_request
from citizen_portal.services.derivation import (
    DERIVATION_HANDLERS,
    DerivationOutcome,
    derive_records,
    has_derived_record,
    resolve_service_code,
)
from citizen_portal.services.forms import ServiceForm, decode_form, encode_form
from citizen_portal.services.registry import find_user_by_national_id
from citizen_portal.services.state_machine import (
    ApplicationEvent,
    apply_transition,
    lock_application,
    unit_of_work,
)

logger = logging.getLogger(__name__)

OFFICIAL_INBOX_EXCLUDED = (
    ApplicationStatus.DRAFT.value,
    ApplicationStatus.AWAITING_CONFIRMATION.value,
    ApplicationStatus.COMPLETED.value,
    ApplicationStatus.REJECTED.value,
)
MATERIALIZED_STATUSES = (
    ApplicationStatus.SIGNED.value,
    ApplicationStatus.COMPLETED.value,
)
MAX_ERROR_LENGTH = 2000


def get_application(*, session: Session, application_id: int) -> Application:
    application = session.get(Application, application_id)
    if not application:
        raise NotFoundError("Application not found")
    return application


def get_owned_application(
    *, session: Session, application_id: int, citizen_id: str
) -> Application:
    application = get_application(session=session, application_id=application_id)
    if application.citizen_id != citizen_id:
        raise PermissionDeniedError("Not enough permissions")
    return application


def application_form(application: Application) -> ServiceForm:
    service_code = resolve_service_code(application.service_type)
    if service_code is None:
        raise StateConflictError("Application has an unknown service type")
    return decode_form(service_code, application.content).unwrap()


def _new_application(
    *, session: Session, citizen_id: str, form: ServiceForm
) -> Application:
    service_type = get_service_type(session, form.SERVICE_CODE)
    if service_type is None:
        raise NotFoundError(f"Service type {form.SERVICE_CODE.value} is not available")
    application = Application(
        citizen_id=citizen_id,
        service_type_id=service_type.id,
        content=encode_form(form),
        status=ApplicationStatus.DRAFT.value,
    )
    application.service_type = service_type
    session.add(application)
    session.flush()
    return application


def _submit(
    *,
    session: Session,
    application: Application,
    form: ServiceForm,
    citizen_id: str,
    note: str | None = None,
) -> None:
    form.validate_for_submission()
    service_name = application.service_type.name if application.service_type else "Application"

    target_user = None
    if form.CONFIRMATION_TYPE is not None:
        target_user = find_user_by_national_id(
            session=session, national_id=form.counterparty_national_id()
        )
        if target_user is not None and target_user.id == citizen_id:
            target_user = None

    if target_user is None:
        apply_transition(
            session=session,
            application=application,
            event=ApplicationEvent.SUBMIT,
            target=ApplicationStatus.SUBMITTED,
            actor_id=citizen_id,
            note=note or f"{service_name} submitted online",
        )
        return

    counterparty = form.counterparty_name() or target_user.full_name or target_user.id
    apply_transition(
        session=session,
        application=application,
        event=ApplicationEvent.SUBMIT,
        target=ApplicationStatus.AWAITING_CONFIRMATION,
        actor_id=citizen_id,
        note=note or f"{service_name} submitted; awaiting confirmation from {counterparty}",
    )
    open_confirmation_request(
        session=session,
        application=application,
        requester_id=citizen_id,
        target_user=target_user,
        request_type=form.CONFIRMATION_TYPE,
    )


def submit_application(
    *, session: Session, citizen_id: str, form: ServiceForm, note: str | None = None
) -> Application:
    """Create and submit in one step.

    Goes to ``awaiting_confirmation`` when the counter-party named on the
    form has a portal account, to ``submitted`` otherwise.
    """
    with unit_of_work(session):
        application = _new_application(session=session, citizen_id=citizen_id, form=form)
        _submit(
            session=session,
            application=application,
            form=form,
            citizen_id=citizen_id,
            note=note,
        )
    session.refresh(application)
    return application


def create_draft(*, session: Session, citizen_id: str, form: ServiceForm) -> Application:
    with unit_of_work(session):
        application = _new_application(session=session, citizen_id=citizen_id, form=form)
        session.add(
            ApplicationHistory(
                application_id=application.id,
                status=ApplicationStatus.DRAFT.value,
                note="Draft saved",
                actor_id=citizen_id,
            )
        )
    session.refresh(application)
    logger.info("Draft %s created by %s", application.id, citizen_id)
    return application


def update_draft(
    *, session: Session, application_id: int, citizen_id: str, form: ServiceForm
) -> Application:
    with unit_of_work(session):
        application = lock_application(session=session, application_id=application_id)
        if application.citizen_id != citizen_id:
            raise PermissionDeniedError("Not enough permissions")
        if application.status != ApplicationStatus.DRAFT.value:
            raise StateConflictError("Only drafts can be edited")
        if resolve_service_code(application.service_type) != form.SERVICE_CODE:
            raise StateConflictError("Form does not match the application's service type")
        application.content = encode_form(form)
        application.updated_at = get_datetime_utc()
        session.add(application)
    session.refresh(application)
    return application


def submit_draft(
    *, session: Session, application_id: int, citizen_id: str, note: str | None = None
) -> Application:
    with unit_of_work(session):
        application = lock_application(session=session, application_id=application_id)
        if application.citizen_id != citizen_id:
            raise PermissionDeniedError("Not enough permissions")
        if application.status != ApplicationStatus.DRAFT.value:
            raise StateConflictError(
                f"Cannot submit an application with status '{application.status}'"
            )
        _submit(
            session=session,
            application=application,
            form=application_form(application),
            citizen_id=citizen_id,
            note=note,
        )
    session.refresh(application)
    return application


def process_application(
    *,
    session: Session,
    application_id: int,
    official_id: str,
    next_status: ApplicationStatus,
    note: str = "",
) -> Application:
    with unit_of_work(session):
        application = lock_application(session=session, application_id=application_id)
        apply_transition(
            session=session,
            application=application,
            event=ApplicationEvent.PROCESS,
            target=next_status,
            actor_id=official_id,
            note=note or f"Moved to {next_status.value} by the reviewing official",
        )
        application.current_official_id = official_id
        if next_status == ApplicationStatus.SUPPLEMENT_REQUIRED:
            application.supplement_note = note or None
        elif next_status == ApplicationStatus.REJECTED:
            application.reject_reason = note or "Rejected during review"
    session.refresh(application)
    return application


def _run_derivation(
    *, session: Session, application: Application, signer_id: str
) -> DerivationOutcome:
    signed_at = get_datetime_utc()
    try:
        with session.begin_nested():
            return derive_records(
                session=session,
                application=application,
                signer_id=signer_id,
                signed_at=signed_at,
            )
    except PortalError as exc:
        logger.warning(
            "Record derivation abandoned for application %s: %s", application.id, exc
        )
        return DerivationOutcome(status=DerivationStatus.FAILED, error=str(exc))
    except Exception as exc:
        logger.exception("Record derivation failed for application %s", application.id)
        return DerivationOutcome(
            status=DerivationStatus.FAILED, error=str(exc) or type(exc).__name__
        )


def sign_application(
    *, session: Session, application_id: int, chairman_id: str, note: str | None = None
) -> Application:
    """Sign and derive the registry record the application asks for.

    A derivation failure never undoes the signature: the record changes are
    rolled back to the savepoint and the failure is stored on the application.
    """
    with unit_of_work(session):
        application = lock_application(session=session, application_id=application_id)
        apply_transition(
            session=session,
            application=application,
            event=ApplicationEvent.SIGN,
            actor_id=chairman_id,
            note=note or "Signed and approved by the chairman",
        )
        session.flush()

        outcome = _run_derivation(
            session=session, application=application, signer_id=chairman_id
        )
        application.derivation_status = outcome.status.value
        application.derivation_error = (
            outcome.error[:MAX_ERROR_LENGTH] if outcome.error else None
        )
        application.derived_record_number = outcome.record_number
        session.add(application)
    session.refresh(application)
    return application


def reject_application(
    *, session: Session, application_id: int, chairman_id: str, reason: str
) -> Application:
    with unit_of_work(session):
        application = lock_application(session=session, application_id=application_id)
        apply_transition(
            session=session,
            application=application,
            event=ApplicationEvent.REJECT,
            actor_id=chairman_id,
            note=f"Rejected by the chairman: {reason}",
        )
        application.reject_reason = reason
    session.refresh(application)
    return application


def complete_application(
    *, session: Session, application_id: int, chairman_id: str, note: str | None = None
) -> Application:
    with unit_of_work(session):
        application = lock_application(session=session, application_id=application_id)
        apply_transition(
            session=session,
            application=application,
            event=ApplicationEvent.COMPLETE,
            actor_id=chairman_id,
            note=note or "Completed; the result is ready for the citizen",
        )
    session.refresh(application)
    return application


def _paginate(
    *, session: Session, conditions: tuple[Any, ...], skip: int, limit: int, newest_first: bool = True
) -> tuple[list[Application], int]:
    count = session.exec(
        select(func.count()).select_from(Application).where(*conditions)
    ).one()
    order = col(Application.created_at).desc() if newest_first else col(Application.created_at)
    applications = session.exec(
        select(Application)
        .where(*conditions)
        .order_by(order, col(Application.id))
        .offset(skip)
        .limit(limit)
    ).all()
    return list(applications), count


def list_citizen_applications(
    *, session: Session, citizen_id: str, skip: int = 0, limit: int = 100
) -> tuple[list[Application], int]:
    return _paginate(
        session=session,
        conditions=(Application.citizen_id == citizen_id,),
        skip=skip,
        limit=limit,
    )


def list_official_inbox(
    *, session: Session, skip: int = 0, limit: int = 100
) -> tuple[list[Application], int]:
    return _paginate(
        session=session,
        conditions=(col(Application.status).not_in(OFFICIAL_INBOX_EXCLUDED),),
        skip=skip,
        limit=limit,
        newest_first=False,
    )


def list_chairman_queue(
    *, session: Session, skip: int = 0, limit: int = 100
) -> tuple[list[Application], int]:
    return _paginate(
        session=session,
        conditions=(Application.status == ApplicationStatus.PENDING_APPROVAL.value,),
        skip=skip,
        limit=limit,
        newest_first=False,
    )


def get_application_history(
    *, session: Session, application_id: int
) -> list[ApplicationHistory]:
    get_application(session=session, application_id=application_id)
    statement = (
        select(ApplicationHistory)
        .where(ApplicationHistory.application_id == application_id)
        .order_by(col(ApplicationHistory.created_at), col(ApplicationHistory.id))
    )
    return list(session.exec(statement).all())


def list_unmaterialized_applications(*, session: Session) -> list[Application]:
    """Signed or completed applications whose registry record is missing."""
    statement = (
        select(Application)
        .where(col(Application.status).in_(MATERIALIZED_STATUSES))
        .order_by(col(Application.id))
    )
    derivable: set[ServiceCode] = set(DERIVATION_HANDLERS)
    missing = []
    for application in session.exec(statement).all():
        if resolve_service_code(application.service_type) not in derivable:
            continue
        if not has_derived_record(session=session, application=application):
            missing.append(application)
    return missing
