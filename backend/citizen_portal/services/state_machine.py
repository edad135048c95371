"""Application status state machine.

Every status change goes through ``apply_transition`` which validates the
edge and appends the matching history entry in the same unit of work.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

from sqlmodel import Session, select

from citizen_portal.exceptions import NotFoundError, PermissionDeniedError, StateConflictError
from citizen_portal.models import (
    Application,
    ApplicationHistory,
    ApplicationStatus,
    get_datetime_utc,
)

logger = logging.getLogger(__name__)


class ApplicationEvent(str, Enum):
    SUBMIT = "submit"
    CONFIRM = "confirm"
    DECLINE = "decline"
    PROCESS = "process"
    SIGN = "sign"
    REJECT = "reject"
    COMPLETE = "complete"


S = ApplicationStatus

# event -> (allowed source statuses, allowed target statuses)
TRANSITIONS: dict[ApplicationEvent, tuple[frozenset[S], frozenset[S]]] = {
    ApplicationEvent.SUBMIT: (
        frozenset({S.DRAFT}),
        frozenset({S.SUBMITTED, S.AWAITING_CONFIRMATION}),
    ),
    ApplicationEvent.CONFIRM: (
        frozenset({S.AWAITING_CONFIRMATION}),
        frozenset({S.SUBMITTED}),
    ),
    ApplicationEvent.DECLINE: (
        frozenset({S.AWAITING_CONFIRMATION}),
        frozenset({S.REJECTED}),
    ),
    ApplicationEvent.PROCESS: (
        frozenset({S.SUBMITTED, S.IN_REVIEW, S.SUPPLEMENT_REQUIRED}),
        frozenset({S.IN_REVIEW, S.SUPPLEMENT_REQUIRED, S.PENDING_APPROVAL, S.REJECTED}),
    ),
    ApplicationEvent.SIGN: (
        frozenset({S.PENDING_APPROVAL}),
        frozenset({S.SIGNED}),
    ),
    ApplicationEvent.REJECT: (
        frozenset({S.PENDING_APPROVAL}),
        frozenset({S.REJECTED}),
    ),
    ApplicationEvent.COMPLETE: (
        frozenset({S.SIGNED}),
        frozenset({S.COMPLETED}),
    ),
}


def resolve_target(
    *, current: ApplicationStatus, event: ApplicationEvent, target: ApplicationStatus | None
) -> ApplicationStatus:
    sources, targets = TRANSITIONS[event]
    if current not in sources:
        raise StateConflictError(
            f"Cannot {event.value} an application with status '{current.value}'"
        )
    if target is None:
        if len(targets) != 1:
            raise StateConflictError(f"A target status is required to {event.value}")
        return next(iter(targets))
    if target not in targets:
        raise StateConflictError(
            f"Cannot move an application from '{current.value}' to '{target.value}'"
        )
    return target


def apply_transition(
    *,
    session: Session,
    application: Application,
    event: ApplicationEvent,
    actor_id: str,
    note: str,
    target: ApplicationStatus | None = None,
) -> ApplicationHistory:
    if not actor_id:
        raise PermissionDeniedError("An authenticated actor is required")
    current = ApplicationStatus(application.status)
    new_status = resolve_target(current=current, event=event, target=target)

    now = get_datetime_utc()
    application.status = new_status.value
    application.updated_at = now
    entry = ApplicationHistory(
        application_id=application.id,
        status=new_status.value,
        note=note,
        actor_id=actor_id,
        created_at=now,
    )
    session.add(application)
    session.add(entry)
    logger.info(
        "Application %s: %s -> %s by %s",
        application.id,
        current.value,
        new_status.value,
        actor_id,
    )
    return entry


def lock_application(*, session: Session, application_id: int) -> Application:
    """Load an application holding a row lock until the unit of work ends."""
    statement = (
        select(Application)
        .where(Application.id == application_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    application = session.exec(statement).first()
    if not application:
        raise NotFoundError("Application not found")
    return application


@contextmanager
def unit_of_work(session: Session) -> Iterator[Session]:
    """Commit on success, roll everything back on any error."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
