"""Counter-party confirmation protocol."""

import pytest
from sqlmodel import Session, select

from citizen_portal.exceptions import (
    ContentValidationError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
)
from citizen_portal.models import (
    Application,
    ApplicationStatus,
    ConfirmationRequest,
    ConfirmationStatus,
    ConfirmationType,
)
from citizen_portal.services import confirmation, lifecycle
from citizen_portal.services.registry import find_user_by_national_id
from tests.utils.forms import OWNER_ID, SPOUSE_ID, add_user, marriage_form, residence_form

CITIZEN = "citizen-1"
SPOUSE = "spouse-user"
OWNER = "owner-user"


def submit_marriage(session: Session) -> tuple[Application, ConfirmationRequest]:
    add_user(session, SPOUSE, national_id=SPOUSE_ID, full_name="Tran Thi Chi")
    application = lifecycle.submit_application(
        session=session, citizen_id=CITIZEN, form=marriage_form()
    )
    request = session.exec(
        select(ConfirmationRequest).where(
            ConfirmationRequest.application_id == application.id
        )
    ).one()
    return application, request


class TestPendingConfirmations:
    def test_listed_for_target_only(self, db: Session) -> None:
        _, request = submit_marriage(db)

        pending, count = confirmation.list_pending_confirmations(
            session=db, target_user_id=SPOUSE
        )
        assert [item.id for item in pending] == [request.id]
        assert count == 1

        others, other_count = confirmation.list_pending_confirmations(
            session=db, target_user_id=CITIZEN
        )
        assert others == []
        assert other_count == 0

    def test_duplicate_pending_request_is_refused(self, db: Session) -> None:
        application, _ = submit_marriage(db)
        spouse = find_user_by_national_id(session=db, national_id=SPOUSE_ID)
        with pytest.raises(StateConflictError):
            confirmation.open_confirmation_request(
                session=db,
                application=application,
                requester_id=CITIZEN,
                target_user=spouse,
                request_type=ConfirmationType.MARRIAGE,
            )


class TestConfirm:
    def test_confirm_moves_application_to_submitted(self, db: Session) -> None:
        application, request = submit_marriage(db)

        resolved = confirmation.confirm_request(
            session=db, request_id=request.id, actor_id=SPOUSE
        )

        assert resolved.status == ConfirmationStatus.CONFIRMED.value
        assert resolved.responded_at is not None
        refreshed = lifecycle.get_application(session=db, application_id=application.id)
        assert refreshed.status == ApplicationStatus.SUBMITTED.value
        history = lifecycle.get_application_history(
            session=db, application_id=application.id
        )
        assert [entry.status for entry in history] == ["awaiting_confirmation", "submitted"]
        assert history[-1].actor_id == SPOUSE

    def test_only_target_can_confirm(self, db: Session) -> None:
        application, request = submit_marriage(db)
        with pytest.raises(PermissionDeniedError):
            confirmation.confirm_request(
                session=db, request_id=request.id, actor_id=CITIZEN
            )
        refreshed = lifecycle.get_application(session=db, application_id=application.id)
        assert refreshed.status == ApplicationStatus.AWAITING_CONFIRMATION.value

    def test_second_resolution_is_a_conflict(self, db: Session) -> None:
        application, request = submit_marriage(db)
        confirmation.confirm_request(session=db, request_id=request.id, actor_id=SPOUSE)

        with pytest.raises(StateConflictError):
            confirmation.reject_request(
                session=db, request_id=request.id, actor_id=SPOUSE, reason="Changed my mind"
            )
        refreshed = lifecycle.get_application(session=db, application_id=application.id)
        assert refreshed.status == ApplicationStatus.SUBMITTED.value
        assert len(
            lifecycle.get_application_history(session=db, application_id=application.id)
        ) == 2

    def test_unknown_request(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            confirmation.confirm_request(session=db, request_id=999, actor_id=SPOUSE)


class TestReject:
    def test_reject_embeds_reason(self, db: Session) -> None:
        application, request = submit_marriage(db)

        resolved = confirmation.reject_request(
            session=db,
            request_id=request.id,
            actor_id=SPOUSE,
            reason="I never agreed to this",
        )

        assert resolved.status == ConfirmationStatus.REJECTED.value
        assert resolved.reject_reason == "I never agreed to this"
        refreshed = lifecycle.get_application(session=db, application_id=application.id)
        assert refreshed.status == ApplicationStatus.REJECTED.value
        assert "I never agreed to this" in refreshed.reject_reason
        assert "spouse" in refreshed.reject_reason

    def test_blank_reason_is_refused(self, db: Session) -> None:
        _, request = submit_marriage(db)
        with pytest.raises(ContentValidationError):
            confirmation.reject_request(
                session=db, request_id=request.id, actor_id=SPOUSE, reason="   "
            )

    def test_owner_rejects_temporary_residence(self, db: Session) -> None:
        add_user(db, OWNER, national_id=OWNER_ID)
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=residence_form()
        )
        assert application.status == ApplicationStatus.AWAITING_CONFIRMATION.value
        request = db.exec(select(ConfirmationRequest)).one()
        assert request.request_type == ConfirmationType.TEMPORARY_RESIDENCE.value

        confirmation.reject_request(
            session=db, request_id=request.id, actor_id=OWNER, reason="Room is not available"
        )

        refreshed = lifecycle.get_application(session=db, application_id=application.id)
        assert refreshed.status == ApplicationStatus.REJECTED.value
        assert refreshed.reject_reason == (
            "The property owner declined to confirm: Room is not available"
        )
