"""Application lifecycle against an in-memory database."""

import pytest
from sqlmodel import Session, func, select

from citizen_portal.exceptions import (
    ContentValidationError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
)
from citizen_portal.models import (
    Application,
    ApplicationHistory,
    ApplicationStatus,
    BirthRecord,
    ConfirmationRequest,
    ConfirmationStatus,
    DerivationStatus,
    ServiceType,
)
from citizen_portal.services import lifecycle
from tests.utils.forms import (
    SPOUSE_ID,
    add_user,
    birth_form,
    marriage_form,
    resident_form,
)

CITIZEN = "citizen-1"
OFFICIAL = "official-1"
CHAIRMAN = "chairman-1"


def count(session: Session, model: type) -> int:
    return session.exec(select(func.count()).select_from(model)).one()


def move_to_pending_approval(session: Session, application_id: int) -> None:
    for next_status in (ApplicationStatus.IN_REVIEW, ApplicationStatus.PENDING_APPROVAL):
        lifecycle.process_application(
            session=session,
            application_id=application_id,
            official_id=OFFICIAL,
            next_status=next_status,
            note=f"Moved to {next_status.value}",
        )


# ---------------------------------------------------------------------------
# submission
# ---------------------------------------------------------------------------
class TestSubmitApplication:
    def test_birth_registration_is_submitted(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        assert application.status == ApplicationStatus.SUBMITTED.value
        assert application.content["ChildFullName"] == "Nguyen Van An"

        history = lifecycle.get_application_history(
            session=db, application_id=application.id
        )
        assert [entry.status for entry in history] == ["submitted"]
        assert history[0].actor_id == CITIZEN

    def test_incomplete_form_is_rejected_without_side_effects(self, db: Session) -> None:
        with pytest.raises(ContentValidationError):
            lifecycle.submit_application(
                session=db, citizen_id=CITIZEN, form=birth_form(gender="")
            )
        assert count(db, Application) == 0
        assert count(db, ApplicationHistory) == 0

    def test_marriage_without_spouse_account_skips_confirmation(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=marriage_form()
        )
        assert application.status == ApplicationStatus.SUBMITTED.value
        assert count(db, ConfirmationRequest) == 0

    def test_marriage_with_spouse_account_awaits_confirmation(self, db: Session) -> None:
        add_user(db, "spouse-user", national_id=SPOUSE_ID, full_name="Tran Thi Chi")

        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=marriage_form()
        )

        assert application.status == ApplicationStatus.AWAITING_CONFIRMATION.value
        request = db.exec(select(ConfirmationRequest)).one()
        assert request.application_id == application.id
        assert request.target_user_id == "spouse-user"
        assert request.requester_id == CITIZEN
        assert request.status == ConfirmationStatus.PENDING.value
        assert request.request_type == "Marriage"

    def test_counterparty_account_of_the_applicant_is_ignored(self, db: Session) -> None:
        add_user(db, CITIZEN, national_id=SPOUSE_ID)
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=marriage_form()
        )
        assert application.status == ApplicationStatus.SUBMITTED.value


# ---------------------------------------------------------------------------
# drafts
# ---------------------------------------------------------------------------
class TestDrafts:
    def test_create_update_and_submit(self, db: Session) -> None:
        draft = lifecycle.create_draft(
            session=db, citizen_id=CITIZEN, form=birth_form(gender="")
        )
        assert draft.status == ApplicationStatus.DRAFT.value

        updated = lifecycle.update_draft(
            session=db,
            application_id=draft.id,
            citizen_id=CITIZEN,
            form=birth_form(child_full_name="Nguyen Van Bao"),
        )
        assert updated.content["ChildFullName"] == "Nguyen Van Bao"

        submitted = lifecycle.submit_draft(
            session=db, application_id=draft.id, citizen_id=CITIZEN
        )
        assert submitted.status == ApplicationStatus.SUBMITTED.value
        history = lifecycle.get_application_history(session=db, application_id=draft.id)
        assert [entry.status for entry in history] == ["draft", "submitted"]

    def test_incomplete_draft_cannot_be_submitted(self, db: Session) -> None:
        draft = lifecycle.create_draft(
            session=db, citizen_id=CITIZEN, form=birth_form(gender="")
        )
        with pytest.raises(ContentValidationError):
            lifecycle.submit_draft(session=db, application_id=draft.id, citizen_id=CITIZEN)
        assert lifecycle.get_application(
            session=db, application_id=draft.id
        ).status == ApplicationStatus.DRAFT.value

    def test_only_owner_can_edit(self, db: Session) -> None:
        draft = lifecycle.create_draft(session=db, citizen_id=CITIZEN, form=birth_form())
        with pytest.raises(PermissionDeniedError):
            lifecycle.update_draft(
                session=db,
                application_id=draft.id,
                citizen_id="someone-else",
                form=birth_form(child_full_name="Hijacked"),
            )

    def test_content_is_frozen_after_submission(self, db: Session) -> None:
        draft = lifecycle.create_draft(session=db, citizen_id=CITIZEN, form=birth_form())
        lifecycle.submit_draft(session=db, application_id=draft.id, citizen_id=CITIZEN)

        with pytest.raises(StateConflictError):
            lifecycle.update_draft(
                session=db,
                application_id=draft.id,
                citizen_id=CITIZEN,
                form=birth_form(child_full_name="Changed"),
            )
        application = lifecycle.get_application(session=db, application_id=draft.id)
        assert application.content["ChildFullName"] == "Nguyen Van An"

    def test_form_must_match_service_type(self, db: Session) -> None:
        draft = lifecycle.create_draft(session=db, citizen_id=CITIZEN, form=birth_form())
        with pytest.raises(StateConflictError):
            lifecycle.update_draft(
                session=db,
                application_id=draft.id,
                citizen_id=CITIZEN,
                form=resident_form(),
            )


# ---------------------------------------------------------------------------
# official processing
# ---------------------------------------------------------------------------
class TestProcessApplication:
    def test_supplement_required_keeps_note(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        processed = lifecycle.process_application(
            session=db,
            application_id=application.id,
            official_id=OFFICIAL,
            next_status=ApplicationStatus.SUPPLEMENT_REQUIRED,
            note="Please attach the hospital birth certificate",
        )
        assert processed.status == ApplicationStatus.SUPPLEMENT_REQUIRED.value
        assert processed.supplement_note == "Please attach the hospital birth certificate"
        assert processed.current_official_id == OFFICIAL

    def test_rejection_records_reason(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        processed = lifecycle.process_application(
            session=db,
            application_id=application.id,
            official_id=OFFICIAL,
            next_status=ApplicationStatus.REJECTED,
            note="Duplicate submission",
        )
        assert processed.status == ApplicationStatus.REJECTED.value
        assert processed.reject_reason == "Duplicate submission"

    def test_cannot_process_a_draft(self, db: Session) -> None:
        draft = lifecycle.create_draft(session=db, citizen_id=CITIZEN, form=birth_form())
        with pytest.raises(StateConflictError):
            lifecycle.process_application(
                session=db,
                application_id=draft.id,
                official_id=OFFICIAL,
                next_status=ApplicationStatus.IN_REVIEW,
            )

    def test_official_cannot_sign(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        with pytest.raises(StateConflictError):
            lifecycle.process_application(
                session=db,
                application_id=application.id,
                official_id=OFFICIAL,
                next_status=ApplicationStatus.SIGNED,
            )
        history = lifecycle.get_application_history(
            session=db, application_id=application.id
        )
        assert len(history) == 1

    def test_unknown_application(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            lifecycle.process_application(
                session=db,
                application_id=999,
                official_id=OFFICIAL,
                next_status=ApplicationStatus.IN_REVIEW,
            )


# ---------------------------------------------------------------------------
# chairman decisions
# ---------------------------------------------------------------------------
class TestSignAndComplete:
    def test_full_lifecycle_history(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        move_to_pending_approval(db, application.id)
        lifecycle.sign_application(
            session=db, application_id=application.id, chairman_id=CHAIRMAN
        )
        completed = lifecycle.complete_application(
            session=db, application_id=application.id, chairman_id=CHAIRMAN
        )
        assert completed.status == ApplicationStatus.COMPLETED.value

        history = lifecycle.get_application_history(
            session=db, application_id=application.id
        )
        assert [entry.status for entry in history] == [
            "submitted",
            "in_review",
            "pending_approval",
            "signed",
            "completed",
        ]
        assert [entry.actor_id for entry in history] == [
            CITIZEN,
            OFFICIAL,
            OFFICIAL,
            CHAIRMAN,
            CHAIRMAN,
        ]
        timestamps = [entry.created_at for entry in history]
        assert timestamps == sorted(timestamps)

    def test_sign_records_derivation_outcome(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        move_to_pending_approval(db, application.id)
        signed = lifecycle.sign_application(
            session=db, application_id=application.id, chairman_id=CHAIRMAN
        )

        assert signed.status == ApplicationStatus.SIGNED.value
        assert signed.derivation_status == DerivationStatus.SUCCEEDED.value
        assert signed.derivation_error is None
        record = db.exec(select(BirthRecord)).one()
        assert signed.derived_record_number == record.registration_number

    def test_sign_twice_is_a_conflict(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        move_to_pending_approval(db, application.id)
        lifecycle.sign_application(
            session=db, application_id=application.id, chairman_id=CHAIRMAN
        )
        with pytest.raises(StateConflictError):
            lifecycle.sign_application(
                session=db, application_id=application.id, chairman_id=CHAIRMAN
            )
        assert count(db, BirthRecord) == 1

    def test_sign_after_completion_creates_nothing(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        move_to_pending_approval(db, application.id)
        lifecycle.sign_application(
            session=db, application_id=application.id, chairman_id=CHAIRMAN
        )
        lifecycle.complete_application(
            session=db, application_id=application.id, chairman_id=CHAIRMAN
        )

        with pytest.raises(StateConflictError):
            lifecycle.sign_application(
                session=db, application_id=application.id, chairman_id=CHAIRMAN
            )
        assert count(db, BirthRecord) == 1
        assert lifecycle.get_application(
            session=db, application_id=application.id
        ).status == ApplicationStatus.COMPLETED.value

    def test_chairman_rejection(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        move_to_pending_approval(db, application.id)
        rejected = lifecycle.reject_application(
            session=db,
            application_id=application.id,
            chairman_id=CHAIRMAN,
            reason="Parents' documents do not match",
        )
        assert rejected.status == ApplicationStatus.REJECTED.value
        assert rejected.reject_reason == "Parents' documents do not match"
        assert count(db, BirthRecord) == 0

        with pytest.raises(StateConflictError):
            lifecycle.complete_application(
                session=db, application_id=application.id, chairman_id=CHAIRMAN
            )

    def test_complete_requires_signature(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        move_to_pending_approval(db, application.id)
        with pytest.raises(StateConflictError):
            lifecycle.complete_application(
                session=db, application_id=application.id, chairman_id=CHAIRMAN
            )

    def test_missing_actor_is_refused(self, db: Session) -> None:
        application = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        with pytest.raises(PermissionDeniedError):
            lifecycle.process_application(
                session=db,
                application_id=application.id,
                official_id="",
                next_status=ApplicationStatus.IN_REVIEW,
            )


# ---------------------------------------------------------------------------
# queries
# ---------------------------------------------------------------------------
class TestQueues:
    def test_official_inbox_and_chairman_queue(self, db: Session) -> None:
        add_user(db, "spouse-user", national_id=SPOUSE_ID)
        draft = lifecycle.create_draft(session=db, citizen_id=CITIZEN, form=birth_form())
        awaiting = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=marriage_form()
        )
        submitted = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        pending = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        move_to_pending_approval(db, pending.id)
        rejected = lifecycle.submit_application(
            session=db, citizen_id=CITIZEN, form=birth_form()
        )
        lifecycle.process_application(
            session=db,
            application_id=rejected.id,
            official_id=OFFICIAL,
            next_status=ApplicationStatus.REJECTED,
            note="Invalid",
        )

        inbox, inbox_count = lifecycle.list_official_inbox(session=db)
        assert {application.id for application in inbox} == {submitted.id, pending.id}
        assert inbox_count == 2

        queue, queue_count = lifecycle.list_chairman_queue(session=db)
        assert [application.id for application in queue] == [pending.id]
        assert queue_count == 1

        mine, mine_count = lifecycle.list_citizen_applications(
            session=db, citizen_id=CITIZEN
        )
        assert mine_count == 5
        assert {application.id for application in mine} == {
            draft.id,
            awaiting.id,
            submitted.id,
            pending.id,
            rejected.id,
        }

    def test_other_citizens_applications_are_not_listed(self, db: Session) -> None:
        lifecycle.submit_application(session=db, citizen_id=CITIZEN, form=birth_form())
        mine, mine_count = lifecycle.list_citizen_applications(
            session=db, citizen_id="citizen-2"
        )
        assert mine == []
        assert mine_count == 0

    def test_history_of_unknown_application(self, db: Session) -> None:
        with pytest.raises(NotFoundError):
            lifecycle.get_application_history(session=db, application_id=404)


class TestUnknownServiceType:
    def test_sign_skips_derivation(self, db: Session) -> None:
        service_type = ServiceType(code="passport_renewal", name="Passport renewal")
        db.add(service_type)
        db.commit()
        db.refresh(service_type)
        application = Application(
            citizen_id=CITIZEN,
            service_type_id=service_type.id,
            content={"Anything": "goes"},
            status=ApplicationStatus.PENDING_APPROVAL.value,
        )
        db.add(application)
        db.commit()
        db.refresh(application)

        signed = lifecycle.sign_application(
            session=db, application_id=application.id, chairman_id=CHAIRMAN
        )
        assert signed.status == ApplicationStatus.SIGNED.value
        assert signed.derivation_status == DerivationStatus.SKIPPED.value
        assert signed.derived_record_number is None
        assert lifecycle.list_unmaterialized_applications(session=db) == []
