from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from pydantic import EmailStr
from sqlalchemy import JSON, DateTime
from sqlmodel import Field, Relationship, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    CITIZEN = "citizen"
    OFFICIAL = "official"
    CHAIRMAN = "chairman"
    ADMIN = "admin"


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    SUPPLEMENT_REQUIRED = "supplement_required"
    PENDING_APPROVAL = "pending_approval"
    SIGNED = "signed"
    COMPLETED = "completed"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({ApplicationStatus.COMPLETED, ApplicationStatus.REJECTED})


class ServiceCode(str, Enum):
    BIRTH_REGISTRATION = "birth_registration"
    MARRIAGE_REGISTRATION = "marriage_registration"
    TEMPORARY_RESIDENCE = "temporary_residence"
    RESIDENT_REGISTRATION = "resident_registration"


class DerivationStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class MaritalStatus(str, Enum):
    SINGLE = "Single"
    MARRIED = "Married"
    DIVORCED = "Divorced"
    WIDOWED = "Widowed"


class MarriageStatus(str, Enum):
    ACTIVE = "Active"
    DIVORCED = "Divorced"


class ResidenceStatus(str, Enum):
    ACTIVE = "Active"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"


class ConfirmationType(str, Enum):
    MARRIAGE = "Marriage"
    TEMPORARY_RESIDENCE = "TemporaryResidence"


class ConfirmationStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"


# Portal accounts. Credentials live with the external identity provider.
class User(SQLModel, table=True):
    id: str = Field(primary_key=True, max_length=64)
    email: EmailStr | None = Field(default=None, unique=True, max_length=255)
    full_name: str | None = Field(default=None, max_length=255)
    national_id: str | None = Field(default=None, unique=True, index=True, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    role: str = Field(default=UserRole.CITIZEN.value, max_length=16)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class ServiceType(SQLModel, table=True):
    __tablename__ = "service_type"

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=64)
    name: str = Field(max_length=255)
    description: str = Field(default="", max_length=1000)
    fee: int = Field(default=0)


class ServiceTypePublic(SQLModel):
    id: int
    code: ServiceCode
    name: str
    description: str
    fee: int


class Application(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    citizen_id: str = Field(index=True, max_length=64)
    service_type_id: int = Field(foreign_key="service_type.id", nullable=False)
    content: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    status: str = Field(default=ApplicationStatus.DRAFT.value, max_length=32, index=True)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    current_official_id: str | None = Field(default=None, max_length=64)
    reject_reason: str | None = Field(default=None, max_length=2000)
    supplement_note: str | None = Field(default=None, max_length=2000)

    # Outcome of the record derivation attempted when the application is signed
    derivation_status: str | None = Field(default=None, max_length=16)
    derivation_error: str | None = Field(default=None, max_length=2000)
    derived_record_number: str | None = Field(default=None, max_length=32)

    service_type: ServiceType | None = Relationship()
    history: list["ApplicationHistory"] = Relationship(
        back_populates="application", cascade_delete=True
    )
    attachments: list["Attachment"] = Relationship(
        back_populates="application", cascade_delete=True
    )


class ApplicationPublic(SQLModel):
    id: int
    citizen_id: str
    service_type_id: int
    content: dict[str, Any]
    status: ApplicationStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None
    current_official_id: str | None = None
    reject_reason: str | None = None
    supplement_note: str | None = None
    derivation_status: DerivationStatus | None = None
    derivation_error: str | None = None
    derived_record_number: str | None = None


class ApplicationsPublic(SQLModel):
    data: list[ApplicationPublic]
    count: int


# Append-only: one row per status transition
class ApplicationHistory(SQLModel, table=True):
    __tablename__ = "application_history"

    id: int | None = Field(default=None, primary_key=True)
    application_id: int = Field(
        foreign_key="application.id", nullable=False, ondelete="CASCADE", index=True
    )
    status: str = Field(max_length=32)
    note: str = Field(default="", max_length=2000)
    actor_id: str = Field(max_length=64)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )

    application: Application | None = Relationship(back_populates="history")


class ApplicationHistoryPublic(SQLModel):
    id: int
    application_id: int
    status: ApplicationStatus
    note: str
    actor_id: str
    created_at: datetime | None = None


class ApplicationHistoryListPublic(SQLModel):
    application_id: int
    entries: list[ApplicationHistoryPublic]


class Attachment(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    application_id: int = Field(
        foreign_key="application.id", nullable=False, ondelete="CASCADE", index=True
    )
    filename: str = Field(max_length=255)
    storage_path: str = Field(max_length=1024)
    document_type: str = Field(max_length=80)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )

    application: Application | None = Relationship(back_populates="attachments")


class AttachmentPublic(SQLModel):
    id: int
    application_id: int
    filename: str
    storage_path: str
    document_type: str
    created_at: datetime | None = None


class AttachmentsPublic(SQLModel):
    data: list[AttachmentPublic]
    count: int


class Household(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    household_number: str = Field(unique=True, max_length=32)
    address: str = Field(default="", max_length=500)
    ward: str = Field(default="", max_length=128)
    district: str = Field(default="", max_length=128)
    province: str = Field(default="", max_length=128)
    is_active: bool = True
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Master citizen record shared by every civil-registry record
class Citizen(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    national_id: str = Field(unique=True, index=True, max_length=20)
    full_name: str = Field(default="", max_length=255)
    date_of_birth: date | None = Field(default=None)
    gender: str = Field(default="", max_length=16)
    place_of_birth: str = Field(default="", max_length=255)
    marital_status: str = Field(default=MaritalStatus.SINGLE.value, max_length=16)
    household_id: int | None = Field(default=None, foreign_key="household.id")
    father_id: int | None = Field(default=None, foreign_key="citizen.id")
    mother_id: int | None = Field(default=None, foreign_key="citizen.id")


class CitizenPublic(SQLModel):
    id: int
    national_id: str
    full_name: str
    date_of_birth: date | None = None
    gender: str
    place_of_birth: str
    marital_status: MaritalStatus
    household_id: int | None = None
    father_id: int | None = None
    mother_id: int | None = None


class MarriageRecord(SQLModel, table=True):
    __tablename__ = "marriage_record"

    id: int | None = Field(default=None, primary_key=True)
    registration_number: str = Field(unique=True, max_length=32)
    spouse1_id: int = Field(foreign_key="citizen.id", nullable=False, index=True)
    spouse2_id: int = Field(foreign_key="citizen.id", nullable=False, index=True)
    marriage_date: date
    registration_place: str = Field(default="", max_length=255)
    status: str = Field(default=MarriageStatus.ACTIVE.value, max_length=16)
    divorce_date: date | None = Field(default=None)
    application_id: int | None = Field(default=None, foreign_key="application.id")
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MarriageRecordPublic(SQLModel):
    id: int
    registration_number: str
    spouse1_id: int
    spouse2_id: int
    marriage_date: date
    registration_place: str
    status: MarriageStatus
    application_id: int | None = None


class BirthRecord(SQLModel, table=True):
    __tablename__ = "birth_record"

    id: int | None = Field(default=None, primary_key=True)
    registration_number: str = Field(unique=True, max_length=32)
    generated_citizen_id: str = Field(unique=True, max_length=20)
    child_full_name: str = Field(default="", max_length=255)
    date_of_birth: date
    place_of_birth: str = Field(default="", max_length=255)
    gender: str = Field(default="", max_length=16)
    father_id: int | None = Field(default=None, foreign_key="citizen.id")
    mother_id: int | None = Field(default=None, foreign_key="citizen.id")
    father_national_id: str | None = Field(default=None, max_length=20)
    father_name: str | None = Field(default=None, max_length=255)
    mother_national_id: str | None = Field(default=None, max_length=20)
    mother_name: str | None = Field(default=None, max_length=255)
    parents_marriage_verified: bool = False
    parent_marriage_record_id: int | None = Field(
        default=None, foreign_key="marriage_record.id"
    )
    registration_place: str = Field(default="", max_length=255)
    signed_by_chairman_id: str | None = Field(default=None, max_length=64)
    signed_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    application_id: int | None = Field(default=None, foreign_key="application.id")


class BirthRecordPublic(SQLModel):
    id: int
    registration_number: str
    generated_citizen_id: str
    child_full_name: str
    date_of_birth: date
    gender: str
    father_national_id: str | None = None
    mother_national_id: str | None = None
    parents_marriage_verified: bool
    signed_by_chairman_id: str | None = None
    signed_at: datetime | None = None


class TemporaryResidence(SQLModel, table=True):
    __tablename__ = "temporary_residence"

    id: int | None = Field(default=None, primary_key=True)
    registration_number: str = Field(unique=True, max_length=32)
    citizen_national_id: str = Field(default="", index=True, max_length=20)
    citizen_name: str = Field(default="", max_length=255)
    citizen_phone: str = Field(default="", max_length=32)
    citizen_id: int | None = Field(default=None, foreign_key="citizen.id")
    address: str = Field(default="", max_length=500)
    ward: str = Field(default="", max_length=128)
    district: str = Field(default="", max_length=128)
    province: str = Field(default="", max_length=128)
    start_date: date
    end_date: date
    owner_national_id: str = Field(default="", max_length=20)
    owner_name: str = Field(default="", max_length=255)
    owner_phone: str = Field(default="", max_length=32)
    registration_type: str = Field(default="New", max_length=16)
    status: str = Field(default=ResidenceStatus.ACTIVE.value, max_length=16)
    signed_by_id: str | None = Field(default=None, max_length=64)
    signed_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    application_id: int | None = Field(default=None, foreign_key="application.id")


class TemporaryResidencePublic(SQLModel):
    id: int
    registration_number: str
    citizen_national_id: str
    citizen_name: str
    address: str
    start_date: date
    end_date: date
    owner_national_id: str
    status: ResidenceStatus


class ConfirmationRequest(SQLModel, table=True):
    __tablename__ = "confirmation_request"

    id: int | None = Field(default=None, primary_key=True)
    application_id: int = Field(
        foreign_key="application.id", nullable=False, ondelete="CASCADE", index=True
    )
    requester_id: str = Field(max_length=64)
    target_user_id: str = Field(index=True, max_length=64)
    target_national_id: str = Field(max_length=20)
    request_type: str = Field(max_length=32)
    status: str = Field(default=ConfirmationStatus.PENDING.value, max_length=16)
    reject_reason: str | None = Field(default=None, max_length=1000)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    responded_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class ConfirmationRequestPublic(SQLModel):
    id: int
    application_id: int
    requester_id: str
    target_user_id: str
    target_national_id: str
    request_type: ConfirmationType
    status: ConfirmationStatus
    reject_reason: str | None = None
    created_at: datetime | None = None
    responded_at: datetime | None = None


class ConfirmationRequestsPublic(SQLModel):
    data: list[ConfirmationRequestPublic]
    count: int


class ProcessApplicationRequest(SQLModel):
    next_status: ApplicationStatus
    note: str = Field(default="", max_length=2000)


class SignApplicationRequest(SQLModel):
    note: str | None = Field(default=None, max_length=2000)


class RejectApplicationRequest(SQLModel):
    reason: str = Field(min_length=1, max_length=1000)


class TemporaryResidenceEligibilityRequest(SQLModel):
    applicant_national_id: str = Field(min_length=1, max_length=20)


class EligibilityCheck(SQLModel):
    check_code: str
    check_name: str
    passed: bool
    message: str


class EligibilityReport(SQLModel):
    all_passed: bool
    results: list[EligibilityCheck]


class PersonLookupPublic(SQLModel):
    found: bool
    from_registry: bool = False
    has_account: bool = False
    full_name: str | None = None
    national_id: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    marital_status: str | None = None
    address: str | None = None
    message: str


class ResidenceExpiryPublic(SQLModel):
    expired: int


# Generic message
class Message(SQLModel):
    message: str
