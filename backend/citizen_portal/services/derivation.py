"""Record derivation.

When the chairman signs an application, the civil-registry record it asks
for is materialized from the decoded form content: a birth record, a marriage
record (plus the spouses' citizen records), or a temporary residence.
Dispatch goes through a fixed service-code to handler map; services without
a handler produce no record.

Handlers raise on failure. The caller runs them inside a savepoint and
decides what a failure means for the surrounding transition.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import and_, or_
from sqlmodel import Session, select

from citizen_portal.core.config import settings
from citizen_portal.exceptions import ContentValidationError
from citizen_portal.models import (
    Application,
    BirthRecord,
    Citizen,
    DerivationStatus,
    MarriageRecord,
    MarriageStatus,
    ResidenceStatus,
    ServiceCode,
    ServiceType,
    TemporaryResidence,
)
from citizen_portal.services.forms import (
    BirthRegistrationForm,
    MarriageRegistrationForm,
    ServiceForm,
    TemporaryResidenceForm,
    add_years,
    decode_form,
    is_male,
)
from citizen_portal.services.registry import (
    citizen_defaults,
    find_citizen,
    get_or_create_citizen,
    mark_married,
)

logger = logging.getLogger(__name__)

BIRTH_RECORD_PREFIX = "KS"
MARRIAGE_RECORD_PREFIX = "KH"
TEMPORARY_RESIDENCE_PREFIX = "TT"


@dataclass
class DerivationOutcome:
    status: DerivationStatus
    record_number: str | None = None
    error: str | None = None


def registration_number(prefix: str, year: int, application_id: int) -> str:
    return f"{prefix}-{year}-{application_id:06d}"


def generate_citizen_id(province_code: str, gender: str, year: int) -> str:
    """Province code + gender digit + two-digit year + random six digits.

    Not unique by construction; see ``allocate_citizen_id``.
    """
    gender_code = "0" if is_male(gender) else "1"
    year_code = f"{year % 100:02d}"
    suffix = random.randint(100000, 999999)
    return f"{province_code}{gender_code}{year_code}{suffix}"


def citizen_id_in_use(*, session: Session, citizen_id: str) -> bool:
    if session.exec(
        select(BirthRecord).where(BirthRecord.generated_citizen_id == citizen_id)
    ).first():
        return True
    return find_citizen(session=session, national_id=citizen_id) is not None


def allocate_citizen_id(
    *, session: Session, province_code: str, gender: str, year: int
) -> str:
    for _ in range(settings.CITIZEN_ID_MAX_ATTEMPTS):
        candidate = generate_citizen_id(province_code, gender, year)
        if not citizen_id_in_use(session=session, citizen_id=candidate):
            return candidate
        logger.warning("Generated citizen id %s is already in use; retrying", candidate)
    raise RuntimeError(
        f"Could not allocate a free citizen id after {settings.CITIZEN_ID_MAX_ATTEMPTS} attempts"
    )


def find_active_marriage_between(
    *, session: Session, first: Citizen, second: Citizen
) -> MarriageRecord | None:
    statement = select(MarriageRecord).where(
        or_(
            and_(
                MarriageRecord.spouse1_id == first.id,
                MarriageRecord.spouse2_id == second.id,
            ),
            and_(
                MarriageRecord.spouse1_id == second.id,
                MarriageRecord.spouse2_id == first.id,
            ),
        ),
        MarriageRecord.status == MarriageStatus.ACTIVE.value,
    )
    return session.exec(statement).first()


def derive_birth_record(
    *,
    session: Session,
    application: Application,
    form: BirthRegistrationForm,
    signer_id: str,
    signed_at: datetime,
) -> str:
    number = registration_number(BIRTH_RECORD_PREFIX, signed_at.year, application.id)
    father = find_citizen(session=session, national_id=form.father_national_id)
    mother = find_citizen(session=session, national_id=form.mother_national_id)
    parents_marriage = (
        find_active_marriage_between(session=session, first=father, second=mother)
        if father and mother
        else None
    )

    record = BirthRecord(
        registration_number=number,
        generated_citizen_id=allocate_citizen_id(
            session=session,
            province_code=form.province_code or settings.DEFAULT_PROVINCE_CODE,
            gender=form.gender,
            year=signed_at.year,
        ),
        child_full_name=form.child_full_name,
        date_of_birth=form.date_of_birth or signed_at.date(),
        place_of_birth=form.place_of_birth,
        gender=form.gender,
        father_id=father.id if father else None,
        mother_id=mother.id if mother else None,
        father_national_id=form.father_national_id or None,
        father_name=form.father_name or None,
        mother_national_id=form.mother_national_id or None,
        mother_name=form.mother_name or None,
        parents_marriage_verified=parents_marriage is not None,
        parent_marriage_record_id=parents_marriage.id if parents_marriage else None,
        registration_place=settings.REGISTRATION_PLACE,
        signed_by_chairman_id=signer_id,
        signed_at=signed_at,
        application_id=application.id,
    )
    session.add(record)
    session.flush()
    return number


def derive_marriage_record(
    *,
    session: Session,
    application: Application,
    form: MarriageRegistrationForm,
    signer_id: str,
    signed_at: datetime,
) -> str:
    if not form.applicant_national_id or not form.spouse_national_id:
        raise ContentValidationError("Marriage content must identify both spouses")
    if form.applicant_national_id == form.spouse_national_id:
        raise ContentValidationError("Marriage content names the same person twice")

    spouses = []
    for national_id, name, dob, gender in (
        (
            form.applicant_national_id,
            form.applicant_name,
            form.applicant_dob,
            form.applicant_gender,
        ),
        (form.spouse_national_id, form.spouse_name, form.spouse_dob, form.spouse_gender),
    ):
        citizen, created = get_or_create_citizen(
            session=session,
            national_id=national_id,
            defaults=citizen_defaults(
                full_name=name,
                date_of_birth=dob or signed_at.date(),
                gender=gender,
                married=True,
            ),
        )
        if not created:
            mark_married(session=session, citizen=citizen)
        spouses.append(citizen)

    session.flush()
    number = registration_number(MARRIAGE_RECORD_PREFIX, signed_at.year, application.id)
    record = MarriageRecord(
        registration_number=number,
        spouse1_id=spouses[0].id,
        spouse2_id=spouses[1].id,
        marriage_date=signed_at.date(),
        registration_place=settings.REGISTRATION_PLACE,
        status=MarriageStatus.ACTIVE.value,
        application_id=application.id,
    )
    session.add(record)
    session.flush()
    return number


def derive_temporary_residence(
    *,
    session: Session,
    application: Application,
    form: TemporaryResidenceForm,
    signer_id: str,
    signed_at: datetime,
) -> str:
    start_date: date = form.start_date or signed_at.date()
    latest_end = add_years(start_date, settings.MAX_TEMPORARY_RESIDENCE_YEARS)
    end_date = form.end_date or latest_end
    end_date = min(max(end_date, start_date), latest_end)
    citizen = find_citizen(session=session, national_id=form.applicant_national_id)

    number = registration_number(
        TEMPORARY_RESIDENCE_PREFIX, signed_at.year, application.id
    )
    residence = TemporaryResidence(
        registration_number=number,
        citizen_national_id=form.applicant_national_id,
        citizen_name=form.applicant_name,
        citizen_phone=form.applicant_phone,
        citizen_id=citizen.id if citizen else None,
        address=form.resolved_address(),
        ward=form.ward,
        district=form.district,
        province=form.province,
        start_date=start_date,
        end_date=end_date,
        owner_national_id=form.owner_national_id,
        owner_name=form.owner_name,
        owner_phone=form.owner_phone,
        registration_type=form.registration_type or "New",
        status=ResidenceStatus.ACTIVE.value,
        signed_by_id=signer_id,
        signed_at=signed_at,
        application_id=application.id,
    )
    session.add(residence)
    session.flush()
    return number


DerivationHandler = Callable[..., str]

DERIVATION_HANDLERS: dict[ServiceCode, DerivationHandler] = {
    ServiceCode.BIRTH_REGISTRATION: derive_birth_record,
    ServiceCode.MARRIAGE_REGISTRATION: derive_marriage_record,
    ServiceCode.TEMPORARY_RESIDENCE: derive_temporary_residence,
}

DERIVED_RECORD_MODELS: dict[ServiceCode, type[BirthRecord | MarriageRecord | TemporaryResidence]] = {
    ServiceCode.BIRTH_REGISTRATION: BirthRecord,
    ServiceCode.MARRIAGE_REGISTRATION: MarriageRecord,
    ServiceCode.TEMPORARY_RESIDENCE: TemporaryResidence,
}


def resolve_service_code(service_type: ServiceType | None) -> ServiceCode | None:
    if service_type is None:
        return None
    try:
        return ServiceCode(service_type.code)
    except ValueError:
        return None


def derive_records(
    *, session: Session, application: Application, signer_id: str, signed_at: datetime
) -> DerivationOutcome:
    service_code = resolve_service_code(
        session.get(ServiceType, application.service_type_id)
    )
    handler = DERIVATION_HANDLERS.get(service_code) if service_code else None
    if service_code is None or handler is None:
        logger.info(
            "Application %s has no derivable service type; no record created",
            application.id,
        )
        return DerivationOutcome(status=DerivationStatus.SKIPPED)

    form: ServiceForm = decode_form(service_code, application.content).unwrap()
    number = handler(
        session=session,
        application=application,
        form=form,
        signer_id=signer_id,
        signed_at=signed_at,
    )
    logger.info("Derived %s from application %s", number, application.id)
    return DerivationOutcome(status=DerivationStatus.SUCCEEDED, record_number=number)


def has_derived_record(*, session: Session, application: Application) -> bool:
    service_code = resolve_service_code(
        session.get(ServiceType, application.service_type_id)
    )
    model = DERIVED_RECORD_MODELS.get(service_code) if service_code else None
    if model is None:
        return False
    statement = select(model).where(model.application_id == application.id)
    return session.exec(statement).first() is not None
