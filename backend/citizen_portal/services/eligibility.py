"""Advisory pre-submission checks for marriage and temporary residence.

The checks are read-only and never block a submission; they give the citizen
and the reviewing official a structured report.
"""

from datetime import date

from sqlalchemy import or_
from sqlmodel import Session, col, select

from citizen_portal.models import (
    Citizen,
    EligibilityCheck,
    EligibilityReport,
    MarriageRecord,
    MarriageStatus,
    ResidenceStatus,
    TemporaryResidence,
)
from citizen_portal.services.forms import MarriageRegistrationForm, is_male
from citizen_portal.services.registry import find_citizen

MIN_MARRIAGE_AGE_MALE = 20
MIN_MARRIAGE_AGE_OTHER = 18


def calculate_age(date_of_birth: date, today: date) -> int:
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def minimum_marriage_age(gender: str | None) -> int:
    return MIN_MARRIAGE_AGE_MALE if is_male(gender) else MIN_MARRIAGE_AGE_OTHER


def has_active_marriage(*, session: Session, citizen: Citizen) -> bool:
    statement = select(MarriageRecord).where(
        or_(
            MarriageRecord.spouse1_id == citizen.id,
            MarriageRecord.spouse2_id == citizen.id,
        ),
        MarriageRecord.status == MarriageStatus.ACTIVE.value,
    )
    return session.exec(statement).first() is not None


def find_active_residence(
    *, session: Session, national_id: str, today: date
) -> TemporaryResidence | None:
    statement = (
        select(TemporaryResidence)
        .where(
            TemporaryResidence.citizen_national_id == national_id,
            TemporaryResidence.status == ResidenceStatus.ACTIVE.value,
            col(TemporaryResidence.end_date) > today,
        )
        .order_by(col(TemporaryResidence.end_date).desc())
    )
    return session.exec(statement).first()


def _build_report(results: list[EligibilityCheck]) -> EligibilityReport:
    return EligibilityReport(
        all_passed=all(result.passed for result in results), results=results
    )


def _age_check(
    *, code: str, name: str, date_of_birth: date | None, gender: str, today: date
) -> EligibilityCheck:
    required = minimum_marriage_age(gender)
    if date_of_birth is None:
        return EligibilityCheck(
            check_code=code,
            check_name=name,
            passed=False,
            message="Date of birth is missing or invalid",
        )
    age = calculate_age(date_of_birth, today)
    if age < required:
        return EligibilityCheck(
            check_code=code,
            check_name=name,
            passed=False,
            message=f"Below the legal marriage age. Required: {required}, current: {age}",
        )
    return EligibilityCheck(
        check_code=code,
        check_name=name,
        passed=True,
        message=f"Meets the legal marriage age ({age} years)",
    )


def _marital_status_check(
    *, session: Session, code: str, name: str, citizen: Citizen | None
) -> EligibilityCheck:
    if citizen is None:
        return EligibilityCheck(
            check_code=code,
            check_name=name,
            passed=True,
            message="No registry record yet (manual verification required)",
        )
    if has_active_marriage(session=session, citizen=citizen):
        return EligibilityCheck(
            check_code=code,
            check_name=name,
            passed=False,
            message="Monogamy violation: an active marriage is already registered",
        )
    return EligibilityCheck(
        check_code=code, check_name=name, passed=True, message="No active marriage"
    )


def _blood_relation_check(
    applicant: Citizen | None, spouse: Citizen | None
) -> EligibilityCheck:
    code, name = "blood_relation", "Blood relation"
    if applicant is None or spouse is None:
        return EligibilityCheck(
            check_code=code,
            check_name=name,
            passed=True,
            message="Not enough registry data for an automatic check",
        )
    relations = []
    if applicant.father_id is not None and applicant.father_id == spouse.father_id:
        relations.append("same father")
    if applicant.mother_id is not None and applicant.mother_id == spouse.mother_id:
        relations.append("same mother")
    if relations:
        return EligibilityCheck(
            check_code=code,
            check_name=name,
            passed=False,
            message=f"Blood relation detected: {', '.join(relations)}",
        )
    return EligibilityCheck(
        check_code=code,
        check_name=name,
        passed=True,
        message="No direct blood relation detected",
    )


def evaluate_marriage_eligibility(
    *, session: Session, form: MarriageRegistrationForm, today: date | None = None
) -> EligibilityReport:
    today = today or date.today()
    applicant = find_citizen(session=session, national_id=form.applicant_national_id)
    spouse = find_citizen(session=session, national_id=form.spouse_national_id)

    results = [
        _age_check(
            code="applicant_age",
            name="Applicant age",
            date_of_birth=form.applicant_dob,
            gender=form.applicant_gender,
            today=today,
        ),
        _age_check(
            code="spouse_age",
            name="Spouse age",
            date_of_birth=form.spouse_dob,
            gender=form.spouse_gender,
            today=today,
        ),
        _marital_status_check(
            session=session,
            code="applicant_marital_status",
            name="Applicant marital status",
            citizen=applicant,
        ),
        _marital_status_check(
            session=session,
            code="spouse_marital_status",
            name="Spouse marital status",
            citizen=spouse,
        ),
        _blood_relation_check(applicant, spouse),
    ]
    return _build_report(results)


def evaluate_temporary_residence_eligibility(
    *, session: Session, applicant_national_id: str, today: date | None = None
) -> EligibilityReport:
    today = today or date.today()
    results = []

    existing = find_active_residence(
        session=session, national_id=applicant_national_id, today=today
    )
    if existing:
        results.append(
            EligibilityCheck(
                check_code="current_temporary_residence",
                check_name="Current temporary residence",
                passed=False,
                message=(
                    f"Active temporary residence registered at: {existing.address}. "
                    "It must be cancelled before registering a new one."
                ),
            )
        )
    else:
        results.append(
            EligibilityCheck(
                check_code="current_temporary_residence",
                check_name="Current temporary residence",
                passed=True,
                message="No active temporary residence",
            )
        )

    # Mock criminal record check; always passes
    results.append(
        EligibilityCheck(
            check_code="criminal_record",
            check_name="Criminal record",
            passed=True,
            message="No criminal record",
        )
    )

    citizen = find_citizen(session=session, national_id=applicant_national_id)
    results.append(
        EligibilityCheck(
            check_code="registry_presence",
            check_name="Citizen record",
            passed=True,
            message=(
                "Registered in the national citizen registry"
                if citizen
                else "Not yet registered in the national citizen registry"
            ),
        )
    )
    return _build_report(results)
