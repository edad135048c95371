"""Citizen registry: master citizen records keyed by national id."""

import logging
from datetime import date
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from citizen_portal.models import (
    Citizen,
    Household,
    MaritalStatus,
    PersonLookupPublic,
    ResidenceStatus,
    TemporaryResidence,
    User,
)
from citizen_portal.services.state_machine import unit_of_work

logger = logging.getLogger(__name__)


def find_citizen(*, session: Session, national_id: str | None) -> Citizen | None:
    if not national_id:
        return None
    return session.exec(select(Citizen).where(Citizen.national_id == national_id)).first()


def find_user_by_national_id(*, session: Session, national_id: str | None) -> User | None:
    if not national_id:
        return None
    return session.exec(select(User).where(User.national_id == national_id)).first()


def get_or_create_citizen(
    *, session: Session, national_id: str, defaults: dict[str, Any] | None = None
) -> tuple[Citizen, bool]:
    """Return ``(citizen, created)``.

    The insert runs in a SAVEPOINT so a concurrent creation of the same
    national id (unique constraint) only rolls back this insert; the row
    committed by the other transaction is then returned instead.
    """
    citizen = find_citizen(session=session, national_id=national_id)
    if citizen:
        return citizen, False

    citizen = Citizen(national_id=national_id, **(defaults or {}))
    try:
        with session.begin_nested():
            session.add(citizen)
    except IntegrityError:
        logger.info(
            "Citizen %s was created concurrently; using the existing record", national_id
        )
        existing = find_citizen(session=session, national_id=national_id)
        if existing is None:
            raise
        return existing, False
    return citizen, True


def mark_married(*, session: Session, citizen: Citizen) -> None:
    citizen.marital_status = MaritalStatus.MARRIED.value
    session.add(citizen)


def lookup_person(*, session: Session, national_id: str) -> PersonLookupPublic:
    """Look a counter-party up by national id.

    The citizen registry is authoritative; portal accounts are the fallback
    for people registered on the portal but not yet in the registry.
    """
    citizen = find_citizen(session=session, national_id=national_id)
    user = find_user_by_national_id(session=session, national_id=national_id)
    if citizen:
        household = (
            session.get(Household, citizen.household_id) if citizen.household_id else None
        )
        return PersonLookupPublic(
            found=True,
            from_registry=True,
            has_account=user is not None,
            full_name=citizen.full_name,
            national_id=citizen.national_id,
            date_of_birth=citizen.date_of_birth,
            gender=citizen.gender,
            marital_status=citizen.marital_status,
            address=household.address if household else None,
            message="Citizen found in the national registry",
        )
    if user:
        return PersonLookupPublic(
            found=True,
            has_account=True,
            full_name=user.full_name,
            national_id=user.national_id,
            address=user.address,
            message="Found from the portal account profile",
        )
    return PersonLookupPublic(
        found=False,
        message="No citizen found; details must be entered manually",
    )


def citizen_defaults(
    *, full_name: str, date_of_birth: date | None, gender: str, married: bool = False
) -> dict[str, Any]:
    defaults: dict[str, Any] = {
        "full_name": full_name,
        "date_of_birth": date_of_birth,
        "gender": gender,
    }
    if married:
        defaults["marital_status"] = MaritalStatus.MARRIED.value
    return defaults


def expire_temporary_residences(*, session: Session, today: date | None = None) -> int:
    """Mark active residences whose end date has passed as expired."""
    today = today or date.today()
    with unit_of_work(session):
        residences = session.exec(
            select(TemporaryResidence).where(
                TemporaryResidence.status == ResidenceStatus.ACTIVE.value,
                col(TemporaryResidence.end_date) < today,
            )
        ).all()
        for residence in residences:
            residence.status = ResidenceStatus.EXPIRED.value
            session.add(residence)
    if residences:
        logger.info("Expired %d temporary residences", len(residences))
    return len(residences)
