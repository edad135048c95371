"""Form content codec.

Every application stores its form as a JSON document whose keys follow the
portal's PascalCase wire format (``ChildFullName``, ``ApplicantCCCD`` ...).
Each service type has a typed schema here. Decoding is lenient: absent or
malformed optional values become ``""`` or ``None`` so that downstream
consumers (record derivation, eligibility checks) can apply their own
fallbacks. Only content that is not a JSON object fails to decode.

Submission is stricter: ``validate_for_submission`` rejects forms missing the
fields a service cannot be processed without.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_pascal

from citizen_portal.core.config import settings
from citizen_portal.exceptions import ContentValidationError
from citizen_portal.models import ConfirmationType, ServiceCode

logger = logging.getLogger(__name__)

GENDER_MALE = "Nam"
GENDER_FEMALE = "Nữ"

_DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")


def is_male(gender: str | None) -> bool:
    return (gender or "").strip() == GENDER_MALE


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def parse_form_date(value: Any) -> date | None:
    """Best-effort date parsing; returns None for anything unrecognised."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


LenientText = Annotated[str, BeforeValidator(_coerce_text)]
LenientDate = Annotated[date | None, BeforeValidator(parse_form_date)]


class ServiceForm(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    SERVICE_CODE: ClassVar[ServiceCode]
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ()
    CONFIRMATION_TYPE: ClassVar[ConfirmationType | None] = None

    def counterparty_national_id(self) -> str | None:
        """National id of the party who must confirm this form, if any."""
        return None

    def counterparty_name(self) -> str:
        return ""

    def submission_errors(self) -> list[dict[str, Any]]:
        errors = []
        for name in self.REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or value == "":
                alias = type(self).model_fields[name].alias or name
                errors.append({"loc": [alias], "msg": "Field required", "type": "missing"})
        return errors

    def validate_for_submission(self) -> None:
        errors = self.submission_errors()
        if errors:
            fields = ", ".join(str(error["loc"][0]) for error in errors)
            raise ContentValidationError(
                f"Form content is incomplete: {fields}", errors=errors
            )


class BirthRegistrationForm(ServiceForm):
    SERVICE_CODE: ClassVar[ServiceCode] = ServiceCode.BIRTH_REGISTRATION
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("child_full_name", "date_of_birth", "gender")

    child_full_name: LenientText = ""
    date_of_birth: LenientDate = None
    place_of_birth: LenientText = ""
    gender: LenientText = ""
    father_name: LenientText = ""
    father_national_id: LenientText = Field(default="", alias="FatherCCCD")
    mother_name: LenientText = ""
    mother_national_id: LenientText = Field(default="", alias="MotherCCCD")
    province_code: LenientText = ""


class MarriageRegistrationForm(ServiceForm):
    SERVICE_CODE: ClassVar[ServiceCode] = ServiceCode.MARRIAGE_REGISTRATION
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "applicant_name",
        "applicant_national_id",
        "applicant_dob",
        "spouse_name",
        "spouse_national_id",
        "spouse_dob",
    )
    CONFIRMATION_TYPE: ClassVar[ConfirmationType | None] = ConfirmationType.MARRIAGE

    applicant_name: LenientText = ""
    applicant_national_id: LenientText = Field(default="", alias="ApplicantCCCD")
    applicant_dob: LenientDate = Field(default=None, alias="ApplicantDOB")
    applicant_gender: LenientText = ""
    applicant_address: LenientText = ""
    spouse_name: LenientText = ""
    spouse_national_id: LenientText = Field(default="", alias="SpouseCCCD")
    spouse_dob: LenientDate = Field(default=None, alias="SpouseDOB")
    spouse_gender: LenientText = ""
    spouse_address: LenientText = ""

    def counterparty_national_id(self) -> str | None:
        return self.spouse_national_id or None

    def counterparty_name(self) -> str:
        return self.spouse_name

    def submission_errors(self) -> list[dict[str, Any]]:
        errors = super().submission_errors()
        if (
            self.applicant_national_id
            and self.applicant_national_id == self.spouse_national_id
        ):
            errors.append(
                {
                    "loc": ["SpouseCCCD"],
                    "msg": "Spouse national id must differ from the applicant's",
                    "type": "value_error",
                }
            )
        return errors


class TemporaryResidenceForm(ServiceForm):
    SERVICE_CODE: ClassVar[ServiceCode] = ServiceCode.TEMPORARY_RESIDENCE
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "applicant_name",
        "applicant_national_id",
        "start_date",
        "owner_national_id",
    )
    CONFIRMATION_TYPE: ClassVar[ConfirmationType | None] = ConfirmationType.TEMPORARY_RESIDENCE

    registration_type: LenientText = "New"
    applicant_name: LenientText = ""
    applicant_national_id: LenientText = Field(default="", alias="ApplicantCCCD")
    applicant_phone: LenientText = ""
    province: LenientText = ""
    district: LenientText = ""
    ward: LenientText = ""
    address_detail: LenientText = ""
    full_address: LenientText = ""
    start_date: LenientDate = None
    end_date: LenientDate = None
    owner_name: LenientText = ""
    owner_national_id: LenientText = Field(default="", alias="OwnerCCCD")
    owner_phone: LenientText = ""

    def resolved_address(self) -> str:
        if self.full_address:
            return self.full_address
        parts = [self.address_detail, self.ward, self.district, self.province]
        return ", ".join(part for part in parts if part)

    def counterparty_national_id(self) -> str | None:
        return self.owner_national_id or None

    def counterparty_name(self) -> str:
        return self.owner_name

    def submission_errors(self) -> list[dict[str, Any]]:
        errors = super().submission_errors()
        max_years = settings.MAX_TEMPORARY_RESIDENCE_YEARS
        if self.start_date and self.end_date:
            if self.end_date < self.start_date:
                errors.append(
                    {
                        "loc": ["EndDate"],
                        "msg": "End date must not precede the start date",
                        "type": "value_error",
                    }
                )
            elif self.end_date > add_years(self.start_date, max_years):
                errors.append(
                    {
                        "loc": ["EndDate"],
                        "msg": f"Temporary residence may not exceed {max_years} years",
                        "type": "value_error",
                    }
                )
        return errors


class ResidentRegistrationForm(ServiceForm):
    SERVICE_CODE: ClassVar[ServiceCode] = ServiceCode.RESIDENT_REGISTRATION
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("full_name", "national_id", "address")

    full_name: LenientText = ""
    date_of_birth: LenientDate = Field(default=None, alias="DOB")
    gender: LenientText = ""
    national_id: LenientText = Field(default="", alias="CCCD")
    address: LenientText = ""
    relationship: LenientText = ""
    household_owner: LenientText = ""


FORM_SCHEMAS: dict[ServiceCode, type[ServiceForm]] = {
    schema.SERVICE_CODE: schema
    for schema in (
        BirthRegistrationForm,
        MarriageRegistrationForm,
        TemporaryResidenceForm,
        ResidentRegistrationForm,
    )
}


def add_years(value: date, years: int) -> date:
    if value.year + years > date.max.year:
        return date.max
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 February
        return value.replace(year=value.year + years, day=28)


@dataclass
class FormDecodeResult:
    service_code: ServiceCode
    form: ServiceForm | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.form is not None

    def unwrap(self) -> ServiceForm:
        if self.form is None:
            raise ContentValidationError(
                f"Invalid {self.service_code.value} content", errors=self.errors
            )
        return self.form


def encode_form(form: ServiceForm) -> dict[str, Any]:
    return form.model_dump(mode="json", by_alias=True)


def decode_form(service_code: ServiceCode, content: Any) -> FormDecodeResult:
    schema = FORM_SCHEMAS[service_code]
    if isinstance(content, str | bytes):
        try:
            content = json.loads(content)
        except ValueError as exc:
            return FormDecodeResult(
                service_code=service_code,
                errors=[{"loc": [], "msg": f"Content is not valid JSON: {exc}", "type": "json_invalid"}],
            )
    if not isinstance(content, dict):
        return FormDecodeResult(
            service_code=service_code,
            errors=[{"loc": [], "msg": "Content must be a JSON object", "type": "dict_type"}],
        )
    try:
        form = schema.model_validate(content)
    except ValidationError as exc:
        logger.debug("Failed to decode %s content: %s", service_code.value, exc)
        return FormDecodeResult(
            service_code=service_code, errors=exc.errors(include_url=False, include_context=False)
        )
    return FormDecodeResult(service_code=service_code, form=form)
