from typing import Any

from fastapi import APIRouter, Body, File, Form, HTTPException, UploadFile
from sqlmodel import Session, col, func, select

from citizen_portal.api.deps import OFFICIAL_ROLES, BlobStoreDep, CurrentActor, SessionDep
from citizen_portal.models import (
    Application,
    ApplicationHistoryListPublic,
    ApplicationPublic,
    ApplicationsPublic,
    Attachment,
    AttachmentPublic,
    AttachmentsPublic,
    ServiceCode,
    ServiceType,
    ServiceTypePublic,
    User,
)
from citizen_portal.services import lifecycle
from citizen_portal.services.derivation import resolve_service_code
from citizen_portal.services.forms import ServiceForm, decode_form
from citizen_portal.services.storage import ALLOWED_CONTENT_TYPES, store_attachment

router = APIRouter(prefix="/applications", tags=["applications"])


def get_visible_application(
    *, session: Session, actor_id: str, application_id: int
) -> Application:
    application = lifecycle.get_application(session=session, application_id=application_id)
    if application.citizen_id == actor_id:
        return application
    user = session.get(User, actor_id)
    if not user or user.role not in OFFICIAL_ROLES:
        raise HTTPException(status_code=403, detail="Not enough permissions")
    return application


def parse_form(service_code: ServiceCode, content: dict[str, Any]) -> ServiceForm:
    return decode_form(service_code, content).unwrap()


@router.get("/service-types", response_model=list[ServiceTypePublic])
def read_service_types(session: SessionDep) -> Any:
    return session.exec(select(ServiceType).order_by(col(ServiceType.id))).all()


@router.get("/", response_model=ApplicationsPublic)
def read_applications(
    session: SessionDep, actor_id: CurrentActor, skip: int = 0, limit: int = 100
) -> Any:
    applications, count = lifecycle.list_citizen_applications(
        session=session, citizen_id=actor_id, skip=skip, limit=limit
    )
    return ApplicationsPublic(data=applications, count=count)


@router.post("/{service_code}", response_model=ApplicationPublic)
def submit_application(
    *,
    session: SessionDep,
    actor_id: CurrentActor,
    service_code: ServiceCode,
    content: dict[str, Any] = Body(...),
) -> Any:
    form = parse_form(service_code, content)
    return lifecycle.submit_application(session=session, citizen_id=actor_id, form=form)


@router.post("/{service_code}/drafts", response_model=ApplicationPublic)
def create_draft(
    *,
    session: SessionDep,
    actor_id: CurrentActor,
    service_code: ServiceCode,
    content: dict[str, Any] = Body(...),
) -> Any:
    form = parse_form(service_code, content)
    return lifecycle.create_draft(session=session, citizen_id=actor_id, form=form)


@router.put("/{application_id}", response_model=ApplicationPublic)
def update_draft(
    *,
    session: SessionDep,
    actor_id: CurrentActor,
    application_id: int,
    content: dict[str, Any] = Body(...),
) -> Any:
    application = lifecycle.get_owned_application(
        session=session, application_id=application_id, citizen_id=actor_id
    )
    service_code = resolve_service_code(application.service_type)
    if service_code is None:
        raise HTTPException(status_code=409, detail="Application has an unknown service type")
    return lifecycle.update_draft(
        session=session,
        application_id=application_id,
        citizen_id=actor_id,
        form=parse_form(service_code, content),
    )


@router.post("/{application_id}/submit", response_model=ApplicationPublic)
def submit_draft(
    session: SessionDep, actor_id: CurrentActor, application_id: int
) -> Any:
    return lifecycle.submit_draft(
        session=session, application_id=application_id, citizen_id=actor_id
    )


@router.get("/{application_id}", response_model=ApplicationPublic)
def read_application(
    session: SessionDep, actor_id: CurrentActor, application_id: int
) -> Any:
    return get_visible_application(
        session=session, actor_id=actor_id, application_id=application_id
    )


@router.get("/{application_id}/history", response_model=ApplicationHistoryListPublic)
def read_application_history(
    session: SessionDep, actor_id: CurrentActor, application_id: int
) -> Any:
    get_visible_application(
        session=session, actor_id=actor_id, application_id=application_id
    )
    entries = lifecycle.get_application_history(
        session=session, application_id=application_id
    )
    return ApplicationHistoryListPublic(application_id=application_id, entries=entries)


@router.post("/{application_id}/attachments", response_model=AttachmentPublic)
async def upload_attachment(
    *,
    session: SessionDep,
    actor_id: CurrentActor,
    store: BlobStoreDep,
    application_id: int,
    file: UploadFile = File(...),
    document_type: str = Form(...),
) -> Any:
    application = lifecycle.get_owned_application(
        session=session, application_id=application_id, citizen_id=actor_id
    )
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type. Allowed: PDF, JPEG, PNG, WEBP",
        )
    content = await file.read()
    return store_attachment(
        session=session,
        store=store,
        application=application,
        filename=file.filename or "attachment",
        content=content,
        document_type=document_type,
    )


@router.get("/{application_id}/attachments", response_model=AttachmentsPublic)
def read_attachments(
    session: SessionDep, actor_id: CurrentActor, application_id: int
) -> Any:
    get_visible_application(
        session=session, actor_id=actor_id, application_id=application_id
    )
    count = session.exec(
        select(func.count())
        .select_from(Attachment)
        .where(Attachment.application_id == application_id)
    ).one()
    attachments = session.exec(
        select(Attachment)
        .where(Attachment.application_id == application_id)
        .order_by(col(Attachment.created_at))
    ).all()
    return AttachmentsPublic(data=attachments, count=count)
