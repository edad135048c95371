import logging
import uuid
from pathlib import Path
from typing import Protocol

from sqlmodel import Session

from citizen_portal.exceptions import ContentValidationError, StateConflictError
from citizen_portal.models import TERMINAL_STATUSES, Application, ApplicationStatus, Attachment

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"
ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
}


class BlobStore(Protocol):
    def save(self, name: str, content: bytes) -> str:
        """Persist ``content`` under ``name`` and return its public path."""
        ...


class LocalBlobStore:
    def __init__(self, root: Path) -> None:
        self.root = root

    def save(self, name: str, content: bytes) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(content)
        return f"{PUBLIC_PREFIX}/{name}"


def build_storage_name(application_id: int, filename: str) -> str:
    extension = Path(filename).suffix.lower()
    return f"{application_id}_{uuid.uuid4().hex}{extension}"


def store_attachment(
    *,
    session: Session,
    store: BlobStore,
    application: Application,
    filename: str,
    content: bytes,
    document_type: str,
) -> Attachment:
    if ApplicationStatus(application.status) in TERMINAL_STATUSES:
        raise StateConflictError("Attachments cannot be added to a closed application")
    if not content:
        raise ContentValidationError("Uploaded file is empty")

    safe_name = Path(filename or "attachment").name
    storage_path = store.save(build_storage_name(application.id, safe_name), content)
    attachment = Attachment(
        application_id=application.id,
        filename=safe_name,
        storage_path=storage_path,
        document_type=document_type,
    )
    session.add(attachment)
    session.commit()
    session.refresh(attachment)
    logger.info("Stored %s for application %s at %s", document_type, application.id, storage_path)
    return attachment
