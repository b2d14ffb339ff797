"""
Document metadata for patient records.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from medivault.config import DEFAULT_DOCUMENT_SIZE, DOCUMENT_ID_PREFIX
from medivault.entities import Document
from medivault.exceptions import NotFound, ValidationFailed
from medivault.models import AccessContext, new_record_id
from medivault.rbac import resolve_patient


def add_document(session: Session, ctx: AccessContext, data: Optional[Dict[str, Any]]) -> Document:
    """Attach document metadata to a patient record the caller may write to."""
    data = data or {}
    patient_id = data.get("patientId")
    if not patient_id:
        raise ValidationFailed({"patientId": "must not be blank"})

    patient = resolve_patient(session, ctx, str(patient_id))

    doc = Document(
        id=new_record_id(DOCUMENT_ID_PREFIX),
        patient=patient,
        name=data.get("name"),
        type=data.get("type"),
        document_date=date.today(),
        uploaded_by=data.get("uploadedBy"),
        size=data.get("size") or DEFAULT_DOCUMENT_SIZE,
        file_url=data.get("fileUrl"),
    )
    session.add(doc)
    session.flush()
    return doc


def list_for_patient(session: Session, ctx: AccessContext, patient_id: str) -> List[Document]:
    patient = resolve_patient(session, ctx, patient_id)
    stmt = (
        select(Document)
        .where(Document.patient_id == patient.id)
        .order_by(Document.document_date.desc())
    )
    return list(session.scalars(stmt))


def delete_document(session: Session, document_id: str) -> None:
    doc = session.get(Document, document_id)
    if doc is None:
        raise NotFound(f"Document not found: {document_id}")
    session.delete(doc)
    session.flush()
