"""
Prescription issuance and status updates.

A prescription and its medication lines are one aggregate: the whole
request is validated before anything is added to the session, and the
surrounding unit of work commits parent and children together.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from medivault.config import PRESCRIPTION_ID_PREFIX
from medivault.entities import Medication, Prescription, User
from medivault.exceptions import Forbidden, NotFound, ValidationFailed
from medivault.models import AccessContext, DoctorSnapshot, PrescriptionStatus, new_record_id
from medivault.rbac import ensure_owner, resolve_patient

MEDICATION_FIELDS = ("dose", "frequency", "duration", "instructions")


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def build_medications(items: Any) -> List[Medication]:
    """Validate and build ordered medication lines; one bad line rejects them all."""
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValidationFailed({"medications": "must be a list"})

    errors = {}
    lines = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"medications[{position}]"] = "must be an object"
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            errors[f"medications[{position}].name"] = "must not be blank"
            continue
        lines.append(Medication(
            position=position,
            name=name.strip(),
            **{field: _optional_text(item.get(field)) for field in MEDICATION_FIELDS},
        ))

    if errors:
        raise ValidationFailed(errors)
    return lines


def _lab_tests(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise ValidationFailed({"labTests": "must be a list of strings"})
    return list(value)


def create_prescription(session: Session, ctx: AccessContext, data: Optional[Dict[str, Any]]) -> Prescription:
    """
    Issue a prescription on behalf of the authenticated caller.

    The issuing doctor is always the caller; there is no doctorId in the
    request.  The doctor's profile is copied into the aggregate now and is
    never refreshed.
    """
    data = data or {}
    patient_id = data.get("patientId")
    if not patient_id:
        raise ValidationFailed({"patientId": "must not be blank"})

    patient = resolve_patient(session, ctx, str(patient_id))
    doctor = session.get(User, ctx.user_id)
    if doctor is None:
        raise NotFound("Doctor not found")

    diagnosis = data.get("diagnosis")
    if not isinstance(diagnosis, str) or not diagnosis.strip():
        raise ValidationFailed({"diagnosis": "must not be blank"})

    medications = build_medications(data.get("medications"))
    lab_tests = _lab_tests(data.get("labTests"))

    rx = Prescription(
        id=new_record_id(PRESCRIPTION_ID_PREFIX),
        patient=patient,
        doctor=doctor,
        doctor_snapshot=DoctorSnapshot.of(doctor),
        visit_reason=_optional_text(data.get("visitReason")),
        symptoms=_optional_text(data.get("symptoms")),
        diagnosis=diagnosis.strip(),
        notes=_optional_text(data.get("notes")),
        follow_up=_optional_text(data.get("followUp")),
        lab_tests=lab_tests,
        status=PrescriptionStatus.ACTIVE,
        medications=medications,
    )
    session.add(rx)
    session.flush()
    return rx


def get_prescription(session: Session, ctx: AccessContext, prescription_id: str) -> Prescription:
    rx = session.get(Prescription, prescription_id)
    if ctx.is_patient:
        # Unknown and foreign ids look the same to a patient.
        if rx is None:
            raise Forbidden()
        ensure_owner(ctx, rx.patient)
    elif rx is None:
        raise NotFound(f"Prescription not found: {prescription_id}")
    return rx


def list_for_patient(session: Session, ctx: AccessContext, patient_id: str) -> List[Prescription]:
    patient = resolve_patient(session, ctx, patient_id)
    stmt = (
        select(Prescription)
        .where(Prescription.patient_id == patient.id)
        .order_by(Prescription.issued_at.desc())
    )
    return list(session.scalars(stmt))


def list_for_doctor(session: Session, doctor_id: int) -> List[Prescription]:
    stmt = (
        select(Prescription)
        .where(Prescription.doctor_id == doctor_id)
        .order_by(Prescription.issued_at.desc())
    )
    return list(session.scalars(stmt))


def update_status(session: Session, prescription_id: str, status: Any) -> Prescription:
    """Set any known status.  There is no transition table."""
    rx = session.get(Prescription, prescription_id)
    if rx is None:
        raise NotFound(f"Prescription not found: {prescription_id}")
    rx.status = PrescriptionStatus.parse(status)
    session.flush()
    return rx
