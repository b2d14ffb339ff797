"""
Patient records: lookup and creation.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from medivault.entities import Patient, User
from medivault.exceptions import Conflict, Forbidden, InvalidFormat, InvalidRole, NotFound, require_fields
from medivault.models import AccessContext, Role
from medivault.rbac import resolve_patient


def list_patients(session: Session) -> List[Patient]:
    return list(session.scalars(select(Patient).order_by(Patient.id)))


def get_patient(session: Session, ctx: AccessContext, patient_id: str) -> Patient:
    return resolve_patient(session, ctx, patient_id)


def get_by_user(session: Session, ctx: AccessContext, user_id: int) -> Patient:
    """Look a record up by its owning identity; patients may only ask about themselves."""
    if ctx.is_patient and ctx.user_id != user_id:
        raise Forbidden()
    patient = session.scalar(select(Patient).where(Patient.user_id == user_id))
    if patient is None:
        if ctx.is_patient:
            raise Forbidden()
        raise NotFound(f"Patient not found for user: {user_id}")
    return patient


def _parse_date(value: Any, field: str) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidFormat(f"Invalid {field}. Use ISO-8601, e.g. 1990-05-17") from None


def _string_list(value: Any, field: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidFormat(f"{field} must be a list")
    return [str(v) for v in value]


def create_patient(session: Session, data: Optional[Dict[str, Any]]) -> Patient:
    """
    Create a PatientRecord with a business-assigned id, bound one-to-one to
    an existing PATIENT identity.
    """
    require_fields(data, "id", "userId", "name")
    patient_id = str(data["id"]).strip()
    try:
        user_id = int(data["userId"])
    except (TypeError, ValueError):
        raise InvalidFormat(f"Invalid userId: {data['userId']}") from None

    if session.get(Patient, patient_id) is not None:
        raise Conflict(f"Patient id already exists: {patient_id}")

    user = session.get(User, user_id)
    if user is None:
        raise NotFound(f"User not found: {user_id}")
    if user.role is not Role.PATIENT:
        raise InvalidRole("Selected user is not a patient")
    if user.patient_profile is not None:
        raise Conflict(f"User {user_id} already owns patient record {user.patient_profile.id}")

    patient = Patient(
        id=patient_id,
        user=user,
        name=str(data["name"]).strip(),
        dob=_parse_date(data.get("dob"), "dob"),
        gender=data.get("gender"),
        blood_group=data.get("bloodGroup"),
        phone=data.get("phone"),
        email=data.get("email"),
        address=data.get("address"),
        insurance_id=data.get("insuranceId"),
        allergies=_string_list(data.get("allergies"), "allergies"),
        chronic_conditions=_string_list(data.get("chronicConditions"), "chronicConditions"),
        emergency_contact_name=data.get("emergencyContactName"),
        emergency_contact_relation=data.get("emergencyContactRelation"),
        emergency_contact_phone=data.get("emergencyContactPhone"),
    )
    session.add(patient)
    try:
        session.flush()
    except IntegrityError:
        raise Conflict(f"Patient record already exists: {patient_id} (user {user_id})") from None
    return patient
