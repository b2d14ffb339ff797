"""
Administrative operations: identity listing, deletion and system counts.
"""

from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from medivault.entities import Appointment, Document, Patient, Prescription, User
from medivault.exceptions import Conflict, NotFound
from medivault.models import Role


def list_users(session: Session) -> List[User]:
    return list(session.scalars(select(User).order_by(User.id)))


def _count(session: Session, stmt) -> int:
    return session.scalar(stmt) or 0


def delete_user(session: Session, user_id: int) -> None:
    """
    Delete an identity together with its (empty) patient record.

    Identities referenced by prescriptions, appointments or documents are
    kept, since removing them would orphan clinical history.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFound(f"User not found: {user_id}")

    patient = user.patient_profile
    patient_id = patient.id if patient is not None else None

    as_doctor = _count(session, select(func.count(Prescription.id)).where(Prescription.doctor_id == user_id))
    as_doctor += _count(session, select(func.count(Appointment.id)).where(Appointment.doctor_id == user_id))

    as_patient = 0
    if patient_id is not None:
        as_patient += _count(session, select(func.count(Prescription.id)).where(Prescription.patient_id == patient_id))
        as_patient += _count(session, select(func.count(Appointment.id)).where(Appointment.patient_id == patient_id))
        as_patient += _count(session, select(func.count(Document.id)).where(Document.patient_id == patient_id))

    if as_doctor or as_patient:
        raise Conflict(f"User {user_id} has clinical records and cannot be deleted")

    session.delete(user)
    session.flush()


def stats(session: Session) -> Dict[str, int]:
    return {
        "users": _count(session, select(func.count(User.id))),
        "patients": _count(session, select(func.count(Patient.id))),
        "prescriptions": _count(session, select(func.count(Prescription.id))),
        "documents": _count(session, select(func.count(Document.id))),
        "doctors": _count(session, select(func.count(User.id)).where(User.role == Role.DOCTOR)),
    }
