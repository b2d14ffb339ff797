"""
Role-Based Access Control – per-operation allow-sets and ownership checks.

Every operation names its own set of allowed roles.  ADMIN is not a
superset of anything unless an operation lists it explicitly.
"""

from typing import FrozenSet, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from medivault.entities import Patient
from medivault.exceptions import Forbidden, NotFound
from medivault.models import AccessContext, Role

PATIENT, DOCTOR, ADMIN = Role.PATIENT, Role.DOCTOR, Role.ADMIN

ANY_ROLE = frozenset({PATIENT, DOCTOR, ADMIN})
STAFF = frozenset({DOCTOR, ADMIN})
ADMIN_ONLY = frozenset({ADMIN})

OPERATION_ROLES = {
    "profile.read": ANY_ROLE,
    "patient.list": STAFF,
    "patient.create": ADMIN_ONLY,
    "patient.read": ANY_ROLE,
    "patient.summary": STAFF,
    "appointment.create": ANY_ROLE,
    "appointment.list_patient": ANY_ROLE,
    "appointment.list_doctor": STAFF,
    "appointment.update_status": STAFF,
    "prescription.create": STAFF,
    "prescription.read": ANY_ROLE,
    "prescription.list_patient": ANY_ROLE,
    "prescription.list_doctor": STAFF,
    "prescription.update_status": STAFF,
    "document.list_patient": ANY_ROLE,
    "document.create": ANY_ROLE,
    "document.delete": ADMIN_ONLY,
    "user.list": ADMIN_ONLY,
    "user.delete": ADMIN_ONLY,
    "stats.read": ADMIN_ONLY,
}


def authorize(role: Role, required_roles: Iterable[Role]) -> bool:
    """Allow iff ``role`` is a member of ``required_roles``."""
    return role in frozenset(required_roles)


def required_roles(operation: str) -> FrozenSet[Role]:
    try:
        return OPERATION_ROLES[operation]
    except KeyError:
        raise ValueError(f"Unknown operation: {operation}") from None


def check_operation(ctx: AccessContext, operation: str) -> None:
    """Raise Forbidden unless the caller's role may perform ``operation``."""
    if not authorize(ctx.role, required_roles(operation)):
        raise Forbidden()


# ── Ownership ────────────────────────────────────────────────────────

def owned_patient(session: Session, ctx: AccessContext) -> Optional[Patient]:
    """The PatientRecord owned by the caller, if any."""
    return session.scalar(select(Patient).where(Patient.user_id == ctx.user_id))


def resolve_patient(session: Session, ctx: AccessContext, patient_id: str) -> Patient:
    """
    Load a PatientRecord for an operation scoped to it.

    PATIENT callers are checked against their own record before anything
    else, so asking for someone else's id is Forbidden whether or not that
    id exists.  Staff get NotFound for unknown ids.
    """
    if ctx.is_patient:
        own = owned_patient(session, ctx)
        if own is None or own.id != patient_id:
            raise Forbidden()
        return own

    patient = session.get(Patient, patient_id)
    if patient is None:
        raise NotFound(f"Patient not found: {patient_id}")
    return patient


def ensure_owner(ctx: AccessContext, patient: Patient) -> None:
    """Ownership check for a record that has already been resolved."""
    if ctx.is_patient and patient.user_id != ctx.user_id:
        raise Forbidden()
