"""
Appointment booking and status updates.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from medivault.config import DEFAULT_APPOINTMENT_REASON
from medivault.entities import Appointment, User
from medivault.exceptions import InvalidFormat, InvalidInput, InvalidRange, InvalidRole, NotFound
from medivault.models import AccessContext, AppointmentStatus, Role
from medivault.rbac import resolve_patient

DATE_FORMAT_HINT = "Invalid date format. Use ISO-8601, e.g. 2026-03-02T10:30"


def parse_local_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 local date-time such as ``2026-03-02T10:30``."""
    if not isinstance(value, str) or "T" not in value:
        raise InvalidFormat(DATE_FORMAT_HINT)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise InvalidFormat(DATE_FORMAT_HINT) from None
    if parsed.tzinfo is not None:
        raise InvalidFormat(DATE_FORMAT_HINT)
    return parsed


def resolve_doctor(session: Session, doctor_id: Any) -> User:
    """Load the referenced identity and insist it has role DOCTOR."""
    try:
        doctor_pk = int(doctor_id)
    except (TypeError, ValueError):
        raise InvalidFormat(f"Invalid doctorId: {doctor_id}") from None

    doctor = session.get(User, doctor_pk)
    if doctor is None:
        raise NotFound(f"Doctor not found: {doctor_pk}")
    if doctor.role is not Role.DOCTOR:
        raise InvalidRole("Selected user is not a doctor")
    return doctor


def create_appointment(session: Session, ctx: AccessContext, data: Optional[Dict[str, Any]]) -> Appointment:
    """
    Book an appointment after checking every referenced fact.

    A PATIENT may only book for their own record; staff may book for anyone.
    The initial status is always REQUESTED, whatever the request says.
    """
    data = data or {}
    patient_id = data.get("patientId")
    doctor_id = data.get("doctorId")
    start_raw = data.get("startTime")
    if not patient_id or doctor_id in (None, "") or not start_raw:
        raise InvalidInput("patientId, doctorId and startTime are required")

    patient = resolve_patient(session, ctx, str(patient_id))
    doctor = resolve_doctor(session, doctor_id)

    start = parse_local_datetime(start_raw)
    end_raw = data.get("endTime")
    end = parse_local_datetime(end_raw) if end_raw else None
    if end is not None and end < start:
        raise InvalidRange("End time cannot be before start time")

    appt = Appointment(
        patient=patient,
        doctor=doctor,
        start_time=start,
        end_time=end,
        reason=data.get("reason") or DEFAULT_APPOINTMENT_REASON,
        status=AppointmentStatus.REQUESTED,
    )
    session.add(appt)
    session.flush()
    return appt


def list_for_patient(session: Session, ctx: AccessContext, patient_id: str) -> List[Appointment]:
    patient = resolve_patient(session, ctx, patient_id)
    stmt = (
        select(Appointment)
        .where(Appointment.patient_id == patient.id)
        .order_by(Appointment.start_time.desc())
    )
    return list(session.scalars(stmt))


def list_for_doctor(
    session: Session,
    doctor_id: int,
    start_from: Optional[str] = None,
    start_to: Optional[str] = None,
) -> List[Appointment]:
    """A doctor's schedule, earliest first, optionally inside an inclusive window."""
    stmt = select(Appointment).where(Appointment.doctor_id == doctor_id)
    if start_from:
        stmt = stmt.where(Appointment.start_time >= parse_local_datetime(start_from))
    if start_to:
        stmt = stmt.where(Appointment.start_time <= parse_local_datetime(start_to))
    return list(session.scalars(stmt.order_by(Appointment.start_time.asc())))


def update_status(session: Session, appointment_id: int, status: Any) -> Appointment:
    """Set any known status.  There is no transition table."""
    appt = session.get(Appointment, appointment_id)
    if appt is None:
        raise NotFound(f"Appointment not found: {appointment_id}")
    appt.status = AppointmentStatus.parse(status)
    session.flush()
    return appt
