"""
Caller-facing shapes for identities and clinical aggregates.

Projection never re-authorizes.  Absent optional values render as "" or []
so every response has the same keys; statuses render as lower-case tokens.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from medivault.config import TOKEN_TYPE
from medivault.entities import Appointment, Document, Medication, Patient, Prescription, User


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _list(value: Optional[list]) -> list:
    return list(value) if value else []


def user_to_dict(user: User) -> Dict[str, Any]:
    """Public identity fields; the password hash is never included."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.name,
        "specialty": _text(user.specialty),
        "license": _text(user.license),
        "hospital": _text(user.hospital),
        "phone": _text(user.phone),
    }


def auth_response(token: str, user: User) -> Dict[str, Any]:
    return {"token": token, "type": TOKEN_TYPE, **user_to_dict(user)}


def patient_to_dict(patient: Patient) -> Dict[str, Any]:
    return {
        "id": patient.id,
        "name": patient.name,
        "dob": _text(patient.dob),
        "gender": _text(patient.gender),
        "bloodGroup": _text(patient.blood_group),
        "phone": _text(patient.phone),
        "email": _text(patient.email),
        "address": _text(patient.address),
        "insuranceId": _text(patient.insurance_id),
        "allergies": _list(patient.allergies),
        "chronicConditions": _list(patient.chronic_conditions),
        "emergencyContactName": _text(patient.emergency_contact_name),
        "emergencyContactRelation": _text(patient.emergency_contact_relation),
        "emergencyContactPhone": _text(patient.emergency_contact_phone),
    }


SUMMARY_FIELDS = (
    "id", "name", "dob", "gender", "bloodGroup", "allergies", "chronicConditions",
    "emergencyContactName", "emergencyContactRelation", "emergencyContactPhone",
    "phone", "email",
)


def patient_summary(patient: Patient) -> Dict[str, Any]:
    """The subset shown when a doctor scans a patient's QR code."""
    full = patient_to_dict(patient)
    return {key: full[key] for key in SUMMARY_FIELDS}


def appointment_to_dict(appt: Appointment) -> Dict[str, Any]:
    return {
        "id": appt.id,
        "patientId": appt.patient.id,
        "patientName": appt.patient.name,
        "doctorId": appt.doctor.id,
        "doctorName": appt.doctor.name,
        "doctorSpecialty": _text(appt.doctor.specialty),
        "doctorHospital": _text(appt.doctor.hospital),
        "reason": _text(appt.reason),
        "status": appt.status.token,
        "startTime": _text(appt.start_time),
        "endTime": _text(appt.end_time),
        "createdAt": _text(appt.created_at),
        "updatedAt": _text(appt.updated_at),
    }


def medication_to_dict(med: Medication) -> Dict[str, Any]:
    return {
        "name": med.name,
        "dose": _text(med.dose),
        "frequency": _text(med.frequency),
        "duration": _text(med.duration),
        "instructions": _text(med.instructions),
    }


def prescription_to_dict(rx: Prescription) -> Dict[str, Any]:
    # Doctor fields come from the issuance snapshot, not the live profile.
    snapshot = rx.doctor_snapshot
    return {
        "id": rx.id,
        "patientId": rx.patient.id,
        "patientName": rx.patient.name,
        "doctorId": rx.doctor_id,
        "doctorName": _text(snapshot.name),
        "doctorSpecialty": _text(snapshot.specialty),
        "doctorLicense": _text(snapshot.license),
        "doctorHospital": _text(snapshot.hospital),
        "doctorPhone": _text(snapshot.phone),
        "visitReason": _text(rx.visit_reason),
        "symptoms": _text(rx.symptoms),
        "diagnosis": _text(rx.diagnosis),
        "notes": _text(rx.notes),
        "followUp": _text(rx.follow_up),
        "status": rx.status.token,
        "issuedAt": _text(rx.issued_at),
        "medications": [medication_to_dict(m) for m in rx.medications],
        "labTests": _list(rx.lab_tests),
    }


def document_to_dict(doc: Document) -> Dict[str, Any]:
    return {
        "id": doc.id,
        "patientId": doc.patient_id,
        "name": _text(doc.name),
        "type": _text(doc.type),
        "date": _text(doc.document_date),
        "uploadedBy": _text(doc.uploaded_by),
        "size": _text(doc.size),
        "fileUrl": _text(doc.file_url),
    }
