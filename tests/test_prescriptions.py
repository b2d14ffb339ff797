"""
Unit tests for prescription issuance, snapshots and atomicity.
"""

import pytest
from sqlalchemy import func, select

from medivault.database import unit_of_work
from medivault.entities import Medication, Prescription, User
from medivault.exceptions import Forbidden, NotFound, ValidationFailed, InvalidStatus
from medivault.models import PrescriptionStatus
from medivault.prescriptions import (
    build_medications,
    create_prescription,
    get_prescription,
    list_for_doctor,
    list_for_patient,
    update_status,
)

TWO_LINES = [
    {"name": "Amoxicillin", "dose": "500 mg", "frequency": "3x daily", "duration": "7 days"},
    {"name": "Ibuprofen", "dose": "200 mg", "instructions": "after meals"},
]


def rx_body(**overrides):
    body = {
        "patientId": "P001",
        "visitReason": "Sore throat",
        "diagnosis": "Strep throat",
        "medications": TWO_LINES,
        "labTests": ["CBC", "Throat culture"],
    }
    body.update(overrides)
    return body


def counts(session_factory):
    with unit_of_work(session_factory) as s:
        return (
            s.scalar(select(func.count(Prescription.id))),
            s.scalar(select(func.count(Medication.id))),
        )


# ── Tests: build_medications ─────────────────────────────────────────

def test_build_medications_keeps_order_and_positions():
    lines = build_medications(TWO_LINES)
    assert [m.name for m in lines] == ["Amoxicillin", "Ibuprofen"]
    assert [m.position for m in lines] == [0, 1]
    assert lines[1].frequency is None


def test_build_medications_reports_every_bad_line():
    with pytest.raises(ValidationFailed) as e:
        build_medications([{"name": "ok"}, {"dose": "1"}, "nope"])
    assert set(e.value.fields) == {"medications[1].name", "medications[2]"}


# ── Tests: create_prescription ───────────────────────────────────────

def test_doctor_issues_prescription(clinic, session):
    rx = create_prescription(session, clinic.ctx["house"], rx_body())
    assert rx.id.startswith("RX")
    assert rx.status is PrescriptionStatus.ACTIVE
    assert rx.doctor_id == clinic.house
    assert rx.issued_at is not None
    assert [m.name for m in rx.medications] == ["Amoxicillin", "Ibuprofen"]
    assert rx.lab_tests == ["CBC", "Throat culture"]


def test_issuer_is_the_caller_not_the_request(clinic, session):
    rx = create_prescription(session, clinic.ctx["house"], rx_body(doctorId=clinic.wilson, status="cancelled"))
    assert rx.doctor_id == clinic.house
    assert rx.doctor_snapshot.name == "Dr. House"
    assert rx.status is PrescriptionStatus.ACTIVE


def test_snapshot_survives_profile_changes(clinic, session_factory):
    with unit_of_work(session_factory) as s:
        rx_id = create_prescription(s, clinic.ctx["house"], rx_body()).id

    with unit_of_work(session_factory) as s:
        house = s.get(User, clinic.house)
        house.name = "Dr. Gregory House"
        house.specialty = "Nephrology"
        house.phone = "555-9999"

    with unit_of_work(session_factory) as s:
        rx = s.get(Prescription, rx_id)
        snap = rx.doctor_snapshot
        assert snap.name == "Dr. House"
        assert snap.specialty == "Diagnostics"
        assert snap.license == "LIC-42"
        assert snap.hospital == "Princeton-Plainsboro"
        assert snap.phone == "555-0100"


def test_invalid_medication_line_persists_nothing(clinic, session_factory):
    bad = rx_body(medications=[TWO_LINES[0], {"name": "  ", "dose": "1 mg"}])
    with pytest.raises(ValidationFailed):
        with unit_of_work(session_factory) as s:
            create_prescription(s, clinic.ctx["house"], bad)
    assert counts(session_factory) == (0, 0)


def test_missing_diagnosis_persists_nothing(clinic, session_factory):
    with pytest.raises(ValidationFailed) as e:
        with unit_of_work(session_factory) as s:
            create_prescription(s, clinic.ctx["house"], rx_body(diagnosis=None))
    assert "diagnosis" in e.value.fields
    assert counts(session_factory) == (0, 0)


def test_successful_issue_persists_parent_and_children(clinic, session_factory):
    with unit_of_work(session_factory) as s:
        create_prescription(s, clinic.ctx["house"], rx_body())
    assert counts(session_factory) == (1, 2)


def test_unknown_patient(clinic, session):
    with pytest.raises(NotFound, match="Patient not found"):
        create_prescription(session, clinic.ctx["house"], rx_body(patientId="P404"))


def test_lab_tests_must_be_strings(clinic, session):
    with pytest.raises(ValidationFailed):
        create_prescription(session, clinic.ctx["house"], rx_body(labTests=[1, 2]))


def test_ids_are_unique_per_call(clinic, session):
    ids = {create_prescription(session, clinic.ctx["house"], rx_body()).id for _ in range(5)}
    assert len(ids) == 5


# ── Tests: reads ─────────────────────────────────────────────────────

def test_patient_reads_only_own_prescriptions(clinic, session):
    mine = create_prescription(session, clinic.ctx["house"], rx_body())
    theirs = create_prescription(session, clinic.ctx["house"], rx_body(patientId="P002"))

    assert get_prescription(session, clinic.ctx["alice"], mine.id).id == mine.id
    with pytest.raises(Forbidden):
        get_prescription(session, clinic.ctx["alice"], theirs.id)
    with pytest.raises(Forbidden):
        get_prescription(session, clinic.ctx["alice"], "RX-does-not-exist")
    with pytest.raises(NotFound):
        get_prescription(session, clinic.ctx["wilson"], "RX-does-not-exist")

    assert [rx.id for rx in list_for_patient(session, clinic.ctx["alice"], "P001")] == [mine.id]
    with pytest.raises(Forbidden):
        list_for_patient(session, clinic.ctx["alice"], "P002")


def test_list_for_doctor(clinic, session):
    create_prescription(session, clinic.ctx["house"], rx_body())
    create_prescription(session, clinic.ctx["wilson"], rx_body(patientId="P002"))
    assert [rx.patient_id for rx in list_for_doctor(session, clinic.wilson)] == ["P002"]


# ── Tests: update_status ─────────────────────────────────────────────

def test_status_updates_are_unconditional(clinic, session):
    rx = create_prescription(session, clinic.ctx["house"], rx_body())
    assert update_status(session, rx.id, "cancelled").status is PrescriptionStatus.CANCELLED
    assert update_status(session, rx.id, "ACTIVE").status is PrescriptionStatus.ACTIVE
    assert update_status(session, rx.id, "Completed").status is PrescriptionStatus.COMPLETED


def test_status_update_errors(clinic, session):
    rx = create_prescription(session, clinic.ctx["house"], rx_body())
    with pytest.raises(InvalidStatus):
        update_status(session, rx.id, "requested")
    with pytest.raises(NotFound):
        update_status(session, "RX0", "active")
