"""
End-to-end tests for the Flask API using the test client.
"""

from datetime import datetime, timedelta, timezone

import pytest

from medivault.api.auth import generate_token


def login(client, email, password):
    return client.post("/api/auth/login", json={"email": email, "password": password})


# ── Tests: health ────────────────────────────────────────────────────

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "healthy", "checks": {"database": True}}


def test_unknown_endpoint_is_json_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Endpoint not found"


# ── Tests: auth ──────────────────────────────────────────────────────

def test_login_success(client, app_clinic):
    resp = login(client, "house@example.com", "house-pw")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["type"] == "Bearer"
    assert body["role"] == "DOCTOR"
    assert body["id"] == app_clinic.house
    assert body["token"]

    profile = client.get("/api/user/profile", headers={"Authorization": f"Bearer {body['token']}"})
    assert profile.status_code == 200
    assert profile.get_json()["email"] == "house@example.com"


@pytest.mark.parametrize("email,password", [
    ("house@example.com", "wrong"),
    ("ghost@example.com", "house-pw"),
])
def test_login_failure_is_generic(client, app_clinic, email, password):
    resp = login(client, email, password)
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid email or password"}


def test_login_without_json_body(client, app_clinic):
    resp = client.post("/api/auth/login", data="email=x", content_type="text/plain")
    assert resp.status_code == 401


def test_register_then_duplicate(client, auth_headers):
    body = {"name": "Dana", "email": "dana@example.com", "password": "pw", "role": "PATIENT"}
    first = client.post("/api/auth/register", json=body)
    assert first.status_code == 200
    assert first.get_json()["role"] == "PATIENT"

    second = client.post("/api/auth/register", json=dict(body, name="Other"))
    assert second.status_code == 400
    assert second.get_json() == {"error": "Email already registered: dana@example.com"}

    users = client.get("/api/admin/users", headers=auth_headers("admin"))
    emails = [u["email"] for u in users.get_json()]
    assert emails.count("dana@example.com") == 1


def test_register_validation_body(client, app_clinic):
    resp = client.post("/api/auth/register", json={"email": "x@example.com"})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "Validation failed"
    assert body["status"] == 400
    assert set(body["fields"]) == {"name", "password", "role"}


@pytest.mark.parametrize("headers,message", [
    ({}, "Authentication token is missing"),
    ({"Authorization": "Token abc"}, "Invalid authorization header format"),
    ({"Authorization": "Bearer not.a.jwt"}, "Invalid or expired token"),
])
def test_missing_or_bad_token(client, app_clinic, headers, message):
    resp = client.get("/api/user/profile", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json() == {"error": message}


def test_expired_token(app, client, app_clinic):
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = generate_token(app_clinic.ctx["alice"], secret_key=app.config["JWT_SECRET_KEY"], now=issued)
    resp = client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_token_signed_with_other_key(client, app_clinic):
    token = generate_token(app_clinic.ctx["admin"], secret_key="some-other-key")
    resp = client.get("/api/admin/stats", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ── Tests: role and ownership checks ─────────────────────────────────

@pytest.mark.parametrize("who,method,path", [
    ("alice", "get", "/api/patient/all"),
    ("alice", "post", "/api/prescriptions"),
    ("house", "get", "/api/admin/stats"),
    ("house", "delete", "/api/documents/DOC1"),
    ("bob", "get", "/api/patient/qr/P002"),
])
def test_role_mismatch_is_forbidden(client, auth_headers, who, method, path):
    resp = getattr(client, method)(path, headers=auth_headers(who), json={})
    assert resp.status_code == 403
    assert resp.get_json() == {"error": "Access denied"}


def test_patient_cannot_book_for_another_patient(client, app_clinic, auth_headers):
    resp = client.post("/api/appointments", headers=auth_headers("alice"), json={
        "patientId": "P002", "doctorId": 7, "startTime": "2026-03-02T10:30",
    })
    assert resp.status_code == 403

    listing = client.get("/api/appointments/patient/P002", headers=auth_headers("house"))
    assert listing.get_json() == []


def test_patient_reads_own_record_only(client, auth_headers):
    assert client.get("/api/patient/P001", headers=auth_headers("alice")).status_code == 200
    assert client.get("/api/patient/P002", headers=auth_headers("alice")).status_code == 403
    assert client.get("/api/patient/P999", headers=auth_headers("alice")).status_code == 403
    assert client.get("/api/patient/P999", headers=auth_headers("house")).status_code == 404


# ── Tests: clinical flows ────────────────────────────────────────────

def test_booking_and_status_flow(client, app_clinic, auth_headers):
    resp = client.post("/api/appointments", headers=auth_headers("alice"), json={
        "patientId": "P001", "doctorId": app_clinic.house,
        "startTime": "2026-03-02T10:30", "endTime": "2026-03-02T11:00",
    })
    assert resp.status_code == 200
    appt = resp.get_json()
    assert appt["status"] == "requested"
    assert appt["reason"] == "Consultation"

    patched = client.patch(f"/api/appointments/{appt['id']}/status",
                           headers=auth_headers("house"), json={"status": "APPROVED"})
    assert patched.status_code == 200
    assert patched.get_json()["status"] == "approved"

    window = client.get(f"/api/appointments/doctor/{app_clinic.house}?from=2026-03-02T00:00&to=2026-03-02T23:59",
                        headers=auth_headers("house"))
    assert [a["id"] for a in window.get_json()] == [appt["id"]]


def test_booking_end_before_start(client, app_clinic, auth_headers):
    resp = client.post("/api/appointments", headers=auth_headers("alice"), json={
        "patientId": "P001", "doctorId": app_clinic.house,
        "startTime": "2026-03-02T10:30", "endTime": "2026-03-02T09:00",
    })
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "End time cannot be before start time"}


def test_prescription_snapshot_via_api(client, app_clinic, auth_headers):
    resp = client.post("/api/prescriptions", headers=auth_headers("house"), json={
        "patientId": "P001", "diagnosis": "Strep throat",
        "medications": [{"name": "Amoxicillin", "dose": "500 mg"}],
    })
    assert resp.status_code == 200
    rx = resp.get_json()
    assert rx["doctorName"] == "Dr. House"
    assert rx["doctorLicense"] == "LIC-42"
    assert rx["status"] == "active"

    mine = client.get(f"/api/prescriptions/{rx['id']}", headers=auth_headers("alice"))
    assert mine.status_code == 200
    assert client.get(f"/api/prescriptions/{rx['id']}", headers=auth_headers("bob")).status_code == 403


def test_prescription_bad_medication_line(client, auth_headers):
    resp = client.post("/api/prescriptions", headers=auth_headers("house"), json={
        "patientId": "P001", "diagnosis": "Flu", "medications": [{"dose": "1"}],
    })
    assert resp.status_code == 400
    assert "medications[0].name" in resp.get_json()["fields"]

    listing = client.get("/api/prescriptions/patient/P001", headers=auth_headers("house"))
    assert listing.get_json() == []


def test_documents_and_admin(client, auth_headers):
    added = client.post("/api/documents", headers=auth_headers("alice"),
                        json={"patientId": "P001", "name": "Lab report"})
    assert added.status_code == 200
    doc_id = added.get_json()["id"]

    stats = client.get("/api/admin/stats", headers=auth_headers("admin")).get_json()
    assert stats["documents"] == 1

    deleted = client.delete(f"/api/documents/{doc_id}", headers=auth_headers("admin"))
    assert deleted.status_code == 200
    assert client.delete(f"/api/documents/{doc_id}", headers=auth_headers("admin")).status_code == 404


def test_non_json_body_is_rejected(client, auth_headers):
    resp = client.post("/api/documents", headers=auth_headers("alice"), data="x", content_type="text/plain")
    assert resp.status_code == 400


def test_deleted_patients_token_cannot_read_next_patients_chart(client, auth_headers):
    admin = auth_headers("admin")

    eve = client.post("/api/auth/register", json={
        "name": "Eve", "email": "eve@example.com", "password": "pw", "role": "PATIENT",
    }).get_json()
    assert client.post("/api/patient", headers=admin,
                       json={"id": "P003", "userId": eve["id"], "name": "Eve"}).status_code == 200
    assert client.delete(f"/api/admin/users/{eve['id']}", headers=admin).status_code == 200

    frank = client.post("/api/auth/register", json={
        "name": "Frank", "email": "frank@example.com", "password": "pw", "role": "PATIENT",
    }).get_json()
    assert client.post("/api/patient", headers=admin, json={
        "id": "P004", "userId": frank["id"], "name": "Frank", "allergies": ["Latex"],
    }).status_code == 200

    assert frank["id"] != eve["id"]
    resp = client.get("/api/patient/P004", headers={"Authorization": f"Bearer {eve['token']}"})
    assert resp.status_code == 403
