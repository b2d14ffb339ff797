"""
Smoke script for MediVault API endpoints.
Run the API server first: python api_server.py
Then run this: python smoke_api.py

Creates a doctor and a patient through /api/auth/register, so point it at a
scratch database.  Needs an existing ADMIN (see `medivault create-user`).
"""

import json
import time

import requests

BASE_URL = "http://localhost:8000"


def show(title, response):
    print("\n" + "=" * 50)
    print(f"CHECK: {title}")
    print("=" * 50)
    print(f"Status Code: {response.status_code}")
    try:
        print(f"Response: {json.dumps(response.json(), indent=2)}")
    except ValueError:
        print(f"Response: {response.text}")


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def check_health():
    response = requests.get(f"{BASE_URL}/health")
    show("Health Check", response)
    return response.status_code == 200


def login(email, password):
    response = requests.post(f"{BASE_URL}/api/auth/login", json={"email": email, "password": password})
    show(f"Login {email}", response)
    if response.status_code == 200:
        return response.json()
    return None


def check_login_invalid():
    response = requests.post(
        f"{BASE_URL}/api/auth/login",
        json={"email": "nobody@example.com", "password": "wrong"},
    )
    show("Login with Invalid Credentials", response)
    return response.status_code == 401 and response.json()["error"] == "Invalid email or password"


def register(name, email, password, role, **extra):
    body = {"name": name, "email": email, "password": password, "role": role, **extra}
    response = requests.post(f"{BASE_URL}/api/auth/register", json=body)
    show(f"Register {role} {email}", response)
    if response.status_code == 200:
        return response.json()
    return None


def check_no_token():
    response = requests.get(f"{BASE_URL}/api/user/profile")
    show("Profile Without Token", response)
    return response.status_code == 401


def create_patient_record(admin_token, patient_id, user_id, name):
    response = requests.post(
        f"{BASE_URL}/api/patient",
        headers=bearer(admin_token),
        json={"id": patient_id, "userId": user_id, "name": name},
    )
    show("Create Patient Record", response)
    return response.status_code == 200


def book_appointment(token, patient_id, doctor_id):
    response = requests.post(
        f"{BASE_URL}/api/appointments",
        headers=bearer(token),
        json={"patientId": patient_id, "doctorId": doctor_id,
              "startTime": "2026-03-02T10:30", "endTime": "2026-03-02T11:00"},
    )
    show("Book Appointment", response)
    return response.status_code


def issue_prescription(token, patient_id):
    response = requests.post(
        f"{BASE_URL}/api/prescriptions",
        headers=bearer(token),
        json={
            "patientId": patient_id,
            "diagnosis": "Seasonal allergy",
            "medications": [
                {"name": "Cetirizine", "dose": "10 mg", "frequency": "daily"},
                {"name": "Saline spray", "frequency": "as needed"},
            ],
        },
    )
    show("Issue Prescription", response)
    return response.status_code == 200


def main():
    print("=" * 50)
    print("MediVault API Smoke Run")
    print("=" * 50)
    print(f"Base URL: {BASE_URL}")
    print("Make sure the API server is running!")
    print()

    admin_email = input("Admin email: ").strip()
    admin_password = input("Admin password: ").strip()
    if not admin_email or not admin_password:
        print("ERROR: admin credentials are required")
        return

    suffix = str(int(time.time()))
    results = {}

    try:
        results["Health Check"] = check_health()
        results["Login Invalid"] = check_login_invalid()
        results["No Token"] = check_no_token()

        admin = login(admin_email, admin_password)
        results["Admin Login"] = admin is not None
        if admin is None:
            print("\nERROR: Could not login. Remaining checks skipped.")
        else:
            doctor = register("Dr. Smoke", f"doctor{suffix}@example.com", "doctor123", "DOCTOR",
                              specialty="General Practice", license="LIC-1")
            patient = register("Pat Smoke", f"patient{suffix}@example.com", "patient123", "PATIENT")
            other = register("Other Smoke", f"other{suffix}@example.com", "other123", "PATIENT")
            results["Register"] = all((doctor, patient, other))

            if results["Register"]:
                pid, oid = f"P{suffix}", f"Q{suffix}"
                results["Patient Records"] = (
                    create_patient_record(admin["token"], pid, patient["id"], patient["name"])
                    and create_patient_record(admin["token"], oid, other["id"], other["name"])
                )
                results["Self Booking"] = book_appointment(patient["token"], pid, doctor["id"]) == 200
                results["Foreign Booking Denied"] = book_appointment(patient["token"], oid, doctor["id"]) == 403
                results["Prescription"] = issue_prescription(doctor["token"], pid)

    except Exception as e:
        print(f"\n\nERROR: {e}")
        import traceback
        traceback.print_exc()

    print("\n" + "=" * 50)
    print("SMOKE SUMMARY")
    print("=" * 50)
    passed = sum(1 for v in results.values() if v)
    total = len(results)

    for check, result in results.items():
        status = "✓ PASS" if result else "✗ FAIL"
        print(f"{status}: {check}")

    print(f"\nTotal: {passed}/{total} checks passed")
    print("=" * 50)


if __name__ == "__main__":
    main()
