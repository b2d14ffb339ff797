"""
Flask route handlers for the REST API.

Each handler runs in exactly one unit of work and projects its result
before the unit commits.
"""

import sys
import traceback
from datetime import timedelta

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from medivault import accounts, admin, appointments, documents, patients, prescriptions
from medivault.api.auth import generate_token, permission_required
from medivault.database import ping, unit_of_work
from medivault.exceptions import InvalidCredentials, InvalidInput, MedivaultError
from medivault.responses import (
    appointment_to_dict,
    auth_response,
    document_to_dict,
    patient_summary,
    patient_to_dict,
    prescription_to_dict,
    user_to_dict,
)


def _json_body() -> dict:
    if not request.is_json:
        raise InvalidInput("Content-Type must be application/json")
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def register_routes(app, engine, session_factory):
    """Register all API routes on the Flask *app*."""

    def token_for(user) -> str:
        return generate_token(
            accounts.access_context(user),
            secret_key=app.config["JWT_SECRET_KEY"],
            expires_in=timedelta(hours=app.config["TOKEN_EXPIRY_HOURS"]),
        )

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "MediVault API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "login": "/api/auth/login",
                "register": "/api/auth/register",
                "patients": "/api/patient",
                "appointments": "/api/appointments",
                "prescriptions": "/api/prescriptions",
                "documents": "/api/documents",
                "admin": "/api/admin",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        checks = {"database": ping(engine)}
        all_healthy = all(checks.values())
        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
        }), 200 if all_healthy else 503

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise InvalidCredentials()

        with unit_of_work(session_factory) as session:
            user = accounts.authenticate(session, data.get("email"), data.get("password"))
            print(f"[auth] Login user_id={user.id} role={user.role.name}")
            return jsonify(auth_response(token_for(user), user)), 200

    @app.route("/api/auth/register", methods=["POST"])
    def register():
        data = _json_body()
        with unit_of_work(session_factory) as session:
            user = accounts.register(session, data)
            print(f"[auth] Registered user_id={user.id} role={user.role.name}")
            return jsonify(auth_response(token_for(user), user)), 200

    @app.route("/api/user/profile", methods=["GET"])
    @permission_required("profile.read")
    def get_profile():
        with unit_of_work(session_factory) as session:
            user = accounts.get_user(session, request.caller.user_id)
            return jsonify(user_to_dict(user)), 200

    # ── Patients ─────────────────────────────────────────────────────

    @app.route("/api/patient/all", methods=["GET"])
    @permission_required("patient.list")
    def list_patients():
        with unit_of_work(session_factory) as session:
            return jsonify([patient_to_dict(p) for p in patients.list_patients(session)]), 200

    @app.route("/api/patient", methods=["POST"])
    @permission_required("patient.create")
    def create_patient():
        data = _json_body()
        with unit_of_work(session_factory) as session:
            return jsonify(patient_to_dict(patients.create_patient(session, data))), 200

    @app.route("/api/patient/<patient_id>", methods=["GET"])
    @permission_required("patient.read")
    def get_patient(patient_id):
        with unit_of_work(session_factory) as session:
            patient = patients.get_patient(session, request.caller, patient_id)
            return jsonify(patient_to_dict(patient)), 200

    @app.route("/api/patient/user/<int:user_id>", methods=["GET"])
    @permission_required("patient.read")
    def get_patient_by_user(user_id):
        with unit_of_work(session_factory) as session:
            patient = patients.get_by_user(session, request.caller, user_id)
            return jsonify(patient_to_dict(patient)), 200

    @app.route("/api/patient/qr/<patient_id>", methods=["GET"])
    @permission_required("patient.summary")
    def get_patient_summary(patient_id):
        with unit_of_work(session_factory) as session:
            patient = patients.get_patient(session, request.caller, patient_id)
            return jsonify(patient_summary(patient)), 200

    # ── Appointments ─────────────────────────────────────────────────

    @app.route("/api/appointments", methods=["POST"])
    @permission_required("appointment.create")
    def create_appointment():
        data = _json_body()
        with unit_of_work(session_factory) as session:
            appt = appointments.create_appointment(session, request.caller, data)
            return jsonify(appointment_to_dict(appt)), 200

    @app.route("/api/appointments/patient/<patient_id>", methods=["GET"])
    @permission_required("appointment.list_patient")
    def list_patient_appointments(patient_id):
        with unit_of_work(session_factory) as session:
            items = appointments.list_for_patient(session, request.caller, patient_id)
            return jsonify([appointment_to_dict(a) for a in items]), 200

    @app.route("/api/appointments/doctor/<int:doctor_id>", methods=["GET"])
    @permission_required("appointment.list_doctor")
    def list_doctor_appointments(doctor_id):
        with unit_of_work(session_factory) as session:
            items = appointments.list_for_doctor(
                session, doctor_id,
                start_from=request.args.get("from"),
                start_to=request.args.get("to"),
            )
            return jsonify([appointment_to_dict(a) for a in items]), 200

    @app.route("/api/appointments/<int:appointment_id>/status", methods=["PATCH"])
    @permission_required("appointment.update_status")
    def update_appointment_status(appointment_id):
        data = _json_body()
        with unit_of_work(session_factory) as session:
            appt = appointments.update_status(session, appointment_id, data.get("status"))
            return jsonify(appointment_to_dict(appt)), 200

    # ── Prescriptions ────────────────────────────────────────────────

    @app.route("/api/prescriptions", methods=["POST"])
    @permission_required("prescription.create")
    def create_prescription():
        data = _json_body()
        with unit_of_work(session_factory) as session:
            rx = prescriptions.create_prescription(session, request.caller, data)
            return jsonify(prescription_to_dict(rx)), 200

    @app.route("/api/prescriptions/patient/<patient_id>", methods=["GET"])
    @permission_required("prescription.list_patient")
    def list_patient_prescriptions(patient_id):
        with unit_of_work(session_factory) as session:
            items = prescriptions.list_for_patient(session, request.caller, patient_id)
            return jsonify([prescription_to_dict(rx) for rx in items]), 200

    @app.route("/api/prescriptions/doctor/<int:doctor_id>", methods=["GET"])
    @permission_required("prescription.list_doctor")
    def list_doctor_prescriptions(doctor_id):
        with unit_of_work(session_factory) as session:
            items = prescriptions.list_for_doctor(session, doctor_id)
            return jsonify([prescription_to_dict(rx) for rx in items]), 200

    @app.route("/api/prescriptions/<prescription_id>", methods=["GET"])
    @permission_required("prescription.read")
    def get_prescription(prescription_id):
        with unit_of_work(session_factory) as session:
            rx = prescriptions.get_prescription(session, request.caller, prescription_id)
            return jsonify(prescription_to_dict(rx)), 200

    @app.route("/api/prescriptions/<prescription_id>/status", methods=["PATCH"])
    @permission_required("prescription.update_status")
    def update_prescription_status(prescription_id):
        data = _json_body()
        with unit_of_work(session_factory) as session:
            rx = prescriptions.update_status(session, prescription_id, data.get("status"))
            return jsonify(prescription_to_dict(rx)), 200

    # ── Documents ────────────────────────────────────────────────────

    @app.route("/api/documents/patient/<patient_id>", methods=["GET"])
    @permission_required("document.list_patient")
    def list_patient_documents(patient_id):
        with unit_of_work(session_factory) as session:
            items = documents.list_for_patient(session, request.caller, patient_id)
            return jsonify([document_to_dict(d) for d in items]), 200

    @app.route("/api/documents", methods=["POST"])
    @permission_required("document.create")
    def add_document():
        data = _json_body()
        with unit_of_work(session_factory) as session:
            doc = documents.add_document(session, request.caller, data)
            return jsonify(document_to_dict(doc)), 200

    @app.route("/api/documents/<document_id>", methods=["DELETE"])
    @permission_required("document.delete")
    def delete_document(document_id):
        with unit_of_work(session_factory) as session:
            documents.delete_document(session, document_id)
        return jsonify({"message": "Document deleted"}), 200

    # ── Admin ────────────────────────────────────────────────────────

    @app.route("/api/admin/users", methods=["GET"])
    @permission_required("user.list")
    def list_users():
        with unit_of_work(session_factory) as session:
            return jsonify([user_to_dict(u) for u in admin.list_users(session)]), 200

    @app.route("/api/admin/users/<int:user_id>", methods=["DELETE"])
    @permission_required("user.delete")
    def delete_user(user_id):
        with unit_of_work(session_factory) as session:
            admin.delete_user(session, user_id)
        return jsonify({"message": "User deleted"}), 200

    @app.route("/api/admin/stats", methods=["GET"])
    @permission_required("stats.read")
    def get_stats():
        with unit_of_work(session_factory) as session:
            return jsonify(admin.stats(session)), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(MedivaultError)
    def handle_medivault_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(Exception)
    def internal_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        print(f"[ERROR] Unhandled error on {request.method} {request.path}: {e}", file=sys.stderr)
        traceback.print_exc()
        return jsonify({"error": "Internal server error"}), 500
