"""
Shared fixtures: an in-memory database seeded with a small clinic.
"""

from types import SimpleNamespace

import pytest

from medivault.accounts import access_context, create_user
from medivault.api.app import create_app
from medivault.api.auth import generate_token
from medivault.database import init_engine, make_session_factory, unit_of_work
from medivault.entities import Patient

TEST_SECRET = "test-secret-key"


def seed_clinic(session_factory):
    """Two patients with records, two doctors, one admin, one patient without a record."""
    with unit_of_work(session_factory) as session:
        alice = create_user(session, "Alice Patient", "alice@example.com", "alice-pw", "PATIENT")
        bob = create_user(session, "Bob Patient", "bob@example.com", "bob-pw", "PATIENT")
        carol = create_user(session, "Carol Unlinked", "carol@example.com", "carol-pw", "PATIENT")
        house = create_user(
            session, "Dr. House", "house@example.com", "house-pw", "DOCTOR",
            specialty="Diagnostics", license="LIC-42", hospital="Princeton-Plainsboro", phone="555-0100",
        )
        wilson = create_user(
            session, "Dr. Wilson", "wilson@example.com", "wilson-pw", "DOCTOR",
            specialty="Oncology", license="LIC-43", hospital="Princeton-Plainsboro",
        )
        admin = create_user(session, "Admin", "admin@example.com", "admin-pw", "ADMIN")

        session.add(Patient(id="P001", user=alice, name="Alice Patient", allergies=["Penicillin"]))
        session.add(Patient(id="P002", user=bob, name="Bob Patient"))
        session.flush()

        users = {
            "alice": alice, "bob": bob, "carol": carol,
            "house": house, "wilson": wilson, "admin": admin,
        }
        return SimpleNamespace(
            **{name: user.id for name, user in users.items()},
            ctx={name: access_context(user) for name, user in users.items()},
        )


@pytest.fixture
def session_factory():
    engine = init_engine("sqlite://")
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def clinic(session_factory):
    return seed_clinic(session_factory)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def app():
    app = create_app({
        "DB_URI": "sqlite://",
        "JWT_SECRET_KEY": TEST_SECRET,
        "TESTING": True,
    })
    yield app
    app.extensions["medivault.engine"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_clinic(app):
    return seed_clinic(app.extensions["medivault.session_factory"])


@pytest.fixture
def auth_headers(app_clinic):
    """Build Authorization headers for a seeded user by name."""
    def _headers(name):
        token = generate_token(app_clinic.ctx[name], secret_key=TEST_SECRET)
        return {"Authorization": f"Bearer {token}"}
    return _headers
