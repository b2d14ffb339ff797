"""
Credential verification and identity registration.
"""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from medivault.entities import User
from medivault.exceptions import Conflict, InvalidCredentials, NotFound, require_fields
from medivault.models import AccessContext, Role

DOCTOR_ONLY_FIELDS = ("specialty", "license", "hospital")


def access_context(user: User) -> AccessContext:
    return AccessContext(user_id=user.id, email=user.email, name=user.name, role=user.role)


def find_by_email(session: Session, email: str) -> Optional[User]:
    # Emails are stored and compared exactly as given.
    return session.scalar(select(User).where(User.email == email))


def authenticate(session: Session, email: Optional[str], password: Optional[str]) -> User:
    """
    Return the identity matching ``email``/``password``.

    Every failure raises the same InvalidCredentials so callers cannot tell
    an unknown email from a wrong password.
    """
    if not email or not password or not isinstance(email, str) or not isinstance(password, str):
        raise InvalidCredentials()

    user = find_by_email(session, email)
    if user is None or not check_password_hash(user.password_hash, password):
        raise InvalidCredentials()
    return user


def create_user(
    session: Session,
    name: str,
    email: str,
    password: str,
    role,
    specialty: Optional[str] = None,
    license: Optional[str] = None,
    hospital: Optional[str] = None,
    phone: Optional[str] = None,
) -> User:
    """Insert a new identity.  Email must be unused; role is fixed from here on."""
    role = Role.parse(role)
    if find_by_email(session, email) is not None:
        raise Conflict(f"Email already registered: {email}")

    user = User(
        name=name,
        email=email,
        password_hash=generate_password_hash(password),
        role=role,
        phone=phone,
    )
    if role is Role.DOCTOR:
        user.specialty = specialty
        user.license = license
        user.hospital = hospital

    session.add(user)
    try:
        session.flush()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email.
        raise Conflict(f"Email already registered: {email}") from None
    return user


def register(session: Session, data: Optional[Dict[str, Any]]) -> User:
    """Validate a registration payload and create the identity."""
    require_fields(data, "name", "email", "password", "role")
    return create_user(
        session,
        name=str(data["name"]).strip(),
        email=str(data["email"]).strip(),
        password=str(data["password"]),
        role=data["role"],
        specialty=data.get("specialty"),
        license=data.get("license"),
        hospital=data.get("hospital"),
        phone=data.get("phone"),
    )


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFound(f"User not found: {user_id}")
    return user
