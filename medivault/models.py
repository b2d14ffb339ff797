"""
Domain enums and dataclasses used across the application.
"""

import enum
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from medivault.exceptions import InvalidRole, InvalidStatus


class Role(enum.Enum):
    """Closed set of identity roles.  There is no implied ordering."""
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value) -> "Role":
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise InvalidRole(f"Unknown role: {value}") from None


class _Status(enum.Enum):
    """Status literals are parsed case-insensitively and rendered lower-case."""

    @classmethod
    def parse(cls, value):
        if value is None or not str(value).strip():
            raise InvalidStatus("status is required")
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            allowed = ", ".join(s.name.lower() for s in cls)
            raise InvalidStatus(f"Invalid status '{value}'. Allowed: {allowed}") from None

    @property
    def token(self) -> str:
        return self.name.lower()


class AppointmentStatus(_Status):
    REQUESTED = "REQUESTED"
    APPROVED = "APPROVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class PrescriptionStatus(_Status):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class AccessContext:
    """The verified caller of the current request, built from token claims."""
    user_id: int
    email: str
    name: str
    role: Role

    @property
    def is_patient(self) -> bool:
        return self.role is Role.PATIENT


@dataclass(frozen=True)
class DoctorSnapshot:
    """Issuing doctor's attributes copied by value at prescription time."""
    name: str
    specialty: Optional[str]
    license: Optional[str]
    hospital: Optional[str]
    phone: Optional[str]

    @classmethod
    def of(cls, user) -> "DoctorSnapshot":
        return cls(
            name=user.name,
            specialty=user.specialty,
            license=user.license,
            hospital=user.hospital,
            phone=user.phone,
        )


def new_record_id(prefix: str) -> str:
    """Time-based id, unique per call; not coordinated across processes."""
    return f"{prefix}{int(time.time() * 1000)}{secrets.token_hex(2).upper()}"
