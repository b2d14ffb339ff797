"""
SQLAlchemy ORM entities for identities and clinical aggregates.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, composite, mapped_column, relationship

from medivault.models import AppointmentStatus, DoctorSnapshot, PrescriptionStatus, Role


class Base(DeclarativeBase):
    pass


class User(Base):
    """An identity.  Role is fixed at creation; doctor-only fields stay empty otherwise."""
    __tablename__ = "users"
    # Ids are never reused, so a deleted identity's token cannot name a newer one.
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False)

    # Doctor-specific
    specialty: Mapped[Optional[str]] = mapped_column(String(120))
    license: Mapped[Optional[str]] = mapped_column(String(120))
    hospital: Mapped[Optional[str]] = mapped_column(String(255))

    phone: Mapped[Optional[str]] = mapped_column(String(40))

    patient_profile: Mapped[Optional["Patient"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<User {self.id} {self.email} {self.role.name}>"


class Patient(Base):
    """PatientRecord: business-assigned id, owned by exactly one PATIENT identity."""
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    dob: Mapped[Optional[date]] = mapped_column(Date)
    gender: Mapped[Optional[str]] = mapped_column(String(20))
    blood_group: Mapped[Optional[str]] = mapped_column(String(8))
    phone: Mapped[Optional[str]] = mapped_column(String(40))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(String(255))
    insurance_id: Mapped[Optional[str]] = mapped_column(String(64))
    allergies: Mapped[Optional[list]] = mapped_column(JSON, default=list)
    chronic_conditions: Mapped[Optional[list]] = mapped_column(JSON, default=list)

    emergency_contact_name: Mapped[Optional[str]] = mapped_column(String(120))
    emergency_contact_relation: Mapped[Optional[str]] = mapped_column(String(60))
    emergency_contact_phone: Mapped[Optional[str]] = mapped_column(String(40))

    user: Mapped[User] = relationship(back_populates="patient_profile")

    def __repr__(self):
        return f"<Patient {self.id} user={self.user_id}>"


class Prescription(Base):
    """Prescription aggregate.  Medication lines live and die with it."""
    __tablename__ = "prescriptions"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    patient_id: Mapped[str] = mapped_column(ForeignKey("patients.id"), nullable=False)
    doctor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    doctor_snapshot: Mapped[DoctorSnapshot] = composite(
        DoctorSnapshot,
        mapped_column("doctor_name", String(120)),
        mapped_column("doctor_specialty", String(120)),
        mapped_column("doctor_license", String(120)),
        mapped_column("doctor_hospital", String(255)),
        mapped_column("doctor_phone", String(40)),
    )

    visit_reason: Mapped[Optional[str]] = mapped_column(String(255))
    symptoms: Mapped[Optional[str]] = mapped_column(Text)
    diagnosis: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    follow_up: Mapped[Optional[str]] = mapped_column(String(255))
    lab_tests: Mapped[Optional[list]] = mapped_column(JSON, default=list)

    status: Mapped[PrescriptionStatus] = mapped_column(
        Enum(PrescriptionStatus), nullable=False, default=PrescriptionStatus.ACTIVE,
    )
    # Set once on insert, never touched afterwards.
    issued_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    patient: Mapped[Patient] = relationship()
    doctor: Mapped[User] = relationship()
    medications: Mapped[List["Medication"]] = relationship(
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="Medication.position",
    )

    def __repr__(self):
        return f"<Prescription {self.id} patient={self.patient_id} {self.status.name}>"


class Medication(Base):
    __tablename__ = "medications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prescription_id: Mapped[str] = mapped_column(ForeignKey("prescriptions.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    dose: Mapped[Optional[str]] = mapped_column(String(60))
    frequency: Mapped[Optional[str]] = mapped_column(String(60))
    duration: Mapped[Optional[str]] = mapped_column(String(60))
    instructions: Mapped[Optional[str]] = mapped_column(String(255))

    prescription: Mapped[Prescription] = relationship(back_populates="medications")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[str] = mapped_column(ForeignKey("patients.id"), nullable=False)
    doctor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus), nullable=False, default=AppointmentStatus.REQUESTED,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now,
    )

    patient: Mapped[Patient] = relationship()
    doctor: Mapped[User] = relationship()

    def __repr__(self):
        return f"<Appointment {self.id} patient={self.patient_id} doctor={self.doctor_id}>"


class Document(Base):
    """Document metadata only; the content lives at ``file_url``."""
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    patient_id: Mapped[str] = mapped_column(ForeignKey("patients.id"), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[Optional[str]] = mapped_column(String(60))
    document_date: Mapped[Optional[date]] = mapped_column("date", Date)
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(120))
    size: Mapped[Optional[str]] = mapped_column(String(40))
    file_url: Mapped[Optional[str]] = mapped_column(String(1024))

    patient: Mapped[Patient] = relationship()
