"""
db/models.py

Table definitions for every collection the navigator reads or writes.
Each class inheriting from Base is a table.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AuthUser(Base):
    """
    Credentials owned by the auth service.
    user_metadata holds what the user declared at sign-up (username, full_name, user_type...).
    """
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    user_metadata = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class Location(Base):
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    state = Column(String, nullable=False)
    district = Column(String, nullable=True)
    type = Column(String, nullable=False)  # "village" / "town" / "city"
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class Profile(Base):
    """
    Binds an auth identity (user_id) to a role and display attributes.
    Exactly one profile per identity.
    """
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    phone = Column(String, nullable=True, index=True)
    user_type = Column(String, nullable=False)  # "patient" / "hospital" / "admin"
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=_uuid)
    profile_id = Column(String(36), ForeignKey("profiles.id"), unique=True, index=True, nullable=False)

    date_of_birth = Column(Date, nullable=True)
    gender = Column(String, nullable=True)
    blood_group = Column(String, nullable=True)
    allergies = Column(JSON, nullable=True)
    medical_conditions = Column(JSON, nullable=True)
    emergency_contact_name = Column(String, nullable=True)
    emergency_contact_phone = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Hospital(Base):
    __tablename__ = "hospitals"

    id = Column(String(36), primary_key=True, default=_uuid)
    profile_id = Column(String(36), ForeignKey("profiles.id"), unique=True, index=True, nullable=False)
    hospital_name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=True)
    emergency_contact = Column(String, nullable=True)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False)
    specializations = Column(JSON, nullable=True)
    is_verified = Column(Boolean, nullable=True, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(String(36), primary_key=True, default=_uuid)
    hospital_id = Column(String(36), ForeignKey("hospitals.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    specialization = Column(String, nullable=False)
    qualification = Column(String, nullable=True)
    experience_years = Column(Integer, nullable=True)
    available_days = Column(JSON, nullable=True)
    available_hours = Column(String, nullable=True)
    consultation_fee = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class Appointment(Base):
    """
    status: scheduled / confirmed / cancelled / completed.
    The client never sets it; new rows get the "scheduled" default here.
    """
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=_uuid)
    patient_id = Column(String(36), ForeignKey("patients.id"), index=True, nullable=False)
    hospital_id = Column(String(36), ForeignKey("hospitals.id"), index=True, nullable=False)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=True)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)


class EmergencyAlert(Base):
    __tablename__ = "emergency_alerts"

    id = Column(String(36), primary_key=True, default=_uuid)
    patient_id = Column(String(36), ForeignKey("patients.id"), index=True, nullable=False)
    location_id = Column(String(36), ForeignKey("locations.id"), index=True, nullable=False)
    alert_type = Column(String, nullable=False)  # "ambulance" / "emergency" / "critical"
    status = Column(String, nullable=False, default="active")
    patient_location = Column(String, nullable=True)
    contact_number = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    responded_by = Column(String(36), nullable=True)
    response_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(String(36), primary_key=True, default=_uuid)
    patient_id = Column(String(36), ForeignKey("patients.id"), index=True, nullable=False)
    hospital_id = Column(String(36), ForeignKey("hospitals.id"), nullable=False)
    doctor_id = Column(String(36), ForeignKey("doctors.id"), nullable=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True)
    visit_date = Column(Date, nullable=False)
    diagnosis = Column(Text, nullable=True)
    treatment = Column(Text, nullable=True)
    medications = Column(JSON, nullable=True)
    lab_results = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)


# name -> mapped class, the collections reachable through db.client.BackendClient
TABLES = {
    "locations": Location,
    "profiles": Profile,
    "patients": Patient,
    "hospitals": Hospital,
    "doctors": Doctor,
    "appointments": Appointment,
    "emergency_alerts": EmergencyAlert,
    "medical_records": MedicalRecord,
}
