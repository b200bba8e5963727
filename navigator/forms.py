# navigator/forms.py
"""
Mutation forms: validate locally -> one write -> return the written row.

Validation failures raise ValidationFailed before anything touches the backend.
Backend rejections raise WriteFailed; the caller keeps the user's input for a retry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from db.auth import AuthError, AuthService, Identity, Session
from db.client import BackendClient, BackendError
from navigator.errors import LookupMiss, ValidationFailed, WriteFailed
from navigator.lookups import find_patient, find_profile_by_phone_or_username, username_taken
from navigator.profiles import ensure_patient
from navigator.roles import Role
from navigator.schemas import (
    AddDoctorForm,
    AddPatientForm,
    Appointment,
    BookAppointmentForm,
    Doctor,
    EditProfileForm,
    EmergencyAlert,
    EmergencyForm,
    Hospital,
    HospitalRegistrationForm,
    Patient,
    Profile,
    SignInForm,
    SignUpForm,
    parse_form,
)

logger = logging.getLogger(__name__)


def _insert(client: BackendClient, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return client.table(table).insert(values)
    except BackendError as e:
        raise WriteFailed(str(e)) from e


def _require_role(profile: Profile, role: Role, action: str) -> None:
    if profile.role is not role:
        raise ValidationFailed(f"Only {role.value} accounts can {action}")


# ============================================================
# Auth
# ============================================================

def sign_up(client: BackendClient, auth: AuthService, data: Dict[str, Any]) -> Identity:
    """Rejects a username another profile already has (any case) before creating the account."""
    form = parse_form(SignUpForm, data)
    try:
        taken = username_taken(client, form.username)
    except BackendError as e:
        raise WriteFailed(str(e)) from e
    if taken:
        raise ValidationFailed("username: already taken", {"username": "already taken"})

    try:
        return auth.sign_up(
            form.email,
            form.password,
            metadata={
                "username": form.username,
                "full_name": form.full_name,
                "phone": form.phone,
                "user_type": form.user_type.value,
                "location_id": form.location_id,
            },
        )
    except AuthError as e:
        raise WriteFailed(str(e)) from e


def sign_in(auth: AuthService, data: Dict[str, Any]) -> Session:
    form = parse_form(SignInForm, data)
    try:
        return auth.sign_in_with_password(form.email, form.password)
    except AuthError as e:
        raise WriteFailed(str(e)) from e


# ============================================================
# Patient side
# ============================================================

def book_appointment(client: BackendClient, profile: Profile, data: Dict[str, Any]) -> Appointment:
    """
    Hospital, date and time are required; doctor and reason are optional.
    A missing Patient row is created first. If the appointment insert then fails,
    that Patient row stays (the two writes are not atomic).
    """
    form = parse_form(BookAppointmentForm, data)
    _require_role(profile, Role.PATIENT, "book appointments")

    patient, _ = ensure_patient(client, profile.id)
    row = _insert(client, "appointments", {
        "patient_id": patient.id,
        "hospital_id": form.hospital_id,
        "doctor_id": form.doctor_id,
        "appointment_date": form.appointment_date,
        "appointment_time": form.appointment_time,
        "reason": form.reason,
    })
    logger.info("Booked appointment %s for patient %s", row["id"], patient.id)
    return Appointment.model_validate(row)


def raise_emergency(client: BackendClient, profile: Profile, data: Dict[str, Any]) -> EmergencyAlert:
    form = parse_form(EmergencyForm, data)
    _require_role(profile, Role.PATIENT, "raise emergency alerts")

    location_id = form.location_id or profile.location_id
    if not location_id:
        raise ValidationFailed("Select your location", {"location_id": "required"})

    patient, _ = ensure_patient(client, profile.id)
    row = _insert(client, "emergency_alerts", {
        "patient_id": patient.id,
        "location_id": location_id,
        "alert_type": form.alert_type,
        "description": form.description,
        "patient_location": form.patient_location,
        "contact_number": form.contact_number or profile.phone,
    })
    logger.warning("Emergency alert %s (%s) raised at location %s", row["id"], form.alert_type, location_id)
    return EmergencyAlert.model_validate(row)


def edit_profile(client: BackendClient, profile: Profile, data: Dict[str, Any]) -> Profile:
    """Username, full name and phone only; the role is not editable."""
    form = parse_form(EditProfileForm, data)
    try:
        rows = client.table("profiles").eq("id", profile.id).update({
            "username": form.username,
            "full_name": form.full_name,
            "phone": form.phone,
        })
    except BackendError as e:
        raise WriteFailed(str(e)) from e
    if not rows:
        raise LookupMiss("Profile no longer exists")
    return Profile.model_validate(rows[0])


# ============================================================
# Hospital side
# ============================================================

def register_hospital(client: BackendClient, profile: Profile, data: Dict[str, Any]) -> Hospital:
    """Creates the hospital row of a hospital-role profile that does not have one yet."""
    form = parse_form(HospitalRegistrationForm, data)
    _require_role(profile, Role.HOSPITAL, "register a hospital")

    try:
        existing = client.table("hospitals").eq("profile_id", profile.id).maybe_single()
    except BackendError as e:
        raise WriteFailed(str(e)) from e
    if existing is not None:
        return Hospital.model_validate(existing)

    row = _insert(client, "hospitals", {
        "profile_id": profile.id,
        "hospital_name": form.hospital_name,
        "address": form.address,
        "phone": form.phone,
        "location_id": form.location_id,
        "email": str(form.email) if form.email else None,
        "emergency_contact": form.emergency_contact,
        "specializations": form.specializations,
    })
    return Hospital.model_validate(row)


def add_doctor(client: BackendClient, hospital: Hospital, data: Dict[str, Any]) -> Doctor:
    """hospital_id always comes from the signed-in hospital, never from the form."""
    form = parse_form(AddDoctorForm, data)
    values = form.model_dump()
    values["hospital_id"] = hospital.id
    return Doctor.model_validate(_insert(client, "doctors", values))


@dataclass(frozen=True)
class AddPatientResult:
    patient: Patient
    profile_id: str
    created: bool


def add_patient(client: BackendClient, profile: Profile, data: Dict[str, Any]) -> AddPatientResult:
    """
    Links an existing profile as a patient: look up by phone, then by username.
    No match raises LookupMiss and writes nothing.
    """
    form = parse_form(AddPatientForm, data)
    _require_role(profile, Role.HOSPITAL, "add patients")
    try:
        match = find_profile_by_phone_or_username(client, form.phone, form.username)
    except BackendError as e:
        raise WriteFailed(str(e)) from e

    profile_row = match.or_raise("No matching profile for that phone number or username")

    try:
        existing = find_patient(client, profile_row["id"])
    except BackendError as e:
        raise WriteFailed(str(e)) from e
    if existing.found:
        return AddPatientResult(Patient.model_validate(existing.row), profile_row["id"], created=False)

    patient, created = ensure_patient(client, profile_row["id"])
    return AddPatientResult(patient, profile_row["id"], created=created)
