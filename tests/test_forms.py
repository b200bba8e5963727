from datetime import date, time

import pytest

from navigator import forms
from navigator.errors import LookupMiss, ValidationFailed, WriteFailed
from navigator.loaders import patient_appointments
from navigator.profiles import resolve_profile
from navigator.roles import Role
from navigator.schemas import Profile


# -------------------------
# Booking
# -------------------------
def test_booking_round_trip(client, hospital_account, alice_profile):
    _, hospital = hospital_account
    appt = forms.book_appointment(client, alice_profile, {
        "hospital_id": hospital.id,
        "appointment_date": "2026-10-20",
        "appointment_time": "09:30",
        "reason": "Fever and cough",
    })

    rows = patient_appointments(client, alice_profile)
    assert len(rows) == 1
    row = rows[0]
    assert row["id"] == appt.id
    assert row["hospital_id"] == hospital.id
    assert row["appointment_date"] == date(2026, 10, 20)
    assert row["appointment_time"] == time(9, 30)
    assert row["reason"] == "Fever and cough"
    assert row["status"] == "scheduled"
    assert row["doctor_id"] is None


@pytest.mark.parametrize("missing", ["hospital_id", "appointment_date", "appointment_time"])
def test_booking_requires_hospital_date_time(no_backend, alice_profile, missing):
    data = {"hospital_id": "h1", "appointment_date": "2026-10-20", "appointment_time": "09:30"}
    data[missing] = ""

    with pytest.raises(ValidationFailed) as exc:
        forms.book_appointment(no_backend, alice_profile, data)
    assert missing in exc.value.fields


def test_booking_creates_missing_patient_row(client, hospital_account):
    _, hospital = hospital_account
    # profile stored without its patient row
    row = client.table("profiles").insert({"user_id": "u-late", "username": "late", "full_name": "Late", "user_type": "patient"})
    profile = Profile.model_validate(row)
    assert client.table("patients").count() == 0

    forms.book_appointment(client, profile, {
        "hospital_id": hospital.id, "appointment_date": "2026-10-20", "appointment_time": "10:00",
    })
    assert client.table("patients").eq("profile_id", profile.id).count() == 1
    assert len(patient_appointments(client, profile)) == 1


def test_hospital_cannot_book(client, hospital_account):
    profile, hospital = hospital_account
    with pytest.raises(ValidationFailed):
        forms.book_appointment(client, profile, {
            "hospital_id": hospital.id, "appointment_date": "2026-10-20", "appointment_time": "10:00",
        })
    assert client.table("appointments").count() == 0


# -------------------------
# Doctors
# -------------------------
def test_add_doctor_uses_own_hospital(client, hospital_account):
    _, hospital = hospital_account
    doctor = forms.add_doctor(client, hospital, {
        "name": "Dr. Meena",
        "specialization": "Pediatrics",
        "hospital_id": "someone-else",
        "available_days": ["Mon", "Thu"],
        "consultation_fee": 150,
    })
    assert doctor.hospital_id == hospital.id
    assert doctor.available_days == ["Mon", "Thu"]
    assert client.table("doctors").eq("hospital_id", hospital.id).count() == 1


@pytest.mark.parametrize("data", [
    {"name": "", "specialization": "Pediatrics"},
    {"name": "Dr. Meena", "specialization": "   "},
    {"name": "Dr. Meena", "specialization": "Pediatrics", "experience_years": -1},
])
def test_add_doctor_validation(no_backend, hospital_account, data):
    _, hospital = hospital_account
    with pytest.raises(ValidationFailed):
        forms.add_doctor(no_backend, hospital, data)


# -------------------------
# Adding patients (hospital side)
# -------------------------
def test_add_existing_profile_by_phone(client, auth):
    identity = auth.sign_up("raju@example.org", "secret123", {"username": "raju", "phone": "9999999999", "user_type": "hospital"})
    profile = resolve_profile(client, identity)  # hospital role: no patient row yet
    before = client.table("patients").count()

    result = forms.add_patient(client, profile, {"phone": "9999999999"})

    assert result.created is True
    assert result.profile_id == profile.id
    assert client.table("patients").count() == before + 1
    assert client.table("patients").eq("profile_id", profile.id).count() == 1


def test_add_patient_falls_back_to_username(client, auth):
    identity = auth.sign_up("raju@example.org", "secret123", {"username": "raju", "user_type": "hospital"})
    profile = resolve_profile(client, identity)

    result = forms.add_patient(client, profile, {"phone": "0000000000", "username": "raju"})
    assert result.profile_id == profile.id
    assert result.created is True


def test_add_patient_no_match_is_an_error(client, alice_profile, hospital_account):
    before = client.table("patients").count()
    with pytest.raises(LookupMiss):
        forms.add_patient(client, hospital_account[0], {"phone": "1234512345", "username": "nobody"})
    assert client.table("patients").count() == before


def test_add_patient_already_patient(client, alice_profile, hospital_account):
    before = client.table("patients").count()
    result = forms.add_patient(client, hospital_account[0], {"username": "alice"})
    assert result.created is False
    assert client.table("patients").count() == before


def test_only_hospitals_add_patients(no_backend, alice_profile):
    with pytest.raises(ValidationFailed):
        forms.add_patient(no_backend, alice_profile, {"username": "alice"})


def test_add_patient_needs_a_key(no_backend, hospital_account):
    with pytest.raises(ValidationFailed):
        forms.add_patient(no_backend, hospital_account[0], {"phone": "", "username": " "})


# -------------------------
# Profile
# -------------------------
def test_edit_profile(client, alice_profile):
    updated = forms.edit_profile(client, alice_profile, {
        "username": "alice_d", "full_name": "Alice D", "phone": "",
    })
    assert updated.username == "alice_d"
    assert updated.phone is None
    assert updated.role is Role.PATIENT
    assert updated.id == alice_profile.id


def test_edit_profile_validation(no_backend, alice_profile):
    with pytest.raises(ValidationFailed) as exc:
        forms.edit_profile(no_backend, alice_profile, {"username": "al", "full_name": "Alice"})
    assert "username" in exc.value.fields


def test_edit_profile_duplicate_username(client, alice_profile, hospital_account):
    with pytest.raises(WriteFailed):
        forms.edit_profile(client, alice_profile, {"username": "kodai_phc", "full_name": "Alice"})
    assert client.table("profiles").eq("id", alice_profile.id).single()["username"] == "alice"


# -------------------------
# Hospitals and emergencies
# -------------------------
def test_register_hospital_once(client, hospital_account, location):
    profile, hospital = hospital_account
    again = forms.register_hospital(client, profile, {
        "hospital_name": "Other", "address": "x", "phone": "1", "location_id": location["id"],
    })
    assert again.id == hospital.id
    assert client.table("hospitals").count() == 1
    assert hospital.is_verified is False


def test_patient_cannot_register_hospital(no_backend, alice_profile, location):
    with pytest.raises(ValidationFailed):
        forms.register_hospital(no_backend, alice_profile, {
            "hospital_name": "Mine", "address": "x", "phone": "1", "location_id": location["id"],
        })


def test_raise_emergency_uses_profile_location_and_phone(client, alice_profile, location):
    alert = forms.raise_emergency(client, alice_profile, {"description": "Snake bite"})
    assert alert.status == "active"
    assert alert.alert_type == "emergency"
    assert alert.location_id == location["id"]
    assert alert.contact_number == "9999999999"


def test_raise_emergency_without_location(client, auth):
    identity = auth.sign_up("nomad@example.org", "secret123", {"username": "nomad"})
    profile = resolve_profile(client, identity)
    with pytest.raises(ValidationFailed):
        forms.raise_emergency(client, profile, {"alert_type": "ambulance"})
    assert client.table("emergency_alerts").count() == 0


def test_raise_emergency_rejects_unknown_type(no_backend, alice_profile):
    with pytest.raises(ValidationFailed):
        forms.raise_emergency(no_backend, alice_profile, {"alert_type": "fire"})


# -------------------------
# Sign up / sign in
# -------------------------
def test_sign_up_validation(no_backend, location):
    good = {
        "email": "new@example.org", "password": "secret123", "username": "newbie",
        "full_name": "New Bie", "location_id": location["id"],
    }
    for field, bad in [("email", "not-an-email"), ("password", "123"), ("username", "ab"),
                       ("full_name", "x"), ("location_id", "")]:
        with pytest.raises(ValidationFailed):
            forms.sign_up(no_backend, no_backend, {**good, field: bad})


def test_sign_up_then_sign_in(client, auth, location):
    identity = forms.sign_up(client, auth, {
        "email": "new@example.org", "password": "secret123", "username": "newbie",
        "full_name": "New Bie", "user_type": "hospital", "location_id": location["id"],
    })
    assert identity.metadata["user_type"] == "hospital"

    session = forms.sign_in(auth, {"email": "new@example.org", "password": "secret123"})
    assert session.identity.id == identity.id

    with pytest.raises(WriteFailed):
        forms.sign_in(auth, {"email": "new@example.org", "password": "wrong-one"})


def test_sign_up_rejects_taken_username(client, auth, location, alice_profile):
    data = {
        "email": "other@example.org", "password": "secret123", "username": "ALICE",
        "full_name": "Other Alice", "location_id": location["id"],
    }
    with pytest.raises(ValidationFailed) as exc:
        forms.sign_up(client, auth, data)
    assert exc.value.fields == {"username": "already taken"}

    # no account was created, so the email is still free
    with pytest.raises(WriteFailed):
        forms.sign_in(auth, {"email": "other@example.org", "password": "secret123"})
    assert forms.sign_up(client, auth, {**data, "username": "alice2"}).metadata["username"] == "alice2"


def test_username_check_treats_wildcards_literally(client, auth, location):
    client.table("profiles").insert({"user_id": "u-x", "username": "raviXk", "full_name": "Ravi", "user_type": "patient"})
    # "_" must not match the "X" above
    identity = forms.sign_up(client, auth, {
        "email": "x@example.org", "password": "secret123", "username": "ravi_k",
        "full_name": "Ravi K", "location_id": location["id"],
    })
    assert identity.metadata["username"] == "ravi_k"
