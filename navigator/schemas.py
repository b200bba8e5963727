# navigator/schemas.py
from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, field_validator, model_validator

from navigator.errors import ValidationFailed
from navigator.roles import Role


# -------------------------
# Backend rows (typed views over the dicts db.client returns)
# -------------------------
class Row(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Location(Row):
    id: str
    name: str
    state: str
    district: Optional[str] = None
    type: str


class Profile(Row):
    id: str
    user_id: str
    username: str
    full_name: str
    phone: Optional[str] = None
    user_type: Role
    location_id: Optional[str] = None

    @property
    def role(self) -> Role:
        return self.user_type


class Patient(Row):
    id: str
    profile_id: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_group: Optional[str] = None
    allergies: Optional[List[str]] = None
    medical_conditions: Optional[List[str]] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None


class Hospital(Row):
    id: str
    profile_id: str
    hospital_name: str
    address: str
    phone: str
    email: Optional[str] = None
    emergency_contact: Optional[str] = None
    location_id: str
    specializations: Optional[List[str]] = None
    is_verified: Optional[bool] = False


class Doctor(Row):
    id: str
    hospital_id: str
    name: str
    specialization: str
    qualification: Optional[str] = None
    experience_years: Optional[int] = None
    available_days: Optional[List[str]] = None
    available_hours: Optional[str] = None
    consultation_fee: Optional[float] = None


AppointmentStatus = Literal["scheduled", "confirmed", "cancelled", "completed"]
AlertStatus = Literal["active", "responded", "resolved", "cancelled"]
AlertType = Literal["ambulance", "emergency", "critical"]


class Appointment(Row):
    id: str
    patient_id: str
    hospital_id: str
    doctor_id: Optional[str] = None
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus = "scheduled"
    reason: Optional[str] = None


class EmergencyAlert(Row):
    id: str
    patient_id: str
    location_id: str
    alert_type: AlertType
    status: AlertStatus = "active"
    patient_location: Optional[str] = None
    contact_number: Optional[str] = None
    description: Optional[str] = None


# -------------------------
# Forms (user input, validated before any write)
# -------------------------
class Form(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        # empty text inputs arrive as "", treat them as "not provided"
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SignUpForm(Form):
    email: EmailStr
    password: str = Field(..., min_length=6)
    username: str = Field(..., min_length=3)
    full_name: str = Field(..., min_length=2)
    phone: Optional[str] = None
    user_type: Role = Role.PATIENT
    location_id: str = Field(..., min_length=1)


class SignInForm(Form):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class BookAppointmentForm(Form):
    hospital_id: str = Field(..., min_length=1)
    appointment_date: date
    appointment_time: time
    doctor_id: Optional[str] = None
    reason: Optional[str] = None


class AddDoctorForm(Form):
    name: str = Field(..., min_length=1)
    specialization: str = Field(..., min_length=1)
    qualification: Optional[str] = None
    experience_years: Optional[int] = Field(None, ge=0)
    available_days: Optional[List[str]] = None
    available_hours: Optional[str] = None
    consultation_fee: Optional[float] = Field(None, ge=0)


class AddPatientForm(Form):
    phone: Optional[str] = None
    username: Optional[str] = None

    @model_validator(mode="after")
    def _one_key_required(self) -> "AddPatientForm":
        if not self.phone and not self.username:
            raise ValueError("Enter a phone number or a username")
        return self


class EditProfileForm(Form):
    username: str = Field(..., min_length=3)
    full_name: str = Field(..., min_length=2)
    phone: Optional[str] = None


class HospitalRegistrationForm(Form):
    hospital_name: str = Field(..., min_length=2)
    address: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    location_id: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    emergency_contact: Optional[str] = None
    specializations: Optional[List[str]] = None


class EmergencyForm(Form):
    alert_type: AlertType = "emergency"
    description: Optional[str] = None
    patient_location: Optional[str] = None
    location_id: Optional[str] = None
    contact_number: Optional[str] = None


F = TypeVar("F", bound=Form)


def parse_form(form_cls: Type[F], data: Dict[str, Any]) -> F:
    """
    Validates raw input into a form model.
    Raises ValidationFailed with the first message as the summary (like a form toast)
    and every field's message in .fields.
    """
    try:
        return form_cls.model_validate(data)
    except ValidationError as e:
        fields: Dict[str, str] = {}
        for err in e.errors():
            name = ".".join(str(x) for x in err.get("loc", ())) or "form"
            msg = str(err.get("msg", "invalid"))
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            fields.setdefault(name, msg)
        first_name, first_msg = next(iter(fields.items()))
        summary = first_msg if first_name == "form" else f"{first_name.replace('_', ' ')}: {first_msg}"
        raise ValidationFailed(summary, fields) from e
