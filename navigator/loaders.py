# navigator/loaders.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from db.client import BackendClient
from navigator.lookups import find_hospital, find_patient
from navigator.roles import Role
from navigator.router import RoleRouter, ViewToken
from navigator.schemas import Hospital, Profile

logger = logging.getLogger(__name__)

Loader = Callable[[], Any]


@dataclass
class SlotResult:
    """One dashboard widget. value=None with an error means "unknown"."""
    name: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _run_slot(name: str, loader: Loader, retries: int) -> SlotResult:
    last_error = None
    for attempt in range(retries + 1):
        try:
            return SlotResult(name=name, value=loader())
        except Exception as e:
            last_error = e
            logger.warning("Loader %s failed (attempt %d/%d): %s", name, attempt + 1, retries + 1, e)
    return SlotResult(name=name, value=None, error=str(last_error))


def load_slots(loaders: Dict[str, Loader], retries: int = 1, max_workers: int = 4) -> Dict[str, SlotResult]:
    """
    Runs independent read loaders concurrently.
    Each slot gets `retries` extra attempts; a slot that still fails is reported as
    unknown without touching its siblings.
    """
    if not loaders:
        return {}
    workers = max(1, min(max_workers, len(loaders)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {name: pool.submit(_run_slot, name, fn, retries) for name, fn in loaders.items()}
        return {name: fut.result() for name, fut in futures.items()}


def apply_if_current(router: RoleRouter, token: ViewToken, results: Dict[str, SlotResult]) -> Optional[Dict[str, SlotResult]]:
    """Returns results only if the view that requested them is still the mounted one."""
    if not router.is_current(token):
        logger.info("Discarding late results for %s", token.view)
        return None
    return results


# ============================================================
# Dashboards
# ============================================================

def hospital_dashboard_loaders(client: BackendClient, hospital: Hospital, today: Optional[date] = None) -> Dict[str, Loader]:
    today = today or date.today()
    return {
        "patients": lambda: client.table("patients").count(),
        "doctors": lambda: client.table("doctors").eq("hospital_id", hospital.id).count(),
        "appointments_today": lambda: (
            client.table("appointments").eq("hospital_id", hospital.id).eq("appointment_date", today).count()
        ),
        "emergencies": lambda: (
            client.table("emergency_alerts").eq("status", "active").eq("location_id", hospital.location_id).count()
        ),
    }


def patient_appointments(client: BackendClient, profile: Profile) -> List[Dict[str, Any]]:
    """The patient's own appointments, most recent first. No Patient row yet means none."""
    patient = find_patient(client, profile.id)
    if not patient.found:
        return []
    return (
        client.table("appointments")
        .select("id", "hospital_id", "doctor_id", "appointment_date", "appointment_time", "status", "reason")
        .eq("patient_id", patient.row["id"])
        .order("appointment_date", desc=True)
        .order("appointment_time", desc=True)
        .execute()
    )


def patient_dashboard_loaders(client: BackendClient, profile: Profile) -> Dict[str, Loader]:
    return {"appointments": lambda: patient_appointments(client, profile)}


# ============================================================
# Page listings
# ============================================================

def list_locations(client: BackendClient) -> List[Dict[str, Any]]:
    return client.table("locations").order("name").execute()


def list_hospitals(client: BackendClient) -> List[Dict[str, Any]]:
    return client.table("hospitals").select("id", "hospital_name", "location_id").order("hospital_name").execute()


def list_doctors(
    client: BackendClient,
    specialization: Optional[str] = None,
    search: str = "",
    hospital_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    query = client.table("doctors").order("name")
    if hospital_id:
        query = query.eq("hospital_id", hospital_id)
    if specialization:
        query = query.eq("specialization", specialization)
    doctors = query.execute()

    q = (search or "").strip().lower()
    if not q:
        return doctors
    return [
        d for d in doctors
        if q in (d.get("name") or "").lower() or q in (d.get("specialization") or "").lower()
    ]


def list_appointments_for(client: BackendClient, profile: Profile) -> List[Dict[str, Any]]:
    """
    Patient: own appointments. Hospital: appointments at its hospital.
    Newest date first. Admin sees nothing here.
    """
    if profile.role is Role.PATIENT:
        return patient_appointments(client, profile)
    if profile.role is Role.HOSPITAL:
        hospital = find_hospital(client, profile.id)
        if not hospital.found:
            return []
        return (
            client.table("appointments")
            .eq("hospital_id", hospital.row["id"])
            .order("appointment_date", desc=True)
            .order("appointment_time", desc=True)
            .execute()
        )
    return []


def list_emergency_alerts(client: BackendClient, location_id: Optional[str] = None) -> List[Dict[str, Any]]:
    query = client.table("emergency_alerts").order("created_at", desc=True)
    if location_id:
        query = query.eq("location_id", location_id)
    return query.execute()


def list_patients_with_profiles(client: BackendClient, search: str = "") -> List[Dict[str, Any]]:
    """
    Patients joined with their profile's name, username and phone; newest first.
    search matches any of the three, case-insensitively.
    """
    patients = client.table("patients").select("id", "profile_id", "created_at").order("created_at", desc=True).execute()
    if not patients:
        return []

    profiles = (
        client.table("profiles")
        .select("id", "username", "full_name", "phone")
        .in_("id", [p["profile_id"] for p in patients])
        .execute()
    )
    by_id = {p["id"]: p for p in profiles}

    rows = []
    for p in patients:
        prof = by_id.get(p["profile_id"])
        if prof is None:
            continue
        rows.append({
            "id": p["id"],
            "profile_id": p["profile_id"],
            "full_name": prof.get("full_name") or "",
            "username": prof.get("username") or "",
            "phone": prof.get("phone") or "",
        })

    q = (search or "").strip().lower()
    if q:
        rows = [r for r in rows if q in r["full_name"].lower() or q in r["username"].lower() or q in r["phone"].lower()]
    return rows


def hospital_for(client: BackendClient, profile: Profile) -> Optional[Hospital]:
    """The hospital row of a hospital-role profile, None when it is not registered yet."""
    hospital = find_hospital(client, profile.id)
    return Hospital.model_validate(hospital.row) if hospital.found else None
