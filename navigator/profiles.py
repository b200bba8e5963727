# navigator/profiles.py
from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from pydantic import ValidationError

from db.auth import Identity
from db.client import BackendClient, BackendError
from navigator.errors import ProfileResolutionFailed, WriteFailed
from navigator.lookups import find_patient, find_profile, username_taken
from navigator.roles import Role
from navigator.schemas import Patient, Profile

logger = logging.getLogger(__name__)


def derive_username(identity: Identity) -> str:
    """
    Declared username, else the local part of the email, else an id-derived fallback.
    """
    meta = identity.metadata or {}
    username = str(meta.get("username") or "").strip()
    if username:
        return username
    local = (identity.email or "").split("@", 1)[0].strip()
    if local:
        return local
    return "user_" + identity.id.replace("-", "")[:8]


def available_username(client: BackendClient, identity: Identity) -> str:
    """
    derive_username, suffixed with part of the identity id when another profile already has it.
    """
    base = derive_username(identity)
    if not username_taken(client, base):
        return base
    candidate = f"{base}_{identity.id.replace('-', '')[:6]}"
    n = 2
    while username_taken(client, candidate):
        candidate = f"{base}_{identity.id.replace('-', '')[:6]}{n}"
        n += 1
    return candidate


def _new_profile_values(client: BackendClient, identity: Identity) -> Dict[str, Any]:
    meta = identity.metadata or {}
    username = available_username(client, identity)
    return {
        "user_id": identity.id,
        "username": username,
        "full_name": str(meta.get("full_name") or "").strip() or username,
        "phone": str(meta.get("phone") or "").strip() or None,
        "user_type": Role.parse(meta.get("user_type"), default=Role.PATIENT).value,
        "location_id": meta.get("location_id") or None,
    }


def ensure_patient(client: BackendClient, profile_id: str) -> Tuple[Patient, bool]:
    """
    Returns the Patient row for a profile, creating an empty one on first need.
    The bool is True when this call created it.
    """
    try:
        existing = find_patient(client, profile_id)
        if existing.found:
            return Patient.model_validate(existing.row), False
        row = client.table("patients").insert({"profile_id": profile_id})
    except BackendError as e:
        raise WriteFailed(f"Could not create patient record: {e}") from e
    logger.info("Created patient record for profile %s", profile_id)
    return Patient.model_validate(row), True


def resolve_profile(client: BackendClient, identity: Identity) -> Profile:
    """
    Fetch-or-create the single profile of a signed-in identity.

    - found: returned as stored (a patient profile missing its Patient row gets one)
    - not found (first login): built from the sign-up metadata and persisted,
      plus an empty Patient row when the role is patient

    Any backend failure raises ProfileResolutionFailed; a role is never guessed.
    """
    try:
        existing = find_profile(client, identity.id)
        if existing.found:
            profile = Profile.model_validate(existing.row)
        else:
            try:
                row = client.table("profiles").insert(_new_profile_values(client, identity))
            except BackendError:
                # a concurrent first login may have created it in the meantime
                raced = find_profile(client, identity.id)
                if not raced.found:
                    raise
                row = raced.row
            else:
                logger.info("Created %s profile for %s", row["user_type"], identity.email)
            profile = Profile.model_validate(row)

        if profile.role is Role.PATIENT:
            ensure_patient(client, profile.id)
        return profile
    except (BackendError, WriteFailed, ValidationError) as e:
        logger.warning("Profile resolution failed for %s: %s", identity.id, e)
        raise ProfileResolutionFailed(str(e)) from e
