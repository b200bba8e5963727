# navigator/lookups.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from db.client import BackendClient
from navigator.errors import LookupMiss


@dataclass(frozen=True)
class Lookup:
    """
    Found / not-found result of a single-row lookup.
    Callers branch on .found or call .or_raise(); there is no silent default.
    """
    row: Optional[Dict[str, Any]] = None

    @property
    def found(self) -> bool:
        return self.row is not None

    def or_raise(self, message: str) -> Dict[str, Any]:
        if self.row is None:
            raise LookupMiss(message)
        return self.row


NOT_FOUND = Lookup(None)


def _maybe(client: BackendClient, table: str, column: str, value: Any) -> Lookup:
    if value is None or value == "":
        return NOT_FOUND
    return Lookup(client.table(table).eq(column, value).maybe_single())


def find_profile(client: BackendClient, user_id: str) -> Lookup:
    return _maybe(client, "profiles", "user_id", user_id)


def find_patient(client: BackendClient, profile_id: str) -> Lookup:
    return _maybe(client, "patients", "profile_id", profile_id)


def find_hospital(client: BackendClient, profile_id: str) -> Lookup:
    return _maybe(client, "hospitals", "profile_id", profile_id)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def username_taken(client: BackendClient, username: str) -> bool:
    """Usernames are unique regardless of case."""
    return client.table("profiles").ilike("username", _escape_like(username)).count() > 0


def find_profile_by_phone_or_username(
    client: BackendClient,
    phone: Optional[str],
    username: Optional[str],
) -> Lookup:
    """Phone first, then username."""
    if phone:
        # phone is not unique in the backend; take the oldest profile with it
        rows = client.table("profiles").eq("phone", phone).order("created_at").limit(1).execute()
        if rows:
            return Lookup(rows[0])
    return _maybe(client, "profiles", "username", username)
