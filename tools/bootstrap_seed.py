# tools/bootstrap_seed.py
from __future__ import annotations

import logging
import os
from pathlib import Path

import pandas as pd

from db.auth import AuthError, AuthService
from db.client import BackendClient
from navigator.errors import NavigatorError
from navigator.forms import register_hospital
from navigator.profiles import resolve_profile
from navigator.roles import Role

logger = logging.getLogger(__name__)

PROJECT_DIR = Path(__file__).resolve().parents[1]
SEED_DIR = Path(os.getenv("NAVIGATOR_SEED_DIR", str(PROJECT_DIR / "seed_data")))
SEED_LOCATIONS_CSV = SEED_DIR / "locations.csv"
SEED_HOSPITALS_CSV = SEED_DIR / "hospitals.csv"


def _cell(row, col: str) -> str:
    v = row.get(col, "")
    if pd.isna(v):
        return ""
    return str(v).strip()


def _import_locations(client: BackendClient, csv_path: Path) -> dict:
    """Inserts every CSV row. Returns name -> location id."""
    by_name = {}
    df = pd.read_csv(csv_path, dtype=str)
    for _, row in df.iterrows():
        name = _cell(row, "name")
        if not name:
            continue
        created = client.table("locations").insert({
            "name": name,
            "state": _cell(row, "state"),
            "district": _cell(row, "district") or None,
            "type": _cell(row, "type") or "village",
        })
        by_name[name.lower()] = created["id"]
    return by_name


def _import_hospitals(client: BackendClient, auth: AuthService, csv_path: Path, locations: dict) -> int:
    """
    Each row becomes a hospital account: auth user -> profile -> hospital row,
    through the same code path a hospital signing up in the app would take.
    """
    imported = 0
    df = pd.read_csv(csv_path, dtype=str)
    for _, row in df.iterrows():
        location_id = locations.get(_cell(row, "location").lower())
        if not location_id:
            logger.warning("Skipping hospital %s: unknown location %r", _cell(row, "hospital_name"), _cell(row, "location"))
            continue

        try:
            identity = auth.sign_up(
                _cell(row, "email"),
                _cell(row, "password"),
                metadata={
                    "username": _cell(row, "username"),
                    "full_name": _cell(row, "hospital_name"),
                    "phone": _cell(row, "phone"),
                    "user_type": Role.HOSPITAL.value,
                    "location_id": location_id,
                },
            )
            profile = resolve_profile(client, identity)
            register_hospital(client, profile, {
                "hospital_name": _cell(row, "hospital_name"),
                "address": _cell(row, "address"),
                "phone": _cell(row, "phone"),
                "location_id": location_id,
                "email": _cell(row, "email"),
            })
        except (AuthError, NavigatorError) as e:
            logger.warning("Skipping hospital %s: %s", _cell(row, "hospital_name"), e)
            continue
        imported += 1
    return imported


def bootstrap_if_empty(client: BackendClient, auth: AuthService, seed_dir: Path = None) -> dict:
    """
    Seed reference data from seed_data/ if the DB has no locations yet.
    Without locations nobody can sign up, so the app calls this on startup.
    """
    seed_dir = Path(seed_dir) if seed_dir else SEED_DIR
    report = {"imported_locations": 0, "imported_hospitals": 0, "skipped": False}

    if client.table("locations").count() > 0:
        report["skipped"] = True
        report["reason"] = "DB already has data."
        return report

    locations = {}
    locations_csv = seed_dir / SEED_LOCATIONS_CSV.name
    if locations_csv.exists():
        locations = _import_locations(client, locations_csv)
        report["imported_locations"] = len(locations)

    hospitals_csv = seed_dir / SEED_HOSPITALS_CSV.name
    if hospitals_csv.exists() and locations:
        report["imported_hospitals"] = _import_hospitals(client, auth, hospitals_csv, locations)

    return report
