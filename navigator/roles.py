# navigator/roles.py
from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    PATIENT = "patient"
    HOSPITAL = "hospital"
    ADMIN = "admin"

    @classmethod
    def parse(cls, raw: Optional[str], default: Optional["Role"] = None) -> "Role":
        """
        Backend string -> Role.
        Unknown or empty values raise ValueError unless a default is given.
        """
        value = (raw or "").strip().lower()
        for role in cls:
            if role.value == value:
                return role
        if default is not None:
            return default
        raise ValueError(f"Unknown role: {raw!r}")
