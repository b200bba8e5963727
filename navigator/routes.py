# navigator/routes.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from navigator.roles import Role

ALL_ROLES: FrozenSet[Role] = frozenset(Role)


@dataclass(frozen=True)
class Route:
    path: str
    title: str
    protected: bool = True
    roles: FrozenSet[Role] = ALL_ROLES

    def allows(self, role: Optional[Role]) -> bool:
        if not self.protected:
            return True
        return role is not None and role in self.roles


NOT_FOUND = Route(path="*", title="Page not found", protected=False)

ROUTES: Dict[str, Route] = {
    r.path: r
    for r in [
        Route("/", "Home"),
        Route("/auth", "Sign in", protected=False),
        Route("/home", "Home"),
        Route("/doctors", "Doctors"),
        Route("/appointments", "Appointments"),
        Route("/patients", "Patients", roles=frozenset({Role.HOSPITAL})),
        Route("/emergency", "Emergency Alerts"),
        Route("/book", "Book Appointment", roles=frozenset({Role.PATIENT})),
        Route("/profile", "My Profile"),
        Route("/first-aid", "First Aid Guide"),
    ]
}


def normalize_path(path: Optional[str]) -> str:
    path = (path or "/").strip()
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def resolve_route(path: Optional[str]) -> Route:
    return ROUTES.get(normalize_path(path), NOT_FOUND)
