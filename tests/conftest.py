import pytest

from db.auth import AuthService
from db.client import BackendClient, BackendError, TableQuery
from db.relational import create_backend_engine, init_db
from navigator.forms import register_hospital
from navigator.preferences import LanguagePreference
from navigator.profiles import resolve_profile


@pytest.fixture
def engine(tmp_path):
    # file-backed so loader threads each get their own connection
    eng = create_backend_engine(f"sqlite:///{tmp_path / 'navigator.db'}", echo=False)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def client(engine):
    return BackendClient(engine)


@pytest.fixture
def auth(engine):
    return AuthService(engine)


@pytest.fixture
def prefs(tmp_path):
    return LanguagePreference(tmp_path / "prefs.json")


@pytest.fixture
def location(client):
    return client.table("locations").insert({
        "name": "Kodaikanal",
        "state": "Tamil Nadu",
        "district": "Dindigul",
        "type": "town",
    })


@pytest.fixture
def alice(auth, location):
    """A signed-up (not signed-in) patient identity."""
    return auth.sign_up(
        "alice@example.org",
        "secret123",
        {
            "username": "alice",
            "full_name": "Alice Devi",
            "phone": "9999999999",
            "user_type": "patient",
            "location_id": location["id"],
        },
    )


@pytest.fixture
def alice_profile(client, alice):
    return resolve_profile(client, alice)


@pytest.fixture
def hospital_account(client, auth, location):
    identity = auth.sign_up(
        "phc@example.org",
        "secret123",
        {"username": "kodai_phc", "full_name": "Kodai PHC", "user_type": "hospital", "location_id": location["id"]},
    )
    profile = resolve_profile(client, identity)
    hospital = register_hospital(client, profile, {
        "hospital_name": "Kodaikanal Primary Health Centre",
        "address": "Lake Road",
        "phone": "04542240000",
        "location_id": location["id"],
    })
    return profile, hospital


class NoBackend:
    """Fails the test on any backend access."""

    def table(self, name):
        raise AssertionError(f"backend was called for {name!r}")


@pytest.fixture
def no_backend():
    return NoBackend()


@pytest.fixture
def profile_writes_fail(monkeypatch):
    """Every insert into profiles is rejected by the backend until monkeypatch.undo()."""
    original = TableQuery.insert

    def insert(self, values):
        if self.name == "profiles":
            raise BackendError("profiles: backend unavailable")
        return original(self, values)

    monkeypatch.setattr(TableQuery, "insert", insert)
    return monkeypatch
