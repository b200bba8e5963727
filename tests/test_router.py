import pytest

from navigator.profiles import resolve_profile
from navigator.roles import Role
from navigator.router import DASHBOARD_FOR_ROLE, RoleRouter, RouteState


@pytest.fixture
def router(auth, client, prefs):
    r = RoleRouter(auth, client, prefs)
    yield r
    r.stop()


def test_every_role_has_a_landing_state():
    assert set(DASHBOARD_FOR_ROLE) == set(Role)
    assert DASHBOARD_FOR_ROLE[Role.ADMIN] is RouteState.ADMIN_UNSUPPORTED


def test_no_session_goes_to_login(router):
    router.start()
    assert router.state is RouteState.LOGIN
    assert not router.is_authenticated()
    assert router.language is None


def test_first_login_asks_for_language_then_lands_on_dashboard(router, auth, alice, prefs):
    router.start()
    auth.sign_in_with_password("alice@example.org", "secret123")

    assert router.state is RouteState.LANGUAGE_SELECT
    assert router.profile.username == "alice"

    router.choose_language("ta")
    assert prefs.get(alice.id) == "ta"
    assert router.state is RouteState.PATIENT_DASHBOARD


def test_stored_language_skips_selection(router, auth, alice, prefs):
    prefs.set(alice.id, "hi")
    router.start()
    auth.sign_in_with_password("alice@example.org", "secret123")
    assert router.state is RouteState.PATIENT_DASHBOARD
    assert router.language == "hi"


def test_language_choice_belongs_to_one_user(auth, client, prefs, alice):
    bob = auth.sign_up("bob@example.org", "secret123", {"username": "bob"})

    router_a = RoleRouter(auth, client, prefs)
    router_a.start()
    auth.sign_in_with_password("alice@example.org", "secret123")
    router_a.choose_language("ta")
    auth.sign_out()
    router_a.stop()

    router_b = RoleRouter(auth, client, prefs)
    router_b.start()
    auth.sign_in_with_password("bob@example.org", "secret123")
    assert router_b.state is RouteState.LANGUAGE_SELECT
    assert router_b.language is None
    assert prefs.get(bob.id) is None
    assert prefs.get(alice.id) == "ta"
    router_b.stop()


def test_change_language_asks_again_for_this_user_only(router, auth, alice, prefs):
    other = auth.sign_up("bob@example.org", "secret123", {"username": "bob"})
    prefs.set(other.id, "hi")
    prefs.set(alice.id, "en")
    router.start()
    auth.sign_in_with_password("alice@example.org", "secret123")
    assert router.state is RouteState.PATIENT_DASHBOARD

    router.change_language()
    assert router.state is RouteState.LANGUAGE_SELECT
    assert prefs.get(alice.id) is None
    assert prefs.get(other.id) == "hi"

    router.choose_language("ml")
    assert router.state is RouteState.PATIENT_DASHBOARD


def test_hospital_lands_on_hospital_dashboard(router, auth, prefs, hospital_account):
    profile, _ = hospital_account
    prefs.set(profile.user_id, "en")
    router.start()
    auth.sign_in_with_password("phc@example.org", "secret123")
    assert router.state is RouteState.HOSPITAL_DASHBOARD


def test_admin_has_no_dashboard(router, auth, prefs):
    root = auth.sign_up("root@example.org", "secret123", {"user_type": "admin", "username": "root"})
    prefs.set(root.id, "en")
    router.start()
    auth.sign_in_with_password("root@example.org", "secret123")
    assert router.state is RouteState.ADMIN_UNSUPPORTED


@pytest.mark.parametrize("target", [RouteState.LANGUAGE_SELECT, RouteState.PATIENT_DASHBOARD])
def test_sign_out_returns_to_login_from_any_state(router, auth, alice, prefs, target):
    if target is RouteState.PATIENT_DASHBOARD:
        prefs.set(alice.id, "en")
    router.start()
    auth.sign_in_with_password("alice@example.org", "secret123")
    assert router.state is target

    auth.sign_out()
    assert router.state is RouteState.LOGIN
    assert router.profile is None


def test_existing_session_is_resolved_on_start(auth, client, prefs, alice):
    prefs.set(alice.id, "en")
    auth.sign_in_with_password("alice@example.org", "secret123")
    router = RoleRouter(auth, client, prefs)
    router.start()
    assert router.state is RouteState.PATIENT_DASHBOARD
    router.stop()


def test_stale_resolution_is_discarded(auth, client, prefs, alice):
    prefs.set(alice.id, "en")
    auth.sign_in_with_password("alice@example.org", "secret123")
    router = RoleRouter(auth, client, prefs)

    generation = router.start(resolve_now=False)
    assert router.state is RouteState.RESOLVING_PROFILE

    auth.sign_out()
    assert router.state is RouteState.LOGIN

    # attempt #1 finishes after the sign-out
    late_profile = resolve_profile(client, alice)
    assert router.complete_resolution(generation, late_profile) is False
    router.resolve(generation)

    assert router.state is RouteState.LOGIN
    assert router.profile is None
    router.stop()


def test_newer_sign_in_wins_over_older_attempt(auth, client, prefs, alice):
    prefs.set(alice.id, "en")
    auth.sign_up("bob@example.org", "secret123", {"user_type": "hospital", "username": "bob"})
    auth.sign_in_with_password("alice@example.org", "secret123")
    router = RoleRouter(auth, client, prefs)
    old = router.start(resolve_now=False)

    auth.sign_in_with_password("bob@example.org", "secret123")
    assert router.profile.username == "bob"

    assert router.complete_resolution(old, resolve_profile(client, alice)) is False
    assert router.profile.username == "bob"
    router.stop()


def test_resolution_failure_then_retry(auth, client, prefs, profile_writes_fail):
    identity = auth.sign_up("new@example.org", "secret123", {"username": "newbie"})
    prefs.set(identity.id, "en")
    router = RoleRouter(auth, client, prefs)
    router.start()
    auth.sign_in_with_password("new@example.org", "secret123")

    assert router.state is RouteState.RESOLUTION_FAILED
    assert router.error
    assert router.role is None

    profile_writes_fail.undo()
    router.retry()
    assert router.state is RouteState.PATIENT_DASHBOARD
    assert router.profile.user_id == identity.id
    router.stop()


def test_username_clash_at_first_login_still_resolves(router, auth, client, prefs, alice_profile):
    # both accounts declared "alice" before either had a profile
    twin = auth.sign_up("alice2@example.org", "secret123", {"username": "Alice"})
    prefs.set(twin.id, "en")
    router.start()
    auth.sign_in_with_password("alice2@example.org", "secret123")

    assert router.state is RouteState.PATIENT_DASHBOARD
    assert router.profile.user_id == twin.id
    assert router.profile.username.lower() != "alice"


def test_token_refresh_keeps_profile(router, auth, alice, prefs):
    prefs.set(alice.id, "en")
    router.start()
    auth.sign_in_with_password("alice@example.org", "secret123")
    profile = router.profile

    auth.refresh_session()
    assert router.state is RouteState.PATIENT_DASHBOARD
    assert router.profile is profile
    assert router.session is auth.get_session()


def test_view_tokens(router, auth, alice, prefs):
    prefs.set(alice.id, "en")
    router.start()
    auth.sign_in_with_password("alice@example.org", "secret123")

    first = router.mount("patient-dashboard")
    assert router.is_current(first)
    second = router.mount("doctors")
    assert not router.is_current(first)
    assert router.is_current(second)

    auth.sign_out()
    assert not router.is_current(second)
