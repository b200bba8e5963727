import streamlit as st
import pandas as pd

import logging
import os
import sys

from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from db.auth import AuthService
from db.client import BackendClient, BackendError
from db.relational import get_engine, init_db
from navigator import forms
from navigator.errors import LookupMiss, NavigatorError, ValidationFailed
from navigator.i18n import LANGUAGES, get_language, translate
from navigator.loaders import (
    apply_if_current,
    hospital_dashboard_loaders,
    hospital_for,
    list_appointments_for,
    list_doctors,
    list_emergency_alerts,
    list_hospitals,
    list_locations,
    list_patients_with_profiles,
    load_slots,
    patient_dashboard_loaders,
)
from navigator.preferences import LanguagePreference
from navigator.roles import Role
from navigator.router import RoleRouter, RouteState
from navigator.routes import NOT_FOUND, resolve_route
from navigator.speech import speak
from tools.bootstrap_seed import bootstrap_if_empty

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("navigator.app")

# --------------------
# Page config
# --------------------
st.set_page_config(
    page_title="Rural Health Navigator",
    page_icon="🩺",
    layout="centered",
)

st.markdown(
    """
<style>
.block-container {
    max-width: 980px;
    padding-top: 2rem;
    padding-bottom: 3rem;
}
h1, h2, h3 { letter-spacing: -0.2px; }
div[data-testid="stVerticalBlock"] { gap: 0.6rem; }
div[data-testid="stMetricValue"] { font-size: 1.8rem; }
</style>
""",
    unsafe_allow_html=True,
)


# --------------------
# Shared backend (one per server process)
# --------------------
@st.cache_resource
def get_backend():
    engine = get_engine()
    init_db(engine)
    client = BackendClient(engine)
    report = bootstrap_if_empty(client, AuthService(engine))
    logger.info("Bootstrap: %s", report)
    return engine, client


engine, client = get_backend()

# --------------------
# Per-browser-session state: auth + router
# --------------------
if "auth" not in st.session_state:
    st.session_state["auth"] = AuthService(engine)
if "router" not in st.session_state:
    router = RoleRouter(st.session_state["auth"], client, LanguagePreference())
    router.start()
    st.session_state["router"] = router

auth: AuthService = st.session_state["auth"]
router: RoleRouter = st.session_state["router"]


def t(key: str) -> str:
    return translate(key, router.language)


def go(path: str) -> None:
    st.query_params["page"] = path
    st.rerun()


def flash(message: str, kind: str = "success") -> None:
    st.session_state["_flash"] = (kind, message)


def show_flash() -> None:
    item = st.session_state.pop("_flash", None)
    if item:
        kind, message = item
        getattr(st, kind, st.info)(message)


def reset_form(name: str, keys) -> None:
    """Clears a form's widgets on the run after a successful submit."""
    if st.session_state.pop(f"_reset_{name}", False):
        for k in keys:
            st.session_state.pop(k, None)


def mark_reset(name: str) -> None:
    st.session_state[f"_reset_{name}"] = True


def report_error(prefix: str, err: Exception) -> None:
    if isinstance(err, ValidationFailed):
        st.warning(str(err))
    elif isinstance(err, LookupMiss):
        st.warning(str(err))
    else:
        st.error(f"{prefix}: {err}")


def speaker(text: str, key: str) -> None:
    if st.button("🔊", key=key, help="Read aloud"):
        speak(text, router.language or "en")


def location_label(locations):
    names = {loc["id"]: f"{loc['name']}, {loc['state']}" for loc in locations}
    return lambda loc_id: names.get(loc_id, loc_id)


# =========================
# AUTH
# =========================
def render_auth() -> None:
    st.title("🩺 " + t("app_title"))
    st.caption(t("tagline"))
    show_flash()

    tab_in, tab_up = st.tabs(["Sign in", "Create account"])

    with tab_in:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In", type="primary")
        if submitted:
            with st.spinner(t("loading")):
                try:
                    forms.sign_in(auth, {"email": email, "password": password})
                except NavigatorError as e:
                    report_error("Sign in failed", e)
                else:
                    go("/")

    with tab_up:
        try:
            locations = list_locations(client)
        except BackendError as e:
            st.error(f"Could not load locations: {e}")
            locations = []

        with st.form("sign_up"):
            user_type = st.radio(
                "I am a",
                [Role.PATIENT, Role.HOSPITAL],
                format_func=lambda r: "🧑 Patient" if r is Role.PATIENT else "🏥 Hospital",
                horizontal=True,
            )
            username = st.text_input("Username")
            full_name = st.text_input("Full Name")
            phone = st.text_input("Phone (Optional)")
            location_id = st.selectbox(
                "Location",
                [loc["id"] for loc in locations],
                index=None,
                format_func=location_label(locations),
                placeholder="Select your location",
            )
            email_up = st.text_input("Email", key="sign_up_email")
            password_up = st.text_input("Password", type="password", key="sign_up_password")
            submitted_up = st.form_submit_button("Create Account", type="primary")
        if submitted_up:
            try:
                forms.sign_up(client, auth, {
                    "email": email_up,
                    "password": password_up,
                    "username": username,
                    "full_name": full_name,
                    "phone": phone,
                    "user_type": user_type,
                    "location_id": location_id,
                })
            except NavigatorError as e:
                report_error("Sign up failed", e)
            else:
                st.success("Account created. You can sign in now.")


# =========================
# LANGUAGE
# =========================
def render_language_select() -> None:
    st.title("🌐 " + translate("choose_language", "en"))
    for lang in LANGUAGES:
        col_a, col_b = st.columns([5, 1])
        with col_a:
            if st.button(f"{lang.native_name}  ·  {lang.name}", key=f"lang_{lang.code}", use_container_width=True):
                router.choose_language(lang.code)
                speak(f"Language selected: {lang.name}", lang.code)
                go("/")
        with col_b:
            if st.button("🔊", key=f"say_{lang.code}"):
                speak(lang.native_name, lang.code)
    st.caption("Click the speaker icon to hear the language name")


# =========================
# PATIENT DASHBOARD
# =========================
def render_patient_dashboard() -> None:
    profile = router.profile
    head, say = st.columns([6, 1])
    with head:
        st.title(f"{t('welcome')}, {profile.full_name}")
        st.caption(t("patient_dashboard"))
    with say:
        speaker(f"{t('welcome')}, {profile.full_name}", "say_patient_welcome")
    show_flash()

    st.subheader(t("quick_actions"))
    c1, c2, c3, c4 = st.columns(4)
    if c1.button("📅 " + t("book_appointment"), use_container_width=True):
        go("/book")
    if c2.button("📖 " + t("first_aid"), use_container_width=True):
        go("/first-aid")
    if c3.button("🗂 " + t("my_appointments"), use_container_width=True):
        go("/appointments")
    if c4.button("📍 " + t("find_doctors"), use_container_width=True):
        go("/doctors")

    with st.expander("🚨 " + t("raise_emergency")):
        render_emergency_form(profile)

    token = router.mount("patient-dashboard")
    with st.spinner(t("loading")):
        results = apply_if_current(router, token, load_slots(patient_dashboard_loaders(client, profile)))
    if results is None:
        return

    st.subheader(t("my_appointments"))
    slot = results["appointments"]
    if not slot.ok:
        st.warning(f"{t('appointments')}: {t('unknown')}")
    elif not slot.value:
        st.info(t("no_appointments"))
    else:
        st.dataframe(appointments_frame(slot.value), use_container_width=True, hide_index=True)


def render_emergency_form(profile) -> None:
    keys = ["em_type", "em_desc", "em_where", "em_phone"]
    reset_form("emergency", keys)
    with st.form("emergency"):
        alert_type = st.selectbox("Type", ["emergency", "ambulance", "critical"], key="em_type")
        description = st.text_area("What happened?", key="em_desc")
        patient_location = st.text_input("Where are you? (landmark, street)", key="em_where")
        contact = st.text_input("Contact number", value=profile.phone or "", key="em_phone")
        submitted = st.form_submit_button("Send alert", type="primary")
    if submitted:
        try:
            forms.raise_emergency(client, profile, {
                "alert_type": alert_type,
                "description": description,
                "patient_location": patient_location,
                "contact_number": contact,
            })
        except NavigatorError as e:
            report_error("Could not send alert", e)
        else:
            mark_reset("emergency")
            flash("Emergency alert sent. Help is being notified.", "warning")
            st.rerun()


def appointments_frame(rows) -> pd.DataFrame:
    df = pd.DataFrame(rows)
    cols = [c for c in ["appointment_date", "appointment_time", "status", "reason"] if c in df.columns]
    return df[cols].rename(columns={
        "appointment_date": "Date",
        "appointment_time": "Time",
        "status": "Status",
        "reason": "Reason",
    })


# =========================
# HOSPITAL DASHBOARD
# =========================
def render_hospital_dashboard() -> None:
    profile = router.profile
    try:
        hospital = hospital_for(client, profile)
    except BackendError as e:
        st.error(f"Could not load hospital: {e}")
        return

    if hospital is None:
        render_hospital_registration(profile)
        return

    head, say = st.columns([6, 1])
    with head:
        st.title(f"{t('welcome')}, {hospital.hospital_name}")
        st.caption(t("hospital_dashboard") + ("" if hospital.is_verified else " · not verified yet"))
    with say:
        speaker(f"{t('welcome')}, {hospital.hospital_name}", "say_hospital_welcome")
    show_flash()

    token = router.mount("hospital-dashboard")
    with st.spinner(t("loading")):
        results = apply_if_current(router, token, load_slots(hospital_dashboard_loaders(client, hospital)))
    if results is None:
        return

    st.subheader(t("stats"))
    cols = st.columns(4)
    for col, (key, label) in zip(cols, [
        ("patients", t("patients")),
        ("doctors", t("doctors")),
        ("appointments_today", t("appointments")),
        ("emergencies", t("emergencies")),
    ]):
        slot = results[key]
        col.metric(label, slot.value if slot.ok else t("unknown"))

    st.subheader(t("quick_actions"))
    c1, c2, c3, c4 = st.columns(4)
    if c1.button("👥 " + t("manage_patients"), use_container_width=True):
        go("/patients")
    if c2.button("🩺 " + t("manage_doctors"), use_container_width=True):
        go("/doctors")
    if c3.button("📅 " + t("view_appointments"), use_container_width=True):
        go("/appointments")
    if c4.button("🚨 " + t("emergency_alerts"), use_container_width=True):
        go("/emergency")

    left, right = st.columns(2)
    with left:
        render_add_doctor(hospital)
    with right:
        render_add_patient()


def render_hospital_registration(profile) -> None:
    st.title("🏥 Register your hospital")
    st.caption("Your account has no hospital details yet. Add them to open the dashboard.")
    try:
        locations = list_locations(client)
    except BackendError as e:
        st.error(f"Could not load locations: {e}")
        return

    with st.form("register_hospital"):
        name = st.text_input("Hospital name")
        address = st.text_input("Address")
        phone = st.text_input("Phone", value=profile.phone or "")
        location_ids = [loc["id"] for loc in locations]
        location_id = st.selectbox(
            "Location",
            location_ids,
            index=location_ids.index(profile.location_id) if profile.location_id in location_ids else None,
            format_func=location_label(locations),
        )
        email = st.text_input("Email (optional)")
        emergency_contact = st.text_input("Emergency contact (optional)")
        specializations = st.text_input("Specializations (comma separated)")
        submitted = st.form_submit_button("Save", type="primary")
    if submitted:
        try:
            forms.register_hospital(client, profile, {
                "hospital_name": name,
                "address": address,
                "phone": phone,
                "location_id": location_id,
                "email": email,
                "emergency_contact": emergency_contact,
                "specializations": [s.strip() for s in specializations.split(",") if s.strip()] or None,
            })
        except NavigatorError as e:
            report_error("Could not register hospital", e)
        else:
            flash("Hospital registered.")
            st.rerun()


def render_add_doctor(hospital) -> None:
    keys = ["doc_name", "doc_spec", "doc_qual", "doc_years", "doc_days", "doc_hours", "doc_fee"]
    reset_form("add_doctor", keys)
    st.markdown("### " + t("add_doctor"))
    with st.form("add_doctor"):
        name = st.text_input("Name", key="doc_name")
        specialization = st.text_input("Specialization", key="doc_spec")
        qualification = st.text_input("Qualification (optional)", key="doc_qual")
        years = st.number_input("Experience (years)", min_value=0, max_value=70, value=None, step=1, key="doc_years")
        days = st.multiselect("Available days", ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"], key="doc_days")
        hours = st.text_input("Available hours (e.g. 09:00-13:00)", key="doc_hours")
        fee = st.number_input("Consultation fee", min_value=0.0, value=None, key="doc_fee")
        submitted = st.form_submit_button(t("add_doctor"), type="primary")
    if submitted:
        try:
            doctor = forms.add_doctor(client, hospital, {
                "name": name,
                "specialization": specialization,
                "qualification": qualification,
                "experience_years": years,
                "available_days": days or None,
                "available_hours": hours,
                "consultation_fee": fee,
            })
        except NavigatorError as e:
            report_error("Could not add doctor", e)
        else:
            mark_reset("add_doctor")
            flash(f"Doctor added: {doctor.name}")
            st.rerun()


def render_add_patient() -> None:
    keys = ["pat_phone", "pat_username"]
    reset_form("add_patient", keys)
    st.markdown("### " + t("add_patient"))
    with st.form("add_patient"):
        phone = st.text_input("Phone", key="pat_phone")
        username = st.text_input("or Username", key="pat_username")
        submitted = st.form_submit_button(t("add_patient"), type="primary")
    if submitted:
        try:
            result = forms.add_patient(client, router.profile, {"phone": phone, "username": username})
        except NavigatorError as e:
            report_error("Could not add patient", e)
        else:
            mark_reset("add_patient")
            flash("Patient added." if result.created else "This person is already a patient.",
                  "success" if result.created else "info")
            st.rerun()


# =========================
# PAGES
# =========================
def render_doctors() -> None:
    st.header("🩺 Doctors")
    try:
        doctors = list_doctors(client)
    except BackendError as e:
        st.error(f"Could not load doctors: {e}")
        return

    q = st.text_input("Search by name or specialization")
    specs = sorted({d["specialization"] for d in doctors if d.get("specialization")})
    spec = st.selectbox("Filter by specialization", ["all"] + specs)

    slots = load_slots({
        "doctors": lambda: list_doctors(client, specialization=None if spec == "all" else spec, search=q),
        "hospitals": lambda: list_hospitals(client),
    })
    if not slots["doctors"].ok:
        st.error(f"Could not load doctors: {slots['doctors'].error}")
        return
    rows = slots["doctors"].value
    if not rows:
        st.info("No doctors found.")
        return

    hospitals = {h["id"]: h["hospital_name"] for h in slots["hospitals"].value or []}
    df = pd.DataFrame(rows)
    df["hospital"] = df["hospital_id"].map(hospitals).fillna(t("unknown"))
    df["available_days"] = df["available_days"].apply(lambda v: ", ".join(v) if isinstance(v, list) else "")
    st.dataframe(
        df[["name", "specialization", "qualification", "experience_years", "hospital",
            "available_days", "available_hours", "consultation_fee"]].rename(columns={
            "name": "Name", "specialization": "Specialization", "qualification": "Qualification",
            "experience_years": "Experience", "hospital": "Hospital", "available_days": "Days",
            "available_hours": "Hours", "consultation_fee": "Fee",
        }),
        use_container_width=True,
        hide_index=True,
    )


def render_appointments() -> None:
    st.header("📅 " + t("appointments"))
    try:
        rows = list_appointments_for(client, router.profile)
    except BackendError as e:
        st.error(f"Could not load appointments: {e}")
        return
    if not rows:
        st.info(t("no_appointments"))
        return
    st.dataframe(appointments_frame(rows), use_container_width=True, hide_index=True)


def render_patients() -> None:
    st.header("👥 " + t("patients"))
    q = st.text_input("Search by name, username, or phone")
    with st.spinner("Loading patients..."):
        try:
            rows = list_patients_with_profiles(client, search=q)
        except BackendError as e:
            st.error(f"Could not load patients: {e}")
            return
    if not rows:
        st.info("No patients found.")
        return
    df = pd.DataFrame(rows)
    st.dataframe(
        df[["full_name", "username", "phone", "id"]].rename(columns={
            "full_name": "Name", "username": "Username", "phone": "Phone", "id": "Patient ID",
        }),
        use_container_width=True,
        hide_index=True,
    )


def render_emergency() -> None:
    st.header("🚨 " + t("emergency_alerts"))
    profile = router.profile
    show_flash()
    if profile.role is Role.PATIENT:
        render_emergency_form(profile)
        return

    location_id = None
    try:
        if profile.role is Role.HOSPITAL:
            hospital = hospital_for(client, profile)
            location_id = hospital.location_id if hospital else None
        alerts = list_emergency_alerts(client, location_id=location_id)
    except BackendError as e:
        st.error(f"Could not load alerts: {e}")
        return
    if not alerts:
        st.info("No emergency alerts.")
        return
    for a in alerts:
        badge = {"active": "🔴", "responded": "🟠", "resolved": "🟢", "cancelled": "⚪"}.get(a["status"], "⚪")
        with st.expander(f"{badge} {a['alert_type'].upper()} · {a['status']} · {a['created_at']:%Y-%m-%d %H:%M}"):
            if a.get("description"):
                st.write(a["description"])
            if a.get("patient_location"):
                st.write("📍 " + a["patient_location"])
            if a.get("contact_number"):
                st.write("📞 " + a["contact_number"])


def render_book() -> None:
    st.header("📅 " + t("book_appointment"))
    keys = ["book_hospital", "book_doctor", "book_date", "book_time", "book_reason"]
    reset_form("book", keys)
    show_flash()
    try:
        hospitals = list_hospitals(client)
    except BackendError as e:
        st.error(f"Could not load hospitals: {e}")
        return

    names = {h["id"]: h["hospital_name"] for h in hospitals}
    hospital_id = st.selectbox(
        "Hospital", list(names), index=None, format_func=lambda i: names.get(i, i),
        placeholder="Select hospital", key="book_hospital",
    )
    doctors = []
    if hospital_id:
        slot = load_slots({"doctors": lambda: list_doctors(client, hospital_id=hospital_id)})["doctors"]
        if not slot.ok:
            st.warning(f"Could not load doctors, you can still book without one: {slot.error}")
        doctors = slot.value or []
    doctor_names = {d["id"]: f"{d['name']} ({d['specialization']})" for d in doctors}

    with st.form("book"):
        doctor_id = st.selectbox(
            "Doctor (optional)", list(doctor_names), index=None,
            format_func=lambda i: doctor_names.get(i, i), key="book_doctor",
        )
        c1, c2 = st.columns(2)
        appt_date = c1.date_input("Date", value=None, key="book_date")
        appt_time = c2.time_input("Time", value=None, key="book_time")
        reason = st.text_input("Reason (optional)", placeholder="e.g., Fever and cough", key="book_reason")
        submitted = st.form_submit_button(t("book_appointment"), type="primary")
    if submitted:
        with st.spinner("Booking..."):
            try:
                forms.book_appointment(client, router.profile, {
                    "hospital_id": hospital_id,
                    "doctor_id": doctor_id,
                    "appointment_date": appt_date,
                    "appointment_time": appt_time,
                    "reason": reason,
                })
            except NavigatorError as e:
                report_error("Booking failed", e)
            else:
                mark_reset("book")
                flash("Appointment booked. We have scheduled your appointment.")
                st.rerun()


def render_profile() -> None:
    st.header("👤 " + t("profile"))
    profile = router.profile
    show_flash()
    with st.form("profile"):
        username = st.text_input("Username", value=profile.username)
        full_name = st.text_input("Full Name", value=profile.full_name)
        phone = st.text_input("Phone", value=profile.phone or "")
        st.text_input("Account type", value=profile.role.value, disabled=True)
        submitted = st.form_submit_button("Save", type="primary")
    if submitted:
        try:
            router.profile = forms.edit_profile(client, profile, {
                "username": username, "full_name": full_name, "phone": phone,
            })
        except NavigatorError as e:
            report_error("Could not save profile", e)
        else:
            flash("Profile saved.")
            st.rerun()

    lang = get_language(router.language)
    st.caption(f"Language: {lang.name if lang else '-'}")
    if st.button("Change language"):
        router.change_language()
        go("/")
    if st.button(t("sign_out")):
        auth.sign_out()
        go("/auth")


FIRST_AID = {
    "CPR (Adults)": [
        "Check responsiveness and breathing. Call emergency services.",
        "Place heel of hand on center of chest, other hand on top.",
        "Press hard and fast: 100-120 compressions/min, depth ~5-6 cm.",
        "Allow full chest recoil; minimize interruptions.",
        "If trained, 30 compressions:2 rescue breaths.",
    ],
    "Choking (Adults)": [
        "If able to cough or speak, encourage coughing.",
        "If unable to breathe/speak: stand behind, give 5 back blows.",
        "Then 5 abdominal thrusts (Heimlich). Alternate 5/5 until relieved.",
        "If unresponsive, start CPR and check mouth for object.",
    ],
    "Severe Bleeding": [
        "Apply direct pressure with clean cloth or bandage.",
        "Elevate the bleeding area if possible.",
        "Do not remove soaked dressings; add layers and keep pressing.",
        "Use a tourniquet for life-threatening limb bleeding if trained.",
    ],
    "Burns": [
        "Cool burn under cool running water for 20 minutes.",
        "Do not use ice, butter, or creams. Do not pop blisters.",
        "Cover loosely with sterile, non-adhesive dressing.",
    ],
}


def render_first_aid() -> None:
    st.header("📖 " + t("first_aid"))
    for i, (title, steps) in enumerate(FIRST_AID.items()):
        head, say = st.columns([6, 1])
        head.markdown(f"#### {title}")
        with say:
            speaker(title + ". " + " ".join(steps), f"say_aid_{i}")
        for step in steps:
            st.write("• " + step)


PAGES = {
    "/doctors": render_doctors,
    "/appointments": render_appointments,
    "/patients": render_patients,
    "/emergency": render_emergency,
    "/book": render_book,
    "/profile": render_profile,
    "/first-aid": render_first_aid,
}


# =========================
# ROUTING
# =========================
route = resolve_route(st.query_params.get("page", "/"))

if route is NOT_FOUND:
    st.title("404")
    st.write("Oops! Page not found.")
    if st.button("Return to Home"):
        go("/")
    st.stop()

if route.path == "/auth":
    if router.is_authenticated():
        go("/")
    render_auth()
    st.stop()

if not router.is_authenticated():
    go("/auth")

with st.sidebar:
    st.markdown("### 🩺 " + t("app_title"))
    if router.profile is not None:
        st.caption(f"@{router.profile.username} · {router.profile.role.value}")
        for path in ["/", "/doctors", "/appointments", "/patients", "/emergency", "/book", "/first-aid", "/profile"]:
            r = resolve_route(path)
            if r.allows(router.role) and st.button(r.title, key=f"nav_{path}", use_container_width=True):
                go(path)
    if st.button(t("sign_out"), key="nav_sign_out"):
        auth.sign_out()
        go("/auth")

state = router.state

if state is RouteState.RESOLVING_PROFILE or state is RouteState.CHECKING_SESSION:
    with st.spinner(t("loading")):
        router.start()
    st.rerun()

if state is RouteState.RESOLUTION_FAILED:
    st.error(f"We could not load your profile: {router.error}")
    if st.button("Retry", type="primary"):
        router.retry()
        st.rerun()
    st.stop()

if state is RouteState.LANGUAGE_SELECT:
    render_language_select()
    st.stop()

if state is RouteState.ADMIN_UNSUPPORTED:
    st.info("Admin accounts have no dashboard in this app.")
    st.stop()

if not route.allows(router.role):
    st.warning("This page is not available for your account type.")
    st.stop()

if route.path in ("/", "/home"):
    if state is RouteState.PATIENT_DASHBOARD:
        render_patient_dashboard()
    else:
        render_hospital_dashboard()
else:
    PAGES[route.path]()
