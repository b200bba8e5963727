import pytest

from db.client import BackendError


def _loc(client, name, state="Kerala"):
    return client.table("locations").insert({"name": name, "state": state, "type": "village"})


def test_insert_returns_generated_id_and_columns(client):
    row = _loc(client, "Wayanad")
    assert row["id"]
    assert row["name"] == "Wayanad"
    assert row["district"] is None
    assert row["created_at"] is not None


def test_eq_order_select_and_count(client):
    _loc(client, "Wayanad")
    _loc(client, "Attappadi")
    _loc(client, "Madurai", state="Tamil Nadu")

    names = [r["name"] for r in client.table("locations").eq("state", "Kerala").order("name").execute()]
    assert names == ["Attappadi", "Wayanad"]

    rows = client.table("locations").select("name").order("name", desc=True).limit(1).execute()
    assert rows == [{"name": "Wayanad"}]

    assert client.table("locations").count() == 3
    assert client.table("locations").eq("state", "Tamil Nadu").count() == 1


def test_single_and_maybe_single(client):
    _loc(client, "Wayanad")
    _loc(client, "Attappadi")

    assert client.table("locations").eq("name", "Wayanad").single()["name"] == "Wayanad"
    assert client.table("locations").eq("name", "Nowhere").maybe_single() is None

    with pytest.raises(BackendError):
        client.table("locations").eq("name", "Nowhere").single()
    with pytest.raises(BackendError):
        client.table("locations").eq("state", "Kerala").maybe_single()


def test_in_filter(client):
    a = _loc(client, "Wayanad")
    b = _loc(client, "Attappadi")
    _loc(client, "Madurai")
    rows = client.table("locations").in_("id", [a["id"], b["id"]]).execute()
    assert {r["name"] for r in rows} == {"Wayanad", "Attappadi"}


def test_update_applies_to_filtered_rows_only(client):
    a = _loc(client, "Wayanad")
    _loc(client, "Attappadi")

    rows = client.table("locations").eq("id", a["id"]).update({"district": "Wayanad"})
    assert len(rows) == 1 and rows[0]["district"] == "Wayanad"
    assert client.table("locations").eq("name", "Attappadi").single()["district"] is None


def test_update_without_filter_is_refused(client):
    _loc(client, "Wayanad")
    with pytest.raises(BackendError):
        client.table("locations").update({"district": "x"})


def test_unknown_table_and_column(client):
    with pytest.raises(BackendError):
        client.table("nope")
    with pytest.raises(BackendError):
        client.table("locations").eq("nope", 1)
    with pytest.raises(BackendError):
        client.table("locations").insert({"name": "x", "state": "y", "type": "z", "nope": 1})


def test_constraint_violation_is_wrapped(client):
    client.table("profiles").insert({"user_id": "u1", "username": "same", "full_name": "A", "user_type": "patient"})
    with pytest.raises(BackendError):
        client.table("profiles").insert({"user_id": "u2", "username": "same", "full_name": "B", "user_type": "patient"})


def test_appointment_status_defaults_to_scheduled(client):
    from datetime import date, time

    row = client.table("appointments").insert({
        "patient_id": "p",
        "hospital_id": "h",
        "appointment_date": date(2026, 10, 20),
        "appointment_time": time(9, 30),
    })
    assert row["status"] == "scheduled"
