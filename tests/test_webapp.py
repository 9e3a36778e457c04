import importlib
import json

import pytest

pytest.importorskip("sqlmodel")
pytest.importorskip("fastapi")
from fastapi.testclient import TestClient


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("CLASSBUDGET_SQLITE", str(tmp_path / "classbudget.db"))
    monkeypatch.setenv("CLASSBUDGET_LOG_FILE", str(tmp_path / "classbudget.log"))
    config = importlib.import_module("classbudget.webapp.config")
    persistence = importlib.import_module("classbudget.webapp.persistence")
    application = importlib.import_module("classbudget.webapp.application")

    importlib.reload(config)
    importlib.reload(persistence)
    application = importlib.reload(application)
    with TestClient(application.app) as test_client:
        yield test_client


def create_class(client: TestClient, class_id: str = "gan-rimon", **overrides) -> dict:
    data = {"class_id": class_id, "name": "Gan Rimon", "amount_per_child": "200", "children_count": "25"}
    data.update(overrides)
    response = client.post("/classes", data=data)
    assert response.status_code == 201, response.text
    return response.json()


def register_children(client: TestClient, count: int, class_id: str = "gan-rimon") -> list:
    ids = []
    for index in range(count):
        child_id = f"kid-{index:02d}"
        response = client.post(
            f"/classes/{class_id}/children",
            data={"child_id": child_id, "name": f"Kid {index}", "parent_names": "Parent A, Parent B"},
        )
        assert response.status_code == 201, response.text
        ids.append(child_id)
    return ids


def test_create_class_persists_catalog(client) -> None:
    snapshot = create_class(client, staff_count="2")

    assert snapshot["mode"] == "strict"
    assert snapshot["budget"]["total_budget"] == "5000.00"
    assert len(snapshot["events"]) == 10
    assert all(not event["enabled"] for event in snapshot["events"])

    reloaded = client.get("/classes/gan-rimon").json()
    assert reloaded["budget"] == snapshot["budget"]
    assert client.get("/classes").json() == {"classes": ["gan-rimon"]}

    duplicate = client.post("/classes", data={"class_id": "gan-rimon"})
    assert duplicate.status_code == 409


def test_budget_walkthrough_over_http(client, tmp_path) -> None:
    create_class(client)
    base = "/classes/gan-rimon"

    client.post(f"{base}/events/hanukkah/amounts", data={"amount_per_kid": "50"})
    client.post(f"{base}/events/hanukkah/headcount", data={"kids_count": "25"})
    toggled = client.post(f"{base}/events/hanukkah/toggle", data={"enabled": "true"}).json()
    assert toggled["warning"] is None
    assert toggled["metrics"]["allocated"] == "1250.00"
    assert toggled["metrics"]["allocation_remaining"] == "3750.00"

    children = register_children(client, 10)
    bulk = client.post(f"{base}/payments/bulk-paid", data={"child_ids": children})
    assert bulk.status_code == 200, bulk.text
    assert bulk.json()["summary"]["collected"] == "2000.00"

    added = client.post(
        f"{base}/expenses",
        data={"description": "Sufganiyot", "amount": "300", "expense_date": "2024-12-26", "event_id": "hanukkah"},
    )
    assert added.status_code == 201, added.text
    body = added.json()
    assert body["metrics"]["spent"] == "300.00"
    assert body["metrics"]["cash_remaining"] == "1700.00"
    assert body["event_overspent"] is False

    deleted = client.delete(f"{base}/expenses/{body['expense']['expense_id']}").json()
    assert deleted["metrics"]["spent"] == "0.00"
    assert deleted["metrics"]["cash_remaining"] == "2000.00"

    metrics = client.get(f"{base}/metrics").json()
    assert metrics["allocation_remaining"] == "3750.00"
    assert metrics["collected"] == "2000.00"

    log_lines = (tmp_path / "classbudget.log").read_text(encoding="utf-8").splitlines()
    assert "expense_deleted" in {json.loads(line)["event"] for line in log_lines}


def test_strict_finish_rejected_then_permissive_warns(client) -> None:
    create_class(client, amount_per_child="100", children_count="10")
    base = "/classes/gan-rimon"

    assert client.post(f"{base}/finish").json()["error"] == "NoEventsSelectedError"

    client.post(f"{base}/events/end-of-year/amounts", data={"amount_per_kid": "120"})
    toggled = client.post(f"{base}/events/end-of-year/toggle", data={"enabled": "true"}).json()
    assert toggled["warning"]["allocation_remaining"] == "-200.00"

    rejected = client.post(f"{base}/finish")
    assert rejected.status_code == 409
    assert rejected.json() == {
        "error": "OverAllocatedError",
        "detail": rejected.json()["detail"],
        "allocation_remaining": "-200.00",
    }
    assert client.get(f"{base}/check").json()["mode"] == "strict"

    client.post(f"{base}/mode", data={"mode": "permissive"})
    finished = client.post(f"{base}/finish")
    assert finished.status_code == 200
    payload = finished.json()
    assert payload["mode"] == "permissive"
    assert payload["warning"]["over_by"] == "200.00"
    assert payload["setup"]["tasks"]["setup_budget"] == "completed"


def test_error_mapping(client) -> None:
    create_class(client)
    base = "/classes/gan-rimon"

    assert client.get("/classes/nope").status_code == 404
    assert client.post(f"{base}/events/nope/toggle", data={"enabled": "true"}).status_code == 404

    bad_amount = client.post(f"{base}/budget", data={"amount_per_child": "-5", "children_count": "3"})
    assert bad_amount.status_code == 400
    assert bad_amount.json()["error"] == "InvalidAmountError"
    assert client.get(f"{base}/metrics").json()["total"] == "5000.00"

    blank = client.post(f"{base}/expenses", data={"description": "  ", "amount": "10"})
    assert blank.json()["error"] == "EmptyDescriptionError"

    builtin = client.delete(f"{base}/events/hanukkah")
    assert builtin.status_code == 400
    assert builtin.json()["error"] == "NotCustomError"


def test_custom_events_and_overrides_survive_reload(client) -> None:
    create_class(client, staff_count="3")
    base = "/classes/gan-rimon"

    created = client.post(f"{base}/events", data={"name": "Zoo trip", "event_date": "2025-05-01"})
    assert created.status_code == 201
    event_id = created.json()["event_id"]
    client.post(f"{base}/events/{event_id}/amounts", data={"amount_per_kid": "40", "amount_per_staff": "10"})
    client.post(f"{base}/events/{event_id}/headcount", data={"kids_count": "20"})
    client.post(f"{base}/events/{event_id}/paid", data={"is_paid": "true"})

    events = {event["event_id"]: event for event in client.get(f"{base}/events").json()["events"]}
    trip = events[event_id]
    assert trip["is_custom"] is True
    assert trip["is_paid"] is True
    assert trip["event_date"] == "2025-05-01"
    assert trip["kids_count"] == 20
    assert trip["staff_count"] == 3
    assert trip["allocated_total"] == "830.00"

    reset = client.post(f"{base}/events/{event_id}/headcount/reset").json()
    assert reset["metrics"]["allocated"] == "1030.00"

    removed = client.delete(f"{base}/events/{event_id}").json()
    assert removed["metrics"]["allocated"] == "0.00"
    assert event_id not in {event["event_id"] for event in client.get(f"{base}/events").json()["events"]}


def test_fixed_budget_and_staff_count(client) -> None:
    create_class(client)
    base = "/classes/gan-rimon"

    fixed = client.post(f"{base}/budget/fixed", data={"total": "3200"}).json()
    assert fixed["metrics"]["total"] == "3200.00"
    client.post(f"{base}/staff-count", data={"staff_count": "4"})

    budget = client.get("/classes/gan-rimon").json()["budget"]
    assert budget["type"] == "fixed"
    assert budget["staff_count"] == 4
    assert budget["total_budget"] == "3200.00"


def test_payments_reminder_and_roster(client) -> None:
    create_class(client, children_count="4")
    base = "/classes/gan-rimon"
    register_children(client, 3)

    paid = client.post(f"{base}/payments/kid-00/paid", data={"amount": "180"}).json()
    assert paid["status"] == "paid"
    assert paid["amount"] == "180.00"
    client.post(f"{base}/payments/kid-01/paid")
    client.post(f"{base}/payments/kid-01/unpaid")

    payments = client.get(f"{base}/payments").json()
    assert payments["summary"]["paid_count"] == 1
    assert payments["summary"]["not_registered"] == 1
    assert payments["summary"]["collected"] == "180.00"

    reminder = client.get(f"{base}/payments/reminder", params={"locale": "en", "title": "Year fund"}).json()
    assert reminder["unpaid"] == ["kid-01", "kid-02"]
    assert "Kid 1 (Parent A, Parent B)" in reminder["message"]

    missing = client.post(f"{base}/payments/bulk-paid", data={"child_ids": ["kid-02", "ghost"]})
    assert missing.status_code == 404
    assert client.get(f"{base}/payments").json()["summary"]["paid_count"] == 1

    assert client.delete(f"{base}/children/kid-02").status_code == 200
    assert client.delete(f"{base}/children/kid-02").status_code == 404
    synced = client.post(f"{base}/roster/sync").json()
    assert synced == {"added": [], "removed": []}


def test_setup_progress_and_expense_export(client) -> None:
    create_class(client, children_count="2")
    base = "/classes/gan-rimon"

    setup = client.get(f"{base}/setup").json()
    assert setup["tasks"]["basic_info"] == "completed"
    assert setup["tasks"]["upload_children"] == "pending"

    register_children(client, 2)
    skipped = client.post(f"{base}/setup/parent_form_links/skip").json()
    assert skipped["tasks"]["upload_children"] == "completed"
    assert skipped["tasks"]["parent_form_links"] == "completed"
    linked = client.post(f"{base}/setup/payment-link", data={"link": "https://pay.example/gan"}).json()
    assert linked["payment_link"] == "https://pay.example/gan"
    assert client.get(f"{base}/setup").json()["tasks"]["parent_form_links"] == "completed"

    client.post(f"{base}/expenses", data={"description": "Paper", "amount": "12.5", "expense_date": "2024-10-01"})
    client.post(
        f"{base}/expenses",
        data={"description": "Masks", "amount": "40", "expense_date": "2024-03-01", "event_id": "purim"},
    )
    general = client.get(f"{base}/expenses", params={"general": "true"}).json()
    assert [expense["description"] for expense in general["expenses"]] == ["Paper"]
    assert general["spent"] == "12.50"

    export = client.get(f"{base}/expenses.csv")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    lines = export.text.splitlines()
    assert lines[0] == "date,description,event,amount,receipt_url"
    assert lines[1] == "2024-10-01,Paper,,12.50,"
    assert lines[2] == "2024-03-01,Masks,פורים,40.00,"

    summary = client.get(f"{base}/summary", params={"locale": "en"}).json()["summary"]
    assert "Cash on hand: -₪52.50" in summary


def test_bulk_unpaid_round_trip(client) -> None:
    create_class(client, children_count="3")
    base = "/classes/gan-rimon"
    children = register_children(client, 3)
    client.post(f"{base}/payments/bulk-paid", data={"child_ids": children})

    missing = client.post(f"{base}/payments/bulk-unpaid", data={"child_ids": ["kid-00", "ghost"]})
    assert missing.status_code == 404
    assert client.get(f"{base}/payments").json()["summary"]["collected"] == "600.00"

    reverted = client.post(f"{base}/payments/bulk-unpaid", data={"child_ids": ["kid-00", "kid-02"]})
    assert reverted.status_code == 200, reverted.text
    assert [record["status"] for record in reverted.json()["records"]] == ["unpaid", "unpaid"]

    summary = client.get(f"{base}/payments").json()["summary"]
    assert summary["paid_count"] == 1
    assert summary["collected"] == "200.00"


def test_oversized_amounts_are_rejected(client) -> None:
    create_class(client)
    base = "/classes/gan-rimon"

    for amount in ("1e27", "100000000000000000000"):
        response = client.post(f"{base}/expenses", data={"description": "Bus", "amount": amount})
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidAmountError"

    huge_event = client.post(f"{base}/events/purim/amounts", data={"amount_per_kid": "1e27"})
    assert huge_event.status_code == 400
    assert client.get(f"{base}/metrics").json()["spent"] == "0.00"
