import json
from decimal import Decimal

from cashdrawer.models.section import Section


def _open(client, auth, section="S1", cash="300.00", actor="cashier-1", branch="B1"):
    return client.post(
        "/shifts/open",
        json={"branch_id": branch, "section_id": section, "opening_cash": cash},
        headers=auth(actor),
    )


def test_open_requires_actor(client):
    r = client.post("/shifts/open", json={"branch_id": "B1", "section_id": "S1", "opening_cash": 0})
    assert r.status_code == 401


def test_full_flow_open_move_close(client, auth, add_sale):
    r = _open(client, auth)
    assert r.status_code == 200, r.text
    shift = r.json()
    assert shift["status"] == "OPEN" and shift["adopted"] is False
    sid = shift["id"]

    r = client.post(f"/shifts/{sid}/movements", json={"type": "PAY_IN", "amount": "50.00"}, headers=auth())
    assert r.status_code == 200, r.text
    r = client.post(
        f"/shifts/{sid}/movements",
        json={"type": "PAY_OUT", "amount": 20, "note": "ice delivery"},
        headers=auth(),
    )
    assert r.status_code == 200, r.text
    add_sale(sid, "120.00")

    r = client.get(f"/shifts/{sid}/summary")
    assert Decimal(r.json()["expected_cash"]) == Decimal("450.00")

    r = client.put(f"/shifts/{sid}/close", json={"closing_cash": "445.00"}, headers=auth())
    assert r.status_code == 200, r.text
    closed = r.json()
    assert closed["status"] == "CLOSED"
    assert Decimal(closed["expected_cash"]) == Decimal("450.00")
    assert Decimal(closed["difference"]) == Decimal("-5.00")
    assert closed["already_closed"] is False

    movements = client.get(f"/shifts/{sid}/movements").json()
    assert [m["type"] for m in movements] == ["PAY_OUT", "PAY_IN"]


def test_second_open_adopts_winner(client, auth):
    first = _open(client, auth).json()
    r = _open(client, auth, cash="10", actor="cashier-2")
    assert r.status_code == 200
    assert r.json()["id"] == first["id"]
    assert r.json()["adopted"] is True


def test_open_uses_header_branch_and_validates(client, auth):
    r = client.post("/shifts/open", json={"section_id": "S1", "opening_cash": "-1"}, headers=auth())
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"

    r = client.post("/shifts/open", json={"section_id": "S1", "opening_cash": "0"}, headers=auth())
    assert r.status_code == 200
    assert r.json()["branch_id"] == "B1"


def test_close_twice_returns_existing_summary(client, auth):
    sid = _open(client, auth).json()["id"]
    first = client.put(f"/shifts/{sid}/close", json={"closing_cash": "300"}, headers=auth()).json()
    r = client.put(f"/shifts/{sid}/close", json={"closing_cash": "1"}, headers=auth("manager-1"))
    assert r.status_code == 200
    again = r.json()
    assert again["already_closed"] is True
    assert again["closing_cash"] == first["closing_cash"]
    assert again["closed_at"] == first["closed_at"]
    assert again["difference"] == first["difference"]


def test_movement_errors(client, auth):
    sid = _open(client, auth).json()["id"]
    r = client.post(f"/shifts/{sid}/movements", json={"type": "PAY_IN", "amount": "0"}, headers=auth())
    assert r.status_code == 422
    assert r.json()["code"] == "INVALID_AMOUNT"

    client.put(f"/shifts/{sid}/close", json={"closing_cash": "300"}, headers=auth())
    r = client.post(f"/shifts/{sid}/movements", json={"type": "PAY_IN", "amount": "5"}, headers=auth())
    assert r.status_code == 409
    assert r.json()["code"] == "SHIFT_CLOSED"
    assert client.get(f"/shifts/{sid}/movements").json() == []

    r = client.post("/shifts/nope/movements", json={"type": "PAY_IN", "amount": "5"}, headers=auth())
    assert r.status_code == 404


def test_current_endpoints(client, auth):
    assert client.get("/shifts/current/me", headers=auth()).json() is None
    sid = _open(client, auth, section="S2").json()["id"]

    assert client.get("/shifts/current/me", headers=auth()).json()["id"] == sid
    assert client.get("/shifts/current", headers=auth("other")).json()["id"] == sid
    assert client.get("/shifts/current/branch", headers=auth("other")).json()["id"] == sid
    r = client.get("/shifts/current", params={"branch_id": "B1", "section_id": "S1"}, headers=auth())
    assert r.json() is None
    r = client.get("/shifts/current", params={"branch_id": "B1", "section_id": "S2"}, headers=auth())
    assert r.json()["id"] == sid


def test_list_and_get(client, auth):
    a = _open(client, auth, section="S1").json()
    b = _open(client, auth, section="S2").json()
    client.put(f"/shifts/{a['id']}/close", json={"closing_cash": "300"}, headers=auth())

    page = client.get("/shifts/list", params={"status": "OPEN"}, headers=auth()).json()
    assert page["total"] == 1 and page["items"][0]["id"] == b["id"]
    page = client.get("/shifts/list", params={"branch_id": "B1", "limit": 0}, headers=auth()).json()
    assert page["limit"] == 1 and page["total"] == 2

    assert client.get(f"/shifts/{a['id']}").json()["status"] == "CLOSED"
    assert client.get("/shifts/missing").status_code == 404


def test_resolve_endpoint_finds_open_shift(client, auth, db):
    for name in ("S1", "S2", "S3"):
        db.add(Section(id=name, branch_id="B1", name=name))
    db.commit()
    sid = _open(client, auth, section="S3", actor="cashier-9").json()["id"]

    r = client.get("/shifts/resolve", headers=auth("cashier-1", branch=None), params={"branch_id": "B1"})
    assert r.status_code == 200
    assert r.json()["id"] == sid

    r = client.get("/shifts/resolve", headers=auth("cashier-1", branch=None))
    assert r.json() is None


def test_sections_and_prefs(client, auth, db):
    db.add_all([Section(id="s-b", branch_id="B1", name="Bar"), Section(id="s-a", branch_id="B1", name="Attic")])
    db.commit()
    names = [s["name"] for s in client.get("/sections", params={"branch_id": "B1"}).json()]
    assert names == ["Attic", "Bar"]

    r = client.get("/prefs/last_shift_section", params={"branch_id": "B1"}, headers=auth())
    assert r.json()["value"] is None
    client.put("/prefs/last_shift_section", params={"branch_id": "B1"}, json={"value": "s-b"}, headers=auth())
    client.put("/prefs/last_shift_section", params={"branch_id": "B1"}, json={"value": "s-a"}, headers=auth())
    r = client.get("/prefs/last_shift_section", params={"branch_id": "B1"}, headers=auth())
    assert r.json()["value"] == "s-a"


def test_audit_file_records_transitions(client, auth, audit_path):
    sid = _open(client, auth).json()["id"]
    client.post(f"/shifts/{sid}/movements", json={"type": "PAY_OUT", "amount": "1"}, headers=auth())
    client.put(f"/shifts/{sid}/close", json={"closing_cash": "299"}, headers=auth())
    again = client.put(f"/shifts/{sid}/close", json={"closing_cash": "1"}, headers=auth())
    assert again.json()["already_closed"] is True
    client.post("/shifts/open", json={"section_id": "S2", "opening_cash": "10"}, headers=auth())

    with open(audit_path, encoding="utf-8") as f:
        events = [e for e in map(json.loads, f) if e["shift_id"] == sid]
    assert [e["kind"] for e in events] == ["shift_opened", "movement_recorded", "shift_closed"]
    assert all(e["shift_id"] == sid for e in events)
    assert events[0]["actor"] == "cashier-1"
