from datetime import datetime

from frontdesk.db.models import AuditLog, Visitor, VisitorStatus


def _active_visitor(db, name: str) -> Visitor:
    row = Visitor(visitor_id_number=f"VID-{name}", full_name=name, check_in_time=datetime.utcnow())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def test_no_emergency_by_default(client, front_desk_headers):
    assert client.get("/api/v1/emergency", headers=front_desk_headers).json() == {"data": None}


def test_start_reuses_active_session(client, front_desk_headers):
    first = client.post("/api/v1/emergency/start", json={"type": "fire", "description": "Wing B"}, headers=front_desk_headers)
    assert first.status_code == 200
    session = first.json()["data"]
    assert session["type"] == "fire"
    assert session["isActive"] is True

    again = client.post("/api/v1/emergency/start", json={"type": "medical"}, headers=front_desk_headers)
    assert again.json()["data"]["id"] == session["id"]


def test_start_rejects_unknown_type(client, front_desk_headers):
    response = client.post("/api/v1/emergency/start", json={"type": "flood"}, headers=front_desk_headers)
    assert response.status_code == 400


def test_evacuate_everyone_then_end(client, db, front_desk_headers):
    first = _active_visitor(db, "First")
    second = _active_visitor(db, "Second")
    client.post("/api/v1/emergency/start", json={"type": "fire"}, headers=front_desk_headers)

    response = client.post("/api/v1/emergency/evacuate", json={}, headers=front_desk_headers)

    data = response.json()["data"]
    assert data["requested"] == 2
    assert sorted(data["evacuated"]) == sorted([first.id, second.id])
    assert sorted(data["session"]["evacuatedVisitors"]) == sorted([first.id, second.id])
    db.expire_all()
    assert {row.status for row in db.query(Visitor).all()} == {VisitorStatus.emergency_evacuated.value}
    assert client.get("/api/v1/visitors/active", headers=front_desk_headers).json()["data"] == []

    ended = client.post("/api/v1/emergency/end", headers=front_desk_headers).json()["data"]
    assert ended["isActive"] is False
    assert ended["endTime"] is not None
    actions = {row.action for row in db.query(AuditLog).all()}
    assert {"emergency_started", "emergency_evacuation", "emergency_ended"} <= actions


def test_evacuate_selected_visitors_only(client, db, front_desk_headers):
    chosen = _active_visitor(db, "Chosen")
    other = _active_visitor(db, "Other")

    response = client.post("/api/v1/emergency/evacuate", json={"visitorIds": [chosen.id]}, headers=front_desk_headers)

    assert response.json()["data"]["evacuated"] == [chosen.id]
    assert response.json()["data"]["session"] is None
    db.expire_all()
    assert db.get(Visitor, other.id).status == VisitorStatus.checked_in.value


def test_end_without_emergency_is_not_found(client, front_desk_headers):
    assert client.post("/api/v1/emergency/end", headers=front_desk_headers).status_code == 404
