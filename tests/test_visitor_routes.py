import json

from conftest import auth_headers_for
from frontdesk.db.models import UserRole
from frontdesk.socket.events import ACTIVE_VISITORS_EVENT, active_visitors_payload

CHECK_IN_BODY = {
    "fullName": "Jane Doe",
    "phoneNumber": "5551234567",
    "residentName": "Mary Doe",
    "roomNumber": "12B",
    "visitPurpose": "family visit",
    "familyMembers": [{"firstName": "Tom", "lastName": "Doe", "relationship": "son"}],
}


def _check_in(client, headers, **overrides) -> dict:
    body = {**CHECK_IN_BODY, **overrides}
    response = client.post("/api/v1/visitors/check-in", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def test_visitor_routes_require_authentication(client):
    response = client.get("/api/v1/visitors/active")
    assert response.status_code == 401
    assert response.headers["X-Redirect-To"] == "/login"


def test_visitor_routes_reject_other_roles(client, hierarchy_headers):
    assert client.get("/api/v1/visitors/active", headers=hierarchy_headers).status_code == 403


def test_super_admin_reaches_front_desk_routes(client, make_user):
    headers = auth_headers_for(make_user(UserRole.super_admin))
    assert client.get("/api/v1/visitors/active", headers=headers).status_code == 200


def test_check_in_then_check_out_round_trip(client, front_desk_headers):
    visitor = _check_in(client, front_desk_headers)
    assert visitor["status"] == "checked-in"
    assert visitor["badgeNumber"].startswith("B")
    assert visitor["familyMembers"][0]["firstName"] == "Tom"

    active = client.get("/api/v1/visitors/active", headers=front_desk_headers).json()["data"]
    assert [row["id"] for row in active] == [visitor["id"]]

    response = client.post(f"/api/v1/visitors/{visitor['id']}/check-out", headers=front_desk_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "checked-out"
    assert client.get("/api/v1/visitors/active", headers=front_desk_headers).json()["data"] == []


def test_check_out_unknown_visitor_returns_404(client, front_desk_headers):
    response = client.post("/api/v1/visitors/missing/check-out", headers=front_desk_headers)
    assert response.status_code == 404
    assert response.json() == {"message": "Visitor not found"}


def test_active_list_search(client, front_desk_headers):
    _check_in(client, front_desk_headers)
    _check_in(client, front_desk_headers, fullName="Sam Smith", residentName="Al Jones", roomNumber="3", phoneNumber="111")

    rows = client.get("/api/v1/visitors/active", params={"q": "smith"}, headers=front_desk_headers).json()["data"]
    assert [row["fullName"] for row in rows] == ["Sam Smith"]


def test_today_and_stats(client, front_desk_headers):
    first = _check_in(client, front_desk_headers)
    _check_in(client, front_desk_headers, fullName="Sam Smith")
    client.post(f"/api/v1/visitors/{first['id']}/check-out", headers=front_desk_headers)

    today = client.get("/api/v1/visitors/today", headers=front_desk_headers).json()["data"]
    assert len(today) == 2
    stats = client.get("/api/v1/visitors/stats", headers=front_desk_headers).json()["data"]
    assert stats == {"totalToday": 2, "currentlyInside": 1, "checkedOutToday": 1}


def test_lookup_by_id_number_and_qr(client, front_desk_headers):
    visitor = _check_in(client, front_desk_headers)

    by_id = client.get(f"/api/v1/visitors/by-id-number/{visitor['visitorIdNumber']}", headers=front_desk_headers)
    assert by_id.json()["data"]["id"] == visitor["id"]

    by_qr = client.post("/api/v1/visitors/lookup-qr", json={"qrCode": visitor["qrCode"]}, headers=front_desk_headers)
    assert by_qr.json()["data"]["id"] == visitor["id"]

    unknown = client.post("/api/v1/visitors/lookup-qr", json={"qrCode": "garbage"}, headers=front_desk_headers)
    assert unknown.json() == {"data": None}


def test_returning_visitor_keeps_id_number(client, front_desk_headers):
    first = _check_in(client, front_desk_headers)
    again = _check_in(
        client,
        front_desk_headers,
        visitorIdNumber=first["visitorIdNumber"],
        isReturningVisitor=True,
    )
    assert again["visitorIdNumber"] == first["visitorIdNumber"]
    assert again["id"] != first["id"]


def test_get_visitor_by_id(client, front_desk_headers):
    visitor = _check_in(client, front_desk_headers)
    response = client.get(f"/api/v1/visitors/{visitor['id']}", headers=front_desk_headers)
    assert response.json()["data"]["fullName"] == "Jane Doe"
    assert client.get("/api/v1/visitors/missing", headers=front_desk_headers).status_code == 404


def test_active_csv_export(client, front_desk_headers):
    _check_in(client, front_desk_headers)

    response = client.get("/api/v1/visitors/export/active.csv", headers=front_desk_headers)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=Active_Visitors_All_" in response.headers["content-disposition"]
    body = response.content.decode("utf-8")
    assert body.startswith("\ufeffFull Name,Phone Number,Visiting Resident,Room,Check-in Time,Visitor ID\n")
    assert '"Jane Doe","5551234567","Mary Doe","12B",' in body


def test_realtime_snapshot_lists_active_visitors(client, front_desk_headers):
    visitor = _check_in(client, front_desk_headers)

    payload = active_visitors_payload()

    assert ACTIVE_VISITORS_EVENT == "visitors.active"
    assert payload["data"]["count"] == 1
    assert payload["data"]["visitors"][0]["id"] == visitor["id"]
    json.dumps(payload)


def test_active_csv_export_honours_search(client, front_desk_headers):
    _check_in(client, front_desk_headers, fullName="Alice Smith")
    _check_in(client, front_desk_headers, fullName="Bob Jones")

    response = client.get("/api/v1/visitors/export/active.csv", params={"q": "alice"}, headers=front_desk_headers)

    assert response.status_code == 200
    assert "filename=Active_Visitors_Filtered_" in response.headers["content-disposition"]
    body = response.content.decode("utf-8")
    assert '"Alice Smith",' in body
    assert "Bob Jones" not in body
    assert len(body.split("\n")) == 2
