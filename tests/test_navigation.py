def test_navigation_without_token(client):
    data = client.get("/api/v1/navigation").json()["data"]
    assert data == {"authenticated": False, "role": None, "navItems": [], "defaultPath": "/login"}


def test_navigation_for_front_desk(client, front_desk_headers):
    data = client.get("/api/v1/navigation", headers=front_desk_headers).json()["data"]
    assert data["authenticated"] is True
    assert data["role"] == "front-desk"
    assert data["defaultPath"] == "/front-desk"
    assert [item["path"] for item in data["navItems"]] == ["/front-desk"]


def test_guard_responses(client, front_desk_headers, admin_headers):
    anonymous = client.get("/api/v1/navigation/guard/admin").json()["data"]
    assert anonymous == {"view": "admin", "allowed": False, "redirectTo": "/login"}

    denied = client.get("/api/v1/navigation/guard/admin", headers=front_desk_headers).json()["data"]
    assert denied["allowed"] is False
    assert denied["redirectTo"] == "/"

    allowed = client.get("/api/v1/navigation/guard/reports", headers=admin_headers).json()["data"]
    assert allowed == {"view": "reports", "allowed": True, "redirectTo": None}


def test_health_reports_database_probe(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"]["success"] is True
    assert body["facility"] == "Nazareth Hospital"
    assert response.headers["X-Request-ID"]
