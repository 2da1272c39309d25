from api.auth import issue_token


def test_health_ok(client):
    """The root health document needs no token."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json["status"] == "ok"


def test_unknown_route_is_json_404(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert response.json == {"error": "Not Found"}


def test_wrong_method_is_json_405(client):
    response = client.put("/api/v1/parts")
    assert response.status_code == 405
    assert "error" in response.json


def test_missing_token_is_401(client):
    assert client.get("/api/v1/parts").status_code == 401
    assert client.post("/api/v1/parts/cut", json={}).status_code == 401


def test_wrong_scheme_is_401(client):
    response = client.get("/api/v1/parts", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401


def test_bad_signature_is_403(client):
    token = issue_token(1, "mallory", "admin", secret="some-other-secret")
    response = client.get("/api/v1/parts", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403


def test_expired_token_is_403(client, expired_headers):
    assert client.get("/api/v1/parts", headers=expired_headers).status_code == 403


def test_user_can_read(client, user_headers):
    assert client.get("/api/v1/parts", headers=user_headers).status_code == 200


def test_catalog_mutations_need_admin(client, user_headers):
    body = {"sku": "A-1", "category": "IC", "name": "x"}
    assert client.post("/api/v1/parts", json=body, headers=user_headers).status_code == 403
    assert client.patch("/api/v1/parts/A-1", json={}, headers=user_headers).status_code == 403
    assert client.delete("/api/v1/parts/A-1", headers=user_headers).status_code == 403


def test_admin_can_create(client, admin_headers):
    body = {"sku": "A-2", "category": "IC", "name": "x"}
    assert client.post("/api/v1/parts", json=body, headers=admin_headers).status_code == 201
