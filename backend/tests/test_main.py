def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_domain_errors_use_detail_body(client, auth_headers):
    response = client.post("/groups/join", headers=auth_headers, json={"join_code": "ZZZZZZZZ"})
    assert response.status_code == 404
    assert response.json() == {"detail": "Invalid join code"}
