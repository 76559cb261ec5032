from library_dashboard.core.security import create_access_token


def test_create_and_list_users(client, staff, member):
    assert member["email"] == "reader@example.com"
    assert member["full_name"] == "Avid Reader"
    assert "password" not in member and "password_hash" not in member

    emails = [u["email"] for u in client.get("/users").json()]
    assert emails == ["reader@example.com", "staff@example.com"]
    assert client.get(f"/users/{member['id']}").json()["id"] == member["id"]

def test_unknown_user(client):
    r = client.get("/users/4242")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}

def test_duplicate_email(client, member):
    r = client.post("/users", json={"email": "Reader@Example.com", "password": "another1"})
    assert r.status_code == 409
    assert r.json() == {"error": "Email already registered"}

def test_short_password_rejected(client):
    r = client.post("/users", json={"email": "x@example.com", "password": "123"})
    assert r.status_code == 400
    assert r.json()["error"].startswith("password")

def test_login_and_me(anon_client, staff):
    r = anon_client.post("/auth/login", json={"email": "STAFF@example.com", "password": "secret123"})
    assert r.status_code == 200
    body = r.json()
    assert body["token_type"] == "bearer"

    r = anon_client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert r.status_code == 200
    assert r.json()["email"] == "staff@example.com"

def test_login_wrong_password(anon_client, staff):
    r = anon_client.post("/auth/login", json={"email": "staff@example.com", "password": "nope"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}

def test_resources_require_token(anon_client):
    for path in ["/authors", "/books", "/users", "/borrowings"]:
        r = anon_client.get(path)
        assert r.status_code == 401
        assert r.json() == {"error": "Missing session token"}

def test_invalid_and_expired_tokens(anon_client, staff):
    r = anon_client.get("/authors", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid or expired session token"}

    expired = create_access_token(staff.id, expires_minutes=-1)
    r = anon_client.get("/authors", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 401

def test_token_for_missing_user(anon_client):
    token = create_access_token(9999)
    r = anon_client.get("/books", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
