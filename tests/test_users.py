from fastapi.testclient import TestClient

from app.main import app
from app.db.session import Base, engine


def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, email: str, password: str = "secretpass") -> dict:
    r = client.post(
        "/users",
        json={"name": "Robin", "email": email, "phone": "555-0103", "password": password},
    )
    assert r.status_code == 201
    return r.json()


def login(client: TestClient, email: str, password: str = "secretpass") -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200
    return r.json()["access_token"]


def promote_user1_to_admin():
    with engine.begin() as conn:
        conn.exec_driver_sql("UPDATE users SET role='admin' WHERE id=1")


def test_register_normalizes_email_and_defaults_role():
    reset_db()
    client = TestClient(app)

    user = register(client, "Casey@Example.com")
    assert user["email"] == "casey@example.com"
    assert user["role"] == "user"
    assert "password" not in user and "hashed_password" not in user

    r = client.post(
        "/users",
        json={"name": "Dup", "email": "CASEY@example.com", "phone": "1", "password": "secretpass"},
    )
    assert r.status_code == 409


def test_register_rejects_short_password():
    reset_db()
    client = TestClient(app)
    r = client.post("/users", json={"name": "X", "email": "x@example.com", "phone": "1", "password": "abc"})
    assert r.status_code == 422


def test_public_user_lookup():
    reset_db()
    client = TestClient(app)
    user = register(client, "pub@example.com")

    r = client.get(f"/users/{user['id']}")
    assert r.status_code == 200
    assert r.json()["email"] == "pub@example.com"
    assert client.get("/users/999").json() is None


def test_admin_listing_and_lookup_by_email():
    reset_db()
    client = TestClient(app)
    register(client, "admin@example.com")
    register(client, "u1@example.com")
    register(client, "u2@example.com")
    promote_user1_to_admin()
    admin = bearer(login(client, "admin@example.com"))
    user = bearer(login(client, "u1@example.com"))

    assert client.get("/users").status_code == 401
    assert client.get("/users", headers=user).status_code == 403
    assert client.get("/users/by-email?email=u2@example.com", headers=user).status_code == 403

    r = client.get("/users?page=1&limit=2", headers=admin)
    assert r.status_code == 200
    page = r.json()
    assert page["total"] == 3
    assert page["totalPages"] == 2
    assert len(page["items"]) == 2

    r = client.get("/users?role=admin", headers=admin)
    assert [u["email"] for u in r.json()["items"]] == ["admin@example.com"]

    r = client.get("/users/by-email?email=U2@example.com", headers=admin)
    assert r.status_code == 200
    assert r.json()["email"] == "u2@example.com"


def test_update_user_is_self_or_admin():
    reset_db()
    client = TestClient(app)
    admin_user = register(client, "admin@example.com")
    u1 = register(client, "u1@example.com")
    u2 = register(client, "u2@example.com")
    promote_user1_to_admin()
    admin = bearer(login(client, "admin@example.com"))
    first = bearer(login(client, "u1@example.com"))

    assert client.patch(f"/users/{u1['id']}", json={"name": "Nope"}).status_code == 401

    r = client.patch(f"/users/{u1['id']}", headers=first, json={"name": "Renamed", "age": 30})
    assert r.status_code == 200
    assert r.json()["name"] == "Renamed"
    assert r.json()["age"] == 30

    r = client.patch(f"/users/{u2['id']}", headers=first, json={"name": "Hijack"})
    assert r.status_code == 403

    # non-admins cannot grant themselves a role
    r = client.patch(f"/users/{u1['id']}", headers=first, json={"role": "admin"})
    assert r.status_code == 403

    r = client.patch(f"/users/{u2['id']}", headers=admin, json={"role": "admin"})
    assert r.status_code == 200
    assert r.json()["role"] == "admin"

    r = client.patch(f"/users/{u1['id']}", headers=first, json={"email": admin_user["email"]})
    assert r.status_code == 409

    assert client.patch("/users/999", headers=admin, json={"name": "Ghost"}).status_code == 404


def test_delete_user_is_admin_only_and_kills_sessions():
    reset_db()
    client = TestClient(app)
    register(client, "admin@example.com")
    victim = register(client, "victim@example.com")
    promote_user1_to_admin()
    admin = bearer(login(client, "admin@example.com"))
    victim_token = login(client, "victim@example.com")

    assert client.delete(f"/users/{victim['id']}", headers=bearer(victim_token)).status_code == 403

    r = client.delete(f"/users/{victim['id']}", headers=admin)
    assert r.status_code == 200
    assert r.json() is True

    assert client.get("/auth/me", headers=bearer(victim_token)).status_code == 401
    assert client.delete(f"/users/{victim['id']}", headers=admin).json() is False


def test_sessions_view_is_self_or_admin_and_hides_tokens():
    reset_db()
    client = TestClient(app)
    register(client, "admin@example.com")
    u1 = register(client, "u1@example.com")
    u2 = register(client, "u2@example.com")
    promote_user1_to_admin()
    admin = bearer(login(client, "admin@example.com"))
    first = bearer(login(client, "u1@example.com"))
    login(client, "u1@example.com")

    r = client.get(f"/users/{u1['id']}/sessions", headers=first)
    assert r.status_code == 200
    sessions = r.json()
    assert len(sessions) == 2
    assert all("token" not in s for s in sessions)
    assert all(s["user_id"] == u1["id"] for s in sessions)

    assert client.get(f"/users/{u2['id']}/sessions", headers=first).status_code == 403
    assert client.get(f"/users/{u1['id']}/sessions", headers=admin).status_code == 200


def test_update_rejects_explicit_null_on_required_fields():
    reset_db()
    client = TestClient(app)
    user = register(client, "nulls@example.com")
    headers = bearer(login(client, "nulls@example.com"))

    for field in ("name", "email", "phone", "role"):
        r = client.patch(f"/users/{user['id']}", headers=headers, json={field: None})
        assert r.status_code == 422, field

    client.patch(f"/users/{user['id']}", headers=headers, json={"age": 41})
    r = client.patch(f"/users/{user['id']}", headers=headers, json={"age": None})
    assert r.status_code == 200
    assert r.json()["age"] is None
    assert r.json()["name"] == "Robin"


def test_email_collision_at_commit_is_a_conflict(monkeypatch):
    reset_db()
    client = TestClient(app)
    register(client, "first@example.com")
    second = register(client, "second@example.com")
    headers = bearer(login(client, "second@example.com"))

    # both requests pass the lookup; only the unique index sees the clash
    monkeypatch.setattr("app.routers.users._email_taken", lambda *args, **kwargs: False)

    r = client.post(
        "/users",
        json={"name": "Twin", "email": "first@example.com", "phone": "1", "password": "secretpass"},
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Email already registered"

    r = client.patch(f"/users/{second['id']}", headers=headers, json={"email": "first@example.com"})
    assert r.status_code == 409
    assert client.get(f"/users/{second['id']}").json()["email"] == "second@example.com"
