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
        json={"name": "Jamie", "email": email, "phone": "555-0105", "password": password},
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


def create_event(client: TestClient, headers: dict, name: str = "Workshop") -> int:
    r = client.post(
        "/events",
        headers=headers,
        json={
            "event_name": name,
            "email": "host@example.com",
            "phone": "555-0199",
            "location": "Lisbon",
            "event_start_date": "2030-06-01T09:00:00Z",
            "event_end_date": "2030-06-01T17:00:00Z",
            "description": "Hands-on session",
            "user_type": "professional",
            "image": "https://example.com/workshop.png",
        },
    )
    assert r.status_code == 201
    return r.json()["id"]


def setup(client: TestClient):
    register(client, "admin@example.com")
    alice = register(client, "alice@example.com")
    bob = register(client, "bob@example.com")
    promote_user1_to_admin()
    admin = bearer(login(client, "admin@example.com"))
    alice_h = bearer(login(client, "alice@example.com"))
    bob_h = bearer(login(client, "bob@example.com"))
    event_id = create_event(client, admin)
    client.post(f"/events/{event_id}/approve", headers=admin)
    return admin, (alice["id"], alice_h), (bob["id"], bob_h), event_id


def test_register_self_and_duplicate_conflicts():
    reset_db()
    client = TestClient(app)
    _, (alice_id, alice), _, event_id = setup(client)

    payload = {"user_id": alice_id, "event_id": event_id}
    assert client.post("/registrations", json=payload).status_code == 401

    r = client.post("/registrations", headers=alice, json=payload)
    assert r.status_code == 201
    body = r.json()
    assert body["user_id"] == alice_id
    assert body["event"]["id"] == event_id

    r = client.post("/registrations", headers=alice, json=payload)
    assert r.status_code == 409


def test_cannot_register_someone_else_unless_admin():
    reset_db()
    client = TestClient(app)
    admin, (alice_id, _), (_, bob), event_id = setup(client)

    r = client.post("/registrations", headers=bob, json={"user_id": alice_id, "event_id": event_id})
    assert r.status_code == 403
    assert r.json()["detail"] == "You can only register yourself for events"

    r = client.post("/registrations", headers=admin, json={"user_id": alice_id, "event_id": event_id})
    assert r.status_code == 201

    r = client.post("/registrations", headers=admin, json={"user_id": 999, "event_id": event_id})
    assert r.status_code == 404


def test_unapproved_event_cannot_be_joined():
    reset_db()
    client = TestClient(app)
    _, (alice_id, alice), (_, bob), _ = setup(client)
    pending = create_event(client, bob, name="Pending")

    r = client.post("/registrations", headers=alice, json={"user_id": alice_id, "event_id": pending})
    assert r.status_code == 404


def test_my_registrations_and_registered_events():
    reset_db()
    client = TestClient(app)
    _, (alice_id, alice), (bob_id, bob), event_id = setup(client)
    client.post("/registrations", headers=alice, json={"user_id": alice_id, "event_id": event_id})

    mine = client.get("/registrations/me", headers=alice).json()
    assert [reg["event_id"] for reg in mine] == [event_id]
    assert client.get("/registrations/me", headers=bob).json() == []

    page = client.get(f"/events/registered/{alice_id}", headers=alice).json()
    assert page["total"] == 1
    assert page["items"][0]["id"] == event_id

    assert client.get(f"/events/registered/{alice_id}", headers=bob).status_code == 403
    assert client.get(f"/users/{alice_id}/registrations", headers=bob).status_code == 403
    assert len(client.get(f"/users/{alice_id}/registrations", headers=alice).json()) == 1
    assert client.get(f"/users/{bob_id}/registrations", headers=bob).json() == []


def test_unregister_variants():
    reset_db()
    client = TestClient(app)
    admin, (alice_id, alice), (bob_id, bob), event_id = setup(client)
    client.post("/registrations", headers=alice, json={"user_id": alice_id, "event_id": event_id})
    client.post("/registrations", headers=bob, json={"user_id": bob_id, "event_id": event_id})

    r = client.delete(f"/registrations?user_id={alice_id}&event_id={event_id}", headers=bob)
    assert r.status_code == 403

    r = client.delete(f"/registrations?user_id={alice_id}&event_id={event_id}", headers=alice)
    assert r.status_code == 200
    assert r.json() is True

    r = client.delete(f"/registrations?user_id={alice_id}&event_id={event_id}", headers=admin)
    assert r.status_code == 404
    assert r.json()["detail"] == "Registration not found"

    assert client.delete(f"/registrations/me/{event_id}", headers=bob).json() is True
    r = client.delete(f"/registrations/me/{event_id}", headers=bob)
    assert r.status_code == 404
    assert r.json()["detail"] == "You are not registered for this event"


def test_admin_registration_listing():
    reset_db()
    client = TestClient(app)
    admin, (alice_id, alice), _, event_id = setup(client)
    created = client.post("/registrations", headers=alice, json={"user_id": alice_id, "event_id": event_id}).json()

    assert client.get("/registrations", headers=alice).status_code == 403
    assert client.get(f"/registrations/{created['id']}", headers=alice).status_code == 403

    listing = client.get("/registrations", headers=admin)
    assert listing.status_code == 200
    assert [reg["id"] for reg in listing.json()] == [created["id"]]

    assert client.get(f"/registrations/{created['id']}", headers=admin).json()["user_id"] == alice_id
    assert client.get("/registrations/999", headers=admin).json() is None


def test_deleting_event_drops_registrations():
    reset_db()
    client = TestClient(app)
    admin, (alice_id, alice), _, event_id = setup(client)
    client.post("/registrations", headers=alice, json={"user_id": alice_id, "event_id": event_id})

    assert client.delete(f"/events/{event_id}", headers=admin).json() is True
    assert client.get("/registrations/me", headers=alice).json() == []


def test_event_attendees_visible_to_owner_and_admin():
    reset_db()
    client = TestClient(app)
    admin, (alice_id, alice), (bob_id, bob), _ = setup(client)
    own_event = create_event(client, bob, name="Bob's meetup")
    client.post(f"/events/{own_event}/approve", headers=admin)
    client.post("/registrations", headers=alice, json={"user_id": alice_id, "event_id": own_event})
    client.post("/registrations", headers=bob, json={"user_id": bob_id, "event_id": own_event})

    r = client.get(f"/events/{own_event}/registrations", headers=bob)
    assert r.status_code == 200
    assert [reg["user_id"] for reg in r.json()] == [alice_id, bob_id]

    r = client.get(f"/events/{own_event}/users", headers=admin)
    assert r.status_code == 200
    users = r.json()
    assert [u["email"] for u in users] == ["alice@example.com", "bob@example.com"]
    assert all("password" not in u and "hashed_password" not in u for u in users)

    assert client.get(f"/events/{own_event}/users").status_code == 401
    r = client.get(f"/events/{own_event}/users", headers=alice)
    assert r.status_code == 403
    assert r.json()["detail"] == "You can only view attendees of your own events"
    assert client.get(f"/events/{own_event}/registrations", headers=alice).status_code == 403
    assert client.get("/events/999/registrations", headers=admin).status_code == 404


def test_event_without_registrations_lists_nobody():
    reset_db()
    client = TestClient(app)
    admin, _, _, event_id = setup(client)
    assert client.get(f"/events/{event_id}/registrations", headers=admin).json() == []
    assert client.get(f"/events/{event_id}/users", headers=admin).json() == []
