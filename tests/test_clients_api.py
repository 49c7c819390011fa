"""HTTP tests for /clients."""

from sqlalchemy.exc import OperationalError

from chairbook.domain.clients.repository import ClientRepository


def create(api, **fields):
    body = {"firstName": "Grace", "lastName": "Hopper"}
    body.update(fields)
    return api.post("/clients", json=body)


def test_create_and_fetch(api):
    response = create(api, email="  Grace@Example.com ", phone="+1 (555) 010-2030")
    assert response.status_code == 201
    client = response.json()["data"]
    assert client["fullName"] == "Grace Hopper"
    assert client["email"] == "grace@example.com"

    fetched = api.get(f"/clients/{client['id']}")
    assert fetched.json()["data"]["id"] == client["id"]


def test_blank_name_is_rejected(api):
    response = create(api, firstName="   ")
    assert response.status_code == 400
    assert response.json()["reason"] == "ValidationError"


def test_invalid_email_is_rejected(api):
    assert create(api, email="not-an-email").status_code == 400


def test_search(api):
    create(api)
    create(api, firstName="Alan", lastName="Turing", email="alan@example.com")

    names = [c["lastName"] for c in api.get("/clients", params={"q": "tur"}).json()["data"]]
    assert names == ["Turing"]

    everyone = [c["lastName"] for c in api.get("/clients").json()["data"]]
    assert everyone == ["Hopper", "Turing"]


def test_partial_update(api):
    client = create(api, phone="5550102030").json()["data"]

    response = api.put(f"/clients/{client['id']}", json={"notes": "Prefers mornings"})

    updated = response.json()["data"]
    assert updated["notes"] == "Prefers mornings"
    assert updated["phone"] == client["phone"]


def test_missing_client_returns_404(api):
    assert api.get("/clients/missing").status_code == 404
    assert api.put("/clients/missing", json={"notes": "x"}).status_code == 404


def test_delete_blocked_while_booked(api, booking_refs):
    client_id, service_id = booking_refs
    api.post(
        "/appointments",
        json={
            "clientId": client_id,
            "serviceId": service_id,
            "startUtc": "2026-01-05T09:00:00Z",
            "endUtc": "2026-01-05T10:00:00Z",
        },
    )

    response = api.delete(f"/clients/{client_id}")

    assert response.status_code == 409
    assert response.json()["reason"] == "InUseError"


def test_delete(api):
    client = create(api).json()["data"]
    response = api.delete(f"/clients/{client['id']}")
    assert response.json()["data"] == {"id": client["id"], "deleted": True}
    assert api.get(f"/clients/{client['id']}").status_code == 404


def test_booking_that_lands_after_the_count_still_blocks_delete(api, booking_refs, monkeypatch):
    client_id, service_id = booking_refs
    api.post(
        "/appointments",
        json={
            "clientId": client_id,
            "serviceId": service_id,
            "startUtc": "2026-01-05T09:00:00Z",
            "endUtc": "2026-01-05T10:00:00Z",
        },
    )
    # The count sees no appointments, as if the booking arrived right after it
    monkeypatch.setattr(ClientRepository, "count_appointments", staticmethod(lambda db, cid: 0))

    response = api.delete(f"/clients/{client_id}")

    assert response.status_code == 409
    assert response.json()["reason"] == "InUseError"
    assert api.get(f"/clients/{client_id}").status_code == 200


def test_database_failure_uses_the_error_envelope(api, monkeypatch):
    def broken_create(db, user_id, **client_data):
        raise OperationalError("INSERT INTO clients", {}, Exception("disk I/O error"))

    monkeypatch.setattr(ClientRepository, "create_client", staticmethod(broken_create))

    response = create(api)

    assert response.status_code == 500
    body = response.json()
    assert body["reason"] == "StoreError"
    assert body["error"] == "Failed to create the client"
    assert api.get("/clients").status_code == 200
