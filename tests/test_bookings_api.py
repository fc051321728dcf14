from tests.conftest import API


def _resource(client, headers):
    resp = client.post(f"{API}/resources/", headers=headers, json={"name": "Camera", "resource_type": "equipment"})
    assert resp.status_code == 201
    return resp.json()["id"]


def _book(client, headers, resource_id, start="2030-03-01T10:00:00Z", end="2030-03-01T11:00:00Z"):
    return client.post(f"{API}/bookings/", headers=headers, json={
        "resource_id": resource_id, "start_time": start, "end_time": end, "purpose": "Shoot",
    })


def test_booking_requires_organizer(client, admin, student):
    resource_id = _resource(client, admin[0])
    resp = _book(client, student[0], resource_id)
    assert resp.status_code == 403
    assert resp.json()["detail"]["current_role"] == "user"


def test_booking_lifecycle(client, admin, organizer):
    resource_id = _resource(client, admin[0])
    resp = _book(client, organizer[0], resource_id)
    assert resp.status_code == 201
    booking = resp.json()
    assert booking["status"] == "pending"
    assert booking["user_id"] == organizer[1]

    mine = client.get(f"{API}/bookings/", headers=organizer[0]).json()
    assert [b["id"] for b in mine] == [booking["id"]]
    assert client.get(f"{API}/bookings/", headers=admin[0]).json() == []

    resp = client.post(f"{API}/bookings/{booking['id']}/cancel", headers=organizer[0])
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


def test_end_must_follow_start(client, admin):
    resource_id = _resource(client, admin[0])
    resp = _book(client, admin[0], resource_id, start="2030-03-01T11:00:00Z", end="2030-03-01T10:00:00Z")
    assert resp.status_code == 422


def test_unknown_resource_is_404(client, organizer):
    assert _book(client, organizer[0], 4242).status_code == 404


def test_only_owner_or_admin_cancels(client, admin, make_user):
    resource_id = _resource(client, admin[0])
    owner_headers, _ = make_user("organizer")
    other_headers, _ = make_user("organizer")
    booking_id = _book(client, owner_headers, resource_id).json()["id"]

    assert client.post(f"{API}/bookings/{booking_id}/cancel", headers=other_headers).status_code == 403
    assert client.post(f"{API}/bookings/{booking_id}/cancel", headers=admin[0]).status_code == 200
    assert client.post(f"{API}/bookings/999/cancel", headers=admin[0]).status_code == 404


def test_double_booking_is_accepted_and_flagged(client, admin):
    resource_id = _resource(client, admin[0])
    assert _book(client, admin[0], resource_id).status_code == 201
    assert _book(client, admin[0], resource_id, start="2030-03-01T10:30:00Z", end="2030-03-01T11:30:00Z").status_code == 201
    view = client.get(f"{API}/resources/{resource_id}/availability", params={"at": "2030-03-01T10:45:00Z"}).json()
    assert view["status"] == "booked"
    assert len(view["overlaps"]) == 1
