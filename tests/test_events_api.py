from campus_hub_api.app.core.db import get_connection

from tests.conftest import API

EVENT = {
    "title": "Hackathon Kick-off",
    "description": "24h of code",
    "start_date": "2030-09-01T10:00:00Z",
    "end_date": "2030-09-01T18:00:00Z",
    "location": "Main Hall",
}


def _create_event(client, headers, **overrides):
    resp = client.post(f"{API}/events/", headers=headers, json={**EVENT, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()


def _stored_count(event_id):
    conn = get_connection()
    try:
        return conn.execute("SELECT attendee_count FROM events WHERE id = ?", (event_id,)).fetchone()[0]
    finally:
        conn.close()


def test_create_and_read_event(client, organizer):
    headers, user_id = organizer
    event = _create_event(client, headers)
    assert event["status"] == "active"
    assert event["attendee_count"] == 0
    assert event["organizer_id"] == user_id

    detail = client.get(f"{API}/events/{event['id']}").json()
    assert detail["organizer"]["id"] == user_id
    assert [e["id"] for e in client.get(f"{API}/events/").json()] == [event["id"]]


def test_end_before_start_is_rejected(client, organizer):
    resp = client.post(f"{API}/events/", headers=organizer[0], json={**EVENT, "end_date": "2030-08-31T10:00:00Z"})
    assert resp.status_code == 422


def test_only_owner_or_admin_edits(client, make_user, admin):
    owner, _ = make_user("organizer")
    other, _ = make_user("organizer")
    event = _create_event(client, owner)
    url = f"{API}/events/{event['id']}"

    assert client.put(url, headers=other, json={"title": "Hijacked"}).status_code == 403
    resp = client.put(url, headers=owner, json={"title": "Renamed", "location": None})
    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert resp.json()["location"] == EVENT["location"]
    assert client.put(url, headers=admin[0], json={"status": "cancelled"}).json()["status"] == "cancelled"

    assert client.delete(url, headers=other).status_code == 403
    assert client.delete(url, headers=owner).status_code == 204
    assert client.get(url).status_code == 404


def test_registration_keeps_count_consistent(client, organizer, make_user):
    event = _create_event(client, organizer[0])
    attendees = [make_user("user") for _ in range(3)]
    url = f"{API}/events/{event['id']}/attendees"

    for headers, _ in attendees:
        assert client.post(url, headers=headers).status_code == 201
    assert _stored_count(event["id"]) == 3

    resp = client.post(url, headers=attendees[0][0])
    assert resp.status_code == 400
    assert _stored_count(event["id"]) == 3

    assert client.delete(url, headers=attendees[1][0]).status_code == 204
    assert _stored_count(event["id"]) == 2
    assert client.delete(url, headers=attendees[1][0]).status_code == 400

    listed = client.get(url).json()
    assert {a["user_id"] for a in listed} == {attendees[0][1], attendees[2][1]}
    assert client.get(f"{API}/events/{event['id']}").json()["attendee_count"] == 2


def test_register_for_missing_or_inactive_event(client, organizer, student):
    assert client.post(f"{API}/events/999/attendees", headers=student[0]).status_code == 404
    event = _create_event(client, organizer[0])
    client.put(f"{API}/events/{event['id']}", headers=organizer[0], json={"status": "cancelled"})
    assert client.post(f"{API}/events/{event['id']}/attendees", headers=student[0]).status_code == 400


def test_recount_repairs_drifted_counters(client, organizer, student):
    import asyncio

    from campus_hub_api.app.services.event_service import EventService

    event = _create_event(client, organizer[0])
    client.post(f"{API}/events/{event['id']}/attendees", headers=student[0])
    conn = get_connection()
    try:
        conn.execute("UPDATE events SET attendee_count = 17")
        conn.commit()
    finally:
        conn.close()
    assert asyncio.run(EventService.recount_attendees()) == 1
    assert _stored_count(event["id"]) == 1


def test_blank_fields_are_rejected_and_listing_survives(client, organizer):
    event = _create_event(client, organizer[0])
    url = f"{API}/events/{event['id']}"

    assert client.put(url, headers=organizer[0], json={"title": ""}).status_code == 422
    assert client.put(url, headers=organizer[0], json={"location": ""}).status_code == 422
    assert client.put(url, headers=organizer[0], json={"title": "   "}).status_code == 400

    listing = client.get(f"{API}/events/")
    assert listing.status_code == 200
    assert listing.json()[0]["title"] == EVENT["title"]


def test_update_cannot_end_before_start(client, organizer):
    event = _create_event(client, organizer[0])
    url = f"{API}/events/{event['id']}"

    resp = client.put(url, headers=organizer[0], json={"end_date": "2030-08-01T10:00:00Z"})
    assert resp.status_code == 400
    resp = client.put(url, headers=organizer[0], json={"start_date": "2030-09-02T10:00:00Z"})
    assert resp.status_code == 400
    resp = client.put(
        url,
        headers=organizer[0],
        json={"start_date": "2030-10-02T10:00:00Z", "end_date": "2030-10-01T10:00:00Z"},
    )
    assert resp.status_code == 422

    stored = client.get(url).json()
    assert stored["start_date"].startswith("2030-09-01T10:00:00")
    assert stored["end_date"].startswith("2030-09-01T18:00:00")

    resp = client.put(url, headers=organizer[0], json={"start_date": "2030-09-01T12:00:00Z"})
    assert resp.status_code == 200


def test_update_missing_event_is_404(client, organizer):
    resp = client.put(f"{API}/events/999", headers=organizer[0], json={"title": "Ghost"})
    assert resp.status_code == 404
    assert client.delete(f"{API}/events/999", headers=organizer[0]).status_code == 404
