import asyncio
from datetime import datetime, timedelta, timezone

from campus_hub_api.app.services.notification_service import NotificationService
from campus_hub_api.app.services.statistics_service import percent_change, resource_label, shift_months

from tests.conftest import API


def _iso(delta):
    return (datetime.now(timezone.utc) + delta).replace(microsecond=0).isoformat()


def _event(client, headers, starts_in, title="Demo Day"):
    resp = client.post(f"{API}/events/", headers=headers, json={
        "title": title,
        "start_date": _iso(starts_in),
        "end_date": _iso(starts_in + timedelta(hours=2)),
        "location": "Atrium",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_feed_collects_all_sources(client, admin, organizer, make_user):
    student_headers, _ = make_user("user", full_name="Sam")
    event = _event(client, organizer[0], timedelta(hours=3))
    _event(client, organizer[0], timedelta(days=3), title="Later")
    client.post(f"{API}/events/{event['id']}/attendees", headers=admin[0])

    resource = client.post(f"{API}/resources/", headers=admin[0], json={"name": "Studio", "resource_type": "room"}).json()
    client.post(f"{API}/bookings/", headers=admin[0], json={
        "resource_id": resource["id"], "start_time": _iso(timedelta(hours=5)), "end_time": _iso(timedelta(hours=6)),
    })
    client.post(f"{API}/resources/", headers=organizer[0], json={"name": "Drone", "resource_type": "equipment"})

    community = client.post(f"{API}/communities/", headers=admin[0], json={"name": "Makers"}).json()
    client.post(f"{API}/communities/{community['id']}/join", headers=student_headers)
    client.post(f"{API}/communities/{community['id']}/messages", headers=student_headers, json={"message": "x" * 80})
    client.post(f"{API}/communities/{community['id']}/messages", headers=admin[0], json={"message": "own message"})

    feed = client.get(f"{API}/notifications/", headers=admin[0]).json()
    by_type = {n["type"]: n for n in feed["notifications"]}
    assert set(by_type) == {"event", "booking", "approval", "message"}
    assert feed["unread_count"] == 4
    assert by_type["event"]["message"] == "Demo Day starts in 3 hours"
    assert by_type["booking"]["message"] == "Your booking for Studio starts in 5 hours"
    assert by_type["approval"]["message"] == "1 resource pending approval"
    assert by_type["message"]["message"] == "Sam: " + "x" * 50 + "..."
    assert by_type["message"]["title"] == "New message in Makers"

    times = [datetime.fromisoformat(n["time"].replace("Z", "+00:00")) for n in feed["notifications"]]
    assert times == sorted(times, reverse=True)


def test_approvals_only_for_admins(client, organizer):
    client.post(f"{API}/resources/", headers=organizer[0], json={"name": "Drone", "resource_type": "equipment"})
    feed = client.get(f"{API}/notifications/", headers=organizer[0]).json()
    assert feed == {"notifications": [], "unread_count": 0}


def test_feed_is_capped_at_ten(client, organizer, student):
    community = client.post(f"{API}/communities/", headers=organizer[0], json={"name": "Chatty"}).json()
    client.post(f"{API}/communities/{community['id']}/join", headers=student[0])
    for n in range(5):
        event = _event(client, organizer[0], timedelta(hours=n + 1), title=f"Event {n}")
        client.post(f"{API}/events/{event['id']}/attendees", headers=student[0])
    for n in range(7):
        client.post(f"{API}/communities/{community['id']}/messages", headers=organizer[0], json={"message": f"m{n}"})

    feed = asyncio.run(NotificationService.feed(student[1], "user"))
    assert len(feed.notifications) == 10
    assert feed.unread_count == 10


def test_dashboard_stats(client, admin, student):
    event = _event(client, admin[0], timedelta(days=1))
    _event(client, admin[0], timedelta(days=2), title="Second")
    client.post(f"{API}/events/{event['id']}/attendees", headers=admin[0])
    first = client.post(f"{API}/resources/", headers=admin[0], json={"name": "Room A", "resource_type": "room"}).json()
    client.post(f"{API}/resources/", headers=admin[0], json={"name": "Room B", "resource_type": "room"})
    client.post(f"{API}/bookings/", headers=admin[0], json={
        "resource_id": first["id"], "start_time": _iso(timedelta(hours=1)), "end_time": _iso(timedelta(hours=2)),
    })
    client.post(f"{API}/communities/init", headers=admin[0])

    stats = client.get(f"{API}/dashboard/stats", headers=admin[0]).json()
    assert stats["stats"] == {
        "upcoming_events": 2,
        "booked_resources": 1,
        "communities_joined": 1,
        "resource_usage": "50%",
    }
    assert [e["is_attending"] for e in stats["recent_events"]] == [True, False]
    assert stats["user_bookings"][0]["resource"] == {"id": first["id"], "name": "Room A", "type": "room"}

    other = client.get(f"{API}/dashboard/stats", headers=student[0]).json()
    assert other["stats"]["booked_resources"] == 0
    assert other["user_bookings"] == []


def test_analytics(client, admin, student):
    assert client.get(f"{API}/analytics/").status_code == 401
    for name, kind in (("Hall", "room"), ("Lab", "room"), ("Van", "transport"), ("Cam", "av_equipment")):
        client.post(f"{API}/resources/", headers=admin[0], json={"name": name, "resource_type": kind})
    event = _event(client, admin[0], timedelta(minutes=-1))
    client.post(f"{API}/events/{event['id']}/attendees", headers=student[0])

    data = client.get(f"{API}/analytics/", headers=student[0]).json()
    assert data["stats"] == {"total_events": 1, "total_attendees": 1, "total_bookings": 0}
    assert len(data["event_data"]) == 6
    assert data["event_data"][-1]["month"] == datetime.now(timezone.utc).strftime("%b")
    assert data["event_data"][-1]["events"] == 1
    assert data["event_data"][-1]["attendees"] == 1
    assert {r["name"]: r["value"] for r in data["resource_data"]} == {"Room": 50, "Transport": 25, "Av equipment": 25}
    assert data["changes"] == {"events": 0, "attendees": 0, "bookings": 0}


def test_statistics_helpers():
    assert shift_months(datetime(2025, 3, 31), -1) == datetime(2025, 2, 28)
    assert shift_months(datetime(2025, 1, 15), -2) == datetime(2024, 11, 15)
    assert percent_change(6, 4) == 50
    assert percent_change(3, 0) == 0
    assert resource_label("meeting_room") == "Meeting room"
