from tests.conftest import API


def _create_community(client, headers, name="Robotics Club"):
    resp = client.post(f"{API}/communities/", headers=headers, json={"name": name, "description": "Bots"})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_creator_becomes_organizer_member(client, organizer):
    headers, user_id = organizer
    community = _create_community(client, headers)
    assert community["member_count"] == 1
    members = client.get(f"{API}/communities/{community['id']}/members").json()
    assert [(m["user_id"], m["role"]) for m in members] == [(user_id, "organizer")]
    assert client.get(f"{API}/communities/memberships", headers=headers).json() == {"memberships": [community["id"]]}


def test_regular_user_cannot_create(client, student):
    resp = client.post(f"{API}/communities/", headers=student[0], json={"name": "Mine"})
    assert resp.status_code == 403


def test_join_and_leave_update_member_count(client, organizer, student):
    community = _create_community(client, organizer[0])
    url = f"{API}/communities/{community['id']}"

    resp = client.post(f"{url}/join", headers=student[0])
    assert resp.status_code == 201
    assert resp.json()["role"] == "user"
    assert client.get(url).json()["member_count"] == 2

    resp = client.post(f"{url}/join", headers=student[0])
    assert resp.status_code == 400
    assert client.get(url).json()["member_count"] == 2

    assert client.delete(f"{url}/join", headers=student[0]).status_code == 204
    assert client.get(url).json()["member_count"] == 1
    assert client.post(f"{API}/communities/999/join", headers=student[0]).status_code == 404


def test_messages_are_members_only(client, organizer, student, make_user):
    community = _create_community(client, organizer[0])
    url = f"{API}/communities/{community['id']}/messages"

    assert client.get(url, headers=student[0]).status_code == 403
    assert client.post(url, headers=student[0], json={"message": "hi"}).status_code == 403

    client.post(f"{API}/communities/{community['id']}/join", headers=student[0])
    first = client.post(url, headers=student[0], json={"message": "hello"})
    assert first.status_code == 201
    assert first.json()["user"]["id"] == student[1]
    client.post(url, headers=organizer[0], json={"message": "welcome"})

    messages = client.get(url, headers=student[0]).json()
    assert [m["message"] for m in messages] == ["hello", "welcome"]


def test_admin_moderates_messages(client, organizer, admin):
    community = _create_community(client, organizer[0])
    url = f"{API}/communities/{community['id']}/messages"
    message_id = client.post(url, headers=organizer[0], json={"message": "spam"}).json()["id"]

    assert client.delete(f"{url}/{message_id}", headers=organizer[0]).status_code == 403
    assert client.delete(f"{url}/{message_id}", headers=admin[0]).status_code == 204
    assert client.delete(f"{url}/{message_id}", headers=admin[0]).status_code == 404
    assert client.get(url, headers=organizer[0]).json() == []


def test_general_community_is_created_once(client, organizer, admin):
    first = client.post(f"{API}/communities/init", headers=organizer[0])
    assert first.status_code == 201
    assert first.json()["name"] == "General"
    again = client.post(f"{API}/communities/init", headers=admin[0])
    assert again.status_code == 200
    assert again.json()["id"] == first.json()["id"]
    assert len(client.get(f"{API}/communities/").json()) == 1


def test_missing_community_is_404(client):
    assert client.get(f"{API}/communities/12345").status_code == 404


def test_messages_of_missing_community_are_404(client, student):
    url = f"{API}/communities/9999/messages"
    assert client.get(url, headers=student[0]).status_code == 404
    assert client.post(url, headers=student[0], json={"message": "hello?"}).status_code == 404
