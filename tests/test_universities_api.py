"""
University CRUD and the Recommended -> Shortlisted -> Locked workflow
"""

from conftest import register


def add_university(client, headers, name="University of Toronto", **fields):
    payload = {"name": name, "country": "Canada", "category": "Target", **fields}
    response = client.post("/universities", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def transition(client, headers, university_id, action):
    return client.put(f"/universities/{university_id}/{action}", headers=headers)


def stage(client, headers):
    return client.get("/auth/user", headers=headers).json()["currentStage"]


class TestUniversityCrud:

    def test_create_and_read(self, client, auth_headers):
        created = add_university(client, auth_headers, tuitionFee=45000, risks="Competitive admission")
        assert created["status"] == "Recommended"
        assert created["risks"] == ["Competitive admission"]

        response = client.get(f"/universities/{created['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["tuitionFee"] == 45000

    def test_missing_name(self, client, auth_headers):
        response = client.post("/universities", json={"country": "Canada"}, headers=auth_headers)
        assert response.status_code == 400
        assert "name" in response.json()["fields"]

    def test_list_and_filter(self, client, auth_headers):
        first = add_university(client, auth_headers, name="UBC")
        add_university(client, auth_headers, name="MIT", category="Dream")
        transition(client, auth_headers, first["id"], "shortlist")

        body = client.get("/universities", headers=auth_headers).json()
        assert body["count"] == 2

        shortlisted = client.get("/universities?status=Shortlisted", headers=auth_headers).json()
        assert [u["name"] for u in shortlisted["universities"]] == ["UBC"]

        dream = client.get("/universities?category=Dream", headers=auth_headers).json()
        assert [u["name"] for u in dream["universities"]] == ["MIT"]

    def test_other_users_university_is_not_found(self, client, auth_headers):
        created = add_university(client, auth_headers)
        intruder = register(client, email="other@b.com")

        assert client.get(f"/universities/{created['id']}", headers=intruder).status_code == 404
        assert transition(client, intruder, created["id"], "shortlist").status_code == 404
        assert client.delete(f"/universities/{created['id']}", headers=intruder).status_code == 404
        assert client.get("/universities", headers=intruder).json()["count"] == 0

    def test_unknown_university(self, client, auth_headers):
        response = client.get("/universities/999", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestWorkflow:

    def test_shortlist_lock_unlock(self, client, auth_headers):
        university = add_university(client, auth_headers)
        uid = university["id"]

        response = transition(client, auth_headers, uid, "shortlist")
        assert response.status_code == 200
        assert response.json()["university"]["status"] == "Shortlisted"
        assert stage(client, auth_headers) == "finalizing_universities"

        response = transition(client, auth_headers, uid, "lock")
        assert response.status_code == 200
        body = response.json()
        assert body["university"]["status"] == "Locked"
        assert len(body["todos"]) == 4
        assert all(todo["universityId"] == uid for todo in body["todos"])
        assert any("University of Toronto" in todo["title"] for todo in body["todos"])
        assert stage(client, auth_headers) == "preparing_applications"

        todos = client.get(f"/todos?universityId={uid}", headers=auth_headers).json()
        assert todos["count"] == 4

        response = transition(client, auth_headers, uid, "unlock")
        assert response.status_code == 200
        assert response.json()["university"]["status"] == "Shortlisted"
        assert client.get("/todos", headers=auth_headers).json()["count"] == 0
        assert stage(client, auth_headers) == "finalizing_universities"

    def test_unlock_keeps_stage_while_another_is_locked(self, client, auth_headers):
        first = add_university(client, auth_headers, name="UBC")
        second = add_university(client, auth_headers, name="McGill")
        for uni in (first, second):
            transition(client, auth_headers, uni["id"], "shortlist")
            transition(client, auth_headers, uni["id"], "lock")

        transition(client, auth_headers, first["id"], "unlock")
        assert stage(client, auth_headers) == "preparing_applications"
        assert client.get("/todos", headers=auth_headers).json()["count"] == 4

    def test_reject(self, client, auth_headers):
        university = add_university(client, auth_headers)
        response = transition(client, auth_headers, university["id"], "reject")
        assert response.status_code == 200
        assert response.json()["university"]["status"] == "Rejected"

        # Rejected is terminal
        for action in ("shortlist", "lock", "unlock", "reject"):
            response = transition(client, auth_headers, university["id"], action)
            assert response.status_code == 400

    def test_invalid_transitions(self, client, auth_headers):
        university = add_university(client, auth_headers)
        uid = university["id"]

        assert transition(client, auth_headers, uid, "lock").status_code == 400
        assert transition(client, auth_headers, uid, "unlock").status_code == 400

        transition(client, auth_headers, uid, "shortlist")
        response = transition(client, auth_headers, uid, "shortlist")
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

        transition(client, auth_headers, uid, "lock")
        assert transition(client, auth_headers, uid, "lock").status_code == 400
        assert transition(client, auth_headers, uid, "reject").status_code == 400
        assert transition(client, auth_headers, uid, "shortlist").status_code == 400

    def test_failed_transition_creates_no_todos(self, client, auth_headers):
        university = add_university(client, auth_headers)
        transition(client, auth_headers, university["id"], "lock")
        assert client.get("/todos", headers=auth_headers).json()["count"] == 0

    def test_delete_cascades_todos(self, client, auth_headers):
        university = add_university(client, auth_headers)
        transition(client, auth_headers, university["id"], "shortlist")
        transition(client, auth_headers, university["id"], "lock")

        response = client.delete(f"/universities/{university['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get(f"/universities/{university['id']}", headers=auth_headers).status_code == 404
        assert client.get("/todos", headers=auth_headers).json()["count"] == 0

    def test_deleting_last_locked_university_restages(self, client, auth_headers):
        university = add_university(client, auth_headers)
        transition(client, auth_headers, university["id"], "shortlist")
        transition(client, auth_headers, university["id"], "lock")
        assert stage(client, auth_headers) == "preparing_applications"

        client.delete(f"/universities/{university['id']}", headers=auth_headers)
        assert stage(client, auth_headers) == "finalizing_universities"

    def test_deleting_one_of_two_locked_keeps_stage(self, client, auth_headers):
        first = add_university(client, auth_headers, name="UBC")
        second = add_university(client, auth_headers, name="McGill")
        for uni in (first, second):
            transition(client, auth_headers, uni["id"], "shortlist")
            transition(client, auth_headers, uni["id"], "lock")

        client.delete(f"/universities/{first['id']}", headers=auth_headers)
        assert stage(client, auth_headers) == "preparing_applications"

    def test_deleting_shortlisted_keeps_stage(self, client, auth_headers):
        locked = add_university(client, auth_headers, name="UBC")
        other = add_university(client, auth_headers, name="McGill")
        for uni in (locked, other):
            transition(client, auth_headers, uni["id"], "shortlist")
        transition(client, auth_headers, locked["id"], "lock")

        client.delete(f"/universities/{other['id']}", headers=auth_headers)
        assert stage(client, auth_headers) == "preparing_applications"
