"""
Profile upsert, derived strength and the strength report
"""

from conftest import PROFILE_PAYLOAD, create_profile


class TestProfileUpsert:

    def test_missing_required_fields(self, client, auth_headers):
        response = client.post("/profile", json={"gpa": 3.6}, headers=auth_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert set(body["fields"]) == {"currentEducationLevel", "intendedDegree"}

    def test_create_profile(self, client, auth_headers):
        body = create_profile(client, auth_headers)

        assert body["currentEducationLevel"] == "Bachelor"
        assert body["budgetPerYear"] == {"min": 20000, "max": 50000}
        assert body["ielts"] == {"status": "Completed", "score": 7.5}
        assert body["toefl"]["status"] == "Not Started"
        assert body["profileStrength"] == {
            "academics": "Strong",
            "exams": "In Progress",
            "documents": "In Progress",
        }

    def test_create_advances_user(self, client, auth_headers):
        create_profile(client, auth_headers)
        user = client.get("/auth/user", headers=auth_headers).json()
        assert user["onboardingCompleted"] is True
        assert user["currentStage"] == "discovering_universities"

    def test_partial_update_keeps_other_fields(self, client, auth_headers):
        create_profile(client, auth_headers)
        response = client.post("/profile", json={"gpa": 2.5}, headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["gpa"] == 2.5
        assert body["intendedDegree"] == "Master"
        assert body["preferredCountries"] == ["USA", "Canada"]
        assert body["profileStrength"]["academics"] == "Weak"

    def test_strength_recomputed_from_exams_and_sop(self, client, auth_headers):
        create_profile(client, auth_headers)
        response = client.post(
            "/profile",
            json={"gre": {"status": "Completed", "score": 325}, "sopStatus": "Ready"},
            headers=auth_headers,
        )
        strength = response.json()["profileStrength"]
        assert strength["exams"] == "Completed"
        assert strength["documents"] == "Ready"

    def test_client_strength_is_ignored(self, client, auth_headers):
        body = create_profile(
            client,
            auth_headers,
            gpa=2.0,
            profileStrength={"academics": "Strong", "exams": "Completed", "documents": "Ready"},
        )
        assert body["profileStrength"]["academics"] == "Weak"

    def test_invalid_enum(self, client, auth_headers):
        payload = {**PROFILE_PAYLOAD, "intendedDegree": "Diploma"}
        response = client.post("/profile", json=payload, headers=auth_headers)
        assert response.status_code == 400
        assert "intendedDegree" in response.json()["fields"]

    def test_requires_auth(self, client):
        response = client.post("/profile", json=PROFILE_PAYLOAD)
        assert response.status_code == 401


class TestProfileRead:

    def test_missing_profile(self, client, auth_headers):
        response = client.get("/profile", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "PROFILE_MISSING"

    def test_read_back(self, client, auth_headers):
        """Every submitted field reads back unchanged, with strength derived from it."""
        created = create_profile(client, auth_headers)
        response = client.get("/profile", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()

        assert body["id"] == created["id"]
        for key in (
            "currentEducationLevel", "degree", "major", "graduationYear", "gpa",
            "intendedDegree", "fieldOfStudy", "targetIntakeYear", "preferredCountries",
            "budgetPerYear", "fundingPlan", "ielts", "sopStatus",
        ):
            assert body[key] == PROFILE_PAYLOAD[key], key
        assert body["gre"] == {"status": "Preparing", "score": None}
        for exam in ("toefl", "gmat"):
            assert body[exam] == {"status": "Not Started", "score": None}

        # GPA 3.6 is Strong; only IELTS is Completed; SOP is a Draft
        assert body["profileStrength"] == {
            "academics": "Strong",
            "exams": "In Progress",
            "documents": "In Progress",
        }

    def test_null_clears_optional_fields(self, client, auth_headers):
        create_profile(client, auth_headers)
        response = client.post(
            "/profile",
            json={"gpa": None, "budgetPerYear": None, "ielts": None, "fundingPlan": None},
            headers=auth_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["gpa"] is None
        assert body["budgetPerYear"] == {"min": None, "max": None}
        assert body["ielts"] == {"status": "Not Started", "score": None}
        assert body["fundingPlan"] is None
        assert body["profileStrength"]["academics"] == "Weak"
        assert body["profileStrength"]["exams"] == "Not Started"
        assert body["intendedDegree"] == "Master"
        assert body["major"] == "Computer Science"

        assert client.get("/profile", headers=auth_headers).json()["gpa"] is None

    def test_null_required_field_is_rejected(self, client, auth_headers):
        create_profile(client, auth_headers)
        response = client.post("/profile", json={"intendedDegree": None}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["fields"] == ["intendedDegree"]
        assert client.get("/profile", headers=auth_headers).json()["intendedDegree"] == "Master"


class TestStrengthReport:

    def test_report(self, client, auth_headers):
        create_profile(client, auth_headers)
        response = client.get("/profile/strength", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()

        assert body["profileStrength"]["academics"] == "Strong"
        assert 0 <= body["overallScore"] <= 100
        assert body["completeness"] == 100
        assert body["sections"]["academics"]["maxScore"] == 30
        assert body["sections"]["academics"]["status"] == "strong"
        assert len(body["nextActions"]) <= 3

    def test_sparse_profile_suggests_actions(self, client, auth_headers):
        client.post(
            "/profile",
            json={"currentEducationLevel": "Bachelor", "intendedDegree": "Master"},
            headers=auth_headers,
        )
        body = client.get("/profile/strength", headers=auth_headers).json()
        assert body["completeness"] == 50
        assert body["nextActions"] == ["Add your GPA", "Add your degree", "Complete IELTS or TOEFL"]

    def test_missing_profile(self, client, auth_headers):
        response = client.get("/profile/strength", headers=auth_headers)
        assert response.status_code == 404
