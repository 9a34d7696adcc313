"""
Test: Platform feedback routes — submission, triage and stats.
"""


class TestFeedback:
    def test_submit_and_triage(self, client, student_headers, admin_headers):
        resp = client.post("/api/feedback", headers={**student_headers, "User-Agent": "pytest-browser"},
                           json={"type": "bug", "title": "Editor froze", "description": "After pasting", "rating": 2})
        assert resp.status_code == 201
        feedback = resp.get_json()
        assert feedback["status"] == "open"
        assert feedback["userAgent"] == "pytest-browser"

        resp = client.patch(f"/api/feedback/{feedback['id']}", headers=admin_headers,
                            json={"status": "in_progress", "adminResponse": "Looking into it"})
        updated = resp.get_json()
        assert updated["status"] == "in_progress"
        assert updated["adminResponseBy"] is not None

        stats = client.get("/api/admin/feedback-stats", headers=admin_headers).get_json()
        assert stats == {
            "total": 1,
            "byStatus": {"in_progress": 1},
            "byType": {"bug": 1},
            "byPriority": {"medium": 1},
            "averageRating": 2.0,
        }

    def test_users_see_only_their_own(self, client, student_headers, other_student_headers, admin_headers):
        client.post("/api/feedback", headers=student_headers, json={"title": "Idea", "description": "Dark mode"})
        assert client.get("/api/feedback", headers=other_student_headers).get_json() == []
        assert len(client.get("/api/feedback", headers=student_headers).get_json()) == 1
        assert len(client.get("/api/feedback", headers=admin_headers).get_json()) == 1

    def test_only_admin_triages(self, client, student_headers):
        feedback = client.post("/api/feedback", headers=student_headers,
                               json={"title": "Idea", "description": "Dark mode"}).get_json()
        resp = client.patch(f"/api/feedback/{feedback['id']}", headers=student_headers, json={"status": "closed"})
        assert resp.status_code == 403
