"""
Test: Analytics routes — streaks, goals, writing stats, insights, class goals.
"""


class TestAnalytics:
    def test_empty_streak(self, client, student_headers, demo):
        data = client.get(f"/api/users/{demo['student']['id']}/streak", headers=student_headers).get_json()
        assert data["currentStreak"] == 0

    def test_goal_lifecycle(self, client, student_headers, demo):
        url = f"/api/users/{demo['student']['id']}/goals"
        resp = client.post(url, headers=student_headers, json={"type": "weekly", "targetWords": 5})
        assert resp.status_code == 201
        assert resp.get_json()["targetWords"] == 5

        client.post("/api/writing-sessions", headers=student_headers,
                    json={"title": "Goal work", "content": "one two three four five six"})
        goals = client.get(url, headers=student_headers).get_json()
        assert goals[0]["currentProgress"] == 6
        assert goals[0]["isCompleted"] is True

    def test_cannot_set_goal_for_others(self, client, student_headers, demo):
        resp = client.post(f"/api/users/{demo['maria']['id']}/goals", headers=student_headers,
                           json={"targetWords": 5})
        assert resp.status_code == 403

    def test_session_and_writing_stats(self, client, teacher_headers, demo):
        stats = client.get(f"/api/analytics/{demo['alex']['id']}/sessions", headers=teacher_headers).get_json()
        assert stats["totalSessions"] == 1
        assert stats["graded"] == 1
        writing = client.get(f"/api/analytics/{demo['alex']['id']}/writing-stats",
                             headers=teacher_headers).get_json()
        assert writing["totalWords"] > 0
        assert len(writing["weeklyProgress"]) == 4

    def test_insights_and_leaderboard(self, client, teacher_headers, demo):
        teacher_id = demo["teacher"]["id"]
        insights = client.get(f"/api/teacher/{teacher_id}/student-insights", headers=teacher_headers).get_json()
        assert len(insights) == 3
        board = client.get(f"/api/teacher/{teacher_id}/leaderboard", headers=teacher_headers).get_json()
        scores = [entry["totalScore"] for entry in board]
        assert scores == sorted(scores, reverse=True)

    def test_insights_for_other_teacher_blocked(self, client, teacher_headers, demo):
        resp = client.get(f"/api/teacher/{demo['admin']['id']}/student-insights", headers=teacher_headers)
        assert resp.status_code == 403

    def test_teacher_assigns_class_goals(self, client, teacher_headers, student_headers, demo):
        resp = client.post("/api/teacher/goals", headers=teacher_headers,
                           json={"classroomId": demo["classroom"]["id"], "targetWords": 500})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data["count"] == 3
        goal_id = data["goals"][0]["id"]

        mine = client.get("/api/teacher/goals", headers=teacher_headers).get_json()
        assert len(mine) == 3

        patched = client.patch(f"/api/teacher/goals/{goal_id}", headers=teacher_headers, json={"targetWords": 750})
        assert patched.get_json()["targetWords"] == 750
        assert client.delete(f"/api/teacher/goals/{goal_id}", headers=teacher_headers).status_code == 200
        assert len(client.get("/api/teacher/goals", headers=teacher_headers).get_json()) == 2

    def test_class_goals_need_classroom(self, client, teacher_headers):
        resp = client.post("/api/teacher/goals", headers=teacher_headers, json={"targetWords": 500})
        assert resp.status_code == 400
