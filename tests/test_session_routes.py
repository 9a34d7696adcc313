"""
Test: Writing session routes — drafting, paste log, submit, grading,
comments, page view and export.
"""
import io

from docx import Document

from sage.config import config

PASTED = "The mitochondria is the powerhouse of the cell."


def new_session(client, headers, **overrides):
    body = {"title": "Draft", "content": "My first sentence.", **overrides}
    return client.post("/api/writing-sessions", headers=headers, json=body)


class TestDrafting:
    def test_create_and_get(self, client, student_headers, demo):
        resp = new_session(client, student_headers, assignmentId=demo["assignment"]["id"])
        assert resp.status_code == 201
        session = resp.get_json()
        assert session["status"] == "draft"
        assert session["wordCount"] == 3
        assert session["userId"] == demo["student"]["id"]

        fetched = client.get(f"/api/writing-sessions/{session['id']}", headers=student_headers)
        assert fetched.get_json()["title"] == "Draft"

    def test_unknown_assignment(self, client, student_headers):
        assert new_session(client, student_headers, assignmentId=999).status_code == 404

    def test_update_recounts_words(self, client, student_headers):
        session = new_session(client, student_headers).get_json()
        resp = client.patch(f"/api/writing-sessions/{session['id']}", headers=student_headers,
                            json={"content": "Now there are five words."})
        assert resp.get_json()["wordCount"] == 5

    def test_other_student_cannot_view_or_edit(self, client, student_headers, other_student_headers):
        session = new_session(client, student_headers).get_json()
        url = f"/api/writing-sessions/{session['id']}"
        assert client.get(url, headers=other_student_headers).status_code == 403
        assert client.patch(url, headers=other_student_headers, json={"content": "x"}).status_code == 403

    def test_owning_teacher_can_view(self, client, teacher_headers, demo):
        url = f"/api/writing-sessions/{demo['student_session']['id']}"
        assert client.get(url, headers=teacher_headers).status_code == 200

    def test_graded_work_is_locked(self, client, login_as):
        headers = login_as("alex.chen")
        session = client.get("/api/student/writing-sessions", headers=headers).get_json()[0]
        resp = client.patch(f"/api/writing-sessions/{session['id']}", headers=headers, json={"content": "x"})
        assert resp.status_code == 400

    def test_missing(self, client, student_headers):
        assert client.get("/api/writing-sessions/999", headers=student_headers).status_code == 404


class TestPasteLog:
    def test_record_paste(self, client, student_headers):
        content = "Intro. " + PASTED
        session = new_session(client, student_headers, content=content).get_json()
        resp = client.post(f"/api/writing-sessions/{session['id']}/paste", headers=student_headers,
                           json={"text": PASTED, "startIndex": 7, "endIndex": 7 + len(PASTED)})
        assert resp.status_code == 201
        assert resp.get_json()["pastedContent"][0]["text"] == PASTED

    def test_paste_range_validated(self, client, student_headers):
        session = new_session(client, student_headers).get_json()
        resp = client.post(f"/api/writing-sessions/{session['id']}/paste", headers=student_headers,
                           json={"text": "abc", "startIndex": 5, "endIndex": 2})
        assert resp.status_code == 400

    def test_patch_cannot_rewrite_paste_log(self, client, student_headers):
        content = "Intro. " + PASTED
        session = new_session(client, student_headers, content=content).get_json()
        url = f"/api/writing-sessions/{session['id']}"
        client.post(f"{url}/paste", headers=student_headers,
                    json={"text": PASTED, "startIndex": 7, "endIndex": 7 + len(PASTED)})

        resp = client.patch(url, headers=student_headers, json={"pastedContent": []})
        assert resp.status_code == 200
        assert [p["text"] for p in resp.get_json()["pastedContent"]] == [PASTED]

        fetched = client.get(url, headers=student_headers).get_json()
        assert len(fetched["pastedContent"]) == 1

    def test_paste_report(self, client, student_headers, teacher_headers, demo):
        content = "Intro. " + PASTED
        session = new_session(client, student_headers, content=content,
                              assignmentId=demo["assignment"]["id"]).get_json()
        client.post(f"/api/writing-sessions/{session['id']}/paste", headers=student_headers,
                    json={"text": PASTED, "startIndex": 7, "endIndex": 7 + len(PASTED)})

        report = client.get(f"/api/writing-sessions/{session['id']}/paste-report",
                            headers=teacher_headers).get_json()
        assert report["pasteCount"] == 1
        assert report["locatedCharacters"] == len(PASTED)
        assert report["matches"][0]["method"] == "recorded"
        assert '<mark class="pasted-content"' in report["highlighted"]


class TestSubmitAndGrade:
    def test_submit_updates_streak_and_achievements(self, client, student_headers, demo):
        session = new_session(client, student_headers, assignmentId=demo["assignment"]["id"]).get_json()
        resp = client.post(f"/api/writing-sessions/{session['id']}/submit", headers=student_headers)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["session"]["status"] == "submitted"
        assert data["session"]["submittedAt"]
        assert data["streak"]["currentStreak"] == 1
        assert "First Submission" in [a["name"] for a in data["newAchievements"]]

    def test_double_submit(self, client, student_headers):
        session = new_session(client, student_headers).get_json()
        url = f"/api/writing-sessions/{session['id']}/submit"
        client.post(url, headers=student_headers)
        assert client.post(url, headers=student_headers).status_code == 400

    def test_grade(self, client, teacher_headers, student_headers, demo):
        url = f"/api/sessions/{demo['student_session']['id']}/grade"
        resp = client.post(url, headers=teacher_headers, json={"grade": " B+ ", "feedback": "Strong voice."})
        assert resp.status_code == 200
        data = resp.get_json()
        assert (data["status"], data["grade"], data["teacherFeedback"]) == ("graded", "B+", "Strong voice.")

        mine = client.get(f"/api/writing-sessions/{demo['student_session']['id']}", headers=student_headers)
        assert mine.get_json()["grade"] == "B+"

    def test_grade_draft_rejected(self, client, teacher_headers, student_headers, demo):
        session = new_session(client, student_headers, assignmentId=demo["assignment"]["id"]).get_json()
        resp = client.post(f"/api/sessions/{session['id']}/grade", headers=teacher_headers, json={"grade": "A"})
        assert resp.status_code == 400

    def test_grade_requires_teacher(self, client, student_headers, demo):
        resp = client.post(f"/api/sessions/{demo['student_session']['id']}/grade",
                           headers=student_headers, json={"grade": "A"})
        assert resp.status_code == 403

    def test_grade_requires_value(self, client, teacher_headers, demo):
        resp = client.post(f"/api/sessions/{demo['student_session']['id']}/grade",
                           headers=teacher_headers, json={"grade": ""})
        assert resp.status_code == 400


class TestListings:
    def test_student_sees_own(self, client, student_headers, demo):
        data = client.get(f"/api/users/{demo['student']['id']}/writing-sessions", headers=student_headers)
        assert [s["id"] for s in data.get_json()] == [demo["student_session"]["id"]]

    def test_student_cannot_list_others(self, client, student_headers, demo):
        resp = client.get(f"/api/users/{demo['maria']['id']}/writing-sessions", headers=student_headers)
        assert resp.status_code == 403

    def test_teacher_sees_only_own_assignments(self, client, teacher_headers, student_headers, demo):
        new_session(client, student_headers)
        data = client.get(f"/api/users/{demo['student']['id']}/writing-sessions",
                          headers=teacher_headers).get_json()
        assert [s["id"] for s in data] == [demo["student_session"]["id"]]

    def test_interactions(self, client, student_headers, demo):
        resp = client.get(f"/api/session/{demo['student_session']['id']}/interactions", headers=student_headers)
        assert resp.status_code == 200
        assert resp.get_json() == []


class TestComments:
    def test_teacher_comments(self, client, teacher_headers, student_headers, demo):
        url = f"/api/sessions/{demo['student_session']['id']}/comments"
        resp = client.post(url, headers=teacher_headers,
                           json={"startIndex": 4, "endIndex": 13, "comment": "Great opening image"})
        assert resp.status_code == 201
        comment = resp.get_json()
        assert comment["highlightedText"] == "cafeteria"

        listed = client.get(url, headers=student_headers).get_json()
        assert [c["id"] for c in listed] == [comment["id"]]

        resp = client.delete(f"{url}/{comment['id']}", headers=teacher_headers)
        assert resp.status_code == 200
        assert client.get(url, headers=student_headers).get_json() == []

    def test_range_outside_document(self, client, teacher_headers, demo):
        url = f"/api/sessions/{demo['student_session']['id']}/comments"
        resp = client.post(url, headers=teacher_headers,
                           json={"startIndex": 0, "endIndex": 100000, "comment": "x"})
        assert resp.status_code == 400

    def test_students_cannot_comment(self, client, student_headers, demo):
        url = f"/api/sessions/{demo['student_session']['id']}/comments"
        resp = client.post(url, headers=student_headers, json={"startIndex": 0, "endIndex": 3, "comment": "x"})
        assert resp.status_code == 403


class TestPagesAndExport:
    def test_pages(self, client, student_headers):
        session = new_session(client, student_headers, content="aaaa bbbb cccc dddd eeee").get_json()
        resp = client.get(f"/api/writing-sessions/{session['id']}/pages?linesPerPage=2&charsPerLine=10",
                          headers=student_headers)
        data = resp.get_json()
        assert data["totalPages"] == 2
        assert data["pages"][1]["text"] == "eeee"
        assert data["pages"][1]["startIndex"] == 20
        assert data["pageBreaks"] == []

    def test_pages_invalid_params(self, client, student_headers):
        session = new_session(client, student_headers).get_json()
        resp = client.get(f"/api/writing-sessions/{session['id']}/pages?linesPerPage=0", headers=student_headers)
        assert resp.status_code == 400

    def test_export_docx(self, client, student_headers, demo):
        resp = client.get(f"/api/writing-sessions/{demo['student_session']['id']}/export?format=docx",
                          headers=student_headers)
        assert resp.status_code == 200
        assert resp.data[:2] == b"PK"
        assert "The_Day_I_Learned_to_Stand_Up.docx" in resp.headers["Content-Disposition"]

    def test_export_pages_match_page_view(self, client, student_headers, demo, monkeypatch):
        monkeypatch.setattr(config, "lines_per_page", 2)
        url = f"/api/writing-sessions/{demo['student_session']['id']}"
        total = client.get(f"{url}/pages", headers=student_headers).get_json()["totalPages"]
        assert total > 1

        resp = client.get(f"{url}/export?format=docx", headers=student_headers)
        breaks = Document(io.BytesIO(resp.data)).element.body.xml.count('w:type="page"')
        assert breaks == total - 1

    def test_export_txt(self, client, student_headers, demo):
        resp = client.get(f"/api/writing-sessions/{demo['student_session']['id']}/export?format=txt",
                          headers=student_headers)
        text = resp.data.decode("utf-8")
        assert text.startswith("The Day I Learned to Stand Up\nAlex Smith  |  Personal Narrative Essay")

    def test_export_bad_format(self, client, student_headers, demo):
        resp = client.get(f"/api/writing-sessions/{demo['student_session']['id']}/export?format=rtf",
                          headers=student_headers)
        assert resp.status_code == 400
