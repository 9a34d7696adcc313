"""
Shared test fixtures for Sage.
App on seeded in-memory storage, per-role auth headers, a fake AI
provider and a recording emailer. Zero network calls.
"""
import pytest

from sage.app import create_app
from sage.seed import DEMO_PASSWORD
from sage.services.ai_service import AIProviderError
from sage.storage import MemoryStorage


class FakeEmailer:
    """Records emails instead of sending them."""

    def __init__(self):
        self.sent = []

    def send_welcome_email(self, user):
        self.sent.append({"kind": "welcome", "to": user["email"], "username": user["username"]})
        return {"success": True}

    def send_forgot_credentials_email(self, user, reset_token):
        self.sent.append({"kind": "recovery", "to": user["email"], "token": reset_token})
        return {"success": True}


class FakeAI:
    """Stands in for ai_service.complete. Raises AIProviderError until a reply is set."""

    def __init__(self):
        self.reply = None
        self.calls = []

    def __call__(self, system_prompt, prompt, max_tokens=500, temperature=0.7):
        self.calls.append({"system": system_prompt, "prompt": prompt})
        if self.reply is None:
            raise AIProviderError("AI provider offline in tests")
        return self.reply


@pytest.fixture(autouse=True)
def audit_log_file(monkeypatch, tmp_path):
    """Keep audit entries out of the real data directory."""
    path = str(tmp_path / "audit" / "audit.log")
    monkeypatch.setattr("sage.ferpa.AUDIT_LOG_FILE", path)
    return path


@pytest.fixture(autouse=True)
def fake_ai(monkeypatch):
    ai = FakeAI()
    monkeypatch.setattr("sage.services.ai_service.complete", ai)
    return ai


@pytest.fixture
def emailer():
    return FakeEmailer()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def app(storage, emailer):
    app = create_app(storage=storage, settings={
        "jwt_secret": "test-secret",
        "emailer": emailer,
        "ai_provider": "openai",
        "seed_demo_data": True,
    })
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, username, password=DEMO_PASSWORD):
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture
def login_as(client):
    """Log in as any user: login_as(username, password=DEMO_PASSWORD) -> headers."""
    def _login(username, password=DEMO_PASSWORD):
        return login(client, username, password)
    return _login


@pytest.fixture
def student_headers(client):
    return login(client, "student")


@pytest.fixture
def other_student_headers(client):
    return login(client, "maria.gonzalez")


@pytest.fixture
def teacher_headers(client):
    return login(client, "teacher")


@pytest.fixture
def admin_headers(client):
    return login(client, "admin")


@pytest.fixture
def other_teacher_headers(client, login_as):
    """A second teacher who owns no demo classrooms."""
    client.post("/api/auth/register", json={
        "firstName": "Omar", "lastName": "Reyes", "email": "omar@school.edu",
        "password": "secret123", "role": "teacher",
    })
    return login_as("omar", "secret123")


@pytest.fixture
def demo(storage, app):
    """Seeded records by name."""
    teacher = storage.get_user_by_username("teacher")
    student = storage.get_user_by_username("student")
    classroom = storage.list_teacher_classrooms(teacher["id"])[0]
    assignment = storage.list_teacher_assignments(teacher["id"])[0]
    return {
        "teacher": teacher,
        "student": student,
        "maria": storage.get_user_by_username("maria.gonzalez"),
        "alex": storage.get_user_by_username("alex.chen"),
        "admin": storage.get_user_by_username("admin"),
        "classroom": classroom,
        "assignment": assignment,
        "student_session": storage.find_user_session_for_assignment(student["id"], assignment["id"]),
    }
