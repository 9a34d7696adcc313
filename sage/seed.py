"""
Demo data for local runs: one teacher, three students, an admin,
a classroom, a narrative essay assignment and three submissions.
"""
import logging
from datetime import datetime, timedelta

from werkzeug.security import generate_password_hash

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {"username": "teacher", "role": "teacher", "first_name": "Sarah", "last_name": "Johnson",
     "email": "teacher@sage.com", "department": "English"},
    {"username": "student", "role": "student", "first_name": "Alex", "last_name": "Smith",
     "email": "student@sage.com", "grade": "7th"},
    {"username": "maria.gonzalez", "role": "student", "first_name": "Maria", "last_name": "Gonzalez",
     "email": "maria.gonzalez@school.edu", "grade": "7th"},
    {"username": "alex.chen", "role": "student", "first_name": "Alex", "last_name": "Chen",
     "email": "alex.chen@school.edu", "grade": "7th"},
    {"username": "admin", "role": "admin", "first_name": "Sage", "last_name": "Admin",
     "email": "admin@sage.com"},
]

SAMPLE_SUBMISSIONS = [
    {
        "username": "student",
        "title": "The Day I Learned to Stand Up",
        "content": (
            "The cafeteria was buzzing with its usual chaos when I witnessed something that would "
            "change how I view courage forever. It was a typical Tuesday, and I was sitting with my "
            "friends when I noticed Marcus, a quiet kid from my math class, being surrounded by three "
            "older students near the lunch line.\n\n"
            "My first instinct was to look away. But as I watched Marcus hand over his crumpled dollar "
            "bills, something inside me snapped. I stood up. \"Leave him alone,\" I said, my voice "
            "shakier than I would have liked.\n\n"
            "That day taught me that courage isn't about being fearless. It's about doing the right "
            "thing even when you're terrified."
        ),
        "status": "submitted",
        "submitted_days_ago": 2,
    },
    {
        "username": "maria.gonzalez",
        "title": "Moving to a New Country",
        "content": (
            "When my family told me we were moving from Mexico to the United States, I thought it "
            "would be an adventure. I was wrong. It was one of the hardest experiences of my life, "
            "but also the most transformative.\n\n"
            "Starting at Lincoln Middle School was terrifying. The language barrier was the worst "
            "part. I could read English fairly well, but speaking it with confidence was another "
            "story entirely.\n\n"
            "Moving to a new country taught me that home isn't just a place. It's something you "
            "carry inside you and something you can create wherever you are."
        ),
        "status": "submitted",
        "submitted_days_ago": 1,
    },
    {
        "username": "alex.chen",
        "title": "The Science Fair Disaster",
        "content": (
            "Science had always been my worst subject, so when our teacher announced the mandatory "
            "science fair project, I felt my stomach drop.\n\n"
            "First, I forgot to label my pots properly, so after a week I had no idea which soil was "
            "which. My \"controlled experiment\" had become completely uncontrolled.\n\n"
            "That science fair disaster taught me that sometimes our biggest failures can become our "
            "most important lessons."
        ),
        "status": "graded",
        "submitted_days_ago": 3,
        "grade": "A-",
        "teacher_feedback": (
            "Excellent reflection on learning from failure! Your narrative structure is clear and "
            "engaging. For future writing, consider adding more specific sensory details."
        ),
    },
]


def seed_demo_data(storage):
    """Populate an empty storage with demo records. Returns the created users by username."""
    if storage.list_users(include_archived=True):
        return {}

    password_hash = generate_password_hash(DEMO_PASSWORD)
    users = {}
    for demo_user in DEMO_USERS:
        users[demo_user["username"]] = storage.create_user({**demo_user, "password_hash": password_hash})

    teacher = users["teacher"]
    classroom = storage.create_classroom(teacher["id"], {
        "name": "English 7 - Period 2",
        "subject": "English Language Arts",
        "grade_level": "7th",
        "description": "Seventh grade writing workshop",
    })
    for username in ("student", "maria.gonzalez", "alex.chen"):
        storage.enroll_student(users[username]["id"], classroom["id"])

    assignment = storage.create_assignment(teacher["id"], {
        "classroom_id": classroom["id"],
        "classroom_ids": [classroom["id"]],
        "title": "Personal Narrative Essay",
        "description": (
            "Write a personal narrative about a meaningful experience that changed your perspective. "
            "Your essay should include vivid details, clear chronological structure, and reflection "
            "on the significance of the event."
        ),
        "due_date": datetime.now() + timedelta(days=7),
        "ai_permissions": "limited",
        "allow_research_help": False,
    })

    for sample in SAMPLE_SUBMISSIONS:
        session = storage.create_session(users[sample["username"]]["id"], {
            "assignment_id": assignment["id"],
            "title": sample["title"],
            "content": sample["content"],
        })
        storage.update_session(session["id"], {
            "status": sample["status"],
            "submitted_at": datetime.now() - timedelta(days=sample["submitted_days_ago"]),
            "grade": sample.get("grade"),
            "teacher_feedback": sample.get("teacher_feedback"),
        })

    logger.info("Seeded demo data: %d users, classroom %s", len(users), classroom["join_code"])
    return users
