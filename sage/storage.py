"""
Storage layer for Sage.

All domain operations live on `Storage` and are written against five
table primitives (insert / get / select / update / delete). Backends only
implement the primitives:

- MemoryStorage: dict-backed, used for local runs and tests
- SupabaseStorage (sage.supabase_storage): Postgres tables via Supabase

Records are plain snake_case dicts.
"""
import random
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from copy import deepcopy
from datetime import datetime

from flask import current_app

from .models import count_words

JOIN_CODE_CHARS = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'

TABLES = (
    "users", "assignments", "writing_sessions", "ai_interactions",
    "classrooms", "classroom_enrollments", "messages", "inline_comments",
    "feedback", "writing_streaks", "achievements", "writing_goals",
    "student_profiles",
)

PUBLIC_USER_FIELDS = (
    "id", "username", "email", "first_name", "last_name", "role",
    "department", "grade", "created_at", "updated_at",
)


def _now():
    return datetime.now()


def as_datetime(value):
    """Accept datetime or ISO string (Supabase returns strings)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def get_storage():
    """Storage bound to the running app."""
    return current_app.extensions["sage_storage"]


def public_user(user):
    if user is None:
        return None
    return {k: user.get(k) for k in PUBLIC_USER_FIELDS}


class Storage(ABC):
    """Domain operations over the table primitives."""

    # ---- primitives ----

    @abstractmethod
    def _insert(self, table: str, record: dict) -> dict:
        ...

    @abstractmethod
    def _get(self, table: str, record_id: int):
        ...

    @abstractmethod
    def _select(self, table: str, filters: dict = None, in_filter: tuple = None) -> list:
        ...

    @abstractmethod
    def _update(self, table: str, record_id: int, updates: dict):
        ...

    @abstractmethod
    def _delete(self, table: str, record_id: int) -> bool:
        ...

    @contextmanager
    def transaction(self):
        yield

    # ============ Users ============

    def get_user(self, user_id):
        return self._get("users", user_id)

    def get_user_by_username(self, username):
        if not username:
            return None
        rows = self._select("users", {"username": username.strip().lower()})
        return rows[0] if rows else None

    def get_user_by_email(self, email):
        if not email:
            return None
        rows = self._select("users", {"email": email.strip().lower()})
        return rows[0] if rows else None

    def create_user(self, record: dict) -> dict:
        now = _now()
        user = {
            "department": None,
            "grade": None,
            "is_active": True,
            "archived_at": None,
            **record,
            "username": record["username"].strip().lower(),
            "email": record["email"].strip().lower(),
            "created_at": now,
            "updated_at": now,
        }
        return self._insert("users", user)

    def list_users(self, role=None, include_archived=False):
        filters = {"role": role} if role else None
        users = self._select("users", filters)
        if not include_archived:
            users = [u for u in users if u.get("is_active", True)]
        return sorted(users, key=lambda u: u["id"])

    def list_archived_users(self):
        return [u for u in self._select("users", {"is_active": False})]

    def update_user(self, user_id, updates: dict):
        return self._update("users", user_id, {**updates, "updated_at": _now()})

    def delete_user(self, user_id) -> bool:
        return self._delete("users", user_id)

    def archive_user(self, user_id):
        return self.update_user(user_id, {"is_active": False, "archived_at": _now()})

    def reactivate_user(self, user_id):
        return self.update_user(user_id, {"is_active": True, "archived_at": None})

    # ============ Assignments ============

    def get_assignment(self, assignment_id):
        return self._get("assignments", assignment_id)

    def create_assignment(self, teacher_id, record: dict) -> dict:
        now = _now()
        assignment = {
            "classroom_id": None,
            "classroom_ids": [],
            "due_date": None,
            "status": "active",
            "ai_permissions": "full",
            "allow_brainstorming": True,
            "allow_outlining": True,
            "allow_grammar_check": True,
            "allow_research_help": True,
            "allow_copy_paste": False,
            **record,
            "teacher_id": teacher_id,
            "created_at": now,
            "updated_at": now,
        }
        return self._insert("assignments", assignment)

    def update_assignment(self, assignment_id, updates: dict):
        return self._update("assignments", assignment_id, {**updates, "updated_at": _now()})

    def list_teacher_assignments(self, teacher_id):
        return sorted(self._select("assignments", {"teacher_id": teacher_id}), key=lambda a: a["id"])

    def list_classroom_assignments(self, classroom_ids):
        wanted = set(classroom_ids)
        if not wanted:
            return []
        found = []
        for assignment in self._select("assignments"):
            linked = set(assignment.get("classroom_ids") or [])
            if assignment.get("classroom_id") is not None:
                linked.add(assignment["classroom_id"])
            if linked & wanted:
                found.append(assignment)
        return sorted(found, key=lambda a: a["id"])

    def mark_assignment_complete(self, assignment_id):
        return self.update_assignment(assignment_id, {"status": "completed"})

    def check_overdue_assignments(self, now=None):
        """Flip active assignments past their due date to overdue; return all overdue."""
        now = now or _now()
        overdue = []
        for assignment in self._select("assignments"):
            due = as_datetime(assignment.get("due_date"))
            if assignment.get("status") == "active" and due is not None and due < now:
                assignment = self.update_assignment(assignment["id"], {"status": "overdue"})
            if assignment.get("status") == "overdue":
                overdue.append(assignment)
        return overdue

    # ============ Writing sessions ============

    def get_session(self, session_id):
        session = self._get("writing_sessions", session_id)
        if session is not None and session.get("pasted_content") is None:
            session["pasted_content"] = []
        return session

    def create_session(self, user_id, record: dict) -> dict:
        now = _now()
        content = record.get("content") or ""
        session = {
            "assignment_id": None,
            "title": "Untitled",
            "pasted_content": [],
            "status": "draft",
            "submitted_at": None,
            "teacher_feedback": None,
            "grade": None,
            **record,
            "user_id": user_id,
            "content": content,
            "word_count": count_words(content),
            "created_at": now,
            "updated_at": now,
        }
        return self._insert("writing_sessions", session)

    def update_session(self, session_id, updates: dict):
        updates = dict(updates)
        if "content" in updates:
            updates["content"] = updates["content"] or ""
            updates["word_count"] = count_words(updates["content"])
        updates["updated_at"] = _now()
        return self._update("writing_sessions", session_id, updates)

    def list_user_sessions(self, user_id):
        return sorted(self._select("writing_sessions", {"user_id": user_id}), key=lambda s: s["id"])

    def list_sessions(self):
        return sorted(self._select("writing_sessions"), key=lambda s: s["id"])

    def list_assignment_submissions(self, assignment_id):
        """Sessions for an assignment, each joined with its student."""
        sessions = self._select("writing_sessions", {"assignment_id": assignment_id})
        out = []
        for session in sorted(sessions, key=lambda s: s["id"]):
            out.append({**session, "student": public_user(self.get_user(session.get("user_id")))})
        return out

    def find_user_session_for_assignment(self, user_id, assignment_id):
        rows = self._select("writing_sessions", {"user_id": user_id, "assignment_id": assignment_id})
        return sorted(rows, key=lambda s: s["id"])[-1] if rows else None

    def submit_session(self, session_id):
        return self.update_session(session_id, {"status": "submitted", "submitted_at": _now()})

    def grade_session(self, session_id, grade, feedback):
        return self.update_session(session_id, {
            "grade": grade,
            "teacher_feedback": feedback,
            "status": "graded",
        })

    def append_paste(self, session_id, paste: dict):
        with self.transaction():
            session = self.get_session(session_id)
            if session is None:
                return None
            pasted = list(session.get("pasted_content") or [])
            pasted.append(paste)
            return self.update_session(session_id, {"pasted_content": pasted})

    # ============ AI interactions ============

    def create_ai_interaction(self, record: dict) -> dict:
        interaction = {
            "session_id": None,
            "is_restricted": False,
            "category": "general",
            **record,
            "created_at": _now(),
        }
        return self._insert("ai_interactions", interaction)

    def list_session_interactions(self, session_id):
        return sorted(self._select("ai_interactions", {"session_id": session_id}), key=lambda i: i["id"])

    # ============ Classrooms ============

    def _generate_join_code(self):
        while True:
            code = ''.join(random.choices(JOIN_CODE_CHARS, k=6))
            if self.get_classroom_by_join_code(code) is None:
                return code

    def create_classroom(self, teacher_id, record: dict) -> dict:
        now = _now()
        classroom = {
            "grade_level": None,
            "class_size": 30,
            "description": None,
            "is_active": True,
            **record,
            "teacher_id": teacher_id,
            "join_code": self._generate_join_code(),
            "created_at": now,
            "updated_at": now,
        }
        return self._insert("classrooms", classroom)

    def get_classroom(self, classroom_id):
        return self._get("classrooms", classroom_id)

    def get_classroom_by_join_code(self, join_code):
        if not join_code:
            return None
        rows = self._select("classrooms", {"join_code": join_code.strip().upper()})
        return rows[0] if rows else None

    def list_teacher_classrooms(self, teacher_id):
        return sorted(self._select("classrooms", {"teacher_id": teacher_id}), key=lambda c: c["id"])

    def list_student_classrooms(self, student_id):
        enrollments = self._select("classroom_enrollments", {"student_id": student_id, "is_active": True})
        classrooms = [self.get_classroom(e["classroom_id"]) for e in enrollments]
        return sorted([c for c in classrooms if c], key=lambda c: c["id"])

    def update_classroom(self, classroom_id, updates: dict):
        return self._update("classrooms", classroom_id, {**updates, "updated_at": _now()})

    def enroll_student(self, student_id, classroom_id):
        """Enroll a student; re-enrolling returns the existing enrollment."""
        with self.transaction():
            existing = self._select("classroom_enrollments", {
                "student_id": student_id, "classroom_id": classroom_id,
            })
            if existing:
                enrollment = existing[0]
                if not enrollment.get("is_active", True):
                    enrollment = self._update("classroom_enrollments", enrollment["id"], {"is_active": True})
                return enrollment
            return self._insert("classroom_enrollments", {
                "student_id": student_id,
                "classroom_id": classroom_id,
                "enrolled_at": _now(),
                "is_active": True,
            })

    def list_classroom_students(self, classroom_id):
        enrollments = self._select("classroom_enrollments", {"classroom_id": classroom_id, "is_active": True})
        students = [public_user(self.get_user(e["student_id"])) for e in enrollments]
        return [s for s in students if s]

    # ============ Messages ============

    def create_message(self, sender_id, record: dict) -> dict:
        message = {**record, "sender_id": sender_id, "is_read": False, "created_at": _now()}
        return self._insert("messages", message)

    def get_message(self, message_id):
        return self._get("messages", message_id)

    def inbox(self, user_id):
        rows = self._select("messages", {"receiver_id": user_id})
        return [{**m, "sender": public_user(self.get_user(m["sender_id"]))}
                for m in sorted(rows, key=lambda m: m["id"], reverse=True)]

    def sent_messages(self, user_id):
        rows = self._select("messages", {"sender_id": user_id})
        return [{**m, "receiver": public_user(self.get_user(m["receiver_id"]))}
                for m in sorted(rows, key=lambda m: m["id"], reverse=True)]

    def mark_message_read(self, message_id):
        return self._update("messages", message_id, {"is_read": True})

    def recipients_for_role(self, role):
        target = "student" if role == "teacher" else "teacher"
        return [public_user(u) for u in self.list_users(role=target)]

    # ============ Inline comments ============

    def list_inline_comments(self, session_id):
        rows = self._select("inline_comments", {"session_id": session_id})
        return sorted(rows, key=lambda c: (c["start_index"], c["id"]))

    def create_inline_comment(self, session_id, teacher_id, record: dict) -> dict:
        now = _now()
        comment = {**record, "session_id": session_id, "teacher_id": teacher_id,
                   "created_at": now, "updated_at": now}
        return self._insert("inline_comments", comment)

    def get_inline_comment(self, comment_id):
        return self._get("inline_comments", comment_id)

    def delete_inline_comment(self, comment_id) -> bool:
        return self._delete("inline_comments", comment_id)

    # ============ Platform feedback ============

    def create_feedback(self, user_id, record: dict) -> dict:
        now = _now()
        feedback = {
            "category": None,
            "priority": "medium",
            "rating": None,
            **record,
            "user_id": user_id,
            "status": "open",
            "admin_response": None,
            "admin_response_at": None,
            "admin_response_by": None,
            "created_at": now,
            "updated_at": now,
        }
        return self._insert("feedback", feedback)

    def get_feedback(self, feedback_id):
        return self._get("feedback", feedback_id)

    def list_feedback(self, status=None, user_id=None):
        filters = {}
        if status:
            filters["status"] = status
        if user_id is not None:
            filters["user_id"] = user_id
        rows = self._select("feedback", filters or None)
        return sorted(rows, key=lambda f: f["id"], reverse=True)

    def update_feedback(self, feedback_id, updates: dict, admin_id=None):
        updates = {k: v for k, v in updates.items() if v is not None}
        if updates.get("admin_response"):
            updates["admin_response_at"] = _now()
            updates["admin_response_by"] = admin_id
        updates["updated_at"] = _now()
        return self._update("feedback", feedback_id, updates)

    def feedback_stats(self):
        rows = self._select("feedback")
        by_status, by_type, by_priority = {}, {}, {}
        ratings = []
        for row in rows:
            by_status[row["status"]] = by_status.get(row["status"], 0) + 1
            by_type[row["type"]] = by_type.get(row["type"], 0) + 1
            by_priority[row["priority"]] = by_priority.get(row["priority"], 0) + 1
            if row.get("rating"):
                ratings.append(row["rating"])
        return {
            "total": len(rows),
            "by_status": by_status,
            "by_type": by_type,
            "by_priority": by_priority,
            "average_rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
        }

    # ============ Streaks, achievements, goals ============

    def get_streak(self, user_id):
        rows = self._select("writing_streaks", {"user_id": user_id})
        return rows[0] if rows else None

    def save_streak(self, user_id, current_streak, longest_streak, last_writing_date):
        values = {
            "current_streak": current_streak,
            "longest_streak": longest_streak,
            "last_writing_date": last_writing_date,
            "updated_at": _now(),
        }
        with self.transaction():
            existing = self.get_streak(user_id)
            if existing:
                return self._update("writing_streaks", existing["id"], values)
            return self._insert("writing_streaks", {**values, "user_id": user_id, "created_at": _now()})

    def list_achievements(self, user_id):
        return sorted(self._select("achievements", {"user_id": user_id}), key=lambda a: a["id"])

    def create_achievement(self, user_id, record: dict) -> dict:
        return self._insert("achievements", {**record, "user_id": user_id, "unlocked_at": _now()})

    def get_goal(self, goal_id):
        return self._get("writing_goals", goal_id)

    def list_user_goals(self, user_id):
        return sorted(self._select("writing_goals", {"user_id": user_id}), key=lambda g: g["id"])

    def list_teacher_goals(self, teacher_id):
        return sorted(self._select("writing_goals", {"assigned_by": teacher_id}), key=lambda g: g["id"])

    def create_goal(self, record: dict) -> dict:
        goal = {
            "end_date": None,
            "classroom_id": None,
            "assigned_by": None,
            **record,
            "current_progress": record.get("current_progress", 0),
            "is_completed": False,
            "created_at": _now(),
        }
        return self._insert("writing_goals", goal)

    def update_goal(self, goal_id, updates: dict):
        return self._update("writing_goals", goal_id, updates)

    def delete_goal(self, goal_id) -> bool:
        return self._delete("writing_goals", goal_id)

    # ============ Learning profiles ============

    def get_profile(self, user_id):
        rows = self._select("student_profiles", {"user_id": user_id})
        return rows[0] if rows else None

    def create_profile(self, user_id, record: dict = None) -> dict:
        now = _now()
        profile = {
            "writing_level": "beginner",
            "strengths": [],
            "weaknesses": [],
            "common_mistakes": [],
            "improvement_areas": [],
            "learning_preferences": {},
            "total_words_written": 0,
            "total_sessions": 0,
            "last_interaction_summary": None,
            **(record or {}),
            "user_id": user_id,
            "created_at": now,
            "updated_at": now,
        }
        return self._insert("student_profiles", profile)

    def update_profile(self, user_id, updates: dict):
        profile = self.get_profile(user_id)
        if profile is None:
            return None
        return self._update("student_profiles", profile["id"], {**updates, "updated_at": _now()})


class MemoryStorage(Storage):
    """In-process storage. Returned records are copies."""

    def __init__(self):
        self._tables = {name: {} for name in TABLES}
        self._ids = {name: 1 for name in TABLES}
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self):
        with self._lock:
            yield

    def _table(self, table):
        if table not in self._tables:
            raise KeyError(f"Unknown table: {table}")
        return self._tables[table]

    def _insert(self, table, record):
        with self._lock:
            rows = self._table(table)
            record = deepcopy(record)
            if record.get("id") is None:
                record["id"] = self._ids[table]
            self._ids[table] = max(self._ids[table], record["id"]) + 1
            rows[record["id"]] = record
            return deepcopy(record)

    def _get(self, table, record_id):
        with self._lock:
            row = self._table(table).get(record_id)
            return deepcopy(row) if row is not None else None

    def _select(self, table, filters=None, in_filter=None):
        with self._lock:
            rows = []
            for row in self._table(table).values():
                if filters and any(row.get(k) != v for k, v in filters.items()):
                    continue
                if in_filter and row.get(in_filter[0]) not in in_filter[1]:
                    continue
                rows.append(deepcopy(row))
            return rows

    def _update(self, table, record_id, updates):
        with self._lock:
            rows = self._table(table)
            if record_id not in rows:
                return None
            rows[record_id].update(deepcopy(updates))
            return deepcopy(rows[record_id])

    def _delete(self, table, record_id):
        with self._lock:
            return self._table(table).pop(record_id, None) is not None
