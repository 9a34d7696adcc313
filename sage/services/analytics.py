"""
Sage - Writing Analytics
========================
Streaks, achievements, goal progress and writing statistics for the
student dashboard, plus class-level insights for teachers.
"""
import logging
import re
import statistics
from datetime import datetime, date, timedelta

from ..storage import as_datetime, public_user
from .ai_service import classify_prompt

logger = logging.getLogger(__name__)

SUBMITTED_STATUSES = ("submitted", "graded")
INACTIVE_DAYS = 7

ACHIEVEMENTS = [
    {"type": "assignment", "name": "First Submission", "description": "Submitted your first assignment",
     "badge_icon": "📝", "metric": "submissions", "threshold": 1},
    {"type": "wordcount", "name": "Word Explorer", "description": "Wrote 1,000 words",
     "badge_icon": "✏️", "metric": "words", "threshold": 1000},
    {"type": "wordcount", "name": "Word Builder", "description": "Wrote 5,000 words",
     "badge_icon": "📚", "metric": "words", "threshold": 5000},
    {"type": "wordcount", "name": "Word Master", "description": "Wrote 10,000 words",
     "badge_icon": "🏆", "metric": "words", "threshold": 10000},
    {"type": "streak", "name": "On a Roll", "description": "Wrote 3 days in a row",
     "badge_icon": "🔥", "metric": "streak", "threshold": 3},
    {"type": "streak", "name": "Week Warrior", "description": "Wrote 7 days in a row",
     "badge_icon": "⚡", "metric": "streak", "threshold": 7},
    {"type": "streak", "name": "Writing Habit", "description": "Wrote 30 days in a row",
     "badge_icon": "🌟", "metric": "streak", "threshold": 30},
]


def _as_date(value):
    if value is None:
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return as_datetime(value).date()


# =============================================================================
# STREAKS, ACHIEVEMENTS, GOALS
# =============================================================================

def update_writing_streak(storage, user_id, today=None):
    """Record writing activity for `today` and return the streak record."""
    today = _as_date(today) or date.today()
    streak = storage.get_streak(user_id)

    current, longest = 1, 1
    if streak:
        last = _as_date(streak.get("last_writing_date"))
        current = streak.get("current_streak", 0)
        longest = streak.get("longest_streak", 0)
        if last == today:
            return streak
        if last == today - timedelta(days=1):
            current += 1
        else:
            current = 1
        longest = max(longest, current)

    return storage.save_streak(user_id, current, longest, datetime.combine(today, datetime.min.time()))


def check_achievements(storage, user_id) -> list:
    """Unlock any achievements the user now qualifies for. Returns the new ones."""
    sessions = storage.list_user_sessions(user_id)
    streak = storage.get_streak(user_id) or {}
    metrics = {
        "submissions": sum(1 for s in sessions if s.get("status") in SUBMITTED_STATUSES),
        "words": sum(s.get("word_count") or 0 for s in sessions),
        "streak": max(streak.get("current_streak", 0), streak.get("longest_streak", 0)),
    }

    unlocked = {a["name"] for a in storage.list_achievements(user_id)}
    new = []
    for achievement in ACHIEVEMENTS:
        if achievement["name"] in unlocked or metrics[achievement["metric"]] < achievement["threshold"]:
            continue
        record = {k: achievement[k] for k in ("type", "name", "description", "badge_icon")}
        new.append(storage.create_achievement(user_id, record))
        logger.info("User %s unlocked achievement %s", user_id, achievement["name"])
    return new


def refresh_goal_progress(storage, user_id) -> list:
    """Recompute words written inside each open goal's date range."""
    sessions = storage.list_user_sessions(user_id)
    goals = []
    for goal in storage.list_user_goals(user_id):
        if not goal.get("is_completed"):
            start = as_datetime(goal.get("start_date"))
            end = as_datetime(goal.get("end_date"))
            progress = 0
            for session in sessions:
                created = as_datetime(session.get("created_at"))
                if created is None or (start and created < start) or (end and created > end):
                    continue
                progress += session.get("word_count") or 0
            updates = {"current_progress": progress, "is_completed": progress >= goal["target_words"]}
            goal = storage.update_goal(goal["id"], updates) or goal
        goals.append(goal)
    return goals


# =============================================================================
# TEXT STATISTICS
# =============================================================================

def _syllables(word: str) -> int:
    word = word.lower()
    groups = re.findall(r'[aeiouy]+', word)
    count = len(groups)
    if word.endswith('e') and not word.endswith('le') and count > 1:
        count -= 1
    return max(count, 1)


def _sentences(text: str) -> list:
    return [s for s in re.split(r'[.!?]+', text) if re.search(r'[A-Za-z]', s)]


def flesch_reading_ease(text: str) -> float:
    words = re.findall(r"[A-Za-z']+", text or '')
    sentences = _sentences(text or '')
    if not words or not sentences:
        return 0.0
    syllables = sum(_syllables(w) for w in words)
    score = 206.835 - 1.015 * (len(words) / len(sentences)) - 84.6 * (syllables / len(words))
    return round(min(max(score, 0.0), 100.0), 1)


def _weekly_progress(sessions, now, weeks=4):
    week_start = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    progress = []
    for i in range(weeks - 1, -1, -1):
        start = week_start - timedelta(weeks=i)
        end = start + timedelta(weeks=1)
        in_week = [s for s in sessions if start <= (as_datetime(s.get("created_at")) or now) < end]
        progress.append({
            "week_start": start.date().isoformat(),
            "words": sum(s.get("word_count") or 0 for s in in_week),
            "sessions": len(in_week),
        })
    return progress


def _improvement_trend(sessions) -> float:
    """Percent change in average words per session, later half vs earlier half."""
    ordered = sorted(sessions, key=lambda s: as_datetime(s.get("created_at")) or datetime.min)
    if len(ordered) < 2:
        return 0.0
    half = len(ordered) // 2
    earlier = statistics.mean(s.get("word_count") or 0 for s in ordered[:half])
    later = statistics.mean(s.get("word_count") or 0 for s in ordered[half:])
    if earlier == 0:
        return 100.0 if later > 0 else 0.0
    return round((later - earlier) / earlier * 100, 1)


def session_stats(sessions) -> dict:
    total_words = sum(s.get("word_count") or 0 for s in sessions)
    return {
        "total_sessions": len(sessions),
        "total_words": total_words,
        "avg_words_per_session": round(total_words / len(sessions)) if sessions else 0,
        "submitted": sum(1 for s in sessions if s.get("status") == "submitted"),
        "graded": sum(1 for s in sessions if s.get("status") == "graded"),
    }


def writing_stats(sessions, now=None) -> dict:
    """
    Aggregate statistics over a student's sessions.

    vocabulary_diversity and writing_complexity are percentages (unique
    words, words of 3+ syllables); readability_score is Flesch reading ease;
    sentence_variety is the standard deviation of sentence length in words.
    """
    now = now or datetime.now()
    text = "\n".join(s.get("content") or "" for s in sessions)
    words = [w.lower() for w in re.findall(r"[A-Za-z']+", text)]
    sentence_lengths = [len(re.findall(r"[A-Za-z']+", s)) for s in _sentences(text)]

    if words:
        diversity = round(len(set(words)) / len(words) * 100, 1)
        complexity = round(sum(1 for w in words if _syllables(w) >= 3) / len(words) * 100, 1)
    else:
        diversity = complexity = 0.0

    return {
        "total_words": sum(s.get("word_count") or 0 for s in sessions),
        "total_sessions": len(sessions),
        "vocabulary_diversity": diversity,
        "average_sentence_length": round(statistics.mean(sentence_lengths), 1) if sentence_lengths else 0.0,
        "writing_complexity": complexity,
        "readability_score": flesch_reading_ease(text),
        "sentence_variety": round(statistics.pstdev(sentence_lengths), 1) if len(sentence_lengths) > 1 else 0.0,
        "weekly_progress": _weekly_progress(sessions, now),
        "improvement_trend": _improvement_trend(sessions),
    }


# =============================================================================
# TEACHER VIEWS
# =============================================================================

def _teacher_students(storage, teacher_id):
    students = {}
    for classroom in storage.list_teacher_classrooms(teacher_id):
        for student in storage.list_classroom_students(classroom["id"]):
            students[student["id"]] = student
    return [students[k] for k in sorted(students)]


def student_insights(storage, teacher_id, now=None) -> list:
    """Per-student progress for every student in the teacher's classrooms."""
    now = now or datetime.now()
    insights = []
    for student in _teacher_students(storage, teacher_id):
        sessions = storage.list_user_sessions(student["id"])
        streak = storage.get_streak(student["id"]) or {}
        achievements = storage.list_achievements(student["id"])
        stats = writing_stats(sessions, now)

        activity = [as_datetime(s.get("updated_at")) for s in sessions if s.get("updated_at")]
        last_activity = max(activity) if activity else None
        inactive = last_activity is None or (now - last_activity).days >= INACTIVE_DAYS

        insights.append({
            "student": student,
            "total_words": stats["total_words"],
            "completed_assignments": sum(1 for s in sessions if s.get("status") in SUBMITTED_STATUSES),
            "current_streak": streak.get("current_streak", 0),
            "recent_achievements": achievements[-3:],
            "writing_quality": stats["readability_score"],
            "needs_attention": inactive or stats["improvement_trend"] < -20,
            "improvement_trend": stats["improvement_trend"],
            "last_activity": last_activity,
        })
    return insights


def leaderboard(storage, teacher_id) -> list:
    """Class ranking: words/10 + 50 per achievement + 10 per streak day."""
    entries = []
    for student in _teacher_students(storage, teacher_id):
        words = sum(s.get("word_count") or 0 for s in storage.list_user_sessions(student["id"]))
        achievements = len(storage.list_achievements(student["id"]))
        streak = (storage.get_streak(student["id"]) or {}).get("current_streak", 0)
        entries.append({
            "student": student,
            "total_score": words // 10 + achievements * 50 + streak * 10,
            "achievements": achievements,
            "streak": streak,
        })
    return sorted(entries, key=lambda e: e["total_score"], reverse=True)


# =============================================================================
# LEARNING PROFILE
# =============================================================================

def writing_level_for(total_words: int) -> str:
    if total_words >= 10000:
        return "advanced"
    if total_words >= 2000:
        return "intermediate"
    return "beginner"


def update_learning_profile(storage, user_id, prompt: str):
    """Fold one assistant interaction into the student's learning profile."""
    profile = storage.get_profile(user_id) or storage.create_profile(user_id)
    sessions = storage.list_user_sessions(user_id)
    category = classify_prompt(prompt)

    preferences = dict(profile.get("learning_preferences") or {})
    preferences[category] = preferences.get(category, 0) + 1

    improvement_areas = list(profile.get("improvement_areas") or [])
    if category in ("grammar", "outlining", "research") and category not in improvement_areas:
        improvement_areas.append(category)

    total_words = sum(s.get("word_count") or 0 for s in sessions)
    summary = f"Asked for {category} help: {prompt.strip()[:80]}"

    return storage.update_profile(user_id, {
        "learning_preferences": preferences,
        "improvement_areas": improvement_areas,
        "total_words_written": total_words,
        "total_sessions": len(sessions),
        "writing_level": writing_level_for(total_words),
        "last_interaction_summary": summary,
    })


def student_profiles_overview(storage) -> list:
    """Every active student with their profile (or the default profile)."""
    overview = []
    for student in storage.list_users(role="student"):
        profile = storage.get_profile(student["id"]) or {
            "writing_level": "beginner",
            "strengths": [],
            "weaknesses": [],
            "total_sessions": 0,
            "last_interaction_summary": "No interactions yet",
        }
        overview.append({"student": public_user(student), "profile": profile})
    return overview
