"""
Analytics API routes for Sage.
Streaks, achievements, goals and writing statistics for students, plus
class insights and goal assignment for teachers.
"""
import logging

from flask import Blueprint, jsonify

from ..auth import role_required
from ..errors import PermissionDenied, ValidationFailed
from ..ferpa import log_data_access
from ..models import WritingGoalCreate, WritingGoalUpdate, serialize
from ..services.analytics import (
    refresh_goal_progress, session_stats, writing_stats, student_insights, leaderboard,
)
from ..storage import get_storage
from .common import parse_body, current_user_id, current_role, require_found, require_self_or_staff

logger = logging.getLogger(__name__)

analytics_bp = Blueprint('analytics', __name__)


def _require_self_or_admin_teacher(teacher_id):
    if current_role() != 'admin' and teacher_id != current_user_id():
        raise PermissionDenied("You can only view your own classes")


# ══════════════════════════════════════════════════════════════
# STUDENT PROGRESS
# ══════════════════════════════════════════════════════════════

@analytics_bp.route('/api/users/<int:user_id>/streak', methods=['GET'])
def get_streak(user_id):
    require_self_or_staff(user_id)
    streak = get_storage().get_streak(user_id) or {
        "user_id": user_id,
        "current_streak": 0,
        "longest_streak": 0,
        "last_writing_date": None,
    }
    return jsonify(serialize(streak))


@analytics_bp.route('/api/users/<int:user_id>/achievements', methods=['GET'])
def get_achievements(user_id):
    require_self_or_staff(user_id)
    return jsonify(serialize(get_storage().list_achievements(user_id)))


@analytics_bp.route('/api/users/<int:user_id>/goals', methods=['GET'])
def get_goals(user_id):
    require_self_or_staff(user_id)
    return jsonify(serialize(refresh_goal_progress(get_storage(), user_id)))


@analytics_bp.route('/api/users/<int:user_id>/goals', methods=['POST'])
def create_goal(user_id):
    if user_id != current_user_id():
        raise PermissionDenied("You can only set your own goals")
    data = parse_body(WritingGoalCreate)
    storage = get_storage()
    storage.create_goal({**data.to_record(), "user_id": user_id})
    goals = refresh_goal_progress(storage, user_id)
    return jsonify(serialize(goals[-1])), 201


@analytics_bp.route('/api/analytics/<int:user_id>/sessions', methods=['GET'])
@log_data_access('VIEW_SESSION_STATS', 'track_progress')
def get_session_stats(user_id):
    require_self_or_staff(user_id)
    return jsonify(serialize(session_stats(get_storage().list_user_sessions(user_id))))


@analytics_bp.route('/api/analytics/<int:user_id>/writing-stats', methods=['GET'])
@log_data_access('VIEW_WRITING_STATS', 'track_progress')
def get_writing_stats(user_id):
    require_self_or_staff(user_id)
    return jsonify(serialize(writing_stats(get_storage().list_user_sessions(user_id))))


# ══════════════════════════════════════════════════════════════
# TEACHER VIEWS
# ══════════════════════════════════════════════════════════════

@analytics_bp.route('/api/teacher/<int:teacher_id>/student-insights', methods=['GET'])
@role_required('teacher', 'admin')
@log_data_access('VIEW_STUDENT_INSIGHTS', 'track_progress')
def get_student_insights(teacher_id):
    _require_self_or_admin_teacher(teacher_id)
    return jsonify(serialize(student_insights(get_storage(), teacher_id)))


@analytics_bp.route('/api/teacher/<int:teacher_id>/leaderboard', methods=['GET'])
@role_required('teacher', 'admin')
def get_leaderboard(teacher_id):
    _require_self_or_admin_teacher(teacher_id)
    return jsonify(serialize(leaderboard(get_storage(), teacher_id)))


@analytics_bp.route('/api/teacher/goals', methods=['GET'])
@role_required('teacher', 'admin')
def get_teacher_goals():
    return jsonify(serialize(get_storage().list_teacher_goals(current_user_id())))


@analytics_bp.route('/api/teacher/goals', methods=['POST'])
@role_required('teacher', 'admin')
def assign_goals():
    """Create the same goal for every student enrolled in a classroom."""
    data = parse_body(WritingGoalCreate)
    if data.classroom_id is None:
        raise ValidationFailed("classroomId is required")

    storage = get_storage()
    classroom = require_found(storage.get_classroom(data.classroom_id), "Classroom")
    if current_role() != 'admin' and classroom['teacher_id'] != current_user_id():
        raise PermissionDenied("You can only set goals for your own classrooms")

    record = data.to_record()
    goals = [
        storage.create_goal({**record, "user_id": student['id'], "assigned_by": current_user_id()})
        for student in storage.list_classroom_students(classroom['id'])
    ]
    logger.info("Teacher %s assigned %d goals in classroom %s", current_user_id(), len(goals), classroom['id'])
    return jsonify({"goals": serialize(goals), "count": len(goals)}), 201


def _load_assigned_goal(goal_id):
    goal = require_found(get_storage().get_goal(goal_id), "Goal")
    if current_role() != 'admin' and goal.get('assigned_by') != current_user_id():
        raise PermissionDenied("You can only manage goals you assigned")
    return goal


@analytics_bp.route('/api/teacher/goals/<int:goal_id>', methods=['PATCH'])
@role_required('teacher', 'admin')
def update_goal(goal_id):
    _load_assigned_goal(goal_id)
    data = parse_body(WritingGoalUpdate)
    updates = {k: v for k, v in data.to_record(exclude_unset=True).items() if v is not None}
    return jsonify(serialize(get_storage().update_goal(goal_id, updates)))


@analytics_bp.route('/api/teacher/goals/<int:goal_id>', methods=['DELETE'])
@role_required('teacher', 'admin')
def delete_goal(goal_id):
    _load_assigned_goal(goal_id)
    get_storage().delete_goal(goal_id)
    return jsonify({"message": "Goal deleted"})
