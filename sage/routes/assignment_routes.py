"""
Assignment API routes for Sage.
Teachers create and manage assignments; students see the ones linked to
their classrooms.
"""
import logging

from flask import Blueprint, jsonify

from ..auth import role_required
from ..errors import PermissionDenied, ValidationFailed
from ..ferpa import audit_log, log_data_access
from ..models import AssignmentCreate, AssignmentUpdate, serialize
from ..storage import get_storage
from .common import parse_body, current_user_id, current_role, require_found, load_owned_assignment

logger = logging.getLogger(__name__)

assignment_bp = Blueprint('assignment', __name__)


def _linked_classrooms(record):
    linked = list(record.get('classroom_ids') or [])
    if record.get('classroom_id') is not None and record['classroom_id'] not in linked:
        linked.insert(0, record['classroom_id'])
    return linked


def _check_classrooms_owned(classroom_ids):
    storage = get_storage()
    for classroom_id in classroom_ids:
        classroom = storage.get_classroom(classroom_id)
        if classroom is None:
            raise ValidationFailed(f"Classroom {classroom_id} does not exist")
        if current_role() != 'admin' and classroom['teacher_id'] != current_user_id():
            raise PermissionDenied("You can only assign work to your own classrooms")


def _student_can_see(assignment):
    classrooms = get_storage().list_student_classrooms(current_user_id())
    enrolled = {c['id'] for c in classrooms}
    return bool(enrolled & set(_linked_classrooms(assignment)))


@assignment_bp.route('/api/assignments', methods=['POST'])
@role_required('teacher', 'admin')
def create_assignment():
    data = parse_body(AssignmentCreate)
    record = data.to_record()
    record['classroom_ids'] = _linked_classrooms(record)
    _check_classrooms_owned(record['classroom_ids'])

    assignment = get_storage().create_assignment(current_user_id(), record)
    audit_log("ASSIGNMENT_CREATED", f"assignment_id={assignment['id']}", user=str(current_user_id()))
    logger.info("Assignment %s created by %s", assignment['id'], current_user_id())
    return jsonify(serialize(assignment)), 201


@assignment_bp.route('/api/assignments/<int:assignment_id>', methods=['GET'])
def get_assignment(assignment_id):
    assignment = require_found(get_storage().get_assignment(assignment_id), "Assignment")
    role = current_role()
    if role == 'teacher' and assignment['teacher_id'] != current_user_id():
        raise PermissionDenied("You can only view your own assignments")
    if role == 'student' and not _student_can_see(assignment):
        raise PermissionDenied("This assignment is not assigned to your classes")
    return jsonify(serialize(assignment))


@assignment_bp.route('/api/assignments/<int:assignment_id>', methods=['PATCH'])
@role_required('teacher', 'admin')
def update_assignment(assignment_id):
    load_owned_assignment(assignment_id)
    data = parse_body(AssignmentUpdate)
    updates = {k: v for k, v in data.to_record(exclude_unset=True).items() if v is not None}
    if 'classroom_ids' in updates or 'classroom_id' in updates:
        merged = {**get_storage().get_assignment(assignment_id), **updates}
        updates['classroom_ids'] = _linked_classrooms(merged)
        _check_classrooms_owned(updates['classroom_ids'])

    assignment = get_storage().update_assignment(assignment_id, updates)
    return jsonify(serialize(assignment))


@assignment_bp.route('/api/assignments/<int:assignment_id>/complete', methods=['POST'])
@role_required('teacher', 'admin')
def complete_assignment(assignment_id):
    load_owned_assignment(assignment_id)
    assignment = get_storage().mark_assignment_complete(assignment_id)
    return jsonify(serialize(assignment))


@assignment_bp.route('/api/assignments/<int:assignment_id>/submissions', methods=['GET'])
@role_required('teacher', 'admin')
@log_data_access('VIEW_SUBMISSIONS', 'grade_assignment')
def get_submissions(assignment_id):
    load_owned_assignment(assignment_id)
    submissions = get_storage().list_assignment_submissions(assignment_id)
    return jsonify(serialize(submissions))


@assignment_bp.route('/api/teacher/assignments', methods=['GET'])
@role_required('teacher', 'admin')
def get_my_assignments():
    return jsonify(serialize(get_storage().list_teacher_assignments(current_user_id())))


@assignment_bp.route('/api/assignments/teacher/<int:teacher_id>', methods=['GET'])
@role_required('teacher', 'admin')
def get_teacher_assignments(teacher_id):
    if current_role() != 'admin' and teacher_id != current_user_id():
        raise PermissionDenied("You can only view your own assignments")
    return jsonify(serialize(get_storage().list_teacher_assignments(teacher_id)))


@assignment_bp.route('/api/student/assignments', methods=['GET'])
@role_required('student')
def get_student_assignments():
    """Assignments for every classroom the student is enrolled in, with their own session if any."""
    storage = get_storage()
    classroom_ids = [c['id'] for c in storage.list_student_classrooms(current_user_id())]
    assignments = storage.list_classroom_assignments(classroom_ids)

    result = []
    for assignment in assignments:
        session = storage.find_user_session_for_assignment(current_user_id(), assignment['id'])
        result.append({**assignment, 'writing_session': session})
    return jsonify(serialize(result))


@assignment_bp.route('/api/assignments/check-overdue', methods=['POST'])
@role_required('teacher', 'admin')
def check_overdue():
    overdue = get_storage().check_overdue_assignments()
    if current_role() == 'teacher':
        overdue = [a for a in overdue if a['teacher_id'] == current_user_id()]
    return jsonify({"overdue": serialize(overdue), "count": len(overdue)})
