"""
Classroom API routes for Sage.
"""
import logging

from flask import Blueprint, jsonify

from ..auth import role_required
from ..errors import NotFoundError, PermissionDenied, ValidationFailed
from ..ferpa import audit_log, log_data_access
from ..models import ClassroomCreate, ClassroomUpdate, serialize
from ..storage import get_storage
from .common import parse_body, json_body, string_field, current_user_id, current_role, require_found

logger = logging.getLogger(__name__)

classroom_bp = Blueprint('classroom', __name__)


def _load_owned_classroom(classroom_id):
    classroom = require_found(get_storage().get_classroom(classroom_id), "Classroom")
    if current_role() != 'admin' and classroom['teacher_id'] != current_user_id():
        raise PermissionDenied("You can only manage your own classrooms")
    return classroom


@classroom_bp.route('/api/classrooms', methods=['POST'])
@role_required('teacher', 'admin')
def create_classroom():
    data = parse_body(ClassroomCreate)
    classroom = get_storage().create_classroom(current_user_id(), data.to_record())
    audit_log("CLASSROOM_CREATED", f"classroom_id={classroom['id']}", user=str(current_user_id()))
    return jsonify(serialize(classroom)), 201


@classroom_bp.route('/api/classrooms/<int:classroom_id>', methods=['PATCH'])
@role_required('teacher', 'admin')
def update_classroom(classroom_id):
    _load_owned_classroom(classroom_id)
    data = parse_body(ClassroomUpdate)
    updates = {k: v for k, v in data.to_record(exclude_unset=True).items() if v is not None}
    return jsonify(serialize(get_storage().update_classroom(classroom_id, updates)))


@classroom_bp.route('/api/teacher/classrooms', methods=['GET'])
@role_required('teacher', 'admin')
def get_teacher_classrooms():
    storage = get_storage()
    classrooms = []
    for classroom in storage.list_teacher_classrooms(current_user_id()):
        students = storage.list_classroom_students(classroom['id'])
        classrooms.append({**classroom, 'student_count': len(students)})
    return jsonify(serialize(classrooms))


@classroom_bp.route('/api/teacher/classrooms/<int:classroom_id>/students', methods=['GET'])
@role_required('teacher', 'admin')
@log_data_access('VIEW_ROSTER', 'manage_class')
def get_classroom_students(classroom_id):
    _load_owned_classroom(classroom_id)
    return jsonify(serialize(get_storage().list_classroom_students(classroom_id)))


@classroom_bp.route('/api/student/classes', methods=['GET'])
@role_required('student')
def get_student_classes():
    storage = get_storage()
    classes = []
    for classroom in storage.list_student_classrooms(current_user_id()):
        teacher = storage.get_user(classroom['teacher_id'])
        teacher_name = f"{teacher['first_name']} {teacher['last_name']}" if teacher else None
        classes.append({**classroom, 'teacher_name': teacher_name})
    return jsonify(serialize(classes))


@classroom_bp.route('/api/classes/join', methods=['POST'])
@role_required('student')
def join_class():
    join_code = string_field(json_body(), 'joinCode').strip()
    if not join_code:
        raise ValidationFailed("Join code is required")

    storage = get_storage()
    classroom = storage.get_classroom_by_join_code(join_code)
    if classroom is None or not classroom.get('is_active', True):
        raise NotFoundError("Invalid join code")

    storage.enroll_student(current_user_id(), classroom['id'])
    audit_log("CLASS_JOINED", f"classroom_id={classroom['id']}", user=str(current_user_id()))
    return jsonify({
        "message": f"Joined {classroom['name']}",
        "classroom": serialize(classroom),
    })
