"""
Admin API routes for Sage.
User management, account archiving, username suggestions and the FERPA
audit log.
"""
import logging
import secrets

from flask import Blueprint, request, jsonify

from ..auth import role_required, hash_password
from ..errors import ValidationFailed
from ..ferpa import audit_log, get_audit_logs, log_data_access
from ..models import UserCreate, serialize
from ..storage import get_storage, public_user
from ..username_generator import UsernameGenerator
from .auth_routes import register_user
from .common import parse_body, json_body, string_field, get_emailer, current_user_id, require_found

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

TEMP_PASSWORD_BYTES = 6


def _load_other_user(user_id):
    user = require_found(get_storage().get_user(user_id), "User")
    if user['id'] == current_user_id():
        raise ValidationFailed("You cannot perform this action on your own account")
    return user


@admin_bp.route('/api/admin/users', methods=['GET'])
@role_required('admin')
@log_data_access('LIST_USERS', 'user_management')
def list_users():
    role = request.args.get('role')
    users = get_storage().list_users(role=role)
    return jsonify(serialize([public_user(u) for u in users]))


@admin_bp.route('/api/admin/users', methods=['POST'])
@role_required('admin')
def create_user():
    data = parse_body(UserCreate)
    user = register_user(data, get_storage(), allow_admin=True)
    email_result = get_emailer().send_welcome_email(user)
    audit_log("USER_CREATED", f"user_id={user['id']} role={user['role']}", user=str(current_user_id()))
    return jsonify({
        "user": serialize(public_user(user)),
        "emailSent": email_result.get("success", False),
    }), 201


@admin_bp.route('/api/admin/users/<int:user_id>', methods=['DELETE'])
@role_required('admin')
def delete_user(user_id):
    user = _load_other_user(user_id)
    get_storage().delete_user(user_id)
    audit_log("USER_DELETED", f"user_id={user_id} username={user['username']}", user=str(current_user_id()))
    return jsonify({"message": "User deleted"})


@admin_bp.route('/api/admin/users/<int:user_id>/archive', methods=['POST'])
@role_required('admin')
def archive_user(user_id):
    _load_other_user(user_id)
    user = get_storage().archive_user(user_id)
    audit_log("USER_ARCHIVED", f"user_id={user_id}", user=str(current_user_id()))
    return jsonify({"message": "User archived", "user": serialize(public_user(user))})


@admin_bp.route('/api/admin/users/<int:user_id>/reactivate', methods=['POST'])
@role_required('admin')
def reactivate_user(user_id):
    require_found(get_storage().get_user(user_id), "User")
    user = get_storage().reactivate_user(user_id)
    audit_log("USER_REACTIVATED", f"user_id={user_id}", user=str(current_user_id()))
    return jsonify({"message": "User reactivated", "user": serialize(public_user(user))})


@admin_bp.route('/api/admin/users/<int:user_id>/reset-password', methods=['POST'])
@role_required('admin')
def reset_user_password(user_id):
    """Set a temporary password and return it once so the admin can pass it on."""
    require_found(get_storage().get_user(user_id), "User")
    temporary = json_body().get('newPassword') or secrets.token_urlsafe(TEMP_PASSWORD_BYTES)
    if len(temporary) < 6:
        raise ValidationFailed("Password must be at least 6 characters")

    get_storage().update_user(user_id, {"password_hash": hash_password(temporary)})
    audit_log("ADMIN_PASSWORD_RESET", f"user_id={user_id}", user=str(current_user_id()))
    return jsonify({"message": "Password reset", "temporaryPassword": temporary})


@admin_bp.route('/api/admin/archived-users', methods=['GET'])
@role_required('admin')
def archived_users():
    users = get_storage().list_archived_users()
    return jsonify(serialize([{**public_user(u), "archived_at": u.get("archived_at")} for u in users]))


@admin_bp.route('/api/admin/username-suggestions', methods=['POST'])
@role_required('admin')
def username_suggestions():
    data = json_body()
    email = string_field(data, 'email').strip().lower()
    first_name = string_field(data, 'firstName')
    last_name = string_field(data, 'lastName')
    if not email or not first_name or not last_name:
        raise ValidationFailed("email, firstName and lastName are required")

    generator = UsernameGenerator(get_storage())
    suggestions = generator.generate_username_suggestions(email, first_name, last_name, data.get('role', 'student'))
    return jsonify({"suggestions": suggestions})


@admin_bp.route('/api/admin/writing-sessions', methods=['GET'])
@role_required('admin')
@log_data_access('LIST_WRITING_SESSIONS', 'system_administration')
def all_writing_sessions():
    storage = get_storage()
    sessions = [{**s, "student": public_user(storage.get_user(s['user_id']))} for s in storage.list_sessions()]
    return jsonify(serialize(sessions))


@admin_bp.route('/api/admin/audit-logs', methods=['GET'])
@role_required('admin')
def audit_logs():
    limit = request.args.get('limit', 100, type=int)
    return jsonify({"logs": get_audit_logs(max(1, min(limit, 1000)))})
