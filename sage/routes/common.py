"""
Shared helpers for Sage route blueprints: request parsing, the current
user, and record-level access checks.
"""
from flask import request, g, current_app

from ..errors import NotFoundError, PermissionDenied, ValidationFailed
from ..storage import get_storage


def parse_body(model):
    """Validate the JSON body against a pydantic model (ValidationError -> 400)."""
    return model.model_validate(request.get_json(silent=True) or {})


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return data


def string_field(data: dict, key: str, default: str = '') -> str:
    """A string value from a JSON body; other JSON types are a 400."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationFailed(f"{key} must be a string")
    return value


def get_emailer():
    return current_app.extensions['sage_emailer']


def current_user_id():
    return getattr(g, 'user_id', None)


def current_role():
    return getattr(g, 'user_role', None)


def require_found(record, label):
    if record is None:
        raise NotFoundError(f"{label} not found")
    return record


def require_self_or_staff(user_id):
    """Students may only act on their own records; teachers and admins on anyone's."""
    if current_role() in ('teacher', 'admin'):
        return
    if current_user_id() != user_id:
        raise PermissionDenied("You can only access your own records")


def require_self_or_admin(user_id):
    if current_role() != 'admin' and current_user_id() != user_id:
        raise PermissionDenied("You can only access your own records")


def can_view_session(session) -> bool:
    """Owner, admin, or the teacher who owns the session's assignment."""
    role = current_role()
    if role == 'admin' or session.get('user_id') == current_user_id():
        return True
    if role == 'teacher' and session.get('assignment_id') is not None:
        assignment = get_storage().get_assignment(session['assignment_id'])
        return bool(assignment) and assignment.get('teacher_id') == current_user_id()
    return False


def load_session(session_id, owner_only=False):
    """Fetch a writing session the current user may see (or, with owner_only, edit)."""
    session = require_found(get_storage().get_session(session_id), "Writing session")
    if owner_only:
        if session.get('user_id') != current_user_id():
            raise PermissionDenied("You can only modify your own writing sessions")
    elif not can_view_session(session):
        raise PermissionDenied("You do not have access to this writing session")
    return session


def load_owned_assignment(assignment_id):
    """Assignment owned by the current teacher (admins may act on any)."""
    assignment = require_found(get_storage().get_assignment(assignment_id), "Assignment")
    if current_role() != 'admin' and assignment.get('teacher_id') != current_user_id():
        raise PermissionDenied("You can only manage your own assignments")
    return assignment
