"""
Authentication API routes for Sage.
Login, registration, password changes and account recovery.
"""
import logging

from flask import Blueprint, jsonify, g

from ..auth import (
    hash_password, verify_password, issue_token, issue_reset_token,
    validate_token, revoke_token,
)
from ..errors import AuthError, ConflictError, NotFoundError, PermissionDenied, ValidationFailed
from ..ferpa import audit_log
from ..models import UserCreate, LoginRequest, ChangePasswordRequest, serialize
from ..storage import get_storage, public_user
from ..username_generator import UsernameGenerator, generate_username_from_email
from .common import parse_body, json_body, string_field, get_emailer, current_user_id

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

DEMO_ACCOUNTS = {
    'student': 'student',
    'teacher': 'teacher',
    'admin': 'admin',
}


def _login_response(user):
    return jsonify({
        "token": issue_token(user),
        "user": serialize(public_user(user)),
        "message": "Login successful",
    })


def register_user(data: UserCreate, storage, allow_admin=False):
    """Create an account from a validated payload. Shared with admin user creation."""
    if data.role == 'admin' and not allow_admin:
        raise PermissionDenied("Admin accounts can only be created by an administrator")
    if storage.get_user_by_email(data.email):
        raise ConflictError("An account with this email already exists")

    if data.username:
        if storage.get_user_by_username(data.username):
            raise ConflictError("Username is already taken")
        username = data.username
    else:
        username = UsernameGenerator(storage).generate_unique_username(
            data.email, data.first_name, data.last_name, data.role)

    record = data.to_record()
    record.pop('password')
    record['username'] = username
    record['password_hash'] = hash_password(data.password)
    user = storage.create_user(record)

    if user['role'] == 'student':
        storage.create_profile(user['id'])
    return user


@auth_bp.route('/api/auth/login', methods=['POST'])
def login():
    """Log in with username (or email) and password."""
    data = parse_body(LoginRequest)
    storage = get_storage()

    identifier = data.username.strip()
    if '@' in identifier:
        user = storage.get_user_by_email(identifier)
    else:
        user = storage.get_user_by_username(identifier)

    if not user or not verify_password(data.password, user.get('password_hash')):
        audit_log("LOGIN_FAILED", f"identifier={identifier}")
        return jsonify({"error": "Invalid credentials"}), 401
    if not user.get('is_active', True):
        return jsonify({"error": "This account has been archived. Contact your administrator."}), 403

    audit_log("LOGIN", f"user_id={user['id']}", user=user['username'])
    return _login_response(user)


@auth_bp.route('/api/auth/register', methods=['POST'])
def register():
    """Self-registration for students and teachers."""
    data = parse_body(UserCreate)
    storage = get_storage()
    user = register_user(data, storage)

    email_result = get_emailer().send_welcome_email(user)
    audit_log("REGISTER", f"user_id={user['id']} role={user['role']}", user=user['username'])
    logger.info("Registered %s %s", user['role'], user['username'])

    return jsonify({
        "token": issue_token(user),
        "user": serialize(public_user(user)),
        "emailSent": email_result.get("success", False),
        "message": f"Account created. Your username is {user['username']}",
    }), 201


@auth_bp.route('/api/auth/user', methods=['GET'])
def get_current_user():
    user = get_storage().get_user(current_user_id())
    if user is None:
        raise NotFoundError("User not found")
    return jsonify(serialize(public_user(user)))


@auth_bp.route('/api/auth/logout', methods=['POST'])
def logout():
    revoke_token(g.token_payload)
    audit_log("LOGOUT", "", user=g.username)
    return jsonify({"message": "Logged out"})


@auth_bp.route('/api/auth/change-password', methods=['POST'])
def change_password():
    data = parse_body(ChangePasswordRequest)
    storage = get_storage()
    user = storage.get_user(current_user_id())

    if not verify_password(data.current_password, user.get('password_hash')):
        raise ValidationFailed("Current password is incorrect")

    storage.update_user(user['id'], {"password_hash": hash_password(data.new_password)})
    audit_log("PASSWORD_CHANGED", f"user_id={user['id']}", user=user['username'])
    return jsonify({"message": "Password updated"})


@auth_bp.route('/api/auth/forgot-credentials', methods=['POST'])
def forgot_credentials():
    """Email the username and a reset link. The response never reveals whether the email exists."""
    email = string_field(json_body(), 'email').strip().lower()
    if not email:
        raise ValidationFailed("Email is required")

    user = get_storage().get_user_by_email(email)
    if user and user.get('is_active', True):
        get_emailer().send_forgot_credentials_email(user, issue_reset_token(user))
        audit_log("CREDENTIALS_RECOVERY", f"user_id={user['id']}", user=user['username'])

    return jsonify({"message": "If an account exists for that email, we've sent your username and a reset link."})


@auth_bp.route('/api/auth/reset-password', methods=['POST'])
def reset_password():
    data = json_body()
    token = string_field(data, 'token')
    new_password = string_field(data, 'newPassword') or string_field(data, 'new_password')
    if len(new_password) < 6:
        raise ValidationFailed("Password must be at least 6 characters")

    payload = validate_token(token, purpose='reset')
    if payload is None:
        raise AuthError("Reset link is invalid or has expired")

    storage = get_storage()
    user = storage.get_user(int(payload['sub']))
    if user is None:
        raise AuthError("Reset link is invalid or has expired")

    storage.update_user(user['id'], {"password_hash": hash_password(new_password)})
    revoke_token(payload)
    audit_log("PASSWORD_RESET", f"user_id={user['id']}", user=user['username'])
    return jsonify({"message": "Password has been reset"})


@auth_bp.route('/api/auth/check-email', methods=['POST'])
def check_email():
    email = string_field(json_body(), 'email').strip().lower()
    if not email or '@' not in email:
        raise ValidationFailed("A valid email is required")

    storage = get_storage()
    exists = storage.get_user_by_email(email) is not None
    result = {"exists": exists}
    if not exists:
        result["suggestedUsername"] = generate_username_from_email(email, storage)
    return jsonify(result)


@auth_bp.route('/api/auth/demo-login', methods=['POST'])
def demo_login():
    role = json_body().get('role', 'student')
    username = DEMO_ACCOUNTS.get(role)
    if username is None:
        raise ValidationFailed("Unknown demo role")

    user = get_storage().get_user_by_username(username)
    if user is None or not user.get('is_active', True):
        raise NotFoundError("Demo account not available")

    audit_log("DEMO_LOGIN", f"role={role}", user=username)
    return _login_response(user)
